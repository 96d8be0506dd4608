import base64
import re
from urllib.parse import quote

import httpx
import structlog

from subagent_hub.config import settings
from subagent_hub.exceptions import AppError, ValidationError
from subagent_hub.github.schemas import Repository, RepoRef, TreeEntry

logger = structlog.get_logger()

USER_AGENT = "subagent-hub/0.1"

_URL_PATTERN = re.compile(r"github\.com[/:]([^/\s]+)/([^/\s#?]+)")
_SHORT_PATTERN = re.compile(r"^([A-Za-z0-9][A-Za-z0-9-]*)/([A-Za-z0-9._-]+)$")


class GitHubError(AppError):
    def __init__(self, message: str, code: str = "GITHUB_ERROR", status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message, code=code)


class RepositoryNotFoundError(GitHubError):
    def __init__(self, message: str):
        super().__init__(message, code="GITHUB_NOT_FOUND", status_code=404)


class GitHubAuthError(GitHubError):
    def __init__(self, message: str):
        super().__init__(message, code="GITHUB_AUTH_ERROR", status_code=401)


class GitHubRateLimitError(GitHubError):
    def __init__(self, message: str, reset_at: int | None = None):
        self.reset_at = reset_at
        super().__init__(message, code="GITHUB_RATE_LIMITED", status_code=403)


def parse_github_url(url: str) -> RepoRef:
    """Extract owner and repository name from a GitHub URL or ``owner/name``."""
    candidate = url.strip()
    match = _URL_PATTERN.search(candidate) or _SHORT_PATTERN.match(candidate)
    if match is None:
        raise ValidationError(f"Invalid GitHub URL: '{url}'")

    owner, name = match.group(1), match.group(2)
    name = name.removesuffix(".git")
    if not name:
        raise ValidationError(f"Invalid GitHub URL: '{url}'")
    return RepoRef(owner=owner, name=name)


def _contents_url(ref: RepoRef, path: str) -> str:
    url = f"/repos/{ref.owner}/{ref.name}/contents"
    path = path.strip("/")
    if not path:
        return url
    return f"{url}/" + quote(path, safe="/")


def resolve_github_token(user_token: str | None, app_token: str | None = None) -> str | None:
    """Prefer the user's delegated credential, fall back to the app-level one."""
    if user_token and user_token.strip():
        return user_token.strip()
    fallback = settings.github_token if app_token is None else app_token
    return fallback or None


class GitHubClient:
    """Read-only client for the GitHub REST API."""

    def __init__(
        self,
        token: str | None = None,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": USER_AGENT,
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self.authenticated = bool(token)
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.github_api_url,
            headers=headers,
            timeout=httpx.Timeout(timeout or settings.github_timeout_seconds),
            transport=transport,
        )

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_repository(self, ref: RepoRef) -> Repository:
        data = await self._get_json(f"/repos/{ref.owner}/{ref.name}", resource=ref.full_name)
        return Repository.model_validate(data)

    async def list_files(
        self, ref: RepoRef, path: str = "", git_ref: str | None = None
    ) -> list[TreeEntry]:
        """List one directory of the repository via the contents API."""
        params = {"ref": git_ref} if git_ref else None
        data = await self._get_json(
            _contents_url(ref, path),
            params=params,
            resource=f"{ref.full_name}/{path}",
        )
        if not isinstance(data, list):
            raise GitHubError(f"Path '{path}' in {ref.full_name} is not a directory")
        return [TreeEntry.model_validate(item) for item in data]

    async def get_file_content(self, ref: RepoRef, path: str, git_ref: str | None = None) -> str:
        params = {"ref": git_ref} if git_ref else None
        data = await self._get_json(
            _contents_url(ref, path),
            params=params,
            resource=f"{ref.full_name}/{path}",
        )
        if not isinstance(data, dict) or data.get("type") != "file":
            raise GitHubError(f"Path '{path}' in {ref.full_name} is not a file")

        content = data.get("content") or ""
        if data.get("encoding") == "base64":
            return base64.b64decode(content).decode("utf-8", errors="replace")
        return content

    async def search_repositories(
        self,
        query: str,
        sort: str = "stars",
        order: str = "desc",
        limit: int = 10,
    ) -> list[Repository]:
        per_page = min(max(limit, 1), 100)
        data = await self._get_json(
            "/search/repositories",
            params={"q": query, "sort": sort, "order": order, "per_page": per_page},
            resource=f"search '{query}'",
        )
        items = data.get("items", []) if isinstance(data, dict) else []
        return [Repository.model_validate(item) for item in items[:per_page]]

    async def get_latest_release(self, ref: RepoRef) -> str | None:
        """Return the latest release tag, or None when the repository has no releases."""
        try:
            data = await self._get_json(
                f"/repos/{ref.owner}/{ref.name}/releases/latest", resource=ref.full_name
            )
        except RepositoryNotFoundError:
            return None
        tag = data.get("tag_name") if isinstance(data, dict) else None
        return tag or None

    async def get_topics(self, ref: RepoRef) -> list[str]:
        data = await self._get_json(f"/repos/{ref.owner}/{ref.name}/topics", resource=ref.full_name)
        names = data.get("names", []) if isinstance(data, dict) else []
        return [str(name) for name in names]

    async def _get_json(
        self, url: str, *, params: dict | None = None, resource: str
    ) -> dict | list:
        try:
            response = await self._client.get(url, params=params)
        except httpx.HTTPError as exc:
            logger.warning("github_transport_error", resource=resource, error=str(exc))
            raise GitHubError(f"GitHub request for {resource} failed: {exc}") from exc

        self._log_rate_limit(response)
        self._raise_for_status(response, resource)
        return response.json()

    def _raise_for_status(self, response: httpx.Response, resource: str) -> None:
        status = response.status_code
        if status < 400:
            return

        if status == 404:
            raise RepositoryNotFoundError(f"GitHub resource not found: {resource}")
        if status == 401:
            raise GitHubAuthError(f"GitHub rejected the credentials for {resource}")
        if status in (403, 429) and (
            status == 429 or response.headers.get("x-ratelimit-remaining") == "0"
        ):
            reset = response.headers.get("x-ratelimit-reset")
            raise GitHubRateLimitError(
                f"GitHub API rate limit exceeded while fetching {resource}",
                reset_at=int(reset) if reset and reset.isdigit() else None,
            )
        raise GitHubError(f"GitHub returned {status} for {resource}", status_code=status)

    def _log_rate_limit(self, response: httpx.Response) -> None:
        remaining = response.headers.get("x-ratelimit-remaining")
        if remaining is not None and remaining.isdigit() and int(remaining) < 100:
            logger.warning(
                "github_rate_limit",
                remaining=int(remaining),
                limit=response.headers.get("x-ratelimit-limit"),
                reset=response.headers.get("x-ratelimit-reset"),
            )
