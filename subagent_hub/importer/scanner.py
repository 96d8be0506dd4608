import asyncio

import structlog

from subagent_hub.config import settings
from subagent_hub.github.client import GitHubClient, GitHubError
from subagent_hub.github.schemas import Repository, RepoRef, TreeEntry
from subagent_hub.importer.schemas import CandidateFile, ScanResult
from subagent_hub.importer.validator import is_excluded_filename

logger = structlog.get_logger()

MARKDOWN_EXTENSIONS = (".md", ".markdown")


def is_candidate_path(path: str) -> bool:
    filename = path.rsplit("/", 1)[-1]
    return filename.lower().endswith(MARKDOWN_EXTENSIONS) and not is_excluded_filename(filename)


class RepositoryScanner:
    """Walks a repository tree and collects markdown files that may define sub-agents.

    Failing to read the repository or its root directory is fatal and
    propagates as a ``GitHubError``. Failing to read a subdirectory or a
    single file only adds a warning to the scan result.
    """

    def __init__(self, client: GitHubClient, concurrency: int | None = None) -> None:
        self._client = client
        self._semaphore = asyncio.Semaphore(concurrency or settings.github_fetch_concurrency)

    async def scan(self, repo: RepoRef | Repository, git_ref: str | None = None) -> ScanResult:
        if isinstance(repo, Repository):
            repository = repo
        else:
            repository = await self._client.get_repository(repo)
        ref = repository.ref
        git_ref = git_ref or repository.default_branch
        result = ScanResult(repository=repository)

        root_entries = await self._client.list_files(ref, "", git_ref)
        file_entries = await self._walk(ref, git_ref, root_entries, result)

        candidates = [entry for entry in file_entries if is_candidate_path(entry.path)]
        fetched = await asyncio.gather(
            *(self._fetch(ref, git_ref, entry, result) for entry in candidates)
        )
        result.files = [candidate for candidate in fetched if candidate is not None]

        logger.info(
            "repository_scanned",
            repository=repository.full_name,
            ref=git_ref,
            entries=result.entries_listed,
            candidates=len(result.files),
            warnings=len(result.warnings),
        )
        return result

    async def _walk(
        self,
        ref: RepoRef,
        git_ref: str,
        root_entries: list[TreeEntry],
        result: ScanResult,
    ) -> list[TreeEntry]:
        """Breadth-first listing of every directory below the root, at any depth."""
        files: list[TreeEntry] = []
        level = root_entries

        while level:
            result.entries_listed += len(level)
            files.extend(entry for entry in level if entry.type == "file")
            directories = [entry.path for entry in level if entry.type == "dir"]
            listings = await asyncio.gather(
                *(self._list_directory(ref, git_ref, path, result) for path in directories)
            )
            level = [entry for listing in listings for entry in listing]

        return files

    async def _list_directory(
        self, ref: RepoRef, git_ref: str, path: str, result: ScanResult
    ) -> list[TreeEntry]:
        async with self._semaphore:
            try:
                return await self._client.list_files(ref, path, git_ref)
            except GitHubError as exc:
                logger.warning(
                    "scan_directory_skipped", repository=ref.full_name, path=path, error=str(exc)
                )
                result.warnings.append(f"Skipped directory '{path}': {exc.message}")
                return []

    async def _fetch(
        self, ref: RepoRef, git_ref: str, entry: TreeEntry, result: ScanResult
    ) -> CandidateFile | None:
        async with self._semaphore:
            try:
                content = await self._client.get_file_content(ref, entry.path, git_ref)
            except GitHubError as exc:
                logger.warning(
                    "scan_file_skipped", repository=ref.full_name, path=entry.path, error=str(exc)
                )
                result.warnings.append(f"Skipped file '{entry.path}': {exc.message}")
                return None

        return CandidateFile(path=entry.path, content=content, depth=entry.path.count("/"))
