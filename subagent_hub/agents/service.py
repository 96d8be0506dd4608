import structlog

from subagent_hub.agents.models import AgentStatus
from subagent_hub.agents.repository import AgentRepository
from subagent_hub.agents.schemas import AgentFilter, AgentResponse
from subagent_hub.exceptions import ForbiddenError, NotFoundError

logger = structlog.get_logger()


class AgentService:
    def __init__(self, repo: AgentRepository) -> None:
        self._repo = repo

    async def get_by_id(self, agent_id: str, viewer_id: str | None = None) -> AgentResponse:
        row = await self._repo.get_by_id(agent_id)
        # Unpublished agents are only visible to their author.
        if row is None or (
            row["status"] != AgentStatus.published and row["author_id"] != viewer_id
        ):
            raise NotFoundError("Agent", agent_id)
        return to_response(row)

    async def list_agents(
        self, filters: AgentFilter, viewer_id: str | None = None
    ) -> list[AgentResponse]:
        if viewer_id is None or filters.author_id != viewer_id:
            if filters.status not in (None, AgentStatus.published):
                return []
            filters = filters.model_copy(update={"status": AgentStatus.published})

        rows = await self._repo.list_filtered(filters)
        return [to_response(row) for row in rows]

    async def delete(self, agent_id: str, user_id: str) -> None:
        row = await self._repo.get_by_id(agent_id)
        if row is None:
            raise NotFoundError("Agent", agent_id)
        if row["author_id"] != user_id:
            raise ForbiddenError(f"Agent '{agent_id}' belongs to another user")

        async with self._repo.transaction():
            await self._repo.delete(agent_id)
        logger.info("agent_deleted", agent_id=agent_id, user_id=user_id)


def to_response(row: dict) -> AgentResponse:
    return AgentResponse(
        id=row["id"],
        name=row["name"],
        slug=row["slug"],
        description=row["description"],
        short_description=row["short_description"],
        content=row["content"],
        tools=row["tools"],
        tags=row["tags"],
        category_id=row["category_id"],
        version=row["version"],
        status=row["status"],
        author_id=row["author_id"],
        import_source=row["import_source"],
        file_path=row["file_path"],
        github_url=row["github_url"],
        github_repo_name=row["github_repo_name"],
        original_author_github_username=row["original_author_github_username"],
        github_stars=row["github_stars"],
        download_count=row["download_count"],
        view_count=row["view_count"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
