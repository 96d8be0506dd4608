from collections.abc import AsyncIterator
from typing import Annotated

import aiosqlite
from fastapi import Depends, Header, Request

from subagent_hub.agents.repository import AgentRepository
from subagent_hub.agents.service import AgentService
from subagent_hub.auth import AuthenticatedUser, optional_user, verify_token
from subagent_hub.database import get_db
from subagent_hub.github.client import GitHubClient, resolve_github_token
from subagent_hub.importer.attribution import AttributionEngine
from subagent_hub.importer.orchestrator import ImportOrchestrator
from subagent_hub.profiles.repository import ProfileRepository

DBConn = Annotated[aiosqlite.Connection, Depends(get_db)]
CurrentUser = Annotated[AuthenticatedUser, Depends(verify_token)]
OptionalUser = Annotated[AuthenticatedUser | None, Depends(optional_user)]


def get_agent_repo() -> AgentRepository:
    return AgentRepository(get_db())


def get_profile_repo() -> ProfileRepository:
    return ProfileRepository(get_db())


def get_agent_service() -> AgentService:
    return AgentService(get_agent_repo())


AgentRepoDep = Annotated[AgentRepository, Depends(get_agent_repo)]
ProfileRepoDep = Annotated[ProfileRepository, Depends(get_profile_repo)]
AgentServiceDep = Annotated[AgentService, Depends(get_agent_service)]


async def get_github_client(
    x_github_token: Annotated[str | None, Header()] = None,
) -> AsyncIterator[GitHubClient]:
    client = GitHubClient(resolve_github_token(x_github_token))
    try:
        yield client
    finally:
        await client.aclose()


def get_attribution_engine(request: Request) -> AttributionEngine:
    return AttributionEngine(get_agent_repo(), get_profile_repo(), request.app.state.importer_locks)


GitHubClientDep = Annotated[GitHubClient, Depends(get_github_client)]
AttributionEngineDep = Annotated[AttributionEngine, Depends(get_attribution_engine)]


def get_import_orchestrator(
    client: GitHubClientDep, engine: AttributionEngineDep
) -> ImportOrchestrator:
    return ImportOrchestrator(client, engine)


ImportOrchestratorDep = Annotated[ImportOrchestrator, Depends(get_import_orchestrator)]
