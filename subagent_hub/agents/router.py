from typing import Annotated

from fastapi import APIRouter, Depends, Query

from subagent_hub.agents.models import AgentStatus
from subagent_hub.agents.schemas import AgentFilter, AgentResponse
from subagent_hub.dependencies import AgentServiceDep, CurrentUser, OptionalUser
from subagent_hub.rate_limit.limiter import RateLimitType, rate_limited

router = APIRouter()

ApiLimit = Annotated[object, Depends(rate_limited(RateLimitType.api))]


@router.get("/", response_model=list[AgentResponse])
async def list_agents(
    service: AgentServiceDep,
    viewer: OptionalUser,
    _limit: ApiLimit,
    author_id: str | None = None,
    category_id: str | None = None,
    status: AgentStatus | None = None,
    q: str | None = Query(default=None, max_length=200),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> list[AgentResponse]:
    filters = AgentFilter(
        author_id=author_id,
        category_id=category_id,
        status=status,
        q=q,
        limit=limit,
        offset=offset,
    )
    return await service.list_agents(filters, viewer.id if viewer else None)


@router.get("/{agent_id}", response_model=AgentResponse)
async def get_agent(
    agent_id: str, service: AgentServiceDep, viewer: OptionalUser
) -> AgentResponse:
    return await service.get_by_id(agent_id, viewer.id if viewer else None)


@router.delete("/{agent_id}", status_code=204)
async def delete_agent(agent_id: str, user: CurrentUser, service: AgentServiceDep) -> None:
    await service.delete(agent_id, user.id)
