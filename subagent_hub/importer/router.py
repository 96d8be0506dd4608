from typing import Annotated

from fastapi import APIRouter, Depends

from subagent_hub.dependencies import CurrentUser, ImportOrchestratorDep
from subagent_hub.github.client import parse_github_url
from subagent_hub.importer.orchestrator import summarize
from subagent_hub.importer.schemas import (
    ImportContext,
    ImportResult,
    PreviewRequest,
    PreviewResult,
    RepositoryImportRequest,
    SearchImportRequest,
    SearchImportResponse,
)
from subagent_hub.rate_limit.limiter import RateLimitType, rate_limited

router = APIRouter()

HeavyLimit = Annotated[object, Depends(rate_limited(RateLimitType.heavy))]
SearchLimit = Annotated[object, Depends(rate_limited(RateLimitType.search))]


@router.post("/import", status_code=201, response_model=ImportResult)
async def import_repository(
    data: RepositoryImportRequest,
    user: CurrentUser,
    _limit: HeavyLimit,
    orchestrator: ImportOrchestratorDep,
) -> ImportResult:
    ref = parse_github_url(data.url)
    context = ImportContext(
        importer_id=user.id,
        conflict_policy=data.conflict_policy,
        dedup_scope=data.dedup_scope,
        importer_profile=user.profile_attrs(),
    )
    return await orchestrator.import_repository(ref, context, data.options)


@router.post("/import/preview", response_model=PreviewResult)
async def preview_repository(
    data: PreviewRequest,
    user: CurrentUser,
    _limit: SearchLimit,
    orchestrator: ImportOrchestratorDep,
) -> PreviewResult:
    ref = parse_github_url(data.url)
    return await orchestrator.preview_repository(ref, data.options)


@router.post("/import/search", status_code=201, response_model=SearchImportResponse)
async def search_and_import(
    data: SearchImportRequest,
    user: CurrentUser,
    _limit: HeavyLimit,
    orchestrator: ImportOrchestratorDep,
) -> SearchImportResponse:
    context = ImportContext(
        importer_id=user.id,
        conflict_policy=data.conflict_policy,
        dedup_scope=data.dedup_scope,
        importer_profile=user.profile_attrs(),
    )
    results = await orchestrator.search_and_import(
        data.query, context, data.search_options, data.options
    )
    return summarize(data.query, results)
