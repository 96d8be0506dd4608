import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import structlog

from subagent_hub.agents.repository import AgentRepository
from subagent_hub.agents.schemas import AgentCreate
from subagent_hub.agents.service import to_response
from subagent_hub.importer.models import ConflictPolicy, DedupScope, OutcomeKind
from subagent_hub.importer.schemas import (
    AttributionOutcome,
    ImportContext,
    ItemOutcome,
    ParsedAgentDraft,
)
from subagent_hub.profiles.repository import ProfileRepository

logger = structlog.get_logger()


class ImporterLocks:
    """One lock per importer so a user's batches are attributed one at a time.

    A lock is dropped as soon as nobody holds or waits on it.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def for_importer(self, importer_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(importer_id)
        if lock is None:
            lock = self._locks[importer_id] = asyncio.Lock()
        self._users[importer_id] = self._users.get(importer_id, 0) + 1

        try:
            async with lock:
                yield
        finally:
            self._users[importer_id] -= 1
            if not self._users[importer_id]:
                del self._users[importer_id]
                del self._locks[importer_id]


class AttributionEngine:
    """Persists drafts for an importer, applying the context's conflict policy.

    Every draft ends up in exactly one of the created, updated, skipped or
    failed buckets; a persistence error on one draft never stops the batch.
    """

    def __init__(
        self,
        agents: AgentRepository,
        profiles: ProfileRepository,
        locks: ImporterLocks | None = None,
    ) -> None:
        self._agents = agents
        self._profiles = profiles
        self._locks = locks or ImporterLocks()

    async def attribute(
        self, drafts: list[ParsedAgentDraft], context: ImportContext
    ) -> AttributionOutcome:
        outcome = AttributionOutcome()

        async with self._locks.for_importer(context.importer_id):
            try:
                await self._profiles.upsert(context.importer_id, context.importer_profile)
            except Exception as exc:
                logger.error(
                    "importer_profile_upsert_failed",
                    importer_id=context.importer_id,
                    error=str(exc),
                )
                for draft in drafts:
                    outcome.record(
                        ItemOutcome(
                            kind=OutcomeKind.failed,
                            name=draft.name,
                            reason=f"Importer profile unavailable: {exc}",
                        )
                    )
                return outcome

            for draft in drafts:
                outcome.record(await self._attribute_one(draft, context))

        logger.info(
            "attribution_completed",
            importer_id=context.importer_id,
            policy=context.conflict_policy,
            attempted=len(drafts),
            created=len(outcome.created),
            updated=len(outcome.updated),
            skipped=len(outcome.skipped),
            failed=len(outcome.failed),
        )
        return outcome

    async def _attribute_one(self, draft: ParsedAgentDraft, context: ImportContext) -> ItemOutcome:
        try:
            async with self._agents.transaction():
                return await self._resolve(draft, context)
        except Exception as exc:
            logger.warning("attribution_item_failed", name=draft.name, error=str(exc))
            return ItemOutcome(kind=OutcomeKind.failed, name=draft.name, reason=str(exc))

    async def _resolve(self, draft: ParsedAgentDraft, context: ImportContext) -> ItemOutcome:
        existing = await self._find_existing(draft.name, context)
        if existing is None:
            return await self._create(draft, draft.name, context)

        match context.conflict_policy:
            case ConflictPolicy.skip_if_exists:
                logger.debug("attribution_skipped", name=draft.name, agent_id=existing["id"])
                return ItemOutcome(
                    kind=OutcomeKind.skipped, name=draft.name, reason="already exists"
                )
            case ConflictPolicy.overwrite_existing:
                return await self._overwrite(draft, existing, context)
            case ConflictPolicy.rename:
                name = await self._unique_name(draft.name, context)
                return await self._create(draft, name, context)

    async def _find_existing(self, name: str, context: ImportContext) -> dict | None:
        author_id = context.importer_id if context.dedup_scope == DedupScope.importer else None
        return await self._agents.find_by_name(name, author_id)

    async def _create(
        self, draft: ParsedAgentDraft, name: str, context: ImportContext
    ) -> ItemOutcome:
        agent_id = await self._agents.insert(self._to_create(draft, name, context))

        row = await self._agents.get_by_id(agent_id)
        if row is None:
            raise RuntimeError(f"Agent '{name}' missing after insert")

        logger.info("agent_imported", agent_id=agent_id, name=name, file_path=draft.file_path)
        return ItemOutcome(kind=OutcomeKind.created, name=name, agent=to_response(row))

    async def _overwrite(
        self, draft: ParsedAgentDraft, existing: dict, context: ImportContext
    ) -> ItemOutcome:
        if existing["author_id"] != context.importer_id:
            return ItemOutcome(
                kind=OutcomeKind.failed,
                name=draft.name,
                reason="already exists and is owned by another user",
            )

        patch = self._to_create(draft, draft.name, context).model_dump(
            mode="json", exclude={"name", "slug", "author_id"}
        )
        await self._agents.update(existing["id"], patch)

        row = await self._agents.get_by_id(existing["id"])
        if row is None:
            raise RuntimeError(f"Agent '{draft.name}' missing after update")

        logger.info("agent_overwritten", agent_id=existing["id"], name=draft.name)
        return ItemOutcome(kind=OutcomeKind.updated, name=draft.name, agent=to_response(row))

    async def _unique_name(self, name: str, context: ImportContext) -> str:
        suffix = datetime.now(UTC).strftime("%Y%m%d%H%M%S")
        candidate = f"{name}-{suffix}"
        counter = 2
        while await self._find_existing(candidate, context) is not None:
            candidate = f"{name}-{suffix}-{counter}"
            counter += 1
        return candidate

    @staticmethod
    def _to_create(draft: ParsedAgentDraft, name: str, context: ImportContext) -> AgentCreate:
        repository = draft.repository
        owner = repository.owner if repository else None
        return AgentCreate(
            name=name,
            slug=name,
            description=draft.description,
            short_description=draft.short_description,
            content=draft.content,
            tools=draft.tools,
            tags=draft.tags,
            category_id=draft.category_id,
            version=draft.version,
            status=draft.status,
            author_id=context.importer_id,
            import_source=context.source,
            file_path=draft.file_path,
            github_url=repository.html_url if repository else None,
            github_repo_name=repository.full_name if repository else None,
            github_owner=owner.login if owner else None,
            original_author_github_username=owner.login if owner else None,
            original_author_github_url=owner.html_url if owner else None,
            original_author_avatar_url=owner.avatar_url if owner else None,
            github_stars=repository.stargazers_count if repository else 0,
        )
