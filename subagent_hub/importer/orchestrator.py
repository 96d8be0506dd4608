"""Repository import pipeline.

Drives one repository through scanning -> validating -> extracting ->
attributing and folds the outcome of every step into an ``ImportResult``.
Search-driven imports run the same pipeline for each hit, isolated from
one another.
"""

import asyncio
import time

import structlog

from subagent_hub.config import settings
from subagent_hub.exceptions import AppError, UnauthorizedError
from subagent_hub.github.client import GitHubClient, GitHubError, parse_github_url
from subagent_hub.github.schemas import Repository, RepoRef
from subagent_hub.importer.attribution import AttributionEngine
from subagent_hub.importer.models import ImportStage
from subagent_hub.importer.parser import AgentExtractor
from subagent_hub.importer.scanner import RepositoryScanner
from subagent_hub.importer.schemas import (
    CandidateFile,
    DraftPreview,
    ImportContext,
    ImportOptions,
    ImportResult,
    ParsedAgentDraft,
    PreviewResult,
    RejectedFile,
    RepositoryContext,
    SearchImportResponse,
    SearchImportSummary,
    SearchOptions,
    SearchResultItem,
)
from subagent_hub.importer.validator import FormatValidator

logger = structlog.get_logger()

NO_AGENTS_FOUND = "No valid sub-agent files found in repository"
NO_SELECTED_FOUND = "None of the selected agent files were found in the repository"


class ImportOrchestrator:
    def __init__(
        self,
        client: GitHubClient,
        engine: AttributionEngine,
        scanner: RepositoryScanner | None = None,
        validator: FormatValidator | None = None,
        extractor: AgentExtractor | None = None,
        concurrency: int | None = None,
    ) -> None:
        self._client = client
        self._engine = engine
        self._scanner = scanner or RepositoryScanner(client)
        self._validator = validator or FormatValidator()
        self._extractor = extractor or AgentExtractor(self._validator)
        self._concurrency = concurrency or settings.import_concurrency

    async def import_repository(
        self,
        repo: RepoRef | Repository | str,
        context: ImportContext,
        options: ImportOptions | None = None,
    ) -> ImportResult:
        """Import every valid sub-agent definition of one repository.

        Repository level failures end up in ``errors`` with ``success`` false.
        Only an unauthenticated caller is raised.
        """
        options = options or ImportOptions()
        started = time.perf_counter()
        result = ImportResult(success=False, repository=_label(repo))
        self._advance(result, ImportStage.pending)

        try:
            self._advance(result, ImportStage.scanning)
            scan = await self._scanner.scan(_as_ref(repo))
            result.repository = scan.repository.full_name
            result.warnings.extend(scan.warnings)
            result.metadata.files_scanned = scan.entries_listed
            result.metadata.candidates = len(scan.files)
            repo_context = await self._repository_context(scan.repository, options, result)

            self._advance(result, ImportStage.validating)
            candidates = self._select(scan.files, options.selected_paths, result)
            valid = self._validate(candidates, result)

            self._advance(result, ImportStage.extracting)
            drafts = self._extract(valid, options, repo_context)
            result.metadata.drafts = len(drafts)
            if drafts:
                self._advance(result, ImportStage.attributing)
                await self._attribute(drafts, context, result)
                result.success = True
                self._advance(result, ImportStage.completed)
            else:
                if not result.errors:
                    result.errors.append(NO_AGENTS_FOUND)
                self._advance(result, ImportStage.failed)
        except UnauthorizedError:
            raise
        except GitHubError as exc:
            result.errors.append(f"Failed to import {result.repository}: {exc.message}")
            self._advance(result, ImportStage.failed)
        except AppError as exc:
            result.errors.append(exc.message)
            self._advance(result, ImportStage.failed)
        except Exception as exc:
            logger.error("import_unexpected_error", repository=result.repository, error=str(exc))
            result.errors.append(f"Import failed: {exc}")
            self._advance(result, ImportStage.failed)
        finally:
            result.metadata.processing_time_ms = int((time.perf_counter() - started) * 1000)

        logger.info(
            "import_completed",
            repository=result.repository,
            created=result.metadata.agents_created,
            updated=result.metadata.agents_updated,
            skipped=result.metadata.agents_skipped,
            failed=result.metadata.agents_failed,
            rejected=len(result.rejected),
            duration_ms=result.metadata.processing_time_ms,
        )
        return result

    async def preview_repository(
        self, repo: RepoRef | Repository | str, options: ImportOptions | None = None
    ) -> PreviewResult:
        """Scan, validate and extract without writing anything."""
        options = options or ImportOptions()
        tracker = ImportResult(success=False, repository=_label(repo))

        try:
            scan = await self._scanner.scan(_as_ref(repo))
        except GitHubError as exc:
            return PreviewResult(
                success=False,
                repository=tracker.repository,
                errors=[f"Failed to preview {tracker.repository}: {exc.message}"],
            )

        tracker.repository = scan.repository.full_name
        tracker.warnings.extend(scan.warnings)
        repo_context = await self._repository_context(scan.repository, options, tracker)
        candidates = self._select(scan.files, options.selected_paths, tracker)
        drafts = self._extract(self._validate(candidates, tracker), options, repo_context)
        if not drafts and not tracker.errors:
            tracker.errors.append(NO_AGENTS_FOUND)

        return PreviewResult(
            success=bool(drafts),
            repository=tracker.repository,
            drafts=[_preview(draft) for draft in drafts],
            rejected=tracker.rejected,
            errors=tracker.errors,
            warnings=tracker.warnings,
        )

    async def search_and_import(
        self,
        query: str,
        context: ImportContext,
        search_options: SearchOptions | None = None,
        options: ImportOptions | None = None,
    ) -> list[ImportResult]:
        """Import every repository a code search returns, one result per hit."""
        search_options = search_options or SearchOptions()

        try:
            repositories = await self._client.search_repositories(
                query,
                sort=search_options.sort,
                order=search_options.order,
                limit=search_options.limit,
            )
        except GitHubError as exc:
            logger.warning("import_search_failed", query=query, error=str(exc))
            return [ImportResult(success=False, errors=[f"Search failed: {exc.message}"])]

        repositories = repositories[: search_options.limit]
        logger.info("import_search_started", query=query, repositories=len(repositories))

        semaphore = asyncio.Semaphore(self._concurrency)

        async def run(repository: Repository) -> ImportResult:
            async with semaphore:
                return await self.import_repository(repository, context, options)

        return list(await asyncio.gather(*(run(repository) for repository in repositories)))

    async def _attribute(
        self, drafts: list[ParsedAgentDraft], context: ImportContext, result: ImportResult
    ) -> None:
        outcome = await self._engine.attribute(drafts, context)

        result.agents = outcome.created + outcome.updated
        result.skipped = outcome.skipped
        result.failed = outcome.failed
        result.warnings.extend(f"Skipped '{item.name}': {item.reason}" for item in outcome.skipped)
        result.warnings.extend(
            f"Failed to import '{item.name}': {item.error}" for item in outcome.failed
        )
        result.metadata.agents_created = len(outcome.created)
        result.metadata.agents_updated = len(outcome.updated)
        result.metadata.agents_skipped = len(outcome.skipped)
        result.metadata.agents_failed = len(outcome.failed)

    async def _repository_context(
        self, repository: Repository, options: ImportOptions, result: ImportResult
    ) -> RepositoryContext:
        topics = list(repository.topics)
        if options.tags_from_topics and not topics:
            try:
                topics = await self._client.get_topics(repository.ref)
            except GitHubError as exc:
                result.warnings.append(f"Could not read repository topics: {exc.message}")

        latest_release = None
        if options.version_from_releases:
            try:
                latest_release = await self._client.get_latest_release(repository.ref)
            except GitHubError as exc:
                result.warnings.append(f"Could not read latest release: {exc.message}")

        return RepositoryContext(
            repository=repository, topics=topics, latest_release=latest_release
        )

    def _select(
        self, files: list[CandidateFile], selected_paths: list[str] | None, result: ImportResult
    ) -> list[CandidateFile]:
        if not selected_paths:
            return files

        wanted = {path.strip("/") for path in selected_paths}
        selected = [candidate for candidate in files if candidate.path in wanted]
        if not selected:
            result.errors.append(NO_SELECTED_FOUND)
        return selected

    def _validate(
        self, candidates: list[CandidateFile], result: ImportResult
    ) -> list[CandidateFile]:
        valid: list[CandidateFile] = []
        for candidate in candidates:
            outcome = self._validator.validate(candidate)
            if outcome.valid:
                valid.append(candidate)
            else:
                result.rejected.append(RejectedFile(path=candidate.path, reasons=outcome.reasons))
                logger.debug("candidate_rejected", path=candidate.path, reasons=outcome.reasons)
        return valid

    def _extract(
        self,
        candidates: list[CandidateFile],
        options: ImportOptions,
        repo_context: RepositoryContext,
    ) -> list[ParsedAgentDraft]:
        drafts = []
        for candidate in candidates:
            draft = self._extractor.extract(candidate, options, repo_context)
            if draft is not None:
                drafts.append(draft)
        return drafts

    @staticmethod
    def _advance(result: ImportResult, stage: ImportStage) -> None:
        result.stage = stage
        logger.info("import_stage", repository=result.repository, stage=stage)


def summarize(query: str, results: list[ImportResult]) -> SearchImportResponse:
    """Fold per-repository results into the caller-facing search summary."""
    successful = [result for result in results if result.success]
    agents = [agent for result in successful for agent in result.agents]

    return SearchImportResponse(
        success=True,
        query=query,
        summary=SearchImportSummary(
            total=len(results),
            successful=len(successful),
            failed=len(results) - len(successful),
            agents_created=sum(result.metadata.agents_created for result in results),
        ),
        results=[
            SearchResultItem(
                success=result.success,
                repository=result.repository,
                agent=result.agents[0].id if result.agents else None,
                errors=result.errors,
                warnings=result.warnings,
                metadata=result.metadata,
            )
            for result in results
        ],
        agents=agents,
    )


def _as_ref(repo: RepoRef | Repository | str) -> RepoRef | Repository:
    if isinstance(repo, str):
        return parse_github_url(repo)
    return repo


def _label(repo: RepoRef | Repository | str) -> str:
    if isinstance(repo, str):
        return repo
    return repo.full_name


def _preview(draft: ParsedAgentDraft) -> DraftPreview:
    return DraftPreview(
        name=draft.name,
        description=draft.description,
        file_path=draft.file_path,
        tools=draft.tools,
        tags=draft.tags,
        category_id=draft.category_id,
        version=draft.version,
    )
