"""Data shapes flowing through the repository import pipeline.

Files and drafts are ephemeral dataclasses that live for one import pass.
Options, requests and results are pydantic models because they cross the
HTTP boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from subagent_hub.agents.models import AgentStatus, ImportSource
from subagent_hub.agents.schemas import AgentResponse
from subagent_hub.github.schemas import Repository
from subagent_hub.importer.models import (
    ConflictPolicy,
    DedupScope,
    ImportStage,
    OutcomeKind,
    SearchSort,
    SortOrder,
)

# ---------------------------------------------------------------------------
# Pipeline values
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CandidateFile:
    path: str
    content: str
    depth: int

    @property
    def filename(self) -> str:
        return self.path.rsplit("/", 1)[-1]


@dataclass(frozen=True)
class ValidationOutcome:
    valid: bool
    reasons: list[str] = field(default_factory=list)


@dataclass
class ParsedAgentDraft:
    name: str
    description: str
    content: str
    file_path: str
    tools: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    short_description: str | None = None
    category_id: str | None = None
    version: str | None = None
    status: AgentStatus = AgentStatus.draft
    repository: Repository | None = None


@dataclass(frozen=True)
class ImportContext:
    importer_id: str
    conflict_policy: ConflictPolicy
    source: ImportSource = ImportSource.github_import
    dedup_scope: DedupScope = DedupScope.importer
    importer_profile: dict = field(default_factory=dict)


@dataclass
class ScanResult:
    repository: Repository
    files: list[CandidateFile] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    entries_listed: int = 0


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ImportOptions(_CamelModel):
    readme_as_description: bool = True
    tags_from_topics: bool = True
    version_from_releases: bool = True
    auto_publish: bool = True
    category_mapping: dict[str, str] = Field(default_factory=dict)
    default_category: str | None = None
    selected_paths: list[str] | None = None


class SearchOptions(_CamelModel):
    sort: SearchSort = SearchSort.stars
    order: SortOrder = SortOrder.desc
    limit: int = Field(default=10, ge=1, le=100)


# ---------------------------------------------------------------------------
# Attribution
# ---------------------------------------------------------------------------


class SkippedAgent(BaseModel):
    name: str
    reason: str


class FailedAgent(BaseModel):
    name: str
    error: str


@dataclass(frozen=True)
class ItemOutcome:
    kind: OutcomeKind
    name: str
    agent: AgentResponse | None = None
    reason: str | None = None


@dataclass
class AttributionOutcome:
    created: list[AgentResponse] = field(default_factory=list)
    updated: list[AgentResponse] = field(default_factory=list)
    skipped: list[SkippedAgent] = field(default_factory=list)
    failed: list[FailedAgent] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.created) + len(self.updated) + len(self.skipped) + len(self.failed)

    def record(self, outcome: ItemOutcome) -> None:
        match outcome.kind:
            case OutcomeKind.created:
                self.created.append(outcome.agent)
            case OutcomeKind.updated:
                self.updated.append(outcome.agent)
            case OutcomeKind.skipped:
                self.skipped.append(SkippedAgent(name=outcome.name, reason=outcome.reason or ""))
            case OutcomeKind.failed:
                self.failed.append(FailedAgent(name=outcome.name, error=outcome.reason or ""))


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class RejectedFile(BaseModel):
    path: str
    reasons: list[str]


class ImportMetadata(BaseModel):
    processing_time_ms: int = 0
    files_scanned: int = 0
    candidates: int = 0
    drafts: int = 0
    agents_created: int = 0
    agents_updated: int = 0
    agents_skipped: int = 0
    agents_failed: int = 0


class ImportResult(BaseModel):
    success: bool
    repository: str | None = None
    stage: ImportStage = ImportStage.pending
    agents: list[AgentResponse] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    rejected: list[RejectedFile] = Field(default_factory=list)
    skipped: list[SkippedAgent] = Field(default_factory=list)
    failed: list[FailedAgent] = Field(default_factory=list)
    metadata: ImportMetadata = Field(default_factory=ImportMetadata)


class DraftPreview(BaseModel):
    name: str
    description: str
    file_path: str
    tools: list[str]
    tags: list[str]
    category_id: str | None
    version: str | None


class PreviewResult(BaseModel):
    success: bool
    repository: str | None = None
    drafts: list[DraftPreview] = Field(default_factory=list)
    rejected: list[RejectedFile] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# HTTP requests / responses
# ---------------------------------------------------------------------------


class RepositoryImportRequest(_CamelModel):
    url: str = Field(min_length=1)
    conflict_policy: ConflictPolicy
    dedup_scope: DedupScope = DedupScope.importer
    options: ImportOptions = Field(default_factory=ImportOptions)


class PreviewRequest(_CamelModel):
    url: str = Field(min_length=1)
    options: ImportOptions = Field(default_factory=ImportOptions)


class SearchImportRequest(_CamelModel):
    query: str = Field(min_length=1, max_length=256)
    conflict_policy: ConflictPolicy
    dedup_scope: DedupScope = DedupScope.importer
    options: ImportOptions = Field(default_factory=ImportOptions)
    search_options: SearchOptions = Field(default_factory=SearchOptions)


class SearchImportSummary(BaseModel):
    total: int
    successful: int
    failed: int
    agents_created: int


class SearchResultItem(BaseModel):
    success: bool
    repository: str | None
    agent: str | None = None
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    metadata: ImportMetadata | None = None


class SearchImportResponse(BaseModel):
    success: bool
    query: str
    summary: SearchImportSummary
    results: list[SearchResultItem]
    agents: list[AgentResponse]


@dataclass(frozen=True)
class RepositoryContext:
    """Repository-level facts shared by every file of one import pass."""

    repository: Repository | None = None
    topics: list[str] = field(default_factory=list)
    latest_release: str | None = None
