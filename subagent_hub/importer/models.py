from enum import StrEnum


class ConflictPolicy(StrEnum):
    skip_if_exists = "skip_if_exists"
    overwrite_existing = "overwrite_existing"
    rename = "rename"


class DedupScope(StrEnum):
    importer = "importer"
    global_ = "global"


class ImportStage(StrEnum):
    pending = "pending"
    scanning = "scanning"
    validating = "validating"
    extracting = "extracting"
    attributing = "attributing"
    completed = "completed"
    failed = "failed"


class OutcomeKind(StrEnum):
    created = "created"
    updated = "updated"
    skipped = "skipped"
    failed = "failed"


class SearchSort(StrEnum):
    stars = "stars"
    forks = "forks"
    help_wanted_issues = "help-wanted-issues"
    updated = "updated"


class SortOrder(StrEnum):
    desc = "desc"
    asc = "asc"
