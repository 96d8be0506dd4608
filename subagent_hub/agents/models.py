from enum import StrEnum


class AgentStatus(StrEnum):
    draft = "draft"
    published = "published"
    archived = "archived"


class ImportSource(StrEnum):
    manual = "manual"
    github_import = "github_import"
    api = "api"
