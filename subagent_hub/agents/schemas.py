from pydantic import BaseModel, Field

from subagent_hub.agents.models import AgentStatus, ImportSource


class AgentCreate(BaseModel):
    name: str
    slug: str
    description: str
    short_description: str | None = None
    content: str
    tools: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    category_id: str | None = None
    version: str | None = None
    status: AgentStatus = AgentStatus.draft
    author_id: str
    import_source: ImportSource = ImportSource.manual
    file_path: str | None = None
    github_url: str | None = None
    github_repo_name: str | None = None
    github_owner: str | None = None
    original_author_github_username: str | None = None
    original_author_github_url: str | None = None
    original_author_avatar_url: str | None = None
    github_stars: int = 0


class AgentResponse(BaseModel):
    id: str
    name: str
    slug: str
    description: str
    short_description: str | None
    content: str
    tools: list[str]
    tags: list[str]
    category_id: str | None
    version: str | None
    status: str
    author_id: str
    import_source: str
    file_path: str | None
    github_url: str | None
    github_repo_name: str | None
    original_author_github_username: str | None
    github_stars: int
    download_count: int
    view_count: int
    created_at: str
    updated_at: str


class AgentFilter(BaseModel):
    author_id: str | None = None
    category_id: str | None = None
    status: AgentStatus | None = None
    q: str | None = Field(default=None, max_length=200)
    limit: int = Field(default=20, ge=1, le=100)
    offset: int = Field(default=0, ge=0)
