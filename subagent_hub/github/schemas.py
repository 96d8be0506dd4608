from typing import Literal

from pydantic import BaseModel, Field


class RepoRef(BaseModel):
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


class RepositoryOwner(BaseModel):
    login: str
    html_url: str | None = None
    avatar_url: str | None = None


class Repository(BaseModel):
    name: str
    full_name: str
    owner: RepositoryOwner
    html_url: str
    description: str | None = None
    default_branch: str = "main"
    topics: list[str] = Field(default_factory=list)
    language: str | None = None
    private: bool = False
    archived: bool = False
    fork: bool = False
    stargazers_count: int = 0
    forks_count: int = 0

    @property
    def ref(self) -> RepoRef:
        return RepoRef(owner=self.owner.login, name=self.name)


class TreeEntry(BaseModel):
    path: str
    name: str
    type: Literal["file", "dir", "symlink", "submodule"]
    sha: str | None = None
    size: int = 0
