import pytest

from subagent_hub.github.client import RepositoryNotFoundError
from subagent_hub.github.schemas import RepoRef
from subagent_hub.importer.scanner import RepositoryScanner, is_candidate_path
from tests.fakes import agent_markdown


def test_candidate_path_filter():
    assert is_candidate_path("agents/reviewer.md")
    assert is_candidate_path("deep/a/b/c/planner.markdown")
    assert not is_candidate_path("src/main.py")
    assert not is_candidate_path("docs/CLAUDE.md")
    assert not is_candidate_path("README.md")


class TestRepositoryScanner:
    async def test_walks_every_depth_and_filters_markdown(self, github):
        github.add_repo(
            "acme/agents",
            {
                "reviewer.md": agent_markdown(),
                "agents/planner.md": agent_markdown(name="planner"),
                "agents/deep/nested/tree/tester.md": agent_markdown(name="tester"),
                "agents/script.py": "print('hi')",
                "README.md": "# Agents",
                "CLAUDE.md": agent_markdown(name="claude"),
            },
        )

        result = await RepositoryScanner(github).scan(RepoRef(owner="acme", name="agents"))

        paths = sorted(file.path for file in result.files)
        assert paths == ["agents/deep/nested/tree/tester.md", "agents/planner.md", "reviewer.md"]
        depths = {file.path: file.depth for file in result.files}
        assert depths["reviewer.md"] == 0
        assert depths["agents/deep/nested/tree/tester.md"] == 4
        assert result.warnings == []
        assert result.repository.full_name == "acme/agents"

    async def test_failing_directory_becomes_warning(self, github):
        github.add_repo(
            "acme/agents",
            {
                "good/reviewer.md": agent_markdown(),
                "broken/planner.md": agent_markdown(name="planner"),
            },
            failing_dirs={"broken"},
        )

        result = await RepositoryScanner(github).scan(RepoRef(owner="acme", name="agents"))

        assert [file.path for file in result.files] == ["good/reviewer.md"]
        assert len(result.warnings) == 1
        assert "broken" in result.warnings[0]

    async def test_failing_file_becomes_warning(self, github):
        github.add_repo(
            "acme/agents",
            {"a.md": agent_markdown(), "b.md": agent_markdown(name="b-agent")},
            failing_files={"b.md"},
        )

        result = await RepositoryScanner(github).scan(RepoRef(owner="acme", name="agents"))

        assert [file.path for file in result.files] == ["a.md"]
        assert "b.md" in result.warnings[0]

    async def test_missing_repository_is_a_hard_error(self, github):
        with pytest.raises(RepositoryNotFoundError):
            await RepositoryScanner(github).scan(RepoRef(owner="acme", name="missing"))

    async def test_accepts_fetched_repository(self, github):
        repository = github.add_repo("acme/agents", {"a.md": agent_markdown()})

        result = await RepositoryScanner(github, concurrency=1).scan(repository)

        assert result.repository is repository
        assert len(result.files) == 1
