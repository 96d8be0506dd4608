import os

os.environ.setdefault("SH_JWT_SECRET", "test-secret-key-for-hs256-signing-000000")
os.environ.setdefault("SH_GITHUB_TOKEN", "")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from subagent_hub.agents.repository import AgentRepository  # noqa: E402
from subagent_hub.database import connect  # noqa: E402
from subagent_hub.importer.attribution import AttributionEngine  # noqa: E402
from subagent_hub.importer.models import ConflictPolicy  # noqa: E402
from subagent_hub.importer.schemas import ImportContext  # noqa: E402
from subagent_hub.profiles.repository import ProfileRepository  # noqa: E402
from tests.fakes import FakeGitHubClient  # noqa: E402


@pytest_asyncio.fixture
async def db(tmp_path):
    conn = await connect(str(tmp_path / "test.db"))
    yield conn
    await conn.close()


@pytest.fixture
def agent_repo(db) -> AgentRepository:
    return AgentRepository(db)


@pytest.fixture
def profile_repo(db) -> ProfileRepository:
    return ProfileRepository(db)


@pytest.fixture
def engine(agent_repo, profile_repo) -> AttributionEngine:
    return AttributionEngine(agent_repo, profile_repo)


@pytest.fixture
def github() -> FakeGitHubClient:
    return FakeGitHubClient()


@pytest.fixture
def make_context():
    def factory(
        policy: ConflictPolicy = ConflictPolicy.skip_if_exists,
        importer_id: str = "user-1",
        **kwargs,
    ) -> ImportContext:
        return ImportContext(importer_id=importer_id, conflict_policy=policy, **kwargs)

    return factory
