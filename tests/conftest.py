import pytest
from fastapi.testclient import TestClient

from gitboard.db import Base
from gitboard.db import create_db_engine
from gitboard.db import create_session_factory
from gitboard.main import create_app
from gitboard.services.contributions import ContributionAggregator
from gitboard.services.storage import ContributionStore
from gitboard.settings import Settings
from tests.fakes import FakeGitHubClient

MEMORY_DATABASE_URL = "sqlite+pysqlite:///:memory:"


@pytest.fixture
def store() -> ContributionStore:
    engine = create_db_engine(MEMORY_DATABASE_URL)
    Base.metadata.create_all(bind=engine)
    yield ContributionStore(create_session_factory(engine))
    engine.dispose()


@pytest.fixture
def fake_github() -> FakeGitHubClient:
    return FakeGitHubClient()


@pytest.fixture
def aggregator(
    store: ContributionStore, fake_github: FakeGitHubClient
) -> ContributionAggregator:
    return ContributionAggregator(store=store, client_factory=lambda token: fake_github)


@pytest.fixture
def app_client(fake_github: FakeGitHubClient) -> TestClient:
    app = create_app(
        Settings(database_url=MEMORY_DATABASE_URL, auto_create_tables=True)
    )
    app.state.aggregator = ContributionAggregator(
        store=app.state.store, client_factory=lambda token: fake_github
    )

    with TestClient(app) as test_client:
        yield test_client
