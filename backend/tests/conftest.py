import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from dailies.api.deps import get_dispatcher, get_store
from dailies.db.session import build_engine, get_db
from dailies.main import app
from dailies.models import Asset, Base, Episode, Project, Status
from dailies.services.file_store import LocalFileStore
from dailies.services.version_service import VersionService

STATUS_CODES = ("wip", "review", "approved", "rejected")


class RecordingDispatcher:
    """Collects notifications instead of delivering them."""

    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    def notify(self, event: str, payload: dict) -> None:
        self.events.append((event, payload))

    def of(self, event: str) -> list[dict]:
        return [payload for name, payload in self.events if name == event]


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture
def seed(session_factory):
    session = session_factory()
    for order, code in enumerate(STATUS_CODES, start=1):
        session.add(Status(code=code, name=code.title(), sort_order=order))
    project = Project(code="NS", name="Night Shift")
    session.add(project)
    session.flush()
    episode = Episode(project_id=project.id, code="NS_EP01", name="Pilot")
    session.add(episode)
    session.commit()
    ids = {"project_id": project.id, "episode_id": episode.id}
    session.close()
    return ids


@pytest.fixture
def db(session_factory, seed):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def store(tmp_path):
    return LocalFileStore(
        root=str(tmp_path / "storage"),
        public_base_url="http://testserver/files",
        signing_secret="test-secret",
        presign_ttl_seconds=600,
    )


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def service(db, store, dispatcher):
    return VersionService(db, store, dispatcher, default_status_code="wip")


@pytest.fixture
def make_asset(db, seed):
    def _make(code: str = "HERO", name: str = "Hero") -> Asset:
        asset = Asset(project_id=seed["project_id"], code=code, name=name)
        db.add(asset)
        db.commit()
        return asset

    return _make


@pytest.fixture
def client(session_factory, seed, store, dispatcher):
    def override_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
