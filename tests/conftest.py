import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from taskboard.app import create_app
from taskboard.auth.session import SessionCodec, SessionManager
from taskboard.config import Settings
from taskboard.infra.db import create_engine, init_database
from taskboard.services.actions import AppContext

TEST_SECRET = "test-secret-key-that-is-long-enough-0123456789"


@pytest.fixture()
def anyio_backend():
    return "asyncio"


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        secret_key=TEST_SECRET,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'taskboard.db'}",
        session_ttl=3600,
    )


@pytest.fixture()
def codec(settings: Settings) -> SessionCodec:
    return SessionCodec.from_settings(settings)


@pytest.fixture()
async def engine(settings: Settings, anyio_backend):
    """A fresh SQLite database with the schema created."""
    eng = create_engine(settings.database_url)
    await init_database(eng)
    yield eng
    await eng.dispose()


@pytest.fixture()
def ctx(settings: Settings, engine, codec: SessionCodec) -> AppContext:
    return AppContext(settings=settings, engine=engine, codec=codec, sessions=SessionManager(codec, settings))


@pytest.fixture()
def client(settings: Settings):
    with TestClient(create_app(settings)) as c:
        yield c


def register_and_login(client: TestClient, email: str = "a@b.com", password: str = "longenough1") -> None:
    r = client.post(
        "/register",
        data={"first_name": "A", "last_name": "B", "email": email, "password": password},
        follow_redirects=False,
    )
    assert r.status_code == 303
    r = client.post("/login", data={"email": email, "password": password}, follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/dashboard"


@pytest.fixture()
def logged_in(client: TestClient) -> TestClient:
    register_and_login(client)
    return client
