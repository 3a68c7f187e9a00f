import pytest
from alembic.util import CommandError
from sqlalchemy.exc import OperationalError

from app.db.session import get_db
from app.main import app
from app.routers import health

pytestmark = pytest.mark.unit


class UnreachableSession:
    async def execute(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    async def rollback(self):
        pass


async def unreachable_db():
    yield UnreachableSession()


@pytest.fixture
def health_client(client):
    app.dependency_overrides[get_db] = unreachable_db
    try:
        yield client
    finally:
        app.dependency_overrides.pop(get_db, None)


def test_health_reports_database_down(health_client):
    response = health_client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["api_ok"] is True
    assert body["db_ok"] is False
    assert body["alembic_current"] is None
    assert body["alembic_head_ok"] is False


def test_health_survives_broken_alembic_scripts(health_client, monkeypatch):
    def broken_head():
        raise CommandError("Multiple head revisions are present")

    monkeypatch.setattr(health, "_load_alembic_head", broken_head)

    response = health_client.get("/health")

    assert response.status_code == 200
    assert response.json()["alembic_head"] is None
