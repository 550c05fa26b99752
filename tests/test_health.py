from contextlib import asynccontextmanager

from fastapi.testclient import TestClient

from jobly.main import app
from jobly.services.repository import Database, get_database


class _ReadyConnection:
    async def fetchval(self, query: str) -> int:
        return 1


class _ReadyDatabase:
    @asynccontextmanager
    async def connection(self):
        yield _ReadyConnection()


def test_healthz() -> None:
    client = TestClient(app)
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_readyz_reports_ready_database() -> None:
    app.dependency_overrides[get_database] = lambda: _ReadyDatabase()
    try:
        response = TestClient(app).get("/readyz")
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == 200
    assert response.json() == {"status": "ready"}


def test_readyz_without_database_url_is_unavailable() -> None:
    app.dependency_overrides[get_database] = lambda: Database(database_url=None, min_pool_size=1, max_pool_size=1)
    try:
        response = TestClient(app).get("/readyz")
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == 503
    assert response.json()["detail"] == "JOBLY_DATABASE_URL is required"
