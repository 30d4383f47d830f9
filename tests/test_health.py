"""Health endpoint and request middleware tests."""

from collections.abc import AsyncGenerator, AsyncIterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.api.deps import get_db
from src.core.config import settings
from src.main import app


class StubSession:
    """Stands in for AsyncSession; optionally fails every query."""

    def __init__(self, fail: bool) -> None:
        self.fail = fail
        self.statements: list[str] = []

    async def execute(self, statement: object) -> None:
        self.statements.append(str(statement))
        if self.fail:
            raise RuntimeError("connection refused")


@pytest_asyncio.fixture
async def stub_client(request: pytest.FixtureRequest) -> AsyncIterator[AsyncClient]:
    """HTTP client whose database is a StubSession; ``indirect`` sets failure."""
    stub = StubSession(fail=getattr(request, "param", False))

    async def override_get_db() -> AsyncGenerator[StubSession, None]:
        yield stub

    app.dependency_overrides[get_db] = override_get_db
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            client.stub = stub  # type: ignore[attr-defined]
            yield client
    finally:
        app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_health_reports_connected(stub_client: AsyncClient) -> None:
    response = await stub_client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "db": "connected",
        "environment": settings.environment,
    }
    assert stub_client.stub.statements == ["SELECT 1"]  # type: ignore[attr-defined]


@pytest.mark.asyncio
@pytest.mark.parametrize("stub_client", [True], indirect=True)
async def test_health_reports_degraded_when_query_fails(stub_client: AsyncClient) -> None:
    response = await stub_client.get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "degraded"
    assert body["db"] == "disconnected"


@pytest.mark.asyncio
async def test_request_id_is_echoed_or_generated(stub_client: AsyncClient) -> None:
    echoed = await stub_client.get("/api/health", headers={"X-Request-ID": "req-123"})
    generated = await stub_client.get("/api/health")

    assert echoed.headers["X-Request-ID"] == "req-123"
    assert generated.headers["X-Request-ID"]
    assert generated.headers["X-Request-ID"] != "req-123"


@pytest.mark.asyncio
async def test_health_against_sqlite(api_client: AsyncClient) -> None:
    """Real SELECT 1 through the session dependency."""
    response = await api_client.get("/api/health")

    assert response.json()["db"] == "connected"
