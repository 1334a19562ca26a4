"""Tests for FastAPI health and version endpoints and domain error mapping."""

from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient
from uuid_extensions import uuid7

from src.api.main import app, handle_domain_error
from src.governance.errors import (
    ConcurrentModification,
    CrossTenantAccess,
    Forbidden,
    InvalidCode,
    InvalidTransition,
    NotFound,
    PendingApproval,
    Suspended,
    ValidationError,
)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
async def plain_client() -> AsyncClient:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


class TestHealthEndpoint:
    """GET /health always answers, reporting degraded components."""

    @pytest.mark.anyio
    async def test_health_returns_200(self, plain_client: AsyncClient) -> None:
        response = await plain_client.get("/health")
        assert response.status_code == 200

    @pytest.mark.anyio
    async def test_health_response_body(self, plain_client: AsyncClient) -> None:
        response = await plain_client.get("/health")
        data = response.json()
        assert data["status"] in {"ok", "degraded"}
        assert data["checks"]["api"] is True
        assert "environment" in data


class TestVersionEndpoint:
    """GET /api/version returns application version info."""

    @pytest.mark.anyio
    async def test_version_returns_200(self, plain_client: AsyncClient) -> None:
        response = await plain_client.get("/api/version")
        assert response.status_code == 200

    @pytest.mark.anyio
    async def test_version_response_body(self, plain_client: AsyncClient) -> None:
        response = await plain_client.get("/api/version")
        data = response.json()
        assert data["name"] == "Taskroom"
        assert "version" in data
        assert "environment" in data


class TestErrorMapping:
    """Each domain error kind keeps its own status code and error field."""

    @pytest.mark.anyio
    @pytest.mark.parametrize(
        ("error", "status", "code"),
        [
            (NotFound("Task x not found."), 404, "not_found"),
            (Forbidden("no"), 403, "forbidden"),
            (CrossTenantAccess("elsewhere"), 403, "cross_tenant_access"),
            (PendingApproval(), 403, "pending_approval"),
            (Suspended(), 403, "suspended"),
            (InvalidTransition("bad edge"), 409, "invalid_transition"),
            (ConcurrentModification("lost race"), 409, "concurrent_modification"),
            (InvalidCode("bad code"), 422, "invalid_code"),
            (ValidationError("bad field"), 422, "validation_error"),
        ],
    )
    async def test_status_and_code(self, error, status: int, code: str) -> None:
        request = SimpleNamespace(url=SimpleNamespace(path="/v1/anything"), method="POST")
        response = await handle_domain_error(request, error)
        assert response.status_code == status
        assert code.encode() in response.body
        assert error.message.encode() in response.body

    @pytest.mark.anyio
    async def test_unknown_principal_is_404(self, client: AsyncClient) -> None:
        response = await client.get("/v1/me", headers={"X-Principal-Id": str(uuid7())})
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.anyio
    async def test_missing_identity_header(self, client: AsyncClient) -> None:
        response = await client.get("/v1/me")
        assert response.status_code == 422
