"""Tests for GET /api/health and the API root."""
import httpx
import pytest
from httpx import AsyncClient

from app.main import app
from app.routers.document import get_producer
from app.services.producer import InfographicProducer
from tests.conftest import FakeOllama, use_fake_ollama


@pytest.mark.asyncio
async def test_health_returns_200(client: AsyncClient):
    use_fake_ollama(FakeOllama())
    resp = await client.get("/api/health/")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["ollama"] == "ok"
    assert isinstance(data["document_version"], int)


@pytest.mark.asyncio
async def test_health_degraded_without_ollama(client: AsyncClient):
    def refuse(request):
        raise httpx.ConnectError("connection refused")

    app.dependency_overrides[get_producer] = lambda: InfographicProducer(
        base_url="http://ollama.test", transport=httpx.MockTransport(refuse)
    )
    resp = await client.get("/api/health/")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "degraded"
    assert data["ollama"] == "error"


@pytest.mark.asyncio
async def test_root_endpoint(client: AsyncClient):
    resp = await client.get("/")
    assert resp.status_code == 200
    data = resp.json()
    assert data["name"] == "Infographic Studio API"
