"""Tests for the template catalog and /api/templates."""
import pytest
from httpx import AsyncClient

from app.data.templates import DEMO_DOCUMENT, TEMPLATES, get_template, seed_document


def test_catalog_entries_are_valid_documents():
    assert [t.id for t in TEMPLATES] == ["t1", "t2", "t3", "t4"]
    for template in TEMPLATES:
        ids = [s.id for s in template.data.sections]
        assert len(ids) == len(set(ids))
        assert template.data.sections


def test_seed_document_falls_back_to_demo():
    assert seed_document(None) is DEMO_DOCUMENT
    assert seed_document("missing") is DEMO_DOCUMENT
    assert seed_document("t2") is get_template("t2").data


@pytest.mark.asyncio
async def test_list_templates(client: AsyncClient):
    resp = await client.get("/api/templates")
    assert resp.status_code == 200
    data = resp.json()
    assert len(data) == 4
    assert data[0] == {
        "id": "t1",
        "name": "Quarterly results",
        "description": get_template("t1").description,
        "theme_class": "bg-blue-500",
    }
    assert "data" not in data[0]


@pytest.mark.asyncio
async def test_get_template(client: AsyncClient):
    resp = await client.get("/api/templates/t4")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["title"] == "Introducing Nexus X1"
    assert data["backgroundColor"] == "#0f172a"


@pytest.mark.asyncio
async def test_unknown_template_returns_404(client: AsyncClient):
    resp = await client.get("/api/templates/t99")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Template t99 not found."


@pytest.mark.asyncio
async def test_apply_template(client: AsyncClient, store):
    version = store.version

    resp = await client.post("/api/templates/t3/apply")

    assert resp.status_code == 200
    data = resp.json()
    assert data["version"] == version + 1
    assert data["document"]["title"] == "Social Media Engagement"
    assert store.document is get_template("t3").data


@pytest.mark.asyncio
async def test_apply_unknown_template_keeps_document(client: AsyncClient, store):
    version = store.version
    resp = await client.post("/api/templates/nope/apply")
    assert resp.status_code == 404
    assert store.version == version
