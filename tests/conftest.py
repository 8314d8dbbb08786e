"""
Shared fixtures for Infographic Studio backend tests.

Every test gets its own document store, seeded with the demo document and
injected through the app's dependency overrides. The Ollama API is replaced by an
``httpx.MockTransport`` — no network access is needed.
"""
from __future__ import annotations

import json
from typing import Any, AsyncGenerator, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.data.templates import DEMO_DOCUMENT
from app.main import app
from app.models.schemas import ChartType, DataPoint, Document, Section, Source
from app.routers.document import get_document_store, get_producer
from app.services.document_store import DocumentStore
from app.services.producer import InfographicProducer


# ---------------------------------------------------------------------------
# Fake Ollama
# ---------------------------------------------------------------------------

class FakeOllama:
    """
    Scripted stand-in for Ollama's HTTP API.

    Each POST /api/generate pops the next reply; ``status_code`` other than
    200 makes every generate call fail, ``raise_error`` makes it raise.
    """

    def __init__(
        self,
        *replies: str,
        status_code: int = 200,
        envelope_extra: Optional[Dict[str, Any]] = None,
        raise_error: Optional[Exception] = None,
    ) -> None:
        self.replies: List[str] = list(replies)
        self.status_code = status_code
        self.envelope_extra = envelope_extra or {}
        self.raise_error = raise_error
        self.calls: List[Dict[str, Any]] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/tags":
            return httpx.Response(200, json={"models": [{"name": "qwen2.5:3b"}]})
        if self.raise_error is not None:
            raise self.raise_error
        self.calls.append(json.loads(request.content))
        if self.status_code != 200:
            return httpx.Response(self.status_code, text="model exploded")
        reply = self.replies.pop(0) if self.replies else ""
        body = {"model": "qwen2.5:3b", "response": reply, "done": True}
        body.update(self.envelope_extra)
        return httpx.Response(200, json=body)

    def producer(self) -> InfographicProducer:
        return InfographicProducer(base_url="http://ollama.test", transport=self.transport)


def document_json(document: Document, **overrides: Any) -> str:
    """Serialize a document the way the model would return it."""
    payload = document.model_dump(by_alias=True, exclude_none=True)
    payload.update(overrides)
    return json.dumps(payload, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

def make_bar_document() -> Document:
    """One BAR section with four points."""
    return Document(
        title="Caffeine",
        subtitle="mg per cup",
        theme_color="#3b82f6",
        sections=[
            Section(
                id="s1",
                type=ChartType.BAR,
                title="Caffeine content",
                data=[
                    DataPoint(name="Espresso", value=63),
                    DataPoint(name="Drip", value=95),
                    DataPoint(name="Black tea", value=47),
                    DataPoint(name="Green tea", value=28),
                ],
            )
        ],
    )


@pytest.fixture
def bar_document() -> Document:
    return make_bar_document()


@pytest.fixture
def demo_document() -> Document:
    return DEMO_DOCUMENT


@pytest.fixture
def sourced_document() -> Document:
    return DEMO_DOCUMENT.model_copy(
        update={"sources": [Source(title="Beverage Index", uri="https://example.org/bev")]}
    )


# ---------------------------------------------------------------------------
# Per-test fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def store() -> DocumentStore:
    return DocumentStore(DEMO_DOCUMENT)


@pytest.fixture(autouse=True)
def use_test_store(store: DocumentStore):
    """Route the app's store dependency to a fresh store with no pending request."""
    app.dependency_overrides[get_document_store] = lambda: store
    yield
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """httpx AsyncClient wired to the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def use_fake_ollama(fake: FakeOllama) -> None:
    """Route the app's producer dependency to *fake*."""
    app.dependency_overrides[get_producer] = fake.producer
