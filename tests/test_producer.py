"""
Tests for the LLM producer adapter.

Ollama is replaced by FakeOllama (httpx.MockTransport); every test checks
what the adapter sends and how it turns replies into documents.
"""
import json

import httpx
import pytest

from app.config import settings
from app.models.schemas import ChartType
from app.services.producer import GenerationError, InfographicProducer
from tests.conftest import FakeOllama, document_json


# ---------------------------------------------------------------------------
# generate
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_generate_returns_validated_document(bar_document):
    fake = FakeOllama(document_json(bar_document))

    doc = await fake.producer().generate("caffeine per drink")

    assert doc.title == "Caffeine"
    assert doc.sections[0].type is ChartType.BAR
    assert [p.value for p in doc.sections[0].data] == [63, 95, 47, 28]
    assert doc.sources is None


@pytest.mark.asyncio
async def test_generate_request_uses_json_mode(bar_document):
    fake = FakeOllama(document_json(bar_document))

    await fake.producer().generate("caffeine per drink")

    body = fake.calls[0]
    assert body["format"] == "json"
    assert body["stream"] is False
    assert body["model"] == settings.OLLAMA_LLM_MODEL
    assert '"caffeine per drink"' in body["prompt"]


@pytest.mark.asyncio
async def test_generate_strips_code_fences(bar_document):
    fake = FakeOllama(f"```json\n{document_json(bar_document)}\n```")
    doc = await fake.producer().generate("caffeine")
    assert doc.title == "Caffeine"


@pytest.mark.asyncio
async def test_generate_recovers_json_from_prose(bar_document):
    reply = f"Sure! Here is your infographic:\n{document_json(bar_document)}\nEnjoy."
    doc = await FakeOllama(reply).producer().generate("caffeine")
    assert len(doc.sections) == 1


@pytest.mark.asyncio
async def test_generate_repairs_trailing_commas():
    reply = (
        '{"title": "T", "subtitle": "S", "themeColor": "#000000", '
        '"sections": [{"id": "s1", "type": "pie", "title": "P", '
        '"data": [{"name": "a", "value": "1,500"},]},],}'
    )
    doc = await FakeOllama(reply).producer().generate("x")
    assert doc.sections[0].data[0].value == 1500


@pytest.mark.asyncio
async def test_generate_repair_leaves_string_contents_alone():
    reply = (
        '{"title": "None of the above", "subtitle": "True or False? See https://x.example/a,]", '
        '"themeColor": "#000000", // accent\n'
        '"sections": [{"id": "s1", "type": "list", "title": "T", "data": []},],}'
    )
    doc = await FakeOllama(reply).producer().generate("x")
    assert doc.title == "None of the above"
    assert doc.subtitle == "True or False? See https://x.example/a,]"
    assert len(doc.sections) == 1


@pytest.mark.asyncio
async def test_generate_unwraps_document_key(bar_document):
    reply = json.dumps({"document": json.loads(document_json(bar_document))})
    doc = await FakeOllama(reply).producer().generate("x")
    assert doc.title == "Caffeine"


@pytest.mark.asyncio
async def test_generate_retries_with_simpler_prompt(bar_document):
    fake = FakeOllama("I cannot produce that", document_json(bar_document))

    doc = await fake.producer().generate("caffeine")

    assert doc.title == "Caffeine"
    assert len(fake.calls) == 2
    assert fake.calls[1]["prompt"].startswith("Create an infographic as JSON")


@pytest.mark.asyncio
async def test_generate_gives_up_after_max_retries():
    fake = FakeOllama("nope", "still nope", "never asked")

    with pytest.raises(GenerationError):
        await fake.producer().generate("caffeine")

    assert len(fake.calls) == InfographicProducer.MAX_JSON_RETRIES


@pytest.mark.asyncio
async def test_generate_empty_response_fails():
    with pytest.raises(GenerationError):
        await FakeOllama("").producer().generate("caffeine")


@pytest.mark.asyncio
async def test_generate_http_error_fails():
    with pytest.raises(GenerationError):
        await FakeOllama(status_code=500).producer().generate("caffeine")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [httpx.ConnectError("connection refused"), httpx.ReadTimeout("too slow")],
)
async def test_generate_transport_errors_fail(error):
    with pytest.raises(GenerationError):
        await FakeOllama(raise_error=error).producer().generate("caffeine")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "reply",
    [
        '{"title": "Only a title"}',
        '{"title": "T", "subtitle": "S", "themeColor": "#000", "sections": [{"type": "bar"}]}',
        '{"title": "T", "subtitle": "S", "themeColor": "#000", '
        '"sections": [{"id": "s1", "type": "radar", "title": "R"}]}',
        "[1, 2, 3]",
    ],
)
async def test_generate_schema_violation_fails(reply):
    with pytest.raises(GenerationError):
        await FakeOllama(reply).producer().generate("caffeine")


@pytest.mark.asyncio
async def test_generate_renames_duplicate_section_ids(demo_document):
    payload = json.loads(document_json(demo_document))
    for section in payload["sections"]:
        section["id"] = "s1"

    doc = await FakeOllama(json.dumps(payload)).producer().generate("x")

    ids = [s.id for s in doc.sections]
    assert ids[0] == "s1"
    assert len(set(ids)) == 3


@pytest.mark.asyncio
async def test_generate_merges_citations_first_seen_wins(bar_document):
    reply = document_json(
        bar_document,
        sources=[{"title": "Caffeine Facts", "uri": "https://a.example"}],
    )
    fake = FakeOllama(
        reply,
        envelope_extra={
            "citations": [
                {"title": "Duplicate", "uri": "https://a.example"},
                {"url": "https://b.example"},
                {"title": "no uri"},
                "garbage",
            ]
        },
    )

    doc = await fake.producer().generate("caffeine")

    assert [(s.title, s.uri) for s in doc.sources] == [
        ("Caffeine Facts", "https://a.example"),
        ("https://b.example", "https://b.example"),
    ]


@pytest.mark.asyncio
async def test_generate_language_rule_follows_settings(monkeypatch, bar_document):
    monkeypatch.setattr(settings, "OUTPUT_LANGUAGE", "Spanish")
    fake = FakeOllama(document_json(bar_document))

    await fake.producer().generate("cafeína")

    assert "All text MUST be in Spanish" in fake.calls[0]["prompt"]


# ---------------------------------------------------------------------------
# optimize
# ---------------------------------------------------------------------------

def _rewrite_of(document):
    """A model reply that improves the text but also tampers with structure."""
    payload = json.loads(document_json(document))
    payload.pop("sources", None)
    payload["title"] = "Coffee or Tea? The Global Divide"
    payload["themeColor"] = "#000000"
    for section in payload["sections"]:
        section["title"] = section["title"].upper()
        section["type"] = "list"
        for point in section["data"]:
            point["value"] = 999
    payload["sections"][0]["data"].append({"name": "Invented", "value": 1})
    return json.dumps(payload)


@pytest.mark.asyncio
async def test_optimize_preserves_structure(demo_document):
    fake = FakeOllama(_rewrite_of(demo_document))

    doc = await fake.producer().optimize(demo_document)

    assert doc.title == "Coffee or Tea? The Global Divide"
    assert doc.theme_color == demo_document.theme_color
    for before, after in zip(demo_document.sections, doc.sections):
        assert after.id == before.id
        assert after.type is before.type
        assert after.title == before.title.upper()
        assert [p.value for p in after.data] == [p.value for p in before.data]
    assert len(doc.sections[0].data) == 2


@pytest.mark.asyncio
async def test_optimize_matches_sections_by_id(demo_document):
    payload = json.loads(document_json(demo_document))
    payload["sections"].reverse()
    payload["sections"][0]["title"] = "Caffeine, ranked"

    doc = await FakeOllama(json.dumps(payload)).producer().optimize(demo_document)

    assert [s.id for s in doc.sections] == ["s1", "s2", "s3"]
    assert doc.sections[2].title == "Caffeine, ranked"


@pytest.mark.asyncio
async def test_optimize_reattaches_sources(sourced_document):
    fake = FakeOllama(_rewrite_of(sourced_document))

    doc = await fake.producer().optimize(sourced_document)

    assert doc.sources == sourced_document.sources
    assert "example.org/bev" not in fake.calls[0]["prompt"]
    assert '"id":"s2"' in fake.calls[0]["prompt"]


@pytest.mark.asyncio
async def test_optimize_keeps_text_the_model_dropped(demo_document):
    payload = json.loads(document_json(demo_document))
    del payload["sections"][1]["description"]
    del payload["footer"]

    doc = await FakeOllama(json.dumps(payload)).producer().optimize(demo_document)

    assert doc.sections[1].description == "Main preference on each continent"
    assert doc.footer == demo_document.footer


@pytest.mark.asyncio
async def test_optimize_failure_raises(demo_document):
    with pytest.raises(GenerationError):
        await FakeOllama("not json").producer().optimize(demo_document)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_check_health_reachable():
    assert await FakeOllama().producer().check_health() is True


@pytest.mark.asyncio
async def test_check_health_unreachable():
    def refuse(request):
        raise httpx.ConnectError("connection refused")

    producer = InfographicProducer(
        base_url="http://ollama.test", transport=httpx.MockTransport(refuse)
    )
    assert await producer.check_health() is False
