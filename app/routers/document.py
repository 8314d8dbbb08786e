"""
Current-document endpoints: state, in-place edits, structural edits, AI
generation/optimization, render and export.

Route summary
-------------
GET    /api/document                                   — current state
PUT    /api/document                                   — replace the document
POST   /api/document/reset                             — restore the seed document
PATCH  /api/document/fields                            — edit title/subtitle/footer

POST   /api/document/sections                          — append a section
PUT    /api/document/sections/{index}                  — replace a section
PATCH  /api/document/sections/{index}                  — edit a section heading text
DELETE /api/document/sections/{index}                  — remove a section
POST   /api/document/sections/{index}/cycle-type       — next chart type

POST   /api/document/sections/{index}/points           — append a data point
PATCH  /api/document/sections/{index}/points/{point}   — edit a data point field
DELETE /api/document/sections/{index}/points/{point}   — remove a data point

POST   /api/document/generate                          — build from a prompt
POST   /api/document/optimize                          — rewrite the text
GET    /api/document/render                            — visual tree (JSON)
GET    /api/document/export                            — printable HTML

Every edit accepts ``?version=N``: the version of the render the edit was
made against. Edits against a superseded version are ignored.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from fastapi.responses import HTMLResponse

from app.config import settings
from app.data.templates import seed_document
from app.models.schemas import (
    DataPointUpdateRequest,
    Document,
    DocumentFieldUpdateRequest,
    DocumentStateResponse,
    GenerateRequest,
    RenderResponse,
    Section,
    SectionFieldUpdateRequest,
)
from app.services.document_store import (
    DocumentState,
    DocumentStore,
    ProducerBusyError,
    document_store,
)
from app.services.editor import (
    update_data_point,
    update_document_field,
    update_section,
    update_section_field,
)
from app.services.mutations import (
    add_data_point,
    add_section,
    cycle_section_type,
    remove_data_point,
    remove_section,
)
from app.services.producer import GenerationError, InfographicProducer
from app.services.renderer import render, to_html

logger = logging.getLogger(__name__)

router = APIRouter()

GENERATE_FAILED_MESSAGE = "Could not generate the infographic. Please try again."
OPTIMIZE_FAILED_MESSAGE = "Could not improve the content. Please try again."


# ─── Dependencies ─────────────────────────────────────────────────────────────

def get_document_store() -> DocumentStore:
    return document_store


def get_producer() -> InfographicProducer:
    return InfographicProducer()


# ─── Helpers ──────────────────────────────────────────────────────────────────

def _state_response(state: DocumentState) -> DocumentStateResponse:
    return DocumentStateResponse(
        version=state.version,
        busy=state.busy,
        error=state.error,
        document=state.document,
    )


def _edit_section(index: int, edit: Callable[[Section], Section]) -> Callable[[Document], Document]:
    """Lift a section edit to a document edit; a stale index raises IndexError."""

    def _apply(doc: Document) -> Document:
        section = doc.sections[index]
        updated = edit(section)
        return doc if updated is section else update_section(doc, index, updated)

    return _apply


# ═══════════════════════════════════════════════════════════════════════════════
# DOCUMENT
# ═══════════════════════════════════════════════════════════════════════════════

@router.get("", response_model=DocumentStateResponse)
async def get_document(store: DocumentStore = Depends(get_document_store)) -> DocumentStateResponse:
    """Return the current document with its version and producer status."""
    return _state_response(store.snapshot())


@router.put("", response_model=DocumentStateResponse)
async def replace_document(
    body: Document,
    store: DocumentStore = Depends(get_document_store),
) -> DocumentStateResponse:
    """Replace the current document with a posted one."""
    state = store.replace(body)
    logger.info("Document replaced (%d sections) → version %d", len(body.sections), state.version)
    return _state_response(state)


@router.post("/reset", response_model=DocumentStateResponse)
async def reset_document(store: DocumentStore = Depends(get_document_store)) -> DocumentStateResponse:
    """Restore the seed document."""
    return _state_response(store.reset(seed_document(settings.DEFAULT_TEMPLATE_ID)))


@router.patch("/fields", response_model=DocumentStateResponse)
async def edit_document_field(
    body: DocumentFieldUpdateRequest,
    version: Optional[int] = Query(None, ge=0),
    store: DocumentStore = Depends(get_document_store),
) -> DocumentStateResponse:
    """Edit the title, subtitle or footer."""
    state = store.apply(
        lambda doc: update_document_field(doc, body.field, body.value),
        expected_version=version,
    )
    return _state_response(state)


# ═══════════════════════════════════════════════════════════════════════════════
# SECTIONS
# ═══════════════════════════════════════════════════════════════════════════════

@router.post("/sections", response_model=DocumentStateResponse, status_code=status.HTTP_201_CREATED)
async def create_section(
    version: Optional[int] = Query(None, ge=0),
    store: DocumentStore = Depends(get_document_store),
) -> DocumentStateResponse:
    """Append a placeholder section."""
    return _state_response(store.apply(add_section, expected_version=version))


@router.put("/sections/{index}", response_model=DocumentStateResponse)
async def put_section(
    body: Section,
    index: int = Path(..., ge=0),
    version: Optional[int] = Query(None, ge=0),
    store: DocumentStore = Depends(get_document_store),
) -> DocumentStateResponse:
    """Replace the section at *index*; its id must not be used by another section."""
    try:
        state = store.apply(
            lambda doc: update_section(doc, index, body),
            expected_version=version,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return _state_response(state)


@router.patch("/sections/{index}", response_model=DocumentStateResponse)
async def edit_section_field(
    body: SectionFieldUpdateRequest,
    index: int = Path(..., ge=0),
    version: Optional[int] = Query(None, ge=0),
    store: DocumentStore = Depends(get_document_store),
) -> DocumentStateResponse:
    """Edit the title, description or chartDescription of a section."""
    state = store.apply(
        lambda doc: update_section_field(doc, index, body.field, body.value),
        expected_version=version,
    )
    return _state_response(state)


@router.delete("/sections/{index}", response_model=DocumentStateResponse)
async def delete_section(
    index: int = Path(..., ge=0),
    version: Optional[int] = Query(None, ge=0),
    store: DocumentStore = Depends(get_document_store),
) -> DocumentStateResponse:
    """Remove the section at *index*."""
    state = store.apply(lambda doc: remove_section(doc, index), expected_version=version)
    return _state_response(state)


@router.post("/sections/{index}/cycle-type", response_model=DocumentStateResponse)
async def cycle_type(
    index: int = Path(..., ge=0),
    version: Optional[int] = Query(None, ge=0),
    store: DocumentStore = Depends(get_document_store),
) -> DocumentStateResponse:
    """Switch the section to the next chart type (stat → bar → pie → line → list)."""
    state = store.apply(lambda doc: cycle_section_type(doc, index), expected_version=version)
    return _state_response(state)


# ═══════════════════════════════════════════════════════════════════════════════
# DATA POINTS
# ═══════════════════════════════════════════════════════════════════════════════

@router.post(
    "/sections/{index}/points",
    response_model=DocumentStateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_data_point(
    index: int = Path(..., ge=0),
    version: Optional[int] = Query(None, ge=0),
    store: DocumentStore = Depends(get_document_store),
) -> DocumentStateResponse:
    """Append a default data point to the section at *index*."""
    state = store.apply(_edit_section(index, add_data_point), expected_version=version)
    return _state_response(state)


@router.patch("/sections/{index}/points/{point}", response_model=DocumentStateResponse)
async def edit_data_point(
    body: DataPointUpdateRequest,
    index: int = Path(..., ge=0),
    point: int = Path(..., ge=0),
    version: Optional[int] = Query(None, ge=0),
    store: DocumentStore = Depends(get_document_store),
) -> DocumentStateResponse:
    """
    Edit the name, value or label of one data point.

    ``value`` is parsed leniently: thousands separators are stripped and
    unparsable text becomes 0.
    """
    state = store.apply(
        _edit_section(index, lambda s: update_data_point(s, point, body.field, body.value)),
        expected_version=version,
    )
    return _state_response(state)


@router.delete("/sections/{index}/points/{point}", response_model=DocumentStateResponse)
async def delete_data_point(
    index: int = Path(..., ge=0),
    point: int = Path(..., ge=0),
    version: Optional[int] = Query(None, ge=0),
    store: DocumentStore = Depends(get_document_store),
) -> DocumentStateResponse:
    """Remove one data point from the section at *index*."""
    state = store.apply(
        _edit_section(index, lambda s: remove_data_point(s, point)),
        expected_version=version,
    )
    return _state_response(state)


# ═══════════════════════════════════════════════════════════════════════════════
# PRODUCER
# ═══════════════════════════════════════════════════════════════════════════════

@router.post("/generate", response_model=DocumentStateResponse)
async def generate_document(
    body: GenerateRequest,
    store: DocumentStore = Depends(get_document_store),
    producer: InfographicProducer = Depends(get_producer),
) -> DocumentStateResponse:
    """
    Build a new document from a typed or transcribed request.

    Only one generate/optimize call may run at a time (409 otherwise). On
    failure the current document is left untouched and 502 is returned.
    """
    prompt = body.prompt.strip()
    if not prompt:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Prompt must not be empty.",
        )

    try:
        token = store.begin_request("generate")
    except ProducerBusyError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))

    logger.info("generate: request #%d from %s input", token.request_id, body.source)
    try:
        document = await producer.generate(prompt)
    except GenerationError as exc:
        logger.error("generate: request #%d failed: %s", token.request_id, exc)
        store.fail_request(token, GENERATE_FAILED_MESSAGE)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=GENERATE_FAILED_MESSAGE)
    except Exception:
        store.fail_request(token, GENERATE_FAILED_MESSAGE)
        raise

    if not store.complete_request(token, document):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="The document changed while generating; the result was discarded.",
        )
    return _state_response(store.snapshot())


@router.post("/optimize", response_model=DocumentStateResponse)
async def optimize_document(
    store: DocumentStore = Depends(get_document_store),
    producer: InfographicProducer = Depends(get_producer),
) -> DocumentStateResponse:
    """
    Rewrite the text of the current document for tone and clarity.

    Ids, chart types, values and sources are preserved.
    """
    try:
        token = store.begin_request("optimize")
    except ProducerBusyError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))

    try:
        document = await producer.optimize(store.document)
    except GenerationError as exc:
        logger.error("optimize: request #%d failed: %s", token.request_id, exc)
        store.fail_request(token, OPTIMIZE_FAILED_MESSAGE)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=OPTIMIZE_FAILED_MESSAGE)
    except Exception:
        store.fail_request(token, OPTIMIZE_FAILED_MESSAGE)
        raise

    if not store.complete_request(token, document):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="The document changed while optimizing; the result was discarded.",
        )
    return _state_response(store.snapshot())


# ═══════════════════════════════════════════════════════════════════════════════
# RENDER / EXPORT
# ═══════════════════════════════════════════════════════════════════════════════

@router.get("/render", response_model=RenderResponse)
async def render_document(store: DocumentStore = Depends(get_document_store)) -> RenderResponse:
    """Return the visual tree of the current document."""
    state = store.snapshot()
    return RenderResponse(version=state.version, tree=render(state.document).to_dict())


@router.get("/export", response_class=HTMLResponse)
async def export_document(store: DocumentStore = Depends(get_document_store)) -> HTMLResponse:
    """Printable HTML page of the current document (print or save as PDF from the browser)."""
    page = to_html(render(store.document), chartjs_url=settings.CHARTJS_CDN_URL)
    return HTMLResponse(
        content=page,
        headers={"Content-Disposition": 'inline; filename="infographic.html"'},
    )
