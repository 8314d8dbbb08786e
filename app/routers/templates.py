"""
Template catalog endpoints.

Route summary
-------------
GET  /api/templates                  — catalog entries (without data)
GET  /api/templates/{template_id}    — one entry with its seed document
POST /api/templates/{template_id}/apply — make the template the current document
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from app.data.templates import TEMPLATES, TemplateDefinition, get_template
from app.models.schemas import DocumentStateResponse, TemplateResponse, TemplateSummary
from app.routers.document import get_document_store
from app.services.document_store import DocumentStore

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_template_or_404(template_id: str) -> TemplateDefinition:
    template = get_template(template_id)
    if template is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Template {template_id} not found.",
        )
    return template


@router.get("", response_model=List[TemplateSummary])
async def list_templates() -> List[TemplateSummary]:
    """List the catalog."""
    return [
        TemplateSummary(
            id=t.id,
            name=t.name,
            description=t.description,
            theme_class=t.theme_class,
        )
        for t in TEMPLATES
    ]


@router.get("/{template_id}", response_model=TemplateResponse)
async def get_template_detail(template_id: str) -> TemplateResponse:
    """Return one catalog entry including its seed document."""
    template = _get_template_or_404(template_id)
    return TemplateResponse(
        id=template.id,
        name=template.name,
        description=template.description,
        theme_class=template.theme_class,
        data=template.data,
    )


@router.post("/{template_id}/apply", response_model=DocumentStateResponse)
async def apply_template(
    template_id: str,
    store: DocumentStore = Depends(get_document_store),
) -> DocumentStateResponse:
    """Replace the current document with the template's seed document."""
    template = _get_template_or_404(template_id)
    state = store.replace(template.data)
    logger.info("Applied template %s (%s) → version %d", template.id, template.name, state.version)
    return DocumentStateResponse(
        version=state.version,
        busy=state.busy,
        error=state.error,
        document=state.document,
    )
