"""Document model and API schemas for Infographic Studio."""
from app.models.schemas import (
    ChartType,
    DataPoint,
    Section,
    Source,
    Document,
    merge_sources,
    DocumentFieldUpdateRequest,
    SectionFieldUpdateRequest,
    DataPointUpdateRequest,
    GenerateRequest,
    DocumentStateResponse,
    TemplateSummary,
    TemplateResponse,
    HealthCheckResponse,
    RenderResponse,
)

__all__ = [
    # Document model
    "ChartType",
    "DataPoint",
    "Section",
    "Source",
    "Document",
    "merge_sources",
    # Requests
    "DocumentFieldUpdateRequest",
    "SectionFieldUpdateRequest",
    "DataPointUpdateRequest",
    "GenerateRequest",
    # Responses
    "DocumentStateResponse",
    "TemplateSummary",
    "TemplateResponse",
    "HealthCheckResponse",
    "RenderResponse",
]
