"""
Pydantic schemas for the infographic document and request/response validation.

The document models are the contract every producer (LLM, template catalog,
direct user edit) must satisfy. They are frozen: edits always build a new
value through the engines in ``app.services.editor`` and
``app.services.mutations``.
"""
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.utils.helpers import is_hex_color, parse_numeric

logger = logging.getLogger(__name__)

DEFAULT_THEME_COLOR = "#6366f1"
DEFAULT_BACKGROUND_COLOR = "#ffffff"

# camelCase on the wire, snake_case in Python, unknown producer fields dropped
_DOCUMENT_MODEL_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    frozen=True,
    extra="ignore",
)


def _optional_text(value: Any) -> Optional[str]:
    """Malformed optional text is omitted rather than rejected."""
    return value if isinstance(value, str) else None


class ChartType(str, Enum):
    """Visualization strategy of a section."""

    BAR = "bar"
    PIE = "pie"
    LINE = "line"
    STAT = "stat"
    LIST = "list"


# ---------------------------------------------------------------------------
# Document model
# ---------------------------------------------------------------------------

class DataPoint(BaseModel):
    """One (name, value, optional label) entry of a section."""

    model_config = _DOCUMENT_MODEL_CONFIG

    name: str
    value: float = 0.0
    label: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def _coerce_name(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, v: Any) -> float:
        return parse_numeric(v)

    @field_validator("label", mode="before")
    @classmethod
    def _coerce_label(cls, v: Any) -> Optional[str]:
        return _optional_text(v)


class Section(BaseModel):
    """A visual block: chart type, heading text and its data sequence."""

    model_config = _DOCUMENT_MODEL_CONFIG

    id: str = Field(..., min_length=1)
    type: ChartType
    title: str
    description: Optional[str] = None
    chart_description: Optional[str] = None
    data: List[DataPoint] = Field(default_factory=list)

    @field_validator("type", mode="before")
    @classmethod
    def _normalise_type(cls, v: Any) -> Any:
        # Producers sometimes echo the enum name ("BAR") instead of its value
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("description", "chart_description", mode="before")
    @classmethod
    def _coerce_optional_text(cls, v: Any) -> Optional[str]:
        return _optional_text(v)


class Source(BaseModel):
    """Citation attached to a generated document."""

    model_config = _DOCUMENT_MODEL_CONFIG

    title: str = ""
    uri: str


def merge_sources(*groups: Optional[Iterable[Source]]) -> List[Source]:
    """
    Concatenate source groups, keeping the first occurrence of every ``uri``.

    A repeated ``uri`` keeps the title it was first seen with.
    """
    merged: List[Source] = []
    seen: set = set()
    for group in groups:
        for source in group or ():
            if source.uri in seen:
                continue
            seen.add(source.uri)
            merged.append(source)
    return merged


class Document(BaseModel):
    """The full infographic: header, theme, ordered sections and provenance."""

    model_config = _DOCUMENT_MODEL_CONFIG

    title: str
    subtitle: str
    theme_color: str
    background_color: str = DEFAULT_BACKGROUND_COLOR
    footer: Optional[str] = None
    sections: List[Section]
    sources: Optional[List[Source]] = None

    @field_validator("theme_color", mode="before")
    @classmethod
    def _check_theme_color(cls, v: Any) -> str:
        if is_hex_color(v):
            return v
        logger.warning("Invalid themeColor %r — using %s", v, DEFAULT_THEME_COLOR)
        return DEFAULT_THEME_COLOR

    @field_validator("background_color", mode="before")
    @classmethod
    def _check_background_color(cls, v: Any) -> str:
        if is_hex_color(v):
            return v
        logger.warning(
            "Invalid backgroundColor %r — using %s", v, DEFAULT_BACKGROUND_COLOR
        )
        return DEFAULT_BACKGROUND_COLOR

    @field_validator("footer", mode="before")
    @classmethod
    def _coerce_footer(cls, v: Any) -> Optional[str]:
        return _optional_text(v)

    @field_validator("sections", mode="after")
    @classmethod
    def _check_unique_section_ids(cls, v: List[Section]) -> List[Section]:
        seen: set = set()
        for section in v:
            if section.id in seen:
                raise ValueError(f"Duplicate section id {section.id!r}")
            seen.add(section.id)
        return v

    @field_validator("sources", mode="after")
    @classmethod
    def _dedupe_sources(cls, v: Optional[List[Source]]) -> Optional[List[Source]]:
        return merge_sources(v) if v is not None else None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class DocumentFieldUpdateRequest(BaseModel):
    """Schema for editing a root text field in place."""

    field: Literal["title", "subtitle", "footer"]
    value: str


class SectionFieldUpdateRequest(BaseModel):
    """Schema for editing a section heading text in place."""

    field: Literal["title", "description", "chartDescription"]
    value: str


class DataPointUpdateRequest(BaseModel):
    """Schema for editing one field of a data point; ``value`` is the raw text typed."""

    field: Literal["name", "value", "label"]
    value: str


class GenerateRequest(BaseModel):
    """Schema for a free-text (typed or transcribed) generation request."""

    prompt: str = Field(..., max_length=4000)
    source: Literal["text", "voice"] = "text"


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class DocumentStateResponse(BaseModel):
    """The current document together with its version and producer status."""

    version: int
    busy: bool = False
    error: Optional[str] = None
    document: Document


class TemplateSummary(BaseModel):
    """Catalog entry without its seed document."""

    id: str
    name: str
    description: str
    theme_class: str


class TemplateResponse(TemplateSummary):
    """Catalog entry including the seed document."""

    data: Document


class HealthCheckResponse(BaseModel):
    """Schema for health check response."""

    status: str
    ollama: str
    document_version: int
    timestamp: datetime


class RenderResponse(BaseModel):
    """Visual tree of the current document."""

    version: int
    tree: Dict[str, Any]
