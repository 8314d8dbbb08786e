"""
Field-merge engine: single-field edits applied to an immutable document.

Every function returns a new value and leaves its arguments untouched.
Sections that are not targeted are shared by reference with the input
document, so ``old.sections[k] is new.sections[k]`` for every k != index.

Public API
----------
update_document_field(doc, field, value)           -> Document
update_section(doc, index, new_section)            -> Document
update_section_field(doc, index, field, value)     -> Document
update_data_point(section, index, field, raw)      -> Section
"""
from __future__ import annotations

import logging
from typing import Any, Dict

from app.models.schemas import DataPoint, Document, Section
from app.utils.helpers import parse_numeric

logger = logging.getLogger(__name__)

# Root text fields editable in place
DOCUMENT_TEXT_FIELDS = frozenset({"title", "subtitle", "footer"})

# Wire name -> model attribute for section heading text
SECTION_TEXT_FIELDS: Dict[str, str] = {
    "title": "title",
    "description": "description",
    "chartDescription": "chart_description",
    "chart_description": "chart_description",
}

DATA_POINT_FIELDS = frozenset({"name", "value", "label"})


def _check_index(index: int, length: int, what: str) -> None:
    # Negative indices are rejected: they never come from a render
    if not 0 <= index < length:
        raise IndexError(f"{what} index {index} out of range (0..{length - 1})")


def update_document_field(doc: Document, field: str, value: str) -> Document:
    """
    Return a copy of *doc* with one root text field replaced.

    Args:
        doc: Current document
        field: One of ``title``, ``subtitle``, ``footer``
        value: New text, stored verbatim

    Raises:
        ValueError: *field* is not an editable root text field.
    """
    if field not in DOCUMENT_TEXT_FIELDS:
        raise ValueError(f"Field {field!r} is not editable in place")
    return doc.model_copy(update={field: value})


def update_section(doc: Document, index: int, new_section: Section) -> Document:
    """
    Return a copy of *doc* with the section at *index* replaced.

    Raises:
        IndexError: *index* is outside ``0 <= index < len(doc.sections)``.
        ValueError: *new_section* reuses the id of another section.
    """
    _check_index(index, len(doc.sections), "Section")
    if any(s.id == new_section.id for i, s in enumerate(doc.sections) if i != index):
        raise ValueError(f"Section id {new_section.id!r} is already used by another section")
    sections = list(doc.sections)
    sections[index] = new_section
    return doc.model_copy(update={"sections": sections})


def update_section_field(doc: Document, index: int, field: str, value: str) -> Document:
    """Replace the title, description or chartDescription of one section."""
    attr = SECTION_TEXT_FIELDS.get(field)
    if attr is None:
        raise ValueError(f"Section field {field!r} is not editable in place")
    _check_index(index, len(doc.sections), "Section")
    section = doc.sections[index].model_copy(update={attr: value})
    return update_section(doc, index, section)


def update_data_point(section: Section, index: int, field: str, raw_value: Any) -> Section:
    """
    Return a copy of *section* with one data point field replaced.

    ``value`` is parsed with thousands separators stripped; unparsable input
    becomes 0. ``name`` and ``label`` are assigned verbatim.

    Raises:
        IndexError: *index* is outside the section's data.
        ValueError: *field* is not a data point field.
    """
    if field not in DATA_POINT_FIELDS:
        raise ValueError(f"Data point field {field!r} does not exist")
    _check_index(index, len(section.data), "Data point")

    if field == "value":
        new_value: Any = parse_numeric(raw_value)
    else:
        new_value = raw_value if isinstance(raw_value, str) else str(raw_value)

    data = list(section.data)
    point: DataPoint = data[index]
    data[index] = point.model_copy(update={field: new_value})
    return section.model_copy(update={"data": data})
