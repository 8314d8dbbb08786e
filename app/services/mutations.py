"""
Section mutation engine: structural edits over the sections list.

All operations are total functions over the whole document. A stale index
(one that no longer exists because a previous structural edit already
shifted the list) is a no-op: the input is returned unchanged.
"""
from __future__ import annotations

import logging
from typing import Tuple

from app.models.schemas import ChartType, DataPoint, Document, Section
from app.utils.helpers import generate_section_id

logger = logging.getLogger(__name__)

# Fixed order used when the user cycles a section's visualization
CHART_TYPE_CYCLE: Tuple[ChartType, ...] = (
    ChartType.STAT,
    ChartType.BAR,
    ChartType.PIE,
    ChartType.LINE,
    ChartType.LIST,
)

NEW_SECTION_TITLE = "New section"
NEW_SECTION_DESCRIPTION = "Describe this section..."
NEW_DATA_POINT_NAME = "new item"
NEW_DATA_POINT_VALUE = 10.0


def next_chart_type(current: ChartType) -> ChartType:
    """Return the type after *current* in the cycle, wrapping after LIST."""
    position = CHART_TYPE_CYCLE.index(current)
    return CHART_TYPE_CYCLE[(position + 1) % len(CHART_TYPE_CYCLE)]


def _in_range(index: int, length: int) -> bool:
    return 0 <= index < length


def add_section(doc: Document) -> Document:
    """Append a placeholder STAT section with a fresh, non-colliding id."""
    section_id = generate_section_id({s.id for s in doc.sections})
    section = Section(
        id=section_id,
        type=ChartType.STAT,
        title=NEW_SECTION_TITLE,
        description=NEW_SECTION_DESCRIPTION,
        data=[
            DataPoint(name="Item 1", value=100),
            DataPoint(name="Item 2", value=200),
        ],
    )
    logger.debug("add_section: appended %s at position %d", section_id, len(doc.sections))
    return doc.model_copy(update={"sections": [*doc.sections, section]})


def remove_section(doc: Document, index: int) -> Document:
    """Remove the section at *index*; later sections shift down by one."""
    if not _in_range(index, len(doc.sections)):
        logger.debug("remove_section: stale index %d ignored", index)
        return doc
    sections = [s for i, s in enumerate(doc.sections) if i != index]
    return doc.model_copy(update={"sections": sections})


def cycle_section_type(doc: Document, index: int) -> Document:
    """Advance the type of the section at *index*; its data is untouched."""
    if not _in_range(index, len(doc.sections)):
        logger.debug("cycle_section_type: stale index %d ignored", index)
        return doc
    section = doc.sections[index]
    sections = list(doc.sections)
    sections[index] = section.model_copy(update={"type": next_chart_type(section.type)})
    return doc.model_copy(update={"sections": sections})


def add_data_point(section: Section) -> Section:
    """Append the default ``{name: "new item", value: 10}`` point."""
    point = DataPoint(name=NEW_DATA_POINT_NAME, value=NEW_DATA_POINT_VALUE)
    return section.model_copy(update={"data": [*section.data, point]})


def remove_data_point(section: Section, index: int) -> Section:
    """Remove the data point at *index*; later points shift down by one."""
    if not _in_range(index, len(section.data)):
        logger.debug("remove_data_point: stale index %d ignored", index)
        return section
    data = [p for i, p in enumerate(section.data) if i != index]
    return section.model_copy(update={"data": data})
