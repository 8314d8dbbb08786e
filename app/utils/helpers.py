"""
Common utility functions and helpers.
"""
from typing import Any, Collection
import math
import re
import uuid


_HEX_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")
# Leading decimal number; trailing text such as units or "%" is ignored
_LEADING_NUMBER_RE = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def parse_numeric(raw: Any) -> float:
    """
    Coerce user or producer input into a finite number.

    Strings have their thousands separators stripped and their leading
    decimal number is used (``"45%" -> 45``, ``"120 TFLOPS" -> 120``).
    Anything without a leading number (including booleans, ``None``, NaN
    and infinities) becomes ``0.0``.

    Args:
        raw: Value typed into the editor or emitted by the producer

    Returns:
        Parsed float, or 0.0
    """
    if isinstance(raw, bool) or raw is None:
        return 0.0
    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        match = _LEADING_NUMBER_RE.match(raw.replace(",", ""))
        if match is None:
            return 0.0
        value = float(match.group())
    else:
        return 0.0
    return value if math.isfinite(value) else 0.0


def format_number(value: float) -> str:
    """
    Format a value with thousands grouping.

    Whole numbers lose their decimal part, everything else keeps up to three
    decimals with trailing zeros removed (``1250000 -> "1,250,000"``,
    ``2.25 -> "2.25"``).
    """
    if float(value).is_integer():
        return f"{int(value):,}"
    text = f"{value:,.3f}".rstrip("0").rstrip(".")
    return text


def is_hex_color(value: Any) -> bool:
    """Return True for ``#rgb``, ``#rgba``, ``#rrggbb`` and ``#rrggbbaa`` strings."""
    return isinstance(value, str) and bool(_HEX_COLOR_RE.match(value))


def generate_section_id(existing: Collection[str]) -> str:
    """
    Generate a section id that does not collide with any id in *existing*.

    Args:
        existing: Ids already used by the document

    Returns:
        A fresh id of the form ``s-<8 hex chars>``
    """
    while True:
        candidate = f"s-{uuid.uuid4().hex[:8]}"
        if candidate not in existing:
            return candidate


def truncate_text(text: str, max_length: int = 200, suffix: str = "...") -> str:
    """
    Truncate text to maximum length.

    Args:
        text: Text to truncate
        max_length: Maximum length
        suffix: Suffix to add if truncated

    Returns:
        Truncated text
    """
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix
