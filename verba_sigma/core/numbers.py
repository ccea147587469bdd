from __future__ import annotations

import math
import numbers
import unicodedata
from typing import Any

"""Locale-aware number parsing/formatting and text helpers.

Payroll exports mix Brazilian ("1.234,56") and international ("1,234.56")
notations in the same workbook, and cells may already be numeric. The parser
disambiguates separators by position: when both appear, the one appearing last
is the decimal separator.
"""

__all__ = [
    "parse_number",
    "format_decimal",
    "format_money",
    "safe_text",
    "collation_key",
]


def safe_text(value: Any) -> str:
    """Trimmed text of a cell (None -> "", integral floats without '.0')."""
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


def parse_number(value: Any) -> float | None:
    """Parse a raw cell into a float, or None when it carries no numeric value.

    None (not 0) is returned for blanks, text, dates and non-finite numbers so
    callers can exclude the cell from sums and history.

    >>> parse_number("1.234,56")
    1234.56
    >>> parse_number("1,234.56")
    1234.56
    >>> parse_number("1234,56")
    1234.56
    >>> parse_number("") is None
    True
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        f = float(value)
        return f if math.isfinite(f) else None
    if not isinstance(value, str):
        return None
    s = "".join(value.split())
    if not s or "_" in s:
        return None

    has_comma = "," in s
    has_dot = "." in s
    if has_comma and has_dot:
        if s.rfind(",") > s.rfind("."):
            normalized = s.replace(".", "").replace(",", ".", 1)
        else:
            normalized = s.replace(",", "")
    elif has_comma:
        normalized = s.replace(",", ".", 1)
    else:
        normalized = s.replace(",", "")

    try:
        n = float(normalized)
    except ValueError:
        return None
    return n if math.isfinite(n) else None


def _finite(value: float | None) -> bool:
    return value is not None and math.isfinite(value)


def format_decimal(value: float | None, places: int = 2) -> str:
    """Fixed decimals with comma separator, no grouping (1234.5 -> '1234,50')."""
    if not _finite(value):
        return ""
    return f"{value:.{places}f}".replace(".", ",")


def format_money(value: float | None) -> str:
    """pt-BR money style without currency symbol (1234.5 -> '1.234,50')."""
    if not _finite(value):
        return ""
    text = f"{value:,.2f}"
    # 1,234.50 -> 1.234,50
    return text.replace(",", "\x00").replace(".", ",").replace("\x00", ".")


def collation_key(text: str) -> tuple[str, str]:
    """Accent and case insensitive sort key; ties are broken by the raw text."""
    decomposed = unicodedata.normalize("NFD", text)
    folded = "".join(c for c in decomposed if unicodedata.category(c) != "Mn").casefold()
    return (folded, text)
