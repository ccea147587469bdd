from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .numbers import collation_key, safe_text

"""Descriptive column detection and default selections.

Payroll exports differ in naming, so base columns (code, description) are
located by pattern, and default grouping / visible / filter columns are picked
from canonical names first, then keyword heuristics.
"""

__all__ = [
    "CODE_PATTERNS",
    "DESCRIPTION_PATTERNS",
    "FilterMode",
    "ExtraFilterSpec",
    "guess_column",
    "norm_key",
    "pick_columns_by_keys",
    "default_group_by",
    "default_visible_columns",
    "filter_columns",
    "classify_filter_column",
    "build_filter_specs",
    "restore_selection",
]

CODE_PATTERNS: tuple[str, ...] = (r"^c[oó]digo$", r"^codigo$", r"\bc[oó]d\b", r"\bcod\b")
DESCRIPTION_PATTERNS: tuple[str, ...] = (r"^descri[cç][aã]o$", r"descric", r"\bdescricao\b")

GROUP_KEYS_DEFAULT = ("empresa", "cpf")
VISIBLE_KEYS_DEFAULT = ("cr", "clas", "nome", "processo")
FILTER_KEYS_DEFAULT = ("cr", "clas")

_GROUP_HINTS = (
    r"estabelecimento",
    r"centro\s*de\s*custo",
    r"\bc\.?r\.?\b",
    r"matr",
    r"empresa",
)
_VISIBLE_HINTS = (
    r"empresa",
    r"estabelecimento",
    r"centro\s*de\s*custo",
    r"\bc\.?r\.?\b",
    r"processo",
    r"clas",
    r"matr",
    r"nome",
)
MAX_DEFAULT_GROUP_COLUMNS = 3
MAX_DEFAULT_VISIBLE_COLUMNS = 6

# categorical (equals) vs free-text (contains) thresholds
CATEGORICAL_MIN_DISTINCT = 2
CATEGORICAL_MAX_DISTINCT = 30
CATEGORICAL_MAX_LENGTH = 60
MAX_SUGGESTIONS = 200


class FilterMode(Enum):
    EQUALS = "select"
    CONTAINS = "contains"


@dataclass(frozen=True)
class ExtraFilterSpec:
    column: str
    mode: FilterMode
    options: list[str] = field(default_factory=list)  # choices (equals) or suggestions (contains)


def guess_column(headers: Iterable[object], patterns: Iterable[str]) -> str | None:
    """First header matching the earliest pattern that matches anything."""
    texts = [safe_text(h) for h in headers]
    for pat in patterns:
        rx = re.compile(pat, re.IGNORECASE)
        for col in texts:
            if rx.search(col):
                return col
    return None


def norm_key(text: object) -> str:
    return re.sub(r"[^a-z0-9]", "", safe_text(text).lower())


def pick_columns_by_keys(columns: Sequence[str], keys: Iterable[str]) -> list[str]:
    out: list[str] = []
    for k in keys:
        found = next((c for c in columns if norm_key(c) == k), None)
        if found is not None and found not in out:
            out.append(found)
    return out


def _pick_by_hints(columns: Sequence[str], hints: Sequence[str], limit: int) -> list[str]:
    regexes = [re.compile(h, re.IGNORECASE) for h in hints]
    return [c for c in columns if any(rx.search(c) for rx in regexes)][:limit]


def default_group_by(columns: Sequence[str]) -> list[str]:
    fixed = pick_columns_by_keys(columns, GROUP_KEYS_DEFAULT)
    if fixed:
        return fixed
    return _pick_by_hints(columns, _GROUP_HINTS, MAX_DEFAULT_GROUP_COLUMNS)


def default_visible_columns(columns: Sequence[str]) -> list[str]:
    fixed = pick_columns_by_keys(columns, VISIBLE_KEYS_DEFAULT)
    if fixed:
        return fixed
    return _pick_by_hints(columns, _VISIBLE_HINTS, MAX_DEFAULT_VISIBLE_COLUMNS)


def filter_columns(columns: Sequence[str], visible: Iterable[str]) -> list[str]:
    """Columns offered as extra filters: C.R./Clas. when present, else the visible ones."""
    fixed = pick_columns_by_keys(columns, FILTER_KEYS_DEFAULT)
    if fixed:
        return fixed
    return [c for c in visible if c in columns]


def classify_filter_column(values: Iterable[object]) -> FilterMode:
    """Score a column as categorical (EQUALS) or free text (CONTAINS).

    Categorical when it has between 2 and 30 distinct non-blank values and no
    value longer than 60 characters.
    """
    distinct = {safe_text(v) for v in values} - {""}
    max_len = max((len(v) for v in distinct), default=0)
    if (
        CATEGORICAL_MIN_DISTINCT <= len(distinct) <= CATEGORICAL_MAX_DISTINCT
        and max_len <= CATEGORICAL_MAX_LENGTH
    ):
        return FilterMode.EQUALS
    return FilterMode.CONTAINS


def build_filter_specs(
    rows: Iterable[Mapping[str, Any]], columns: Sequence[str]
) -> list[ExtraFilterSpec]:
    rows = list(rows)
    specs: list[ExtraFilterSpec] = []
    for col in columns:
        values = [safe_text(r.get(col)) for r in rows]
        mode = classify_filter_column(values)
        uniq = list(dict.fromkeys(v for v in values if v))
        if mode is FilterMode.EQUALS:
            options = sorted(uniq, key=collation_key)
        elif len(uniq) <= MAX_SUGGESTIONS:
            options = sorted(uniq, key=collation_key)
        else:
            options = []
        specs.append(ExtraFilterSpec(column=col, mode=mode, options=options))
    return specs


def restore_selection(saved: Iterable[str] | None, available: Sequence[str]) -> list[str] | None:
    """Keep the saved columns that still exist; None when nothing was saved."""
    if saved is None:
        return None
    return [c for c in saved if c in available]
