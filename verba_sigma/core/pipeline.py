from __future__ import annotations

import functools
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from ..models.group import ComputedRow, Status
from .columns import FilterMode
from .numbers import collation_key, safe_text

"""Filter / sort pipeline over computed rows.

Steps run in a fixed order: verba -> free-text search -> status -> z bounds ->
extra column filters -> sort. The input list is never mutated.
"""

__all__ = [
    "ASCENDING",
    "DESCENDING",
    "ExtraFilter",
    "FilterCriteria",
    "SortState",
    "sort_value",
    "is_sort_key",
    "apply_sort",
    "apply_pipeline",
]

ASCENDING = 1
DESCENDING = -1

MONTH_PREFIX = "m:"
EXTRA_PREFIX = "extra:"

_TEXT_KEYS = ("verba_key", "group_label", "code", "description")
_NUMERIC_KEYS = ("ref_val", "mean", "sigma", "lcl", "ucl", "z")


@dataclass(frozen=True)
class ExtraFilter:
    value: str
    mode: FilterMode = FilterMode.EQUALS


@dataclass(frozen=True)
class FilterCriteria:
    verba: str = ""
    search: str = ""
    status: Status | None = None
    min_z: float | None = None
    max_z: float | None = None
    extra: Mapping[str, ExtraFilter] = field(default_factory=dict)


@dataclass(frozen=True)
class SortState:
    key: str | None = None
    direction: int = ASCENDING

    def toggle(self, key: str) -> SortState:
        """Same key flips the direction; a new key starts ascending."""
        if not key:
            return self
        if key == self.key:
            return replace(self, direction=-self.direction)
        return SortState(key=key, direction=ASCENDING)


def _finite_or_none(value: Any) -> float | None:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
        return float(value)
    return None


def sort_value(row: ComputedRow, key: str) -> float | str | None:
    """Value of ``row`` for a sort key; None means undefined (sorted last)."""
    if key.startswith(MONTH_PREFIX):
        return _finite_or_none(row.values.get(key[len(MONTH_PREFIX):]))
    if key.startswith(EXTRA_PREFIX):
        return safe_text(row.column_value(key[len(EXTRA_PREFIX):])).lower()
    if key in _NUMERIC_KEYS:
        return _finite_or_none(getattr(row, key))
    if key == "status":
        return row.status.value.lower()
    if key in _TEXT_KEYS:
        return safe_text(getattr(row, key)).lower()
    raise ValueError(f"unknown sort key: {key!r}")


def is_sort_key(key: str) -> bool:
    """True for the fixed keys and for non-empty m:/extra: keys."""
    for prefix in (MONTH_PREFIX, EXTRA_PREFIX):
        if key.startswith(prefix):
            return len(key) > len(prefix)
    return key == "status" or key in _NUMERIC_KEYS or key in _TEXT_KEYS


def _compare(va: float | str, vb: float | str) -> int:
    na = isinstance(va, float)
    nb = isinstance(vb, float)
    if na and nb:
        return (va > vb) - (va < vb)
    ka = collation_key(va if not na else str(va))
    kb = collation_key(vb if not nb else str(vb))
    return (ka > kb) - (ka < kb)


def apply_sort(rows: Sequence[ComputedRow], sort: SortState) -> list[ComputedRow]:
    """Stable sort; undefined values always last regardless of direction."""
    if not sort.key:
        return list(rows)
    key = sort.key
    direction = sort.direction if sort.direction in (ASCENDING, DESCENDING) else ASCENDING
    keyed = [(sort_value(r, key), r) for r in rows]

    def cmp(a: tuple[Any, ComputedRow], b: tuple[Any, ComputedRow]) -> int:
        va, vb = a[0], b[0]
        if va is None and vb is None:
            return 0
        if va is None:
            return 1
        if vb is None:
            return -1
        return _compare(va, vb) * direction

    return [r for _, r in sorted(keyed, key=functools.cmp_to_key(cmp))]


def _haystack(row: ComputedRow, extra_columns: Sequence[str] | None) -> str:
    cols = extra_columns if extra_columns is not None else [*row.group.group_by, *row.extras]
    extra_text = " ".join(safe_text(row.column_value(c)) for c in cols)
    parts = [row.verba_key, row.group_label, row.code, row.description, row.status.value, extra_text]
    return " ".join(safe_text(p) for p in parts).lower()


def apply_pipeline(
    rows: Sequence[ComputedRow],
    criteria: FilterCriteria,
    sort: SortState | None = None,
    extra_columns: Sequence[str] | None = None,
) -> list[ComputedRow]:
    """Filter and sort computed rows.

    Args:
        rows: computed rows (not modified)
        criteria: active filters; blank values are ignored
        sort: sort state (None -> keep order)
        extra_columns: descriptive columns included in the free-text search
            (None -> the grouping columns plus the row's extras)
    """
    out = list(rows)

    verba = safe_text(criteria.verba)
    if verba:
        out = [r for r in out if r.verba_key == verba]

    q = safe_text(criteria.search).lower()
    if q:
        out = [r for r in out if q in _haystack(r, extra_columns)]

    if criteria.status is not None:
        out = [r for r in out if r.status is criteria.status]

    if criteria.min_z is not None:
        out = [r for r in out if r.z is not None and r.z >= criteria.min_z]
    if criteria.max_z is not None:
        out = [r for r in out if r.z is not None and r.z <= criteria.max_z]

    for col, flt in criteria.extra.items():
        value = safe_text(flt.value)
        if not value:
            continue
        if flt.mode is FilterMode.CONTAINS:
            needle = value.lower()
            out = [r for r in out if needle in safe_text(r.column_value(col)).lower()]
        else:
            out = [r for r in out if safe_text(r.column_value(col)) == value]

    if sort is not None:
        out = apply_sort(out, sort)
    return out
