from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from ..models.group import Group
from ..models.month import MonthColumn
from .columns import default_group_by
from .numbers import collation_key, parse_number, safe_text

"""Dynamic grouping of raw records with per-month sums.

A group is a verba ("<code> - <description>") combined with one value per
chosen grouping column. Keys are case-normalized; values keep the first-seen
spelling. Cells that do not parse as numbers are absent, never zero.
"""

__all__ = [
    "GROUP_KEY_SEPARATOR",
    "Aggregation",
    "group_key",
    "aggregate_groups",
    "verba_options",
]

logger = logging.getLogger(__name__)

GROUP_KEY_SEPARATOR = "|"


@dataclass(frozen=True)
class Aggregation:
    groups: list[Group]
    group_by: list[str]  # selection the groups were built with


def group_key(verba: str, parts: Sequence[str]) -> str:
    return verba.upper() + GROUP_KEY_SEPARATOR + GROUP_KEY_SEPARATOR.join(p.upper() for p in parts)


def aggregate_groups(
    records: Sequence[Mapping[str, Any]],
    *,
    code_column: str,
    description_column: str,
    months: Sequence[MonthColumn],
    group_by: Sequence[str] | None,
    extra_columns: Sequence[str],
    base_columns: Sequence[str] | None = None,
) -> Aggregation:
    """Aggregate records into one Group per distinct group key.

    Args:
        records: imported rows (column -> raw value)
        code_column / description_column: base columns forming the verba key
        months: months projected on the active metric (header None = absent)
        group_by: chosen grouping columns; empty/None -> default selection
        extra_columns: descriptive columns snapshotted from the first row of a group
            (grouping columns are kept in group_parts, not in extras)
        base_columns: candidates for the default grouping selection

    Returns:
        Aggregation with groups in first-seen order and the grouping used
    """
    chosen = list(group_by) if group_by else default_group_by(list(base_columns or []))
    if not records or not months:
        return Aggregation(groups=[], group_by=chosen)

    active_months = [m for m in months if m.header]

    order: list[str] = []
    heads: dict[str, tuple[str, str, str, tuple[str, ...], dict[str, str]]] = {}
    sums: dict[str, dict[str, float]] = {}

    for record in records:
        code = safe_text(record.get(code_column))
        desc = safe_text(record.get(description_column))
        vk = f"{code} - {desc}"
        parts = tuple(safe_text(record.get(c)) for c in chosen)
        key = group_key(vk, parts)

        if key not in heads:
            extras = {c: safe_text(record.get(c)) for c in extra_columns if c not in chosen}
            heads[key] = (vk, code, desc, parts, extras)
            sums[key] = {}
            order.append(key)
        values = sums[key]

        for m in active_months:
            v = parse_number(record.get(m.header))
            if v is None:
                continue
            values[m.label] = values.get(m.label, 0.0) + v

    groups = []
    for key in order:
        vk, code, desc, parts, extras = heads[key]
        groups.append(
            Group(
                verba_key=vk,
                code=code,
                description=desc,
                group_parts=parts,
                group_by=tuple(chosen),
                extras=extras,
                values=sums[key],
            )
        )
    logger.debug(
        "aggregated records=%d groups=%d group_by=%s months=%d",
        len(records), len(groups), chosen, len(active_months),
    )
    return Aggregation(groups=groups, group_by=chosen)


def verba_options(
    records: Sequence[Mapping[str, Any]], code_column: str, description_column: str
) -> list[str]:
    """Distinct verba keys (rows with neither code nor description are skipped)."""
    seen: set[str] = set()
    for r in records:
        code = safe_text(r.get(code_column))
        desc = safe_text(r.get(description_column))
        if not code and not desc:
            continue
        seen.add(f"{code} - {desc}")
    return sorted(seen, key=collation_key)
