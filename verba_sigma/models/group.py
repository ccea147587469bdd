from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

"""Group / ComputedRow domain models and the Status enum.

A Group is the aggregation unit (one verba combined with one distinct value per
grouping column). A ComputedRow is a Group enriched with the statistics for the
currently selected reference month / window / metric. ComputedRows are pure
projections and are rebuilt on every parameter change.
"""

__all__ = [
    "Status",
    "Group",
    "GroupStats",
    "ComputedRow",
    "NO_GROUP_LABEL",
]

NO_GROUP_LABEL = "(Sem grupo)"


class Status(Enum):
    """Classification of a reference value against its history.

    - ACCEPTABLE: |z| <= 2
    - WARNING: 2 < |z| <= 3
    - OUT_OF_RANGE: |z| > 3
    - NO_HISTORY: z undefined (insufficient history or sigma == 0)
    """
    ACCEPTABLE = "Aceitável"
    WARNING = "Alerta"
    OUT_OF_RANGE = "Fora"
    NO_HISTORY = "Sem histórico"

    @classmethod
    def from_label(cls, text: str) -> Status:
        """Resolve a status from its display label or member name."""
        raw = (text or "").strip()
        for member in cls:
            if raw == member.value or raw.upper() == member.name:
                return member
        raise ValueError(f"unknown status: {text!r}")


@dataclass(frozen=True)
class Group:
    verba_key: str  # "<code> - <description>"
    code: str
    description: str
    group_parts: tuple[str, ...]  # one value per grouping column (original case)
    group_by: tuple[str, ...]  # grouping columns this group was built with
    extras: dict[str, str] = field(default_factory=dict)  # first-seen non-grouping descriptive values
    values: dict[str, float] = field(default_factory=dict)  # month label -> sum

    @property
    def group_label(self) -> str:
        parts = [p for p in self.group_parts if p]
        return " | ".join(parts) if parts else NO_GROUP_LABEL

    def value_for(self, label: str) -> float | None:
        return self.values.get(label)

    def column_value(self, column: str) -> str:
        """Descriptive value of a column; grouping columns read the group part."""
        if column in self.group_by:
            return self.group_parts[self.group_by.index(column)]
        return self.extras.get(column, "")


@dataclass(frozen=True)
class GroupStats:
    """Statistics of one group for one parameter set."""
    ref_val: float
    mean: float | None
    sigma: float | None
    lcl: float | None
    ucl: float | None
    z: float | None
    status: Status
    history: tuple[float, ...] = ()  # values actually used for mean/sigma


@dataclass(frozen=True)
class ComputedRow:
    group: Group
    stats: GroupStats
    reference_label: str = ""

    # flat accessors used by the filter/sort pipeline and exports
    @property
    def verba_key(self) -> str:
        return self.group.verba_key

    @property
    def group_label(self) -> str:
        return self.group.group_label

    @property
    def code(self) -> str:
        return self.group.code

    @property
    def description(self) -> str:
        return self.group.description

    @property
    def extras(self) -> dict[str, str]:
        return self.group.extras

    def column_value(self, column: str) -> str:
        return self.group.column_value(column)

    @property
    def values(self) -> dict[str, float]:
        return self.group.values

    @property
    def ref_val(self) -> float:
        return self.stats.ref_val

    @property
    def mean(self) -> float | None:
        return self.stats.mean

    @property
    def sigma(self) -> float | None:
        return self.stats.sigma

    @property
    def lcl(self) -> float | None:
        return self.stats.lcl

    @property
    def ucl(self) -> float | None:
        return self.stats.ucl

    @property
    def z(self) -> float | None:
        return self.stats.z

    @property
    def status(self) -> Status:
        return self.stats.status
