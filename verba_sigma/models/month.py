from __future__ import annotations

from dataclasses import dataclass, field

"""Month domain models for the verba six-sigma validator.

Monthly columns in payroll exports are encoded in the header text
("JUN/25 - Valor", "2026-02 - Hora"). These dataclasses are the typed
projections of those headers consumed by aggregation and statistics.
"""

__all__ = [
    "MonthHeader",
    "MonthDescriptor",
    "MonthColumn",
    "MonthIndex",
]


@dataclass(frozen=True)
class MonthHeader:
    """Result of a successful header match (one column = one month/metric pair)."""
    key: str  # "YYYY-MM"
    label: str  # "MMM/YY"
    month: int  # 1..12
    year: int
    metric: str  # normalized metric name (Valor, Hora, Dt Pgto, ...)
    header: str  # original header text


@dataclass(frozen=True)
class MonthDescriptor:
    """One distinct calendar month observed in the headers.

    A month may carry several metrics (e.g. "JUN/25 - Hora" and "JUN/25 - Valor"),
    so ``metrics`` maps metric name -> source header.
    """
    key: str
    label: str
    month: int
    year: int
    metrics: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class MonthColumn:
    """A month projected onto the active metric.

    ``header`` is None when the active metric is absent for this month.
    """
    key: str
    label: str
    month: int
    year: int
    header: str | None


@dataclass(frozen=True)
class MonthIndex:
    months: list[MonthDescriptor]  # sorted by key
    metrics: list[str]
    month_headers: set[str]  # raw headers recognized as month columns

    @property
    def labels(self) -> list[str]:
        return [m.label for m in self.months]
