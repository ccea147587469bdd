from __future__ import annotations

import math
import statistics
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..models.group import ComputedRow, Group, GroupStats, Status
from ..models.month import MonthColumn
from .numbers import parse_number, safe_text

"""Six-sigma baseline statistics per group.

For a reference month the history is the group's values in the months strictly
before it (optionally without zeros, optionally only the most recent N). The
reference value is classified by its z-score against the history:

    |z| <= 2 -> Aceitável, |z| <= 3 -> Alerta, |z| > 3 -> Fora

z is undefined (status "Sem histórico") when there are fewer than two history
values or sigma == 0. LCL/UCL = mean -/+ 3 sigma.

Every parameter change recomputes from scratch; there is no cached path.
"""

__all__ = [
    "SIGMA_LIMIT",
    "WARNING_LIMIT",
    "mean",
    "sample_stdev",
    "status_from_z",
    "resolve_reference",
    "normalize_window",
    "compute_stats",
    "compute_rows",
    "month_cell_class",
    "sigma_bands",
    "Kpis",
    "compute_kpis",
    "MonthTotals",
    "month_totals",
    "total_cell_class",
    "Diagnostics",
    "diagnostics",
]

WARNING_LIMIT = 2.0
SIGMA_LIMIT = 3.0


def mean(values: Iterable[float]) -> float | None:
    xs = [v for v in values if v is not None and math.isfinite(v)]
    if not xs:
        return None
    return statistics.fmean(xs)


def sample_stdev(values: Iterable[float]) -> float | None:
    """Sample standard deviation (n - 1); None with fewer than two values."""
    xs = [v for v in values if v is not None and math.isfinite(v)]
    if len(xs) < 2:
        return None
    return statistics.stdev(xs)


def status_from_z(z: float | None) -> Status:
    if z is None or not math.isfinite(z):
        return Status.NO_HISTORY
    a = abs(z)
    if a <= WARNING_LIMIT:
        return Status.ACCEPTABLE
    if a <= SIGMA_LIMIT:
        return Status.WARNING
    return Status.OUT_OF_RANGE


def resolve_reference(months: Sequence[MonthColumn], label: str | None) -> tuple[int, str]:
    """Index and label of the reference month; unknown/blank label -> last month."""
    if not months:
        return (-1, "")
    wanted = safe_text(label)
    if wanted:
        for i, m in enumerate(months):
            if m.label == wanted:
                return (i, m.label)
    return (len(months) - 1, months[-1].label)


def normalize_window(value: Any) -> int | None:
    """Window size N >= 2 (floored), or None for an unbounded history."""
    n = parse_number(value)
    if n is not None and n >= 2:
        return int(math.floor(n))
    return None


def compute_stats(
    group: Group,
    months: Sequence[MonthColumn],
    *,
    reference_label: str | None = None,
    window: int | None = None,
    ignore_zeros: bool = False,
) -> GroupStats:
    """Compute mean, sigma, control limits, z and status for one group.

    A month in which the group has no parsed value is not history (it is not
    treated as zero); an absent reference value counts as 0.

    Args:
        group: aggregated group (values keyed by month label)
        months: ordered months of the active metric
        reference_label: month being validated (default/unknown -> last month)
        window: keep only the N most recent eligible history values (N >= 2)
        ignore_zeros: exclude zero values from the history

    Returns:
        GroupStats; ``history`` holds the values used for mean/sigma
    """
    ref_idx, _ = resolve_reference(months, reference_label)
    if ref_idx < 0:
        return GroupStats(
            ref_val=0.0, mean=None, sigma=None, lcl=None, ucl=None, z=None,
            status=Status.NO_HISTORY,
        )

    # months without any parsed value stay None: excluded from history, 0 as reference
    all_values = [group.values.get(m.label) for m in months]

    history: list[float] = []
    for v in all_values[:ref_idx]:
        if v is None or not math.isfinite(v):
            continue
        if ignore_zeros and v == 0:
            continue
        history.append(v)
    if window is not None and window >= 2 and len(history) > window:
        history = history[-window:]

    mu = mean(history)
    sigma = sample_stdev(history)
    ref_val = all_values[ref_idx]
    if ref_val is None or not math.isfinite(ref_val):
        ref_val = 0.0

    z = None
    if mu is not None and sigma is not None and sigma != 0:
        z = (ref_val - mu) / sigma

    lcl = ucl = None
    if mu is not None and sigma is not None:
        lcl = mu - SIGMA_LIMIT * sigma
        ucl = mu + SIGMA_LIMIT * sigma

    return GroupStats(
        ref_val=ref_val,
        mean=mu,
        sigma=sigma,
        lcl=lcl,
        ucl=ucl,
        z=z,
        status=status_from_z(z),
        history=tuple(history),
    )


def compute_rows(
    groups: Iterable[Group],
    months: Sequence[MonthColumn],
    *,
    reference_label: str | None = None,
    window: int | None = None,
    ignore_zeros: bool = False,
) -> list[ComputedRow]:
    """Project every group into a ComputedRow for the given parameters."""
    _, ref_label = resolve_reference(months, reference_label)
    return [
        ComputedRow(
            group=g,
            stats=compute_stats(
                g, months, reference_label=ref_label, window=window, ignore_zeros=ignore_zeros
            ),
            reference_label=ref_label,
        )
        for g in groups
    ]


def month_cell_class(value: float | None, mu: float | None, sigma: float | None) -> str:
    """Class of a month value against the group's own band: ok | warn | danger | na."""
    if value is None or mu is None or sigma is None or sigma == 0:
        return "na"
    a = abs((value - mu) / sigma)
    if a <= WARNING_LIMIT:
        return "ok"
    if a <= SIGMA_LIMIT:
        return "warn"
    return "danger"


def sigma_bands(mu: float | None, sigma: float | None) -> list[tuple[float, float]] | None:
    """(low, high) ranges for +-1, +-2 and +-3 sigma; None without a baseline."""
    if mu is None or sigma is None:
        return None
    return [(mu - k * sigma, mu + k * sigma) for k in (1, 2, 3)]


@dataclass(frozen=True)
class Kpis:
    total: int
    acceptable: int
    warning: int
    out_of_range: int
    no_history: int
    average_z: float | None

    def as_counts(self) -> dict[str, int]:
        return {
            Status.ACCEPTABLE.name: self.acceptable,
            Status.WARNING.name: self.warning,
            Status.OUT_OF_RANGE.name: self.out_of_range,
            Status.NO_HISTORY.name: self.no_history,
        }


def compute_kpis(rows: Sequence[ComputedRow]) -> Kpis:
    counts = {s: 0 for s in Status}
    for r in rows:
        counts[r.status] += 1
    return Kpis(
        total=len(rows),
        acceptable=counts[Status.ACCEPTABLE],
        warning=counts[Status.WARNING],
        out_of_range=counts[Status.OUT_OF_RANGE],
        no_history=counts[Status.NO_HISTORY],
        average_z=mean(r.z for r in rows if r.z is not None),
    )


def total_cell_class(series: Sequence[float], value: float) -> str:
    """Class of a monthly total against the non-zero totals of the same series.

    Only ok/warn are produced; zero totals are "na".
    """
    if value is None or not math.isfinite(value) or value == 0:
        return "na"
    xs = [x for x in series if x is not None and math.isfinite(x) and x != 0]
    if len(xs) < 2:
        return "ok"
    mu = mean(xs)
    sd = sample_stdev(xs)
    if mu is None or sd is None or sd == 0:
        return "ok"
    return "warn" if abs((value - mu) / sd) > WARNING_LIMIT else "ok"


@dataclass(frozen=True)
class MonthTotals:
    labels: list[str]
    all_rows: dict[str, float]
    out_of_range: dict[str, float]
    warning: dict[str, float]
    all_classes: dict[str, str] = field(default_factory=dict)
    warning_classes: dict[str, str] = field(default_factory=dict)


def month_totals(rows: Sequence[ComputedRow], months: Sequence[MonthColumn]) -> MonthTotals:
    labels = [m.label for m in months]
    sums_all = {lab: 0.0 for lab in labels}
    sums_out = {lab: 0.0 for lab in labels}
    sums_warn = {lab: 0.0 for lab in labels}
    for r in rows:
        for lab in labels:
            v = r.values.get(lab) or 0.0
            sums_all[lab] += v
            if r.status is Status.OUT_OF_RANGE:
                sums_out[lab] += v
            elif r.status is Status.WARNING:
                sums_warn[lab] += v
    all_series = [sums_all[lab] for lab in labels]
    warn_series = [sums_warn[lab] for lab in labels]
    return MonthTotals(
        labels=labels,
        all_rows=sums_all,
        out_of_range=sums_out,
        warning=sums_warn,
        all_classes={lab: total_cell_class(all_series, sums_all[lab]) for lab in labels},
        warning_classes={lab: total_cell_class(warn_series, sums_warn[lab]) for lab in labels},
    )


@dataclass(frozen=True)
class Diagnostics:
    groups: int
    months: int
    group_by: list[str]
    extra_columns: int
    visible_columns: int
    no_history: int
    out_of_range: int
    top_out_of_range: list[tuple[str, int, int]]  # (verba, fora, total)


def diagnostics(
    rows: Sequence[ComputedRow],
    *,
    months: int,
    group_by: Sequence[str],
    extra_columns: int,
    visible_columns: int,
    top: int = 5,
) -> Diagnostics:
    by_verba: dict[str, list[int]] = {}
    for r in rows:
        k = r.verba_key or "Sem verba"
        entry = by_verba.setdefault(k, [0, 0])
        entry[1] += 1
        if r.status is Status.OUT_OF_RANGE:
            entry[0] += 1
    # ties keep first-seen order
    ranked = sorted(by_verba.items(), key=lambda kv: -kv[1][0])
    return Diagnostics(
        groups=len(rows),
        months=months,
        group_by=list(group_by),
        extra_columns=extra_columns,
        visible_columns=visible_columns,
        no_history=sum(1 for r in rows if r.status is Status.NO_HISTORY),
        out_of_range=sum(1 for r in rows if r.status is Status.OUT_OF_RANGE),
        top_out_of_range=[(k, v[0], v[1]) for k, v in ranked[:top]],
    )
