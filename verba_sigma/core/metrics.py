from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

from ..models.month import MonthDescriptor
from .numbers import parse_number

"""Numeric metric detection.

A month block may carry metrics that are not quantities (payment dates). A
metric is kept when, over a sample of rows x months, at least half of the
attempted cells parse as numbers. "Valor" (amount) is always offered first.
"""

__all__ = [
    "AMOUNT_METRIC",
    "is_date_like_metric",
    "numeric_ratio",
    "select_numeric_metrics",
    "metric_options",
    "choose_metric",
]

AMOUNT_METRIC = "Valor"

SAMPLE_ROWS = 80
SAMPLE_MONTHS = 8
MIN_NUMERIC_RATIO = 0.50

_DATE_WORD_RE = re.compile(r"\b(dt|data)\b", re.IGNORECASE)
_PGTO_RE = re.compile(r"pgto", re.IGNORECASE)


def is_date_like_metric(metric: str) -> bool:
    return bool(_DATE_WORD_RE.search(metric) or _PGTO_RE.search(metric))


def numeric_ratio(
    records: Sequence[Mapping[str, Any]],
    months: Sequence[MonthDescriptor],
    metric: str,
) -> float | None:
    """Share of sampled cells of ``metric`` that parse as numbers.

    Returns None when no cell could be attempted (metric absent from the sample).
    """
    ok = 0
    total = 0
    for record in records:
        for month in months:
            header = month.metrics.get(metric)
            if not header:
                continue
            total += 1
            if parse_number(record.get(header)) is not None:
                ok += 1
    if total == 0:
        return None
    return ok / total


def select_numeric_metrics(
    records: Sequence[Mapping[str, Any]],
    months: Sequence[MonthDescriptor],
    metrics: Sequence[str],
    *,
    sample_rows: int = SAMPLE_ROWS,
    sample_months: int = SAMPLE_MONTHS,
    min_ratio: float = MIN_NUMERIC_RATIO,
) -> list[str]:
    sample = list(records[:sample_rows])
    sample_m = list(months[:sample_months])
    kept: list[str] = []
    for metric in metrics:
        if is_date_like_metric(metric):
            continue
        ratio = numeric_ratio(sample, sample_m, metric)
        if ratio is not None and ratio >= min_ratio:
            kept.append(metric)

    if AMOUNT_METRIC in kept:
        return [AMOUNT_METRIC] + [m for m in kept if m != AMOUNT_METRIC]
    return kept


def metric_options(
    records: Sequence[Mapping[str, Any]],
    months: Sequence[MonthDescriptor],
    metrics: Sequence[str],
) -> list[str]:
    """Selectable metrics; never empty when at least one metric name exists."""
    options = select_numeric_metrics(records, months, metrics)
    if options:
        return options
    if AMOUNT_METRIC in metrics:
        return [AMOUNT_METRIC]
    return list(metrics[:1])


def choose_metric(options: Sequence[str], *preferred: str | None) -> str:
    """First preferred metric present in options, else Valor, else the first option."""
    for p in preferred:
        if p and p in options:
            return p
    if AMOUNT_METRIC in options:
        return AMOUNT_METRIC
    return options[0] if options else ""
