from __future__ import annotations

import re
from collections.abc import Callable, Iterable

from ..models.month import MonthColumn, MonthDescriptor, MonthHeader, MonthIndex
from .numbers import collation_key, safe_text

"""Month/metric header parsing and the month index.

Recognized header conventions (case-insensitive, whitespace tolerant):

- ``<MON>/<YY> - <metric>``  e.g. "JUN/25 - Valor", "JUN/25 - Dt Pgto"
- ``<YYYY>[-/]<MM> - <metric>``  e.g. "2026-02 - Valor"

Any other header is an ordinary descriptive column.
"""

__all__ = [
    "MONTHS_PT",
    "parse_month_header",
    "normalize_metric_name",
    "build_month_index",
    "months_for_metric",
]

MONTHS_PT: dict[str, int] = {
    "JAN": 1, "FEV": 2, "MAR": 3, "ABR": 4, "MAI": 5, "JUN": 6,
    "JUL": 7, "AGO": 8, "SET": 9, "OUT": 10, "NOV": 11, "DEZ": 12,
}
_ABBREV_BY_MONTH = {v: k for k, v in MONTHS_PT.items()}

_ABBREV_RE = re.compile(
    r"\b(" + "|".join(MONTHS_PT) + r")\s*/\s*(\d{2})\s*-\s*(.+)$"
)
_ISO_RE = re.compile(r"\b(20\d{2})\s*[-/]\s*(\d{2})\s*-\s*(.+)$")

_PAYMENT_DATE_MARKERS = ("DT PGTO", "DT. PGTO", "DATA PGTO", "PAGTO")


def _collapse(text: str) -> str:
    return " ".join(text.upper().split())


def normalize_metric_name(raw: str) -> str:
    """Map free metric text onto a canonical metric name.

    >>> normalize_metric_name("valor bruto")
    'Valor'
    >>> normalize_metric_name("HORAS EXTRAS")
    'Hora'
    >>> normalize_metric_name("adicional noturno")
    'Adicional noturno'
    """
    s = _collapse(safe_text(raw))
    if not s:
        return ""
    if "VALOR" in s:
        return "Valor"
    if "HORA" in s:
        return "Hora"
    if any(marker in s for marker in _PAYMENT_DATE_MARKERS):
        return "Dt Pgto"
    t = s.lower()
    return t[:1].upper() + t[1:]


def _month_header(year: int, month: int, label: str, metric_raw: str, header: str) -> MonthHeader:
    return MonthHeader(
        key=f"{year:04d}-{month:02d}",
        label=label,
        month=month,
        year=year,
        metric=normalize_metric_name(metric_raw),
        header=header,
    )


def _match_abbrev(normalized: str, header: str) -> MonthHeader | None:
    m = _ABBREV_RE.search(normalized)
    if not m:
        return None
    abbrev, yy, metric_raw = m.group(1), m.group(2), m.group(3)
    return _month_header(2000 + int(yy), MONTHS_PT[abbrev], f"{abbrev}/{yy}", metric_raw, header)


def _match_iso(normalized: str, header: str) -> MonthHeader | None:
    m = _ISO_RE.search(normalized)
    if not m:
        return None
    year, month = int(m.group(1)), int(m.group(2))
    if not 1 <= month <= 12:
        return None
    label = f"{_ABBREV_BY_MONTH[month]}/{str(year)[2:]}"
    return _month_header(year, month, label, m.group(3), header)


# Tried in order; the first matcher returning a MonthHeader wins.
_MATCHERS: tuple[Callable[[str, str], MonthHeader | None], ...] = (
    _match_abbrev,
    _match_iso,
)


def parse_month_header(header: object) -> MonthHeader | None:
    """Classify a header as a month/metric column (MonthHeader) or not (None)."""
    original = safe_text(header)
    if not original:
        return None
    normalized = _collapse(original)
    for matcher in _MATCHERS:
        result = matcher(normalized, original)
        if result is not None:
            return result
    return None


def build_month_index(headers: Iterable[object]) -> MonthIndex:
    """Build the chronologically ordered month list from all headers.

    Months are upserted by key and their metric -> header maps merged, so one
    month block carrying several metrics yields a single MonthDescriptor.
    """
    by_key: dict[str, MonthDescriptor] = {}
    metric_set: set[str] = set()
    month_headers: set[str] = set()

    for h in headers:
        info = parse_month_header(h)
        if info is None or not info.metric:
            continue
        month_headers.add(info.header)
        metric_set.add(info.metric)
        desc = by_key.get(info.key)
        if desc is None:
            desc = MonthDescriptor(
                key=info.key, label=info.label, month=info.month, year=info.year, metrics={}
            )
            by_key[info.key] = desc
        desc.metrics[info.metric] = info.header

    months = sorted(by_key.values(), key=lambda d: d.key)
    metrics = sorted(metric_set, key=collation_key)
    return MonthIndex(months=months, metrics=metrics, month_headers=month_headers)


def months_for_metric(months: Iterable[MonthDescriptor], metric: str) -> list[MonthColumn]:
    return [
        MonthColumn(
            key=m.key,
            label=m.label,
            month=m.month,
            year=m.year,
            header=m.metrics.get(metric),
        )
        for m in months
    ]
