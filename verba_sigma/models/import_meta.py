from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

from .month import MonthDescriptor, MonthIndex

"""Import metadata and the assembled result of one workbook import.

ImportMeta is persisted alongside the raw records so that a later run can
restore the previous import without re-reading the spreadsheet.
"""

__all__ = [
    "IMPORT_VERSION",
    "ImportMeta",
    "ImportedWorkbook",
]

IMPORT_VERSION = "v2.0"


@dataclass(frozen=True)
class ImportMeta:
    imported_at: str  # ISO8601 UTC
    source_file: str
    sheet: str
    base_months: list[MonthDescriptor]
    metric_options: list[str]
    metric: str
    code_column: str
    description_column: str
    version: str = IMPORT_VERSION

    @staticmethod
    def create(
        source_file: str,
        sheet: str,
        base_months: list[MonthDescriptor],
        metric_options: list[str],
        metric: str,
        code_column: str,
        description_column: str,
    ) -> ImportMeta:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ImportMeta(
            imported_at=ts,
            source_file=source_file,
            sheet=sheet,
            base_months=base_months,
            metric_options=metric_options,
            metric=metric,
            code_column=code_column,
            description_column=description_column,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> ImportMeta:
        """Rebuild from a persisted dict. Raises KeyError/TypeError on malformed input."""
        months = [
            MonthDescriptor(
                key=m["key"],
                label=m["label"],
                month=int(m["month"]),
                year=int(m["year"]),
                metrics=dict(m.get("metrics") or {}),
            )
            for m in data.get("base_months") or []
        ]
        return ImportMeta(
            imported_at=str(data.get("imported_at", "")),
            source_file=str(data.get("source_file", "")),
            sheet=str(data.get("sheet", "")),
            base_months=months,
            metric_options=list(data.get("metric_options") or []),
            metric=str(data.get("metric", "")),
            code_column=str(data["code_column"]),
            description_column=str(data["description_column"]),
            version=str(data.get("version", IMPORT_VERSION)),
        )


@dataclass(frozen=True)
class ImportedWorkbook:
    """Everything derived from one import, assembled before it replaces prior state."""
    records: list[dict[str, Any]]
    columns: list[str]
    code_column: str
    description_column: str
    month_index: MonthIndex
    metric_options: list[str]
    base_columns: list[str]  # descriptive columns available for grouping
    extra_columns: list[str] = field(default_factory=list)  # sorted descriptive columns
    meta: ImportMeta | None = None
