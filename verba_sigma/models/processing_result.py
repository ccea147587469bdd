from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

"""Processing result models for batch validation runs.

FileStat carries the per-workbook outcome; ProcessingResult aggregates them for
the SUMMARY line.
"""


@dataclass(frozen=True)
class FileStat:
    """Per-file validation statistics."""
    file_name: str
    status: str  # success/failed
    groups: int  # groups after filtering
    elapsed_seconds: float
    status_counts: dict[str, int] = field(default_factory=dict)  # Status.name -> count
    exports: tuple[str, ...] = ()  # written export paths
    error: str | None = None


@dataclass(frozen=True)
class ProcessingResult:
    success_files: int
    failed_files: int
    total_groups: int
    acceptable: int
    warning: int
    out_of_range: int
    no_history: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    file_stats: list[FileStat] | None = None

    @property
    def total_files(self) -> int:
        return self.success_files + self.failed_files
