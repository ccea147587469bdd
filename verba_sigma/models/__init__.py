"""Domain models for the verba six-sigma validator."""

from .error_record import ErrorRecord
from .group import NO_GROUP_LABEL, ComputedRow, Group, GroupStats, Status
from .import_meta import ImportedWorkbook, ImportMeta
from .month import MonthColumn, MonthDescriptor, MonthHeader, MonthIndex
from .processing_result import FileStat, ProcessingResult

__all__ = [
    # Month index
    "MonthHeader",
    "MonthDescriptor",
    "MonthColumn",
    "MonthIndex",
    # Aggregation / statistics
    "Group",
    "GroupStats",
    "ComputedRow",
    "Status",
    "NO_GROUP_LABEL",
    # Import
    "ImportMeta",
    "ImportedWorkbook",
    # Processing
    "ErrorRecord",
    "FileStat",
    "ProcessingResult",
]
