from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the verba six-sigma validator.

Separate from the loader in verba_sigma/config/loader.py so services can depend
on the typed configuration without importing YAML/jsonschema.
"""


@dataclass(frozen=True)
class AnalysisConfig:
    """Statistics parameters (reference month, history window, zero handling)."""
    metric: str | None = None  # None -> saved metric, else Valor, else first
    reference_month: str | None = None  # "MMM/YY"; None -> last month
    window: int | None = None  # None -> whole history
    ignore_zeros: bool = False


@dataclass(frozen=True)
class GroupingConfig:
    group_by: list[str] | None = None  # None -> saved selection, else defaults
    visible_columns: list[str] | None = None


@dataclass(frozen=True)
class FilterConfig:
    verba: str | None = None
    search: str | None = None
    status: str | None = None  # label ("Fora") or member name ("OUT_OF_RANGE")
    min_z: float | None = None
    max_z: float | None = None
    extra: dict[str, tuple[str, str]] = field(default_factory=dict)  # column -> (value, mode)


@dataclass(frozen=True)
class SortConfig:
    key: str | None = None
    descending: bool = False


@dataclass(frozen=True)
class SigmaConfig:
    """Root configuration object."""
    source_directory: str  # directory scanned for .xlsx exports
    output_directory: str = "./out"
    state_directory: str | None = None  # None -> no persistence between runs
    log_directory: str = "./logs"
    export_formats: tuple[str, ...] = ("txt", "xlsx")
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    grouping: GroupingConfig = field(default_factory=GroupingConfig)
    filters: FilterConfig = field(default_factory=FilterConfig)
    sort: SortConfig = field(default_factory=SortConfig)
