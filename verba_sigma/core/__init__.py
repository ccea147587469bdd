"""Pure computation stages: headers -> month index -> metrics -> groups -> statistics -> pipeline."""

from .aggregation import Aggregation, aggregate_groups, verba_options
from .headers import build_month_index, months_for_metric, parse_month_header
from .metrics import choose_metric, metric_options, select_numeric_metrics
from .numbers import parse_number
from .pipeline import ExtraFilter, FilterCriteria, SortState, apply_pipeline
from .statistics import compute_rows, compute_stats

__all__ = [
    "parse_month_header",
    "build_month_index",
    "months_for_metric",
    "select_numeric_metrics",
    "metric_options",
    "choose_metric",
    "parse_number",
    "Aggregation",
    "aggregate_groups",
    "verba_options",
    "compute_stats",
    "compute_rows",
    "ExtraFilter",
    "FilterCriteria",
    "SortState",
    "apply_pipeline",
]
