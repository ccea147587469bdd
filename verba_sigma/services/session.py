from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..core.aggregation import aggregate_groups, verba_options
from ..core.columns import (
    CODE_PATTERNS,
    DESCRIPTION_PATTERNS,
    ExtraFilterSpec,
    build_filter_specs,
    default_group_by,
    default_visible_columns,
    filter_columns,
    guess_column,
    restore_selection,
)
from ..core.headers import build_month_index, months_for_metric
from ..core.metrics import choose_metric, metric_options
from ..core.numbers import collation_key
from ..core.pipeline import FilterCriteria, SortState, apply_pipeline
from ..core.statistics import (
    Diagnostics,
    Kpis,
    MonthTotals,
    compute_kpis,
    compute_rows,
    diagnostics,
    month_totals,
    resolve_reference,
)
from ..excel.reader import MissingBaseColumnsError, NoMonthColumnsError, load_payroll_sheet
from ..models.group import ComputedRow, Group
from ..models.import_meta import ImportedWorkbook, ImportMeta
from ..models.month import MonthColumn
from ..storage.state_store import (
    KEY_GROUP_BY,
    KEY_META,
    KEY_METRIC,
    KEY_RECORDS,
    KEY_VISIBLE_COLUMNS,
    StateStore,
)

"""Validation session: the single owner of application state.

The computation stages are pure; the session wires them together and decides
which stage to rebuild from when a parameter changes:

- import / restore        -> month index, metrics, columns, groups
- metric switch           -> months for metric, groups
- grouping change         -> groups
- any filter / reference  -> computed rows (``compute``)

An import is assembled entirely on locals and swapped in only when every step
succeeded, so a failed import leaves the previous state untouched.
"""

__all__ = [
    "ValidationParams",
    "ValidationView",
    "ValidationSession",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationParams:
    reference_month: str | None = None
    window: int | None = None
    ignore_zeros: bool = False
    criteria: FilterCriteria = field(default_factory=FilterCriteria)
    sort: SortState = field(default_factory=SortState)


@dataclass(frozen=True)
class ValidationView:
    reference_label: str
    months: list[MonthColumn]
    rows: list[ComputedRow]  # every group
    filtered: list[ComputedRow]  # after the filter/sort pipeline
    kpis: Kpis
    totals: MonthTotals
    diagnostics: Diagnostics


@dataclass(frozen=True)
class _Assembled:
    workbook: ImportedWorkbook
    metric: str
    months: list[MonthColumn]
    group_by: list[str]
    visible_columns: list[str]
    groups: list[Group]


class ValidationSession:
    def __init__(self, store: StateStore | None = None) -> None:
        self.store = store
        self.workbook: ImportedWorkbook | None = None
        self.metric: str = ""
        self.months: list[MonthColumn] = []
        self.group_by: list[str] = []
        self.visible_columns: list[str] = []
        self.groups: list[Group] = []

    # ------------------------------------------------------------------ import

    def import_workbook(
        self,
        path: Path,
        *,
        metric: str | None = None,
        group_by: Sequence[str] | None = None,
        visible_columns: Sequence[str] | None = None,
    ) -> ImportedWorkbook:
        """Import a payroll workbook, replacing the current state on success.

        Raises:
            ImportFailure: fatal import error (state unchanged)
        """
        sheet = load_payroll_sheet(path)
        assembled = self._assemble(
            records=sheet.data.rows,
            columns=sheet.data.columns,
            code_column=sheet.code_column,
            description_column=sheet.description_column,
            source_file=path.name,
            sheet_name=sheet.data.sheet_name,
            preferred_metrics=(metric, self._saved_metric()),
            group_by=group_by,
            visible_columns=visible_columns,
        )
        self._commit(assembled, persist_records=True)
        wb = assembled.workbook
        logger.info(
            "%s | Linhas: %d | Meses: %d | Métrica: %s",
            path.name, len(wb.records), len(wb.month_index.months), assembled.metric,
        )
        return wb

    def restore(self) -> bool:
        """Reload the previously imported records; False when there is no usable prior state."""
        if self.store is None:
            return False
        records = self.store.load(KEY_RECORDS, expected=list)
        if not records:
            return False
        meta_raw = self.store.load(KEY_META, expected=dict) or {}
        try:
            meta = ImportMeta.from_dict(meta_raw) if meta_raw else None
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("state: ignoring malformed import metadata: %s", e)
            meta = None

        columns = [str(c) for c in records[0].keys()] if isinstance(records[0], dict) else []
        code = (meta.code_column if meta else None) or guess_column(columns, CODE_PATTERNS)
        desc = (meta.description_column if meta else None) or guess_column(columns, DESCRIPTION_PATTERNS)
        if not code or not desc:
            logger.warning("state: stored records lack code/description columns")
            return False
        try:
            assembled = self._assemble(
                records=[r for r in records if isinstance(r, dict)],
                columns=columns,
                code_column=code,
                description_column=desc,
                source_file=meta.source_file if meta else "",
                sheet_name=meta.sheet if meta else "",
                preferred_metrics=(self._saved_metric(), meta.metric if meta else None),
                group_by=None,
                visible_columns=None,
            )
        except (MissingBaseColumnsError, NoMonthColumnsError) as e:
            logger.warning("state: stored records unusable: %s", e.reason)
            return False
        self._commit(assembled, persist_records=False)
        logger.info(
            "Storage carregado: %s | Linhas: %d | Meses: %d | Métrica: %s",
            assembled.workbook.meta.source_file if assembled.workbook.meta else "-",
            len(assembled.workbook.records),
            len(assembled.workbook.month_index.months),
            assembled.metric,
        )
        return True

    def _saved_metric(self) -> str | None:
        if self.store is None:
            return None
        return self.store.load(KEY_METRIC, expected=str)

    def _saved_list(self, key: str) -> list[str] | None:
        if self.store is None:
            return None
        value = self.store.load(key, expected=list)
        if value is None:
            return None
        return [str(v) for v in value]

    def _assemble(
        self,
        *,
        records: list[dict[str, Any]],
        columns: list[str],
        code_column: str,
        description_column: str,
        source_file: str,
        sheet_name: str,
        preferred_metrics: Iterable[str | None],
        group_by: Sequence[str] | None,
        visible_columns: Sequence[str] | None,
    ) -> _Assembled:
        if code_column not in columns or description_column not in columns:
            raise MissingBaseColumnsError("Não encontrei colunas Código e Descrição.")

        index = build_month_index(columns)
        if not index.months:
            raise NoMonthColumnsError("Não encontrei colunas mensais no formato 'MMM/AA - <Métrica>'.")

        options = metric_options(records, index.months, index.metrics)
        metric = choose_metric(options, *preferred_metrics)
        months = months_for_metric(index.months, metric)

        core = {code_column, description_column}
        base_columns = [c for c in columns if c and c not in index.month_headers and c not in core]
        extra_columns = sorted(base_columns, key=collation_key)

        visible = self._pick_columns(
            visible_columns, KEY_VISIBLE_COLUMNS, extra_columns, default_visible_columns
        )
        grouping = self._pick_columns(group_by, KEY_GROUP_BY, base_columns, default_group_by)

        aggregation = aggregate_groups(
            records,
            code_column=code_column,
            description_column=description_column,
            months=months,
            group_by=grouping,
            extra_columns=extra_columns,
            base_columns=base_columns,
        )

        meta = ImportMeta.create(
            source_file=source_file,
            sheet=sheet_name,
            base_months=index.months,
            metric_options=options,
            metric=metric,
            code_column=code_column,
            description_column=description_column,
        )
        workbook = ImportedWorkbook(
            records=records,
            columns=columns,
            code_column=code_column,
            description_column=description_column,
            month_index=index,
            metric_options=options,
            base_columns=base_columns,
            extra_columns=extra_columns,
            meta=meta,
        )
        return _Assembled(
            workbook=workbook,
            metric=metric,
            months=months,
            group_by=aggregation.group_by,
            visible_columns=visible,
            groups=aggregation.groups,
        )

    def _pick_columns(
        self,
        explicit: Sequence[str] | None,
        store_key: str,
        available: Sequence[str],
        default: Callable[[list[str]], list[str]],
    ) -> list[str]:
        """Explicit selection > saved selection > heuristic default; missing columns dropped."""
        if explicit is not None:
            kept = [c for c in explicit if c in available]
            dropped = [c for c in explicit if c not in available]
            if dropped:
                logger.warning("ignoring unknown columns: %s", dropped)
            return kept
        restored = restore_selection(self._saved_list(store_key), available)
        if restored is not None:
            return restored
        return default(list(available))

    def _commit(self, assembled: _Assembled, *, persist_records: bool) -> None:
        self.workbook = assembled.workbook
        self.metric = assembled.metric
        self.months = assembled.months
        self.group_by = assembled.group_by
        self.visible_columns = assembled.visible_columns
        self.groups = assembled.groups

        if self.store is None:
            return
        if persist_records:
            self.store.save(KEY_RECORDS, assembled.workbook.records)
            if assembled.workbook.meta is not None:
                self.store.save(KEY_META, assembled.workbook.meta.to_dict())
        self.store.save(KEY_METRIC, self.metric)
        self.store.save(KEY_VISIBLE_COLUMNS, self.visible_columns)
        self.store.save(KEY_GROUP_BY, self.group_by)

    # ------------------------------------------------------------- parameters

    def _require_workbook(self) -> ImportedWorkbook:
        if self.workbook is None:
            raise RuntimeError("no workbook imported")
        return self.workbook

    def _rebuild_groups(self) -> None:
        wb = self._require_workbook()
        aggregation = aggregate_groups(
            wb.records,
            code_column=wb.code_column,
            description_column=wb.description_column,
            months=self.months,
            group_by=self.group_by,
            extra_columns=wb.extra_columns,
            base_columns=wb.base_columns,
        )
        self.groups = aggregation.groups
        self.group_by = aggregation.group_by

    def switch_metric(self, metric: str) -> None:
        wb = self._require_workbook()
        if metric not in wb.metric_options:
            raise ValueError(f"metric not available: {metric!r} (options: {wb.metric_options})")
        self.metric = metric
        self.months = months_for_metric(wb.month_index.months, metric)
        self._rebuild_groups()
        if self.store is not None:
            self.store.save(KEY_METRIC, metric)
            self.store.save(KEY_GROUP_BY, self.group_by)

    def set_group_by(self, columns: Sequence[str]) -> None:
        wb = self._require_workbook()
        self.group_by = [c for c in columns if c in wb.base_columns]
        self._rebuild_groups()
        if self.store is not None:
            self.store.save(KEY_GROUP_BY, self.group_by)

    def set_visible_columns(self, columns: Sequence[str]) -> None:
        wb = self._require_workbook()
        self.visible_columns = sorted(
            {c for c in columns if c in wb.extra_columns}, key=collation_key
        )
        if self.store is not None:
            self.store.save(KEY_VISIBLE_COLUMNS, self.visible_columns)

    # ----------------------------------------------------------------- views

    def verba_options(self) -> list[str]:
        wb = self._require_workbook()
        return verba_options(wb.records, wb.code_column, wb.description_column)

    def month_labels(self) -> list[str]:
        return [m.label for m in self.months]

    def filter_specs(self) -> list[ExtraFilterSpec]:
        wb = self._require_workbook()
        cols = filter_columns(wb.extra_columns, self.visible_columns)
        rows: list[Mapping[str, Any]] = [{c: g.column_value(c) for c in cols} for g in self.groups]
        return build_filter_specs(rows, cols)

    def compute(self, params: ValidationParams | None = None) -> ValidationView:
        """Recompute every group's statistics and run the filter/sort pipeline."""
        params = params or ValidationParams()
        wb = self._require_workbook()
        _, ref_label = resolve_reference(self.months, params.reference_month)
        rows = compute_rows(
            self.groups,
            self.months,
            reference_label=ref_label,
            window=params.window,
            ignore_zeros=params.ignore_zeros,
        )
        filtered = apply_pipeline(rows, params.criteria, params.sort, wb.extra_columns)
        return ValidationView(
            reference_label=ref_label,
            months=list(self.months),
            rows=rows,
            filtered=filtered,
            kpis=compute_kpis(filtered),
            totals=month_totals(filtered, self.months),
            diagnostics=diagnostics(
                filtered,
                months=len(self.months),
                group_by=self.group_by,
                extra_columns=len(wb.extra_columns),
                visible_columns=len(self.visible_columns),
            ),
        )

    def clear(self) -> None:
        self.workbook = None
        self.metric = ""
        self.months = []
        self.group_by = []
        self.visible_columns = []
        self.groups = []
        if self.store is not None:
            self.store.clear()
