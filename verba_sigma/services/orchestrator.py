from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

from ..core.columns import FilterMode
from ..core.pipeline import ASCENDING, DESCENDING, ExtraFilter, FilterCriteria, SortState, is_sort_key
from ..core.statistics import normalize_window
from ..excel.reader import ImportFailure
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.config_models import SigmaConfig
from ..models.group import Status
from ..models.processing_result import FileStat, ProcessingResult
from ..storage.state_store import StateStore
from .export import (
    build_export_frame,
    export_file_name,
    render_text_report,
    write_text_report,
    write_xlsx,
)
from .progress import ProgressTracker
from .session import ValidationParams, ValidationSession, ValidationView
from .summary import render_diagnostics, render_kpi_line

"""Batch orchestration: validate every workbook of the source directory.

Each workbook gets its own session; a failing workbook is recorded in the error
log and the run continues with the next one. Exports are written per workbook
under ``output_directory/<workbook stem>/``.
"""

logger = logging.getLogger(__name__)

FILE_LEVEL = "<FILE_LEVEL>"


class ProcessingError(Exception):
    """Fatal errors that prevent the batch from running at all."""
    pass


def scan_excel_files(directory: Path) -> list[Path]:
    """Scan directory for .xlsx files (non-recursive, sorted by name).

    Raises:
        ProcessingError: If directory doesn't exist or can't be read
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")
    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")
    try:
        return sorted(
            p for p in directory.iterdir()
            if p.is_file() and p.suffix == ".xlsx" and not p.name.startswith("~$")
        )
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e


def build_params(config: SigmaConfig) -> ValidationParams:
    """Translate the configured analysis/filter/sort sections into ValidationParams.

    Raises:
        ValueError: unknown status, filter mode or sort key
    """
    f = config.filters
    status = Status.from_label(f.status) if f.status else None
    extra = {
        col: ExtraFilter(value=value, mode=FilterMode(mode))
        for col, (value, mode) in f.extra.items()
    }
    criteria = FilterCriteria(
        verba=f.verba or "",
        search=f.search or "",
        status=status,
        min_z=f.min_z,
        max_z=f.max_z,
        extra=extra,
    )
    if config.sort.key and not is_sort_key(config.sort.key):
        raise ValueError(f"unknown sort key: {config.sort.key!r}")
    sort = SortState(
        key=config.sort.key,
        direction=DESCENDING if config.sort.descending else ASCENDING,
    )
    return ValidationParams(
        reference_month=config.analysis.reference_month,
        window=normalize_window(config.analysis.window),
        ignore_zeros=config.analysis.ignore_zeros,
        criteria=criteria,
        sort=sort,
    )


def _make_store(config: SigmaConfig) -> StateStore | None:
    if not config.state_directory:
        return None
    return StateStore(Path(config.state_directory))


def write_exports(
    session: ValidationSession, view: ValidationView, config: SigmaConfig, target_dir: Path
) -> list[Path]:
    wb = session.workbook
    labels = [m.label for m in view.months]
    written: list[Path] = []
    if "txt" in config.export_formats:
        text = render_text_report(
            view.filtered,
            labels,
            session.visible_columns,
            meta=wb.meta if wb else None,
            metric=session.metric,
        )
        written.append(write_text_report(text, target_dir / export_file_name(session.metric, "txt")))
    if "xlsx" in config.export_formats:
        frame = build_export_frame(view.filtered, labels, wb.extra_columns if wb else [])
        written.append(write_xlsx(frame, target_dir / export_file_name(session.metric, "xlsx"), len(labels)))
    return written


def _log_view(name: str, session: ValidationSession, view: ValidationView, params: ValidationParams) -> None:
    if params.reference_month and params.reference_month != view.reference_label:
        logger.warning(
            "%s: reference month %s not found, using %s",
            name, params.reference_month, view.reference_label,
        )
    logger.info(render_kpi_line(name, view.kpis))
    for line in render_diagnostics(view.diagnostics):
        logger.debug("%s: %s", name, line)


def _validate_file(
    file_path: Path,
    config: SigmaConfig,
    params: ValidationParams,
    store: StateStore | None,
    error_log: ErrorLogBuffer,
) -> FileStat:
    start = datetime.now(UTC)
    session = ValidationSession(store)
    try:
        session.import_workbook(
            file_path,
            metric=config.analysis.metric,
            group_by=config.grouping.group_by,
            visible_columns=config.grouping.visible_columns,
        )
        if config.analysis.metric and session.metric != config.analysis.metric:
            logger.warning(
                "%s: metric %s not available, using %s",
                file_path.name, config.analysis.metric, session.metric,
            )
        view = session.compute(params)
        _log_view(file_path.name, session, view, params)
        exports = write_exports(session, view, config, Path(config.output_directory) / file_path.stem)
    except ImportFailure as e:
        logger.error("%s: %s", file_path.name, e)
        error_log.append(ErrorRecord.create(file_path.name, FILE_LEVEL, -1, e.error_type, str(e)))
        return _failed_stat(file_path.name, start, str(e))
    except Exception as e:
        # 壊れたファイル等: 記録して次のファイルへ
        logger.error("%s: processing failed: %s", file_path.name, e)
        error_log.append(ErrorRecord.create(file_path.name, FILE_LEVEL, -1, "PROCESSING_ERROR", str(e)))
        return _failed_stat(file_path.name, start, str(e))

    elapsed = (datetime.now(UTC) - start).total_seconds()
    return FileStat(
        file_name=file_path.name,
        status="success",
        groups=view.kpis.total,
        elapsed_seconds=elapsed,
        status_counts=view.kpis.as_counts(),
        exports=tuple(str(p) for p in exports),
    )


def _failed_stat(name: str, start: datetime, error: str) -> FileStat:
    return FileStat(
        file_name=name,
        status="failed",
        groups=0,
        elapsed_seconds=(datetime.now(UTC) - start).total_seconds(),
        error=error,
    )


def _aggregate(stats: list[FileStat], start_time: datetime) -> ProcessingResult:
    end_time = datetime.now(UTC)
    ok = [s for s in stats if s.status == "success"]

    def total(status: Status) -> int:
        return sum(s.status_counts.get(status.name, 0) for s in ok)

    return ProcessingResult(
        success_files=len(ok),
        failed_files=len(stats) - len(ok),
        total_groups=sum(s.groups for s in ok),
        acceptable=total(Status.ACCEPTABLE),
        warning=total(Status.WARNING),
        out_of_range=total(Status.OUT_OF_RANGE),
        no_history=total(Status.NO_HISTORY),
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        file_stats=stats,
    )


def process_all(config: SigmaConfig) -> ProcessingResult:
    """Validate every workbook in ``config.source_directory``.

    Raises:
        ProcessingError: directory problems or invalid filter configuration
    """
    start_time = datetime.now(UTC)
    error_log = ErrorLogBuffer(Path(config.log_directory))

    try:
        params = build_params(config)
    except ValueError as e:
        raise ProcessingError(f"Invalid configuration: {e}") from e

    file_paths = scan_excel_files(Path(config.source_directory))
    store = _make_store(config)

    stats: list[FileStat] = []
    with ProgressTracker(len(file_paths)) as progress:
        for file_path in file_paths:
            progress.start_file(file_path)
            stat = _validate_file(file_path, config, params, store, error_log)
            stats.append(stat)
            progress.set_postfix(
                success=sum(1 for s in stats if s.status == "success"),
                failed=sum(1 for s in stats if s.status != "success"),
            )
            progress.finish_file()

    try:
        log_path = error_log.flush()
    except OSError as e:
        logger.warning("error log flush failed: %s", e)
    else:
        if log_path is not None:
            logger.info("error log written: %s", log_path)

    return _aggregate(stats, start_time)


def process_stored(config: SigmaConfig) -> ProcessingResult:
    """Re-validate the previously imported workbook kept in the state directory.

    Raises:
        ProcessingError: no state directory configured or nothing stored
    """
    start_time = datetime.now(UTC)
    store = _make_store(config)
    if store is None:
        raise ProcessingError("state_directory is not configured")
    try:
        params = build_params(config)
    except ValueError as e:
        raise ProcessingError(f"Invalid configuration: {e}") from e

    session = ValidationSession(store)
    if not session.restore():
        raise ProcessingError("no stored import found")
    if config.analysis.metric and config.analysis.metric in session.workbook.metric_options:
        session.switch_metric(config.analysis.metric)
    if config.grouping.group_by is not None:
        session.set_group_by(config.grouping.group_by)
    if config.grouping.visible_columns is not None:
        session.set_visible_columns(config.grouping.visible_columns)

    view = session.compute(params)
    name = session.workbook.meta.source_file if session.workbook.meta else "stored"
    _log_view(name, session, view, params)
    stem = Path(name).stem or "stored"
    exports = write_exports(session, view, config, Path(config.output_directory) / stem)
    elapsed = (datetime.now(UTC) - start_time).total_seconds()
    stat = FileStat(
        file_name=name,
        status="success",
        groups=view.kpis.total,
        elapsed_seconds=elapsed,
        status_counts=view.kpis.as_counts(),
        exports=tuple(str(p) for p in exports),
    )
    return _aggregate([stat], start_time)
