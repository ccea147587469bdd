from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from dotenv import load_dotenv

from verba_sigma.config.loader import ConfigError, load_config, resolve_config_path
from verba_sigma.logging.init import log_summary, setup_logging
from verba_sigma.models.config_models import SigmaConfig
from verba_sigma.services.orchestrator import ProcessingError, process_all, process_stored
from verba_sigma.services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- Load .env (python-dotenv) so $VERBA_SIGMA_CONFIG can point at a config file
- Load and validate the YAML config; command line flags override it
- Validate every .xlsx of source_directory (or the stored import with --from-state)
- Print one SUMMARY line; the exit code tells whether any workbook failed
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2


def _load_env_file(path: Path) -> None:
    """Load .env without overriding variables already set in the process."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=False)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Payroll verba validation with six-sigma control limits")
    p.add_argument("--config", help="Config YAML (default: $VERBA_SIGMA_CONFIG or config/sigma.yml)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print detected columns/months per workbook then exit")
    p.add_argument("--from-state", action="store_true", help="Re-validate the stored import instead of scanning files")
    p.add_argument("--metric", help="Metric to validate (e.g. Valor, Hora)")
    p.add_argument("--reference-month", help="Reference month label, e.g. JUN/25 (default: last month)")
    p.add_argument("--window", type=int, help="Use only the N most recent history months (N >= 2)")
    p.add_argument("--ignore-zeros", action="store_true", help="Exclude zero values from the history")
    p.add_argument("--group-by", nargs="*", help="Grouping columns (in addition to the verba)")
    p.add_argument("--verba", help="Only this verba ('<code> - <description>')")
    p.add_argument("--search", help="Free text search")
    p.add_argument("--status", help="Aceitável | Alerta | Fora | Sem histórico")
    p.add_argument("--min-z", type=float, help="Minimum z-score")
    p.add_argument("--max-z", type=float, help="Maximum z-score")
    p.add_argument("--sort", help="Sort key (z, ref_val, verba_key, m:JUN/25, extra:<column>, ...)")
    p.add_argument("--desc", action="store_true", help="Sort descending")
    return p.parse_args(argv)


def _apply_overrides(cfg: SigmaConfig, args: argparse.Namespace) -> SigmaConfig:
    analysis = cfg.analysis
    if args.metric:
        analysis = replace(analysis, metric=args.metric)
    if args.reference_month:
        analysis = replace(analysis, reference_month=args.reference_month)
    if args.window is not None:
        analysis = replace(analysis, window=args.window)
    if args.ignore_zeros:
        analysis = replace(analysis, ignore_zeros=True)

    grouping = cfg.grouping
    if args.group_by is not None:
        grouping = replace(grouping, group_by=list(args.group_by))

    filters = cfg.filters
    for name in ("verba", "search", "status", "min_z", "max_z"):
        value = getattr(args, name)
        if value is not None:
            filters = replace(filters, **{name: value})

    sort = cfg.sort
    if args.sort:
        sort = replace(sort, key=args.sort, descending=args.desc)
    elif args.desc:
        sort = replace(sort, descending=True)

    return replace(cfg, analysis=analysis, grouping=grouping, filters=filters, sort=sort)


def _inspect_data(cfg: SigmaConfig) -> int:
    from verba_sigma.core.headers import build_month_index
    from verba_sigma.core.metrics import metric_options
    from verba_sigma.excel.reader import ImportFailure, load_payroll_sheet
    from verba_sigma.services.orchestrator import scan_excel_files

    try:
        files = scan_excel_files(Path(cfg.source_directory))
    except ProcessingError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    if not files:
        print("inspect: no .xlsx files")
        return EXIT_SUCCESS_ALL
    for f in files:
        print(f"FILE: {f.name}")
        try:
            sheet = load_payroll_sheet(f)
        except ImportFailure as e:
            print(f"  error={e}")
            continue
        index = build_month_index(sheet.data.columns)
        print(f"  SHEET: {sheet.data.sheet_name} header_row={sheet.header_row} rows={len(sheet.data.rows)}")
        print(f"  code={sheet.code_column!r} description={sheet.description_column!r}")
        print(f"  months={index.labels}")
        print(f"  metrics={index.metrics} numeric={metric_options(sheet.data.rows, index.months, index.metrics)}")
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # argv=[] (テスト) のときに sys.argv が混入しないよう None のときだけ読む
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"))

    if args.debug:
        for h in logger.handlers:
            h.setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
        logger.debug("debug mode enabled")

    config_path = resolve_config_path(args.config)
    try:
        cfg = _apply_overrides(load_config(config_path), args)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.inspect_data:
        return _inspect_data(cfg)

    try:
        if args.from_state:
            result = process_stored(cfg)
        else:
            directory = Path(cfg.source_directory)
            if not directory.exists():
                logger.error(f"directory not found: {directory}")
                return EXIT_FATAL
            logger.info(f"Processing files from: {directory}")
            result = process_all(cfg)
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL

    # log_summary が "SUMMARY " を付けるので本文だけ渡す
    log_summary(render_summary_line(result)[len("SUMMARY "):])

    if result.failed_files > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
