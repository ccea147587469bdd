from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

from ..core.columns import CODE_PATTERNS, DESCRIPTION_PATTERNS, guess_column
from ..core.numbers import safe_text

"""Payroll workbook reader (pandas).

The main sheet is the first one whose first row mentions "Código"; otherwise
the first sheet. Exports sometimes carry title lines above the real header, so
when the code/description columns are not found on the first row the header is
retried two rows further down.
"""

__all__ = [
    "IMPORT_HINT",
    "HEADER_ROW_CANDIDATES",
    "ImportFailure",
    "EmptyWorkbookError",
    "MissingBaseColumnsError",
    "NoMonthColumnsError",
    "SheetData",
    "PayrollSheet",
    "read_workbook",
    "detect_main_sheet",
    "sheet_records",
    "load_payroll_sheet",
]

IMPORT_HINT = (
    "Confirme que existem colunas 'Código', 'Descrição' e colunas mensais no formato "
    "'MMM/AA - <Métrica>' (ex.: 'JUN/25 - Valor')."
)

HEADER_ROW_CANDIDATES = (0, 2)


class ImportFailure(Exception):
    """Fatal import error; the import is aborted and prior state is kept."""

    error_type = "IMPORT_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(f"{message} {IMPORT_HINT}")
        self.reason = message


class EmptyWorkbookError(ImportFailure):
    error_type = "EMPTY_WORKBOOK"


class MissingBaseColumnsError(ImportFailure):
    error_type = "MISSING_BASE_COLUMNS"


class NoMonthColumnsError(ImportFailure):
    error_type = "NO_MONTH_COLUMNS"


@dataclass
class SheetData:
    sheet_name: str
    columns: list[str]
    rows: list[dict[str, Any]]  # 列名 -> 生の値 (空セルは None)


@dataclass
class PayrollSheet:
    data: SheetData
    code_column: str
    description_column: str
    header_row: int


def read_workbook(path: Path, target_sheets: Iterable[str] | None = None) -> dict[str, pd.DataFrame]:
    """Read every sheet (or only ``target_sheets``) without applying a header row."""
    frames: dict[str, pd.DataFrame] = {}
    xls = pd.ExcelFile(path)
    wanted = set(target_sheets) if target_sheets is not None else None
    for name in xls.sheet_names:
        if wanted is not None and str(name) not in wanted:
            continue
        frames[str(name)] = xls.parse(name, header=None)
    return frames


def detect_main_sheet(frames: dict[str, pd.DataFrame]) -> str | None:
    for name, df in frames.items():
        if df.shape[0] == 0:
            continue
        first = " | ".join(safe_text(v) for v in df.iloc[0].tolist() if not pd.isna(v)).lower()
        if "código" in first or "codigo" in first:
            return name
    return next(iter(frames), None)


def _header_names(cells: Sequence[Any]) -> list[str | None]:
    names: list[str | None] = []
    seen: dict[str, int] = {}
    for cell in cells:
        text = "" if pd.isna(cell) else safe_text(cell)
        if not text:
            names.append(None)
            continue
        n = seen.get(text, 0)
        seen[text] = n + 1
        names.append(text if n == 0 else f"{text}_{n}")
    return names


def sheet_records(df: pd.DataFrame, sheet_name: str, header_row: int = 0) -> SheetData:
    """Turn a raw frame into column names + row dicts using ``header_row`` as header.

    Fully empty rows are skipped, blank header cells drop their column and
    duplicate header names get a numeric suffix.
    """
    if df.shape[0] <= header_row:
        return SheetData(sheet_name=sheet_name, columns=[], rows=[])
    names = _header_names(df.iloc[header_row].tolist())
    columns = [n for n in names if n is not None]
    rows: list[dict[str, Any]] = []
    for _, raw in df.iloc[header_row + 1:].iterrows():
        if raw.isna().all():
            continue
        row: dict[str, Any] = {}
        for name, val in zip(names, raw.tolist(), strict=False):
            if name is None:
                continue
            row[name] = None if pd.isna(val) else val
        rows.append(row)
    return SheetData(sheet_name=sheet_name, columns=columns, rows=rows)


def load_payroll_sheet(path: Path) -> PayrollSheet:
    """Read the main payroll sheet and locate its code/description columns.

    Raises:
        EmptyWorkbookError: no sheets or no data rows
        MissingBaseColumnsError: code/description not found on any candidate header row
    """
    frames = read_workbook(path)
    sheet = detect_main_sheet(frames)
    if sheet is None:
        raise EmptyWorkbookError("Sem abas no arquivo.")

    any_rows = False
    for header_row in HEADER_ROW_CANDIDATES:
        data = sheet_records(frames[sheet], sheet, header_row=header_row)
        if not data.rows:
            continue
        any_rows = True
        code = guess_column(data.columns, CODE_PATTERNS)
        desc = guess_column(data.columns, DESCRIPTION_PATTERNS)
        if code and desc:
            return PayrollSheet(data=data, code_column=code, description_column=desc, header_row=header_row)

    if not any_rows:
        raise EmptyWorkbookError("Aba sem dados.")
    raise MissingBaseColumnsError("Não encontrei colunas Código e Descrição.")
