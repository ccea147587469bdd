from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import date, datetime
from pathlib import Path

import pandas as pd

from ..core.numbers import format_decimal, format_money, safe_text
from ..models.group import ComputedRow
from ..models.import_meta import ImportMeta

"""Plain-text and tabular (xlsx) exports of the filtered rows.

The text report is pipe delimited with pt-BR number formatting; the xlsx export
keeps numeric cells as real numbers and only applies display formats.
"""

__all__ = [
    "REPORT_TITLE",
    "TABULAR_BASE_COLUMNS",
    "render_text_report",
    "build_export_frame",
    "write_text_report",
    "write_xlsx",
    "export_file_name",
]

REPORT_TITLE = "VALIDACAO DE FOLHA POR VERBA | 6 SIGMA"
TEXT_STAT_COLUMNS = ["Ref", "Media", "Sigma", "LCL", "UCL", "Z", "Status", "Faixa"]
TABULAR_BASE_COLUMNS = ["Verba", "Grupo", "Ref", "Media", "Sigma", "LCL", "UCL", "Z", "Status"]
_MONEY_COLUMNS = ("Ref", "Media", "Sigma", "LCL", "UCL")
MONEY_FORMAT = "#,##0.00"
Z_FORMAT = "0.00"
EXPORT_SHEET = "Export"


def _band_text(row: ComputedRow) -> str:
    if row.mean is None or row.sigma is None:
        return ""
    return f"{format_money(row.mean)} ± {format_money(3 * row.sigma)}"


def render_text_report(
    rows: Sequence[ComputedRow],
    month_labels: Sequence[str],
    visible_columns: Sequence[str],
    *,
    meta: ImportMeta | None = None,
    metric: str = "",
    generated_at: datetime | None = None,
) -> str:
    """Render the pipe-delimited report.

    Layout::

        <title>
        Gerado em: dd/mm/yyyy HH:MM:SS
        Arquivo: ... / Aba: ... / Métrica: ...   (when known)
        <blank>
        Verba | Grupo | <visible...> | Ref | Media | Sigma | LCL | UCL | Z | Status | Faixa | <months...>
        <blank>
        one line per row
    """
    generated_at = generated_at or datetime.now()
    lines = [REPORT_TITLE, f"Gerado em: {generated_at.strftime('%d/%m/%Y %H:%M:%S')}"]
    if meta is not None and meta.source_file:
        lines.append(f"Arquivo: {meta.source_file}")
    if meta is not None and meta.sheet:
        lines.append(f"Aba: {meta.sheet}")
    if metric:
        lines.append(f"Métrica: {metric}")
    lines.append("")

    header = ["Verba", "Grupo", *visible_columns, *TEXT_STAT_COLUMNS, *month_labels]
    lines.append(" | ".join(header))
    lines.append("")

    for r in rows:
        extra_vals = [safe_text(r.column_value(c)) for c in visible_columns]
        month_vals = []
        for lab in month_labels:
            v = r.values.get(lab)
            month_vals.append(format_decimal(v, 2) if v is not None else "0,00")
        lines.append(" | ".join([
            safe_text(r.verba_key),
            safe_text(r.group_label),
            *extra_vals,
            format_money(r.ref_val),
            format_money(r.mean),
            format_money(r.sigma),
            format_money(r.lcl),
            format_money(r.ucl),
            format_decimal(r.z, 4),
            r.status.value,
            _band_text(r),
            *month_vals,
        ]))
    return "\n".join(lines)


def build_export_frame(
    rows: Sequence[ComputedRow],
    month_labels: Sequence[str],
    extra_columns: Sequence[str],
) -> pd.DataFrame:
    """One row per computed row; undefined statistics are left empty."""
    header = [*TABULAR_BASE_COLUMNS, *extra_columns, *month_labels]
    data = []
    for r in rows:
        base = [
            safe_text(r.verba_key),
            safe_text(r.group_label),
            r.ref_val,
            r.mean,
            r.sigma,
            r.lcl,
            r.ucl,
            round(r.z, 6) if r.z is not None else None,
            r.status.value,
        ]
        extras = [safe_text(r.column_value(c)) for c in extra_columns]
        months = [r.values.get(lab) or 0.0 for lab in month_labels]
        data.append(base + extras + months)
    return pd.DataFrame(data, columns=header)


def write_text_report(text: str, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def write_xlsx(frame: pd.DataFrame, path: Path, month_count: int) -> Path:
    """Write ``frame`` to the "Export" sheet with number formats and a frozen header."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name=EXPORT_SHEET, index=False)
        ws = writer.sheets[EXPORT_SHEET]
        header = list(frame.columns)
        money_idx = [header.index(c) + 1 for c in _MONEY_COLUMNS]
        z_idx = header.index("Z") + 1
        month_idx = list(range(len(header) - month_count + 1, len(header) + 1)) if month_count else []
        for row in ws.iter_rows(min_row=2, max_row=ws.max_row):
            for cell in row:
                if not isinstance(cell.value, (int, float)):
                    continue
                if cell.column in money_idx or cell.column in month_idx:
                    cell.number_format = MONEY_FORMAT
                elif cell.column == z_idx:
                    cell.number_format = Z_FORMAT
        ws.freeze_panes = "A2"
    return path


def export_file_name(metric: str, suffix: str, today: date | None = None) -> str:
    today = today or date.today()
    slug = re.sub(r"[^a-z0-9_]", "", re.sub(r"\s+", "_", safe_text(metric).lower()))
    stem = f"verbas_sigma_{slug}" if slug else "verbas_sigma_export"
    return f"{stem}_{today.isoformat()}.{suffix}"
