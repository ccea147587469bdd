from __future__ import annotations

from ..core.numbers import format_decimal
from ..core.statistics import Diagnostics, Kpis
from ..models.processing_result import ProcessingResult

"""SUMMARY line and per-file report lines.

SUMMARY format::

    SUMMARY files={n}/{n} success={s} failed={f} groups={g} acceptable={a}
    warning={w} out_of_range={o} no_history={h} elapsed_sec={e}
"""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation for very small numbers
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return str(value)


def render_summary_line(result: ProcessingResult) -> str:
    """Render the SUMMARY line from a ProcessingResult.

    Examples:
        >>> from datetime import datetime, timezone
        >>> t = datetime(2026, 1, 1, tzinfo=timezone.utc)
        >>> result = ProcessingResult(
        ...     success_files=1, failed_files=0, total_groups=10, acceptable=7,
        ...     warning=2, out_of_range=1, no_history=0, start_time=t, end_time=t,
        ...     elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(result)  # doctest: +ELLIPSIS
        'SUMMARY files=1/1 success=1 failed=0 groups=10 acceptable=7 warning=2 ...'
    """
    total = result.total_files
    return (
        f"SUMMARY files={total}/{total} "
        f"success={result.success_files} "
        f"failed={result.failed_files} "
        f"groups={result.total_groups} "
        f"acceptable={result.acceptable} "
        f"warning={result.warning} "
        f"out_of_range={result.out_of_range} "
        f"no_history={result.no_history} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )


def render_kpi_line(file_name: str, kpis: Kpis) -> str:
    avg = format_decimal(kpis.average_z, 2) if kpis.average_z is not None else "0,00"
    return (
        f"{file_name}: total={kpis.total} aceitavel={kpis.acceptable} alerta={kpis.warning} "
        f"fora={kpis.out_of_range} sem_historico={kpis.no_history} z_medio={avg}"
    )


def render_diagnostics(diag: Diagnostics) -> list[str]:
    lines = [
        f"Grupos (após agregação): {diag.groups}",
        f"Meses detectados: {diag.months}",
        f"Agrupar por: {' | '.join(diag.group_by) or 'não definido'}",
        f"Colunas extras detectadas: {diag.extra_columns}",
        f"Colunas extras visíveis: {diag.visible_columns}",
        f"Sem histórico: {diag.no_history}",
        f"Fora: {diag.out_of_range}",
    ]
    if diag.top_out_of_range:
        lines.extend(f"{verba}: fora {fora} | total {total}" for verba, fora, total in diag.top_out_of_range)
    else:
        lines.append("Sem dados suficientes.")
    return lines
