from __future__ import annotations

import re
from pathlib import Path

import pandas as pd

from verba_sigma.cli import main as cli_main

SUMMARY_RE = re.compile(
    r"^SUMMARY files=(\d+)/(\d+) success=(\d+) failed=(\d+) groups=(\d+) acceptable=(\d+) "
    r"warning=(\d+) out_of_range=(\d+) no_history=(\d+) elapsed_sec=(\d+(?:\.\d+)?)$",
    re.MULTILINE,
)


def test_run_success(write_config: Path, payroll_workbook: Path, capsys):
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 0

    match = SUMMARY_RE.search(out)
    assert match is not None, out
    files, detected, success, failed, groups, acc, warn, out_of_range, no_hist, _ = match.groups()
    assert (files, detected, success, failed) == ("1", "1", "1", "0")
    assert (groups, acc, warn, out_of_range, no_hist) == ("4", "1", "1", "1", "1")
    assert "INFO folha.xlsx: total=4 aceitavel=1 alerta=1 fora=1 sem_historico=1" in out

    [txt] = list(Path("out/folha").glob("verbas_sigma_valor_*.txt"))
    [xlsx] = list(Path("out/folha").glob("verbas_sigma_valor_*.xlsx"))
    lines = txt.read_text(encoding="utf-8").split("\n")
    # sorted by z descending (config), undefined z last
    statuses = [line.split(" | ")[-8] for line in lines[8:]]
    assert statuses == ["Fora", "Alerta", "Aceitável", "Sem histórico"]

    frame = pd.read_excel(xlsx, sheet_name="Export")
    assert list(frame["Status"]) == ["Fora", "Alerta", "Aceitável", "Sem histórico"]
    assert list(frame.columns[-6:]) == ["JAN/25", "FEV/25", "MAR/25", "ABR/25", "MAI/25", "JUN/25"]


def test_run_with_cli_filters(write_config: Path, payroll_workbook: Path, capsys):
    code = cli_main(["--status", "Aceitável", "--window", "2"])
    out = capsys.readouterr().out
    assert code == 0
    match = SUMMARY_RE.search(out)
    assert match is not None
    assert match.group(5) == match.group(6)


def test_run_reference_month_fallback_warns(write_config: Path, payroll_workbook: Path, capsys):
    code = cli_main(["--reference-month", "DEZ/30"])
    out = capsys.readouterr().out
    assert code == 0
    assert "WARN folha.xlsx: reference month DEZ/30 not found, using JUN/25" in out


def test_run_from_state(write_config: Path, payroll_workbook: Path, capsys):
    assert cli_main([]) == 0
    payroll_workbook.unlink()
    capsys.readouterr()

    code = cli_main(["--from-state", "--group-by", "Empresa"])
    out = capsys.readouterr().out
    assert code == 0
    match = SUMMARY_RE.search(out)
    assert match is not None, out
    assert match.group(5) == "2"


def test_from_state_without_stored_import(write_config: Path, capsys):
    code = cli_main(["--from-state"])
    assert code == 1
    assert "ERROR processing: no stored import found" in capsys.readouterr().out
