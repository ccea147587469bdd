from __future__ import annotations

import json
from pathlib import Path

from verba_sigma.cli import main as cli_main


def test_partial_failure(write_config: Path, payroll_workbook: Path, xlsx_factory, capsys):
    data = payroll_workbook.parent
    xlsx_factory(data / "sem_meses.xlsx", {"Folha": [["Código", "Descrição"], [1, "Salário"]]})
    (data / "corrompido.xlsx").write_bytes(b"not a zip")

    code = cli_main([])
    out = capsys.readouterr().out

    assert code == 2
    assert "SUMMARY files=3/3 success=1 failed=2 groups=4" in out
    assert "ERROR sem_meses.xlsx: Não encontrei colunas mensais" in out
    assert "ERROR corrompido.xlsx: processing failed:" in out
    assert "INFO error log written:" in out

    [log_file] = list(Path("logs").glob("errors-*.log"))
    entries = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    by_file = {e["file"]: e for e in entries}
    assert set(by_file) == {"sem_meses.xlsx", "corrompido.xlsx"}
    assert by_file["sem_meses.xlsx"]["error_type"] == "NO_MONTH_COLUMNS"
    assert by_file["corrompido.xlsx"]["error_type"] == "PROCESSING_ERROR"

    # the failing files produce no exports
    assert sorted(p.name for p in Path("out").iterdir()) == ["folha"]


def test_all_files_failing(write_config: Path, temp_workdir: Path, xlsx_factory, capsys):
    xlsx_factory(temp_workdir / "data" / "x.xlsx", {"Folha": [["Nome"], ["Ana"]]})
    code = cli_main([])
    assert code == 2
    assert "SUMMARY files=1/1 success=0 failed=1 groups=0" in capsys.readouterr().out
