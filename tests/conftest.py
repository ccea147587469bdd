# Shared pytest fixtures
from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from verba_sigma.config.loader import CONFIG_ENV_VAR
from verba_sigma.logging.init import LOGGER_NAME, reset_logging

PAYROLL_HEADER = [
    "Código", "Descrição", "Empresa", "CPF", "Nome", "C.R.",
    "JAN/25 - Valor", "FEV/25 - Valor", "MAR/25 - Valor",
    "ABR/25 - Valor", "MAI/25 - Valor", "JUN/25 - Valor", "JUN/25 - Dt Pgto",
]

# JUN/25 is the reference month:
#   row 1: constant history (sigma 0)       -> Sem histórico
#   row 2: [90,100,110,100,95] ref 130      -> Fora
#   row 3: [50,52,48,50,50] ref 51          -> Aceitável
#   row 4: [10,12,8,10,10] ref 13           -> Alerta
PAYROLL_ROWS: list[list[Any]] = [
    [100, "Salário", "ACME", "111", "Ana", "10", 1000, 1000, 1000, 1000, 1000, 1000, "05/07/2025"],
    [100, "Salário", "ACME", "222", "Bruno", "10", 90, 100, 110, 100, 95, 130, "05/07/2025"],
    [200, "Hora extra", "ACME", "111", "Ana", "20", 50, 52, 48, 50, 50, 51, "05/07/2025"],
    [200, "Hora extra", "ACME", "222", "Bruno", "20", 10, 12, 8, 10, 10, 13, "05/07/2025"],
]


def make_workbook(path: Path, sheets: dict[str, list[list[Any]]]) -> Path:
    """Create a real Excel file; every row (including the header) is written as data."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for sheet_name, rows in sheets.items():
            df = pd.DataFrame(rows)
            df.to_excel(writer, sheet_name=sheet_name, header=False, index=False)
    return path


@pytest.fixture(autouse=True)
def _isolated_logging():
    reset_logging()
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    reset_logging()


@pytest.fixture(autouse=True)
def _isolated_config_env(monkeypatch):
    # .env loading writes straight into os.environ; setenv registers the
    # variable so teardown drops whatever value the test left behind
    monkeypatch.setenv(CONFIG_ENV_VAR, "")
    monkeypatch.delenv(CONFIG_ENV_VAR)


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_directory: ./data
output_directory: ./out
state_directory: ./state
export_formats: [txt, xlsx]
analysis:
  metric: Valor
  ignore_zeros: false
sort:
  key: z
  descending: true
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "sigma.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def payroll_workbook(temp_workdir: Path) -> Path:
    return make_workbook(
        temp_workdir / "data" / "folha.xlsx",
        {"Folha": [PAYROLL_HEADER, *PAYROLL_ROWS]},
    )


@pytest.fixture()
def xlsx_factory():
    return make_workbook


@pytest.fixture()
def payroll_header() -> list[str]:
    return list(PAYROLL_HEADER)


@pytest.fixture()
def payroll_rows() -> list[list[Any]]:
    return [list(r) for r in PAYROLL_ROWS]
