from __future__ import annotations

from pathlib import Path

import pytest

from verba_sigma.config.loader import (
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG_PATH,
    ConfigError,
    load_config,
    resolve_config_path,
)


def _write(tmp_path: Path, text: str) -> Path:
    p = tmp_path / "sigma.yml"
    p.write_text(text, encoding="utf-8")
    return p


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.source_directory == "./data"
    assert cfg.output_directory == "./out"
    assert cfg.state_directory == "./state"
    assert cfg.log_directory == "./logs"
    assert cfg.export_formats == ("txt", "xlsx")
    assert cfg.analysis.metric == "Valor"
    assert cfg.analysis.window is None
    assert cfg.sort.key == "z"
    assert cfg.sort.descending is True
    assert cfg.grouping.group_by is None


def test_defaults_for_minimal_config(tmp_path: Path):
    cfg = load_config(_write(tmp_path, "source_directory: ./in\n"))
    assert cfg.output_directory == "./out"
    assert cfg.state_directory is None
    assert cfg.analysis.ignore_zeros is False
    assert cfg.filters.extra == {}


def test_extra_filters_accept_string_or_mapping(tmp_path: Path):
    cfg = load_config(_write(tmp_path, """source_directory: ./in
filters:
  status: Fora
  extra:
    C.R.: "10"
    Nome: {value: ana, mode: contains}
"""))
    assert cfg.filters.status == "Fora"
    assert cfg.filters.extra == {"C.R.": ("10", "select"), "Nome": ("ana", "contains")}


def test_missing_file(tmp_path: Path):
    with pytest.raises(ConfigError, match="config file not found"):
        load_config(tmp_path / "nope.yml")


def test_invalid_yaml(tmp_path: Path):
    with pytest.raises(ConfigError, match="invalid yaml"):
        load_config(_write(tmp_path, "source_directory: [unclosed\n"))


@pytest.mark.parametrize(
    "text",
    [
        "output_directory: ./out\n",
        "source_directory: ./in\nunknown_key: 1\n",
        "source_directory: ./in\nanalysis:\n  window: 1\n",
        "source_directory: ./in\nfilters:\n  status: Bogus\n",
        "source_directory: ./in\nexport_formats: [pdf]\n",
        "- just\n- a list\n",
    ],
)
def test_schema_violations(tmp_path: Path, text: str):
    with pytest.raises(ConfigError, match="config validation failed"):
        load_config(_write(tmp_path, text))


def test_resolve_config_path_precedence(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    assert resolve_config_path(None) == DEFAULT_CONFIG_PATH
    monkeypatch.setenv(CONFIG_ENV_VAR, "env.yml")
    assert resolve_config_path(None) == Path("env.yml")
    assert resolve_config_path("cli.yml") == Path("cli.yml")
