from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from verba_sigma.models.config_models import (
    AnalysisConfig,
    FilterConfig,
    GroupingConfig,
    SigmaConfig,
    SortConfig,
)

"""Config loader.

Responsibilities:
- Load the YAML config (default config/sigma.yml, or $VERBA_SIGMA_CONFIG)
- Validate it against the bundled JSON schema (unknown keys rejected)
- Apply defaults and build the typed SigmaConfig
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/sigma.yml")
CONFIG_ENV_VAR = "VERBA_SIGMA_CONFIG"


class ConfigError(Exception):
    pass


def resolve_config_path(cli_value: str | None = None) -> Path:
    """CLI flag > $VERBA_SIGMA_CONFIG > config/sigma.yml."""
    if cli_value:
        return Path(cli_value)
    env_value = os.getenv(CONFIG_ENV_VAR)
    if env_value:
        return Path(env_value)
    return DEFAULT_CONFIG_PATH


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing/invalid, or the data violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _extra_filters(raw: dict[str, Any]) -> dict[str, tuple[str, str]]:
    out: dict[str, tuple[str, str]] = {}
    for col, spec in raw.items():
        if isinstance(spec, dict):
            out[col] = (spec["value"], spec.get("mode", "select"))
        else:
            out[col] = (spec, "select")
    return out


def load_config(path: Path) -> SigmaConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config validation failed: top level must be a mapping")

    _validate_config_schema(data)

    analysis_raw = data.get("analysis") or {}
    grouping_raw = data.get("grouping") or {}
    filters_raw = data.get("filters") or {}
    sort_raw = data.get("sort") or {}

    analysis = AnalysisConfig(
        metric=analysis_raw.get("metric"),
        reference_month=analysis_raw.get("reference_month"),
        window=analysis_raw.get("window"),
        ignore_zeros=bool(analysis_raw.get("ignore_zeros", False)),
    )
    grouping = GroupingConfig(
        group_by=grouping_raw.get("group_by"),
        visible_columns=grouping_raw.get("visible_columns"),
    )
    filters = FilterConfig(
        verba=filters_raw.get("verba"),
        search=filters_raw.get("search"),
        status=filters_raw.get("status"),
        min_z=filters_raw.get("min_z"),
        max_z=filters_raw.get("max_z"),
        extra=_extra_filters(filters_raw.get("extra") or {}),
    )
    sort = SortConfig(
        key=sort_raw.get("key"),
        descending=bool(sort_raw.get("descending", False)),
    )
    return SigmaConfig(
        source_directory=data["source_directory"],
        output_directory=data.get("output_directory", "./out"),
        state_directory=data.get("state_directory"),
        log_directory=data.get("log_directory", "./logs"),
        export_formats=tuple(data.get("export_formats", ("txt", "xlsx"))),
        analysis=analysis,
        grouping=grouping,
        filters=filters,
        sort=sort,
    )
