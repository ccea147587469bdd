from __future__ import annotations

import json

import jsonschema
import pytest
import yaml

from verba_sigma.config.loader import SCHEMA_PATH


@pytest.fixture()
def schema() -> dict:
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))


def test_schema_is_valid_draft7(schema):
    jsonschema.Draft7Validator.check_schema(schema)


def test_sample_config_validates(schema, sample_config_yaml):
    jsonschema.validate(yaml.safe_load(sample_config_yaml), schema)


@pytest.mark.parametrize("status", ["Aceitável", "Alerta", "Fora", "Sem histórico", "WARNING", None])
def test_status_values(schema, status):
    jsonschema.validate({"source_directory": ".", "filters": {"status": status}}, schema)


def test_extra_filter_mode_enum(schema):
    with pytest.raises(jsonschema.ValidationError):
        jsonschema.validate(
            {"source_directory": ".", "filters": {"extra": {"Nome": {"value": "a", "mode": "regex"}}}},
            schema,
        )
