from __future__ import annotations

import pytest

from verba_sigma.core.headers import (
    build_month_index,
    months_for_metric,
    normalize_metric_name,
    parse_month_header,
)


def test_parse_abbreviated_header():
    info = parse_month_header("JUN/25 - Valor")
    assert info is not None
    assert info.key == "2025-06"
    assert info.label == "JUN/25"
    assert info.metric == "Valor"
    assert info.header == "JUN/25 - Valor"


def test_parse_is_case_and_whitespace_insensitive():
    info = parse_month_header("  jun / 25   -  hora ")
    assert info is not None
    assert info.label == "JUN/25"
    assert info.metric == "Hora"


def test_parse_iso_header():
    info = parse_month_header("2026-02 - Valor")
    assert info is not None
    assert info.key == "2026-02"
    assert info.label == "FEV/26"
    assert info.month == 2
    assert info.year == 2026


def test_parse_iso_header_with_slash():
    info = parse_month_header("2025/12 - Valor")
    assert info is not None
    assert info.label == "DEZ/25"


@pytest.mark.parametrize("header", ["Código", "Descrição", "", None, "2025-13 - Valor", "XYZ/25 - Valor"])
def test_non_month_headers(header):
    assert parse_month_header(header) is None


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("VALOR", "Valor"),
        ("Valor Bruto", "Valor"),
        ("horas", "Hora"),
        ("DT PGTO", "Dt Pgto"),
        ("Data Pgto", "Dt Pgto"),
        ("REFERENCIA", "Referencia"),
        ("", ""),
    ],
)
def test_normalize_metric_name(raw, expected):
    assert normalize_metric_name(raw) == expected


def test_build_month_index_orders_chronologically_and_merges_metrics():
    headers = [
        "Código",
        "FEV/25 - Valor",
        "JAN/25 - Valor",
        "JAN/25 - Hora",
        "DEZ/24 - Valor",
        "Nome",
    ]
    index = build_month_index(headers)
    assert index.labels == ["DEZ/24", "JAN/25", "FEV/25"]
    assert index.metrics == ["Hora", "Valor"]
    jan = index.months[1]
    assert jan.metrics == {"Valor": "JAN/25 - Valor", "Hora": "JAN/25 - Hora"}
    assert index.month_headers == {"FEV/25 - Valor", "JAN/25 - Valor", "JAN/25 - Hora", "DEZ/24 - Valor"}


def test_build_month_index_without_months():
    index = build_month_index(["Código", "Descrição"])
    assert index.months == []
    assert index.metrics == []


def test_months_for_metric_keeps_months_without_the_metric():
    index = build_month_index(["JAN/25 - Valor", "FEV/25 - Hora"])
    cols = months_for_metric(index.months, "Valor")
    assert [c.label for c in cols] == ["JAN/25", "FEV/25"]
    assert cols[0].header == "JAN/25 - Valor"
    assert cols[1].header is None
