from __future__ import annotations

from verba_sigma.core.aggregation import aggregate_groups, group_key, verba_options
from verba_sigma.models.group import NO_GROUP_LABEL
from verba_sigma.models.month import MonthColumn


MONTHS = [
    MonthColumn(key="2025-01", label="JAN/25", month=1, year=2025, header="JAN/25 - Valor"),
    MonthColumn(key="2025-02", label="FEV/25", month=2, year=2025, header="FEV/25 - Valor"),
    MonthColumn(key="2025-03", label="MAR/25", month=3, year=2025, header=None),
]


def _records():
    return [
        {"Código": 100, "Descrição": "Salário", "Empresa": "ACME", "Nome": "Ana",
         "JAN/25 - Valor": "1.000,00", "FEV/25 - Valor": 10},
        {"Código": 100, "Descrição": "Salário", "Empresa": "acme", "Nome": "Outra",
         "JAN/25 - Valor": 500, "FEV/25 - Valor": "texto"},
        {"Código": 200, "Descrição": "Bônus", "Empresa": "ACME", "Nome": "Bruno",
         "JAN/25 - Valor": None, "FEV/25 - Valor": "2,5"},
    ]


def _aggregate(group_by=("Empresa",)):
    return aggregate_groups(
        _records(),
        code_column="Código",
        description_column="Descrição",
        months=MONTHS,
        group_by=list(group_by),
        extra_columns=["Empresa", "Nome"],
        base_columns=["Empresa", "Nome"],
    )


def test_group_key_is_case_normalized():
    assert group_key("100 - Salário", ["acme"]) == "100 - SALÁRIO|ACME"


def test_groups_merge_case_variants_and_keep_first_seen_values():
    agg = _aggregate()
    assert [g.verba_key for g in agg.groups] == ["100 - Salário", "200 - Bônus"]
    salary = agg.groups[0]
    assert salary.group_parts == ("ACME",)
    assert salary.extras == {"Nome": "Ana"}
    assert salary.column_value("Empresa") == "ACME"
    assert salary.column_value("Nome") == "Ana"
    assert salary.values == {"JAN/25": 1500.0, "FEV/25": 10.0}
    assert salary.group_label == "ACME"


def test_unparseable_cells_are_absent_not_zero():
    bonus = _aggregate().groups[1]
    assert "JAN/25" not in bonus.values
    assert bonus.values == {"FEV/25": 2.5}
    assert bonus.value_for("MAR/25") is None


def test_empty_selection_falls_back_to_default_grouping():
    agg = _aggregate(group_by=())
    assert agg.group_by == ["Empresa"]
    assert len(agg.groups) == 2


def test_no_grouping_columns_label():
    agg = aggregate_groups(
        _records(),
        code_column="Código",
        description_column="Descrição",
        months=MONTHS,
        group_by=[],
        extra_columns=[],
        base_columns=["Nome"],
    )
    assert agg.group_by == []
    assert agg.groups[0].group_label == NO_GROUP_LABEL


def test_aggregation_is_idempotent():
    first = _aggregate(group_by=("Empresa", "Nome"))
    second = _aggregate(group_by=("Empresa", "Nome"))
    assert [(g.verba_key, g.group_parts, g.values) for g in first.groups] == [
        (g.verba_key, g.group_parts, g.values) for g in second.groups
    ]


def test_empty_input():
    agg = aggregate_groups(
        [], code_column="Código", description_column="Descrição", months=MONTHS,
        group_by=["Empresa"], extra_columns=[],
    )
    assert agg.groups == []


def test_verba_options_sorted_and_distinct():
    records = _records() + [{"Código": None, "Descrição": None}]
    assert verba_options(records, "Código", "Descrição") == ["100 - Salário", "200 - Bônus"]


def test_empty_input_reports_default_grouping():
    agg = aggregate_groups(
        [], code_column="Código", description_column="Descrição", months=MONTHS,
        group_by=[], extra_columns=[], base_columns=["Empresa", "Nome"],
    )
    assert agg.groups == []
    assert agg.group_by == _aggregate(group_by=()).group_by == ["Empresa"]


def test_grouping_columns_stay_out_of_extras():
    agg = _aggregate(group_by=("Empresa", "Nome"))
    assert all(g.extras == {} for g in agg.groups)
    assert agg.groups[0].column_value("Nome") == "Ana"
