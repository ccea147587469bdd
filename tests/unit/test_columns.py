from __future__ import annotations

from verba_sigma.core.columns import (
    CODE_PATTERNS,
    DESCRIPTION_PATTERNS,
    FilterMode,
    build_filter_specs,
    classify_filter_column,
    default_group_by,
    default_visible_columns,
    filter_columns,
    guess_column,
    norm_key,
    restore_selection,
)


def test_guess_base_columns():
    headers = ["Empresa", "Cód.", "Descrição", "JUN/25 - Valor"]
    assert guess_column(headers, CODE_PATTERNS) == "Cód."
    assert guess_column(headers, DESCRIPTION_PATTERNS) == "Descrição"
    assert guess_column(["Codigo", "Descricao da verba"], DESCRIPTION_PATTERNS) == "Descricao da verba"
    assert guess_column(["Nome"], CODE_PATTERNS) is None


def test_norm_key():
    assert norm_key("C.R.") == "cr"
    assert norm_key(" Clas. ") == "clas"


def test_default_group_by_prefers_canonical_columns():
    assert default_group_by(["Nome", "CPF", "Empresa"]) == ["Empresa", "CPF"]


def test_default_group_by_hints_are_capped():
    cols = ["Estabelecimento", "Centro de Custo", "C.R", "Matrícula", "Nome"]
    assert default_group_by(cols) == ["Estabelecimento", "Centro de Custo", "C.R"]


def test_cr_hint_does_not_match_inside_words():
    assert default_group_by(["Crédito", "Descrição"]) == []


def test_default_visible_columns():
    assert default_visible_columns(["Nome", "C.R.", "Processo", "Outro"]) == ["C.R.", "Nome", "Processo"]
    assert default_visible_columns(["Matrícula do colaborador", "Outro"]) == ["Matrícula do colaborador"]


def test_filter_columns_fall_back_to_visible():
    assert filter_columns(["C.R.", "Clas.", "Nome"], ["Nome"]) == ["C.R.", "Clas."]
    assert filter_columns(["Nome", "Cargo"], ["Cargo", "Sumida"]) == ["Cargo"]


def test_classify_filter_column():
    assert classify_filter_column(["A", "B", "A", ""]) is FilterMode.EQUALS
    assert classify_filter_column(["A", "A"]) is FilterMode.CONTAINS
    assert classify_filter_column([str(i) for i in range(31)]) is FilterMode.CONTAINS
    assert classify_filter_column(["x" * 61, "y"]) is FilterMode.CONTAINS


def test_build_filter_specs():
    rows = [{"C.R.": "20"}, {"C.R.": "10"}, {"C.R.": "20"}, {"C.R.": None}]
    [spec] = build_filter_specs(rows, ["C.R."])
    assert spec.column == "C.R."
    assert spec.mode is FilterMode.EQUALS
    assert spec.options == ["10", "20"]


def test_build_filter_specs_drops_suggestions_for_high_cardinality():
    rows = [{"Nome": f"pessoa {i}"} for i in range(250)]
    [spec] = build_filter_specs(rows, ["Nome"])
    assert spec.mode is FilterMode.CONTAINS
    assert spec.options == []


def test_restore_selection():
    assert restore_selection(None, ["A"]) is None
    assert restore_selection([], ["A"]) == []
    assert restore_selection(["A", "Sumida"], ["A", "B"]) == ["A"]
