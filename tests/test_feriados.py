# tests/test_feriados.py

from datetime import date

import pytest

import errors
from conftest import EMPRESA_ID
from feriados import (
    excluir_feriado,
    feriados_data_fixa,
    importar_feriados_nacionais,
    listar_feriados,
    salvar_feriado,
)


def test_salvar_feriado_atualiza_mesmo_dia_e_mes(db):
    # Arrange
    primeiro = salvar_feriado(db, EMPRESA_ID, 21, 1, "Aniversário da cidade")
    # Act
    segundo = salvar_feriado(db, EMPRESA_ID, 21, 1, "Aniversário de Goiatuba", ativo=False)
    # Assert
    assert primeiro["id_feriado"] == segundo["id_feriado"]
    feriados = listar_feriados(db, EMPRESA_ID)
    assert len(feriados) == 1
    assert feriados[0]["feriado_descricao"] == "Aniversário de Goiatuba"
    assert feriados[0]["feriado_ativo"] is False


def test_salvar_feriado_data_invalida(db):
    with pytest.raises(errors.ValidationError):
        salvar_feriado(db, EMPRESA_ID, 30, 2)


def test_listar_feriados_ordenados_e_por_empresa(db):
    salvar_feriado(db, EMPRESA_ID, 25, 12, "Natal")
    salvar_feriado(db, EMPRESA_ID, 1, 5, "Dia do Trabalhador")
    salvar_feriado(db, EMPRESA_ID + 1, 1, 1, "Outra empresa")

    assert [(f["feriado_dia"], f["feriado_mes"]) for f in listar_feriados(db, EMPRESA_ID)] == [(1, 5), (25, 12)]


def test_excluir_feriado(db):
    feriado = salvar_feriado(db, EMPRESA_ID, 25, 12, "Natal")

    excluir_feriado(db, EMPRESA_ID, feriado["id_feriado"])

    assert listar_feriados(db, EMPRESA_ID) == []
    with pytest.raises(errors.NotFoundError) as exc:
        excluir_feriado(db, EMPRESA_ID, feriado["id_feriado"])
    assert exc.value.code == "FERIADO_NAO_ENCONTRADO"


def test_feriados_data_fixa_exclui_feriados_moveis():
    fixos = feriados_data_fixa(2024, pais="BR")

    assert date(2024, 1, 1) in fixos
    assert date(2024, 4, 21) in fixos
    assert date(2024, 12, 25) in fixos
    # Sexta-feira Santa muda de data todo ano
    assert date(2024, 3, 29) not in fixos


def test_importar_feriados_nacionais_nao_duplica(db):
    # Arrange: feriado já cadastrado com descrição própria
    salvar_feriado(db, EMPRESA_ID, 25, 12, "Natal (empresa)")
    # Act
    importados = importar_feriados_nacionais(db, EMPRESA_ID, 2024)
    reimportados = importar_feriados_nacionais(db, EMPRESA_ID, 2024)
    # Assert
    assert importados > 0
    assert reimportados == 0
    feriados = {(f["feriado_dia"], f["feriado_mes"]): f["feriado_descricao"] for f in listar_feriados(db, EMPRESA_ID)}
    assert feriados[(25, 12)] == "Natal (empresa)"
    assert (21, 4) in feriados
    assert (29, 3) not in feriados
