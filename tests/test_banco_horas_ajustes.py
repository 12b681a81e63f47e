# tests/test_banco_horas_ajustes.py

import pytest

import errors
import models
from banco_horas import calcular_banco_horas_mes, listar_resumo_banco_horas
from banco_horas_ajustes import (
    criar_ajuste_manual,
    excluir_ajuste_manual,
    listar_ajustes_dict,
    registrar_ajustes_fechamento,
)
from banco_horas_periodo import fechar_periodo, totais_do_resumo
from conftest import EMPRESA_ID, criar_funcionario
from schemas import AjusteFechamentoItem


def test_criar_ajuste_manual_define_competencia_pela_data(db):
    ajuste = criar_ajuste_manual(db, EMPRESA_ID, "F001", "2024-03-20", -45, "Saída antecipada autorizada")

    assert ajuste["competencia"] == "2024-03"
    assert ajuste["tipo"] == "AJUSTE_MANUAL"
    assert ajuste["minutos"] == -45
    assert [a["id"] for a in listar_ajustes_dict(db, EMPRESA_ID, "F001", "2024-03")] == [ajuste["id"]]


def test_criar_ajuste_manual_trunca_observacao(db):
    ajuste = criar_ajuste_manual(db, EMPRESA_ID, "F001", "2024-03-20", 30, "a" * 400)
    assert len(ajuste["observacao"]) == 255


@pytest.mark.parametrize("data, minutos", [("", 30), ("20/03/2024", 30), ("2024-03-20", 0)])
def test_criar_ajuste_manual_parametros_invalidos(db, data, minutos):
    with pytest.raises(errors.ValidationError):
        criar_ajuste_manual(db, EMPRESA_ID, "F001", data, minutos)


def test_excluir_ajuste_manual(db):
    ajuste = criar_ajuste_manual(db, EMPRESA_ID, "F001", "2024-03-20", 30)

    excluir_ajuste_manual(db, EMPRESA_ID, ajuste["id"])

    assert listar_ajustes_dict(db, EMPRESA_ID, "F001", "2024-03") == []
    assert db.query(models.AuditLog).filter_by(operacao="DELETE").count() == 1


def test_excluir_ajuste_de_fechamento_e_recusado(db):
    # Arrange
    registrar_ajustes_fechamento(db, EMPRESA_ID, "2024-03", [AjusteFechamentoItem(id_funcionario="F001", horas_a_pagar_min=60)])
    ajuste = db.query(models.BancoHorasAjuste).one()
    # Act / Assert
    with pytest.raises(errors.NotFoundError) as exc:
        excluir_ajuste_manual(db, EMPRESA_ID, ajuste.id_ajuste)
    assert exc.value.code == "AJUSTE_NAO_ENCONTRADO_OU_INVALIDO"


def test_excluir_ajuste_de_outra_empresa_e_recusado(db):
    ajuste = criar_ajuste_manual(db, EMPRESA_ID, "F001", "2024-03-20", 30)
    with pytest.raises(errors.NotFoundError):
        excluir_ajuste_manual(db, EMPRESA_ID + 1, ajuste["id"])


def test_registrar_ajustes_fechamento_sinais(db):
    # Arrange
    itens = [
        AjusteFechamentoItem(id_funcionario="F001", horas_a_pagar_min=90, horas_a_descontar_min=30, horas_a_carregar_min=-15),
        AjusteFechamentoItem(id_funcionario=None, horas_a_pagar_min=999),
        AjusteFechamentoItem(id_funcionario="F002", horas_a_pagar_min=-10),
    ]
    # Act
    total = registrar_ajustes_fechamento(db, EMPRESA_ID, "2024-03", itens)
    # Assert
    assert total == 3
    por_tipo = {a["tipo"]: a["minutos"] for a in listar_ajustes_dict(db, EMPRESA_ID, "F001", "2024-03")}
    assert por_tipo == {"FECHAMENTO_PAGAR": -90, "FECHAMENTO_DESCONTAR": 30, "CARREGAR_SALDO": -15}
    assert listar_ajustes_dict(db, EMPRESA_ID, "F002", "2024-03") == []


def test_registrar_ajustes_fechamento_validacoes(db):
    with pytest.raises(errors.ValidationError) as exc:
        registrar_ajustes_fechamento(db, EMPRESA_ID, "2024-3", [AjusteFechamentoItem(id_funcionario="F001")])
    assert exc.value.code == "COMPETENCIA_INVALIDA"

    with pytest.raises(errors.ValidationError) as exc:
        registrar_ajustes_fechamento(db, EMPRESA_ID, "2024-03", [])
    assert exc.value.code == "SEM_AJUSTES"


def test_saldo_carregado_nao_soma_de_novo_no_mes(db):
    # Arrange
    criar_funcionario(db, "F003", com_jornada=False)
    criar_ajuste_manual(db, EMPRESA_ID, "F003", "2024-03-05", 120)
    antes = calcular_banco_horas_mes(db, EMPRESA_ID, "F003", 2024, 3)
    # Act
    registrar_ajustes_fechamento(db, EMPRESA_ID, "2024-03", [
        AjusteFechamentoItem(id_funcionario="F003", horas_a_carregar_min=antes.saldo_tecnico_min),
    ])
    depois = calcular_banco_horas_mes(db, EMPRESA_ID, "F003", 2024, 3)
    # Assert
    assert antes.saldo_tecnico_min == 120
    assert depois.saldo_tecnico_min == 120
    assert depois.ajustes_manuais_min == 120
    assert depois.fechamentos_min == 0
    assert {m.tipo.value for m in depois.movimentos} == {"AJUSTE_MANUAL", "CARREGAR_SALDO"}


def test_pagamento_no_fechamento_reduz_saldo_e_alimenta_mes_seguinte(db):
    # Arrange: 120 min no banco, 90 pagos em folha e 30 levados adiante
    criar_funcionario(db, "F003", com_jornada=False)
    criar_ajuste_manual(db, EMPRESA_ID, "F003", "2024-03-05", 120)
    registrar_ajustes_fechamento(db, EMPRESA_ID, "2024-03", [
        AjusteFechamentoItem(id_funcionario="F003", horas_a_pagar_min=90, horas_a_carregar_min=30),
    ])
    criar_ajuste_manual(db, EMPRESA_ID, "F003", "2024-04-02", 500)
    # Act
    marco = calcular_banco_horas_mes(db, EMPRESA_ID, "F003", 2024, 3)
    fechar_periodo(db, EMPRESA_ID, totais_do_resumo(marco))
    abril = calcular_banco_horas_mes(db, EMPRESA_ID, "F003", 2024, 4)
    linha = listar_resumo_banco_horas(db, EMPRESA_ID, "2024-03", id_funcionario="F003")[0]
    # Assert
    assert marco.ajustes_manuais_min == 120
    assert marco.fechamentos_min == -90
    assert marco.saldo_tecnico_min == 30
    assert totais_do_resumo(marco).ajustes_minutos == 30
    assert linha.ajustes_min == 30
    assert linha.saldo_atual_min == 30
    assert abril.saldo_anterior_min == 30
    assert abril.saldo_tecnico_min == 530
