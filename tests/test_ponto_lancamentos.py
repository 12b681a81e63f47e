# tests/test_ponto_lancamentos.py

import io

import pytest

import errors
import models
from banco_horas_periodo import fechar_periodo, reabrir_periodo
from conftest import EMPRESA_ID
from ponto_lancamentos import ler_planilha_ponto, listar_lancamentos, substituir_lancamentos
from schemas import DiaPontoPayload, FechamentoTotais


def criar_dia(data, **valores):
    return DiaPontoPayload(data_referencia=data, **valores)


def dias_padrao():
    return [
        criar_dia("2024-03-11", entrada_manha="08:00", saida_manha="12:00", entrada_tarde="13:00", saida_tarde="17:15"),
        criar_dia("2024-03-12", status_dia="falta_justificada", observacao="Consulta médica"),
        criar_dia("2024-03-13"),  # dia vazio: não é gravado
        criar_dia("2024-04-01", entrada_manha="08:00", saida_manha="12:00"),  # fora da competência
    ]


def test_substituir_e_listar_lancamentos(db):
    # Act
    gravados = substituir_lancamentos(db, EMPRESA_ID, "F001", "2024-03", dias_padrao())
    # Assert
    assert gravados == 2
    lancamentos = listar_lancamentos(db, EMPRESA_ID, "F001", "2024-03")
    assert [l["data_referencia"] for l in lancamentos] == ["2024-03-11", "2024-03-12"]
    assert lancamentos[0]["saida_tarde"] == "17:15"
    assert lancamentos[1]["status_dia"] == "FALTA_JUSTIFICADA"
    assert lancamentos[1]["observacao"] == "Consulta médica"


def test_substituir_apaga_dias_anteriores_da_competencia(db):
    substituir_lancamentos(db, EMPRESA_ID, "F001", "2024-03", dias_padrao())

    substituir_lancamentos(db, EMPRESA_ID, "F001", "2024-03", [criar_dia("2024-03-20", status_dia="FERIAS")])

    lancamentos = listar_lancamentos(db, EMPRESA_ID, "F001", "2024-03")
    assert [l["data_referencia"] for l in lancamentos] == ["2024-03-20"]


def test_horario_invalido_aborta_o_lote_inteiro(db):
    # Arrange
    substituir_lancamentos(db, EMPRESA_ID, "F001", "2024-03", dias_padrao())
    lote = [criar_dia("2024-03-05", entrada_manha="08:00", saida_manha="12:00"),
            criar_dia("2024-03-06", entrada_manha="8h00")]
    # Act
    with pytest.raises(errors.ValidationError) as exc:
        substituir_lancamentos(db, EMPRESA_ID, "F001", "2024-03", lote)
    # Assert: nada foi alterado
    assert exc.value.code == "HORARIO_INVALIDO"
    assert len(listar_lancamentos(db, EMPRESA_ID, "F001", "2024-03")) == 2


def test_status_invalido(db):
    with pytest.raises(errors.ValidationError) as exc:
        substituir_lancamentos(db, EMPRESA_ID, "F001", "2024-03", [criar_dia("2024-03-05", status_dia="VIAGEM")])
    assert exc.value.code == "STATUS_DIA_INVALIDO"


def test_competencia_invalida(db):
    with pytest.raises(errors.ValidationError) as exc:
        substituir_lancamentos(db, EMPRESA_ID, "F001", "2024/03", [])
    assert exc.value.code == "COMPETENCIA_INVALIDA"


def test_periodo_fechado_bloqueia_lancamentos(db):
    # Arrange
    fechar_periodo(db, EMPRESA_ID, FechamentoTotais(id_funcionario="F001", ano=2024, mes=3))
    # Act / Assert
    with pytest.raises(errors.StateConflictError) as exc:
        substituir_lancamentos(db, EMPRESA_ID, "F001", "2024-03", dias_padrao())
    assert exc.value.code == "PERIODO_FECHADO"

    # Reaberto volta a aceitar
    reabrir_periodo(db, EMPRESA_ID, "F001", 2024, 3, "master", "senha", verificar_credenciais=lambda *args: True)
    assert substituir_lancamentos(db, EMPRESA_ID, "F001", "2024-03", dias_padrao()) == 2


def test_lancamentos_sao_isolados_por_empresa(db):
    substituir_lancamentos(db, EMPRESA_ID, "F001", "2024-03", dias_padrao())
    substituir_lancamentos(db, EMPRESA_ID + 1, "F001", "2024-03", [])

    assert len(listar_lancamentos(db, EMPRESA_ID, "F001", "2024-03")) == 2
    assert db.query(models.AuditLog).filter_by(tabela="rh_ponto_lancamento").count() == 2


def test_ler_planilha_csv():
    # Arrange
    conteudo = (
        "data_referencia,entrada_manha,saida_manha,entrada_tarde,saida_tarde,status_dia,observacao\n"
        "2024-03-11,08:00,12:00,13:00,17:00,,\n"
        "2024-03-12,,,,,FALTA_NAO_JUSTIFICADA,Sem aviso\n"
        ",,,,,,\n"
    )
    # Act
    dias = ler_planilha_ponto(io.BytesIO(conteudo.encode("utf-8")), "ponto_marco.csv")
    # Assert
    assert len(dias) == 2
    assert dias[0].data_referencia == "2024-03-11"
    assert dias[0].saida_tarde == "17:00"
    assert dias[0].status_dia == "NORMAL"
    assert dias[1].status_dia == "FALTA_NAO_JUSTIFICADA"
    assert dias[1].entrada_manha is None


def test_ler_planilha_rejeita_formato_e_colunas():
    with pytest.raises(errors.ValidationError) as exc:
        ler_planilha_ponto(io.BytesIO(b"qualquer"), "ponto.txt")
    assert exc.value.code == "ARQUIVO_INVALIDO"

    with pytest.raises(errors.ValidationError) as exc:
        ler_planilha_ponto(io.BytesIO(b"dia,entrada\n2024-03-11,08:00\n"), "ponto.csv")
    assert exc.value.code == "ARQUIVO_INVALIDO"
