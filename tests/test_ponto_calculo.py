# tests/test_ponto_calculo.py

import math
from types import SimpleNamespace

import pytest

from ponto_calculo import (
    LancamentosCompetencia,
    RegistroDia,
    StatusDia,
    TipoDia,
    calculate_daily_balance,
    classify_day,
    competencia_interval,
    current_competencia,
    format_competencia,
    format_minutes,
    generate_competencia_days,
    is_registered_holiday,
    is_valid_time_text,
    normalize_tolerance,
    parse_time,
    previous_competencia,
    scheduled_minutes,
    weekday_name,
    worked_minutes,
)

JORNADA_COMERCIAL = SimpleNamespace(
    hora_entrada_manha="08:00", hora_saida_manha="12:00",
    hora_entrada_tarde="13:00", hora_saida_tarde="17:00",
    hora_entrada_intervalo=None, hora_saida_intervalo=None,
)


@pytest.mark.parametrize("texto", ["00:00", "07:05", "12:30", "23:59"])
def test_parse_e_format_preservam_horario(texto):
    assert format_minutes(parse_time(texto)) == texto


@pytest.mark.parametrize("texto", [None, "", "0800", "ab:cd", "08:00:00"])
def test_parse_time_invalido_retorna_none(texto):
    assert parse_time(texto) is None


def test_format_minutes_negativo_e_nao_finito():
    assert format_minutes(-90) == "-01:30"
    assert format_minutes(None) == "00:00"
    assert format_minutes(math.nan) == "00:00"
    assert format_minutes(math.inf) == "00:00"


def test_is_valid_time_text_exige_hh_mm():
    assert is_valid_time_text("08:00")
    assert not is_valid_time_text("8:00")
    assert not is_valid_time_text("24:00")
    assert not is_valid_time_text("08:60")


def test_normalize_tolerance():
    assert normalize_tolerance(10.9) == 10
    assert normalize_tolerance(-5) == 0
    assert normalize_tolerance(None) == 0
    assert normalize_tolerance(math.inf) == 0
    assert normalize_tolerance("abc") == 0


def test_worked_minutes_subtrai_janela_extra():
    # Arrange: 4h manhã + 4h tarde, janela extra de 30 min descontada
    registro = RegistroDia(
        data="2024-03-11",
        entrada_manha="08:00", saida_manha="12:00",
        entrada_tarde="13:00", saida_tarde="17:00",
        entrada_extra="15:00", saida_extra="15:30",
    )
    # Act / Assert
    assert worked_minutes(registro) == 450


def test_worked_minutes_par_incompleto_nao_conta():
    registro = RegistroDia(data="2024-03-11", entrada_manha="08:00", entrada_tarde="13:00", saida_tarde="17:00")
    assert worked_minutes(registro) == 240


def test_scheduled_minutes():
    assert scheduled_minutes(JORNADA_COMERCIAL) == 480
    assert scheduled_minutes(None) is None
    com_intervalo = SimpleNamespace(**{**vars(JORNADA_COMERCIAL), "hora_entrada_intervalo": "10:00", "hora_saida_intervalo": "10:15"})
    assert scheduled_minutes(com_intervalo) == 465


def test_classify_day():
    assert classify_day("2024-03-11") == TipoDia.DIA_UTIL
    assert classify_day("2024-03-09") == TipoDia.FIM_DE_SEMANA
    assert classify_day("2024-03-10") == TipoDia.FIM_DE_SEMANA
    # Flag de feriado vence o fim de semana
    assert classify_day("2024-03-09", e_feriado=True) == TipoDia.FERIADO
    assert weekday_name("2024-03-09") == "SAB"


def test_feriado_cadastrado_casa_dia_e_mes_de_qualquer_ano():
    feriados = {(21, 4), (25, 12)}
    assert is_registered_holiday("2024-04-21", feriados)
    assert is_registered_holiday("1999-12-25", feriados)
    assert not is_registered_holiday("2024-04-22", feriados)


def test_saldo_dentro_da_tolerancia_e_zero():
    for trabalhado in (470, 480, 490):
        assert calculate_daily_balance(TipoDia.DIA_UTIL, trabalhado, 480, 10)["saldo_banco_minutos"] == 0


def test_saldo_positivo_consome_tolerancia():
    # Arrange: trabalhou 495 min numa jornada de 480 com tolerância de 10
    # Act
    resultado = calculate_daily_balance(TipoDia.DIA_UTIL, 495, 480, 10)
    # Assert
    assert resultado["saldo_banco_minutos"] == 5
    assert resultado["minutos_extras_exibicao"] == 5
    assert resultado["minutos_pagos_feriado_fds"] == 0


def test_saldo_negativo_consome_tolerancia():
    resultado = calculate_daily_balance(TipoDia.DIA_UTIL, 450, 480, 10)
    assert resultado["saldo_banco_minutos"] == -20
    assert resultado["minutos_extras_exibicao"] == 0


def test_fim_de_semana_e_pago_diretamente():
    resultado = calculate_daily_balance(TipoDia.FIM_DE_SEMANA, 180, None, 10)
    assert resultado == {"saldo_banco_minutos": 0, "minutos_pagos_feriado_fds": 180, "minutos_extras_exibicao": 180}
    assert calculate_daily_balance(TipoDia.FERIADO, -30, 480, 0)["minutos_pagos_feriado_fds"] == 0


def test_dia_util_sem_jornada_nao_gera_saldo():
    assert calculate_daily_balance(TipoDia.DIA_UTIL, 600, None, 0)["saldo_banco_minutos"] == 0
    assert calculate_daily_balance(TipoDia.DIA_UTIL, 600, 0, 0)["saldo_banco_minutos"] == 0


def test_competencia_helpers():
    assert competencia_interval("2024-02") == ("2024-02-01", "2024-02-29")
    assert competencia_interval("2024-13") is None
    assert competencia_interval("2024-2") is None
    dias = generate_competencia_days("2023-02")
    assert len(dias) == 28 and dias[0] == "2023-02-01" and dias[-1] == "2023-02-28"
    assert generate_competencia_days("invalida") == []
    assert previous_competencia(2024, 1) == (2023, 12)
    assert previous_competencia(2024, 7) == (2024, 6)
    assert format_competencia(2024, 3) == "2024-03"
    assert competencia_interval(current_competencia()) is not None


def test_lancamentos_competencia_devolve_dia_normal_para_data_ausente():
    lancamentos = LancamentosCompetencia()
    registro = lancamentos["2024-03-05"]
    assert registro.status_dia == StatusDia.NORMAL
    assert worked_minutes(registro) == 0
    assert not registro.deve_persistir()
    # Consulta não grava a data no mapa
    assert "2024-03-05" not in lancamentos
