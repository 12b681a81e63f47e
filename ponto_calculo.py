import calendar
import math
import re
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, Optional, Set, Tuple

HORARIO_REGEX = re.compile(r"^(\d{2}):(\d{2})$")
COMPETENCIA_REGEX = re.compile(r"^(\d{4})-(\d{2})$")
DIAS_SEMANA = ["SEG", "TER", "QUA", "QUI", "SEX", "SAB", "DOM"]


class TipoDia(str, Enum):
    DIA_UTIL = "DIA_UTIL"
    FIM_DE_SEMANA = "FIM_DE_SEMANA"
    FERIADO = "FERIADO"


class StatusDia(str, Enum):
    NORMAL = "NORMAL"
    FERIAS = "FERIAS"
    ATESTADO = "ATESTADO"
    FOLGA = "FOLGA"
    FALTA_JUSTIFICADA = "FALTA_JUSTIFICADA"
    FALTA_NAO_JUSTIFICADA = "FALTA_NAO_JUSTIFICADA"


# Dias abonados: não geram jornada prevista nem impacto no banco
STATUS_ABONADOS = {StatusDia.FERIAS, StatusDia.ATESTADO, StatusDia.FOLGA}
STATUS_FALTA = {StatusDia.FALTA_JUSTIFICADA, StatusDia.FALTA_NAO_JUSTIFICADA}


class Classificacao(str, Enum):
    NORMAL = "NORMAL"
    EXTRA_UTIL = "EXTRA_UTIL"
    EXTRA_100 = "EXTRA_100"
    DEVEDOR = "DEVEDOR"
    FALTA_JUSTIFICADA = "FALTA_JUSTIFICADA"
    FALTA_NAO_JUSTIFICADA = "FALTA_NAO_JUSTIFICADA"


class PoliticaFaltas(str, Enum):
    COMPENSAR_COM_HORAS_EXTRAS = "COMPENSAR_COM_HORAS_EXTRAS"
    DESCONTAR_EM_FOLHA = "DESCONTAR_EM_FOLHA"


class SituacaoPeriodo(str, Enum):
    NAO_INICIADO = "NAO_INICIADO"
    FECHADO = "FECHADO"
    REABERTO = "REABERTO"


class TipoAjuste(str, Enum):
    AJUSTE_MANUAL = "AJUSTE_MANUAL"
    FECHAMENTO_PAGAR = "FECHAMENTO_PAGAR"
    FECHAMENTO_DESCONTAR = "FECHAMENTO_DESCONTAR"
    CARREGAR_SALDO = "CARREGAR_SALDO"


# --- HORÁRIOS ---

def parse_time(hora: Optional[str]) -> Optional[int]:
    """Converte "HH:MM" em minutos desde a meia-noite. Retorna None se inválido."""
    if not hora or not isinstance(hora, str) or ":" not in hora:
        return None
    partes = hora.strip().split(":")
    if len(partes) != 2:
        return None
    try:
        h, m = int(partes[0]), int(partes[1])
    except ValueError:
        return None
    return h * 60 + m


def format_minutes(minutos) -> str:
    if minutos is None:
        return "00:00"
    try:
        valor = float(minutos)
    except (TypeError, ValueError):
        return "00:00"
    if not math.isfinite(valor):
        return "00:00"
    total = int(valor)
    sinal = "-" if total < 0 else ""
    total = abs(total)
    return f"{sinal}{total // 60:02d}:{total % 60:02d}"


def is_valid_time_text(texto: Optional[str]) -> bool:
    if not texto:
        return False
    match = HORARIO_REGEX.match(texto.strip())
    if not match:
        return False
    return int(match.group(1)) <= 23 and int(match.group(2)) <= 59


def normalize_tolerance(valor) -> int:
    try:
        numero = float(valor if valor is not None else 0)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(numero) or numero <= 0:
        return 0
    return int(numero)


def _diff(inicio: Optional[int], fim: Optional[int]) -> int:
    if inicio is None or fim is None or fim <= inicio:
        return 0
    return fim - inicio


def worked_minutes(registro) -> int:
    """Manhã + tarde, menos a janela "extra" (tratada como intervalo descontado)."""
    em = parse_time(getattr(registro, "entrada_manha", None))
    sm = parse_time(getattr(registro, "saida_manha", None))
    et = parse_time(getattr(registro, "entrada_tarde", None))
    st = parse_time(getattr(registro, "saida_tarde", None))
    ee = parse_time(getattr(registro, "entrada_extra", None))
    se = parse_time(getattr(registro, "saida_extra", None))
    return _diff(em, sm) + _diff(et, st) - _diff(ee, se)


def scheduled_minutes(jornada) -> Optional[int]:
    if jornada is None:
        return None
    em = parse_time(jornada.hora_entrada_manha)
    sm = parse_time(jornada.hora_saida_manha)
    et = parse_time(jornada.hora_entrada_tarde)
    st = parse_time(jornada.hora_saida_tarde)
    ei = parse_time(jornada.hora_entrada_intervalo)
    si = parse_time(jornada.hora_saida_intervalo)
    return _diff(em, sm) + _diff(et, st) - _diff(ei, si)


# --- COMPETÊNCIA ---

def format_competencia(ano: int, mes: int) -> str:
    return f"{ano:04d}-{mes:02d}"


def parse_competencia(competencia: Optional[str]) -> Optional[Tuple[int, int]]:
    if not competencia:
        return None
    match = COMPETENCIA_REGEX.match(competencia.strip())
    if not match:
        return None
    ano, mes = int(match.group(1)), int(match.group(2))
    if not 1 <= mes <= 12 or ano < 1:
        return None
    return ano, mes


def competencia_interval(competencia: Optional[str]) -> Optional[Tuple[str, str]]:
    partes = parse_competencia(competencia)
    if not partes:
        return None
    ano, mes = partes
    ultimo_dia = calendar.monthrange(ano, mes)[1]
    return f"{format_competencia(ano, mes)}-01", f"{format_competencia(ano, mes)}-{ultimo_dia:02d}"


def generate_competencia_days(competencia: str):
    partes = parse_competencia(competencia)
    if not partes:
        return []
    ano, mes = partes
    ultimo_dia = calendar.monthrange(ano, mes)[1]
    return [date(ano, mes, dia).isoformat() for dia in range(1, ultimo_dia + 1)]


def previous_competencia(ano: int, mes: int) -> Tuple[int, int]:
    if mes == 1:
        return ano - 1, 12
    return ano, mes - 1


def current_competencia() -> str:
    hoje = date.today()
    return format_competencia(hoje.year, hoje.month)


# --- CLASSIFICAÇÃO DO DIA ---

def classify_day(data_referencia: str, e_feriado: bool = False) -> TipoDia:
    if e_feriado:
        return TipoDia.FERIADO
    if date.fromisoformat(data_referencia).weekday() >= 5:
        return TipoDia.FIM_DE_SEMANA
    return TipoDia.DIA_UTIL


def is_registered_holiday(data_referencia: str, feriados: Set[Tuple[int, int]]) -> bool:
    """Feriados são recorrentes: a busca usa apenas (dia, mês)."""
    dia = date.fromisoformat(data_referencia)
    return (dia.day, dia.month) in feriados


def weekday_name(data_referencia: str) -> str:
    return DIAS_SEMANA[date.fromisoformat(data_referencia).weekday()]


def calculate_daily_balance(tipo_dia: TipoDia, trabalhado: int, previsto: Optional[int], tolerancia) -> Dict[str, int]:
    calculado = {"saldo_banco_minutos": 0, "minutos_pagos_feriado_fds": 0, "minutos_extras_exibicao": 0}

    # Fim de semana e feriado são pagos diretamente, nunca vão para o banco
    if tipo_dia != TipoDia.DIA_UTIL:
        pagos = max(0, trabalhado)
        calculado["minutos_pagos_feriado_fds"] = pagos
        calculado["minutos_extras_exibicao"] = pagos
        return calculado

    if not previsto or previsto <= 0:
        return calculado

    diferenca = trabalhado - previsto
    tolerancia = normalize_tolerance(tolerancia)
    if abs(diferenca) <= tolerancia:
        return calculado

    saldo = diferenca - tolerancia if diferenca > 0 else diferenca + tolerancia
    calculado["saldo_banco_minutos"] = saldo
    calculado["minutos_extras_exibicao"] = max(0, saldo)
    return calculado


# --- LANÇAMENTOS DO MÊS ---

@dataclass
class RegistroDia:
    data: str
    entrada_manha: Optional[str] = None
    saida_manha: Optional[str] = None
    entrada_tarde: Optional[str] = None
    saida_tarde: Optional[str] = None
    entrada_extra: Optional[str] = None
    saida_extra: Optional[str] = None
    status_dia: StatusDia = StatusDia.NORMAL
    e_feriado: bool = False
    observacao: Optional[str] = None

    def horarios(self):
        return [self.entrada_manha, self.saida_manha, self.entrada_tarde,
                self.saida_tarde, self.entrada_extra, self.saida_extra]

    def deve_persistir(self) -> bool:
        # Dia sem batidas, status NORMAL, sem observação e sem feriado não é gravado
        return (any(self.horarios()) or self.status_dia != StatusDia.NORMAL
                or bool(self.observacao) or self.e_feriado)


class LancamentosCompetencia(dict):
    """Mapa data ISO -> RegistroDia. Datas sem lançamento devolvem um dia NORMAL vazio."""

    def __missing__(self, data: str) -> RegistroDia:
        return RegistroDia(data=data)
