"""Cálculo mensal do banco de horas (resumo por funcionário e competência).

O resumo é montado em duas etapas: os loaders leem funcionário, jornada,
lançamentos, feriados, ajustes e o fechamento do mês anterior; ``montar_resumo``
percorre todos os dias da competência sem tocar no banco de dados.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy.orm import Session

import errors
import queries
from banco_horas_ajustes import listar_ajustes
from banco_horas_periodo import buscar_fechamento
from ponto_calculo import (
    Classificacao,
    LancamentosCompetencia,
    PoliticaFaltas,
    STATUS_ABONADOS,
    STATUS_FALTA,
    StatusDia,
    TipoAjuste,
    TipoDia,
    calculate_daily_balance,
    classify_day,
    competencia_interval,
    format_competencia,
    generate_competencia_days,
    is_registered_holiday,
    normalize_tolerance,
    parse_competencia,
    previous_competencia,
    scheduled_minutes,
    weekday_name,
    worked_minutes,
)
from ponto_lancamentos import carregar_lancamentos
from schemas import (
    Compensacao,
    DiaResumo,
    FuncionarioResumo,
    JornadaResumo,
    Movimento,
    ResumoBancoHorasMes,
    ResumoFuncionarioLinha,
)

logger = logging.getLogger(__name__)

MULTIPLICADOR_50 = 1.5
MULTIPLICADOR_100 = 2.0

TIPOS_FECHAMENTO = (TipoAjuste.FECHAMENTO_PAGAR, TipoAjuste.FECHAMENTO_DESCONTAR)


def valor_em_reais(minutos: int, valor_hora: float, multiplicador: float = 1.0) -> float:
    if not minutos or not valor_hora:
        return 0.0
    return round(minutos / 60 * valor_hora * multiplicador, 2)


def calcular_valor_hora(salario: float, carga_horaria_mensal: float) -> float:
    if not carga_horaria_mensal:
        return 0.0
    return salario / carga_horaria_mensal


def validar_politica(politica_faltas) -> PoliticaFaltas:
    try:
        return PoliticaFaltas(politica_faltas)
    except ValueError:
        raise errors.ValidationError("PARAMETROS_INVALIDOS", f"Política de faltas inválida: {politica_faltas}")


def compensar_faltas(devidas: int, extras_uteis: int, extras_100: int, saldo_anterior: int) -> Tuple[Compensacao, int, int, int]:
    """Abate o débito do mês com extras 100%, depois extras 50% e por último o saldo anterior positivo.

    Retorna a compensação e o que sobra para pagar a 50%, pagar a 100% e descontar.
    """
    debito = abs(min(0, devidas))
    disponivel_100 = max(0, extras_100)
    disponivel_50 = max(0, extras_uteis)
    disponivel_saldo = max(0, saldo_anterior)

    consumo_100 = min(disponivel_100, debito)
    debito -= consumo_100
    consumo_50 = min(disponivel_50, debito)
    debito -= consumo_50
    consumo_saldo = min(disponivel_saldo, debito)
    debito -= consumo_saldo

    compensacao = Compensacao(
        consumo_100_min=consumo_100,
        consumo_50_min=consumo_50,
        consumo_saldo_anterior_min=consumo_saldo,
        saldo_anterior_restante_min=saldo_anterior - consumo_saldo,
    )
    return compensacao, disponivel_50 - consumo_50, disponivel_100 - consumo_100, debito


def _resumir_dia(data: str, registro, feriados: Set[Tuple[int, int]], minutos_jornada: Optional[int], tolerancia: int) -> DiaResumo:
    e_feriado = registro.e_feriado or is_registered_holiday(data, feriados)
    tipo_dia = classify_day(data, e_feriado)
    status = registro.status_dia
    trabalhado = worked_minutes(registro) if status == StatusDia.NORMAL else 0

    previsto = 0
    saldo = 0
    pagos = 0
    classificacao = Classificacao.NORMAL

    if status not in STATUS_ABONADOS:
        if tipo_dia == TipoDia.DIA_UTIL:
            previsto = minutos_jornada or 0
        calculado = calculate_daily_balance(tipo_dia, trabalhado, minutos_jornada, tolerancia)
        saldo = calculado["saldo_banco_minutos"]
        pagos = calculado["minutos_pagos_feriado_fds"]

        if status in STATUS_FALTA:
            classificacao = Classificacao(status.value)
        elif tipo_dia != TipoDia.DIA_UTIL:
            classificacao = Classificacao.EXTRA_100 if pagos > 0 else Classificacao.NORMAL
        elif saldo > 0:
            classificacao = Classificacao.EXTRA_UTIL
        elif saldo < 0:
            classificacao = Classificacao.DEVEDOR

    observacao = registro.observacao or (status.value if status != StatusDia.NORMAL else None)
    return DiaResumo(
        data=data,
        dia_semana=weekday_name(data),
        tipo_dia=tipo_dia,
        jornada_prevista_min=previsto,
        trabalhado_min=trabalhado,
        diferenca_min=trabalhado - previsto,
        saldo_banco_min=saldo,
        minutos_pagos_feriado_fds=pagos,
        classificacao=classificacao,
        observacao=observacao,
    )


def _movimento(ajuste) -> Movimento:
    if ajuste.data_referencia:
        data = ajuste.data_referencia
    elif ajuste.data_criacao:
        data = ajuste.data_criacao.date().isoformat()
    else:
        data = f"{ajuste.competencia}-01"
    return Movimento(
        id=ajuste.id_ajuste,
        id_funcionario=ajuste.id_funcionario,
        data=data,
        tipo=ajuste.tipo_ajuste,
        minutos=ajuste.minutos,
        observacao=ajuste.observacao,
    )


def montar_resumo(funcionario: Dict[str, Any], ano: int, mes: int, lancamentos: LancamentosCompetencia,
                  feriados: Set[Tuple[int, int]], ajustes: Iterable, saldo_anterior: int,
                  salario: float, politica_faltas: PoliticaFaltas = PoliticaFaltas.COMPENSAR_COM_HORAS_EXTRAS,
                  zerar_banco_no_mes: bool = False) -> ResumoBancoHorasMes:
    competencia = format_competencia(ano, mes)
    jornada = funcionario.get("jornada")
    minutos_jornada = scheduled_minutes(jornada)
    tolerancia = normalize_tolerance(funcionario.get("tolerancia_minutos"))

    dias = [_resumir_dia(data, lancamentos[data], feriados, minutos_jornada, tolerancia)
            for data in generate_competencia_days(competencia)]

    def somar(campo: str, classificacao: Classificacao) -> int:
        return sum(getattr(d, campo) for d in dias if d.classificacao == classificacao)

    extras_uteis = somar("saldo_banco_min", Classificacao.EXTRA_UTIL)
    extras_100 = somar("minutos_pagos_feriado_fds", Classificacao.EXTRA_100)
    devedor = somar("saldo_banco_min", Classificacao.DEVEDOR)
    faltas_justificadas = somar("saldo_banco_min", Classificacao.FALTA_JUSTIFICADA)
    faltas_nao_justificadas = somar("saldo_banco_min", Classificacao.FALTA_NAO_JUSTIFICADA)

    movimentos = [_movimento(a) for a in ajustes]
    ajustes_min = sum(m.minutos for m in movimentos if m.tipo == TipoAjuste.AJUSTE_MANUAL)
    # CARREGAR_SALDO só registra o saldo levado adiante, não altera o mês
    fechamentos_min = sum(m.minutos for m in movimentos if m.tipo in TIPOS_FECHAMENTO)

    if politica_faltas == PoliticaFaltas.COMPENSAR_COM_HORAS_EXTRAS:
        devidas = devedor + faltas_justificadas + faltas_nao_justificadas
        compensacao, pagar_50, pagar_100, descontar = compensar_faltas(devidas, extras_uteis, extras_100, saldo_anterior)
    else:
        # Faltas saem do banco e são descontadas em folha
        devidas = devedor
        compensacao = Compensacao(saldo_anterior_restante_min=saldo_anterior)
        pagar_50 = max(0, extras_uteis)
        pagar_100 = max(0, extras_100)
        descontar = abs(devedor) + abs(faltas_nao_justificadas)

    saldo_tecnico = saldo_anterior + extras_uteis + extras_100 + devidas + ajustes_min + fechamentos_min
    valor_hora = calcular_valor_hora(salario, funcionario.get("carga_horaria_mensal", 0))

    jornada_resumo = None
    if jornada is not None:
        jornada_resumo = JornadaResumo(
            entrada_manha=jornada.hora_entrada_manha,
            saida_manha=jornada.hora_saida_manha,
            entrada_tarde=jornada.hora_entrada_tarde,
            saida_tarde=jornada.hora_saida_tarde,
            entrada_intervalo=jornada.hora_entrada_intervalo,
            saida_intervalo=jornada.hora_saida_intervalo,
            minutos_previstos=minutos_jornada,
            tolerancia_minutos=tolerancia,
        )

    return ResumoBancoHorasMes(
        funcionario=FuncionarioResumo(
            id=funcionario["id"],
            nome=funcionario["nome"],
            id_departamento=funcionario.get("id_departamento"),
            nome_departamento=funcionario.get("nome_departamento"),
            salario_base=salario,
            carga_horaria_mensal_horas=funcionario.get("carga_horaria_mensal", 0),
            valor_hora=valor_hora,
        ),
        ano=ano,
        mes=mes,
        competencia=competencia,
        jornada=jornada_resumo,
        politica_faltas=politica_faltas,
        zerar_banco_no_mes=zerar_banco_no_mes,
        saldo_anterior_min=saldo_anterior,
        extras_uteis_min=extras_uteis,
        extras_100_min=extras_100,
        devedor_min=devedor,
        faltas_justificadas_min=faltas_justificadas,
        faltas_nao_justificadas_min=faltas_nao_justificadas,
        devidas_min=devidas,
        ajustes_manuais_min=ajustes_min,
        fechamentos_min=fechamentos_min,
        saldo_tecnico_min=saldo_tecnico,
        saldo_final_banco_min=0 if zerar_banco_no_mes else saldo_tecnico,
        horas_pagar_50_min=pagar_50,
        horas_pagar_100_min=pagar_100,
        horas_descontar_min=descontar,
        valor_pagar_50=valor_em_reais(pagar_50, valor_hora, MULTIPLICADOR_50),
        valor_pagar_100=valor_em_reais(pagar_100, valor_hora, MULTIPLICADOR_100),
        valor_descontar=valor_em_reais(descontar, valor_hora),
        compensacao=compensacao,
        dias=dias,
        movimentos=movimentos,
    )


def _saldo_anterior(db: Session, empresa_id: int, id_funcionario: str, ano: int, mes: int) -> int:
    ano_anterior, mes_anterior = previous_competencia(ano, mes)
    fechamento = buscar_fechamento(db, empresa_id, id_funcionario, ano_anterior, mes_anterior)
    return fechamento.saldo_final_minutos if fechamento else 0


def calcular_banco_horas_mes(db: Session, empresa_id: int, id_funcionario: str, ano: int, mes: int,
                             politica_faltas=PoliticaFaltas.COMPENSAR_COM_HORAS_EXTRAS,
                             zerar_banco_no_mes: bool = False) -> ResumoBancoHorasMes:
    if not id_funcionario:
        raise errors.ValidationError("PARAMETROS_INVALIDOS", "Informe o funcionário.")
    if not 1 <= mes <= 12 or ano < 1:
        raise errors.ValidationError("PARAMETROS_INVALIDOS", "Competência inválida: mês deve estar entre 1 e 12.")
    politica = validar_politica(politica_faltas)
    competencia = format_competencia(ano, mes)
    inicio, fim = competencia_interval(competencia)

    funcionario = queries.get_funcionario_com_jornada(db, empresa_id, id_funcionario)
    if not funcionario:
        raise errors.NotFoundError("FUNCIONARIO_NAO_ENCONTRADO", f"Funcionário {id_funcionario} não encontrado.")

    logger.info(f"Calculando banco de horas de {id_funcionario} na competência {competencia} ({politica.value}).")
    salario = queries.get_salario_vigente(db, id_funcionario, inicio, fim, funcionario["salario_base"])
    return montar_resumo(
        funcionario,
        ano,
        mes,
        lancamentos=carregar_lancamentos(db, empresa_id, id_funcionario, inicio, fim),
        feriados=queries.get_feriados_empresa(db, empresa_id),
        ajustes=listar_ajustes(db, empresa_id, id_funcionario, competencia),
        saldo_anterior=_saldo_anterior(db, empresa_id, id_funcionario, ano, mes),
        salario=salario,
        politica_faltas=politica,
        zerar_banco_no_mes=zerar_banco_no_mes,
    )


def listar_resumo_banco_horas(db: Session, empresa_id: int, competencia: str, id_funcionario: Optional[str] = None,
                              id_departamento: Optional[int] = None) -> List[ResumoFuncionarioLinha]:
    partes = parse_competencia(competencia)
    if not partes:
        raise errors.ValidationError("COMPETENCIA_INVALIDA", "Competência inválida. Use o formato YYYY-MM.")
    ano, mes = partes
    inicio, fim = competencia_interval(competencia)

    funcionarios = queries.get_funcionarios_ativos(db, empresa_id, id_funcionario, id_departamento)
    if not funcionarios:
        return []

    # Feriados carregados uma única vez por chamada
    feriados = queries.get_feriados_empresa(db, empresa_id)
    linhas = []
    for funcionario in funcionarios:
        resumo = montar_resumo(
            funcionario,
            ano,
            mes,
            lancamentos=carregar_lancamentos(db, empresa_id, funcionario["id"], inicio, fim),
            feriados=feriados,
            ajustes=listar_ajustes(db, empresa_id, funcionario["id"], competencia),
            saldo_anterior=_saldo_anterior(db, empresa_id, funcionario["id"], ano, mes),
            salario=funcionario["salario_base"],
        )
        linhas.append(ResumoFuncionarioLinha(
            id_funcionario=funcionario["id"],
            nome_funcionario=funcionario["nome"],
            id_departamento=funcionario["id_departamento"],
            nome_departamento=funcionario["nome_departamento"],
            saldo_anterior_min=resumo.saldo_anterior_min,
            creditos_mes_min=resumo.extras_uteis_min + resumo.extras_100_min,
            debitos_mes_min=resumo.devidas_min,
            ajustes_min=resumo.ajustes_manuais_min + resumo.fechamentos_min,
            horas_pagas_fds_feriado_min=resumo.extras_100_min,
            saldo_atual_min=resumo.saldo_tecnico_min,
        ))
    return linhas
