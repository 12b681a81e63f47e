"""Situação do período (NAO_INICIADO -> FECHADO -> REABERTO -> FECHADO ...) e fechamento."""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

import errors
import models
from audit_log import registrar_audit_log
from database import transaction
from ponto_calculo import PoliticaFaltas, SituacaoPeriodo, format_competencia
from schemas import FechamentoTotais
from security import verify_master_credentials

logger = logging.getLogger(__name__)

MOTIVO_MAX = 255


def _validar_periodo(id_funcionario: str, ano: int, mes: int):
    if not id_funcionario:
        raise errors.ValidationError("PARAMETROS_INVALIDOS", "Informe o funcionário.")
    if not isinstance(mes, int) or not 1 <= mes <= 12:
        raise errors.ValidationError("PARAMETROS_INVALIDOS", "Mês deve estar entre 1 e 12.")
    if not isinstance(ano, int) or ano < 1:
        raise errors.ValidationError("PARAMETROS_INVALIDOS", "Ano inválido.")


def _como_dict(registro) -> Dict[str, Any]:
    return {coluna.name: getattr(registro, coluna.name) for coluna in registro.__table__.columns}


def buscar_periodo(db: Session, empresa_id: int, id_funcionario: str, ano: int, mes: int) -> Optional[models.BancoHorasPeriodo]:
    return db.query(models.BancoHorasPeriodo).filter_by(
        id_empresa=empresa_id, id_funcionario=id_funcionario, ano_referencia=ano, mes_referencia=mes
    ).first()


def buscar_fechamento(db: Session, empresa_id: int, id_funcionario: str, ano: int, mes: int) -> Optional[models.BancoHorasFechamento]:
    return db.query(models.BancoHorasFechamento).filter_by(
        id_empresa=empresa_id, id_funcionario=id_funcionario, ano=ano, mes=mes
    ).first()


def obter_situacao_periodo(db: Session, empresa_id: int, id_funcionario: str, ano: int, mes: int) -> SituacaoPeriodo:
    _validar_periodo(id_funcionario, ano, mes)
    periodo = buscar_periodo(db, empresa_id, id_funcionario, ano, mes)
    if periodo is None:
        return SituacaoPeriodo.NAO_INICIADO
    return SituacaoPeriodo(periodo.situacao_periodo)


def garantir_periodo_editavel(db: Session, empresa_id: int, id_funcionario: str, ano: int, mes: int):
    if obter_situacao_periodo(db, empresa_id, id_funcionario, ano, mes) == SituacaoPeriodo.FECHADO:
        raise errors.StateConflictError(
            "PERIODO_FECHADO", f"A competência {format_competencia(ano, mes)} está fechada para {id_funcionario}."
        )


def totais_do_resumo(resumo) -> FechamentoTotais:
    """Converte um resumo calculado nos totais gravados no fechamento."""
    return FechamentoTotais(
        id_funcionario=resumo.funcionario.id,
        ano=resumo.ano,
        mes=resumo.mes,
        politica_faltas=resumo.politica_faltas,
        zerar_banco_no_mes=resumo.zerar_banco_no_mes,
        saldo_anterior_minutos=resumo.saldo_anterior_min,
        horas_extras_50_minutos=resumo.extras_uteis_min,
        horas_extras_100_minutos=resumo.extras_100_min,
        horas_devidas_minutos=resumo.devidas_min,
        ajustes_minutos=resumo.ajustes_manuais_min + resumo.fechamentos_min,
        saldo_final_minutos=resumo.saldo_final_banco_min,
        # Só há valor a acertar quando o banco é zerado no mês
        saldo_final_para_pagar_minutos=resumo.saldo_tecnico_min if resumo.zerar_banco_no_mes else 0,
        valor_hora=resumo.funcionario.valor_hora,
    )


def _valores_fechamento(saldo_para_pagar: int, valor_hora: Optional[float]):
    if not saldo_para_pagar or not valor_hora:
        return None, None
    valor = round(saldo_para_pagar / 60 * valor_hora, 2)
    if valor > 0:
        return valor, None
    if valor < 0:
        return None, abs(valor)
    return None, None


def fechar_periodo(db: Session, empresa_id: int, totais: FechamentoTotais, usuario: Optional[str] = None) -> Dict[str, Any]:
    _validar_periodo(totais.id_funcionario, totais.ano, totais.mes)
    agora = datetime.now()
    valor_pagar, valor_descontar = _valores_fechamento(totais.saldo_final_para_pagar_minutos, totais.valor_hora)

    with transaction(db):
        periodo = buscar_periodo(db, empresa_id, totais.id_funcionario, totais.ano, totais.mes)
        if periodo is None:
            periodo = models.BancoHorasPeriodo(
                id_empresa=empresa_id,
                id_funcionario=totais.id_funcionario,
                ano_referencia=totais.ano,
                mes_referencia=totais.mes,
            )
            db.add(periodo)
        periodo.situacao_periodo = SituacaoPeriodo.FECHADO.value
        periodo.id_usuario_ultima_atualizacao = usuario
        periodo.data_ultima_atualizacao = agora

        fechamento = buscar_fechamento(db, empresa_id, totais.id_funcionario, totais.ano, totais.mes)
        antes = _como_dict(fechamento) if fechamento else None
        if fechamento is None:
            fechamento = models.BancoHorasFechamento(
                id_empresa=empresa_id,
                id_funcionario=totais.id_funcionario,
                ano=totais.ano,
                mes=totais.mes,
            )
            db.add(fechamento)
        fechamento.competencia = format_competencia(totais.ano, totais.mes)
        fechamento.saldo_anterior_minutos = totais.saldo_anterior_minutos
        fechamento.horas_extras_50_minutos = totais.horas_extras_50_minutos
        fechamento.horas_extras_100_minutos = totais.horas_extras_100_minutos
        fechamento.horas_devidas_minutos = totais.horas_devidas_minutos
        fechamento.ajustes_minutos = totais.ajustes_minutos
        fechamento.saldo_final_minutos = totais.saldo_final_minutos
        fechamento.politica_faltas = PoliticaFaltas(totais.politica_faltas).value
        fechamento.zerou_banco = totais.zerar_banco_no_mes
        fechamento.valor_pagar = valor_pagar
        fechamento.valor_descontar = valor_descontar
        fechamento.usuario_fechamento = usuario
        fechamento.data_fechamento = agora
        fechamento.data_liberacao_edicao = None
        fechamento.id_usuario_master_liberacao = None
        fechamento.motivo_liberacao = None
        db.flush()
        depois = _como_dict(fechamento)

    logger.info(f"Período {fechamento.competencia} de {totais.id_funcionario} fechado por {usuario or 'sistema'}.")
    registrar_audit_log(
        db, empresa_id, "rh_banco_horas_fechamento", depois["id_fechamento"],
        "UPDATE" if antes else "INSERT", antes, depois,
        f"Fechamento do banco de horas {fechamento.competencia}",
    )
    return depois


def reabrir_periodo(db: Session, empresa_id: int, id_funcionario: str, ano: int, mes: int,
                    usuario_master: Optional[str], senha_master: Optional[str], motivo: Optional[str] = None,
                    verificar_credenciais: Callable[[Session, str, str], bool] = verify_master_credentials) -> Dict[str, Any]:
    _validar_periodo(id_funcionario, ano, mes)
    if not usuario_master or not senha_master:
        raise errors.AuthError("CREDENCIAIS_INVALIDAS", "Informe usuário e senha master.")
    if not verificar_credenciais(db, usuario_master, senha_master):
        raise errors.AuthError("CREDENCIAIS_INVALIDAS", "Usuário ou senha master inválidos.")

    periodo = buscar_periodo(db, empresa_id, id_funcionario, ano, mes)
    if periodo is None:
        raise errors.NotFoundError("PERIODO_NAO_ENCONTRADO", "Período nunca foi fechado.")
    if periodo.situacao_periodo != SituacaoPeriodo.FECHADO.value:
        raise errors.StateConflictError(
            "SITUACAO_INVALIDA", f"Somente períodos FECHADO podem ser reabertos (atual: {periodo.situacao_periodo})."
        )

    agora = datetime.now()
    competencia = format_competencia(ano, mes)
    with transaction(db):
        periodo.situacao_periodo = SituacaoPeriodo.REABERTO.value
        periodo.id_usuario_ultima_atualizacao = usuario_master
        periodo.data_ultima_atualizacao = agora

        fechamento = buscar_fechamento(db, empresa_id, id_funcionario, ano, mes)
        antes = _como_dict(fechamento) if fechamento else None
        if fechamento is None:
            # Período FECHADO sem fechamento: grava apenas os dados da liberação
            fechamento = models.BancoHorasFechamento(
                id_empresa=empresa_id,
                id_funcionario=id_funcionario,
                ano=ano,
                mes=mes,
                competencia=competencia,
                saldo_anterior_minutos=0,
                horas_extras_50_minutos=0,
                horas_extras_100_minutos=0,
                horas_devidas_minutos=0,
                ajustes_minutos=0,
                saldo_final_minutos=0,
                politica_faltas=PoliticaFaltas.COMPENSAR_COM_HORAS_EXTRAS.value,
                zerou_banco=False,
            )
            db.add(fechamento)
        fechamento.data_liberacao_edicao = agora
        fechamento.id_usuario_master_liberacao = usuario_master
        fechamento.motivo_liberacao = motivo[:MOTIVO_MAX] if motivo else None
        db.flush()
        depois = _como_dict(fechamento)

    logger.info(f"Período {competencia} de {id_funcionario} reaberto por {usuario_master}.")
    registrar_audit_log(
        db, empresa_id, "rh_banco_horas_fechamento", depois["id_fechamento"],
        "UPDATE" if antes else "INSERT", antes, depois,
        f"Reabertura do banco de horas {competencia}: {depois['motivo_liberacao'] or 'sem motivo'}",
    )
    return depois


def listar_periodos(db: Session, empresa_id: int, id_funcionario: str, ano: int,
                    situacoes: Optional[Iterable[SituacaoPeriodo]] = None) -> List[Dict[str, Any]]:
    if not id_funcionario:
        raise errors.ValidationError("PARAMETROS_INVALIDOS", "Informe o funcionário.")
    filtro = set(situacoes) if situacoes else {SituacaoPeriodo.FECHADO, SituacaoPeriodo.REABERTO}
    registros = db.query(models.BancoHorasPeriodo).filter_by(
        id_empresa=empresa_id, id_funcionario=id_funcionario, ano_referencia=ano
    ).all()
    por_mes = {p.mes_referencia: p for p in registros}

    periodos = []
    for mes in range(1, 13):
        periodo = por_mes.get(mes)
        situacao = SituacaoPeriodo(periodo.situacao_periodo) if periodo else SituacaoPeriodo.NAO_INICIADO
        if situacao not in filtro:
            continue
        periodos.append({
            "ano": ano,
            "mes": mes,
            "competencia": format_competencia(ano, mes),
            "situacao": situacao.value,
            "id_usuario_ultima_atualizacao": periodo.id_usuario_ultima_atualizacao if periodo else None,
            "data_ultima_atualizacao": periodo.data_ultima_atualizacao if periodo else None,
        })
    return periodos


def listar_meses_fechados(db: Session, empresa_id: int, id_funcionario: Optional[str] = None) -> List[Dict[str, Any]]:
    consulta = db.query(models.BancoHorasFechamento.ano, models.BancoHorasFechamento.mes).filter(
        models.BancoHorasFechamento.id_empresa == empresa_id
    )
    if id_funcionario:
        consulta = consulta.filter(models.BancoHorasFechamento.id_funcionario == id_funcionario)
    linhas = consulta.distinct().order_by(
        models.BancoHorasFechamento.ano.desc(), models.BancoHorasFechamento.mes.desc()
    ).all()
    return [{"ano": ano, "mes": mes, "competencia": format_competencia(ano, mes)} for ano, mes in linhas]
