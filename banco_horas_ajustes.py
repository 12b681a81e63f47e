import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

import errors
import models
from audit_log import registrar_audit_log
from database import transaction
from ponto_calculo import TipoAjuste, parse_competencia

logger = logging.getLogger(__name__)

OBSERVACAO_MAX = 255


def _ajuste_dict(ajuste: models.BancoHorasAjuste) -> Dict[str, Any]:
    return {
        "id": ajuste.id_ajuste,
        "id_funcionario": ajuste.id_funcionario,
        "competencia": ajuste.competencia,
        "data": ajuste.data_referencia,
        "minutos": ajuste.minutos,
        "tipo": ajuste.tipo_ajuste,
        "observacao": ajuste.observacao,
        "data_criacao": ajuste.data_criacao,
    }


def _observacao(texto: Optional[str]) -> Optional[str]:
    texto = (texto or "").strip()
    return texto[:OBSERVACAO_MAX] or None


def listar_ajustes(db: Session, empresa_id: int, id_funcionario: str, competencia: str) -> List[models.BancoHorasAjuste]:
    return db.query(models.BancoHorasAjuste).filter_by(
        id_empresa=empresa_id, id_funcionario=id_funcionario, competencia=competencia
    ).order_by(models.BancoHorasAjuste.data_criacao, models.BancoHorasAjuste.id_ajuste).all()


def listar_ajustes_dict(db: Session, empresa_id: int, id_funcionario: str, competencia: str) -> List[Dict[str, Any]]:
    if not id_funcionario or not parse_competencia(competencia):
        raise errors.ValidationError("PARAMETROS_INVALIDOS", "Informe funcionário e competência (YYYY-MM).")
    return [_ajuste_dict(a) for a in listar_ajustes(db, empresa_id, id_funcionario, competencia)]


def criar_ajuste_manual(db: Session, empresa_id: int, id_funcionario: str, data: str, minutos: int,
                        observacao: Optional[str] = None) -> Dict[str, Any]:
    if not id_funcionario or not data or not minutos:
        raise errors.ValidationError("PARAMETROS_INVALIDOS", "Informe funcionário, data e minutos (diferente de zero).")
    try:
        dia = date.fromisoformat(data)
    except ValueError:
        raise errors.ValidationError("PARAMETROS_INVALIDOS", f"Data inválida: {data}")

    with transaction(db):
        ajuste = models.BancoHorasAjuste(
            id_empresa=empresa_id,
            id_funcionario=id_funcionario,
            competencia=dia.strftime("%Y-%m"),
            minutos=int(minutos),
            tipo_ajuste=TipoAjuste.AJUSTE_MANUAL.value,
            observacao=_observacao(observacao),
            data_referencia=dia.isoformat(),
            data_criacao=datetime.now(),
        )
        db.add(ajuste)
        db.flush()
        criado = _ajuste_dict(ajuste)

    logger.info(f"Ajuste manual de {minutos} min lançado para {id_funcionario} em {criado['competencia']}.")
    registrar_audit_log(db, empresa_id, "rh_banco_horas_ajuste", criado["id"], "INSERT", None, criado,
                        "Ajuste manual do banco de horas")
    return criado


def excluir_ajuste_manual(db: Session, empresa_id: int, id_ajuste: int) -> Dict[str, Any]:
    ajuste = db.query(models.BancoHorasAjuste).filter_by(
        id_ajuste=id_ajuste, id_empresa=empresa_id, tipo_ajuste=TipoAjuste.AJUSTE_MANUAL.value
    ).first()
    # Ajustes gerados pelo fechamento não podem ser removidos pelo usuário
    if ajuste is None:
        raise errors.NotFoundError("AJUSTE_NAO_ENCONTRADO_OU_INVALIDO", f"Ajuste manual {id_ajuste} não encontrado.")

    antes = _ajuste_dict(ajuste)
    with transaction(db):
        db.delete(ajuste)

    registrar_audit_log(db, empresa_id, "rh_banco_horas_ajuste", id_ajuste, "DELETE", antes, None,
                        "Exclusão de ajuste manual do banco de horas")
    return antes


def registrar_ajustes_fechamento(db: Session, empresa_id: int, competencia: str, itens: Iterable) -> int:
    """Grava os acertos de fechamento de uma competência numa única transação.

    Horas pagas saem do banco (minutos negativos), horas descontadas em folha
    quitam o débito (minutos positivos) e o saldo a carregar entra com o sinal informado.

    No resumo da competência, FECHAMENTO_PAGAR e FECHAMENTO_DESCONTAR somam em
    ``fechamentos_min`` e portanto no ``saldo_tecnico_min``: pagar 90 min de um saldo
    de 120 deixa 30 no banco. CARREGAR_SALDO só documenta o que segue para o mês
    seguinte e não entra no saldo do mês em que foi lançado.
    """
    if not parse_competencia(competencia):
        raise errors.ValidationError("COMPETENCIA_INVALIDA", "Competência inválida. Use o formato YYYY-MM.")
    itens = list(itens or [])
    if not itens:
        raise errors.ValidationError("SEM_AJUSTES", "Nenhum ajuste informado.")

    agora = datetime.now()
    criados = []
    with transaction(db):
        for item in itens:
            if not item.id_funcionario:
                continue
            lancamentos = []
            pagar = max(0, int(item.horas_a_pagar_min or 0))
            descontar = max(0, int(item.horas_a_descontar_min or 0))
            carregar = int(item.horas_a_carregar_min or 0)
            if pagar:
                lancamentos.append((-pagar, TipoAjuste.FECHAMENTO_PAGAR))
            if descontar:
                lancamentos.append((descontar, TipoAjuste.FECHAMENTO_DESCONTAR))
            if carregar:
                lancamentos.append((carregar, TipoAjuste.CARREGAR_SALDO))

            for minutos, tipo in lancamentos:
                ajuste = models.BancoHorasAjuste(
                    id_empresa=empresa_id,
                    id_funcionario=item.id_funcionario,
                    competencia=competencia,
                    minutos=minutos,
                    tipo_ajuste=tipo.value,
                    observacao=_observacao(item.observacao),
                    data_criacao=agora,
                )
                db.add(ajuste)
                criados.append(ajuste)
        db.flush()
        registros = [_ajuste_dict(a) for a in criados]

    logger.info(f"{len(registros)} ajuste(s) de fechamento gravados na competência {competencia}.")
    for registro in registros:
        registrar_audit_log(db, empresa_id, "rh_banco_horas_ajuste", registro["id"], "INSERT", None, registro,
                            f"Ajuste de fechamento {registro['tipo']} em {competencia}")
    return len(registros)
