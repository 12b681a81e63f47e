import calendar
import logging
from datetime import date
from typing import Any, Dict, List, Optional

import holidays
from sqlalchemy.orm import Session

import errors
import models
from audit_log import registrar_audit_log
from config import settings
from database import transaction

logger = logging.getLogger(__name__)


def _feriado_dict(feriado: models.Feriado) -> Dict[str, Any]:
    return {
        "id_feriado": feriado.id_feriado,
        "feriado_dia": feriado.feriado_dia,
        "feriado_mes": feriado.feriado_mes,
        "feriado_descricao": feriado.feriado_descricao,
        "feriado_ativo": bool(feriado.feriado_ativo),
    }


def _validar_dia_mes(dia: int, mes: int):
    # Ano bissexto de referência para aceitar 29/02
    if not 1 <= mes <= 12 or not 1 <= dia <= calendar.monthrange(2000, mes)[1]:
        raise errors.ValidationError("PARAMETROS_INVALIDOS", f"Data de feriado inválida: {dia:02d}/{mes:02d}.")


def listar_feriados(db: Session, empresa_id: int) -> List[Dict[str, Any]]:
    feriados = db.query(models.Feriado).filter_by(id_empresa=empresa_id).order_by(
        models.Feriado.feriado_mes, models.Feriado.feriado_dia
    ).all()
    return [_feriado_dict(f) for f in feriados]


def salvar_feriado(db: Session, empresa_id: int, dia: int, mes: int, descricao: str = "", ativo: bool = True) -> Dict[str, Any]:
    """Cria ou atualiza o feriado da empresa para o dia/mês informado."""
    _validar_dia_mes(dia, mes)
    with transaction(db):
        feriado = db.query(models.Feriado).filter_by(id_empresa=empresa_id, feriado_dia=dia, feriado_mes=mes).first()
        antes = _feriado_dict(feriado) if feriado else None
        if feriado is None:
            feriado = models.Feriado(id_empresa=empresa_id, feriado_dia=dia, feriado_mes=mes)
            db.add(feriado)
        feriado.feriado_descricao = (descricao or "").strip()
        feriado.feriado_ativo = ativo
        db.flush()
        depois = _feriado_dict(feriado)

    registrar_audit_log(db, empresa_id, "rh_feriado", depois["id_feriado"], "UPDATE" if antes else "INSERT",
                        antes, depois, f"Feriado {dia:02d}/{mes:02d}")
    return depois


def excluir_feriado(db: Session, empresa_id: int, id_feriado: int) -> Dict[str, Any]:
    feriado = db.query(models.Feriado).filter_by(id_feriado=id_feriado, id_empresa=empresa_id).first()
    if feriado is None:
        raise errors.NotFoundError("FERIADO_NAO_ENCONTRADO", f"Feriado {id_feriado} não encontrado.")
    antes = _feriado_dict(feriado)
    with transaction(db):
        db.delete(feriado)
    registrar_audit_log(db, empresa_id, "rh_feriado", id_feriado, "DELETE", antes, None, "Exclusão de feriado")
    return antes


def feriados_data_fixa(ano: int, uf: Optional[str] = None, pais: Optional[str] = None) -> Dict[date, str]:
    """Feriados que caem no mesmo dia/mês nos anos vizinhos (exclui Carnaval, Páscoa etc.)."""
    calendario = holidays.country_holidays(pais or settings.PAIS_FERIADOS, subdiv=uf or None,
                                           years=[ano - 1, ano, ano + 1])
    datas_por_nome: Dict[str, Dict[bool, set]] = {}
    for dia, nome in calendario.items():
        datas_por_nome.setdefault(nome, {True: set(), False: set()})[dia.year == ano].add((dia.day, dia.month))

    fixos = {}
    for dia, nome in sorted(calendario.items()):
        if dia.year != ano:
            continue
        no_ano, vizinhos = datas_por_nome[nome][True], datas_por_nome[nome][False]
        # Feriado criado no próprio ano só aparece no ano seguinte; basta não mudar de data
        if vizinhos and vizinhos <= no_ano:
            fixos[dia] = nome
    return fixos


def importar_feriados_nacionais(db: Session, empresa_id: int, ano: int, uf: Optional[str] = None) -> int:
    if ano < 1900:
        raise errors.ValidationError("PARAMETROS_INVALIDOS", f"Ano inválido: {ano}")
    try:
        fixos = feriados_data_fixa(ano, uf or settings.UF_FERIADOS or None)
    except NotImplementedError as e:
        raise errors.ValidationError("PARAMETROS_INVALIDOS", f"Calendário de feriados indisponível: {e}")

    existentes = {(f.feriado_dia, f.feriado_mes) for f in db.query(models.Feriado).filter_by(id_empresa=empresa_id).all()}
    novos = []
    with transaction(db):
        for dia, nome in fixos.items():
            if (dia.day, dia.month) in existentes:
                continue
            feriado = models.Feriado(id_empresa=empresa_id, feriado_dia=dia.day, feriado_mes=dia.month,
                                     feriado_descricao=nome, feriado_ativo=True)
            db.add(feriado)
            novos.append(feriado)
        db.flush()
        importados = [_feriado_dict(f) for f in novos]

    logger.info(f"{len(importados)} feriado(s) nacional(is) importados para a empresa {empresa_id} ({ano}).")
    if importados:
        registrar_audit_log(db, empresa_id, "rh_feriado", None, "INSERT", None, importados,
                            f"Importação de feriados nacionais de {ano}")
    return len(importados)
