import json
import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

import models

logger = logging.getLogger(__name__)

OPERACOES = ("INSERT", "UPDATE", "DELETE")


def _serializar(dados: Any) -> Optional[str]:
    if dados is None:
        return None
    return json.dumps(dados, default=str, ensure_ascii=False)


def registrar_audit_log(db: Session, empresa_id: int, tabela: str, registro_id, operacao: str,
                        dados_antes: Any = None, dados_depois: Any = None, descricao: Optional[str] = None) -> bool:
    """Grava uma entrada de auditoria em transação própria.

    Falhas são apenas registradas no log: a operação principal já foi confirmada
    e nunca é desfeita por causa da auditoria.
    """
    try:
        if operacao not in OPERACOES:
            raise ValueError(f"Operação de auditoria desconhecida: {operacao}")
        db.add(models.AuditLog(
            id_empresa=empresa_id,
            tabela=tabela,
            registro_id=None if registro_id is None else str(registro_id),
            operacao=operacao,
            dados_antes=_serializar(dados_antes),
            dados_depois=_serializar(dados_depois),
            descricao=descricao,
            criado_em=datetime.now(),
        ))
        db.commit()
        return True
    except Exception as e:
        db.rollback()
        logger.error(f"Falha ao registrar auditoria em {tabela} ({operacao}, registro {registro_id}): {e}", exc_info=True)
        return False
