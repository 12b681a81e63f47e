import logging
from datetime import date, datetime, time
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd
from sqlalchemy.orm import Session

import errors
import models
from audit_log import registrar_audit_log
from banco_horas_periodo import garantir_periodo_editavel
from database import transaction
from ponto_calculo import (
    LancamentosCompetencia,
    RegistroDia,
    StatusDia,
    competencia_interval,
    is_valid_time_text,
    parse_competencia,
)
from schemas import DiaPontoPayload

logger = logging.getLogger(__name__)

CAMPOS_HORARIO = ["entrada_manha", "saida_manha", "entrada_tarde", "saida_tarde", "entrada_extra", "saida_extra"]
COLUNAS_OPCIONAIS = CAMPOS_HORARIO + ["status_dia", "e_feriado", "observacao"]


def _status_gravado(valor: Optional[str], data: str) -> StatusDia:
    try:
        return StatusDia((valor or StatusDia.NORMAL.value).strip().upper())
    except ValueError:
        logger.warning(f"Status de dia desconhecido '{valor}' em {data}; tratado como NORMAL.")
        return StatusDia.NORMAL


def _registro_de_lancamento(lancamento: models.PontoLancamento) -> RegistroDia:
    return RegistroDia(
        data=lancamento.data_referencia,
        entrada_manha=lancamento.entrada_manha,
        saida_manha=lancamento.saida_manha,
        entrada_tarde=lancamento.entrada_tarde,
        saida_tarde=lancamento.saida_tarde,
        entrada_extra=lancamento.entrada_extra,
        saida_extra=lancamento.saida_extra,
        status_dia=_status_gravado(lancamento.status_dia, lancamento.data_referencia),
        e_feriado=bool(lancamento.e_feriado),
        observacao=lancamento.observacao,
    )


def _consultar(db: Session, empresa_id: int, id_funcionario: str, inicio: str, fim: str) -> List[models.PontoLancamento]:
    return db.query(models.PontoLancamento).filter(
        models.PontoLancamento.id_empresa == empresa_id,
        models.PontoLancamento.id_funcionario == id_funcionario,
        models.PontoLancamento.data_referencia >= inicio,
        models.PontoLancamento.data_referencia <= fim,
    ).order_by(models.PontoLancamento.data_referencia).all()


def carregar_lancamentos(db: Session, empresa_id: int, id_funcionario: str, inicio: str, fim: str) -> LancamentosCompetencia:
    lancamentos = LancamentosCompetencia()
    for lancamento in _consultar(db, empresa_id, id_funcionario, inicio, fim):
        lancamentos[lancamento.data_referencia] = _registro_de_lancamento(lancamento)
    return lancamentos


def _registro_dict(registro: RegistroDia) -> Dict[str, Any]:
    return {
        "data_referencia": registro.data,
        **{campo: getattr(registro, campo) for campo in CAMPOS_HORARIO},
        "status_dia": registro.status_dia.value,
        "e_feriado": registro.e_feriado,
        "observacao": registro.observacao,
    }


def _intervalo(id_funcionario: str, competencia: str):
    if not id_funcionario:
        raise errors.ValidationError("PARAMETROS_INVALIDOS", "Informe o funcionário.")
    intervalo = competencia_interval(competencia)
    if not intervalo:
        raise errors.ValidationError("COMPETENCIA_INVALIDA", "Competência inválida. Use o formato YYYY-MM.")
    return intervalo


def listar_lancamentos(db: Session, empresa_id: int, id_funcionario: str, competencia: str) -> List[Dict[str, Any]]:
    inicio, fim = _intervalo(id_funcionario, competencia)
    return [_registro_dict(_registro_de_lancamento(l)) for l in _consultar(db, empresa_id, id_funcionario, inicio, fim)]


def _normalizar_horario(valor: Optional[str], data: str) -> Optional[str]:
    texto = (valor or "").strip() if isinstance(valor, str) or valor is None else str(valor).strip()
    if not texto:
        return None
    if not is_valid_time_text(texto):
        raise errors.ValidationError("HORARIO_INVALIDO", f"Horário inválido '{texto}' em {data}.")
    return texto


def _normalizar_dia(dia, competencia: str) -> Optional[RegistroDia]:
    data = (dia.data_referencia or "").strip()
    if not data.startswith(competencia):
        return None
    try:
        date.fromisoformat(data)
    except ValueError:
        return None

    horarios = {campo: _normalizar_horario(getattr(dia, campo), data) for campo in CAMPOS_HORARIO}
    status_texto = (dia.status_dia or StatusDia.NORMAL.value).strip().upper()
    try:
        status = StatusDia(status_texto)
    except ValueError:
        raise errors.ValidationError("STATUS_DIA_INVALIDO", f"Status '{status_texto}' inválido em {data}.")

    return RegistroDia(
        data=data,
        status_dia=status,
        e_feriado=bool(dia.e_feriado),
        observacao=(dia.observacao or "").strip() or None,
        **horarios,
    )


def substituir_lancamentos(db: Session, empresa_id: int, id_funcionario: str, competencia: str,
                           dias: Iterable, usuario: Optional[str] = None) -> int:
    """Substitui todos os lançamentos do funcionário na competência.

    Todos os dias são validados antes de qualquer escrita; um horário ou status
    inválido aborta o lote inteiro. Dias fora da competência são ignorados.
    """
    inicio, fim = _intervalo(id_funcionario, competencia)
    ano, mes = parse_competencia(competencia)

    registros: Dict[str, RegistroDia] = {}
    for dia in dias:
        registro = _normalizar_dia(dia, competencia)
        if registro is not None and registro.deve_persistir():
            registros[registro.data] = registro

    garantir_periodo_editavel(db, empresa_id, id_funcionario, ano, mes)

    with transaction(db):
        anteriores = _consultar(db, empresa_id, id_funcionario, inicio, fim)
        antes = [_registro_dict(_registro_de_lancamento(l)) for l in anteriores]
        for lancamento in anteriores:
            db.delete(lancamento)
        db.flush()
        for registro in sorted(registros.values(), key=lambda r: r.data):
            db.add(models.PontoLancamento(
                id_empresa=empresa_id,
                id_funcionario=id_funcionario,
                data_referencia=registro.data,
                status_dia=registro.status_dia.value,
                e_feriado=registro.e_feriado,
                observacao=registro.observacao,
                **{campo: getattr(registro, campo) for campo in CAMPOS_HORARIO},
            ))

    logger.info(f"Ponto de {id_funcionario} em {competencia} substituído: {len(registros)} dia(s) gravados.")
    registrar_audit_log(
        db, empresa_id, "rh_ponto_lancamento", f"{id_funcionario}:{competencia}", "UPDATE",
        antes, [_registro_dict(r) for r in registros.values()],
        f"Lançamentos de ponto da competência {competencia}" + (f" por {usuario}" if usuario else ""),
    )
    return len(registros)


# --- PLANILHA ---

def _texto_celula(valor) -> Optional[str]:
    if valor is None or (not isinstance(valor, str) and pd.isna(valor)):
        return None
    if isinstance(valor, (datetime, pd.Timestamp)):
        return valor.strftime("%H:%M")
    if isinstance(valor, time):
        return valor.strftime("%H:%M")
    texto = str(valor).strip()
    # Excel devolve "08:00:00" para células de hora formatadas como texto
    if len(texto) == 8 and texto.count(":") == 2:
        texto = texto[:5]
    return texto or None


def _flag_celula(valor) -> bool:
    texto = _texto_celula(valor)
    return bool(texto) and texto.upper() in ("S", "SIM", "1", "TRUE", "X")


def ler_planilha_ponto(arquivo, nome_arquivo: str) -> List[DiaPontoPayload]:
    """Lê um .csv ou .xlsx com uma linha por dia (coluna obrigatória: data_referencia)."""
    nome = (nome_arquivo or "").lower()
    if not nome.endswith((".csv", ".xlsx")):
        raise errors.ValidationError("ARQUIVO_INVALIDO", "Formato de arquivo inválido. Envie um .csv ou .xlsx")
    try:
        if nome.endswith(".csv"):
            df = pd.read_csv(arquivo, dtype=str, keep_default_na=False)
        else:
            df = pd.read_excel(arquivo, dtype=object)
    except Exception as e:
        logger.error(f"Falha ao ler a planilha de ponto {nome_arquivo}: {e}")
        raise errors.ValidationError("ARQUIVO_INVALIDO", f"Não foi possível ler o arquivo: {e}")

    df.columns = [str(c).strip().lower() for c in df.columns]
    if "data_referencia" not in df.columns:
        raise errors.ValidationError("ARQUIVO_INVALIDO", "O arquivo deve conter a coluna data_referencia.")

    dias = []
    for _, row in df.iterrows():
        bruto = row["data_referencia"]
        if _texto_celula(bruto) is None:
            continue
        try:
            data = pd.to_datetime(bruto, dayfirst=isinstance(bruto, str) and "/" in bruto).date().isoformat()
        except (ValueError, TypeError) as e:
            raise errors.ValidationError("ARQUIVO_INVALIDO", f"Data inválida na planilha: {bruto} ({e})")
        valores = {coluna: _texto_celula(row[coluna]) for coluna in COLUNAS_OPCIONAIS if coluna in df.columns}
        valores["e_feriado"] = _flag_celula(row["e_feriado"]) if "e_feriado" in df.columns else False
        if not valores.get("status_dia"):
            valores["status_dia"] = StatusDia.NORMAL.value
        dias.append(DiaPontoPayload(data_referencia=data, **valores))
    logger.info(f"Planilha {nome_arquivo} lida: {len(dias)} dia(s).")
    return dias
