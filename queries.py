import logging
from sqlalchemy.orm import Session
from sqlalchemy import text
from typing import Dict, Optional, List, Any, Set, Tuple

logger = logging.getLogger(__name__)

FUNCIONARIO_COLUNAS = """
            f.id_funcionario,
            f.nome_completo,
            f.id_departamento,
            d.nome_departamento,
            f.salario_base,
            f.carga_horaria_mensal_referencia,
            j.id_jornada,
            j.hora_entrada_manha,
            j.hora_saida_manha,
            j.hora_entrada_tarde,
            j.hora_saida_tarde,
            j.hora_entrada_intervalo,
            j.hora_saida_intervalo,
            j.tolerancia_minutos
        FROM rh_funcionario AS f
        LEFT JOIN emp_departamento AS d
            ON d.id_departamento = f.id_departamento
            AND d.id_empresa = f.id_empresa
        LEFT JOIN rh_jornada_trabalho AS j
            ON j.id_jornada = f.id_jornada
            AND j.id_empresa = f.id_empresa
"""


def _mapear_funcionario(row) -> Dict[str, Any]:
    return {
        "id": str(row.id_funcionario),
        "nome": row.nome_completo,
        "id_departamento": row.id_departamento,
        "nome_departamento": row.nome_departamento,
        "salario_base": float(row.salario_base or 0),
        "carga_horaria_mensal": float(row.carga_horaria_mensal_referencia or 0),
        # A própria linha expõe os horários da jornada por atributo
        "jornada": row if row.id_jornada is not None else None,
        "tolerancia_minutos": row.tolerancia_minutos or 0,
    }


def get_funcionario_com_jornada(db: Session, empresa_id: int, id_funcionario: str) -> Optional[Dict[str, Any]]:
    logger.info(f"Buscando funcionário {id_funcionario} (empresa {empresa_id}) com jornada e departamento.")
    sql_query = text(f"""
        SELECT {FUNCIONARIO_COLUNAS}
        WHERE f.id_empresa = :empresa_id AND f.id_funcionario = :id_funcionario
    """)
    try:
        row = db.execute(sql_query, {"empresa_id": empresa_id, "id_funcionario": id_funcionario}).fetchone()
        if not row:
            logger.warning(f"Funcionário {id_funcionario} não encontrado na empresa {empresa_id}.")
            return None
        return _mapear_funcionario(row)
    except Exception as e:
        logger.error(f"Erro ao buscar funcionário {id_funcionario}: {e}")
        raise


def get_funcionarios_ativos(db: Session, empresa_id: int, id_funcionario: Optional[str] = None,
                            id_departamento: Optional[int] = None) -> List[Dict[str, Any]]:
    filtros = ["f.id_empresa = :empresa_id", "f.ativo = :ativo"]
    params: Dict[str, Any] = {"empresa_id": empresa_id, "ativo": True}
    if id_funcionario:
        filtros.append("f.id_funcionario = :id_funcionario")
        params["id_funcionario"] = id_funcionario
    if id_departamento is not None:
        filtros.append("f.id_departamento = :id_departamento")
        params["id_departamento"] = id_departamento

    sql_query = text(f"""
        SELECT {FUNCIONARIO_COLUNAS}
        WHERE {" AND ".join(filtros)}
        ORDER BY f.nome_completo
    """)
    try:
        results = db.execute(sql_query, params).fetchall()
        logger.info(f"Encontrados {len(results)} funcionários ativos na empresa {empresa_id}.")
        return [_mapear_funcionario(row) for row in results]
    except Exception as e:
        logger.error(f"Erro ao listar funcionários da empresa {empresa_id}: {e}")
        raise


def get_salario_vigente(db: Session, id_funcionario: str, inicio: str, fim: str, fallback: float) -> float:
    sql_query = text("""
        SELECT valor FROM rh_funcionario_salario
        WHERE id_funcionario = :id_funcionario
          AND data_inicio_vigencia <= :fim
          AND (data_fim_vigencia IS NULL OR data_fim_vigencia >= :inicio)
        ORDER BY data_inicio_vigencia DESC
        LIMIT 1
    """)
    valor = db.execute(sql_query, {"id_funcionario": id_funcionario, "inicio": inicio, "fim": fim}).scalar_one_or_none()
    if valor is None:
        return fallback
    return float(valor)


def get_feriados_empresa(db: Session, empresa_id: int) -> Set[Tuple[int, int]]:
    sql_query = text("""
        SELECT feriado_dia, feriado_mes FROM rh_feriado
        WHERE id_empresa = :empresa_id AND feriado_ativo = :ativo
    """)
    results = db.execute(sql_query, {"empresa_id": empresa_id, "ativo": True}).fetchall()
    return {(int(row.feriado_dia), int(row.feriado_mes)) for row in results}
