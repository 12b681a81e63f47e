from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from ponto_calculo import Classificacao, PoliticaFaltas, StatusDia, TipoAjuste, TipoDia


# --- Resumo do banco de horas ---
class FuncionarioResumo(BaseModel):
    id: str
    nome: str
    id_departamento: Optional[int] = None
    nome_departamento: Optional[str] = None
    salario_base: float
    carga_horaria_mensal_horas: float
    valor_hora: float


class JornadaResumo(BaseModel):
    entrada_manha: Optional[str] = None
    saida_manha: Optional[str] = None
    entrada_tarde: Optional[str] = None
    saida_tarde: Optional[str] = None
    entrada_intervalo: Optional[str] = None
    saida_intervalo: Optional[str] = None
    minutos_previstos: Optional[int] = None
    tolerancia_minutos: int = 0


class DiaResumo(BaseModel):
    data: str
    dia_semana: str
    tipo_dia: TipoDia
    jornada_prevista_min: int
    trabalhado_min: int
    diferenca_min: int
    saldo_banco_min: int
    minutos_pagos_feriado_fds: int
    classificacao: Classificacao
    observacao: Optional[str] = None


class Movimento(BaseModel):
    id: int
    id_funcionario: str
    data: str
    tipo: TipoAjuste
    minutos: int
    observacao: Optional[str] = None


class Compensacao(BaseModel):
    consumo_100_min: int = 0
    consumo_50_min: int = 0
    consumo_saldo_anterior_min: int = 0
    saldo_anterior_restante_min: int = 0


class ResumoBancoHorasMes(BaseModel):
    funcionario: FuncionarioResumo
    ano: int
    mes: int
    competencia: str
    jornada: Optional[JornadaResumo] = None
    politica_faltas: PoliticaFaltas
    zerar_banco_no_mes: bool

    saldo_anterior_min: int
    extras_uteis_min: int
    extras_100_min: int
    devedor_min: int
    faltas_justificadas_min: int
    faltas_nao_justificadas_min: int
    devidas_min: int
    ajustes_manuais_min: int
    fechamentos_min: int = 0
    saldo_tecnico_min: int
    saldo_final_banco_min: int

    horas_pagar_50_min: int
    horas_pagar_100_min: int
    horas_descontar_min: int
    valor_pagar_50: float
    valor_pagar_100: float
    valor_descontar: float
    compensacao: Compensacao

    dias: List[DiaResumo]
    movimentos: List[Movimento]


class ResumoFuncionarioLinha(BaseModel):
    id_funcionario: str
    nome_funcionario: str
    id_departamento: Optional[int] = None
    nome_departamento: Optional[str] = None
    saldo_anterior_min: int
    creditos_mes_min: int
    debitos_mes_min: int
    ajustes_min: int
    horas_pagas_fds_feriado_min: int
    saldo_atual_min: int


# --- Fechamento / reabertura ---
class FechamentoTotais(BaseModel):
    id_funcionario: str
    ano: int
    mes: int
    politica_faltas: PoliticaFaltas = PoliticaFaltas.COMPENSAR_COM_HORAS_EXTRAS
    zerar_banco_no_mes: bool = False
    saldo_anterior_minutos: int = 0
    horas_extras_50_minutos: int = 0
    horas_extras_100_minutos: int = 0
    horas_devidas_minutos: int = 0
    ajustes_minutos: int = 0
    saldo_final_minutos: int = 0
    saldo_final_para_pagar_minutos: int = 0
    valor_hora: Optional[float] = None


class ReabrirPeriodoRequest(BaseModel):
    id_funcionario: str
    ano: int
    mes: int
    usuario_master: Optional[str] = None
    senha_master: Optional[str] = None
    motivo: Optional[str] = None


class PeriodoAcaoRequest(BaseModel):
    id_funcionario: str
    ano: int
    mes: int
    acao: Literal["fechar", "reabrir"]
    politica_faltas: PoliticaFaltas = PoliticaFaltas.COMPENSAR_COM_HORAS_EXTRAS
    zerar_banco_no_mes: bool = False
    usuario_master: Optional[str] = None
    senha_master: Optional[str] = None
    motivo: Optional[str] = None


# --- Ajustes ---
class AjusteManualRequest(BaseModel):
    id_funcionario: str
    data: str  # YYYY-MM-DD, define a competência do ajuste
    minutos: int
    observacao: Optional[str] = None


class AjusteFechamentoItem(BaseModel):
    id_funcionario: Optional[str] = None
    horas_a_pagar_min: int = 0
    horas_a_descontar_min: int = 0
    horas_a_carregar_min: int = 0
    observacao: Optional[str] = None


class AjustesFechamentoRequest(BaseModel):
    competencia: str
    ajustes: List[AjusteFechamentoItem] = []


# --- Ponto ---
class DiaPontoPayload(BaseModel):
    data_referencia: Optional[str] = None
    entrada_manha: Optional[str] = None
    saida_manha: Optional[str] = None
    entrada_tarde: Optional[str] = None
    saida_tarde: Optional[str] = None
    entrada_extra: Optional[str] = None
    saida_extra: Optional[str] = None
    status_dia: Optional[str] = StatusDia.NORMAL.value
    e_feriado: bool = False
    observacao: Optional[str] = None


class PontoPayload(BaseModel):
    id_funcionario: str
    competencia: str
    dias: List[DiaPontoPayload]


# --- Feriados ---
class FeriadoRequest(BaseModel):
    feriado_dia: int = Field(..., ge=1, le=31)
    feriado_mes: int = Field(..., ge=1, le=12)
    feriado_descricao: str = ""
    feriado_ativo: bool = True


class ImportarFeriadosRequest(BaseModel):
    ano: int
    uf: Optional[str] = None
