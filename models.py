from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Text, UniqueConstraint

from database import Base


class AppUser(Base):
    __tablename__ = 'app_users'
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True)
    hashed_password = Column(String)
    # Somente usuários master podem liberar (reabrir) um período fechado
    is_master = Column(Boolean, default=False, nullable=False)


class Departamento(Base):
    __tablename__ = 'emp_departamento'
    id_departamento = Column(Integer, primary_key=True, index=True)
    id_empresa = Column(Integer, index=True, nullable=False)
    nome_departamento = Column(String, nullable=False)


class JornadaTrabalho(Base):
    __tablename__ = 'rh_jornada_trabalho'
    id_jornada = Column(Integer, primary_key=True, index=True)
    id_empresa = Column(Integer, index=True, nullable=False)
    nome_jornada = Column(String, nullable=False)
    # Horários no formato "HH:MM"
    hora_entrada_manha = Column(String(5), nullable=True)
    hora_saida_manha = Column(String(5), nullable=True)
    hora_entrada_tarde = Column(String(5), nullable=True)
    hora_saida_tarde = Column(String(5), nullable=True)
    hora_entrada_intervalo = Column(String(5), nullable=True)
    hora_saida_intervalo = Column(String(5), nullable=True)
    tolerancia_minutos = Column(Integer, default=0, nullable=False)
    ativo = Column(Boolean, default=True, nullable=False)


class Funcionario(Base):
    __tablename__ = 'rh_funcionario'
    id_funcionario = Column(String, primary_key=True, index=True)
    id_empresa = Column(Integer, index=True, nullable=False)
    nome_completo = Column(String, nullable=False)
    id_departamento = Column(Integer, nullable=True)
    id_jornada = Column(Integer, nullable=True)
    salario_base = Column(Float, default=0.0, nullable=False)
    carga_horaria_mensal_referencia = Column(Float, default=0.0, nullable=False)
    ativo = Column(Boolean, default=True, nullable=False)


class FuncionarioSalario(Base):
    __tablename__ = 'rh_funcionario_salario'
    id_salario = Column(Integer, primary_key=True, index=True)
    id_funcionario = Column(String, index=True, nullable=False)
    data_inicio_vigencia = Column(String(10), nullable=False)
    data_fim_vigencia = Column(String(10), nullable=True)
    valor = Column(Float, nullable=False)


class PontoLancamento(Base):
    __tablename__ = 'rh_ponto_lancamento'
    id_ponto = Column(Integer, primary_key=True, index=True)
    id_empresa = Column(Integer, index=True, nullable=False)
    id_funcionario = Column(String, index=True, nullable=False)
    data_referencia = Column(String(10), index=True, nullable=False)  # "YYYY-MM-DD"
    entrada_manha = Column(String(5), nullable=True)
    saida_manha = Column(String(5), nullable=True)
    entrada_tarde = Column(String(5), nullable=True)
    saida_tarde = Column(String(5), nullable=True)
    entrada_extra = Column(String(5), nullable=True)
    saida_extra = Column(String(5), nullable=True)
    status_dia = Column(String, default='NORMAL', nullable=False)
    e_feriado = Column(Boolean, default=False, nullable=False)
    observacao = Column(String, nullable=True)
    __table_args__ = (UniqueConstraint('id_empresa', 'id_funcionario', 'data_referencia', name='_ponto_funcionario_data_uc'),)


class Feriado(Base):
    __tablename__ = 'rh_feriado'
    id_feriado = Column(Integer, primary_key=True, index=True)
    id_empresa = Column(Integer, index=True, nullable=False)
    feriado_dia = Column(Integer, nullable=False)
    feriado_mes = Column(Integer, nullable=False)
    feriado_descricao = Column(String, default='', nullable=False)
    feriado_ativo = Column(Boolean, default=True, nullable=False)
    __table_args__ = (UniqueConstraint('id_empresa', 'feriado_dia', 'feriado_mes', name='_feriado_empresa_dia_mes_uc'),)


class BancoHorasAjuste(Base):
    __tablename__ = 'rh_banco_horas_ajuste'
    id_ajuste = Column(Integer, primary_key=True, index=True)
    id_empresa = Column(Integer, index=True, nullable=False)
    id_funcionario = Column(String, index=True, nullable=False)
    competencia = Column(String(7), index=True, nullable=False)  # "YYYY-MM"
    minutos = Column(Integer, nullable=False)
    # AJUSTE_MANUAL, FECHAMENTO_PAGAR, FECHAMENTO_DESCONTAR ou CARREGAR_SALDO
    tipo_ajuste = Column(String, nullable=False)
    observacao = Column(String(255), nullable=True)
    data_referencia = Column(String(10), nullable=True)
    data_criacao = Column(DateTime, nullable=False)


class BancoHorasPeriodo(Base):
    __tablename__ = 'rh_banco_horas_periodo'
    id = Column(Integer, primary_key=True, index=True)
    id_empresa = Column(Integer, index=True, nullable=False)
    id_funcionario = Column(String, index=True, nullable=False)
    ano_referencia = Column(Integer, nullable=False)
    mes_referencia = Column(Integer, nullable=False)
    situacao_periodo = Column(String, nullable=False)  # FECHADO ou REABERTO
    id_usuario_ultima_atualizacao = Column(String, nullable=True)
    data_ultima_atualizacao = Column(DateTime, nullable=True)
    __table_args__ = (UniqueConstraint('id_empresa', 'id_funcionario', 'ano_referencia', 'mes_referencia', name='_periodo_funcionario_competencia_uc'),)


class BancoHorasFechamento(Base):
    __tablename__ = 'rh_banco_horas_fechamento'
    id_fechamento = Column(Integer, primary_key=True, index=True)
    id_empresa = Column(Integer, index=True, nullable=False)
    id_funcionario = Column(String, index=True, nullable=False)
    ano = Column(Integer, nullable=False)
    mes = Column(Integer, nullable=False)
    competencia = Column(String(7), nullable=False)

    saldo_anterior_minutos = Column(Integer, default=0, nullable=False)
    horas_extras_50_minutos = Column(Integer, default=0, nullable=False)
    horas_extras_100_minutos = Column(Integer, default=0, nullable=False)
    horas_devidas_minutos = Column(Integer, default=0, nullable=False)
    ajustes_minutos = Column(Integer, default=0, nullable=False)
    saldo_final_minutos = Column(Integer, default=0, nullable=False)
    politica_faltas = Column(String, nullable=False)
    zerou_banco = Column(Boolean, default=False, nullable=False)
    valor_pagar = Column(Float, nullable=True)
    valor_descontar = Column(Float, nullable=True)
    usuario_fechamento = Column(String, nullable=True)
    data_fechamento = Column(DateTime, nullable=True)

    # Preenchidos apenas quando o período é reaberto
    data_liberacao_edicao = Column(DateTime, nullable=True)
    id_usuario_master_liberacao = Column(String, nullable=True)
    motivo_liberacao = Column(String(255), nullable=True)
    __table_args__ = (UniqueConstraint('id_empresa', 'id_funcionario', 'ano', 'mes', name='_fechamento_funcionario_competencia_uc'),)


class AuditLog(Base):
    __tablename__ = 'audit_log'
    id = Column(Integer, primary_key=True, index=True)
    id_empresa = Column(Integer, index=True, nullable=False)
    tabela = Column(String, nullable=False)
    registro_id = Column(String, nullable=True)
    operacao = Column(String, nullable=False)  # INSERT, UPDATE, DELETE
    dados_antes = Column(Text, nullable=True)
    dados_depois = Column(Text, nullable=True)
    descricao = Column(String, nullable=True)
    criado_em = Column(DateTime, nullable=False)
