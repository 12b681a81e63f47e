import os

# Banco em memória antes de qualquer import da aplicação
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

import models
from database import build_engine, get_db_app
from main import app

EMPRESA_ID = 1
HEADERS = {"x-empresa-id": str(EMPRESA_ID), "x-usuario-id": "rh.teste"}


@pytest.fixture()
def engine():
    engine = build_engine("sqlite://")
    models.Base.metadata.create_all(bind=engine)
    yield engine
    models.Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def SessionTeste(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(SessionTeste):
    session = SessionTeste()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(SessionTeste):
    def override_get_db():
        session = SessionTeste()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db_app] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def criar_funcionario(db, id_funcionario="F001", com_jornada=True, ativo=True, id_departamento=10,
                      salario_base=2200.0, carga=220.0, tolerancia=10):
    """Jornada padrão 08:00-12:00 / 13:00-17:00 (480 min) e valor hora 10,00."""
    if db.query(models.Departamento).filter_by(id_departamento=id_departamento).first() is None:
        db.add(models.Departamento(id_departamento=id_departamento, id_empresa=EMPRESA_ID, nome_departamento="Operações"))
    id_jornada = None
    if com_jornada:
        jornada = models.JornadaTrabalho(
            id_empresa=EMPRESA_ID,
            nome_jornada="Comercial",
            hora_entrada_manha="08:00",
            hora_saida_manha="12:00",
            hora_entrada_tarde="13:00",
            hora_saida_tarde="17:00",
            tolerancia_minutos=tolerancia,
        )
        db.add(jornada)
        db.flush()
        id_jornada = jornada.id_jornada
    db.add(models.Funcionario(
        id_funcionario=id_funcionario,
        id_empresa=EMPRESA_ID,
        nome_completo=f"Funcionário {id_funcionario}",
        id_departamento=id_departamento,
        id_jornada=id_jornada,
        salario_base=salario_base,
        carga_horaria_mensal_referencia=carga,
        ativo=ativo,
    ))
    db.commit()
    return id_funcionario


@pytest.fixture()
def funcionario(db):
    return criar_funcionario(db)
