import logging
from typing import Optional

from fastapi import FastAPI, Depends, File, Form, Header, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

import banco_horas
import banco_horas_ajustes
import banco_horas_periodo
import errors
import feriados
import models
import ponto_lancamentos
from config import settings
from database import engine_app, get_db_app, ping
from ponto_calculo import PoliticaFaltas, SituacaoPeriodo
from schemas import (
    AjusteManualRequest,
    AjustesFechamentoRequest,
    FechamentoTotais,
    FeriadoRequest,
    ImportarFeriadosRequest,
    PeriodoAcaoRequest,
    PontoPayload,
    ReabrirPeriodoRequest,
)

# --- CONFIGURAÇÕES GERAIS ---
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

models.Base.metadata.create_all(bind=engine_app)
app = FastAPI(title=settings.APP_NAME)

app.add_middleware(CORSMiddleware, allow_origins=settings.CORS_ORIGINS, allow_credentials=True, allow_methods=["*"], allow_headers=["*"])


# --- TRATAMENTO DE ERROS ---
@app.exception_handler(errors.BancoHorasError)
async def banco_horas_error_handler(request: Request, exc: errors.BancoHorasError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} falhou: {exc.code} - {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.code, "message": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"success": False, "error": "PARAMETROS_INVALIDOS", "message": str(exc.errors())})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(f"Erro inesperado em {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"success": False, "error": "ERRO_INESPERADO", "message": str(exc)})


# --- DEPENDÊNCIAS ---
def get_empresa_id(x_empresa_id: Optional[str] = Header(None)) -> int:
    try:
        empresa_id = int(x_empresa_id) if x_empresa_id else 0
    except ValueError:
        empresa_id = 0
    if empresa_id <= 0:
        raise errors.ValidationError("EMPRESA_NAO_SELECIONADA", "Selecione uma empresa (cabeçalho x-empresa-id).")
    return empresa_id


def get_usuario_id(x_usuario_id: Optional[str] = Header(None)) -> Optional[str]:
    return x_usuario_id or None


def _ok(data=None, **extra):
    return {"success": True, "data": data, **extra}


# --- ENDPOINTS ---
@app.get("/healthcheck")
def healthcheck(db: Session = Depends(get_db_app)):
    if not ping(db):
        return JSONResponse(status_code=503, content={"success": False, "error": "ERRO_BANCO_DADOS", "app": settings.APP_NAME})
    return {"success": True, "app": settings.APP_NAME, "database": "ok"}


@app.get("/rh/banco-horas/resumo")
def get_resumo_banco_horas(id_funcionario: str = Query(...), ano: int = Query(...), mes: int = Query(...),
                           politica_faltas: PoliticaFaltas = PoliticaFaltas.COMPENSAR_COM_HORAS_EXTRAS,
                           zerar_banco_no_mes: bool = False,
                           empresa_id: int = Depends(get_empresa_id), db: Session = Depends(get_db_app)):
    resumo = banco_horas.calcular_banco_horas_mes(db, empresa_id, id_funcionario, ano, mes, politica_faltas, zerar_banco_no_mes)
    return _ok(resumo.model_dump(mode="json"))


@app.get("/rh/banco-horas")
def listar_banco_horas(competencia: str = Query(...), id_funcionario: Optional[str] = None, id_departamento: Optional[int] = None,
                       empresa_id: int = Depends(get_empresa_id), db: Session = Depends(get_db_app)):
    linhas = banco_horas.listar_resumo_banco_horas(db, empresa_id, competencia, id_funcionario, id_departamento)
    return _ok([linha.model_dump() for linha in linhas])


@app.get("/rh/banco-horas/periodo")
def get_situacao_periodo(id_funcionario: str = Query(...), ano: int = Query(...), mes: int = Query(...),
                         empresa_id: int = Depends(get_empresa_id), db: Session = Depends(get_db_app)):
    situacao = banco_horas_periodo.obter_situacao_periodo(db, empresa_id, id_funcionario, ano, mes)
    return _ok({"id_funcionario": id_funcionario, "ano": ano, "mes": mes, "situacao": situacao.value})


@app.post("/rh/banco-horas/periodo")
def alterar_situacao_periodo(request: PeriodoAcaoRequest, empresa_id: int = Depends(get_empresa_id),
                             usuario: Optional[str] = Depends(get_usuario_id), db: Session = Depends(get_db_app)):
    if request.acao == "fechar":
        resumo = banco_horas.calcular_banco_horas_mes(
            db, empresa_id, request.id_funcionario, request.ano, request.mes,
            request.politica_faltas, request.zerar_banco_no_mes,
        )
        fechamento = banco_horas_periodo.fechar_periodo(db, empresa_id, banco_horas_periodo.totais_do_resumo(resumo), usuario)
    else:
        fechamento = banco_horas_periodo.reabrir_periodo(
            db, empresa_id, request.id_funcionario, request.ano, request.mes,
            request.usuario_master, request.senha_master, request.motivo,
        )
    situacao = banco_horas_periodo.obter_situacao_periodo(db, empresa_id, request.id_funcionario, request.ano, request.mes)
    return _ok(fechamento, situacao=situacao.value)


@app.post("/rh/banco-horas/fechamento/fechar-periodo")
def fechar_periodo(request: FechamentoTotais, empresa_id: int = Depends(get_empresa_id),
                   usuario: Optional[str] = Depends(get_usuario_id), db: Session = Depends(get_db_app)):
    return _ok(banco_horas_periodo.fechar_periodo(db, empresa_id, request, usuario))


@app.post("/rh/banco-horas/fechamento/reabrir-periodo")
def reabrir_periodo(request: ReabrirPeriodoRequest, empresa_id: int = Depends(get_empresa_id), db: Session = Depends(get_db_app)):
    return _ok(banco_horas_periodo.reabrir_periodo(
        db, empresa_id, request.id_funcionario, request.ano, request.mes,
        request.usuario_master, request.senha_master, request.motivo,
    ))


@app.post("/rh/banco-horas/fechamento")
def registrar_ajustes_fechamento(request: AjustesFechamentoRequest, empresa_id: int = Depends(get_empresa_id),
                                 db: Session = Depends(get_db_app)):
    total = banco_horas_ajustes.registrar_ajustes_fechamento(db, empresa_id, request.competencia, request.ajustes)
    return _ok({"ajustes_gravados": total})


@app.get("/rh/banco-horas/periodos")
def listar_periodos(id_funcionario: str = Query(...), ano: int = Query(...), situacoes: Optional[str] = None,
                    empresa_id: int = Depends(get_empresa_id), db: Session = Depends(get_db_app)):
    filtro = None
    if situacoes:
        try:
            filtro = [SituacaoPeriodo(s.strip().upper()) for s in situacoes.split(",") if s.strip()]
        except ValueError:
            raise errors.ValidationError("PARAMETROS_INVALIDOS", f"Situação inválida em '{situacoes}'.")
    return _ok(banco_horas_periodo.listar_periodos(db, empresa_id, id_funcionario, ano, filtro))


@app.get("/rh/banco-horas/meses-fechados")
def listar_meses_fechados(id_funcionario: Optional[str] = None, empresa_id: int = Depends(get_empresa_id),
                          db: Session = Depends(get_db_app)):
    return _ok(banco_horas_periodo.listar_meses_fechados(db, empresa_id, id_funcionario))


@app.get("/rh/banco-horas/ajustes")
def listar_ajustes(id_funcionario: str = Query(...), competencia: str = Query(...),
                   empresa_id: int = Depends(get_empresa_id), db: Session = Depends(get_db_app)):
    return _ok(banco_horas_ajustes.listar_ajustes_dict(db, empresa_id, id_funcionario, competencia))


@app.post("/rh/banco-horas/ajustes", status_code=201)
def criar_ajuste(request: AjusteManualRequest, empresa_id: int = Depends(get_empresa_id), db: Session = Depends(get_db_app)):
    return _ok(banco_horas_ajustes.criar_ajuste_manual(
        db, empresa_id, request.id_funcionario, request.data, request.minutos, request.observacao
    ))


@app.delete("/rh/banco-horas/ajustes/{id_ajuste}")
def excluir_ajuste(id_ajuste: int, empresa_id: int = Depends(get_empresa_id), db: Session = Depends(get_db_app)):
    return _ok(banco_horas_ajustes.excluir_ajuste_manual(db, empresa_id, id_ajuste))


@app.get("/ponto")
def listar_ponto(id_funcionario: str = Query(...), competencia: str = Query(...),
                 empresa_id: int = Depends(get_empresa_id), db: Session = Depends(get_db_app)):
    return _ok(ponto_lancamentos.listar_lancamentos(db, empresa_id, id_funcionario, competencia))


@app.put("/ponto")
def substituir_ponto(request: PontoPayload, empresa_id: int = Depends(get_empresa_id),
                     usuario: Optional[str] = Depends(get_usuario_id), db: Session = Depends(get_db_app)):
    total = ponto_lancamentos.substituir_lancamentos(db, empresa_id, request.id_funcionario, request.competencia, request.dias, usuario)
    return _ok({"dias_gravados": total})


@app.post("/ponto/upload")
def upload_ponto(id_funcionario: str = Form(...), competencia: str = Form(...), file: UploadFile = File(...),
                 empresa_id: int = Depends(get_empresa_id), usuario: Optional[str] = Depends(get_usuario_id),
                 db: Session = Depends(get_db_app)):
    dias = ponto_lancamentos.ler_planilha_ponto(file.file, file.filename)
    total = ponto_lancamentos.substituir_lancamentos(db, empresa_id, id_funcionario, competencia, dias, usuario)
    return _ok({"linhas_lidas": len(dias), "dias_gravados": total})


@app.get("/rh/feriados")
def listar_feriados(empresa_id: int = Depends(get_empresa_id), db: Session = Depends(get_db_app)):
    return _ok(feriados.listar_feriados(db, empresa_id))


@app.post("/rh/feriados", status_code=201)
def salvar_feriado(request: FeriadoRequest, empresa_id: int = Depends(get_empresa_id), db: Session = Depends(get_db_app)):
    return _ok(feriados.salvar_feriado(
        db, empresa_id, request.feriado_dia, request.feriado_mes, request.feriado_descricao, request.feriado_ativo
    ))


@app.delete("/rh/feriados/{id_feriado}")
def excluir_feriado(id_feriado: int, empresa_id: int = Depends(get_empresa_id), db: Session = Depends(get_db_app)):
    return _ok(feriados.excluir_feriado(db, empresa_id, id_feriado))


@app.post("/rh/feriados/importar-nacionais")
def importar_feriados_nacionais(request: ImportarFeriadosRequest, empresa_id: int = Depends(get_empresa_id),
                                db: Session = Depends(get_db_app)):
    total = feriados.importar_feriados_nacionais(db, empresa_id, request.ano, request.uf)
    return _ok({"importados": total})
