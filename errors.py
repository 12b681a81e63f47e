"""Erros de domínio do banco de horas.

Cada erro carrega um código estável (lido pelo front-end) e a classe de
severidade HTTP correspondente. O handler registrado em ``main.py`` converte
qualquer ``BancoHorasError`` em ``{"success": false, "error": <code>}``.
"""
from typing import Optional


class BancoHorasError(Exception):
    status_code = 500
    default_code = "ERRO_INESPERADO"

    def __init__(self, code: Optional[str] = None, message: Optional[str] = None):
        self.code = code or self.default_code
        self.message = message or self.code
        super().__init__(self.message)


class ValidationError(BancoHorasError):
    status_code = 400
    default_code = "PARAMETROS_INVALIDOS"


class AuthError(BancoHorasError):
    status_code = 401
    default_code = "CREDENCIAIS_INVALIDAS"


class NotFoundError(BancoHorasError):
    status_code = 404
    default_code = "REGISTRO_NAO_ENCONTRADO"


class StateConflictError(BancoHorasError):
    status_code = 409
    default_code = "SITUACAO_INVALIDA"


class StorageError(BancoHorasError):
    status_code = 500
    default_code = "ERRO_BANCO_DADOS"
