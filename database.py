import contextlib
import logging

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

import errors
from config import settings

logger = logging.getLogger(__name__)


def build_engine(url: str, echo: bool = False):
    # SQLite em memória precisa de uma única conexão compartilhada entre threads
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **kwargs)
    return create_engine(url, echo=echo, pool_pre_ping=True)


engine_app = build_engine(settings.DATABASE_URL, settings.DATABASE_ECHO)
SessionLocal_App = sessionmaker(autocommit=False, autoflush=False, bind=engine_app)
Base = declarative_base()


def get_db_app():
    db = SessionLocal_App()
    try:
        yield db
    finally:
        db.close()


@contextlib.contextmanager
def transaction(db: Session):
    """Executa o bloco como uma única transação: COMMIT no fim, ROLLBACK em qualquer erro.

    Erros do SQLAlchemy chegam ao chamador como ``errors.StorageError``; erros de
    domínio levantados dentro do bloco são repassados sem alteração.
    """
    try:
        yield db
        db.commit()
    except errors.BancoHorasError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Erro de banco de dados, transação desfeita: {e}", exc_info=True)
        raise errors.StorageError("ERRO_BANCO_DADOS", str(e)) from e
    except Exception:
        db.rollback()
        raise


def ping(db: Session) -> bool:
    try:
        db.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.error(f"Banco de dados indisponível: {e}")
        return False
