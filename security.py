import logging
from typing import Optional

from passlib.context import CryptContext
from sqlalchemy.orm import Session

import models

logger = logging.getLogger(__name__)

# --- Configuração de Segurança ---
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verifica se a senha fornecida corresponde ao hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def get_master_user(db: Session, username: str) -> Optional[models.AppUser]:
    return db.query(models.AppUser).filter(
        models.AppUser.username == username,
        models.AppUser.is_master.is_(True),
    ).first()


def verify_master_credentials(db: Session, username: Optional[str], password: Optional[str]) -> bool:
    """
    Confere usuário e senha master usados para liberar um período fechado.
    Usuários comuns nunca são aceitos, mesmo com a senha correta.
    """
    if not username or not password:
        return False
    user = get_master_user(db, username)
    if user is None or not verify_password(password, user.hashed_password):
        logger.warning(f"Tentativa de liberação com credenciais master inválidas para '{username}'.")
        return False
    return True


def create_user(db: Session, username: str, password: str, is_master: bool = False) -> models.AppUser:
    user = db.query(models.AppUser).filter(models.AppUser.username == username).first()
    if user:
        user.hashed_password = get_password_hash(password)
        user.is_master = is_master
    else:
        user = models.AppUser(username=username, hashed_password=get_password_hash(password), is_master=is_master)
        db.add(user)
    db.commit()
    db.refresh(user)
    return user
