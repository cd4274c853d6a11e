# jogofacil/auth.py

import os
from datetime import datetime, timedelta
from typing import Optional

from dotenv import load_dotenv
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from jogofacil import models
from jogofacil.database import SessionLocal

load_dotenv()

SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 1440))

# bcrypt ignores (newer releases reject) anything past 72 bytes.
BCRYPT_MAX_BYTES = 72

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


# ------------------------------------------------------------------
# PASSWORDS
# ------------------------------------------------------------------

def _bcrypt_input(password: str) -> str:
    return (password or "")[:BCRYPT_MAX_BYTES]


def get_password_hash(password: str) -> str:
    return pwd_context.hash(_bcrypt_input(password))


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(_bcrypt_input(plain_password), hashed_password)
    except ValueError:
        # Stored value is not a bcrypt hash.
        return False


# ------------------------------------------------------------------
# TOKENS
# ------------------------------------------------------------------

def create_access_token(subject: str, role: Optional[str] = None, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    claims = {"sub": subject, "exp": expire}
    if role:
        claims["role"] = role
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)


def token_for_user(user: models.User) -> str:
    return create_access_token(user.id, getattr(user.role, "value", user.role))


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> models.User:
    """
    Resolve the bearer token to a stored user; 401 for anything that does not.
    """
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Não foi possível validar as credenciais",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        user_id = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM]).get("sub")
    except JWTError:
        raise unauthorized
    if not user_id:
        raise unauthorized

    user = db.query(models.User).filter(models.User.id == user_id).first()
    if user is None:
        raise unauthorized
    return user


# ------------------------------------------------------------------
# PERMISSIONS
# ------------------------------------------------------------------

def is_admin(user: models.User) -> bool:
    return getattr(user, "role", None) == models.UserRole.admin


def require_admin(current_user: models.User = Depends(get_current_user)) -> models.User:
    if not is_admin(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Acesso restrito ao administrador")
    return current_user


def ensure_self_or_admin(current_user: models.User, user_id: str) -> None:
    if current_user.id != user_id and not is_admin(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Sem permissão para este usuário")


def ensure_field_manager(current_user: models.User, field: models.Field) -> None:
    if field.owner_id != current_user.id and not is_admin(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Apenas o dono do campo pode fazer isso")
