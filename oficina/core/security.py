"""
Oficina Server - Security
Tokens de sessão JWT.

A emissão de tokens pertence ao provedor de identidade externo; aqui o servidor
apenas valida o token recebido. `create_access_token` fica disponível para
ferramentas de desenvolvimento e testes.
"""
from datetime import datetime, timedelta
from typing import Optional

from jose import jwt, JWTError

from .config import settings


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Cria JWT token de sessão"""
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})

    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt


def verify_access_token(token: str) -> Optional[dict]:
    """Verifica JWT token"""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return payload
    except JWTError:
        return None
