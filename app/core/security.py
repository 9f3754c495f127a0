from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError
from passlib.context import CryptContext

from app.core import config

bearer = HTTPBearer(auto_error=False)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

ROLES = ("ADMIN", "MANAGER", "OPERATOR", "INSPECTOR")


@dataclass
class Principal:
    user_id: str | None = None
    username: str = "system"
    role: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    def has_role(self, *roles: str) -> bool:
        return self.role is not None and self.role in roles


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except (ValueError, TypeError):
        return False


def decode_token(token: str) -> dict:
    return jwt.decode(
        token,
        config.JWT_SECRET,
        algorithms=[config.JWT_ALG],
        audience=config.JWT_AUDIENCE,
        issuer=config.JWT_ISSUER,
    )


def get_principal(creds: HTTPAuthorizationCredentials | None = Depends(bearer)) -> Principal:
    if not creds or not creds.credentials:
        # Anonymous callers are stamped as "system" on audit columns
        return Principal()
    try:
        payload = decode_token(creds.credentials)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return Principal(
        user_id=payload.get("sub"),
        username=payload.get("email") or payload.get("sub") or "unknown",
        role=(payload.get("role") or "").upper() or None,
    )


def require_roles(*roles: str) -> Callable[[Principal], Principal]:
    def _dep(principal: Principal = Depends(get_principal)) -> Principal:
        if not principal.is_authenticated:
            raise HTTPException(status_code=401, detail="Not authenticated")
        if not principal.has_role(*roles):
            raise HTTPException(status_code=403, detail=f"Requires role: {', '.join(roles)}")
        return principal

    return _dep
