import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from werkzeug.security import generate_password_hash, check_password_hash
from salon_api.core.config import settings
from salon_api.core.errors import UnauthorizedError, ForbiddenError

bearer_scheme = HTTPBearer(auto_error=False)

ADMIN_ROLE = "ADMIN"


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return check_password_hash(hashed, password)


def create_access_token(user_id: str, role: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {"userId": user_id, "role": role, "type": "access", "exp": expire}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def create_refresh_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))
    # jti keeps tokens issued within the same second distinct
    payload = {"userId": user_id, "type": "refresh", "jti": secrets.token_hex(8), "exp": expire}
    return jwt.encode(payload, settings.JWT_REFRESH_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.PyJWTError:
        raise UnauthorizedError("Token inválido o expirado")
    if payload.get("type") != "access":
        raise UnauthorizedError("Token inválido o expirado")
    return payload


def decode_refresh_token(token: str) -> Dict[str, Any]:
    try:
        payload = jwt.decode(token, settings.JWT_REFRESH_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.PyJWTError:
        raise UnauthorizedError("Refresh token inválido o expirado")
    if payload.get("type") != "refresh":
        raise UnauthorizedError("Refresh token inválido o expirado")
    return payload


def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> Dict[str, Any]:
    """Resolves the bearer token into its payload ({userId, role})."""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("No autorizado - Token no proporcionado")
    return decode_access_token(credentials.credentials)


def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") != ADMIN_ROLE:
        raise ForbiddenError("Acceso denegado - Se requieren permisos de administrador")
    return user
