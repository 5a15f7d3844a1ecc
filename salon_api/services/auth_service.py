from datetime import datetime, timedelta
from typing import Dict, Any, Optional, Tuple
from sqlalchemy.orm import Session
from salon_api.core.config import settings
from salon_api.core.errors import UnauthorizedError, ValidationError, NotFoundError
from salon_api.core.logger import logger
from salon_api.core.security import (
    hash_password, verify_password, create_access_token,
    create_refresh_token, decode_refresh_token,
)
from salon_api.models.db_models import User, RefreshToken, Role


def serialize_user(user: User) -> Dict[str, Any]:
    role = user.role.value if isinstance(user.role, Role) else user.role
    return {"id": user.id, "name": user.name, "email": user.email, "role": role}


def _store_refresh_token(db: Session, user: User) -> str:
    """Issues a refresh token and makes it the user's only stored one."""
    token = create_refresh_token(user.id)
    db.query(RefreshToken).filter(RefreshToken.user_id == user.id).delete()
    db.add(RefreshToken(
        token=token,
        user_id=user.id,
        expires_at=datetime.utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    ))
    db.commit()
    return token


def _session_for(db: Session, user: User) -> Tuple[Dict[str, Any], str]:
    role = user.role.value if isinstance(user.role, Role) else user.role
    access_token = create_access_token(user.id, role)
    refresh_token = _store_refresh_token(db, user)
    return {"accessToken": access_token, "user": serialize_user(user)}, refresh_token


def login(db: Session, email: str, password: str) -> Tuple[Dict[str, Any], str]:
    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if not user or not verify_password(password, user.password):
        logger.warning(f"🔒 Failed login attempt for {email}")
        raise UnauthorizedError("Credenciales inválidas")
    logger.info(f"🔑 User logged in: {user.email}")
    return _session_for(db, user)


def register(db: Session, name: str, email: str, password: str, role: Role = Role.USER) -> Tuple[Dict[str, Any], str]:
    email = email.strip().lower()
    if db.query(User).filter(User.email == email).first():
        raise ValidationError("El email ya está registrado")
    user = User(name=name.strip(), email=email, password=hash_password(password), role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"👤 New user registered: {user.email} ({role.value})")
    return _session_for(db, user)


def refresh(db: Session, token: Optional[str]) -> Tuple[Dict[str, Any], str]:
    if not token:
        raise UnauthorizedError("Refresh token no proporcionado")
    payload = decode_refresh_token(token)
    stored = db.query(RefreshToken).filter(RefreshToken.token == token).first()
    if not stored:
        raise UnauthorizedError("Refresh token inválido o expirado")
    if stored.expires_at < datetime.utcnow():
        db.delete(stored)
        db.commit()
        raise UnauthorizedError("Refresh token inválido o expirado")
    user = db.get(User, payload.get("userId"))
    if not user:
        raise UnauthorizedError("Usuario no encontrado")
    return _session_for(db, user)


def logout(db: Session, token: Optional[str]) -> None:
    if not token:
        return
    deleted = db.query(RefreshToken).filter(RefreshToken.token == token).delete()
    db.commit()
    if deleted:
        logger.info("👋 Refresh token revoked on logout")


def get_user(db: Session, user_id: str) -> Dict[str, Any]:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("Usuario no encontrado")
    return serialize_user(user)


def parse_seed_admins(raw: str):
    """'Name:email:password;Name2:email2:password2' -> [(name, email, password)]"""
    admins = []
    for entry in filter(None, (part.strip() for part in raw.split(";"))):
        parts = entry.split(":", 2)
        if len(parts) != 3 or not all(p.strip() for p in parts):
            logger.warning(f"⚠️ Ignoring malformed SEED_ADMINS entry: {entry!r}")
            continue
        admins.append(tuple(p.strip() for p in parts))
    return admins


def seed_admins(db: Session, raw: Optional[str] = None) -> int:
    """Creates the configured admin users that do not exist yet. Returns how many were created."""
    created = 0
    for name, email, password in parse_seed_admins(raw if raw is not None else settings.SEED_ADMINS):
        email = email.lower()
        if db.query(User).filter(User.email == email).first():
            continue
        db.add(User(name=name, email=email, password=hash_password(password), role=Role.ADMIN))
        created += 1
    if created:
        db.commit()
        logger.info(f"🌱 Seeded {created} admin user(s)")
    return created
