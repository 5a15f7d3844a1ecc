from typing import Optional
from fastapi import APIRouter, Cookie, Depends, Response, Body
from sqlalchemy.orm import Session
from salon_api.core.config import settings
from salon_api.core.security import get_current_user
from salon_api.db.database import get_db
from salon_api.models.schemas import LoginRequest, RegisterRequest, RefreshRequest
from salon_api.services import auth_service

router = APIRouter()

COOKIE_NAME = "token"


def _set_refresh_cookie(response: Response, token: str):
    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.ENVIRONMENT == "production",
        samesite="strict",
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
    )


@router.post("/login")
def login(req: LoginRequest, response: Response, db: Session = Depends(get_db)):
    session, refresh_token = auth_service.login(db, req.email, req.password)
    _set_refresh_cookie(response, refresh_token)
    return session


@router.post("/register", status_code=201)
def register(req: RegisterRequest, response: Response, db: Session = Depends(get_db)):
    session, refresh_token = auth_service.register(db, req.name, req.email, req.password)
    _set_refresh_cookie(response, refresh_token)
    return session


@router.post("/refresh")
def refresh(
    response: Response,
    req: Optional[RefreshRequest] = Body(default=None),
    token: Optional[str] = Cookie(default=None),
    db: Session = Depends(get_db),
):
    raw = token or (req.refresh_token if req else None)
    session, refresh_token = auth_service.refresh(db, raw)
    _set_refresh_cookie(response, refresh_token)
    return session


@router.post("/logout")
def logout(response: Response, token: Optional[str] = Cookie(default=None), db: Session = Depends(get_db)):
    auth_service.logout(db, token)
    response.delete_cookie(COOKIE_NAME)
    return {"message": "Sesión cerrada exitosamente"}


@router.get("/me")
def me(user: dict = Depends(get_current_user), db: Session = Depends(get_db)):
    return auth_service.get_user(db, user["userId"])
