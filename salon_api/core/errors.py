from typing import Any, Dict, List, Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from salon_api.core.logger import logger


class AppError(Exception):
    """Base error raised by services; rendered as {"status": "error", "message": ...}."""

    status_code = 400

    def __init__(self, message: str, status_code: Optional[int] = None, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.errors = errors


class ValidationError(AppError):
    status_code = 400


class UnauthorizedError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class ServiceUnavailableError(AppError):
    status_code = 503


def error_body(message: str, errors: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"status": "error", "message": message}
    if errors:
        body["errors"] = errors
    return body


def _field_name(loc) -> str:
    # ("body", "clientName") -> "clientName"
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "form", "header", "cookie")]
    return ".".join(parts) or str(loc[-1])


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(f"❌ {request.method} {request.url.path}: {exc.message}")
        else:
            logger.warning(f"⚠️ {request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.errors))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = [{"field": _field_name(err.get("loc", ())), "message": err.get("msg", "")} for err in exc.errors()]
        logger.warning(f"⚠️ Validation failed on {request.url.path}: {errors}")
        return JSONResponse(status_code=400, content=error_body("Error de validación", errors))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Error"
        return JSONResponse(status_code=exc.status_code, content=error_body(message), headers=getattr(exc, "headers", None))

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        logger.warning(f"⚠️ Integrity error on {request.url.path}: {exc.orig}")
        return JSONResponse(status_code=409, content=error_body("El registro entra en conflicto con datos existentes"))

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"❌ Database error on {request.url.path}: {exc}")
        return JSONResponse(status_code=400, content=error_body("Error en la base de datos"))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.opt(exception=exc).error(f"🔥 UNHANDLED ERROR: {str(exc)}")
        return JSONResponse(status_code=500, content=error_body("Error interno del servidor"))


__all__ = [
    "AppError", "ValidationError", "UnauthorizedError", "ForbiddenError",
    "NotFoundError", "ConflictError", "ServiceUnavailableError",
    "register_exception_handlers", "error_body",
]
