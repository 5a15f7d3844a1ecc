import time
import threading
from typing import Dict, Tuple
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from salon_api.core.config import settings
from salon_api.core.errors import error_body
from salon_api.core.logger import logger


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed-window request counter per client IP."""

    def __init__(self, app, max_requests: int = 1000, window_seconds: int = 900):
        super().__init__(app)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._hits: Dict[str, Tuple[float, int]] = {}
        self._lock = threading.Lock()

    def _client_ip(self, request: Request) -> str:
        # Behind a proxy, uvicorn --proxy-headers rewrites request.client
        return request.client.host if request.client else "unknown"

    def _prune(self, now: float):
        expired = [key for key, (start, _) in self._hits.items() if now - start >= self.window_seconds]
        for key in expired:
            del self._hits[key]

    def hit(self, key: str, now: float) -> bool:
        with self._lock:
            self._prune(now)
            window_start, count = self._hits.get(key, (now, 0))
            if now - window_start >= self.window_seconds:
                window_start, count = now, 0
            count += 1
            self._hits[key] = (window_start, count)
            return count <= self.max_requests

    async def dispatch(self, request: Request, call_next):
        ip = self._client_ip(request)
        if not self.hit(ip, time.monotonic()):
            logger.warning(f"🚦 Rate limit exceeded for {ip}")
            return JSONResponse(
                status_code=429,
                content=error_body("Demasiadas solicitudes desde esta IP, por favor intente de nuevo más tarde")
            )
        return await call_next(request)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(f"➡️ {request.method} {request.url.path} {response.status_code} ({elapsed_ms:.1f} ms)")
        return response


def cors_origins():
    origins = list(settings.CORS_ORIGINS)
    if settings.FRONTEND_URL and settings.FRONTEND_URL not in origins:
        origins.append(settings.FRONTEND_URL)
    return origins


def setup_middleware(app: FastAPI):
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.RATE_LIMIT_REQUESTS,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
