import logging
import time
import uuid
from typing import Callable

import redis
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = logging.getLogger("http")

# rutas heredadas sin prefijo /auth/ que comparten el límite estricto
AUTH_PATHS = {"/login", "/register", "/verify-email"}


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        limit_per_minute: int,
        redis_url: str,
        auth_limit_per_minute: int = 10,
        client: redis.Redis | None = None,
    ) -> None:
        super().__init__(app)
        self.limit_per_minute = limit_per_minute
        self.auth_limit_per_minute = auth_limit_per_minute
        self.redis = None
        if limit_per_minute > 0:
            self.redis = client if client is not None else redis.Redis.from_url(redis_url)

    @staticmethod
    def is_auth_path(path: str) -> bool:
        return path.startswith("/auth/") or path.rstrip("/") in AUTH_PATHS

    def _rate_limit(self, key: str, max_requests: int, window_seconds: int) -> bool:
        now = time.time()
        window_start = now - window_seconds
        pipe = self.redis.pipeline()
        pipe.zremrangebyscore(key, 0, window_start)
        pipe.zcard(key)
        pipe.zadd(key, {f"{now}:{uuid.uuid4().hex}": now})
        pipe.expire(key, window_seconds)
        _, count, _, _ = pipe.execute()
        return count < max_requests

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if self.redis is None:
            return await call_next(request)

        ip = request.client.host if request.client else "unknown"
        if self.is_auth_path(request.url.path):
            key = f"rl:auth:{ip}"
            limit = self.auth_limit_per_minute
        else:
            key = f"rl:api:{ip}"
            limit = self.limit_per_minute
        try:
            allowed = self._rate_limit(key, max_requests=limit, window_seconds=60)
        except redis.RedisError as exc:
            # sin Redis no se limita
            logger.warning("Rate limit deshabilitado, Redis no responde: %s", exc)
            allowed = True
        if not allowed:
            return JSONResponse(status_code=429, content={"detail": "Demasiadas solicitudes"})
        return await call_next(request)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Cache-Control"] = "no-store"
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "%s %s -> %s (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response
