import time
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("access")


def _status_level(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class LoggingMiddleware(BaseHTTPMiddleware):
    """One access line per finished request, logged at a level matching the status."""

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        target = request.url.path
        if request.url.query:
            target = f"{target}?{request.url.query}"
        client = request.client.host if request.client else "unknown"
        user_agent = request.headers.get("user-agent", "unknown")

        try:
            response = await call_next(request)
        except Exception:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.exception(f"{request.method} {target} failed after {elapsed_ms:.1f}ms - {client} - {user_agent}")
            raise

        elapsed = time.perf_counter() - started
        logger.log(
            _status_level(response.status_code),
            f"{request.method} {target} {response.status_code} {elapsed * 1000:.1f}ms - {client} - {user_agent}",
        )
        response.headers["X-Process-Time"] = f"{elapsed:.4f}"
        return response
