import time
import uuid
import logging
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
from .config import API_VERSION, HTTP_LOG_ENABLED, HTTP_LOG_EXCLUDE_PATHS
from .logging_config import trace_id_var

logger = logging.getLogger("admin_console")

class TracingMiddleware(BaseHTTPMiddleware):
    """ASGI middleware for request tracing and structured logging"""

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.exclude_paths = HTTP_LOG_EXCLUDE_PATHS

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Generate or reuse trace ID; forwarded to the backend by BackendClient
        trace_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = trace_id_var.set(trace_id)

        client_ip = request.client.host if request.client else "unknown"
        start_time = time.time()

        try:
            response = await call_next(request)
            latency_ms = round((time.time() - start_time) * 1000, 2)
            self._log_request(request.method, request.url.path, response.status_code,
                              latency_ms, client_ip)
            response.headers["X-Request-ID"] = trace_id
            response.headers["X-API-Version"] = API_VERSION
            return response

        except Exception as e:
            latency_ms = round((time.time() - start_time) * 1000, 2)
            logger.error(f"Request failed: {str(e)}", extra={
                "method": request.method,
                "path": request.url.path,
                "status": 500,
                "latency_ms": latency_ms,
                "client_ip": client_ip,
            })
            raise
        finally:
            trace_id_var.reset(token)

    def _log_request(self, method: str, path: str, status: int, latency_ms: float,
                     client_ip: str):
        """Log HTTP request with structured data"""
        if not HTTP_LOG_ENABLED or path in self.exclude_paths:
            return

        extra = {
            "method": method,
            "path": path,
            "status": status,
            "latency_ms": latency_ms,
            "client_ip": client_ip,
        }
        if status >= 500:
            logger.error("HTTP Request", extra=extra)
        elif status >= 400:
            logger.warning("HTTP Request", extra=extra)
        else:
            logger.info("HTTP Request", extra=extra)
