from fastapi import FastAPI, Request
from contextlib import asynccontextmanager
from typing import Optional
import logging

import httpx

from .middleware import TracingMiddleware
from .api.health import router as health_router
from .api.tenants import router as tenants_router
from .api.access_keys import router as access_keys_router
from .api.security import router as security_router
from .api.response_builders import build_error_response
from .config import API_VERSION, LOCK_POLL_SECONDS
from .errors import ConsoleError
from .logging_config import setup_logging
from .polling import ScheduledPoll
from .services.backend_client import BackendClient
from .services.cache import USERS, QueryCache, register_backend_queries
from .services.mutations import MutationRunner

logger = logging.getLogger("admin_console")


def create_app(transport: Optional[httpx.AsyncBaseTransport] = None,
               lock_poll_seconds: float = LOCK_POLL_SECONDS) -> FastAPI:
    """Build the console application.

    ``transport`` replaces the network transport of the backend client
    (tests pass an ``httpx.MockTransport``).
    """

    @asynccontextmanager
    async def lifespan(application: FastAPI):
        backend = BackendClient(transport=transport)
        cache = register_backend_queries(QueryCache(), backend)
        application.state.backend = backend
        application.state.cache = cache
        application.state.mutations = MutationRunner(cache)
        application.state.lock_poll = None

        # Keeps the lock state shown by the security overview current
        if lock_poll_seconds > 0:
            application.state.lock_poll = ScheduledPoll(
                "lock-state", lock_poll_seconds, lambda: cache.fetch(USERS)
            ).start()

        logger.info("Storage admin console ready", extra={
            "component": "api",
            "version": API_VERSION,
            "lock_poll_seconds": lock_poll_seconds,
        })
        try:
            yield
        finally:
            if application.state.lock_poll is not None:
                await application.state.lock_poll.stop()
            # In-flight mutations finish and refresh the cache before the client closes
            await application.state.mutations.drain()
            await backend.aclose()
            logger.info("Storage admin console shutting down", extra={"component": "api"})

    application = FastAPI(title="Storage Admin Console", lifespan=lifespan)
    application.add_middleware(TracingMiddleware)

    @application.exception_handler(ConsoleError)
    async def console_error_handler(request: Request, exc: ConsoleError):
        board = getattr(request.state, "notifier", None)
        notices = board.to_list() if board is not None else []
        return build_error_response(exc, notices)

    application.include_router(health_router)
    application.include_router(tenants_router)
    application.include_router(access_keys_router)
    application.include_router(security_router)
    return application


# Configure logging at import time
setup_logging()

app = create_app()

# Server startup configuration
if __name__ == "__main__":
    import uvicorn
    from .config import APP_PORT

    logger.info(f"Starting Storage Admin Console on port {APP_PORT}")

    uvicorn.run(
        "admin_console.main:app",
        host="0.0.0.0",
        port=APP_PORT,
        reload=False,
        access_log=True
    )
