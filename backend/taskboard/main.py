import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import ArgumentError

from .api.v1 import health, tasks
from .core.config import Settings, settings as default_settings
from .core.errors import TaskError
from .core.logging import setup_logging
from .db.crud import SqlTaskBackend
from .db.session import make_engine
from .services.connectivity import BackendState, connect_durable_store
from .services.fallback import MemoryState, MemoryTaskBackend
from .services.task_store import TaskStore

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        state: BackendState = app.state.backend
        if settings.DATABASE_URL:
            try:
                engine = make_engine(settings.DATABASE_URL, settings.DB_CONNECT_TIMEOUT)
            except (ArgumentError, OSError) as e:
                logger.error("Unusable DATABASE_URL: %s", e)
            else:
                state.durable = SqlTaskBackend(engine)
        # Requests are served from the fallback until this succeeds.
        connecting = asyncio.create_task(
            connect_durable_store(
                state,
                retries=settings.DB_CONNECT_RETRIES,
                base_delay=settings.DB_RETRY_BASE_DELAY,
                timeout=settings.DB_CONNECT_TIMEOUT,
            )
        )
        try:
            yield
        finally:
            connecting.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await connecting
            if state.durable is not None:
                state.durable.dispose()

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.settings = settings
    app.state.backend = BackendState(recheck_interval=settings.DB_RECHECK_INTERVAL)
    app.state.store = TaskStore(app.state.backend, MemoryTaskBackend(MemoryState()))

    app.include_router(health.router, prefix=settings.API_PREFIX)
    app.include_router(tasks.router, prefix=settings.API_PREFIX)

    @app.exception_handler(TaskError)
    async def task_error_handler(request: Request, exc: TaskError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": type(exc).__name__, "message": exc.message},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0]["msg"] if errors else "Invalid request"
        return JSONResponse(
            status_code=400,
            content={"error": "ValidationError", "message": message},
        )

    return app


app = create_app()


def run() -> None:
    import uvicorn

    setup_logging(default_settings.LOG_LEVEL, default_settings.LOG_FILE)
    logger.info("Starting %s on http://%s:%s", default_settings.APP_NAME, default_settings.HOST, default_settings.PORT)
    uvicorn.run(app, host=default_settings.HOST, port=default_settings.PORT, log_config=None)


if __name__ == "__main__":
    run()
