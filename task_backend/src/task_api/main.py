from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .db import Database
from .errors import ErrorKind, TaskError, TaskValidationError
from .logging_setup import setup_logging
from .repositories import TaskRepository
from .routers import tasks as tasks_router
from .service import TaskService
from .settings import Settings, get_settings
from .utils import error_envelope

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("task_api.access")

API_VERSION = "1.0.0"

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "tasks",
        "description": "Create, list, update, complete and delete tasks.",
    },
]

_STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
}


def _build_lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        database = Database(
            settings.database_path,
            pool_size=settings.db_connection_limit,
            acquire_timeout=settings.db_acquire_timeout,
        )
        await database.initialize()
        app.state.database = database
        app.state.task_service = TaskService(TaskRepository(database))
        logger.info("Task API ready")
        try:
            yield
        finally:
            logger.info("Shutting down")
            await database.close()

    return lifespan


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(TaskError)
    async def task_error_handler(request: Request, exc: TaskError) -> JSONResponse:
        """Map a domain error to its status code by kind, never by message text."""
        status_code = _STATUS_BY_KIND.get(exc.kind, 500)
        errors = exc.messages if isinstance(exc, TaskValidationError) else None
        if status_code >= 500:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=status_code, content=error_envelope(exc.message, errors))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Unparseable bodies (e.g. malformed JSON) use the same 400 envelope as
        rule violations.
        """
        messages = [str(err.get("msg", "Invalid request")) for err in exc.errors()]
        return JSONResponse(status_code=400, content=error_envelope("Validation failed", messages))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            message = f"Route {request.url.path} not found"
        else:
            message = str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content=error_envelope("Internal Server Error"))


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    The database pool is opened in the lifespan and closed on shutdown; the
    service built on top of it lives on app.state.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_file)

    app = FastAPI(
        title="Task Management API",
        description="Backend API for managing tasks with due dates, priorities and completion state.",
        version=API_VERSION,
        openapi_tags=openapi_tags,
        lifespan=_build_lifespan(settings),
    )
    app.state.settings = settings

    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        # Browsers reject credentials combined with a wildcard origin
        allow_credentials=not allow_all,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        client = request.client.host if request.client else "-"
        access_logger.info("%s %s - IP: %s", request.method, request.url.path, client)
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        access_logger.info(
            "%s %s - Status: %d (%.1f ms)", request.method, request.url.path, response.status_code, elapsed_ms
        )
        return response

    _register_exception_handlers(app)

    # PUBLIC_INTERFACE
    @app.get("/", summary="API Info", tags=["health"])
    def api_info():
        """
        Describe the API and where its endpoints live.
        """
        return {
            "message": "Task Management System API",
            "version": API_VERSION,
            "endpoints": {"tasks": "/tasks", "health": "/health"},
        }

    # PUBLIC_INTERFACE
    @app.get("/health", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object with status 'OK' and the current UTC timestamp.
        """
        return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}

    app.include_router(tasks_router.router)
    return app


app = create_app()
