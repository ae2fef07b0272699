from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from grantmaster.api.routers.applications import build_applications_router
from grantmaster.api.routers.export import router as export_router
from grantmaster.api.routers.mechanisms import router as mechanisms_router
from grantmaster.api.routers.sections import build_sections_router
from grantmaster.api.routers.system import build_system_router
from grantmaster.api.routers.validation import build_validation_router
from grantmaster.api.services.runtime import get_advisor, get_repository
from grantmaster.config import settings
from grantmaster.db import GrantRepository, StorageError
from grantmaster.llm import OpenAIAdvisor
from grantmaster.observability import (
    configure_logging,
    describe_error,
    normalize_request_id,
    reset_request_id,
    sanitize_for_logging,
    set_request_id,
)

logger = logging.getLogger("grantmaster.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    logger.info("application_startup", extra={"event": "application_startup", "environment": settings.app_env})
    repository = GrantRepository(settings.database_url)
    repository.init_schema()
    advisor = OpenAIAdvisor(settings)
    app.state.repository = repository
    app.state.advisor = advisor
    try:
        yield
    finally:
        advisor.close()
        logger.info("application_shutdown", extra={"event": "application_shutdown"})


def create_app() -> FastAPI:
    cors_origins = settings.cors_origins_list
    if settings.cors_allow_credentials and any(origin == "*" for origin in cors_origins):
        raise RuntimeError("Invalid CORS_ORIGINS: wildcard '*' is not allowed when credentials are enabled.")

    app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Authorization", "Content-Type", settings.request_id_header],
        expose_headers=["Content-Disposition", "X-Google-Docs-Hint", settings.request_id_header],
    )

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        request_id = normalize_request_id(request.headers.get(settings.request_id_header))
        request.state.request_id = request_id
        token = set_request_id(request_id)
        started = time.perf_counter()

        logger.info(
            "request_started",
            extra={
                "event": "request_started",
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "query": sanitize_for_logging(dict(request.query_params)),
                "client_ip": request.client.host if request.client else None,
            },
        )

        try:
            response = await call_next(request)
            elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
            response.headers[settings.request_id_header] = request_id
            logger.info(
                "request_completed",
                extra={
                    "event": "request_completed",
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": elapsed_ms,
                },
            )
            return response
        except Exception:
            elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
            logger.exception(
                "request_failed",
                extra={
                    "event": "request_failed",
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "duration_ms": elapsed_ms,
                },
            )
            raise
        finally:
            reset_request_id(token)

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
        logger.error(
            "storage_failed",
            extra={
                "event": "storage_failed",
                "request_id": getattr(request.state, "request_id", None),
                "path": request.url.path,
                "error": describe_error(exc),
            },
        )
        return JSONResponse(status_code=500, content={"detail": "Storage operation failed"})

    app.include_router(build_system_router(get_repository=get_repository))
    app.include_router(mechanisms_router, prefix="/api")
    app.include_router(build_applications_router(get_repository=get_repository), prefix="/api")
    app.include_router(
        build_sections_router(get_repository=get_repository, get_advisor=get_advisor),
        prefix="/api",
    )
    app.include_router(build_validation_router(get_repository=get_repository), prefix="/api")
    app.include_router(export_router, prefix="/api")
    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run("grantmaster.main:app", host=settings.app_host, port=settings.app_port)
