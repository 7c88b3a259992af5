from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI, status
from fastapi.responses import JSONResponse
from starlette.requests import Request

from jobly.api.router import api_router
from jobly.core.config import get_settings
from jobly.core.telemetry import (
    TelemetryRuntime,
    configure_api_logging,
    setup_api_telemetry,
    shutdown_api_telemetry,
)
from jobly.services.companies import get_company_repository
from jobly.services.database import get_database
from jobly.services.jobs import get_job_repository
from jobly.services.repository import (
    RepositoryConflictError,
    RepositoryError,
    RepositoryNotFoundError,
    RepositoryUnauthorizedError,
    RepositoryUnavailableError,
    RepositoryValidationError,
)
from jobly.services.users import get_user_repository

settings = get_settings()
_telemetry_runtime: TelemetryRuntime | None = None
logger = logging.getLogger(__name__)

ERROR_STATUS: tuple[tuple[type[RepositoryError], int], ...] = (
    (RepositoryValidationError, status.HTTP_400_BAD_REQUEST),
    (RepositoryUnauthorizedError, status.HTTP_401_UNAUTHORIZED),
    (RepositoryNotFoundError, status.HTTP_404_NOT_FOUND),
    (RepositoryConflictError, status.HTTP_409_CONFLICT),
    (RepositoryUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    try:
        yield
    finally:
        if _telemetry_runtime is not None:
            shutdown_api_telemetry(_telemetry_runtime)
        # Ensure asyncpg pool shuts down on app teardown.
        await get_database().close()
        get_database.cache_clear()
        get_company_repository.cache_clear()
        get_job_repository.cache_clear()
        get_user_repository.cache_clear()


configure_api_logging()
app = FastAPI(title=settings.app_name, lifespan=lifespan)
_telemetry_runtime = setup_api_telemetry(app, settings)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    started_at = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started_at) * 1000.0
    logger.info(
        "http request method=%s path=%s status=%s duration_ms=%.2f",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response


@app.exception_handler(RepositoryError)
async def repository_error_handler(request: Request, exc: RepositoryError) -> JSONResponse:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            break
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    if status_code >= 500:
        logger.error("repository failure path=%s error=%s", request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


app.include_router(api_router)
