from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import inspect
from starlette.exceptions import HTTPException as StarletteHTTPException

from reportgate.config import settings
from reportgate.database import engine
from reportgate.errors import (
    StatusError,
    bad_request,
    internal_server_error,
    method_not_allowed,
)
from reportgate.logging_config import setup_logging
from reportgate.middleware.https import HTTPSOnlyMiddleware
from reportgate.middleware.logging import CORRELATION_ID_HEADER, LoggingMiddleware
from reportgate.middleware.rate_limit import limiter
from reportgate.routers import challenges, reports
from reportgate.scheduler import shutdown_scheduler, start_scheduler
from reportgate.services.discord_service import send_error_alert

logger = structlog.get_logger()

REQUIRED_TABLES = {"challenges", "pending_reports"}


def check_database_tables() -> None:
    """Fail fast if migrations have not been applied."""
    tables = set(inspect(engine).get_table_names())
    missing = REQUIRED_TABLES - tables
    if missing:
        raise RuntimeError(
            f"Database tables missing: {', '.join(sorted(missing))}. "
            "Run: alembic upgrade head"
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - logging, schema check, scheduler."""
    setup_logging()
    check_database_tables()
    if settings.using_test_database:
        logger.warning("test_database_in_use")
    start_scheduler()
    yield
    shutdown_scheduler()


app = FastAPI(
    title="ReportGate",
    description="Proof-of-work gated exposure report submission",
    version="0.1.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


def _correlation_id(request: Request) -> str | None:
    return getattr(request.state, "correlation_id", None)


async def _report_internal_error(request: Request, error: StatusError) -> None:
    cause = error.cause or error
    logger.error(
        "internal_server_error",
        path=request.url.path,
        error_type=type(cause).__name__,
        exc_info=cause,
    )
    await send_error_alert(
        error_type=type(cause).__name__,
        message=str(cause),
        path=request.url.path,
        correlation_id=_correlation_id(request),
        status_code=error.status_code,
    )


@app.exception_handler(StatusError)
async def status_error_handler(request: Request, exc: StatusError):
    if exc.is_internal:
        await _report_internal_error(request, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_response_body())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    return await status_error_handler(request, bad_request(f"malformed request: {problems}"))


@app.exception_handler(StarletteHTTPException)
async def starlette_http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 405:
        return await status_error_handler(request, method_not_allowed(request.method))
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    # Runs outside the middleware stack, so the correlation header is set here
    error = internal_server_error(exc)
    await _report_internal_error(request, error)
    response = JSONResponse(status_code=error.status_code, content=error.to_response_body())
    correlation_id = _correlation_id(request)
    if correlation_id:
        response.headers[CORRELATION_ID_HEADER] = correlation_id
    return response


# Middleware: last added runs first
if settings.require_https:
    app.add_middleware(HTTPSOnlyMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)

# Routers
app.include_router(challenges.router, tags=["challenges"])
app.include_router(reports.router, tags=["reports"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
