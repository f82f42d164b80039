"""
PLE Platform - API Application
==============================
Content lifecycle and version control service.
Built with FastAPI + SQLAlchemy (async) + PostgreSQL.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from ple_platform import __version__
from ple_platform.api.envelope import content_error_envelope, error_envelope
from ple_platform.api.routes.auth import router as auth_router
from ple_platform.api.routes.content import router as content_router
from ple_platform.core.config import get_settings
from ple_platform.core.correlation import bind_request_context, clear_request_context
from ple_platform.core.database import init_db
from ple_platform.core.errors import ContentError
from ple_platform.core.logging import get_logger, setup_logging
from ple_platform.schemas import HealthResponse

settings = get_settings()
logger = get_logger("main")

_QUIET_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup & shutdown lifecycle."""
    setup_logging(debug=settings.app_debug)
    logger.info("app_starting", app=settings.app_name, env=settings.app_env)

    await init_db()
    logger.info("database_initialized")
    logger.info("app_ready", port=settings.app_port)

    yield

    logger.info("app_shutdown")


app = FastAPI(
    title=settings.app_name,
    description="Editorial content lifecycle: drafts, review, publishing, version history and revert.",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request Logging Middleware ──

@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id, correlation_id = bind_request_context(
        request.headers.get("x-request-id"),
        request.headers.get("x-correlation-id"),
    )
    start = time.time()
    response = None
    try:
        response = await call_next(request)
        return response
    finally:
        elapsed = round((time.time() - start) * 1000, 2)
        status_code = 500
        if response is not None:
            response.headers["x-request-id"] = request_id
            response.headers["x-correlation-id"] = correlation_id
            status_code = response.status_code
        if request.url.path not in _QUIET_PATHS:
            logger.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                status=status_code,
                elapsed_ms=elapsed,
            )
        clear_request_context()


# ── Exception Handlers ──

@app.exception_handler(ContentError)
async def content_error_handler(request: Request, exc: ContentError):
    log = logger.error if exc.status_code >= 500 else logger.info
    log("content_error", path=request.url.path, code=exc.code, status_code=exc.status_code, message=exc.message)
    return content_error_envelope(exc, path=request.url.path)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.warning("http_exception", path=request.url.path, status_code=exc.status_code, detail=str(exc.detail))
    return error_envelope(
        code="not_found" if exc.status_code == 404 else "http_error",
        message=str(exc.detail),
        status_code=exc.status_code,
        meta={"path": request.url.path},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("validation_error", path=request.url.path, errors=exc.errors())
    return error_envelope(
        code="validation_error",
        message="Validation failed",
        status_code=400,
        details=jsonable_encoder(exc.errors()),
        meta={"path": request.url.path},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return error_envelope(
        code="internal_error",
        message="Internal server error",
        status_code=500,
        meta={"path": request.url.path},
    )


# ── Register Routers ──

app.include_router(auth_router, prefix="/api/v1")
app.include_router(content_router, prefix="/api/v1")


@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check():
    return HealthResponse(
        status="ok",
        version=__version__,
        environment=settings.app_env,
        database="configured",
    )
