"""FastAPI application for the ouca field-observation API."""

import asyncio
import logging
import subprocess
import sys
from contextlib import asynccontextmanager
from pathlib import Path

import fastapi
from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from core.auth import close_oidc_client
from core.config import get_settings
from core.database import (
    create_engine,
    create_session_maker,
    dispose_engine,
    init_db,
)
from core.logger import configure_logging
from core.middleware import RequestContextMiddleware, SecurityHeadersMiddleware
from core.ratelimit import limiter, rate_limit_exceeded_handler
from core.wide_event import set_wide_event_fields
from routes import (
    entries_router,
    exports_router,
    geojson_router,
    health_router,
    inventories_router,
    me_router,
    reference_routers,
    species_router,
)
from services.exceptions import (
    AlreadyExistsError,
    DomainError,
    ExtendedDataNotFoundError,
    IsUsedError,
    NotAllowedError,
    RequiredDataNotFoundError,
    SimilarEntryExistsError,
    SimilarInventoryExistsError,
)

configure_logging()
logger = logging.getLogger(__name__)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler for unhandled exceptions."""
    logger.exception(
        "unhandled.exception",
        extra={
            "exc_type": type(exc).__name__,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "An unexpected error occurred. Please try again."},
    )


async def validation_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Handler for request validation errors."""
    if not isinstance(exc, RequestValidationError):
        return JSONResponse(status_code=500, content={"detail": "Unexpected error"})

    logger.warning(
        "request.validation_error",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_count": len(exc.errors()),
        },
    )
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_encoder(exc.errors())},
    )


def _domain_error_response(exc: DomainError) -> JSONResponse:
    match exc:
        case NotAllowedError():
            return JSONResponse(status_code=403, content={"detail": "notAllowed"})
        case IsUsedError():
            return JSONResponse(status_code=409, content={"detail": "isUsed"})
        case AlreadyExistsError():
            return JSONResponse(status_code=409, content={"detail": "alreadyExists"})
        case SimilarInventoryExistsError(corresponding_id=corresponding_id):
            return JSONResponse(
                status_code=409,
                content={"correspondingInventoryFound": str(corresponding_id)},
            )
        case SimilarEntryExistsError(corresponding_id=corresponding_id):
            return JSONResponse(
                status_code=409,
                content={"correspondingEntryFound": str(corresponding_id)},
            )
        case ExtendedDataNotFoundError():
            return JSONResponse(
                status_code=404, content={"detail": "extendedDataNotFound"}
            )
        case RequiredDataNotFoundError():
            return JSONResponse(
                status_code=422, content={"detail": "requiredDataNotFound"}
            )
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def domain_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Maps service-layer failures to their HTTP status."""
    if not isinstance(exc, DomainError):
        return await global_exception_handler(request, exc)

    set_wide_event_fields(domain_error=type(exc).__name__)
    logger.info(
        "request.domain_error",
        extra={
            "error_type": type(exc).__name__,
            "path": request.url.path,
            "method": request.method,
            "reason": str(exc),
        },
    )
    return _domain_error_response(exc)


async def _run_alembic_migrations() -> None:
    """Run Alembic migrations in a subprocess.

    psycopg2's connection pool cleanup deadlocks inside
    asyncio.to_thread when uvloop is the event loop.  Running
    migrations as a subprocess avoids the issue entirely.
    """
    cmd = [
        sys.executable,
        "-c",
        (
            "from alembic import command; "
            "from alembic.config import Config; "
            "command.upgrade(Config('alembic.ini'), 'head')"
        ),
    ]
    cwd = Path(__file__).parent

    result = await asyncio.to_thread(
        lambda: subprocess.run(
            cmd, cwd=cwd, capture_output=True, text=True, timeout=120
        )
    )

    if result.returncode != 0:
        stderr = result.stderr.strip()
        logger.error("migrations.failed", extra={"stderr": stderr})
        raise RuntimeError(f"Alembic migration failed:\n{stderr}")

    logger.info("migrations.complete")


@asynccontextmanager
async def lifespan(app: fastapi.FastAPI):
    """Create DB engine at startup, dispose on shutdown."""
    app.state.engine = create_engine()
    app.state.session_maker = create_session_maker(app.state.engine)

    try:
        async with asyncio.timeout(60):
            await init_db(app.state.engine)

        if get_settings().run_migrations:
            async with asyncio.timeout(120):
                await _run_alembic_migrations()

        logger.info("init.complete")
    except TimeoutError:
        logger.error(
            "init.timeout",
            extra={"hint": "Startup hung - check DB connectivity and migration state"},
        )
        raise RuntimeError("Application startup timed out")
    except Exception as e:
        logger.error("init.failed", extra={"error": str(e)}, exc_info=True)
        raise

    try:
        yield
    finally:
        await close_oidc_client()
        await dispose_engine(app.state.engine)


_settings = get_settings()

app = fastapi.FastAPI(
    title="ouca API",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if _settings.enable_docs or _settings.debug else None,
    redoc_url="/redoc" if _settings.enable_docs or _settings.debug else None,
    openapi_url=("/openapi.json" if _settings.enable_docs or _settings.debug else None),
)

app.state.limiter = limiter
app.add_exception_handler(DomainError, domain_exception_handler)
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.add_middleware(GZipMiddleware, minimum_size=500)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
    expose_headers=["Location", "X-Request-Id"],
)
# Outermost, so the canonical log line covers every other middleware
app.add_middleware(RequestContextMiddleware)

app.include_router(health_router)
app.include_router(me_router)
for reference_router in reference_routers:
    app.include_router(reference_router)
app.include_router(species_router)
app.include_router(inventories_router)
app.include_router(entries_router)
app.include_router(exports_router)
app.include_router(geojson_router)
