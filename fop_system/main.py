"""
Foreign Operator Permit System - FastAPI entry point
"""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fop_system.api.deps import get_context
from fop_system.api.v1.api import api_router
from fop_system.core import database
from fop_system.core.config import get_settings
from fop_system.core.exceptions import DomainError

settings = get_settings()

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)

SLOW_REQUEST_SECONDS = 2.0


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the schema and wire collaborators before serving requests"""
    logger.info(f"Starting {settings.PROJECT_NAME} {settings.VERSION} ({settings.CURRENCY})")
    database.create_tables()
    context = get_context()
    logger.info(f"Documents stored under {context.settings.get_file_storage_path()}")

    yield

    logger.info(f"{settings.PROJECT_NAME} stopped")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="Foreign Operator Permit applications, fees, payments and permit lifecycle",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Process-Time"],
)


@app.middleware("http")
async def time_requests(request: Request, call_next):
    """Expose processing time and log slow requests"""
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - started
    response.headers["X-Process-Time"] = f"{elapsed:.4f}"
    if elapsed > SLOW_REQUEST_SECONDS:
        logger.warning(f"Slow request {request.method} {request.url.path}: {elapsed:.2f}s")
    return response


@app.exception_handler(DomainError)
async def handle_domain_error(request: Request, exc: DomainError):
    """Map domain errors to their HTTP status with a stable error body"""
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


@app.get("/health", tags=["Health"])
async def health_check():
    """Service status; 503 when the permit database is unreachable"""
    db_connected, db_message = database.test_database_connection()
    body = {
        "status": "healthy" if db_connected else "unhealthy",
        "system": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "checked_at": datetime.now(timezone.utc).isoformat(),
        "database": {"connected": db_connected, "message": db_message},
    }
    return JSONResponse(status_code=200 if db_connected else 503, content=body)


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"{settings.PROJECT_NAME} API",
        "version": settings.VERSION,
        "docs_url": app.docs_url,
        "permit_verification": f"{settings.API_V1_STR}/permits/verify/{{permit_number}}",
    }


app.include_router(api_router, prefix=settings.API_V1_STR)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("fop_system.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
