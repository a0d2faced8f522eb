"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

logging.basicConfig(level=logging.INFO)

from apps.visits.config import config
from apps.visits.db import ensure_tables
from apps.visits.routes import health, visits

logger = logging.getLogger(__name__)

# CORS allowlist from CORS_ALLOW_ORIGINS (comma-separated); the tracker posts cross-origin.
CORS_DEFAULT_ORIGINS = ["http://localhost:3000"]
CORS_ORIGINS = config.CORS_ALLOW_ORIGINS or CORS_DEFAULT_ORIGINS


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Ensure tables exist on startup (SQLite / SCHEMA_AUTHORITY=ensure_tables; Postgres uses Alembic)."""
    ensure_tables()
    logger.info("visit analytics API started env=%s", config.ENV or "unset")
    yield


app = FastAPI(
    title="Visit Analytics API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(CORSMiddleware, allow_origins=CORS_ORIGINS, allow_credentials=True, allow_methods=["*"], allow_headers=["*"])


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed parameters or body => 400 with one {field, message} per problem."""
    errors = [
        {
            "field": ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")) or "body",
            "message": err.get("msg", "invalid value"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"detail": errors})


app.include_router(health.router, tags=["health"])
app.include_router(visits.router, prefix="/api/visits", tags=["visits"])

if config.debug_routes_enabled:
    from apps.visits.routes import debug

    app.include_router(debug.router, prefix="/api/visits/debug", tags=["debug"])
