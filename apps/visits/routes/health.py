"""Health check endpoint: storage reachable and visit tables present."""

import logging
import os
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from apps.visits.db import missing_tables
from apps.visits.schemas.health import HealthResponse
from apps.visits.services.repo import ping

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse, responses={500: {"model": HealthResponse}})
def health():
    """Health check. 200 when the DB answers and visits/visit_logs exist, else 500."""
    version = os.getenv("GIT_SHA", "dev").strip() or "dev"
    now = datetime.now(timezone.utc).isoformat()
    try:
        ping()
        missing = missing_tables()
    except Exception as e:
        logger.warning("health check: storage unreachable: %s", e)
        body = HealthResponse(
            ok=False,
            version=version,
            time=now,
            database="unreachable",
            tables="unknown",
        )
        return JSONResponse(status_code=500, content=body.model_dump())
    body = HealthResponse(
        ok=not missing,
        version=version,
        time=now,
        database="connected",
        tables="ready" if not missing else "missing",
        missing_tables=missing,
    )
    if missing:
        return JSONResponse(status_code=500, content=body.model_dump())
    return body
