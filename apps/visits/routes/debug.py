"""Debug endpoints for troubleshooting. Mounted only when ENV is development or test."""

from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Query
from fastapi.routing import APIRoute

from apps.visits.routes import visits
from apps.visits.schemas.debug import DebugLogsResponse, DebugRoutesResponse, RouteInfo, VisitLogOut
from apps.visits.services.repo import list_recent_visit_logs

router = APIRouter()

VISITS_PREFIX = "/api/visits"
DEBUG_LOGS_MAX_LIMIT = 200


@router.get("/logs", response_model=DebugLogsResponse)
def debug_logs(limit: int = Query(50, description="Max rows; clamped to 1..200")) -> DebugLogsResponse:
    """Latest visit_logs rows, newest first."""
    limit = max(1, min(DEBUG_LOGS_MAX_LIMIT, limit))
    try:
        rows = list_recent_visit_logs(limit)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to read visit logs: {e.__class__.__name__}")
    data = [VisitLogOut.model_validate(r) for r in rows]
    return DebugLogsResponse(data=data, count=len(data))


@router.get("/routes", response_model=DebugRoutesResponse)
async def debug_routes() -> DebugRoutesResponse:
    """Routes of the visits router, as mounted under /api/visits."""
    routes = [
        RouteInfo(path=VISITS_PREFIX + r.path, methods=sorted(r.methods or []))
        for r in visits.router.routes
        if isinstance(r, APIRoute)
    ]
    return DebugRoutesResponse(
        available_routes=routes,
        total_routes=len(routes),
        base_path=VISITS_PREFIX,
        server_time=datetime.now(timezone.utc).isoformat(),
    )
