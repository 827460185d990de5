"""Location reporting and active-tracker listing endpoints."""

import json
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..core.errors import ReportValidationError
from ..registry.store import LocationRegistry
from ..utils.logging_config import get_logger
from .schemas import (
    ErrorResponse,
    MessageResponse,
    ReportAcceptedResponse,
    TrackerSnapshot,
    parse_report_payload,
)

logger = get_logger('api')

TRACK_LOCATION_PATH = "/track-location"
API_PREFIX = "/api"
# The router is mounted at the root and again under API_PREFIX
TRACKING_PATHS = frozenset({TRACK_LOCATION_PATH, API_PREFIX + TRACK_LOCATION_PATH})
SUPPORTED_METHODS = ("GET", "POST")

router = APIRouter(tags=["tracking"])


def get_registry(request: Request) -> LocationRegistry:
    """Registry owned by the running application."""
    return request.app.state.registry


@router.post(
    TRACK_LOCATION_PATH,
    response_model=ReportAcceptedResponse,
    responses={
        400: {"model": MessageResponse, "description": "Missing or invalid field"},
        500: {"model": ErrorResponse, "description": "Unexpected failure"},
    },
)
async def report_location(
    request: Request,
    registry: LocationRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    """
    Store the latest position of a tracker.

    A report replaces any earlier record for the same ``trackerId``.
    Sending ``isTracking: false`` marks the tracker as stopped; it drops out
    of the active listing immediately and is purged by the eviction sweep
    after the inactivity timeout.
    """
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ReportValidationError("Request body must be valid JSON.")

    report = parse_report_payload(body)
    record = registry.report(
        tracker_id=report.tracker_id,
        latitude=report.latitude,
        longitude=report.longitude,
        is_tracking=report.is_tracking,
    )

    return {"message": "Location received successfully", "data": record.to_snapshot()}


@router.get(
    TRACK_LOCATION_PATH,
    response_model=List[TrackerSnapshot],
    responses={500: {"model": ErrorResponse, "description": "Unexpected failure"}},
)
async def list_active_trackers(
    registry: LocationRegistry = Depends(get_registry),
) -> List[Dict[str, Any]]:
    """
    List every tracker that is currently tracking.

    The response is a full snapshot, not a delta; dashboards replace their
    view with it on every poll.
    """
    active = [record.to_snapshot() for record in registry.list_active()]
    logger.info(f"Dashboard requested all active locations. Found {len(active)} active trackers.")
    return active


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> Response:
    """
    Answer every unsupported method on the tracking path with ``405 {message}``.

    The router raises 405 with an ``Allow`` header naming only the matched
    route's method; the tracking path supports both GET and POST. Other HTTP
    errors keep FastAPI's default handling.
    """
    if exc.status_code != status.HTTP_405_METHOD_NOT_ALLOWED or request.url.path not in TRACKING_PATHS:
        return await http_exception_handler(request, exc)

    return JSONResponse(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        content={
            "message": f"Method {request.method} not allowed. Use GET to list active trackers or POST to report a location."
        },
        headers={"Allow": ", ".join(SUPPORTED_METHODS)},
    )
