"""Pydantic models for API request/response validation."""

import math
from typing import Any, Dict, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from ..core.errors import ReportValidationError

# Wire names reported back to clients, keyed by field name and alias
_WIRE_NAMES = {
    "tracker_id": "trackerId",
    "trackerId": "trackerId",
    "userId": "trackerId",
    "latitude": "latitude",
    "longitude": "longitude",
    "is_tracking": "isTracking",
    "isTracking": "isTracking",
}
_FIELD_ORDER = ["trackerId", "latitude", "longitude", "isTracking"]


class LocationReport(BaseModel):
    """Body of ``POST /track-location``.

    ``userId`` is accepted as the historical name of ``trackerId``.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    tracker_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("trackerId", "userId", "tracker_id"),
        description="Opaque tracker identifier chosen by the client",
    )
    latitude: float = Field(description="Latitude in degrees")
    longitude: float = Field(description="Longitude in degrees")
    is_tracking: bool = Field(
        validation_alias=AliasChoices("isTracking", "is_tracking"),
        description="False once the client has explicitly stopped tracking",
    )

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _require_number(cls, value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("must be a number")
        try:
            finite = math.isfinite(value)
        except OverflowError:
            finite = False
        if not finite:
            raise ValueError("must be a finite number")
        return value

    @field_validator("is_tracking", mode="before")
    @classmethod
    def _require_bool(cls, value: Any) -> Any:
        if not isinstance(value, bool):
            raise ValueError("must be a boolean")
        return value


def _wire_name(loc: tuple) -> str:
    if not loc:
        return "body"
    return _WIRE_NAMES.get(str(loc[0]), str(loc[0]))


def parse_report_payload(body: Any) -> LocationReport:
    """Validate a decoded JSON body into a :class:`LocationReport`.

    ``null`` values count as missing. Raises :class:`ReportValidationError`
    naming the missing or invalid fields.
    """
    if not isinstance(body, dict):
        raise ReportValidationError("Request body must be a JSON object.")

    present = {key: value for key, value in body.items() if value is not None}

    try:
        return LocationReport.model_validate(present)
    except ValidationError as exc:
        missing, invalid = set(), set()
        for error in exc.errors():
            name = _wire_name(error.get("loc", ()))
            if error.get("type") == "missing" or (
                name == "trackerId" and error.get("type") == "string_too_short"
            ):
                missing.add(name)
            else:
                invalid.add(name)

        if missing:
            fields = [f for f in _FIELD_ORDER if f in missing]
            raise ReportValidationError(
                f"Missing {', '.join(fields)} in request body.", fields=fields
            ) from exc

        fields = [f for f in _FIELD_ORDER if f in invalid] or sorted(invalid)
        raise ReportValidationError(
            f"Invalid {', '.join(fields)} in request body.", fields=fields
        ) from exc


class TrackerSnapshot(BaseModel):
    """Snapshot of one tracker record as returned by the API."""

    trackerId: str
    latitude: float
    longitude: float
    lastUpdatedAt: int = Field(description="Server receipt time, epoch milliseconds")
    isTracking: bool


class ReportAcceptedResponse(BaseModel):
    """Response for a stored location report."""

    message: str
    data: TrackerSnapshot


class MessageResponse(BaseModel):
    """Error response carrying only a message (4xx)."""

    message: str


class ErrorResponse(BaseModel):
    """Error response for unexpected failures (5xx)."""

    message: str
    error: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
    version: str
    trackers: Dict[str, int]
