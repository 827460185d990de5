"""HTTP client for the location registry API."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests
from requests.exceptions import RequestException, Timeout, ConnectionError

from .errors import RegistryResponseError, TransportError

logger = logging.getLogger(__name__)

TRACK_LOCATION_PATH = "/track-location"


@dataclass
class ReportSendResult:
    """Result of attempting to send a location report."""

    success: bool
    status_code: Optional[int]
    response_json: Optional[Dict[str, Any]]
    message: Optional[str]

    @property
    def transport_failed(self) -> bool:
        """True when the registry was never reached."""
        return self.status_code is None


class RegistryClient:
    """HTTP client for reporting locations and listing active trackers."""

    def __init__(
        self,
        base_url: str,
        timeout_secs: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the registry client.

        Args:
            base_url: Base URL of the registry API (e.g. http://127.0.0.1:8000)
            timeout_secs: HTTP request timeout in seconds
            session: Optional pre-configured session (used by tests)
        """
        self.base_url = base_url.rstrip('/')
        self.timeout_secs = timeout_secs
        self._owns_session = session is None
        self.session = session if session is not None else requests.Session()

        if self._owns_session:
            self.session.headers.update({
                'User-Agent': 'LocationTracker-Client/1.0.0',
                'Accept': 'application/json',
            })

    @property
    def url(self) -> str:
        return self.base_url + TRACK_LOCATION_PATH

    def _request(self, method: str, **kwargs):
        try:
            return self.session.request(method, self.url, timeout=self.timeout_secs, **kwargs)
        except Timeout as e:
            logger.warning(f"Request timeout for {method} {self.url}")
            raise TransportError(f"Request timeout: {e}") from e
        except ConnectionError as e:
            logger.warning(f"Connection error for {method} {self.url}: {e}")
            raise TransportError(f"Connection error: {e}") from e
        except RequestException as e:
            logger.error(f"Request error for {method} {self.url}: {e}")
            raise TransportError(f"Request error: {e}") from e

    def send_report(
        self,
        tracker_id: str,
        latitude: float,
        longitude: float,
        is_tracking: bool,
    ) -> ReportSendResult:
        """
        Send one location report.

        Never raises for transport or HTTP failures; the outcome is described
        by the returned :class:`ReportSendResult`.
        """
        payload = {
            'trackerId': tracker_id,
            'latitude': latitude,
            'longitude': longitude,
            'isTracking': is_tracking,
        }

        try:
            response = self._request('POST', json=payload)
        except TransportError as e:
            return ReportSendResult(
                success=False,
                status_code=None,
                response_json=None,
                message=str(e),
            )

        response_json = self._parse_json(response)
        status_code = response.status_code

        if status_code == 200:
            logger.debug(f"Report accepted for {tracker_id} (tracking={is_tracking})")
            return ReportSendResult(
                success=True,
                status_code=status_code,
                response_json=response_json,
                message=self._extract_message(response_json) or "Location received",
            )

        if 400 <= status_code < 500:
            logger.warning(f"Report rejected for {tracker_id} with {status_code}")
        else:
            logger.warning(f"Server error {status_code} reporting {tracker_id}")

        return ReportSendResult(
            success=False,
            status_code=status_code,
            response_json=response_json,
            message=f"Error {status_code}: {self._extract_message(response_json) or 'No error details'}",
        )

    def fetch_active(self) -> List[Dict[str, Any]]:
        """
        Fetch snapshots of every active tracker.

        Raises:
            TransportError: The registry could not be reached
            RegistryResponseError: The registry answered with an error status
        """
        response = self._request('GET')
        response_json = self._parse_json(response)

        if response.status_code != 200:
            raise RegistryResponseError(
                response.status_code,
                self._extract_message(response_json) or "Failed to fetch locations",
            )
        if not isinstance(response_json, list):
            raise RegistryResponseError(response.status_code, "Expected a JSON array of trackers")

        return response_json

    @staticmethod
    def _parse_json(response) -> Optional[Any]:
        try:
            return response.json()
        except ValueError:
            return None

    @staticmethod
    def _extract_message(response_json: Optional[Any]) -> Optional[str]:
        """Extract a message from a response body."""
        if not isinstance(response_json, dict):
            return None
        if 'message' in response_json:
            return str(response_json['message'])
        if 'error' in response_json:
            return str(response_json['error'])
        if 'detail' in response_json:
            return str(response_json['detail'])
        return None

    def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "RegistryClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
