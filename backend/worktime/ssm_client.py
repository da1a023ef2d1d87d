"""HTTP client for the ScreenshotMonitor reporting API."""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Optional

import requests
import urllib3
from urllib3.exceptions import InsecureRequestWarning

DEFAULT_BASE_URL = "https://screenshotmonitor.com/api/v2"
TOKEN_HEADER = "X-SSM-Token"

logger = logging.getLogger(__name__)


class RemoteTimeSourceError(RuntimeError):
    """Error while talking to the remote time-tracking service."""

    def __init__(self, message: str, *, response: Optional[requests.Response] = None) -> None:
        super().__init__(message)
        self.response = response


class RemoteLookupError(RemoteTimeSourceError):
    """The employment id for a token could not be resolved."""


class RemoteReportError(RemoteTimeSourceError):
    """The duration report could not be fetched."""


class ScreenshotMonitorClient:
    """Fetches worked minutes for the identity behind an API token."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10,
        verify_tls: bool = False,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.verify_tls = verify_tls
        self.session = session or requests.Session()
        if not verify_tls:
            urllib3.disable_warnings(InsecureRequestWarning)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def fetch_worked_minutes(self, token: str, start: dt.date, end: dt.date) -> int:
        employment_id = self.resolve_employment_id(token)
        report = self.fetch_report(token, employment_id, start, end)
        total_minutes = sum_report_minutes(report)
        logger.info(
            "ScreenshotMonitor report fetched from=%s to=%s total_minutes=%s",
            start.isoformat(),
            end.isoformat(),
            total_minutes,
        )
        return total_minutes

    def resolve_employment_id(self, token: str) -> Any:
        data = self._request(
            "GET",
            "/GetCommonData",
            token,
            error_cls=RemoteLookupError,
            label="GetCommonData",
        )
        employment_id = data.get("employmentId") if isinstance(data, dict) else None
        if not employment_id:
            raise RemoteLookupError("No employmentId found")
        return employment_id

    def fetch_report(self, token: str, employment_id: Any, start: dt.date, end: dt.date) -> Any:
        payload = {
            "employmentId": employment_id,
            "from": start.isoformat(),
            "to": end.isoformat(),
        }
        return self._request(
            "POST",
            "/GetReport",
            token,
            error_cls=RemoteReportError,
            label="GetReport",
            json=payload,
            headers={"Content-Type": "application/json"},
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _headers(self, token: str) -> dict[str, str]:
        return {TOKEN_HEADER: token, "Accept": "application/json"}

    def _request(
        self,
        method: str,
        path: str,
        token: str,
        *,
        error_cls: type[RemoteTimeSourceError],
        label: str,
        **kwargs,
    ) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        kwargs.setdefault("timeout", self.timeout)
        headers = kwargs.setdefault("headers", {})
        headers.update(self._headers(token))
        try:
            response = self.session.request(method, url, verify=self.verify_tls, **kwargs)
        except requests.RequestException as exc:
            raise error_cls(f"{label} failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise error_cls(f"{label} failed with status {response.status_code}", response=response)

        try:
            return response.json()
        except ValueError as exc:
            raise error_cls(f"{label} returned invalid JSON", response=response) from exc


def _record_minutes(record: Any) -> int:
    if not isinstance(record, dict):
        return 0
    value = record.get("Duration")
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, (int, float)):
        minutes = int(value)
    elif isinstance(value, str):
        try:
            minutes = int(float(value.strip()))
        except ValueError:
            return 0
    else:
        return 0
    return max(minutes, 0)


def sum_report_minutes(report: Any) -> int:
    """Sum ``charts.employments[*].Duration``; malformed records count as zero."""
    if not isinstance(report, dict):
        return 0
    charts = report.get("charts")
    if not isinstance(charts, dict):
        return 0
    employments = charts.get("employments")
    if not isinstance(employments, list):
        return 0
    return sum(_record_minutes(record) for record in employments)


__all__ = [
    "RemoteLookupError",
    "RemoteReportError",
    "RemoteTimeSourceError",
    "ScreenshotMonitorClient",
    "sum_report_minutes",
]
