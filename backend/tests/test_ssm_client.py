from __future__ import annotations

import datetime as dt
from typing import Any

import pytest
import requests

from worktime.ssm_client import (
    RemoteLookupError,
    RemoteReportError,
    ScreenshotMonitorClient,
    sum_report_minutes,
)


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, invalid_json: bool = False):
        self.status_code = status_code
        self._payload = payload
        self._invalid_json = invalid_json
        self.text = str(payload)

    def json(self) -> Any:
        if self._invalid_json:
            raise ValueError("Expecting value")
        return self._payload


class FakeSession:
    """Records outgoing requests and replays queued responses."""

    def __init__(self, *responses: Any) -> None:
        self._responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def request(self, method: str, url: str, **kwargs) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


START = dt.date(2026, 2, 1)
END = dt.date(2026, 2, 17)


def _client(session: FakeSession) -> ScreenshotMonitorClient:
    return ScreenshotMonitorClient(base_url="https://screenshotmonitor.com/api/v2/", timeout=5, session=session)


def test_two_step_protocol_sums_durations() -> None:
    session = FakeSession(
        FakeResponse(payload={"employmentId": 4711}),
        FakeResponse(payload={"charts": {"employments": [{"Duration": 120}, {"Duration": 95}]}}),
    )
    minutes = _client(session).fetch_worked_minutes("secret", START, END)

    assert minutes == 215
    lookup, report = session.calls
    assert lookup["method"] == "GET"
    assert lookup["url"] == "https://screenshotmonitor.com/api/v2/GetCommonData"
    assert lookup["headers"]["X-SSM-Token"] == "secret"
    assert lookup["headers"]["Accept"] == "application/json"
    assert lookup["verify"] is False
    assert lookup["timeout"] == 5

    assert report["method"] == "POST"
    assert report["url"] == "https://screenshotmonitor.com/api/v2/GetReport"
    assert report["json"] == {"employmentId": 4711, "from": "2026-02-01", "to": "2026-02-17"}
    assert report["headers"]["X-SSM-Token"] == "secret"
    assert report["headers"]["Content-Type"] == "application/json"


def test_tls_verification_can_be_enabled() -> None:
    session = FakeSession(
        FakeResponse(payload={"employmentId": 1}),
        FakeResponse(payload={"charts": {"employments": []}}),
    )
    client = ScreenshotMonitorClient(verify_tls=True, session=session)
    assert client.fetch_worked_minutes("secret", START, END) == 0
    assert all(call["verify"] is True for call in session.calls)


@pytest.mark.parametrize(
    "response",
    [
        FakeResponse(status_code=401, payload={"error": "unauthorized"}),
        FakeResponse(status_code=500, payload=None),
        FakeResponse(payload={"employmentId": None}),
        FakeResponse(payload={"employmentId": 0}),
        FakeResponse(payload={}),
        FakeResponse(payload=["not", "a", "dict"]),
        FakeResponse(invalid_json=True),
        requests.Timeout("read timed out"),
        requests.ConnectionError("connection refused"),
    ],
)
def test_lookup_failures_raise_lookup_error(response) -> None:
    session = FakeSession(response)
    with pytest.raises(RemoteLookupError):
        _client(session).fetch_worked_minutes("secret", START, END)
    assert len(session.calls) == 1


@pytest.mark.parametrize(
    "response",
    [
        FakeResponse(status_code=404, payload={}),
        FakeResponse(invalid_json=True),
        requests.Timeout("read timed out"),
    ],
)
def test_report_failures_raise_report_error(response) -> None:
    session = FakeSession(FakeResponse(payload={"employmentId": 9}), response)
    with pytest.raises(RemoteReportError):
        _client(session).fetch_worked_minutes("secret", START, END)


def test_report_error_keeps_response() -> None:
    failed = FakeResponse(status_code=503, payload={})
    session = FakeSession(FakeResponse(payload={"employmentId": 9}), failed)
    with pytest.raises(RemoteReportError) as excinfo:
        _client(session).fetch_worked_minutes("secret", START, END)
    assert excinfo.value.response is failed


def test_malformed_records_count_as_zero() -> None:
    report = {
        "charts": {
            "employments": [
                {"Duration": 60},
                {"Duration": "30"},
                {"Duration": None},
                {"Duration": "n/a"},
                {"Duration": True},
                {"duration": 500},
                "garbage",
                None,
                {"Duration": 12.9},
            ]
        }
    }
    assert sum_report_minutes(report) == 102


@pytest.mark.parametrize(
    "report",
    [None, {}, {"charts": None}, {"charts": {}}, {"charts": {"employments": {"Duration": 5}}}],
)
def test_missing_collections_yield_zero(report) -> None:
    assert sum_report_minutes(report) == 0
