"""Shared fixtures: a school backend faked at the requests.Session level."""

from io import BytesIO
from unittest.mock import MagicMock

import pytest
from openpyxl import Workbook

from grade_import.clients.school_api import SchoolApiClient

BACKEND_URL = "http://backend.test"
SCHOOL_ID = "school-1"


def make_response(status_code: int = 200, body=None, json_error: bool = False) -> MagicMock:
    """Mimic the parts of requests.Response the client reads."""
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    if json_error:
        response.json.side_effect = ValueError("No JSON")
    else:
        response.json.return_value = body if body is not None else {}
    return response


class FakeBackend:
    """Routes ``session.request`` calls to canned responses by (method, path)."""

    def __init__(self):
        self.routes: dict[tuple[str, str], MagicMock] = {}
        self.calls: list[dict] = []

    def on(self, method: str, path: str, status_code: int = 200, body=None, **kwargs) -> None:
        url = f"{BACKEND_URL}/api/schools/{SCHOOL_ID}{path}"
        self.routes[(method, url)] = make_response(status_code, body, **kwargs)

    def __call__(self, method, url, json=None, params=None, timeout=None):
        self.calls.append({"method": method, "url": url, "json": json, "params": params, "timeout": timeout})
        try:
            return self.routes[(method, url)]
        except KeyError:
            return make_response(404, {"error": f"No route for {method} {url}"})

    def calls_to(self, path: str) -> list[dict]:
        url = f"{BACKEND_URL}/api/schools/{SCHOOL_ID}{path}"
        return [c for c in self.calls if c["url"] == url]


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def mock_session(backend):
    session = MagicMock()
    session.headers = {}
    session.request.side_effect = backend
    return session


@pytest.fixture
def school_client(mock_session):
    return SchoolApiClient(SCHOOL_ID, base_url=BACKEND_URL, session=mock_session)


@pytest.fixture
def make_workbook():
    """Build an .xlsx file in memory from a header row and data rows."""

    def _make(headers, rows) -> bytes:
        wb = Workbook()
        ws = wb.active
        ws.append(headers)
        for row in rows:
            ws.append(row)
        output = BytesIO()
        wb.save(output)
        return output.getvalue()

    return _make
