"""REST client for the school-management backend.

All routes are scoped to one school: ``/api/schools/{school_id}/...``.
The caller's credentials (bearer token and/or session cookie) are forwarded
unchanged; this client never authenticates on its own.
"""

import logging
from typing import Any

import requests

from grade_import.core.config import settings
from grade_import.core.exceptions import UpstreamError, UpstreamUnavailableError
from grade_import.schemas.grade_import import GradeType

logger = logging.getLogger(__name__)

GRADE_SUBMIT_PATHS: dict[GradeType, str] = {
    GradeType.EXAM: "/academics/grades/exams",
    GradeType.ASSIGNMENT: "/academics/grades/assignments",
    GradeType.TEST: "/academics/grades/tests",
}


class SchoolApiClient:
    """Thin wrapper around a ``requests.Session`` for one school."""

    def __init__(
        self,
        school_id: str,
        base_url: str | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ):
        self.school_id = school_id
        self.base_url = (base_url or settings.school_api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.SCHOOL_API_TIMEOUT_SECONDS
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if headers:
            self.session.headers.update(headers)

    def __enter__(self) -> "SchoolApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    def url(self, path: str) -> str:
        return f"{self.base_url}/api/schools/{self.school_id}{path}"

    def _request(
        self,
        method: str,
        path: str,
        fallback_error: str,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Send one request and return the decoded JSON body.

        Non-2xx responses raise ``UpstreamError`` carrying the backend's
        ``error`` message as-is. No retries are attempted.
        """
        url = self.url(path)
        logger.debug(f"[SCHOOL API] {method} {url} params={params}")
        try:
            response = self.session.request(
                method,
                url,
                json=json,
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"[SCHOOL API] {method} {url} failed: {e}")
            raise UpstreamUnavailableError(f"School backend is unavailable: {e}")

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {"data": body}

        if not response.ok:
            message = body.get("error") or fallback_error
            details = {"issues": body["issues"]} if body.get("issues") else None
            logger.warning(f"[SCHOOL API] {method} {url} -> {response.status_code}: {message}")
            raise UpstreamError(response.status_code, message, details=details)

        logger.debug(f"[SCHOOL API] {method} {url} -> {response.status_code}")
        return body

    # ==========================================
    # Grades
    # ==========================================

    def submit_grades(self, grade_type: GradeType, payload: dict[str, Any]) -> dict[str, Any]:
        """Batch upsert grades for one target."""
        return self._request(
            "POST",
            GRADE_SUBMIT_PATHS[grade_type],
            fallback_error=f"Failed to save {grade_type.value} grades",
            json=payload,
        )

    def list_grades(self, query: dict[str, str]) -> dict[str, Any]:
        """Grade list ``{items, total}`` for the given filters."""
        return self._request(
            "GET",
            "/academics/grades",
            fallback_error="Failed to load grades",
            params=query,
        )

    def recompute_rankings(
        self,
        section_id: str,
        term_id: str,
        academic_year_id: str,
        publish: bool = False,
    ) -> dict[str, Any]:
        return self._request(
            "POST",
            "/academics/rankings/recompute",
            fallback_error="Ranking failed",
            json={
                "sectionId": section_id,
                "termId": term_id,
                "academicYearId": academic_year_id,
                "publish": publish,
            },
        )

    # ==========================================
    # Targets
    # ==========================================

    def get_assignment(self, assignment_id: str) -> dict[str, Any]:
        body = self._request(
            "GET",
            f"/academics/assignments/{assignment_id}",
            fallback_error="Failed to load assignment",
        )
        return body.get("assignment") or {}

    def get_exam_schedule(self, schedule_id: str) -> dict[str, Any]:
        body = self._request(
            "GET",
            f"/academics/exam-schedules/{schedule_id}",
            fallback_error="Failed to load exam schedule",
        )
        return body.get("schedule") or {}
