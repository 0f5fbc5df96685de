"""Grade import submission: validation, rescaling and batch dispatch."""

import logging
from typing import Any

from grade_import.clients.school_api import SchoolApiClient
from grade_import.core.config import settings
from grade_import.core.exceptions import (
    AppException,
    EmptyImportError,
    InvalidStateTransition,
    MissingContextError,
)
from grade_import.schemas.grade_import import (
    GradeExportFilter,
    GradeImportPreview,
    GradeImportRequest,
    GradeImportResult,
    GradeRow,
    GradeType,
    ImportContext,
    ImportState,
    ParsedGrades,
)
from grade_import.services.grade_parser import parse_grade_text
from grade_import.services.rescaler import rescale_rows, resolve_target_max

logger = logging.getLogger(__name__)


def _to_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class ImportStateMachine:
    """Tracks one import through idle -> validating -> submitting -> success|error -> idle."""

    TRANSITIONS: dict[ImportState, set[ImportState]] = {
        ImportState.IDLE: {ImportState.VALIDATING},
        ImportState.VALIDATING: {ImportState.SUBMITTING, ImportState.ERROR},
        ImportState.SUBMITTING: {ImportState.SUCCESS, ImportState.ERROR},
        ImportState.SUCCESS: {ImportState.IDLE},
        ImportState.ERROR: {ImportState.IDLE},
    }

    def __init__(self):
        self.current = ImportState.IDLE
        self.history: list[ImportState] = [ImportState.IDLE]

    def transition(self, target: ImportState) -> None:
        if target not in self.TRANSITIONS[self.current]:
            raise InvalidStateTransition(self.current.value, target.value)
        self.current = target
        self.history.append(target)

    @property
    def busy(self) -> bool:
        return self.current in (ImportState.VALIDATING, ImportState.SUBMITTING)


def build_submission_payload(context: ImportContext, rows: list[GradeRow]) -> dict[str, Any]:
    """Backend body for a batch upsert, keyed by the grade type's target field."""
    return {
        "grades": [row.to_payload() for row in rows],
        "subjectId": context.subject_id,
        "sectionId": context.section_id,
        "termId": context.term_id,
        "academicYearId": context.academic_year_id,
        context.target_field: context.target_id,
    }


class GradeSubmissionService:
    """Runs grade imports against one school's backend."""

    def __init__(self, client: SchoolApiClient):
        self.client = client
        self.state = ImportStateMachine()

    # ==========================================
    # Target max
    # ==========================================

    def _remote_max_marks(self, context: ImportContext) -> float | None:
        """Max marks of the target as recorded by the backend, if it can tell."""
        try:
            if context.grade_type == GradeType.ASSIGNMENT and context.assignment_id:
                target = self.client.get_assignment(context.assignment_id)
            elif context.grade_type == GradeType.EXAM and context.exam_schedule_id:
                target = self.client.get_exam_schedule(context.exam_schedule_id)
            else:
                return None
        except AppException as e:
            logger.warning(f"[GRADE IMPORT] Could not load target max marks: {e.message}")
            return None

        if not isinstance(target, dict):
            logger.warning(f"[GRADE IMPORT] Unexpected target body: {target!r}")
            return None

        value = target.get("maxMarks")
        try:
            return float(value) if value is not None else None
        except (TypeError, ValueError):
            return None

    def resolve_target_max(self, context: ImportContext, scale_to_max: bool) -> float:
        """Explicit max on the context wins; the backend is only asked when scaling."""
        remote = None
        if context.max_marks is None and scale_to_max:
            remote = self._remote_max_marks(context)
        return resolve_target_max(context.max_marks, remote, settings.DEFAULT_TARGET_MAX)

    # ==========================================
    # Preview
    # ==========================================

    def preview(
        self,
        request: GradeImportRequest,
        parsed: ParsedGrades | None = None,
    ) -> GradeImportPreview:
        """Parse and rescale without submitting anything."""
        parsed = parsed if parsed is not None else parse_grade_text(request.text)
        target_max = self.resolve_target_max(request, request.scale_to_max)
        rows = rescale_rows(parsed.rows, target_max, request.scale_to_max)
        return GradeImportPreview(
            rows=rows,
            total_lines=parsed.total_lines,
            skipped_lines=parsed.skipped_lines,
            target_max=target_max,
            scaled=request.scale_to_max,
        )

    # ==========================================
    # Submission
    # ==========================================

    def import_grades(
        self,
        request: GradeImportRequest,
        parsed: ParsedGrades | None = None,
    ) -> GradeImportResult:
        """Validate, rescale and submit one batch.

        Missing context or an empty row set stop the import before any
        network call. A rejected submission is not retried; the backend's
        error is raised to the caller.
        """
        self.state = ImportStateMachine()
        self.state.transition(ImportState.VALIDATING)

        try:
            parsed = parsed if parsed is not None else parse_grade_text(request.text)
            missing = request.missing_fields()
            if missing:
                raise MissingContextError(missing)
            if not parsed.rows:
                raise EmptyImportError()

            target_max = self.resolve_target_max(request, request.scale_to_max)
            rows = rescale_rows(parsed.rows, target_max, request.scale_to_max)
            payload = build_submission_payload(request, rows)

            self.state.transition(ImportState.SUBMITTING)
            logger.info(
                f"[GRADE IMPORT] Submitting {len(rows)} {request.grade_type.value} grades "
                f"for {request.target_field}={request.target_id}, school={self.client.school_id}"
            )
            body = self.client.submit_grades(request.grade_type, payload)
        except AppException as e:
            logger.warning(f"[GRADE IMPORT] Import failed: {e.message}")
            self._fail()
            raise
        except Exception:
            logger.exception("[GRADE IMPORT] Import failed unexpectedly")
            self._fail()
            raise

        self.state.transition(ImportState.SUCCESS)
        message = body.get("message") or f"{request.grade_type.value.capitalize()} grades saved"
        warnings: list[str] = []

        rankings_count = None
        if request.recompute_rankings:
            rankings_count = self._recompute_rankings(request, warnings)

        grades, total = self._refresh_grades(request, warnings)
        logger.info(f"[GRADE IMPORT] Import complete - {len(rows)} rows submitted: {message}")

        self.state.transition(ImportState.IDLE)
        return GradeImportResult(
            state=ImportState.SUCCESS,
            history=list(self.state.history),
            message=message,
            submitted_rows=len(rows),
            skipped_lines=parsed.skipped_lines,
            target_max=target_max,
            scaled=request.scale_to_max,
            grades=grades,
            total_grades=total,
            rankings_count=rankings_count,
            warnings=warnings,
        )

    def _fail(self) -> None:
        self.state.transition(ImportState.ERROR)
        self.state.transition(ImportState.IDLE)

    def _refresh_grades(
        self,
        context: ImportContext,
        warnings: list[str],
    ) -> tuple[list[dict[str, Any]], int]:
        """Reload the grade list for the import's target after a save."""
        query = GradeExportFilter.for_context(context, take=settings.EXPORT_PAGE_SIZE).to_query()
        try:
            body = self.client.list_grades(query)
        except AppException as e:
            logger.warning(f"[GRADE IMPORT] Grade refresh failed: {e.message}")
            warnings.append(f"Grades saved but the list could not be refreshed: {e.message}")
            return [], 0
        items = body.get("items") or []
        total = _to_int(body.get("total"))
        return items, total if total is not None else len(items)

    def _recompute_rankings(self, context: ImportContext, warnings: list[str]) -> int | None:
        try:
            body = self.client.recompute_rankings(
                section_id=context.section_id,
                term_id=context.term_id,
                academic_year_id=context.academic_year_id,
                publish=False,
            )
        except AppException as e:
            logger.warning(f"[GRADE IMPORT] Ranking recompute skipped: {e.message}")
            warnings.append(f"Ranking recompute skipped: {e.message}")
            return None
        count = body.get("count")
        if count is None:
            return None
        ranked = _to_int(count)
        if ranked is None:
            logger.warning(f"[GRADE IMPORT] Unexpected ranking count: {count!r}")
            warnings.append(f"Ranking recompute returned an unreadable count: {count!r}")
        return ranked
