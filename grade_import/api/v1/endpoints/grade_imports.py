"""Grade import endpoints."""

import logging
from io import BytesIO
from typing import Annotated, Literal

from fastapi import APIRouter, File, Form, Query, UploadFile
from fastapi.responses import StreamingResponse

from grade_import.core.config import settings
from grade_import.core.dependencies import SchoolClient, SubmissionService
from grade_import.core.exceptions import UploadError
from grade_import.schemas.common import ErrorResponse
from grade_import.schemas.grade_import import (
    GradeExportFilter,
    GradeImportPreview,
    GradeImportRequest,
    GradeImportResult,
    GradeType,
)
from grade_import.services.export import export_filename, fetch_grades, render_csv, render_xlsx
from grade_import.services.grade_parser import parse_grade_workbook

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}


@router.post("/preview", response_model=GradeImportPreview, responses=ERROR_RESPONSES)
def preview_grade_import(
    request: GradeImportRequest,
    service: SubmissionService,
):
    """
    Parse pasted grades and show the rows that would be submitted.

    Nothing is sent to the grade endpoints. Marks are rescaled when
    `scaleToMax` is set.
    """
    return service.preview(request)


@router.post("", response_model=GradeImportResult, responses=ERROR_RESPONSES)
def import_grades(
    request: GradeImportRequest,
    service: SubmissionService,
):
    """
    Import pasted grades as one batch.

    Input is one `studentId,marks[,comments]` row per line. Subject, section,
    term, academic year and the target (exam schedule, assignment or test
    label) are required. The backend's error message is returned unchanged
    when it rejects the batch.
    """
    return service.import_grades(request)


@router.post("/upload", response_model=GradeImportResult, responses=ERROR_RESPONSES)
def upload_grades(
    service: SubmissionService,
    grade_type: Annotated[GradeType, Form(alias="gradeType")],
    subject_id: Annotated[str | None, Form(alias="subjectId")] = None,
    section_id: Annotated[str | None, Form(alias="sectionId")] = None,
    term_id: Annotated[str | None, Form(alias="termId")] = None,
    academic_year_id: Annotated[str | None, Form(alias="academicYearId")] = None,
    exam_schedule_id: Annotated[str | None, Form(alias="examScheduleId")] = None,
    assignment_id: Annotated[str | None, Form(alias="assignmentId")] = None,
    label: Annotated[str | None, Form()] = None,
    max_marks: Annotated[float | None, Form(alias="maxMarks", gt=0)] = None,
    scale_to_max: Annotated[bool, Form(alias="scaleToMax")] = False,
    recompute_rankings: Annotated[bool, Form(alias="recomputeRankings")] = False,
    file: UploadFile = File(...),
):
    """
    Import grades from an Excel file.

    The first sheet needs a header row with a student id column and a marks
    column; a comments/remarks column is optional.
    """
    if not file.filename:
        raise UploadError("No file provided")

    if not any(file.filename.lower().endswith(ext) for ext in settings.ALLOWED_EXTENSIONS):
        raise UploadError(f"Only {', '.join(settings.ALLOWED_EXTENSIONS)} files are allowed")

    content = file.file.read()
    if len(content) > settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024:
        raise UploadError(f"File size exceeds {settings.MAX_UPLOAD_SIZE_MB}MB limit")

    logger.info(f"[GRADE UPLOAD] Received {file.filename} ({len(content)} bytes)")
    parsed = parse_grade_workbook(content)

    request = GradeImportRequest(
        grade_type=grade_type,
        subject_id=subject_id,
        section_id=section_id,
        term_id=term_id,
        academic_year_id=academic_year_id,
        exam_schedule_id=exam_schedule_id,
        assignment_id=assignment_id,
        label=label,
        max_marks=max_marks,
        scale_to_max=scale_to_max,
        recompute_rankings=recompute_rankings,
    )
    return service.import_grades(request, parsed=parsed)


@router.get("/export", responses=ERROR_RESPONSES)
def export_grades(
    client: SchoolClient,
    academic_year_id: Annotated[str | None, Query(alias="academicYearId")] = None,
    term_id: Annotated[str | None, Query(alias="termId")] = None,
    subject_id: Annotated[str | None, Query(alias="subjectId")] = None,
    section_id: Annotated[str | None, Query(alias="sectionId")] = None,
    grade_type: Annotated[GradeType | None, Query(alias="gradeType")] = None,
    exam_schedule_id: Annotated[str | None, Query(alias="examScheduleId")] = None,
    assignment_id: Annotated[str | None, Query(alias="assignmentId")] = None,
    label: Annotated[str | None, Query()] = None,
    student_id: Annotated[str | None, Query(alias="studentId")] = None,
    published_only: Annotated[bool, Query(alias="publishedOnly")] = False,
    take: Annotated[int | None, Query(ge=1)] = None,
    skip: Annotated[int, Query(ge=0)] = 0,
    export_format: Annotated[Literal["csv", "xlsx"], Query(alias="format")] = "csv",
):
    """
    Download grades as CSV (default) or Excel.

    Without `take`, every matching grade is exported.
    """
    filters = GradeExportFilter(
        academic_year_id=academic_year_id,
        term_id=term_id,
        subject_id=subject_id,
        section_id=section_id,
        grade_type=grade_type,
        exam_schedule_id=exam_schedule_id,
        assignment_id=assignment_id,
        label=label,
        student_id=student_id,
        published_only=published_only,
        take=take,
        skip=skip,
    )
    grades = fetch_grades(client, filters)
    filename = export_filename(export_format)

    if export_format == "xlsx":
        content = render_xlsx(grades)
        media_type = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    else:
        content = render_csv(grades).encode("utf-8")
        media_type = "text/csv; charset=utf-8"

    return StreamingResponse(
        BytesIO(content),
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
