"""Grade list export to CSV and Excel."""

import csv
import logging
from datetime import datetime, timezone
from io import BytesIO, StringIO
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from grade_import.clients.school_api import SchoolApiClient
from grade_import.core.config import settings
from grade_import.schemas.grade_import import GradeExportFilter

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    "id",
    "studentId",
    "studentName",
    "subject",
    "class",
    "section",
    "examName",
    "assignmentId",
    "marksObtained",
    "comments",
    "isPublished",
    "updatedAt",
]


def _name(obj: Any) -> str:
    return (obj or {}).get("name") or ""


def grade_to_row(grade: dict[str, Any]) -> list[str]:
    """Flatten one backend grade record into export columns."""
    student = grade.get("student") or {}
    section = grade.get("section") or {}
    exam = (grade.get("examSchedule") or {}).get("exam")
    marks = grade.get("marksObtained")
    student_name = f"{student.get('lastName') or ''} {student.get('firstName') or ''}".strip()

    return [
        str(grade.get("id") or ""),
        str(student.get("id") or ""),
        student_name,
        _name(grade.get("subject")),
        _name(section.get("class")),
        _name(section),
        _name(exam),
        str(grade.get("assignmentId") or ""),
        "" if marks is None else str(marks),
        str(grade.get("comments") or ""),
        "1" if grade.get("isPublished") else "0",
        str(grade.get("updatedAt") or ""),
    ]


def fetch_grades(client: SchoolApiClient, filters: GradeExportFilter) -> list[dict[str, Any]]:
    """Load the grades to export.

    An explicit ``take`` fetches that single page; otherwise every page is
    collected.
    """
    if filters.take is not None:
        return client.list_grades(filters.to_query()).get("items") or []

    page_size = settings.EXPORT_PAGE_SIZE
    skip = filters.skip
    grades: list[dict[str, Any]] = []
    while True:
        page_filter = filters.model_copy(update={"take": page_size, "skip": skip})
        body = client.list_grades(page_filter.to_query())
        items = body.get("items") or []
        grades.extend(items)
        skip += len(items)
        if not items or len(items) < page_size:
            break
        # Without a total, only a short or empty page ends the export
        total = body.get("total")
        if isinstance(total, (int, float)) and not isinstance(total, bool) and skip >= total:
            break

    logger.info(f"[GRADE EXPORT] Loaded {len(grades)} grades for export")
    return grades


def render_csv(grades: list[dict[str, Any]]) -> str:
    """CSV text; fields with commas, quotes or newlines are quoted."""
    output = StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for grade in grades:
        writer.writerow(grade_to_row(grade))
    return output.getvalue()


def render_xlsx(grades: list[dict[str, Any]]) -> bytes:
    """Excel workbook with a styled header row."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Grades"

    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
    thin_border = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )
    center_align = Alignment(horizontal='center', vertical='center')

    for col_idx, header in enumerate(EXPORT_COLUMNS, start=1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.font = header_font
        cell.fill = header_fill
        cell.border = thin_border
        cell.alignment = center_align

    marks_col = EXPORT_COLUMNS.index("marksObtained")
    for row_idx, grade in enumerate(grades, start=2):
        for col_idx, value in enumerate(grade_to_row(grade)):
            if col_idx == marks_col and grade.get("marksObtained") is not None:
                value = grade["marksObtained"]
            ws.cell(row=row_idx, column=col_idx + 1, value=value).border = thin_border

    for col_idx, header in enumerate(EXPORT_COLUMNS, start=1):
        ws.column_dimensions[get_column_letter(col_idx)].width = max(12, len(header) + 4)

    output = BytesIO()
    wb.save(output)
    return output.getvalue()


def export_filename(extension: str, now: datetime | None = None) -> str:
    """``grades_export_YYYY-MM-DD-HH-MM-SS.<ext>`` in UTC."""
    now = now or datetime.now(timezone.utc)
    return f"grades_export_{now.strftime('%Y-%m-%d-%H-%M-%S')}.{extension}"
