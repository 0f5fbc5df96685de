"""Grade row parsing from pasted text and Excel workbooks.

Bulk input is forgiving: malformed rows are coerced or dropped, never
rejected. A row survives as long as it names a student; unreadable marks
become null.
"""

import logging
import math
import re
from io import BytesIO
from typing import Any

from openpyxl import load_workbook

from grade_import.core.exceptions import UploadError
from grade_import.schemas.grade_import import GradeRow, ParsedGrades

logger = logging.getLogger(__name__)

# Leading decimal number; any trailing text ("50%", "45 /50") is ignored
LEADING_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

LINE_BREAK = re.compile(r"\r?\n")

STUDENT_ID_HEADERS = {"student id", "student_id", "studentid"}


def parse_marks(raw: Any) -> float | None:
    """Coerce a raw marks value to a finite float, or None."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        match = LEADING_NUMBER.match(str(raw).strip())
        if match is None:
            return None
        value = float(match.group())
    return value if math.isfinite(value) else None


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        # Numeric ids typed into a sheet come back as floats
        return str(int(value))
    return str(value).strip()


def build_row(student_id: Any, marks: Any, comments: Any = None) -> GradeRow | None:
    """Build a grade row, or None when the student id is empty."""
    student = _cell_text(student_id)
    if not student:
        return None
    comment = _cell_text(comments) or None
    return GradeRow(
        student_id=student,
        marks_obtained=parse_marks(marks),
        comments=comment,
    )


def parse_grade_text(text: str | None) -> ParsedGrades:
    """Parse ``studentId,marks[,comments]`` lines.

    Each line is split on its first two commas so comments may contain
    commas. Blank lines are ignored; lines with an empty student id are
    dropped and counted as skipped.
    """
    rows: list[GradeRow] = []
    total = 0
    skipped = 0

    for line in LINE_BREAK.split(text or ""):
        if not line.strip():
            continue
        total += 1
        parts = line.split(",", 2)
        student_id = parts[0]
        marks = parts[1] if len(parts) > 1 else ""
        comments = parts[2] if len(parts) > 2 else None

        row = build_row(student_id, marks, comments)
        if row is None:
            skipped += 1
            logger.debug(f"[GRADE PARSE] Line dropped (empty student id): {line!r}")
            continue
        rows.append(row)

    logger.info(f"[GRADE PARSE] Parsed {len(rows)} rows from {total} lines, {skipped} dropped")
    return ParsedGrades(rows=rows, total_lines=total, skipped_lines=skipped)


def _find_columns(headers: list[str]) -> dict[str, int | None]:
    col_map: dict[str, int | None] = {
        "student_id": None,
        "marks": None,
        "comments": None,
    }
    for idx, header in enumerate(headers):
        if header in STUDENT_ID_HEADERS:
            if col_map["student_id"] is None:
                col_map["student_id"] = idx
        # "remarks" contains "mark", so comments are matched first
        elif "comment" in header or "remark" in header:
            if col_map["comments"] is None:
                col_map["comments"] = idx
        elif "mark" in header and "max" not in header:
            if col_map["marks"] is None:
                col_map["marks"] = idx
    return col_map


def parse_grade_workbook(file_content: bytes) -> ParsedGrades:
    """Parse the active sheet of an Excel workbook.

    The first row holds headers; the student id, marks and comments columns
    are found by name. Data rows go through the same coercions as pasted
    text.
    """
    try:
        workbook = load_workbook(filename=BytesIO(file_content), read_only=True, data_only=True)
    except Exception as e:
        raise UploadError(f"Failed to parse Excel file: {str(e)}")

    try:
        sheet = workbook.active
        if sheet is None:
            raise UploadError("Excel file has no active sheet")

        raw_rows = list(sheet.iter_rows(values_only=True))
    finally:
        workbook.close()

    if len(raw_rows) < 2:
        raise UploadError("Excel file must have a header row and at least one data row")

    headers = [str(h).strip().lower() if h is not None else "" for h in raw_rows[0]]
    col_map = _find_columns(headers)
    logger.debug(f"[EXCEL PARSE] Headers: {headers}, column mapping: {col_map}")

    missing = [name for name in ("student_id", "marks") if col_map[name] is None]
    if missing:
        raise UploadError(
            "Excel file is missing required columns",
            details={"missing_columns": missing, "headers": headers},
        )

    def cell(row: tuple, key: str) -> Any:
        idx = col_map[key]
        if idx is None or idx >= len(row):
            return None
        return row[idx]

    rows: list[GradeRow] = []
    total = 0
    skipped = 0
    for row_num, raw in enumerate(raw_rows[1:], start=2):
        if not any(v not in (None, "") for v in raw):
            continue
        total += 1
        row = build_row(cell(raw, "student_id"), cell(raw, "marks"), cell(raw, "comments"))
        if row is None:
            skipped += 1
            logger.debug(f"[EXCEL PARSE] Row {row_num} dropped (empty student id)")
            continue
        rows.append(row)

    logger.info(f"[EXCEL PARSE] Parsed {len(rows)} rows from {total} data rows, {skipped} dropped")
    return ParsedGrades(rows=rows, total_lines=total, skipped_lines=skipped)
