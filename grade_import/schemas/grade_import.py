"""Grade import schemas."""

import enum
from typing import Any

from pydantic import Field

from grade_import.schemas.common import CamelSchema


# ==========================================
# Enums
# ==========================================

class GradeType(str, enum.Enum):
    """Grade category; picks the backend endpoint and target field."""

    EXAM = "exam"
    ASSIGNMENT = "assignment"
    TEST = "test"


class ImportState(str, enum.Enum):
    """Lifecycle of a single import."""

    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    ERROR = "error"


# Backend body key identifying the graded target
TARGET_FIELDS: dict[GradeType, str] = {
    GradeType.EXAM: "examScheduleId",
    GradeType.ASSIGNMENT: "assignmentId",
    GradeType.TEST: "label",
}


# ==========================================
# Grade Rows
# ==========================================

class GradeRow(CamelSchema):
    """One student's mark as sent to the backend."""

    student_id: str = Field(..., min_length=1)
    marks_obtained: float | None = None
    comments: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """Backend row body. Absent comments are left out, null marks are kept."""
        payload: dict[str, Any] = {
            "studentId": self.student_id,
            "marksObtained": self.marks_obtained,
        }
        if self.comments is not None:
            payload["comments"] = self.comments
        return payload


class ParsedGrades(CamelSchema):
    """Rows recovered from pasted text or a spreadsheet."""

    rows: list[GradeRow] = []
    total_lines: int = 0
    skipped_lines: int = 0


# ==========================================
# Import Context / Requests
# ==========================================

class ImportContext(CamelSchema):
    """Where an import lands: grade type, class scope and target."""

    grade_type: GradeType
    subject_id: str | None = None
    section_id: str | None = None
    term_id: str | None = None
    academic_year_id: str | None = None
    exam_schedule_id: str | None = None
    assignment_id: str | None = None
    label: str | None = None
    max_marks: float | None = Field(None, gt=0, description="Explicit maximum marks of the target")

    @property
    def target_field(self) -> str:
        return TARGET_FIELDS[self.grade_type]

    @property
    def target_id(self) -> str | None:
        if self.grade_type == GradeType.EXAM:
            return self.exam_schedule_id
        if self.grade_type == GradeType.ASSIGNMENT:
            return self.assignment_id
        return self.label

    def missing_fields(self) -> list[str]:
        """Names of required fields that are not filled in."""
        required = {
            "subjectId": self.subject_id,
            "sectionId": self.section_id,
            "termId": self.term_id,
            "academicYearId": self.academic_year_id,
            self.target_field: self.target_id,
        }
        return [name for name, value in required.items() if not value]


class GradeImportRequest(ImportContext):
    """Pasted grade text together with its import context."""

    text: str = Field("", description="Lines of studentId,marks[,comments]")
    scale_to_max: bool = False
    recompute_rankings: bool = False


# ==========================================
# Responses
# ==========================================

class GradeImportPreview(CamelSchema):
    """Parsed and rescaled rows, nothing submitted."""

    rows: list[GradeRow]
    total_lines: int
    skipped_lines: int
    target_max: float
    scaled: bool


class GradeImportResult(CamelSchema):
    """Outcome of a submitted import."""

    state: ImportState
    history: list[ImportState] = []
    message: str
    submitted_rows: int
    skipped_lines: int = 0
    target_max: float
    scaled: bool = False
    grades: list[dict[str, Any]] = []
    total_grades: int = 0
    rankings_count: int | None = None
    warnings: list[str] = []


class GradeExportFilter(CamelSchema):
    """Filters for the grade list export."""

    academic_year_id: str | None = None
    term_id: str | None = None
    subject_id: str | None = None
    section_id: str | None = None
    grade_type: GradeType | None = None
    exam_schedule_id: str | None = None
    assignment_id: str | None = None
    label: str | None = None
    student_id: str | None = None
    published_only: bool = False
    take: int | None = Field(None, ge=1)
    skip: int = Field(0, ge=0)

    def to_query(self) -> dict[str, str]:
        """Query string for the backend grade list."""
        query: dict[str, str] = {}
        for key, value in (
            ("academicYearId", self.academic_year_id),
            ("termId", self.term_id),
            ("subjectId", self.subject_id),
            ("sectionId", self.section_id),
        ):
            if value:
                query[key] = value
        if self.grade_type == GradeType.EXAM and self.exam_schedule_id:
            query["examScheduleId"] = self.exam_schedule_id
        if self.grade_type == GradeType.ASSIGNMENT and self.assignment_id:
            query["assignmentId"] = self.assignment_id
        if self.grade_type == GradeType.TEST and self.label:
            query["label"] = self.label
        if self.student_id:
            query["studentId"] = self.student_id
        if self.published_only:
            query["publishedOnly"] = "1"
        if self.take is not None:
            query["take"] = str(self.take)
        query["skip"] = str(self.skip)
        return query

    @classmethod
    def for_context(cls, context: ImportContext, take: int | None = None) -> "GradeExportFilter":
        """Filter matching the grades an import just wrote."""
        return cls(
            academic_year_id=context.academic_year_id,
            term_id=context.term_id,
            subject_id=context.subject_id,
            section_id=context.section_id,
            grade_type=context.grade_type,
            exam_schedule_id=context.exam_schedule_id,
            assignment_id=context.assignment_id,
            label=context.label,
            take=take,
        )
