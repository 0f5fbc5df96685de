"""Request and response schemas."""

from grade_import.schemas.common import BaseSchema, CamelSchema, ErrorDetail, ErrorResponse
from grade_import.schemas.grade_import import (
    TARGET_FIELDS,
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

__all__ = [
    # Common
    "BaseSchema",
    "CamelSchema",
    "ErrorDetail",
    "ErrorResponse",
    # Grade import
    "TARGET_FIELDS",
    "GradeExportFilter",
    "GradeImportPreview",
    "GradeImportRequest",
    "GradeImportResult",
    "GradeRow",
    "GradeType",
    "ImportContext",
    "ImportState",
    "ParsedGrades",
]
