"""Custom exception classes and error handling."""

from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(
            status_code=status_code,
            detail={
                "success": False,
                "error": {
                    "code": code,
                    "message": message,
                    "details": details or {},
                },
            },
        )


class ValidationError(AppException):
    """Data validation failed."""

    def __init__(
        self,
        message: str = "Validation error",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            code="VALIDATION_ERROR",
            message=message,
            details=details,
        )


class MissingContextError(ValidationError):
    """Import context lacks fields required before submission."""

    def __init__(self, missing: list[str]):
        super().__init__(
            message=f"Select {', '.join(missing)} before importing grades",
            details={"missing": missing},
        )
        self.missing = missing


class EmptyImportError(ValidationError):
    """Nothing left to submit after parsing."""

    def __init__(self, message: str = "No valid grade rows to submit"):
        super().__init__(message=message)


class UploadError(AppException):
    """File upload failed."""

    def __init__(
        self,
        message: str = "Upload failed",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            code="UPLOAD_FAILED",
            message=message,
            details=details,
        )


class UpstreamError(AppException):
    """The school backend rejected a request.

    The backend's own message is passed through unchanged. Client errors keep
    their status code; backend failures are reported as a bad gateway.
    """

    def __init__(
        self,
        upstream_status: int,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        self.upstream_status = upstream_status
        status_code = (
            upstream_status
            if 400 <= upstream_status < 500
            else status.HTTP_502_BAD_GATEWAY
        )
        super().__init__(
            status_code=status_code,
            code="UPSTREAM_ERROR",
            message=message,
            details={"upstream_status": upstream_status, **(details or {})},
        )


class UpstreamUnavailableError(AppException):
    """The school backend could not be reached."""

    def __init__(self, message: str = "School backend is unavailable"):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            code="UPSTREAM_UNAVAILABLE",
            message=message,
        )


class InvalidStateTransition(Exception):
    """Import state machine was asked to make an illegal move."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move import from '{current}' to '{target}'")
