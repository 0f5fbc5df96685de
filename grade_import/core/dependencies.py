"""FastAPI dependency injection utilities."""

from typing import Annotated, Generator

from fastapi import Depends, Header, Path

from grade_import.clients.school_api import SchoolApiClient
from grade_import.services.submission import GradeSubmissionService


def get_school_client(
    school_id: Annotated[str, Path(min_length=1, description="School (tenant) ID")],
    authorization: Annotated[str | None, Header(description="Forwarded to the school backend")] = None,
    cookie: Annotated[str | None, Header(description="Forwarded to the school backend")] = None,
) -> Generator[SchoolApiClient, None, None]:
    """School backend client carrying the caller's credentials."""
    headers: dict[str, str] = {}
    if authorization:
        headers["Authorization"] = authorization
    if cookie:
        headers["Cookie"] = cookie

    client = SchoolApiClient(school_id=school_id, headers=headers)
    try:
        yield client
    finally:
        client.close()


def get_submission_service(
    client: Annotated[SchoolApiClient, Depends(get_school_client)],
) -> GradeSubmissionService:
    return GradeSubmissionService(client)


SchoolClient = Annotated[SchoolApiClient, Depends(get_school_client)]
SubmissionService = Annotated[GradeSubmissionService, Depends(get_submission_service)]
