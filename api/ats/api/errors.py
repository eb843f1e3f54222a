from fastapi import HTTPException, status as http_status

from ats.services.errors import (
    ATSError,
    InvalidTransitionError,
    NotAuthorizedError,
    NotPublishableError,
    RecordNotFoundError,
    UsageGuardViolationError,
)
from ats.services.repository import (
    RepositoryConflictError,
    RepositoryError,
    RepositoryNotFoundError,
    RepositoryUnavailableError,
    RepositoryValidationError,
)


def http_error(exc: ATSError | RepositoryError) -> HTTPException:
    if isinstance(exc, RepositoryUnavailableError):
        return HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    if isinstance(exc, (RecordNotFoundError, RepositoryNotFoundError)):
        return HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, NotAuthorizedError):
        return HTTPException(status_code=http_status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, NotPublishableError):
        return HTTPException(
            status_code=422,
            detail={"message": str(exc), "missing_fields": exc.missing_fields},
        )
    if isinstance(exc, (InvalidTransitionError, UsageGuardViolationError, RepositoryConflictError)):
        return HTTPException(status_code=http_status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, RepositoryValidationError):
        return HTTPException(status_code=422, detail=str(exc))
    return HTTPException(status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
