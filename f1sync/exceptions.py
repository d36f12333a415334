"""
HTTP exceptions and the mapping from service errors to them
"""

from fastapi import HTTPException, status

from f1sync.services.errors import (
    SyncError,
    UpstreamError,
    ValidationError,
)


class BadRequestError(HTTPException):
    """Bad request exception"""

    def __init__(self, detail: str = "Invalid request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class ServiceUnavailableError(HTTPException):
    """Upstream unavailable exception"""

    def __init__(
        self, detail: str = "External API service unavailable or rate limited"
    ):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail
        )


class InternalServerError(HTTPException):
    """Internal error exception"""

    def __init__(self, detail: str = "Internal server error"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail
        )


def to_http_exception(error: Exception, operation: str) -> HTTPException:
    """Map a service error to 400 (validation), 503 (upstream) or 500."""
    if isinstance(error, ValidationError):
        return BadRequestError(str(error))
    if isinstance(error, UpstreamError):
        return ServiceUnavailableError()
    if isinstance(error, SyncError) and error.kind is not None:
        return ServiceUnavailableError()
    return InternalServerError(f"Failed to {operation}")
