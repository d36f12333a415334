"""
Service layer exceptions.
"""

from enum import Enum


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, service_id: str | None = None):
        self.service_id = service_id
        super().__init__(message)


class ValidationError(ServiceError):
    """Malformed year, driver or race data."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class UpstreamErrorKind(str, Enum):
    """Failure kinds produced by the upstream gateway."""

    RATE_LIMITED = "RATE_LIMITED"
    TIMEOUT = "TIMEOUT"
    NETWORK = "NETWORK"
    HTTP_STATUS = "HTTP_STATUS"
    UNKNOWN = "UNKNOWN"


class UpstreamError(ServiceError):
    """Upstream API call failed."""

    def __init__(
        self,
        kind: UpstreamErrorKind,
        operation: str,
        year: int,
        detail: str = "",
        status_code: int | None = None,
        service_id: str | None = None,
    ):
        self.kind = kind
        self.operation = operation
        self.year = year
        self.status_code = status_code
        msg = f"{operation} for {year} failed ({kind.value}"
        if status_code is not None:
            msg += f", HTTP {status_code}"
        msg += ")"
        if detail:
            msg += f": {detail}"
        super().__init__(msg, service_id=service_id)


class SyncError(ServiceError):
    """A whole reconciliation run failed and produced nothing usable."""

    def __init__(self, year: int, cause: Exception, subject: str = "data"):
        self.year = year
        self.cause = cause
        super().__init__(f"Failed to fetch {subject} for {year}: {cause}")

    @property
    def kind(self) -> UpstreamErrorKind | None:
        if isinstance(self.cause, UpstreamError):
            return self.cause.kind
        return None


class CacheError(ServiceError):
    """Cache operation failed."""

    pass


class PersistenceError(ServiceError):
    """Relational store operation failed."""

    pass
