"""Exception hierarchy shared by the store, the service adapters and the orchestrators.

Store faults:
    StorageError          any database failure other than a uniqueness violation
    DuplicateRecordError  a uniqueness constraint rejected an insert

Service faults (raised by adapters, caught per item by orchestrators):
    NotFoundError          the requested project/place/deployment does not exist
    TransientServiceError  rate limited, timed out or 5xx; safe to retry
    PermanentServiceError  bad credential or malformed request; never retried
"""

from typing import Optional


class LocalBizError(Exception):
    """Base exception for the localbiz package."""

    pass


class StorageError(LocalBizError):
    """Raised when a store operation fails."""

    pass


class DuplicateRecordError(StorageError):
    """Raised when an insert violates a uniqueness constraint."""

    pass


class NotFoundError(LocalBizError):
    """Raised when a stored record or remote resource does not exist.

    Attributes:
        status_code: HTTP status code when raised by an adapter.
        operation: Name of the operation that looked the resource up.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        operation: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.operation = operation


class ServiceError(LocalBizError):
    """Base exception for external service failures.

    Attributes:
        status_code: HTTP status code returned by the service, if any.
        operation: Name of the adapter operation that failed.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        operation: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.operation = operation


class TransientServiceError(ServiceError):
    """Raised for rate limits, timeouts and 5xx responses."""

    pass


class PermanentServiceError(ServiceError):
    """Raised for authentication failures and malformed requests."""

    pass


TRANSIENT_STATUS_CODES = frozenset({408, 425, 429, 500, 502, 503, 504})


def classify_http_error(
    status_code: Optional[int],
    message: str,
    operation: Optional[str] = None,
) -> LocalBizError:
    """Map an HTTP status code to the matching service exception.

    Args:
        status_code: HTTP status code, or None when no response was received.
        message: Error message reported by the service.
        operation: Adapter operation name for diagnostics.

    Returns:
        An unraised NotFoundError or ServiceError subclass instance.
    """
    text = f"{operation} failed: {status_code} - {message}" if operation else message

    if status_code is None or status_code in TRANSIENT_STATUS_CODES:
        return TransientServiceError(text, status_code=status_code, operation=operation)
    if status_code == 404:
        return NotFoundError(text, status_code=status_code, operation=operation)
    return PermanentServiceError(text, status_code=status_code, operation=operation)
