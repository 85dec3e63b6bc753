"""Translation of IAM domain errors into HTTP errors.

Each taxonomy base class maps to one status code. Routes catch
``IAMError`` and re-raise the translated ``HTTPException``.
"""

from __future__ import annotations

from fastapi import HTTPException, status

from iam.ports.exceptions import (
    ConflictError,
    IAMError,
    NotFoundError,
    PermissionDeniedError,
    UnauthorizedError,
    UnprocessableError,
    UpstreamFailureError,
    UpstreamTimeoutError,
)

_STATUS_BY_ERROR: tuple[tuple[type[IAMError], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_400_BAD_REQUEST),
    (UnprocessableError, status.HTTP_422_UNPROCESSABLE_CONTENT),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (UnauthorizedError, status.HTTP_401_UNAUTHORIZED),
    # Timeout before its parent class: it is the retryable case.
    (UpstreamTimeoutError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (UpstreamFailureError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def status_for(error: IAMError) -> int:
    """HTTP status code for a domain error."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def to_http_exception(error: IAMError) -> HTTPException:
    """Build the HTTPException for a domain error.

    Upstream failures keep their details in the logs and answer with a
    generic message.
    """
    status_code = status_for(error)
    if isinstance(error, UpstreamFailureError):
        detail = "Upstream service unavailable"
    else:
        detail = str(error) or error.__class__.__name__

    headers = None
    if status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return HTTPException(status_code=status_code, detail=detail, headers=headers)
