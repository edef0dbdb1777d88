"""Translation of pipeline errors into HTTP responses."""

from __future__ import annotations

from fastapi import HTTPException, status

from ..errors import IngestionError, NotFound, QueueFinderError, RateLimited, RemoteError, ValidationError


def to_http_exception(exc: QueueFinderError) -> HTTPException:
    if isinstance(exc, ValidationError):
        code = 422
    elif isinstance(exc, NotFound):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, RateLimited):
        code = status.HTTP_429_TOO_MANY_REQUESTS
    elif isinstance(exc, (RemoteError, IngestionError)):
        code = status.HTTP_502_BAD_GATEWAY
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail={"message": exc.user_message, "error": str(exc)})
