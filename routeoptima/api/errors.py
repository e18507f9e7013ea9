"""Translation of dispatch errors into HTTP errors."""

from fastapi import HTTPException

from routeoptima.core.errors import DispatchError


def http_error(exc: DispatchError) -> HTTPException:
    """
    Map a dispatch error to the HTTPException the endpoint should raise.

    The detail names the error kind so clients can tell a lifecycle violation
    (InvalidTransition) from a lost race (ConflictingState); both are 409.
    """
    return HTTPException(
        status_code=exc.status_code,
        detail={"error": type(exc).__name__, "message": exc.message},
    )
