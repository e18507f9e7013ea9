"""
Dispatch error taxonomy.

All errors are recoverable at the call site: the API layer turns them into
HTTP responses and clients may retry.
"""


class DispatchError(Exception):
    """Base class for every error raised by the dispatch core."""

    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(DispatchError):
    """Unknown driver or order id."""

    status_code = 404


class InvalidTransition(DispatchError):
    """Order lifecycle violated (e.g. delivering a PENDING order)."""

    status_code = 409


class ConflictingState(DispatchError):
    """Driver unavailable, lost assignment race, or preconditions unmet."""

    status_code = 409


class UpstreamUnavailable(DispatchError):
    """An external collaborator (geocoding) failed or returned garbage."""

    status_code = 503
