"""
Error taxonomy raised by the service layer.

Services never raise HTTPException directly; they raise one of these and the
handler registered in readtrack.main renders it as {"kind": ..., "detail": ...}.
"""
from fastapi import status


class ReadTrackError(Exception):
    """Base class for deterministic, caller-visible failures."""

    kind = "error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str = ""):
        super().__init__(detail)
        self.detail = detail or self.kind

    def to_dict(self) -> dict:
        return {"kind": self.kind, "detail": self.detail}


class NotFound(ReadTrackError):
    """Referenced user, book, shelf entry or review does not exist."""

    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(ReadTrackError):
    """Uniqueness violation, e.g. a second review by the same user."""

    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


class Forbidden(ReadTrackError):
    kind = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class InvalidInput(ReadTrackError):
    kind = "invalid_input"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class StoreUnavailable(ReadTrackError):
    """
    The store could not complete the operation (connection lost, or the
    optimistic rating update kept losing to concurrent writers).

    Not retried inside the core; callers may retry.
    """

    kind = "store_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
