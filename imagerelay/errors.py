"""
Error taxonomy for the image relay.

Every failure the relay reports is a RelayError carrying one ErrorKind.
The kind decides the HTTP status returned by the routes.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Closed set of failure causes."""

    MALFORMED_REFERENCE = "malformed_reference"
    SYNC_IN_PROGRESS = "sync_in_progress"
    CLEANUP_FAILED = "cleanup_failed"
    ENGINE_OPERATION_FAILED = "engine_operation_failed"


HTTP_STATUS = {
    ErrorKind.MALFORMED_REFERENCE: 400,
    ErrorKind.SYNC_IN_PROGRESS: 409,
    ErrorKind.CLEANUP_FAILED: 500,
    ErrorKind.ENGINE_OPERATION_FAILED: 502,
}


class RelayError(Exception):
    """A known failure, raised by the relay core and mapped to a response by the routes."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def status(self) -> int:
        return HTTP_STATUS[self.kind]

    def to_dict(self) -> dict:
        return {"error": self.kind.value, "message": self.message}
