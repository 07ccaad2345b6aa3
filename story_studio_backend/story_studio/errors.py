from typing import Optional


class StoryError(Exception):
    """Base class for every failure surfaced to a story session."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RemoteError(StoryError):
    """A call to one of the /api/* endpoints did not produce a usable result."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransportError(RemoteError):
    """Non-success HTTP status, or the request never reached the endpoint."""


class ProtocolError(RemoteError):
    """The endpoint answered successfully but reported a logical failure inline."""


class ValidationError(StoryError):
    """A local precondition failed before any network call was made."""
