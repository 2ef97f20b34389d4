"""
Error handling for backend generation calls.

Every failure on the backend side of the bridge derives from BackendError so
the connection session can absorb them at a single boundary:
- Connection failures (refused, DNS, transport errors while reading)
- Non-success HTTP status codes
- Malformed objects in the streamed body
- Errors reported by the backend inside the stream
"""

from __future__ import annotations


class BackendError(Exception):
    """Base backend error with request context."""

    def __init__(
        self,
        message: str,
        url: str = "unknown",
        model: str = "unknown",
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.url = url
        self.model = model
        self.status_code = status_code


class BackendConnectionError(BackendError):
    """The backend could not be reached or the transport failed mid-read."""
    pass


class BackendStatusError(BackendError):
    """The backend answered with a non-success status code."""

    def __init__(
        self,
        message: str,
        status_code: int,
        body: str = "",
        **kwargs,
    ):
        super().__init__(message, status_code=status_code, **kwargs)
        self.body = body


class StreamDecodeError(BackendError):
    """A streamed object could not be decoded."""

    def __init__(
        self,
        message: str,
        raw_data: bytes = b"",
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.raw_data = raw_data


class BackendStreamError(BackendError):
    """The backend reported an error object inside the stream."""
    pass
