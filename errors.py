"""
Error types raised by the relay gateway.

Every error carries the HTTP status the API reports it with and a message that
is safe to hand back to the browser.
"""

from typing import Optional


class RelayError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RelayError):
    """Request body is missing a required field."""

    status_code = 400


class UpstreamError(RelayError):
    """The provider could not be reached or answered with a non-success status."""

    status_code = 500

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status
