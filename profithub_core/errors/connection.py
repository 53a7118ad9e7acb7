"""
Connection error classifications for the quote feed.

Handshake failures are retried by the connection manager itself. Errors
caused by the caller (sending while offline, failed requests) are raised
synchronously and never retried by the core.
"""

from typing import Any, Dict, Optional

from .recovery import RecoverableError


class FeedConnectionError(RecoverableError):
    """Socket could not be opened, or the handshake did not complete in time."""

    def __init__(self, message: str, url: Optional[str] = None,
                 timeout: Optional[float] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.url = url
        self.timeout = timeout


class NotConnectedError(Exception):
    """Operation attempted while the feed connection is down."""

    def __init__(self, message: str = "Quote feed is not connected",
                 operation: Optional[str] = None):
        super().__init__(message)
        self.operation = operation
        self.recoverable = False


class FeedRequestError(Exception):
    """Feed answered a request with an error payload."""

    def __init__(self, message: str, req_id: Optional[int] = None,
                 error: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.req_id = req_id
        self.error = error or {}
        self.code = self.error.get("code")


class FeedRequestTimeout(FeedRequestError):
    """No response arrived for a request within its timeout."""

    def __init__(self, message: str, req_id: Optional[int] = None,
                 timeout: Optional[float] = None):
        super().__init__(message, req_id=req_id)
        self.timeout = timeout
