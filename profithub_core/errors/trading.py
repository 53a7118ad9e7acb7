"""
Trade tracking error classifications.

Neither error is raised to callers of the tracker: both describe requests
the tracker refuses, and are logged with their context instead.
"""

from typing import Any, Dict, Optional

from .recovery import GracefulDegradationError


class UnknownTradeError(GracefulDegradationError):
    """A result was recorded for a trade id the tracker does not hold."""

    def __init__(self, message: str, trade_id: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            degraded_functionality="trade_result",
            fallback_strategy="ignore_result",
        )
        self.trade_id = trade_id


class TradeRejectedError(Exception):
    """A signal did not pass the tracker's execution preconditions."""

    def __init__(self, message: str, reason: str,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.reason = reason
        self.context = context or {}
        self.recoverable = True
