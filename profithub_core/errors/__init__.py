"""
Error classification system for the Profithub core.

This module provides a structured exception hierarchy for the failures that
occur while talking to the quote feed, analysing ticks and tracking trades.
"""

from .connection import (
    FeedConnectionError,
    NotConnectedError,
    FeedRequestError,
    FeedRequestTimeout,
)
from .data_quality import (
    DataQualityError,
    MalformedMessageError,
    InvalidPriceError,
)
from .recovery import (
    RecoverableError,
    GracefulDegradationError,
)
from .trading import (
    UnknownTradeError,
    TradeRejectedError,
)

__all__ = [
    # Connection Errors
    "FeedConnectionError",
    "NotConnectedError",
    "FeedRequestError",
    "FeedRequestTimeout",
    # Data Quality Errors
    "DataQualityError",
    "MalformedMessageError",
    "InvalidPriceError",
    # Trading Errors
    "UnknownTradeError",
    "TradeRejectedError",
    # Recovery Categories
    "RecoverableError",
    "GracefulDegradationError",
]
