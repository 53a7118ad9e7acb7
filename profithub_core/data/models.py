"""
Canonical data models for normalized quote feed data.

This module defines immutable data structures that represent clean, validated
feed data after parsing the raw Deriv WebSocket payloads.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


@dataclass(frozen=True)
class QuoteMessage:
    """A parsed tick payload, before it is sequenced by the connection manager."""
    symbol: str
    price: Decimal
    epoch: int
    pip_size: Optional[int] = None
    subscription_id: Optional[str] = None
    tick_id: Optional[str] = None


@dataclass(frozen=True)
class Tick:
    """One price update for a symbol, with its derived last digit."""
    symbol: str
    price: Decimal          # Quote at feed precision
    epoch: int              # Feed epoch, seconds
    digit: int              # Last decimal digit at the symbol's precision
    sequence: int           # Strictly increasing per symbol
    pip_size: Optional[int] = None
    subscription_id: Optional[str] = None


@dataclass(frozen=True)
class ActiveSymbol:
    """A tradable symbol returned by symbol discovery."""
    symbol: str
    display_name: str
    market: Optional[str] = None
    market_display_name: Optional[str] = None
    pip_size: Optional[int] = None


class LogLevel(str, Enum):
    """Severity of a connection log entry."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class ConnectionLogEntry:
    """One diagnostics entry in the connection manager's circular log."""
    level: LogLevel
    message: str
    timestamp: datetime
    context: Optional[dict[str, Any]] = None


DEFAULT_ACTIVE_SYMBOLS = (
    ActiveSymbol("R_50", "Volatility 50", "synthetic_index", "Volatility Indices", 4),
    ActiveSymbol("R_100", "Volatility 100", "synthetic_index", "Volatility Indices", 2),
    ActiveSymbol("EURUSD", "EUR/USD", "forex", "Forex", 5),
    ActiveSymbol("GBPUSD", "GBP/USD", "forex", "Forex", 5),
    ActiveSymbol("USDJPY", "USD/JPY", "forex", "Forex", 3),
)
