"""
Bot signal data models.

Bot variants form a closed enumeration; each has exactly one strategy in
the registry. BotState is immutable and replaced through its ``with_*``
methods, so a bot's history can only move through explicit transitions.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class BotType(str, Enum):
    """Available bot variants."""
    EVEN_ODD = "even_odd"
    OVER_UNDER = "over_under"
    DIFFERS = "differs"
    MATCHES = "matches"
    RISE_FALL = "rise_fall"


class SignalAction(str, Enum):
    """What a bot recommends for the current snapshot."""
    BUY = "buy"      # Enter the contract (rise side for rise_fall)
    SELL = "sell"    # Enter the fall side of a rise/fall contract
    HOLD = "hold"    # Conditions forming, no entry yet


class ContractType(str, Enum):
    """Deriv contract types the bots trade."""
    DIGITEVEN = "DIGITEVEN"
    DIGITODD = "DIGITODD"
    DIGITOVER = "DIGITOVER"
    DIGITUNDER = "DIGITUNDER"
    DIGITDIFF = "DIGITDIFF"
    DIGITMATCH = "DIGITMATCH"
    CALL = "CALL"
    PUT = "PUT"


@dataclass(frozen=True)
class BotSignal:
    """A bot's recommendation for one snapshot."""
    bot_type: BotType
    action: SignalAction
    contract_type: Optional[ContractType]
    prediction: Optional[int]           # Digit or barrier, None for parity and rise/fall
    confidence: int                     # 0-100
    reason: str
    symbol: str
    sequence: int
    timestamp: datetime
    power_threshold_met: bool = False
    trend_confirmed: bool = False

    @property
    def is_entry(self) -> bool:
        return self.action in (SignalAction.BUY, SignalAction.SELL)

    def to_dict(self) -> dict[str, Any]:
        return {
            "bot_type": self.bot_type.value,
            "action": self.action.value,
            "contract_type": self.contract_type.value if self.contract_type else None,
            "prediction": self.prediction,
            "confidence": self.confidence,
            "reason": self.reason,
            "symbol": self.symbol,
            "sequence": self.sequence,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class BotState:
    """Per-bot session state."""
    bot_type: BotType
    active: bool = False
    runs_count: int = 0
    consecutive_wins: int = 0
    consecutive_losses: int = 0
    paused: bool = False
    params: Any = None                  # Variant parameters from config

    def with_active(self, active: bool) -> 'BotState':
        """Mark bot as selected or deselected."""
        return BotState(
            bot_type=self.bot_type,
            active=active,
            runs_count=self.runs_count,
            consecutive_wins=self.consecutive_wins,
            consecutive_losses=self.consecutive_losses,
            paused=self.paused,
            params=self.params,
        )

    def with_result(self, won: bool, max_consecutive_losses: int) -> 'BotState':
        """Record one trade outcome; pauses once the loss limit is reached."""
        losses = 0 if won else self.consecutive_losses + 1
        return BotState(
            bot_type=self.bot_type,
            active=self.active,
            runs_count=self.runs_count + 1,
            consecutive_wins=self.consecutive_wins + 1 if won else 0,
            consecutive_losses=losses,
            paused=losses >= max_consecutive_losses,
            params=self.params,
        )

    def cleared(self) -> 'BotState':
        """Fresh counters, keeping selection and parameters."""
        return BotState(bot_type=self.bot_type, active=self.active, params=self.params)
