"""Trade records and risk metrics"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from ..signals.models import BotType, ContractType


class TradeStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class TradeResult(str, Enum):
    PENDING = "pending"
    WIN = "win"
    LOSS = "loss"


@dataclass(frozen=True)
class Trade:
    """A trade opened from a bot signal"""
    id: str
    bot_type: BotType
    symbol: str
    stake: float
    direction: Optional[ContractType]
    prediction: Optional[int]
    entry_digit: Optional[int]
    opened_at: datetime
    confidence: int = 0
    sequence: int = 0
    status: TradeStatus = TradeStatus.OPEN
    result: TradeResult = TradeResult.PENDING
    profit: float = 0.0                     # Signed, negative for losses
    closed_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.status == TradeStatus.OPEN

    def with_result(self, result: TradeResult, profit: float, closed_at: datetime) -> 'Trade':
        """Close the trade with its outcome"""
        signed = abs(profit) if result == TradeResult.WIN else -abs(profit)
        return Trade(
            id=self.id,
            bot_type=self.bot_type,
            symbol=self.symbol,
            stake=self.stake,
            direction=self.direction,
            prediction=self.prediction,
            entry_digit=self.entry_digit,
            opened_at=self.opened_at,
            confidence=self.confidence,
            sequence=self.sequence,
            status=TradeStatus.CLOSED,
            result=result,
            profit=round(signed, 2),
            closed_at=closed_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "bot_type": self.bot_type.value,
            "symbol": self.symbol,
            "stake": self.stake,
            "direction": self.direction.value if self.direction else None,
            "prediction": self.prediction,
            "entry_digit": self.entry_digit,
            "status": self.status.value,
            "result": self.result.value,
            "profit": self.profit,
            "opened_at": self.opened_at.isoformat(),
            "closed_at": self.closed_at.isoformat() if self.closed_at else None,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class RiskMetrics:
    """Session risk derived from the retained trades"""
    total_trades: int = 0                   # Closed trades
    open_trades: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0                   # Percent, two decimals
    total_profit: float = 0.0
    total_loss: float = 0.0                 # Positive amount
    net_profit: float = 0.0
    exposure: float = 0.0                   # Sum of open stakes
    current_stake: float = 0.0
    consecutive_wins: int = 0
    consecutive_losses: int = 0
    peak_profit: float = 0.0
    drawdown: float = 0.0                   # Percent below peak equity
    max_drawdown: float = 0.0               # Largest drop of the net curve, currency
    daily_loss: float = 0.0
    should_switch: bool = False
    should_stop: bool = False
