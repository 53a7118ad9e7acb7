"""Trade execution and risk tracking"""

from .models import RiskMetrics, Trade, TradeResult, TradeStatus
from .risk import compute_risk_metrics, drawdown_percent, next_stake
from .tracker import TradeTracker

__all__ = [
    "RiskMetrics",
    "Trade",
    "TradeResult",
    "TradeStatus",
    "TradeTracker",
    "compute_risk_metrics",
    "drawdown_percent",
    "next_stake",
]
