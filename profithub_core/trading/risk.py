"""
Risk metrics computed from the trade list.

``compute_risk_metrics`` is a pure fold: the same trades and parameters
always give the same metrics, so the tracker never keeps running totals
that could drift from its trade history.
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Optional

from ..config.defaults import RiskParams, TradeParams
from ..utils.time import is_same_utc_day, utc_now
from .models import RiskMetrics, Trade, TradeResult


def next_stake(stake: float, won: bool, params: TradeParams) -> float:
    """Martingale progression: reset on a win, multiply on a loss"""
    if won:
        return params.base_stake
    return round(stake * params.martingale_multiplier, 2)


def drawdown_percent(peak: float, net: float, balance: float) -> float:
    """
    How far equity sits below its peak, as a percent of peak equity

    Equity is the account balance plus session net profit, so a small loss
    right after a small win stays a small drawdown.
    """
    peak_equity = balance + peak
    if peak_equity <= 0:
        return 0.0
    return round(max(peak - net, 0.0) / peak_equity * 100, 2)


def compute_risk_metrics(
    trades: Iterable[Trade],
    trade_params: Optional[TradeParams] = None,
    risk_params: Optional[RiskParams] = None,
    now: Optional[datetime] = None,
) -> RiskMetrics:
    """
    Fold trades into session risk metrics

    Args:
        trades: Trades oldest first; settled ones are ordered by close time
        trade_params: Stake and stop parameters
        risk_params: Daily loss and drawdown limits
        now: Reference time for the daily loss, defaults to wall-clock

    Returns:
        RiskMetrics for the given trades
    """
    trade_params = trade_params or TradeParams()
    risk_params = risk_params or RiskParams()
    now = now or utc_now()

    stake = trade_params.base_stake
    wins = losses = 0
    consecutive_wins = consecutive_losses = 0
    total_profit = total_loss = daily_loss = 0.0
    net = peak = max_drawdown = 0.0

    trades = list(trades)
    pending = [t for t in trades if t.result == TradeResult.PENDING]
    open_trades = len(pending)
    exposure = sum(t.stake for t in pending)

    # Outcomes are folded in the order they were settled
    settled = sorted(
        (t for t in trades if t.result != TradeResult.PENDING),
        key=lambda t: t.closed_at or t.opened_at,
    )
    for trade in settled:
        won = trade.result == TradeResult.WIN
        if won:
            wins += 1
            consecutive_wins += 1
            consecutive_losses = 0
            total_profit += abs(trade.profit)
        else:
            losses += 1
            consecutive_losses += 1
            consecutive_wins = 0
            total_loss += abs(trade.profit)
            if trade.closed_at and is_same_utc_day(trade.closed_at, now):
                daily_loss += abs(trade.profit)

        stake = next_stake(stake, won, trade_params)

        net += trade.profit
        peak = max(peak, net)
        max_drawdown = max(max_drawdown, peak - net)

    closed = wins + losses
    win_rate = round(wins / closed * 100, 2) if closed else 0.0
    should_switch = (
        trade_params.auto_switch_on_max_loss
        and total_loss >= trade_params.max_loss_limit
    )
    should_stop = (
        consecutive_losses >= trade_params.max_consecutive_losses
        or should_switch
    )

    return RiskMetrics(
        total_trades=closed,
        open_trades=open_trades,
        wins=wins,
        losses=losses,
        win_rate=win_rate,
        total_profit=round(total_profit, 2),
        total_loss=round(total_loss, 2),
        net_profit=round(total_profit - total_loss, 2),
        exposure=round(exposure, 2),
        current_stake=stake,
        consecutive_wins=consecutive_wins,
        consecutive_losses=consecutive_losses,
        peak_profit=round(peak, 2),
        drawdown=drawdown_percent(peak, net, risk_params.account_balance),
        max_drawdown=round(max_drawdown, 2),
        daily_loss=round(daily_loss, 2),
        should_switch=should_switch,
        should_stop=should_stop,
    )
