"""
Trade execution and outcome tracking.

The tracker opens trades from bot signals and settles them when results
arrive. Refused executions and unknown results are logged and reported as
None; nothing here raises into the signal pipeline.
"""

import dataclasses
from collections import deque
from typing import Any, Optional, Union

from ..config.defaults import RiskParams, TradeParams
from ..errors import TradeRejectedError, UnknownTradeError
from ..logging.config import get_logger
from ..signals.models import BotSignal, BotType, SignalAction
from ..utils.time import now_ms, utc_now
from .models import RiskMetrics, Trade, TradeResult
from .risk import compute_risk_metrics

logger = get_logger(__name__)


class TradeTracker:
    """Open trades from signals, settle them, and keep risk metrics current"""

    def __init__(
        self,
        trade_params: Optional[TradeParams] = None,
        risk_params: Optional[RiskParams] = None,
        max_recent_trades: int = 50,
    ):
        self.trade_params = trade_params or TradeParams()
        self.risk_params = risk_params or RiskParams()
        self.max_recent_trades = max_recent_trades

        self.trades: deque[Trade] = deque(maxlen=max_recent_trades)
        self._trade_counter = 0
        self._metrics = compute_risk_metrics((), self.trade_params, self.risk_params)

    def execute_trade(
        self,
        bot_type: BotType,
        signal: BotSignal,
        entry_digit: Optional[int] = None,
    ) -> Optional[Trade]:
        """
        Open a trade for an entry signal

        Args:
            bot_type: Bot the trade is attributed to
            signal: Signal to act on; HOLD signals never open trades
            entry_digit: Digit of the tick the signal was produced on

        Returns:
            The opened Trade, or None when execution was refused
        """
        metrics = self._metrics
        try:
            self._check_preconditions(signal, metrics)
        except TradeRejectedError as e:
            logger.info(
                "Trade not executed",
                bot_type=bot_type.value,
                symbol=signal.symbol,
                reason=e.reason,
                **e.context
            )
            return None

        self._trade_counter += 1
        trade = Trade(
            id=f"trade_{self._trade_counter}_{now_ms()}",
            bot_type=bot_type,
            symbol=signal.symbol,
            stake=metrics.current_stake,
            direction=signal.contract_type,
            prediction=signal.prediction,
            entry_digit=entry_digit,
            opened_at=utc_now(),
            confidence=signal.confidence,
            sequence=signal.sequence,
        )
        # Oldest trades fall off the deque
        self.trades.append(trade)
        self._refresh_metrics()

        logger.info(
            "Trade executed",
            trade_id=trade.id,
            bot_type=bot_type.value,
            symbol=trade.symbol,
            stake=trade.stake,
            direction=trade.direction.value if trade.direction else None,
            prediction=trade.prediction,
        )
        return trade

    def _check_preconditions(self, signal: BotSignal, metrics: RiskMetrics) -> None:
        """Raise TradeRejectedError when the signal may not be traded"""
        if signal.action == SignalAction.HOLD:
            raise TradeRejectedError("Signal is not an entry", reason="hold_signal")

        if metrics.should_stop:
            raise TradeRejectedError(
                "Risk limits reached",
                reason="risk_stop",
                context={
                    "consecutive_losses": metrics.consecutive_losses,
                    "total_loss": metrics.total_loss,
                },
            )

        if metrics.exposure + metrics.current_stake > self.trade_params.max_exposure:
            raise TradeRejectedError(
                "Exposure limit reached",
                reason="max_exposure",
                context={"exposure": metrics.exposure, "stake": metrics.current_stake},
            )

        if metrics.daily_loss >= self.risk_params.max_daily_loss:
            raise TradeRejectedError(
                "Daily loss limit reached",
                reason="daily_loss_limit",
                context={"daily_loss": metrics.daily_loss},
            )

        if metrics.drawdown > self.risk_params.max_drawdown:
            raise TradeRejectedError(
                "Drawdown limit reached",
                reason="drawdown_limit",
                context={"drawdown": metrics.drawdown},
            )

        if self.trade_params.tp_sl_enabled:
            if metrics.net_profit >= self.trade_params.take_profit:
                raise TradeRejectedError(
                    "Take profit reached",
                    reason="take_profit",
                    context={"net_profit": metrics.net_profit},
                )
            if metrics.net_profit <= -self.trade_params.stop_loss:
                raise TradeRejectedError(
                    "Stop loss reached",
                    reason="stop_loss",
                    context={"net_profit": metrics.net_profit},
                )

    def record_trade_result(
        self,
        trade_id: str,
        result: Union[TradeResult, str],
        profit: float,
    ) -> Optional[Trade]:
        """
        Settle an open trade

        Args:
            trade_id: Id returned by execute_trade
            result: "win" or "loss"
            profit: Amount won or lost; the sign is taken from the result

        Returns:
            The closed Trade, or None for unknown or already settled trades
        """
        result = TradeResult(result)
        if result == TradeResult.PENDING:
            raise ValueError("A trade result must be win or loss")

        index = self._find(trade_id)
        if index is None:
            error = UnknownTradeError(f"Unknown trade: {trade_id}", trade_id=trade_id)
            logger.warning(
                "Trade result ignored",
                trade_id=trade_id,
                error=str(error),
                fallback_strategy=error.fallback_strategy,
            )
            return None

        trade = self.trades[index]
        if not trade.is_open:
            logger.warning(
                "Trade already settled",
                trade_id=trade_id,
                result=trade.result.value,
            )
            return None

        closed = trade.with_result(result, profit, utc_now())
        self.trades[index] = closed
        self._refresh_metrics()

        logger.info(
            "Trade settled",
            trade_id=trade_id,
            bot_type=closed.bot_type.value,
            result=closed.result.value,
            profit=closed.profit,
            net_profit=self._metrics.net_profit,
            next_stake=self._metrics.current_stake,
        )
        return closed

    def _find(self, trade_id: str) -> Optional[int]:
        for index, trade in enumerate(self.trades):
            if trade.id == trade_id:
                return index
        return None

    def _refresh_metrics(self) -> None:
        self._metrics = compute_risk_metrics(self.trades, self.trade_params, self.risk_params)

    def get_trade(self, trade_id: str) -> Optional[Trade]:
        index = self._find(trade_id)
        return self.trades[index] if index is not None else None

    def get_trade_history(self, limit: int = 50) -> list[Trade]:
        """Most recent trades, oldest first"""
        if limit <= 0:
            return []
        return list(self.trades)[-limit:]

    def get_risk_metrics(self) -> RiskMetrics:
        # Recomputed so the daily loss follows the current day
        self._refresh_metrics()
        return self._metrics

    def get_stats(self) -> dict[str, Any]:
        """Summary statistics of the settled trades"""
        metrics = self.get_risk_metrics()
        settled = [t for t in self.trades if not t.is_open]
        average_stake = (
            round(sum(t.stake for t in settled) / len(settled), 2) if settled else 0.0
        )
        return {
            "total_trades": metrics.total_trades,
            "open_trades": metrics.open_trades,
            "wins": metrics.wins,
            "losses": metrics.losses,
            "total_profit": metrics.total_profit,
            "total_loss": metrics.total_loss,
            "net_profit": metrics.net_profit,
            "win_rate": metrics.win_rate,
            "average_stake": average_stake,
        }

    def update_config(self, **changes: Any) -> TradeParams:
        """
        Replace trade parameters

        Raises:
            TypeError: If an unknown parameter is given
        """
        self.trade_params = dataclasses.replace(self.trade_params, **changes)
        self._refresh_metrics()
        logger.info("Trade config updated", **changes)
        return self.trade_params

    def reset(self) -> None:
        """Drop all trades and start a new session"""
        # The id counter keeps running so old ids never come back
        self.trades.clear()
        self._refresh_metrics()
        logger.info("Trade tracker reset")
