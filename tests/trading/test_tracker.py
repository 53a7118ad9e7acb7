"""Tests for trade execution, settlement and execution preconditions."""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from profithub_core.config.defaults import RiskParams, TradeParams
from profithub_core.errors import TradeRejectedError
from profithub_core.signals.models import BotSignal, BotType, ContractType, SignalAction
from profithub_core.trading.models import TradeResult, TradeStatus
from profithub_core.trading.tracker import TradeTracker


def make_signal(action: SignalAction = SignalAction.BUY,
                contract_type: ContractType = ContractType.DIGITDIFF,
                prediction=4, bot_type: BotType = BotType.DIFFERS) -> BotSignal:
    return BotSignal(
        bot_type=bot_type,
        action=action,
        contract_type=contract_type,
        prediction=prediction,
        confidence=70,
        reason="test",
        symbol="R_100",
        sequence=42,
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


def trade_and_settle(tracker: TradeTracker, result: str, profit: float):
    trade = tracker.execute_trade(BotType.DIFFERS, make_signal())
    assert trade is not None
    return tracker.record_trade_result(trade.id, result, profit)


def rejection_reason(tracker: TradeTracker, signal=None) -> str:
    with pytest.raises(TradeRejectedError) as exc_info:
        tracker._check_preconditions(signal or make_signal(), tracker.get_risk_metrics())
    return exc_info.value.reason


class TestExecuteTrade:
    """Opening trades from signals."""

    def test_opens_trade_from_signal(self):
        tracker = TradeTracker()
        trade = tracker.execute_trade(BotType.DIFFERS, make_signal(), entry_digit=7)

        assert trade.id.startswith("trade_1_")
        assert trade.stake == 1.0
        assert trade.direction == ContractType.DIGITDIFF
        assert trade.prediction == 4
        assert trade.entry_digit == 7
        assert trade.sequence == 42
        assert trade.status == TradeStatus.OPEN
        assert trade.result == TradeResult.PENDING
        assert tracker.get_risk_metrics().open_trades == 1

    def test_trade_ids_are_unique(self):
        tracker = TradeTracker()
        first = tracker.execute_trade(BotType.DIFFERS, make_signal())
        second = tracker.execute_trade(BotType.DIFFERS, make_signal())
        assert first.id != second.id
        assert second.id.startswith("trade_2_")

    def test_sell_signal_is_an_entry(self):
        tracker = TradeTracker()
        signal = make_signal(SignalAction.SELL, ContractType.PUT, None, BotType.RISE_FALL)
        trade = tracker.execute_trade(BotType.RISE_FALL, signal)
        assert trade.direction == ContractType.PUT

    def test_hold_signal_never_trades(self):
        tracker = TradeTracker()
        assert tracker.execute_trade(BotType.DIFFERS, make_signal(SignalAction.HOLD)) is None
        assert tracker.get_trade_history() == []
        assert rejection_reason(tracker, make_signal(SignalAction.HOLD)) == "hold_signal"

    def test_stake_follows_martingale(self):
        tracker = TradeTracker(TradeParams(base_stake=1.0, martingale_multiplier=1.5))
        trade_and_settle(tracker, "loss", 1.0)
        trade_and_settle(tracker, "loss", 1.5)

        assert tracker.execute_trade(BotType.DIFFERS, make_signal()).stake == 2.25

    def test_stake_resets_after_win(self):
        tracker = TradeTracker()
        trade_and_settle(tracker, "loss", 1.0)
        trade_and_settle(tracker, "win", 1.3)

        assert tracker.execute_trade(BotType.DIFFERS, make_signal()).stake == 1.0


class TestPreconditions:
    """Refusals for risk and limit breaches."""

    def test_max_exposure(self):
        tracker = TradeTracker(TradeParams(max_exposure=1.5))
        assert tracker.execute_trade(BotType.DIFFERS, make_signal()) is not None
        assert tracker.execute_trade(BotType.DIFFERS, make_signal()) is None
        assert rejection_reason(tracker) == "max_exposure"

    def test_consecutive_losses_stop_trading(self):
        tracker = TradeTracker()
        for _ in range(5):
            trade_and_settle(tracker, "loss", 1.0)

        assert tracker.get_risk_metrics().should_stop is True
        assert tracker.execute_trade(BotType.DIFFERS, make_signal()) is None
        assert rejection_reason(tracker) == "risk_stop"

    def test_daily_loss_limit(self):
        tracker = TradeTracker(risk_params=RiskParams(max_daily_loss=2.0))
        trade_and_settle(tracker, "loss", 2.0)

        assert tracker.execute_trade(BotType.DIFFERS, make_signal()) is None
        assert rejection_reason(tracker) == "daily_loss_limit"

    def test_drawdown_limit(self):
        tracker = TradeTracker(risk_params=RiskParams(account_balance=10.0, max_drawdown=20.0))
        trade_and_settle(tracker, "win", 10.0)
        trade_and_settle(tracker, "loss", 5.0)

        # 5 below a peak equity of 20
        assert tracker.get_risk_metrics().drawdown == 25.0
        assert rejection_reason(tracker) == "drawdown_limit"

    def test_small_loss_after_win_keeps_trading(self):
        tracker = TradeTracker()
        trade_and_settle(tracker, "win", 0.95)
        trade_and_settle(tracker, "loss", 1.0)

        assert tracker.get_risk_metrics().drawdown == 0.1
        trades = [tracker.execute_trade(BotType.DIFFERS, make_signal()) for _ in range(5)]
        assert all(trade is not None for trade in trades)

    def test_take_profit(self):
        tracker = TradeTracker(TradeParams(tp_sl_enabled=True, take_profit=5.0))
        trade_and_settle(tracker, "win", 6.0)
        assert rejection_reason(tracker) == "take_profit"

    def test_stop_loss(self):
        tracker = TradeTracker(TradeParams(tp_sl_enabled=True, stop_loss=3.0))
        trade_and_settle(tracker, "loss", 3.0)
        assert rejection_reason(tracker) == "stop_loss"

    def test_tp_sl_disabled(self):
        tracker = TradeTracker(TradeParams(tp_sl_enabled=False, take_profit=5.0))
        trade_and_settle(tracker, "win", 6.0)
        assert tracker.execute_trade(BotType.DIFFERS, make_signal()) is not None


class TestRecordTradeResult:
    """Settling trades."""

    def test_profit_sign_follows_result(self):
        tracker = TradeTracker()
        won = trade_and_settle(tracker, TradeResult.WIN, -0.85)
        lost = trade_and_settle(tracker, "loss", 1.0)

        assert won.profit == 0.85
        assert lost.profit == -1.0
        assert lost.status == TradeStatus.CLOSED
        assert lost.closed_at is not None

        metrics = tracker.get_risk_metrics()
        assert metrics.total_profit == 0.85
        assert metrics.total_loss == 1.0
        assert metrics.net_profit == -0.15

    def test_unknown_trade_is_ignored(self):
        tracker = TradeTracker()
        assert tracker.record_trade_result("trade_99_0", "win", 1.0) is None
        assert tracker.get_risk_metrics().total_trades == 0

    def test_settling_twice_is_ignored(self):
        tracker = TradeTracker()
        trade = tracker.execute_trade(BotType.DIFFERS, make_signal())
        tracker.record_trade_result(trade.id, "win", 1.0)

        assert tracker.record_trade_result(trade.id, "loss", 1.0) is None
        assert tracker.get_trade(trade.id).result == TradeResult.WIN
        assert tracker.get_risk_metrics().losses == 0

    def test_pending_is_not_a_result(self):
        tracker = TradeTracker()
        trade = tracker.execute_trade(BotType.DIFFERS, make_signal())
        with pytest.raises(ValueError):
            tracker.record_trade_result(trade.id, "pending", 0.0)

    def test_invalid_result_name(self):
        tracker = TradeTracker()
        trade = tracker.execute_trade(BotType.DIFFERS, make_signal())
        with pytest.raises(ValueError):
            tracker.record_trade_result(trade.id, "draw", 0.0)


class TestHistoryAndConfig:
    """Bounded history, stats, config updates and reset."""

    def test_history_is_bounded(self):
        tracker = TradeTracker(max_recent_trades=3)
        ids = [trade_and_settle(tracker, "win", 1.0).id for _ in range(5)]

        history = tracker.get_trade_history()
        assert [t.id for t in history] == ids[2:]
        assert [t.id for t in tracker.get_trade_history(2)] == ids[3:]
        assert tracker.get_trade_history(0) == []
        assert tracker.get_trade(ids[0]) is None

    def test_get_stats(self):
        tracker = TradeTracker()
        trade_and_settle(tracker, "loss", 1.0)
        trade_and_settle(tracker, "win", 1.2)
        tracker.execute_trade(BotType.DIFFERS, make_signal())

        stats = tracker.get_stats()
        assert stats["total_trades"] == 2
        assert stats["open_trades"] == 1
        assert stats["win_rate"] == 50.0
        assert stats["average_stake"] == 1.25
        assert stats["net_profit"] == 0.2

    def test_update_config(self):
        tracker = TradeTracker()
        params = tracker.update_config(base_stake=2.0)

        assert params.base_stake == 2.0
        assert tracker.execute_trade(BotType.DIFFERS, make_signal()).stake == 2.0

    def test_update_config_rejects_unknown_field(self):
        tracker = TradeTracker()
        with pytest.raises(TypeError):
            tracker.update_config(leverage=10)

    def test_reset(self):
        tracker = TradeTracker()
        trade_and_settle(tracker, "loss", 1.0)

        tracker.reset()

        assert tracker.get_trade_history() == []
        assert tracker.get_risk_metrics().total_loss == 0.0

    @patch("profithub_core.trading.tracker.now_ms", return_value=1700000000000)
    def test_trade_ids_stay_unique_across_reset(self, _now_ms):
        tracker = TradeTracker()
        before = tracker.execute_trade(BotType.DIFFERS, make_signal())

        tracker.reset()
        after = tracker.execute_trade(BotType.DIFFERS, make_signal())

        assert before.id == "trade_1_1700000000000"
        assert after.id == "trade_2_1700000000000"
