"""
Main trading engine coordinator.

Wires the quote feed, digit analytics, bot signal engines and trade tracker
together, and publishes typed events for UI subscribers:

Tick → Digit Analytics → Bot Signals → (optional) Trade Tracker → Events
"""

import dataclasses
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Optional, Union

import structlog

from .config.defaults import DefaultConfig, get_default_config
from .data.models import Tick
from .data.parsers import PriceLike
from .errors import DataQualityError, NotConnectedError
from .events import (
    ConnectionStatusEvent,
    EventBus,
    SignalsEvent,
    StateChangeEvent,
    TickEvent,
    TradeExecutedEvent,
    TradeResultEvent,
)
from .feed.connection import ConnectionManager, ConnectionStatus
from .feed.subscriptions import TickSubscription
from .logging.config import get_signal_logger
from .metrics.calculator import DigitAnalyticsEngine
from .models.analysis import AnalysisSnapshot
from .signals.bots import BotSignalEngine, create_bot_engines
from .signals.catalog import LoadedStrategy, LoadStrategyRequest, parse_bot_types, resolve_strategy
from .signals.models import BotSignal, BotState, BotType
from .trading.models import RiskMetrics, Trade, TradeResult
from .trading.tracker import TradeTracker

logger = structlog.get_logger(__name__)
signal_logger = get_signal_logger(__name__)


@dataclass(frozen=True)
class EngineState:
    """Snapshot of everything the UI renders"""
    connection_status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    active_bots: tuple[BotType, ...] = ()
    current_analysis: Optional[AnalysisSnapshot] = None
    bot_signals: tuple[BotSignal, ...] = ()
    risk_metrics: RiskMetrics = RiskMetrics()
    recent_trades: tuple[Trade, ...] = ()
    loaded_strategies: tuple[LoadedStrategy, ...] = ()

    def with_connection_status(self, status: ConnectionStatus) -> 'EngineState':
        return dataclasses.replace(self, connection_status=status)

    def with_active_bots(self, active_bots: tuple[BotType, ...],
                         loaded_strategies: tuple[LoadedStrategy, ...]) -> 'EngineState':
        return dataclasses.replace(
            self, active_bots=active_bots, loaded_strategies=loaded_strategies
        )

    def with_analysis(self, snapshot: AnalysisSnapshot,
                      signals: tuple[BotSignal, ...]) -> 'EngineState':
        return dataclasses.replace(self, current_analysis=snapshot, bot_signals=signals)

    def with_trades(self, risk_metrics: RiskMetrics,
                    recent_trades: tuple[Trade, ...]) -> 'EngineState':
        return dataclasses.replace(self, risk_metrics=risk_metrics, recent_trades=recent_trades)


@dataclass(frozen=True)
class TickOutcome:
    """Result of processing one tick"""
    symbol: str
    digit: Optional[int] = None
    snapshot: Optional[AnalysisSnapshot] = None
    signals: tuple[BotSignal, ...] = ()

    @property
    def is_empty(self) -> bool:
        return self.snapshot is None


class TradingEngine:
    """
    Composition root for the digit trading core.

    Keeps one analytics engine per symbol, one signal engine per bot
    variant and one trade tracker. Tick processing never raises: failures
    are logged and an empty outcome is returned, so the engine is safe to
    use directly as a feed callback.
    """

    def __init__(self, config: Optional[DefaultConfig] = None,
                 connection: Optional[ConnectionManager] = None) -> None:
        self.config = config or get_default_config()
        self.connection = connection
        self.events = EventBus()

        # Per-symbol analytics
        self.analytics: dict[str, DigitAnalyticsEngine] = {}

        default_bots, unknown = parse_bot_types(self.config.engine.default_active_bots)
        if unknown:
            logger.warning("Unknown default bots ignored", bots=list(unknown))
        self._selected_bots: tuple[BotType, ...] = default_bots
        self.bots: dict[BotType, BotSignalEngine] = create_bot_engines(
            self.config, active=default_bots
        )

        self.tracker = TradeTracker(
            self.config.trade,
            self.config.risk,
            max_recent_trades=self.config.engine.max_recent_trades,
        )

        self._last_sequence: dict[tuple[BotType, str], int] = {}
        self._watches: dict[str, TickSubscription] = {}
        self._connection_unsubscribe: Optional[Callable[[], None]] = None

        self._state = EngineState(
            active_bots=default_bots,
            risk_metrics=self.tracker.get_risk_metrics(),
        )

        if connection is not None:
            self._connection_unsubscribe = connection.on_connection_status(
                self._on_connection_status
            )
            self._state = self._state.with_connection_status(connection.status)

        logger.info(
            "Trading engine initialized",
            active_bots=[b.value for b in default_bots],
            connected=connection is not None,
        )

    # Tick pipeline

    def process_tick(self, tick: Tick) -> TickOutcome:
        """
        Run one feed tick through analytics and the active bots.

        Args:
            tick: Sequenced tick from the connection manager

        Returns:
            Digit, snapshot and signals; empty when the tick could not be processed
        """
        return self._process(
            tick.symbol, tick.price, pip_size=tick.pip_size, epoch=tick.epoch,
            sequence=tick.sequence, tick=tick,
        )

    def process_price(self, symbol: str, price: PriceLike, epoch: Optional[int] = None,
                      pip_size: Optional[int] = None) -> TickOutcome:
        """Run a bare price through the pipeline, sequenced locally."""
        return self._process(symbol, price, pip_size=pip_size, epoch=epoch)

    def _process(
        self,
        symbol: str,
        price: Union[PriceLike, Decimal],
        pip_size: Optional[int] = None,
        epoch: Optional[int] = None,
        sequence: Optional[int] = None,
        tick: Optional[Tick] = None,
    ) -> TickOutcome:
        try:
            analysis = self._get_analytics(symbol).process_tick(
                price, pip_size=pip_size, epoch=epoch, sequence=sequence
            )
            snapshot = analysis.snapshot
            signals = self._collect_signals(snapshot)

        except DataQualityError as e:
            logger.warning(
                "Data quality issue during tick processing",
                error=str(e),
                error_type=type(e).__name__,
                symbol=symbol,
                context=getattr(e, 'context', {})
            )
            return TickOutcome(symbol=symbol)

        except Exception as e:
            logger.error(
                "Unexpected error during tick processing",
                error=str(e),
                error_type=type(e).__name__,
                symbol=symbol
            )
            return TickOutcome(symbol=symbol)

        self._state = self._state.with_analysis(snapshot, signals)

        self.events.publish(TickEvent(symbol, analysis.digit, snapshot, tick))
        self.events.publish(SignalsEvent(symbol, snapshot.sequence, signals))
        self.events.publish(StateChangeEvent(self._state))

        return TickOutcome(symbol, analysis.digit, snapshot, signals)

    def _collect_signals(self, snapshot: AnalysisSnapshot) -> tuple[BotSignal, ...]:
        """Broadcast a snapshot to every bot, at most once per bot and tick."""
        signals = []
        for bot_type, bot in self.bots.items():
            key = (bot_type, snapshot.symbol)
            last = self._last_sequence.get(key)
            if last is not None and snapshot.sequence <= last:
                continue
            self._last_sequence[key] = snapshot.sequence

            signal = bot.consume(snapshot)
            if signal is not None:
                signals.append(signal)
        return tuple(signals)

    def _get_analytics(self, symbol: str) -> DigitAnalyticsEngine:
        """Get or create the analytics engine for a symbol."""
        if symbol not in self.analytics:
            params = self.config.analytics
            pip_size = self.config.pip_sizes.get(symbol)
            if pip_size is not None:
                params = dataclasses.replace(params, default_pip_size=pip_size)
            self.analytics[symbol] = DigitAnalyticsEngine(params, symbol=symbol)
        return self.analytics[symbol]

    # Trades

    def execute_bot_trade(self, bot_type: Union[BotType, str],
                          signal: BotSignal) -> Optional[Trade]:
        """Open a trade for a bot's signal; None when the tracker refuses it."""
        bot_type = BotType(bot_type)
        entry_digit = None
        analytics = self.analytics.get(signal.symbol)
        if analytics is not None:
            entry_digit = analytics.analyze().current_digit

        trade = self.tracker.execute_trade(bot_type, signal, entry_digit=entry_digit)
        if trade is None:
            return None

        self._refresh_trades()
        self.events.publish(TradeExecutedEvent(trade))
        self.events.publish(StateChangeEvent(self._state))
        return trade

    def record_trade_result(self, trade_id: str, result: Union[TradeResult, str],
                            profit: float) -> Optional[Trade]:
        """Settle a trade and feed the outcome back to the bot that opened it."""
        trade = self.tracker.record_trade_result(trade_id, result, profit)
        if trade is None:
            return None

        self.bots[trade.bot_type].record_result(trade.result == TradeResult.WIN)
        self._refresh_trades()

        metrics = self._state.risk_metrics
        if metrics.should_stop:
            signal_logger.warning(
                "Risk limits reached, trading should stop",
                should_switch=metrics.should_switch,
                consecutive_losses=metrics.consecutive_losses,
                total_loss=metrics.total_loss,
            )

        self.events.publish(TradeResultEvent(trade, metrics))
        self.events.publish(StateChangeEvent(self._state))
        return trade

    def _refresh_trades(self) -> None:
        self._state = self._state.with_trades(
            self.tracker.get_risk_metrics(),
            tuple(self.tracker.get_trade_history(self.config.engine.max_recent_trades)),
        )

    # Bot selection

    def set_active_bots(self, names: Iterable[Union[BotType, str]]) -> tuple[BotType, ...]:
        """
        Replace the directly selected bots.

        Bots of loaded strategies stay active. Unknown names are logged and
        ignored.
        """
        selected, unknown = parse_bot_types(names)
        if unknown:
            logger.warning("Unknown bots ignored", bots=list(unknown))
        self._selected_bots = selected
        return self._apply_selection(self._state.loaded_strategies)

    def load_strategy(self, request: LoadStrategyRequest) -> Optional[LoadedStrategy]:
        """
        Activate the bots of a strategy.

        Returns:
            The loaded strategy, or None when it names no known bot
        """
        strategy, unknown = resolve_strategy(request)
        if unknown:
            logger.warning(
                "Unknown bots in strategy ignored",
                strategy_id=request.strategy_id,
                bots=list(unknown)
            )
        if not strategy.bot_types:
            logger.error("Strategy has no known bots", strategy_id=request.strategy_id)
            return None

        loaded = tuple(
            s for s in self._state.loaded_strategies if s.strategy_id != strategy.strategy_id
        ) + (strategy,)
        self._apply_selection(loaded)

        logger.info(
            "Strategy loaded",
            strategy_id=strategy.strategy_id,
            bot_types=[b.value for b in strategy.bot_types],
            has_xml=strategy.xml is not None
        )
        return strategy

    def unload_strategy(self, strategy_id: str) -> bool:
        """Remove a strategy; its bots stop unless selected otherwise."""
        loaded = tuple(
            s for s in self._state.loaded_strategies if s.strategy_id != strategy_id
        )
        if len(loaded) == len(self._state.loaded_strategies):
            logger.warning("Strategy not loaded", strategy_id=strategy_id)
            return False

        self._apply_selection(loaded)
        logger.info("Strategy unloaded", strategy_id=strategy_id)
        return True

    def _apply_selection(self, loaded: tuple[LoadedStrategy, ...]) -> tuple[BotType, ...]:
        wanted = set(self._selected_bots)
        for strategy in loaded:
            wanted.update(strategy.bot_types)

        for bot_type, bot in self.bots.items():
            if bot_type in wanted:
                bot.activate()
            else:
                bot.deactivate()

        # Registry order keeps the active list stable
        active = tuple(b for b in self.bots if b in wanted)
        self._state = self._state.with_active_bots(active, loaded)
        self.events.publish(StateChangeEvent(self._state))
        return active

    # Feed

    def watch_symbol(self, symbol: str) -> TickSubscription:
        """
        Pipe a symbol's ticks from the connection manager into the engine.

        Raises:
            NotConnectedError: If the engine was built without a connection manager
        """
        if self.connection is None:
            raise NotConnectedError("No connection manager configured", operation="watch_symbol")

        handle = self._watches.get(symbol)
        if handle is not None and handle.active:
            return handle

        handle = self.connection.subscribe_ticks(symbol, self.process_tick)
        self._watches[symbol] = handle
        logger.info("Watching symbol", symbol=symbol)
        return handle

    def unwatch_symbol(self, symbol: str) -> bool:
        handle = self._watches.pop(symbol, None)
        if handle is None:
            return False
        handle.unsubscribe()
        logger.info("Stopped watching symbol", symbol=symbol)
        return True

    def watched_symbols(self) -> list[str]:
        return list(self._watches)

    def _on_connection_status(self, status: ConnectionStatus) -> None:
        self._state = self._state.with_connection_status(status)
        self.events.publish(ConnectionStatusEvent(status))
        self.events.publish(StateChangeEvent(self._state))

    def close(self) -> None:
        """Stop watching symbols and detach from the connection manager."""
        for symbol in list(self._watches):
            self.unwatch_symbol(symbol)
        if self._connection_unsubscribe is not None:
            self._connection_unsubscribe()
            self._connection_unsubscribe = None

    # Hooks

    def on_tick(self, listener: Callable[[TickEvent], None]) -> Callable[[], None]:
        return self.events.subscribe(TickEvent, listener)

    def on_signals(self, listener: Callable[[SignalsEvent], None]) -> Callable[[], None]:
        return self.events.subscribe(SignalsEvent, listener)

    def on_state_change(self, listener: Callable[[StateChangeEvent], None]) -> Callable[[], None]:
        return self.events.subscribe(StateChangeEvent, listener)

    def on_trade_executed(self, listener: Callable[[TradeExecutedEvent], None]) -> Callable[[], None]:
        return self.events.subscribe(TradeExecutedEvent, listener)

    def on_trade_result(self, listener: Callable[[TradeResultEvent], None]) -> Callable[[], None]:
        return self.events.subscribe(TradeResultEvent, listener)

    def on_connection_status(
        self, listener: Callable[[ConnectionStatusEvent], None]
    ) -> Callable[[], None]:
        return self.events.subscribe(ConnectionStatusEvent, listener)

    # Queries

    def get_state(self) -> EngineState:
        return self._state

    def get_analysis(self, symbol: Optional[str] = None) -> Optional[AnalysisSnapshot]:
        """Latest snapshot of a symbol, or of the last processed symbol."""
        if symbol is None:
            return self._state.current_analysis
        analytics = self.analytics.get(symbol)
        return analytics.analyze() if analytics is not None else None

    def get_signals(self) -> tuple[BotSignal, ...]:
        return self._state.bot_signals

    def get_bot_state(self, bot_type: Union[BotType, str]) -> BotState:
        return self.bots[BotType(bot_type)].get_state()

    def get_risk_metrics(self) -> RiskMetrics:
        return self.tracker.get_risk_metrics()

    def get_trade_history(self, limit: int = 50) -> list[Trade]:
        return self.tracker.get_trade_history(limit)

    def get_stats(self) -> dict[str, Any]:
        stats = self.tracker.get_stats()
        stats["active_bots"] = [b.value for b in self._state.active_bots]
        stats["symbols"] = sorted(self.analytics)
        stats["bot_states"] = {
            b.value: {
                "active": s.active,
                "paused": s.paused,
                "runs_count": s.runs_count,
                "consecutive_losses": s.consecutive_losses,
            }
            for b, s in ((b, bot.get_state()) for b, bot in self.bots.items())
        }
        return stats

    def reset(self) -> None:
        """
        Start a new session: clears analytics, bot streaks and trades.

        Bot selection, loaded strategies and watched symbols are kept.
        """
        for analytics in self.analytics.values():
            analytics.reset()
        for bot in self.bots.values():
            bot.reset()
        self.tracker.reset()
        self._last_sequence.clear()

        self._state = EngineState(
            connection_status=self._state.connection_status,
            active_bots=self._state.active_bots,
            risk_metrics=self.tracker.get_risk_metrics(),
            loaded_strategies=self._state.loaded_strategies,
        )
        self.events.publish(StateChangeEvent(self._state))
        logger.info("Trading engine reset")
