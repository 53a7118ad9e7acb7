"""
Typed events published by the trading engine.

Listeners subscribe to an event class and receive instances of exactly that
class, synchronously, in subscription order. A failing listener is logged
and does not stop delivery to the others.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional, TypeVar

from .logging.config import get_logger

if TYPE_CHECKING:
    from .data.models import Tick
    from .engine import EngineState
    from .feed.connection import ConnectionStatus
    from .models.analysis import AnalysisSnapshot
    from .signals.models import BotSignal
    from .trading.models import RiskMetrics, Trade

logger = get_logger(__name__)

E = TypeVar("E")


@dataclass(frozen=True)
class TickEvent:
    symbol: str
    digit: int
    snapshot: 'AnalysisSnapshot'
    tick: Optional['Tick'] = None


@dataclass(frozen=True)
class SignalsEvent:
    symbol: str
    sequence: int
    signals: tuple['BotSignal', ...]


@dataclass(frozen=True)
class StateChangeEvent:
    state: 'EngineState'


@dataclass(frozen=True)
class TradeExecutedEvent:
    trade: 'Trade'


@dataclass(frozen=True)
class TradeResultEvent:
    trade: 'Trade'
    risk_metrics: 'RiskMetrics'


@dataclass(frozen=True)
class ConnectionStatusEvent:
    status: 'ConnectionStatus'


class EventBus:
    """Synchronous publish/subscribe keyed on event class"""

    def __init__(self):
        self._listeners: dict[type, list[Callable[[Any], None]]] = {}

    def subscribe(self, event_type: type[E], listener: Callable[[E], None]) -> Callable[[], None]:
        """
        Register a listener for one event class

        Returns:
            Function that removes the listener
        """
        self._listeners.setdefault(event_type, []).append(listener)

        def unsubscribe() -> None:
            listeners = self._listeners.get(event_type, [])
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    def publish(self, event: Any) -> int:
        """
        Deliver an event to its listeners

        Returns:
            Number of listeners that handled the event without error
        """
        delivered = 0
        for listener in list(self._listeners.get(type(event), ())):
            try:
                listener(event)
                delivered += 1
            except Exception as e:
                logger.error(
                    "Event listener failed",
                    event_type=type(event).__name__,
                    error=str(e),
                    error_type=type(e).__name__,
                )
        return delivered

    def listener_count(self, event_type: type) -> int:
        return len(self._listeners.get(event_type, ()))

    def clear(self) -> None:
        self._listeners.clear()
