"""
Reference-counted tick subscriptions.

Several local subscribers can share one feed subscription per symbol. The
registry only reports the first subscriber and the last unsubscriber of a
symbol, which is when the connection manager talks to the feed.
"""

from dataclasses import dataclass, field
from typing import Callable, Optional

from ..data.models import Tick
from ..logging.config import get_connection_logger

logger = get_connection_logger(__name__)

TickCallback = Callable[[Tick], None]


class TickSubscription:
    """
    Handle returned by ``subscribe_ticks``

    Calling the handle, or its ``unsubscribe`` method, stops delivery. The
    handle is deactivated before unsubscribe returns, so no callback runs
    for it afterwards, even for ticks already being dispatched.
    """

    def __init__(self, symbol: str, callback: TickCallback,
                 release: Callable[['TickSubscription'], None]):
        self.symbol = symbol
        self.callback = callback
        self.active = True
        self._release = release

    def deliver(self, tick: Tick) -> None:
        if self.active:
            self.callback(tick)

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._release(self)

    def __call__(self) -> None:
        self.unsubscribe()

    def __repr__(self) -> str:
        return f"TickSubscription(symbol={self.symbol!r}, active={self.active})"


@dataclass
class SymbolSubscription:
    """Local subscribers of one symbol and its feed subscription id"""
    symbol: str
    handles: list[TickSubscription] = field(default_factory=list)
    subscription_id: Optional[str] = None


class SubscriptionRegistry:
    """Symbol table of local tick subscribers"""

    def __init__(self):
        self._entries: dict[str, SymbolSubscription] = {}

    def add(self, symbol: str, callback: TickCallback,
            release: Callable[[TickSubscription], None]) -> tuple[TickSubscription, bool]:
        """
        Register a subscriber

        Returns:
            The new handle, and True when it is the symbol's first subscriber
        """
        entry = self._entries.get(symbol)
        first = entry is None
        if first:
            entry = SymbolSubscription(symbol=symbol)
            self._entries[symbol] = entry

        handle = TickSubscription(symbol, callback, release)
        entry.handles.append(handle)
        logger.debug("Tick subscriber added", symbol=symbol, subscribers=len(entry.handles))
        return handle, first

    def remove(self, handle: TickSubscription) -> Optional[SymbolSubscription]:
        """
        Drop a subscriber

        Returns:
            The symbol's entry when its last subscriber was removed, else None
        """
        entry = self._entries.get(handle.symbol)
        if entry is None or handle not in entry.handles:
            return None

        entry.handles.remove(handle)
        if entry.handles:
            return None

        del self._entries[handle.symbol]
        return entry

    def get(self, symbol: str) -> Optional[SymbolSubscription]:
        return self._entries.get(symbol)

    def handles_for(self, symbol: str) -> list[TickSubscription]:
        """Copy of the symbol's handles, safe to iterate while unsubscribing"""
        entry = self._entries.get(symbol)
        return list(entry.handles) if entry else []

    def symbols(self) -> list[str]:
        return list(self._entries)

    def forget_subscription_ids(self) -> None:
        """Feed subscription ids die with the socket"""
        for entry in self._entries.values():
            entry.subscription_id = None

    def clear(self) -> list[TickSubscription]:
        """Drop every entry and deactivate its handles"""
        handles = [h for entry in self._entries.values() for h in entry.handles]
        for handle in handles:
            handle.active = False
        self._entries.clear()
        return handles

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._entries

    def __len__(self) -> int:
        return len(self._entries)
