"""Deriv quote feed connection"""

from .connection import ConnectionManager, ConnectionStatus
from .subscriptions import SubscriptionRegistry, TickSubscription
from .transport import FeedSocket, Transport, TransportClosed, TransportError, WebsocketTransport

__all__ = [
    "ConnectionManager",
    "ConnectionStatus",
    "FeedSocket",
    "SubscriptionRegistry",
    "TickSubscription",
    "Transport",
    "TransportClosed",
    "TransportError",
    "WebsocketTransport",
]
