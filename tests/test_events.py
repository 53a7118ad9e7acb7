"""Tests for the typed event bus."""

from unittest.mock import Mock

from profithub_core.events import ConnectionStatusEvent, EventBus, TradeExecutedEvent
from profithub_core.feed.connection import ConnectionStatus


class TestEventBus:
    """Subscription and delivery."""

    def test_delivers_to_listeners_of_event_class(self):
        bus = EventBus()
        status_listener, trade_listener = Mock(), Mock()
        bus.subscribe(ConnectionStatusEvent, status_listener)
        bus.subscribe(TradeExecutedEvent, trade_listener)

        event = ConnectionStatusEvent(ConnectionStatus.CONNECTED)
        delivered = bus.publish(event)

        assert delivered == 1
        status_listener.assert_called_once_with(event)
        trade_listener.assert_not_called()

    def test_delivery_in_subscription_order(self):
        bus = EventBus()
        calls = []
        bus.subscribe(ConnectionStatusEvent, lambda e: calls.append("first"))
        bus.subscribe(ConnectionStatusEvent, lambda e: calls.append("second"))

        bus.publish(ConnectionStatusEvent(ConnectionStatus.CONNECTING))

        assert calls == ["first", "second"]

    def test_failing_listener_is_isolated(self):
        bus = EventBus()
        bus.subscribe(ConnectionStatusEvent, Mock(side_effect=ValueError("bad")))
        healthy = Mock()
        bus.subscribe(ConnectionStatusEvent, healthy)

        delivered = bus.publish(ConnectionStatusEvent(ConnectionStatus.RECONNECTING))

        assert delivered == 1
        healthy.assert_called_once()

    def test_unsubscribe(self):
        bus = EventBus()
        listener = Mock()
        unsubscribe = bus.subscribe(ConnectionStatusEvent, listener)

        unsubscribe()
        unsubscribe()
        bus.publish(ConnectionStatusEvent(ConnectionStatus.CONNECTED))

        listener.assert_not_called()
        assert bus.listener_count(ConnectionStatusEvent) == 0

    def test_listener_may_unsubscribe_during_delivery(self):
        bus = EventBus()
        other = Mock()
        handles = {}

        def once(event):
            handles["self"]()

        handles["self"] = bus.subscribe(ConnectionStatusEvent, once)
        bus.subscribe(ConnectionStatusEvent, other)

        bus.publish(ConnectionStatusEvent(ConnectionStatus.CONNECTED))

        other.assert_called_once()
        assert bus.listener_count(ConnectionStatusEvent) == 1

    def test_clear(self):
        bus = EventBus()
        bus.subscribe(ConnectionStatusEvent, Mock())
        bus.clear()
        assert bus.publish(ConnectionStatusEvent(ConnectionStatus.CONNECTED)) == 0
