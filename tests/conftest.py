"""Pytest configuration and shared fixtures."""

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import pytest

from profithub_core.config.defaults import FeedParams, get_default_config
from profithub_core.feed.transport import TransportClosed
from profithub_core.metrics.digits import rank_digits
from profithub_core.models.analysis import (
    AnalysisSnapshot,
    DigitPower,
    GroupPower,
    PriceDirection,
)

CLOSE = object()


class FakeSocket:
    """In-memory FeedSocket; the test plays the feed."""

    def __init__(self):
        self.incoming: asyncio.Queue = asyncio.Queue()
        self.sent: list[dict[str, Any]] = []
        self.closed = False

    async def send(self, data: str) -> None:
        if self.closed:
            raise TransportClosed("socket closed")
        self.sent.append(json.loads(data))

    async def recv(self):
        item = await self.incoming.get()
        if item is CLOSE:
            raise TransportClosed("closed by peer")
        return item

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.incoming.put_nowait(CLOSE)

    def push(self, message: Dict[str, Any]) -> None:
        self.incoming.put_nowait(json.dumps(message))

    def push_raw(self, raw: str) -> None:
        self.incoming.put_nowait(raw)

    def drop(self) -> None:
        """Server side close."""
        self.closed = True
        self.incoming.put_nowait(CLOSE)

    def sent_of(self, key: str) -> list[dict[str, Any]]:
        return [m for m in self.sent if key in m]


class FakeTransport:
    """Transport handing out FakeSockets; can refuse or stall opens."""

    def __init__(self, failures: int = 0, open_delay: float = 0.0):
        self.failures = failures
        self.open_delay = open_delay
        self.sockets: list[FakeSocket] = []
        self.urls: list[str] = []

    async def open(self, url: str) -> FakeSocket:
        self.urls.append(url)
        if self.open_delay:
            await asyncio.sleep(self.open_delay)
        if self.failures > 0:
            self.failures -= 1
            raise OSError("connection refused")
        socket = FakeSocket()
        self.sockets.append(socket)
        return socket

    @property
    def socket(self) -> FakeSocket:
        return self.sockets[-1]


async def settle(delay: float = 0.02) -> None:
    """Let background reader/writer tasks run."""
    await asyncio.sleep(delay)


def tick_message(symbol: str, quote: float, epoch: int = 1700000000,
                 pip_size: Optional[int] = 2, subscription_id: str = "sub-1") -> Dict[str, Any]:
    tick = {"symbol": symbol, "quote": quote, "epoch": epoch, "id": subscription_id}
    if pip_size is not None:
        tick["pip_size"] = pip_size
    return {
        "echo_req": {"ticks": symbol, "subscribe": 1},
        "msg_type": "tick",
        "subscription": {"id": subscription_id},
        "tick": tick,
    }


def make_snapshot(
    powers: Optional[Dict[int, tuple]] = None,
    even: tuple = (50.0, 0.0),
    odd: tuple = (50.0, 0.0),
    under: tuple = (50.0, 0.0),
    over: tuple = (50.0, 0.0),
    current_digit: int = 5,
    direction: PriceDirection = PriceDirection.FLAT,
    direction_streak: int = 0,
    symbol: str = "R_100",
    sequence: int = 1,
    total_ticks: int = 100,
) -> AnalysisSnapshot:
    """Snapshot with chosen percentages; digits default to 10% and flat."""
    powers = powers or {}
    digit_powers = []
    for digit in range(10):
        percentage, trend = powers.get(digit, (10.0, 0.0))
        digit_powers.append(DigitPower(digit, int(percentage), percentage, trend))
    strongest, second, weakest = rank_digits([dp.percentage for dp in digit_powers])

    def group(values: tuple) -> GroupPower:
        return GroupPower(count=int(values[0]), percentage=values[0], trend=values[1])

    return AnalysisSnapshot(
        symbol=symbol,
        sequence=sequence,
        timestamp=datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc),
        total_ticks=total_ticks,
        window_size=100,
        current_digit=current_digit,
        last_digits=(current_digit,),
        digit_powers=tuple(digit_powers),
        even=group(even),
        odd=group(odd),
        under=group(under),
        over=group(over),
        strongest=strongest,
        second_strongest=second,
        weakest=weakest,
        entropy=1.0,
        power_gap=round(strongest.percentage - weakest.percentage, 1),
        is_balanced=True,
        direction=direction,
        direction_streak=direction_streak,
    )


@pytest.fixture
def default_config():
    """Default configuration instance."""
    return get_default_config()


@pytest.fixture
def snapshot_factory():
    """Factory for hand-built analysis snapshots."""
    return make_snapshot


@pytest.fixture
def fast_feed_params() -> FeedParams:
    """Feed parameters with delays small enough for tests."""
    return FeedParams(
        handshake_timeout=0.5,
        request_timeout=0.2,
        active_symbols_timeout=0.1,
        heartbeat_interval=5.0,
        stale_after=10.0,
        reconnect_base_delay=0.01,
        reconnect_factor=1.0,
        reconnect_max_delay=0.01,
        max_reconnect_attempts=2,
        reconnect_cooldown=0.05,
    )


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def feed_helpers():
    """Helpers for driving a fake feed from async test bodies."""
    class Helpers:
        Transport = FakeTransport
        settle = staticmethod(settle)
        tick = staticmethod(tick_message)
    return Helpers
