"""
Connection manager for the Deriv quote feed.

One ConnectionManager is constructed per session and passed to whatever
needs it. It owns the socket, the outgoing queue, request/response
correlation, the tick symbol table and the reconnect loop. Callers only see
status changes, ticks and request results; socket failures never propagate
out of background tasks.
"""

import asyncio
import json
from collections import deque
from enum import Enum
from typing import Any, Callable, Optional

from ..config.defaults import FeedParams
from ..data.models import DEFAULT_ACTIVE_SYMBOLS, ActiveSymbol, ConnectionLogEntry, LogLevel, Tick
from ..data.parsers import (
    active_symbols_request,
    extract_last_digit,
    forget_all_request,
    forget_request,
    get_error,
    parse_active_symbols,
    parse_json_payload,
    parse_tick_message,
    ping_request,
    ticks_request,
)
from ..errors import (
    DataQualityError,
    FeedConnectionError,
    FeedRequestError,
    FeedRequestTimeout,
    MalformedMessageError,
    NotConnectedError,
)
from ..logging.config import get_connection_logger, log_status_transition
from ..utils.time import utc_now
from .subscriptions import SubscriptionRegistry, TickCallback, TickSubscription
from .transport import FeedSocket, Transport, TransportClosed, TransportError, WebsocketTransport

logger = get_connection_logger(__name__)

WILDCARD = "*"

MessageHandler = Callable[[dict[str, Any]], None]


class ConnectionStatus(str, Enum):
    """Feed connection lifecycle."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


class ConnectionManager:
    """
    Single connection to the quote feed with automatic recovery

    Example:
        >>> manager = ConnectionManager()
        >>> await manager.connect()
        >>> handle = manager.subscribe_ticks("R_100", print)
        >>> handle.unsubscribe()
        >>> await manager.disconnect()
    """

    def __init__(
        self,
        params: Optional[FeedParams] = None,
        transport: Optional[Transport] = None,
        pip_sizes: Optional[dict[str, int]] = None,
    ):
        self.params = params or FeedParams()
        self.transport = transport or WebsocketTransport()
        self.pip_sizes: dict[str, int] = dict(pip_sizes or {})

        self._status = ConnectionStatus.DISCONNECTED
        self._socket: Optional[FeedSocket] = None
        self._outgoing: Optional[asyncio.Queue] = None

        self._reader_task: Optional[asyncio.Task] = None
        self._writer_task: Optional[asyncio.Task] = None
        self._heartbeat_task: Optional[asyncio.Task] = None
        self._connect_task: Optional[asyncio.Task] = None
        self._reconnect_task: Optional[asyncio.Task] = None

        self._intentional_close = False
        self._reconnect_attempts = 0
        self._last_message_at = 0.0
        self._req_id = 0

        self._pending: dict[int, asyncio.Future] = {}
        self._registry = SubscriptionRegistry()
        self._sequences: dict[str, int] = {}
        self._forgotten: set[str] = set()

        self._status_listeners: list[Callable[[ConnectionStatus], None]] = []
        self._handlers: dict[str, list[MessageHandler]] = {}
        self._logs: deque[ConnectionLogEntry] = deque(maxlen=self.params.connection_log_size)

    # Status

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    def is_connected(self) -> bool:
        return self._status == ConnectionStatus.CONNECTED and self._socket is not None

    def on_connection_status(self, callback: Callable[[ConnectionStatus], None]) -> Callable[[], None]:
        """
        Register a status listener

        Returns:
            Function that removes the listener
        """
        self._status_listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._status_listeners:
                self._status_listeners.remove(callback)

        return unsubscribe

    def _set_status(self, status: ConnectionStatus, trigger: str) -> None:
        previous = self._status
        if previous == status:
            return
        self._status = status
        log_status_transition(logger, previous.value, status.value, trigger)

        for listener in list(self._status_listeners):
            try:
                listener(status)
            except Exception as e:
                logger.error("Status listener failed", status=status.value, error=str(e))

    # Diagnostics

    def _log(self, level: LogLevel, message: str, **context: Any) -> None:
        self._logs.append(ConnectionLogEntry(
            level=level,
            message=message,
            timestamp=utc_now(),
            context=context or None,
        ))
        if level == LogLevel.ERROR:
            logger.error(message, **context)
        elif level == LogLevel.WARNING:
            logger.warning(message, **context)
        else:
            logger.info(message, **context)

    def get_connection_logs(self) -> list[ConnectionLogEntry]:
        """Recent diagnostics, oldest first"""
        return list(self._logs)

    # Lifecycle

    async def connect(self) -> None:
        """
        Open the feed connection

        Idempotent: returns at once when connected, and joins the attempt
        already in flight when one exists. Returns without connecting when
        ``disconnect`` is called while the attempt is in flight.

        Raises:
            FeedConnectionError: If the handshake fails or times out
        """
        if self.is_connected():
            return
        self._intentional_close = False
        try:
            await self._attempt("connect")
        except asyncio.CancelledError:
            task = self._connect_task
            if not self._intentional_close or task is None or not task.cancelled():
                raise
            logger.info("Connect attempt abandoned by disconnect")

    async def _attempt(self, trigger: str) -> None:
        if self._connect_task is None or self._connect_task.done():
            self._connect_task = asyncio.ensure_future(self._establish(trigger))
        await asyncio.shield(self._connect_task)

    async def _establish(self, trigger: str) -> None:
        if self._status != ConnectionStatus.RECONNECTING:
            self._set_status(ConnectionStatus.CONNECTING, trigger)

        url = self.params.resolve_url()
        timeout = self.params.handshake_timeout
        try:
            socket = await asyncio.wait_for(self.transport.open(url), timeout=timeout)
        except asyncio.TimeoutError as e:
            self._handshake_failed(trigger)
            raise FeedConnectionError(
                f"Handshake timed out after {timeout}s",
                url=url,
                timeout=timeout,
                retry_count=self._reconnect_attempts,
                max_retries=self.params.max_reconnect_attempts,
            ) from e
        except (OSError, TransportError) as e:
            self._handshake_failed(trigger, error=str(e))
            raise FeedConnectionError(
                f"Could not open feed connection: {e}",
                url=url,
                timeout=timeout,
                retry_count=self._reconnect_attempts,
                max_retries=self.params.max_reconnect_attempts,
            ) from e

        if self._intentional_close:
            await socket.close()
            return

        self._on_open(socket, trigger)

    def _handshake_failed(self, trigger: str, error: Optional[str] = None) -> None:
        self._log(LogLevel.ERROR, "Feed handshake failed", trigger=trigger, error=error)
        if self._status == ConnectionStatus.CONNECTING:
            self._set_status(ConnectionStatus.DISCONNECTED, "handshake_failed")

    def _on_open(self, socket: FeedSocket, trigger: str) -> None:
        loop = asyncio.get_running_loop()
        self._socket = socket
        self._outgoing = asyncio.Queue()
        self._last_message_at = loop.time()
        self._reconnect_attempts = 0
        self._forgotten.clear()

        self._reader_task = asyncio.ensure_future(self._read_loop(socket))
        self._writer_task = asyncio.ensure_future(self._write_loop(socket, self._outgoing))
        self._heartbeat_task = asyncio.ensure_future(self._heartbeat_loop(socket))

        self._log(LogLevel.INFO, "Feed connected", url=self.params.resolve_url(), trigger=trigger)
        self._set_status(ConnectionStatus.CONNECTED, trigger)

        # Feed subscriptions do not survive the socket
        for symbol in self._registry.symbols():
            self._request_ticks(symbol)

    async def disconnect(self) -> None:
        """
        Close the connection on purpose

        Local subscribers are kept and re-subscribed by the next ``connect``.
        """
        self._intentional_close = True
        current = asyncio.current_task()
        for task in (self._reconnect_task, self._connect_task):
            if task is not None and task is not current and not task.done():
                task.cancel()

        socket = self._socket
        self._teardown()
        if socket is not None:
            try:
                await socket.close()
            except (OSError, TransportClosed) as e:
                logger.debug("Socket close failed", error=str(e))

        self._log(LogLevel.INFO, "Feed disconnected")
        self._set_status(ConnectionStatus.DISCONNECTED, "disconnect")

    def _teardown(self) -> None:
        """Stop socket tasks and fail requests waiting on this socket"""
        current = asyncio.current_task()
        for task in (self._reader_task, self._writer_task, self._heartbeat_task):
            if task is not None and task is not current and not task.done():
                task.cancel()
        self._reader_task = self._writer_task = self._heartbeat_task = None

        for req_id, future in list(self._pending.items()):
            if not future.done():
                future.set_exception(NotConnectedError(
                    "Connection closed before a response arrived",
                    operation=f"request {req_id}",
                ))
        self._pending.clear()

        self._socket = None
        self._outgoing = None
        self._registry.forget_subscription_ids()

    def _on_closed(self, socket: FeedSocket, reason: str) -> None:
        if socket is not self._socket:
            return

        self._teardown()
        if self._intentional_close:
            return

        self._log(LogLevel.WARNING, "Feed connection lost", reason=reason)
        self._set_status(ConnectionStatus.RECONNECTING, reason)
        self._reconnect_task = asyncio.ensure_future(self._reconnect_loop())

    def reconnect_delay(self, attempt: int) -> float:
        """Backoff before reconnect attempt ``attempt`` (1-based)"""
        delay = self.params.reconnect_base_delay * self.params.reconnect_factor ** (attempt - 1)
        return min(delay, self.params.reconnect_max_delay)

    async def _reconnect_loop(self) -> None:
        while not self._intentional_close:
            self._reconnect_attempts += 1
            attempt = self._reconnect_attempts

            if attempt > self.params.max_reconnect_attempts:
                self._log(
                    LogLevel.ERROR,
                    "Reconnect attempts exhausted, cooling down",
                    attempts=attempt - 1,
                    cooldown=self.params.reconnect_cooldown,
                )
                self._set_status(ConnectionStatus.DISCONNECTED, "reconnect_exhausted")
                await asyncio.sleep(self.params.reconnect_cooldown)
                if self._intentional_close or self.is_connected():
                    return
                self._reconnect_attempts = 0
                self._set_status(ConnectionStatus.RECONNECTING, "cooldown_elapsed")
                continue

            delay = self.reconnect_delay(attempt)
            self._log(LogLevel.INFO, "Reconnecting", attempt=attempt, delay=round(delay, 3))
            await asyncio.sleep(delay)
            if self._intentional_close or self.is_connected():
                return

            try:
                await self._attempt("reconnect")
            except FeedConnectionError as e:
                logger.warning("Reconnect attempt failed", attempt=attempt, error=str(e))
                continue
            return

    # Socket tasks

    async def _read_loop(self, socket: FeedSocket) -> None:
        loop = asyncio.get_running_loop()
        reason = "socket_closed"
        try:
            while True:
                raw = await socket.recv()
                self._last_message_at = loop.time()
                try:
                    self._handle_raw(raw)
                except Exception as e:
                    # One bad frame must not stop the reader
                    self._log(LogLevel.ERROR, "Dropped message after handling failed",
                              error=str(e), error_type=type(e).__name__)
        except TransportClosed as e:
            reason = str(e) or reason
        except OSError as e:
            reason = f"socket_error: {e}"
        self._on_closed(socket, reason)

    async def _write_loop(self, socket: FeedSocket, queue: asyncio.Queue) -> None:
        while True:
            text = await queue.get()
            try:
                await socket.send(text)
            except (TransportClosed, OSError) as e:
                # The reader sees the same failure and starts recovery
                logger.warning("Send failed", error=str(e))
                return

    async def _heartbeat_loop(self, socket: FeedSocket) -> None:
        loop = asyncio.get_running_loop()
        while True:
            await asyncio.sleep(self.params.heartbeat_interval)
            silence = loop.time() - self._last_message_at
            if silence > self.params.stale_after:
                self._log(LogLevel.WARNING, "Feed is stale, recycling socket",
                          silence=round(silence, 1))
                await socket.close()
                return
            try:
                self.send(ping_request(self._next_req_id()))
            except NotConnectedError:
                return

    # Outgoing

    def _next_req_id(self) -> int:
        self._req_id += 1
        return self._req_id

    def send(self, request: dict[str, Any]) -> None:
        """
        Queue a request for the writer task

        Raises:
            NotConnectedError: If the connection is down
        """
        if not self.is_connected() or self._outgoing is None:
            raise NotConnectedError(operation=next(iter(request), "send"))
        self._outgoing.put_nowait(json.dumps(request))

    async def request(self, payload: dict[str, Any], timeout: Optional[float] = None) -> dict[str, Any]:
        """
        Send a request and wait for its response

        Raises:
            NotConnectedError: If the connection is down or drops before the response
            FeedRequestError: If the feed answers with an error
            FeedRequestTimeout: If no response arrives in time
        """
        req_id = self._next_req_id()
        message = dict(payload)
        message["req_id"] = req_id
        return await self._request(message, req_id, timeout)

    async def _request(self, message: dict[str, Any], req_id: int,
                       timeout: Optional[float]) -> dict[str, Any]:
        timeout = timeout if timeout is not None else self.params.request_timeout
        future = asyncio.get_running_loop().create_future()
        self._pending[req_id] = future
        try:
            self.send(message)
            return await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError as e:
            raise FeedRequestTimeout(
                f"No response to request {req_id} within {timeout}s",
                req_id=req_id,
                timeout=timeout,
            ) from e
        finally:
            self._pending.pop(req_id, None)

    async def get_active_symbols(self) -> list[ActiveSymbol]:
        """
        Discover tradable symbols

        Falls back to the default symbol list when the feed does not answer
        in time or answers with an error.

        Raises:
            NotConnectedError: If the connection is down
        """
        if not self.is_connected():
            raise NotConnectedError(operation="active_symbols")

        req_id = self._next_req_id()
        try:
            response = await self._request(
                active_symbols_request(req_id), req_id, self.params.active_symbols_timeout
            )
            symbols = parse_active_symbols(response)
        except (FeedRequestError, MalformedMessageError) as e:
            self._log(LogLevel.WARNING, "Symbol discovery failed, using defaults", error=str(e))
            symbols = list(DEFAULT_ACTIVE_SYMBOLS)

        for symbol in symbols:
            if symbol.pip_size is not None:
                self.pip_sizes[symbol.symbol] = symbol.pip_size
        return symbols

    # Subscriptions

    def subscribe_ticks(self, symbol: str, callback: TickCallback) -> TickSubscription:
        """
        Receive ticks for a symbol

        The feed is asked for the symbol only for its first local subscriber;
        while offline, the request is made on the next connect.

        Returns:
            Handle that stops delivery when called
        """
        handle, first = self._registry.add(symbol, callback, self._release)
        if first and self.is_connected():
            self._request_ticks(symbol)
        return handle

    def _request_ticks(self, symbol: str) -> None:
        self.send(ticks_request(symbol, self._next_req_id()))
        self._log(LogLevel.INFO, "Subscribed to ticks", symbol=symbol)

    def _release(self, handle: TickSubscription) -> None:
        entry = self._registry.remove(handle)
        if entry is None:
            return
        if self.is_connected() and entry.subscription_id:
            self._forget(entry.subscription_id)
        self._log(LogLevel.INFO, "Unsubscribed from ticks", symbol=entry.symbol)

    def _forget(self, subscription_id: str) -> None:
        if subscription_id in self._forgotten:
            return
        self._forgotten.add(subscription_id)
        self.send(forget_request(subscription_id, self._next_req_id()))

    def unsubscribe_all(self) -> None:
        """Cancel every tick subscription, local and remote"""
        if self.is_connected():
            self.send(forget_all_request(self._next_req_id()))
        handles = self._registry.clear()
        self._log(LogLevel.INFO, "Unsubscribed from all ticks", subscribers=len(handles))

    def subscribed_symbols(self) -> list[str]:
        return self._registry.symbols()

    def add_message_handler(self, msg_type: str, handler: MessageHandler) -> Callable[[], None]:
        """
        Receive raw messages of one ``msg_type``, or every message with ``"*"``

        Returns:
            Function that removes the handler
        """
        self._handlers.setdefault(msg_type, []).append(handler)

        def remove() -> None:
            handlers = self._handlers.get(msg_type, [])
            if handler in handlers:
                handlers.remove(handler)

        return remove

    # Incoming

    def _handle_raw(self, raw) -> None:
        try:
            message = parse_json_payload(raw)
        except MalformedMessageError as e:
            self._log(LogLevel.WARNING, "Dropped malformed message",
                      error=str(e), raw_data=e.raw_data)
            return
        self._dispatch(message)

    def _dispatch(self, message: dict[str, Any]) -> None:
        error = get_error(message)
        msg_type = message.get("msg_type")
        if not isinstance(msg_type, str):
            msg_type = None
        req_id = message.get("req_id")

        future = self._pending.get(req_id) if isinstance(req_id, int) else None
        if future is not None and not future.done():
            if error:
                future.set_exception(FeedRequestError(
                    error.get("message", "Request failed"),
                    req_id=req_id,
                    error=error,
                ))
            else:
                future.set_result(message)
        elif error:
            self._log(LogLevel.WARNING, "Feed error", msg_type=msg_type,
                      code=error.get("code"), error=error.get("message"))

        if msg_type == "tick" and not error:
            try:
                self._handle_tick(message)
            except DataQualityError as e:
                self._log(LogLevel.WARNING, "Dropped malformed tick", error=str(e),
                          error_type=type(e).__name__)

        handlers = list(self._handlers.get(msg_type, ())) if msg_type else []
        handlers.extend(self._handlers.get(WILDCARD, ()))
        for handler in handlers:
            try:
                handler(message)
            except Exception as e:
                logger.error("Message handler failed", msg_type=msg_type, error=str(e))

    def _handle_tick(self, message: dict[str, Any]) -> None:
        quote = parse_tick_message(message)
        entry = self._registry.get(quote.symbol)
        if entry is None:
            # Stream outlived its last subscriber
            if quote.subscription_id and self.is_connected():
                self._forget(quote.subscription_id)
            return

        if entry.subscription_id is None and quote.subscription_id:
            entry.subscription_id = quote.subscription_id

        if quote.pip_size is not None:
            self.pip_sizes[quote.symbol] = quote.pip_size
        pip_size = self.pip_sizes.get(quote.symbol)

        sequence = self._sequences.get(quote.symbol, 0) + 1
        self._sequences[quote.symbol] = sequence

        tick = Tick(
            symbol=quote.symbol,
            price=quote.price,
            epoch=quote.epoch,
            digit=extract_last_digit(quote.price, pip_size),
            sequence=sequence,
            pip_size=pip_size,
            subscription_id=entry.subscription_id,
        )

        for handle in self._registry.handles_for(quote.symbol):
            try:
                handle.deliver(tick)
            except Exception as e:
                logger.error("Tick subscriber failed", symbol=tick.symbol,
                             sequence=sequence, error=str(e))
