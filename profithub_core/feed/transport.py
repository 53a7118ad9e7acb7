"""
Socket transport for the quote feed.

The connection manager only talks to the ``Transport`` and ``FeedSocket``
protocols, so the websocket implementation can be swapped for an in-memory
one in tests.
"""

from typing import Protocol, Union

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException


class TransportError(Exception):
    """The socket could not be opened or used."""


class TransportClosed(TransportError):
    """The socket was closed by either side."""


class FeedSocket(Protocol):
    """An open text-frame socket."""

    async def send(self, data: str) -> None:
        ...

    async def recv(self) -> Union[str, bytes]:
        """Next frame; raises TransportClosed once the socket is closed."""
        ...

    async def close(self) -> None:
        ...


class Transport(Protocol):
    """Opens sockets to the feed."""

    async def open(self, url: str) -> FeedSocket:
        ...


class WebsocketConnection:
    """FeedSocket over a ``websockets`` client connection"""

    def __init__(self, connection):
        self._connection = connection

    async def send(self, data: str) -> None:
        try:
            await self._connection.send(data)
        except ConnectionClosed as e:
            raise TransportClosed(str(e)) from e

    async def recv(self) -> Union[str, bytes]:
        try:
            return await self._connection.recv()
        except ConnectionClosed as e:
            raise TransportClosed(str(e)) from e

    async def close(self) -> None:
        await self._connection.close()


class WebsocketTransport:
    """
    Transport built on the ``websockets`` library

    Protocol-level pings are disabled; liveness is tracked by the
    connection manager's own ``ping`` requests.
    """

    def __init__(self, max_size=None, **connect_kwargs):
        self.max_size = max_size
        self.connect_kwargs = connect_kwargs

    async def open(self, url: str) -> WebsocketConnection:
        try:
            connection = await websockets.connect(
                url,
                ping_interval=None,
                max_size=self.max_size,
                **self.connect_kwargs
            )
        except WebSocketException as e:
            raise TransportError(f"Handshake rejected: {e}") from e
        return WebsocketConnection(connection)
