"""An asyncio TCP server that hands HTTP requests to a handler."""

from __future__ import annotations

import asyncio
import ssl
from typing import Any

from .socket import Socket, StatusCode


class _Connection(asyncio.Protocol):
    def __init__(self, server: "Server") -> None:
        self._server = server
        self._socket: Socket | None = None

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        socket = Socket(transport)
        self._socket = socket
        socket.connect("headers_parsed", lambda: self._server._dispatch(socket))

    def data_received(self, data: bytes) -> None:
        if self._socket is not None:
            self._socket.feed(data)

    def eof_received(self) -> bool:
        if self._socket is None:
            return False
        self._socket.finish_reading()
        # Keep the transport open so a response can still be written.
        return self._socket.is_open

    def connection_lost(self, exc: Exception | None) -> None:
        if self._socket is not None:
            self._socket.connection_lost()


class Server:
    """Listen for HTTP connections and route each request to a handler.

    The handler needs a ``route(socket, path)`` method; the path given to it
    is the request path without its leading slash. With an SSL context,
    connections are served over TLS once the handshake has completed.
    """

    def __init__(self, handler: Any = None, ssl_context: ssl.SSLContext | None = None) -> None:
        self.handler = handler
        self.ssl_context = ssl_context
        self._server: asyncio.AbstractServer | None = None

    def _dispatch(self, socket: Socket) -> None:
        if self.handler is None:
            socket.write_error(StatusCode.INTERNAL_SERVER_ERROR)
        else:
            self.handler.route(socket, socket.path[1:])

    async def listen(self, host: str | None = None, port: int = 0) -> None:
        """Start listening on host and port; 0 lets the system choose a free one."""
        if self._server is not None:
            raise RuntimeError("server is already listening")
        loop = asyncio.get_running_loop()
        self._server = await loop.create_server(
            lambda: _Connection(self), host, port, ssl=self.ssl_context
        )

    def _require_listening(self) -> asyncio.AbstractServer:
        if self._server is None:
            raise RuntimeError("server is not listening")
        return self._server

    def address(self) -> tuple[str, int]:
        """Return the (host, port) the server listens on."""
        server = self._require_listening()
        sockname = server.sockets[0].getsockname()
        return str(sockname[0]), int(sockname[1])

    async def serve_forever(self) -> None:
        """Serve connections until cancelled or closed."""
        await self._require_listening().serve_forever()

    async def close(self) -> None:
        """Stop listening."""
        if self._server is None:
            return
        server, self._server = self._server, None
        server.close()
        await server.wait_closed()