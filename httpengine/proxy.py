"""Forwarding a request to an upstream HTTP server and relaying its response."""

from __future__ import annotations

import asyncio
import contextlib
from typing import Any

from .parser import Method, ParseError, parse_response_headers
from .socket import Socket, StatusCode

_READ_SIZE = 65536
_HEADER_END = b"\r\n\r\n"


def method_to_string(method: Method | None) -> str:
    """Return the request-line spelling of a method, or "" if there is none."""
    if isinstance(method, Method):
        return method.value
    return ""


class ProxySocket:
    """Join a downstream request to a connection with an upstream server.

    The request line is rewritten to use ``path``; X-Forwarded-For and
    X-Real-IP are added for the downstream peer. The upstream response is
    relayed as it arrives. Any failure before the response headers have been
    relayed is answered with 502; later failures close the downstream socket.
    """

    def __init__(self, socket: Socket, path: str, address: str, port: int) -> None:
        self._downstream = socket
        self._path = path
        self._address = address
        self._port = port
        self._headers_parsed = False
        self._headers_written = False
        self._upstream_read = bytearray()
        self._upstream_write = bytearray()
        self._writer: asyncio.StreamWriter | None = None

        socket.connect("ready_read", self._on_downstream_ready_read)
        socket.connect("disconnected", self._on_downstream_disconnected)

    async def run(self) -> None:
        """Connect upstream and relay data until either side finishes."""
        try:
            reader, writer = await asyncio.open_connection(self._address, self._port)
        except OSError:
            self._on_upstream_error()
            return

        self._writer = writer
        try:
            self._on_upstream_connected()
            while self._downstream.is_open:
                try:
                    data = await reader.read(_READ_SIZE)
                except OSError:
                    self._on_upstream_error()
                    break
                if not data:
                    # The upstream server closed the connection.
                    self._on_upstream_error()
                    break
                self._on_upstream_ready_read(data)
        finally:
            self._writer = None
            writer.close()
            with contextlib.suppress(OSError, asyncio.CancelledError):
                await writer.wait_closed()

    # Downstream events

    def _on_downstream_ready_read(self) -> None:
        data = self._downstream.read_all()
        if self._headers_written and self._writer is not None:
            self._writer.write(data)
        else:
            self._upstream_write += data

    def _on_downstream_disconnected(self) -> None:
        if self._writer is not None:
            self._writer.close()

    # Upstream events

    def _on_upstream_connected(self) -> None:
        writer = self._writer
        assert writer is not None
        downstream = self._downstream

        request_line = f"{method_to_string(downstream.method)} /{self._path} HTTP/1.1\r\n"
        writer.write(request_line.encode("utf-8"))

        headers = downstream.headers
        peer_ip = (downstream.peer_address or "").encode("utf-8")
        original = headers.get(b"X-Forwarded-For")
        if original is None:
            headers.replace(b"X-Forwarded-For", peer_ip)
        else:
            headers.replace(b"X-Forwarded-For", original + b", " + peer_ip)
        if b"X-Real-IP" not in headers:
            headers.replace(b"X-Real-IP", peer_ip)

        for name, value in sorted(headers.items(), key=lambda item: item[0].lower()):
            writer.write(bytes(name) + b": " + value + b"\r\n")
        writer.write(b"\r\n")
        self._headers_written = True

        # Body bytes that arrived before the proxy was attached.
        self._upstream_write += downstream.read_all()
        if self._upstream_write:
            writer.write(bytes(self._upstream_write))
            self._upstream_write.clear()

    def _on_upstream_ready_read(self, data: bytes) -> None:
        downstream = self._downstream
        if self._headers_parsed:
            downstream.write(data)
            return

        self._upstream_read += data
        index = self._upstream_read.find(_HEADER_END)
        if index == -1:
            return

        try:
            status_code, reason, headers = parse_response_headers(
                bytes(self._upstream_read[:index])
            )
        except ParseError:
            downstream.write_error(StatusCode.BAD_GATEWAY)
            return

        downstream.set_status_code(status_code, reason)
        downstream.set_headers(headers)
        downstream.write_headers()
        rest = bytes(self._upstream_read[index + len(_HEADER_END) :])
        if rest:
            downstream.write(rest)

        self._headers_parsed = True
        self._upstream_read.clear()

    def _on_upstream_error(self) -> None:
        if not self._downstream.is_open:
            return
        if self._headers_parsed:
            self._downstream.close()
        else:
            self._downstream.write_error(StatusCode.BAD_GATEWAY)

    def __repr__(self) -> str:
        return f"ProxySocket({self._path!r}, {self._address!r}, {self._port!r})"


def _unused(*_: Any) -> None:  # pragma: no cover - keeps type checkers quiet
    return None