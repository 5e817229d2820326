"""A handler that dispatches requests to callbacks registered by name."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .socket import Socket, StatusCode


@dataclass(frozen=True)
class _Method:
    callback: Any
    read_all: bool


class MethodHandler:
    """Route requests to callbacks keyed by the request path.

    Each callback receives the :class:`Socket` for the request and is
    responsible for closing it. Unknown paths are answered with 404; a
    callback that cannot take the socket as its only argument gives 500.
    """

    def __init__(self) -> None:
        self._methods: dict[str, _Method] = {}

    def register_method(
        self, name: str, callback: Callable[[Socket], Any], read_all: bool = True
    ) -> None:
        """Register callback for name.

        With read_all, the callback runs only once the whole request body
        has been received.
        """
        self._methods[name] = _Method(callback, read_all)

    def route(self, socket: Socket, path: str) -> None:
        """Route a request to this handler."""
        self.process(socket, path)

    def process(self, socket: Socket, path: str) -> None:
        """Invoke the callback registered for path."""
        method = self._methods.get(path)
        if method is None:
            socket.write_error(StatusCode.NOT_FOUND)
            return

        if not method.read_all or socket.bytes_available() >= socket.content_length:
            self._invoke(socket, method)
        else:
            socket.connect("read_channel_finished", lambda: self._invoke(socket, method))

    @staticmethod
    def _invoke(socket: Socket, method: _Method) -> None:
        try:
            method.callback(socket)
        except TypeError as exc:
            # Only a failure at the call itself (not callable, or arguments
            # that do not fit) means the callback is unusable; errors raised
            # deeper inside the callback are its own.
            traceback = exc.__traceback__
            if traceback is None or traceback.tb_next is not None:
                raise
            if socket.is_open:
                socket.write_error(StatusCode.INTERNAL_SERVER_ERROR)