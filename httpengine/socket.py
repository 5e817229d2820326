"""An HTTP connection: request parsing on one side, response writing on the other."""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from enum import Enum, IntEnum
from typing import Any

from .headers import HeaderMap
from .parser import Method, ParseError, parse_path, parse_request_headers

SERVER_NAME = "httpengine"

_ERROR_TEMPLATE = (
    "<!DOCTYPE html>"
    "<html>"
    "<head>"
    '<meta charset="utf-8">'
    '<meta name="viewport" content="width=device-width, initial-scale=1.0">'
    "<title>{code} {reason}</title>"
    "</head>"
    "<body>"
    "<h1>{code} {reason}</h1>"
    "<p>"
    "An error has occurred while trying to display the requested resource. "
    "Please contact the website owner if this error persists."
    "</p>"
    "<hr>"
    "<p><em>{server}</em></p>"
    "</body>"
    "</html>"
)

_SIGNALS = frozenset(
    {
        "headers_parsed",
        "ready_read",
        "read_channel_finished",
        "bytes_written",
        "disconnected",
        "about_to_close",
    }
)


class StatusCode(IntEnum):
    """HTTP status codes with a predefined reason phrase."""

    OK = 200
    CREATED = 201
    ACCEPTED = 202
    PARTIAL_CONTENT = 206
    MOVED_PERMANENTLY = 301
    FOUND = 302
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    CONFLICT = 409
    INTERNAL_SERVER_ERROR = 500
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503
    HTTP_VERSION_NOT_SUPPORTED = 505


_REASONS = {
    StatusCode.OK: b"OK",
    StatusCode.CREATED: b"CREATED",
    StatusCode.ACCEPTED: b"ACCEPTED",
    StatusCode.PARTIAL_CONTENT: b"PARTIAL CONTENT",
    StatusCode.MOVED_PERMANENTLY: b"MOVED PERMANENTLY",
    StatusCode.FOUND: b"FOUND",
    StatusCode.BAD_REQUEST: b"BAD REQUEST",
    StatusCode.UNAUTHORIZED: b"UNAUTHORIZED",
    StatusCode.FORBIDDEN: b"FORBIDDEN",
    StatusCode.NOT_FOUND: b"NOT FOUND",
    StatusCode.METHOD_NOT_ALLOWED: b"METHOD NOT ALLOWED",
    StatusCode.CONFLICT: b"CONFLICT",
    StatusCode.BAD_GATEWAY: b"BAD GATEWAY",
    StatusCode.SERVICE_UNAVAILABLE: b"SERVICE UNAVAILABLE",
    StatusCode.INTERNAL_SERVER_ERROR: b"INTERNAL SERVER ERROR",
    StatusCode.HTTP_VERSION_NOT_SUPPORTED: b"HTTP VERSION NOT SUPPORTED",
}


def status_reason(status_code: int) -> bytes:
    """Return the reason phrase for a status code."""
    return _REASONS.get(status_code, b"UNKNOWN ERROR")


# Methods below take a parameter named status_reason, which hides the function.
_default_reason = status_reason


class _ReadState(IntEnum):
    HEADERS = 0
    DATA = 1
    FINISHED = 2


class _WriteState(Enum):
    NONE = 0
    HEADERS = 1
    DATA = 2
    FINISHED = 3


def _as_bytes(value: bytes | bytearray | str) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else bytes(value)


class Socket:
    """One HTTP request and its response over a transport.

    The transport needs ``write(data)`` and ``close()``; ``get_extra_info`` is
    used for the peer address when present. Incoming bytes are handed to
    :meth:`feed`. Signals: headers_parsed, ready_read, read_channel_finished,
    bytes_written(count), disconnected and about_to_close.
    """

    def __init__(self, transport: Any) -> None:
        self._transport = transport
        self._callbacks: dict[str, list[Callable[..., Any]]] = {name: [] for name in _SIGNALS}
        self._read_buffer = bytearray()
        self._read_state = _ReadState.HEADERS
        self._request_data_read = 0
        self._request_data_total = -1
        self._request_method: Method | None = None
        self._request_raw_path = b""
        self._request_path = ""
        self._request_query_string: dict[str, str] = {}
        self._request_headers = HeaderMap()
        self._write_state = _WriteState.NONE
        self._response_status_code = 200
        self._response_status_reason = _default_reason(200)
        self._response_headers = HeaderMap()
        self._response_header_remaining = 0
        self._open = True

    # Signals

    def connect(self, signal: str, callback: Callable[..., Any]) -> None:
        """Call callback whenever signal is emitted."""
        if signal not in _SIGNALS:
            raise ValueError(f"unknown signal: {signal}")
        self._callbacks[signal].append(callback)

    def _emit(self, signal: str, *args: Any) -> None:
        for callback in list(self._callbacks[signal]):
            callback(*args)

    # Transport events

    def feed(self, data: bytes) -> None:
        """Hand bytes received from the peer to the socket."""
        self._read_buffer += data
        if self._read_state is _ReadState.HEADERS and not self._read_headers():
            return
        if self._read_state is _ReadState.DATA:
            self._read_data()
        elif self._read_state is _ReadState.FINISHED:
            self._read_buffer.clear()

    def finish_reading(self) -> None:
        """Signal that the peer will send no more data."""
        if self._request_data_total == -1:
            self._emit("read_channel_finished")

    def connection_lost(self) -> None:
        """Signal that the connection has been closed."""
        self._emit("disconnected")

    def bytes_written(self, count: int) -> None:
        """Account for bytes written; only body bytes are reported onward."""
        if self._write_state is _WriteState.HEADERS:
            if self._response_header_remaining - count > 0:
                self._response_header_remaining -= count
            else:
                self._write_state = _WriteState.DATA
                count -= self._response_header_remaining
                self._response_header_remaining = 0
        if self._write_state is _WriteState.DATA:
            self._emit("bytes_written", count)

    def _read_headers(self) -> bool:
        index = self._read_buffer.find(b"\r\n\r\n")
        if index == -1:
            return False
        try:
            method, raw_path, headers = parse_request_headers(bytes(self._read_buffer[:index]))
            path, query_string = parse_path(raw_path)
        except ParseError:
            self.write_error(StatusCode.BAD_REQUEST)
            return False

        self._request_method = method
        self._request_raw_path = raw_path
        self._request_headers = headers
        self._request_path = path
        self._request_query_string = query_string

        del self._read_buffer[: index + 4]
        self._read_state = _ReadState.DATA

        length = headers.get(b"Content-Length")
        if length is not None:
            try:
                self._request_data_total = int(length)
            except ValueError:
                self._request_data_total = 0

        self._emit("headers_parsed")
        return True

    def _read_data(self) -> None:
        if self._read_buffer:
            self._emit("ready_read")
        if (
            self._request_data_total != -1
            and self._request_data_read + len(self._read_buffer) >= self._request_data_total
        ):
            self._read_state = _ReadState.FINISHED
            self._emit("read_channel_finished")

    # Request

    @property
    def method(self) -> Method | None:
        return self._request_method

    @property
    def raw_path(self) -> bytes:
        return self._request_raw_path

    @property
    def path(self) -> str:
        """Decoded request path without the query string."""
        return self._request_path

    @property
    def query_string(self) -> dict[str, str]:
        return dict(self._request_query_string)

    @property
    def headers(self) -> HeaderMap:
        return self._request_headers.copy()

    @property
    def content_length(self) -> int:
        """Value of the Content-Length header, or -1 if it was not sent."""
        return self._request_data_total

    @property
    def peer_address(self) -> str | None:
        get_extra_info = getattr(self._transport, "get_extra_info", None)
        if get_extra_info is None:
            return None
        peer = get_extra_info("peername")
        if isinstance(peer, (tuple, list)) and peer:
            return str(peer[0])
        return None if peer is None else str(peer)

    @property
    def is_open(self) -> bool:
        return self._open

    def bytes_available(self) -> int:
        """Number of body bytes ready to be read."""
        if self._read_state > _ReadState.HEADERS:
            return len(self._read_buffer)
        return 0

    def is_headers_parsed(self) -> bool:
        return self._read_state > _ReadState.HEADERS

    def read(self, size: int = -1) -> bytes:
        """Read up to size bytes of the request body (all if size is negative)."""
        if self._read_state is _ReadState.HEADERS:
            return b""
        count = len(self._read_buffer) if size < 0 else min(size, len(self._read_buffer))
        data = bytes(self._read_buffer[:count])
        del self._read_buffer[:count]
        self._request_data_read += count
        return data

    def read_all(self) -> bytes:
        return self.read()

    def read_json(self) -> Any:
        """Decode the body as JSON; answers 400 and raises ParseError on failure."""
        try:
            return json.loads(self.read_all())
        except (ValueError, UnicodeDecodeError) as exc:
            self.write_error(StatusCode.BAD_REQUEST)
            raise ParseError("request body is not valid JSON") from exc

    # Response

    def set_status_code(self, status_code: int, status_reason: bytes | None = None) -> None:
        self._response_status_code = int(status_code)
        self._response_status_reason = (
            _default_reason(status_code) if status_reason is None else _as_bytes(status_reason)
        )

    def set_header(self, name: bytes | str, value: bytes | str, replace: bool = True) -> None:
        """Set a response header, or append to an existing one when not replacing."""
        value = _as_bytes(value)
        existing = self._response_headers.get(name)
        if replace or existing is None:
            self._response_headers.replace(name, value)
        else:
            self._response_headers.replace(name, existing + b", " + value)

    def set_headers(self, headers: HeaderMap | Mapping[Any, Any]) -> None:
        self._response_headers = (
            headers.copy() if isinstance(headers, HeaderMap) else HeaderMap(headers)
        )

    def _send(self, data: bytes) -> None:
        if not self._open:
            raise ValueError("I/O operation on closed socket")
        self._transport.write(data)
        self.bytes_written(len(data))

    def write_headers(self) -> None:
        """Write the status line and response headers."""
        lines = [
            b"HTTP/1.0 "
            + str(self._response_status_code).encode("ascii")
            + b" "
            + self._response_status_reason
        ]
        for name in sorted(self._response_headers, key=bytes.lower):
            lines.append(bytes(name) + b": " + b", ".join(self._response_headers.values_for(name)))
        header = b"\r\n".join(lines) + b"\r\n\r\n"

        self._write_state = _WriteState.HEADERS
        self._response_header_remaining = len(header)
        self._send(header)

    def write(self, data: bytes) -> int:
        """Write body data, writing the headers first if needed."""
        if not self._open:
            raise ValueError("I/O operation on closed socket")
        if self._write_state is _WriteState.NONE:
            self.write_headers()
        data = bytes(data)
        self._send(data)
        return len(data)

    def write_redirect(self, path: bytes | str, permanent: bool = False) -> None:
        self.set_status_code(StatusCode.MOVED_PERMANENTLY if permanent else StatusCode.FOUND)
        self.set_header(b"Location", path)
        self.write_headers()
        self.close()

    def write_error(self, status_code: int, status_reason: bytes | None = None) -> None:
        """Write an HTML error page and close the socket."""
        self.set_status_code(status_code, status_reason)
        data = _ERROR_TEMPLATE.format(
            code=self._response_status_code,
            reason=self._response_status_reason.decode("utf-8", "replace"),
            server=SERVER_NAME,
        ).encode("utf-8")
        self.set_header(b"Content-Length", str(len(data)))
        self.set_header(b"Content-Type", b"text/html")
        self.write_headers()
        self.write(data)
        self.close()

    def write_json(self, document: Any, status_code: int = StatusCode.OK) -> None:
        """Write a JSON document and close the socket."""
        data = (json.dumps(document, indent=4) + "\n").encode("utf-8")
        self.set_status_code(status_code)
        self.set_header(b"Content-Length", str(len(data)))
        self.set_header(b"Content-Type", b"application/json")
        self.write(data)
        self.close()

    def close(self) -> None:
        """Close the socket and the underlying transport."""
        if not self._open:
            return
        self._emit("about_to_close")
        self._open = False
        self._read_state = _ReadState.FINISHED
        self._write_state = _WriteState.FINISHED
        self._transport.close()