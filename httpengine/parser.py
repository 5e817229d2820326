"""Parsing of HTTP request and response headers."""

from __future__ import annotations

from enum import Enum
from urllib.parse import unquote, unquote_to_bytes

from .headers import HeaderMap

_CRLF = b"\r\n"
_VERSIONS = (b"HTTP/1.0", b"HTTP/1.1")


class ParseError(ValueError):
    """Raised when HTTP data cannot be parsed."""


class Method(Enum):
    """HTTP request methods."""

    OPTIONS = "OPTIONS"
    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    TRACE = "TRACE"
    CONNECT = "CONNECT"


def split(data: bytes, delim: bytes, max_split: int = 0) -> list[bytes]:
    """Split data by delim; a max_split of zero means no limit."""
    if not delim:
        raise ValueError("delimiter must not be empty")
    return bytes(data).split(delim, max_split if max_split > 0 else -1)


def parse_path(raw_path: bytes | str) -> tuple[str, dict[str, str]]:
    """Decode a raw request path and return it with its query string items."""
    if isinstance(raw_path, str):
        raw_path = raw_path.encode("utf-8")
    without_fragment = raw_path.split(b"#", 1)[0]
    path_part, _, query = without_fragment.partition(b"?")
    try:
        path = unquote_to_bytes(path_part).decode("utf-8")
        query_text = query.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError("path is not valid UTF-8") from exc

    query_string: dict[str, str] = {}
    for item in query_text.split("&"):
        if not item:
            continue
        key, _, value = item.partition("=")
        query_string[unquote(key)] = unquote(value)
    return path, query_string


def parse_header_list(lines: list[bytes]) -> HeaderMap:
    """Parse lines of the form "name: value" into a header map."""
    headers = HeaderMap()
    for line in lines:
        name, sep, value = line.partition(b":")
        name = name.strip()
        if not sep or not name:
            raise ParseError(f"invalid header line: {line!r}")
        headers.add(name, value.strip())
    return headers


def parse_headers(data: bytes) -> tuple[list[bytes], HeaderMap]:
    """Parse header data into the parts of its first line and its headers."""
    lines = split(data, _CRLF)
    parts = split(lines[0], b" ", 2)
    if len(parts) != 3:
        raise ParseError(f"invalid status line: {lines[0]!r}")
    return parts, parse_header_list(lines[1:])


def parse_request_headers(data: bytes) -> tuple[Method, bytes, HeaderMap]:
    """Parse request headers into method, raw path and headers."""
    parts, headers = parse_headers(data)
    if parts[2] not in _VERSIONS:
        raise ParseError(f"unsupported HTTP version: {parts[2]!r}")
    try:
        method = Method(parts[0].decode("ascii"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise ParseError(f"unknown method: {parts[0]!r}") from exc
    return method, parts[1], headers


def parse_response_headers(data: bytes) -> tuple[int, bytes, HeaderMap]:
    """Parse response headers into status code, reason and headers."""
    parts, headers = parse_headers(data)
    if parts[0] not in _VERSIONS:
        raise ParseError(f"unsupported HTTP version: {parts[0]!r}")
    if not parts[1].isdigit():
        raise ParseError(f"invalid status code: {parts[1]!r}")
    status_code = int(parts[1])
    if not 100 <= status_code <= 599:
        raise ParseError(f"status code out of range: {status_code}")
    return status_code, parts[2], headers