import json

import pytest

from httpengine.headers import HeaderMap
from httpengine.parser import Method, ParseError, parse_response_headers
from httpengine.socket import Socket, StatusCode, status_reason

METHOD = b"POST"
PATH = b"/test"
STATUS_CODE = 404
STATUS_REASON = b"NOT FOUND"
DATA = b"test"


class FakeTransport:
    def __init__(self):
        self.written = bytearray()
        self.closed = False

    def write(self, data):
        self.written += data

    def close(self):
        self.closed = True

    def get_extra_info(self, name):
        return ("127.0.0.1", 5555) if name == "peername" else None


def make_headers():
    return HeaderMap({"Content-Type": "text/plain", "Content-Length": str(len(DATA))})


def request(method, path, headers=None):
    lines = [method + b" " + path + b" HTTP/1.1"]
    for name, value in (headers.items() if headers else []):
        lines.append(bytes(name) + b": " + value)
    return b"\r\n".join(lines) + b"\r\n\r\n"


def response(raw):
    head, _, body = bytes(raw).partition(b"\r\n\r\n")
    code, reason, headers = parse_response_headers(head)
    return code, reason, headers, body


@pytest.fixture
def pair():
    transport = FakeTransport()
    return transport, Socket(transport)


def test_properties(pair):
    transport, server = pair
    headers = make_headers()
    server.feed(request(METHOD, PATH, headers))

    assert server.is_headers_parsed()
    assert server.method is Method.POST
    assert server.raw_path == PATH
    assert server.headers == headers

    server.set_status_code(STATUS_CODE, STATUS_REASON)
    server.set_headers(headers)
    server.write_headers()

    code, reason, out_headers, _ = response(transport.written)
    assert code == STATUS_CODE
    assert reason == STATUS_REASON
    assert out_headers == headers


def test_data(pair):
    transport, server = pair
    server.feed(request(METHOD, PATH, make_headers()))
    server.feed(DATA)

    assert server.content_length == len(DATA)
    assert server.bytes_available() == len(DATA)
    assert server.read_all() == DATA

    server.write_headers()
    server.write(DATA)
    assert response(transport.written)[3] == DATA


def test_redirect(pair):
    transport, server = pair
    server.write_redirect(PATH, True)

    code, _, headers, _ = response(transport.written)
    assert code == StatusCode.MOVED_PERMANENTLY
    assert headers.get("Location") == PATH
    assert transport.closed


def test_signals(pair):
    transport, server = pair
    counts = {"headers_parsed": 0, "ready_read": 0, "about_to_close": 0, "read_channel_finished": 0}
    written = []
    for name in counts:
        server.connect(name, lambda name=name: counts.__setitem__(name, counts[name] + 1))
    server.connect("bytes_written", written.append)

    server.feed(request(METHOD, PATH, make_headers()))
    assert counts["headers_parsed"] == 1
    assert counts["ready_read"] == 0

    server.feed(DATA)
    assert server.bytes_available() == len(DATA)
    assert counts["ready_read"] > 0

    server.write_headers()
    server.write(DATA)
    assert len(response(transport.written)[3]) == len(DATA)
    assert len(written) > 0
    assert sum(written) == len(DATA)

    assert counts["about_to_close"] == 0
    server.close()
    assert counts["about_to_close"] == 1
    assert counts["read_channel_finished"] == 1


def test_json(pair):
    _, server = pair
    obj = {"a": "b", "c": 123}
    data = json.dumps(obj, indent=4).encode()
    server.feed(
        request(
            METHOD,
            PATH,
            HeaderMap({"Content-Length": str(len(data)), "Content-Type": "application/json"}),
        )
    )
    server.feed(data)
    assert server.is_headers_parsed()
    assert server.bytes_available() >= server.content_length
    assert server.read_json() == obj


def test_read_json_invalid_writes_bad_request(pair):
    transport, server = pair
    server.feed(request(METHOD, PATH, HeaderMap({"Content-Length": "3"})))
    server.feed(b"{{{")
    with pytest.raises(ParseError):
        server.read_json()
    assert response(transport.written)[0] == StatusCode.BAD_REQUEST
    assert transport.closed


def test_write_json(pair):
    transport, server = pair
    server.write_json({"a": 1}, StatusCode.CREATED)
    code, reason, headers, body = response(transport.written)
    assert code == 201
    assert reason == b"CREATED"
    assert headers.get("Content-Type") == b"application/json"
    assert int(headers.get("Content-Length")) == len(body)
    assert json.loads(body) == {"a": 1}


def test_headers_wait_for_terminator(pair):
    _, server = pair
    server.feed(b"GET / HTTP/1.0\r\n")
    assert not server.is_headers_parsed()
    assert server.bytes_available() == 0
    server.feed(b"\r\n")
    assert server.is_headers_parsed()


def test_path_and_query_string(pair):
    _, server = pair
    server.feed(request(b"GET", b"/path?a=b"))
    assert server.path == "/path"
    assert server.query_string == {"a": "b"}
    assert server.content_length == -1


def test_finish_reading_without_content_length(pair):
    _, server = pair
    finished = []
    server.connect("read_channel_finished", lambda: finished.append(True))
    server.feed(request(b"GET", b"/"))
    server.finish_reading()
    assert finished == [True]


def test_write_error_page(pair):
    transport, server = pair
    server.write_error(StatusCode.NOT_FOUND)
    code, reason, headers, body = response(transport.written)
    assert code == 404
    assert reason == b"NOT FOUND"
    assert b"<h1>404 NOT FOUND</h1>" in body
    assert int(headers.get("Content-Length")) == len(body)
    assert headers.get("Content-Type") == b"text/html"


def test_set_header_append(pair):
    transport, server = pair
    server.set_header("X-A", "1")
    server.set_header("X-A", "2", replace=False)
    server.write_headers()
    assert response(transport.written)[2].get("X-A") == b"1, 2"


def test_write_after_close_raises(pair):
    _, server = pair
    server.close()
    with pytest.raises(ValueError):
        server.write(b"x")


def test_unknown_signal(pair):
    _, server = pair
    with pytest.raises(ValueError):
        server.connect("nonexistent", lambda: None)


def test_peer_address(pair):
    _, server = pair
    assert server.peer_address == "127.0.0.1"


@pytest.mark.parametrize(
    "code, reason",
    [(200, b"OK"), (206, b"PARTIAL CONTENT"), (502, b"BAD GATEWAY"), (999, b"UNKNOWN ERROR")],
)
def test_status_reason(code, reason):
    assert status_reason(code) == reason