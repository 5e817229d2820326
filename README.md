# httpengine

A small HTTP server engine built only on the standard library, for embedding
HTTP endpoints in an asyncio program.

## Modules

- `httpengine.headers`: `IByteArray`, a byte string that compares, hashes and
  searches case-insensitively, and `HeaderMap`, a header map with
  case-insensitive names and several values per name (`add`, `replace`, `get`,
  `values_for`, `items`, `copy`).
- `httpengine.parser`: `split`, `parse_path`, `parse_header_list`,
  `parse_headers`, `parse_request_headers` and `parse_response_headers`, plus
  the `Method` enum. Malformed input raises `ParseError` (a `ValueError`).
  Only `HTTP/1.0` and `HTTP/1.1` are accepted.
- `httpengine.range`: `Range`, an HTTP byte range. `Range.parse(text, data_size)`
  reads values such as `"10-600"`, `"10-"` or `"-500"`; text it cannot read
  gives an invalid range. The properties `start`, `end`, `length`, `data_size`,
  `is_valid` and `content_range` describe it, and `with_data_size` binds it to
  another data size.
- `httpengine.socket`: `Socket`, one request and its response over a
  transport, the `StatusCode` enum and `status_reason`. A socket parses the
  request as bytes arrive through `feed`, exposes `method`, `path`, `raw_path`,
  `query_string`, `headers`, `content_length` and `peer_address`, and writes the
  response with `set_status_code`, `set_header`, `set_headers`,
  `write_headers`, `write`, `write_error`, `write_redirect` and `write_json`.
  `read`, `read_all` and `read_json` read the request body. Callbacks are
  attached with `connect(signal, callback)` for the signals `headers_parsed`,
  `ready_read`, `read_channel_finished`, `bytes_written`, `disconnected` and
  `about_to_close`.
- `httpengine.copier`: `DeviceCopier`, which copies a file object or a path to
  another file object or path block by block. `set_range(start, end)` limits a
  seekable source to a byte range; `copy()` returns the number of bytes written
  and raises `CopyError` when a device cannot be opened, read, written or
  sought.
- `httpengine.methodhandler`: `MethodHandler`, which calls a callback
  registered for the request path. Unknown paths get `404 NOT FOUND`; a
  callback that cannot be called with the socket as its only argument gives
  `500 INTERNAL SERVER ERROR`. With `read_all=True` (the default) the callback
  waits until the whole request body has arrived.
- `httpengine.server`: `Server`, an asyncio TCP server, with TLS when given an
  `ssl.SSLContext`. Once a request's headers are parsed, it calls
  `handler.route(socket, path)` with the path minus its leading slash, or
  answers `500` if no handler is set.
- `httpengine.proxy`: `ProxySocket`, which forwards a downstream request to an
  upstream server, adding `X-Forwarded-For` and `X-Real-IP`, and relays the
  response. Failures before the upstream headers arrive are answered with
  `502 BAD GATEWAY`. `method_to_string` gives a method's request-line spelling.

## Installing

```
pip install .
```

## Example

```python
import asyncio

from httpengine.methodhandler import MethodHandler
from httpengine.server import Server
from httpengine.socket import StatusCode


def hello(socket):
    socket.write_json({"message": "hello"}, StatusCode.OK)


async def main():
    handler = MethodHandler()
    handler.register_method("hello", hello)

    server = Server(handler)
    await server.listen("127.0.0.1", 8000)
    print("listening on", server.address())
    await server.serve_forever()


asyncio.run(main())
```

A request for `/hello` is answered with the JSON document; any other path gets
a `404 NOT FOUND` error page. Each callback must close the socket, which
`write_json`, `write_error` and `write_redirect` do.

## Byte ranges

```python
from httpengine.range import Range

r = Range.parse("-500", 1000)
r.start            # 500
r.end              # 999
r.length           # 500
r.content_range    # "500-999/1000"
```

## Proxying

`ProxySocket` is used from inside a handler and driven by awaiting its `run()`
coroutine:

```python
import asyncio

from httpengine.proxy import ProxySocket


class ProxyRoute:
    def route(self, socket, path):
        asyncio.ensure_future(ProxySocket(socket, path, "127.0.0.1", 9000).run())
```

## What it does not do

- Responses are written as `HTTP/1.0` and each connection carries one request;
  there is no keep-alive or chunked transfer encoding.
- There is no general routing handler with redirects or nested handlers, no
  handler that serves files from a directory, and no authentication middleware.
  `MethodHandler` is the only handler provided; any object with a
  `route(socket, path)` method can be given to `Server`.
- There is no command-line program; the package is used as a library.

## Running the tests

```
pip install .[test]
pytest
```