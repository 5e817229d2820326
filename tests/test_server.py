import asyncio

import pytest

from httpengine.server import Server
from httpengine.socket import StatusCode


class RecordingHandler:
    def __init__(self):
        self.path = None
        self.event = asyncio.Event()

    def route(self, socket, path):
        self.path = path
        socket.write_error(StatusCode.OK)
        self.event.set()


async def request(server, data):
    host, port = server.address()
    reader, writer = await asyncio.open_connection(host, port)
    writer.write(data)
    await writer.drain()
    response = await asyncio.wait_for(reader.read(), 5)
    writer.close()
    return response


@pytest.mark.asyncio
async def test_server_routes_path_without_slash():
    handler = RecordingHandler()
    server = Server(handler)
    await server.listen("127.0.0.1")
    try:
        response = await request(server, b"GET /test HTTP/1.0\r\n\r\n")
        await asyncio.wait_for(handler.event.wait(), 5)
        assert handler.path == "test"
        assert response.startswith(b"HTTP/1.0 200 OK\r\n")
    finally:
        await server.close()


@pytest.mark.asyncio
async def test_server_without_handler_answers_500():
    server = Server()
    await server.listen("127.0.0.1")
    try:
        response = await request(server, b"GET / HTTP/1.0\r\n\r\n")
        assert response.startswith(b"HTTP/1.0 500 INTERNAL SERVER ERROR\r\n")
    finally:
        await server.close()


@pytest.mark.asyncio
async def test_bad_request():
    handler = RecordingHandler()
    server = Server(handler)
    await server.listen("127.0.0.1")
    try:
        response = await request(server, b"GET / HTTP/0.9\r\n\r\n")
        assert response.startswith(b"HTTP/1.0 400 BAD REQUEST\r\n")
        assert handler.path is None
    finally:
        await server.close()


@pytest.mark.asyncio
async def test_address_after_listen():
    server = Server()
    await server.listen("127.0.0.1", 0)
    try:
        host, port = server.address()
        assert host == "127.0.0.1"
        assert port > 0
    finally:
        await server.close()


def test_address_before_listen_raises():
    with pytest.raises(RuntimeError):
        Server().address()


@pytest.mark.asyncio
async def test_close_stops_listening():
    server = Server()
    await server.listen("127.0.0.1")
    await server.close()
    with pytest.raises(RuntimeError):
        server.address()


@pytest.mark.asyncio
async def test_serve_forever_before_listen_raises():
    with pytest.raises(RuntimeError):
        await Server().serve_forever()


@pytest.mark.asyncio
async def test_serve_forever_serves_until_cancelled():
    handler = RecordingHandler()
    server = Server(handler)
    await server.listen("127.0.0.1")
    task = asyncio.create_task(server.serve_forever())
    try:
        response = await request(server, b"GET /abc HTTP/1.1\r\n\r\n")
        assert response.startswith(b"HTTP/1.0 200")
        assert handler.path == "abc"
    finally:
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await server.close()