"""Helpers shared by the tests driving a live relay."""

import asyncio
import contextlib
import struct
from typing import AsyncIterator, Callable, Tuple

from wsrelay.config import ServerConfig
from wsrelay.server import RelayServer
from wsrelay.server.ws import frames


KEY = "dGhlIHNhbXBsZSBub25jZQ=="

MASK = b'\x01\x02\x03\x04'


@contextlib.asynccontextmanager
async def running_server(**kwargs) -> AsyncIterator[RelayServer]:
    kwargs.setdefault('port', 0)
    server = RelayServer(ServerConfig(**kwargs))
    await server.start()
    try:
        yield server
    finally:
        await server.close()


def uri(server: RelayServer) -> str:
    host, port = server.address
    return f"ws://{host}:{port}"


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    async def _poll():
        while not predicate():
            await asyncio.sleep(0.01)
    await asyncio.wait_for(_poll(), timeout)


def handshake_request(key_line: str = f"Sec-WebSocket-Key: {KEY}\r\n") -> bytes:
    return ("GET / HTTP/1.1\r\n"
            "Host: 127.0.0.1\r\n"
            "Upgrade: websocket\r\n"
            "Connection: Upgrade\r\n"
            f"{key_line}"
            "Sec-WebSocket-Version: 13\r\n"
            "\r\n").encode()


async def open_raw(server: RelayServer) -> Tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """
    Connect without completing a handshake.
    """
    return await asyncio.open_connection(*server.address)


async def open_raw_websocket(server: RelayServer) -> Tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """
    Connect and complete the handshake by hand.
    """
    reader, writer = await open_raw(server)
    writer.write(handshake_request())
    await writer.drain()
    response = await asyncio.wait_for(reader.readuntil(b"\r\n\r\n"), 2.0)
    assert response.startswith(b"HTTP/1.1 101 Switching Protocols\r\n")
    return reader, writer


def masked_frame(opcode: int, payload: bytes) -> bytes:
    assert len(payload) <= 125
    return bytes([0x80 | opcode, 0x80 | len(payload)]) + MASK + frames.apply_mask(payload, MASK)


async def read_frame(reader: asyncio.StreamReader, timeout: float = 2.0) -> Tuple[int, bytes]:
    async def _read():
        head = await reader.readexactly(2)
        length = head[1] & 0x7F
        if length == 126:
            length = struct.unpack('!H', await reader.readexactly(2))[0]
        elif length == 127:
            length = struct.unpack('!Q', await reader.readexactly(8))[0]
        return head[0] & 0x0F, await reader.readexactly(length)
    return await asyncio.wait_for(_read(), timeout)


async def close_raw(writer: asyncio.StreamWriter) -> None:
    writer.close()
    with contextlib.suppress(OSError):
        await writer.wait_closed()


async def read_to_eof(reader: asyncio.StreamReader, timeout: float = 2.0) -> bytes:
    """
    Read until the server closes. A reset counts as a close: the kernel sends
    one when the server closes with unread bytes.
    """
    try:
        return await asyncio.wait_for(reader.read(), timeout)
    except ConnectionResetError:
        return b""
