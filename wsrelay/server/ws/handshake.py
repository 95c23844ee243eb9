"""
The server side of the opening handshake.

This isn't an HTTP parser. The only header that matters is
``Sec-WebSocket-Key``; it's located with a line match, so the header name is
case-sensitive.
"""
import base64
import binascii
import dataclasses
import hashlib
import http
import re

from wsrelay.server.ws.exception import HandshakeError


GUID = "258EAFA5-E914-47DA-95CA-C5AB0DC85B11"

_key_re = re.compile(r"Sec-WebSocket-Key: (.*)\r\n")


def accept_key(key: str) -> str:
    """
    Compute the value of the Sec-WebSocket-Accept header.

    Args:
        key: value of the Sec-WebSocket-Key header.

    """
    sha1 = hashlib.sha1((key + GUID).encode()).digest()
    return base64.b64encode(sha1).decode()


@dataclasses.dataclass(frozen=True)
class HandshakeResponse:
    """
    The ``101 Switching Protocols`` response accepting an upgrade.

    Attributes:
        accept: value of the Sec-WebSocket-Accept header.
    """

    accept: str

    @property
    def text(self) -> str:
        return ("HTTP/1.1 101 Switching Protocols\r\n"
                "Upgrade: websocket\r\n"
                "Connection: Upgrade\r\n"
                f"Sec-WebSocket-Accept: {self.accept}\r\n"
                "\r\n")

    def serialize(self) -> bytes:
        return self.text.encode()


def extract_key(request: str) -> str:
    """
    Extract and check the Sec-WebSocket-Key header of a raw request.

    Raises:
        HandshakeError: if the header is missing, or if its value isn't the
            base64 encoding of 16 bytes.
    """
    match = _key_re.search(request)
    if match is None or not match.group(1).strip():
        raise HandshakeError("MissingKey: missing key")
    key = match.group(1).strip()

    try:
        raw_key = base64.b64decode(key.encode(), validate=True)
    except binascii.Error as exc:
        raise HandshakeError(f"InvalidKey: invalid key {key!r}") from exc
    if len(raw_key) != 16:
        raise HandshakeError(f"InvalidKey: invalid key {key!r}")

    return key


def negotiate(request: str) -> HandshakeResponse:
    """
    Check a raw handshake request and build the response accepting it.

    Args:
        request: the request line and headers as received, ``\\r\\n``
            separated.

    Returns:
        HandshakeResponse: the response to send back to the client.

    Raises:
        HandshakeError: if the request cannot be upgraded; the connection
            must not be registered.
    """
    return HandshakeResponse(accept_key(extract_key(request)))


def reject(reason: str) -> bytes:
    """
    Build a ``400 Bad Request`` response for a failed handshake.

    A short plain text response is the best fallback when failing to
    establish a websocket connection.
    """
    status = http.HTTPStatus.BAD_REQUEST
    body = f"Failed to open a WebSocket connection: {reason}.\n".encode()
    head = (f"HTTP/1.1 {status.value} {status.phrase}\r\n"
            "Connection: close\r\n"
            "Content-Type: text/plain; charset=utf-8\r\n"
            f"Content-Length: {len(body)}\r\n"
            "\r\n")
    return head.encode() + body
