"""Unit tests for the opening handshake."""

import pytest

from wsrelay.server.ws.exception import HandshakeError, WebsocketException
from wsrelay.server.ws.handshake import accept_key, negotiate, reject, HandshakeResponse


def _request(key_line: str = "Sec-WebSocket-Key: dGhlIHNhbXBsZSBub25jZQ==\r\n") -> str:
    return ("GET /chat HTTP/1.1\r\n"
            "Host: server.example.com\r\n"
            "Upgrade: websocket\r\n"
            "Connection: Upgrade\r\n"
            f"{key_line}"
            "Sec-WebSocket-Version: 13\r\n"
            "\r\n")


def test_accept_key_matches_rfc_vector() -> None:
    assert accept_key("dGhlIHNhbXBsZSBub25jZQ==") == "s3pPLMBiTxaQ9kYGzzhZRbK+xOo="


def test_negotiate_builds_switching_protocols_response() -> None:
    response = negotiate(_request())

    assert response.accept == "s3pPLMBiTxaQ9kYGzzhZRbK+xOo="
    assert response.text == ("HTTP/1.1 101 Switching Protocols\r\n"
                             "Upgrade: websocket\r\n"
                             "Connection: Upgrade\r\n"
                             "Sec-WebSocket-Accept: s3pPLMBiTxaQ9kYGzzhZRbK+xOo=\r\n"
                             "\r\n")
    assert response.serialize() == response.text.encode()


def test_negotiate_trims_the_key() -> None:
    response = negotiate(_request("Sec-WebSocket-Key:  dGhlIHNhbXBsZSBub25jZQ==  \r\n"))

    assert response == HandshakeResponse("s3pPLMBiTxaQ9kYGzzhZRbK+xOo=")


def test_negotiate_fails_without_key() -> None:
    with pytest.raises(HandshakeError) as exc_info:
        negotiate(_request(""))

    assert exc_info.value.type == 'MissingKey'
    assert exc_info.value.reason == 'missing key'


def test_negotiate_fails_with_empty_key() -> None:
    with pytest.raises(HandshakeError):
        negotiate(_request("Sec-WebSocket-Key:   \r\n"))


def test_negotiate_matches_header_name_case_sensitively() -> None:
    with pytest.raises(HandshakeError) as exc_info:
        negotiate(_request("sec-websocket-key: dGhlIHNhbXBsZSBub25jZQ==\r\n"))

    assert exc_info.value.type == 'MissingKey'


@pytest.mark.parametrize('key', ['not base64!', 'c2hvcnQ='])
def test_negotiate_fails_with_invalid_key(key: str) -> None:
    with pytest.raises(HandshakeError) as exc_info:
        negotiate(_request(f"Sec-WebSocket-Key: {key}\r\n"))

    assert exc_info.value.type == 'InvalidKey'
    assert isinstance(exc_info.value, WebsocketException)


def test_negotiate_fails_on_garbage() -> None:
    with pytest.raises(HandshakeError):
        negotiate("\x16\x03\x01 not http at all")


def test_reject_is_a_bad_request_with_body() -> None:
    response = reject("missing key")

    head, body = response.split(b"\r\n\r\n", 1)
    assert head.startswith(b"HTTP/1.1 400 Bad Request\r\n")
    assert b"Connection: close" in head
    assert f"Content-Length: {len(body)}".encode() in head
    assert b"missing key" in body
