"""
This package implements the smallest server side of `RFC 6455`_ needed by a
text relay.

It follows the layout of the famous Python project `websockets`_ by Aymeric
Augustin and other contributors, with most of the protocol removed: there
are no extensions, no subprotocols, no fragmented messages and no HTTP
parsing beyond the ``Sec-WebSocket-Key`` header. Everything here is pure;
sockets are handled by :mod:`wsrelay.server`.

Decoding a client frame and answering it looks like this::

    from wsrelay.server.ws import frames

    result = frames.decode(data)
    if result.ok:
        reply = frames.encode(result.frame.text)


.. _`RFC 6455`: https://datatracker.ietf.org/doc/html/rfc6455.html
.. _`websockets`: https://github.com/python-websockets/websockets
"""

from wsrelay.server.ws.exception import WebsocketException, HandshakeError, FrameDecodeError
from wsrelay.server.ws.frames import Frame, DecodeResult, decode, encode
from wsrelay.server.ws.handshake import HandshakeResponse, negotiate, accept_key


__all__ = ['WebsocketException', 'HandshakeError', 'FrameDecodeError',
           'Frame', 'DecodeResult', 'decode', 'encode',
           'HandshakeResponse', 'negotiate', 'accept_key']
