class WebsocketException(RuntimeError):
    """
    The base exception of the websocket layer.

    The message is usually written as ``"<Type>: <detail>"``. The part before
    the first colon is exposed as :attr:`type` so that callers can branch on
    the kind of failure without a deep exception hierarchy.
    """

    default_type = 'WebsocketError'

    def __init__(self, msg: str):
        super().__init__(msg)
        self._msg = msg
        if ':' in msg:
            self._type = msg.split(':', 1)[0]
        else:
            self._type = self.default_type

    @property
    def msg(self):
        """
        the message of the Exception
        """
        return self._msg

    @property
    def type(self):
        """
        the type of the exception, e.g. ``InvalidHeader`` or ``MissingMask``
        """
        return self._type

    @property
    def reason(self) -> str:
        """
        the message without its type prefix
        """
        if ':' in self._msg:
            return self._msg.split(':', 1)[1].strip()
        return self._msg


class HandshakeError(WebsocketException):
    """
    Raised when an opening handshake request cannot be upgraded.

    The connection must not be registered and should be closed.
    """

    default_type = 'InvalidHandshake'


class FrameDecodeError(WebsocketException):
    """
    Describes why an inbound frame could not be decoded.

    Instances are returned by :func:`~wsrelay.server.ws.frames.decode`
    rather than raised. The frame is dropped and the connection stays open.
    """

    default_type = 'InvalidFrame'
