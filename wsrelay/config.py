from dataclasses import dataclass, field
from typing import Optional

__all__ = ['ServerConfig']


@dataclass
class ServerConfig:
    """
    Settings of a :class:`~wsrelay.server.RelayServer`.

    Attributes:
        host: The address the listening socket is bound to.
        port: The TCP port; ``0`` picks a free one.
        backlog: The depth of the queue of pending connections.
        read_size: The maximum number of bytes taken by one read of a client.
        handshake_limit: The maximum size of a handshake request.
        handshake_timeout: Seconds a client has to complete its handshake.
        max_size: The maximum size of an inbound frame; bigger frames close
            the connection.
        max_queue: The number of outbound frames buffered per client before
            messages to it are dropped.
        close_timeout: Seconds spent flushing a client's outbound frames when
            it is closed.
        log_file: If set, records are also written to this file.
        verbose: Log at DEBUG level.
    """
    host: str = field(default='127.0.0.1')
    port: int = field(default=8080)
    backlog: int = field(default=5)
    read_size: int = field(default=2 ** 12)
    handshake_limit: int = field(default=2 ** 13)
    handshake_timeout: Optional[float] = field(default=10.0)
    max_size: int = field(default=2 ** 20)
    max_queue: int = field(default=2 ** 5)
    close_timeout: float = field(default=10.0)
    log_file: Optional[str] = field(default=None)
    verbose: bool = field(default=False)

    def __post_init__(self):
        if not 0 <= self.port <= 65535:
            raise ValueError(f"port must be in 0..65535, got {self.port}")
        for name in ('backlog', 'read_size', 'handshake_limit', 'max_size', 'max_queue'):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")

    def __repr__(self):
        return f"<ServerConfig host={self.host} port={self.port} backlog={self.backlog}>"
