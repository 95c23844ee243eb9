import asyncio
from typing import Dict, Iterator, List, Optional

from wsrelay.logs import Logger
from wsrelay.typings import LoggerLike, TConnection


class ConnectionRegistry:
    """
    The set of clients that completed their handshake.

    Mutations and broadcasts are serialized by one :class:`asyncio.Lock`.
    Broadcasts iterate over a snapshot, so a client removed meanwhile is
    neither skipped twice nor visited after its removal is visible.

    Args:
        logger: logger for this registry;
            defaults to ``Logger.get_logger("wsrelay.registry")``.

    """

    def __init__(self, logger: Optional['LoggerLike'] = None):
        if logger is None:
            logger = Logger.get_logger('wsrelay.registry')
        self.logger = logger
        self._clients: Dict[str, 'TConnection'] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._clients)

    def __contains__(self, connection: object) -> bool:
        return any(client is connection for client in self._clients.values())

    def __iter__(self) -> Iterator['TConnection']:
        return iter(self.snapshot())

    def snapshot(self) -> List['TConnection']:
        return list(self._clients.values())

    async def add(self, connection: 'TConnection') -> None:
        """
        Register a connection whose handshake succeeded.

        """
        async with self._lock:
            self._clients[connection.id] = connection
        self.logger.debug(f"{connection.id} registered, {len(self._clients)} client(s)")

    async def remove(self, connection: 'TConnection') -> bool:
        """
        Unregister a connection. Removing an absent connection is a no-op.

        Returns:
            bool: whether the connection was registered.

        """
        async with self._lock:
            if self._clients.get(connection.id) is not connection:
                return False
            del self._clients[connection.id]
        self.logger.debug(f"{connection.id} unregistered, {len(self._clients)} client(s)")
        return True

    async def broadcast(self, frame: bytes, excluding: Optional['TConnection'] = None) -> int:
        """
        Deliver an encoded frame to every client but ``excluding``.

        A client that cannot take the frame is skipped; it will be pruned when
        its own read fails.

        Returns:
            int: the number of clients the frame was handed to.

        """
        delivered = 0
        async with self._lock:
            for client in self.snapshot():
                if client is excluding:
                    continue
                try:
                    sent = client.send(frame)
                except OSError as exc:
                    self.logger.warning(f"skipped {client.id} while broadcasting: {exc!r}")
                    continue
                if sent:
                    delivered += 1
                else:
                    self.logger.warning(f"skipped {client.id} while broadcasting")
        return delivered
