import asyncio
import socket
from typing import Optional, Set, Tuple

from wsrelay.config import ServerConfig
from wsrelay.logs import Logger
from wsrelay.server.connection import Connection
from wsrelay.server.registry import ConnectionRegistry
from wsrelay.server.ws import frames
from wsrelay.server.ws.exception import HandshakeError
from wsrelay.server.ws.handshake import negotiate, reject
from wsrelay.typings import LoggerLike


class RelayServer:
    """
    A websocket server relaying every text message to the other clients.

    The server runs on a single asyncio event loop with one task per client.
    A task performs the handshake, registers the client, then reads frames
    until the client goes away::

        server = RelayServer(ServerConfig(port=8080))
        asyncio.run(server.run_forever())

    Only transport setup failures escape :meth:`start`; anything going wrong
    with one client ends that client only.

    Args:
        config: the server settings.
        registry: the registry of open connections; a new one is created if
            not provided.
        logger: logger for this server;
            defaults to ``Logger.get_logger("wsrelay.server")``.

    """

    def __init__(self,
                 config: Optional[ServerConfig] = None,
                 *,
                 registry: Optional[ConnectionRegistry] = None,
                 logger: Optional['LoggerLike'] = None):
        if logger is None:
            logger = Logger.get_logger('wsrelay.server')
        self.config = config if config is not None else ServerConfig()
        self.registry = registry if registry is not None else ConnectionRegistry()
        self.logger = logger
        self.server: Optional[asyncio.Server] = None
        self.closing = False
        # Tasks of every accepted connection, registered or not.
        self.tasks: Set[asyncio.Task] = set()

    @property
    def address(self) -> Tuple[str, int]:
        assert self.server is not None
        return self.server.sockets[0].getsockname()[:2]

    async def start(self) -> asyncio.Server:
        """
        Bind the listening socket and start accepting clients.

        Raises:
            OSError: if the socket cannot be bound or listened on.

        """
        assert self.server is None
        self.server = await asyncio.start_server(self._handle_client,
                                                 self.config.host,
                                                 self.config.port,
                                                 backlog=self.config.backlog,
                                                 limit=self.config.handshake_limit)
        for sock in self.server.sockets:
            if sock.family == socket.AF_INET6:
                name = "[%s]:%d" % sock.getsockname()[:2]
            else:
                name = "%s:%d" % sock.getsockname()[:2]
            self.logger.info(f"server listening on ws://{name}")
        return self.server

    async def run_forever(self) -> None:
        """
        Start the server if needed and serve until cancelled, then close it.

        """
        if self.server is None:
            await self.start()
        try:
            await self.server.serve_forever()
        finally:
            await self.close()

    async def close(self) -> None:
        """
        Stop accepting clients and close every connection. Idempotent.

        """
        if self.server is None or self.closing:
            return
        self.closing = True
        self.server.close()
        tasks = [task for task in self.tasks if task is not asyncio.current_task()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        await self.server.wait_closed()
        self.logger.info("server closed")

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        task = asyncio.current_task()
        self.tasks.add(task)
        connection = Connection(reader, writer,
                                max_queue=self.config.max_queue,
                                close_timeout=self.config.close_timeout,
                                logger=self.logger)
        try:
            if not await self._handshake(connection):
                return
            connection.start()
            await self.registry.add(connection)
            self.logger.info(f"client {connection.id} connected")
            await self._read_loop(connection)
        finally:
            removed = await self.registry.remove(connection)
            await connection.close()
            if removed:
                self.logger.info(f"client {connection.id} disconnected")
            self.tasks.discard(task)

    async def _handshake(self, connection: Connection) -> bool:
        try:
            request = await asyncio.wait_for(connection.reader.readuntil(b'\r\n\r\n'),
                                             self.config.handshake_timeout)
        except asyncio.TimeoutError:
            self.logger.warning(f"handshake of {connection.id} timed out")
            return False
        except asyncio.LimitOverrunError:
            self.logger.warning(f"handshake of {connection.id} exceeds {self.config.handshake_limit} bytes")
            return False
        except asyncio.IncompleteReadError:
            self.logger.debug(f"{connection.id} closed before completing its handshake")
            return False
        except OSError as exc:
            self.logger.debug(f"handshake read from {connection.id} failed: {exc!r}")
            return False

        try:
            response = negotiate(request.decode('latin-1'))
        except HandshakeError as exc:
            self.logger.warning(f"handshake of {connection.id} failed: {exc.msg}")
            try:
                await connection.write(reject(exc.reason))
            except OSError as write_exc:
                self.logger.debug(f"cannot reject {connection.id}: {write_exc!r}")
            return False

        try:
            await connection.write(response.serialize())
        except OSError as exc:
            self.logger.debug(f"handshake write to {connection.id} failed: {exc!r}")
            return False
        return True

    async def _read_loop(self, connection: Connection) -> None:
        buffer = connection.buffer
        while True:
            data = await connection.read(self.config.read_size)
            if not data:
                return
            buffer += data
            while True:
                size = frames.frame_size(buffer)
                if size is None:
                    break
                if size > self.config.max_size:
                    self.logger.warning(f"frame of {size} bytes from {connection.id} is too big")
                    return
                if len(buffer) < size:
                    break
                raw = bytes(buffer[:size])
                del buffer[:size]
                if not await self._dispatch(connection, raw):
                    return

    async def _dispatch(self, connection: Connection, raw: bytes) -> bool:
        """
        Handle one complete frame. Returns whether to keep reading.

        """
        result = frames.decode(raw)
        if not result.ok:
            self.logger.warning(f"dropped frame from {connection.id}: {result.error.msg}")
            return True
        frame = result.frame

        if frame.opcode == frames.OP_TEXT:
            message = frame.text
            self.logger.info(f"received message from {connection.id}: {message!r}")
            delivered = await self.registry.broadcast(frames.encode(message), excluding=connection)
            self.logger.debug(f"message from {connection.id} relayed to {delivered} client(s)")
        elif frame.opcode == frames.OP_CLOSE:
            self.logger.debug(f"{connection.id} sent a close frame")
            connection.send(frames.encode_control(frames.OP_CLOSE, frame.payload[:125]))
            return False
        elif frame.opcode == frames.OP_PING:
            connection.send(frames.encode_control(frames.OP_PONG, frame.payload[:125]))
        elif frame.opcode == frames.OP_PONG:
            pass
        else:
            self.logger.warning(f"dropped frame from {connection.id}: unsupported opcode 0x{frame.opcode:x}")
        return True
