import asyncio
import enum
from typing import Optional

from wsrelay.logs import Logger
from wsrelay.typings import LoggerLike


class State(enum.IntEnum):
    """A websocket connection is in one of these four states."""

    CONNECTING, OPEN, CLOSING, CLOSED = range(4)


class Connection:
    """
    One client of the relay: a pair of asyncio streams plus an identity.

    Outbound frames go through a bounded queue drained by a writer task, so
    :meth:`send` never waits on the peer. Frames are written in the order
    they were queued.

    Args:
        reader: the stream the client's bytes are read from.
        writer: the stream frames are written to.
        max_queue: the number of frames buffered before :meth:`send`
            starts dropping them.
        close_timeout: seconds :meth:`close` waits for queued frames to be
            flushed.

    """

    def __init__(self,
                 reader: asyncio.StreamReader,
                 writer: asyncio.StreamWriter,
                 *,
                 max_queue: int = 2 ** 5,
                 close_timeout: float = 10.0,
                 logger: Optional['LoggerLike'] = None):
        if logger is None:
            logger = Logger.get_logger('wsrelay.connection')
        self.reader = reader
        self.writer = writer
        self.close_timeout = close_timeout
        self.logger = logger
        self.state = State.CONNECTING
        self.buffer = bytearray()
        self.outbound: asyncio.Queue[Optional[bytes]] = asyncio.Queue(maxsize=max_queue)
        self.writer_task: Optional[asyncio.Task[None]] = None

        peer = writer.get_extra_info('peername')
        if isinstance(peer, tuple) and len(peer) >= 2:
            self.id = f"{peer[0]}:{peer[1]}"
        else:
            self.id = f"conn-{id(self):x}"

    def __repr__(self):
        return f"<Connection id={self.id} state={self.state.name}>"

    @property
    def open(self) -> bool:
        return self.state is State.OPEN

    async def read(self, n: int) -> bytes:
        """
        Read at most ``n`` bytes. An empty result means the client is gone.

        """
        try:
            return await self.reader.read(n)
        except OSError as exc:
            self.logger.debug(f"read from {self.id} failed: {exc!r}")
            return b''

    async def write(self, data: bytes) -> None:
        """
        Write ``data`` directly, bypassing the outbound queue. Only meant for
        the handshake, before the writer task runs.

        """
        self.writer.write(data)
        await self.writer.drain()

    def start(self) -> None:
        """
        Mark the connection as open and start its writer task.

        """
        assert self.state is State.CONNECTING
        self.state = State.OPEN
        self.writer_task = asyncio.get_running_loop().create_task(self._write_loop())

    def send(self, data: bytes) -> bool:
        """
        Queue a frame for this client.

        Returns:
            bool: whether the frame was queued. It isn't when the connection
                isn't open or when the client doesn't keep up.

        """
        if self.state is not State.OPEN:
            return False
        try:
            self.outbound.put_nowait(data)
        except asyncio.QueueFull:
            self.logger.warning(f"outbound queue of {self.id} is full, frame dropped")
            return False
        return True

    async def _write_loop(self) -> None:
        while True:
            data = await self.outbound.get()
            if data is None:
                return
            try:
                self.writer.write(data)
                await self.writer.drain()
            except OSError as exc:
                self.logger.warning(f"write to {self.id} failed: {exc!r}")
                self.state = State.CLOSING
                return

    async def close(self) -> None:
        """
        Flush queued frames, then close the TCP connection. Idempotent.

        """
        if self.state is State.CLOSED:
            return
        self.state = State.CLOSING

        if self.writer_task is not None and not self.writer_task.done():
            try:
                self.outbound.put_nowait(None)
            except asyncio.QueueFull:
                self.writer_task.cancel()
            else:
                try:
                    await asyncio.wait_for(self.writer_task, self.close_timeout)
                except asyncio.TimeoutError:
                    self.logger.debug(f"timed out flushing {self.id}")

        self.writer.close()
        try:
            await self.writer.wait_closed()
        except OSError as exc:
            self.logger.debug(f"closing {self.id} failed: {exc!r}")
        self.state = State.CLOSED
