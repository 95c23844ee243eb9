"""Unit tests for the connection registry."""

import asyncio
from typing import List

from wsrelay.server.registry import ConnectionRegistry


class FakeConnection:

    def __init__(self, id: str, accept: bool = True):
        self.id = id
        self.accept = accept
        self.received: List[bytes] = []

    def send(self, data: bytes) -> bool:
        if not self.accept:
            return False
        self.received.append(data)
        return True


class BrokenConnection(FakeConnection):

    def send(self, data: bytes) -> bool:
        raise ConnectionResetError("peer reset")


def test_broadcast_skips_the_sender() -> None:
    async def _run():
        registry = ConnectionRegistry()
        a, b, c = FakeConnection('a'), FakeConnection('b'), FakeConnection('c')
        for client in (a, b, c):
            await registry.add(client)

        delivered = await registry.broadcast(b'frame', excluding=a)

        assert delivered == 2
        assert a.received == []
        assert b.received == [b'frame']
        assert c.received == [b'frame']

    asyncio.run(_run())


def test_broadcast_without_exclusion_reaches_everyone() -> None:
    async def _run():
        registry = ConnectionRegistry()
        a, b = FakeConnection('a'), FakeConnection('b')
        await registry.add(a)
        await registry.add(b)

        assert await registry.broadcast(b'x') == 2

    asyncio.run(_run())


def test_remove_is_idempotent() -> None:
    async def _run():
        registry = ConnectionRegistry()
        a, b = FakeConnection('a'), FakeConnection('b')
        await registry.add(a)
        await registry.add(b)

        assert await registry.remove(b) is True
        assert await registry.remove(b) is False
        assert b not in registry
        assert len(registry) == 1

        await registry.broadcast(b'frame')
        assert b.received == []
        assert a.received == [b'frame']

    asyncio.run(_run())


def test_remove_of_never_added_connection_is_a_noop() -> None:
    async def _run():
        registry = ConnectionRegistry()
        await registry.add(FakeConnection('a'))

        assert await registry.remove(FakeConnection('a')) is False
        assert len(registry) == 1

    asyncio.run(_run())


def test_failing_recipient_does_not_abort_broadcast() -> None:
    async def _run():
        registry = ConnectionRegistry()
        sender = FakeConnection('sender')
        slow = FakeConnection('slow', accept=False)
        broken = BrokenConnection('broken')
        healthy = FakeConnection('healthy')
        for client in (sender, slow, broken, healthy):
            await registry.add(client)

        delivered = await registry.broadcast(b'frame', excluding=sender)

        assert delivered == 1
        assert healthy.received == [b'frame']
        assert len(registry) == 4

    asyncio.run(_run())


def test_concurrent_mutations_during_broadcasts() -> None:
    async def _run():
        registry = ConnectionRegistry()
        clients = [FakeConnection(str(i)) for i in range(20)]
        for client in clients:
            await registry.add(client)

        await asyncio.gather(
            *(registry.broadcast(b'frame', excluding=clients[0]) for _ in range(5)),
            *(registry.remove(client) for client in clients[10:]),
        )

        assert len(registry) == 10
        assert clients[0].received == []
        for client in clients[1:10]:
            assert client.received == [b'frame'] * 5

    asyncio.run(_run())


def test_iteration_is_a_snapshot() -> None:
    async def _run():
        registry = ConnectionRegistry()
        clients = [FakeConnection(str(i)) for i in range(3)]
        for client in clients:
            await registry.add(client)

        seen = []
        for client in registry:
            await registry.remove(client)
            seen.append(client.id)

        assert seen == ['0', '1', '2']
        assert len(registry) == 0

    asyncio.run(_run())
