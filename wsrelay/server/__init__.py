from wsrelay.server.base import RelayServer
from wsrelay.server.connection import Connection, State
from wsrelay.server.registry import ConnectionRegistry


__all__ = ['RelayServer', 'Connection', 'State', 'ConnectionRegistry']
