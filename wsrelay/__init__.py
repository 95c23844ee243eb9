"""
A websocket broadcast relay: every text message a client sends is forwarded
to all the other connected clients.
"""

from wsrelay.config import ServerConfig
from wsrelay.server import RelayServer, ConnectionRegistry


__all__ = ['ServerConfig', 'RelayServer', 'ConnectionRegistry']
