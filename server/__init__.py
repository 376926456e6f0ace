"""
server
------
WebSocket viewer channel.

Re-exports WebSocketServer so callers can write::

    from server import WebSocketServer
"""

from server.websocket_server import WebSocketServer

__all__ = ["WebSocketServer"]
