"""Session protocol: connection state machine, delivery and WebSocket endpoint."""

from .manager import ChatSession, ConnectionManager, SessionState
from .protocol import ChatProtocol

__all__ = [
    "ChatProtocol",
    "ChatSession",
    "ConnectionManager",
    "SessionState",
]
