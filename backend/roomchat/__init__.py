"""Roomchat: room-scoped real-time messaging over WebSockets."""
