"""Chat router providing the WebSocket endpoint.

This module provides:
    - WebSocket /ws/chat: Real-time room chat

Frames in both directions are JSON objects whose ``type`` field names the
event; the remaining fields are the event payload.

Protocol Flow:
    1. Client connects
    2. Client sends: {type: "authenticate", handle}
       → Server sends: {type: "authenticated", handle, id}
    3. Client sends: {type: "join_room", roomName}
       → Server sends: {type: "room_joined", roomId, roomName, members, messages}
       → Server broadcasts: {type: "user_joined", handle, roomName}
    4. Client sends: {type: "send_message", content}
       → Server sends: {type: "message_sent", messageId, content, handle, timestamp, status}
       → Server broadcasts: {type: "new_message", messageId, content, handle, timestamp}
    5. On disconnect → Server broadcasts: {type: "user_left", handle, roomName}

See ``protocol.py`` for the full event list.
"""
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from .protocol import ChatProtocol

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws/chat")
async def websocket_chat_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint for one chat connection.

    Events from this connection are handled strictly one at a time; the
    loop does not read the next frame until the previous event is done.

    Args:
        websocket: The WebSocket connection.
    """
    protocol: ChatProtocol = websocket.app.state.protocol
    session = await protocol.manager.connect(websocket)

    try:
        while True:
            try:
                data = await websocket.receive_json()
            except ValueError:
                # Malformed JSON; the connection itself is still usable
                await protocol.manager.send(
                    session, "error", {"message": "Invalid message format"}
                )
                continue

            await protocol.handle_event(session, data)

    except WebSocketDisconnect:
        logger.info(f"[WS] Client {session.connection_id[:8]} disconnected")
    finally:
        await protocol.handle_disconnect(session)
