"""Room listing endpoint.

Endpoints:
    GET /rooms: Active (non-deleted) rooms, newest first
"""
from fastapi import APIRouter, Request

from .schemas import RoomListResponse, RoomSummary
from .service import RoomDirectory

router = APIRouter(prefix="/rooms", tags=["rooms"])


def _directory(request: Request) -> RoomDirectory:
    return request.app.state.rooms


@router.get("", response_model=RoomListResponse)
async def list_rooms(request: Request) -> RoomListResponse:
    """List active rooms.

    Tombstoned rooms are excluded; their history is still kept.
    """
    rooms = _directory(request).list_active()
    return RoomListResponse(
        rooms=[
            RoomSummary(roomId=r.id, roomName=r.name, createdAt=r.created_at)
            for r in rooms
        ],
        count=len(rooms),
    )
