from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from ..errors import RoomNotFound
from ..game import RoomManager
from .websocket_router import get_room_manager

router = APIRouter()

RoomManagerDep = Annotated[RoomManager, Depends(get_room_manager)]


@router.get("/rooms")
async def get_rooms(manager: RoomManagerDep):
    rooms = manager.coordinator.registry.list_open_rooms()
    return [
        {
            "id": room.id,
            "capacity": room.capacity,
            "player_count": len(room.players),
            "has_password": room.has_password,
            "host": room.host.username if room.host else None,
        }
        for room in rooms
    ]


@router.get("/rooms/{room_id}")
async def get_room(room_id: str, manager: RoomManagerDep):
    try:
        return manager.coordinator.room_snapshot(room_id)
    except RoomNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/quick-match")
async def quick_match(manager: RoomManagerDep, username: str | None = None):
    return {"room_id": manager.coordinator.find_quick_match(username)}
