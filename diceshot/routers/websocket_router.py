import logging
import uuid

import anyio
from broadcaster import Broadcast
from fastapi import APIRouter, WebSocket

from ..game import RoomManager
from .websocket_handler import WebSocketHandler

log = logging.getLogger(__name__)
router = APIRouter()

room_manager: RoomManager | None = None


def get_room_manager() -> RoomManager:
    """Dependency to get the room manager instance"""
    if room_manager is None:
        raise RuntimeError("Room manager not initialized")
    return room_manager


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """Main WebSocket endpoint; the connection id is the player's handle"""
    manager = get_room_manager()
    connection = str(uuid.uuid4())

    await websocket.accept()
    await websocket.send_json({"type": "connected", "connection": connection})

    try:
        async with manager.broadcast.subscribe(channel=manager.channel(connection)) as subscriber:
            async with anyio.create_task_group() as task_group:

                async def run_message_handler() -> None:
                    """Task to handle incoming WebSocket messages"""
                    await WebSocketHandler.handle_messages(
                        websocket=websocket, connection=connection, manager=manager
                    )
                    task_group.cancel_scope.cancel()

                task_group.start_soon(run_message_handler)

                # Handle outgoing messages to this client
                await WebSocketHandler.broadcast_to_client(websocket=websocket, subscriber=subscriber)

    except Exception as e:
        log.error(f"WebSocket error for connection {connection}: {e}")
        raise


async def init_room_manager(broadcast: Broadcast) -> RoomManager:
    """Initialize the global room manager instance"""
    global room_manager
    room_manager = RoomManager(broadcast)
    return room_manager
