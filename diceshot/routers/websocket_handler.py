import json
import logging

import pydantic
from fastapi import WebSocket
from fastapi.websockets import WebSocketState

from ..errors import GameError
from ..game import RoomManager
from ..models import (
    CreateRoomRequest,
    JoinRoomRequest,
    QuickMatchRequest,
    ReconnectRequest,
    RollRequest,
    RoomRequest,
    ShootRequest,
    UsePowerUpRequest,
)

log = logging.getLogger(__name__)


class WebSocketHandler:
    """Handles WebSocket message processing and communication"""

    @staticmethod
    async def handle_messages(websocket: WebSocket, connection: str, manager: RoomManager) -> None:
        """Main message handling loop for WebSocket connections"""
        try:
            async for message in websocket.iter_text():
                try:
                    msg_data = json.loads(message)
                    await WebSocketHandler._process_message(msg_data, connection, manager)
                except GameError as e:
                    log.warning(f"Rejected {msg_data.get('type')} from {connection}: {e.code}")
                    await manager.send_to(connection, e.to_dict())
                except (json.JSONDecodeError, pydantic.ValidationError, AttributeError) as e:
                    log.error(f"Error processing message from {connection}: {e}")
                    await manager.send_to(
                        connection,
                        {"type": "error", "code": "invalid_message", "message": "Invalid message format"},
                    )
        finally:
            outcome = manager.coordinator.disconnect(connection)
            if outcome is not None:
                await manager.broadcast_room_state(
                    outcome.room_id, "player_disconnected", username=outcome.username
                )

    @staticmethod
    async def _process_message(msg_data: dict, connection: str, manager: RoomManager) -> None:
        """Process individual WebSocket messages based on type"""
        msg_type = msg_data.get("type")
        handler = WebSocketHandler._handlers.get(msg_type) if isinstance(msg_type, str) else None
        if handler is None:
            await manager.send_to(
                connection,
                {"type": "error", "code": "unknown_message", "message": f"Unknown message type {msg_type}"},
            )
            return
        await handler(msg_data, connection, manager)

    @staticmethod
    async def _handle_create_room(msg_data: dict, connection: str, manager: RoomManager) -> None:
        request = CreateRoomRequest.model_validate(msg_data)
        room = manager.coordinator.create_room(
            request.capacity, request.username, connection, request.password
        )
        await manager.broadcast_room_state(room.id, "room_created")

    @staticmethod
    async def _handle_join_room(msg_data: dict, connection: str, manager: RoomManager) -> None:
        request = JoinRoomRequest.model_validate(msg_data)
        room = manager.coordinator.join_room(
            request.room_id, request.username, connection, request.password
        )
        await manager.broadcast_room_state(room.id, "player_joined", username=request.username)

    @staticmethod
    async def _handle_quick_match(msg_data: dict, connection: str, manager: RoomManager) -> None:
        request = QuickMatchRequest.model_validate(msg_data)
        room_id = manager.coordinator.find_quick_match(request.username)
        await manager.send_to(connection, {"type": "quick_match", "room_id": room_id})

    @staticmethod
    async def _handle_toggle_ready(msg_data: dict, connection: str, manager: RoomManager) -> None:
        request = RoomRequest.model_validate(msg_data)
        player = manager.coordinator.player_for(request.room_id, connection)
        manager.coordinator.toggle_ready(request.room_id, player.username)
        await manager.broadcast_room_state(request.room_id, "room_updated")

    @staticmethod
    async def _handle_start_game(msg_data: dict, connection: str, manager: RoomManager) -> None:
        request = RoomRequest.model_validate(msg_data)
        manager.coordinator.start_game(request.room_id, connection)
        await manager.broadcast_room_state(request.room_id, "game_started")

    @staticmethod
    async def _handle_roll(msg_data: dict, connection: str, manager: RoomManager) -> None:
        request = RollRequest.model_validate(msg_data)
        outcome = manager.coordinator.roll(request.room_id, request.value, connection)
        await manager.broadcast_room_state(
            request.room_id,
            "game_state_updated",
            roll=outcome.value,
            granted_power_up=outcome.granted_power_up.value if outcome.granted_power_up else None,
        )

    @staticmethod
    async def _handle_shoot(msg_data: dict, connection: str, manager: RoomManager) -> None:
        request = ShootRequest.model_validate(msg_data)
        outcome = manager.coordinator.shoot(
            request.room_id, request.target_username, request.target_cell, connection
        )
        await manager.broadcast_room_state(request.room_id, "game_state_updated")
        if outcome.history is not None:
            await manager.broadcast_to_room(
                request.room_id,
                {"type": "game_ended", "history": outcome.history.model_dump(mode="json")},
            )

    @staticmethod
    async def _handle_use_power_up(msg_data: dict, connection: str, manager: RoomManager) -> None:
        request = UsePowerUpRequest.model_validate(msg_data)
        outcome = manager.coordinator.use_power_up(
            request.room_id, request.target_username, request.target_cell, connection
        )
        await manager.broadcast_room_state(
            request.room_id, "power_up_used", effect=outcome.effect.model_dump(mode="json")
        )

    @staticmethod
    async def _handle_end_turn(msg_data: dict, connection: str, manager: RoomManager) -> None:
        request = RoomRequest.model_validate(msg_data)
        manager.coordinator.end_turn(request.room_id, connection)
        await manager.broadcast_room_state(request.room_id, "game_state_updated")

    @staticmethod
    async def _handle_reconnect(msg_data: dict, connection: str, manager: RoomManager) -> None:
        request = ReconnectRequest.model_validate(msg_data)
        room = manager.coordinator.reconnect(connection, request.username, request.room_id)
        await manager.send_to(
            connection, {"type": "rejoin_success", "room": manager.coordinator.room_snapshot(room.id)}
        )
        await manager.broadcast_room_state(room.id, "player_reconnected", username=request.username)

    @staticmethod
    async def _handle_leave(msg_data: dict, connection: str, manager: RoomManager) -> None:
        outcome = manager.coordinator.leave(connection)
        if outcome is None:
            return
        await manager.send_to(connection, {"type": "left", "room_id": outcome.room_id})
        if outcome.room_deleted:
            await manager.send_to_many(
                outcome.connections, {"type": "room_closed", "room_id": outcome.room_id}
            )
            return
        await manager.broadcast_room_state(outcome.room_id, "player_left", username=outcome.username)
        if outcome.history is not None:
            await manager.broadcast_to_room(
                outcome.room_id,
                {"type": "game_ended", "history": outcome.history.model_dump(mode="json")},
            )

    _handlers = {
        "create_room": _handle_create_room,
        "join_room": _handle_join_room,
        "quick_match": _handle_quick_match,
        "toggle_ready": _handle_toggle_ready,
        "start_game": _handle_start_game,
        "roll": _handle_roll,
        "shoot": _handle_shoot,
        "use_power_up": _handle_use_power_up,
        "end_turn": _handle_end_turn,
        "reconnect": _handle_reconnect,
        "leave": _handle_leave,
    }

    @staticmethod
    async def broadcast_to_client(websocket: WebSocket, subscriber) -> None:
        """Handle broadcasting messages to WebSocket client"""
        async for event in subscriber:
            if websocket.client_state == WebSocketState.CONNECTED:
                await websocket.send_text(event.message)
