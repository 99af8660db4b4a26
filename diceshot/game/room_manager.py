import asyncio
import json
import logging

from broadcaster import Broadcast

from .coordinator import SessionCoordinator
from .room_registry import RoomRegistry
from .scheduler import AsyncioScheduler

log = logging.getLogger(__name__)


class RoomManager:
    """Glue between the session engine and connected sockets.

    Every connection listens on its own broadcaster channel, so a message
    for a room is published once per seated, connected player.
    """

    def __init__(self, broadcast: Broadcast, coordinator: SessionCoordinator | None = None):
        self.broadcast = broadcast
        if coordinator is None:
            coordinator = SessionCoordinator(RoomRegistry(), AsyncioScheduler(), notify=self.on_timer_event)
        self.coordinator = coordinator
        self._tasks: set[asyncio.Task] = set()

    @staticmethod
    def channel(connection: str) -> str:
        return f"player_{connection}"

    async def send_to(self, connection: str, message: dict) -> None:
        await self.broadcast.publish(channel=self.channel(connection), message=json.dumps(message))

    async def send_to_many(self, connections: list[str], message: dict) -> None:
        for connection in connections:
            await self.send_to(connection, message)

    def room_connections(self, room_id: str) -> list[str]:
        room = self.coordinator.registry.get_room(room_id)
        if room is None:
            return []
        return [p.connection for p in room.players if p.connected]

    async def broadcast_to_room(self, room_id: str, message: dict) -> None:
        await self.send_to_many(self.room_connections(room_id), message)

    async def broadcast_room_state(self, room_id: str, event: str, **extra) -> None:
        if self.coordinator.registry.get_room(room_id) is None:
            return
        await self.broadcast_to_room(
            room_id, {"type": event, "room": self.coordinator.room_snapshot(room_id), **extra}
        )

    def on_timer_event(self, room_id: str, event: dict) -> None:
        task = asyncio.get_running_loop().create_task(self._publish_timer_event(room_id, event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _publish_timer_event(self, room_id: str, event: dict) -> None:
        connections = event.pop("connections", [])
        event.pop("room_id", None)
        try:
            if self.coordinator.registry.get_room(room_id) is None:
                log.info(f"Room {room_id} closed after {event.get('type')}")
                await self.send_to_many(connections, {"type": "room_closed", "room_id": room_id})
                return
            await self.broadcast_room_state(room_id, event.pop("type"), **event)
        except Exception as e:
            log.error(f"Error publishing timer event for room {room_id}: {e}")

    def shutdown(self) -> None:
        self.coordinator.scheduler.cleanup()
        for task in self._tasks:
            task.cancel()
