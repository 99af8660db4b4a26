from .rooms import router as rooms_router
from .websocket_router import router as websocket_router, init_room_manager, get_room_manager

__all__ = ["rooms_router", "websocket_router", "init_room_manager", "get_room_manager"]
