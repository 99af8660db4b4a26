import logging
from contextlib import asynccontextmanager

from broadcaster import Broadcast
from fastapi import FastAPI

from .config import BROADCAST_URL, LOG_LEVEL
from .middleware import add_cors_middleware
from .routers import init_room_manager, rooms_router, websocket_router

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    broadcast = Broadcast(BROADCAST_URL)
    await broadcast.connect()
    manager = await init_room_manager(broadcast)
    yield
    manager.shutdown()
    await broadcast.disconnect()
    log.info("shutting down")


app = FastAPI(lifespan=lifespan)
app.add_middleware(add_cors_middleware)

app.include_router(rooms_router)
app.include_router(websocket_router)
