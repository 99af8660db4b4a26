from pydantic import BaseModel, Field


class CreateRoomRequest(BaseModel):
    username: str = Field(min_length=1, max_length=32)
    capacity: int
    password: str | None = None


class JoinRoomRequest(BaseModel):
    room_id: str
    username: str = Field(min_length=1, max_length=32)
    password: str | None = None


class RoomRequest(BaseModel):
    room_id: str


class RollRequest(BaseModel):
    room_id: str
    value: int | None = None


class ShootRequest(BaseModel):
    room_id: str
    target_username: str
    target_cell: int


class UsePowerUpRequest(BaseModel):
    room_id: str
    target_username: str
    target_cell: int | None = None


class ReconnectRequest(BaseModel):
    username: str
    room_id: str | None = None


class QuickMatchRequest(BaseModel):
    username: str | None = None
