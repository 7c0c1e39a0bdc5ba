from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, FiniteFloat, field_validator, model_validator
from pydantic.alias_generators import to_camel

from app.services.world_service import BLOCK_SIZES, Block, Coordinate, coordinate_key


def _on_half_grid(value: float) -> float:
    if not float(value * 2).is_integer():
        raise ValueError("coordinates must be multiples of 0.5")
    return float(value)


GridCoordinate = Annotated[FiniteFloat, AfterValidator(_on_half_grid)]
Vector3 = tuple[FiniteFloat, FiniteFloat, FiniteFloat]


class EventPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class JoinRoomRequest(EventPayload):
    room_id: str = Field(max_length=256)
    name: str = Field(max_length=256)


class MoveRequest(EventPayload):
    position: Vector3
    rotation: Vector3


class BlockPositionRequest(EventPayload):
    x: GridCoordinate
    y: GridCoordinate
    z: GridCoordinate

    @property
    def coordinate(self) -> Coordinate:
        return coordinate_key(self.x, self.y, self.z)


class BlockRequest(BlockPositionRequest):
    color: str = Field(pattern=r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
    shape: str = "cube"
    size: float = 1.0

    @field_validator("shape")
    @classmethod
    def _known_shape(cls, value: str) -> str:
        if value not in {"cube", "sphere", "cylinder"}:
            raise ValueError("unknown block shape")
        return value

    @field_validator("size")
    @classmethod
    def _known_size(cls, value: float) -> float:
        if value not in BLOCK_SIZES:
            raise ValueError("block size must be 0.5 or 1")
        return float(value)

    def to_block(self) -> Block:
        return Block(x=self.x, y=self.y, z=self.z, color=self.color, shape=self.shape, size=self.size)


class SabotageRequest(EventPayload):
    position: Vector3

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_position(cls, data: Any) -> Any:
        if isinstance(data, (list, tuple)):
            return {"position": data}
        return data


class VoteRequest(EventPayload):
    target_id: str = Field(min_length=1, max_length=128)

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_target(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"targetId": data}
        return data


class ChatRequest(EventPayload):
    text: str = Field(max_length=4096)

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_text(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"text": data}
        return data
