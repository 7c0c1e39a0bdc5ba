from pydantic import BaseModel


class RoomSummaryRead(BaseModel):
    id: str
    phase: str
    participant_count: int
    countdown: int


class HealthRead(BaseModel):
    status: str
    rooms: int
    connections: int
    result_store: bool
