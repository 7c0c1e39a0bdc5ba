from datetime import datetime

from pydantic import BaseModel, ConfigDict


class MatchResultRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    room_id: str
    seeker_id: str
    seeker_name: str
    seeker_won: bool
    created_at: datetime


class ResultsSummaryRead(BaseModel):
    total_rounds: int
    seeker_wins: int
    builder_wins: int
    seeker_win_rate: float


class ResultsRead(BaseModel):
    summary: ResultsSummaryRead
    results: list[MatchResultRead]
