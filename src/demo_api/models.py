from pydantic import BaseModel, Field


class RangeResponse(BaseModel):
    min_value: int
    max_value: int


class JoinRequest(BaseModel):
    game_id: str = Field(min_length=1, max_length=16)


class JoinResponse(BaseModel):
    accepted: bool


class StatsResponse(BaseModel):
    attempts: int
    accepted: int
    last_game_id: str | None = None
