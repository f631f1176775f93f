from datetime import datetime

from pydantic import BaseModel

from merval_board.schemas.quote import ApiHealth, InstrumentView


class BatchResult(BaseModel):
    views: list[InstrumentView]
    error_count: int
    api_health: ApiHealth
    completed_at: datetime


class BoardSnapshot(BaseModel):
    stocks: list[InstrumentView]
    api_health: ApiHealth = "ok"
    last_updated: datetime | None = None
    is_refreshing: bool = False
    stocks_with_data: int = 0
    data_percentage: float = 0.0
    status_message: str | None = None


class RefreshAccepted(BaseModel):
    accepted: bool
