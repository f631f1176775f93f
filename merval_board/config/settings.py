import os
from functools import lru_cache

from pydantic import BaseModel, Field

DEFAULT_PRIMARY_PROXY = "https://corsproxy.io/?"
DEFAULT_FALLBACK_PROXY = "https://api.allorigins.win/raw?url="


class Settings(BaseModel):
    BOARD_REFRESH_INTERVAL_SEC: float = Field(default=300.0, gt=0)
    BOARD_REQUEST_DELAY_SEC: float = Field(default=0.3, ge=0)
    QUOTE_HTTP_TIMEOUT_SEC: float = Field(default=10.0, gt=0)
    QUOTE_PRIMARY_PROXY: str = DEFAULT_PRIMARY_PROXY
    QUOTE_FALLBACK_PROXY: str = DEFAULT_FALLBACK_PROXY
    BOARD_SCHEDULER_ENABLED: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        # unset variables fall back to the model defaults
        names = (
            "BOARD_REFRESH_INTERVAL_SEC",
            "BOARD_REQUEST_DELAY_SEC",
            "QUOTE_HTTP_TIMEOUT_SEC",
            "QUOTE_PRIMARY_PROXY",
            "QUOTE_FALLBACK_PROXY",
            "BOARD_SCHEDULER_ENABLED",
        )
        raw = {name: os.getenv(name) for name in names}
        return cls.model_validate({k: v for k, v in raw.items() if v is not None})


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
