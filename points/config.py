import os
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict

MAX_POINT = 10000


def _split_user_ids(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


class Settings(BaseModel):
    max_point: int = Field(default=MAX_POINT, gt=0)
    lock_timeout: Optional[float] = Field(default=None, ge=0, description="Seconds; None waits forever")
    seed_user_ids: list[int] = Field(default_factory=list)
    log_level: str = "INFO"
    log_file: Optional[str] = None

    model_config = ConfigDict(frozen=True)


def load_settings() -> Settings:
    """Build settings from POINTS_* environment variables; raises pydantic.ValidationError on bad values."""
    return Settings(
        max_point=os.environ.get("POINTS_MAX_POINT", MAX_POINT),
        lock_timeout=os.environ.get("POINTS_LOCK_TIMEOUT") or None,
        seed_user_ids=_split_user_ids(os.environ.get("POINTS_SEED_USERS", "")),
        log_level=os.environ.get("POINTS_LOG_LEVEL", "INFO").upper(),
        log_file=os.environ.get("POINTS_LOG_FILE") or None,
    )
