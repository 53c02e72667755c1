from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    environment: Literal["development", "staging", "production"] = Field(
        default="development"
    )
    database_url: str = Field(default="sqlite:///./momentum.db")
    log_level: str = Field(default="INFO")

    cors_origins: list[str] = Field(
        default=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:8081",
            "http://localhost:19006",
        ]
    )

    # Smart scheduling defaults
    working_hours_start: str = Field(default="09:00", pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    working_hours_end: str = Field(default="17:00", pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    max_tasks_per_day: int = Field(default=6, ge=1)
    max_minutes_per_day: int = Field(default=480, ge=1)

    # Recurring instance housekeeping
    recurrence_horizon_days: int = Field(default=30, ge=1)
    instance_retention_days: int = Field(default=30, ge=0)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache
def get_settings() -> Settings:
    return Settings()
