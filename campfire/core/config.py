"""Application settings for the matchmaking service and its tests."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Typed settings loaded from environment variables or explicit kwargs."""

    campfire_app_host: str = "127.0.0.1"
    campfire_app_port: int = Field(default=8000, ge=1)
    campfire_cors_allow_origins: str = "*"
    campfire_log_level: str = "INFO"

    campfire_room_capacity: int = Field(default=8, ge=2)
    campfire_session_duration_seconds: float = Field(default=900, gt=0)
    campfire_session_warning_seconds: float = Field(default=120, ge=0)

    campfire_quorum_policy: Literal["majority", "fixed"] = "majority"
    campfire_quorum_fixed_threshold: int = Field(default=3, ge=1)

    campfire_heartbeat_interval_seconds: float = Field(default=30.0, gt=0)
    campfire_heartbeat_pong_timeout_seconds: float = Field(default=10.0, gt=0)
    campfire_heartbeat_max_missed_pongs: int = Field(default=2, ge=1)

    @model_validator(mode="after")
    def validate_session_warning(self) -> "Settings":
        """Ensure the ending warning fires before the session deadline."""
        if self.campfire_session_warning_seconds >= self.campfire_session_duration_seconds:
            raise ValueError(
                "CAMPFIRE_SESSION_WARNING_SECONDS must be less than "
                "CAMPFIRE_SESSION_DURATION_SECONDS"
            )
        return self

    @model_validator(mode="after")
    def validate_heartbeat_window(self) -> "Settings":
        """Ensure one pong wait fits inside one heartbeat interval."""
        if (
            self.campfire_heartbeat_pong_timeout_seconds
            >= self.campfire_heartbeat_interval_seconds
        ):
            raise ValueError(
                "CAMPFIRE_HEARTBEAT_PONG_TIMEOUT_SECONDS must be less than "
                "CAMPFIRE_HEARTBEAT_INTERVAL_SECONDS"
            )
        return self

    @property
    def cors_origins(self) -> list[str]:
        origins = [item.strip() for item in self.campfire_cors_allow_origins.split(",")]
        return [origin for origin in origins if origin]


def load_settings() -> Settings:
    """Load settings from process environment."""
    return Settings()
