"""Configuration for the chat router service."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment configuration."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True
    )

    api_version: str = Field("1.0.0", description="Semantic version returned by health endpoints.")
    history_file: str | None = Field(
        "chatHistory.json",
        alias="HISTORY_FILE",
        description="JSON file holding the chat history. Empty keeps history in memory only.",
    )
    unknown_nickname: str = Field(
        "Unknown",
        alias="UNKNOWN_NICKNAME",
        description="Sender name used for connections that have not asserted a nickname.",
    )
    duplicate_nickname_policy: Literal["reject", "allow"] = Field(
        "reject",
        alias="DUPLICATE_NICKNAME_POLICY",
        description="Whether two live connections may hold the same nickname.",
    )
    reset_api_key: str | None = Field(
        default=None,
        alias="RESET_API_KEY",
        description="Static bearer token required by the reset endpoint.",
    )
    host: str = Field("0.0.0.0", alias="HOST")
    port: int = Field(3000, ge=1, le=65535, alias="PORT")


class HealthPayload(BaseModel):
    """Health-check response payload."""

    status: Literal["ok"]
    api_version: str


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance.

    Returns:
        Settings: Loaded environment settings.
    """

    return Settings()
