from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = Field(default="Chat Relay", alias="APP_NAME")
    environment: Literal["local", "dev", "staging", "prod"] = Field(
        default="local", alias="ENVIRONMENT"
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # An empty key is accepted; the upstream rejects the call and the relay
    # mirrors its status.
    upstream_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("UPSTREAM_API_KEY", "MESSARI_API_KEY"),
    )
    upstream_url: str = Field(
        default="https://api.messari.io/ai/openai/chat/completions",
        alias="UPSTREAM_URL",
    )
    upstream_api_key_header: str = Field(
        default="X-MESSARI-API-KEY", alias="UPSTREAM_API_KEY_HEADER"
    )

    relay_url: str = Field(
        default="http://127.0.0.1:8000/api/chat", alias="RELAY_URL"
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
