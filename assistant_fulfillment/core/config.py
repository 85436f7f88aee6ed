"""Application configuration loaded via Pydantic settings."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed configuration sourced from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ASSISTANT_LOG_LEVEL: str = Field(default="info")
    ASSISTANT_LOG_DIR: Path | None = Field(default=None)
    ASSISTANT_LOG_SCHEMA_VERSION: str = Field(default="1.0.0")
    # Dumps inbound/outbound JSON at debug level; payloads can carry user data.
    LOG_PAYLOADS: bool = Field(default=False)

    ACTIONS_SDK_WEBHOOK_PATH: str = Field(default="/actions-sdk")
    DIALOGFLOW_WEBHOOK_PATH: str = Field(default="/dialogflow")
    # "package.module:attribute" resolving to a FulfillmentHandlers instance.
    FULFILLMENT_HANDLERS: str | None = Field(default=None)

    DEFAULT_ERROR_MESSAGE: str = Field(default="Sorry, I am unable to process your request.")
    API_ERROR_MESSAGE_PREFIX: str = Field(default="Action Error: ")


settings = Settings()


__all__ = ["Settings", "settings"]
