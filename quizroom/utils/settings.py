"""Environment-driven configuration for the quiz session service."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from quizroom.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = Field(default="development", validation_alias="APP_ENV")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    host: str = Field(default=DEFAULT_HOST, validation_alias="QUIZROOM_HOST")
    port: int = Field(default=DEFAULT_PORT, validation_alias="QUIZROOM_PORT")
    cors_allow_origins: str = Field(
        default="http://localhost:4200,http://localhost:3000",
        validation_alias="CORS_ALLOW_ORIGINS",
    )

    storage_backend: Literal["memory", "json", "mongo"] = Field(
        default="memory", validation_alias="QUIZROOM_STORAGE_BACKEND"
    )
    json_store_path: str = Field(default="data/quizroom.json", validation_alias="QUIZROOM_JSON_STORE_PATH")
    mongo_url: str = Field(default="mongodb://localhost:27017", validation_alias="MONGO_URL")
    mongo_db_name: str = Field(default="quiz", validation_alias="MONGO_DB_NAME")
    storage_read_attempts: int = Field(default=3, ge=1, validation_alias="QUIZROOM_STORAGE_READ_ATTEMPTS")

    settlement_mode: Literal["local", "ledger"] = Field(default="local", validation_alias="QUIZROOM_SETTLEMENT_MODE")
    scoring_policy: Literal["simple", "speed_weighted"] = Field(
        default="simple", validation_alias="QUIZROOM_SCORING_POLICY"
    )
    include_creator_as_participant: bool = Field(
        default=False, validation_alias="QUIZROOM_INCLUDE_CREATOR_AS_PARTICIPANT"
    )
    allow_resettlement: bool = Field(default=True, validation_alias="QUIZROOM_ALLOW_RESETTLEMENT")

    ledger_base_url: str | None = Field(default=None, validation_alias="LEDGER_BASE_URL")
    ledger_api_token: str | None = Field(default=None, validation_alias="LEDGER_API_TOKEN")
    ledger_timeout_seconds: float = Field(default=30.0, gt=0, validation_alias="LEDGER_TIMEOUT_SECONDS")

    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]


settings = Settings()
