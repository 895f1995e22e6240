"""Application configuration primitives."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models.gate import RelayFailureMode
from .rate import Rate

BASE_DIR = Path(__file__).resolve().parents[2]
load_dotenv(BASE_DIR / ".env")


class OriginConfig(BaseModel):
    timeout: float = Field(default=10.0)
    token: SecretStr | None = None


class DefaultGateConfig(BaseModel):
    name: str = Field(default="default")
    rate: str = Field(default="blocks:1", description="per_block:N or blocks:N")
    origin_url: str | None = None
    relay_failure: RelayFailureMode = Field(default=RelayFailureMode.KEEP)

    @field_validator("rate")
    @classmethod
    def _normalise_rate(cls, value: str) -> str:
        return str(Rate.parse(value))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    database_url: str = Field(default="sqlite+aiosqlite:///./rate_limited_proxy.db")
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    admin_secret: SecretStr = Field(default=SecretStr("change-me"))
    log_level: str = Field(default="INFO")
    tick_seconds: float = Field(default=6.0, gt=0)
    origin: OriginConfig = Field(default_factory=OriginConfig)
    default_gate: DefaultGateConfig = Field(default_factory=DefaultGateConfig)


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


settings = get_settings()
