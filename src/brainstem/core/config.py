"""
Configuration management.

Loads settings from environment variables and .env file.
Prefix: BRAINSTEM_

Settings are read once at startup and passed into components explicitly;
components never look at the environment themselves.
"""

from pathlib import Path

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class HealthCheckConfig(BaseModel):
    """One monitored endpoint. A bare URL string gets the default weight."""

    url: str
    weight: int = Field(default=10, ge=0, le=100)

    @model_validator(mode="before")
    @classmethod
    def _from_url(cls, data):
        if isinstance(data, str):
            return {"url": data}
        return data


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="BRAINSTEM_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Storage
    data_dir: Path = Field(default=Path("data"), description="Data storage directory")
    db_name: str = Field(default="brainstem.db", description="SQLite database name")

    # Cache (Redis REST API, e.g. Upstash)
    cache_url: str = Field(default="", description="Redis REST endpoint")
    cache_token: str = Field(default="", description="Redis REST bearer token")

    # Embeddings
    embedding_model: str = Field(
        default="text-embedding-3-small", description="LiteLLM embedding model name"
    )
    embedding_dimensions: int = Field(default=1536, description="Embedding vector length")
    embedding_api_key: str = Field(default="", description="Embedding provider API key")
    embedding_api_base: str = Field(default="", description="Embedding provider base URL")

    # Notification channels
    reach_url: str = Field(default="", description="Notification service base URL")
    alert_phone: str = Field(default="", description="SMS recipient for alerts")
    telegram_token: str = Field(default="", description="Telegram bot token")
    telegram_owner_id: int = Field(default=0, description="Owner's Telegram chat ID")

    # Agent fleet
    functions_url: str = Field(default="", description="Base URL of agent endpoints")
    functions_key: str = Field(default="", description="Bearer key for agent endpoints")
    report_url: str = Field(default="", description="Status report endpoint")
    health_checks: dict[str, HealthCheckConfig] = Field(
        default_factory=dict, description="Health check name -> {url, weight} or URL"
    )

    # HTTP surface
    host: str = Field(default="127.0.0.1", description="HTTP bind address")
    port: int = Field(default=8080, description="HTTP port")

    # Limits
    http_timeout: float = Field(default=10.0, description="Outbound HTTP timeout seconds")
    policy_file: Path | None = Field(default=None, description="YAML policy overrides")

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name


def get_settings() -> Settings:
    """Get settings instance."""
    return Settings()
