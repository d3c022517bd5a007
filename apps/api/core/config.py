from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration read from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    app_name: str = Field(default="Pipedesk API")
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="%(asctime)s %(levelname)s %(name)s %(message)s")

    # Database configuration
    database_url: str = Field(default="sqlite+aiosqlite:///./tickets.db")
    database_echo: bool = Field(default=False)
    seed_sample_data: bool = Field(default=True)

    # Ticket lifecycle
    status_workflow: Literal["open", "strict"] = Field(default="open")
    ticket_id_retries: int = Field(default=3, ge=1)

    # Bearer token -> display name recorded on timeline entries
    api_tokens: dict[str, str] = Field(
        default_factory=lambda: {
            "admin-token": "Administrator",
            "sales-token": "Mike Chen",
            "marketing-token": "Sarah Johnson",
            "orders-token": "John Doe",
        }
    )

    # Observability configuration
    otel_enabled: bool = Field(default=False)
    otel_service_name: str = Field(default="pipedesk-api")
    otel_exporter_otlp_endpoint: str | None = Field(default=None)
    otel_exporter_otlp_headers: str | None = Field(default=None)


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of the application settings."""

    return Settings()
