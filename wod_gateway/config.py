from __future__ import annotations

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    environment: str = Field("development", alias="ENVIRONMENT")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    jwt_secret: str = Field("test-jwt-secret", alias="JWT_SECRET")
    jwt_audience: str = Field("authenticated", alias="JWT_AUDIENCE")
    project_api_key: str = Field("test-project-key", alias="PROJECT_API_KEY")

    database_url: str = Field(
        "sqlite:////tmp/wod_gateway_test.db", alias="DATABASE_URL"
    )
    db_create_all: bool = Field(False, alias="DB_CREATE_ALL")

    openai_api_key: str | None = Field(None, alias="OPENAI_API_KEY")
    openai_base_url: str | None = Field(None, alias="OPENAI_BASE_URL")
    model_name: str = Field("gpt-4.1-mini", alias="MODEL_NAME")
    model_timeout_seconds: float = Field(60.0, alias="MODEL_TIMEOUT_SECONDS")
    model_max_tokens: int = Field(2048, alias="MODEL_MAX_TOKENS")

    max_image_bytes: int = Field(5 * 1024 * 1024, alias="MAX_IMAGE_BYTES")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    allow_direct_model: bool = Field(
        False,
        alias="ALLOW_DIRECT_MODEL",
        description="Let development clients call the model without the gateway",
    )

    model_config = ConfigDict(
        extra="ignore",
        env_file=".env",
        case_sensitive=False,
        populate_by_name=True,
        protected_namespaces=(),
    )

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in {"prod", "production"}
