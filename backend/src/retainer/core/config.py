"""Configuration management for the Retainer service.

Uses Pydantic Settings for type-safe, environment-based configuration.
"""

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file
load_dotenv(override=True)


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # App configuration
    app_name: str = Field("Retainer", alias="RETAINER_APP_NAME")
    debug: bool = Field(False, alias="RETAINER_DEBUG")
    version: str = Field("0.0.0-dev", alias="RETAINER_APP_VERSION")
    environment: str = Field("development", alias="RETAINER_ENVIRONMENT")

    # API configuration
    api_v1_prefix: str = "/api/v1"
    api_host: str = Field("127.0.0.1", alias="RETAINER_API_HOST")
    api_port: int = Field(8000, alias="RETAINER_API_PORT")

    # Database configuration
    database_url: str = Field(alias="RETAINER_DATABASE_URL")
    database_pool_size: int = 20
    database_max_overflow: int = 30
    database_pool_timeout: int = 30
    database_pool_recycle: int = 3600

    # Symmetric key used for configuration and export URL columns (Fernet, urlsafe base64)
    db_key: str | None = Field(None, alias="RETAINER_DB_KEY")

    # Remote cron script (scheduling) service
    script_service_url: str = Field("http://localhost:50400", alias="RETAINER_SCRIPT_SERVICE_URL")
    script_service_timeout: float = Field(10.0, alias="RETAINER_SCRIPT_SERVICE_TIMEOUT")

    # JWT configuration
    jwt_secret_key: str | None = Field(None, alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")

    # Logging configuration
    log_level: str = Field("INFO", alias="RETAINER_LOG_LEVEL")
    log_format: str = Field("text", alias="RETAINER_LOG_FORMAT")  # text or json

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        valid_formats = ["text", "json"]
        if v.lower() not in valid_formats:
            raise ValueError(f"Log format must be one of: {valid_formats}")
        return v.lower()

    @field_validator("script_service_url")
    @classmethod
    def validate_script_service_url(cls, v: str) -> str:
        """Strip trailing slashes so paths can be appended safely."""
        return v.rstrip("/")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra environment variables instead of forbidding them
    )


def get_settings() -> Settings:
    """Build a fresh settings instance from the environment."""
    return Settings()  # type: ignore[call-arg]


# Global settings instance - will be created when first accessed
settings = None


def get_settings_instance() -> Settings:
    """Get the global settings instance, creating it if necessary."""
    global settings  # noqa: PLW0603
    if settings is None:
        settings = get_settings()
    return settings
