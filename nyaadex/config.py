"""Configuration management using pydantic-settings.

All provider preferences (index hosts, category ids, curated endpoint)
are loaded and validated here. Every field has a default, so the package
works without any environment configured.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Providers read these as read-only preferences; explicit constructor
    arguments on a provider always take precedence.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Nyaa (main source)
    nyaa_url: str = Field(
        default="nyaa.si",
        description="Nyaa host, with or without scheme (e.g. nyaa.si or https://nyaa.land)",
    )

    nyaa_category: str = Field(
        default="1_2",
        description="Nyaa category id (1_2 = Anime - English-translated)",
    )

    # Sukebei (adult source)
    sukebei_url: str = Field(
        default="sukebei.nyaa.si",
        description="Sukebei host, with or without scheme",
    )

    # SeaDex (curated source)
    seadex_url: str | None = Field(
        default=None,
        description="Override for the SeaDex records endpoint",
    )

    # HTTP behaviour
    request_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for feed and detail page requests",
        gt=0,
    )

    enrichment_timeout: float = Field(
        default=5.0,
        description="Timeout in seconds for each curated-entry detail scrape",
        gt=0,
    )

    enrichment_concurrency: int = Field(
        default=8,
        description="Maximum number of concurrent curated-entry detail scrapes",
        ge=1,
    )

    # Application Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    environment: str = Field(
        default="production",
        description="Environment name (development, production)",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard levels."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return v_upper

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is development or production."""
        allowed = {"development", "production"}
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v_lower

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"


# Global settings instance
settings = Settings()
