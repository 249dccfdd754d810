"""
Mortgage Match Configuration
Pydantic Settings for environment-based configuration.
Single source of truth for all service settings.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Use .env file for local development, env vars for production.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # App Identity
    # ==========================================================================
    app_name: str = "Mortgage Match"
    app_version: str = "1.0.0"
    app_description: str = """
## Mortgage Match - Homebuyer Assistance Program Finder

Matches a homebuyer's situation against a curated catalog of down payment,
closing cost and mortgage assistance programs.

### Key Features
- **Eligibility Search** - Deterministic rule evaluation with a reason for every rejection
- **Program Catalog** - Versioned records with an append-only change history
- **Reconciliation** - Merges scraped program data without ever deleting history
"""
    debug: bool = False
    enable_docs: bool = True

    # ==========================================================================
    # Server
    # ==========================================================================
    host: str = "0.0.0.0"
    port: int = 3000

    # ==========================================================================
    # Catalog Storage
    # ==========================================================================
    data_file: str = "data/programs.json"
    seed_sample_programs: bool = True  # Seed bundled programs into an empty catalog
    stats_recent_days: int = 30

    @field_validator("data_file", mode="before")
    @classmethod
    def expand_data_file(cls, v: str) -> str:
        """Expand ~ so the catalog path can live in a home directory."""
        if v and isinstance(v, str):
            return str(Path(v).expanduser())
        return v

    # ==========================================================================
    # Scraper
    # ==========================================================================
    scraper_http_timeout: float = 15.0
    scraper_http_retries: int = 2
    scraper_user_agent: str = "MortgageMatchBot/1.0 (+https://mortgagematchpro.com)"

    # ==========================================================================
    # Observability
    # ==========================================================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_json_format: bool = False
    log_file: str = ""  # Empty = console only

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    # ==========================================================================
    # Deployment
    # ==========================================================================
    cors_origins: str = ""  # Comma-separated list of allowed origins

    @property
    def cors_origins_list(self) -> list[str]:
        """
        Parse CORS origins into a list.
        - If explicit origins set: use those
        - If empty: local development origins only
        """
        if self.cors_origins:
            if self.cors_origins == "*":
                return ["*"]
            return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

        return [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:8080",
            "http://127.0.0.1:8080",
        ]


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Use dependency injection: Depends(get_settings)
    """
    return Settings()
