"""
Configuration management using Pydantic Settings
Handles environment variables and validation
"""
from functools import lru_cache
from pathlib import Path

from pydantic import ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Environment
    environment: str = Field(default="development")
    debug: bool = Field(default=False)

    # Application
    app_name: str = "ReportRunner"
    app_version: str = "0.1.0"

    # Storage
    designs_dir: Path = Field(default=Path("var/designs"), description="Directory holding saved designs")
    output_dir: Path = Field(default=Path("var/output"), description="Directory receiving rendered artifacts")

    # Data sources
    query_timeout_seconds: float = Field(default=30.0, gt=0, description="Bound for each blocking data source call")
    fetch_size: int = Field(default=500, ge=1, description="Rows fetched per round trip")
    data_source_pool_size: int = Field(default=5, ge=1)

    # Rendering
    default_output_format: str = Field(default="pdf")
    default_page_size: str = Field(default="A4")
    max_concurrent_jobs: int = Field(default=4, ge=1)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")  # json or text

    # Monitoring
    prometheus_enabled: bool = Field(default=True)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        allowed = ["development", "test", "staging", "production"]
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        if v not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return v

    @field_validator("default_output_format")
    @classmethod
    def validate_output_format(cls, v):
        v = v.lower()
        if v not in ("pdf", "html"):
            raise ValueError("default_output_format must be 'pdf' or 'html'")
        return v

    @field_validator("default_page_size")
    @classmethod
    def validate_page_size(cls, v):
        v = v.upper()
        if v not in ("A4", "LETTER", "LEGAL"):
            raise ValueError("default_page_size must be one of A4, LETTER, LEGAL")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="REPORTRUNNER_",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Global settings instance
settings = get_settings()
