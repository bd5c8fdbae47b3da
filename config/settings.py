"""
Centralized configuration for the Lead Engine.

All settings are loaded from environment variables via .env file.
"""

from functools import lru_cache
from typing import Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Brand
    app_name: str = Field(default="Lead Engine")

    # API
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    api_title: str = Field(default="Lead Intake & Qualification API")
    api_version: str = Field(default="1.0.0")

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="text")  # text | json
    debug: bool = Field(default=False)

    # Storage (unset -> in-memory tabular store)
    database_url: Optional[str] = Field(default=None)
    database_pool_size: int = Field(default=5)
    database_max_overflow: int = Field(default=10)

    # Lead repository
    lead_cache_ttl_seconds: float = Field(default=300.0)

    # Lead scoring
    priority_threshold_hot: int = Field(default=80)
    priority_threshold_warm: int = Field(default=60)
    priority_threshold_cool: int = Field(default=40)

    # Provisioning
    auto_provision_projects: bool = Field(default=True)
    default_project_manager: str = Field(default="Auto-assigned")
    default_hourly_rate: float = Field(default=100.0)

    @property
    def uses_database(self) -> bool:
        return bool(self.database_url)

    @property
    def priority_thresholds(self) -> Dict[str, int]:
        return {
            "hot": self.priority_threshold_hot,
            "warm": self.priority_threshold_warm,
            "cool": self.priority_threshold_cool,
        }


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
