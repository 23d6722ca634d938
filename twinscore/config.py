"""
Configuration management using pydantic-settings.
All settings loaded from environment variables (12-factor app).
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from twinscore.models.taxonomy import (
    DEFAULT_ESSENTIAL_CATEGORIES,
    DEFAULT_INVESTMENT_KEYWORDS,
    DEFAULT_PAYROLL_KEYWORDS,
    Taxonomy,
)


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TWINSCORE_",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = Field(default="info", description="Log level")
    log_format: str = Field(default="json", description="Log format (json|console)")
    dev_mode: bool = Field(default=True, description="Development mode")

    # Category taxonomy
    essential_categories: str = Field(
        default=",".join(DEFAULT_ESSENTIAL_CATEGORIES),
        description="Essential spending categories (comma-separated)",
    )
    payroll_keywords: str = Field(
        default=",".join(DEFAULT_PAYROLL_KEYWORDS),
        description="Substrings marking a deposit as payroll (comma-separated)",
    )
    investment_keywords: str = Field(
        default=",".join(DEFAULT_INVESTMENT_KEYWORDS),
        description="Category substrings marking investment activity (comma-separated)",
    )

    # Simulation
    forward_months_default: int = Field(
        default=12, ge=1, le=120, description="Default forward-simulation horizon"
    )
    stress_horizon_months: int = Field(
        default=12, ge=1, le=120, description="Synthetic months built per stress test"
    )
    runway_display_cap: int = Field(
        default=36, ge=1, description="Largest runway figure reported to callers"
    )

    @field_validator("essential_categories", "payroll_keywords", "investment_keywords")
    @classmethod
    def parse_keyword_list(cls, v: str) -> List[str]:
        """Parse comma-separated keyword lists."""
        if isinstance(v, str):
            return [item.strip().lower() for item in v.split(",") if item.strip()]
        return v

    def taxonomy(self) -> Taxonomy:
        """Build the category taxonomy injected into the engines."""
        return Taxonomy(
            essential_categories=frozenset(self.essential_categories),
            payroll_keywords=tuple(self.payroll_keywords),
            investment_keywords=tuple(self.investment_keywords),
        )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure singleton behavior.
    """
    return Settings()
