"""Configuration management for progressive profiles."""

from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseSettings):
    """Database configuration settings."""

    model_config = SettingsConfigDict(env_prefix="DATABASE_", env_file=".env", extra="ignore")

    url: Optional[str] = None
    pool_min_size: int = 1
    pool_max_size: int = 10

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        """Validate database URL format."""
        if v is None:
            return v
        if not v.startswith(("postgresql://", "postgres://")):
            raise ValueError("DATABASE_URL must be a valid PostgreSQL connection string")
        if "[PASSWORD]" in v:
            raise ValueError("DATABASE_URL contains placeholder password - please set actual password")
        return v


class StoreConfig(BaseSettings):
    """Bounds applied to every call into the profile store."""

    model_config = SettingsConfigDict(env_prefix="STORE_", env_file=".env", extra="ignore")

    operation_timeout: float = Field(5.0, gt=0)
    prefer_atomic_merge: bool = True


class ConsolidationConfig(BaseSettings):
    """Tunables for confidence/completeness arithmetic and the fallback retry loop."""

    model_config = SettingsConfigDict(env_prefix="CONSOLIDATION_", env_file=".env", extra="ignore")

    # Divergence (score points) on a shared dimension still counted as corroboration
    agreement_tolerance: float = Field(1.0, ge=0)
    # Divergence above which a submission is treated as conflicting
    disagreement_threshold: float = Field(2.0, gt=0)
    # Fraction of the confidence boost removed when a submission conflicts
    conflict_penalty_ratio: float = Field(0.5, ge=0, le=1)
    # Completeness credit per already-covered dimension seen again
    repeat_coverage_credit: float = Field(0.0, ge=0)

    max_retries: int = Field(10, ge=0, le=100)
    retry_delay: float = Field(0.01, ge=0)
    max_retry_delay: float = Field(0.5, ge=0)

    @model_validator(mode="after")
    def validate_band(self):
        if self.disagreement_threshold < self.agreement_tolerance:
            raise ValueError("disagreement_threshold must not be below agreement_tolerance")
        return self


class AppConfig(BaseSettings):
    """Application configuration settings."""

    model_config = SettingsConfigDict(env_prefix="APP_", env_file=".env", extra="ignore")

    name: str = "progressive-profiles"
    version: str = "0.1.0"
    log_level: str = "INFO"
    debug: bool = False


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    consolidation: ConsolidationConfig = Field(default_factory=ConsolidationConfig)
    app: AppConfig = Field(default_factory=AppConfig)

    @classmethod
    def load(cls) -> "Settings":
        """Load settings from environment."""
        return cls()
