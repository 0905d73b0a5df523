"""
Application settings and configuration management.

This module handles all environment variables and application configuration
using Pydantic settings management for type safety and validation.
"""

from datetime import date
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Settings are validated on load and cached for performance.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
    )

    # Application Configuration
    app_env: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        alias="APP_ENV"
    )
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        alias="LOG_LEVEL"
    )
    log_json: bool = Field(default=True, alias="LOG_JSON")

    # Source Data
    source_csv_path: Path = Field(default=Path("data/incidents.csv"), alias="SOURCE_CSV_PATH")
    source_encoding: str = Field(default="utf-8", alias="SOURCE_ENCODING")

    # Catalog Derivation
    manufacturer_name: str = Field(default="XYZ Supplier", alias="MANUFACTURER_NAME")
    image_cdn_hosts: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["wfcdn.com"],
        alias="IMAGE_CDN_HOSTS",
    )
    incident_rate_multiplier: float = Field(default=1.2, gt=0, alias="INCIDENT_RATE_MULTIPLIER")
    incident_rate_cap: float = Field(default=15.0, gt=0, alias="INCIDENT_RATE_CAP")

    # Evidence Dates
    synthetic_evidence_dates: bool = Field(default=False, alias="SYNTHETIC_EVIDENCE_DATES")
    evidence_date_window_days: int = Field(default=90, ge=1, alias="EVIDENCE_DATE_WINDOW_DAYS")
    evidence_reference_date: Optional[date] = Field(default=None, alias="EVIDENCE_REFERENCE_DATE")

    # Output Settings
    output_dir: Path = Field(default=Path("outputs/reports"), alias="OUTPUT_DIR")
    report_format: Literal["json", "markdown", "html"] = Field(
        default="markdown",
        alias="REPORT_FORMAT"
    )

    # Read API
    api_host: str = Field(default="127.0.0.1", alias="API_HOST")
    api_port: int = Field(default=8000, ge=1, le=65535, alias="API_PORT")

    @field_validator("image_cdn_hosts", mode="before")
    @classmethod
    def split_hosts(cls, v: str | list[str]) -> list[str]:
        """Accept a comma-separated string of host tokens."""
        if isinstance(v, str):
            v = v.split(",")
        return [host.strip().lower() for host in v if host and host.strip()]

    @field_validator("source_csv_path", "output_dir", mode="before")
    @classmethod
    def expand_paths(cls, v: str | Path) -> Path:
        """Expand ``~`` in configured paths."""
        return Path(v).expanduser()

    def reference_date(self) -> date:
        """Base date for evidence items without a usable date."""
        return self.evidence_reference_date or date.today()


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
