"""Configuration management for uup-replay."""

from __future__ import annotations

import json
from pathlib import Path

import structlog
from pydantic import BaseModel, Field, field_validator

logger = structlog.get_logger()

DEFAULT_CONFIG_FILE = Path.home() / ".config" / "uup-replay" / "config.json"


class AppConfig(BaseModel):
    """Application configuration."""

    # Directory settings
    appx_root: Path | None = Field(
        default=None,
        description="Directory holding loose appx_* files and reconciled packages"
    )
    cabs_root: Path | None = Field(
        default=None,
        description="Directory scanned for license containers (defaults to appx_root)"
    )
    compdb_dir: Path | None = Field(
        default=None,
        description="Directory of CompDB documents used to refresh manifests"
    )
    output_folder: Path = Field(
        default=Path.cwd() / "output",
        description="Destination for updates handed off for processing"
    )

    # Discovery settings
    loose_file_pattern: str = Field(
        default="appx_*",
        description="Glob matching loose package files (non-recursive)"
    )
    container_patterns: list[str] = Field(
        default=["*.cab"],
        description="Globs matching license containers (recursive)"
    )

    # Extraction settings
    extractor: str = Field(
        default="cabextract",
        description="External program used to expand CAB containers"
    )
    extractor_timeout: float = Field(
        default=300.0,
        description="Timeout in seconds for one extractor run"
    )

    # Reconciliation settings
    hash_workers: int = Field(
        default=4,
        description="Worker threads used to hash loose files"
    )

    # Output settings
    output_format: str = Field(
        default="rich",
        description="Output format (rich, json, plain)"
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    @classmethod
    def load(cls, config_file: Path | None = None) -> AppConfig:
        """Load configuration from file.

        Args:
            config_file: Path to config file, uses default if None

        Returns:
            Application configuration
        """
        if config_file is None:
            config_file = DEFAULT_CONFIG_FILE

        if config_file.exists():
            with open(config_file) as f:
                data = json.load(f)
                return cls(**data)

        # Return defaults
        return cls()

    def save(self, config_file: Path | None = None) -> None:
        """Save configuration to file.

        Args:
            config_file: Path to config file, uses default if None
        """
        if config_file is None:
            config_file = DEFAULT_CONFIG_FILE

        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, "w") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2, default=str)

        logger.info("config_saved", path=str(config_file))

    @field_validator("container_patterns")
    @classmethod
    def validate_container_patterns(cls, v: list[str]) -> list[str]:
        """Validate container patterns list."""
        if not v:
            raise ValueError("Container patterns list cannot be empty")
        return v

    @field_validator("loose_file_pattern")
    @classmethod
    def validate_loose_file_pattern(cls, v: str) -> str:
        """Validate loose file pattern."""
        if not v or "/" in v or "\\" in v:
            raise ValueError("Loose file pattern must be a non-empty file name glob")
        return v

    @field_validator("extractor_timeout")
    @classmethod
    def validate_extractor_timeout(cls, v: float) -> float:
        """Validate extractor timeout value."""
        if v <= 0:
            raise ValueError("Extractor timeout must be positive")
        return v

    @field_validator("hash_workers")
    @classmethod
    def validate_hash_workers(cls, v: int) -> int:
        """Validate hash worker count."""
        if v < 1:
            raise ValueError("Hash workers must be at least 1")
        return v

    @field_validator("output_format")
    @classmethod
    def validate_output_format(cls, v: str) -> str:
        """Validate output format."""
        valid_formats = {"rich", "json", "plain"}
        if v not in valid_formats:
            raise ValueError(f"Invalid output format: {v}. Valid formats: {valid_formats}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Valid levels: {valid_levels}")
        return v
