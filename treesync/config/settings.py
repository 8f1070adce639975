import os
from typing import Optional

from dotenv import load_dotenv, find_dotenv
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..exceptions import ConfigurationException

CPU_MULTIPLIER = 3


def _cpu_count() -> int:
    return os.cpu_count() or 1


class _EnvSettings(BaseSettings):
    """Base for settings sections that read the environment and `.env`."""

    def __init__(self, **kwargs):
        # Force load environment variables before validation
        load_dotenv(find_dotenv(usecwd=True))
        try:
            super().__init__(**kwargs)
        except ValidationError as e:
            raise ConfigurationException(
                f"Invalid {type(self).__name__}: {e}",
                error_code="INVALID_CONFIG",
            ) from e


class SourceConfig(_EnvSettings):
    """Image source (remote file store) configuration."""

    provider: str = Field(default="azure")
    root_folder: str = Field(..., description="Folder id of the crawl root")
    account_url: Optional[str] = None
    connection_string: Optional[str] = None
    container_name: Optional[str] = None
    page_size: int = Field(default=100, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="SOURCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        validate_assignment=True,
        extra="ignore",
        case_sensitive=False
    )


class StorageConfig(_EnvSettings):
    """Output object store configuration."""

    provider: str = Field(default="azure")
    account_url: Optional[str] = None
    connection_string: Optional[str] = None
    container_name: Optional[str] = None
    base_path: str = Field(default="./local_storage")

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        validate_assignment=True,
        extra="ignore",
        case_sensitive=False
    )


class PipelineConfig(_EnvSettings):
    """Concurrency and output format settings for a run."""

    concurrency: int = Field(default_factory=lambda: _cpu_count() * CPU_MULTIPLIER, ge=1)
    cpu_workers: int = Field(default_factory=_cpu_count, ge=1)
    preview_width: int = Field(default=600, ge=1)
    webp_quality: int = Field(default=75, ge=0, le=100)
    geojson_path: str = Field(default="trees.json")
    image_cache_control: str = Field(default="public, max-age=3600")
    geojson_cache_control: str = Field(default="no-cache")

    model_config = SettingsConfigDict(
        env_prefix="PIPELINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        validate_assignment=True,
        extra="ignore",
        case_sensitive=False
    )


class LoggingConfig(_EnvSettings):
    """Logging configuration."""

    level: str = Field(default="INFO")
    log_file: Optional[str] = None
    enable_json: bool = Field(default=False)
    max_file_size: str = Field(default="10 MB")
    retention_days: int = Field(default=7)

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        validate_assignment=True,
        extra="ignore",
        case_sensitive=False
    )

    @field_validator("level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        value = value.upper()
        if value not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return value


class TreeSyncConfig:
    """Main configuration; sections are loaded on first access."""

    def __init__(self, **overrides):
        load_dotenv(find_dotenv(usecwd=True))
        # Per-section keyword overrides, e.g. source={"root_folder": "abc"}
        self._overrides = overrides
        self._source = None
        self._storage = None
        self._pipeline = None
        self._logging = None

    @property
    def source(self) -> SourceConfig:
        if self._source is None:
            self._source = SourceConfig(**self._overrides.get("source", {}))
        return self._source

    @property
    def storage(self) -> StorageConfig:
        if self._storage is None:
            self._storage = StorageConfig(**self._overrides.get("storage", {}))
        return self._storage

    @property
    def pipeline(self) -> PipelineConfig:
        if self._pipeline is None:
            self._pipeline = PipelineConfig(**self._overrides.get("pipeline", {}))
        return self._pipeline

    @property
    def logging(self) -> LoggingConfig:
        if self._logging is None:
            self._logging = LoggingConfig(**self._overrides.get("logging", {}))
        return self._logging
