from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from archive.exceptions import ConfigurationError

# Load .env file from project root
_env_path = Path(__file__).parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path)


MIN_PART_SIZE = 5 * 1024 * 1024


class StorageSettings(BaseModel):
    backend: Literal["s3", "local"] = "s3"
    bucket: str | None = None
    bucket_env: str = "ARCHIVE_BUCKET"
    region: str | None = None
    endpoint_url: str | None = None
    prefix: str = ""
    local_root: Path = Path("data/archive")

    @field_validator("prefix", mode="before")
    @classmethod
    def _strip_prefix(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip("/")

    @property
    def bucket_name(self) -> str:
        value = self.bucket or os.getenv(self.bucket_env, "")
        if not value and self.backend == "s3":
            raise ConfigurationError(
                f"Environment variable '{self.bucket_env}' is required to name the target bucket",
                {"setting": self.bucket_env},
            )
        return value or self.local_root.name


class UploadSettings(BaseModel):
    timeout_seconds: float = Field(50.0, gt=0.0)
    chunk_size: int = Field(8 * 1024 * 1024, ge=MIN_PART_SIZE)


class Settings(BaseModel):
    storage: StorageSettings = Field(default_factory=StorageSettings)
    upload: UploadSettings = Field(default_factory=UploadSettings)

    @classmethod
    def load(cls, path: Path | None = None) -> "Settings":
        """Load settings from YAML configuration file.

        Args:
            path: Optional path to configuration file. If not provided, uses
                ARCHIVE_CONFIG environment variable or defaults to config/default.yaml.

        Returns:
            Settings instance with loaded configuration.

        Raises:
            ConfigurationError: If the file does not exist or is invalid.
        """
        config_path = path or Path(os.getenv("ARCHIVE_CONFIG", "config/default.yaml"))
        if not config_path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {config_path}", {"path": str(config_path)}
            )
        with config_path.open("r", encoding="utf-8") as fp:
            payload = yaml.safe_load(fp) or {}
        try:
            return cls(**payload)
        except Exception as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}", {"path": str(config_path)}) from exc


@lru_cache(maxsize=1)
def get_settings(path: str | None = None) -> Settings:
    return Settings.load(Path(path) if path else None)


__all__ = [
    "Settings",
    "StorageSettings",
    "UploadSettings",
    "MIN_PART_SIZE",
    "get_settings",
]
