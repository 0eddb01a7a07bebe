from __future__ import annotations
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import yaml  # type: ignore[import-untyped]
from pathlib import Path
from typing import Optional

# Pool bounds are read once when the WorkerPoolSet is built and never retuned.
DEFAULT_ANALYSIS_POOL_SIZE = 10
DEFAULT_GENERAL_POOL_MAX_WORKERS = 64


class Settings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore")

    # Inputs / outputs
    INPUT_DIR: Path = Path("input")
    OUTPUT_ARCHIVE: Path = Path("output/archive.zip")
    TEXT_EXTENSION: str = ".txt"
    DELETE_SOURCES: bool = True

    # Worker pools
    ANALYSIS_POOL_SIZE: int = DEFAULT_ANALYSIS_POOL_SIZE
    GENERAL_POOL_MAX_WORKERS: int = DEFAULT_GENERAL_POOL_MAX_WORKERS
    SHUTDOWN_TIMEOUT_S: float = 30.0

    # Archive
    COMPRESSION_LEVEL: int = 6
    EXTRACT_BUFFER_SIZE: int = 4096

    # Logging
    LOG_DIR: Optional[Path] = None

    @field_validator("TEXT_EXTENSION")
    @classmethod
    def _validate_text_extension(cls, v: str) -> str:
        v = v.strip().lower()
        if len(v) < 2 or not v.startswith("."):
            raise ValueError(f"TEXT_EXTENSION must look like '.txt', got {v!r}")
        return v

    @field_validator("ANALYSIS_POOL_SIZE", "GENERAL_POOL_MAX_WORKERS", "EXTRACT_BUFFER_SIZE")
    @classmethod
    def _validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"must be >= 1, got {v}")
        return v

    @field_validator("COMPRESSION_LEVEL")
    @classmethod
    def _validate_compression_level(cls, v: int) -> int:
        if not 0 <= v <= 9:
            raise ValueError(f"COMPRESSION_LEVEL must be between 0 and 9, got {v}")
        return v


def load_settings(config_path: str | Path | None) -> Settings:
    if config_path is None:
        return Settings()
    p = Path(config_path)
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    return Settings(**data)
