"""Configuration module for telereport."""

import functools
import logging
import pathlib
from importlib import metadata

from pydantic_settings import BaseSettings, SettingsConfigDict


def get_version() -> str:
    """Return telereport version."""
    try:
        return metadata.version("telereport")
    except metadata.PackageNotFoundError:
        return "Version unknown"


def get_logger() -> logging.Logger:
    """Gets the telereport logger."""
    logger = logging.getLogger("telereport")
    if logger.handlers:
        return logger

    logger.setLevel(logging.INFO)
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)s - %(funcName)s - %(message)s",  # noqa: E501
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger


class Settings(BaseSettings):
    """Report generation settings loaded from the environment.

    Attributes:
        data_dir: Root directory of the per-user sample history files.
        reports_dir: Root directory that report archives are written to.
        download_url: Base URL the archive file name is appended to in the
            notification link.
        archive_extension: Extension of the report archive, without the dot.
        log_level: Level name for the telereport logger.
    """

    model_config = SettingsConfigDict(
        env_prefix="TELEREPORT_", env_file=".env", extra="ignore"
    )

    data_dir: pathlib.Path = pathlib.Path("data")
    reports_dir: pathlib.Path = pathlib.Path("reports")
    download_url: str = "http://localhost:8080/reports/"
    archive_extension: str = "zip"
    log_level: str = "INFO"


@functools.lru_cache
def get_settings() -> Settings:
    """Return the cached settings instance."""
    return Settings()
