"""
Google Search Scraper Configuration
===================================

Project constants plus the runtime configuration object that is assembled
once at process start and passed down to browser launch and storage-path
resolution.
"""

import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Mapping, Optional

from loguru import logger
from pydantic import BaseModel, Field, field_validator


# Project configuration
PROJECT_NAME = "google_search_scraper"
VERSION = "1.0.0"

# Environment variable names
ENV_STORAGE_STATE_PATH = "STORAGE_STATE_PATH"
ENV_CHROMIUM_EXECUTABLE_PATH = "CHROMIUM_EXECUTABLE_PATH"
ENV_MAX_CAPTCHA_ATTEMPTS = "GOOGLE_SEARCH_MAX_CAPTCHA_ATTEMPTS"
ENV_LOG_LEVEL = "LOG_LEVEL"

DEFAULT_STORAGE_DIR = Path("~/.local/mcp/share")
DEFAULT_STATE_FILENAME = "browser-state.json"

# Google front pages a session may be pinned to
GOOGLE_DOMAINS = [
    "https://www.google.com",
    "https://www.google.co.uk",
    "https://www.google.ca",
    "https://www.google.com.au",
]

# Search defaults
SEARCH_DEFAULTS = {
    "limit": 10,
    "timeout": 60000,  # milliseconds
    "locale": "en-US",
}

# Logging configuration
LOGGING_CONFIG = {
    "level": "INFO",
    "format": "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}",
    "rotation": "10 MB",
    "retention": "7 days",
    "compression": "zip",
}


class AppConfig(BaseModel):
    """Runtime configuration resolved from the environment"""
    storage_dir: Path = Field(default_factory=lambda: DEFAULT_STORAGE_DIR.expanduser())
    chromium_executable_path: Optional[str] = None
    host_locale: Optional[str] = None
    max_captcha_attempts: int = Field(2, ge=0)
    log_level: str = LOGGING_CONFIG["level"]

    @field_validator('storage_dir', mode='before')
    @classmethod
    def expand_storage_dir(cls, v):
        return Path(v).expanduser()

    @field_validator('log_level')
    @classmethod
    def normalize_log_level(cls, v):
        return v.upper()


def normalize_locale(value: Optional[str]) -> Optional[str]:
    """
    Convert a POSIX locale ("en_US.UTF-8") to a BCP 47 tag ("en-US")

    Returns None for empty values and for the "C"/"POSIX" pseudo-locales.
    """
    if not value:
        return None
    tag = value.split(".")[0].split("@")[0]
    if not tag or tag in ("C", "POSIX"):
        return None
    return tag.replace("_", "-")


def load_config(environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """
    Build the application configuration from environment variables

    Args:
        environ: Mapping to read from (default: os.environ)

    Returns:
        AppConfig
    """
    env = os.environ if environ is None else environ

    values = {
        "storage_dir": env.get(ENV_STORAGE_STATE_PATH) or DEFAULT_STORAGE_DIR,
        "chromium_executable_path": env.get(ENV_CHROMIUM_EXECUTABLE_PATH) or None,
        "host_locale": normalize_locale(env.get("LANG")),
    }
    if env.get(ENV_MAX_CAPTCHA_ATTEMPTS):
        values["max_captcha_attempts"] = int(env[ENV_MAX_CAPTCHA_ATTEMPTS])
    if env.get(ENV_LOG_LEVEL):
        values["log_level"] = env[ENV_LOG_LEVEL]

    return AppConfig(**values)


def get_storage_state_dir(config: AppConfig) -> Path:
    """Get the storage state directory, creating it if it doesn't exist"""
    config.storage_dir.mkdir(parents=True, exist_ok=True)
    return config.storage_dir


def get_state_file_path(config: AppConfig, filename: str = DEFAULT_STATE_FILENAME) -> Path:
    """Get the full path for a state file inside the storage directory"""
    return get_storage_state_dir(config) / filename


def setup_logging(config: AppConfig, log_filename: Optional[str] = None, level: Optional[str] = None) -> Path:
    """
    Set up logging to stderr and to a rotating file

    Args:
        config: Application configuration (log directory lives under storage_dir)
        log_filename: Name of the log file (default: google_search_YYYYMMDD_HHMMSS.log)
        level: Console level override (default: config.log_level)

    Returns:
        Path of the log file
    """
    log_dir = get_storage_state_dir(config) / "logs"
    log_dir.mkdir(exist_ok=True)

    if not log_filename:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_filename = f"google_search_{timestamp}.log"

    log_path = log_dir / log_filename

    # stdout carries CLI output, keep console logs on stderr
    logger.remove()
    logger.add(sys.stderr, level=(level or config.log_level).upper())
    logger.add(
        log_path,
        format=LOGGING_CONFIG["format"],
        level="DEBUG",
        rotation=LOGGING_CONFIG["rotation"],
        retention=LOGGING_CONFIG["retention"],
        compression=LOGGING_CONFIG["compression"],
    )

    logger.debug(f"📝 Logging to file: {log_path}")
    return log_path
