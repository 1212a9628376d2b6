"""
Configuration module for mdxref.

Centralizes all configuration settings, environment variables, and defaults.
Settings can be overridden via environment variables or a .env file.

Usage:
    from mdxref.config import config

    # Access settings
    taggable = config.TAGGABLE_NAMES
    timeout = config.REQUEST_TIMEOUT
"""

import os
from pathlib import Path
from typing import FrozenSet
from dataclasses import dataclass, field

from dotenv import load_dotenv

# Load from project root .env file
env_path = Path(__file__).parent.parent / '.env'
if env_path.exists():
    load_dotenv(env_path)


def _get_env(key: str, default: str = "") -> str:
    """Get environment variable with default."""
    return os.environ.get(key, default)


def _get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    val = os.environ.get(key, "").lower()
    if val in ("true", "1", "yes", "on"):
        return True
    if val in ("false", "0", "no", "off"):
        return False
    return default


def _get_env_int(key: str, default: int = 0) -> int:
    """Get integer environment variable."""
    val = os.environ.get(key, "")
    try:
        return int(val) if val else default
    except ValueError:
        return default


def _get_env_float(key: str, default: float = 0.0) -> float:
    """Get float environment variable."""
    val = os.environ.get(key, "")
    try:
        return float(val) if val else default
    except ValueError:
        return default


def _get_env_names(key: str, default: str) -> FrozenSet[str]:
    """Get a comma separated list of names, lower-cased."""
    val = os.environ.get(key, default)
    return frozenset(n.strip().lower() for n in val.split(',') if n.strip())


@dataclass
class Config:
    """
    mdxref configuration settings.

    All settings can be overridden via environment variables.
    """

    # ==========================================================================
    # Cross-reference Rendering
    # ==========================================================================

    # Enumerations whose references render parenthesized, like \tag{} in LaTeX
    TAGGABLE_NAMES: FrozenSet[str] = field(default_factory=lambda: _get_env_names(
        "MDX_TAGGABLE_NAMES", "eq"
    ))

    # Render citations as [[n]](#cite-key) instead of [n]
    LINK_CITATIONS: bool = field(default_factory=lambda: _get_env_bool(
        "MDX_LINK_CITATIONS", False
    ))

    CITATION_ANCHOR_PREFIX: str = field(default_factory=lambda: _get_env(
        "MDX_CITATION_ANCHOR_PREFIX", "cite-"
    ))

    # ==========================================================================
    # Bibliography Source Settings
    # ==========================================================================

    # Request timeout in seconds
    REQUEST_TIMEOUT: float = field(default_factory=lambda: _get_env_float(
        "MDX_REQUEST_TIMEOUT", 30.0
    ))

    USER_AGENT: str = field(default_factory=lambda: _get_env(
        "MDX_USER_AGENT", "mdxref/0.4 (+bibliography fetch)"
    ))

    # ==========================================================================
    # Logging Settings
    # ==========================================================================

    # Log level: DEBUG, INFO, WARNING, ERROR
    LOG_LEVEL: str = field(default_factory=lambda: _get_env(
        "LOG_LEVEL", "INFO"
    ))

    # Enable verbose logging
    VERBOSE: bool = field(default_factory=lambda: _get_env_bool(
        "VERBOSE", False
    ))

    # Enable file logging
    ENABLE_FILE_LOGGING: bool = field(default_factory=lambda: _get_env_bool(
        "ENABLE_FILE_LOGGING", False
    ))

    # Log file rotation size (MB)
    LOG_ROTATION_SIZE_MB: int = field(default_factory=lambda: _get_env_int(
        "LOG_ROTATION_SIZE_MB", 10
    ))

    # Number of log files to retain
    LOG_RETENTION_COUNT: int = field(default_factory=lambda: _get_env_int(
        "LOG_RETENTION_COUNT", 5
    ))

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        valid_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        if self.LOG_LEVEL.upper() not in valid_levels:
            self.LOG_LEVEL = 'INFO'

        # Ensure positive values
        if self.REQUEST_TIMEOUT <= 0:
            self.REQUEST_TIMEOUT = 30.0
        if self.LOG_ROTATION_SIZE_MB < 1:
            self.LOG_ROTATION_SIZE_MB = 10
        if self.LOG_RETENTION_COUNT < 1:
            self.LOG_RETENTION_COUNT = 5

        self.TAGGABLE_NAMES = frozenset(n.lower() for n in self.TAGGABLE_NAMES)

    def to_dict(self) -> dict:
        """Convert config to dictionary for logging/debugging."""
        return {
            'TAGGABLE_NAMES': sorted(self.TAGGABLE_NAMES),
            'LINK_CITATIONS': self.LINK_CITATIONS,
            'CITATION_ANCHOR_PREFIX': self.CITATION_ANCHOR_PREFIX,
            'REQUEST_TIMEOUT': self.REQUEST_TIMEOUT,
            'LOG_LEVEL': self.LOG_LEVEL,
        }


# Global config instance
config = Config()


VERSION = "0.4.0"


__all__ = ['config', 'Config', 'VERSION']
