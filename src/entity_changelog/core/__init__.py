"""Core entity-changelog utilities.

This module exports core utilities for use throughout the package.
"""

from entity_changelog.core.config import Settings, get_settings
from entity_changelog.core.exceptions import (
    ChangeLogConfigError,
    ChangeLogError,
    SnapshotEncodingError,
    UnsupportedOwnerError,
)
from entity_changelog.core.logging import configure_logging, get_logger

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "ChangeLogError",
    "ChangeLogConfigError",
    "UnsupportedOwnerError",
    "SnapshotEncodingError",
]
