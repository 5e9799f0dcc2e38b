"""Persistence repositories for database operations."""

from entity_changelog.infrastructure.persistence.repositories.change_log_repository import (
    ChangeLogRepository,
)

__all__ = ["ChangeLogRepository"]
