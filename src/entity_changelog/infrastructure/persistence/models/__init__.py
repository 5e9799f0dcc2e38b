"""SQLAlchemy models bundled with entity-changelog."""

from entity_changelog.infrastructure.persistence.models.change_log import ChangeLogModel

__all__ = ["ChangeLogModel"]
