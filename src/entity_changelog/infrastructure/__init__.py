"""Infrastructure layer - SQLAlchemy integration.

This layer contains the change log recorder, the ORM event listeners that
drive it, the bundled log model and the repository reading it back.
"""

from entity_changelog.infrastructure.persistence.change_log_config import ChangeLogConfig
from entity_changelog.infrastructure.persistence.change_log_recorder import ChangeLogRecorder
from entity_changelog.infrastructure.persistence.database import Base, DatabaseManager
from entity_changelog.infrastructure.persistence.event_listeners import (
    register_change_log_listeners,
    remove_change_log_listeners,
)

__all__ = [
    "Base",
    "DatabaseManager",
    "ChangeLogConfig",
    "ChangeLogRecorder",
    "register_change_log_listeners",
    "remove_change_log_listeners",
]
