"""Domain entities for entity-changelog.

Entities are plain Python types with no dependency on the persistence layer.
"""

from entity_changelog.domain.entities.change_log import (
    DEFAULT_LOG_COLUMNS,
    CapturedState,
    ChangeAction,
    ChangeLogEntry,
    LogColumn,
)

__all__ = [
    "CapturedState",
    "ChangeAction",
    "ChangeLogEntry",
    "LogColumn",
    "DEFAULT_LOG_COLUMNS",
]
