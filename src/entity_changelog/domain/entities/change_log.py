"""Change log vocabulary and read model.

The recorder writes one log record per create, update or delete of an
audited entity. This module defines the actions, the logical log columns
and the entity returned when reading the log back.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ChangeAction(str, Enum):
    """Lifecycle action stored in the action column."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class LogColumn(str, Enum):
    """Logical roles of the log table columns.

    Each role maps to a physical column name on the log model. The mapping
    is configurable; ``ENTITY`` is unmapped by default.
    """

    ACTION = "action"
    NEW_VALUE = "new_value"
    OLD_VALUE = "old_value"
    ENTITY = "entity"


DEFAULT_LOG_COLUMNS: dict[LogColumn, str | None] = {
    LogColumn.ACTION: "action",
    LogColumn.NEW_VALUE: "new_value",
    LogColumn.OLD_VALUE: "old_value",
    LogColumn.ENTITY: None,
}


@dataclass(frozen=True)
class CapturedState:
    """Owner state captured when the owner was loaded.

    Attributes:
        attributes: Copy of every loaded column value of the owner.
        relations: Relation name to the column values of each entity that
            was related at load time, in relation order.
    """

    attributes: dict[str, Any] = field(default_factory=dict)
    relations: dict[str, list[dict[str, Any]]] = field(default_factory=dict)


@dataclass
class ChangeLogEntry:
    """A change log row with its snapshots decoded.

    Attributes:
        id: Primary key of the log row.
        action: The recorded action.
        entity: Display name of the audited entity, if stored.
        old_value: Snapshot before the change (empty for creates).
        new_value: Snapshot after the change (empty for deletes).
        created_at: When the row was written, if the log table stores it.
    """

    id: int | None
    action: ChangeAction
    entity: str | None = None
    old_value: dict[str, Any] = field(default_factory=dict)
    new_value: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
