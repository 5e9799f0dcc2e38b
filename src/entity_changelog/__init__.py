"""entity-changelog - change logs for SQLAlchemy models.

Records every create, update and delete of an audited model into a log
table, storing the old and new values (including related entities) as
JSON snapshots.
"""

__version__ = "0.1.0"

from entity_changelog.core.exceptions import (
    ChangeLogConfigError,
    ChangeLogError,
    SnapshotEncodingError,
    UnsupportedOwnerError,
)
from entity_changelog.domain.entities.change_log import ChangeAction, ChangeLogEntry, LogColumn
from entity_changelog.infrastructure.persistence.change_log_config import ChangeLogConfig
from entity_changelog.infrastructure.persistence.change_log_recorder import ChangeLogRecorder
from entity_changelog.infrastructure.persistence.event_listeners import (
    register_change_log_listeners,
    remove_change_log_listeners,
)
from entity_changelog.infrastructure.persistence.models import ChangeLogModel

__all__ = [
    "__version__",
    "ChangeAction",
    "ChangeLogConfig",
    "ChangeLogConfigError",
    "ChangeLogEntry",
    "ChangeLogError",
    "ChangeLogModel",
    "ChangeLogRecorder",
    "LogColumn",
    "SnapshotEncodingError",
    "UnsupportedOwnerError",
    "register_change_log_listeners",
    "remove_change_log_listeners",
]
