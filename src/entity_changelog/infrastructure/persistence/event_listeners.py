"""SQLAlchemy event listeners that drive a ChangeLogRecorder.

Registering a recorder for an owner class hooks it into the ORM:

- ``load`` and full ``refresh`` of an owner capture its old state;
- ``after_insert``, ``after_update`` and ``after_delete`` queue the owner on
  its session;
- once the flush has run, the queued owners get their log records, which
  are added to the same session and written by the same commit;
- a rollback, including the one that follows a failed flush, drops the
  queue so no record outlives the change it describes.

Log records are not added from inside the mapper events because the
session does not accept new objects while it is executing a flush.
"""

from typing import Any, Callable

from sqlalchemy import event
from sqlalchemy.orm import Session, object_session

from entity_changelog.core.logging import get_logger
from entity_changelog.domain.entities.change_log import ChangeAction
from entity_changelog.infrastructure.persistence.change_log_recorder import ChangeLogRecorder

logger = get_logger(__name__)

# Key of the pending (recorder, owner, action) queue in Session.info
PENDING_INFO_KEY = "entity_changelog.pending"

_registered: dict[type, list[tuple[str, Callable[..., Any]]]] = {}


def register_change_log_listeners(owner_class: type, recorder: ChangeLogRecorder) -> None:
    """Record changes of owner_class (and its subclasses) with recorder.

    Args:
        owner_class: Mapped class to audit.
        recorder: Recorder writing the log records.

    Raises:
        UnsupportedOwnerError: If owner_class is not mapped.
        ChangeLogConfigError: If the recorder names an unknown relation.
    """
    if owner_class in _registered:
        remove_change_log_listeners(owner_class)

    # Fail on configuration errors now rather than on the first load
    recorder.bind(owner_class)

    listeners = [
        ("load", _make_load_listener(recorder)),
        ("refresh", _make_refresh_listener(recorder)),
        ("after_insert", _make_change_listener(recorder, ChangeAction.CREATE)),
        ("after_update", _make_change_listener(recorder, ChangeAction.UPDATE)),
        ("after_delete", _make_change_listener(recorder, ChangeAction.DELETE)),
    ]
    for identifier, fn in listeners:
        if identifier in ("load", "refresh"):
            event.listen(owner_class, identifier, fn, propagate=True, restore_load_context=True)
        else:
            event.listen(owner_class, identifier, fn, propagate=True)
    _registered[owner_class] = listeners

    for identifier, fn in _SESSION_LISTENERS:
        if not event.contains(Session, identifier, fn):
            event.listen(Session, identifier, fn)

    logger.info("Registered change log listeners", entity=owner_class.__name__)


def remove_change_log_listeners(owner_class: type) -> None:
    """Stop recording changes of owner_class."""
    for identifier, fn in _registered.pop(owner_class, []):
        event.remove(owner_class, identifier, fn)

    if not _registered:
        for identifier, fn in _SESSION_LISTENERS:
            if event.contains(Session, identifier, fn):
                event.remove(Session, identifier, fn)

    logger.info("Removed change log listeners", entity=owner_class.__name__)


def _make_load_listener(recorder: ChangeLogRecorder):
    def on_load(target, context):
        recorder.capture(target)

    return on_load


def _make_refresh_listener(recorder: ChangeLogRecorder):
    def on_refresh(target, context, attrs):
        # Partial refreshes (expired attributes) are not a reload
        if attrs is None:
            recorder.capture(target)

    return on_refresh


def _make_change_listener(recorder: ChangeLogRecorder, action: ChangeAction):
    """Factory for the after_insert/after_update/after_delete listeners."""

    def listener(mapper, connection, target):
        session = object_session(target)
        if session is None:
            return

        # after_update also fires for owners without net changes
        if action is ChangeAction.UPDATE and not session.is_modified(target):
            return

        session.info.setdefault(PENDING_INFO_KEY, []).append((recorder, target, action))

    return listener


def _write_pending_logs(session: Session, flush_context: Any) -> None:
    """Add the log records queued during the flush that just ran."""
    pending = session.info.pop(PENDING_INFO_KEY, None)
    if not pending:
        return

    for recorder, owner, action in pending:
        recorder.record(session, owner, action)


def _discard_pending_logs(session: Session, previous_transaction: Any) -> None:
    """Drop owners queued by a flush that failed or was rolled back."""
    pending = session.info.pop(PENDING_INFO_KEY, None)
    if pending:
        logger.debug("Discarded pending change log records", count=len(pending))


_SESSION_LISTENERS = [
    ("after_flush_postexec", _write_pending_logs),
    ("after_soft_rollback", _discard_pending_logs),
]
