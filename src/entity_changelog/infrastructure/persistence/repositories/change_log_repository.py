"""Repository for reading change log records back."""

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from entity_changelog.domain.entities.change_log import ChangeAction, ChangeLogEntry
from entity_changelog.domain.services.snapshot_codec import SnapshotCodec
from entity_changelog.infrastructure.persistence.models.change_log import ChangeLogModel


class ChangeLogRepository:
    """Synchronous queries over a change log table.

    Works with ChangeLogModel by default; pass another log model class
    with the same column names to read a custom log table.
    """

    def __init__(
        self,
        session: Session,
        log_model_class: type = ChangeLogModel,
        codec: SnapshotCodec | None = None,
    ) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy session.
            log_model_class: Mapped log model to query.
            codec: Codec used to decode the snapshots.
        """
        self.session = session
        self.model = log_model_class
        self.codec = codec or SnapshotCodec()

    def list_entries(
        self,
        entity: str | None = None,
        action: ChangeAction | str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[ChangeLogEntry]:
        """List log entries, newest first.

        Args:
            entity: Only entries for this entity display name.
            action: Only entries for this action.
            limit: Maximum number of entries.
            offset: Number of entries to skip.

        Returns:
            Decoded log entries.
        """
        query = self._filtered(select(self.model), entity, action)
        query = query.order_by(self.model.id.desc()).offset(offset).limit(limit)
        result = self.session.execute(query)
        return [self._to_entry(row) for row in result.scalars().all()]

    def count(self, entity: str | None = None, action: ChangeAction | str | None = None) -> int:
        """Count log entries matching the filters."""
        query = self._filtered(select(func.count()).select_from(self.model), entity, action)
        return self.session.execute(query).scalar_one()

    def latest(self, entity: str | None = None) -> ChangeLogEntry | None:
        """Return the most recent entry, optionally for one entity."""
        entries = self.list_entries(entity=entity, limit=1)
        return entries[0] if entries else None

    def _filtered(self, query: Any, entity: str | None, action: ChangeAction | str | None) -> Any:
        if entity is not None:
            query = query.where(self.model.entity == entity)
        if action is not None:
            query = query.where(self.model.action == ChangeAction(action).value)
        return query

    def _to_entry(self, model: Any) -> ChangeLogEntry:
        return ChangeLogEntry(
            id=model.id,
            action=ChangeAction(model.action),
            entity=getattr(model, "entity", None),
            old_value=self.codec.decode(model.old_value),
            new_value=self.codec.decode(model.new_value),
            created_at=getattr(model, "created_at", None),
        )
