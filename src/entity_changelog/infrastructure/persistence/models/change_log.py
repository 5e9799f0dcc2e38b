"""SQLAlchemy model for the entity_change_log table.

Applications can point a recorder at this model directly or at their own
log table, as long as it has the configured columns.
"""

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from entity_changelog.infrastructure.persistence.database import Base


class ChangeLogModel(Base):
    """One row per create, update or delete of an audited entity.

    Attributes:
        id: Primary key.
        action: create, update or delete.
        entity: Display name of the audited entity type.
        old_value: JSON snapshot before the change.
        new_value: JSON snapshot after the change.
        created_at: When the row was written (UTC).
    """

    __tablename__ = "entity_change_log"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    action: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="Lifecycle action: create, update, delete",
    )
    entity: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Display name of the audited entity type",
    )
    old_value: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="JSON snapshot before the change",
    )
    new_value: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="JSON snapshot after the change",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("ix_entity_change_log_entity", "entity"),
        CheckConstraint(
            "action IN ('create', 'update', 'delete')",
            name="ck_entity_change_log_action",
        ),
    )

    def __repr__(self) -> str:
        return f"<ChangeLog(id={self.id}, action={self.action}, entity={self.entity})>"
