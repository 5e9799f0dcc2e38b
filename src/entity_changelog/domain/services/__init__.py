"""Domain services for entity-changelog."""

from entity_changelog.domain.services.snapshot_codec import SnapshotCodec

__all__ = ["SnapshotCodec"]
