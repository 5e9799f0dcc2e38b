"""JSON serialization of entity snapshots.

Snapshots are written to the log table as JSON text. Column values that
JSON cannot represent natively (dates, decimals, UUIDs, enums, bytes) are
converted to strings in a stable, documented way and sets become sorted
lists. Anything else is refused instead of being silently stringified.
"""

import base64
import json
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from entity_changelog.core.exceptions import SnapshotEncodingError


class SnapshotCodec:
    """Encode and decode snapshot mappings as JSON text."""

    def __init__(self, sort_keys: bool = False) -> None:
        """Initialize the codec.

        Args:
            sort_keys: Emit object keys in sorted order instead of
                insertion order.
        """
        self.sort_keys = sort_keys

    def encode(self, snapshot: dict[str, Any]) -> str:
        """Serialize a snapshot to JSON text.

        Args:
            snapshot: Attribute name to value mapping, possibly with nested
                lists of related entity snapshots.

        Returns:
            JSON text.

        Raises:
            SnapshotEncodingError: If a value has no JSON representation.
        """
        try:
            return json.dumps(
                snapshot,
                default=self._default,
                ensure_ascii=False,
                sort_keys=self.sort_keys,
            )
        except (TypeError, ValueError) as e:
            raise SnapshotEncodingError(f"Snapshot is not JSON serializable: {e}") from e

    def decode(self, text: str | None) -> dict[str, Any]:
        """Parse JSON text written by encode.

        Empty text decodes to an empty snapshot.
        """
        if not text:
            return {}
        return json.loads(text)

    @staticmethod
    def _default(value: Any) -> Any:
        if isinstance(value, (datetime, date, time)):
            return value.isoformat()
        if isinstance(value, Decimal):
            return str(value)
        if isinstance(value, UUID):
            return str(value)
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, (bytes, bytearray, memoryview)):
            return base64.b64encode(bytes(value)).decode("ascii")
        if isinstance(value, (set, frozenset)):
            # Sets are written sorted so equal sets encode the same
            return sorted(value)
        raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
