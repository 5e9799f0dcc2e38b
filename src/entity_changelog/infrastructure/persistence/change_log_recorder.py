"""Change log recorder for SQLAlchemy models.

The recorder snapshots an owner entity when it is loaded and, on create,
update or delete, writes one log record holding the action, the old and new
snapshots as JSON and optional extra columns. Values are stored wholesale;
nothing is diffed.

The owner is always passed in explicitly. Load-time state lives in the
owner's SQLAlchemy instance state, so it goes away with the instance and is
replaced when the instance is loaded again.

Usage:
    recorder = ChangeLogRecorder({
        "logModelClass": ChangeLogModel,
        "attributes": ["reference", "total"],
        "relatedAttributes": {"items": ["sku", "quantity"]},
        "columns": {"entity": "entity"},
    })

    order = session.get(Order, order_id)
    recorder.capture(order)             # after load
    order.total = 42
    session.flush()
    recorder.record_update(session, order)
"""

import copy
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from sqlalchemy import inspect
from sqlalchemy.orm import Mapper, Session
from sqlalchemy.orm.state import InstanceState

from entity_changelog.core.config import get_settings
from entity_changelog.core.exceptions import ChangeLogConfigError, UnsupportedOwnerError
from entity_changelog.core.inflector import basename, titleize
from entity_changelog.core.logging import get_logger
from entity_changelog.domain.entities.change_log import CapturedState, ChangeAction, LogColumn
from entity_changelog.domain.services.snapshot_codec import SnapshotCodec
from entity_changelog.infrastructure.persistence.change_log_config import ChangeLogConfig

logger = get_logger(__name__)

# Key of the captured state in InstanceState.info
STATE_INFO_KEY = "entity_changelog.captured_state"


@dataclass(frozen=True)
class OwnerSchema:
    """Audited attributes of one owner class, resolved from its mapper."""

    owner_class: type
    attributes: tuple[str, ...]
    related_attributes: dict[str, tuple[str, ...]]


class ChangeLogRecorder:
    """Writes create, update and delete log records for an owner entity.

    A recorder holds configuration only. It can serve any number of owner
    instances, and of owner classes as long as each has the configured
    relations.
    """

    def __init__(
        self,
        config: ChangeLogConfig | Mapping[str, Any],
        codec: SnapshotCodec | None = None,
    ) -> None:
        """Initialize the recorder.

        Args:
            config: Recorder options, validated on construction.
            codec: Snapshot serializer. Defaults to JSON honouring the
                ``json_sort_keys`` setting.

        Raises:
            ChangeLogConfigError: If the options are invalid.
        """
        self.config = ChangeLogConfig.from_options(config)
        self.codec = codec or SnapshotCodec(sort_keys=get_settings().json_sort_keys)
        self._schemas: dict[type, OwnerSchema] = {}

    # Schema

    def bind(self, owner_class: type) -> OwnerSchema:
        """Resolve the audited attributes of an owner class.

        Empty attribute lists are expanded to all column attributes of the
        owner (or related) mapper. The result is cached per class.

        Raises:
            UnsupportedOwnerError: If owner_class is not mapped.
            ChangeLogConfigError: If a configured relation does not exist.
        """
        schema = self._schemas.get(owner_class)
        if schema is not None:
            return schema

        mapper = inspect(owner_class, raiseerr=False)
        if not isinstance(mapper, Mapper):
            raise UnsupportedOwnerError(owner_class)

        attributes = tuple(self.config.attributes) or tuple(mapper.column_attrs.keys())

        related: dict[str, tuple[str, ...]] = {}
        for relation, names in self.config.related_attributes.items():
            if relation not in mapper.relationships:
                logger.error(
                    "Unknown relation in change log configuration",
                    owner=owner_class.__name__,
                    relation=relation,
                )
                raise ChangeLogConfigError(f"{owner_class.__name__} doesn't have '{relation}' relation")
            related_mapper = mapper.relationships[relation].mapper
            related[relation] = tuple(names) or tuple(related_mapper.column_attrs.keys())

        schema = OwnerSchema(owner_class=owner_class, attributes=attributes, related_attributes=related)
        self._schemas[owner_class] = schema
        return schema

    # Load-time state

    def capture(self, owner: Any) -> CapturedState:
        """Capture the owner's state right after it was loaded.

        Copies every loaded column value of the owner and fetches the
        entities of each configured relation, copying their column values
        too. The copy is what later update and delete records report as
        the old value.

        Raises:
            UnsupportedOwnerError: If owner is not a mapped instance.
        """
        state = self._instance_state(owner)
        schema = self.bind(type(owner))

        relations = {
            relation: [self._column_values(entity) for entity in self.related_entities(owner, relation)]
            for relation in schema.related_attributes
        }
        captured = CapturedState(attributes=self._column_values(owner), relations=relations)
        state.info[STATE_INFO_KEY] = captured

        logger.debug(
            "Captured owner state",
            entity=type(owner).__name__,
            relations={name: len(rows) for name, rows in relations.items()},
        )
        return captured

    def old_state(self, owner: Any) -> CapturedState | None:
        """Return the state captured at load time, if any."""
        return self._instance_state(owner).info.get(STATE_INFO_KEY)

    def has_old_state(self, owner: Any) -> bool:
        return self.old_state(owner) is not None

    def discard(self, owner: Any) -> None:
        """Forget the captured state of owner."""
        self._instance_state(owner).info.pop(STATE_INFO_KEY, None)

    # Snapshots

    def old_data(self, owner: Any) -> dict[str, Any]:
        """Audited snapshot of the owner as it was loaded.

        Related entities come from the captured lists only; they are never
        fetched again. Returns an empty mapping when nothing was captured.
        """
        captured = self.old_state(owner)
        if captured is None:
            return {}

        schema = self.bind(type(owner))
        data = {name: captured.attributes.get(name) for name in schema.attributes}
        for relation, names in schema.related_attributes.items():
            for row in captured.relations.get(relation, []):
                data.setdefault(relation, []).append({name: row.get(name) for name in names})
        return data

    def new_data(self, owner: Any) -> dict[str, Any]:
        """Audited snapshot of the owner's current in-memory state.

        Related entities are read through the relation at call time.
        """
        schema = self.bind(type(owner))
        data = self.model_attributes(owner, schema.attributes)
        for relation, names in schema.related_attributes.items():
            for entity in self.related_entities(owner, relation):
                data.setdefault(relation, []).append(self.model_attributes(entity, names))
        return data

    def model_attributes(self, entity: Any, names: tuple[str, ...] | list[str]) -> dict[str, Any]:
        """Read the named attributes of entity.

        A name the entity does not have raises AttributeError.
        """
        return {name: getattr(entity, name) for name in names}

    def related_entities(self, owner: Any, relation: str) -> list[Any]:
        """Entities currently related to owner through relation.

        Scalar relations yield a list of zero or one entity.
        """
        schema = self.bind(type(owner))
        if relation not in schema.related_attributes:
            raise ChangeLogConfigError(f"'{relation}' is not an audited relation of {schema.owner_class.__name__}")

        value = getattr(owner, relation)
        if value is None:
            return []
        if inspect(type(owner)).relationships[relation].uselist:
            return list(value)
        return [value]

    def entity_name(self, owner: Any) -> str:
        """Human readable name of the owner's type, e.g. 'Order Item'."""
        return titleize(basename(type(owner).__qualname__))

    # Log records

    def build_log_record(self, owner: Any, action: ChangeAction | str) -> Any:
        """Create an unsaved log record for action on owner.

        Creates carry an empty old snapshot and deletes an empty new one.
        """
        action = ChangeAction(action)
        self._instance_state(owner)
        columns = self.config.log_columns

        old_data = {} if action is ChangeAction.CREATE else self.old_data(owner)
        new_data = {} if action is ChangeAction.DELETE else self.new_data(owner)

        values: dict[str, Any] = {
            columns[LogColumn.OLD_VALUE]: self.codec.encode(old_data),
            columns[LogColumn.NEW_VALUE]: self.codec.encode(new_data),
            columns[LogColumn.ACTION]: action.value,
        }
        if columns[LogColumn.ENTITY] is not None:
            values[columns[LogColumn.ENTITY]] = self.entity_name(owner)
        for log_field, owner_attribute in self.config.additional_log_table_fields.items():
            values[log_field] = getattr(owner, owner_attribute)

        log = self.config.log_model_class()
        for column, value in values.items():
            setattr(log, column, value)
        return log

    def record(self, session: Session, owner: Any, action: ChangeAction | str) -> Any:
        """Build a log record and add it to session.

        The record is written by the session's next flush. Errors are not
        caught.
        """
        log = self.build_log_record(owner, action)
        session.add(log)
        logger.info(
            "Change log record added",
            entity=type(owner).__name__,
            action=ChangeAction(action).value,
            log_model=type(log).__name__,
        )
        return log

    def record_create(self, session: Session, owner: Any) -> Any:
        return self.record(session, owner, ChangeAction.CREATE)

    def record_update(self, session: Session, owner: Any) -> Any:
        return self.record(session, owner, ChangeAction.UPDATE)

    def record_delete(self, session: Session, owner: Any) -> Any:
        return self.record(session, owner, ChangeAction.DELETE)

    # Helpers

    @staticmethod
    def _instance_state(owner: Any) -> InstanceState:
        state = inspect(owner, raiseerr=False)
        if not isinstance(state, InstanceState):
            raise UnsupportedOwnerError(owner)
        return state

    @staticmethod
    def _column_values(entity: Any) -> dict[str, Any]:
        """Copy the loaded column values of entity without triggering loads."""
        state = inspect(entity)
        loaded = state.dict
        return {
            key: copy.deepcopy(loaded[key])
            for key in state.mapper.column_attrs.keys()
            if key in loaded
        }
