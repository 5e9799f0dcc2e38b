"""Validated configuration for a ChangeLogRecorder.

Options may be given with their Python names or with the camelCase names
used in recorder declarations (``logModelClass``, ``relatedAttributes``,
``additionalLogTableFields``):

    ChangeLogConfig.from_options({
        "logModelClass": ChangeLogModel,
        "attributes": ["name", "total"],
        "relatedAttributes": {"items": ["sku", "quantity"], "customer": []},
        "columns": {"entity": "entity"},
        "additionalLogTableFields": {"order_ref": "reference"},
    })
"""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from sqlalchemy import inspect
from sqlalchemy.orm import Mapper

from entity_changelog.core.exceptions import ChangeLogConfigError
from entity_changelog.core.logging import get_logger
from entity_changelog.domain.entities.change_log import DEFAULT_LOG_COLUMNS, LogColumn

logger = get_logger(__name__)


class ChangeLogConfig(BaseModel):
    """Recorder options.

    Attributes:
        log_model_class: Mapped class the log records are created from.
        attributes: Owner attributes to audit. Empty means every column.
        related_attributes: Relation name to the attributes audited on each
            related entity. An empty list means every column of the related model.
        columns: Overrides for the physical name of each log column role.
        additional_log_table_fields: Log column to owner attribute, copied verbatim.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        frozen=True,
        extra="forbid",
    )

    log_model_class: type = Field(..., alias="logModelClass")
    attributes: list[str] = Field(default_factory=list)
    related_attributes: dict[str, list[str]] = Field(default_factory=dict, alias="relatedAttributes")
    columns: dict[LogColumn, str | None] = Field(default_factory=dict)
    additional_log_table_fields: dict[str, str] = Field(
        default_factory=dict, alias="additionalLogTableFields"
    )

    @classmethod
    def from_options(cls, options: "ChangeLogConfig | Mapping[str, Any]") -> "ChangeLogConfig":
        """Build a config from a mapping of options.

        Raises:
            ChangeLogConfigError: If any option is invalid.
        """
        if isinstance(options, cls):
            return options
        if not isinstance(options, Mapping):
            raise ChangeLogConfigError(
                f"Change log options should be a mapping, got {type(options).__name__}"
            )
        try:
            return cls.model_validate(dict(options))
        except ValidationError as e:
            logger.error("Invalid change log configuration", errors=e.errors(include_url=False))
            raise ChangeLogConfigError(str(e)) from e

    @field_validator("log_model_class")
    @classmethod
    def validate_log_model_class(cls, v: type) -> type:
        """Check the log model is a mapped class that can be instantiated."""
        if not isinstance(inspect(v, raiseerr=False), Mapper):
            raise ValueError(f"'logModelClass' should be a mapped SQLAlchemy model, got {v.__name__}")
        try:
            v()
        except Exception as e:
            raise ValueError(f"'logModelClass' {v.__name__} cannot be instantiated: {e}") from e
        return v

    @model_validator(mode="after")
    def validate_log_columns(self) -> "ChangeLogConfig":
        """Check that every configured log column exists on the log model."""
        available = set(inspect(self.log_model_class).column_attrs.keys())
        required = [name for name in self.log_columns.values() if name is not None]
        required.extend(self.additional_log_table_fields.keys())
        for column in required:
            if column not in available:
                raise ValueError(f"{self.log_model_class.__name__} doesn't have field '{column}'")
        return self

    @property
    def log_columns(self) -> dict[LogColumn, str | None]:
        """Physical column name for each role, defaults merged with overrides."""
        return {**DEFAULT_LOG_COLUMNS, **self.columns}
