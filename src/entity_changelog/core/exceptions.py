"""Exceptions raised by the change log recorder."""


class ChangeLogError(Exception):
    """Base class for all change log errors."""
    pass


class ChangeLogConfigError(ChangeLogError):
    """Raised when the recorder configuration is invalid.

    Covers malformed options, a log model that cannot be used, unknown log
    columns and unknown relation names. Not recoverable without fixing the
    configuration.
    """
    pass


class UnsupportedOwnerError(ChangeLogError):
    """Raised when the recorder is used with an object that is not a mapped entity."""

    def __init__(self, owner: object):
        self.owner_type = type(owner).__name__ if not isinstance(owner, type) else owner.__name__
        super().__init__(
            f"{self.owner_type} is not a mapped entity; "
            "the change log recorder can only be attached to SQLAlchemy models"
        )


class SnapshotEncodingError(ChangeLogError):
    """Raised when a snapshot value cannot be serialized."""
    pass
