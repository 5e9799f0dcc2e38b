"""Database helpers using SQLAlchemy 2.0.

The recorder itself runs inside whatever Session the application uses. This
module only provides the declarative Base for the bundled change log model
and a small engine/session manager used by the CLI and the tests.
"""

from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from entity_changelog.core.config import get_settings
from entity_changelog.core.logging import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for the bundled models."""

    pass


class DatabaseManager:
    """Database engine and session manager."""

    def __init__(self, database_url: str | None = None, echo: bool | None = None) -> None:
        """Initialize the database manager.

        Args:
            database_url: SQLAlchemy URL; defaults to the configured one.
            echo: Echo SQL statements; defaults to the configured value.
        """
        settings = get_settings()
        self.database_url = database_url or settings.database_url
        self.echo = settings.db_echo if echo is None else echo
        self._engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine:
        """Get or create the database engine."""
        if self._engine is None:
            self._engine = create_engine(self.database_url, echo=self.echo)
            logger.info(
                "Database engine created",
                database_url=self._engine.url.render_as_string(hide_password=True),
            )
        return self._engine

    @property
    def session_factory(self) -> sessionmaker[Session]:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        return self._session_factory

    def create_tables(self) -> None:
        """Create the tables known to Base that do not exist yet."""
        Base.metadata.create_all(self.engine)
        logger.info("Database tables created")

    def disconnect(self) -> None:
        """Dispose of the engine and its connections."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            logger.info("Database engine disposed")

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Provide a session that is rolled back on error and always closed.

        Example:
            with db.session() as session:
                session.add(order)
                session.commit()
        """
        session = self.session_factory()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
