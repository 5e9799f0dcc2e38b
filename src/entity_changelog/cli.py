"""Command-line interface for entity-changelog.

Provides commands to create the bundled change log table and to browse the
recorded history.
"""

from typing import NoReturn

import click

from entity_changelog import __version__
from entity_changelog.core.config import get_settings
from entity_changelog.core.logging import configure_logging, get_logger
from entity_changelog.domain.entities.change_log import ChangeAction
from entity_changelog.domain.services.snapshot_codec import SnapshotCodec


@click.group()
@click.version_option(version=__version__, prog_name="entity-changelog")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    default=None,
    help="Set log level (overrides ENTITY_CHANGELOG_LOG_LEVEL)",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str | None) -> None:
    """Browse and manage entity change logs."""
    settings = get_settings()
    if log_level is not None:
        settings = settings.model_copy(update={"log_level": log_level})
    configure_logging(settings)
    ctx.obj = settings


@cli.command()
@click.option(
    "--database-url",
    type=str,
    default=None,
    help="SQLAlchemy database URL (overrides config)",
)
@click.option(
    "--force",
    is_flag=True,
    help="Skip confirmation prompt",
)
@click.pass_obj
def init_db(settings, database_url: str | None, force: bool) -> None:
    """Create the entity_change_log table.

    Use this for development and small deployments. Applications with
    migrations should create the table there instead.
    """
    from entity_changelog.infrastructure.persistence.database import DatabaseManager
    from entity_changelog.infrastructure.persistence.models import ChangeLogModel

    if settings.is_production and not force:
        click.echo(
            "ERROR: Running in production mode. Use migrations instead of init-db.",
            err=True,
        )
        raise SystemExit(1)

    db = DatabaseManager(database_url or settings.database_url)
    try:
        db.create_tables()
        click.echo(f"Table {ChangeLogModel.__tablename__} is ready.")
    finally:
        db.disconnect()


@cli.command()
@click.option(
    "--database-url",
    type=str,
    default=None,
    help="SQLAlchemy database URL (overrides config)",
)
@click.option("--entity", type=str, default=None, help="Only show this entity, e.g. 'Order Item'")
@click.option(
    "--action",
    type=click.Choice([action.value for action in ChangeAction]),
    default=None,
    help="Only show this action",
)
@click.option("--limit", type=click.IntRange(min=1), default=20, show_default=True)
@click.pass_obj
def history(settings, database_url: str | None, entity: str | None, action: str | None, limit: int) -> None:
    """Show the most recent change log entries."""
    from entity_changelog.infrastructure.persistence.database import DatabaseManager
    from entity_changelog.infrastructure.persistence.repositories import ChangeLogRepository

    logger = get_logger(__name__)
    codec = SnapshotCodec(sort_keys=settings.json_sort_keys)
    db = DatabaseManager(database_url or settings.database_url)

    try:
        with db.session() as session:
            repository = ChangeLogRepository(session, codec=codec)
            entries = repository.list_entries(entity=entity, action=action, limit=limit)
            logger.debug("Loaded change log entries", count=len(entries))

            if not entries:
                click.echo("No change log entries found.")
                return

            for entry in entries:
                created = entry.created_at.isoformat() if entry.created_at else "-"
                click.echo(f"#{entry.id}  {created}  {entry.action.value:<6}  {entry.entity or '-'}")
                click.echo(f"    old: {codec.encode(entry.old_value)}")
                click.echo(f"    new: {codec.encode(entry.new_value)}")
    finally:
        db.disconnect()


@cli.command()
@click.pass_obj
def info(settings) -> None:
    """Display entity-changelog configuration."""
    click.echo(f"""
entity-changelog v{__version__}
{'=' * 40}

Configuration:
  Environment:  {settings.environment}
  Database:     {settings.database_url}
  Echo:         {settings.db_echo}
  Sort keys:    {settings.json_sort_keys}

Logging:
  Level:        {settings.log_level}
  Format:       {settings.log_format}
""")


def main() -> NoReturn:
    """Main entry point for the `entity-changelog` command."""
    cli()


if __name__ == "__main__":
    main()
