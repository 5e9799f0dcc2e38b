"""Pytest configuration for all tests."""

from collections.abc import Generator

import pytest
import structlog
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from entity_changelog.core.config import get_settings
from entity_changelog.infrastructure.persistence.change_log_recorder import ChangeLogRecorder
from entity_changelog.infrastructure.persistence.database import Base
from entity_changelog.infrastructure.persistence.event_listeners import (
    register_change_log_listeners,
    remove_change_log_listeners,
)
from entity_changelog.infrastructure.persistence.models import ChangeLogModel
from tests.shop_models import Customer, Order, OrderItem, ShopBase


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Generator[None, None, None]:
    """Make every test read settings from its own environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _reset_logging() -> Generator[None, None, None]:
    """Undo logging configuration done by CLI commands."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """In-memory SQLite engine with the shop and change log tables."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    ShopBase.metadata.create_all(engine)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    with session_factory() as session:
        yield session
        session.rollback()


@pytest.fixture
def order_id(session_factory: sessionmaker[Session]) -> int:
    """Persist an order with a customer and two items, without any change logging."""
    with session_factory() as session:
        order = Order(
            reference="A-100",
            status="new",
            total=250,
            customer=Customer(name="Ann", email="ann@example.com"),
            items=[OrderItem(sku="APPLE", quantity=2), OrderItem(sku="PEAR", quantity=1)],
        )
        session.add(order)
        session.commit()
        return order.id


@pytest.fixture
def order_options() -> dict:
    """Recorder options auditing a few order columns and both relations."""
    return {
        "logModelClass": ChangeLogModel,
        "attributes": ["reference", "status", "total"],
        "relatedAttributes": {
            "items": ["sku", "quantity"],
            "customer": ["name"],
        },
        "columns": {"entity": "entity"},
    }


@pytest.fixture
def recorder(order_options: dict) -> ChangeLogRecorder:
    return ChangeLogRecorder(order_options)


@pytest.fixture
def order_listeners(order_id: int, recorder: ChangeLogRecorder) -> Generator[ChangeLogRecorder, None, None]:
    """Register the recorder for Order after the seed order was written."""
    register_change_log_listeners(Order, recorder)
    yield recorder
    remove_change_log_listeners(Order)
