"""Integration tests for the SQLAlchemy event listeners.

These run real load/flush/commit cycles against in-memory SQLite and check
the log rows written through the session.
"""

import json

import pytest
from sqlalchemy import event, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from entity_changelog.core.exceptions import ChangeLogConfigError, UnsupportedOwnerError
from entity_changelog.infrastructure.persistence.change_log_recorder import ChangeLogRecorder
from entity_changelog.infrastructure.persistence.event_listeners import (
    PENDING_INFO_KEY,
    _discard_pending_logs,
    _write_pending_logs,
    register_change_log_listeners,
    remove_change_log_listeners,
)
from entity_changelog.infrastructure.persistence.models import ChangeLogModel
from tests.shop_models import Customer, Order, OrderItem, PlainLog


def _logs(session: Session) -> list[ChangeLogModel]:
    return list(session.scalars(select(ChangeLogModel).order_by(ChangeLogModel.id)))


@pytest.mark.usefixtures("order_listeners")
class TestRecordedChanges:
    """Each lifecycle event writes exactly one log row."""

    def test_load_captures_old_state(
        self, order_listeners: ChangeLogRecorder, order_id: int, session: Session
    ) -> None:
        order = session.get(Order, order_id)

        captured = order_listeners.old_state(order)
        assert captured.attributes["reference"] == "A-100"
        assert [row["sku"] for row in captured.relations["items"]] == ["APPLE", "PEAR"]
        assert captured.relations["customer"] == [
            {"id": order.customer.id, "name": "Ann", "email": "ann@example.com"}
        ]

    def test_create(self, session: Session) -> None:
        order = Order(
            reference="N-1",
            status="new",
            total=40,
            customer=Customer(name="Cid"),
            items=[OrderItem(sku="KIWI", quantity=4)],
        )
        session.add(order)
        session.commit()

        [log] = _logs(session)
        assert log.action == "create"
        assert log.entity == "Order"
        assert json.loads(log.old_value) == {}
        assert json.loads(log.new_value) == {
            "reference": "N-1",
            "status": "new",
            "total": 40,
            "items": [{"sku": "KIWI", "quantity": 4}],
            "customer": [{"name": "Cid"}],
        }

    def test_update(self, order_id: int, session: Session) -> None:
        order = session.get(Order, order_id)
        order.status = "paid"
        order.items[0].quantity = 3
        session.commit()

        [log] = _logs(session)
        assert log.action == "update"
        assert json.loads(log.old_value) == {
            "reference": "A-100",
            "status": "new",
            "total": 250,
            "items": [{"sku": "APPLE", "quantity": 2}, {"sku": "PEAR", "quantity": 1}],
            "customer": [{"name": "Ann"}],
        }
        assert json.loads(log.new_value) == {
            "reference": "A-100",
            "status": "paid",
            "total": 250,
            "items": [{"sku": "APPLE", "quantity": 3}, {"sku": "PEAR", "quantity": 1}],
            "customer": [{"name": "Ann"}],
        }

    def test_update_keeps_old_related_rows_from_load_time(self, order_id: int, session: Session) -> None:
        order = session.get(Order, order_id)
        session.execute(text("UPDATE order_items SET quantity = 99"))
        order.total = 999
        session.commit()

        [log] = _logs(session)
        assert json.loads(log.old_value)["items"] == [
            {"sku": "APPLE", "quantity": 2},
            {"sku": "PEAR", "quantity": 1},
        ]

    def test_delete(self, order_id: int, session: Session) -> None:
        order = session.get(Order, order_id)
        order.status = "changed in memory"
        session.delete(order)
        session.commit()

        [log] = _logs(session)
        assert log.action == "delete"
        assert json.loads(log.new_value) == {}
        assert json.loads(log.old_value)["status"] == "new"
        assert json.loads(log.old_value)["items"] == [
            {"sku": "APPLE", "quantity": 2},
            {"sku": "PEAR", "quantity": 1},
        ]

    def test_no_log_without_net_change(self, order_id: int, session: Session) -> None:
        order = session.get(Order, order_id)
        order.status = "new"
        session.commit()

        assert _logs(session) == []

    def test_changes_of_unaudited_models_are_not_logged(self, order_id: int, session: Session) -> None:
        customer = session.scalars(select(Customer)).one()
        customer.name = "Anna"
        session.commit()

        assert _logs(session) == []

    def test_rollback_discards_log(self, order_id: int, session: Session) -> None:
        order = session.get(Order, order_id)
        order.status = "paid"
        session.flush()
        session.rollback()

        assert _logs(session) == []

    def test_failed_flush_leaves_no_log(self, order_id: int, session: Session) -> None:
        order = session.get(Order, order_id)
        order.status = "paid"
        order.items.append(OrderItem(sku=None, quantity=1))

        with pytest.raises(IntegrityError):
            session.flush()
        session.rollback()

        assert PENDING_INFO_KEY not in session.info

        order.customer.name = "Zed"
        session.commit()

        assert _logs(session) == []

    def test_update_after_failed_flush_is_logged_once(self, order_id: int, session: Session) -> None:
        order = session.get(Order, order_id)
        order.items.append(OrderItem(sku=None, quantity=1))
        with pytest.raises(IntegrityError):
            session.flush()
        session.rollback()

        order.status = "paid"
        session.commit()

        [log] = _logs(session)
        assert log.action == "update"
        assert json.loads(log.new_value)["status"] == "paid"

    def test_refresh_recaptures(self, order_id: int, session: Session) -> None:
        order = session.get(Order, order_id)
        session.execute(text("UPDATE orders SET status = 'held'"))
        session.refresh(order)

        order.status = "released"
        session.commit()

        [log] = _logs(session)
        assert json.loads(log.old_value)["status"] == "held"
        assert json.loads(log.new_value)["status"] == "released"

    def test_one_log_per_event(self, order_id: int, session: Session) -> None:
        order = session.get(Order, order_id)
        order.status = "paid"
        session.commit()
        order.status = "shipped"
        session.commit()

        assert [log.action for log in _logs(session)] == ["update", "update"]

    def test_reload_in_new_session(self, order_id: int, session_factory: sessionmaker[Session]) -> None:
        with session_factory() as first:
            order = first.get(Order, order_id)
            order.status = "paid"
            first.commit()

        with session_factory() as second:
            order = second.get(Order, order_id)
            order.status = "shipped"
            second.commit()

            logs = _logs(second)
            assert json.loads(logs[1].old_value)["status"] == "paid"
            assert json.loads(logs[1].new_value)["status"] == "shipped"


class TestRegistration:
    """Tests for attaching and detaching listeners."""

    def test_remove_stops_logging(self, order_id: int, recorder: ChangeLogRecorder, session: Session) -> None:
        register_change_log_listeners(Order, recorder)
        remove_change_log_listeners(Order)

        order = session.get(Order, order_id)
        order.status = "paid"
        session.commit()

        assert _logs(session) == []
        assert recorder.has_old_state(order) is False
        assert not event.contains(Session, "after_flush_postexec", _write_pending_logs)
        assert not event.contains(Session, "after_soft_rollback", _discard_pending_logs)

    def test_register_twice_replaces_listeners(self, order_id: int, recorder: ChangeLogRecorder, session: Session) -> None:
        register_change_log_listeners(Order, recorder)
        register_change_log_listeners(Order, recorder)
        try:
            order = session.get(Order, order_id)
            order.status = "paid"
            session.commit()
        finally:
            remove_change_log_listeners(Order)

        assert len(_logs(session)) == 1

    def test_unknown_relation_fails_at_registration(self) -> None:
        recorder = ChangeLogRecorder({"logModelClass": ChangeLogModel, "relatedAttributes": {"lines": []}})

        with pytest.raises(ChangeLogConfigError):
            register_change_log_listeners(Order, recorder)

    def test_unmapped_owner_fails_at_registration(self, recorder: ChangeLogRecorder) -> None:
        with pytest.raises(UnsupportedOwnerError):
            register_change_log_listeners(PlainLog, recorder)

    def test_pending_queue_is_cleared(self, order_listeners: ChangeLogRecorder, order_id: int, session: Session) -> None:
        order = session.get(Order, order_id)
        order.status = "paid"
        session.flush()

        assert PENDING_INFO_KEY not in session.info
        session.commit()
        assert len(_logs(session)) == 1
