"""SQLAlchemy repositories against an in-memory SQLite database."""
import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from ordertrack import models
from ordertrack.accounts import AccountService
from ordertrack.auth import hash_password
from ordertrack.db import create_db_engine, create_session_factory, init_db
from ordertrack.errors import ConflictError, EmailAlreadyRegisteredError, TrackingNumberTaken
from ordertrack.records import OrderDraft, OrderItem, OrderStatus, Role
from ordertrack.repositories import EMAIL_IN_USE, SqlOrderRepository, SqlUserRepository

from .conftest import STRONG_PASSWORD


@pytest.fixture
def session_factory():
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def users(db):
    return SqlUserRepository(db)


@pytest.fixture
def orders(db):
    return SqlOrderRepository(db)


@pytest.fixture
def casey(users):
    return users.add(name="Casey", email="casey@shop.io", password_hash="x", role=Role.CUSTOMER)


def _draft(user_id, tracking_number="TRK0000000001"):
    return OrderDraft(
        user_id=user_id,
        items=(OrderItem(name="Widget", quantity=2, price=5.0),),
        shipping_address="1 Main St",
        total_amount=10.0,
        tracking_number=tracking_number,
    )


def _count(session_factory, model):
    with session_factory() as s:
        return s.scalar(select(func.count()).select_from(model))


# -------------------
# Users
# -------------------
def test_duplicate_email_insert_becomes_conflict(users, casey, session_factory):
    with pytest.raises(ConflictError, match=EMAIL_IN_USE):
        users.add(name="Other", email="casey@shop.io", password_hash="y", role=Role.CUSTOMER)

    assert _count(session_factory, models.User) == 1
    # session is usable again after the rollback
    assert users.get(casey.id).email == "casey@shop.io"


def test_email_update_collision_becomes_conflict(users, casey, session_factory):
    other = users.add(name="Olly", email="olly@shop.io", password_hash="y", role=Role.CUSTOMER)

    with pytest.raises(ConflictError):
        users.update(other.id, {"email": "casey@shop.io"})

    with session_factory() as s:
        assert s.get(models.User, other.id).email == "olly@shop.io"
    assert users.get(other.id).email == "olly@shop.io"


class _StaleLookupRepository(SqlUserRepository):
    # another request registered the same email between the check and the insert
    def get_by_email(self, email):
        return None


def test_registration_race_surfaces_as_already_registered(db, settings):
    accounts = AccountService(_StaleLookupRepository(db), settings)
    accounts.register("Casey", "casey@shop.io", STRONG_PASSWORD)

    with pytest.raises(EmailAlreadyRegisteredError):
        accounts.register("Casey Again", "casey@shop.io", STRONG_PASSWORD)


def test_credentials_are_the_only_way_to_the_hash(users):
    u = users.add(name="Casey", email="casey@shop.io", password_hash=hash_password(STRONG_PASSWORD), role=Role.CUSTOMER)

    assert not hasattr(users.get(u.id), "password_hash")
    assert users.get_credentials("casey@shop.io").password_hash.startswith("$argon2")


def test_search_treats_wildcards_literally(users, casey):
    users.add(name="100% Real", email="real@shop.io", password_hash="y", role=Role.CUSTOMER)

    assert [u.name for u in users.search("%")] == ["100% Real"]
    assert users.search("_") == []


def test_user_delete_removes_orders_items_and_history(users, orders, casey, session_factory):
    order = orders.add(_draft(casey.id))
    orders.append_status(order.id, OrderStatus.ACCEPTED, None)

    assert users.delete(casey.id) is True

    assert _count(session_factory, models.User) == 0
    assert _count(session_factory, models.Order) == 0
    assert _count(session_factory, models.OrderItem) == 0
    assert _count(session_factory, models.OrderStatusHistory) == 0


# -------------------
# Orders
# -------------------
def test_order_carries_owner_summary(orders, casey):
    order = orders.add(_draft(casey.id))

    assert order.user.id == casey.id
    assert order.user.email == "casey@shop.io"
    assert order.user.role == Role.CUSTOMER


def test_tracking_number_collision_is_reported(orders, casey, session_factory):
    orders.add(_draft(casey.id, "TRKAAAAAAAAAA"))

    with pytest.raises(TrackingNumberTaken):
        orders.add(_draft(casey.id, "TRKAAAAAAAAAA"))

    assert _count(session_factory, models.Order) == 1
    assert _count(session_factory, models.OrderItem) == 1
    assert _count(session_factory, models.OrderStatusHistory) == 1

    # the same session keeps working after the rollback
    second = orders.add(_draft(casey.id, "TRKBBBBBBBBBB"))
    assert second.tracking_number == "TRKBBBBBBBBBB"


def test_status_and_history_commit_together(orders, casey):
    order = orders.add(_draft(casey.id))

    updated = orders.append_status(order.id, OrderStatus.PICKED_UP, "at depot")

    assert updated.status == OrderStatus.PICKED_UP
    assert [h.status for h in updated.status_history] == [OrderStatus.PICKED_UP, OrderStatus.PLACED]
    assert updated.status_history[0].notes == "at depot"


def test_failed_status_update_leaves_no_trace(orders, db, casey, session_factory, monkeypatch):
    order = orders.add(_draft(casey.id))

    def fail():
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(db, "commit", fail)
    with pytest.raises(SQLAlchemyError):
        orders.append_status(order.id, OrderStatus.DELIVERED, None)
    monkeypatch.undo()

    with session_factory() as s:
        row = s.get(models.Order, order.id)
        assert row.status == OrderStatus.PLACED.value
    assert _count(session_factory, models.OrderStatusHistory) == 1

    reloaded = orders.get(order.id)
    assert reloaded.status == OrderStatus.PLACED
    assert len(reloaded.status_history) == 1


def test_append_status_for_missing_order(orders):
    assert orders.append_status(404, OrderStatus.ACCEPTED, None) is None


def test_listing_is_newest_first_with_total(orders, casey):
    first = orders.add(_draft(casey.id, "TRK0000000001"))
    second = orders.add(_draft(casey.id, "TRK0000000002"))

    page, total = orders.list(1, 0)
    assert total == 2
    assert [o.id for o in page] == [second.id]
    assert [o.id for o in orders.list_for_user(casey.id)] == [second.id, first.id]
