# ordertrack/repositories.py
"""
Repository interfaces and their SQLAlchemy implementations.

Every user read goes through `public_view`, so a password hash can only
leave this module through `get_credentials`.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from . import models
from .errors import ConflictError, TrackingNumberTaken
from .records import (
    Credentials,
    Order,
    OrderDraft,
    OrderItem,
    OrderOwner,
    OrderStatus,
    OrderStatusEvent,
    PublicUser,
    Role,
    utcnow,
)

logger = logging.getLogger(__name__)

EMAIL_IN_USE = "Email already in use"


class UserRepository(Protocol):
    def get(self, user_id: int) -> Optional[PublicUser]: ...

    def get_by_email(self, email: str) -> Optional[PublicUser]: ...

    def get_credentials(self, email: str) -> Optional[Credentials]: ...

    def add(self, name: str, email: str, password_hash: str, role: Role) -> PublicUser: ...

    def update(self, user_id: int, changes: Dict[str, Any]) -> Optional[PublicUser]: ...

    def delete(self, user_id: int) -> bool: ...

    def list(self, limit: int, offset: int) -> Tuple[List[PublicUser], int]: ...

    def list_by_role(self, role: Role) -> List[PublicUser]: ...

    def search(self, query: str) -> List[PublicUser]: ...


class OrderRepository(Protocol):
    def add(self, draft: OrderDraft) -> Order: ...

    def get(self, order_id: int) -> Optional[Order]: ...

    def list_for_user(self, user_id: int) -> List[Order]: ...

    def list(self, limit: int, offset: int) -> Tuple[List[Order], int]: ...

    def append_status(self, order_id: int, status: OrderStatus, notes: Optional[str]) -> Optional[Order]: ...

    def delete(self, order_id: int) -> bool: ...


# -------------------
# Projections
# -------------------
def public_view(u: models.User) -> PublicUser:
    return PublicUser(
        id=u.id,
        name=u.name,
        email=u.email,
        role=Role(u.role),
        created_at=u.created_at,
        updated_at=u.updated_at,
    )


def owner_view(u: models.User) -> OrderOwner:
    return OrderOwner(id=u.id, name=u.name, email=u.email, role=Role(u.role))


def order_view(o: models.Order) -> Order:
    history = sorted(o.status_history, key=lambda h: (h.created_at, h.id), reverse=True)
    return Order(
        id=o.id,
        user_id=o.user_id,
        status=OrderStatus(o.status),
        total_amount=o.total_amount,
        shipping_address=o.shipping_address,
        tracking_number=o.tracking_number,
        notes=o.notes,
        created_at=o.created_at,
        updated_at=o.updated_at,
        items=tuple(
            OrderItem(name=i.name, quantity=i.quantity, price=i.price, description=i.description)
            for i in o.items
        ),
        status_history=tuple(
            OrderStatusEvent(status=OrderStatus(h.status), notes=h.notes, created_at=h.created_at)
            for h in history
        ),
        user=owner_view(o.user) if o.user else None,
    )


def _violates(exc: IntegrityError, column: str) -> bool:
    # sqlite: "UNIQUE constraint failed: users.email"; postgres names the constraint/key
    return column in str(exc.orig)


# -------------------
# Users
# -------------------
class SqlUserRepository:
    def __init__(self, db: Session):
        self.db = db

    def _row(self, user_id: int) -> Optional[models.User]:
        return self.db.get(models.User, user_id)

    def get(self, user_id: int) -> Optional[PublicUser]:
        u = self._row(user_id)
        return public_view(u) if u else None

    def get_by_email(self, email: str) -> Optional[PublicUser]:
        u = self.db.scalars(select(models.User).where(models.User.email == email)).first()
        return public_view(u) if u else None

    def get_credentials(self, email: str) -> Optional[Credentials]:
        u = self.db.scalars(select(models.User).where(models.User.email == email)).first()
        if not u:
            return None
        return Credentials(user_id=u.id, email=u.email, password_hash=u.password_hash, role=Role(u.role))

    def add(self, name: str, email: str, password_hash: str, role: Role) -> PublicUser:
        now = utcnow()
        u = models.User(
            name=name,
            email=email,
            password_hash=password_hash,
            role=Role(role).value,
            created_at=now,
            updated_at=now,
        )
        self.db.add(u)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if _violates(e, "email"):
                raise ConflictError(EMAIL_IN_USE) from e
            raise
        self.db.refresh(u)
        logger.info(f"User created: id={u.id} role={u.role}")
        return public_view(u)

    def update(self, user_id: int, changes: Dict[str, Any]) -> Optional[PublicUser]:
        u = self._row(user_id)
        if not u:
            return None
        for key in ("name", "email", "role"):
            if key in changes:
                value = changes[key]
                setattr(u, key, value.value if isinstance(value, Role) else value)
        u.updated_at = utcnow()
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if _violates(e, "email"):
                raise ConflictError(EMAIL_IN_USE) from e
            raise
        self.db.refresh(u)
        return public_view(u)

    def delete(self, user_id: int) -> bool:
        u = self._row(user_id)
        if not u:
            return False
        try:
            # orders first: they reference the user
            owned = self.db.scalars(select(models.Order).where(models.Order.user_id == user_id)).all()
            for o in owned:
                self.db.delete(o)
            self.db.flush()
            self.db.delete(u)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"User deleted: id={user_id} (orders removed: {len(owned)})")
        return True

    def list(self, limit: int, offset: int) -> Tuple[List[PublicUser], int]:
        rows = self.db.scalars(
            select(models.User).order_by(models.User.id.desc()).offset(offset).limit(limit)
        ).all()
        total = self.db.scalar(select(func.count()).select_from(models.User)) or 0
        return [public_view(u) for u in rows], total

    def list_by_role(self, role: Role) -> List[PublicUser]:
        rows = self.db.scalars(
            select(models.User).where(models.User.role == Role(role).value).order_by(models.User.id.desc())
        ).all()
        return [public_view(u) for u in rows]

    def search(self, query: str) -> List[PublicUser]:
        rows = self.db.scalars(
            select(models.User)
            .where(
                or_(
                    models.User.name.contains(query, autoescape=True),
                    models.User.email.contains(query, autoescape=True),
                )
            )
            .order_by(models.User.id.desc())
        ).all()
        return [public_view(u) for u in rows]


# -------------------
# Orders
# -------------------
class SqlOrderRepository:
    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return select(models.Order).options(
            selectinload(models.Order.items),
            selectinload(models.Order.status_history),
            selectinload(models.Order.user),
        )

    def _row(self, order_id: int) -> Optional[models.Order]:
        return self.db.scalars(self._query().where(models.Order.id == order_id)).first()

    def add(self, draft: OrderDraft) -> Order:
        now = utcnow()
        o = models.Order(
            user_id=draft.user_id,
            status=draft.status.value,
            total_amount=draft.total_amount,
            shipping_address=draft.shipping_address,
            tracking_number=draft.tracking_number,
            notes=draft.notes,
            created_at=now,
            updated_at=now,
        )
        o.items = [
            models.OrderItem(name=i.name, description=i.description, quantity=i.quantity, price=i.price)
            for i in draft.items
        ]
        o.status_history = [models.OrderStatusHistory(status=draft.status.value, notes=draft.status_note, created_at=now)]
        self.db.add(o)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if _violates(e, "tracking_number"):
                raise TrackingNumberTaken(draft.tracking_number) from e
            raise
        return self.get(o.id)

    def get(self, order_id: int) -> Optional[Order]:
        o = self._row(order_id)
        return order_view(o) if o else None

    def list_for_user(self, user_id: int) -> List[Order]:
        rows = self.db.scalars(
            self._query()
            .where(models.Order.user_id == user_id)
            .order_by(models.Order.created_at.desc(), models.Order.id.desc())
        ).all()
        return [order_view(o) for o in rows]

    def list(self, limit: int, offset: int) -> Tuple[List[Order], int]:
        rows = self.db.scalars(
            self._query()
            .order_by(models.Order.created_at.desc(), models.Order.id.desc())
            .offset(offset)
            .limit(limit)
        ).all()
        total = self.db.scalar(select(func.count()).select_from(models.Order)) or 0
        return [order_view(o) for o in rows], total

    def append_status(self, order_id: int, status: OrderStatus, notes: Optional[str]) -> Optional[Order]:
        o = self._row(order_id)
        if not o:
            return None
        now = utcnow()
        try:
            # status and its history row commit together or not at all
            o.status = OrderStatus(status).value
            o.updated_at = now
            o.status_history.append(models.OrderStatusHistory(status=o.status, notes=notes, created_at=now))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return self.get(order_id)

    def delete(self, order_id: int) -> bool:
        o = self._row(order_id)
        if not o:
            return False
        try:
            self.db.delete(o)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return True
