# ordertrack/records.py
"""
Plain data records shared by services and repositories.

SQLAlchemy rows stay inside the repositories; everything above them works
with these frozen dataclasses.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple


def utcnow() -> datetime:
    # naive UTC, matches what SQLite hands back
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Role(str, Enum):
    CUSTOMER = "CUSTOMER"
    ADMIN = "ADMIN"
    DELIVERY_PARTNER = "DELIVERY_PARTNER"


class OrderStatus(str, Enum):
    PLACED = "PLACED"
    ACCEPTED = "ACCEPTED"
    PICKED_UP = "PICKED_UP"
    ON_THE_WAY = "ON_THE_WAY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class PublicUser:
    """A user as every read path sees it: no password hash."""

    id: int
    name: str
    email: str
    role: Role
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class Credentials:
    """Login-only view of a user. Never serialized."""

    user_id: int
    email: str
    password_hash: str
    role: Role


@dataclass(frozen=True)
class OrderOwner:
    """The owner summary embedded in every order."""

    id: int
    name: str
    email: str
    role: Role


@dataclass(frozen=True)
class OrderItem:
    name: str
    quantity: int
    price: float
    description: Optional[str] = None


@dataclass(frozen=True)
class OrderStatusEvent:
    status: OrderStatus
    created_at: datetime
    notes: Optional[str] = None


@dataclass(frozen=True)
class OrderDraft:
    """Everything needed to insert a new order with its first history entry."""

    user_id: int
    items: Tuple[OrderItem, ...]
    shipping_address: str
    total_amount: float
    tracking_number: str
    notes: Optional[str] = None
    status: OrderStatus = OrderStatus.PLACED
    status_note: Optional[str] = "Order placed"


@dataclass(frozen=True)
class Order:
    id: int
    user_id: int
    status: OrderStatus
    total_amount: float
    shipping_address: str
    tracking_number: str
    created_at: datetime
    updated_at: datetime
    notes: Optional[str] = None
    items: Tuple[OrderItem, ...] = field(default_factory=tuple)
    # newest first
    status_history: Tuple[OrderStatusEvent, ...] = field(default_factory=tuple)
    user: Optional[OrderOwner] = None


@dataclass(frozen=True)
class Claims:
    user_id: int
    role: Role
    issued_at: datetime
    expires_at: datetime
