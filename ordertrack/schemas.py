# ordertrack/schemas.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .records import OrderStatus, Role


class ApiModel(BaseModel):
    # camelCase on the wire, snake_case in Python
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# -------------------
# Requests
# -------------------
# Fields are optional here so the services can report "X is required"
# in the same shape as every other validation failure.
class RegisterIn(ApiModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginIn(ApiModel):
    email: Optional[str] = None
    password: Optional[str] = None


class CreateOrderIn(ApiModel):
    items: Optional[List[Dict[str, Any]]] = None
    shipping_address: Optional[str] = None
    notes: Optional[str] = None


class StatusUpdateIn(ApiModel):
    status: Optional[str] = None
    notes: Optional[str] = None


class UserUpdateIn(ApiModel):
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None


# -------------------
# Responses
# -------------------
class UserOut(ApiModel):
    id: int
    name: str
    email: str
    role: Role
    created_at: datetime
    updated_at: datetime


class AuthOut(ApiModel):
    user: UserOut
    token: str
    expires_in: str


class OrderOwnerOut(ApiModel):
    id: int
    name: str
    email: str
    role: Role


class OrderItemOut(ApiModel):
    name: str
    description: Optional[str] = None
    quantity: int
    price: float


class StatusEventOut(ApiModel):
    status: OrderStatus
    notes: Optional[str] = None
    created_at: datetime


class OrderOut(ApiModel):
    id: int
    user_id: int
    status: OrderStatus
    total_amount: float
    shipping_address: str
    tracking_number: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemOut]
    status_history: List[StatusEventOut]
    user: Optional[OrderOwnerOut] = None


class Pagination(ApiModel):
    total: int
    page: int
    limit: int
    pages: int


class OrderPage(ApiModel):
    orders: List[OrderOut]
    pagination: Pagination


class UserPage(ApiModel):
    users: List[UserOut]
    pagination: Pagination
