# ordertrack/policy.py
"""
Role-based authorization.

`can` is a pure decision function; `require` turns a deny into
`ForbiddenError` with a message the API can show as-is.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional

from .errors import ForbiddenError
from .records import Claims, Role


class Operation(str, Enum):
    CREATE_ORDER = "create_order"
    VIEW_OWN_ORDERS = "view_own_orders"
    VIEW_ORDER = "view_order"
    LIST_ALL_ORDERS = "list_all_orders"
    UPDATE_ORDER_STATUS = "update_order_status"
    DELETE_ORDER = "delete_order"
    VIEW_USER = "view_user"
    UPDATE_USER = "update_user"
    DELETE_USER = "delete_user"
    LIST_USERS = "list_users"
    SEARCH_USERS = "search_users"
    FILTER_USERS_BY_ROLE = "filter_users_by_role"
    ASSIGN_ROLE = "assign_role"


_ROLE_RULES = {
    Operation.CREATE_ORDER: {Role.CUSTOMER},
    Operation.VIEW_OWN_ORDERS: {Role.CUSTOMER},
    Operation.LIST_ALL_ORDERS: {Role.ADMIN},
    Operation.UPDATE_ORDER_STATUS: {Role.ADMIN, Role.DELIVERY_PARTNER},
    Operation.DELETE_ORDER: {Role.ADMIN},
    Operation.LIST_USERS: {Role.ADMIN},
    Operation.SEARCH_USERS: {Role.ADMIN},
    Operation.FILTER_USERS_BY_ROLE: {Role.ADMIN},
    Operation.ASSIGN_ROLE: {Role.ADMIN},
}

# owner or admin
_OWNERSHIP_RULES = {
    Operation.VIEW_ORDER,
    Operation.VIEW_USER,
    Operation.UPDATE_USER,
    Operation.DELETE_USER,
}

_DENY_MESSAGES = {
    Operation.CREATE_ORDER: "Only customers can create orders",
    Operation.VIEW_OWN_ORDERS: "Only customers have personal orders",
    Operation.VIEW_ORDER: "You don't have permission to view this order",
    Operation.LIST_ALL_ORDERS: "You don't have permission to view all orders",
    Operation.UPDATE_ORDER_STATUS: "You don't have permission to update order status",
    Operation.DELETE_ORDER: "You don't have permission to delete orders",
    Operation.VIEW_USER: "You don't have permission to view this user",
    Operation.UPDATE_USER: "You don't have permission to update this user",
    Operation.DELETE_USER: "You don't have permission to delete this user",
    Operation.LIST_USERS: "You don't have permission to view all users",
    Operation.SEARCH_USERS: "You don't have permission to search users",
    Operation.FILTER_USERS_BY_ROLE: "You don't have permission to filter users by role",
    Operation.ASSIGN_ROLE: "Only administrators can change roles",
}


def can(
    actor_role: Role,
    actor_id: int,
    operation: Operation,
    resource_owner_id: Optional[int] = None,
) -> bool:
    role = Role(actor_role)
    if operation in _OWNERSHIP_RULES:
        if role == Role.ADMIN:
            return True
        return resource_owner_id is not None and actor_id == resource_owner_id
    allowed = _ROLE_RULES.get(operation)
    if allowed is None:
        return False
    return role in allowed


def require(claims: Claims, operation: Operation, resource_owner_id: Optional[int] = None) -> None:
    if not can(claims.role, claims.user_id, operation, resource_owner_id):
        raise ForbiddenError(_DENY_MESSAGES.get(operation, "Forbidden"))
