import pytest

from ordertrack.errors import ForbiddenError
from ordertrack.policy import Operation, can, require
from ordertrack.records import Claims, Role, utcnow

C, A, D = Role.CUSTOMER, Role.ADMIN, Role.DELIVERY_PARTNER


@pytest.mark.parametrize(
    "operation, allowed",
    [
        (Operation.CREATE_ORDER, {C}),
        (Operation.VIEW_OWN_ORDERS, {C}),
        (Operation.LIST_ALL_ORDERS, {A}),
        (Operation.UPDATE_ORDER_STATUS, {A, D}),
        (Operation.DELETE_ORDER, {A}),
        (Operation.LIST_USERS, {A}),
        (Operation.SEARCH_USERS, {A}),
        (Operation.FILTER_USERS_BY_ROLE, {A}),
        (Operation.ASSIGN_ROLE, {A}),
    ],
)
def test_role_gated_operations(operation, allowed):
    for role in Role:
        assert can(role, 1, operation) is (role in allowed)


@pytest.mark.parametrize(
    "operation",
    [Operation.VIEW_ORDER, Operation.VIEW_USER, Operation.UPDATE_USER, Operation.DELETE_USER],
)
def test_owner_or_admin_operations(operation):
    assert can(C, 7, operation, resource_owner_id=7)
    assert can(D, 7, operation, resource_owner_id=7)
    assert not can(C, 7, operation, resource_owner_id=8)
    assert not can(D, 7, operation, resource_owner_id=8)
    assert can(A, 1, operation, resource_owner_id=8)
    assert not can(C, 7, operation)


def test_require_raises_forbidden_with_reason():
    now = utcnow()
    claims = Claims(user_id=3, role=C, issued_at=now, expires_at=now)
    with pytest.raises(ForbiddenError, match="update order status"):
        require(claims, Operation.UPDATE_ORDER_STATUS)
    require(claims, Operation.CREATE_ORDER)
