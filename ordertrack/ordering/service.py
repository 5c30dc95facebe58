# ordertrack/ordering/service.py
"""
Order lifecycle: creation, status transitions, retrieval and deletion.

Notifications go out only after the order mutation is committed and can
never undo it.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..errors import InvalidInputError, NotFoundError, TrackingNumberTaken
from ..notifications import OrderNotifier
from ..records import Order, OrderDraft, OrderStatus
from ..repositories import OrderRepository, UserRepository
from ..validation import is_present
from .cart import load_items, order_total
from .tracking import new_tracking_number

logger = logging.getLogger(__name__)

MAX_TRACKING_ATTEMPTS = 5
VALID_STATUSES = ", ".join(s.value for s in OrderStatus)


def parse_status(raw: Any) -> OrderStatus:
    if not is_present(raw):
        raise InvalidInputError("Status is required")
    try:
        return OrderStatus(raw)
    except ValueError:
        raise InvalidInputError(f"Invalid status. Must be one of: {VALID_STATUSES}") from None


class OrderService:
    def __init__(self, orders: OrderRepository, users: UserRepository, notifier: OrderNotifier):
        self.orders = orders
        self.users = users
        self.notifier = notifier

    def create_order(
        self,
        user_id: int,
        items: Sequence[Dict[str, Any]],
        shipping_address: str,
        notes: Optional[str] = None,
    ) -> Order:
        user = self.users.get(user_id)
        if not user:
            raise NotFoundError("User")

        parsed = load_items(items)
        if not is_present(shipping_address) or not isinstance(shipping_address, str):
            raise InvalidInputError("Shipping address is required")

        total = order_total(parsed)
        if not math.isfinite(total):
            raise InvalidInputError("Order total is out of range")

        draft_kwargs = dict(
            user_id=user_id,
            items=parsed,
            shipping_address=shipping_address.strip(),
            total_amount=total,
            notes=notes.strip() if is_present(notes) else None,
        )

        order = None
        for attempt in range(1, MAX_TRACKING_ATTEMPTS + 1):
            draft = OrderDraft(tracking_number=new_tracking_number(), **draft_kwargs)
            try:
                order = self.orders.add(draft)
                break
            except TrackingNumberTaken:
                logger.warning(f"Tracking number collision on attempt {attempt}, retrying")
        if order is None:
            raise RuntimeError("Could not allocate a unique tracking number")

        logger.info(f"Order {order.id} placed by user {user_id} ({order.tracking_number}, total={order.total_amount})")
        self._notify(self.notifier.order_placed, user.email, order)
        return order

    def update_order_status(self, order_id: int, new_status: Any, notes: Optional[str] = None) -> Order:
        status = parse_status(new_status)

        existing = self.orders.get(order_id)
        if not existing:
            raise NotFoundError("Order")

        order = self.orders.append_status(order_id, status, notes.strip() if is_present(notes) else None)
        if order is None:
            # removed between the lookup and the update
            raise NotFoundError("Order")

        logger.info(f"Order {order_id} status {existing.status.value} -> {status.value}")
        owner = self.users.get(order.user_id)
        if owner:
            self._notify(self.notifier.status_changed, owner.email, order)
        return order

    def get_order_by_id(self, order_id: int) -> Optional[Order]:
        return self.orders.get(order_id)

    def get_user_orders(self, user_id: int) -> List[Order]:
        if not self.users.get(user_id):
            raise NotFoundError("User")
        return self.orders.list_for_user(user_id)

    def get_all_orders(self, limit: int = 10, offset: int = 0) -> Tuple[List[Order], int]:
        return self.orders.list(limit, offset)

    def delete_order(self, order_id: int) -> None:
        if not self.orders.delete(order_id):
            raise NotFoundError("Order")
        logger.info(f"Order {order_id} deleted")

    def _notify(self, send: Callable[[str, Order], None], email: str, order: Order) -> None:
        try:
            send(email, order)
        except Exception:
            logger.exception(f"Notification for order {order.id} to {email} failed")
