# ordertrack/notifications.py
from __future__ import annotations

from typing import Protocol

from .emailer import Outbox
from .ordering.cart import build_summary
from .records import Order


class OrderNotifier(Protocol):
    def order_placed(self, email: str, order: Order) -> None: ...

    def status_changed(self, email: str, order: Order) -> None: ...


class EmailOrderNotifier:
    """Renders order emails and hands them to the outbox. Never waits on SMTP."""

    def __init__(self, outbox: Outbox):
        self.outbox = outbox

    def order_placed(self, email: str, order: Order) -> None:
        summary, total = build_summary(order.items)
        subject = f"Order Confirmation - #{order.id}"
        body = (
            "Thank you for your order!\n\n"
            f"Order ID: {order.id}\n"
            f"Tracking Number: {order.tracking_number}\n"
            f"Total Amount: ${total:.2f}\n\n"
            f"{summary}\n\n"
            "We'll keep you updated on your order status."
        )
        html = (
            "<h2>Order Confirmation</h2>"
            "<p>Thank you for your order!</p>"
            f"<p><strong>Order ID:</strong> {order.id}</p>"
            f"<p><strong>Tracking Number:</strong> {order.tracking_number}</p>"
            f"<p><strong>Total Amount:</strong> ${total:.2f}</p>"
            "<p>We'll keep you updated on your order status.</p>"
        )
        self.outbox.send_order_email(to_email=email, subject=subject, body=body, html=html)

    def status_changed(self, email: str, order: Order) -> None:
        status = order.status.value
        subject = f"Order #{order.id} - {status}"
        body = (
            "Your order status has been updated.\n\n"
            f"Order ID: {order.id}\n"
            f"Status: {status}\n"
            f"Tracking: {order.tracking_number}"
        )
        html = (
            "<h2>Order Status Update</h2>"
            "<p>Your order status has been updated.</p>"
            f"<p><strong>Order ID:</strong> {order.id}</p>"
            f"<p><strong>Status:</strong> {status}</p>"
            f"<p><strong>Tracking:</strong> {order.tracking_number}</p>"
        )
        self.outbox.send_order_email(to_email=email, subject=subject, body=body, html=html)
