"""
Best-effort order notifications.

A failed notification is logged and dropped; it never affects the order.
"""
from typing import Optional

import requests
import structlog

logger = structlog.get_logger(component="notifications")


def order_summary(order: dict) -> str:
    items = ", ".join(f"{i['name']} x{i['quantity']}" for i in order.get("items", []))
    customer = order.get("customer", {})
    return (
        f"New Order #{order.get('id')}\n\n"
        f"Customer: {customer.get('name')}\n"
        f"Phone: {customer.get('phone')}\n"
        f"Items: {items}\n"
        f"Total: {order.get('total_amount')}\n"
        f"Payment: {order.get('payment_id')}"
    )


class OrderNotifier:
    def __init__(self, webhook_url: Optional[str] = None, timeout: float = 5, session: Optional[requests.Session] = None):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def order_paid(self, order: dict) -> bool:
        if not self.webhook_url:
            return False
        try:
            response = self.session.post(
                self.webhook_url,
                json={
                    "event": "order.paid",
                    "order_id": order.get("id"),
                    "total_amount": order.get("total_amount"),
                    "text": order_summary(order),
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
        except Exception as e:
            logger.warning("order_notification_failed", order_id=order.get("id"), error=str(e))
            return False
        logger.info("order_notification_sent", order_id=order.get("id"))
        return True
