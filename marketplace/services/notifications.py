from typing import Any, Dict, Optional
import logging

import requests

from .logging import log_event


SUPPLIER_NOTIFICATION = "supplier-notification"
ORDER_NOTIFICATION = "order-notification"


class NotificationClient:
    """Posts payloads to the hosted notification functions (email / WhatsApp).

    Delivery is a secondary action: failures are logged and reported through
    the return value, never raised, so the caller's primary write stands.
    """

    def __init__(self, base_url: Optional[str], timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.base_url = (base_url or "").rstrip("/") or None
        self.timeout = timeout
        self._http = session or requests.Session()
        self.logger = logging.getLogger(__name__)

    def send(self, function_name: str, body: Dict[str, Any]) -> bool:
        if not self.base_url:
            log_event("debug", "notification.skipped", function=function_name, reason="no url configured")
            return False
        url = f"{self.base_url}/{function_name}"
        try:
            response = self._http.post(url, json=body, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            self.logger.warning("notification %s failed: %s", function_name, exc)
            log_event("warning", "notification.failed", function=function_name, error=str(exc))
            return False
        if response.status_code >= 400:
            log_event(
                "warning",
                "notification.failed",
                function=function_name,
                status_code=response.status_code,
                error=response.text[:200],
            )
            return False
        log_event("info", "notification.sent", function=function_name)
        return True

    def notify_supplier_status(self, supplier_id: str, action: str, admin_email: Optional[str] = None) -> bool:
        return self.send(
            SUPPLIER_NOTIFICATION,
            {"supplierId": supplier_id, "action": action, "adminEmail": admin_email},
        )

    def notify_order_status(self, order: Dict[str, Any], previous_status: Optional[str]) -> bool:
        return self.send(
            ORDER_NOTIFICATION,
            {
                "orderId": order.get("id"),
                "orderNumber": order.get("order_number"),
                "userId": order.get("user_id"),
                "supplierId": order.get("supplier_id"),
                "previousStatus": previous_status,
                "status": order.get("status"),
            },
        )
