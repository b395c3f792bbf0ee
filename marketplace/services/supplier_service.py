from typing import Any, Dict, Iterable, List, Optional

from ..db.store import Store
from ..errors import ValidationError
from .logging import log_event
from .notifications import NotificationClient


SUPPLIER_STATUSES = ("pending", "active", "rejected")

_ACTIONS = {
    "approve": ("approve_supplier", "approved"),
    "reject": ("reject_supplier", "rejected"),
}


class SupplierService:
    """Admin approval flow for supplier registrations."""

    def __init__(self, store: Store, notifier: Optional[NotificationClient] = None):
        self._store = store
        self._notifier = notifier

    def list_suppliers(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        filters = None
        if status and status != "all":
            if status not in SUPPLIER_STATUSES:
                raise ValidationError("status", f"unknown status {status}")
            filters = {"subscription_status": status}
        return self._store.query("suppliers", filters, ["-created_at", "business_name"])

    def apply_action(self, supplier_id: str, action: str, admin_email: Optional[str]) -> Dict[str, Any]:
        if action not in _ACTIONS:
            raise ValidationError("action", f"unknown action {action}")
        function_name, past_tense = _ACTIONS[action]
        supplier = self._store.rpc(function_name, {"supplier_id": supplier_id})
        log_event("info", f"supplier.{past_tense}", supplier_id=supplier_id, admin_email=admin_email)
        # the status change stands even when the email cannot be sent
        sent = False
        if self._notifier is not None:
            sent = self._notifier.notify_supplier_status(supplier_id, past_tense, admin_email)
        return {"supplier": supplier, "notification_sent": sent}

    def approve(self, supplier_id: str, admin_email: Optional[str] = None) -> Dict[str, Any]:
        return self.apply_action(supplier_id, "approve", admin_email)

    def reject(self, supplier_id: str, admin_email: Optional[str] = None) -> Dict[str, Any]:
        return self.apply_action(supplier_id, "reject", admin_email)

    def bulk_action(self, supplier_ids: Iterable[str], action: str, admin_email: Optional[str] = None) -> List[Dict[str, Any]]:
        ids = [sid for sid in supplier_ids if sid]
        if not ids:
            raise ValidationError("supplier_ids", "select at least one supplier")
        return [self.apply_action(sid, action, admin_email) for sid in ids]
