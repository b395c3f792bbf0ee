"""Server-side functions exposed through ``Store.rpc``."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from ..errors import NotFoundError

if TYPE_CHECKING:
    from .store import Store


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def check_category_circular_reference(store: "Store", category_id: Optional[str], parent_id: Optional[str]) -> bool:
    """Walk up from ``parent_id``; reaching ``category_id`` means a cycle."""
    if not parent_id:
        return False
    if parent_id == category_id:
        return True
    parents = {
        row["id"]: row["parent_category_id"]
        for row in store.query("categories")
    }
    seen = set()
    current: Optional[str] = parent_id
    while current and current not in seen:
        if current == category_id:
            return True
        seen.add(current)
        current = parents.get(current)
    return False


def _set_supplier_status(store: "Store", supplier_id: str, status: str) -> Dict[str, Any]:
    rows = store.update(
        "suppliers",
        {"subscription_status": status, "updated_at": _utcnow()},
        {"id": supplier_id},
    )
    if not rows:
        raise NotFoundError("suppliers", supplier_id)
    return rows[0]


def approve_supplier(store: "Store", supplier_id: str) -> Dict[str, Any]:
    return _set_supplier_status(store, supplier_id, "active")


def reject_supplier(store: "Store", supplier_id: str) -> Dict[str, Any]:
    return _set_supplier_status(store, supplier_id, "rejected")


DEFAULT_PROCEDURES: Dict[str, Callable[..., Any]] = {
    "check_category_circular_reference": check_category_circular_reference,
    "approve_supplier": approve_supplier,
    "reject_supplier": reject_supplier,
}
