"""Live order notifications for a supplier's back-office."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Callable, List, Optional
from uuid import uuid4

from ..db.realtime import INSERT, UPDATE, ChangeEvent
from ..db.store import Store
from .order_lifecycle import PENDING, utcnow


NEW_ORDER = "new_order"
STATUS_UPDATE = "status_update"


@dataclass
class OrderNotification:
    id: str
    order_id: str
    order_number: str
    type: str
    status: str
    message: str
    created_at: str
    read: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


class SupplierOrderFeed:
    """Keeps the most recent order notifications for one supplier."""

    def __init__(
        self,
        store: Store,
        supplier_id: str,
        on_refresh: Optional[Callable[[ChangeEvent], None]] = None,
        limit: int = 10,
    ) -> None:
        self._supplier_id = supplier_id
        self._on_refresh = on_refresh
        self._limit = limit
        self._items: List[OrderNotification] = []
        self._subscription = store.subscribe("orders", {"supplier_id": supplier_id}, self._handle)

    @property
    def notifications(self) -> List[OrderNotification]:
        return list(self._items)

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self._items if not n.read)

    def _seen(self, order_id: str, kind: str, status: str) -> bool:
        return any(
            n.order_id == order_id and n.type == kind and n.status == status for n in self._items
        )

    def _push(self, row: dict, kind: str, message: str) -> None:
        status = row.get("status")
        if self._seen(row["id"], kind, status):
            return
        note = OrderNotification(
            id=str(uuid4()),
            order_id=row["id"],
            order_number=row.get("order_number") or "",
            type=kind,
            status=status,
            message=message,
            created_at=utcnow().isoformat(),
        )
        self._items = [note] + self._items[: self._limit - 1]

    def _handle(self, change: ChangeEvent) -> None:
        new = change.new or {}
        if change.event == INSERT and new.get("status") == PENDING:
            self._push(new, NEW_ORDER, f"New order {new.get('order_number')} received")
        elif change.event == UPDATE and (change.old or {}).get("status") != new.get("status"):
            self._push(
                new,
                STATUS_UPDATE,
                f"Order {new.get('order_number')} status updated to {new.get('status')}",
            )
        if self._on_refresh is not None:
            self._on_refresh(change)

    def mark_as_read(self, notification_id: str) -> bool:
        for n in self._items:
            if n.id == notification_id:
                n.read = True
                return True
        return False

    def clear(self, notification_id: str) -> bool:
        before = len(self._items)
        self._items = [n for n in self._items if n.id != notification_id]
        return len(self._items) != before

    def close(self) -> None:
        self._subscription.unsubscribe()
