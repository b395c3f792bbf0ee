from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from ..db.store import Store
from ..errors import ConcurrentModification, NotFoundError, StoreError, ValidationError
from ..utils.pagination import paginate
from ..utils.validators import optional_text, require_text
from .logging import log_event
from .notifications import NotificationClient
from .order_lifecycle import (
    ORDER_STATUSES,
    PENDING,
    OrderNumberGenerator,
    build_order_items,
    compute_totals,
    group_by_supplier,
    is_terminal,
    to_quantity,
    transition,
    utcnow,
)


class OrderService:
    """Checkout and supplier-side order management backed by the store."""

    def __init__(
        self,
        store: Store,
        notifier: Optional[NotificationClient] = None,
        number_generator: Optional[Callable[[], str]] = None,
        *,
        currency: str = "RWF",
        max_attempts: int = 5,
    ):
        self._store = store
        self._notifier = notifier
        self._next_number = number_generator or OrderNumberGenerator()
        self._currency = currency
        self._max_attempts = max_attempts

    # -- checkout -----------------------------------------------------------

    def _price_lines(self, lines: List[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        product_ids = [line.get("product_id") for line in lines]
        if any(not pid for pid in product_ids):
            raise ValidationError("product_id", "is required for every line")
        products = {
            p["id"]: p for p in self._store.query("products", {"id": product_ids, "is_active": True})
        }
        priced = []
        for line in lines:
            product = products.get(line["product_id"])
            if product is None:
                raise ValidationError("product_id", f"unknown or inactive product {line['product_id']}")
            qty = to_quantity(line.get("quantity"))
            if qty > product["max_quantity_per_order"]:
                raise ValidationError(
                    "quantity", f"at most {product['max_quantity_per_order']} per order for {product['id']}"
                )
            priced.append(
                {
                    "product_id": product["id"],
                    "supplier_id": product["supplier_id"],
                    "price": product["price"],
                    "discounted_price": product["discounted_price"],
                    "quantity": qty,
                    "special_instructions": optional_text(line.get("special_instructions")),
                }
            )
        return priced

    def _suppliers(self, supplier_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        ids = list(supplier_ids)
        suppliers = {s["id"]: s for s in self._store.query("suppliers", {"id": ids})}
        for sid in ids:
            supplier = suppliers.get(sid)
            if supplier is None or supplier["subscription_status"] != "active":
                raise ValidationError("supplier_id", f"supplier {sid} is not accepting orders")
        return suppliers

    def place_orders(
        self,
        *,
        user_id: str,
        lines: Iterable[Mapping[str, Any]],
        delivery_address: str,
        delivery_instructions: Optional[str] = None,
        notes: Optional[str] = None,
        payment_method: str = "cash_on_delivery",
    ) -> List[Dict[str, Any]]:
        """Create one pending order per supplier in the cart, all or nothing."""
        uid = require_text(user_id, "user_id")
        lines = list(lines or [])
        if not lines:
            raise ValidationError("items", "cart is empty")
        address = require_text(delivery_address, "delivery_address")
        groups = group_by_supplier(self._price_lines(lines))
        suppliers = self._suppliers(groups.keys())
        common = {
            "user_id": uid,
            "delivery_address": address,
            "delivery_instructions": optional_text(delivery_instructions),
            "notes": optional_text(notes),
            "payment_method": payment_method,
        }

        for attempt in range(1, self._max_attempts + 1):
            try:
                orders = self._insert_orders(groups, suppliers, common)
                break
            except StoreError as exc:
                # only an order_number collision is worth another try
                if not exc.conflict or attempt == self._max_attempts:
                    raise
                log_event("warning", "order.number_conflict", attempt=attempt, error=str(exc))

        for order in orders:
            log_event(
                "info",
                "order.created",
                order_id=order["id"],
                order_number=order["order_number"],
                supplier_id=order["supplier_id"],
                items=len(order["items"]),
                total_amount=str(order["total_amount"]),
                needs_review=order["needs_review"],
            )
        return orders

    def _insert_orders(self, groups, suppliers, common: Dict[str, Any]) -> List[Dict[str, Any]]:
        created = []
        with self._store.transaction() as tx:
            for supplier_id, group in groups.items():
                totals = compute_totals(group, delivery_fee=suppliers[supplier_id]["delivery_fee"])
                values = dict(common)
                values.update(
                    order_number=self._next_number(),
                    supplier_id=supplier_id,
                    status=PENDING,
                    payment_status="pending",
                    subtotal=totals.subtotal,
                    delivery_fee=suppliers[supplier_id]["delivery_fee"],
                    tax_amount=0,
                    discount_amount=0,
                    total_amount=totals.total_amount,
                    needs_review=totals.needs_review,
                    currency=self._currency,
                )
                order = tx.insert("orders", [values])[0]
                order["items"] = tx.insert(
                    "order_items",
                    [dict(item, order_id=order["id"]) for item in build_order_items(group)],
                )
                created.append(order)
        return created

    # -- reads --------------------------------------------------------------

    def _with_items(self, orders: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if not orders:
            return orders
        items = self._store.query("order_items", {"order_id": [o["id"] for o in orders]}, ["created_at"])
        by_order: Dict[str, List[Dict[str, Any]]] = {}
        for item in items:
            by_order.setdefault(item["order_id"], []).append(item)
        for order in orders:
            order["items"] = by_order.get(order["id"], [])
        return orders

    def get_order(self, order_id: str, *, supplier_id: Optional[str] = None) -> Dict[str, Any]:
        order = self._store.get("orders", order_id)
        if order is None or (supplier_id is not None and order["supplier_id"] != supplier_id):
            raise NotFoundError("orders", order_id)
        return self._with_items([order])[0]

    def list_supplier_orders(
        self,
        supplier_id: str,
        *,
        status: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Dict[str, Any]:
        filters: Dict[str, Any] = {"supplier_id": supplier_id}
        if status and status != "all":
            if status not in ORDER_STATUSES:
                raise ValidationError("status", f"unknown status {status}")
            filters["status"] = status
        rows = self._store.query("orders", filters, ["-created_at", "-order_number"])
        needle = (search or "").strip().lower()
        if needle:
            rows = [
                r for r in rows
                if needle in r["order_number"].lower() or needle in (r["delivery_address"] or "").lower()
            ]
        items, p, ps = paginate(rows, page, page_size)
        return {"items": self._with_items(items), "page": p, "page_size": ps, "total": len(rows)}

    def list_customer_orders(self, user_id: str) -> List[Dict[str, Any]]:
        rows = self._store.query("orders", {"user_id": user_id}, ["-created_at", "-order_number"])
        return self._with_items(rows)

    # -- supplier updates ---------------------------------------------------

    def update_status(self, order_id: str, next_status: str, *, supplier_id: Optional[str] = None) -> Dict[str, Any]:
        """Move an order to ``next_status`` if nobody changed it in the meantime."""
        order = self.get_order(order_id, supplier_id=supplier_id)
        diff = transition(order, next_status)
        rows = self._store.update("orders", diff, {"id": order_id, "status": order["status"]})
        if not rows:
            raise ConcurrentModification(order_id, order["status"])
        updated = rows[0]
        log_event(
            "info",
            "order.status_changed",
            order_id=order_id,
            order_number=updated["order_number"],
            previous_status=order["status"],
            status=updated["status"],
        )
        if self._notifier is not None:
            self._notifier.notify_order_status(updated, order["status"])
        updated["items"] = order["items"]
        return updated

    def update_notes(self, order_id: str, notes: Optional[str], *, supplier_id: Optional[str] = None) -> Dict[str, Any]:
        self.get_order(order_id, supplier_id=supplier_id)
        rows = self._store.update(
            "orders", {"notes": optional_text(notes), "updated_at": utcnow()}, {"id": order_id}
        )
        if not rows:
            raise NotFoundError("orders", order_id)
        return rows[0]

    def update_estimated_time(self, order_id: str, when: Any, *, supplier_id: Optional[str] = None) -> Dict[str, Any]:
        order = self.get_order(order_id, supplier_id=supplier_id)
        if is_terminal(order["status"]):
            raise ValidationError("estimated_delivery_time", f"order is already {order['status']}")
        rows = self._store.update(
            "orders",
            {"estimated_delivery_time": _parse_time(when), "updated_at": utcnow()},
            {"id": order_id, "status": order["status"]},
        )
        if not rows:
            raise ConcurrentModification(order_id, order["status"])
        return rows[0]


def _parse_time(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        text = require_text(value, "estimated_delivery_time")
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValidationError("estimated_delivery_time", "must be an ISO 8601 timestamp") from exc
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
