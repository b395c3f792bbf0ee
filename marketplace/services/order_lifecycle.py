"""Order status rules, totals and order numbers.

Nothing in here touches the store: callers pass order rows in and get new
values back, then persist them themselves.
"""

from __future__ import annotations

import secrets
import string
import time
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Hashable, Iterable, List, Mapping, Optional, Tuple

from ..errors import InvalidTransition, ValidationError
from .logging import log_event


PENDING = "pending"
CONFIRMED = "confirmed"
PREPARING = "preparing"
READY = "ready"
DELIVERED = "delivered"
CANCELLED = "cancelled"

ORDER_STATUSES = (PENDING, CONFIRMED, PREPARING, READY, DELIVERED, CANCELLED)

ALLOWED_TRANSITIONS: Dict[str, Tuple[str, ...]] = {
    PENDING: (CONFIRMED, CANCELLED),
    CONFIRMED: (PREPARING, CANCELLED),
    PREPARING: (READY, CANCELLED),
    READY: (DELIVERED,),
    DELIVERED: (),
    CANCELLED: (),
}

TERMINAL_STATUSES = frozenset(s for s, nxt in ALLOWED_TRANSITIONS.items() if not nxt)

ESTIMATED_DELIVERY_OFFSET = timedelta(minutes=30)

ZERO = Decimal("0")


def utcnow() -> datetime:
    # naive UTC, the form DateTime columns hand back
    return datetime.now(timezone.utc).replace(tzinfo=None)


def allowed_next_statuses(status: Optional[str]) -> Tuple[str, ...]:
    return ALLOWED_TRANSITIONS.get(status or "", ())


def can_transition(current: Optional[str], requested: str) -> bool:
    return requested in allowed_next_statuses(current)


def is_terminal(status: Optional[str]) -> bool:
    return status in TERMINAL_STATUSES


def transition(order: Mapping[str, Any], next_status: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Return the fields to write when ``order`` moves to ``next_status``.

    Raises InvalidTransition when the move is not allowed from the order's
    current status. The order mapping itself is left untouched.
    """
    current = order.get("status")
    if not can_transition(current, next_status):
        raise InvalidTransition(current, next_status)
    now = now or utcnow()
    diff: Dict[str, Any] = {"status": next_status, "updated_at": now}
    if next_status == READY:
        diff["estimated_delivery_time"] = now + ESTIMATED_DELIVERY_OFFSET
    elif next_status == DELIVERED:
        diff["actual_delivery_time"] = now
    return diff


def to_money(value: Any, field: str) -> Decimal:
    if value is None:
        return ZERO
    try:
        amount = Decimal(str(value))
    except ArithmeticError as exc:
        raise ValidationError(field, "must be a number") from exc
    if not amount.is_finite():
        raise ValidationError(field, "must be a number")
    if amount < 0:
        raise ValidationError(field, "must be >= 0")
    return amount


def to_quantity(value: Any, field: str = "quantity") -> int:
    try:
        qty = int(str(value).strip())
    except ValueError as exc:
        raise ValidationError(field, "must be an integer") from exc
    if qty <= 0:
        raise ValidationError(field, "must be > 0")
    return qty


def unit_price(item: Mapping[str, Any]) -> Decimal:
    """The discounted price when the item carries one, else the list price."""
    discounted = item.get("discounted_price")
    if discounted is not None:
        return to_money(discounted, "discounted_price")
    if item.get("price") is None:
        raise ValidationError("price", "is required")
    return to_money(item["price"], "price")


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    total_amount: Decimal
    needs_review: bool = False


def compute_totals(
    items: Iterable[Mapping[str, Any]],
    delivery_fee: Any = 0,
    tax_amount: Any = 0,
    discount_amount: Any = 0,
) -> OrderTotals:
    subtotal = ZERO
    for item in items:
        subtotal += unit_price(item) * to_quantity(item.get("quantity"))
    fee = to_money(delivery_fee, "delivery_fee")
    tax = to_money(tax_amount, "tax_amount")
    discount = to_money(discount_amount, "discount_amount")
    total = subtotal + fee + tax - discount
    if total < 0:
        # a discount larger than the order never reaches the store as a negative total
        log_event(
            "warning",
            "order.total_clamped",
            subtotal=str(subtotal),
            discount_amount=str(discount),
            computed_total=str(total),
        )
        return OrderTotals(subtotal=subtotal, total_amount=ZERO, needs_review=True)
    return OrderTotals(subtotal=subtotal, total_amount=total)


def build_order_items(items: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Order item rows (without ``order_id``) priced from cart lines."""
    rows = []
    for item in items:
        price = unit_price(item)
        qty = to_quantity(item.get("quantity"))
        rows.append(
            {
                "product_id": item["product_id"],
                "quantity": qty,
                "unit_price": price,
                "total_price": price * qty,
                "special_instructions": item.get("special_instructions") or None,
            }
        )
    return rows


def group_by_supplier(lines: Iterable[Mapping[str, Any]]) -> "OrderedDict[Hashable, List[Mapping[str, Any]]]":
    groups: "OrderedDict[Hashable, List[Mapping[str, Any]]]" = OrderedDict()
    for line in lines:
        supplier_id = line.get("supplier_id")
        if supplier_id is None:
            raise ValidationError("supplier_id", "is required for every line")
        groups.setdefault(supplier_id, []).append(line)
    return groups


_BASE36 = string.digits + string.ascii_lowercase


def to_base36(n: int) -> str:
    if n < 0:
        raise ValueError("base36 only encodes non-negative integers")
    if n == 0:
        return "0"
    digits = []
    while n:
        n, rem = divmod(n, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


class OrderNumberGenerator:
    """Human readable ``ORD-<base36 millis>-<random>`` order numbers.

    These are display identifiers; uniqueness is enforced by the store, and
    callers retry with a fresh number on conflict.
    """

    prefix = "ORD"

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        random_chars: Optional[Callable[[int], str]] = None,
        random_length: int = 5,
    ) -> None:
        self._clock = clock
        self._random_chars = random_chars or (
            lambda n: "".join(secrets.choice(_BASE36) for _ in range(n))
        )
        self._random_length = random_length

    def __call__(self) -> str:
        millis = int(self._clock() * 1000)
        token = self._random_chars(self._random_length)
        return f"{self.prefix}-{to_base36(millis)}-{token}".upper()


_default_generator = OrderNumberGenerator()


def generate_order_number() -> str:
    return _default_generator()
