"""In-process change notifications for store tables.

Listeners subscribe to one table with an equality filter and receive a
:class:`ChangeEvent` after the write that produced it has been committed.
Delivery is at-least-once and no ordering across events is promised, so
listeners must tolerate duplicates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from itertools import count
from typing import Any, Callable, Dict, List, Mapping, Optional


logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    event: str
    table: str
    new: Optional[Dict[str, Any]] = None
    old: Optional[Dict[str, Any]] = None

    @property
    def row(self) -> Dict[str, Any]:
        return self.new if self.new is not None else (self.old or {})


ChangeListener = Callable[[ChangeEvent], None]


@dataclass
class Subscription:
    id: int
    table: str
    filters: Dict[str, Any]
    on_change: ChangeListener
    feed: "ChangeFeed" = field(repr=False)

    def matches(self, change: ChangeEvent) -> bool:
        if change.table != self.table:
            return False
        candidates = [r for r in (change.new, change.old) if r is not None]
        return any(
            all(row.get(k) == v for k, v in self.filters.items()) for row in candidates
        )

    def unsubscribe(self) -> None:
        self.feed.unsubscribe(self)


class ChangeFeed:
    def __init__(self) -> None:
        self._subscriptions: Dict[int, Subscription] = {}
        self._ids = count(1)

    def subscribe(
        self, table: str, filters: Optional[Mapping[str, Any]], on_change: ChangeListener
    ) -> Subscription:
        sub = Subscription(
            id=next(self._ids),
            table=table,
            filters=dict(filters or {}),
            on_change=on_change,
            feed=self,
        )
        self._subscriptions[sub.id] = sub
        return sub

    def unsubscribe(self, subscription: Subscription) -> None:
        self._subscriptions.pop(subscription.id, None)

    def publish(self, changes: List[ChangeEvent]) -> None:
        for change in changes:
            for sub in list(self._subscriptions.values()):
                if not sub.matches(change):
                    continue
                try:
                    sub.on_change(change)
                except Exception:
                    logger.exception(
                        "change listener %s failed for %s on %s", sub.id, change.event, change.table
                    )

    def __len__(self) -> int:
        return len(self._subscriptions)
