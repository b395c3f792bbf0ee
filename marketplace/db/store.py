"""Table-oriented access to the relational store.

``Store`` is the only component that talks to SQLAlchemy. Services address
tables by name and exchange plain dict rows, so a row handed out by the
store is a snapshot: mutating it never touches the database.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import StoreError
from ..models.category import Category
from ..models.order import Order
from ..models.order_item import OrderItem
from ..models.product import Product
from ..models.supplier import Supplier
from .procedures import DEFAULT_PROCEDURES
from .realtime import DELETE, INSERT, UPDATE, ChangeEvent, ChangeFeed, ChangeListener, Subscription
from .session import SessionFactory, get_session


TABLES = {
    "categories": Category,
    "suppliers": Supplier,
    "products": Product,
    "orders": Order,
    "order_items": OrderItem,
}


def row_to_dict(row: Any) -> Dict[str, Any]:
    return {c.name: getattr(row, c.name) for c in row.__table__.columns}


class Store:
    """query / insert / update / delete / rpc / subscribe over the model tables."""

    def __init__(
        self,
        session_factory: SessionFactory = get_session,
        *,
        procedures: Optional[Mapping[str, Callable[..., Any]]] = None,
        feed: Optional[ChangeFeed] = None,
        _session: Optional[Session] = None,
    ) -> None:
        self._session_factory = session_factory
        self._procedures = dict(DEFAULT_PROCEDURES if procedures is None else procedures)
        self._feed = feed or ChangeFeed()
        self._session = _session
        self._pending: List[ChangeEvent] = []

    @property
    def feed(self) -> ChangeFeed:
        return self._feed

    # -- plumbing -----------------------------------------------------------

    @staticmethod
    def _model(table: str):
        try:
            return TABLES[table]
        except KeyError:
            raise StoreError(f"unknown table: {table}") from None

    @staticmethod
    def _column(model, name: str):
        if name not in model.__table__.columns:
            raise StoreError(f"unknown column {model.__tablename__}.{name}")
        return getattr(model, name)

    def _apply_filters(self, q, model, filters: Optional[Mapping[str, Any]]):
        for name, value in (filters or {}).items():
            col = self._column(model, name)
            if value is None:
                q = q.filter(col.is_(None))
            elif isinstance(value, (list, tuple, set, frozenset)):
                q = q.filter(col.in_(list(value)))
            else:
                q = q.filter(col == value)
        return q

    @contextmanager
    def _scope(self) -> Iterator[Session]:
        if self._session is not None:
            yield self._session
            return
        try:
            with self._session_factory() as session:
                yield session
        except SQLAlchemyError as exc:
            raise StoreError.from_exception(exc) from exc

    def _emit(self, changes: List[ChangeEvent]) -> None:
        if self._session is not None:
            self._pending.extend(changes)
        else:
            self._feed.publish(changes)

    @contextmanager
    def transaction(self) -> Iterator["Store"]:
        """Run several operations in one session; events go out after commit."""
        if self._session is not None:
            yield self
            return
        try:
            with self._session_factory() as session:
                tx = Store(
                    self._session_factory,
                    procedures=self._procedures,
                    feed=self._feed,
                    _session=session,
                )
                yield tx
        except SQLAlchemyError as exc:
            raise StoreError.from_exception(exc) from exc
        self._feed.publish(tx._pending)

    # -- operations ---------------------------------------------------------

    def query(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        ordering: Optional[Sequence[str]] = None,
    ) -> List[Dict[str, Any]]:
        model = self._model(table)
        with self._scope() as session:
            q = self._apply_filters(session.query(model), model, filters)
            for name in ordering or ():
                desc = name.startswith("-")
                col = self._column(model, name.lstrip("-"))
                q = q.order_by(col.desc() if desc else col.asc())
            return [row_to_dict(r) for r in q.all()]

    def get(self, table: str, row_id: str) -> Optional[Dict[str, Any]]:
        rows = self.query(table, {"id": row_id})
        return rows[0] if rows else None

    def insert(self, table: str, rows: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        model = self._model(table)
        with self._scope() as session:
            created = []
            for data in rows:
                values = dict(data)
                for name in values:
                    self._column(model, name)
                values.setdefault("id", str(uuid4()))
                obj = model(**values)
                session.add(obj)
                created.append(obj)
            session.flush()
            for obj in created:
                session.refresh(obj)
            inserted = [row_to_dict(obj) for obj in created]
        self._emit([ChangeEvent(INSERT, table, new=r) for r in inserted])
        return inserted

    def update(
        self, table: str, patch: Mapping[str, Any], filters: Mapping[str, Any]
    ) -> List[Dict[str, Any]]:
        """Apply ``patch`` to every matching row and return the rows affected.

        Each row is written by one ``UPDATE ... WHERE id = ? AND <filters>``
        statement, so a row that stopped matching after it was read is left
        alone and is not returned.
        """
        model = self._model(table)
        values = dict(patch)
        for name in values:
            self._column(model, name)
        with self._scope() as session:
            before = [
                row_to_dict(obj)
                for obj in self._apply_filters(session.query(model), model, filters).all()
            ]
            written = []
            for old in before:
                q = self._apply_filters(session.query(model).filter(model.id == old["id"]), model, filters)
                if q.update(values, synchronize_session=False):
                    written.append(old)
            ids = [old["id"] for old in written]
            fresh = {}
            if ids:
                fresh = {
                    obj.id: row_to_dict(obj)
                    for obj in session.query(model).filter(model.id.in_(ids)).populate_existing()
                }
            updated = [(old, fresh[old["id"]]) for old in written]
        self._emit([ChangeEvent(UPDATE, table, new=new, old=old) for old, new in updated])
        return [new for _, new in updated]

    def delete(self, table: str, filters: Mapping[str, Any]) -> None:
        if not filters:
            raise StoreError(f"refusing to delete from {table} without filters")
        model = self._model(table)
        with self._scope() as session:
            doomed = self._apply_filters(session.query(model), model, filters).all()
            removed = [row_to_dict(obj) for obj in doomed]
            for obj in doomed:
                session.delete(obj)
            session.flush()
        self._emit([ChangeEvent(DELETE, table, old=r) for r in removed])

    def rpc(self, function_name: str, args: Optional[Mapping[str, Any]] = None) -> Any:
        fn = self._procedures.get(function_name)
        if fn is None:
            raise StoreError(f"unknown function: {function_name}")
        return fn(self, **dict(args or {}))

    def subscribe(
        self, table: str, filters: Optional[Mapping[str, Any]], on_change: ChangeListener
    ) -> Subscription:
        self._model(table)
        return self._feed.subscribe(table, filters, on_change)
