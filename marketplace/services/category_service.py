from typing import Any, Dict, List, Mapping, Optional
import logging
from uuid import uuid4

from ..db.store import Store
from ..errors import CyclicReferenceError, NotFoundError, ValidationError
from ..utils.validators import optional_text, require_text, to_int
from .category_tree import build_tree, filter_tree, flatten_for_select, sort_categories, would_create_cycle
from .logging import log_event
from .order_lifecycle import utcnow


EDITABLE_FIELDS = ("name_en", "name_ar", "description", "parent_category_id", "image_url", "is_active", "sort_order")


class CategoryService:
    """Admin category management guarded against parent cycles."""

    def __init__(self, store: Store):
        self._store = store
        self.logger = logging.getLogger(__name__)

    def list_categories(self, *, active_only: bool = False) -> List[Dict[str, Any]]:
        filters = {"is_active": True} if active_only else None
        return sort_categories(self._store.query("categories", filters))

    def get_tree(self, query: Optional[str] = None, *, active_only: bool = False) -> List[Dict[str, Any]]:
        tree = build_tree(self.list_categories(active_only=active_only))
        return filter_tree(tree, query).to_nested()

    def parent_options(self, exclude_id: Optional[str] = None, *, active_only: bool = True) -> List[Dict[str, Any]]:
        tree = build_tree(self.list_categories())
        return flatten_for_select(tree, exclude_id, active_only=active_only)

    def get_category(self, category_id: str) -> Dict[str, Any]:
        row = self._store.get("categories", category_id)
        if row is None:
            raise NotFoundError("categories", category_id)
        return row

    def _clean(self, data: Mapping[str, Any], *, partial: bool) -> Dict[str, Any]:
        unknown = set(data) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(sorted(unknown)[0], "is not an editable field")
        values: Dict[str, Any] = {}
        if not partial or "name_en" in data:
            values["name_en"] = require_text(data.get("name_en"), "name_en")
            values["name"] = values["name_en"]
        for field in ("name_ar", "description", "image_url"):
            if field in data:
                values[field] = optional_text(data.get(field))
        if "parent_category_id" in data:
            values["parent_category_id"] = data.get("parent_category_id") or None
        if "is_active" in data:
            if not isinstance(data["is_active"], bool):
                raise ValidationError("is_active", "must be true or false")
            values["is_active"] = data["is_active"]
        if "sort_order" in data:
            values["sort_order"] = to_int(data.get("sort_order"), "sort_order")
        return values

    def _guard_parent(
        self, store: Store, category_id: str, parent_id: Optional[str], rows: List[Dict[str, Any]]
    ) -> None:
        if parent_id is None:
            return
        if parent_id != category_id and not any(r["id"] == parent_id for r in rows):
            raise ValidationError("parent_category_id", "unknown parent category")
        local = would_create_cycle(category_id, parent_id, rows)
        remote = bool(
            store.rpc(
                "check_category_circular_reference",
                {"category_id": category_id, "parent_id": parent_id},
            )
        )
        if local != remote:
            self.logger.warning(
                "cycle check disagreement for %s -> %s (local=%s, store=%s)", category_id, parent_id, local, remote
            )
        if local or remote:
            log_event("warning", "category.cycle_rejected", category_id=category_id, parent_id=parent_id)
            raise CyclicReferenceError(category_id, parent_id)

    def create_category(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        values = self._clean(data, partial=False)
        values["id"] = str(uuid4())
        with self._store.transaction() as tx:
            self._guard_parent(tx, values["id"], values.get("parent_category_id"), tx.query("categories"))
            row = tx.insert("categories", [values])[0]
        log_event("info", "category.created", category_id=row["id"], parent_id=row["parent_category_id"])
        return row

    def update_category(self, category_id: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        values = self._clean(data, partial=True)
        with self._store.transaction() as tx:
            rows = tx.query("categories")
            current = next((r for r in rows if r["id"] == category_id), None)
            if current is None:
                raise NotFoundError("categories", category_id)
            parent_id = values.get("parent_category_id", current["parent_category_id"])
            if parent_id != current["parent_category_id"]:
                self._guard_parent(tx, category_id, parent_id, rows)
            values["updated_at"] = utcnow()
            row = tx.update("categories", values, {"id": category_id})[0]
        log_event("info", "category.updated", category_id=category_id, fields=sorted(values))
        return row

    def set_active(self, category_id: str, is_active: bool) -> Dict[str, Any]:
        return self.update_category(category_id, {"is_active": is_active})

    def delete_category(self, category_id: str) -> None:
        """Delete a category; its direct children move up to its parent."""
        with self._store.transaction() as tx:
            current = tx.get("categories", category_id)
            if current is None:
                raise NotFoundError("categories", category_id)
            moved = tx.update(
                "categories",
                {"parent_category_id": current["parent_category_id"], "updated_at": utcnow()},
                {"parent_category_id": category_id},
            )
            tx.delete("categories", {"id": category_id})
        log_event("info", "category.deleted", category_id=category_id, reparented=len(moved))
