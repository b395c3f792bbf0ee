"""Category hierarchy built from flat category rows.

The tree is kept as an arena: row snapshots keyed by id, one list of child
ids per node and the list of root ids. Building, filtering and flattening
never touch the rows they were given; each returns a new structure.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Hashable, Iterable, Iterator, List, Mapping, Optional, Tuple


SEARCH_FIELDS = ("name_en", "name_ar", "description")
INDENT = "  "

Row = Mapping[str, Any]


class CategoryTree:
    def __init__(
        self,
        nodes: Dict[Hashable, Dict[str, Any]],
        children: Dict[Hashable, List[Hashable]],
        roots: List[Hashable],
    ) -> None:
        self._nodes = nodes
        self._children = children
        self._roots = roots

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, category_id: Hashable) -> bool:
        return category_id in self._nodes

    @property
    def roots(self) -> List[Hashable]:
        return list(self._roots)

    def node(self, category_id: Hashable) -> Dict[str, Any]:
        return dict(self._nodes[category_id])

    def children_of(self, category_id: Hashable) -> List[Hashable]:
        return list(self._children.get(category_id, ()))

    def descendants(self, category_id: Hashable) -> Iterator[Hashable]:
        """Depth-first ids below ``category_id`` (the node itself excluded)."""
        stack = list(reversed(self._children.get(category_id, ())))
        while stack:
            cid = stack.pop()
            yield cid
            stack.extend(reversed(self._children.get(cid, ())))

    def walk(
        self, prune: Optional[Callable[[Dict[str, Any]], bool]] = None
    ) -> Iterator[Tuple[Dict[str, Any], int]]:
        """Yield ``(node, depth)`` depth-first; a pruned node hides its subtree."""
        stack = [(cid, 0) for cid in reversed(self._roots)]
        while stack:
            cid, depth = stack.pop()
            node = self.node(cid)
            if prune is not None and prune(node):
                continue
            yield node, depth
            stack.extend((child, depth + 1) for child in reversed(self._children.get(cid, ())))

    def to_nested(self) -> List[Dict[str, Any]]:
        """Roots as dicts, each carrying its nested ``children`` list."""

        def expand(cid: Hashable) -> Dict[str, Any]:
            item = self.node(cid)
            item["children"] = [expand(child) for child in self._children.get(cid, ())]
            return item

        return [expand(cid) for cid in self._roots]


def sort_categories(rows: Iterable[Row]) -> List[Row]:
    """Order rows by ``sort_order``, ties broken by name."""
    return sorted(
        rows,
        key=lambda r: (r.get("sort_order") or 0, (r.get("name_en") or r.get("name") or "").lower()),
    )


def build_tree(flat_categories: Iterable[Row]) -> CategoryTree:
    nodes: Dict[Hashable, Dict[str, Any]] = {}
    order: List[Hashable] = []
    for row in flat_categories:
        cid = row["id"]
        if cid in nodes:
            continue
        snapshot = dict(row)
        snapshot.pop("children", None)
        nodes[cid] = snapshot
        order.append(cid)

    children: Dict[Hashable, List[Hashable]] = {cid: [] for cid in order}
    roots: List[Hashable] = []
    for cid in order:
        parent = nodes[cid].get("parent_category_id")
        if parent is not None and parent != cid and parent in nodes:
            children[parent].append(cid)
        else:
            # unknown parent ids degrade to roots
            roots.append(cid)

    # rows stuck in a parent cycle are unreachable from any root
    reached = set()
    for root in roots:
        reached.add(root)
        reached.update(_descendant_ids(children, root))
    for cid in order:
        if cid in reached:
            continue
        children[nodes[cid]["parent_category_id"]].remove(cid)
        roots.append(cid)
        reached.add(cid)
        reached.update(_descendant_ids(children, cid))

    return CategoryTree(nodes, children, roots)


def _descendant_ids(children: Mapping[Hashable, List[Hashable]], cid: Hashable) -> Iterator[Hashable]:
    stack = list(children.get(cid, ()))
    while stack:
        current = stack.pop()
        yield current
        stack.extend(children.get(current, ()))


def would_create_cycle(
    category_id: Hashable, proposed_parent_id: Optional[Hashable], all_categories: Iterable[Row]
) -> bool:
    """True when ``proposed_parent_id`` is ``category_id`` or lies in its subtree."""
    if proposed_parent_id is None:
        return False
    if proposed_parent_id == category_id:
        return True
    tree = build_tree(all_categories)
    if category_id not in tree:
        return False
    return any(cid == proposed_parent_id for cid in tree.descendants(category_id))


def _matches(node: Mapping[str, Any], needle: str) -> bool:
    for field in SEARCH_FIELDS:
        value = node.get(field)
        if value is not None and needle in str(value).lower():
            return True
    return False


def filter_tree(tree: CategoryTree, query: Optional[str]) -> CategoryTree:
    """Keep matching nodes with their full subtree, plus the ancestors leading to them.

    An ancestor kept only because something below it matched shows just the
    filtered children.
    """
    if not query:
        return tree
    needle = query.lower()
    kept_children: Dict[Hashable, List[Hashable]] = {}

    def keep_whole(cid: Hashable) -> None:
        kept_children[cid] = tree.children_of(cid)
        for child in kept_children[cid]:
            keep_whole(child)

    def visit(cid: Hashable) -> bool:
        kids = [child for child in tree.children_of(cid) if visit(child)]
        if _matches(tree.node(cid), needle):
            keep_whole(cid)
            return True
        if kids:
            kept_children[cid] = kids
            return True
        return False

    roots = [cid for cid in tree.roots if visit(cid)]
    nodes = {cid: tree.node(cid) for cid in kept_children}
    return CategoryTree(nodes, kept_children, roots)


def flatten_for_select(
    tree: CategoryTree, exclude_id: Optional[Hashable] = None, *, active_only: bool = False
) -> List[Dict[str, Any]]:
    """Depth-first list for a parent picker, names indented by depth.

    ``exclude_id`` drops that category and everything beneath it, so an
    edited category can never be offered as its own ancestor.
    """

    def prune(node: Mapping[str, Any]) -> bool:
        if exclude_id is not None and node["id"] == exclude_id:
            return True
        return active_only and not node.get("is_active", True)

    options = []
    for node, depth in tree.walk(prune=prune):
        node["name_en"] = INDENT * depth + (node.get("name_en") or "")
        if node.get("name_ar"):
            node["name_ar"] = INDENT * depth + node["name_ar"]
        node["depth"] = depth
        options.append(node)
    return options
