"""
Pure tree rules for the category hierarchy.

Every function here works on a plain ``{category_id: parent_id}`` mapping so the
rules can be checked without a database. Walks up the tree are iterative and
bounded by the number of known categories, which keeps them finite even when
the stored data already contains a cycle.
"""
from typing import Dict, Iterable, List, Mapping, Optional

from ..exceptions import CircularReferenceException, InvalidParentException


ParentMap = Mapping[int, Optional[int]]


def would_create_cycle(category_id: int, new_parent_id: Optional[int], parent_map: ParentMap) -> bool:
    """
    Walk the ancestor chain from ``new_parent_id`` towards the root.

    Returns True when ``category_id`` shows up on the chain, or when the chain is
    longer than the number of categories (a pre-existing cycle).
    """
    limit = len(parent_map)
    current = new_parent_id
    visited = 0

    while current is not None:
        if current == category_id:
            return True
        if visited >= limit:
            return True

        current = parent_map.get(current)
        visited += 1

    return False


def validate_new_parent(category_id: int, new_parent_id: Optional[int], parent_map: ParentMap,
                        field: str = "new_parent_id") -> None:
    """
    Raise if attaching ``category_id`` under ``new_parent_id`` would break the forest.

    ``None`` means "move to root" and is always valid.
    """
    if new_parent_id is None:
        return

    if new_parent_id == category_id:
        raise InvalidParentException(field=field)

    if would_create_cycle(category_id, new_parent_id, parent_map):
        raise CircularReferenceException(field=field)


def ancestor_ids(category_id: int, parent_map: ParentMap) -> List[int]:
    """Ids from the root down to ``category_id`` (inclusive)."""
    path: List[int] = []
    current: Optional[int] = category_id
    limit = len(parent_map) + 1

    while current is not None and len(path) < limit:
        path.append(current)
        current = parent_map.get(current)

    if current is not None:
        raise CircularReferenceException("Category hierarchy contains a cycle")

    path.reverse()
    return path


def build_tree(nodes: Iterable[dict]) -> List[dict]:
    """
    Assemble flat category dicts into nested nodes.

    Each input dict needs ``id``, ``parent_id`` and ``sort_order``; the output nodes
    get ``children`` and ``level`` (depth from the root). Nodes whose parent is not
    among the inputs (e.g. an inactive parent) are dropped together with their subtree.
    """
    by_id: Dict[int, dict] = {}
    for node in nodes:
        by_id[node["id"]] = {**node, "children": [], "level": 0}

    roots: List[dict] = []
    for node in sorted(by_id.values(), key=lambda n: (n["sort_order"], n["id"])):
        parent_id = node.get("parent_id")
        if parent_id is None:
            roots.append(node)
        elif parent_id in by_id:
            by_id[parent_id]["children"].append(node)

    # levels are assigned top-down so they don't depend on input order
    stack = [(root, 0) for root in roots]
    while stack:
        node, level = stack.pop()
        node["level"] = level
        stack.extend((child, level + 1) for child in node["children"])

    for node in by_id.values():
        node.pop("parent_id", None)

    return roots
