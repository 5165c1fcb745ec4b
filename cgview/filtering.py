"""Name filtering for cgroup trees."""

from __future__ import annotations

from cgview.model import CgroupModel


def compute_excluded(root: CgroupModel, pattern: str) -> set[str]:
    """Return the full paths that should be hidden for *pattern*.

    A cgroup is kept when its own path or the path of any descendant contains
    *pattern* (plain, case-sensitive substring), so ancestors of a kept
    cgroup are kept too. When nothing matches, every path is returned, root
    included.
    """
    # Pre-order listing; walking it backwards visits children before parents.
    order: list[CgroupModel] = []
    stack: list[CgroupModel] = [root]
    while stack:
        node = stack.pop()
        order.append(node)
        stack.extend(node.children)

    kept: dict[int, bool] = {}
    excluded: set[str] = set()
    for node in reversed(order):
        keep = pattern in node.key or any(kept[id(c)] for c in node.children)
        kept[id(node)] = keep
        if not keep:
            excluded.add(node.key)
    return excluded
