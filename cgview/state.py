"""View state: collapse set, sort order and the contract views implement."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from cgview.fields import FieldId, UnknownFieldError, sort_nodes
from cgview.model import CgroupModel, ModelHandle

if TYPE_CHECKING:
    from cgview.tabs import CgroupTab

logger = logging.getLogger(__name__)


class ViewContractError(RuntimeError):
    """Internal wiring error between a view, its tabs and its columns.

    Never caused by user input.
    """


# ── Collapse state ─────────────────────────────────────────────────────────


@dataclass
class CollapseState:
    """Which cgroups have their children hidden.

    ``collapsed`` may hold paths that no longer exist in the current
    snapshot; lookups for them simply never match. The top-level flag is
    applied at query time and never written into ``collapsed``.
    """

    collapsed: set[str] = field(default_factory=lambda: set[str]())
    collapse_all_top_level: bool = False

    def toggle_root(self) -> None:
        self.collapse_all_top_level = not self.collapse_all_top_level
        self.collapsed.clear()

    def toggle_node(self, key: str) -> None:
        # Drilling into one cgroup cancels the blanket top-level collapse.
        self.collapse_all_top_level = False
        if key in self.collapsed:
            self.collapsed.remove(key)
        else:
            self.collapsed.add(key)

    def is_collapsed(self, key: str, top_level: bool = False) -> bool:
        return key in self.collapsed or (self.collapse_all_top_level and top_level)


# ── Sort state ─────────────────────────────────────────────────────────────


@dataclass
class SortState:
    field_id: FieldId | None = None
    reverse: bool = False

    def set_sort(self, field_id: FieldId) -> None:
        """Select a sort column; selecting the active one flips direction.

        A newly selected column starts out descending.
        """
        if self.field_id == field_id:
            self.reverse = not self.reverse
        else:
            self.field_id = field_id
            self.reverse = True

    def force(self, field_id: FieldId) -> None:
        self.field_id = field_id
        self.reverse = True

    def order(self, children: Iterable[CgroupModel]) -> list[CgroupModel]:
        if self.field_id is None:
            return list(children)
        return sort_nodes(children, self.field_id, self.reverse)


# ── View-state contract ────────────────────────────────────────────────────


class StatsState(Protocol):
    """What a tree-shaped resource view exposes to the dashboard shell."""

    view_name: str
    model: ModelHandle

    def get_filter(self) -> str | None: ...

    def set_filter(self, text: str | None) -> None: ...

    def set_sort_tag(self, field_id: FieldId) -> bool: ...

    def set_sort_tag_from_tab_idx(self, tab: CgroupTab, idx: int) -> bool: ...

    def set_sort_string(self, selection: str) -> bool: ...


@dataclass
class CgroupState:
    model: ModelHandle
    tabs: Mapping[str, CgroupTab]
    view_name: str = "cgroup_view"
    filter: str | None = None
    sort: SortState = field(default_factory=SortState)
    collapse: CollapseState = field(default_factory=CollapseState)
    selected_key: str = ""

    def get_filter(self) -> str | None:
        return self.filter

    def set_filter(self, text: str | None) -> None:
        self.filter = text or None

    def set_sort_tag(self, field_id: FieldId) -> bool:
        self.sort.set_sort(field_id)
        return True

    def set_sort_tag_from_tab_idx(self, tab: CgroupTab, idx: int) -> bool:
        """Sort by the column at *idx*; column 0 is always the name."""
        if self.tabs.get(tab.name) is not tab:
            raise ViewContractError(f"tab {tab.name!r} is not part of this view")
        if idx == 0:
            return self.set_sort_tag(FieldId.NAME)
        if not 0 < idx <= len(tab.view_items):
            raise ViewContractError(
                f"column {idx} out of range for tab {tab.name!r} "
                f"({len(tab.view_items) + 1} columns)"
            )
        return self.set_sort_tag(tab.view_items[idx - 1].field_id)

    def set_sort_string(self, selection: str) -> bool:
        try:
            field_id = FieldId.parse(selection)
        except UnknownFieldError as e:
            logger.info("ignoring sort selection: %s", e)
            return False
        return self.set_sort_tag(field_id)
