"""The cgroup view: tab selection and the commands the dashboard routes to it."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from cgview.fields import FieldId
from cgview.model import ModelHandle
from cgview.state import CgroupState, ViewContractError
from cgview.tabs import TABS, CgroupTab, ColumnTitles, Row, row_key_to_path

logger = logging.getLogger(__name__)

SORT_SHORTCUTS: dict[str, FieldId] = {
    "cpu": FieldId.CPU_USAGE_PCT,
    "mem": FieldId.MEM_TOTAL,
    "disk": FieldId.IO_RWBYTES_PER_SEC,
}


class CgroupView:
    """Binds one :class:`CgroupState` to the shared cgroup tabs.

    All tabs of a view share the same filter, sort and collapse state; only
    the column set changes when switching tabs.
    """

    def __init__(
        self,
        model: ModelHandle,
        tabs: Mapping[str, CgroupTab] = TABS,
        initial_tab: str | None = None,
    ) -> None:
        if not tabs:
            raise ViewContractError("a view needs at least one tab")
        for name, tab in tabs.items():
            if name != tab.name:
                raise ViewContractError(f"tab registered as {name!r} is {tab.name!r}")
        self.tab_names = list(tabs)
        self.state = CgroupState(model=model, tabs=dict(tabs))
        self.tab = tabs[self.tab_names[0]]
        self.column_offset = 0
        if initial_tab is not None:
            self.switch_tab(initial_tab)

    @property
    def view_name(self) -> str:
        return self.state.view_name

    # ── Tabs and horizontal scroll ─────────────────────────────────────

    def switch_tab(self, name: str) -> None:
        tab = self.state.tabs.get(name)
        if tab is None:
            raise ViewContractError(f"unknown tab: {name!r}")
        self.tab = tab
        self.column_offset = min(self.column_offset, max(len(tab.view_items) - 1, 0))

    def next_tab(self) -> None:
        idx = self.tab_names.index(self.tab.name)
        self.switch_tab(self.tab_names[(idx + 1) % len(self.tab_names)])

    def prev_tab(self) -> None:
        idx = self.tab_names.index(self.tab.name)
        self.switch_tab(self.tab_names[(idx - 1) % len(self.tab_names)])

    def scroll_columns(self, delta: int) -> None:
        limit = max(len(self.tab.view_items) - 1, 0)
        self.column_offset = max(0, min(self.column_offset + delta, limit))

    # ── Sorting ────────────────────────────────────────────────────────

    def sort_by_shortcut(self, name: str) -> None:
        """The C/M/D keys: fixed field, always largest first."""
        self.state.sort.force(SORT_SHORTCUTS[name])

    def sort_by_cpu(self) -> None:
        self.sort_by_shortcut("cpu")

    def sort_by_mem(self) -> None:
        self.sort_by_shortcut("mem")

    def sort_by_disk(self) -> None:
        self.sort_by_shortcut("disk")

    def sort_by_column(self, idx: int) -> bool:
        return self.state.set_sort_tag_from_tab_idx(self.tab, idx)

    def sort_by_name(self, selection: str) -> bool:
        return self.state.set_sort_string(selection)

    # ── Selection, collapse and filter ─────────────────────────────────

    def select(self, key: str) -> None:
        self.state.selected_key = row_key_to_path(key)

    def submit(self, key: str) -> None:
        """Collapse or expand the cgroup behind a row.

        The root row (empty key) collapses or expands every top-level cgroup.
        """
        path = row_key_to_path(key)
        if not path:
            self.state.collapse.toggle_root()
        else:
            self.state.collapse.toggle_node(path)

    def set_filter(self, text: str | None) -> None:
        self.state.set_filter(text)
        logger.debug("filter set to %r", self.state.filter)

    # ── Rendering ──────────────────────────────────────────────────────

    def get_titles(self) -> ColumnTitles:
        return self.tab.get_titles()

    def get_rows(self) -> list[Row]:
        return self.tab.get_rows(self.state, self.column_offset)

    def refresh(self) -> tuple[ColumnTitles, list[Row]]:
        return self.get_titles(), self.get_rows()
