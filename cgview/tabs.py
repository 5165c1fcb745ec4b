"""Cgroup tabs: column sets and the row walk that feeds the list widget.

A tab's first column is always the indented cgroup name, so the name item is
not part of ``view_items``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple

from cgview.fields import FieldId
from cgview.filtering import compute_excluded
from cgview.model import CgroupModel, SingleCgroupModel
from cgview.render import ViewItem, get_prefix
from cgview.state import CgroupState

RECREATED_MARKER = "[RECREATED] "


class Row(NamedTuple):
    """One visible line: the label drawn and the key it correlates to."""

    label: str
    key: str


@dataclass(frozen=True)
class ColumnTitles:
    titles: list[str]
    pinned_titles: int = 1

    def visible(self, offset: int = 0) -> list[str]:
        """Pinned titles followed by the scrollable ones after *offset*."""
        pinned = self.titles[: self.pinned_titles]
        return pinned + self.titles[self.pinned_titles + max(offset, 0) :]


def row_key_to_path(key: str) -> str:
    """Strip the recreated marker from a row key."""
    return key.removeprefix(RECREATED_MARKER)


@dataclass(frozen=True)
class CgroupTab:
    name: str
    view_items: tuple[ViewItem, ...]

    def get_titles(self) -> ColumnTitles:
        return ColumnTitles(
            titles=[CGROUP_NAME_ITEM.render_title()]
            + [item.render_title() for item in self.view_items],
            pinned_titles=1,
        )

    def get_line(
        self, model: SingleCgroupModel, depth: int, collapsed: bool, offset: int = 0
    ) -> str:
        name_item = CGROUP_NAME_ITEM_COLLAPSED if collapsed else CGROUP_NAME_ITEM
        parts = [name_item.render_indented(model, depth)]
        parts.extend(item.render(model) for item in self.view_items[max(offset, 0) :])
        return " ".join(parts)

    def get_rows(self, state: CgroupState, offset: int = 0) -> list[Row]:
        with state.model.read() as root:
            excluded: set[str] = set()
            if state.filter is not None:
                excluded = compute_excluded(root, state.filter)
            return self._output_cgroup(root, state, excluded, offset)

    def _output_cgroup(
        self,
        root: CgroupModel,
        state: CgroupState,
        excluded: set[str],
        offset: int,
    ) -> list[Row]:
        rows: list[Row] = []
        stack: list[tuple[CgroupModel, int]] = [(root, 0)]
        while stack:
            cgroup, depth = stack.pop()
            if cgroup.key in excluded:
                continue

            collapsed = state.collapse.is_collapsed(cgroup.key, top_level=depth == 1)
            label = self.get_line(cgroup.data, depth, collapsed, offset)
            if cgroup.recreated:
                rows.append(Row(label, RECREATED_MARKER + cgroup.key))
            else:
                rows.append(Row(label, cgroup.key))

            if collapsed:
                continue

            children = state.sort.order(cgroup.children)
            # Reversed so the first child is popped first
            stack.extend((child, depth + 1) for child in reversed(children))
        return rows


# ── Default tabs ───────────────────────────────────────────────────────────

CGROUP_NAME_ITEM = ViewItem.from_default(FieldId.NAME).update(
    indented_prefix=get_prefix(False)
)
CGROUP_NAME_ITEM_COLLAPSED = ViewItem.from_default(FieldId.NAME).update(
    indented_prefix=get_prefix(True)
)


def _tab(name: str, *field_ids: FieldId) -> CgroupTab:
    return CgroupTab(name, tuple(ViewItem.from_default(f) for f in field_ids))


CGROUP_GENERAL_TAB = CgroupTab(
    "General",
    (
        ViewItem.from_default(FieldId.CPU_USAGE_PCT).update(title="CPU", width=8),
        ViewItem.from_default(FieldId.MEM_TOTAL),
        ViewItem.from_default(FieldId.PRESSURE_CPU_FULL_PCT),
        ViewItem.from_default(FieldId.PRESSURE_MEMORY_FULL_PCT),
        ViewItem.from_default(FieldId.PRESSURE_IO_FULL_PCT),
        ViewItem.from_default(FieldId.IO_RBYTES_PER_SEC),
        ViewItem.from_default(FieldId.IO_WBYTES_PER_SEC),
        ViewItem.from_default(FieldId.IO_RWBYTES_PER_SEC),
    ),
)

CGROUP_CPU_TAB = _tab(
    "CPU",
    FieldId.CPU_USAGE_PCT,
    FieldId.CPU_USER_PCT,
    FieldId.CPU_SYSTEM_PCT,
    FieldId.CPU_NR_PERIODS_PER_SEC,
    FieldId.CPU_NR_THROTTLED_PER_SEC,
    FieldId.CPU_THROTTLED_PCT,
)

CGROUP_MEM_TAB = _tab(
    "Mem",
    *(f for f in FieldId if f.category == "mem"),
)

CGROUP_IO_TAB = _tab(
    "I/O",
    FieldId.IO_RBYTES_PER_SEC,
    FieldId.IO_WBYTES_PER_SEC,
    FieldId.IO_DBYTES_PER_SEC,
    FieldId.IO_RIOS_PER_SEC,
    FieldId.IO_WIOS_PER_SEC,
    FieldId.IO_DIOS_PER_SEC,
    FieldId.IO_RWBYTES_PER_SEC,
)

CGROUP_PRESSURE_TAB = _tab(
    "Pressure",
    FieldId.PRESSURE_CPU_SOME_PCT,
    FieldId.PRESSURE_CPU_FULL_PCT,
    FieldId.PRESSURE_MEMORY_SOME_PCT,
    FieldId.PRESSURE_MEMORY_FULL_PCT,
    FieldId.PRESSURE_IO_SOME_PCT,
    FieldId.PRESSURE_IO_FULL_PCT,
)

CGROUP_PERF_TAB = _tab("Perf", FieldId.PERF_EVENTS)

# Display order
TABS: dict[str, CgroupTab] = {
    tab.name: tab
    for tab in (
        CGROUP_GENERAL_TAB,
        CGROUP_CPU_TAB,
        CGROUP_MEM_TAB,
        CGROUP_IO_TAB,
        CGROUP_PRESSURE_TAB,
        CGROUP_PERF_TAB,
    )
}
