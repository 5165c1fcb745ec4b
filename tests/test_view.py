"""Tests for cgview.view."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from cgview.fields import FieldId
from cgview.model import CgroupModel, ModelHandle
from cgview.state import ViewContractError
from cgview.tabs import CGROUP_CPU_TAB, CGROUP_GENERAL_TAB, RECREATED_MARKER, TABS
from cgview.view import SORT_SHORTCUTS, CgroupView

MakeCgroup = Callable[..., CgroupModel]


@pytest.fixture
def view(sample_tree: CgroupModel) -> CgroupView:
    return CgroupView(ModelHandle(sample_tree))


def _keys(view: CgroupView) -> list[str]:
    return [row.key for row in view.get_rows()]


class TestConstruction:
    def test_defaults(self, view: CgroupView) -> None:
        assert view.view_name == "cgroup_view"
        assert view.tab is CGROUP_GENERAL_TAB
        assert view.tab_names == list(TABS)
        assert view.column_offset == 0

    def test_initial_tab(self, sample_tree: CgroupModel) -> None:
        view = CgroupView(ModelHandle(sample_tree), initial_tab="CPU")
        assert view.tab is CGROUP_CPU_TAB

    def test_unknown_initial_tab(self, sample_tree: CgroupModel) -> None:
        with pytest.raises(ViewContractError):
            CgroupView(ModelHandle(sample_tree), initial_tab="Network")

    def test_mismatched_registration(self, sample_tree: CgroupModel) -> None:
        with pytest.raises(ViewContractError):
            CgroupView(ModelHandle(sample_tree), tabs={"Mem": CGROUP_CPU_TAB})

    def test_no_tabs(self, sample_tree: CgroupModel) -> None:
        with pytest.raises(ViewContractError):
            CgroupView(ModelHandle(sample_tree), tabs={})


class TestTabs:
    def test_next_wraps(self, view: CgroupView) -> None:
        for _ in TABS:
            view.next_tab()
        assert view.tab is CGROUP_GENERAL_TAB

    def test_prev_wraps(self, view: CgroupView) -> None:
        view.prev_tab()
        assert view.tab.name == "Perf"

    def test_switch_unknown(self, view: CgroupView) -> None:
        with pytest.raises(ViewContractError):
            view.switch_tab("nope")
        assert view.tab is CGROUP_GENERAL_TAB

    def test_state_shared_across_tabs(self, view: CgroupView) -> None:
        view.set_filter("x")
        view.switch_tab("Mem")
        assert _keys(view) == ["", "/a", "/a/x"]

    def test_scroll_clamped(self, view: CgroupView) -> None:
        view.scroll_columns(-3)
        assert view.column_offset == 0
        view.scroll_columns(100)
        assert view.column_offset == len(CGROUP_GENERAL_TAB.view_items) - 1

    def test_switch_clamps_offset(self, view: CgroupView) -> None:
        view.scroll_columns(100)
        view.switch_tab("Perf")
        assert view.column_offset == 0


class TestSorting:
    @pytest.mark.parametrize("name", ["cpu", "mem", "disk"])
    def test_shortcut_always_descending(self, view: CgroupView, name: str) -> None:
        view.sort_by_shortcut(name)
        view.sort_by_shortcut(name)
        assert view.state.sort.field_id is SORT_SHORTCUTS[name]
        assert view.state.sort.reverse is True

    def test_sort_by_cpu_orders_rows(self, view: CgroupView) -> None:
        view.sort_by_cpu()
        assert _keys(view) == ["", "/b", "/a", "/a/x"]

    def test_sort_by_mem(self, view: CgroupView) -> None:
        view.sort_by_mem()
        assert _keys(view) == ["", "/a", "/a/x", "/b"]

    def test_sort_by_disk_sets_field(self, view: CgroupView) -> None:
        view.sort_by_disk()
        assert view.state.sort.field_id is FieldId.IO_RWBYTES_PER_SEC

    def test_sort_by_column_uses_current_tab(self, view: CgroupView) -> None:
        view.switch_tab("CPU")
        assert view.sort_by_column(3)
        assert view.state.sort.field_id is FieldId.CPU_SYSTEM_PCT

    def test_sort_by_column_out_of_range(self, view: CgroupView) -> None:
        with pytest.raises(ViewContractError):
            view.sort_by_column(len(view.tab.view_items) + 1)

    def test_sort_by_name(self, view: CgroupView) -> None:
        assert view.sort_by_name("mem.total")
        assert not view.sort_by_name("mem.bogus")
        assert view.state.sort.field_id is FieldId.MEM_TOTAL


class TestSubmit:
    def test_root_row_collapses_top_level(self, view: CgroupView) -> None:
        view.submit("")
        assert view.state.collapse.collapse_all_top_level
        assert _keys(view) == ["", "/a", "/b"]
        view.submit("")
        assert _keys(view) == ["", "/a", "/a/x", "/b"]

    def test_node_row_toggles(self, view: CgroupView) -> None:
        view.submit("/a")
        assert view.state.collapse.collapsed == {"/a"}
        view.submit("/a")
        assert view.state.collapse.collapsed == set()

    def test_marker_stripped(self, view: CgroupView) -> None:
        view.submit(RECREATED_MARKER + "/a")
        assert view.state.collapse.collapsed == {"/a"}

    def test_select_stores_path(self, view: CgroupView) -> None:
        view.select(RECREATED_MARKER + "/b")
        assert view.state.selected_key == "/b"


class TestRefresh:
    def test_titles_follow_offset_free_tab(self, view: CgroupView) -> None:
        titles, rows = view.refresh()
        assert titles == CGROUP_GENERAL_TAB.get_titles()
        assert len(rows) == 4

    def test_offset_applies_to_rows(self, view: CgroupView) -> None:
        before = view.get_rows()[3].label
        view.scroll_columns(1)
        assert view.get_rows()[3].label != before

    def test_picks_up_new_snapshot(
        self, view: CgroupView, make_cgroup: MakeCgroup
    ) -> None:
        view.state.model.replace(make_cgroup("", [make_cgroup("/new")]))
        _, rows = view.refresh()
        assert [r.key for r in rows] == ["", "/new"]

    def test_empty_filter_clears(self, view: CgroupView) -> None:
        view.set_filter("zzz")
        assert view.get_rows() == []
        view.set_filter("")
        assert view.state.filter is None
        assert len(view.get_rows()) == 4
