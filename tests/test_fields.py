"""Tests for cgview.fields."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from cgview.fields import FieldId, UnknownFieldError, sort_nodes
from cgview.model import CgroupModel, PerfEventModel, SingleCgroupModel

MakeCgroup = Callable[..., CgroupModel]


def _keys(nodes: list[CgroupModel]) -> list[str]:
    return [n.key for n in nodes]


# ── Parsing ────────────────────────────────────────────────────────────────


class TestParse:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("cpu.usage_pct", FieldId.CPU_USAGE_PCT),
            ("mem.total", FieldId.MEM_TOTAL),
            ("name", FieldId.NAME),
            ("CPU_USAGE_PCT", FieldId.CPU_USAGE_PCT),
            ("io_rwbytes_per_sec", FieldId.IO_RWBYTES_PER_SEC),
            ("  perf.events ", FieldId.PERF_EVENTS),
        ],
    )
    def test_resolves(self, name: str, expected: FieldId) -> None:
        assert FieldId.parse(name) is expected

    @pytest.mark.parametrize("name", ["", "cpu", "cpu.bogus", "memory.total"])
    def test_unknown_raises(self, name: str) -> None:
        with pytest.raises(UnknownFieldError) as info:
            FieldId.parse(name)
        assert info.value.name == name

    def test_unknown_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            FieldId.parse("nope")


class TestPaths:
    def test_category_and_leaf(self) -> None:
        assert FieldId.CPU_USAGE_PCT.category == "cpu"
        assert FieldId.CPU_USAGE_PCT.leaf == "usage_pct"
        assert FieldId.PRESSURE_IO_FULL_PCT.category == "pressure"

    def test_top_level_has_no_category(self) -> None:
        assert FieldId.NAME.category is None
        assert FieldId.NAME.leaf == "name"

    def test_every_field_has_a_title(self) -> None:
        for field_id in FieldId:
            assert field_id.title
            assert field_id.spec.width > 0

    def test_every_field_extracts_from_default_model(self) -> None:
        model = SingleCgroupModel(name="x", full_path="/x")
        for field_id in FieldId:
            field_id.render(model)


# ── Rendering ──────────────────────────────────────────────────────────────


class TestRender:
    def test_missing_value(self, make_cgroup: MakeCgroup) -> None:
        node = make_cgroup("/a")
        assert FieldId.CPU_USAGE_PCT.render(node.data) == "-"

    def test_percent(self, make_cgroup: MakeCgroup) -> None:
        node = make_cgroup("/a", cpu=12.5)
        assert FieldId.CPU_USAGE_PCT.render(node.data) == "12.50%"

    def test_bytes(self, make_cgroup: MakeCgroup) -> None:
        node = make_cgroup("/a", mem=2048)
        assert FieldId.MEM_TOTAL.render(node.data) == "2.0 KiB"

    def test_name(self, make_cgroup: MakeCgroup) -> None:
        assert FieldId.NAME.render(make_cgroup("/a/b").data) == "b"
        assert FieldId.NAME.render(make_cgroup("").data) == "<root>"

    def test_perf_events(self) -> None:
        model = SingleCgroupModel(
            name="a",
            full_path="/a",
            perf=PerfEventModel(events={"instructions": 20, "cycles": 10}),
        )
        assert FieldId.PERF_EVENTS.render(model) == "cycles=10 instructions=20"


# ── Ordering ───────────────────────────────────────────────────────────────


class TestCompare:
    def test_numeric(self, make_cgroup: MakeCgroup) -> None:
        lo, hi = make_cgroup("/a", cpu=1.0), make_cgroup("/b", cpu=2.0)
        assert FieldId.CPU_USAGE_PCT.compare(lo.data, hi.data) < 0
        assert FieldId.CPU_USAGE_PCT.compare(hi.data, lo.data) > 0
        assert FieldId.CPU_USAGE_PCT.compare(lo.data, lo.data) == 0

    def test_missing_is_minimum(self, make_cgroup: MakeCgroup) -> None:
        missing, zero = make_cgroup("/a"), make_cgroup("/b", cpu=0.0)
        assert FieldId.CPU_USAGE_PCT.compare(missing.data, zero.data) < 0

    def test_perf_mappings(self) -> None:
        empty = SingleCgroupModel(name="a", full_path="/a")
        small = SingleCgroupModel(
            name="b", full_path="/b", perf=PerfEventModel(events={"cycles": 1})
        )
        large = SingleCgroupModel(
            name="c", full_path="/c", perf=PerfEventModel(events={"cycles": 9})
        )
        assert FieldId.PERF_EVENTS.compare(empty, small) < 0
        assert FieldId.PERF_EVENTS.compare(small, large) < 0


class TestSortNodes:
    def test_ascending_missing_first(self, make_cgroup: MakeCgroup) -> None:
        nodes = [make_cgroup("/a", cpu=3.0), make_cgroup("/b"), make_cgroup("/c", cpu=1.0)]
        assert _keys(sort_nodes(nodes, FieldId.CPU_USAGE_PCT, False)) == ["/b", "/c", "/a"]

    def test_descending_missing_last(self, make_cgroup: MakeCgroup) -> None:
        nodes = [make_cgroup("/a", cpu=3.0), make_cgroup("/b"), make_cgroup("/c", cpu=1.0)]
        assert _keys(sort_nodes(nodes, FieldId.CPU_USAGE_PCT, True)) == ["/a", "/c", "/b"]

    def test_ties_keep_insertion_order(self, make_cgroup: MakeCgroup) -> None:
        nodes = [
            make_cgroup("/a", cpu=1.0),
            make_cgroup("/b", cpu=5.0),
            make_cgroup("/c", cpu=1.0),
        ]
        assert _keys(sort_nodes(nodes, FieldId.CPU_USAGE_PCT, False)) == ["/a", "/c", "/b"]
        assert _keys(sort_nodes(nodes, FieldId.CPU_USAGE_PCT, True)) == ["/b", "/a", "/c"]

    def test_by_name(self, make_cgroup: MakeCgroup) -> None:
        nodes = [make_cgroup("/b"), make_cgroup("/c"), make_cgroup("/a")]
        assert _keys(sort_nodes(nodes, FieldId.NAME, False)) == ["/a", "/b", "/c"]
