"""Field identifier registry.

Every column the cgroup view can show or sort by is a member of
:class:`FieldId`. Members are dotted ``category.leaf`` paths into
:class:`~cgview.model.SingleCgroupModel`; ``name`` and ``full_path`` sit at
the top level. Each member carries a :class:`FieldSpec` with its default
title, width, alignment and value formatter, so generic code can render and
order nodes without knowing the metric layout.

Absent values (``None`` or an empty perf counter set) are the logical
minimum: they come first in ascending order and last in descending order.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from cgview.render import (
    MISSING,
    fmt_bytes,
    fmt_count,
    fmt_events,
    fmt_pct,
    fmt_per_sec,
    fmt_rate,
    fmt_text,
)

if TYPE_CHECKING:
    from cgview.model import CgroupModel, SingleCgroupModel

# Category path segment -> attribute on SingleCgroupModel
_CATEGORY_ATTRS: dict[str, str] = {
    "cpu": "cpu",
    "mem": "memory",
    "io": "io",
    "pressure": "pressure",
    "perf": "perf",
}


class UnknownFieldError(ValueError):
    """Raised when a name does not resolve to any field identifier."""

    def __init__(self, name: str) -> None:
        super().__init__(f"unknown field: {name!r}")
        self.name = name


@dataclass(frozen=True)
class FieldSpec:
    title: str
    width: int
    formatter: Callable[[Any], str]
    align: str = ">"


class FieldId(Enum):
    NAME = "name"
    FULL_PATH = "full_path"

    CPU_USAGE_PCT = "cpu.usage_pct"
    CPU_USER_PCT = "cpu.user_pct"
    CPU_SYSTEM_PCT = "cpu.system_pct"
    CPU_NR_PERIODS_PER_SEC = "cpu.nr_periods_per_sec"
    CPU_NR_THROTTLED_PER_SEC = "cpu.nr_throttled_per_sec"
    CPU_THROTTLED_PCT = "cpu.throttled_pct"

    MEM_TOTAL = "mem.total"
    MEM_SWAP = "mem.swap"
    MEM_ANON = "mem.anon"
    MEM_FILE = "mem.file"
    MEM_KERNEL_STACK = "mem.kernel_stack"
    MEM_SLAB = "mem.slab"
    MEM_SOCK = "mem.sock"
    MEM_SHMEM = "mem.shmem"
    MEM_FILE_MAPPED = "mem.file_mapped"
    MEM_FILE_DIRTY = "mem.file_dirty"
    MEM_FILE_WRITEBACK = "mem.file_writeback"
    MEM_ANON_THP = "mem.anon_thp"
    MEM_INACTIVE_ANON = "mem.inactive_anon"
    MEM_ACTIVE_ANON = "mem.active_anon"
    MEM_INACTIVE_FILE = "mem.inactive_file"
    MEM_ACTIVE_FILE = "mem.active_file"
    MEM_UNEVICTABLE = "mem.unevictable"
    MEM_SLAB_RECLAIMABLE = "mem.slab_reclaimable"
    MEM_SLAB_UNRECLAIMABLE = "mem.slab_unreclaimable"
    MEM_PGFAULT = "mem.pgfault"
    MEM_PGMAJFAULT = "mem.pgmajfault"
    MEM_WORKINGSET_REFAULT = "mem.workingset_refault"
    MEM_WORKINGSET_ACTIVATE = "mem.workingset_activate"
    MEM_WORKINGSET_NODERECLAIM = "mem.workingset_nodereclaim"
    MEM_PGREFILL = "mem.pgrefill"
    MEM_PGSCAN = "mem.pgscan"
    MEM_PGSTEAL = "mem.pgsteal"
    MEM_PGACTIVATE = "mem.pgactivate"
    MEM_PGDEACTIVATE = "mem.pgdeactivate"
    MEM_PGLAZYFREE = "mem.pglazyfree"
    MEM_PGLAZYFREED = "mem.pglazyfreed"
    MEM_THP_FAULT_ALLOC = "mem.thp_fault_alloc"
    MEM_THP_COLLAPSE_ALLOC = "mem.thp_collapse_alloc"
    MEM_EVENTS_LOW = "mem.events_low"
    MEM_EVENTS_HIGH = "mem.events_high"
    MEM_EVENTS_MAX = "mem.events_max"
    MEM_EVENTS_OOM = "mem.events_oom"
    MEM_EVENTS_OOM_KILL = "mem.events_oom_kill"

    IO_RBYTES_PER_SEC = "io.rbytes_per_sec"
    IO_WBYTES_PER_SEC = "io.wbytes_per_sec"
    IO_DBYTES_PER_SEC = "io.dbytes_per_sec"
    IO_RIOS_PER_SEC = "io.rios_per_sec"
    IO_WIOS_PER_SEC = "io.wios_per_sec"
    IO_DIOS_PER_SEC = "io.dios_per_sec"
    IO_RWBYTES_PER_SEC = "io.rwbytes_per_sec"

    PRESSURE_CPU_SOME_PCT = "pressure.cpu_some_pct"
    PRESSURE_CPU_FULL_PCT = "pressure.cpu_full_pct"
    PRESSURE_MEMORY_SOME_PCT = "pressure.memory_some_pct"
    PRESSURE_MEMORY_FULL_PCT = "pressure.memory_full_pct"
    PRESSURE_IO_SOME_PCT = "pressure.io_some_pct"
    PRESSURE_IO_FULL_PCT = "pressure.io_full_pct"

    PERF_EVENTS = "perf.events"

    @property
    def category(self) -> str | None:
        head, sep, _ = self.value.partition(".")
        return head if sep else None

    @property
    def leaf(self) -> str:
        return self.value.rpartition(".")[2]

    @property
    def spec(self) -> FieldSpec:
        return _SPECS[self]

    @property
    def title(self) -> str:
        return self.spec.title

    @classmethod
    def parse(cls, name: str) -> FieldId:
        """Resolve a dotted path or member name, e.g. ``cpu.usage_pct``."""
        text = name.strip()
        try:
            return cls(text)
        except ValueError:
            pass
        member = cls.__members__.get(text.upper().replace(".", "_"))
        if member is None:
            raise UnknownFieldError(name)
        return member

    def extract(self, model: SingleCgroupModel) -> Any:
        category = self.category
        if category is None:
            return getattr(model, self.leaf)
        return getattr(getattr(model, _CATEGORY_ATTRS[category]), self.leaf)

    def render(self, model: SingleCgroupModel) -> str:
        value = self.extract(model)
        if value is None:
            return MISSING
        return self.spec.formatter(value)

    def sort_key(self, model: SingleCgroupModel) -> tuple[Any, ...]:
        value = self.extract(model)
        if isinstance(value, Mapping):
            if not value:
                return (0,)
            return (1, tuple(sorted(value.items())))
        if value is None:
            return (0,)
        return (1, value)

    def compare(self, a: SingleCgroupModel, b: SingleCgroupModel) -> int:
        """Three-way comparison: negative, zero or positive."""
        ka, kb = self.sort_key(a), self.sort_key(b)
        return (ka > kb) - (ka < kb)


def sort_nodes(
    nodes: Iterable[CgroupModel], field_id: FieldId, reverse: bool
) -> list[CgroupModel]:
    """Order sibling nodes by *field_id*; ties keep their original order."""
    return sorted(nodes, key=lambda n: field_id.sort_key(n.data), reverse=reverse)


# ── Registry ───────────────────────────────────────────────────────────────

_SPECS: dict[FieldId, FieldSpec] = {
    FieldId.NAME: FieldSpec("Name", 40, fmt_text, "<"),
    FieldId.FULL_PATH: FieldSpec("Full Path", 60, fmt_text, "<"),
    FieldId.CPU_USAGE_PCT: FieldSpec("CPU Usage", 10, fmt_pct),
    FieldId.CPU_USER_PCT: FieldSpec("CPU User", 10, fmt_pct),
    FieldId.CPU_SYSTEM_PCT: FieldSpec("CPU Sys", 10, fmt_pct),
    FieldId.CPU_NR_PERIODS_PER_SEC: FieldSpec("Nr Period", 10, fmt_per_sec),
    FieldId.CPU_NR_THROTTLED_PER_SEC: FieldSpec("Nr Throttled", 12, fmt_per_sec),
    FieldId.CPU_THROTTLED_PCT: FieldSpec("Throttled Pct", 13, fmt_pct),
    FieldId.IO_RBYTES_PER_SEC: FieldSpec("Reads", 11, fmt_rate),
    FieldId.IO_WBYTES_PER_SEC: FieldSpec("Writes", 11, fmt_rate),
    FieldId.IO_DBYTES_PER_SEC: FieldSpec("Discard", 11, fmt_rate),
    FieldId.IO_RIOS_PER_SEC: FieldSpec("Read IOPS", 10, fmt_per_sec),
    FieldId.IO_WIOS_PER_SEC: FieldSpec("Write IOPS", 10, fmt_per_sec),
    FieldId.IO_DIOS_PER_SEC: FieldSpec("Discard IOPS", 12, fmt_per_sec),
    FieldId.IO_RWBYTES_PER_SEC: FieldSpec("RW Total", 11, fmt_rate),
    FieldId.PRESSURE_CPU_SOME_PCT: FieldSpec("CPU Some Pressure", 17, fmt_pct),
    FieldId.PRESSURE_CPU_FULL_PCT: FieldSpec("CPU Pressure", 12, fmt_pct),
    FieldId.PRESSURE_MEMORY_SOME_PCT: FieldSpec("Memory Some Pressure", 20, fmt_pct),
    FieldId.PRESSURE_MEMORY_FULL_PCT: FieldSpec("Memory Pressure", 15, fmt_pct),
    FieldId.PRESSURE_IO_SOME_PCT: FieldSpec("I/O Some Pressure", 17, fmt_pct),
    FieldId.PRESSURE_IO_FULL_PCT: FieldSpec("I/O Pressure", 12, fmt_pct),
    FieldId.PERF_EVENTS: FieldSpec("Perf Events", 40, fmt_events, "<"),
}

_MEM_BYTES_TITLES: dict[FieldId, str] = {
    FieldId.MEM_TOTAL: "Memory",
    FieldId.MEM_SWAP: "Memory Swap",
    FieldId.MEM_ANON: "Anon",
    FieldId.MEM_FILE: "File",
    FieldId.MEM_KERNEL_STACK: "Kernel Stack",
    FieldId.MEM_SLAB: "Slab",
    FieldId.MEM_SOCK: "Sock",
    FieldId.MEM_SHMEM: "Shmem",
    FieldId.MEM_FILE_MAPPED: "File Mapped",
    FieldId.MEM_FILE_DIRTY: "File Dirty",
    FieldId.MEM_FILE_WRITEBACK: "File WB",
    FieldId.MEM_ANON_THP: "Anon THP",
    FieldId.MEM_INACTIVE_ANON: "Inactive Anon",
    FieldId.MEM_ACTIVE_ANON: "Active Anon",
    FieldId.MEM_INACTIVE_FILE: "Inactive File",
    FieldId.MEM_ACTIVE_FILE: "Active File",
    FieldId.MEM_UNEVICTABLE: "Unevictable",
    FieldId.MEM_SLAB_RECLAIMABLE: "Slab Reclaimable",
    FieldId.MEM_SLAB_UNRECLAIMABLE: "Slab Unreclaimable",
}

_MEM_COUNT_TITLES: dict[FieldId, str] = {
    FieldId.MEM_PGFAULT: "Pgfault",
    FieldId.MEM_PGMAJFAULT: "Pgmajfault",
    FieldId.MEM_WORKINGSET_REFAULT: "Workingset Refault",
    FieldId.MEM_WORKINGSET_ACTIVATE: "Workingset Activate",
    FieldId.MEM_WORKINGSET_NODERECLAIM: "Workingset Nodereclaim",
    FieldId.MEM_PGREFILL: "Pgrefill",
    FieldId.MEM_PGSCAN: "Pgscan",
    FieldId.MEM_PGSTEAL: "Pgsteal",
    FieldId.MEM_PGACTIVATE: "Pgactivate",
    FieldId.MEM_PGDEACTIVATE: "Pgdeactivate",
    FieldId.MEM_PGLAZYFREE: "Pglazyfree",
    FieldId.MEM_PGLAZYFREED: "Pglazyfreed",
    FieldId.MEM_THP_FAULT_ALLOC: "THP Fault Alloc",
    FieldId.MEM_THP_COLLAPSE_ALLOC: "THP Collapse Alloc",
    FieldId.MEM_EVENTS_LOW: "Events Low",
    FieldId.MEM_EVENTS_HIGH: "Events High",
    FieldId.MEM_EVENTS_MAX: "Events Max",
    FieldId.MEM_EVENTS_OOM: "Events OOM",
    FieldId.MEM_EVENTS_OOM_KILL: "Events Killed",
}

for _fid, _title in _MEM_BYTES_TITLES.items():
    _SPECS[_fid] = FieldSpec(_title, max(len(_title), 11), fmt_bytes)
for _fid, _title in _MEM_COUNT_TITLES.items():
    _SPECS[_fid] = FieldSpec(_title, max(len(_title), 10), fmt_count)

_missing = [fid.name for fid in FieldId if fid not in _SPECS]
if _missing:
    raise RuntimeError(f"field identifiers without a spec: {', '.join(_missing)}")
