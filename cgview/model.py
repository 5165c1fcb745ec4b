"""Immutable cgroup tree snapshots and the handle that shares them.

A snapshot is built once per poll by the collector and never mutated
afterwards. The view only ever reads it, through :class:`ModelHandle`.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field

ROOT_NAME = "<root>"

# ── Per-category metric models ─────────────────────────────────────────────


@dataclass(frozen=True)
class CgroupCpuModel:
    usage_pct: float | None = None
    user_pct: float | None = None
    system_pct: float | None = None
    nr_periods_per_sec: float | None = None
    nr_throttled_per_sec: float | None = None
    throttled_pct: float | None = None


@dataclass(frozen=True)
class CgroupMemoryModel:
    total: int | None = None
    swap: int | None = None
    anon: int | None = None
    file: int | None = None
    kernel_stack: int | None = None
    slab: int | None = None
    sock: int | None = None
    shmem: int | None = None
    file_mapped: int | None = None
    file_dirty: int | None = None
    file_writeback: int | None = None
    anon_thp: int | None = None
    inactive_anon: int | None = None
    active_anon: int | None = None
    inactive_file: int | None = None
    active_file: int | None = None
    unevictable: int | None = None
    slab_reclaimable: int | None = None
    slab_unreclaimable: int | None = None
    pgfault: int | None = None
    pgmajfault: int | None = None
    workingset_refault: int | None = None
    workingset_activate: int | None = None
    workingset_nodereclaim: int | None = None
    pgrefill: int | None = None
    pgscan: int | None = None
    pgsteal: int | None = None
    pgactivate: int | None = None
    pgdeactivate: int | None = None
    pglazyfree: int | None = None
    pglazyfreed: int | None = None
    thp_fault_alloc: int | None = None
    thp_collapse_alloc: int | None = None
    events_low: int | None = None
    events_high: int | None = None
    events_max: int | None = None
    events_oom: int | None = None
    events_oom_kill: int | None = None


@dataclass(frozen=True)
class CgroupIoModel:
    rbytes_per_sec: float | None = None
    wbytes_per_sec: float | None = None
    dbytes_per_sec: float | None = None
    rios_per_sec: float | None = None
    wios_per_sec: float | None = None
    dios_per_sec: float | None = None
    rwbytes_per_sec: float | None = None


@dataclass(frozen=True)
class CgroupPressureModel:
    cpu_some_pct: float | None = None
    cpu_full_pct: float | None = None
    memory_some_pct: float | None = None
    memory_full_pct: float | None = None
    io_some_pct: float | None = None
    io_full_pct: float | None = None


@dataclass(frozen=True)
class PerfEventModel:
    """Perf counters keyed by event name. Empty when no sampler is attached."""

    events: Mapping[str, int] = field(default_factory=lambda: dict[str, int]())


@dataclass(frozen=True)
class SingleCgroupModel:
    """All metrics for one cgroup at one instant."""

    name: str
    full_path: str
    depth: int = 0
    cpu: CgroupCpuModel = field(default_factory=CgroupCpuModel)
    memory: CgroupMemoryModel = field(default_factory=CgroupMemoryModel)
    io: CgroupIoModel = field(default_factory=CgroupIoModel)
    pressure: CgroupPressureModel = field(default_factory=CgroupPressureModel)
    perf: PerfEventModel = field(default_factory=PerfEventModel)


# ── Tree node ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class CgroupModel:
    """One node of a cgroup tree snapshot.

    ``count`` is the size of the subtree rooted here, this node included,
    so a leaf has ``count == 1``. It is derived from ``children`` and cannot
    be passed in.
    """

    data: SingleCgroupModel
    children: tuple[CgroupModel, ...] = ()
    recreated: bool = False
    count: int = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "count", 1 + sum(child.count for child in self.children)
        )

    @property
    def key(self) -> str:
        return self.data.full_path

    def iter_nodes(self) -> Iterator[CgroupModel]:
        """Yield every node of the subtree in pre-order."""
        stack: list[CgroupModel] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


def empty_root() -> CgroupModel:
    """Placeholder snapshot used before the first poll completes."""
    return CgroupModel(SingleCgroupModel(name=ROOT_NAME, full_path=""))


# ── Shared snapshot reference ──────────────────────────────────────────────


class ModelHandle:
    """Lock-protected reference to the current tree snapshot.

    The collector swaps in whole snapshots with :meth:`replace`; a render
    pass holds :meth:`read` for its full duration so it never sees two
    different trees.
    """

    def __init__(self, root: CgroupModel | None = None) -> None:
        self._lock = threading.Lock()
        self._root = root if root is not None else empty_root()

    def replace(self, root: CgroupModel) -> None:
        with self._lock:
            self._root = root

    @contextmanager
    def read(self) -> Iterator[CgroupModel]:
        with self._lock:
            yield self._root

    def current(self) -> CgroupModel:
        with self._lock:
            return self._root
