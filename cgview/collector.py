"""Cgroup v2 collector: reads the cgroup filesystem into tree snapshots.

Reads control files directly (no sleeps). Per-second rates come from the
previous sample of the same cgroup path. A path whose directory inode
changed since the previous sample belongs to a new cgroup and is flagged
as recreated; it gets no rates until its second sample.
"""

from __future__ import annotations

import dataclasses
import logging
import os
import threading
import time
from dataclasses import dataclass
from pathlib import Path

import psutil

from cgview.model import (
    ROOT_NAME,
    CgroupCpuModel,
    CgroupIoModel,
    CgroupMemoryModel,
    CgroupModel,
    CgroupPressureModel,
    ModelHandle,
    SingleCgroupModel,
)

logger = logging.getLogger(__name__)

DEFAULT_CGROUP_ROOT = Path("/sys/fs/cgroup")
DEFAULT_PROC_PRESSURE = Path("/proc/pressure")

_MEM_STAT_KEYS: tuple[str, ...] = tuple(
    f.name
    for f in dataclasses.fields(CgroupMemoryModel)
    if f.name not in ("total", "swap") and not f.name.startswith("events_")
)
# Kernels >= 5.9 split these into _anon and _file
_MEM_STAT_SPLIT: tuple[str, ...] = ("workingset_refault", "workingset_activate")
_MEM_EVENT_KEYS: tuple[str, ...] = ("low", "high", "max", "oom", "oom_kill")
_IO_KEYS: tuple[str, ...] = ("rbytes", "wbytes", "dbytes", "rios", "wios", "dios")


# ── Control file readers ───────────────────────────────────────────────────


def _read_text(path: Path) -> str | None:
    try:
        return path.read_text()
    except OSError as e:
        logger.debug("cannot read %s: %s", path, e)
        return None


def read_int(path: Path) -> int | None:
    """Read a single-value control file; ``max`` and garbage read as None."""
    text = _read_text(path)
    if text is None:
        return None
    try:
        return int(text.strip())
    except ValueError:
        return None


def read_flat_keyed(path: Path) -> dict[str, int] | None:
    """Parse ``key value`` lines (cpu.stat, memory.stat, memory.events)."""
    text = _read_text(path)
    if text is None:
        return None
    result: dict[str, int] = {}
    for line in text.splitlines():
        parts = line.split()
        if len(parts) != 2:
            continue
        try:
            result[parts[0]] = int(parts[1])
        except ValueError:
            continue
    return result


def read_io_stat(path: Path) -> dict[str, int] | None:
    """Parse io.stat and sum the counters over all devices."""
    text = _read_text(path)
    if text is None:
        return None
    totals = dict.fromkeys(_IO_KEYS, 0)
    for line in text.splitlines():
        for item in line.split()[1:]:
            key, _, value = item.partition("=")
            if key in totals:
                try:
                    totals[key] += int(value)
                except ValueError:
                    continue
    return totals


def read_pressure(path: Path) -> tuple[float | None, float | None]:
    """Return the ``avg10`` of the some and full lines of a PSI file."""
    text = _read_text(path)
    if text is None:
        return None, None
    found: dict[str, float] = {}
    for line in text.splitlines():
        parts = line.split()
        if not parts:
            continue
        kind, fields = parts[0], parts[1:]
        for item in fields:
            key, _, value = item.partition("=")
            if key == "avg10":
                try:
                    found[kind] = float(value)
                except ValueError:
                    pass
    return found.get("some"), found.get("full")


# ── Sampling ───────────────────────────────────────────────────────────────


@dataclass
class _Sample:
    inode: int
    time: float
    cpu: dict[str, int] | None
    io: dict[str, int] | None


def _rate(curr: int | None, prev: int | None, dt: float) -> float | None:
    if curr is None or prev is None or dt <= 0:
        return None
    return max(0.0, (curr - prev) / dt)


def _usec_pct(curr: int | None, prev: int | None, dt: float) -> float | None:
    rate = _rate(curr, prev, dt)
    if rate is None:
        return None
    return rate / 1_000_000 * 100.0


class CgroupCollector:
    """Builds one :class:`CgroupModel` tree per :meth:`collect` call."""

    def __init__(
        self,
        root: Path = DEFAULT_CGROUP_ROOT,
        proc_pressure: Path = DEFAULT_PROC_PRESSURE,
    ) -> None:
        self.root = root
        self.proc_pressure = proc_pressure
        self._prev: dict[str, _Sample] = {}

    def collect(self) -> CgroupModel:
        now = time.monotonic()
        samples: dict[str, _Sample] = {}
        tree = self._walk(self.root, "", 0, now, samples)
        if tree is None:
            raise FileNotFoundError(f"cgroup root not readable: {self.root}")
        self._prev = samples
        return tree

    def _walk(
        self,
        path: Path,
        full_path: str,
        depth: int,
        now: float,
        samples: dict[str, _Sample],
    ) -> CgroupModel | None:
        try:
            inode = path.stat().st_ino
            with os.scandir(path) as it:
                entries = sorted(e.name for e in it if e.is_dir(follow_symlinks=False))
        except OSError:
            # Removed between listing its parent and reading it
            return None

        prev = self._prev.get(full_path)
        recreated = prev is not None and prev.inode != inode
        if recreated:
            logger.debug("cgroup %s was recreated", full_path)
            prev = None

        sample = _Sample(
            inode=inode,
            time=now,
            cpu=self._read_cpu_stat(path, full_path),
            io=self._read_io(path, full_path),
        )
        samples[full_path] = sample

        data = SingleCgroupModel(
            name=path.name if full_path else ROOT_NAME,
            full_path=full_path,
            depth=depth,
            cpu=self._cpu_model(sample, prev),
            memory=self._memory_model(path, full_path),
            io=self._io_model(sample, prev),
            pressure=self._pressure_model(path, full_path),
        )

        children: list[CgroupModel] = []
        for name in entries:
            child = self._walk(path / name, f"{full_path}/{name}", depth + 1, now, samples)
            if child is not None:
                children.append(child)
        return CgroupModel(data, tuple(children), recreated)

    # ── CPU ────────────────────────────────────────────────────────────

    def _read_cpu_stat(self, path: Path, full_path: str) -> dict[str, int] | None:
        stat = read_flat_keyed(path / "cpu.stat")
        if stat is None and not full_path:
            times = psutil.cpu_times()
            user = times.user + getattr(times, "nice", 0.0)
            system = times.system
            stat = {
                "usage_usec": int((user + system) * 1_000_000),
                "user_usec": int(user * 1_000_000),
                "system_usec": int(system * 1_000_000),
            }
        return stat

    @staticmethod
    def _cpu_model(sample: _Sample, prev: _Sample | None) -> CgroupCpuModel:
        if prev is None or sample.cpu is None or prev.cpu is None:
            return CgroupCpuModel()
        dt = sample.time - prev.time
        curr, last = sample.cpu, prev.cpu
        return CgroupCpuModel(
            usage_pct=_usec_pct(curr.get("usage_usec"), last.get("usage_usec"), dt),
            user_pct=_usec_pct(curr.get("user_usec"), last.get("user_usec"), dt),
            system_pct=_usec_pct(curr.get("system_usec"), last.get("system_usec"), dt),
            nr_periods_per_sec=_rate(curr.get("nr_periods"), last.get("nr_periods"), dt),
            nr_throttled_per_sec=_rate(
                curr.get("nr_throttled"), last.get("nr_throttled"), dt
            ),
            throttled_pct=_usec_pct(
                curr.get("throttled_usec"), last.get("throttled_usec"), dt
            ),
        )

    # ── Memory ─────────────────────────────────────────────────────────

    def _memory_model(self, path: Path, full_path: str) -> CgroupMemoryModel:
        stat = read_flat_keyed(path / "memory.stat") or {}
        for key in _MEM_STAT_SPLIT:
            if key not in stat and f"{key}_anon" in stat:
                stat[key] = stat[f"{key}_anon"] + stat.get(f"{key}_file", 0)
        events = read_flat_keyed(path / "memory.events") or {}

        if full_path:
            total = read_int(path / "memory.current")
            swap = read_int(path / "memory.swap.current")
        else:
            # The root cgroup has no memory.current
            vm = psutil.virtual_memory()
            total = int(vm.total - vm.available)
            swap = int(psutil.swap_memory().used)

        return CgroupMemoryModel(
            total=total,
            swap=swap,
            **{key: stat.get(key) for key in _MEM_STAT_KEYS},
            **{f"events_{key}": events.get(key) for key in _MEM_EVENT_KEYS},
        )

    # ── I/O ────────────────────────────────────────────────────────────

    def _read_io(self, path: Path, full_path: str) -> dict[str, int] | None:
        if full_path:
            return read_io_stat(path / "io.stat")
        counters = psutil.disk_io_counters()
        if counters is None:
            return None
        return {
            "rbytes": counters.read_bytes,
            "wbytes": counters.write_bytes,
            "rios": counters.read_count,
            "wios": counters.write_count,
        }

    @staticmethod
    def _io_model(sample: _Sample, prev: _Sample | None) -> CgroupIoModel:
        if prev is None or sample.io is None or prev.io is None:
            return CgroupIoModel()
        dt = sample.time - prev.time
        rates = {key: _rate(sample.io.get(key), prev.io.get(key), dt) for key in _IO_KEYS}
        rbytes, wbytes = rates["rbytes"], rates["wbytes"]
        rwbytes = None if rbytes is None or wbytes is None else rbytes + wbytes
        return CgroupIoModel(
            rbytes_per_sec=rbytes,
            wbytes_per_sec=wbytes,
            dbytes_per_sec=rates["dbytes"],
            rios_per_sec=rates["rios"],
            wios_per_sec=rates["wios"],
            dios_per_sec=rates["dios"],
            rwbytes_per_sec=rwbytes,
        )

    # ── Pressure ───────────────────────────────────────────────────────

    def _pressure_model(self, path: Path, full_path: str) -> CgroupPressureModel:
        if full_path:
            cpu = read_pressure(path / "cpu.pressure")
            mem = read_pressure(path / "memory.pressure")
            io = read_pressure(path / "io.pressure")
        else:
            cpu = read_pressure(self.proc_pressure / "cpu")
            mem = read_pressure(self.proc_pressure / "memory")
            io = read_pressure(self.proc_pressure / "io")
        return CgroupPressureModel(
            cpu_some_pct=cpu[0],
            cpu_full_pct=cpu[1],
            memory_some_pct=mem[0],
            memory_full_pct=mem[1],
            io_some_pct=io[0],
            io_full_pct=io[1],
        )


# ── Background polling ─────────────────────────────────────────────────────


class Poller(threading.Thread):
    """Replaces the shared snapshot with a fresh one every *interval* seconds.

    A failed poll is logged and the previous snapshot stays in place.
    """

    def __init__(
        self, collector: CgroupCollector, handle: ModelHandle, interval: float
    ) -> None:
        super().__init__(name="cgview-poller", daemon=True)
        self.collector = collector
        self.handle = handle
        self.interval = interval
        self._stop_event = threading.Event()

    def poll_once(self) -> bool:
        try:
            tree = self.collector.collect()
        except Exception:
            logger.exception("cgroup collection failed")
            return False
        self.handle.replace(tree)
        return True

    def run(self) -> None:
        logger.info("polling %s every %.1fs", self.collector.root, self.interval)
        while not self._stop_event.is_set():
            self.poll_once()
            self._stop_event.wait(self.interval)

    def stop(self, timeout: float | None = None) -> None:
        self._stop_event.set()
        self.join(timeout)
