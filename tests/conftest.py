"""Shared fixtures: small hand-built cgroup trees."""

from __future__ import annotations

from collections.abc import Callable, Sequence

import pytest

from cgview.model import (
    ROOT_NAME,
    CgroupCpuModel,
    CgroupMemoryModel,
    CgroupModel,
    ModelHandle,
    SingleCgroupModel,
)
from cgview.state import CgroupState
from cgview.tabs import TABS

MakeCgroup = Callable[..., CgroupModel]


def _make_cgroup(
    path: str,
    children: Sequence[CgroupModel] = (),
    *,
    cpu: float | None = None,
    mem: int | None = None,
    recreated: bool = False,
) -> CgroupModel:
    name = path.rsplit("/", 1)[-1] if path else ROOT_NAME
    data = SingleCgroupModel(
        name=name,
        full_path=path,
        depth=path.count("/"),
        cpu=CgroupCpuModel(usage_pct=cpu),
        memory=CgroupMemoryModel(total=mem),
    )
    return CgroupModel(data, tuple(children), recreated)


@pytest.fixture
def make_cgroup() -> MakeCgroup:
    return _make_cgroup


@pytest.fixture
def sample_tree() -> CgroupModel:
    """root → {/a → {/a/x}, /b}"""
    return _make_cgroup(
        "",
        [
            _make_cgroup("/a", [_make_cgroup("/a/x", cpu=5.0)], cpu=10.0, mem=100),
            _make_cgroup("/b", cpu=90.0, mem=50),
        ],
    )


@pytest.fixture
def sample_state(sample_tree: CgroupModel) -> CgroupState:
    return CgroupState(model=ModelHandle(sample_tree), tabs=TABS)
