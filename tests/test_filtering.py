"""Tests for cgview.filtering."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from cgview.filtering import compute_excluded
from cgview.model import CgroupModel

MakeCgroup = Callable[..., CgroupModel]


def _all_keys(root: CgroupModel) -> set[str]:
    return {node.key for node in root.iter_nodes()}


@pytest.fixture
def wide_tree(make_cgroup: MakeCgroup) -> CgroupModel:
    return make_cgroup(
        "",
        [
            make_cgroup(
                "/system.slice",
                [
                    make_cgroup("/system.slice/sshd.service"),
                    make_cgroup(
                        "/system.slice/docker.service",
                        [make_cgroup("/system.slice/docker.service/web")],
                    ),
                ],
            ),
            make_cgroup(
                "/user.slice",
                [make_cgroup("/user.slice/user-1000.slice")],
            ),
            make_cgroup("/init.scope"),
        ],
    )


class TestComputeExcluded:
    def test_keeps_ancestors_of_match(self, sample_tree: CgroupModel) -> None:
        assert compute_excluded(sample_tree, "x") == {"/b"}

    def test_no_match_excludes_everything(self, sample_tree: CgroupModel) -> None:
        assert compute_excluded(sample_tree, "zzz") == {"", "/a", "/a/x", "/b"}

    def test_empty_pattern_keeps_everything(self, sample_tree: CgroupModel) -> None:
        assert compute_excluded(sample_tree, "") == set()

    def test_case_sensitive(self, sample_tree: CgroupModel) -> None:
        assert "/a/x" in compute_excluded(sample_tree, "X")

    def test_literal_not_pattern(self, wide_tree: CgroupModel) -> None:
        assert compute_excluded(wide_tree, ".*") == _all_keys(wide_tree)

    def test_internal_match_keeps_node_but_not_children(
        self, wide_tree: CgroupModel
    ) -> None:
        excluded = compute_excluded(wide_tree, "user.slice")
        assert "/user.slice" not in excluded
        assert "/user.slice/user-1000.slice" not in excluded
        assert "/system.slice" in excluded
        assert "/init.scope" in excluded

    def test_parent_match_does_not_keep_unmatched_children(
        self, make_cgroup: MakeCgroup
    ) -> None:
        root = make_cgroup(
            "", [make_cgroup("/web", [make_cgroup("/web/a"), make_cgroup("/web/b")])]
        )
        assert compute_excluded(root, "/web/a") == {"/web/b"}
        assert compute_excluded(root, "web") == set()
        assert compute_excluded(root, "eb") == set()
        assert compute_excluded(root, "/web") == set()
        assert compute_excluded(root, "w") == set()
        assert compute_excluded(root, "a") == {"/web/b"}

    def test_excluded_subtrees_recorded_under_kept_parent(
        self, wide_tree: CgroupModel
    ) -> None:
        excluded = compute_excluded(wide_tree, "web")
        assert excluded == {
            "/system.slice/sshd.service",
            "/user.slice",
            "/user.slice/user-1000.slice",
            "/init.scope",
        }

    @pytest.mark.parametrize(
        "pattern", ["", "/", "slice", "service", "web", "1000", "scope", "nothing"]
    )
    def test_excluded_iff_no_match_in_subtree(
        self, wide_tree: CgroupModel, pattern: str
    ) -> None:
        excluded = compute_excluded(wide_tree, pattern)
        for node in wide_tree.iter_nodes():
            subtree_matches = any(pattern in n.key for n in node.iter_nodes())
            assert (node.key in excluded) == (not subtree_matches)

    @pytest.mark.parametrize("pattern", ["docker", "sshd", "user-", "init"])
    def test_no_ancestor_of_kept_node_excluded(
        self, wide_tree: CgroupModel, pattern: str
    ) -> None:
        excluded = compute_excluded(wide_tree, pattern)
        stack: list[tuple[CgroupModel, list[str]]] = [(wide_tree, [])]
        while stack:
            node, ancestors = stack.pop()
            if node.key not in excluded:
                assert not excluded.intersection(ancestors)
            stack.extend((c, ancestors + [node.key]) for c in node.children)

    def test_deep_chain(self, make_cgroup: MakeCgroup) -> None:
        depth = 5000
        node = make_cgroup("/n" * depth)
        for level in range(depth - 1, -1, -1):
            node = make_cgroup("/n" * level, [node])
        excluded = compute_excluded(node, "/n" * depth)
        assert excluded == set()
        assert len(compute_excluded(node, "missing")) == depth + 1
