from __future__ import annotations

import pytest

from rsynth.core.errors import ConfigurationError
from rsynth.release.branches import (
    BranchOptions,
    BranchRegistry,
    ReleaseBranch,
    check_release_branches,
    sanitize_branch_name,
)


class TestBranchOptions:
    def test_defaults(self) -> None:
        options = BranchOptions()
        assert options.major_version is None
        assert options.tag_prefix is None

    def test_negative_major_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="non-negative"):
            BranchOptions(major_version=-1)

    def test_non_integer_major_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="non-negative integer"):
            BranchOptions(major_version="2")  # type: ignore[arg-type]

    def test_major_and_min_major_are_exclusive(self) -> None:
        with pytest.raises(ConfigurationError, match="cannot be used together"):
            BranchOptions(major_version=2, min_major_version=1)

    def test_empty_workflow_name_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            BranchOptions(workflow_name=" ")


class TestSanitizeBranchName:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("2.x", "2.x"),
            ("feature/x", "feature-x"),
            ("v1_maint", "v1_maint"),
            ("a b@c", "a-b-c"),
        ],
    )
    def test_sanitize(self, name: str, expected: str) -> None:
        assert sanitize_branch_name(name) == expected


class TestCheckReleaseBranches:
    def test_list_is_legacy(self) -> None:
        with pytest.raises(ConfigurationError, match="no longer an array"):
            check_release_branches(["2.x"])

    def test_entry_must_be_branch_options(self) -> None:
        with pytest.raises(ConfigurationError, match='"2.x"'):
            check_release_branches({"2.x": {"major_version": 2}})

    def test_mapping_passes(self) -> None:
        value = {"2.x": BranchOptions(major_version=2)}
        assert check_release_branches(value) is value


class TestBranchRegistry:
    """Registration order, derived names and cross-branch invariants."""

    def test_default_branch(self) -> None:
        registry = BranchRegistry("main")
        default = registry.default
        assert default.name == "main"
        assert default.is_default
        assert default.tag_prefix == ""
        assert default.workflow_name == "release"
        assert len(registry) == 1

    def test_empty_default_branch_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            BranchRegistry("")

    def test_add_branch_requires_default_major(self) -> None:
        registry = BranchRegistry("main")
        with pytest.raises(ConfigurationError, match="majorVersion"):
            registry.add_branch("2.x", BranchOptions(major_version=2))
        assert len(registry) == 1

    def test_registration_order(self) -> None:
        registry = BranchRegistry("main", BranchOptions(major_version=1))
        registry.add_branch("3.x", BranchOptions(major_version=3))
        registry.add_branch("2.x", BranchOptions(major_version=2))
        assert [b.name for b in registry] == ["main", "3.x", "2.x"]
        assert "2.x" in registry
        assert registry.get("4.x") is None

    def test_derived_workflow_name(self) -> None:
        registry = BranchRegistry("main", BranchOptions(major_version=1))
        branch = registry.add_branch("feature/next", BranchOptions(major_version=2))
        assert branch.workflow_name == "release-feature-next"

    def test_duplicate_branch_rejected(self) -> None:
        registry = BranchRegistry("main", BranchOptions(major_version=1))
        registry.add_branch("2.x", BranchOptions(major_version=2))
        with pytest.raises(ConfigurationError, match="already defined"):
            registry.add_branch("2.x", BranchOptions(major_version=3))

    def test_duplicate_workflow_name_rejected(self) -> None:
        registry = BranchRegistry("main", BranchOptions(major_version=1))
        with pytest.raises(ConfigurationError, match="workflow"):
            registry.add_branch("2.x", BranchOptions(major_version=2, workflow_name="release"))

    def test_explicit_tag_prefix_collision_rejected(self) -> None:
        registry = BranchRegistry("main", BranchOptions(major_version=1))
        with pytest.raises(ConfigurationError, match="tag prefix"):
            registry.add_branch("maint", BranchOptions(major_version=1, tag_prefix=""))

    def test_distinct_major_lines_share_empty_prefix(self) -> None:
        registry = BranchRegistry("main", BranchOptions(major_version=1))
        branch = registry.add_branch("2.x", BranchOptions(major_version=2))
        assert branch.tag_prefix == ""

    def test_same_major_line_derives_prefix(self) -> None:
        registry = BranchRegistry("main", BranchOptions(major_version=1))
        first = registry.add_branch("hotfix", BranchOptions(major_version=1))
        assert first.tag_prefix == "hotfix/"

    def test_derived_prefix_skips_taken_prefix(self) -> None:
        registry = BranchRegistry("main", BranchOptions(major_version=1))
        registry.add_branch("other", BranchOptions(major_version=1, tag_prefix="hotfix/"))
        branch = registry.add_branch("hotfix", BranchOptions(major_version=1))
        assert branch.tag_prefix == "hotfix-2/"


    def test_unpinned_branch_gets_derived_prefix(self) -> None:
        registry = BranchRegistry("main", BranchOptions(major_version=1))
        branch = registry.add_branch("feature/x")
        assert branch.tag_prefix == "feature-x/"
        assert branch.major_version is None

    def test_min_major_branch_gets_derived_prefix(self) -> None:
        registry = BranchRegistry("main", BranchOptions(min_major_version=1))
        branch = registry.add_branch("next", BranchOptions(min_major_version=1))
        assert branch.tag_prefix == "next/"

    def test_major_inside_default_range_gets_derived_prefix(self) -> None:
        registry = BranchRegistry("main", BranchOptions(min_major_version=1))
        branch = registry.add_branch("2.x", BranchOptions(major_version=2))
        assert branch.tag_prefix == "2.x/"

    def test_major_below_default_range_keeps_empty_prefix(self) -> None:
        registry = BranchRegistry("main", BranchOptions(min_major_version=3))
        branch = registry.add_branch("2.x", BranchOptions(major_version=2))
        assert branch.tag_prefix == ""

    def test_overlapping_branches_all_get_distinct_prefixes(self) -> None:
        registry = BranchRegistry("main", BranchOptions(min_major_version=1))
        registry.add_branch("next", BranchOptions(min_major_version=1))
        registry.add_branch("2.x", BranchOptions(major_version=2))
        registry.add_branch("feature")
        assert [b.tag_prefix for b in registry] == ["", "next/", "2.x/", "feature/"]

    def test_explicit_empty_prefix_inside_default_range_rejected(self) -> None:
        registry = BranchRegistry("main", BranchOptions(min_major_version=1))
        with pytest.raises(ConfigurationError, match="same major version"):
            registry.add_branch("2.x", BranchOptions(major_version=2, tag_prefix=""))

    def test_explicit_empty_prefix_on_unpinned_branch_rejected(self) -> None:
        registry = BranchRegistry("main", BranchOptions(major_version=1))
        with pytest.raises(ConfigurationError, match="tag prefix"):
            registry.add_branch("next", BranchOptions(tag_prefix=""))


class TestReleaseBranchRange:
    def test_version_range(self) -> None:
        pinned = ReleaseBranch(name="2.x", tag_prefix="", workflow_name="r", major_version=2)
        floating = ReleaseBranch(name="main", tag_prefix="", workflow_name="r", min_major_version=3)
        unpinned = ReleaseBranch(name="x", tag_prefix="", workflow_name="r")
        assert pinned.version_range == (2, 2)
        assert floating.version_range == (3, None)
        assert unpinned.version_range == (0, None)
        assert not pinned.overlaps(floating)
        assert unpinned.overlaps(pinned)
