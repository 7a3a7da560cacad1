from __future__ import annotations

import pytest

from rsynth.core.errors import ConfigurationError
from rsynth.release.branches import BranchOptions, BranchRegistry
from rsynth.release.settings import ReleaseSettings
from rsynth.release.tasks import (
    TaskGraph,
    TaskSpec,
    TaskStep,
    branch_env,
    build_task_graph,
    release_task_name,
)

SETTINGS = ReleaseSettings(build_task="compile", version_file="package.json")


class TestTaskStep:
    def test_exactly_one_kind(self) -> None:
        with pytest.raises(ConfigurationError):
            TaskStep()
        with pytest.raises(ConfigurationError):
            TaskStep(spawn="a", exec="b")

    def test_to_dict(self) -> None:
        assert TaskStep(exec="make", name="Make").to_dict() == {"name": "Make", "exec": "make"}


class TestTaskGraph:
    def test_duplicate_task(self) -> None:
        graph = TaskGraph()
        graph.add(TaskSpec(name="a", description="A"))
        with pytest.raises(ConfigurationError, match='duplicate task "a"'):
            graph.add(TaskSpec(name="a", description="again"))

    def test_to_dict_omits_empty_env(self) -> None:
        graph = TaskGraph()
        graph.add(TaskSpec(name="a", description="A", steps=(TaskStep(exec="true"),)))
        assert graph.to_dict() == {
            "tasks": {"a": {"name": "a", "description": "A", "steps": [{"exec": "true"}]}}
        }


class TestBuildTaskGraph:
    """Version tasks, per-branch release tasks, publish tasks."""

    def _registry(self) -> BranchRegistry:
        registry = BranchRegistry("main", BranchOptions(major_version=1))
        registry.add_branch("2.x", BranchOptions(major_version=2, prerelease="rc"))
        return registry

    def test_task_order(self) -> None:
        publish = TaskSpec(name="publish:npm", description="Publish to npm")
        graph = build_task_graph(self._registry(), (publish,), SETTINGS)
        assert [t.name for t in graph] == ["bump", "unbump", "tag", "release", "release:2.x", "publish:npm"]

    def test_release_task_steps(self) -> None:
        graph = build_task_graph(self._registry(), (), SETTINGS)
        task = graph.get("release")
        assert task is not None
        assert [s.spawn for s in task.steps] == ["bump", "compile", "unbump", "tag"]

    def test_branch_env(self) -> None:
        graph = build_task_graph(self._registry(), (), SETTINGS)
        task = graph.get("release:2.x")
        assert task is not None
        assert dict(task.env) == {"RELEASE": "true", "MAJOR": "2", "PRERELEASE": "rc"}

    def test_bump_env_follows_settings(self) -> None:
        settings = ReleaseSettings(build_task="compile", version_file="package.json", artifacts_directory="out")
        graph = build_task_graph(self._registry(), (), settings)
        bump = graph.get("bump")
        assert bump is not None
        assert bump.env["OUTFILE"] == "package.json"
        assert bump.env["RELEASETAG"] == "out/releasetag.txt"

    def test_publish_task_name_collision(self) -> None:
        with pytest.raises(ConfigurationError):
            build_task_graph(self._registry(), (TaskSpec(name="bump", description="x"),), SETTINGS)


class TestBranchHelpers:
    def test_release_task_name(self) -> None:
        registry = BranchRegistry("main", BranchOptions(major_version=1))
        other = registry.add_branch("hotfix", BranchOptions(major_version=1))
        assert release_task_name(registry.default) == "release"
        assert release_task_name(other) == "release:hotfix"

    def test_branch_env_includes_prefix(self) -> None:
        registry = BranchRegistry("main", BranchOptions(major_version=1))
        other = registry.add_branch("hotfix", BranchOptions(major_version=1))
        assert branch_env(other) == {"MAJOR": "1", "RELEASE_TAG_PREFIX": "hotfix/"}
        assert branch_env(registry.default) == {"MAJOR": "1"}


class TestReleaseSettings:
    def test_command_and_artifact(self) -> None:
        assert SETTINGS.command("bump") == "rsynth-task bump"
        assert SETTINGS.artifact("version.txt") == "dist/version.txt"

    def test_empty_task_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            ReleaseSettings(build_task="", version_file="package.json")
