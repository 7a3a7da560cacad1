"""Local task graph.

The release workflows call into tasks run by an external task engine. This
module declares their shape (name, environment, ordered steps) and renders
it as `.rsynth/tasks.json`. Nothing here runs a task.

Step kinds:
- spawn: run another task by name
- exec: run a shell command
- builtin: run a named routine shipped with the task engine
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from rsynth.core.errors import ConfigurationError
from rsynth.release.branches import ReleaseBranch
from rsynth.release.settings import ReleaseSettings

__all__ = [
    "TASKS_FILE",
    "TaskGraph",
    "TaskSpec",
    "TaskStep",
    "branch_env",
    "build_task_graph",
    "release_task_name",
]

TASKS_FILE = ".rsynth/tasks.json"


@dataclass(frozen=True, slots=True)
class TaskStep:
    spawn: str | None = None
    exec: str | None = None
    builtin: str | None = None
    name: str | None = None

    def __post_init__(self) -> None:
        kinds = [k for k in (self.spawn, self.exec, self.builtin) if k is not None]
        if len(kinds) != 1:
            raise ConfigurationError("a task step needs exactly one of spawn, exec or builtin")

    def to_dict(self) -> dict[str, str]:
        out: dict[str, str] = {}
        if self.name is not None:
            out["name"] = self.name
        if self.spawn is not None:
            out["spawn"] = self.spawn
        if self.exec is not None:
            out["exec"] = self.exec
        if self.builtin is not None:
            out["builtin"] = self.builtin
        return out


@dataclass(frozen=True, slots=True)
class TaskSpec:
    name: str
    description: str
    steps: tuple[TaskStep, ...] = ()
    env: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "env", MappingProxyType(dict(self.env)))

    def to_dict(self) -> dict[str, object]:
        out: dict[str, object] = {"name": self.name, "description": self.description}
        if self.env:
            out["env"] = dict(self.env)
        out["steps"] = [step.to_dict() for step in self.steps]
        return out


class TaskGraph:
    """Ordered set of uniquely named tasks."""

    def __init__(self) -> None:
        self._tasks: dict[str, TaskSpec] = {}

    def add(self, task: TaskSpec) -> None:
        if task.name in self._tasks:
            raise ConfigurationError(f'duplicate task "{task.name}"')
        self._tasks[task.name] = task

    def get(self, name: str) -> TaskSpec | None:
        return self._tasks.get(name)

    def __iter__(self) -> Iterator[TaskSpec]:
        return iter(tuple(self._tasks.values()))

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def to_dict(self) -> dict[str, object]:
        return {"tasks": {name: task.to_dict() for name, task in self._tasks.items()}}


def release_task_name(branch: ReleaseBranch) -> str:
    """`release` for the default branch, `release:<branch>` otherwise."""
    if branch.is_default:
        return "release"
    return f"release:{branch.name}"


def branch_env(branch: ReleaseBranch) -> dict[str, str]:
    """Version-line environment read by the bump task."""
    env: dict[str, str] = {}
    if branch.major_version is not None:
        env["MAJOR"] = str(branch.major_version)
    if branch.min_major_version is not None:
        env["MIN_MAJOR"] = str(branch.min_major_version)
    if branch.prerelease:
        env["PRERELEASE"] = branch.prerelease
    if branch.tag_prefix:
        env["RELEASE_TAG_PREFIX"] = branch.tag_prefix
    return env


def _version_tasks(settings: ReleaseSettings) -> tuple[TaskSpec, ...]:
    return (
        TaskSpec(
            name="bump",
            description="Bumps version based on latest git tag and generates a changelog entry",
            env={
                "OUTFILE": settings.version_file,
                "CHANGELOG": settings.artifact("changelog.md"),
                "BUMPFILE": settings.artifact("version.txt"),
                "RELEASETAG": settings.artifact("releasetag.txt"),
            },
            steps=(TaskStep(builtin="release/bump-version"),),
        ),
        TaskSpec(
            name="unbump",
            description="Restores version to 0.0.0",
            env={"OUTFILE": settings.version_file},
            steps=(TaskStep(builtin="release/reset-version"),),
        ),
        TaskSpec(
            name="tag",
            description="Creates the release tag for the bumped version",
            env={"RELEASETAG": settings.artifact("releasetag.txt")},
            steps=(TaskStep(builtin="release/tag-version"),),
        ),
    )


def build_task_graph(
    branches: Iterable[ReleaseBranch],
    publish_tasks: Iterable[TaskSpec],
    settings: ReleaseSettings,
) -> TaskGraph:
    """Declare version, per-branch release and publish tasks."""
    graph = TaskGraph()
    for task in _version_tasks(settings):
        graph.add(task)

    for branch in branches:
        graph.add(
            TaskSpec(
                name=release_task_name(branch),
                description=f"Prepare a release from \"{branch.name}\" branch",
                env={"RELEASE": "true", **branch_env(branch)},
                steps=(
                    TaskStep(spawn="bump"),
                    TaskStep(spawn=settings.build_task),
                    TaskStep(spawn="unbump"),
                    TaskStep(spawn="tag"),
                ),
            )
        )

    for task in publish_tasks:
        graph.add(task)
    return graph
