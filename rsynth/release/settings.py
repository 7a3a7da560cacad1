"""Release-wide settings shared by the synthesizer, publishers and task graph."""

from __future__ import annotations

from dataclasses import dataclass

from rsynth.core.errors import ConfigurationError

__all__ = [
    "DEFAULT_ARTIFACTS_DIRECTORY",
    "DEFAULT_FAILURE_ISSUE_LABEL",
    "DEFAULT_RUNS_ON",
    "DEFAULT_TASK_RUNNER",
    "ReleaseSettings",
]

DEFAULT_TASK_RUNNER = "rsynth-task"
DEFAULT_RUNS_ON = "ubuntu-latest"
DEFAULT_ARTIFACTS_DIRECTORY = "dist"
DEFAULT_FAILURE_ISSUE_LABEL = "failed-release"


@dataclass(frozen=True, slots=True)
class ReleaseSettings:
    """Attributes:
    build_task: Name of the externally defined build task
    version_file: File the bump task writes the resolved version to
    task_runner: Command prefix that runs a task from the task graph
    runs_on: Runner label for generated jobs
    artifacts_directory: Directory holding build output and release metadata
    """

    build_task: str
    version_file: str
    task_runner: str = DEFAULT_TASK_RUNNER
    runs_on: str = DEFAULT_RUNS_ON
    artifacts_directory: str = DEFAULT_ARTIFACTS_DIRECTORY

    def __post_init__(self) -> None:
        if not self.build_task.strip():
            raise ConfigurationError('"task" must name the build task')
        if not self.version_file.strip():
            raise ConfigurationError('"versionFile" must not be empty')

    def command(self, task: str) -> str:
        """Shell command that runs `task` through the task runner."""
        return f"{self.task_runner} {task}"

    def artifact(self, name: str) -> str:
        return f"{self.artifacts_directory}/{name}"
