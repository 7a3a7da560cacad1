"""Release facade.

`Release` is the configuration surface: it owns the branch registry, the
publisher registry and the job composer of one release, and synthesizes the
workflow documents and the task graph from their final state.

Usage:
    release = Release(ReleaseOptions(task="build", version_file="version.json", branch="main", major_version=1))
    release.add_branch("2.x", BranchOptions(major_version=2))
    release.publisher.publish_to_npm()

    files = release.synth()   # {".github/workflows/release.yml": "...", ...}
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from rsynth.core.errors import ConfigurationError
from rsynth.release.branches import (
    BranchOptions,
    BranchRegistry,
    ReleaseBranch,
    check_release_branches,
)
from rsynth.release.composer import JobComposer
from rsynth.release.publisher import Publisher
from rsynth.release.settings import (
    DEFAULT_ARTIFACTS_DIRECTORY,
    DEFAULT_FAILURE_ISSUE_LABEL,
    DEFAULT_RUNS_ON,
    DEFAULT_TASK_RUNNER,
    ReleaseSettings,
)
from rsynth.release.synthesizer import ReleaseWorkflow, WorkflowSynthesizer
from rsynth.release.tasks import TASKS_FILE, TaskGraph, build_task_graph
from rsynth.release.trigger import ReleaseTrigger, resolve_trigger
from rsynth.workflows.model import Job
from rsynth.workflows.render import render_json, render_workflow

__all__ = ["Release", "ReleaseOptions"]


@dataclass(frozen=True, slots=True)
class ReleaseOptions:
    """Options of a release.

    Attributes:
        task: Name of the build task run between bump and tag
        version_file: File the resolved version is written to
        branch: Default release branch
        major_version: Major version line of the default branch
        min_major_version: Minimal major version of the default branch
        prerelease: Prerelease qualifier of the default branch
        release_tag_prefix: Tag prefix of the default branch
        release_workflow_name: Workflow name of the default branch
        release_every_commit: Release on every push (default True)
        release_schedule: Cron expression for scheduled releases
        release_trigger: Explicit trigger; overrides the two options above
        release_failure_issue: Open an issue when a release fails
        release_failure_issue_label: Label of that issue
        release_branches: Additional branches, name -> options
        task_runner: Command prefix running tasks in generated steps
        runs_on: Runner label for generated jobs
        artifacts_directory: Build output and release metadata directory
    """

    task: str
    version_file: str
    branch: str
    major_version: int | None = None
    min_major_version: int | None = None
    prerelease: str | None = None
    release_tag_prefix: str | None = None
    release_workflow_name: str | None = None
    release_every_commit: bool = True
    release_schedule: str | None = None
    release_trigger: ReleaseTrigger | None = None
    release_failure_issue: bool = False
    release_failure_issue_label: str | None = None
    release_branches: Mapping[str, BranchOptions] | None = field(default=None)
    task_runner: str = DEFAULT_TASK_RUNNER
    runs_on: str = DEFAULT_RUNS_ON
    artifacts_directory: str = DEFAULT_ARTIFACTS_DIRECTORY


class Release:
    """A release: branches, trigger, publishers and extra jobs."""

    def __init__(self, options: ReleaseOptions) -> None:
        # Checked before anything is registered: a legacy list never half-applies.
        release_branches = (
            check_release_branches(options.release_branches)
            if options.release_branches is not None
            else {}
        )

        self._options = options
        self._settings = ReleaseSettings(
            build_task=options.task,
            version_file=options.version_file,
            task_runner=options.task_runner,
            runs_on=options.runs_on,
            artifacts_directory=options.artifacts_directory,
        )
        self._trigger = resolve_trigger(
            release_trigger=options.release_trigger,
            release_every_commit=options.release_every_commit,
            release_schedule=options.release_schedule,
        )
        self._branches = BranchRegistry(
            options.branch,
            BranchOptions(
                major_version=options.major_version,
                min_major_version=options.min_major_version,
                prerelease=options.prerelease,
                tag_prefix=options.release_tag_prefix,
                workflow_name=options.release_workflow_name,
            ),
        )
        self._publisher = Publisher()
        self._composer = JobComposer()

        for name, branch_options in release_branches.items():
            self.add_branch(name, branch_options)

    @property
    def options(self) -> ReleaseOptions:
        return self._options

    @property
    def settings(self) -> ReleaseSettings:
        return self._settings

    @property
    def trigger(self) -> ReleaseTrigger:
        return self._trigger

    @property
    def publisher(self) -> Publisher:
        return self._publisher

    @property
    def branches(self) -> tuple[ReleaseBranch, ...]:
        return tuple(self._branches)

    def add_branch(self, name: str, options: BranchOptions | None = None) -> ReleaseBranch:
        """Add a release branch with its own workflow and version line.

        Raises:
            ConfigurationError: See `BranchRegistry.add_branch`.
        """
        return self._branches.add_branch(name, options)

    def add_jobs(self, jobs: Mapping[str, Job]) -> None:
        """Add jobs to every release workflow, including later branches."""
        self._composer.add_jobs(jobs)

    def workflows(self) -> tuple[ReleaseWorkflow, ...]:
        label = self._options.release_failure_issue_label
        synthesizer = WorkflowSynthesizer(
            branches=self._branches,
            trigger=self._trigger,
            publisher=self._publisher,
            composer=self._composer,
            settings=self._settings,
            failure_issue=self._options.release_failure_issue,
            failure_issue_label=label if label else DEFAULT_FAILURE_ISSUE_LABEL,
        )
        return synthesizer.synthesize()

    def tasks(self) -> TaskGraph:
        return build_task_graph(
            self._branches,
            self._publisher.tasks(self._settings),
            self._settings,
        )

    def synth(self) -> dict[str, str]:
        """Render every output document, keyed by path relative to the project root.

        Everything is rendered before anything is returned, so a configuration
        error leaves no partial output.

        Raises:
            ConfigurationError: If the accumulated configuration is inconsistent.
        """
        files: dict[str, str] = {}
        for workflow in self.workflows():
            if workflow.path in files:
                raise ConfigurationError(f"two release workflows write {workflow.path}")
            files[workflow.path] = render_workflow(workflow.workflow)
        files[TASKS_FILE] = render_json(self.tasks().to_dict())
        return files
