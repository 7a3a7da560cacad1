"""Release workflow synthesizer.

Combines the branch registry, trigger policy, publisher registry and job
composer into one workflow per release branch:

    on:    push to the branch and/or a schedule
    jobs:  release               checkout -> git identity -> bump -> build -> tag and push
           release_<target>      one per publisher, identical on every branch
           <composed jobs>       verbatim, in the order they were added
           release_failure_issue optional, opens an issue when `release` fails

A manual trigger produces no workflow at all. Synthesis only reads the
registries, so running it twice yields identical documents.
"""

from __future__ import annotations

from dataclasses import dataclass

from rsynth.core.errors import ConfigurationError
from rsynth.release.branches import BranchRegistry, ReleaseBranch
from rsynth.release.composer import JobComposer
from rsynth.release.publisher import Publisher
from rsynth.release.settings import DEFAULT_FAILURE_ISSUE_LABEL, ReleaseSettings
from rsynth.release.tasks import branch_env
from rsynth.release.trigger import ReleaseTrigger, workflow_triggers
from rsynth.workflows.model import Job, JobPermission, JobStep, Workflow

__all__ = [
    "FAILURE_ISSUE_JOB",
    "RELEASE_JOB",
    "WORKFLOWS_DIR",
    "ReleaseWorkflow",
    "WorkflowSynthesizer",
    "workflow_path",
]

WORKFLOWS_DIR = ".github/workflows"
RELEASE_JOB = "release"
FAILURE_ISSUE_JOB = "release_failure_issue"

_GIT_IDENTITY = "\n".join(
    [
        'git config user.name "github-actions"',
        'git config user.email "github-actions@github.com"',
    ]
)


def workflow_path(workflow_name: str) -> str:
    return f"{WORKFLOWS_DIR}/{workflow_name}.yml"


@dataclass(frozen=True, slots=True)
class ReleaseWorkflow:
    branch: str
    trigger: ReleaseTrigger
    workflow: Workflow

    @property
    def name(self) -> str:
        return self.workflow.name

    @property
    def path(self) -> str:
        return workflow_path(self.workflow.name)

    @property
    def jobs(self) -> dict[str, Job]:
        return dict(self.workflow.jobs)


class WorkflowSynthesizer:
    """Builds the release workflows of one release."""

    def __init__(
        self,
        *,
        branches: BranchRegistry,
        trigger: ReleaseTrigger,
        publisher: Publisher,
        composer: JobComposer,
        settings: ReleaseSettings,
        failure_issue: bool = False,
        failure_issue_label: str = DEFAULT_FAILURE_ISSUE_LABEL,
    ) -> None:
        self._branches = branches
        self._trigger = trigger
        self._publisher = publisher
        self._composer = composer
        self._settings = settings
        self._failure_issue = failure_issue
        self._failure_issue_label = failure_issue_label

    def synthesize(self) -> tuple[ReleaseWorkflow, ...]:
        """Build one workflow per branch, in registration order.

        Raises:
            ConfigurationError: If two jobs of a workflow share a key.
        """
        # Publisher jobs do not depend on the branch; build them once.
        publisher_jobs = self._publisher.jobs(self._settings)
        composed = list(self._composer.items())

        workflows: list[ReleaseWorkflow] = []
        for branch in self._branches:
            triggers = workflow_triggers(self._trigger, branch.name)
            if triggers is None:
                continue

            jobs: dict[str, Job] = {}
            _add_job(jobs, RELEASE_JOB, self.release_job(branch), source="built-in release job")
            for key, job in publisher_jobs.items():
                _add_job(jobs, key, job, source="publisher")
            for key, job in composed:
                _add_job(jobs, key, job, source="added job")
            if self._failure_issue:
                _add_job(jobs, FAILURE_ISSUE_JOB, self.failure_issue_job(branch), source="failure issue job")

            workflows.append(
                ReleaseWorkflow(
                    branch=branch.name,
                    trigger=self._trigger,
                    workflow=Workflow(
                        name=branch.workflow_name,
                        triggers=triggers,
                        jobs=jobs,
                    ),
                )
            )
        return tuple(workflows)

    def release_job(self, branch: ReleaseBranch) -> Job:
        """The built-in release job: exactly five steps, in a fixed order."""
        settings = self._settings
        tag_and_push = "\n".join(
            [
                settings.command("tag"),
                f'git push origin "$(cat {settings.artifact("releasetag.txt")})"',
            ]
        )
        return Job(
            runs_on=settings.runs_on,
            permissions={"contents": JobPermission.WRITE},
            env={"CI": "true"},
            outputs={
                "version": "${{ steps.bump.outputs.version }}",
                "release_tag": "${{ steps.bump.outputs.release_tag }}",
            },
            steps=(
                JobStep(name="Checkout", uses="actions/checkout@v4", with_={"fetch-depth": 0}),
                JobStep(name="Set git identity", run=_GIT_IDENTITY),
                JobStep(
                    name="Bump version",
                    id="bump",
                    run=settings.command("bump"),
                    env={"RELEASE": "true", **branch_env(branch)},
                ),
                JobStep(name="Build", run=settings.command(settings.build_task)),
                JobStep(name="Tag and push release", run=tag_and_push),
            ),
        )

    def failure_issue_job(self, branch: ReleaseBranch) -> Job:
        create_issue = " ".join(
            [
                "gh issue create",
                f'--title "Release failed on branch \\"{branch.name}\\""',
                f'--label "{self._failure_issue_label}"',
                '--body "See ${{ github.server_url }}/${{ github.repository }}/actions/runs/${{ github.run_id }}"',
            ]
        )
        return Job(
            name="Create issue on release failure",
            needs=(RELEASE_JOB,),
            runs_on=self._settings.runs_on,
            permissions={"issues": JobPermission.WRITE},
            if_="always() && needs.release.result == 'failure'",
            steps=(
                JobStep(
                    name="Create issue",
                    run=create_issue,
                    env={"GH_TOKEN": "${{ secrets.GITHUB_TOKEN }}", "GH_REPO": "${{ github.repository }}"},
                ),
            ),
        )


def _add_job(jobs: dict[str, Job], key: str, job: Job, *, source: str) -> None:
    if key in jobs:
        raise ConfigurationError(
            f'duplicate job key "{key}" ({source})',
            hint="job keys must be unique across the release, publisher and added jobs",
        )
    jobs[key] = job
