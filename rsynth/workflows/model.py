"""GitHub Actions workflow document model.

A workflow is an ordered document of jobs; a job is an ordered document of
steps. All types are frozen: once a job is handed to a workflow it is never
mutated. Mapping fields are copied into read-only proxies on construction so
that the caller's dict cannot change a job after the fact.

`to_dict()` produces the plain structure that gets serialized, using the
provider's key spelling (`runs-on`, `if`, `with`).
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType

__all__ = ["Job", "JobPermission", "JobStep", "Workflow", "WorkflowTriggers"]


class JobPermission(StrEnum):
    """Access level granted to the job's token for one scope."""

    NONE = "none"
    READ = "read"
    WRITE = "write"


def _freeze(value: Mapping[str, object] | None) -> Mapping[str, object]:
    return MappingProxyType(dict(value or {}))


@dataclass(frozen=True, slots=True)
class JobStep:
    """A single step of a job (either `uses` an action or `run`s a script)."""

    name: str | None = None
    uses: str | None = None
    run: str | None = None
    with_: Mapping[str, object] = field(default_factory=dict)
    env: Mapping[str, object] = field(default_factory=dict)
    id: str | None = None
    if_: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "with_", _freeze(self.with_))
        object.__setattr__(self, "env", _freeze(self.env))

    def to_dict(self) -> dict[str, object]:
        out: dict[str, object] = {}
        if self.name is not None:
            out["name"] = self.name
        if self.id is not None:
            out["id"] = self.id
        if self.if_ is not None:
            out["if"] = self.if_
        if self.uses is not None:
            out["uses"] = self.uses
        if self.with_:
            out["with"] = dict(self.with_)
        if self.env:
            out["env"] = dict(self.env)
        if self.run is not None:
            out["run"] = self.run
        return out


@dataclass(frozen=True, slots=True)
class Job:
    """A workflow job.

    Attributes:
        runs_on: Runner label (rendered as `runs-on`)
        permissions: Token scope -> access level
        steps: Ordered steps
        name: Optional display name
        needs: Keys of jobs that must finish first
        if_: Optional condition expression
        env: Job-level environment
        outputs: Job outputs exposed to dependent jobs
    """

    runs_on: str
    permissions: Mapping[str, JobPermission]
    steps: Sequence[JobStep] = ()
    name: str | None = None
    needs: Sequence[str] = ()
    if_: str | None = None
    env: Mapping[str, object] = field(default_factory=dict)
    outputs: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        perms = {scope: JobPermission(level) for scope, level in self.permissions.items()}
        object.__setattr__(self, "permissions", MappingProxyType(perms))
        object.__setattr__(self, "steps", tuple(self.steps))
        object.__setattr__(self, "needs", tuple(self.needs))
        object.__setattr__(self, "env", _freeze(self.env))
        object.__setattr__(self, "outputs", _freeze(self.outputs))

    def to_dict(self) -> dict[str, object]:
        out: dict[str, object] = {}
        if self.name is not None:
            out["name"] = self.name
        if self.needs:
            out["needs"] = list(self.needs)
        out["runs-on"] = self.runs_on
        out["permissions"] = {scope: str(level) for scope, level in self.permissions.items()}
        if self.if_ is not None:
            out["if"] = self.if_
        if self.outputs:
            out["outputs"] = dict(self.outputs)
        if self.env:
            out["env"] = dict(self.env)
        out["steps"] = [step.to_dict() for step in self.steps]
        return out


@dataclass(frozen=True, slots=True)
class WorkflowTriggers:
    """The `on` section of a workflow."""

    push_branches: tuple[str, ...] = ()
    schedules: tuple[str, ...] = ()
    workflow_dispatch: bool = True

    def to_dict(self) -> dict[str, object]:
        out: dict[str, object] = {}
        if self.push_branches:
            out["push"] = {"branches": list(self.push_branches)}
        if self.schedules:
            out["schedule"] = [{"cron": cron} for cron in self.schedules]
        if self.workflow_dispatch:
            out["workflow_dispatch"] = {}
        return out


@dataclass(frozen=True, slots=True)
class Workflow:
    name: str
    triggers: WorkflowTriggers
    jobs: Mapping[str, Job]

    def __post_init__(self) -> None:
        object.__setattr__(self, "jobs", MappingProxyType(dict(self.jobs)))

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "on": self.triggers.to_dict(),
            "jobs": {key: job.to_dict() for key, job in self.jobs.items()},
        }
