"""Release trigger policy.

A closed set of variants deciding when a release workflow fires:

- `Continuous`: on every push to the release branch
- `Scheduled`: on a cron schedule, optionally also on push
- `Manual`: never from CI; the release task is run by hand

One trigger applies to every branch of a release.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from rsynth.core.errors import ConfigurationError
from rsynth.workflows.model import WorkflowTriggers

__all__ = [
    "Continuous",
    "Manual",
    "ReleaseTrigger",
    "Scheduled",
    "TriggerKind",
    "resolve_trigger",
    "workflow_triggers",
]

TriggerKind = Literal["continuous", "scheduled", "manual"]


@dataclass(frozen=True, slots=True)
class Continuous:
    kind: Literal["continuous"] = "continuous"


@dataclass(frozen=True, slots=True)
class Scheduled:
    cron: str
    on_push: bool = False
    kind: Literal["scheduled"] = "scheduled"

    def __post_init__(self) -> None:
        fields = self.cron.split()
        if len(fields) != 5:
            raise ConfigurationError(
                f"invalid release schedule: {self.cron!r}",
                hint="expected a 5-field cron expression, e.g. '0 17 * * *'",
            )


@dataclass(frozen=True, slots=True)
class Manual:
    kind: Literal["manual"] = "manual"


type ReleaseTrigger = Continuous | Scheduled | Manual


def resolve_trigger(
    *,
    release_trigger: ReleaseTrigger | None = None,
    release_every_commit: bool = True,
    release_schedule: str | None = None,
) -> ReleaseTrigger:
    """Map the release options onto a single trigger.

    An explicit trigger wins. Otherwise a schedule yields `Scheduled` (still
    firing on push unless `release_every_commit` is disabled), disabling
    `release_every_commit` without a schedule yields `Manual`, and the
    default is `Continuous`.
    """
    if release_trigger is not None:
        return release_trigger
    if release_schedule:
        return Scheduled(cron=release_schedule, on_push=release_every_commit)
    if not release_every_commit:
        return Manual()
    return Continuous()


def workflow_triggers(trigger: ReleaseTrigger, branch: str) -> WorkflowTriggers | None:
    """Build the `on` section for one branch, or None for manual releases."""
    match trigger:
        case Continuous():
            return WorkflowTriggers(push_branches=(branch,))
        case Scheduled(cron=cron, on_push=on_push):
            return WorkflowTriggers(
                push_branches=(branch,) if on_push else (),
                schedules=(cron,),
            )
        case Manual():
            return None
