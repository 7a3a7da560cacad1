"""Release policy: branches, triggers, publishers and synthesized workflows."""

from __future__ import annotations

from rsynth.release.branches import BranchOptions, ReleaseBranch
from rsynth.release.publisher import Publisher
from rsynth.release.release import Release, ReleaseOptions
from rsynth.release.synthesizer import ReleaseWorkflow
from rsynth.release.trigger import Continuous, Manual, ReleaseTrigger, Scheduled

__all__ = [
    "BranchOptions",
    "Continuous",
    "Manual",
    "Publisher",
    "Release",
    "ReleaseBranch",
    "ReleaseOptions",
    "ReleaseTrigger",
    "ReleaseWorkflow",
    "Scheduled",
]
