"""Publish target definitions.

This module exports every publish target and the lookup table keyed by
target identifier.

Usage:
    from rsynth.release.publishers import PUBLISH_TARGETS, get_target

    npm = get_target("npm")
    if npm:
        job = npm.job(npm.options_type(), settings)
"""

from __future__ import annotations

from rsynth.release.publishers.base import CodeArtifactOptions, PublishTarget
from rsynth.release.publishers.go import GO, GoPublishOptions
from rsynth.release.publishers.maven import MAVEN, MavenPublishOptions
from rsynth.release.publishers.npm import NPM, NpmPublishOptions
from rsynth.release.publishers.nuget import NUGET, NugetPublishOptions
from rsynth.release.publishers.pypi import PYPI, PyPiPublishOptions

__all__ = [
    # Options
    "CodeArtifactOptions",
    "GoPublishOptions",
    "MavenPublishOptions",
    "NpmPublishOptions",
    "NugetPublishOptions",
    "PyPiPublishOptions",
    # Registry
    "PUBLISH_TARGETS",
    "PublishTarget",
    "get_target",
]


PUBLISH_TARGETS: dict[str, PublishTarget] = {
    target.id: target for target in (NPM, MAVEN, NUGET, PYPI, GO)
}


def get_target(target_id: str) -> PublishTarget | None:
    """Get a publish target by identifier (e.g. "npm", "pypi")."""
    return PUBLISH_TARGETS.get(target_id)
