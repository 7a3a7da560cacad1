"""Publisher registry - the publish targets chosen for one release.

Each `publish_to_*` call registers one entry per target. Registering the same
target again replaces the earlier options in place, so a target never yields
two jobs. The entries fan out to every branch: the same job is attached to
each release workflow.

Usage:
    release.publisher.publish_to_npm(NpmPublishOptions(registry="npm.pkg.github.com"))
    release.publisher.publish_to_pypi()

    jobs = release.publisher.jobs(settings)   # {"release_npm": Job, "release_pypi": Job}
"""

from __future__ import annotations

from dataclasses import dataclass

from rsynth.core.errors import ConfigurationError
from rsynth.release.publishers import (
    PUBLISH_TARGETS,
    GoPublishOptions,
    MavenPublishOptions,
    NpmPublishOptions,
    NugetPublishOptions,
    PublishTarget,
    PyPiPublishOptions,
    get_target,
)
from rsynth.release.settings import ReleaseSettings
from rsynth.release.tasks import TaskSpec
from rsynth.workflows.model import Job

__all__ = ["Publisher", "PublisherEntry"]


@dataclass(frozen=True, slots=True)
class PublisherEntry:
    target: PublishTarget
    options: object


class Publisher:
    """Ordered registry of publish targets for a release."""

    def __init__(self) -> None:
        self._entries: dict[str, PublisherEntry] = {}

    def publish_to(self, target_id: str, options: object | None = None) -> None:
        """Register (or replace) the publish target `target_id`.

        Args:
            target_id: Identifier from the target table (e.g. "npm")
            options: Options of the target's options type; defaults when None

        Raises:
            ConfigurationError: If the target is unknown or the options have
                the wrong type.
        """
        target = get_target(target_id)
        if target is None:
            available = ", ".join(sorted(PUBLISH_TARGETS))
            raise ConfigurationError(
                f"unknown publish target: {target_id}",
                hint=f"available targets: {available}",
            )
        if options is None:
            options = target.options_type()
        elif not isinstance(options, target.options_type):
            raise ConfigurationError(
                f"{target_id}: expected {target.options_type.__name__}, "
                f"got {type(options).__name__}"
            )
        self._entries[target_id] = PublisherEntry(target=target, options=options)

    def publish_to_npm(self, options: NpmPublishOptions | None = None) -> None:
        self.publish_to("npm", options)

    def publish_to_maven(self, options: MavenPublishOptions | None = None) -> None:
        self.publish_to("maven", options)

    def publish_to_nuget(self, options: NugetPublishOptions | None = None) -> None:
        self.publish_to("nuget", options)

    def publish_to_pypi(self, options: PyPiPublishOptions | None = None) -> None:
        self.publish_to("pypi", options)

    def publish_to_go(self, options: GoPublishOptions | None = None) -> None:
        self.publish_to("go", options)

    def entries(self) -> tuple[PublisherEntry, ...]:
        return tuple(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def jobs(self, settings: ReleaseSettings) -> dict[str, Job]:
        """Produce one job per registered target, keyed `release_<id>`."""
        return {
            entry.target.job_key: entry.target.job(entry.options, settings)
            for entry in self._entries.values()
        }

    def tasks(self, settings: ReleaseSettings) -> tuple[TaskSpec, ...]:
        return tuple(entry.target.task(entry.options, settings) for entry in self._entries.values())
