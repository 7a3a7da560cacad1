"""NuGet publish target (nuget.org or GitHub Packages)."""

from __future__ import annotations

from dataclasses import dataclass

from rsynth.release.publishers.base import (
    GITHUB_TOKEN,
    GitHubPackagesRegistry,
    PublishTarget,
    RegistryTarget,
    publish_job,
    publish_task,
    resolve_registry,
    secret,
)
from rsynth.release.settings import ReleaseSettings
from rsynth.release.tasks import TaskSpec
from rsynth.workflows.model import Job, JobStep

__all__ = ["NUGET", "NugetPublishOptions"]

DEFAULT_NUGET_SERVER = "https://api.nuget.org/v3/index.json"


@dataclass(frozen=True, slots=True)
class NugetPublishOptions:
    registry: str | None = None
    api_key_secret: str = "NUGET_API_KEY"


def _resolve(options: NugetPublishOptions) -> RegistryTarget:
    return resolve_registry(
        options.registry,
        target="nuget",
        default=DEFAULT_NUGET_SERVER,
        code_artifact=False,
    )


def _job(options: NugetPublishOptions, settings: ReleaseSettings) -> Job:
    registry = _resolve(options)
    if isinstance(registry, GitHubPackagesRegistry):
        api_key = GITHUB_TOKEN
    else:
        api_key = secret(options.api_key_secret)

    return publish_job(
        target_id="nuget",
        target_name="NuGet Gallery",
        settings=settings,
        setup=(
            JobStep(
                name="Setup .NET",
                uses="actions/setup-dotnet@v4",
                with_={"dotnet-version": "8.x"},
            ),
        ),
        env={"NUGET_SERVER": registry.url, "NUGET_API_KEY": api_key},
        registry=registry,
    )


def _task(options: NugetPublishOptions, settings: ReleaseSettings) -> TaskSpec:
    return publish_task(
        target_id="nuget",
        target_name="NuGet Gallery",
        commands=(
            f"dotnet nuget push {settings.artifacts_directory}/dotnet/*.nupkg "
            "--api-key $NUGET_API_KEY --source $NUGET_SERVER",
        ),
    )


NUGET = PublishTarget(
    id="nuget",
    name="NuGet Gallery",
    options_type=NugetPublishOptions,
    job=_job,
    task=_task,
)
