"""Shared building blocks for publish targets.

A publish target is a plain record: an identifier, the options type it
accepts, and two functions producing the CI job and the local publish task.
Targets do not inherit from each other; adding one means adding an entry to
`PUBLISH_TARGETS`.

Registry resolution is common to all targets:

- no registry: the target's public default
- a `*.pkg.github.com` host: GitHub Packages, authenticated with the
  workflow's own token
- `<domain>-<account>.d.codeartifact.<region>.amazonaws.com/<format>/<repo>`:
  AWS CodeArtifact, authenticated with two named secrets
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

from rsynth.core.errors import ConfigurationError
from rsynth.release.settings import ReleaseSettings
from rsynth.release.tasks import TaskSpec, TaskStep
from rsynth.workflows.model import Job, JobPermission, JobStep

__all__ = [
    "CodeArtifactOptions",
    "CodeArtifactRegistry",
    "GitHubPackagesRegistry",
    "PublicRegistry",
    "PublishTarget",
    "RegistryTarget",
    "publish_job",
    "publish_task",
    "registry_env",
    "resolve_registry",
    "secret",
]

CODE_ARTIFACT_ACCESS_KEY_ID = "AWS_ACCESS_KEY_ID"
CODE_ARTIFACT_SECRET_ACCESS_KEY = "AWS_SECRET_ACCESS_KEY"
GITHUB_TOKEN = "${{ secrets.GITHUB_TOKEN }}"

RELEASE_TAG_OUTPUT = "${{ needs.release.outputs.release_tag }}"
VERSION_OUTPUT = "${{ needs.release.outputs.version }}"

_GITHUB_PACKAGES_HOST = re.compile(r"^[a-z0-9-]+\.pkg\.github\.com$")
_CODE_ARTIFACT_HOST = re.compile(
    r"^(?P<domain>[a-z0-9][a-z0-9-]*)-(?P<account>\d{12})"
    r"\.d\.codeartifact\.(?P<region>[a-z0-9-]+)\.amazonaws\.com$"
)


def secret(name: str) -> str:
    """Reference a repository secret by name."""
    return "${{ secrets." + name + " }}"


@dataclass(frozen=True, slots=True)
class CodeArtifactOptions:
    """Secret names used to authenticate against AWS CodeArtifact."""

    access_key_id_secret: str = CODE_ARTIFACT_ACCESS_KEY_ID
    secret_access_key_secret: str = CODE_ARTIFACT_SECRET_ACCESS_KEY
    role_to_assume: str | None = None

    def __post_init__(self) -> None:
        if not self.access_key_id_secret or not self.secret_access_key_secret:
            raise ConfigurationError("CodeArtifact secret names must not be empty")


@dataclass(frozen=True, slots=True)
class PublicRegistry:
    url: str


@dataclass(frozen=True, slots=True)
class GitHubPackagesRegistry:
    url: str


@dataclass(frozen=True, slots=True)
class CodeArtifactRegistry:
    url: str
    domain: str
    account_id: str
    region: str
    repository: str
    options: CodeArtifactOptions


type RegistryTarget = PublicRegistry | GitHubPackagesRegistry | CodeArtifactRegistry


def _split_registry(registry: str) -> tuple[str, str]:
    parts = urlsplit(registry if "://" in registry else f"https://{registry}")
    return parts.hostname or "", parts.path


def resolve_registry(
    registry: str | None,
    *,
    target: str,
    default: str,
    github_packages: bool = True,
    code_artifact: bool = True,
    code_artifact_options: CodeArtifactOptions | None = None,
) -> RegistryTarget:
    """Classify a registry URL for a publish target.

    Raises:
        ConfigurationError: If the registry kind is not supported by the
            target, or CodeArtifact options are given for another registry.
    """
    if registry is None or not registry.strip():
        resolved: RegistryTarget = PublicRegistry(url=default)
    else:
        host, path = _split_registry(registry.strip())
        ca = _CODE_ARTIFACT_HOST.match(host)
        if _GITHUB_PACKAGES_HOST.match(host):
            if not github_packages:
                raise ConfigurationError(f"{target} does not support GitHub Packages: {registry}")
            resolved = GitHubPackagesRegistry(url=registry)
        elif ca is not None:
            if not code_artifact:
                raise ConfigurationError(f"{target} does not support AWS CodeArtifact: {registry}")
            segments = [s for s in path.split("/") if s]
            if len(segments) < 2:
                raise ConfigurationError(
                    f"invalid CodeArtifact registry: {registry}",
                    hint="expected <domain>-<account>.d.codeartifact.<region>.amazonaws.com/<format>/<repository>",
                )
            resolved = CodeArtifactRegistry(
                url=registry,
                domain=ca.group("domain"),
                account_id=ca.group("account"),
                region=ca.group("region"),
                repository=segments[1],
                options=code_artifact_options or CodeArtifactOptions(),
            )
        else:
            resolved = PublicRegistry(url=registry)

    if code_artifact_options is not None and not isinstance(resolved, CodeArtifactRegistry):
        raise ConfigurationError(
            f"{target}: codeArtifactOptions require a CodeArtifact registry",
            hint=f"registry is {resolved.url}",
        )
    return resolved


def registry_env(resolved: RegistryTarget) -> dict[str, str]:
    """Environment the publish step needs to reach a registry."""
    match resolved:
        case CodeArtifactRegistry():
            env = {
                "AWS_ACCESS_KEY_ID": secret(resolved.options.access_key_id_secret),
                "AWS_SECRET_ACCESS_KEY": secret(resolved.options.secret_access_key_secret),
                "CODEARTIFACT_DOMAIN": resolved.domain,
                "CODEARTIFACT_DOMAIN_OWNER": resolved.account_id,
                "CODEARTIFACT_REGION": resolved.region,
                "CODEARTIFACT_REPOSITORY": resolved.repository,
            }
            if resolved.options.role_to_assume:
                env["AWS_ROLE_TO_ASSUME"] = resolved.options.role_to_assume
            return env
        case _:
            return {}


@dataclass(frozen=True, slots=True)
class PublishTarget:
    """A publish target in the capability table.

    Attributes:
        id: Target identifier (job key becomes `release_<id>`)
        name: Human-readable name
        options_type: Options dataclass accepted by `job`/`task`
        job: Produces the CI job publishing to this target
        task: Produces the local `publish:<id>` task
    """

    id: str
    name: str
    options_type: type
    job: Callable[[Any, ReleaseSettings], Job]
    task: Callable[[Any, ReleaseSettings], TaskSpec]

    @property
    def job_key(self) -> str:
        return f"release_{self.id}"

    @property
    def task_name(self) -> str:
        return f"publish:{self.id}"


def publish_job(
    *,
    target_id: str,
    target_name: str,
    settings: ReleaseSettings,
    setup: tuple[JobStep, ...],
    env: Mapping[str, str],
    registry: RegistryTarget | None = None,
) -> Job:
    """Assemble a publish job: check out the release tag, rebuild, publish."""
    permissions = {"contents": JobPermission.READ}
    if isinstance(registry, GitHubPackagesRegistry):
        permissions["packages"] = JobPermission.WRITE
    if isinstance(registry, CodeArtifactRegistry) and registry.options.role_to_assume:
        permissions["id-token"] = JobPermission.WRITE

    publish_env = dict(env)
    if registry is not None:
        publish_env.update(registry_env(registry))

    steps = (
        JobStep(
            name="Checkout",
            uses="actions/checkout@v4",
            with_={"ref": RELEASE_TAG_OUTPUT},
        ),
        *setup,
        JobStep(
            name="Set version",
            run=settings.command("bump"),
            env={"VERSION": VERSION_OUTPUT},
        ),
        JobStep(name="Build", run=settings.command(settings.build_task)),
        JobStep(
            name=f"Publish to {target_name}",
            run=settings.command(f"publish:{target_id}"),
            env=publish_env,
        ),
    )
    return Job(
        name=f"Publish to {target_name}",
        needs=("release",),
        runs_on=settings.runs_on,
        permissions=permissions,
        if_="needs.release.outputs.release_tag != ''",
        steps=steps,
    )


def publish_task(
    *,
    target_id: str,
    target_name: str,
    commands: tuple[str, ...],
    env: Mapping[str, str] | None = None,
) -> TaskSpec:
    return TaskSpec(
        name=f"publish:{target_id}",
        description=f"Publish to {target_name}",
        env=env or {},
        steps=tuple(TaskStep(exec=cmd) for cmd in commands),
    )
