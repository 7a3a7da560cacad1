"""npm publish target.

Supports the public npm registry, GitHub Packages (npm.pkg.github.com) and
AWS CodeArtifact npm repositories.
"""

from __future__ import annotations

from dataclasses import dataclass

from rsynth.core.errors import ConfigurationError
from rsynth.release.publishers.base import (
    GITHUB_TOKEN,
    CodeArtifactOptions,
    CodeArtifactRegistry,
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

__all__ = ["NPM", "NpmPublishOptions"]

DEFAULT_NPM_REGISTRY = "registry.npmjs.org"


@dataclass(frozen=True, slots=True)
class NpmPublishOptions:
    """Attributes:
    registry: Registry host or URL; public npm when omitted
    npm_token_secret: Secret holding the npm token (public registry only)
    dist_tag: npm dist-tag to publish under
    code_artifact_options: Secret names for AWS CodeArtifact registries
    """

    registry: str | None = None
    npm_token_secret: str = "NPM_TOKEN"
    dist_tag: str = "latest"
    code_artifact_options: CodeArtifactOptions | None = None

    def __post_init__(self) -> None:
        if not self.dist_tag.strip():
            raise ConfigurationError("npm: dist_tag must not be empty")


def _resolve(options: NpmPublishOptions) -> RegistryTarget:
    return resolve_registry(
        options.registry,
        target="npm",
        default=DEFAULT_NPM_REGISTRY,
        code_artifact_options=options.code_artifact_options,
    )


def _job(options: NpmPublishOptions, settings: ReleaseSettings) -> Job:
    registry = _resolve(options)
    env = {"NPM_DIST_TAG": options.dist_tag, "NPM_REGISTRY": registry.url}
    # CodeArtifact tokens are minted by `aws codeartifact login` in the task.
    if isinstance(registry, GitHubPackagesRegistry):
        env["NPM_TOKEN"] = GITHUB_TOKEN
    elif not isinstance(registry, CodeArtifactRegistry):
        env["NPM_TOKEN"] = secret(options.npm_token_secret)

    return publish_job(
        target_id="npm",
        target_name="npm",
        settings=settings,
        setup=(
            JobStep(
                name="Setup Node.js",
                uses="actions/setup-node@v4",
                with_={"node-version": "20.x"},
            ),
        ),
        env=env,
        registry=registry,
    )


def _task(options: NpmPublishOptions, settings: ReleaseSettings) -> TaskSpec:
    commands: tuple[str, ...] = ()
    if isinstance(_resolve(options), CodeArtifactRegistry):
        commands += (
            "aws codeartifact login --tool npm --domain $CODEARTIFACT_DOMAIN "
            "--domain-owner $CODEARTIFACT_DOMAIN_OWNER --repository $CODEARTIFACT_REPOSITORY",
        )
    commands += (
        f"npm publish {settings.artifacts_directory}/js/*.tgz "
        "--registry https://$NPM_REGISTRY --tag $NPM_DIST_TAG",
    )
    return publish_task(target_id="npm", target_name="npm", commands=commands)


NPM = PublishTarget(
    id="npm",
    name="npm",
    options_type=NpmPublishOptions,
    job=_job,
    task=_task,
)
