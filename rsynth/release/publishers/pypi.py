"""PyPI publish target (pypi.org, any twine-compatible index, CodeArtifact)."""

from __future__ import annotations

from dataclasses import dataclass

from rsynth.release.publishers.base import (
    CodeArtifactOptions,
    CodeArtifactRegistry,
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

__all__ = ["PYPI", "PyPiPublishOptions"]

DEFAULT_TWINE_REGISTRY = "https://upload.pypi.org/legacy/"


@dataclass(frozen=True, slots=True)
class PyPiPublishOptions:
    registry: str | None = None
    username_secret: str = "TWINE_USERNAME"
    password_secret: str = "TWINE_PASSWORD"
    code_artifact_options: CodeArtifactOptions | None = None


def _resolve(options: PyPiPublishOptions) -> RegistryTarget:
    return resolve_registry(
        options.registry,
        target="pypi",
        default=DEFAULT_TWINE_REGISTRY,
        github_packages=False,
        code_artifact_options=options.code_artifact_options,
    )


def _job(options: PyPiPublishOptions, settings: ReleaseSettings) -> Job:
    registry = _resolve(options)
    env = {"TWINE_REPOSITORY_URL": registry.url}
    if not isinstance(registry, CodeArtifactRegistry):
        env["TWINE_USERNAME"] = secret(options.username_secret)
        env["TWINE_PASSWORD"] = secret(options.password_secret)

    return publish_job(
        target_id="pypi",
        target_name="PyPI",
        settings=settings,
        setup=(
            JobStep(
                name="Setup Python",
                uses="actions/setup-python@v5",
                with_={"python-version": "3.x"},
            ),
        ),
        env=env,
        registry=registry,
    )


def _task(options: PyPiPublishOptions, settings: ReleaseSettings) -> TaskSpec:
    commands: tuple[str, ...] = ()
    if isinstance(_resolve(options), CodeArtifactRegistry):
        commands += (
            "aws codeartifact login --tool twine --domain $CODEARTIFACT_DOMAIN "
            "--domain-owner $CODEARTIFACT_DOMAIN_OWNER --repository $CODEARTIFACT_REPOSITORY",
        )
    commands += (f"twine upload --skip-existing {settings.artifacts_directory}/python/*",)
    return publish_task(target_id="pypi", target_name="PyPI", commands=commands)


PYPI = PublishTarget(
    id="pypi",
    name="PyPI",
    options_type=PyPiPublishOptions,
    job=_job,
    task=_task,
)
