"""Maven publish target (Maven Central, GitHub Packages, CodeArtifact)."""

from __future__ import annotations

from dataclasses import dataclass

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

__all__ = ["MAVEN", "MavenPublishOptions"]

DEFAULT_MAVEN_ENDPOINT = "https://s01.oss.sonatype.org"


@dataclass(frozen=True, slots=True)
class MavenPublishOptions:
    registry: str | None = None
    server_id: str = "ossrh"
    username_secret: str = "MAVEN_USERNAME"
    password_secret: str = "MAVEN_PASSWORD"
    gpg_private_key_secret: str = "MAVEN_GPG_PRIVATE_KEY"
    gpg_passphrase_secret: str = "MAVEN_GPG_PRIVATE_KEY_PASSPHRASE"
    staging_profile_id_secret: str = "MAVEN_STAGING_PROFILE_ID"
    code_artifact_options: CodeArtifactOptions | None = None


def _resolve(options: MavenPublishOptions) -> RegistryTarget:
    return resolve_registry(
        options.registry,
        target="maven",
        default=DEFAULT_MAVEN_ENDPOINT,
        code_artifact_options=options.code_artifact_options,
    )


def _job(options: MavenPublishOptions, settings: ReleaseSettings) -> Job:
    registry = _resolve(options)
    env: dict[str, str] = {"MAVEN_ENDPOINT": registry.url}
    match registry:
        case GitHubPackagesRegistry():
            env["MAVEN_SERVER_ID"] = "github"
            env["MAVEN_USERNAME"] = "${{ github.actor }}"
            env["MAVEN_PASSWORD"] = GITHUB_TOKEN
        case CodeArtifactRegistry():
            env["MAVEN_SERVER_ID"] = "codeartifact"
        case _:
            env["MAVEN_SERVER_ID"] = options.server_id
            env["MAVEN_USERNAME"] = secret(options.username_secret)
            env["MAVEN_PASSWORD"] = secret(options.password_secret)
            env["MAVEN_GPG_PRIVATE_KEY"] = secret(options.gpg_private_key_secret)
            env["MAVEN_GPG_PRIVATE_KEY_PASSPHRASE"] = secret(options.gpg_passphrase_secret)
            env["MAVEN_STAGING_PROFILE_ID"] = secret(options.staging_profile_id_secret)

    return publish_job(
        target_id="maven",
        target_name="Maven",
        settings=settings,
        setup=(
            JobStep(
                name="Setup Java",
                uses="actions/setup-java@v4",
                with_={"distribution": "temurin", "java-version": "17"},
            ),
        ),
        env=env,
        registry=registry,
    )


def _task(options: MavenPublishOptions, settings: ReleaseSettings) -> TaskSpec:
    return publish_task(
        target_id="maven",
        target_name="Maven",
        commands=(
            f"mvn deploy:deploy-file -DrepositoryId=$MAVEN_SERVER_ID -Durl=$MAVEN_ENDPOINT "
            f"-DpomFile={settings.artifacts_directory}/java/pom.xml "
            f"-Dfile={settings.artifacts_directory}/java/package.jar",
        ),
    )


MAVEN = PublishTarget(
    id="maven",
    name="Maven",
    options_type=MavenPublishOptions,
    job=_job,
    task=_task,
)
