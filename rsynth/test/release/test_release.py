"""End-to-end tests for Release.synth()."""

from __future__ import annotations

import json

import pytest
import yaml

from rsynth.core.errors import ConfigurationError
from rsynth.release import BranchOptions, Manual, Release, ReleaseOptions, Scheduled
from rsynth.release.publishers import CodeArtifactOptions, NpmPublishOptions
from rsynth.release.tasks import TASKS_FILE
from rsynth.workflows.model import Job, JobPermission, JobStep

RELEASE_YML = ".github/workflows/release.yml"

CODE_ARTIFACT_NPM = "my-domain-111122223333.d.codeartifact.us-west-2.amazonaws.com/npm/my_repo/"


def _release(**overrides: object) -> Release:
    values: dict[str, object] = {"task": "build", "version_file": "version.json", "branch": "main"}
    values.update(overrides)
    return Release(ReleaseOptions(**values))  # type: ignore[arg-type]


def _workflow(files: dict[str, str], path: str = RELEASE_YML) -> dict[str, object]:
    return yaml.safe_load(files[path])


def _tasks(files: dict[str, str]) -> dict[str, dict[str, object]]:
    return json.loads(files[TASKS_FILE])["tasks"]


def _bump_env(workflow: dict[str, object]) -> dict[str, str]:
    steps = workflow["jobs"]["release"]["steps"]  # type: ignore[index]
    bump = next(s for s in steps if s.get("id") == "bump")
    return bump["env"]


def _publish_env(workflow: dict[str, object], job_key: str) -> dict[str, str]:
    return workflow["jobs"][job_key]["steps"][-1]["env"]  # type: ignore[index]


class TestMinimalRelease:
    """A single default branch, default trigger."""

    def test_emits_one_workflow_and_tasks(self) -> None:
        files = _release().synth()
        assert list(files) == [RELEASE_YML, TASKS_FILE]

    def test_pushes_to_default_branch(self) -> None:
        wf = _workflow(_release().synth())
        assert wf["name"] == "release"
        assert wf["on"]["push"] == {"branches": ["main"]}  # type: ignore[index]
        assert "workflow_dispatch" in wf["on"]  # type: ignore[operator]

    def test_release_job_has_five_steps(self) -> None:
        wf = _workflow(_release().synth())
        steps = wf["jobs"]["release"]["steps"]  # type: ignore[index]
        assert [s["name"] for s in steps] == [
            "Checkout",
            "Set git identity",
            "Bump version",
            "Build",
            "Tag and push release",
        ]

    def test_release_job_permissions_and_outputs(self) -> None:
        job = _workflow(_release().synth())["jobs"]["release"]  # type: ignore[index]
        assert job["permissions"] == {"contents": "write"}
        assert set(job["outputs"]) == {"version", "release_tag"}

    def test_build_step_runs_build_task(self) -> None:
        job = _workflow(_release().synth())["jobs"]["release"]  # type: ignore[index]
        assert job["steps"][3]["run"] == "rsynth-task build"

    def test_starts_with_generated_marker(self) -> None:
        assert _release().synth()[RELEASE_YML].startswith("# ~~ Generated by rsynth.")

    def test_default_tasks(self) -> None:
        tasks = _tasks(_release().synth())
        assert list(tasks) == ["bump", "unbump", "tag", "release"]
        assert tasks["bump"]["env"]["OUTFILE"] == "version.json"  # type: ignore[index]
        assert tasks["release"]["env"] == {"RELEASE": "true"}


class TestBranches:
    """Additional release branches."""

    def test_each_branch_gets_its_own_workflow(self) -> None:
        release = _release(major_version=1)
        release.add_branch("2.x", BranchOptions(major_version=2))
        files = release.synth()
        assert RELEASE_YML in files
        assert ".github/workflows/release-2.x.yml" in files

        wf = _workflow(files, ".github/workflows/release-2.x.yml")
        assert wf["name"] == "release-2.x"
        assert wf["on"]["push"] == {"branches": ["2.x"]}  # type: ignore[index]
        assert _bump_env(wf) == {"RELEASE": "true", "MAJOR": "2"}

    def test_default_branch_major_version_in_bump_env(self) -> None:
        release = _release(major_version=1)
        release.add_branch("2.x", BranchOptions(major_version=2))
        assert _bump_env(_workflow(release.synth())) == {"RELEASE": "true", "MAJOR": "1"}

    def test_major_version_zero(self) -> None:
        assert _bump_env(_workflow(_release(major_version=0).synth()))["MAJOR"] == "0"

    def test_min_major_version_pins_default_branch(self) -> None:
        release = _release(min_major_version=1)
        release.add_branch("2.x", BranchOptions(major_version=2))
        assert _bump_env(_workflow(release.synth()))["MIN_MAJOR"] == "1"

    def test_default_branch_requires_major_version(self) -> None:
        release = _release()
        with pytest.raises(ConfigurationError) as exc:
            release.add_branch("2.x", BranchOptions(major_version=2))
        assert str(exc.value) == (
            'you must specify "majorVersion" for the default branch when adding multiple release branches'
        )

    def test_prerelease_per_branch(self) -> None:
        release = _release(major_version=9)
        release.add_branch("10.x", BranchOptions(major_version=10, prerelease="pre"))
        files = release.synth()

        wf = _workflow(files, ".github/workflows/release-10.x.yml")
        assert _bump_env(wf) == {"RELEASE": "true", "MAJOR": "10", "PRERELEASE": "pre"}
        assert "PRERELEASE" not in _bump_env(_workflow(files))
        assert _tasks(files)["release:10.x"]["env"]["PRERELEASE"] == "pre"  # type: ignore[index]

    def test_release_branches_option(self) -> None:
        release = _release(
            major_version=1,
            release_branches={
                "3.x": BranchOptions(major_version=3),
                "next": BranchOptions(major_version=4, prerelease="pre"),
            },
        )
        files = release.synth()
        assert list(files) == [
            RELEASE_YML,
            ".github/workflows/release-3.x.yml",
            ".github/workflows/release-next.yml",
            TASKS_FILE,
        ]
        for path, branch in zip(list(files)[:3], ["main", "3.x", "next"]):
            assert _workflow(files, path)["on"]["push"] == {"branches": [branch]}  # type: ignore[index]
        assert _bump_env(_workflow(files, ".github/workflows/release-next.yml")) == {
            "RELEASE": "true",
            "MAJOR": "4",
            "PRERELEASE": "pre",
        }

    def test_release_branches_list_is_rejected(self) -> None:
        with pytest.raises(ConfigurationError) as exc:
            _release(major_version=1, release_branches=["3.x"])
        assert str(exc.value) == '"releaseBranches" is no longer an array. See type annotations'

    def test_tag_prefix(self) -> None:
        release = _release(major_version=2, release_tag_prefix="prefix/")
        release.add_branch("3.x", BranchOptions(major_version=3, tag_prefix="prefix2/"))
        files = release.synth()
        assert _bump_env(_workflow(files))["RELEASE_TAG_PREFIX"] == "prefix/"
        wf = _workflow(files, ".github/workflows/release-3.x.yml")
        assert _bump_env(wf)["RELEASE_TAG_PREFIX"] == "prefix2/"

    def test_same_major_with_different_tag_prefixes(self) -> None:
        release = _release(
            branch="firefox",
            major_version=1,
            release_workflow_name="release-firefox",
            release_tag_prefix="firefox/",
        )
        release.add_branch(
            "safari",
            BranchOptions(major_version=1, tag_prefix="safari/", workflow_name="release-safari"),
        )
        files = release.synth()
        assert ".github/workflows/release-firefox.yml" in files
        assert ".github/workflows/release-safari.yml" in files
        safari = _workflow(files, ".github/workflows/release-safari.yml")
        assert _bump_env(safari)["RELEASE_TAG_PREFIX"] == "safari/"

    def test_same_major_gets_derived_tag_prefix(self) -> None:
        release = _release(major_version=1)
        branch = release.add_branch("maint", BranchOptions(major_version=1))
        assert branch.tag_prefix == "maint/"

    def test_custom_workflow_name(self) -> None:
        release = _release(major_version=1)
        release.add_branch("foo", BranchOptions(major_version=4, workflow_name="foo-workflow"))
        assert ".github/workflows/foo-workflow.yml" in release.synth()


class TestTrigger:
    """Trigger policy applied to every branch."""

    def test_manual_release_emits_no_workflow(self) -> None:
        files = _release(release_trigger=Manual()).synth()
        assert list(files) == [TASKS_FILE]
        assert "release" in _tasks(files)

    def test_disabling_every_commit_is_manual(self) -> None:
        release = _release(release_every_commit=False)
        assert isinstance(release.trigger, Manual)
        assert RELEASE_YML not in release.synth()

    def test_schedule_without_push(self) -> None:
        wf = _workflow(_release(release_every_commit=False, release_schedule="0 17 * * *").synth())
        assert wf["on"]["schedule"] == [{"cron": "0 17 * * *"}]  # type: ignore[index]
        assert "push" not in wf["on"]  # type: ignore[operator]

    def test_schedule_and_push(self) -> None:
        wf = _workflow(_release(release_trigger=Scheduled("0 17 * * *", on_push=True)).synth())
        assert wf["on"]["push"] == {"branches": ["main"]}  # type: ignore[index]
        assert wf["on"]["schedule"] == [{"cron": "0 17 * * *"}]  # type: ignore[index]

    def test_invalid_cron_is_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="invalid release schedule"):
            _release(release_schedule="every day")


class TestPublishers:
    """Publisher jobs fan out to every workflow."""

    def test_publish_job_in_every_workflow(self) -> None:
        release = _release(major_version=1)
        release.add_branch("2.x", BranchOptions(major_version=2))
        release.publisher.publish_to_npm()
        files = release.synth()

        for path in (RELEASE_YML, ".github/workflows/release-2.x.yml"):
            jobs = _workflow(files, path)["jobs"]
            assert list(jobs) == ["release", "release_npm"]  # type: ignore[arg-type]
            assert jobs["release_npm"]["needs"] == ["release"]  # type: ignore[index]
        assert len(_workflow(files)["jobs"]["release"]["steps"]) == 5  # type: ignore[index]

    def test_all_default_publishers(self) -> None:
        release = _release()
        release.publisher.publish_to_go()
        release.publisher.publish_to_maven()
        release.publisher.publish_to_npm()
        release.publisher.publish_to_nuget()
        release.publisher.publish_to_pypi()
        files = release.synth()

        assert list(_workflow(files)["jobs"]) == [  # type: ignore[arg-type]
            "release",
            "release_go",
            "release_maven",
            "release_npm",
            "release_nuget",
            "release_pypi",
        ]
        tasks = _tasks(files)
        for target in ("go", "maven", "npm", "nuget", "pypi"):
            assert f"publish:{target}" in tasks

    def test_publishing_twice_keeps_last_options(self) -> None:
        release = _release()
        release.publisher.publish_to_npm(NpmPublishOptions(dist_tag="next"))
        release.publisher.publish_to_npm(NpmPublishOptions(dist_tag="beta"))
        jobs = _workflow(release.synth())["jobs"]
        assert list(jobs) == ["release", "release_npm"]  # type: ignore[arg-type]
        assert _publish_env(_workflow(release.synth()), "release_npm")["NPM_DIST_TAG"] == "beta"

    def test_npm_github_packages(self) -> None:
        release = _release()
        release.publisher.publish_to_npm(NpmPublishOptions(registry="npm.pkg.github.com"))
        job = _workflow(release.synth())["jobs"]["release_npm"]  # type: ignore[index]
        assert job["permissions"] == {"contents": "read", "packages": "write"}
        assert job["steps"][-1]["env"]["NPM_TOKEN"] == "${{ secrets.GITHUB_TOKEN }}"

    def test_npm_code_artifact_default_secrets(self) -> None:
        release = _release()
        release.publisher.publish_to_npm(NpmPublishOptions(registry=CODE_ARTIFACT_NPM))
        env = _publish_env(_workflow(release.synth()), "release_npm")
        assert env["AWS_ACCESS_KEY_ID"] == "${{ secrets.AWS_ACCESS_KEY_ID }}"
        assert env["AWS_SECRET_ACCESS_KEY"] == "${{ secrets.AWS_SECRET_ACCESS_KEY }}"
        assert env["CODEARTIFACT_DOMAIN"] == "my-domain"
        assert env["CODEARTIFACT_DOMAIN_OWNER"] == "111122223333"
        assert env["CODEARTIFACT_REGION"] == "us-west-2"
        assert env["CODEARTIFACT_REPOSITORY"] == "my_repo"
        assert "NPM_TOKEN" not in env

    def test_npm_code_artifact_custom_secrets(self) -> None:
        release = _release()
        release.publisher.publish_to_npm(
            NpmPublishOptions(
                registry=CODE_ARTIFACT_NPM,
                code_artifact_options=CodeArtifactOptions(
                    access_key_id_secret="OTHER_AWS_ACCESS_KEY_ID",
                    secret_access_key_secret="OTHER_AWS_SECRET_ACCESS_KEY",
                ),
            )
        )
        env = _publish_env(_workflow(release.synth()), "release_npm")
        assert env["AWS_ACCESS_KEY_ID"] == "${{ secrets.OTHER_AWS_ACCESS_KEY_ID }}"
        assert env["AWS_SECRET_ACCESS_KEY"] == "${{ secrets.OTHER_AWS_SECRET_ACCESS_KEY }}"

    def test_publishers_added_after_branches(self) -> None:
        release = _release(major_version=1)
        release.add_branch("2.x", BranchOptions(major_version=2))
        release.publisher.publish_to_pypi()
        wf = _workflow(release.synth(), ".github/workflows/release-2.x.yml")
        assert "release_pypi" in wf["jobs"]  # type: ignore[operator]


class TestAddJobs:
    """Caller-defined jobs merged into every workflow."""

    def _random_job(self) -> Job:
        return Job(runs_on="foo", permissions={"actions": JobPermission.NONE}, steps=[])

    def test_jobs_land_in_every_workflow(self) -> None:
        release = _release(major_version=1)
        release.add_branch("foo", BranchOptions(major_version=4, workflow_name="foo-workflow"))
        release.add_jobs({"random_job": self._random_job()})
        files = release.synth()

        for path in (RELEASE_YML, ".github/workflows/foo-workflow.yml"):
            assert _workflow(files, path)["jobs"]["random_job"] == {  # type: ignore[index]
                "runs-on": "foo",
                "permissions": {"actions": "none"},
                "steps": [],
            }

    def test_jobs_added_before_branch(self) -> None:
        release = _release(major_version=1)
        release.add_jobs({"random_job": self._random_job()})
        release.add_branch("2.x", BranchOptions(major_version=2))
        wf = _workflow(release.synth(), ".github/workflows/release-2.x.yml")
        assert "random_job" in wf["jobs"]  # type: ignore[operator]

    def test_batches_are_additive_and_ordered(self) -> None:
        release = _release()
        release.publisher.publish_to_npm()
        release.add_jobs({"a": self._random_job(), "b": self._random_job()})
        release.add_jobs({"c": self._random_job()})
        jobs = _workflow(release.synth())["jobs"]
        assert list(jobs) == ["release", "release_npm", "a", "b", "c"]  # type: ignore[arg-type]

    def test_job_key_colliding_with_release_job(self) -> None:
        release = _release()
        release.add_jobs({"release": self._random_job()})
        with pytest.raises(ConfigurationError, match='duplicate job key "release"'):
            release.synth()

    def test_job_key_colliding_with_publisher_job(self) -> None:
        release = _release()
        release.add_jobs({"release_npm": self._random_job()})
        release.publisher.publish_to_npm()
        with pytest.raises(ConfigurationError, match="release_npm"):
            release.synth()

    def test_caller_dict_changes_do_not_leak(self) -> None:
        release = _release()
        steps = [JobStep(run="echo hi")]
        release.add_jobs({"custom": Job(runs_on="foo", permissions={}, steps=steps)})
        steps.append(JobStep(run="echo late"))
        jobs = _workflow(release.synth())["jobs"]
        assert jobs["custom"]["steps"] == [{"run": "echo hi"}]  # type: ignore[index]


class TestFailureIssue:
    """Optional issue on release failure."""

    def test_disabled_by_default(self) -> None:
        jobs = _workflow(_release().synth())["jobs"]
        assert "release_failure_issue" not in jobs  # type: ignore[operator]

    def test_default_label(self) -> None:
        jobs = _workflow(_release(release_failure_issue=True).synth())["jobs"]
        job = jobs["release_failure_issue"]  # type: ignore[index]
        assert job["permissions"] == {"issues": "write"}
        assert job["needs"] == ["release"]
        assert '--label "failed-release"' in job["steps"][0]["run"]

    def test_custom_label(self) -> None:
        wf = _workflow(
            _release(
                release_failure_issue=True, release_failure_issue_label="custom-label"
            ).synth()
        )
        run = wf["jobs"]["release_failure_issue"]["steps"][0]["run"]  # type: ignore[index]
        assert '--label "custom-label"' in run

    def test_failure_issue_is_last_job(self) -> None:
        release = _release(release_failure_issue=True)
        release.publisher.publish_to_pypi()
        jobs = _workflow(release.synth())["jobs"]
        assert list(jobs)[-1] == "release_failure_issue"  # type: ignore[arg-type]


class TestDeterminism:
    """Synthesis is a pure function of the configuration."""

    def _configure(self) -> Release:
        release = _release(major_version=1, release_failure_issue=True)
        release.add_branch("2.x", BranchOptions(major_version=2, prerelease="beta"))
        release.publisher.publish_to_npm(NpmPublishOptions(registry=CODE_ARTIFACT_NPM))
        release.publisher.publish_to_maven()
        release.add_jobs({"x": Job(runs_on="foo", permissions={"contents": "read"})})
        return release

    def test_synth_twice_is_identical(self) -> None:
        release = self._configure()
        assert release.synth() == release.synth()

    def test_same_configuration_is_identical(self) -> None:
        assert self._configure().synth() == self._configure().synth()
