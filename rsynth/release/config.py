"""Typed loading of `rsynth.toml`.

The file describes one release:

    [release]                   ReleaseOptions (snake_case keys)
    [release.branches.<name>]   additional branches (BranchOptions)
    [publish.<target>]          publish target options, in file order
    [publish.<target>.code_artifact]
    [jobs.<key>]                extra jobs for every release workflow

Loading returns a Result: unreadable files and malformed values become a
`ConfigError`. `build_release` then applies the loaded config to a `Release`,
where cross-branch invariants raise `ConfigurationError`.
"""

from __future__ import annotations

import dataclasses
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from rsynth.core.errors import ConfigurationError
from rsynth.core.result import Err, Ok, Result
from rsynth.core.structured import (
    StrDict,
    as_obj_list,
    as_str_dict,
    get_bool,
    get_int,
    get_list,
    get_str,
    get_table,
)
from rsynth.release.branches import LEGACY_RELEASE_BRANCHES, BranchOptions
from rsynth.release.publishers import CodeArtifactOptions, get_target
from rsynth.release.release import Release, ReleaseOptions
from rsynth.release.trigger import Continuous, Manual, ReleaseTrigger, Scheduled
from rsynth.workflows.model import Job, JobPermission, JobStep

__all__ = [
    "CONFIG_FILE",
    "ConfigError",
    "ReleaseConfig",
    "build_release",
    "load_config",
    "parse_config",
]

CONFIG_FILE = "rsynth.toml"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """A parsed config file.

    Attributes:
        release: Options for the Release
        publish: (target id, options) pairs in file order
        jobs: Extra jobs in file order
    """

    release: ReleaseOptions
    publish: tuple[tuple[str, object], ...] = ()
    jobs: Mapping[str, Job] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "jobs", MappingProxyType(dict(self.jobs)))


def _require_str(table: Mapping[str, object], key: str, where: str) -> str:
    value = get_str(table, key)
    if value is None:
        raise ConfigurationError(f'{where}: "{key}" is required and must be a string')
    return value


def _check_type(table: Mapping[str, object], key: str, expected: type, where: str) -> None:
    if key not in table:
        return
    value = table[key]
    if expected is int and isinstance(value, bool):
        raise ConfigurationError(f'{where}: "{key}" must be an integer')
    if not isinstance(value, expected):
        raise ConfigurationError(f'{where}: "{key}" must be of type {expected.__name__}')


def _check_keys(table: Mapping[str, object], allowed: set[str], where: str) -> None:
    unknown = sorted(set(table) - allowed)
    if unknown:
        raise ConfigurationError(f"{where}: unknown key(s): {', '.join(unknown)}")


def _parse_branch(name: str, table: StrDict) -> BranchOptions:
    where = f"release.branches.{name}"
    _check_keys(
        table,
        {"major_version", "min_major_version", "prerelease", "tag_prefix", "workflow_name"},
        where,
    )
    for key in ("major_version", "min_major_version"):
        _check_type(table, key, int, where)
    for key in ("prerelease", "tag_prefix", "workflow_name"):
        _check_type(table, key, str, where)
    return BranchOptions(
        major_version=get_int(table, "major_version"),
        min_major_version=get_int(table, "min_major_version"),
        prerelease=get_str(table, "prerelease"),
        tag_prefix=get_str(table, "tag_prefix"),
        workflow_name=get_str(table, "workflow_name"),
    )


def _parse_trigger(table: StrDict) -> ReleaseTrigger | None:
    kind = get_str(table, "release_trigger")
    if kind is None:
        return None
    schedule = get_str(table, "release_schedule")
    every_commit = get_bool(table, "release_every_commit")
    match kind:
        case "continuous":
            return Continuous()
        case "manual":
            return Manual()
        case "scheduled":
            if not schedule:
                raise ConfigurationError('release: "scheduled" trigger requires "release_schedule"')
            return Scheduled(cron=schedule, on_push=every_commit if every_commit is not None else True)
        case _:
            raise ConfigurationError(
                f'release: unknown "release_trigger": {kind!r}',
                hint="expected continuous, scheduled or manual",
            )


_RELEASE_KEYS: dict[str, type] = {
    "task": str,
    "version_file": str,
    "branch": str,
    "major_version": int,
    "min_major_version": int,
    "prerelease": str,
    "release_tag_prefix": str,
    "release_workflow_name": str,
    "release_every_commit": bool,
    "release_schedule": str,
    "release_trigger": str,
    "release_failure_issue": bool,
    "release_failure_issue_label": str,
    "task_runner": str,
    "runs_on": str,
    "artifacts_directory": str,
}


def _parse_release(table: StrDict) -> ReleaseOptions:
    where = "release"
    _check_keys(table, set(_RELEASE_KEYS) | {"branches"}, where)
    for key, expected in _RELEASE_KEYS.items():
        _check_type(table, key, expected, where)

    branches_obj = table.get("branches")
    branches: dict[str, BranchOptions] | None = None
    if branches_obj is not None:
        if as_obj_list(branches_obj) is not None:
            raise ConfigurationError(LEGACY_RELEASE_BRANCHES)
        branch_tables = as_str_dict(branches_obj)
        if branch_tables is None:
            raise ConfigurationError('release: "branches" must be a table of branch name -> options')
        branches = {}
        for name, obj in branch_tables.items():
            branch_table = as_str_dict(obj)
            if branch_table is None:
                raise ConfigurationError(f'release.branches: "{name}" must be a table')
            branches[name] = _parse_branch(name, branch_table)

    overrides: dict[str, object] = {}
    for key in ("task_runner", "runs_on", "artifacts_directory"):
        value = get_str(table, key)
        if value is not None:
            overrides[key] = value
    every_commit = get_bool(table, "release_every_commit")

    return ReleaseOptions(
        task=_require_str(table, "task", where),
        version_file=_require_str(table, "version_file", where),
        branch=_require_str(table, "branch", where),
        major_version=get_int(table, "major_version"),
        min_major_version=get_int(table, "min_major_version"),
        prerelease=get_str(table, "prerelease"),
        release_tag_prefix=get_str(table, "release_tag_prefix"),
        release_workflow_name=get_str(table, "release_workflow_name"),
        release_every_commit=every_commit if every_commit is not None else True,
        release_schedule=get_str(table, "release_schedule"),
        release_trigger=_parse_trigger(table),
        release_failure_issue=bool(get_bool(table, "release_failure_issue")),
        release_failure_issue_label=get_str(table, "release_failure_issue_label"),
        release_branches=branches,
        **overrides,  # type: ignore[arg-type]
    )


def _parse_options(target_id: str, options_type: type, table: StrDict) -> object:
    """Build a target's options dataclass from a TOML table, field by field."""
    where = f"publish.{target_id}"
    kwargs: dict[str, object] = {}
    known = {f.name: f for f in dataclasses.fields(options_type)}
    for key, value in table.items():
        if key == "code_artifact":
            if "code_artifact_options" not in known:
                raise ConfigurationError(f"{where}: CodeArtifact is not supported")
            ca_table = as_str_dict(value)
            if ca_table is None:
                raise ConfigurationError(f'{where}: "code_artifact" must be a table')
            _check_keys(
                ca_table,
                {"access_key_id_secret", "secret_access_key_secret", "role_to_assume"},
                f"{where}.code_artifact",
            )
            for ca_key in ca_table:
                _check_type(ca_table, ca_key, str, f"{where}.code_artifact")
            kwargs["code_artifact_options"] = CodeArtifactOptions(**ca_table)  # type: ignore[arg-type]
            continue
        if key not in known or key == "code_artifact_options":
            raise ConfigurationError(f"{where}: unknown key: {key}")
        if not isinstance(value, str):
            raise ConfigurationError(f'{where}: "{key}" must be a string')
        kwargs[key] = value
    return options_type(**kwargs)


def _parse_publish(table: StrDict) -> tuple[tuple[str, object], ...]:
    out: list[tuple[str, object]] = []
    for target_id, obj in table.items():
        target = get_target(target_id)
        if target is None:
            raise ConfigurationError(f"unknown publish target: {target_id}")
        target_table = as_str_dict(obj)
        if target_table is None:
            raise ConfigurationError(f"publish.{target_id} must be a table")
        out.append((target_id, _parse_options(target_id, target.options_type, target_table)))
    return tuple(out)


def _str_map(obj: object, where: str) -> dict[str, str]:
    if obj is None:
        return {}
    table = as_str_dict(obj)
    if table is None:
        raise ConfigurationError(f"{where} must be a table")
    return {k: str(v) for k, v in table.items()}


def _parse_step(obj: object, where: str) -> JobStep:
    table = as_str_dict(obj)
    if table is None:
        raise ConfigurationError(f"{where} must be a table")
    _check_keys(table, {"name", "id", "if", "uses", "run", "with", "env"}, where)
    with_table = as_str_dict(table.get("with")) or {}
    return JobStep(
        name=get_str(table, "name"),
        id=get_str(table, "id"),
        if_=get_str(table, "if"),
        uses=get_str(table, "uses"),
        run=get_str(table, "run"),
        with_=with_table,
        env=_str_map(table.get("env"), f"{where}.env"),
    )


def _parse_job(key: str, table: StrDict) -> Job:
    where = f"jobs.{key}"
    _check_keys(table, {"name", "runs_on", "permissions", "steps", "needs", "if", "env", "outputs"}, where)

    permissions: dict[str, JobPermission] = {}
    for scope, level in _str_map(table.get("permissions"), f"{where}.permissions").items():
        try:
            permissions[scope] = JobPermission(level)
        except ValueError:
            raise ConfigurationError(
                f"{where}.permissions: invalid level for {scope}: {level!r}",
                hint="expected none, read or write",
            ) from None

    steps_obj = table.get("steps", [])
    steps = as_obj_list(steps_obj)
    if steps is None:
        raise ConfigurationError(f'{where}: "steps" must be an array of tables')
    needs = get_list(table, "needs") or []

    return Job(
        name=get_str(table, "name"),
        runs_on=_require_str(table, "runs_on", where),
        permissions=permissions,
        steps=tuple(_parse_step(s, f"{where}.steps[{i}]") for i, s in enumerate(steps)),
        needs=tuple(str(n) for n in needs),
        if_=get_str(table, "if"),
        env=_str_map(table.get("env"), f"{where}.env"),
        outputs=_str_map(table.get("outputs"), f"{where}.outputs"),
    )


def parse_config(data: Mapping[str, object]) -> ReleaseConfig:
    """Create a ReleaseConfig from a parsed TOML mapping.

    Raises:
        ConfigurationError: If the mapping does not describe a valid release.
    """
    _check_keys(data, {"release", "publish", "jobs"}, "config")
    release = get_table(data, "release")
    if release is None:
        raise ConfigurationError('config: missing "[release]" table')

    jobs: dict[str, Job] = {}
    for key, obj in (get_table(data, "jobs") or {}).items():
        job_table = as_str_dict(obj)
        if job_table is None:
            raise ConfigurationError(f"jobs.{key} must be a table")
        jobs[key] = _parse_job(key, job_table)

    return ReleaseConfig(
        release=_parse_release(release),
        publish=_parse_publish(get_table(data, "publish") or {}),
        jobs=jobs,
    )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and parse errors."""
    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[ReleaseConfig, ConfigError]:
    """Load and parse a release config file.

    Args:
        path: Path to rsynth.toml

    Returns:
        Ok(ReleaseConfig) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(parse_config(result.value))
    except ConfigurationError as e:
        return Err(ConfigError(e.pretty(), path=path))


def build_release(config: ReleaseConfig) -> Release:
    """Apply a loaded config: branches, publishers, then extra jobs.

    Raises:
        ConfigurationError: If the release invariants are violated.
    """
    release = Release(config.release)
    for target_id, options in config.publish:
        release.publisher.publish_to(target_id, options)
    if config.jobs:
        release.add_jobs(config.jobs)
    return release
