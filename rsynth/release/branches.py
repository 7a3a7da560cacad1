"""Release branch registry.

Owns the set of release branches of one release: the default branch,
registered once on construction, plus any number of additional branches.
Cross-branch invariants are checked as branches are added so that a bad
policy fails at configuration time, never in CI:

- with more than one branch, the default branch must pin a major version
  (`major_version` or `min_major_version`)
- branch names are unique
- workflow names are unique
- two branches whose major versions overlap never share a tag prefix
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, replace

from rsynth.core.errors import ConfigurationError

__all__ = [
    "BranchOptions",
    "BranchRegistry",
    "DEFAULT_WORKFLOW_NAME",
    "ReleaseBranch",
    "check_release_branches",
    "sanitize_branch_name",
]

DEFAULT_WORKFLOW_NAME = "release"

MISSING_DEFAULT_MAJOR = (
    'you must specify "majorVersion" for the default branch when adding multiple release branches'
)
LEGACY_RELEASE_BRANCHES = '"releaseBranches" is no longer an array. See type annotations'

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


@dataclass(frozen=True, slots=True)
class BranchOptions:
    """Options for a release branch.

    Attributes:
        major_version: Pins the branch to this major version line
        min_major_version: Lowest major version the branch may release
        prerelease: Prerelease qualifier (e.g. "pre")
        tag_prefix: Prefix for release tags; derived when omitted
        workflow_name: Name of the generated workflow; derived when omitted
    """

    major_version: int | None = None
    min_major_version: int | None = None
    prerelease: str | None = None
    tag_prefix: str | None = None
    workflow_name: str | None = None

    def __post_init__(self) -> None:
        for label, value in (
            ("majorVersion", self.major_version),
            ("minMajorVersion", self.min_major_version),
        ):
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigurationError(f'"{label}" must be a non-negative integer, got {value!r}')
        if self.major_version is not None and self.min_major_version is not None:
            raise ConfigurationError('"minMajorVersion" and "majorVersion" cannot be used together')
        if self.workflow_name is not None and not self.workflow_name.strip():
            raise ConfigurationError('"workflowName" must not be empty')


@dataclass(frozen=True, slots=True)
class ReleaseBranch:
    name: str
    tag_prefix: str
    workflow_name: str
    is_default: bool = False
    major_version: int | None = None
    min_major_version: int | None = None
    prerelease: str | None = None

    @property
    def has_major_pin(self) -> bool:
        return self.major_version is not None or self.min_major_version is not None

    @property
    def version_range(self) -> tuple[int, int | None]:
        """Major versions this branch may release, as (low, high); high None is open."""
        if self.major_version is not None:
            return self.major_version, self.major_version
        return self.min_major_version or 0, None

    def overlaps(self, other: ReleaseBranch) -> bool:
        low, high = self.version_range
        other_low, other_high = other.version_range
        return (high is None or other_low <= high) and (other_high is None or low <= other_high)


def sanitize_branch_name(branch: str) -> str:
    """Make a branch name safe for use in file names and tag prefixes.

    Every character outside [A-Za-z0-9._-] becomes "-", so "2.x" stays
    "2.x" and "feature/x" becomes "feature-x".
    """
    return _UNSAFE_CHARS.sub("-", branch)


def check_release_branches(value: object) -> Mapping[str, BranchOptions]:
    """Validate the bulk `release_branches` input.

    Raises:
        ConfigurationError: If the legacy list form is used, or an entry is
            not a BranchOptions.
    """
    if isinstance(value, (list, tuple, set, frozenset)):
        raise ConfigurationError(LEGACY_RELEASE_BRANCHES)
    if not isinstance(value, Mapping):
        raise ConfigurationError(
            f'"releaseBranches" must be a mapping of branch name to options, got {type(value).__name__}'
        )
    for name, options in value.items():
        if not isinstance(options, BranchOptions):
            raise ConfigurationError(f'invalid options for release branch "{name}"')
    return value


class BranchRegistry:
    """Ordered registry of release branches.

    Branches are kept in registration order, the default branch first.
    Entries are never removed or replaced.
    """

    def __init__(self, default_branch: str, options: BranchOptions | None = None) -> None:
        if not default_branch or not default_branch.strip():
            raise ConfigurationError('"branch" must be a non-empty branch name')
        options = options or BranchOptions()
        self._branches: dict[str, ReleaseBranch] = {}
        self._register(
            ReleaseBranch(
                name=default_branch,
                is_default=True,
                major_version=options.major_version,
                min_major_version=options.min_major_version,
                prerelease=options.prerelease,
                tag_prefix=options.tag_prefix if options.tag_prefix is not None else "",
                workflow_name=options.workflow_name or DEFAULT_WORKFLOW_NAME,
            )
        )

    @property
    def default(self) -> ReleaseBranch:
        return next(iter(self._branches.values()))

    def __iter__(self) -> Iterator[ReleaseBranch]:
        return iter(tuple(self._branches.values()))

    def __len__(self) -> int:
        return len(self._branches)

    def __contains__(self, name: object) -> bool:
        return name in self._branches

    def get(self, name: str) -> ReleaseBranch | None:
        return self._branches.get(name)

    def add_branch(self, name: str, options: BranchOptions | None = None) -> ReleaseBranch:
        """Register an additional release branch.

        Raises:
            ConfigurationError: If the default branch has no major version, the
                name is already registered, or the derived names collide.
        """
        options = options or BranchOptions()
        if not self.default.has_major_pin:
            raise ConfigurationError(MISSING_DEFAULT_MAJOR)
        if not name or not name.strip():
            raise ConfigurationError("release branch name must not be empty")
        if name in self._branches:
            raise ConfigurationError(f'release branch "{name}" is already defined')

        branch = ReleaseBranch(
            name=name,
            major_version=options.major_version,
            min_major_version=options.min_major_version,
            prerelease=options.prerelease,
            tag_prefix=options.tag_prefix or "",
            workflow_name=options.workflow_name
            or f"{DEFAULT_WORKFLOW_NAME}-{sanitize_branch_name(name)}",
        )
        if options.tag_prefix is None:
            branch = replace(branch, tag_prefix=self._derive_tag_prefix(branch))
        self._register(branch)
        return branch

    def _register(self, branch: ReleaseBranch) -> None:
        for other in self._branches.values():
            if other.workflow_name == branch.workflow_name:
                raise ConfigurationError(
                    f'release branches "{other.name}" and "{branch.name}" both use workflow '
                    f'name "{branch.workflow_name}"',
                    hint='set a distinct "workflowName" for one of them',
                )
            if other.tag_prefix == branch.tag_prefix and other.overlaps(branch):
                raise ConfigurationError(
                    f'release branches "{other.name}" and "{branch.name}" can release the same '
                    f'major version with tag prefix "{branch.tag_prefix}"',
                    hint='set a distinct "tagPrefix" for one of them',
                )
        self._branches[branch.name] = branch

    def _derive_tag_prefix(self, branch: ReleaseBranch) -> str:
        # Only a branch pinned to one major line may share the bare tag namespace.
        taken = {b.tag_prefix for b in self._branches.values() if b.overlaps(branch)}
        if branch.major_version is not None and "" not in taken:
            return ""

        base = sanitize_branch_name(branch.name)
        candidate = f"{base}/"
        n = 2
        while candidate in taken:
            candidate = f"{base}-{n}/"
            n += 1
        return candidate
