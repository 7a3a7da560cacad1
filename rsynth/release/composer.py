"""Job composer: caller-defined jobs merged into every release workflow."""

from __future__ import annotations

from collections.abc import Iterator, Mapping

from rsynth.core.errors import ConfigurationError
from rsynth.workflows.model import Job

__all__ = ["JobComposer"]


class JobComposer:
    """Append-only, ordered collection of extra jobs.

    The synthesizer reads the final state, so jobs added after a branch was
    registered still land in that branch's workflow.
    """

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}

    def add_jobs(self, jobs: Mapping[str, Job]) -> None:
        """Append jobs in the mapping's order.

        Raises:
            ConfigurationError: If a key was already added or a value is not a Job.
        """
        # Validate the whole batch first so a bad batch adds nothing.
        for key, job in jobs.items():
            if not key:
                raise ConfigurationError("job key must not be empty")
            if key in self._jobs:
                raise ConfigurationError(f'duplicate job key "{key}"')
            if not isinstance(job, Job):
                raise ConfigurationError(f'job "{key}" must be a Job, got {type(job).__name__}')
        self._jobs.update(jobs)

    def items(self) -> Iterator[tuple[str, Job]]:
        return iter(tuple(self._jobs.items()))

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, key: object) -> bool:
        return key in self._jobs
