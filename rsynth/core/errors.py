"""Error types and CLI exit codes.

`ConfigurationError` is raised synchronously whenever a release policy
violates one of its invariants. Nothing is generated once it is raised.

`ErrorCode` maps failures to shell exit codes for the CLI.
"""

from enum import IntEnum

__all__ = ["ConfigurationError", "ErrorCode"]


class ConfigurationError(Exception):
    """Raised when a release configuration is invalid.

    The message names the violated rule and is shown to the user verbatim.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    These values are used as process exit codes and should remain stable:
    - 0: Success
    - 1: User error (invalid configuration, bad arguments)
    - 5: I/O error (config not readable, output not writable)
    """

    OK = 0
    USER_ERROR = 1
    IO_ERROR = 5

    def __str__(self) -> str:
        """Return human-readable name."""
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        """Check if this code indicates success."""
        return self == ErrorCode.OK
