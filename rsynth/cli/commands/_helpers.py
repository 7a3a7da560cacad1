"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn

import typer

from rsynth.core.errors import ConfigurationError, ErrorCode
from rsynth.output.console import Style
from rsynth.release.config import build_release
from rsynth.release.release import Release

if TYPE_CHECKING:
    from rsynth.cli.context import CLIContext


def exit_with(ctx: CLIContext, message: str, *, code: ErrorCode, hint: str | None = None) -> NoReturn:
    ctx.console.error(message)
    if hint:
        ctx.console.print(f"hint: {hint}", Style.DIM)
    raise typer.Exit(code=int(code))


def synthesize_or_exit(ctx: CLIContext) -> tuple[Release, dict[str, str]]:
    """Build the release from the loaded config and render its documents.

    Configuration errors end the command before anything is written.
    """
    try:
        release = build_release(ctx.config)
        files = release.synth()
    except ConfigurationError as e:
        exit_with(ctx, e.message, code=ErrorCode.USER_ERROR, hint=e.hint)
    return release, files
