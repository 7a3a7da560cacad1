from __future__ import annotations

from pathlib import Path

import typer

from rsynth.cli.commands._helpers import exit_with, synthesize_or_exit
from rsynth.cli.context import build_context
from rsynth.core.errors import ErrorCode
from rsynth.output.console import Style
from rsynth.platform.files import find_stale_files, write_files
from rsynth.release.config import CONFIG_FILE
from rsynth.release.synthesizer import WORKFLOWS_DIR
from rsynth.workflows.render import GENERATED_MARKER


def synth(
    config: Path = typer.Option(Path(CONFIG_FILE), "--config", "-c", help="Release config file."),
    outdir: Path | None = typer.Option(
        None,
        "--outdir",
        help="Project root to write into (defaults to the config file's directory).",
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="List the files without writing them."),
) -> None:
    """Generate release workflows and the task graph.

    Workflows written by an earlier run that the current config no longer
    produces are removed. Hand-written workflows are never touched.
    """
    ctx = build_context(config)
    _, files = synthesize_or_exit(ctx)

    root = outdir if outdir is not None else ctx.root
    try:
        stale = find_stale_files(root, WORKFLOWS_DIR, f"# {GENERATED_MARKER}", files)
    except OSError as e:
        exit_with(ctx, f"failed to scan {WORKFLOWS_DIR}: {e}", code=ErrorCode.IO_ERROR, hint=str(root))

    if dry_run:
        for path in files:
            ctx.console.print(path, Style.DIM)
        for path in stale:
            ctx.console.print(f"would remove {path}", Style.DIM)
        return

    try:
        write_files(root, files)
        for path in stale:
            (root / path).unlink()
    except (OSError, ValueError) as e:
        exit_with(ctx, f"failed to write output: {e}", code=ErrorCode.IO_ERROR, hint=str(root))

    for path in files:
        ctx.console.success(path)
    for path in stale:
        ctx.console.success(f"removed {path}")
