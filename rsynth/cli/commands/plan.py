from __future__ import annotations

from pathlib import Path

import typer

from rsynth.cli.commands._helpers import synthesize_or_exit
from rsynth.cli.context import build_context
from rsynth.output.console import Style
from rsynth.release.branches import ReleaseBranch
from rsynth.release.config import CONFIG_FILE
from rsynth.release.trigger import Continuous, Manual, ReleaseTrigger, Scheduled


def plan(
    config: Path = typer.Option(Path(CONFIG_FILE), "--config", "-c", help="Release config file."),
) -> None:
    """Show the release policy and the files it generates."""
    ctx = build_context(config)
    release, files = synthesize_or_exit(ctx)
    console = ctx.console

    console.header("Trigger")
    console.print(describe_trigger(release.trigger))

    console.header("Branches")
    for branch in release.branches:
        console.print(describe_branch(branch))

    console.header("Publishers")
    entries = release.publisher.entries()
    if not entries:
        console.print("(none)", Style.DIM)
    for entry in entries:
        console.print(f"{entry.target.job_key}: {entry.target.name}")

    console.header("Files")
    for path in files:
        console.print(path, Style.DIM)


def describe_trigger(trigger: ReleaseTrigger) -> str:
    match trigger:
        case Continuous():
            return "continuous (every push)"
        case Scheduled(cron=cron, on_push=on_push):
            return f"scheduled ({cron}){' and every push' if on_push else ''}"
        case Manual():
            return "manual (no release workflow)"


def describe_branch(branch: ReleaseBranch) -> str:
    parts = [branch.name]
    if branch.major_version is not None:
        parts.append(f"major={branch.major_version}")
    if branch.min_major_version is not None:
        parts.append(f"min_major={branch.min_major_version}")
    if branch.prerelease:
        parts.append(f"prerelease={branch.prerelease}")
    if branch.tag_prefix:
        parts.append(f"tag_prefix={branch.tag_prefix}")
    parts.append(f"workflow={branch.workflow_name}")
    if branch.is_default:
        parts.append("(default)")
    return " ".join(parts)
