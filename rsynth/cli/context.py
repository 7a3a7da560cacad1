from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from rsynth.core.errors import ErrorCode
from rsynth.core.result import Err
from rsynth.output.console import ConsoleProtocol, RichConsole
from rsynth.release.config import ReleaseConfig, load_config


@dataclass(frozen=True, slots=True)
class CLIContext:
    root: Path
    config_path: Path
    config: ReleaseConfig
    console: ConsoleProtocol


def build_context(config_path: Path) -> CLIContext:
    console = RichConsole()
    path = config_path.expanduser().resolve()

    result = load_config(path)
    if isinstance(result, Err):
        console.error(result.error.message)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    return CLIContext(
        root=path.parent,
        config_path=path,
        config=result.value,
        console=console,
    )
