"""Filesystem helpers."""

from __future__ import annotations

import os
import tempfile
from collections.abc import Iterable, Mapping
from pathlib import Path

__all__ = ["atomic_write_text", "find_stale_files", "write_files"]


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    """Write text to path atomically using temp file + replace."""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.",
        suffix=".tmp",
        dir=str(path.parent),
    )
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def write_files(root: Path, files: Mapping[str, str]) -> list[Path]:
    """Write relative-path -> content pairs under root, in order.

    Raises:
        ValueError: If a path is absolute or escapes root.
        OSError: If a file cannot be written.
    """
    resolved_root = root.resolve()
    targets: list[tuple[Path, str]] = []
    for rel, content in files.items():
        rel_path = Path(rel)
        target = (resolved_root / rel_path).resolve()
        if rel_path.is_absolute() or not target.is_relative_to(resolved_root):
            raise ValueError(f"refusing to write outside {resolved_root}: {rel}")
        targets.append((target, content))

    written: list[Path] = []
    for target, content in targets:
        atomic_write_text(target, content)
        written.append(target)
    return written


def find_stale_files(root: Path, directory: str, header: str, keep: Iterable[str]) -> list[str]:
    """List generated files under root/directory that are no longer produced.

    A file counts as generated when its first line equals `header`. Paths are
    relative to root, sorted, and never include anything in `keep`.
    """
    base = root / directory
    if not base.is_dir():
        return []

    kept = {Path(rel).as_posix() for rel in keep}
    stale: list[str] = []
    for path in sorted(base.iterdir()):
        if not path.is_file():
            continue
        rel = path.relative_to(root).as_posix()
        if rel in kept:
            continue
        with path.open(encoding="utf-8", errors="replace") as handle:
            first_line = handle.readline().rstrip("\n")
        if first_line == header:
            stale.append(rel)
    return stale
