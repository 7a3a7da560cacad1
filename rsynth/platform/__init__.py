"""Platform helpers (filesystem)."""

from .files import atomic_write_text, find_stale_files, write_files

__all__ = ["atomic_write_text", "find_stale_files", "write_files"]
