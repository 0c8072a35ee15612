from __future__ import annotations

import contextlib
import copy
import json
import os
from pathlib import Path
from typing import Any, Iterator, Union

try:  # pragma: no cover
    import fcntl
except ImportError:  # pragma: no cover
    fcntl = None

PathType = Union[str, os.PathLike[str]]

__all__ = ["read_json_file", "file_signature"]


@contextlib.contextmanager
def _shared_lock(lock_path: Path) -> Iterator[None]:
    """Hold a shared advisory lock while a bundle is read; no-op without ``fcntl``."""
    if fcntl is None or not lock_path.exists():
        yield
        return

    with lock_path.open("r") as lock_file:
        fcntl.flock(lock_file.fileno(), fcntl.LOCK_SH)
        try:
            yield
        finally:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)


def read_json_file(path: PathType, default: Any = None) -> Any:
    """
    Read a JSON file, returning a copy of ``default`` when it is missing or invalid.

    Writers that hold ``<file>.lock`` exclusively are waited for.
    """
    file_path = Path(path)
    if not file_path.exists():
        return copy.deepcopy(default)

    with _shared_lock(file_path.with_suffix(file_path.suffix + ".lock")):
        try:
            with file_path.open("r", encoding="utf-8") as fh:
                return json.load(fh)
        except (json.JSONDecodeError, FileNotFoundError, UnicodeDecodeError):
            return copy.deepcopy(default)


def file_signature(directory: PathType, pattern: str = "*.json") -> tuple[tuple[str, int, int], ...]:
    """Name, mtime and size of every matching file, for cheap change detection."""
    root = Path(directory)
    if not root.is_dir():
        return ()
    entries = []
    for item in sorted(root.glob(pattern)):
        with contextlib.suppress(FileNotFoundError):
            stat = item.stat()
            entries.append((item.name, stat.st_mtime_ns, stat.st_size))
    return tuple(entries)
