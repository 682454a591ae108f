"""File locking and atomic write helpers for journal storage."""

from __future__ import annotations

import json
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator

import portalocker

# Mode open() gives new files, for temp files that mkstemp creates as 0600
_UMASK = os.umask(0)
os.umask(_UMASK)
DEFAULT_FILE_MODE = 0o666 & ~_UMASK


@contextmanager
def file_lock(
    path: Path,
    timeout: float = 10.0,
    fail_when_locked: bool = False,
) -> Generator[None, None, None]:
    """Acquire an exclusive lock on a .lock file next to path.

    The parent directory must already exist; locking never creates
    directories.

    Args:
        path: File (or directory marker) to lock
        timeout: Seconds to wait for the lock
        fail_when_locked: Give up immediately if another holder has it

    Raises:
        portalocker.LockException: If the lock cannot be acquired
    """
    lock_path = path.with_name(path.name + ".lock")
    with portalocker.Lock(
        lock_path,
        mode="a",
        timeout=timeout,
        fail_when_locked=fail_when_locked,
    ):
        yield


@contextmanager
def atomic_write(path: Path, encoding: str = "utf-8") -> Generator:
    """Write a text file by whole-file replace.

    Content goes to a uniquely named temporary file in the same directory,
    which is then renamed over the target. Readers see either the old file
    or the complete new one.

    Yields:
        File handle for writing
    """
    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
    )
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding=encoding) as f:
            os.chmod(tmp_path, DEFAULT_FILE_MODE)
            yield f
        os.replace(tmp_path, path)
    except BaseException:
        if tmp_path.exists():
            tmp_path.unlink()
        raise


def write_json_atomic(path: Path, data: Any) -> None:
    """Write pretty-printed JSON atomically."""
    with atomic_write(path) as f:
        json.dump(data, f, indent=2)


def create_exclusive(path: Path, content: str, encoding: str = "utf-8") -> None:
    """Create path with content, failing if it already exists.

    Raises:
        FileExistsError: If path is taken
    """
    with open(path, "x", encoding=encoding) as f:
        f.write(content)
