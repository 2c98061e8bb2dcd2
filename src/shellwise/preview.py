"""Dry-run preview of the files a command would touch."""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

from shellwise.models import CommandAnalysis, FileInfo

log = logging.getLogger(__name__)


def expand_home(path: str) -> str:
    """Expand a leading ``~`` or ``~/`` to the current user's home directory."""
    if path == "~":
        return str(Path.home())
    if path.startswith("~/"):
        return str(Path.home() / path[2:])
    return path


def count_entries(directory: str) -> int:
    """Count *directory* and everything below it.

    Unreadable subdirectories are counted themselves but not descended into;
    symlinked directories are not followed.
    """
    count = 1
    for _root, dirs, files in os.walk(directory, onerror=_log_walk_error):
        count += len(dirs) + len(files)
    return count


def _log_walk_error(exc: OSError) -> None:
    log.debug("skipping %s during walk: %s", exc.filename, exc)


def get_affected_files(analysis: CommandAnalysis) -> list[FileInfo]:
    """Stat every affected path of *analysis*.

    Paths that do not exist or cannot be accessed are left out; this runs
    before the command does, so targets may not exist yet.  The analysis is
    not modified.
    """
    files: list[FileInfo] = []
    for raw_path in analysis.affected_paths:
        path = expand_home(raw_path)
        try:
            st = os.stat(path)
        except (OSError, ValueError) as exc:
            log.debug("cannot stat %s: %s", path, exc)
            continue

        is_dir = stat.S_ISDIR(st.st_mode)
        files.append(
            FileInfo(
                path=path,
                size=st.st_size,
                is_dir=is_dir,
                file_count=count_entries(path) if is_dir else 0,
            )
        )
    return files
