"""Filesystem probe used by path handlers."""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class PathInfo:
    """Result of probing a filesystem path."""

    exists: bool
    is_directory: bool = False


class FilesystemProbe(Protocol):
    def stat(self, path: str) -> PathInfo: ...

    def absolute_path(self, path: str) -> str: ...


class LocalFilesystemProbe:
    """Probe the local filesystem.

    ``stat`` reports a missing path as ``exists=False`` and lets any other
    OSError (permissions, broken mounts) propagate to the caller.
    """

    def stat(self, path: str) -> PathInfo:
        try:
            st = os.stat(path)
        except FileNotFoundError:
            return PathInfo(exists=False)
        return PathInfo(exists=True, is_directory=stat.S_ISDIR(st.st_mode))

    def absolute_path(self, path: str) -> str:
        return os.path.abspath(path)
