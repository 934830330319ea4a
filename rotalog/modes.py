"""Rotation modes and size/backup defaults for rotating log files."""

from __future__ import annotations

import enum
from typing import Protocol, runtime_checkable

ONE_MBYTE = 1024 * 1024
"""One mebibyte, in bytes."""

DEFAULT_MAX_SIZE = 20 * ONE_MBYTE
"""Default maximum size of a log file before it is rotated (20 MiB)."""

DEFAULT_BACK_NUM = 20
"""Default number of old files to keep."""

DEFAULT_BACK_TIME = 24 * 7
"""Default time to keep old files, in hours (one week)."""


class RotateMode(enum.IntEnum):
    """How a file is rotated.

    RENAME: always write to the configured file; on rotation rename it
    (e.g. ``error.log`` -> ``error.log.20201223``) and re-create it.

    CREATE: write directly to a new file for each period,
    e.g. ``error.20201223.log``, ``error.20201224.log``.
    """

    RENAME = 0
    CREATE = 1

    def __str__(self) -> str:
        return self.name.lower()


@runtime_checkable
class RotateWriter(Protocol):
    """What a rotating file writer offers."""

    def write(self, data: bytes) -> int: ...

    def close(self) -> None: ...

    def clean(self) -> None: ...

    def flush(self) -> None: ...

    def rotate(self) -> None: ...

    def sync(self) -> None: ...