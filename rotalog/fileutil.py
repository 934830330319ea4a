"""File helpers for rotation: error reporting, gzip compression and a mock clock."""

from __future__ import annotations

import gzip
import os
import shutil
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional, Union

COMPRESS_SUFFIX = ".gz"

PathLike = Union[str, "os.PathLike[str]"]


def print_errln(prefix: str, err: Optional[BaseException]) -> None:
    """Print the prefix and error to stderr, when there is an error."""
    if err is not None:
        print(prefix, err, file=sys.stderr)


def compress_file(src_path: PathLike, dst_path: PathLike) -> None:
    """Gzip the source file into the destination, keeping its name and mtime."""
    src = Path(src_path)
    dst = Path(dst_path)
    mtime = int(src.stat().st_mtime)
    dst.parent.mkdir(parents=True, exist_ok=True)

    with src.open("rb") as fin, dst.open("wb") as raw:
        with gzip.GzipFile(filename=src.name, mode="wb", fileobj=raw, mtime=mtime) as zw:
            shutil.copyfileobj(fin, zw)


class MockClock:
    """A settable clock for tests, started from a datetime string."""

    def __init__(self, datetime_str: str) -> None:
        self._moment = datetime.fromisoformat(datetime_str)

    def now(self) -> datetime:
        return self._moment

    def add(self, delta: timedelta) -> None:
        """Move the clock forward by the given amount."""
        self._moment += delta

    def datetime(self) -> str:
        """The current time as ``YYYY-MM-DD HH:MM:SS``."""
        return self._moment.strftime("%Y-%m-%d %H:%M:%S")