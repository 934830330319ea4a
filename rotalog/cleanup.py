"""Cleanup of old log files that match glob patterns, by age and by count."""

from __future__ import annotations

import glob
import os
import stat
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional

from .config import DEFAULT_TIME_CLOCK, Clocker
from .fileutil import print_errln
from .modes import DEFAULT_BACK_NUM, DEFAULT_BACK_TIME

DEFAULT_CHECK_INTERVAL = timedelta(seconds=60)

CConfigFn = Callable[["CConfig"], None]


@dataclass
class CConfig:
    """Settings for cleaning old files."""

    # Maximum number of old files to keep; 0 means no limit.
    backup_num: int = DEFAULT_BACK_NUM
    # Maximum age of old files, counted in time_unit; 0 means no limit.
    backup_time: int = DEFAULT_BACK_TIME
    compress: bool = False
    # Glob patterns, e.g. "/tmp/error.log.*" or "/path/to/dir/*".
    patterns: list[str] = field(default_factory=list)
    time_clock: Clocker = DEFAULT_TIME_CLOCK
    time_unit: timedelta = timedelta(hours=1)
    # How often the daemon cleans.
    check_interval: timedelta = DEFAULT_CHECK_INTERVAL

    def add_dir_path(self, *dir_paths: str) -> "CConfig":
        """Add a pattern matching every file of each existing directory."""
        self.patterns.extend(f"{path}/*" for path in dir_paths if os.path.isdir(path))
        return self

    def add_pattern(self, *patterns: str) -> "CConfig":
        """Add glob patterns, e.g. "/tmp/error.log.*"."""
        self.patterns.extend(patterns)
        return self

    def with_config_fn(self, *fns: Optional[CConfigFn]) -> "CConfig":
        """Apply setting functions in order, skipping None, and return self."""
        for fn in fns:
            if fn is not None:
                fn(self)
        return self


def new_cconfig() -> CConfig:
    """A cleanup config with the default limits."""
    return CConfig()


class FilesClear:
    """Removes old files matched by patterns, by age and by count."""

    def __init__(self, *fns: Optional[CConfigFn]) -> None:
        self._cfg = new_cconfig().with_config_fn(*fns)
        self._quit: Optional[threading.Event] = None

    def config(self) -> CConfig:
        return self._cfg

    def with_config(self, cfg: CConfig) -> "FilesClear":
        self._cfg = cfg
        return self

    def with_config_fn(self, *fns: Optional[CConfigFn]) -> "FilesClear":
        self._cfg.with_config_fn(*fns)
        return self

    def stop_daemon(self) -> None:
        """Stop a running daemon_clean loop."""
        if self._quit is None:
            raise RuntimeError("cannot quit daemon, please call daemon_clean() first")
        self._quit.set()

    def daemon_clean(self, on_stop: Optional[Callable[[], None]] = None) -> None:
        """Clean periodically until stop_daemon() is called. Blocks the caller."""
        self._check_limits()
        quit_event = threading.Event()
        self._quit = quit_event
        interval = self._cfg.check_interval.total_seconds()

        while not quit_event.wait(interval):
            try:
                self.clean()
            except (OSError, ValueError) as err:
                print_errln("files-clear: cleanup old files error:", err)

        if on_stop is not None:
            on_stop()

    def clean(self) -> None:
        """Remove expired files, then the oldest files beyond the backup number."""
        self._check_limits()
        for pattern in self._cfg.patterns:
            self._clean_by_pattern(pattern)

    def _check_limits(self) -> None:
        if self._cfg.backup_num == 0 and self._cfg.backup_time == 0:
            raise ValueError("clean: backupNum and backupTime are both 0")

    def _clean_by_pattern(self, pattern: str) -> None:
        cfg = self._cfg
        now = cfg.time_clock.now()
        backup = cfg.time_unit * cfg.backup_time if cfg.backup_time > 0 else timedelta(0)
        cut_time = now - backup

        kept: list[tuple[float, str]] = []
        for path in sorted(glob.glob(pattern)):
            info = os.stat(path)
            if stat.S_ISDIR(info.st_mode):
                continue
            mtime = datetime.fromtimestamp(info.st_mtime, tz=now.tzinfo)
            if mtime > cut_time:
                kept.append((info.st_mtime, path))
                continue
            os.remove(path)

        excess = len(kept) - cfg.backup_num
        if cfg.backup_num > 0 and excess > 0:
            kept.sort()
            for _, path in kept[:excess]:
                os.remove(path)