"""A file writer that rotates by size and by time, and cleans old files."""

from __future__ import annotations

import contextlib
import dataclasses
import os
import random
import sys
import threading
from datetime import datetime, timedelta
from typing import Optional, Union

from .config import Config, ConfigFn, DEFAULT_FILE_FLAGS, RotateTime, new_config_with
from .fileutil import COMPRESS_SUFFIX, compress_file, print_errln
from .modes import RotateMode


def _file_ext(name: str) -> str:
    """The extension of a file name, from its last dot; empty if it has none."""
    index = name.rfind(".")
    return name[index:] if index >= 0 else ""


def _as_time(timestamp: float, like: datetime) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=like.tzinfo)


class Writer:
    """Writes to a log file, rotating it by size and time and cleaning backups."""

    def __init__(self, config: Config) -> None:
        self._cfg = config
        self._id = f"{id(self):#x}"
        self._lock = threading.Lock()
        self._clean_lock = threading.Lock()

        self._file = None
        self._path = ""
        self._file_dir, self._file_name = os.path.split(config.filepath)
        self._file_ext = _file_ext(self._file_name)
        self._only_name = self._file_name[: len(self._file_name) - len(self._file_ext)]

        rotate_time = RotateTime(config.rotate_time)
        self._backup_dur = config.backup_duration()
        self._suffix_format = rotate_time.time_format()
        self._check_interval = rotate_time.interval()
        self._next_rotating_at: Optional[datetime] = None

        self._written = 0
        self._rotate_num = 0

        self._clean_signal: Optional[threading.Event] = None
        self._stop_event: Optional[threading.Event] = None
        self._cleaner: Optional[threading.Thread] = None

        logfile = config.filepath
        if self._check_interval > 0:
            now = config.time_clock.now()
            self._next_rotating_at = rotate_time.first_check_time(now)
            if config.rotate_mode == RotateMode.CREATE:
                logfile = self._build_file_path(now.strftime(self._suffix_format))

        self._open_file(logfile)

    def config(self) -> Config:
        """A copy of the writer's config."""
        return dataclasses.replace(self._cfg)

    def flush(self) -> None:
        """Sync data to disk. Same as sync()."""
        self.sync()

    def sync(self) -> None:
        """Flush buffers and sync data to disk."""
        self._file.flush()
        os.fsync(self._file.fileno())

    def close(self) -> None:
        """Sync data, stop the background cleaner and close the file."""
        if self._file is None or self._file.closed:
            return
        self._close(stop_cleaner=True)

    def must_close(self) -> None:
        """Close the writer, reporting any error on stderr."""
        try:
            self.close()
        except (OSError, ValueError) as err:
            print_errln("close writer -", err)

    def __enter__(self) -> "Writer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _close(self, stop_cleaner: bool) -> None:
        self.sync()
        if stop_cleaner and self._stop_event is not None:
            self._debug("close stop event for stop async clean old files")
            self._stop_event.set()
            if self._clean_signal is not None:
                self._clean_signal.set()
            self._stop_event = None
            self._clean_signal = None
            self._cleaner = None
        self._file.close()

    # --- writing and rotating ---

    def write_string(self, text: str) -> int:
        """Write text encoded as UTF-8; return the number of bytes written."""
        return self.write(text.encode("utf-8"))

    def write(self, data: Union[bytes, bytearray, str]) -> int:
        """Write data, rotate when due, and sometimes clean old files."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        written = self._do_write(bytes(data))
        self._do_rotate()
        if self._should_clean(with_rand=True):
            self._async_clean()
        return written

    def rotate(self) -> None:
        """Rotate the file if due by config, and sometimes clean old files."""
        self._do_rotate()
        if self._should_clean(with_rand=True):
            self._async_clean()

    def _locked(self):
        if self._cfg.close_lock:
            return contextlib.nullcontext()
        return self._lock

    def _do_write(self, data: bytes) -> int:
        with self._locked():
            count = self._file.write(data)
            self._file.flush()
            self._written += count
            return count

    def _do_rotate(self) -> None:
        with self._locked():
            cfg = self._cfg
            if cfg.max_size > 0 and self._written >= cfg.max_size:
                self._rotating_by_size()
            if self._check_interval > 0 and self._written > 0:
                self._rotating_by_time()

    def _rotating_by_time(self) -> None:
        now = self._cfg.time_clock.now()
        if now < self._next_rotating_at:
            return
        backup = self._build_file_path(self._next_rotating_at.strftime(self._suffix_format))
        try:
            self._rotating_file(backup, rename=False)
        finally:
            self._next_rotating_at += timedelta(seconds=self._check_interval)

    def _rotating_by_size(self) -> None:
        cfg = self._cfg
        self._rotate_num += 1
        now = cfg.time_clock.now()
        base = int(f"{now.hour}{now.minute}{now.second}") + now.microsecond
        rotate_num = base + self._rotate_num

        if cfg.is_mode(RotateMode.CREATE):
            path_no_ext = self._path[: len(self._path) - len(self._file_ext)]
            backup = f"{path_no_ext}_{rotate_num}{self._file_ext}"
        elif cfg.rename_func is not None:
            backup = cfg.rename_func(cfg.filepath, rotate_num)
        else:
            backup = self._build_file_path(f"{now.strftime('%y%m%d%H')}_{rotate_num}")

        self._rotating_file(backup, rename=True)

    def _rotating_file(self, backup: str, rename: bool) -> None:
        self._close(stop_cleaner=False)

        rename_mode = self._cfg.rotate_mode == RotateMode.RENAME
        if rename or rename_mode:
            os.replace(self._path, backup)

        logfile = self._cfg.filepath if rename_mode else self._path
        self._open_file(logfile)
        self._written = 0

    # --- cleaning backups ---

    def _should_clean(self, with_rand: bool) -> bool:
        configured = self._cfg.backup_num > 0 or self._cfg.backup_time > 0
        if not with_rand:
            return configured
        # Trigger a clean with 20% probability.
        return configured and random.randrange(100) < 20

    def _async_clean(self) -> None:
        if not self._should_clean(with_rand=False):
            return
        if self._cleaner is not None:
            self._notify_clean()
            return

        with self._clean_lock:
            if self._cleaner is not None:
                self._notify_clean()
                return

            self._debug("INIT clean and stop events for clean old files")
            signal = threading.Event()
            stop = threading.Event()
            self._clean_signal = signal
            self._stop_event = stop
            self._cleaner = threading.Thread(
                target=self._clean_loop, args=(signal, stop), daemon=True
            )
            self._cleaner.start()

    def _clean_loop(self, signal: threading.Event, stop: threading.Event) -> None:
        self._debug("START a thread consumer for clean old files")
        while True:
            signal.wait()
            if stop.is_set():
                break
            signal.clear()
            self._debug("receive signal - clean old files handling")
            try:
                self._do_clean()
            except (OSError, ValueError) as err:
                print_errln("rotatefile: clean old files error:", err)
        self._debug("STOP consumer for clean old files")

    def _notify_clean(self) -> None:
        signal = self._clean_signal
        if signal is None:
            return
        if signal.is_set():
            self._debug("clean old files signal blocked, SKIP")
            return
        signal.set()
        self._debug("sent signal - start clean old files...")

    def clean(self) -> None:
        """Remove and compress old files by config."""
        if self._cfg.backup_num == 0 and self._cfg.backup_time == 0:
            raise ValueError("clean: backupNum and backupTime are both 0")
        self._do_clean(skip_seconds=0)

    def _do_clean(self, skip_seconds: int = 30) -> None:
        cfg = self._cfg
        current_name = os.path.basename(self._path)
        now = cfg.time_clock.now()
        # Files changed within skip_seconds are left alone to avoid conflicts.
        limit_time = now - timedelta(seconds=skip_seconds)

        self._debug("Clean - find old files, match name:", self._file_name,
                    ", in dir:", self._file_dir)
        old_files: list[tuple[float, str]] = []
        gz_files: list[tuple[float, str]] = []
        for path, name, mtime in self._find_candidates(now):
            if name == current_name:
                continue
            if name.endswith(COMPRESS_SUFFIX):
                gz_files.append((mtime, path))
            elif _as_time(mtime, now) < limit_time:
                old_files.append((mtime, path))

        rem_num = max(len(gz_files) + len(old_files) - cfg.backup_num, 0)
        self._debug("clean old files, gzNum:", len(gz_files), "oldNum:", len(old_files),
                    "remNum:", rem_num)

        if rem_num > 0 and cfg.backup_num > 0:
            if gz_files:
                rem_num = self._remove_old_gz_files(rem_num, gz_files)
            if rem_num > 0 and old_files:
                old_files = self._remove_old_files(rem_num, old_files)

        if cfg.compress and old_files:
            self._debug("compress old normal files to gz files")
            self._compress_files(old_files)

    def _find_candidates(self, now: datetime) -> list[tuple[str, str, float]]:
        """Files of the log's directory whose names match, minus expired ones (removed)."""
        cut_time = now - self._backup_dur if self._cfg.backup_time > 0 else None
        directory = self._file_dir or "."
        found: list[tuple[str, str, float]] = []

        with os.scandir(directory) as entries:
            listing = [entry for entry in entries if entry.is_file()]

        for entry in listing:
            if not entry.name.startswith(self._only_name):
                continue
            try:
                mtime = entry.stat().st_mtime
            except OSError:
                continue
            if cut_time is not None and not _as_time(mtime, now) > cut_time:
                self._debug("remove expired file:", entry.path)
                try:
                    os.remove(entry.path)
                except OSError as err:
                    print_errln("rotatefile: remove expired file error:", err)
                continue
            found.append((entry.path, entry.name, mtime))
        return found

    def _remove_old_gz_files(self, rem_num: int, gz_files: list[tuple[float, str]]) -> int:
        gz_files.sort()
        self._debug("remove old gz files ...")
        for _, path in gz_files[:rem_num]:
            self._debug("remove old gz file:", path)
            try:
                os.remove(path)
            except OSError as err:
                raise OSError(f"remove old gz file error: {err}") from err
            rem_num -= 1
        return rem_num

    def _remove_old_files(
        self, rem_num: int, old_files: list[tuple[float, str]]
    ) -> list[tuple[float, str]]:
        old_files.sort()
        self._debug("remove old normal files ...")
        for _, path in old_files[:rem_num]:
            self._debug("remove old file:", path)
            try:
                os.remove(path)
            except OSError as err:
                raise OSError(f"remove old file error: {err}") from err
        return old_files[rem_num:]

    def _compress_files(self, old_files: list[tuple[float, str]]) -> None:
        for _, path in old_files:
            try:
                compress_file(path, path + COMPRESS_SUFFIX)
            except OSError as err:
                raise OSError(f"compress old file error: {err}") from err
            self._debug("compress and rm old file:", path)
            try:
                os.remove(path)
            except OSError as err:
                raise OSError(f"remove file error after compress: {err}") from err

    # --- helpers ---

    def _open_file(self, logfile: str) -> None:
        directory = os.path.dirname(logfile)
        if directory:
            os.makedirs(directory, exist_ok=True)
        fd = os.open(logfile, DEFAULT_FILE_FLAGS, self._cfg.file_perm)
        self._file = os.fdopen(fd, "ab")
        self._path = logfile

    def _build_file_path(self, suffix: str) -> str:
        """E.g. ``logs/error.20220423_1600.log``."""
        name = f"{self._only_name}.{suffix}{self._file_ext}"
        return os.path.join(self._file_dir, name) if self._file_dir else name

    def _debug(self, *values: object) -> None:
        if self._cfg.debug_mode:
            message = " ".join(str(value) for value in values)
            sys.stdout.write(f"[rotalog.DEBUG] ID:{self._id} | {message}\n")


def new_writer(config: Config) -> Writer:
    """Create a writer from a config and open its file."""
    return Writer(config)


def new_writer_with(*fns: ConfigFn) -> Writer:
    """Create a writer from the default config with some settings."""
    return new_writer(new_config_with(*fns))