"""Configuration for rotating log files: rotation periods, clocks and settings."""

from __future__ import annotations

import enum
import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional, Protocol, runtime_checkable

from .modes import DEFAULT_BACK_NUM, DEFAULT_BACK_TIME, DEFAULT_MAX_SIZE, RotateMode

ONE_MIN_SEC = 60
ONE_HOUR_SEC = 3600
ONE_DAY_SEC = 86400


class _Level(enum.Enum):
    DAY = 0
    HOUR = 1
    MIN = 2
    SEC = 3


def _round_half_away(value: int, multiple: int) -> int:
    """Round a non-negative value to the nearest multiple, halves rounding up."""
    remainder = value % multiple
    if remainder * 2 < multiple:
        return value - remainder
    return value + (multiple - remainder)


def _hour_start(moment: datetime) -> datetime:
    return moment.replace(minute=0, second=0, microsecond=0)


class RotateTime(int):
    """A rotation interval in seconds.

    File name suffixes by period:
      - daily: ``error.log.20201223``
      - hourly and by minutes: ``error.log.20201223_1500``, ``error.log.20201223_1523``
    """

    def interval(self) -> int:
        """The check interval in seconds."""
        return int(self)

    def _level(self) -> _Level:
        if self >= ONE_DAY_SEC:
            return _Level.DAY
        if self >= ONE_HOUR_SEC:
            return _Level.HOUR
        if self >= ONE_MIN_SEC:
            return _Level.MIN
        return _Level.SEC

    def first_check_time(self, now: datetime) -> datetime:
        """The first moment a rotation should be checked, aligned to the period."""
        level = self._level()
        if level is _Level.DAY:
            return now.replace(hour=23, minute=59, second=59, microsecond=999999)
        if level is _Level.HOUR:
            return _hour_start(now) + timedelta(hours=1) - timedelta(milliseconds=500)
        if level is _Level.MIN:
            minutes = self.interval() // 60
            next_min = now.minute + minutes
            if next_min >= 60:
                return _hour_start(now) + timedelta(hours=1)
            aligned = _round_half_away(next_min, minutes)
            return _hour_start(now) + timedelta(minutes=aligned)
        return now + timedelta(seconds=self.interval())

    def time_format(self) -> str:
        """The strftime format of the rotated file name suffix."""
        return {
            _Level.DAY: "%Y%m%d",
            _Level.HOUR: "%Y%m%d_%H00",
            _Level.MIN: "%Y%m%d_%H%M",
            _Level.SEC: "%Y%m%d_%H%M%S",
        }[self._level()]

    def __str__(self) -> str:
        level = self._level()
        seconds = self.interval()
        if level is _Level.DAY:
            return f"Every {seconds // ONE_DAY_SEC} Day"
        if level is _Level.HOUR:
            return f"Every {seconds // ONE_HOUR_SEC} Hours"
        if level is _Level.MIN:
            return f"Every {seconds // ONE_MIN_SEC} Minutes"
        return f"Every {seconds} Seconds"

    def __repr__(self) -> str:
        return f"RotateTime({int(self)})"

    def __mul__(self, other):
        result = int.__mul__(self, other)
        return result if result is NotImplemented else RotateTime(result)

    __rmul__ = __mul__


EVERY_MONTH = RotateTime(30 * ONE_DAY_SEC)
EVERY_DAY = RotateTime(ONE_DAY_SEC)
EVERY_HOUR = RotateTime(ONE_HOUR_SEC)
EVERY_30_MIN = RotateTime(30 * ONE_MIN_SEC)
EVERY_15_MIN = RotateTime(15 * ONE_MIN_SEC)
EVERY_MINUTE = RotateTime(ONE_MIN_SEC)
EVERY_SECOND = RotateTime(1)


@runtime_checkable
class Clocker(Protocol):
    """Anything that can tell the current time."""

    def now(self) -> datetime: ...


class FuncClock:
    """A clock backed by a plain callable."""

    def __init__(self, func: Callable[[], datetime]) -> None:
        self._func = func

    def now(self) -> datetime:
        return self._func()


DEFAULT_FILE_PERM = 0o664
DEFAULT_FILE_FLAGS = os.O_CREAT | os.O_WRONLY | os.O_APPEND
DEFAULT_TIME_CLOCK = FuncClock(datetime.now)

ConfigFn = Callable[["Config"], None]


@dataclass
class Config:
    """Settings of a rotating file writer."""

    filepath: str = ""
    file_perm: int = DEFAULT_FILE_PERM
    rotate_mode: RotateMode = RotateMode.RENAME
    # Maximum file size in bytes; 0 disables rotation by size.
    max_size: int = 0
    # Rotation interval; 0 disables rotation by time.
    rotate_time: RotateTime = field(default_factory=lambda: RotateTime(0))
    close_lock: bool = False
    # Maximum number of old files to keep; 0 means no limit.
    backup_num: int = 0
    # Maximum age of old files in hours; 0 means no limit.
    backup_time: int = 0
    compress: bool = False
    rename_func: Optional[Callable[[str, int], str]] = None
    time_clock: Clocker = DEFAULT_TIME_CLOCK
    debug_mode: bool = False

    def backup_duration(self) -> timedelta:
        """How long old files are kept."""
        if self.backup_time < 1:
            return timedelta(0)
        return timedelta(hours=self.backup_time)

    def apply(self, *fns: ConfigFn) -> "Config":
        """Apply setting functions in order and return self."""
        for fn in fns:
            fn(self)
        return self

    def create(self):
        """Create a rotating writer from this config."""
        from .writer import new_writer

        return new_writer(self)

    def is_mode(self, mode: RotateMode) -> bool:
        return self.rotate_mode == mode


def new_default_config() -> Config:
    """A config with the default size, period and backup limits."""
    return Config(
        max_size=DEFAULT_MAX_SIZE,
        rotate_time=EVERY_HOUR,
        backup_num=DEFAULT_BACK_NUM,
        backup_time=DEFAULT_BACK_TIME,
    )


def new_config(file_path: str, *fns: ConfigFn) -> Config:
    """A default config for the given file; the path wins over the setting functions."""
    return new_config_with(*fns, with_filepath(file_path))


def new_config_with(*fns: ConfigFn) -> Config:
    return new_default_config().apply(*fns)


def empty_config_with(*fns: ConfigFn) -> Config:
    """A config with no size, period or backup limits, then the given settings."""
    return Config().apply(*fns)


def with_filepath(logfile: str) -> ConfigFn:
    def _set(config: Config) -> None:
        config.filepath = logfile

    return _set


def with_debug_mode(config: Config) -> None:
    config.debug_mode = True


def with_compress(config: Config) -> None:
    config.compress = True


def with_backup_num(num: int) -> ConfigFn:
    def _set(config: Config) -> None:
        config.backup_num = num

    return _set