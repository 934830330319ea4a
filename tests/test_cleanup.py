import os
import threading
import time
from datetime import timedelta

import pytest

from rotalog.cleanup import CConfig, FilesClear, new_cconfig
from rotalog.fileutil import MockClock
from rotalog.modes import DEFAULT_BACK_NUM, DEFAULT_BACK_TIME


def _make_file(path, mtime):
    path.write_text("test contents ...")
    os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def clock():
    return MockClock("2024-01-01 12:00:00")


@pytest.fixture
def aged_files(tmp_path, clock):
    base = clock.now().timestamp()
    ages = [10, 8, 6, 2, 1]
    return [
        _make_file(tmp_path / f"file_clean.log.{idx:03d}", base - age)
        for idx, age in enumerate(ages)
    ]


def _remaining(tmp_path, prefix):
    return sorted(p.name for p in tmp_path.glob(prefix + "*"))


def test_new_cconfig_defaults():
    cfg = new_cconfig()
    assert cfg.backup_num == DEFAULT_BACK_NUM
    assert cfg.backup_time == DEFAULT_BACK_TIME
    assert cfg.time_unit == timedelta(hours=1)
    assert cfg.check_interval == timedelta(seconds=60)
    assert cfg.patterns == []


def test_add_dir_path_skips_missing(tmp_path):
    cfg = CConfig()
    cfg.add_dir_path(str(tmp_path), str(tmp_path / "not-exist-dir"))
    assert cfg.patterns == [f"{tmp_path}/*"]


def test_add_pattern_and_config_fns():
    cfg = CConfig().add_pattern("/tmp/a.log.*", "/tmp/b.log.*")
    cfg.with_config_fn(None, lambda c: setattr(c, "backup_num", 3))
    assert cfg.patterns == ["/tmp/a.log.*", "/tmp/b.log.*"]
    assert cfg.backup_num == 3


def test_files_clear_config_access():
    fc = FilesClear(lambda c: setattr(c, "backup_num", 7))
    assert fc.config().backup_num == 7
    other = new_cconfig()
    assert fc.with_config(other).config() is other
    fc.with_config_fn(lambda c: setattr(c, "backup_time", 5))
    assert other.backup_time == 5


def test_clean_by_time_and_number(tmp_path, clock, aged_files):
    (tmp_path / "subdir").mkdir()
    (tmp_path / "subdir" / "some.txt").write_text("test data")

    fc = FilesClear()
    fc.with_config(new_cconfig())

    def configure(c):
        c.add_dir_path(str(tmp_path), str(tmp_path / "not-exist-dir"))
        c.backup_num = 1
        c.backup_time = 3
        c.time_unit = timedelta(seconds=1)
        c.time_clock = clock

    fc.with_config_fn(configure)
    assert fc.config().backup_num == 1

    fc.clean()

    assert _remaining(tmp_path, "file_clean.log.") == ["file_clean.log.004"]
    assert (tmp_path / "subdir" / "some.txt").is_file()


def test_clean_by_time_only(tmp_path, clock, aged_files):
    fc = FilesClear(
        lambda c: c.add_pattern(str(tmp_path / "file_clean.log.*")),
        lambda c: setattr(c, "backup_num", 0),
        lambda c: setattr(c, "backup_time", 3),
        lambda c: setattr(c, "time_unit", timedelta(seconds=1)),
        lambda c: setattr(c, "time_clock", clock),
    )
    fc.clean()
    assert _remaining(tmp_path, "file_clean.log.") == [
        "file_clean.log.003",
        "file_clean.log.004",
    ]


def test_clean_by_number_with_long_backup_time(tmp_path, clock, aged_files):
    fc = FilesClear(
        lambda c: c.add_pattern(str(tmp_path / "file_clean.log.*")),
        lambda c: setattr(c, "backup_num", 2),
        lambda c: setattr(c, "time_clock", clock),
    )
    fc.clean()
    assert _remaining(tmp_path, "file_clean.log.") == [
        "file_clean.log.003",
        "file_clean.log.004",
    ]


def test_clean_error_when_no_limits():
    fc = FilesClear(
        lambda c: setattr(c, "backup_num", 0),
        lambda c: setattr(c, "backup_time", 0),
    )
    with pytest.raises(ValueError, match="both 0"):
        fc.clean()


def test_daemon_errors():
    fc = FilesClear(
        lambda c: setattr(c, "backup_num", 0),
        lambda c: setattr(c, "backup_time", 0),
    )
    with pytest.raises(RuntimeError):
        fc.stop_daemon()
    with pytest.raises(ValueError):
        fc.daemon_clean(None)


def test_daemon_clean(tmp_path):
    now = time.time()
    _make_file(tmp_path / "file_daemon_clean.log.000", now - 100)
    _make_file(tmp_path / "file_daemon_clean.log.001", now - 50)
    _make_file(tmp_path / "file_daemon_clean.log.002", now)

    pattern = str(tmp_path / "file_daemon_clean.*")

    def configure(c):
        c.add_pattern(pattern)
        c.backup_num = 1
        c.backup_time = 3
        c.time_unit = timedelta(seconds=1)
        c.check_interval = timedelta(milliseconds=50)

    fc = FilesClear(configure)
    assert fc.config().patterns == [pattern]

    stopped = threading.Event()
    worker = threading.Thread(target=fc.daemon_clean, args=(stopped.set,))
    worker.start()

    deadline = time.monotonic() + 5
    while time.monotonic() < deadline:
        if len(_remaining(tmp_path, "file_daemon_clean.log.")) == 1:
            break
        time.sleep(0.02)

    fc.stop_daemon()
    worker.join(timeout=5)

    assert stopped.is_set()
    assert _remaining(tmp_path, "file_daemon_clean.log.") == ["file_daemon_clean.log.002"]