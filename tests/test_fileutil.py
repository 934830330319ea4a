import gzip
import os
import struct
from datetime import datetime, timedelta

import pytest

from rotalog.fileutil import MockClock, compress_file, print_errln


def test_print_errln_without_error(capsys):
    print_errln("test", None)
    assert capsys.readouterr().err == ""


def test_print_errln_with_error(capsys):
    print_errln("test", ValueError("an error"))
    assert capsys.readouterr().err == "test an error\n"


def test_compress_file_round_trip(tmp_path):
    src = tmp_path / "app.log.1"
    content = b"line one\nline two\n" * 50
    src.write_bytes(content)
    os.utime(src, (1_600_000_000, 1_600_000_000))

    dst = tmp_path / "out" / "app.log.1.gz"
    compress_file(src, dst)

    with gzip.open(dst, "rb") as fh:
        assert fh.read() == content

    header = dst.read_bytes()[:10]
    assert header[:2] == b"\x1f\x8b"
    assert struct.unpack("<I", header[4:8])[0] == 1_600_000_000


def test_compress_file_stores_name(tmp_path):
    src = tmp_path / "error.log.20231116"
    src.write_bytes(b"data")
    dst = tmp_path / "error.log.20231116.gz"
    compress_file(src, dst)
    assert b"error.log.20231116\x00" in dst.read_bytes()


def test_compress_file_missing_source(tmp_path):
    with pytest.raises(FileNotFoundError):
        compress_file(tmp_path / "missing.log", tmp_path / "missing.log.gz")


def test_mock_clock_now_and_add():
    clock = MockClock("2023-11-16 23:59:55")
    assert clock.now() == datetime(2023, 11, 16, 23, 59, 55)
    clock.add(timedelta(seconds=6))
    assert clock.now() == datetime(2023, 11, 17, 0, 0, 1)
    assert clock.datetime() == "2023-11-17 00:00:01"


def test_mock_clock_datetime():
    clock = MockClock("2024-03-25 08:04:02")
    assert clock.datetime() == "2024-03-25 08:04:02"


def test_mock_clock_invalid():
    with pytest.raises(ValueError):
        MockClock("not a date")