# rotalog

A file writer for logs that rotates its file by time and by size, and cleans
up old backups. It can gzip the backups it keeps. The writer accepts bytes or
text and has `write`, `flush` and `close`, so it can serve as the stream of a
`logging.StreamHandler` or any other code that writes to a file-like object.

## Installation

```
pip install rotalog
```

## Writing to a rotating file

```python
from rotalog.config import new_config
from rotalog.writer import new_writer

config = new_config("logs/app.log")
with new_writer(config) as writer:
    writer.write_string("[INFO] service started\n")
```

The directory of the log file is created when it does not exist.

`new_config(path, *fns)` starts from the defaults:

- the file rotates every hour (`EVERY_HOUR`) and also once it reaches 20 MiB
  (`max_size`);
- at most 20 backups are kept (`backup_num`);
- backups older than a week are removed (`backup_time`, in hours).

Each setting can be changed with option functions or on the `Config` object:

```python
from rotalog.config import new_config, with_compress, with_backup_num

config = new_config("logs/app.log", with_compress, with_backup_num(5))
config.max_size = 1024 * 1024
writer = config.create()
```

Other option functions are `with_filepath(path)` and `with_debug_mode`, which
prints what the writer does to standard output. A `rename_func(path,
rotate_num)` on the config chooses the backup name when a file is rotated by
size in rename mode.

`empty_config_with(*fns)` starts from a config with no size or time rotation
and no backup limits. `new_writer_with(*fns)` builds the default config,
applies the functions and opens the writer in one step. `writer.config()`
returns a copy of the writer's config.

## Rotation modes

`RotateMode` from `rotalog.modes` chooses how a file is rotated:

- `RotateMode.RENAME` (the default): the writer always writes to `app.log`. On
  rotation by time that file is renamed, for example to
  `app.20240101_1500.log`, and a new `app.log` is opened.
- `RotateMode.CREATE`: the writer writes straight to a file named for the
  current period, for example `app.20240101_1500.log`.

Rotation by size always renames the current file, adding a number to its name.

`RotateTime` from `rotalog.config` is the period in seconds; the constants
`EVERY_MONTH`, `EVERY_DAY`, `EVERY_HOUR`, `EVERY_30_MIN`, `EVERY_15_MIN`,
`EVERY_MINUTE` and `EVERY_SECOND` are provided, and multiplying one by an
integer gives another `RotateTime`. The file name suffix follows the period:
the date for a day or longer, date plus hour for hours, date plus minute for
minutes, date plus second for anything shorter.

## Cleaning backups

After a write or a call to `rotate()` the writer sometimes (about one time in
five) cleans old files on a background thread. `writer.clean()` does the same
at once: it removes backups older than `backup_time`, keeps at most
`backup_num` of them, oldest removed first, and gzips the rest when `compress`
is set. It raises `ValueError` when both limits are 0.

To clean log files written by other programs, use `FilesClear` from
`rotalog.cleanup`:

```python
from rotalog.cleanup import FilesClear

def settings(c):
    c.add_pattern("/var/log/myapp/*.log.*")
    c.backup_num = 10

cleaner = FilesClear(settings)
cleaner.clean()
```

`CConfig.add_dir_path(*dirs)` adds a pattern for every file of each existing
directory. `backup_time` is counted in `time_unit` (an hour by default).
`daemon_clean(on_stop)` cleans every `check_interval` and blocks until
`stop_daemon()` is called from another thread.

`compress_file(src, dst)` from `rotalog.fileutil` gzips a single file.

## Text helpers

`rotalog.textutil` has small helpers for building log lines:

- `format_args_with_spaces(args)` joins values with spaces (`None` becomes
  `<nil>`, booleans `true`/`false`);
- `encode_to_string(value)` renders a dict as `{key:value, ...}`;
- `parse_template_to_fields(template)` splits a `{{field}}` template into its
  field names and the text between them.

## Testing with a fixed clock

`MockClock` from `rotalog.fileutil` is a clock that only moves when told to,
which makes rotation by time easy to test:

```python
from datetime import timedelta
from rotalog.fileutil import MockClock
from rotalog.config import new_config
from rotalog.writer import new_writer

clock = MockClock("2023-11-16 23:59:55")
config = new_config("logs/day.log")
config.time_clock = clock
with new_writer(config) as writer:
    writer.write_string(clock.datetime() + " message\n")
    clock.add(timedelta(seconds=10))
    writer.write_string(clock.datetime() + " message\n")
```

## What it does not do

rotalog is only the file side of logging. It has no logger, log levels,
handlers or formatters of its own, and no command-line program; pair it with
the standard `logging` module or whatever produces your log lines.