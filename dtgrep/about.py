version = "0.5.0"

text = r"""
dtgrep prints the lines of one or more log files whose timestamp falls in the
range [--from, --to). Lines from several files are merged into a single
stream in timestamp order.

Plain files are searched with a binary search, so selecting the last hour of a
multi-gigabyte log reads only a few blocks of it. Files ending in .gz/.z and
.bz2/.bz, and standard input ("-", or no files at all), are read sequentially.

DATESPEC values for --from and --to are "now", "epoch", a time before now such
as "15m", "2h" or "1d", or a timestamp in `YYYY-MM-DD HH:MM:SS.SSS` format, with
trailing fractional seconds, seconds and time optional, "," permissible for the
decimal point and "T" permissible between date and time. ISO 8601 timestamps
with offset are accepted as well.

DURATION values look like "1h", "1h30m", "90s" or "-15m". Given alone, the
range ends at the current time truncated to the hour, minute or second.

FORMAT is one of the names shown by --list-formats, or a strptime template such
as "%Y/%m/%d %H:%M:%S". The default can be set with the DTGREP_FORMAT
environment variable. Use --pattern to say where the timestamp is in the line,
with "(...)" marking its place, for example '\[(...)\]'.
"""  # noqa
