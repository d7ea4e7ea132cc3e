#
# dtgrep.py
#
# Utility for printing the lines of one or more log files that fall in a given
# time range, merged in timestamp order.
#

import argparse
from contextlib import ExitStack
from datetime import datetime
import logging
import os
import sys
from typing import BinaryIO, Optional

import littletable as lt
from rich.console import Console
from rich.logging import RichHandler

from . import about
from .errors import DtgrepError, SourceError
from .file_reading import STDIN_NAME, FileReader
from .line_source import LineSource
from .merging import StreamMerger
from .seeking import locate
from .time_range import Options, parse_datespec, parse_duration, resolve_range
from .timestamp_format import FORMATS, TimestampExtractor, format_spec_from_string, resolve_location

FORMAT_ENV_VAR = "DTGREP_FORMAT"
DEFAULT_FORMAT = "rsyslog"

logger = logging.getLogger(__name__)

err_console = Console(stderr=True)


def make_argument_parser():
    default_format = os.environ.get(FORMAT_ENV_VAR) or DEFAULT_FORMAT

    parser = argparse.ArgumentParser(
        prog="dtgrep",
        description="Print log lines in a time range, merging several logs by timestamp.",
        epilog=about.text,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("files", nargs="*", help="log files to search ('-' or none for standard input)")
    parser.add_argument(
        "--from", dest="from_", metavar="DATESPEC",
        help="print all lines from DATESPEC inclusively (default: epoch)"
    )
    parser.add_argument(
        "--to", metavar="DATESPEC",
        help="print all lines until DATESPEC exclusively (default: now)"
    )
    parser.add_argument(
        "--duration", metavar="DURATION",
        help="print all lines in DURATION from --from or until --to"
    )
    parser.add_argument(
        "--format", default=default_format, metavar="FORMAT",
        help=f"use FORMAT to parse timestamps (default: {default_format.replace('%', '%%')}, from ${FORMAT_ENV_VAR} if set)"
    )
    parser.add_argument(
        "--pattern", metavar="REGEX",
        help="regular expression locating the timestamp in a line, with (...) in place of the timestamp"
    )
    parser.add_argument("--skip-dateless", action="store_true", help="ignore all lines without timestamp")
    parser.add_argument(
        "--multiline", action="store_true",
        help="print all lines between the start and end line even if they are not timestamped"
    )
    parser.add_argument(
        "--location", default="Local", metavar="TZ",
        help="time zone for timestamps without offset (default: Local)"
    )
    parser.add_argument(
        "--encoding", "-enc", default="utf-8",
        help="encoding used to read timestamps from log lines (default: utf-8)"
    )
    parser.add_argument(
        "--no-seek", action="store_true",
        help="read plain files from the start instead of searching for the start of the range"
    )
    parser.add_argument("--list-formats", action="store_true", help="list the named timestamp formats and exit")
    parser.add_argument("--debug", action="store_true", help="log debugging information to stderr")
    parser.add_argument("--version", action="version", version=f"%(prog)s {about.version}")

    return parser


def configure_logging(debug: bool) -> None:
    package_logger = logging.getLogger("dtgrep")
    package_logger.setLevel(logging.DEBUG if debug else logging.WARNING)
    if not package_logger.handlers:
        handler = RichHandler(console=err_console, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        package_logger.addHandler(handler)


def present_formats() -> None:
    formats_table = lt.Table("formats")
    formats_table.insert_many(
        {"name": name, "template": entry.template, "example": entry.example, "description": entry.description}
        for name, entry in FORMATS.items()
    )
    formats_table.present(caption="any other FORMAT is used as a strptime template")


class DtgrepApplication:
    def __init__(
            self,
            config: argparse.Namespace,
            now: Optional[datetime] = None,
            output: Optional[BinaryIO] = None,
    ):
        self.config = config
        self.fnames = config.files or [STDIN_NAME]
        self.output = output if output is not None else sys.stdout.buffer
        self.use_seek = not config.no_seek

        self.location = resolve_location(config.location)

        # reference instant, captured once, for "now" in ranges and the year of year-less timestamps
        if now is None:
            now = datetime.now(self.location) if self.location is not None else datetime.now().astimezone()
        self.now = now

        self.format = format_spec_from_string(config.format, config.pattern).resolve(self.location)

        from_ = parse_datespec(config.from_, now, self.location) if config.from_ else None
        to = parse_datespec(config.to, now, self.location) if config.to else None
        duration = parse_duration(config.duration) if config.duration else None
        from_, to = resolve_range(from_, to, duration, now)

        self.options = Options(from_, to, skip_dateless=config.skip_dateless, multiline=config.multiline)
        self.extractor = TimestampExtractor(self.format, now, config.encoding)

        logger.debug("range [%s, %s), format %r", from_, to, self.format.template)

    def _open_source(self, fname: str, stack: ExitStack) -> Optional[LineSource]:
        reader = stack.enter_context(FileReader.get_reader(fname))

        if reader.seekable and self.use_seek:
            offset = locate(reader.stream, self.extractor, self.options, source_name=fname)
            if offset is None:
                logger.debug("%s: time range not in file, skipping", fname)
                reader.close()
                return None
            try:
                reader.stream.seek(offset)
            except OSError as exc:
                raise SourceError(fname, f"cannot seek to offset {offset}: {exc}") from exc

        return LineSource(fname, reader.stream, self.extractor, self.options)

    def run(self) -> int:
        """
        Write the selected lines to the output. Returns the number of lines written.
        """
        with ExitStack() as stack:
            sources = []
            for fname in self.fnames:
                source = self._open_source(fname, stack)
                if source is not None:
                    sources.append(source)

            merger = stack.enter_context(StreamMerger(sources))
            count = 0
            for merged_line in merger:
                self.output.write(merged_line.line + b"\n")
                count += 1

        self.output.flush()
        logger.debug("%d lines written", count)
        return count


def main():

    parser = make_argument_parser()
    args_ns = parser.parse_args()

    configure_logging(args_ns.debug)

    if args_ns.list_formats:
        present_formats()
        return

    try:
        app = DtgrepApplication(args_ns)
        app.run()
    except DtgrepError as exc:
        sys.stdout.flush()
        err_console.print(str(exc), style="red", markup=False, highlight=False)
        sys.exit(1)
    except BrokenPipeError:
        # output closed early, e.g. piped into head
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        sys.exit(1)


if __name__ == '__main__':
    main()
