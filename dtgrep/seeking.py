"""
Binary search for the start of the time range in a seekable log file.

The file is treated as a sequence of fixed-size blocks. Each probe seeks to
the start of a block, throws away the (possibly partial) line it landed in,
and reads forward until a line with a timestamp turns up. Once the bounds are
adjacent, a short linear scan from the lower block finds the exact offset of
the first line at or after the start of the range.

This is only sound if timestamps never decrease through the file.
"""
from __future__ import annotations

from datetime import datetime
import io
import logging
from typing import BinaryIO, Optional

from .errors import DatelessLineError, ExtractionError, SourceError
from .time_range import Options
from .timestamp_format import TimestampExtractor

logger = logging.getLogger(__name__)

BLOCK_SIZE = 4096


def _next_timestamp(
        stream: BinaryIO,
        extract: TimestampExtractor,
        options: Options,
        source_name: str,
) -> tuple[Optional[datetime], int]:
    """
    Read lines from the current position until one has a timestamp.
    Returns that timestamp (None at end of stream) and the offset at which
    the line carrying it starts.
    """
    while True:
        line_start = stream.tell()
        line = stream.readline()
        if not line:
            return None, line_start
        line = line.rstrip(b"\r\n")
        try:
            return extract(line), line_start
        except ExtractionError:
            if not options.ignore_dateless:
                raise DatelessLineError(source_name, extract.decode(line)) from None


def _probe(
        stream: BinaryIO,
        block: int,
        extract: TimestampExtractor,
        options: Options,
        source_name: str,
        block_size: int,
) -> Optional[datetime]:
    stream.seek(block * block_size)
    # skip partial line
    if not stream.readline():
        return None
    dt, _ = _next_timestamp(stream, extract, options, source_name)
    return dt


def stream_size(stream: BinaryIO) -> int:
    pos = stream.tell()
    size = stream.seek(0, io.SEEK_END)
    stream.seek(pos)
    return size


def locate(
        stream: BinaryIO,
        extract: TimestampExtractor,
        options: Options,
        from_: Optional[datetime] = None,
        *,
        source_name: str = "",
        block_size: int = BLOCK_SIZE,
) -> Optional[int]:
    """
    Find the byte offset of the first line with a timestamp at or after from_
    (default: options.from_). Returns None if no such line exists, in which
    case nothing in the stream can be in range.

    Lines without timestamp are stepped over if options allow dateless lines,
    otherwise DatelessLineError is raised. I/O failures raise SourceError.
    """
    if from_ is None:
        from_ = options.from_

    try:
        size = stream_size(stream)
        low, high = 0, size // block_size
        probes = 0

        while high - low > 1:
            mid = (low + high) // 2
            dt = _probe(stream, mid, extract, options, source_name, block_size)
            probes += 1
            # no timestamped line after mid means the target can only be before it
            if dt is not None and dt < from_:
                low = mid
            else:
                high = mid

        stream.seek(low * block_size)
        if low > 0:
            stream.readline()

        while True:
            dt, line_start = _next_timestamp(stream, extract, options, source_name)
            if dt is None:
                logger.debug("%s: no line at or after %s (%d probes)", source_name, from_, probes)
                return None
            if dt >= from_:
                logger.debug("%s: range starts at offset %d (%d probes)", source_name, line_start, probes)
                return line_start

    except (OSError, EOFError) as exc:
        raise SourceError(source_name, f"error finding dates: {exc}") from exc
