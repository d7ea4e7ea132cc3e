from __future__ import annotations

from datetime import datetime
import enum
import logging
from typing import BinaryIO, Optional

from .errors import DatelessLineError, DtgrepError, ExtractionError, SourceError
from .time_range import Options
from .timestamp_format import TimestampExtractor

logger = logging.getLogger(__name__)


class Status(enum.Enum):
    SEEKING = "seeking"
    IN_RANGE = "in range"
    OUT_OF_RANGE = "out of range"
    EXHAUSTED = "exhausted"
    FATAL = "fatal"


class LineSource:
    """
    Lazy cursor over the lines of one input stream.

    Starts in SEEKING, reading past lines before the start of the range. The
    first line inside the range moves it to IN_RANGE, where every call to
    advance() buffers the next line to emit. A line at or past the end of the
    range, or the end of the stream, makes the source EXHAUSTED; a line without
    timestamp that the options do not allow makes it FATAL.

    With the multiline option, a line without timestamp read while IN_RANGE is
    buffered as a continuation of the previous line, and keeps its timestamp.
    """
    def __init__(
            self,
            name: str,
            stream: BinaryIO,
            extract: TimestampExtractor,
            options: Options,
    ):
        self.name = name
        self.stream = stream
        self.extract = extract
        self.options = options

        self.line: Optional[bytes] = None
        self.timestamp: Optional[datetime] = None
        self.status = Status.SEEKING
        self.continuation = False
        self.error: Optional[DtgrepError] = None

    def __repr__(self):
        return f"{type(self).__name__}({self.name!r}, status={self.status.name})"

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    @property
    def active(self) -> bool:
        return self.status is Status.IN_RANGE

    def close(self) -> None:
        if not self.stream.closed:
            self.stream.close()

    def _readline(self) -> Optional[bytes]:
        try:
            raw = self.stream.readline()
        except (OSError, EOFError) as exc:
            raise SourceError(self.name, f"error reading file: {exc}") from exc
        if not raw:
            return None
        return raw.rstrip(b"\r\n")

    def _classify(self, dt: datetime) -> Status:
        if dt >= self.options.to:
            return Status.EXHAUSTED
        return Status.IN_RANGE if self.options.contains(dt) else Status.OUT_OF_RANGE

    def _finish(self, status: Status) -> None:
        self.status = status
        self.line = None
        self.continuation = False
        logger.debug("%s: %s", self.name, status.value)
        self.close()

    def advance(self) -> Status:
        """
        Read until the next line to emit is buffered, or the source ends.
        Returns the new status.
        """
        if self.status in (Status.EXHAUSTED, Status.FATAL):
            return self.status

        while True:
            line = self._readline()
            if line is None:
                self._finish(Status.EXHAUSTED)
                return self.status

            try:
                dt = self.extract(line)
            except ExtractionError:
                if self.options.multiline and self.status is Status.IN_RANGE:
                    self.line = line
                    self.continuation = True
                    return self.status
                if self.options.ignore_dateless:
                    continue
                self.error = DatelessLineError(self.name, self.extract.decode(line))
                self._finish(Status.FATAL)
                return self.status

            status = self._classify(dt)
            if status is Status.OUT_OF_RANGE:
                # before the range while seeking, or out of order while streaming
                continue
            if status is Status.EXHAUSTED:
                self._finish(status)
                return self.status

            self.line = line
            self.timestamp = dt
            self.continuation = False
            self.status = Status.IN_RANGE
            return self.status

