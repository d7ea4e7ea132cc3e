from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
import heapq
import logging
from typing import NamedTuple, Optional

from .line_source import LineSource, Status

logger = logging.getLogger(__name__)


class MergedLine(NamedTuple):
    source: str
    timestamp: datetime
    line: bytes


class StreamMerger:
    """
    Class that takes a list of LineSources and yields their in-range lines as
    MergedLine tuples, in timestamp order across all sources.

    Uses a heap keyed by (buffered timestamp, input index) to select the source
    holding the earliest line; only that source is advanced and pushed back
    after its line has been emitted. Ties go to the source given first.

    Continuation lines (multiline option) are emitted right after the line they
    follow, before any other source gets a turn.

    A source that fails on a line without timestamp stops the merge by raising
    its error, unless isolate_failures is set, in which case the source is
    dropped with a warning and the other sources continue.
    """
    def __init__(self, sources: Iterable[LineSource], isolate_failures: bool = False):
        self.sources = list(sources)
        self.isolate_failures = isolate_failures

        self._heap: list[tuple[datetime, int]] = []
        self._primed = False
        self._current: Optional[int] = None

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def close(self) -> None:
        for source in self.sources:
            source.close()

    def __iter__(self):
        return self

    def _prime(self) -> None:
        self._primed = True
        for index, source in enumerate(self.sources):
            source.advance()
            self._push(index)

    def _push(self, index: int) -> None:
        source = self.sources[index]
        if source.active:
            heapq.heappush(self._heap, (source.timestamp, index))
        elif source.status is Status.FATAL:
            if not self.isolate_failures:
                raise source.error
            logger.warning("%s - skipping remainder of %s", source.error, source.name)

    def _emit(self, index: int) -> MergedLine:
        source = self.sources[index]
        self._current = index
        return MergedLine(source.name, source.timestamp, source.line)

    def __next__(self) -> MergedLine:
        if not self._primed:
            self._prime()

        # advance the source whose line was emitted last, now that it has been consumed
        if self._current is not None:
            index, self._current = self._current, None
            source = self.sources[index]
            source.advance()
            if source.active and source.continuation:
                return self._emit(index)
            self._push(index)

        if not self._heap:
            raise StopIteration

        _, index = heapq.heappop(self._heap)
        return self._emit(index)
