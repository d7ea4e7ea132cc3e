from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
import re
from typing import Optional

from .errors import ConfigurationError, ConflictingSpec, InvalidRange
from .timestamp_format import localize

# zero value for the lower range bound when --from is not given
EPOCH = datetime.min.replace(tzinfo=timezone.utc)

# explicit timestamps accepted for --from and --to
VALID_DATESPEC_FORMATS = [
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S,%f",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S,%f",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%d",
]

_DURATION_UNITS = {
    # microseconds per unit
    "ns": 0.001,
    "us": 1,
    "µs": 1,
    "μs": 1,
    "ms": 1_000,
    "s": 1_000_000,
    "m": 60_000_000,
    "h": 3_600_000_000,
}
_DURATION_COMPONENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_RELATIVE_TIME = re.compile(r"(\d+)([smhd])$", flags=re.IGNORECASE)


@dataclass(frozen=True)
class Options:
    """
    Resolved time range and dateless-line policy, shared by all sources.
    """
    from_: datetime
    to: datetime
    skip_dateless: bool = False
    multiline: bool = False

    def __post_init__(self):
        if self.from_ >= self.to:
            raise InvalidRange("Start date must be before end date.")

    @property
    def ignore_dateless(self) -> bool:
        return self.skip_dateless or self.multiline

    def contains(self, dt: datetime) -> bool:
        return self.from_ <= dt < self.to


def parse_duration(duration_str: str) -> timedelta:
    """
    Parse a signed duration such as "1h30m", "-5m", "1.5h" or "300ms".
    """
    s = duration_str.strip()
    sign = 1
    if s and s[0] in "+-":
        sign = -1 if s[0] == "-" else 1
        s = s[1:]

    if s == "0":
        return timedelta(0)
    if not s:
        raise ConfigurationError(f"invalid duration {duration_str!r}")

    total_us = 0.0
    pos = 0
    while pos < len(s):
        m = _DURATION_COMPONENT.match(s, pos)
        if not m:
            raise ConfigurationError(f"invalid duration {duration_str!r}")
        qty, unit = m.groups()
        total_us += _DURATION_UNITS[unit] * float(qty)
        pos = m.end()

    try:
        return sign * timedelta(microseconds=total_us)
    except OverflowError as exc:
        raise ConfigurationError(f"duration {duration_str!r} is out of range") from exc


def parse_time_using(ts_str: str, formats: list[str]) -> datetime:
    for fmt in formats:
        try:
            return datetime.strptime(ts_str, fmt)
        except ValueError:
            pass
    # fall back to ISO 8601, which also accepts explicit offsets
    try:
        return datetime.fromisoformat(ts_str.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"no matching format for input string {ts_str!r}") from None


def parse_relative_time(ts_str: str, now: datetime) -> datetime:
    parts = _RELATIVE_TIME.match(ts_str)
    if parts:
        qty, unit = parts.groups()
        seconds = int(qty)
        for unit_type, mult in [("s", 1), ("m", 60), ("h", 60), ("d", 24)]:
            seconds *= mult
            if unit.lower() == unit_type:
                return now - timedelta(seconds=seconds)

    raise ValueError(f"invalid relative time string {ts_str!r}")


def parse_datespec(spec: str, now: datetime, location: Optional[tzinfo] = None) -> datetime:
    """
    Parse a --from/--to value: "now", "epoch", a relative time before now such
    as "15m" or "2h", or an explicit timestamp. Timestamps without offset are
    taken to be in location (local time if None).
    """
    spec = spec.strip()
    if spec.lower() == "now":
        return now
    if spec.lower() == "epoch":
        return EPOCH

    try:
        if _RELATIVE_TIME.match(spec):
            return parse_relative_time(spec, now)
        return localize(parse_time_using(spec, VALID_DATESPEC_FORMATS), location)
    except (ValueError, OverflowError) as exc:
        raise ConfigurationError(f"Can't parse date spec {spec!r}") from exc


def _truncate_for(duration: timedelta, now: datetime) -> datetime:
    # truncate absolute time, so hours in a +05:30 zone end at half past
    utc_now = now.astimezone(timezone.utc)
    if duration >= timedelta(hours=1):
        truncated = utc_now.replace(minute=0, second=0, microsecond=0)
    elif duration >= timedelta(minutes=1):
        truncated = utc_now.replace(second=0, microsecond=0)
    else:
        truncated = utc_now.replace(microsecond=0)
    return truncated.astimezone(now.tzinfo)


def resolve_range(
        from_: Optional[datetime],
        to: Optional[datetime],
        duration: Optional[timedelta],
        now: datetime,
) -> tuple[datetime, datetime]:
    """
    Combine the optional --from, --to and --duration values into a concrete
    [from, to) interval. A zero duration counts as not given.

    With only a duration, the interval ends at now truncated to the hour,
    minute or second (the coarsest unit not longer than the duration), so
    that "--duration 1h" selects the last full hour.
    """
    if not duration:
        duration = None

    if duration is not None and from_ is not None and to is not None:
        raise ConflictingSpec("--duration can only be used with either --from or --to.")

    try:
        if duration is not None:
            if from_ is None and to is None:
                to = _truncate_for(duration, now)
                from_ = to - duration
            elif from_ is None:
                from_ = to - duration
            elif to is None:
                to = from_ + duration
    except OverflowError as exc:
        raise InvalidRange(f"--duration {duration} is out of range") from exc

    if from_ is None:
        from_ = EPOCH
    if to is None:
        to = now

    if from_ >= to:
        raise InvalidRange("Start date must be before end date.")
    return from_, to
