from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
import re
from typing import NamedTuple, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import ConfigurationError, NoMatch, ParseFailure, UnknownFormat


class CatalogEntry(NamedTuple):
    template: str
    example: str
    description: str


# well-known formats, selectable by name with --format
FORMATS: dict[str, CatalogEntry] = {
    "rsyslog": CatalogEntry(
        "%b %d %H:%M:%S",
        "Jan  2 15:04:05",
        "syslog/rsyslog traditional format (no year, current year is assumed)",
    ),
    "rfc3339": CatalogEntry(
        "%Y-%m-%dT%H:%M:%S%z",
        "2006-01-02T15:04:05+07:00",
        "RFC 3339 date and time with offset",
    ),
    "apache": CatalogEntry(
        "%d/%b/%Y:%H:%M:%S %z",
        "02/Jan/2006:15:04:05 -0700",
        "Apache/nginx common and combined access logs",
    ),
    "python": CatalogEntry(
        "%Y-%m-%d %H:%M:%S,%f",
        "2006-01-02 15:04:05,000",
        "Python logging module default asctime",
    ),
    "iso": CatalogEntry(
        "%Y-%m-%d %H:%M:%S",
        "2006-01-02 15:04:05",
        "date and time separated by a space",
    ),
}

# regex fragments for the strptime directives a template may contain
_DIRECTIVE_PATTERNS = {
    "Y": r"\d{4}",
    "y": r"\d{2}",
    "m": r"\d{1,2}",
    "d": r"\d{1,2}",
    "H": r"\d{1,2}",
    "I": r"\d{1,2}",
    "M": r"\d{1,2}",
    "S": r"\d{1,2}",
    "f": r"\d{1,6}",
    "j": r"\d{1,3}",
    "p": r"[AaPp][Mm]",
    "b": r"[A-Za-z]{3}",
    "h": r"[A-Za-z]{3}",
    "B": r"[A-Za-z]+",
    "a": r"[A-Za-z]{3}",
    "A": r"[A-Za-z]+",
    "z": r"(?:Z|[+-]\d{2}:?\d{2})",
    "Z": r"[A-Za-z]+",
    "%": "%",
}

_TEMPLATE_TOKEN = re.compile(r"%(?P<directive>.?)|(?P<space>\s+)|(?P<literal>[^%\s]+)", re.DOTALL)

TIMESTAMP_PLACEHOLDER = "(...)"


def template_to_regex(template: str) -> str:
    """
    Translate a strptime template into a regular expression matching the
    timestamps it can parse. Literal text is escaped and any run of whitespace
    matches one or more whitespace characters, as strptime itself does.
    """
    parts = []
    has_directive = False
    for token in _TEMPLATE_TOKEN.finditer(template):
        if token["space"]:
            parts.append(r"\s+")
        elif token["literal"]:
            parts.append(re.escape(token["literal"]))
        else:
            directive = token["directive"]
            if not directive or directive not in _DIRECTIVE_PATTERNS:
                raise UnknownFormat(f"unsupported directive '%{directive}' in format {template!r}")
            parts.append(_DIRECTIVE_PATTERNS[directive])
            has_directive = has_directive or directive != "%"

    if not has_directive:
        raise UnknownFormat(f"unknown format {template!r} - not a format name or a strptime template")
    return "".join(parts)


@dataclass(frozen=True)
class Format:
    """
    Pattern to locate a timestamp in a log line, and strptime template to parse it.

    The location is used for timestamps that carry no offset of their own
    (None means the local time zone); it does not take part in equality.
    """
    pattern: str
    template: str
    location: Optional[tzinfo] = field(default=None, compare=False)

    @classmethod
    def from_template(
            cls,
            template: str,
            pattern: Optional[str] = None,
            location: Optional[tzinfo] = None,
    ) -> Format:
        timestamp_regex = template_to_regex(template)
        if pattern is None:
            pattern = timestamp_regex
        elif TIMESTAMP_PLACEHOLDER in pattern:
            pattern = pattern.replace(TIMESTAMP_PLACEHOLDER, f"(?P<ts>{timestamp_regex})", 1)

        try:
            re.compile(pattern)
        except re.error as exc:
            raise UnknownFormat(f"invalid pattern {pattern!r}: {exc}") from exc

        return cls(pattern, template, location)

    @property
    def has_year(self) -> bool:
        return "%Y" in self.template or "%y" in self.template


@dataclass(frozen=True)
class NamedFormat:
    name: str

    def resolve(self, location: Optional[tzinfo] = None) -> Format:
        try:
            entry = FORMATS[self.name]
        except KeyError:
            raise UnknownFormat(f"unknown format name {self.name!r}") from None
        return Format.from_template(entry.template, location=location)


@dataclass(frozen=True)
class CustomFormat:
    template: str
    pattern: Optional[str] = None

    def resolve(self, location: Optional[tzinfo] = None) -> Format:
        return Format.from_template(self.template, self.pattern, location)


FormatSpec = Union[NamedFormat, CustomFormat]


def format_spec_from_string(format_str: str, pattern: Optional[str] = None) -> FormatSpec:
    """
    A catalog name selects that catalog entry, anything else is taken as a
    strptime template. A custom line pattern always makes a custom format
    (using the catalog template when a name is given).
    """
    if pattern is None and format_str in FORMATS:
        return NamedFormat(format_str)
    entry = FORMATS.get(format_str)
    return CustomFormat(entry.template if entry else format_str, pattern)


def resolve_location(name: Optional[str]) -> Optional[tzinfo]:
    if not name or name == "Local":
        return None
    if name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError(f"Can't load location: {name!r}") from exc


def localize(dt: datetime, location: Optional[tzinfo]) -> datetime:
    """Attach location to a naive datetime; local time zone if location is None."""
    if dt.tzinfo is not None:
        return dt
    if location is None:
        return dt.astimezone()
    return dt.replace(tzinfo=location)


class TimestampExtractor:
    """
    Callable that finds and parses the timestamp in a log line.

    Templates without a year are resolved against the year of the reference
    instant, so "Jan 01 10:00:00" read with a reference in 2024 is
    2024-01-01 10:00:00. Logs spanning a New Year are not corrected.
    """
    def __init__(self, fmt: Format, reference: datetime, encoding: str = "utf-8"):
        self.format = fmt
        self.reference = reference
        self.encoding = encoding

        self._re_pattern_search = re.compile(fmt.pattern).search
        self._year_prefix = "" if fmt.has_year else f"{reference.year} "
        self._strptime_format = fmt.template if fmt.has_year else f"%Y {fmt.template}"

    def decode(self, line: Union[str, bytes]) -> str:
        if isinstance(line, bytes):
            return line.decode(self.encoding, errors="replace")
        return line

    def __call__(self, line: Union[str, bytes]) -> datetime:
        line = self.decode(line)

        m = self._re_pattern_search(line)
        if m is None:
            raise NoMatch(line)

        timestamp_str = self._year_prefix + self._timestamp_text(m)
        try:
            dt = datetime.strptime(timestamp_str, self._strptime_format)
        except ValueError as ve:
            raise ParseFailure(line, timestamp_str, self._strptime_format) from ve

        return localize(dt, self.format.location)

    @staticmethod
    def _timestamp_text(m: re.Match) -> str:
        if "ts" in m.re.groupindex:
            return m["ts"]
        if m.re.groups:
            return m[1]
        return m[0]
