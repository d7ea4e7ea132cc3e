import re
from datetime import datetime, timedelta, timezone

import pytest

from dtgrep.errors import ConfigurationError, NoMatch, ParseFailure, UnknownFormat
from dtgrep.timestamp_format import (
    CustomFormat,
    FORMATS,
    Format,
    NamedFormat,
    TimestampExtractor,
    format_spec_from_string,
    resolve_location,
    template_to_regex,
)

REFERENCE = datetime(2024, 3, 1, tzinfo=timezone.utc)
UTC = timezone.utc


def _extract(format_name: str, line: str, location=UTC) -> datetime:
    fmt = NamedFormat(format_name).resolve(location)
    return TimestampExtractor(fmt, REFERENCE)(line)


@pytest.mark.parametrize(
    "format_name, line, expected_datetime",
    [
        (
            "rsyslog",
            "Jan 01 10:00:00 myhost sshd[1234]: Accepted publickey for admin",
            datetime(2024, 1, 1, 10, 0, 0, tzinfo=UTC),
        ),
        (
            "rsyslog",
            "Aug  1 10:00:01 webserver kernel: Out of memory",
            datetime(2024, 8, 1, 10, 0, 1, tzinfo=UTC),
        ),
        (
            "rfc3339",
            "2023-07-14T08:00:01Z service started",
            datetime(2023, 7, 14, 8, 0, 1, tzinfo=UTC),
        ),
        (
            "rfc3339",
            "2023-07-14T08:00:01+02:00 service started",
            datetime(2023, 7, 14, 8, 0, 1, tzinfo=timezone(timedelta(hours=2))),
        ),
        (
            "apache",
            '91.194.60.14 - - [16/Sep/2023:19:05:06 +0000] "GET /index.html HTTP/1.1" 200 1027',
            datetime(2023, 9, 16, 19, 5, 6, tzinfo=UTC),
        ),
        (
            "apache",
            '10.0.0.1 - bob [01/Aug/2025:10:00:01 -0700] "POST /api/v1/jobs HTTP/1.1" 201 1024',
            datetime(2025, 8, 1, 17, 0, 1, tzinfo=UTC),
        ),
        (
            "python",
            "2023-07-14 08:00:01,123 INFO Request processed successfully",
            datetime(2023, 7, 14, 8, 0, 1, 123000, tzinfo=UTC),
        ),
        (
            "iso",
            "2023-07-14 08:00:01 WARN   Connection lost due to timeout",
            datetime(2023, 7, 14, 8, 0, 1, tzinfo=UTC),
        ),
    ]
)
def test_catalog_format_parsing(format_name: str, line: str, expected_datetime: datetime):
    assert _extract(format_name, line) == expected_datetime


def test_year_fix_uses_reference_year():
    fmt = Format.from_template("%b %d %H:%M:%S", location=UTC)
    extract = TimestampExtractor(fmt, datetime(2024, 3, 1, tzinfo=UTC))
    assert extract("Jan 01 10:00:00") == datetime(2024, 1, 1, 10, 0, 0, tzinfo=UTC)


def test_year_fix_does_not_correct_year_boundary():
    # a December line read in January is placed in the current year
    fmt = Format.from_template("%b %d %H:%M:%S", location=UTC)
    extract = TimestampExtractor(fmt, datetime(2025, 1, 2, tzinfo=UTC))
    assert extract("Dec 31 23:59:59 last line").year == 2025


def test_location_applied_to_naive_timestamps():
    berlin = resolve_location("Europe/Berlin")
    dt = _extract("iso", "2024-07-01 12:00:00 summer", location=berlin)
    assert dt.astimezone(UTC) == datetime(2024, 7, 1, 10, 0, 0, tzinfo=UTC)


def test_explicit_offset_wins_over_location():
    berlin = resolve_location("Europe/Berlin")
    dt = _extract("rfc3339", "2024-07-01T12:00:00Z", location=berlin)
    assert dt == datetime(2024, 7, 1, 12, 0, 0, tzinfo=UTC)


def test_local_time_when_no_location():
    fmt = Format.from_template("%Y-%m-%d %H:%M:%S")
    dt = TimestampExtractor(fmt, REFERENCE)("2024-07-01 12:00:00")
    assert dt.tzinfo is not None
    assert dt.replace(tzinfo=None) == datetime(2024, 7, 1, 12, 0, 0)


def test_bytes_lines_are_decoded():
    fmt = Format.from_template("%Y-%m-%d %H:%M:%S", location=UTC)
    extract = TimestampExtractor(fmt, REFERENCE)
    assert extract("2024-01-01 00:00:00 café".encode()) == datetime(2024, 1, 1, tzinfo=UTC)


def test_no_match():
    fmt = Format.from_template("%Y-%m-%d %H:%M:%S", location=UTC)
    with pytest.raises(NoMatch):
        TimestampExtractor(fmt, REFERENCE)("    at sample.py line 32")


def test_parse_failure():
    # matches the pattern, but month 13 does not parse
    fmt = Format.from_template("%Y-%m-%d %H:%M:%S", location=UTC)
    with pytest.raises(ParseFailure) as exc_info:
        TimestampExtractor(fmt, REFERENCE)("2024-13-01 00:00:00 bad month")
    assert isinstance(exc_info.value, ValueError)


@pytest.mark.parametrize(
    "template, line, expected_text",
    [
        ("%b %d %H:%M:%S", "Jan  2 15:04:05 host", "Jan  2 15:04:05"),
        ("%Y/%m/%d %H:%M", "[2024/01/02 15:04] x", "2024/01/02 15:04"),
        ("%d/%b/%Y:%H:%M:%S %z", "a [02/Jan/2006:15:04:05 -0700] b", "02/Jan/2006:15:04:05 -0700"),
        ("100%% at %H:%M", "load 100% at 12:30 now", "100% at 12:30"),
    ]
)
def test_template_to_regex(template: str, line: str, expected_text: str):
    m = re.search(template_to_regex(template), line)
    assert m is not None
    assert m[0] == expected_text


@pytest.mark.parametrize("template", ["rsyslogg", "no directives here", "%Y-%m-%d %Q", "%H:%M %"])
def test_invalid_templates(template: str):
    with pytest.raises(UnknownFormat):
        template_to_regex(template)


def test_custom_pattern_placeholder():
    fmt = CustomFormat("%Y-%m-%d %H:%M:%S", r"\|(...)\|").resolve(UTC)
    extract = TimestampExtractor(fmt, REFERENCE)
    line = "1999-01-01 00:00:00 request |2024-02-03 04:05:06| handled"
    assert extract(line) == datetime(2024, 2, 3, 4, 5, 6, tzinfo=UTC)


def test_custom_pattern_first_group():
    fmt = CustomFormat("%H:%M:%S", r"^\w+ (\S+)").resolve(UTC)
    extract = TimestampExtractor(fmt, REFERENCE)
    # only the year comes from the reference instant
    assert extract("worker 10:11:12 done") == datetime(2024, 1, 1, 10, 11, 12, tzinfo=UTC)


def test_invalid_custom_pattern():
    with pytest.raises(UnknownFormat):
        CustomFormat("%H:%M:%S", r"((...)").resolve()


def test_format_equality_ignores_location():
    assert NamedFormat("rsyslog").resolve(UTC) == NamedFormat("rsyslog").resolve(None)
    assert NamedFormat("rsyslog").resolve() == CustomFormat(FORMATS["rsyslog"].template).resolve()
    assert NamedFormat("rsyslog").resolve() != NamedFormat("rfc3339").resolve()


def test_unknown_format_name():
    with pytest.raises(UnknownFormat):
        NamedFormat("nosuchformat").resolve()


@pytest.mark.parametrize(
    "format_str, pattern, expected_spec",
    [
        ("rsyslog", None, NamedFormat("rsyslog")),
        ("%Y%m%d", None, CustomFormat("%Y%m%d")),
        ("apache", r"\[(...)\]", CustomFormat(FORMATS["apache"].template, r"\[(...)\]")),
    ]
)
def test_format_spec_from_string(format_str, pattern, expected_spec):
    assert format_spec_from_string(format_str, pattern) == expected_spec


def test_resolve_location():
    assert resolve_location("Local") is None
    assert resolve_location("UTC") is timezone.utc
    with pytest.raises(ConfigurationError):
        resolve_location("Mars/Olympus_Mons")
