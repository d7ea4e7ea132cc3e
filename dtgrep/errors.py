from __future__ import annotations


class DtgrepError(Exception):
    """Base class for all errors raised by dtgrep."""


class ConfigurationError(DtgrepError):
    """
    Invalid command line or range configuration - always reported before any
    output is written.
    """


class ConflictingSpec(ConfigurationError):
    pass


class InvalidRange(ConfigurationError):
    pass


class UnknownFormat(ConfigurationError):
    pass


class ExtractionError(DtgrepError, ValueError):
    """A line whose timestamp could not be found or parsed."""

    def __init__(self, line: str, reason: str):
        super().__init__(f"{reason}: {line!r}")
        self.line = line


class NoMatch(ExtractionError):
    def __init__(self, line: str):
        super().__init__(line, "no timestamp found in line")


class ParseFailure(ExtractionError):
    def __init__(self, line: str, text: str, template: str):
        super().__init__(line, f"cannot parse {text!r} using {template!r}")
        self.text = text


class DatelessLineError(DtgrepError):
    """
    Raised when a line without timestamp is found and neither --skip-dateless
    nor --multiline allow it.
    """

    def __init__(self, source_name: str, line: str):
        super().__init__(f"Aborting. Found line without date in {source_name}: {line}")
        self.source_name = source_name
        self.line = line


class SourceError(DtgrepError):
    """Open, seek or read failure on an input source."""

    def __init__(self, source_name: str, message: str):
        super().__init__(f"{source_name}: {message}")
        self.source_name = source_name
