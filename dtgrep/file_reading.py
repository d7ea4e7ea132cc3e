from __future__ import annotations

import abc
import os
import stat
import sys
from typing import BinaryIO

from .errors import SourceError

STDIN_NAME = "-"


class FileReader:
    """
    Opens a named input as a binary stream. The subclass is chosen by name
    (standard input, compressed file extensions), falling back to a plain file.

    Only regular files are seekable, so only they are eligible for the binary
    search for the start of the time range. A named pipe opened as a plain
    file is read sequentially like standard input.
    """

    @classmethod
    def get_reader(cls, name: str) -> FileReader:
        for subcls in cls.__subclasses__():
            if subcls is PlainFileReader:
                continue
            if subcls._can_read(name):
                return subcls(name)
        return PlainFileReader(name)

    @classmethod
    @abc.abstractmethod
    def _can_read(cls, fname: str) -> bool:
        """Override in subclasses"""

    @abc.abstractmethod
    def _open(self) -> BinaryIO:
        """Override in subclasses"""

    def __init__(self, file_name: str):
        self.file_name = file_name
        try:
            self.stream = self._open()
        except OSError as exc:
            raise SourceError(file_name, f"Cannot open: {exc.strerror or exc}") from exc
        self.seekable = self._is_seekable()

    def __repr__(self):
        return f"{type(self).__name__}({self.file_name!r})"

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _is_seekable(self) -> bool:
        return False

    def close(self) -> None:
        self.stream.close()


class PlainFileReader(FileReader):
    @classmethod
    def _can_read(cls, fname: str) -> bool:
        return True

    def _open(self) -> BinaryIO:
        return open(self.file_name, "rb")

    def _is_seekable(self) -> bool:
        try:
            return self.stream.seekable() and stat.S_ISREG(os.fstat(self.stream.fileno()).st_mode)
        except OSError:
            return False


class StdinReader(FileReader):
    @classmethod
    def _can_read(cls, fname: str) -> bool:
        return fname == STDIN_NAME

    def _open(self) -> BinaryIO:
        return sys.stdin.buffer


class GzipFileReader(FileReader):
    @classmethod
    def _can_read(cls, fname: str) -> bool:
        return fname.endswith((".gz", ".z"))

    def _open(self) -> BinaryIO:
        import gzip

        return gzip.open(self.file_name, "rb")


class Bzip2FileReader(FileReader):
    @classmethod
    def _can_read(cls, fname: str) -> bool:
        return fname.endswith((".bz2", ".bz"))

    def _open(self) -> BinaryIO:
        import bz2

        return bz2.open(self.file_name, "rb")
