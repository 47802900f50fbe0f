"""ccdb.errors
============

Typed failures raised by the parser, generator and the calling-layer helpers.

Callers distinguish "the report parsed but listed no packages" (a normal
:class:`~ccdb.models.ParsedReport` with an empty ``packages`` list) from "the
report could not be parsed" (:class:`MalformedReport`).
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional

__all__ = [
    "CcdbError",
    "ParseError",
    "MalformedReport",
    "InvalidRecord",
    "OutputWriteError",
    "ExternalToolError",
    "ConfigError",
]


class CcdbError(Exception):
    """Base class for every error raised by ccdb."""


class ParseError(CcdbError):
    """Raised when a project-info report cannot be turned into a model."""


class MalformedReport(ParseError):
    """The report is too incomplete to yield even a generated-file map."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"malformed project-info report: {reason}")
        self.reason = reason


class InvalidRecord(ParseError):
    """A single package record is unusable; the parser skips its chunk."""

    def __init__(self, chunk_index: int, reason: str) -> None:
        super().__init__(f"invalid package record at chunk {chunk_index}: {reason}")
        self.chunk_index = chunk_index
        self.reason = reason


class OutputWriteError(CcdbError):
    """The compile database (or its directory) could not be written."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"cannot write {path}: {reason}")
        self.path = path
        self.reason = reason


class ExternalToolError(CcdbError):
    """The build tool failed to produce a readable project-info report."""

    def __init__(
        self,
        message: str,
        returncode: Optional[int] = None,
        output: str = "",
    ) -> None:
        super().__init__(message)
        self.returncode = returncode
        self.output = output


class ConfigError(CcdbError):
    """Raised when a configuration file cannot be parsed or has bad values."""
