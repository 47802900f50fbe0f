"""ccdb.parser
============

Parser for the project-info report written by the build tool.

The report is a sequence of *chunks*: runs of non-blank lines separated by
blank lines. Chunk position is the only structure:

* the first chunk is a header and is skipped,
* the last chunk is the generated-file map
  (``generated_path source_path sequence_number`` per line),
* every chunk in between belongs to a package record.

A package record opens with an un-indented chunk whose first line is
``<name> <descriptor_path>`` and whose remaining lines are dependency include
paths. The indented chunks that follow are assigned by ordinal position:
sources, then flags, then outputs. Example::

    header

    core /ws/core/core.pkg
      /ws/core/include
      /ws/base/include

      /ws/core/src/a.cpp
      /ws/core/src/b.cpp

      -DCORE=1
      -O2

      /ws/build/core.o

    /ws/build/gen/a.pb.h /ws/core/src/a.cpp 1
"""
from __future__ import annotations

import io
from pathlib import Path
from typing import Iterable, Iterator, List, Sequence, Tuple, Union

from .errors import InvalidRecord, MalformedReport
from .logging import get_logger
from .models import GeneratedFile, PackageRecord, ParsedReport

__all__ = [
    "split_chunks",
    "parse",
    "parse_file",
    "parse_generated_files",
]

_LOGGER = get_logger("parser")

Chunk = List[str]

# sources, flags, outputs
_RECORD_FIELDS = 3


# ---------------------------------------------------------------------------
# Line helpers
# ---------------------------------------------------------------------------

def _is_blank(line: str) -> bool:
    return not line.strip()


def _is_indented(line: str) -> bool:
    return line[:1].isspace()


# ---------------------------------------------------------------------------
# Chunking
# ---------------------------------------------------------------------------

def split_chunks(lines: Iterable[str]) -> Iterator[Chunk]:
    """Yield maximal runs of non-blank lines from *lines*.

    Lines keep their leading whitespace (indentation is significant) but
    lose their line terminator.
    """
    current: Chunk = []
    for raw in lines:
        line = raw.rstrip("\r\n")
        if _is_blank(line):
            if current:
                yield current
                current = []
        else:
            current.append(line)
    if current:
        yield current


# ---------------------------------------------------------------------------
# Record parsing
# ---------------------------------------------------------------------------

def _stripped(chunk: Sequence[str]) -> List[str]:
    return [line.strip() for line in chunk if line.strip()]


def _parse_record(chunks: Sequence[Chunk], start: int, end: int) -> Tuple[PackageRecord, int]:
    """Parse the record opening at ``chunks[start]``.

    Only chunks before *end* are considered. Returns the record and the index
    of the first chunk that does not belong to it.
    """
    first = chunks[start]
    head = first[0]
    if _is_indented(head):
        raise InvalidRecord(start, "first line is indented")

    parts = head.split()
    if len(parts) < 2:
        raise InvalidRecord(start, f"expected '<name> <descriptor>', got {head.strip()!r}")

    record = PackageRecord(
        name=parts[0],
        descriptor_path=parts[1],
        dependencies=_stripped(first[1:]),
    )
    targets = (record.sources, record.flags, record.outputs)

    index = start + 1
    position = 0
    while index < end and _is_indented(chunks[index][0]):
        # Continuation chunks past the third keep extending outputs.
        targets[min(position, _RECORD_FIELDS - 1)].extend(_stripped(chunks[index]))
        position += 1
        index += 1
    return record, index


def parse_generated_files(chunk: Sequence[str]) -> List[GeneratedFile]:
    """Parse the generated-file map; lines with fewer than 3 fields are dropped."""
    entries: List[GeneratedFile] = []
    for line in chunk:
        parts = line.split()
        if len(parts) < 3:
            continue
        try:
            number = int(parts[2])
        except ValueError:
            number = 0
        entries.append(GeneratedFile(parts[0], parts[1], number))
    return entries


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse(report_text: Union[str, Iterable[str]]) -> ParsedReport:
    """Parse a project-info report into a :class:`~ccdb.models.ParsedReport`.

    *report_text* is either the full text or an iterable of lines (an open
    file works). Raises :class:`~ccdb.errors.MalformedReport` when the report
    has fewer than two chunks. Malformed package records are skipped one
    chunk at a time and never abort the parse.
    """
    lines = io.StringIO(report_text) if isinstance(report_text, str) else report_text
    chunks = list(split_chunks(lines))
    if len(chunks) < 2:
        raise MalformedReport(f"expected at least 2 chunks, found {len(chunks)}")

    map_index = len(chunks) - 1
    packages: List[PackageRecord] = []
    index = 1
    while index < map_index:
        try:
            record, index = _parse_record(chunks, index, map_index)
        except InvalidRecord as exc:
            _LOGGER.debug("Skipping chunk: %s", exc)
            index += 1
            continue
        packages.append(record)

    generated = parse_generated_files(chunks[map_index])
    _LOGGER.debug(
        "Parsed %d package(s) and %d generated file(s)", len(packages), len(generated)
    )
    return ParsedReport(packages=packages, generated_files=generated)


def parse_file(path: Union[str, Path]) -> ParsedReport:
    """Read and parse the report at *path*.

    A missing or unreadable file is reported as
    :class:`~ccdb.errors.MalformedReport`, like an empty one.
    """
    try:
        with open(path, encoding="utf-8") as handle:
            return parse(handle)
    except (OSError, UnicodeDecodeError) as exc:
        raise MalformedReport(f"cannot read {path}: {exc}") from exc
