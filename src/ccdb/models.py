"""ccdb.models
============

Data-objects shared by the parser and the generator.

* :class:`PackageRecord` and :class:`GeneratedFile` are produced by
  :func:`ccdb.parser.parse` and grouped into a :class:`ParsedReport`.
* :class:`CompileEntry` is one element of the compile database written by
  :mod:`ccdb.generator`.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, List, Optional

__all__ = [
    "PackageRecord",
    "GeneratedFile",
    "ParsedReport",
    "CompileEntry",
    "OutputDirectoryStrategy",
]


@dataclass
class PackageRecord:
    """Build metadata for one compilable package."""

    name: str
    descriptor_path: str
    dependencies: List[str] = field(default_factory=list)
    sources: List[str] = field(default_factory=list)
    flags: List[str] = field(default_factory=list)
    outputs: List[str] = field(default_factory=list)

    @property
    def include_flags(self) -> List[str]:
        return [f"-I{dep}" for dep in self.dependencies]


@dataclass(frozen=True)
class GeneratedFile:
    """One ``generated_path source_path sequence_number`` line of the map."""

    generated_path: str
    source_path: str
    sequence_number: int = 0


@dataclass
class ParsedReport:
    """Structured form of a project-info report."""

    packages: List[PackageRecord] = field(default_factory=list)
    generated_files: List[GeneratedFile] = field(default_factory=list)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def source_count(self) -> int:
        return sum(len(pkg.sources) for pkg in self.packages)

    def package_named(self, name: str) -> Optional[PackageRecord]:
        for pkg in self.packages:
            if pkg.name == name:
                return pkg
        return None

    def package_for_source(self, source_path: str) -> Optional[PackageRecord]:
        """Return the first package listing *source_path* among its sources."""
        for pkg in self.packages:
            if source_path in pkg.sources:
                return pkg
        return None

    def generated_files_for(self, package: PackageRecord) -> List[GeneratedFile]:
        """Generated-file entries whose source belongs to *package*.

        Matching is an exact string comparison against ``package.sources``.
        Entries that match no package stay in :attr:`generated_files`.
        """
        sources = set(package.sources)
        return [gen for gen in self.generated_files if gen.source_path in sources]


@dataclass
class CompileEntry:
    """One compilation command for a single source file."""

    file: str
    directory: str
    arguments: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, object]:
        return {
            "file": self.file,
            "directory": self.directory,
            "arguments": list(self.arguments),
        }


class OutputDirectoryStrategy(str, enum.Enum):
    """How the directory holding ``compile_commands.json`` was chosen."""

    EXPLICIT_DIR = "explicit_dir"
    PACKAGE_DIR = "package_dir"
    WORKSPACE_ROOT = "workspace_root"
    CURRENT_DIR = "current_dir"
