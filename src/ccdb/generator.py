"""ccdb.generator
===============

Turns a :class:`~ccdb.models.ParsedReport` into compile-database entries and
writes them as ``compile_commands.json``.

Argument order inside every entry is fixed::

    [compiler] + default_flags + ["-I<dep>", ...] + package flags + [source]

The write is atomic: the document is serialised in memory, written to a
temporary file beside the target and moved into place with
:func:`os.replace`, so an existing database is never left truncated.
"""
from __future__ import annotations

import json
import os
import stat
import tempfile
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, Union

from .config import CcdbConfig
from .errors import OutputWriteError
from .logging import get_logger
from .models import CompileEntry, OutputDirectoryStrategy, PackageRecord, ParsedReport

__all__ = [
    "build_entries",
    "generate",
    "resolve_output_directory",
    "serialize",
    "write",
]

_LOGGER = get_logger("generator")

PathLike = Union[str, Path]
WrittenCallback = Callable[[Path], None]


# ---------------------------------------------------------------------------
# Entry construction
# ---------------------------------------------------------------------------

def build_entries(
    record: PackageRecord,
    *,
    compiler: str,
    default_flags: Sequence[str],
    directory: str,
) -> List[CompileEntry]:
    """One :class:`CompileEntry` per source of *record*, in source order."""
    prefix = [compiler, *default_flags, *record.include_flags, *record.flags]
    return [
        CompileEntry(file=source, directory=directory, arguments=[*prefix, source])
        for source in record.sources
    ]


def generate(
    parsed: ParsedReport,
    workspace_root: PathLike,
    options: Optional[CcdbConfig] = None,
    *,
    directory: Optional[PathLike] = None,
) -> List[CompileEntry]:
    """Build the compile entries for every package in *parsed*.

    Entries follow package order, then source order within a package.
    *directory* overrides the workspace root as each entry's ``directory``.
    The directory is made absolute against the process working directory.
    """
    options = options or CcdbConfig()
    entry_dir = str(Path(directory if directory is not None else workspace_root).resolve())

    entries: List[CompileEntry] = []
    for record in parsed.packages:
        entries.extend(
            build_entries(
                record,
                compiler=options.compiler,
                default_flags=options.default_flags,
                directory=entry_dir,
            )
        )
    return entries


# ---------------------------------------------------------------------------
# Output location
# ---------------------------------------------------------------------------

def _select_output_directory(
    options: CcdbConfig,
    workspace_root: Optional[PathLike],
    descriptor_path: Optional[PathLike],
) -> Tuple[Path, OutputDirectoryStrategy]:
    if options.compile_commands_dir:
        explicit = Path(options.compile_commands_dir).expanduser()
        if not explicit.is_absolute():
            explicit = Path(workspace_root or os.getcwd()) / explicit
        return explicit, OutputDirectoryStrategy.EXPLICIT_DIR
    if descriptor_path:
        return Path(descriptor_path).parent, OutputDirectoryStrategy.PACKAGE_DIR
    if workspace_root:
        return Path(workspace_root), OutputDirectoryStrategy.WORKSPACE_ROOT
    return Path(os.getcwd()), OutputDirectoryStrategy.CURRENT_DIR


def resolve_output_directory(
    options: Optional[CcdbConfig],
    workspace_root: Optional[PathLike],
    descriptor_path: Optional[PathLike] = None,
    *,
    create: bool = True,
) -> Tuple[Path, OutputDirectoryStrategy]:
    """Pick the directory that receives ``compile_commands.json``.

    Priority: configured ``compile_commands_dir``, the directory of the
    package descriptor, the workspace root, the process working directory.
    The directory is created when *create* is true.
    """
    directory, strategy = _select_output_directory(
        options or CcdbConfig(), workspace_root, descriptor_path
    )
    if create:
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputWriteError(directory, f"cannot create directory: {exc}") from exc
    return directory, strategy


# ---------------------------------------------------------------------------
# Serialisation
# ---------------------------------------------------------------------------

def serialize(entries: Iterable[CompileEntry], *, pretty: bool = True) -> str:
    """Render *entries* as a compile_commands.json document."""
    payload = [entry.as_dict() for entry in entries]
    if pretty:
        text = json.dumps(payload, indent=2, ensure_ascii=False)
    else:
        text = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return text + "\n"


def _output_mode(target: Path) -> int:
    try:
        return stat.S_IMODE(target.stat().st_mode)
    except FileNotFoundError:
        pass
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def write(
    entries: Iterable[CompileEntry],
    output_path: PathLike,
    *,
    pretty: bool = True,
    on_written: Optional[WrittenCallback] = None,
) -> Path:
    """Atomically replace *output_path* with the serialised *entries*.

    *on_written* is called with the final path after a successful write, so
    a language-server integration can reload the database.
    """
    target = Path(output_path)
    document = serialize(entries, pretty=pretty)

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise OutputWriteError(target, f"cannot create directory: {exc}") from exc

    tmp_name: Optional[str] = None
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{target.name}.", suffix=".tmp", dir=str(target.parent)
        )
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
            handle.write(document)
        # mkstemp creates 0600; keep the old file's mode or follow the umask.
        os.chmod(tmp_name, _output_mode(target))
        os.replace(tmp_name, target)
        tmp_name = None
    except OSError as exc:
        raise OutputWriteError(target, str(exc)) from exc
    finally:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)

    _LOGGER.info("Wrote %s", target)
    if on_written is not None:
        on_written(target)
    return target
