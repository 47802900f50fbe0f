"""ccdb.core
==========

High-level orchestration of compile-database generation.

:func:`generate_compile_database` takes report text that the caller already
has and runs parse → generate → write. :func:`build_compile_database` first
asks the build tool for the report of one package descriptor, and
:func:`generate_all` repeats that for every descriptor in a workspace.

Everything the pipeline needs (workspace root, descriptor, target, output
path, reload callback) is an explicit argument. Each call returns a
:class:`~ccdb.report.GenerationReport`; failures raise the typed errors from
:mod:`ccdb.errors` after being recorded on the report.
"""
from __future__ import annotations

import contextlib
import logging
import tempfile
import time
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Union

from .builder import find_descriptors, resolve_workspace_root, run_build_tool
from .config import CcdbConfig
from .errors import CcdbError
from .generator import generate, resolve_output_directory, write
from .logging import get_logger
from .models import OutputDirectoryStrategy, ParsedReport
from .parser import parse, parse_file
from .report import GenerationReport, save_report_to_json

__all__ = [
    "generate_compile_database",
    "build_compile_database",
    "generate_all",
    "compile_database_path",
    "compile_database_exists",
]

_LOGGER = get_logger("core")

PathLike = Union[str, Path]
WrittenCallback = Callable[[Path], None]


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

@contextlib.contextmanager
def _track(report: GenerationReport, config: CcdbConfig) -> Iterator[GenerationReport]:
    """Time the enclosed stage and record any ccdb failure on *report*."""
    start_ts = time.perf_counter()
    try:
        yield report
    except CcdbError as exc:
        report.success = False
        report.errors.append(str(exc))
        report.final_status_message = f"Failed: {type(exc).__name__}."
        _LOGGER.error("%s", exc)
        raise
    finally:
        report.elapsed_ms = (time.perf_counter() - start_ts) * 1000
        if config.report_log_dir:
            save_report_to_json(report, Path(config.report_log_dir))


def _emit(
    parsed: ParsedReport,
    report: GenerationReport,
    config: CcdbConfig,
    workspace_root: Path,
    *,
    descriptor_path: Optional[PathLike],
    output_path: Optional[PathLike],
    directory: Optional[PathLike],
    on_written: Optional[WrittenCallback],
    package_subdir: Optional[str] = None,
) -> None:
    report.package_count = len(parsed.packages)
    report.source_count = parsed.source_count
    report.generated_file_count = len(parsed.generated_files)

    entries = generate(parsed, workspace_root, config, directory=directory)
    report.entry_count = len(entries)

    if output_path is None:
        out_dir, strategy = resolve_output_directory(config, workspace_root, descriptor_path)
        if package_subdir and strategy is OutputDirectoryStrategy.EXPLICIT_DIR:
            # Packages sharing one configured directory each get a subdirectory.
            out_dir = out_dir / package_subdir
        target = out_dir / config.output_filename
        report.output_strategy = strategy.value
    else:
        target = Path(output_path)

    written = write(entries, target, pretty=config.format_json, on_written=on_written)
    report.output_path = str(written)
    report.success = True
    report.final_status_message = (
        f"Generated {written.name} with {report.entry_count} entries."
    )
    _LOGGER.info(
        "Generated %s with %d entries from %d package(s)",
        written,
        report.entry_count,
        report.package_count,
    )


async def _build(
    report: GenerationReport,
    descriptor_path: Path,
    config: CcdbConfig,
    workspace_root: Path,
    target: str,
    output_path: Optional[PathLike],
    on_written: Optional[WrittenCallback],
    package_subdir: Optional[str] = None,
) -> None:
    with _track(report, config):
        with tempfile.TemporaryDirectory(prefix="ccdb-") as tmp_dir:
            info_file = Path(tmp_dir) / "project_info.txt"
            await run_build_tool(descriptor_path, target, info_file, config)
            parsed = parse_file(info_file)
        _emit(
            parsed,
            report,
            config,
            workspace_root,
            descriptor_path=descriptor_path,
            output_path=output_path,
            directory=None,
            on_written=on_written,
            package_subdir=package_subdir,
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def generate_compile_database(
    report_text: Union[str, Iterable[str]],
    workspace_root: PathLike,
    config: Optional[CcdbConfig] = None,
    *,
    descriptor_path: Optional[PathLike] = None,
    output_path: Optional[PathLike] = None,
    directory: Optional[PathLike] = None,
    on_written: Optional[WrittenCallback] = None,
) -> GenerationReport:
    """Parse *report_text* and write its compile database.

    Without *output_path* the file lands in the directory chosen by
    :func:`~ccdb.generator.resolve_output_directory`. Raises
    :class:`~ccdb.errors.MalformedReport` or
    :class:`~ccdb.errors.OutputWriteError`; nothing is written on failure.
    """
    config = config or CcdbConfig()
    root = Path(workspace_root).resolve()
    report = GenerationReport(
        descriptor_path=str(descriptor_path) if descriptor_path is not None else None,
        workspace_root=str(root),
    )
    with _track(report, config):
        parsed = parse(report_text)
        _emit(
            parsed,
            report,
            config,
            root,
            descriptor_path=descriptor_path,
            output_path=output_path,
            directory=directory,
            on_written=on_written,
        )
    return report


async def build_compile_database(
    descriptor_path: PathLike,
    config: Optional[CcdbConfig] = None,
    *,
    target: Optional[str] = None,
    workspace_root: Optional[PathLike] = None,
    output_path: Optional[PathLike] = None,
    on_written: Optional[WrittenCallback] = None,
) -> GenerationReport:
    """Run the build tool for *descriptor_path* and write its compile database.

    The report file produced by the build tool lives in a temporary
    directory that is removed afterwards. Raises
    :class:`~ccdb.errors.ExternalToolError` in addition to the errors of
    :func:`generate_compile_database`.
    """
    config = config or CcdbConfig()
    root = (
        Path(workspace_root).resolve()
        if workspace_root is not None
        else resolve_workspace_root(config)
    )
    build_target = target or config.default_target
    report = GenerationReport(
        descriptor_path=str(descriptor_path),
        target=build_target,
        workspace_root=str(root),
    )
    _LOGGER.info("Generating compile_commands.json for %s", Path(descriptor_path).name)
    await _build(report, Path(descriptor_path), config, root, build_target, output_path, on_written)
    return report


async def generate_all(
    workspace_root: PathLike,
    config: Optional[CcdbConfig] = None,
    *,
    target: Optional[str] = None,
    on_written: Optional[WrittenCallback] = None,
) -> List[GenerationReport]:
    """Generate a compile database for every descriptor in the workspace.

    Packages run one after another. A failing package does not stop the
    others; its error is recorded on its own report. With
    ``compile_commands_dir`` configured, each package writes to
    ``<compile_commands_dir>/<descriptor stem>/`` so databases do not
    overwrite each other.
    """
    config = config or CcdbConfig()
    root = Path(workspace_root).resolve()
    build_target = target or config.default_target

    descriptors = find_descriptors(root, config.descriptor_extension)
    if not descriptors:
        _LOGGER.warning("No package descriptors found under %s", root)
        return []

    reports: List[GenerationReport] = []
    total = len(descriptors)
    for idx, descriptor in enumerate(descriptors, 1):
        _LOGGER.info("Processing %d/%d: %s", idx, total, descriptor.name)
        report = GenerationReport(
            descriptor_path=str(descriptor),
            target=build_target,
            workspace_root=str(root),
        )
        try:
            await _build(
                report,
                descriptor,
                config,
                root,
                build_target,
                None,
                on_written,
                package_subdir=descriptor.stem,
            )
        except CcdbError as exc:
            # Already recorded on the report by _track.
            _LOGGER.debug("Continuing after %s failed: %s", descriptor.name, exc)
        reports.append(report)

    succeeded = sum(1 for rep in reports if rep.success)
    _LOGGER.log(
        logging.INFO if succeeded == total else logging.WARNING,
        "Generated compile commands for %d/%d packages",
        succeeded,
        total,
    )
    return reports


def compile_database_path(
    config: Optional[CcdbConfig],
    workspace_root: Optional[PathLike],
    descriptor_path: Optional[PathLike] = None,
) -> Path:
    """Where the compile database for *descriptor_path* is (or would be) written."""
    config = config or CcdbConfig()
    directory, _ = resolve_output_directory(
        config, workspace_root, descriptor_path, create=False
    )
    return directory / config.output_filename


def compile_database_exists(
    config: Optional[CcdbConfig],
    workspace_root: Optional[PathLike],
    descriptor_path: Optional[PathLike] = None,
) -> bool:
    return compile_database_path(config, workspace_root, descriptor_path).is_file()
