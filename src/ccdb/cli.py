"""ccdb.cli
=========

Command-line interface for compile-database generation.

Example::

    $ python -m ccdb.cli path/to/core.pkg --target this --json
    $ python -m ccdb.cli --report project_info.txt -o build/compile_commands.json
    $ python -m ccdb.cli --all --workspace-root ~/ws

With ``--report -`` the project-info report is read from **STDIN**.
``--inspect`` prints a summary of the report instead of writing anything.
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
import tempfile
from dataclasses import asdict
from pathlib import Path
from typing import Any, List

from .builder import find_descriptors, resolve_workspace_root, run_build_tool
from .config import CcdbConfig, load_config
from .core import build_compile_database, generate_all, generate_compile_database
from .errors import CcdbError
from .formatter import format_report_summary
from .logging import configure_logging, get_logger
from .parser import parse, parse_file
from .report import GenerationReport

__all__ = ["main"]

_LOGGER = get_logger("cli")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ccdb",
        description="Generate compile_commands.json from build-tool project info",
    )
    parser.add_argument(
        "descriptor",
        nargs="?",
        help="Package descriptor to ask the build tool about.",
    )
    parser.add_argument(
        "--report",
        metavar="FILE",
        help="Use an existing project-info report ('-' for STDIN) instead of running the build tool.",
    )
    parser.add_argument(
        "--target",
        help="Build target passed to the build tool. Defaults to the configured default_target.",
    )
    parser.add_argument(
        "--workspace-root",
        metavar="DIR",
        help="Workspace root. Discovered automatically when omitted.",
    )
    parser.add_argument(
        "-o",
        "--output",
        help="Path for compile_commands.json. Resolved from the configuration when omitted.",
    )
    parser.add_argument(
        "--config",
        metavar="TOML",
        help="Path to configuration TOML. Uses built-in defaults when omitted.",
    )
    parser.add_argument(
        "--all",
        action="store_true",
        help="Generate for every package descriptor in the workspace.",
    )
    parser.add_argument(
        "--inspect",
        action="store_true",
        help="Print a summary of the project-info report and exit without writing.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Emit the GenerationReport as JSON to STDERR.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    parser.add_argument(
        "--log-file",
        metavar="PATH",
        help="Also write log records, with timestamps, to this file.",
    )
    return parser


def _announce_reload(path: Path) -> None:
    """Reload hook handed to the generator; editor integrations replace it."""
    _LOGGER.info("Compile database updated: %s (language server may reload it)", path)


def _workspace_root(args: argparse.Namespace, cfg: CcdbConfig) -> Path:
    """Resolve the root only for the modes that use it; discovery spawns processes."""
    if args.workspace_root:
        return Path(args.workspace_root).expanduser().resolve()
    return resolve_workspace_root(cfg)


def _fail(message: str) -> None:
    print(f"ccdb: {message}", file=sys.stderr)
    sys.exit(1)


async def _inspect_descriptor(descriptor: str, target: str, cfg: CcdbConfig) -> str:
    with tempfile.TemporaryDirectory(prefix="ccdb-") as tmp_dir:
        info_file = Path(tmp_dir) / "project_info.txt"
        await run_build_tool(descriptor, target, info_file, cfg)
        return format_report_summary(parse_file(info_file))


# ---------------------------------------------------------------------------
# Async entry-point
# ---------------------------------------------------------------------------

async def main(argv: list[str] | None = None) -> None:  # noqa: D401 – imperative mood
    """Parse *argv* and run the generation pipeline.

    When *argv* is **None** ``sys.argv[1:]`` is used.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not (args.descriptor or args.report or args.all):
        parser.error("a package descriptor, --report or --all is required")

    try:
        configure_logging(
            verbose=args.verbose,
            log_file=Path(args.log_file) if args.log_file else None,
        )
    except OSError as exc:
        _fail(f"cannot open log file – {exc}")

    # ------------------------------------------------------------------
    # Load configuration -------------------------------------------------
    # ------------------------------------------------------------------
    try:
        cfg = load_config(Path(args.config)) if args.config else CcdbConfig()
    except CcdbError as exc:
        _fail(f"failed to load config – {exc}")

    target = args.target or cfg.default_target
    reports: List[GenerationReport] = []

    # ------------------------------------------------------------------
    # Existing report ----------------------------------------------------
    # ------------------------------------------------------------------
    if args.report:
        try:
            if args.report == "-":
                raw_report = sys.stdin.read()
            else:
                raw_report = Path(args.report).read_text(encoding="utf-8")
        except FileNotFoundError:
            _fail(f"input file not found: {args.report}")
        except (OSError, UnicodeDecodeError) as exc:
            _fail(f"error reading input – {exc}")

        try:
            if args.inspect:
                print(format_report_summary(parse(raw_report)), end="")
                return
            reports.append(
                generate_compile_database(
                    raw_report,
                    _workspace_root(args, cfg),
                    cfg,
                    descriptor_path=args.descriptor,
                    output_path=args.output,
                    on_written=_announce_reload,
                )
            )
        except CcdbError as exc:
            _fail(f"processing error – {exc}")

    # ------------------------------------------------------------------
    # Whole workspace ----------------------------------------------------
    # ------------------------------------------------------------------
    elif args.all:
        workspace_root = _workspace_root(args, cfg)
        if args.inspect:
            for descriptor in find_descriptors(workspace_root, cfg.descriptor_extension):
                try:
                    print(await _inspect_descriptor(str(descriptor), target, cfg), end="")
                except CcdbError as exc:
                    _fail(f"processing error – {exc}")
            return
        reports = await generate_all(
            workspace_root, cfg, target=target, on_written=_announce_reload
        )

    # ------------------------------------------------------------------
    # Single descriptor via the build tool -------------------------------
    # ------------------------------------------------------------------
    else:
        try:
            if args.inspect:
                print(await _inspect_descriptor(args.descriptor, target, cfg), end="")
                return
            reports.append(
                await build_compile_database(
                    args.descriptor,
                    cfg,
                    target=target,
                    workspace_root=_workspace_root(args, cfg),
                    output_path=args.output,
                    on_written=_announce_reload,
                )
            )
        except CcdbError as exc:
            _fail(f"processing error – {exc}")

    # ------------------------------------------------------------------
    # Optional JSON report ----------------------------------------------
    # ------------------------------------------------------------------
    if args.json:
        payload: Any = [asdict(rep) for rep in reports]
        if len(payload) == 1:
            payload = payload[0]
        print(json.dumps(payload, indent=2), file=sys.stderr)

    if not all(rep.success for rep in reports):
        sys.exit(1)


def run() -> None:
    """Console-script entry point."""
    asyncio.run(main())


# ---------------------------------------------------------------------------
# Module entry-point
# ---------------------------------------------------------------------------

if __name__ == "__main__":  # pragma: no cover – manual invocation only
    run()
