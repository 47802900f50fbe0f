"""ccdb.builder
=============

Collaborators the generation pipeline depends on but does not own:

* :func:`run_build_tool` asks the external build tool to write a
  project-info report for one package descriptor,
* :func:`resolve_workspace_root` finds the workspace root directory,
* :func:`find_descriptors` lists the package descriptors of a workspace.

Only :func:`run_build_tool` is async because the build tool can take minutes;
the parser and generator themselves stay synchronous.
"""
from __future__ import annotations

import asyncio
import os
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence, Union

from .config import CcdbConfig
from .errors import ExternalToolError
from .logging import get_logger

__all__ = [
    "build_tool_command",
    "run_build_tool",
    "resolve_workspace_root",
    "find_descriptors",
]

_LOGGER = get_logger("builder")

PathLike = Union[str, Path]

_GIT_ROOT_COMMAND = ["git", "rev-parse", "--show-toplevel"]


# ---------------------------------------------------------------------------
# Build tool
# ---------------------------------------------------------------------------

def build_tool_command(
    descriptor_path: PathLike,
    target: str,
    output_path: PathLike,
    config: CcdbConfig,
) -> List[str]:
    """Argument vector asking the build tool for a project-info report."""
    return [
        config.builder_command,
        "-a",
        str(descriptor_path),
        "-b",
        target,
        "+pkg_info",
        str(output_path),
    ]


async def run_build_tool(
    descriptor_path: PathLike,
    target: str,
    output_path: PathLike,
    config: CcdbConfig,
) -> int:
    """Run the build tool and wait for it to write *output_path*.

    Returns the exit status (always ``0``). A tool that cannot be started,
    exits non-zero, exceeds ``config.builder_timeout`` or leaves no file
    behind raises :class:`~ccdb.errors.ExternalToolError`. An empty file is
    returned to the caller; the parser rejects it. Cancelling the call kills
    the child process.
    """
    cmd = build_tool_command(descriptor_path, target, output_path, config)
    _LOGGER.debug("Running %s", " ".join(cmd))

    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except OSError as exc:
        raise ExternalToolError(f"cannot start {cmd[0]}: {exc}") from exc

    try:
        stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=config.builder_timeout)
    except asyncio.TimeoutError as exc:
        proc.kill()
        await proc.wait()
        raise ExternalToolError(
            f"{cmd[0]} timed out after {config.builder_timeout:g} seconds"
        ) from exc
    except asyncio.CancelledError:
        proc.kill()
        raise

    output = stdout.decode("utf-8", errors="replace").strip() if stdout else ""
    if proc.returncode != 0:
        raise ExternalToolError(
            f"{cmd[0]} exited with status {proc.returncode}",
            returncode=proc.returncode,
            output=output,
        )
    if not Path(output_path).is_file():
        raise ExternalToolError(
            f"{cmd[0]} did not produce {output_path}",
            returncode=proc.returncode,
            output=output,
        )
    return proc.returncode


# ---------------------------------------------------------------------------
# Workspace discovery
# ---------------------------------------------------------------------------

def _first_output_line(command: Sequence[str], cwd: Optional[PathLike]) -> Optional[str]:
    """First stdout line of *command*, or ``None`` when it fails or prints nothing."""
    if not command:
        return None
    try:
        proc = subprocess.run(
            list(command),
            cwd=str(cwd) if cwd is not None else None,
            text=True,
            capture_output=True,
            timeout=10,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        _LOGGER.debug("%s unavailable: %s", command[0], exc)
        return None
    if proc.returncode != 0:
        return None
    lines = proc.stdout.strip().splitlines()
    return lines[0].strip() if lines else None


def resolve_workspace_root(config: CcdbConfig, cwd: Optional[PathLike] = None) -> Path:
    """Return the workspace root as an absolute path.

    Tried in order: ``config.workspace_root``, the output of
    ``config.workspace_root_command``, the enclosing git checkout, *cwd*
    (the process working directory when omitted).
    """
    if config.workspace_root:
        return Path(config.workspace_root).expanduser().resolve()

    for command in (config.workspace_root_command, _GIT_ROOT_COMMAND):
        root = _first_output_line(command, cwd)
        if root:
            return Path(root)

    return Path(cwd if cwd is not None else os.getcwd()).resolve()


def find_descriptors(workspace_root: PathLike, extension: str = ".pkg") -> List[Path]:
    """All package descriptors under *workspace_root*, sorted by path.

    Hidden directories (``.git`` and friends) are not searched.
    """
    root = Path(workspace_root)
    found: List[Path] = []
    for path in root.rglob(f"*{extension}"):
        relative = path.relative_to(root)
        if any(part.startswith(".") for part in relative.parts[:-1]):
            continue
        if path.is_file():
            found.append(path)
    return sorted(found)
