"""ccdb.report
============

Run telemetry for one compile-database generation.

:class:`GenerationReport` collects counts, timings and status for a single
package (or a single report file) so callers and the CLI ``--json`` flag can
inspect what happened.
"""
from __future__ import annotations

import datetime
import json
import uuid
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import List, Optional

from .logging import get_logger

_LOGGER = get_logger("report")


def _new_run_id() -> str:
    stamp = datetime.datetime.now(datetime.timezone.utc).strftime("%Y%m%d-%H%M%S-%f")
    return f"{stamp}-{uuid.uuid4().hex[:8]}"


@dataclass
class GenerationReport:
    """Outcome of one parse → generate → write run."""

    # ---------------------------------------------------------------------
    # Meta / accounting
    # ---------------------------------------------------------------------
    run_id: str = field(default_factory=_new_run_id)
    elapsed_ms: float = 0.0

    # ---------------------------------------------------------------------
    # Inputs
    # ---------------------------------------------------------------------
    descriptor_path: Optional[str] = None
    target: Optional[str] = None
    workspace_root: Optional[str] = None

    # ---------------------------------------------------------------------
    # Parse / generate counters
    # ---------------------------------------------------------------------
    package_count: int = 0
    source_count: int = 0
    generated_file_count: int = 0
    entry_count: int = 0

    # ---------------------------------------------------------------------
    # Output
    # ---------------------------------------------------------------------
    output_path: Optional[str] = None
    output_strategy: Optional[str] = None

    # ---------------------------------------------------------------------
    # Outcome / error reporting
    # ---------------------------------------------------------------------
    success: bool = False
    errors: List[str] = field(default_factory=list)
    final_status_message: str = "Processing not yet complete."


def save_report_to_json(report: GenerationReport, log_dir: Path) -> Optional[Path]:
    """Serialise *report* to ``<log_dir>/<run_id>.json``.

    Telemetry must not fail a generation, so write errors are logged and
    ``None`` is returned.
    """
    path = Path(log_dir) / f"{report.run_id}.json"
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(asdict(report), indent=2), encoding="utf-8")
    except OSError as exc:
        _LOGGER.warning("Failed to save JSON report %s: %s", path.name, exc)
        return None
    return path


__all__ = ["GenerationReport", "save_report_to_json"]
