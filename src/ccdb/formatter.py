"""Human-readable summaries of a parsed project-info report."""

from pathlib import PurePath
from typing import List, Sequence

from .models import ParsedReport


def _listing(items: Sequence[str], limit: int, indent: str = "    ") -> List[str]:
    """Bullet the first *limit* items and summarise the rest."""
    lines = [f"{indent}- {item}" for item in items[:limit]]
    if len(items) > limit:
        lines.append(f"{indent}... and {len(items) - limit} more")
    return lines


def format_report_summary(
    parsed: ParsedReport,
    *,
    max_dependencies: int = 3,
    max_sources: int = 3,
    max_flags: int = 5,
    max_generated: int = 5,
) -> str:
    """Render *parsed* package by package for a quick look at a report."""
    out: List[str] = ["=== PROJECT INFO ===", f"Packages found: {len(parsed.packages)}", ""]

    for idx, pkg in enumerate(parsed.packages, 1):
        out.append(f"Package #{idx}: {pkg.name}")
        out.append(f"  Descriptor: {pkg.descriptor_path}")
        out.append(f"  Dependencies: {len(pkg.dependencies)}")
        out.extend(_listing(pkg.dependencies, max_dependencies))
        out.append(f"  Sources: {len(pkg.sources)}")
        # Sources are shown by file name only; full paths are long and repetitive.
        out.extend(_listing([PurePath(src).name for src in pkg.sources], max_sources))
        out.append(f"  Flags: {len(pkg.flags)}")
        out.extend(_listing(pkg.flags, max_flags))
        out.append(f"  Outputs: {len(pkg.outputs)}")
        out.append("")

    out.append(f"Generated files: {len(parsed.generated_files)}")
    for gen in parsed.generated_files[:max_generated]:
        out.append(f"  {gen.generated_path} <- {gen.source_path}")
    if len(parsed.generated_files) > max_generated:
        out.append(f"  ... and {len(parsed.generated_files) - max_generated} more")

    return "\n".join(out) + "\n"
