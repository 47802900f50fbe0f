"""ccdb: project-info report parser and compile-database generator."""

from .config import CcdbConfig, load_config
from .errors import (
    CcdbError,
    ConfigError,
    ExternalToolError,
    MalformedReport,
    OutputWriteError,
    ParseError,
)
from .models import CompileEntry, GeneratedFile, PackageRecord, ParsedReport
from .parser import parse, parse_file
from .generator import generate, write
from .report import GenerationReport
from .core import build_compile_database, generate_all, generate_compile_database

__all__ = [
    "CcdbConfig",
    "load_config",
    "CcdbError",
    "ConfigError",
    "ExternalToolError",
    "MalformedReport",
    "OutputWriteError",
    "ParseError",
    "CompileEntry",
    "GeneratedFile",
    "PackageRecord",
    "ParsedReport",
    "parse",
    "parse_file",
    "generate",
    "write",
    "GenerationReport",
    "build_compile_database",
    "generate_all",
    "generate_compile_database",
]
