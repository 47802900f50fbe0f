from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import tomlkit
from tomlkit.exceptions import TOMLKitError

from .errors import ConfigError


@dataclass
class CcdbConfig:
    """
    Options for compile-database generation. Pass it around explicitly;
    nothing in ccdb reads configuration from global state.
    """
    # Every compile entry starts with this executable, then default_flags.
    compiler: str = "clang++"
    default_flags: List[str] = field(default_factory=lambda: [
        "-std=c++17",
        "-Wall",
        "-Wextra",
    ])

    # Output location. A relative compile_commands_dir is taken from the
    # workspace root.
    compile_commands_dir: Optional[str] = None
    output_filename: str = "compile_commands.json"
    format_json: bool = True

    # External build tool producing the project-info report
    default_target: str = "this"
    builder_command: str = "builder"
    builder_timeout: float = 600.0

    # Workspace discovery
    workspace_root: Optional[str] = None
    workspace_root_command: List[str] = field(default_factory=lambda: ["manager", "getwsroot"])
    descriptor_extension: str = ".pkg"

    # When set, every GenerationReport is dumped as <run_id>.json here.
    report_log_dir: Optional[str] = None

    def as_dict(self):
        return self.__dict__


# TOML has no null, so optional fields only ever arrive with their inner type.
_EXPECTED_TYPES: Dict[str, Tuple[type, ...]] = {
    "compiler": (str,),
    "default_flags": (list,),
    "compile_commands_dir": (str,),
    "output_filename": (str,),
    "format_json": (bool,),
    "default_target": (str,),
    "builder_command": (str,),
    "builder_timeout": (int, float),
    "workspace_root": (str,),
    "workspace_root_command": (list,),
    "descriptor_extension": (str,),
    "report_log_dir": (str,),
}


def load_config(path: Path) -> CcdbConfig:
    """Return a :class:`CcdbConfig` initialised from the TOML file at *path*.

    Unknown keys are ignored. A key with a value of the wrong type raises
    :class:`~ccdb.errors.ConfigError`.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"cannot read config {path}: {exc}") from exc

    try:
        toml_data = tomlkit.parse(text).unwrap()
    except TOMLKitError as exc:
        raise ConfigError(f"invalid TOML in {path}: {exc}") from exc

    cfg = CcdbConfig()
    valid_fields = {f.name for f in fields(cfg)}
    for key, val in toml_data.items():
        if key not in valid_fields:
            continue
        expected = _EXPECTED_TYPES[key]
        # bool is an int subclass; only accept it where bool is expected.
        if not isinstance(val, expected) or (isinstance(val, bool) and bool not in expected):
            raise ConfigError(
                f"{key} must be of type {' or '.join(t.__name__ for t in expected)}, "
                f"got {type(val).__name__}"
            )
        if expected == (list,) and not all(isinstance(item, str) for item in val):
            raise ConfigError(f"{key} must be a list of strings")
        if key == "builder_timeout":
            val = float(val)
        setattr(cfg, key, val)
    return cfg


__all__ = ["CcdbConfig", "load_config"]
