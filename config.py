# --- config.py ---

import json
import logging
import os
from dataclasses import asdict, fields
from pathlib import Path
from typing import Dict, Mapping, Optional

from models import FileSystemOptions

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".fsnode.json"
ENV_PREFIX = "FSNODE_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def config_path(base_dir: Optional[Path] = None) -> Path:
    return (base_dir or Path.cwd()).resolve() / CONFIG_FILENAME


def parse_bool(value: str, name: str) -> bool:
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean for {name}: {value!r}")


def _from_mapping(data: Mapping[str, object], source: str) -> Dict[str, object]:
    known = {f.name for f in fields(FileSystemOptions)}
    values: Dict[str, object] = {}
    for key, value in data.items():
        if key not in known:
            logger.warning("Ignoring unknown option %r in %s", key, source)
            continue
        if key == "encoding":
            if not isinstance(value, str):
                raise ValueError(f"Option 'encoding' in {source} must be a string.")
            values[key] = value
        elif isinstance(value, bool):
            values[key] = value
        elif isinstance(value, str):
            values[key] = parse_bool(value, key)
        else:
            raise ValueError(f"Option {key!r} in {source} must be a boolean.")
    return values


def _from_environ(environ: Mapping[str, str]) -> Dict[str, object]:
    values: Dict[str, object] = {}
    for f in fields(FileSystemOptions):
        name = ENV_PREFIX + f.name.upper()
        if name not in environ:
            continue
        raw = environ[name]
        values[f.name] = raw if f.name == "encoding" else parse_bool(raw, name)
    return values


def load_options(base_dir: Optional[Path] = None,
                 environ: Optional[Mapping[str, str]] = None) -> FileSystemOptions:
    """
    Builds the process-wide defaults.

    Values come from the built-in defaults, then `.fsnode.json` in
    `base_dir` (or the current directory) if it exists, then FSNODE_*
    environment variables.
    """
    values: Dict[str, object] = {}
    path = config_path(base_dir)
    if path.exists():
        with path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a JSON object: {path}")
        values.update(_from_mapping(data, str(path)))
        logger.debug("Loaded options from %s", path)

    values.update(_from_environ(os.environ if environ is None else environ))
    return FileSystemOptions(**values)


def save_options(options: FileSystemOptions, base_dir: Optional[Path] = None) -> Path:
    path = config_path(base_dir)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(asdict(options), fh, indent=2)
        fh.write("\n")
    return path
