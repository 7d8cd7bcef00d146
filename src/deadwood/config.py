"""Project configuration: loading ``.deadwood/config.json`` onto defaults."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

log = logging.getLogger(__name__)

DEFAULT_DIR = ".deadwood"
CONFIG_NAME = "config.json"
CACHE_DIR_ENV = "DEADWOOD_CACHE_DIR"

DEFAULT_DYNAMIC_PATTERNS = (
    "handle*",
    "*_plugin",
    "*_handler",
    "*Plugin",
    "*Handler",
)
DEFAULT_PATH_ALIASES = {"@/": "src/", "~/": "src/"}


@dataclass(frozen=True)
class DeadCodeConfig:
    """Tunables for one analysis run.

    None of these influence what is cached: the cache only ever holds raw
    per-file extraction results.
    """

    # fnmatch patterns for names that frameworks typically look up by string
    dynamic_patterns: tuple[str, ...] = DEFAULT_DYNAMIC_PATTERNS
    # Files modified within this many days lose up to 20 confidence points
    recency_window_days: int = 30
    # Extra entry files (glob patterns relative to the root)
    entry_files: tuple[str, ...] = ()
    # Import specifier prefix -> root-relative directory
    path_aliases: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_PATH_ALIASES))
    # Cache directory override (absolute, or relative to the root)
    cache_dir: str | None = None
    # Extraction worker threads; None lets the executor decide
    max_workers: int | None = None


def _load_project_config(project_root: Path) -> dict:
    """Load .deadwood/config.json if it exists.

    Returns an empty dict if the file is missing or malformed.
    """
    config_path = project_root / DEFAULT_DIR / CONFIG_NAME
    if not config_path.exists():
        return {}
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        log.warning("Ignoring unreadable config %s: %s", config_path, exc)
        return {}
    if not isinstance(data, dict):
        log.warning("Ignoring config %s: top level is not an object", config_path)
        return {}
    return data


def _coerce(name: str, value: Any, default: Any) -> Any:
    if isinstance(default, tuple):
        if isinstance(value, str):
            return (value,)
        if isinstance(value, list):
            return tuple(str(v) for v in value)
        raise ValueError(f"{name} must be a list of strings")
    if isinstance(default, dict):
        if not isinstance(value, dict):
            raise ValueError(f"{name} must be an object")
        return {str(k): str(v) for k, v in value.items()}
    if name == "recency_window_days":
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValueError(f"{name} must be a non-negative integer")
        return value
    if name == "max_workers":
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ValueError(f"{name} must be a positive integer")
        return value
    if name == "cache_dir":
        return None if value is None else str(value)
    return value


def load_config(project_root: Path, overrides: dict | None = None) -> DeadCodeConfig:
    """Build a :class:`DeadCodeConfig` for *project_root*.

    Resolution order (later wins): defaults, ``.deadwood/config.json``,
    *overrides*.  Unknown keys and invalid values are logged and ignored.
    """
    config = DeadCodeConfig()
    raw = _load_project_config(Path(project_root))
    if overrides:
        raw = {**raw, **overrides}

    known = {f.name: getattr(config, f.name) for f in fields(DeadCodeConfig)}
    changes = {}
    for key, value in raw.items():
        if key not in known:
            log.warning("Unknown config key %r ignored", key)
            continue
        try:
            changes[key] = _coerce(key, value, known[key])
        except ValueError as exc:
            log.warning("Invalid config value ignored: %s", exc)
    return replace(config, **changes)


def get_cache_dir(project_root: Path, config: DeadCodeConfig) -> Path:
    """Get the directory holding the extraction cache.

    Resolution order (first match wins):

    1. ``DEADWOOD_CACHE_DIR`` environment variable.
    2. ``cache_dir`` from the config.
    3. Default: ``<project_root>/.deadwood``.
    """
    override = os.environ.get(CACHE_DIR_ENV)
    if override:
        return Path(override)
    if config.cache_dir:
        path = Path(config.cache_dir)
        return path if path.is_absolute() else Path(project_root) / path
    return Path(project_root) / DEFAULT_DIR
