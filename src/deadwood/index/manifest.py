"""package.json reader: the entry-point hints a project declares."""

from __future__ import annotations

import json
import logging
import posixpath
from dataclasses import dataclass, field
from pathlib import Path

log = logging.getLogger(__name__)

MANIFEST_NAME = "package.json"

# Output directories whose files are compiled from src/
_OUTPUT_DIRS = ("dist/", "lib/", "build/", "out/")


@dataclass(frozen=True)
class Manifest:
    name: str | None = None
    private: bool = False
    # Public library entry targets (main / module / exports), as written
    public_entries: tuple[str, ...] = ()
    # Executable targets (bin)
    bin_entries: tuple[str, ...] = ()

    @property
    def is_library(self) -> bool:
        """A publishable package that declares a public entry."""
        return not self.private and bool(self.public_entries)

    @property
    def entries(self) -> tuple[str, ...]:
        return tuple(dict.fromkeys(self.bin_entries + self.public_entries))


def _export_targets(value, out: list[str]) -> None:
    """Collect every string target of an ``exports`` map (conditions nest)."""
    if isinstance(value, str):
        out.append(value)
    elif isinstance(value, list):
        for item in value:
            _export_targets(item, out)
    elif isinstance(value, dict):
        for key, item in value.items():
            if key == "types":
                continue
            _export_targets(item, out)


def parse_manifest(data: dict) -> Manifest:
    public: list[str] = []
    for key in ("main", "module"):
        if isinstance(data.get(key), str):
            public.append(data[key])
    if "exports" in data:
        _export_targets(data["exports"], public)

    bins: list[str] = []
    raw_bin = data.get("bin")
    if isinstance(raw_bin, str):
        bins.append(raw_bin)
    elif isinstance(raw_bin, dict):
        bins.extend(v for v in raw_bin.values() if isinstance(v, str))

    name = data.get("name")
    return Manifest(
        name=name if isinstance(name, str) else None,
        private=data.get("private") is True,
        public_entries=tuple(dict.fromkeys(public)),
        bin_entries=tuple(dict.fromkeys(bins)),
    )


def read_manifest(root: Path) -> Manifest | None:
    """Read ``package.json`` at *root*; None when absent or unreadable."""
    path = Path(root) / MANIFEST_NAME
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8", errors="replace"))
    except (OSError, ValueError) as exc:
        log.warning("Ignoring unreadable %s: %s", path, exc)
        return None
    if not isinstance(data, dict):
        log.warning("Ignoring %s: top level is not an object", path)
        return None
    return parse_manifest(data)


def source_candidates(target: str) -> list[str]:
    """Root-relative paths, most likely first, that a manifest target is built from.

    ``./dist/index.js`` yields ``dist/index.js`` itself and then
    ``src/index.js`` (extension inference happens at resolution time).
    """
    path = posixpath.normpath(target.replace("\\", "/")).lstrip("/")
    if path.startswith("./"):
        path = path[2:]
    if path == "." or path.startswith("../") or "*" in path:
        return []
    candidates = [path]
    for out_dir in _OUTPUT_DIRS:
        if path.startswith(out_dir):
            rest = path[len(out_dir):]
            stem, ext = posixpath.splitext(rest)
            if ext in (".js", ".mjs", ".cjs", ".jsx"):
                rest = stem
            candidates.append("src/" + rest)
            candidates.append(rest)
    return candidates
