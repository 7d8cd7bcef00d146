"""Deadwood: reachability-based dead code detection for JavaScript/TypeScript."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("deadwood-code")
except PackageNotFoundError:
    __version__ = "dev"
