"""Standardized CLI exit codes and error types for deadwood.

Exit code scheme:

    0  SUCCESS        -- analysis completed
    1  GENERAL_ERROR  -- unexpected failure, or the run was cancelled
    2  USAGE_ERROR    -- invalid arguments (bad --min-confidence, Click default)
    3  CONFIG_ERROR   -- analysis root missing or not a directory
    5  GATE_FAILURE   -- --fail-on-dead was given and dead code was reported

Only input-contract violations are fatal.  Problems with a single file or
cache entry are reported as diagnostics and never raise.
"""

from __future__ import annotations

import click

# ---------------------------------------------------------------------------
# Exit code constants
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_ERROR: int = 1
EXIT_USAGE: int = 2
EXIT_CONFIG: int = 3
EXIT_GATE_FAILURE: int = 5

DESCRIPTIONS: dict[int, str] = {
    EXIT_SUCCESS: "success",
    EXIT_ERROR: "unexpected error or cancelled run",
    EXIT_USAGE: "invalid usage (bad arguments or flags)",
    EXIT_CONFIG: "analysis root is missing or not a directory",
    EXIT_GATE_FAILURE: "dead code reported with --fail-on-dead",
}

# ---------------------------------------------------------------------------
# Custom exceptions (caught by the Click error handler)
# ---------------------------------------------------------------------------


class DeadwoodError(click.ClickException):
    """Base class for deadwood errors with exit codes."""

    def __init__(self, message: str, exit_code: int = EXIT_ERROR):
        super().__init__(message)
        self.exit_code = exit_code

    def format_message(self) -> str:
        return self.message


class InvalidThresholdError(DeadwoodError):
    """Raised when ``min_confidence`` falls outside [0, 100]."""

    def __init__(self, value):
        super().__init__(
            f"min_confidence must be a number between 0 and 100, got {value!r}",
            EXIT_USAGE,
        )
        self.value = value


class InvalidRootError(DeadwoodError):
    """Raised when the analysis root does not exist or is not a directory."""

    def __init__(self, root):
        super().__init__(f"Analysis root is not a directory: {root}", EXIT_CONFIG)
        self.root = root


class AnalysisCancelledError(DeadwoodError):
    """Raised when a run is cancelled before it completes."""

    def __init__(self, stage: str):
        super().__init__(f"Analysis cancelled during {stage}", EXIT_ERROR)
        self.stage = stage


class GateFailureError(DeadwoodError):
    """Raised when --fail-on-dead is given and dead code was reported."""

    def __init__(self, message: str = "Dead code found."):
        super().__init__(message, EXIT_GATE_FAILURE)

