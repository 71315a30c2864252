"""Standardized CLI exit codes for convex-useindex.

Exit code scheme (POSIX + lint tool conventions):

    0  SUCCESS         -- lint completed, no error-severity problems
    1  GENERAL_ERROR   -- unexpected failure, crash, unhandled exception
    2  USAGE_ERROR     -- invalid arguments, bad flags, unknown command (Click default)
    3  CONFIG_INVALID  -- config file unreadable or rule options fail schema validation
    5  LINT_FAILURE    -- at least one error-severity problem was reported

CI tools can differentiate between:
  - "queries need indexes" (5 = lint failure)
  - "configuration is broken" (3)
  - "tool crashed" (1 = general error)
"""

from __future__ import annotations

import click

# ---------------------------------------------------------------------------
# Exit code constants
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_ERROR: int = 1
EXIT_USAGE: int = 2
EXIT_CONFIG_INVALID: int = 3
EXIT_LINT_FAILURE: int = 5

DESCRIPTIONS: dict[int, str] = {
    EXIT_SUCCESS: "success",
    EXIT_ERROR: "unexpected error",
    EXIT_USAGE: "invalid usage (bad arguments or flags)",
    EXIT_CONFIG_INVALID: "invalid configuration -- check .useindex.yml",
    EXIT_LINT_FAILURE: "lint errors found",
}

# ---------------------------------------------------------------------------
# Custom exceptions (caught by CLI error handler)
# ---------------------------------------------------------------------------


class UseIndexError(click.ClickException):
    """Base class for useindex errors with exit codes."""

    def __init__(self, message: str, exit_code: int = EXIT_ERROR):
        super().__init__(message)
        self.exit_code = exit_code

    def format_message(self) -> str:
        return self.message


class ConfigError(UseIndexError):
    """Raised when the config file or rule options are invalid."""

    def __init__(self, message: str = "Invalid configuration."):
        super().__init__(message, EXIT_CONFIG_INVALID)

