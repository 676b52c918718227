"""
piyolog_errors.py
- Error taxonomy for the piyolog sleep pipeline
- Per-line problems (InvalidDate, InvalidTime, UnresolvedDuration) are recovered
  inside the parser and turned into Diagnostic records
- Whole-input failures (NoInputProvided, NoSleepDataFound) propagate to the caller
"""

from typing import NamedTuple, Optional


WARNING = "warning"
INFO = "info"


class PiyologError(Exception):
    """Base class for everything the pipeline raises."""

    kind = "error"

    def __init__(self, message: str, value=None):
        super().__init__(message)
        self.value = value


# -------------------- Per-line (recovered) --------------------

class InvalidDate(PiyologError, ValueError):
    kind = "invalid_date"


class InvalidTime(PiyologError, ValueError):
    kind = "invalid_time"


class UnresolvedDuration(PiyologError, ValueError):
    kind = "unresolved_duration"


# -------------------- Whole input (propagated) --------------------

class NoInputProvided(PiyologError):
    kind = "no_input"

    def __init__(self, message: str = "No log text was provided in any tab"):
        super().__init__(message)


class NoSleepDataFound(PiyologError):
    kind = "no_sleep_data"

    def __init__(self, message: str = "No sleep sessions were found in the log text",
                 diagnostics=None):
        super().__init__(message)
        self.diagnostics = list(diagnostics or [])


class Diagnostic(NamedTuple):
    severity: str
    kind: str
    message: str
    lineno: Optional[int] = None
    value: Optional[str] = None

    @classmethod
    def from_error(cls, err: PiyologError, lineno: Optional[int] = None) -> "Diagnostic":
        value = None if err.value is None else str(err.value)
        return cls(WARNING, err.kind, str(err), lineno, value)
