"""
piyolog_parser.py
- Parses piyolog text exports into sleep sessions and per-day sleep totals
- Recognizes date headers, "睡眠合計" total lines and "H:MM activity" lines
- Pairs "寝る" (begin) with the next "起きる" (wake), including across midnight
- Never raises on malformed input: bad lines are skipped and reported as Diagnostics

The scan is a fold over the lines: `step(state, line)` takes an immutable
ParseState and returns the next one, so each transition can be tested alone.
"""

import re
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from functools import reduce
from operator import attrgetter
from typing import Dict, NamedTuple, Optional, Tuple

from piyolog_errors import (
    INFO,
    Diagnostic,
    InvalidDate,
    InvalidTime,
    PiyologError,
    UnresolvedDuration,
)


SLEEP_TOKEN = "寝る"
WAKE_TOKEN = "起きる"

MAX_SESSION_MINUTES = 24 * 60

DATE_HEADER_RE = re.compile(r"([0-9]{4})/([0-9]{1,2})/([0-9]{1,2})\([^)]+\)")
SLEEP_TOTAL_RE = re.compile(r"睡眠合計\s+([0-9]+)時間([0-9]+)分")
TIMED_LINE_RE = re.compile(r"^([0-9]{1,2}):([0-9]{2})\s+(.+)")
DURATION_NOTE_RE = re.compile(r"\(([0-9]+)時間([0-9]+)分\)")


# -------------------- Records --------------------

@dataclass(frozen=True)
class SleepSession:
    date: str           # ISO date the sleep began on
    sleep_time: str     # HH:MM
    wake_time: str      # HH:MM
    duration_minutes: int

    @property
    def duration_hours(self) -> float:
        return round(self.duration_minutes / 60, 2)


class PendingSleep(NamedTuple):
    date: str
    hour: int
    minute: int

    @property
    def time(self) -> str:
        return format_clock(self.hour, self.minute)


@dataclass(frozen=True)
class ParseState:
    current_date: Optional[str] = None
    pending: Optional[PendingSleep] = None
    sessions: Tuple[SleepSession, ...] = ()
    daily_totals: Tuple[Tuple[str, int], ...] = ()
    diagnostics: Tuple[Diagnostic, ...] = ()


class ParseResult(NamedTuple):
    sessions: list
    daily_totals: Dict[str, int]
    diagnostics: list


# -------------------- Validation Helpers --------------------

def validate_date(year: int, month: int, day: int) -> bool:
    if not (1900 <= year <= 2100):
        return False
    if not (1 <= month <= 12) or not (1 <= day <= 31):
        return False
    try:
        date(year, month, day)
    except ValueError:
        return False
    return True


def validate_time(hour: int, minute: int) -> bool:
    return 0 <= hour <= 23 and 0 <= minute <= 59


def format_clock(hour: int, minute: int) -> str:
    return f"{hour:02d}:{minute:02d}"


def parse_date_header(line: str) -> Optional[str]:
    """
    Returns the ISO date of a `YYYY/M/D(...)` header, None if the line is not a
    header. Raises InvalidDate when the header names an impossible date.
    """
    m = DATE_HEADER_RE.search(line)
    if not m:
        return None
    year, month, day = (int(g) for g in m.groups())
    if not validate_date(year, month, day):
        raise InvalidDate(f"Skipped invalid date: {year}/{month}/{day}",
                          value=f"{year}/{month}/{day}")
    return f"{year:04d}-{month:02d}-{day:02d}"


def parse_sleep_total(line: str) -> Optional[int]:
    m = SLEEP_TOTAL_RE.search(line)
    if not m:
        return None
    return int(m.group(1)) * 60 + int(m.group(2))


def parse_timed_line(line: str) -> Optional[Tuple[int, int, str]]:
    """Returns (hour, minute, activity) or None; raises InvalidTime when out of range."""
    m = TIMED_LINE_RE.match(line)
    if not m:
        return None
    hour, minute = int(m.group(1)), int(m.group(2))
    if not validate_time(hour, minute):
        raise InvalidTime(f"Skipped invalid time: {hour}:{m.group(2)}",
                          value=f"{hour}:{m.group(2)}")
    return hour, minute, m.group(3)


def parse_duration_annotation(activity: str) -> Optional[int]:
    m = DURATION_NOTE_RE.search(activity)
    if not m:
        return None
    return int(m.group(1)) * 60 + int(m.group(2))


def compute_duration(begin: PendingSleep, wake_date: str, hour: int, minute: int) -> int:
    """
    Minutes from the begin marker to the wake event. A wake instant that is not
    strictly after the begin instant is pushed forward by 24 hours.
    """
    start = datetime.fromisoformat(begin.date).replace(hour=begin.hour, minute=begin.minute)
    end = datetime.fromisoformat(wake_date).replace(hour=hour, minute=minute)
    if end <= start:
        end += timedelta(hours=24)
    return check_duration(round((end - start).total_seconds() / 60))


def check_duration(minutes: int) -> int:
    if minutes > MAX_SESSION_MINUTES:
        raise UnresolvedDuration(f"Abnormally long sleep duration: {minutes} min", value=minutes)
    if minutes < 0:
        raise UnresolvedDuration(f"Negative sleep duration: {minutes} min", value=minutes)
    return minutes


# -------------------- State Transitions --------------------

def initial_state() -> ParseState:
    return ParseState()


def _warn(state: ParseState, err: PiyologError, lineno: int) -> ParseState:
    return replace(state, diagnostics=state.diagnostics + (Diagnostic.from_error(err, lineno),))


def _on_date_header(state: ParseState, line: str, lineno: int):
    try:
        current = parse_date_header(line)
    except InvalidDate as e:
        # pending begin marker survives; only a wake event consumes it
        return _warn(replace(state, current_date=None), e, lineno)
    if current is None:
        return None
    return replace(state, current_date=current)


def _on_sleep_total(state: ParseState, line: str, lineno: int):
    total = parse_sleep_total(line)
    if total is None:
        return None
    note = Diagnostic(INFO, "daily_total",
                      f"{state.current_date}: sleep total {total // 60}h{total % 60}m ({total} min)",
                      lineno, str(total))
    return replace(state,
                   daily_totals=state.daily_totals + ((state.current_date, total),),
                   diagnostics=state.diagnostics + (note,))


def _on_wake(state: ParseState, hour: int, minute: int, activity: str, lineno: int) -> ParseState:
    begin = state.pending
    state = replace(state, pending=None)
    try:
        duration = parse_duration_annotation(activity)
        if duration is None:
            duration = compute_duration(begin, state.current_date, hour, minute)
        else:
            duration = check_duration(duration)
    except UnresolvedDuration as e:
        return _warn(state, e, lineno)

    if duration <= 0:
        return state
    session = SleepSession(
        date=begin.date,
        sleep_time=begin.time,
        wake_time=format_clock(hour, minute),
        duration_minutes=duration,
    )
    return replace(state, sessions=state.sessions + (session,))


def _on_timed_line(state: ParseState, line: str, lineno: int):
    try:
        parsed = parse_timed_line(line)
    except InvalidTime as e:
        return _warn(state, e, lineno)
    if parsed is None:
        return None

    hour, minute, activity = parsed
    if SLEEP_TOKEN in activity:
        state = replace(state, pending=PendingSleep(state.current_date, hour, minute))
    if WAKE_TOKEN in activity and state.pending is not None:
        state = _on_wake(state, hour, minute, activity, lineno)
    return state


def step(state: ParseState, numbered_line: Tuple[int, str]) -> ParseState:
    """Feed one (line number, raw line) pair through the state machine."""
    lineno, raw = numbered_line
    line = raw.strip()
    if not line:
        return state

    nxt = _on_date_header(state, line, lineno)
    if nxt is not None:
        return nxt
    if state.current_date is None:
        return state

    for handler in (_on_sleep_total, _on_timed_line):
        nxt = handler(state, line, lineno)
        if nxt is not None:
            return nxt
    return state


# -------------------- Entry Point --------------------

def parse_log_text(text: str) -> ParseResult:
    final = reduce(step, enumerate(text.split("\n"), start=1), initial_state())
    # later totals for the same date overwrite earlier ones
    totals = dict(final.daily_totals)
    sessions = sorted(final.sessions, key=attrgetter("date"))
    return ParseResult(sessions, totals, list(final.diagnostics))
