"""
sleep_aggregator.py
- Merges one or more pasted piyolog tabs into a single Dataset
- Tabs are stripped of their month header and concatenated BEFORE parsing,
  so a sleep that starts at the end of one tab and ends in the next still pairs up
- Computes: average session length, average daily total, date range
- Builds chart-ready projections: per-day bar hours and per-day sleep intervals
  (split at midnight, shaded by session length)
"""

import math
import re
from dataclasses import asdict, dataclass, field
from typing import Dict, List, NamedTuple, Optional, Tuple

import pandas as pd

from piyolog_errors import WARNING, Diagnostic, NoInputProvided, NoSleepDataFound
from piyolog_parser import SleepSession, parse_log_text


LOG_HEADER_RE = re.compile(r"^【ぴよログ】.*?\n-+\n*")
MONTH_HEADER_RE = re.compile(r"【ぴよログ】([0-9]{4})年([0-9]{1,2})月")
FIRST_DATE_RE = re.compile(r"([0-9]{4})/([0-9]{1,2})/[0-9]{1,2}")

TAB_SEPARATOR = "\n\n"
RANGE_SEPARATOR = " ～ "
NO_DATA = "-"

MIN_ALPHA = 0.3
MAX_ALPHA = 0.9
MID_ALPHA = 0.6

SESSION_COLUMNS = ["date", "sleep_time", "wake_time", "duration_minutes"]


# -------------------- Types --------------------

class TabStatus(NamedTuple):
    index: int
    status: str         # "empty" | "success"
    message: str = ""


class BarPoint(NamedTuple):
    day_index: int
    hours: float


class MonthBoundary(NamedTuple):
    day_index: int
    month_key: str      # YYYY-MM
    date: str


class IntervalSegment(NamedTuple):
    day_index: int
    start: float        # decimal hours, 0..24
    end: float
    duration: float     # full session span in hours, not just this segment
    alpha: float
    session_index: int
    continued: bool = False

    @property
    def label(self) -> str:
        suffix = "続き" if self.continued else ""
        return (f"{self.day_index}日目 - 睡眠{self.session_index}{suffix} "
                f"({format_duration(self.duration * 60)})")


@dataclass
class Dataset:
    sessions: List[SleepSession]
    daily_totals: Dict[str, int]
    diagnostics: List[Diagnostic] = field(default_factory=list)
    tab_statuses: List[TabStatus] = field(default_factory=list)

    def sessions_frame(self) -> pd.DataFrame:
        return pd.DataFrame([asdict(s) for s in self.sessions], columns=SESSION_COLUMNS)

    def daily_totals_frame(self) -> pd.DataFrame:
        df = pd.DataFrame(sorted(self.daily_totals.items()), columns=["date", "total_minutes"])
        df = df.astype({"total_minutes": "int64"})
        df["hours"] = df["total_minutes"].map(lambda m: round(int(m) / 60, 1))
        return df


# -------------------- Text Helpers --------------------

def format_duration(minutes: float) -> str:
    """Format minutes as `H時間M分`."""
    hours = math.floor(minutes / 60)
    mins = math.floor(minutes % 60 + 0.5)
    if mins == 60:
        hours, mins = hours + 1, 0
    return f"{hours}時間{mins}分"


def time_to_decimal(clock: str) -> float:
    hour, minute = clock.split(":")
    return int(hour) + int(minute) / 60


def strip_log_header(text: str) -> str:
    return LOG_HEADER_RE.sub("", text)


def extract_month_info(text: str) -> Optional[Tuple[int, int]]:
    """(year, month) from the export header, else from the first date line."""
    m = MONTH_HEADER_RE.search(text) or FIRST_DATE_RE.search(text)
    if not m:
        return None
    return int(m.group(1)), int(m.group(2))


def check_month_continuity(texts) -> List[str]:
    months = [extract_month_info(t) for t in texts if t and t.strip()]
    warnings = []
    for prev, cur in zip(months, months[1:]):
        if prev is None or cur is None:
            continue
        gap = (cur[0] - prev[0]) * 12 + (cur[1] - prev[1])
        if gap > 1:
            warnings.append(f"{gap - 1} month gap between {prev[0]}/{prev[1]} and {cur[0]}/{cur[1]}")
    return warnings


# -------------------- Dataset --------------------

def combine_tabs(texts) -> Tuple[str, List[TabStatus]]:
    parts = []
    statuses = []
    for idx, raw in enumerate(texts):
        text = (raw or "").replace("\r\n", "\n").strip()
        if not text:
            statuses.append(TabStatus(idx, "empty"))
            continue
        parts.append(strip_log_header(text))
        statuses.append(TabStatus(idx, "success", "log text loaded"))

    if not parts:
        raise NoInputProvided()
    return TAB_SEPARATOR.join(parts), statuses


def build_dataset(texts) -> Dataset:
    """
    Parse every non-empty tab as ONE log. Raises NoInputProvided when all tabs
    are empty and NoSleepDataFound when the log holds no complete sleep session.
    """
    texts = list(texts)
    combined, statuses = combine_tabs(texts)
    result = parse_log_text(combined)

    diagnostics = list(result.diagnostics)
    diagnostics.extend(Diagnostic(WARNING, "month_gap", w) for w in check_month_continuity(texts))

    if not result.sessions:
        raise NoSleepDataFound(diagnostics=diagnostics)

    return Dataset(
        sessions=list(result.sessions),
        daily_totals=dict(result.daily_totals),
        diagnostics=diagnostics,
        tab_statuses=statuses,
    )


# -------------------- Statistics --------------------

def average_session_minutes(dataset: Dataset) -> float:
    if not dataset.sessions:
        return 0.0
    return float(dataset.sessions_frame()["duration_minutes"].mean())


def average_daily_total(dataset: Dataset) -> float:
    if not dataset.daily_totals:
        return 0.0
    return float(pd.Series(list(dataset.daily_totals.values())).mean())


def date_range(dataset: Dataset) -> str:
    if not dataset.sessions:
        return NO_DATA
    dates = pd.to_datetime(dataset.sessions_frame()["date"])
    lo, hi = dates.min(), dates.max()
    if lo == hi:
        return lo.strftime("%Y/%m/%d")
    return f"{lo.strftime('%Y/%m/%d')}{RANGE_SEPARATOR}{hi.strftime('%Y/%m/%d')}"


def summarize(dataset: Dataset) -> dict:
    return {
        "date_range": date_range(dataset),
        "sessions": len(dataset.sessions),
        "days_with_totals": len(dataset.daily_totals),
        "avg_session_min": average_session_minutes(dataset),
        "avg_daily_total_min": average_daily_total(dataset),
    }


# -------------------- Chart Projections --------------------

def bar_projection(dataset: Dataset) -> List[BarPoint]:
    """Daily total hours, labelled by position (1, 2, ...) rather than by date."""
    df = dataset.daily_totals_frame()
    return [BarPoint(i, float(h)) for i, h in enumerate(df["hours"], start=1)]


def month_boundaries(dataset: Dataset) -> List[MonthBoundary]:
    """Where each month after the first starts, in bar-projection day indexes."""
    dates = sorted(dataset.daily_totals)
    seen = {}
    for pos, d in enumerate(dates, start=1):
        seen.setdefault(d[:7], (pos, d))
    keys = sorted(seen)
    return [MonthBoundary(seen[k][0], k, seen[k][1]) for k in keys[1:]]


def duration_alpha(duration: float, min_duration: float, max_duration: float) -> float:
    if max_duration == min_duration:
        return MID_ALPHA
    normalized = (duration - min_duration) / (max_duration - min_duration)
    return MIN_ALPHA + normalized * (MAX_ALPHA - MIN_ALPHA)


def _interval_frame(dataset: Dataset) -> pd.DataFrame:
    df = dataset.sessions_frame()
    df["start"] = df["sleep_time"].map(time_to_decimal)
    df["end"] = df["wake_time"].map(time_to_decimal)
    # wake at or before sleep means the sleep ran past midnight
    df.loc[df["end"] <= df["start"], "end"] += 24
    df["span"] = df["end"] - df["start"]
    days = {d: i for i, d in enumerate(sorted(df["date"].unique()), start=1)}
    df["day_index"] = df["date"].map(days)
    df["session_index"] = df.groupby("date").cumcount() + 1
    return df


def interval_projection(dataset: Dataset) -> List[IntervalSegment]:
    """
    One segment per session on its own day row; a session running past 24:00
    is split into [start, 24] and a continuation [0, end - 24] on the next row,
    the continuation only when a next row exists.
    """
    if not dataset.sessions:
        return []

    df = _interval_frame(dataset)
    n_days = int(df["day_index"].max())
    lo, hi = float(df["span"].min()), float(df["span"].max())

    segments = []
    for row in df.itertuples(index=False):
        day, k = int(row.day_index), int(row.session_index)
        start, end, span = float(row.start), float(row.end), float(row.span)
        alpha = duration_alpha(span, lo, hi)
        if end <= 24:
            segments.append(IntervalSegment(day, start, end, span, alpha, k))
            continue
        segments.append(IntervalSegment(day, start, 24.0, span, alpha, k))
        if day + 1 <= n_days:
            segments.append(IntervalSegment(day + 1, 0.0, end - 24, span, alpha, k, continued=True))
    return segments


def segments_frame(segments: List[IntervalSegment]) -> pd.DataFrame:
    rows = [dict(s._asdict(), label=s.label) for s in segments]
    return pd.DataFrame(rows, columns=list(IntervalSegment._fields) + ["label"])
