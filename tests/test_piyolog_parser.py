"""Tests for the piyolog line parser."""

import pytest

from piyolog_errors import INFO, WARNING, InvalidDate, InvalidTime, UnresolvedDuration
from piyolog_parser import (
    PendingSleep,
    SleepSession,
    compute_duration,
    initial_state,
    parse_date_header,
    parse_duration_annotation,
    parse_log_text,
    parse_timed_line,
    step,
    validate_date,
    validate_time,
)


def warnings_of(result):
    return [d for d in result.diagnostics if d.severity == WARNING]


class TestDateHeader:
    """Tests for YYYY/M/D(...) header recognition."""

    def test_zero_pads_month_and_day(self):
        assert parse_date_header("2024/7/1(月)") == "2024-07-01"

    def test_leap_day_accepted(self):
        assert parse_date_header("2024/2/29(木)") == "2024-02-29"

    def test_leap_day_on_common_year_rejected(self):
        with pytest.raises(InvalidDate):
            parse_date_header("2023/2/29(水)")

    def test_feb_30_rejected(self):
        with pytest.raises(InvalidDate):
            parse_date_header("2024/2/30(金)")

    def test_year_out_of_range_rejected(self):
        assert not validate_date(1899, 12, 31)
        assert not validate_date(2101, 1, 1)
        assert validate_date(1900, 1, 1)

    def test_non_header_returns_none(self):
        assert parse_date_header("ぴよ (0か月10日)") is None
        assert parse_date_header("2024/7/1") is None


class TestTimedLine:

    def test_valid_time(self):
        assert parse_timed_line("9:05   寝る") == (9, 5, "寝る")

    def test_out_of_range_time_raises(self):
        with pytest.raises(InvalidTime):
            parse_timed_line("24:10   寝る")

    def test_bounds(self):
        assert validate_time(0, 0)
        assert validate_time(23, 59)
        assert not validate_time(12, 60)

    def test_duration_annotation(self):
        assert parse_duration_annotation("起きる (6時間15分)") == 375
        assert parse_duration_annotation("起きる") is None


class TestComputeDuration:

    def test_same_day(self):
        assert compute_duration(PendingSleep("2024-07-01", 13, 0), "2024-07-01", 15, 0) == 120

    def test_wake_before_begin_adds_a_day(self):
        assert compute_duration(PendingSleep("2024-07-01", 23, 50), "2024-07-01", 0, 10) == 20

    def test_next_date(self):
        assert compute_duration(PendingSleep("2024-07-01", 21, 0), "2024-07-02", 6, 0) == 540

    def test_too_long_rejected(self):
        with pytest.raises(UnresolvedDuration):
            compute_duration(PendingSleep("2024-07-01", 10, 0), "2024-07-03", 9, 0)

    def test_negative_rejected(self):
        with pytest.raises(UnresolvedDuration):
            compute_duration(PendingSleep("2024-07-05", 10, 0), "2024-07-01", 9, 0)


class TestStep:
    """The fold step is pure: each transition can be checked alone."""

    def test_header_sets_date_and_keeps_pending(self):
        state = step(initial_state(), (1, "2024/7/1(月)"))
        state = step(state, (2, "21:00   寝る"))
        state = step(state, (3, "2024/7/2(火)"))
        assert state.current_date == "2024-07-02"
        assert state.pending == PendingSleep("2024-07-01", 21, 0)

    def test_invalid_header_clears_date(self):
        state = step(initial_state(), (1, "2024/7/1(月)"))
        state = step(state, (2, "2023/2/29(水)"))
        assert state.current_date is None
        assert state.diagnostics[-1].kind == "invalid_date"
        assert state.diagnostics[-1].lineno == 2

    def test_new_begin_replaces_pending(self):
        state = step(initial_state(), (1, "2024/7/1(月)"))
        state = step(state, (2, "10:00   寝る"))
        state = step(state, (3, "11:00   寝る"))
        assert state.pending == PendingSleep("2024-07-01", 11, 0)
        assert state.sessions == ()

    def test_blank_line_is_noop(self):
        state = initial_state()
        assert step(state, (1, "   ")) is state


class TestParseLogText:

    def test_annotation_wins_over_clock(self):
        text = "2024/7/1(月)\n00:15   寝る\n06:30   起きる (5時間0分)\n"
        result = parse_log_text(text)
        assert result.sessions == [SleepSession("2024-07-01", "00:15", "06:30", 300)]

    def test_annotation_example(self):
        text = "2024/7/1(月)\n00:15   寝る\n06:30   起きる (6時間15分)\n"
        (session,) = parse_log_text(text).sessions
        assert session.duration_minutes == 375
        assert session.duration_hours == 6.25

    def test_overnight_without_annotation(self):
        text = "2024/7/1(月)\n23:50   寝る\n00:10   起きる\n"
        (session,) = parse_log_text(text).sessions
        assert session.duration_minutes == 20
        assert session.sleep_time == "23:50"
        assert session.wake_time == "00:10"

    def test_session_dated_by_begin(self):
        text = "2024/7/1(月)\n21:00   寝る\n2024/7/2(火)\n06:00   起きる\n"
        (session,) = parse_log_text(text).sessions
        assert session.date == "2024-07-01"
        assert session.duration_minutes == 540

    def test_unmatched_wake_is_skipped_quietly(self):
        result = parse_log_text("2024/7/1(月)\n06:00   起きる (8時間0分)\n")
        assert result.sessions == []
        assert warnings_of(result) == []

    def test_daily_total_last_write_wins(self):
        text = "2024/7/1(月)\n睡眠合計　　10時間0分\n睡眠合計 11時間5分\n"
        assert parse_log_text(text).daily_totals == {"2024-07-01": 665}

    def test_lines_before_header_ignored(self):
        text = "睡眠合計 10時間0分\n01:00   寝る\n02:00   起きる\n2024/7/1(月)\n"
        result = parse_log_text(text)
        assert result.sessions == []
        assert result.daily_totals == {}

    def test_lines_after_invalid_header_ignored(self):
        text = "2024/2/30(金)\n01:00   寝る\n02:00   起きる\n睡眠合計 1時間0分\n"
        result = parse_log_text(text)
        assert result.sessions == []
        assert result.daily_totals == {}
        assert [d.kind for d in warnings_of(result)] == ["invalid_date"]

    def test_invalid_time_skipped_with_diagnostic(self):
        text = "2024/7/1(月)\n25:00   寝る\n02:00   起きる\n"
        result = parse_log_text(text)
        assert result.sessions == []
        assert [d.kind for d in warnings_of(result)] == ["invalid_time"]

    def test_overlong_annotation_dropped(self):
        text = "2024/7/1(月)\n01:00   寝る\n02:00   起きる (25時間0分)\n03:00   寝る\n04:00   起きる\n"
        result = parse_log_text(text)
        assert [s.sleep_time for s in result.sessions] == ["03:00"]
        assert [d.kind for d in warnings_of(result)] == ["unresolved_duration"]

    def test_zero_duration_not_recorded(self):
        text = "2024/7/1(月)\n01:00   寝る\n01:00   起きる (0時間0分)\n"
        result = parse_log_text(text)
        assert result.sessions == []
        assert warnings_of(result) == []

    def test_sorted_by_date_with_stable_ties(self):
        text = (
            "2024/7/5(金)\n10:00   寝る\n11:00   起きる\n"
            "2024/7/1(月)\n13:00   寝る\n14:00   起きる\n15:00   寝る\n16:00   起きる\n"
        )
        sessions = parse_log_text(text).sessions
        assert [(s.date, s.sleep_time) for s in sessions] == [
            ("2024-07-01", "13:00"),
            ("2024-07-01", "15:00"),
            ("2024-07-05", "10:00"),
        ]

    def test_sample_export(self, sample_log):
        result = parse_log_text(sample_log)
        assert [(s.date, s.sleep_time, s.wake_time, s.duration_minutes) for s in result.sessions] == [
            ("2024-07-01", "01:00", "04:30", 210),
            ("2024-07-01", "13:00", "15:00", 120),
            ("2024-07-01", "21:00", "05:30", 510),
            ("2024-07-02", "12:00", "12:45", 45),
        ]
        assert result.daily_totals == {"2024-07-01": 690, "2024-07-02": 600}
        assert warnings_of(result) == []
        assert [d.kind for d in result.diagnostics if d.severity == INFO] == ["daily_total", "daily_total"]

    def test_end_to_end_single_day(self):
        text = "2024/7/1(月)\n13:00   寝る\n14:30   起きる\n睡眠合計 1時間30分\n"
        result = parse_log_text(text)
        assert len(result.sessions) == 1
        assert result.sessions[0].date == "2024-07-01"
        assert result.daily_totals == {"2024-07-01": 90}

    def test_never_raises_on_garbage(self):
        result = parse_log_text("\x00\n::\n99:99 寝る\n2024/13/1(x)\n")
        assert result.sessions == []

    def test_full_width_digits_are_not_dates_or_times(self):
        text = "２０２４/７/１(月)\n１３:００   寝る\n１４:００   起きる\n"
        result = parse_log_text(text)
        assert result.sessions == []
        assert result.diagnostics == []

    def test_full_width_time_after_valid_header_ignored(self):
        text = "2024/7/1(月)\n１３:００   寝る\n14:00   起きる\n睡眠合計　１時間0分\n"
        result = parse_log_text(text)
        assert result.sessions == []
        assert result.daily_totals == {}

    def test_full_width_space_in_sleep_total(self):
        text = "2024/7/1(月)\n睡眠合計　　9時間5分\n"
        assert parse_log_text(text).daily_totals == {"2024-07-01": 545}

    def test_only_newline_splits_lines(self):
        for sep in ("\x0c", "\x0b", "\x1e", "\x85", "\u2028", "\u2029"):
            text = f"2024/7/1(月)\n13:00   寝る\nメモ{sep}14:00   起きる\n15:00   起きる\n"
            (session,) = parse_log_text(text).sessions
            assert session.wake_time == "15:00"
            assert session.duration_minutes == 120

    def test_crlf_line_endings(self):
        text = "2024/7/1(月)\r\n13:00   寝る\r\n14:00   起きる\r\n"
        (session,) = parse_log_text(text).sessions
        assert session.duration_minutes == 60
