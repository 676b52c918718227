#!/usr/bin/env python3
"""
piyolog_report.py
- Reads one piyolog text export per month tab (files, or `-` for stdin)
- Joins the tabs and parses them as one log (sleeps may span two tabs)
- Prints: date range, session count, average sleep length, average daily total
- Optional CSV exports: sessions, per-day totals (bar chart values), interval segments
"""

import os
import sys
import argparse

from piyolog_errors import INFO, NoInputProvided, NoSleepDataFound
from sleep_aggregator import (
    bar_projection,
    build_dataset,
    format_duration,
    interval_projection,
    month_boundaries,
    segments_frame,
    summarize,
)


# -------------------- Input --------------------

def load_texts(paths, encoding="utf-8") -> list:
    texts = []
    for path in paths:
        if path == "-":
            texts.append(sys.stdin.read())
            continue
        with open(path, "r", encoding=encoding) as f:
            texts.append(f.read())
    return texts


# -------------------- Output --------------------

def print_diagnostics(diagnostics, verbose: bool = False):
    for d in diagnostics:
        if d.severity == INFO:
            if verbose:
                print(f"[i] {d.message}")
            continue
        where = f"line {d.lineno}: " if d.lineno is not None else ""
        print(f"[!] {where}{d.message}")


def print_summary(dataset):
    summ = summarize(dataset)
    print("PIYOLOG SLEEP SUMMARY")
    print(f"Period: {summ['date_range']}")
    print(f"Sleep sessions: {summ['sessions']}")
    print(f"Average sleep length: {format_duration(summ['avg_session_min'])}")
    if summ["days_with_totals"]:
        print(f"Average daily sleep: {format_duration(summ['avg_daily_total_min'])} "
              f"({summ['days_with_totals']} days)")
    else:
        print("Average daily sleep: - (no 睡眠合計 lines)")
    for b in month_boundaries(dataset):
        print(f"New month {b.month_key} starts at day {b.day_index} ({b.date})")


def write_csv_exports(dataset, args):
    if not (args.sessions_csv or args.summary_csv or args.segments_csv):
        return
    os.makedirs(args.out_dir, exist_ok=True)

    if args.sessions_csv:
        out_csv = os.path.join(args.out_dir, args.sessions_csv)
        dataset.sessions_frame().to_csv(out_csv, index=False)
        print(f"📝 Wrote sessions CSV: {out_csv}")

    if args.summary_csv:
        out_csv = os.path.join(args.out_dir, args.summary_csv)
        df = dataset.daily_totals_frame()
        df.insert(0, "day", [b.day_index for b in bar_projection(dataset)])
        df.to_csv(out_csv, index=False)
        print(f"📊 Wrote daily summary CSV: {out_csv}")

    if args.segments_csv:
        out_csv = os.path.join(args.out_dir, args.segments_csv)
        segments_frame(interval_projection(dataset)).to_csv(out_csv, index=False)
        print(f"🕒 Wrote interval segments CSV: {out_csv}")


# -------------------- CLI & Main --------------------

def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Summarize infant sleep from piyolog text exports (one file per month tab)."
    )
    p.add_argument("logs", nargs="+",
                   help="Text export files in tab order; use - to read one from stdin")
    p.add_argument("--encoding", default="utf-8",
                   help="Encoding of the text files (default: utf-8)")
    p.add_argument("--out-dir", type=str, default=".",
                   help="Directory to write CSVs (default: current dir)")
    p.add_argument("--sessions-csv", type=str, default=None,
                   help="If set, write every sleep session to this CSV")
    p.add_argument("--summary-csv", type=str, default=None,
                   help="If set, write per-day sleep totals (bar chart values) to this CSV")
    p.add_argument("--segments-csv", type=str, default=None,
                   help="If set, write the sleep interval segments (time-of-day chart) to this CSV")
    p.add_argument("--quiet", action="store_true",
                   help="Do not print skipped-line warnings")
    p.add_argument("--verbose", action="store_true",
                   help="Also print informational notes such as each recorded daily total")
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    try:
        texts = load_texts(args.logs, args.encoding)
    except (OSError, UnicodeDecodeError) as e:
        print(f"[!] Failed to load log text: {e}")
        sys.exit(1)

    try:
        dataset = build_dataset(texts)
    except NoInputProvided:
        print("[!] No log text was entered. Paste a piyolog export into at least one file.")
        sys.exit(1)
    except NoSleepDataFound as e:
        if not args.quiet:
            print_diagnostics(e.diagnostics, verbose=args.verbose)
        print("[!] No valid sleep data found. Check that the text is a piyolog export.")
        sys.exit(1)

    loaded = sum(1 for s in dataset.tab_statuses if s.status == "success")
    print(f"[i] Loaded {loaded} of {len(dataset.tab_statuses)} tab(s)")
    if not args.quiet:
        print_diagnostics(dataset.diagnostics, verbose=args.verbose)

    print_summary(dataset)
    write_csv_exports(dataset, args)


if __name__ == "__main__":
    main()
