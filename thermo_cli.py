#!/usr/bin/env python3
# thermo_cli.py - streaming twin-prime thermodynamics from the command line
#
# Examples:
#   twin-thermo --max-primes 200000
#   twin-thermo --start 1000000 --seconds 30 --mode twins --plot kt.png --save-csv kt.csv
from __future__ import annotations
import argparse
import logging
import queue
import sys
import threading
import time
from typing import List, Optional

from twin_constants import DEFAULT_SIEVE_LIMIT, SNAPSHOT_EVERY
from twin_stats import AnalysisMode, Stats
from twin_thermo import StreamAnalyzer, ThermoError
import thermo_report

logger = logging.getLogger("twin_thermo.cli")

def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Prime / twin-prime thermodynamics (streaming)")
    ap.add_argument("--start", default="3", help="first n to examine (>= 2)")
    ap.add_argument("--mode", choices=[m.value for m in AnalysisMode], default=AnalysisMode.BOTH.value,
                    help="which statistics to display")
    ap.add_argument("--max-primes", type=int, default=0, help="stop once this many primes were counted (0 = no limit)")
    ap.add_argument("--seconds", type=float, default=0.0, help="stop after this many seconds (0 = no limit)")
    ap.add_argument("--sieve-limit", type=int, default=DEFAULT_SIEVE_LIMIT,
                    help="base sieve limit; primality is exact up to its square")
    ap.add_argument("--every", type=int, default=SNAPSHOT_EVERY, help="primes between snapshots")
    ap.add_argument("--quiet", action="store_true", help="one summary line per snapshot instead of the full report")
    ap.add_argument("--plot", metavar="PATH", help="save a per-decade kT plot (PNG) when finished")
    ap.add_argument("--save-csv", metavar="PATH", help="save the per-decade table when finished")
    ap.add_argument("--log-file", metavar="PATH", help="also log to this file")
    ap.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return ap

def setup_logging(level: str, log_file: Optional[str]) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )

def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    q: "queue.Queue[Optional[Stats]]" = queue.Queue()
    done = threading.Event()

    def on_snapshot(s: Stats) -> None:
        q.put(s)
        if args.max_primes and s.prime_count >= args.max_primes:
            analyzer.stop()

    def on_finished() -> None:
        q.put(None)
        done.set()

    analyzer = StreamAnalyzer(on_snapshot=on_snapshot, on_finished=on_finished)
    try:
        analyzer.configure(args.start, args.mode, False,
                           snapshot_every=args.every, sieve_limit=args.sieve_limit)
        analyzer.start()
    except ThermoError as e:
        logger.error("could not start: %s", e)
        print(f"error: {e}", file=sys.stderr)
        return 2

    last: List[Stats] = []

    def consume():
        while True:
            s = q.get()
            if s is None:
                return
            last[:] = [s]
            if args.quiet:
                print(thermo_report.summary_line(s), flush=True)
            else:
                print(thermo_report.render(s), flush=True)
                print("-" * 72, flush=True)

    printer = threading.Thread(target=consume, daemon=True)
    printer.start()

    t0 = time.perf_counter()
    try:
        while not done.wait(0.1):
            if args.seconds and time.perf_counter() - t0 >= args.seconds:
                analyzer.stop()
    except KeyboardInterrupt:
        print("\nInterrupted. Stopping…", file=sys.stderr, flush=True)
        analyzer.stop()
        analyzer.join(timeout=5.0)
    printer.join(timeout=1.0)

    wall = time.perf_counter() - t0
    final = last[0] if last else analyzer.last_snapshot
    if final is None:
        print(f"[run] no snapshot produced in {wall:.1f}s", flush=True)
        return 0
    print(f"[run] {thermo_report.summary_line(final)} | wall={wall:.1f}s", flush=True)
    logger.info("run finished after %.1fs: primes=%d twins=%d", wall, final.prime_count, final.twin_count)
    if args.save_csv:
        thermo_report.save_decades_csv(final, args.save_csv)
    if args.plot:
        thermo_report.plot_decades(final, args.plot)
    return 0

if __name__ == "__main__":
    sys.exit(main())
