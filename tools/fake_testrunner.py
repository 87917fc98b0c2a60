#!/usr/bin/env python3
"""Minimal testrunner used by testsched integration tests.

Usage: fake_testrunner.py [--chdir DIR] [--sync-output] [--log FILE] -- program args...
"""

from __future__ import annotations

import argparse
import os
import subprocess
import sys
import time


def parse_args(argv: list[str]) -> tuple[argparse.Namespace, list[str]]:
    if "--" not in argv:
        raise SystemExit("fake_testrunner: missing '--' before test command")
    split = argv.index("--")
    parser = argparse.ArgumentParser(description="Fake testrunner for testsched tests")
    parser.add_argument("--chdir")
    parser.add_argument("--sync-output", action="store_true")
    parser.add_argument("--log", help="append start/end events for this test to FILE")
    args, _unknown = parser.parse_known_args(argv[:split])
    return args, argv[split + 1 :]


def _log(path: str | None, event: str, label: str) -> None:
    if path is None:
        return
    with open(path, "a", encoding="utf-8") as f:
        f.write(f"{time.time():.6f} {event} {label} {os.getpid()}\n")


def main(argv: list[str]) -> int:
    args, cmd = parse_args(argv)
    if not cmd:
        raise SystemExit("fake_testrunner: empty test command")
    if args.chdir:
        os.chdir(args.chdir)
    label = os.path.basename(cmd[-1])
    _log(args.log, "start", label)
    proc = subprocess.run(cmd, check=False)
    _log(args.log, "end", label)
    return proc.returncode


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
