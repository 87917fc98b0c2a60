from __future__ import annotations

from testsched.report.summarize import RunSummary
from testsched.util.text import count_noun

REPORT_WIDTH = 80


def timestr(seconds: float) -> str:
    """Render a duration in the units a reader would most likely want.

    >>> timestr(12345)
    '3 hours 25 minutes'
    >>> timestr(123)
    '2 minutes 3 seconds'
    """
    if not seconds:
        return "(no time)"
    whole = int(seconds)
    if not whole:
        # non-zero before truncation, so almost no time
        return "< 1 second"
    if whole < 0:
        return "-" + timestr(-whole)

    hours = minutes = 0
    if whole >= 60 * 60:
        hours = whole // (60 * 60)
        minutes = whole % (60 * 60) // 60
        whole = 0
    elif whole >= 60:
        minutes = whole // 60
        whole %= 60

    parts: list[str] = []
    if hours:
        parts.append(count_noun(hours, "hour"))
    if minutes:
        parts.append(count_noun(minutes, "minute"))
    if whole:
        parts.append(count_noun(whole, "second"))
    return " ".join(parts)


def _rule(title: str) -> str:
    return title.ljust(REPORT_WIDTH, "=")


def render_timing(summary: RunSummary) -> list[str]:
    timing = summary.timing
    saved_label = f"Estimated time saved by -j{summary.jobs}:"
    rows = [
        ("Total:", timing.total),
        ("Serial tests:", timing.serial),
        ("Parallel tests:", timing.parallel),
        ("Estimated time spent on insignificant tests:", timing.insignificant),
        (saved_label, timing.saved),
    ]
    width = max(len(label) for label, _ in rows) + 1
    lines = ["=== Timing: =================== TEST RUN COMPLETED! ============================"]
    lines.extend(f"  {label.ljust(width)}{timestr(value)}" for label, value in rows)
    return lines


def render_failures(summary: RunSummary) -> list[str]:
    if not summary.failures:
        return []
    lines = [_rule("=== Failures: ")]
    for result in summary.failures:
        line = f"  {result.label}"
        if result.insignificant_test:
            line += " [insignificant]"
        lines.append(line)
    return lines


def render_totals(summary: RunSummary) -> str:
    message = (
        f"=== Totals: {count_noun(summary.total, 'test')}, "
        f"{count_noun(summary.passed, 'pass')}"
    )
    if summary.failed:
        message += f", {count_noun(summary.failed, 'fail')}"
    if summary.insignificant_failed:
        message += f", {count_noun(summary.insignificant_failed, 'insignificant fail')}"
    return _rule(message + " ")


def render_report(summary: RunSummary) -> str:
    lines = [*render_timing(summary), *render_failures(summary), render_totals(summary)]
    return "\n".join(lines)
