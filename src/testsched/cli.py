from __future__ import annotations

import shlex
from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape
from rich.table import Table

from testsched.config.loader import load_plan
from testsched.config.schema import TestDescriptor
from testsched.exec.runner import TestScheduler
from testsched.plan.partition import partition
from testsched.report.render_text import render_report
from testsched.report.summarize import build_summary
from testsched.util.errors import PlanError, RunInterruptedError, SchedulerError
from testsched.util.output import DebugLog, Lazy, console, dump, err_console

app = typer.Typer(
    help="Run a set of autotests from a testplan.",
    add_completion=False,
)

EXIT_FATAL = 2
EXIT_INTERRUPTED = 4


def _print_error(title: str, detail: str) -> None:
    err_console.print(f"[red]{title}:[/red] {escape(detail)}", soft_wrap=True)


def _split_testrunner_or_exit(testrunner: str) -> list[str]:
    try:
        cmd = shlex.split(testrunner)
    except ValueError as exc:
        _print_error("Invalid testrunner", str(exc))
        raise typer.Exit(EXIT_FATAL) from exc
    if not cmd:
        _print_error("Invalid testrunner", "command must not be empty")
        raise typer.Exit(EXIT_FATAL)
    return cmd


def _passthrough_args(args: list[str]) -> list[str]:
    if args and args[0] == "--":
        return args[1:]
    return args


def _print_dry_run(tests: list[TestDescriptor], jobs: int) -> None:
    groups = partition(tests, jobs)
    table = Table(title=f"Dry Run - Execution Order (-j{jobs})")
    table.add_column("#")
    table.add_column("label")
    table.add_column("phase")
    table.add_column("insignificant")
    ordered = [("parallel", t) for t in groups.parallel] + [("serial", t) for t in groups.serial]
    for idx, (phase, test) in enumerate(ordered, start=1):
        table.add_row(
            str(idx), escape(test.label), phase, "yes" if test.insignificant_test else "no"
        )
    console.print(table)


@app.command(context_settings={"allow_extra_args": True, "ignore_unknown_options": True})
def run(
    ctx: typer.Context,
    plan_path: Annotated[
        Path, typer.Option("--plan", help="Execute the test plan from this file.")
    ],
    jobs: Annotated[
        int, typer.Option("-j", "--jobs", help="Run parallel_test tests up to N at a time.")
    ] = 1,
    summary: Annotated[
        bool,
        typer.Option("--summary/--no-summary", help="Print timing, failures and totals."),
    ] = True,
    debug: Annotated[bool, typer.Option("--debug", help="Output debugging details.")] = False,
    testrunner: Annotated[
        str,
        typer.Option(
            "--testrunner",
            envvar="TESTSCHED_TESTRUNNER",
            help="Command used to launch each test.",
        ),
    ] = "testrunner",
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="Show the execution order and exit.")
    ] = False,
) -> None:
    """Run the tests of a testplan; remaining arguments are passed to the testrunner."""
    debug_log = DebugLog(debug)
    try:
        tests = load_plan(plan_path)
    except PlanError as exc:
        _print_error("Plan validation error", str(exc))
        raise typer.Exit(EXIT_FATAL) from exc
    debug_log(Lazy(lambda: "testplan: " + dump([test.to_dict() for test in tests])))

    if dry_run:
        _print_dry_run(tests, jobs)
        raise typer.Exit(0)

    scheduler = TestScheduler(
        jobs=jobs,
        testrunner=_split_testrunner_or_exit(testrunner),
        testrunner_args=_passthrough_args(list(ctx.args)),
        debug=debug_log,
    )
    try:
        results = scheduler.run(tests)
    except RunInterruptedError as exc:
        _print_error("Run interrupted", str(exc))
        raise typer.Exit(EXIT_INTERRUPTED) from exc
    except SchedulerError as exc:
        _print_error("Run execution failed", str(exc))
        raise typer.Exit(EXIT_FATAL) from exc
    debug_log(Lazy(lambda: "results: " + dump([result.to_dict() for result in results])))

    report = build_summary(scheduler.state, results)
    if summary:
        typer.echo(render_report(report))
    raise typer.Exit(0 if report.success else 1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
