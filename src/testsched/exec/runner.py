from __future__ import annotations

from collections.abc import Sequence
from typing import NoReturn

from testsched.config.schema import TestDescriptor
from testsched.exec.spawn import ProcessBackend, build_testrunner_cmd, select_backend
from testsched.plan.partition import partition
from testsched.report.summarize import verify_result_count
from testsched.state.model import Phase, RunningTest, RunState, TestResult
from testsched.util.errors import ResultCountError, RunInterruptedError
from testsched.util.output import DebugLog, Items, Lazy, Scalar, dump, info, warn
from testsched.util.text import count_noun
from testsched.util.time import Stopwatch

SYNC_OUTPUT_FLAG = "--sync-output"


class TestScheduler:
    """Run a plan's tests through the execution wrapper.

    Parallel-eligible tests run first, up to ``jobs`` at a time; everything
    else runs afterwards, one at a time. All bookkeeping lives in ``state``
    and is touched only from the calling thread.
    """

    __test__ = False

    def __init__(
        self,
        *,
        jobs: int,
        testrunner: Sequence[str],
        testrunner_args: Sequence[str] = (),
        backend: ProcessBackend | None = None,
        debug: DebugLog | None = None,
    ) -> None:
        self.testrunner = list(testrunner)
        self.testrunner_args = list(testrunner_args)
        self.backend = backend if backend is not None else select_backend()
        self.debug = debug if debug is not None else DebugLog()
        self.state = RunState(jobs=jobs)

    def running_count(self) -> int:
        count = len(self.state.running)
        self.debug(Scalar(f"{count} test(s) currently running"))
        return count

    def spawn_test(
        self, test: TestDescriptor, phase: Phase, extra_args: Sequence[str] = ()
    ) -> None:
        cmd = build_testrunner_cmd(self.testrunner, test, extra_args, self.testrunner_args)
        running = RunningTest(test=test, phase=phase)
        handle = self.backend.spawn(cmd)
        self.state.running[handle] = running
        self.state.peak_running = max(self.state.peak_running, len(self.state.running))
        self.debug(Lazy(lambda: f"spawned {handle.pid} <- " + " ".join(f"[{c}]" for c in cmd)))

    def reap_one(self) -> None:
        """Block until one test exits and record its result."""
        if not self.running_count():
            return
        try:
            exited = self.backend.wait_any()
        except KeyboardInterrupt as exc:
            self._abort(exc)

        if exited is None:
            raise ResultCountError(
                "wait reported no child processes, but "
                f"{count_noun(len(self.state.running), 'test')} still tracked as running"
            )
        self.debug(
            Items(
                [
                    "wait:",
                    f"(pid: {exited.handle.pid},",
                    f"status: {exited.status},",
                    f"exitcode: {exited.exit_code})",
                ]
            )
        )

        running = self.state.running.pop(exited.handle, None)
        if running is None:
            warn(
                f"wait returned {exited.handle.pid}; this pid could not be "
                "associated with any running test"
            )
            return

        result = TestResult(
            test=running.test,
            exit_status=exited.status,
            exit_code=exited.exit_code,
            elapsed=running.timer.stop(),
            parallel_count=len(self.state.running),
            phase=running.phase,
        )
        self.state.results.append(result)
        if result.exit_status != 0:
            message = f"{result.label} failed"
            if result.insignificant_test:
                message += " [insignificant]"
            info(message)

    def _abort(self, exc: KeyboardInterrupt) -> NoReturn:
        # Children are signalled but not reaped; the run is being abandoned.
        for handle in list(self.state.running):
            self.backend.terminate(handle)
        raise RunInterruptedError("aborting due to SIGINT") from exc

    def _drain(self) -> None:
        while self.running_count():
            self.reap_one()

    def run_parallel(self, tests: Sequence[TestDescriptor]) -> None:
        if not tests:
            return
        timer = Stopwatch()
        for test in tests:
            while self.running_count() >= max(self.state.jobs, 1):
                self.reap_one()
            self.spawn_test(test, "parallel", [SYNC_OUTPUT_FLAG])
        self._drain()
        self.state.parallel_elapsed = timer.stop()

    def run_serial(self, tests: Sequence[TestDescriptor]) -> None:
        if not tests:
            return
        timer = Stopwatch()
        for test in tests:
            self._drain()
            self.spawn_test(test, "serial")
        self._drain()
        self.state.serial_elapsed = timer.stop()

    def run(self, tests: Sequence[TestDescriptor]) -> list[TestResult]:
        """Execute ``tests`` (already sorted) and return one result per test."""
        groups = partition(tests, self.state.jobs)
        self.debug(
            Lazy(
                lambda: "partition: "
                + dump(
                    {
                        "parallel": [test.label for test in groups.parallel],
                        "serial": [test.label for test in groups.serial],
                    }
                )
            )
        )

        try:
            self.run_parallel(groups.parallel)
            if groups.parallel and groups.serial:
                info(
                    f"ran {count_noun(len(groups.parallel), 'parallel test')}.  "
                    f"Starting {count_noun(len(groups.serial), 'serial test')}."
                )
            self.run_serial(groups.serial)
        except KeyboardInterrupt as exc:
            self._abort(exc)
        self.debug(Scalar(f"peak concurrency: {self.state.peak_running}"))

        verify_result_count(len(tests), self.state.results)
        return list(self.state.results)
