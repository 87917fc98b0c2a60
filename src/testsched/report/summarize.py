from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from testsched.state.model import Outcome, RunState, TestResult
from testsched.util.errors import ResultCountError

# Tests run about 10% slower when competing with parallel siblings.
PARALLEL_DERATE = 0.9


def verify_result_count(expected: int, results: Sequence[TestResult]) -> None:
    if len(results) != expected:
        raise ResultCountError(
            f"internal error: expected to run {expected} tests, "
            f"but {len(results)} tests reported results"
        )


def classify(result: TestResult) -> Outcome:
    if result.exit_status == 0:
        return "pass"
    if result.insignificant_test:
        return "insignificant_fail"
    return "fail"


def run_failed(results: Sequence[TestResult]) -> bool:
    """Return True when any test failed without being marked insignificant."""
    return any(classify(result) == "fail" for result in results)


@dataclass(slots=True)
class Timing:
    total: float
    serial: float
    parallel: float
    insignificant: float
    saved: float


@dataclass(slots=True)
class RunSummary:
    jobs: int
    timing: Timing
    total: int = 0
    passed: int = 0
    failed: int = 0
    insignificant_failed: int = 0
    failures: list[TestResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not run_failed(self.failures)


def _insignificant_share(result: TestResult) -> float:
    if result.parallel_count:
        return result.elapsed / result.parallel_count
    return result.elapsed


def build_timing(state: RunState, results: Sequence[TestResult]) -> Timing:
    serial_only = sum(r.elapsed for r in results if r.phase == "parallel")
    if state.jobs > 1:
        serial_only *= PARALLEL_DERATE
    insignificant = sum(
        _insignificant_share(r) for r in results if classify(r) == "insignificant_fail"
    )
    return Timing(
        total=state.parallel_elapsed + state.serial_elapsed,
        serial=state.serial_elapsed,
        parallel=state.parallel_elapsed,
        insignificant=insignificant,
        saved=serial_only - state.parallel_elapsed,
    )


def build_summary(state: RunState, results: Sequence[TestResult]) -> RunSummary:
    summary = RunSummary(jobs=state.jobs, timing=build_timing(state, results))
    for result in results:
        summary.total += 1
        outcome = classify(result)
        if outcome == "pass":
            summary.passed += 1
            continue
        if outcome == "fail":
            summary.failed += 1
        else:
            summary.insignificant_failed += 1
        summary.failures.append(result)
    return summary
