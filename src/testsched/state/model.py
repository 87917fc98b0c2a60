from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from testsched.config.schema import TestDescriptor
from testsched.exec.spawn import ProcessHandle
from testsched.util.time import Stopwatch

Phase = Literal["parallel", "serial"]
Outcome = Literal["pass", "fail", "insignificant_fail"]


@dataclass(slots=True)
class RunningTest:
    test: TestDescriptor
    phase: Phase
    timer: Stopwatch = field(default_factory=Stopwatch)


@dataclass(frozen=True, slots=True)
class TestResult:
    __test__ = False

    test: TestDescriptor
    exit_status: int
    exit_code: int
    elapsed: float
    parallel_count: int
    phase: Phase

    @property
    def label(self) -> str:
        return self.test.label

    @property
    def insignificant_test(self) -> bool:
        return self.test.insignificant_test

    def to_dict(self) -> dict[str, object]:
        return {
            **self.test.to_dict(),
            "exit_status": self.exit_status,
            "exit_code": self.exit_code,
            "elapsed": round(self.elapsed, 3),
            "parallel_count": self.parallel_count,
            "phase": self.phase,
        }


@dataclass(slots=True)
class RunState:
    jobs: int
    running: dict[ProcessHandle, RunningTest] = field(default_factory=dict)
    results: list[TestResult] = field(default_factory=list)
    parallel_elapsed: float = 0.0
    serial_elapsed: float = 0.0
    peak_running: int = 0
