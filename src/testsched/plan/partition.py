"""Split a sorted plan into parallel and serial groups."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from testsched.config.schema import TestDescriptor


@dataclass(slots=True)
class Partition:
    parallel: list[TestDescriptor] = field(default_factory=list)
    serial: list[TestDescriptor] = field(default_factory=list)


def partition(tests: Sequence[TestDescriptor], jobs: int) -> Partition:
    """Return parallel and serial groups, preserving input order in each.

    Only ``parallel_test`` tests are eligible for the parallel group, and only
    when more than one job is requested. A lone parallel test gains nothing
    from the pool, so it is moved to the front of the serial group.
    """
    result = Partition()
    for test in tests:
        if test.parallel_test and jobs > 1:
            result.parallel.append(test)
        else:
            result.serial.append(test)

    if len(result.parallel) == 1:
        result.serial.insert(0, result.parallel.pop())
    return result
