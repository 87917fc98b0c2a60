from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class TestDescriptor:
    __test__ = False

    label: str
    args: tuple[str, ...]
    cwd: str
    parallel_test: bool = False
    insignificant_test: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "label": self.label,
            "args": list(self.args),
            "cwd": self.cwd,
            "parallel_test": self.parallel_test,
            "insignificant_test": self.insignificant_test,
        }
