from __future__ import annotations

import json
import stat
from pathlib import Path
from typing import Any

import yaml

from testsched.config.schema import TestDescriptor
from testsched.util.errors import PlanError

_REQUIRED_KEYS = ("label", "args", "cwd")
_FLAG_KEYS = ("parallel_test", "insignificant_test")
_ALLOWED_KEYS = {*_REQUIRED_KEYS, *_FLAG_KEYS}


class _RecordError(ValueError):
    """Validation failure for a single plan record."""


def _is_encodable_str(value: object) -> bool:
    if not isinstance(value, str) or "\x00" in value:
        return False
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def _is_non_blank_str(value: object) -> bool:
    return _is_encodable_str(value) and bool(str(value).strip())


def _parse_args(label: str, value: Any) -> tuple[str, ...]:
    if not isinstance(value, list) or not value:
        raise _RecordError(f"test '{label}' args must be non-empty list[str]")
    if not all(_is_encodable_str(arg) for arg in value):
        raise _RecordError(f"test '{label}' args must be non-empty list[str]")
    if not _is_non_blank_str(value[0]):
        raise _RecordError(f"test '{label}' args[0] must be a non-empty program name")
    return tuple(value)


def parse_record(raw: Any) -> TestDescriptor:
    if not isinstance(raw, dict):
        raise _RecordError("record must be a mapping")
    if any(not isinstance(key, str) for key in raw):
        raise _RecordError("record fields must use string keys")
    if "label" not in raw or not _is_non_blank_str(raw["label"]):
        raise _RecordError("label is required and must be non-empty string")
    label = raw["label"]
    unknown = set(raw.keys()) - _ALLOWED_KEYS
    if unknown:
        raise _RecordError(f"test '{label}' has unknown fields: {sorted(unknown)}")
    missing = [key for key in _REQUIRED_KEYS if key not in raw]
    if missing:
        raise _RecordError(f"test '{label}' missing fields: {missing}")

    args = _parse_args(label, raw["args"])

    cwd = raw["cwd"]
    if not _is_encodable_str(cwd):
        raise _RecordError(f"test '{label}' cwd must be string")

    flags: dict[str, bool] = {}
    for key in _FLAG_KEYS:
        value = raw.get(key, False)
        if not isinstance(value, bool):
            raise _RecordError(f"test '{label}' {key} must be boolean")
        flags[key] = value

    return TestDescriptor(label=label, args=args, cwd=cwd, **flags)


def _load_line(line: str) -> Any:
    # JSON lines go through the JSON parser first: YAML disagrees with it on
    # tabs between tokens and on surrogate-pair escapes.
    if line.lstrip().startswith("{"):
        try:
            return json.loads(line)
        except json.JSONDecodeError:
            pass  # YAML flow mappings start with "{" too
    return yaml.safe_load(line)


def parse_plan_lines(lines: list[str], source: str) -> list[TestDescriptor]:
    """Parse plan records, one per line, failing on the first bad line."""
    tests: list[TestDescriptor] = []
    seen: dict[str, int] = {}
    for line_no, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            raw = _load_line(line)
        except yaml.YAMLError as exc:
            raise PlanError(f"{source}:{line_no}: error: failed to parse record: {exc}") from exc
        try:
            test = parse_record(raw)
        except _RecordError as exc:
            raise PlanError(f"{source}:{line_no}: error: {exc}") from exc
        if test.label in seen:
            raise PlanError(
                f"{source}:{line_no}: error: duplicate label '{test.label}' "
                f"(first defined on line {seen[test.label]})"
            )
        seen[test.label] = line_no
        tests.append(test)
    return sorted(tests, key=lambda test: test.label)


def load_plan(path: Path) -> list[TestDescriptor]:
    """Load a testplan file and return its tests sorted by label."""
    try:
        meta = path.stat()
    except FileNotFoundError as exc:
        raise PlanError(f"plan file not found: {path}") from exc
    except OSError as exc:
        raise PlanError(f"failed to read plan file: {path}") from exc
    if not stat.S_ISREG(meta.st_mode):
        raise PlanError(f"failed to read plan file: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeError as exc:
        raise PlanError(f"failed to decode plan file as utf-8: {path}") from exc
    except OSError as exc:
        raise PlanError(f"failed to read plan file: {path}") from exc

    return parse_plan_lines(content.splitlines(), str(path))
