from __future__ import annotations

import json
import re
from pathlib import Path

import pytest

from testsched.config.loader import load_plan, parse_plan_lines, parse_record
from testsched.config.schema import TestDescriptor
from testsched.util.errors import PlanError


def _write_plan(path: Path, records: list[object]) -> Path:
    path.write_text("".join(json.dumps(record) + "\n" for record in records), encoding="utf-8")
    return path


def test_load_plan_sorts_tests_by_label(tmp_path: Path) -> None:
    plan_path = _write_plan(
        tmp_path / "testplan.txt",
        [
            {"label": "tst_zeta", "args": ["./tst_zeta"], "cwd": "/build/zeta"},
            {"label": "tst_alpha", "args": ["./tst_alpha", "-v"], "cwd": "/build/alpha"},
            {"label": "tst_mid", "args": ["./tst_mid"], "cwd": "/build/mid"},
        ],
    )

    tests = load_plan(plan_path)
    assert [test.label for test in tests] == ["tst_alpha", "tst_mid", "tst_zeta"]
    assert tests[0].args == ("./tst_alpha", "-v")
    assert tests[0].cwd == "/build/alpha"


def test_load_plan_applies_flag_defaults(tmp_path: Path) -> None:
    plan_path = _write_plan(
        tmp_path / "testplan.txt",
        [
            {"label": "a", "args": ["a"], "cwd": "."},
            {
                "label": "b",
                "args": ["b"],
                "cwd": ".",
                "parallel_test": True,
                "insignificant_test": True,
            },
        ],
    )

    a, b = load_plan(plan_path)
    assert a == TestDescriptor(label="a", args=("a",), cwd=".")
    assert a.parallel_test is False
    assert a.insignificant_test is False
    assert b.parallel_test is True
    assert b.insignificant_test is True


def test_load_plan_accepts_yaml_flow_records_and_skips_blank_lines(tmp_path: Path) -> None:
    plan_path = tmp_path / "testplan.txt"
    plan_path.write_text(
        "{label: tst_flow, args: [./tst_flow], cwd: /tmp, parallel_test: true}\n"
        "\n"
        '{"label": "tst_json", "args": ["./tst_json"], "cwd": "/tmp"}\n',
        encoding="utf-8",
    )

    tests = load_plan(plan_path)
    assert [test.label for test in tests] == ["tst_flow", "tst_json"]
    assert tests[0].parallel_test is True


def test_load_plan_accepts_json_whitespace_and_escapes(tmp_path: Path) -> None:
    plan_path = tmp_path / "testplan.txt"
    plan_path.write_text(
        '{"label":\t"tst_tab",\t"args": ["./tst_tab"], "cwd": "/tmp"}\n'
        + json.dumps({"label": "tst_\U0001f600", "args": ["./tst_emoji"], "cwd": "/tmp"})
        + "\n",
        encoding="utf-8",
    )

    tests = load_plan(plan_path)
    assert [test.label for test in tests] == ["tst_tab", "tst_\U0001f600"]
    assert tests[1].label.encode("utf-8") == b"tst_\xf0\x9f\x98\x80"


@pytest.mark.parametrize(
    ("line", "message"),
    [
        ('{"label": "tst_\\ud83d", "args": ["a"], "cwd": "."}', "label is required"),
        ('{"label": "a", "args": ["a", "\\ude00x"], "cwd": "."}', "args must be non-empty"),
        ('{"label": "a", "args": ["a"], "cwd": "/tmp/\\udc80"}', "cwd must be string"),
    ],
)
def test_load_plan_rejects_unencodable_strings(tmp_path: Path, line: str, message: str) -> None:
    plan_path = tmp_path / "testplan.txt"
    plan_path.write_text(line + "\n", encoding="utf-8")

    with pytest.raises(PlanError, match=rf"{re.escape(str(plan_path))}:1: error: .*{message}"):
        load_plan(plan_path)


def test_load_plan_reports_file_and_line_for_bad_syntax(tmp_path: Path) -> None:
    plan_path = tmp_path / "testplan.txt"
    plan_path.write_text(
        '{"label": "ok", "args": ["ok"], "cwd": "."}\n{"label": "broken", "args": [\n',
        encoding="utf-8",
    )

    with pytest.raises(PlanError, match=rf"{plan_path}:2: error: failed to parse record"):
        load_plan(plan_path)


def test_load_plan_rejects_duplicate_labels(tmp_path: Path) -> None:
    plan_path = _write_plan(
        tmp_path / "testplan.txt",
        [
            {"label": "a", "args": ["a"], "cwd": "."},
            {"label": "a", "args": ["b"], "cwd": "."},
        ],
    )

    with pytest.raises(
        PlanError, match=r":2: error: duplicate label 'a' \(first defined on line 1\)"
    ):
        load_plan(plan_path)


def test_load_plan_rejects_missing_file(tmp_path: Path) -> None:
    with pytest.raises(PlanError, match="plan file not found"):
        load_plan(tmp_path / "missing.txt")


def test_load_plan_rejects_directory(tmp_path: Path) -> None:
    with pytest.raises(PlanError, match="failed to read plan file"):
        load_plan(tmp_path)


def test_load_plan_rejects_non_utf8_file(tmp_path: Path) -> None:
    plan_path = tmp_path / "bad_encoding.txt"
    plan_path.write_bytes(b"\xff\xfe\xfd")

    with pytest.raises(PlanError, match="failed to decode plan file as utf-8"):
        load_plan(plan_path)


def test_load_plan_does_not_evaluate_code(tmp_path: Path) -> None:
    marker = tmp_path / "marker"
    plan_path = tmp_path / "testplan.txt"
    plan_path.write_text(
        f"__import__('pathlib').Path({str(marker)!r}).touch()\n", encoding="utf-8"
    )

    with pytest.raises(PlanError, match=":1: error: record must be a mapping"):
        load_plan(plan_path)
    assert not marker.exists()


@pytest.mark.parametrize(
    ("raw", "message"),
    [
        (["a"], "record must be a mapping"),
        ({"args": ["a"], "cwd": "."}, "label is required"),
        ({"label": "  ", "args": ["a"], "cwd": "."}, "label is required"),
        ({"label": "a", "cwd": "."}, r"missing fields: \['args'\]"),
        ({"label": "a", "args": ["a"]}, r"missing fields: \['cwd'\]"),
        ({"label": "a", "args": [], "cwd": "."}, "args must be non-empty"),
        ({"label": "a", "args": "./a", "cwd": "."}, "args must be non-empty"),
        ({"label": "a", "args": ["a", 1], "cwd": "."}, "args must be non-empty"),
        ({"label": "a", "args": [""], "cwd": "."}, "non-empty program name"),
        ({"label": "a", "args": ["a"], "cwd": 3}, "cwd must be string"),
        (
            {"label": "a", "args": ["a"], "cwd": ".", "parallel_test": "yes"},
            "parallel_test must be boolean",
        ),
        (
            {"label": "a", "args": ["a"], "cwd": ".", "insignificant_test": 1},
            "insignificant_test must be boolean",
        ),
        ({"label": "a", "args": ["a"], "cwd": ".", "timeout": 5}, "unknown fields"),
    ],
)
def test_parse_record_rejects_invalid_records(raw: object, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        parse_record(raw)


def test_parse_plan_lines_wraps_record_errors_with_location() -> None:
    lines = ['{"label": "a", "args": ["a"], "cwd": "."}', '{"label": "b", "cwd": "."}']

    with pytest.raises(PlanError, match=r"^plan.txt:2: error: test 'b' missing fields"):
        parse_plan_lines(lines, "plan.txt")
