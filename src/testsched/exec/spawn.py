from __future__ import annotations

import os
import signal
import subprocess
import time
from abc import ABC, abstractmethod
from collections.abc import Sequence
from contextlib import suppress
from dataclasses import dataclass

from testsched.config.schema import TestDescriptor
from testsched.util.errors import SpawnError


@dataclass(frozen=True, slots=True)
class ProcessHandle:
    pid: int


@dataclass(frozen=True, slots=True)
class ProcessExit:
    handle: ProcessHandle
    status: int
    exit_code: int


class ProcessBackend(ABC):
    """Start external processes and block until any one of them exits."""

    @abstractmethod
    def spawn(self, argv: Sequence[str]) -> ProcessHandle:
        """Start ``argv`` without waiting; raise SpawnError if it cannot start."""

    @abstractmethod
    def wait_any(self) -> ProcessExit | None:
        """Block until a child exits; return None when there are no children."""

    @abstractmethod
    def terminate(self, handle: ProcessHandle) -> None:
        """Ask a running child to stop. Does not wait for it."""


class PosixSpawnBackend(ProcessBackend):
    def spawn(self, argv: Sequence[str]) -> ProcessHandle:
        if not argv:
            raise SpawnError("cannot spawn an empty command")
        try:
            pid = os.posix_spawnp(argv[0], list(argv), os.environ)
        except (OSError, ValueError) as exc:
            raise SpawnError(f"failed to start {argv[0]}: {exc}") from exc
        return ProcessHandle(pid)

    def wait_any(self) -> ProcessExit | None:
        try:
            pid, status = os.waitpid(-1, 0)
        except ChildProcessError:
            return None
        if pid <= 0:
            return None
        return ProcessExit(ProcessHandle(pid), status, os.waitstatus_to_exitcode(status))

    def terminate(self, handle: ProcessHandle) -> None:
        with suppress(ProcessLookupError):
            os.kill(handle.pid, signal.SIGTERM)


class PopenBackend(ProcessBackend):
    """Handle-based backend for platforms without posix_spawn."""

    def __init__(self, poll_interval: float = 0.05) -> None:
        self.poll_interval = poll_interval
        self._procs: dict[ProcessHandle, subprocess.Popen[bytes]] = {}

    def spawn(self, argv: Sequence[str]) -> ProcessHandle:
        if not argv:
            raise SpawnError("cannot spawn an empty command")
        try:
            proc = subprocess.Popen(list(argv))
        except (OSError, ValueError) as exc:
            raise SpawnError(f"failed to start {argv[0]}: {exc}") from exc
        handle = ProcessHandle(proc.pid)
        self._procs[handle] = proc
        return handle

    def wait_any(self) -> ProcessExit | None:
        while self._procs:
            for handle, proc in list(self._procs.items()):
                returncode = proc.poll()
                if returncode is None:
                    continue
                del self._procs[handle]
                return ProcessExit(handle, returncode, returncode)
            time.sleep(self.poll_interval)
        return None

    def terminate(self, handle: ProcessHandle) -> None:
        proc = self._procs.get(handle)
        if proc is not None:
            with suppress(OSError):
                proc.terminate()


def select_backend() -> ProcessBackend:
    if os.name == "posix" and hasattr(os, "posix_spawnp"):
        return PosixSpawnBackend()
    return PopenBackend()


def build_testrunner_cmd(
    testrunner: Sequence[str],
    test: TestDescriptor,
    extra_args: Sequence[str] = (),
    passthrough: Sequence[str] = (),
) -> list[str]:
    cmd = list(testrunner)
    if test.cwd:
        cmd += ["--chdir", test.cwd]
    cmd += [*extra_args, *passthrough, "--", *test.args]
    return cmd
