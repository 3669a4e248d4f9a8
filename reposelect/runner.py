"""Capability interface for running external commands."""

from __future__ import annotations

import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

COMMAND_NOT_EXECUTABLE = 126
COMMAND_NOT_FOUND = 127
COMMAND_TIMED_OUT = 124


class CommandRunner(Protocol):
    """Runs an external command and reports its result.

    Implementations never raise for a missing executable or a timeout; they
    report ``COMMAND_NOT_FOUND``, ``COMMAND_NOT_EXECUTABLE`` or
    ``COMMAND_TIMED_OUT`` as the return code.
    """

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path,
        input: str | None = None,
        timeout: float | None = None,
    ) -> subprocess.CompletedProcess[str]: ...


class SubprocessRunner:
    """CommandRunner backed by ``subprocess.run``."""

    def __init__(self, default_timeout: float | None = None) -> None:
        self.default_timeout = default_timeout

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path,
        input: str | None = None,
        timeout: float | None = None,
    ) -> subprocess.CompletedProcess[str]:
        argv = list(args)
        try:
            return subprocess.run(
                argv,
                cwd=cwd,
                input=input,
                capture_output=True,
                text=True,
                timeout=timeout if timeout is not None else self.default_timeout,
                check=False,
            )
        except FileNotFoundError:
            return subprocess.CompletedProcess(
                argv, COMMAND_NOT_FOUND, "", f"{argv[0]}: command not found"
            )
        except subprocess.TimeoutExpired as exc:
            message = f"{argv[0]}: timed out after {exc.timeout}s"
            return subprocess.CompletedProcess(argv, COMMAND_TIMED_OUT, "", message)
        except OSError as exc:
            return subprocess.CompletedProcess(
                argv, COMMAND_NOT_EXECUTABLE, "", f"{argv[0]}: {exc.strerror or exc}"
            )
