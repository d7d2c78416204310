"""Fork/exec/wait process runner backing the ``run`` command."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Callable, NoReturn, Optional

LOGGER = logging.getLogger("smash.process")

EXEC_FAILURE_STATUS = 127


class ProcessRunnerError(RuntimeError):
    """Base class for process runner failures."""


class ExecutableNotFoundError(ProcessRunnerError):
    """Raised when the executable path does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(f"No such executable: {path}")
        self.path = path


class ForkError(ProcessRunnerError):
    """Raised when the child process cannot be created."""


@dataclass
class ProcessOutcome:
    pid: int
    exit_code: int


class ProcessRunner:
    """Spawn an executable in a child process and block until it exits.

    The child replaces its image with *path* and receives no arguments
    besides the path itself as its program name. There is no timeout.
    """

    def __init__(self, *, before_fork: Optional[Callable[[], None]] = None) -> None:
        self._before_fork = before_fork

    def run(self, path: str) -> ProcessOutcome:
        try:
            os.stat(path)
        except (OSError, ValueError) as exc:
            raise ExecutableNotFoundError(path) from exc

        if self._before_fork is not None:
            self._before_fork()

        try:
            pid = os.fork()
        except OSError as exc:
            raise ForkError(str(exc)) from exc

        if pid == 0:
            self._exec_child(path)

        LOGGER.info("Spawned %s as pid %d", path, pid)
        exit_code = self._wait(pid)
        LOGGER.info("Reaped pid %d with exit code %d", pid, exit_code)
        return ProcessOutcome(pid=pid, exit_code=exit_code)

    @staticmethod
    def _wait(pid: int) -> int:
        try:
            _, status = os.waitpid(pid, 0)
        except KeyboardInterrupt:
            # the child still has to be reaped before the interrupt surfaces
            os.waitpid(pid, 0)
            raise
        return os.waitstatus_to_exitcode(status)

    @staticmethod
    def _exec_child(path: str) -> NoReturn:
        try:
            os.execv(path, [path])
        except (OSError, ValueError) as exc:
            reason = getattr(exc, "strerror", None) or str(exc)
            message = f'Unable to execute "{path}": {reason}\n'
            os.write(1, message.encode("utf-8", errors="replace"))
        finally:
            os._exit(EXEC_FAILURE_STATUS)


__all__ = [
    "EXEC_FAILURE_STATUS",
    "ExecutableNotFoundError",
    "ForkError",
    "ProcessOutcome",
    "ProcessRunner",
    "ProcessRunnerError",
]
