"""Built-in interpreter commands: help, quit, copy, list and run."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

from smash.config import PROGRAM_VERSION
from smash.file_copy import (
    DestinationError,
    OverwriteDeclinedError,
    SameFileError,
    SourceUnavailableError,
    copy_file,
)
from smash.process_runner import ExecutableNotFoundError, ForkError
from smash.registry import STATUS_ERROR, CommandRegistry, CommandResult, command
from smash.tokenizer import ParameterBuffer

if TYPE_CHECKING:  # pragma: no cover
    from smash.command_shell import ShellSession

LOGGER = logging.getLogger("smash.shell")

AFFIRMATIVE = "y"
CURRENT_DIRECTORY = "."

HELP_TEXT = (
    f"\tWelcome to smash v{PROGRAM_VERSION}!\n\n"
    "\tThe following is a list of valid commands:\n\n"
    "\trun <executable-file>\n"
    "\tlist\n"
    "\tlist <directory>\n"
    "\tcopy <old-filename> <new-filename>\n"
    "\thelp\n"
    "\tquit\n\n"
    "\tNote: All commands are case insensitive (arguments are not).\n"
)


def _usage_error(message: str, usage: str) -> CommandResult:
    return CommandResult(status=STATUS_ERROR, stdout=f"{message}\nUsage: {usage}\n")


# -------------------- session commands ----------------------


@command(name="help", summary="List available commands", usage="help")
def help_command(shell: "ShellSession", buffer: ParameterBuffer) -> CommandResult:
    return CommandResult(stdout=HELP_TEXT)


@command(name="quit", summary="Leave the interpreter", usage="quit")
def quit_command(shell: "ShellSession", buffer: ParameterBuffer) -> CommandResult:
    return CommandResult(stdout="Thanks for choosing smash!\n", exit_requested=True)


# -------------------- filesystem commands -------------------


def _confirm_overwrite(shell: "ShellSession", destination: str) -> bool:
    answer = shell.ask(
        f'File "{destination}" already exists.\n'
        "If you continue, this file will be overwritten.\n"
        "Do you wish to continue (y/n)? "
    )
    return answer == AFFIRMATIVE


@command(
    name="copy",
    summary="Copy a file",
    usage="copy <old-filename> <new-filename>",
)
def copy_command(shell: "ShellSession", buffer: ParameterBuffer) -> CommandResult:
    if buffer.count != 3:
        return _usage_error("Invalid number of arguments.", "copy <old-filename> <new-filename>")
    source, destination = buffer[1], buffer[2]
    try:
        written = copy_file(
            source,
            destination,
            confirm_overwrite=lambda path: _confirm_overwrite(shell, path),
        )
    except SameFileError:
        return CommandResult(status=STATUS_ERROR, stdout="Cannot copy same file!\n")
    except SourceUnavailableError as exc:
        LOGGER.debug("Copy source unavailable: %s", exc)
        return CommandResult(
            status=STATUS_ERROR,
            stdout=(
                f'File "{source}" doesn\'t exist or has invalid permissions.\n'
                "Cannot continue requested operation.\n"
            ),
        )
    except OverwriteDeclinedError:
        return CommandResult(stdout="Operation aborted.\n", audit={"aborted": True})
    except DestinationError as exc:
        LOGGER.warning("Unable to create %s: %s", destination, exc)
        return CommandResult(
            status=STATUS_ERROR,
            stdout=(
                f'Unknown error creating output file "{destination}".\n'
                "Cannot continue requested operation.\n"
            ),
        )
    return CommandResult(audit={"bytes": written})


@command(name="list", summary="List directory contents", usage="list [<directory>]")
def list_command(shell: "ShellSession", buffer: ParameterBuffer) -> CommandResult:
    if buffer.count > 2:
        return _usage_error("Too many arguments.", "list [<directory>]")
    target = buffer[1] if buffer.count == 2 else CURRENT_DIRECTORY
    try:
        with os.scandir(target) as entries:
            names = [entry.name for entry in entries]
    except (OSError, ValueError) as exc:
        LOGGER.debug("Unable to open %s: %s", target, exc)
        return CommandResult(status=STATUS_ERROR, stdout="Unable to open the directory.\n")
    return CommandResult(stdout="".join(f"{name}\n" for name in names), audit={"entries": len(names)})


# -------------------- process commands ----------------------


@command(name="run", summary="Run an executable and wait for it", usage="run <executable-file>")
def run_command(shell: "ShellSession", buffer: ParameterBuffer) -> CommandResult:
    if buffer.count != 2:
        return _usage_error("Invalid number of arguments.", "run <executable-file>")
    path = buffer[1]
    try:
        outcome = shell.runner.run(path)
    except ExecutableNotFoundError:
        return CommandResult(status=STATUS_ERROR, stdout=f'Unable to find executable file "{path}".\n')
    except ForkError as exc:
        LOGGER.error("Fork failed for %s: %s", path, exc)
        return CommandResult(status=STATUS_ERROR, stdout="Fork failed.\n")
    if outcome.exit_code != 0:
        LOGGER.info("%s exited with status %d", path, outcome.exit_code)
    return CommandResult(audit={"child_pid": outcome.pid, "exit_code": outcome.exit_code})


BUILTIN_COMMANDS = (help_command, quit_command, copy_command, list_command, run_command)


def build_default_registry() -> CommandRegistry:
    return CommandRegistry.from_handlers(BUILTIN_COMMANDS)


__all__ = [
    "BUILTIN_COMMANDS",
    "HELP_TEXT",
    "build_default_registry",
    "copy_command",
    "help_command",
    "list_command",
    "quit_command",
    "run_command",
]
