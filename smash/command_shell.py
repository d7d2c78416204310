#!/usr/bin/env python3
"""Interactive smash command interpreter."""

from __future__ import annotations

import argparse
import logging
import os
import readline
import sys
from typing import Any, Dict, List, Optional, Sequence, TextIO

from smash.commands import build_default_registry
from smash.config import PROGRAM_VERSION, ShellConfig
from smash.process_runner import ProcessRunner
from smash.registry import STATUS_PARSE_ERROR, CommandRegistry, CommandResult, Dispatcher
from smash.tokenizer import Tokenizer
from smash.transcript import TranscriptLogger

LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"
_AUDIT_KEYS = ("command", "args", "status")


# ---------------------------------------------------------------------------
# Shell session
# ---------------------------------------------------------------------------


class ShellSession:
    """Holds the interpreter state shared by every line of one session.

    The registry, tokenizer and parameter buffer are created once and reused.
    Output from commands and diagnostics goes to a single stream.
    """

    def __init__(
        self,
        config: Optional[ShellConfig] = None,
        *,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
        registry: Optional[CommandRegistry] = None,
        runner: Optional[ProcessRunner] = None,
    ) -> None:
        self.config = config or ShellConfig()
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout
        self.registry = registry if registry is not None else build_default_registry()
        self.dispatcher = Dispatcher(self.registry)
        self.tokenizer = Tokenizer()
        self.buffer = self.tokenizer.new_buffer()
        self.runner = runner if runner is not None else ProcessRunner(before_fork=self.flush)
        self.logger = logging.getLogger("smash.shell")
        self.transcript: Optional[TranscriptLogger] = None
        if self.config.transcript_dir is not None:
            self.transcript = TranscriptLogger(self.config.transcript_dir)

    # -------------------- terminal I/O ------------------------
    @property
    def interactive(self) -> bool:
        return self.stdin is sys.stdin and sys.stdin.isatty()

    def write(self, text: str) -> None:
        if text:
            self.stdout.write(text)

    def flush(self) -> None:
        self.stdout.flush()
        if self.stdout is not sys.stdout:
            sys.stdout.flush()

    def read_line(self, prompt: str) -> Optional[str]:
        """Print *prompt* and read one line; ``None`` at end of input."""

        if self.interactive:
            try:
                return input(prompt)
            except EOFError:
                return None
        self.write(prompt)
        self.flush()
        line = self.stdin.readline()
        if not line:
            return None
        return line

    def ask(self, question: str) -> str:
        """Ask a question and return the first word of the answer."""

        if self.interactive:
            # answers to prompts stay out of the command history
            readline.set_auto_history(False)
            try:
                answer = self.read_line(question)
            finally:
                readline.set_auto_history(True)
        else:
            answer = self.read_line(question)
        if answer is None:
            self.write("\n")
            return ""
        words = answer.split()
        return words[0] if words else ""

    # -------------------- line execution ----------------------
    def run_line(self, line: str) -> CommandResult:
        self.tokenizer.parse(line, self.buffer)
        result = self.dispatcher.dispatch(self, self.buffer)
        if result is None:
            self.logger.debug("Rejected line: %s", self.buffer.error)
            result = CommandResult(
                stdout=f"{self.buffer.error}\n",
                status=STATUS_PARSE_ERROR,
                audit={"parse_error": self.buffer.error},
            )
        self.write(result.stdout)
        self.flush()
        self._audit(result)
        return result

    def _audit(self, result: CommandResult) -> None:
        if self.transcript is None:
            return
        detail: Dict[str, Any] = {
            key: value for key, value in result.audit.items() if key not in _AUDIT_KEYS
        }
        try:
            self.transcript.record(
                self.buffer.command_name, self.buffer.arguments, result.status, **detail
            )
        except OSError as exc:
            self.logger.warning("Failed to write transcript entry: %s", exc)

    def close(self) -> None:
        if self.transcript is not None and not self.transcript.closed:
            self.transcript.close()


# ---------------------------------------------------------------------------
# REPL loop
# ---------------------------------------------------------------------------


class Completer:
    def __init__(self, session: ShellSession) -> None:
        self.session = session

    def options(self, buffer: str, text: str) -> List[str]:
        tokens = buffer.split()
        if not tokens or (len(tokens) == 1 and not buffer.endswith(" ")):
            return [name for name in self.session.registry.names() if name.startswith(text.lower())]
        directory, prefix = os.path.split(text)
        options = []
        try:
            with os.scandir(directory or ".") as entries:
                for entry in entries:
                    if entry.name.startswith(prefix):
                        suffix = "/" if entry.is_dir() else ""
                        options.append(os.path.join(directory, entry.name) + suffix)
        except OSError:
            return []
        return sorted(options)

    def complete(self, text: str, state: int) -> Optional[str]:
        options = self.options(readline.get_line_buffer(), text)
        if state < len(options):
            return options[state]
        return None


class Shell:
    def __init__(self, config: Optional[ShellConfig] = None, **session_kwargs: Any) -> None:
        self.session = ShellSession(config, **session_kwargs)
        self.history_path = self.session.config.history_path
        self.completer = Completer(self.session)
        if self.session.interactive:
            self._setup_readline()

    def _setup_readline(self) -> None:
        readline.set_completer(self.completer.complete)
        readline.set_completer_delims(" ")
        readline.parse_and_bind("tab: complete")
        readline.set_history_length(self.session.config.history_length)
        try:
            readline.read_history_file(self.history_path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            self.session.logger.warning("Unable to read history %s: %s", self.history_path, exc)

    def _save_history(self) -> None:
        try:
            readline.write_history_file(self.history_path)
        except OSError as exc:
            self.session.logger.warning("Unable to write history %s: %s", self.history_path, exc)

    def run(self) -> int:
        """Read, dispatch and handle lines until ``quit`` or end of input."""

        try:
            while True:
                try:
                    line = self.session.read_line(self.session.config.prompt)
                except KeyboardInterrupt:
                    self.session.write("\n")
                    continue
                if line is None:
                    self.session.write("\n")
                    return 0
                try:
                    result = self.session.run_line(line)
                except KeyboardInterrupt:
                    self.session.write("\n")
                    continue
                if result.exit_requested:
                    return 0
        finally:
            if self.session.interactive:
                self._save_history()
            self.session.flush()
            self.session.close()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: Optional[Sequence[str]] = None) -> int:
    args_list = list(sys.argv[1:] if argv is None else argv)
    parser = argparse.ArgumentParser(prog="smash", description="A simple command interpreter.")
    parser.add_argument("--transcript", metavar="DIR", help="Write a JSON-lines transcript into DIR")
    parser.add_argument("--log-level", metavar="LEVEL", help="Logging level for diagnostics on stderr")
    parser.add_argument("--version", action="version", version=f"smash {PROGRAM_VERSION}")
    parser.add_argument("command", nargs=argparse.REMAINDER, help="Command to execute non-interactively")
    parsed = parser.parse_args(args_list)

    config = ShellConfig.from_env().with_overrides(
        transcript_dir=parsed.transcript,
        log_level=parsed.log_level,
    )
    logging.basicConfig(level=config.log_level, format=LOG_FORMAT)

    shell = Shell(config)
    if parsed.command:
        try:
            result = shell.session.run_line(" ".join(parsed.command))
        finally:
            shell.session.close()
        return 0 if result.exit_requested else result.status

    return shell.run()


if __name__ == "__main__":
    sys.exit(main())
