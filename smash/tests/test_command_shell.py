from __future__ import annotations

import io
import json
import logging
import readline
from pathlib import Path
from typing import List

import pytest

from smash.command_shell import Completer, Shell, ShellSession, main
from smash.commands import HELP_TEXT
from smash.config import PROMPT, ShellConfig
from smash.process_runner import ProcessOutcome, ProcessRunner
from smash.tokenizer import MAX_PARAM_LENGTH


def _shell(script: str, config: ShellConfig | None = None) -> Shell:
    return Shell(config, stdin=io.StringIO(script), stdout=io.StringIO())


def _output(shell: Shell) -> str:
    return shell.session.stdout.getvalue()  # type: ignore[attr-defined]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path: Path) -> None:
    for name in (
        "SMASH_PROMPT",
        "SMASH_HISTORY_FILE",
        "SMASH_HISTORY_LENGTH",
        "SMASH_TRANSCRIPT_DIR",
        "SMASH_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SMASH_HISTORY_FILE", str(tmp_path / "history"))


def test_loop_prompts_before_every_read_and_stops_at_quit() -> None:
    shell = _shell("help\nquit\nhelp\n")

    status = shell.run()

    assert status == 0
    assert _output(shell) == (
        PROMPT + HELP_TEXT + PROMPT + "Thanks for choosing smash!\n"
    )


def test_loop_ends_at_end_of_input() -> None:
    shell = _shell("")

    assert shell.run() == 0
    assert _output(shell) == PROMPT + "\n"


def test_errors_do_not_end_the_loop() -> None:
    shell = _shell("bogus\ncopy a\nlist x y\nquit\n")

    assert shell.run() == 0
    output = _output(shell)
    assert 'Unrecognized command: "bogus".' in output
    assert "Usage: copy <old-filename> <new-filename>" in output
    assert "Too many arguments." in output
    assert output.endswith("Thanks for choosing smash!\n")


def test_parse_error_skips_dispatch() -> None:
    long_name = "z" * (MAX_PARAM_LENGTH + 1)
    shell = _shell(f"{long_name}\nquit\n")

    shell.run()

    output = _output(shell)
    assert f"Parameter 1 exceeds maximum allowed characters: {MAX_PARAM_LENGTH}.\n" in output
    assert "Unrecognized command" not in output


def test_overlong_line_leaves_nothing_for_next_read(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    shell = _shell("list . quit quit quit\nhelp\nquit\n")

    shell.run()

    output = _output(shell)
    assert "Too many arguments." in output
    assert HELP_TEXT in output


def test_quit_ignores_extra_arguments() -> None:
    session = ShellSession(stdin=io.StringIO(), stdout=io.StringIO())

    result = session.run_line("QUIT now please\n")

    assert result.exit_requested
    assert result.status == 0


def test_help_accepts_any_arguments() -> None:
    session = ShellSession(stdin=io.StringIO(), stdout=io.StringIO())

    result = session.run_line("help me please\n")

    assert result.status == 0
    assert result.stdout == HELP_TEXT
    assert "\trun <executable-file>\n" in HELP_TEXT
    assert HELP_TEXT.startswith("\tWelcome to smash v1.0!\n")


def test_empty_line_is_reported_as_unrecognized() -> None:
    shell = _shell("\nquit\n")

    shell.run()

    assert 'Unrecognized command: "".' in _output(shell)


def test_custom_prompt_from_config() -> None:
    shell = _shell("quit\n", ShellConfig(prompt="> "))

    shell.run()

    assert _output(shell).startswith("> ")


def test_transcript_records_each_line(tmp_path: Path) -> None:
    config = ShellConfig(transcript_dir=tmp_path / "transcripts")
    shell = _shell("list nowhere\nbogus\nquit\n", config)

    shell.run()

    transcript = shell.session.transcript
    assert transcript is not None and transcript.closed
    entries = [
        json.loads(line)
        for line in transcript.path.read_text(encoding="utf-8").splitlines()
    ]
    assert [entry["command"] for entry in entries] == ["list", "bogus", "quit"]
    assert entries[0]["args"] == ["nowhere"]
    assert entries[0]["status"] == 1
    assert entries[1]["status"] == 127
    assert all(entry["ts"].endswith("Z") for entry in entries)


def test_completer_completes_command_names(tmp_path: Path) -> None:
    completer = Completer(ShellSession(stdin=io.StringIO(), stdout=io.StringIO()))

    assert completer.options("", "") == ["copy", "help", "list", "quit", "run"]
    assert completer.options("q", "q") == ["quit"]
    assert completer.options("L", "L") == ["list"]


def test_completer_completes_paths(tmp_path: Path, monkeypatch) -> None:
    (tmp_path / "data").mkdir()
    (tmp_path / "data" / "notes.txt").write_text("", encoding="utf-8")
    (tmp_path / "delta.sh").write_text("", encoding="utf-8")
    (tmp_path / "other").write_text("", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    completer = Completer(ShellSession(stdin=io.StringIO(), stdout=io.StringIO()))

    assert completer.options("run d", "d") == ["data/", "delta.sh"]
    assert completer.options("list data/n", "data/n") == ["data/notes.txt"]
    assert completer.options("list missing/", "missing/") == []


def test_main_runs_single_command(capsys) -> None:
    status = main(["help"])

    out, _ = capsys.readouterr()
    assert status == 0
    assert out == HELP_TEXT


def test_main_returns_command_status(capsys) -> None:
    assert main(["frobnicate"]) == 127
    out, _ = capsys.readouterr()
    assert 'Unrecognized command: "frobnicate".' in out


def test_main_quit_succeeds(capsys) -> None:
    assert main(["quit"]) == 0
    out, _ = capsys.readouterr()
    assert out == "Thanks for choosing smash!\n"


def test_main_writes_transcript(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "file.txt").write_text("x", encoding="utf-8")

    status = main(["--transcript", "logs", "list", "."])

    assert status == 0
    out, _ = capsys.readouterr()
    assert "file.txt" in out.splitlines()
    transcripts = list((tmp_path / "logs").glob("session-*.jsonl"))
    assert len(transcripts) == 1
    entry = json.loads(transcripts[0].read_text(encoding="utf-8").splitlines()[0])
    assert entry["command"] == "list"
    assert entry["args"] == ["."]


def test_main_version(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--version"])

    assert excinfo.value.code == 0
    out, _ = capsys.readouterr()
    assert out.strip() == "smash 1.0"


def test_interrupt_at_prompt_returns_to_prompt(monkeypatch) -> None:
    shell = _shell("quit\n")
    original = shell.session.read_line
    prompts = []

    def _read_line(prompt: str):
        prompts.append(prompt)
        if len(prompts) == 1:
            raise KeyboardInterrupt
        return original(prompt)

    monkeypatch.setattr(shell.session, "read_line", _read_line)

    assert shell.run() == 0
    assert prompts == [PROMPT, PROMPT]
    assert _output(shell) == "\n" + PROMPT + "Thanks for choosing smash!\n"


def test_interrupt_during_command_returns_to_prompt() -> None:
    class _InterruptedRunner(ProcessRunner):
        def run(self, path: str) -> ProcessOutcome:
            raise KeyboardInterrupt

    shell = Shell(
        None,
        stdin=io.StringIO("run ./job\nquit\n"),
        stdout=io.StringIO(),
        runner=_InterruptedRunner(),
    )

    assert shell.run() == 0
    assert _output(shell) == PROMPT + "\n" + PROMPT + "Thanks for choosing smash!\n"


# -------------------- readline integration --------------------


def _stub_readline(monkeypatch, *, read_error=None, write_error=None) -> List[tuple]:
    events: List[tuple] = []
    monkeypatch.setattr(ShellSession, "interactive", property(lambda self: True))
    for name in (
        "set_completer",
        "set_completer_delims",
        "parse_and_bind",
        "set_history_length",
        "set_auto_history",
    ):
        monkeypatch.setattr(readline, name, lambda *args, _name=name: events.append((_name, *args)))

    def _read_history_file(path):
        events.append(("read_history_file", path))
        if read_error is not None:
            raise read_error

    def _write_history_file(path):
        events.append(("write_history_file", path))
        if write_error is not None:
            raise write_error

    monkeypatch.setattr(readline, "read_history_file", _read_history_file)
    monkeypatch.setattr(readline, "write_history_file", _write_history_file)
    return events


def _interactive_shell(tmp_path: Path) -> Shell:
    config = ShellConfig(history_path=tmp_path / "hist", history_length=50)
    return Shell(config, stdin=io.StringIO(), stdout=io.StringIO())


def test_history_is_loaded_and_saved(tmp_path: Path, monkeypatch) -> None:
    events = _stub_readline(monkeypatch)
    monkeypatch.setattr("builtins.input", lambda prompt: "quit")
    shell = _interactive_shell(tmp_path)

    assert shell.run() == 0

    history = tmp_path / "hist"
    assert ("set_history_length", 50) in events
    assert events.index(("read_history_file", history)) < events.index(
        ("write_history_file", history)
    )


def test_history_saved_at_end_of_input(tmp_path: Path, monkeypatch) -> None:
    events = _stub_readline(monkeypatch)

    def _eof(prompt: str) -> str:
        raise EOFError

    monkeypatch.setattr("builtins.input", _eof)
    shell = _interactive_shell(tmp_path)

    assert shell.run() == 0
    assert events[-1] == ("write_history_file", tmp_path / "hist")


def test_missing_history_file_is_ignored(tmp_path: Path, monkeypatch, caplog) -> None:
    _stub_readline(monkeypatch, read_error=FileNotFoundError(2, "No such file or directory"))
    caplog.set_level(logging.WARNING, logger="smash.shell")

    _interactive_shell(tmp_path)

    assert caplog.records == []


def test_unreadable_history_file_warns(tmp_path: Path, monkeypatch, caplog) -> None:
    _stub_readline(monkeypatch, read_error=PermissionError(13, "Permission denied"))
    caplog.set_level(logging.WARNING, logger="smash.shell")

    _interactive_shell(tmp_path)

    assert [record.levelno for record in caplog.records] == [logging.WARNING]
    assert "Unable to read history" in caplog.records[0].getMessage()


def test_unwritable_history_file_warns(tmp_path: Path, monkeypatch, caplog) -> None:
    _stub_readline(monkeypatch, write_error=OSError(28, "No space left on device"))
    monkeypatch.setattr("builtins.input", lambda prompt: "quit")
    caplog.set_level(logging.WARNING, logger="smash.shell")
    shell = _interactive_shell(tmp_path)

    assert shell.run() == 0
    assert [record.levelno for record in caplog.records] == [logging.WARNING]
    assert "Unable to write history" in caplog.records[0].getMessage()


def test_confirmation_answers_stay_out_of_history(monkeypatch) -> None:
    events = _stub_readline(monkeypatch)
    monkeypatch.setattr("builtins.input", lambda prompt: "y please")
    session = ShellSession(stdin=io.StringIO(), stdout=io.StringIO())

    assert session.ask("Continue? ") == "y"
    assert events == [("set_auto_history", False), ("set_auto_history", True)]


def test_history_recording_restored_after_interrupted_question(monkeypatch) -> None:
    events = _stub_readline(monkeypatch)

    def _interrupt(prompt: str) -> str:
        raise KeyboardInterrupt

    monkeypatch.setattr("builtins.input", _interrupt)
    session = ShellSession(stdin=io.StringIO(), stdout=io.StringIO())

    with pytest.raises(KeyboardInterrupt):
        session.ask("Continue? ")
    assert events[-1] == ("set_auto_history", True)
