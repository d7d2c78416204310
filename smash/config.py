"""Environment-driven settings for the interpreter."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

PROMPT = "user@smash $ "
PROGRAM_VERSION = "1.0"
DEFAULT_HISTORY_LENGTH = 1000
DEFAULT_LOG_LEVEL = "WARNING"


def _default_history_path() -> Path:
    return Path.home() / ".smash_history"


def _parse_positive_int(value: Optional[str], default: int) -> int:
    if not value:
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _parse_log_level(value: Optional[str], default: str = DEFAULT_LOG_LEVEL) -> str:
    if not value:
        return default
    name = value.strip().upper()
    if isinstance(logging.getLevelName(name), int):
        return name
    return default


@dataclass
class ShellConfig:
    prompt: str = PROMPT
    history_path: Path = field(default_factory=_default_history_path)
    history_length: int = DEFAULT_HISTORY_LENGTH
    transcript_dir: Optional[Path] = None
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ShellConfig":
        env = os.environ if environ is None else environ
        history = env.get("SMASH_HISTORY_FILE")
        transcript = env.get("SMASH_TRANSCRIPT_DIR")
        return cls(
            prompt=env.get("SMASH_PROMPT") or PROMPT,
            history_path=Path(history).expanduser() if history else _default_history_path(),
            history_length=_parse_positive_int(
                env.get("SMASH_HISTORY_LENGTH"), DEFAULT_HISTORY_LENGTH
            ),
            transcript_dir=Path(transcript).expanduser() if transcript else None,
            log_level=_parse_log_level(env.get("SMASH_LOG_LEVEL")),
        )

    def with_overrides(
        self,
        *,
        transcript_dir: Optional[str] = None,
        log_level: Optional[str] = None,
    ) -> "ShellConfig":
        """Return a copy with command-line values applied on top."""

        return ShellConfig(
            prompt=self.prompt,
            history_path=self.history_path,
            history_length=self.history_length,
            transcript_dir=Path(transcript_dir).expanduser() if transcript_dir else self.transcript_dir,
            log_level=_parse_log_level(log_level, self.log_level),
        )


__all__ = ["PROGRAM_VERSION", "PROMPT", "ShellConfig"]
