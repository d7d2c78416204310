"""JSON-lines transcript of executed interpreter lines."""

from __future__ import annotations

import datetime as _dt
import json
import os
from pathlib import Path
from typing import Any, Dict, Sequence


def now_utc() -> _dt.datetime:
    return _dt.datetime.now(_dt.timezone.utc)


def isoformat_utc(dt: _dt.datetime) -> str:
    return dt.isoformat().replace("+00:00", "Z")


class TranscriptLogger:
    """Append one JSON object per interpreter line to a per-session file."""

    def __init__(self, root: Path) -> None:
        self._root = root
        self._root.mkdir(parents=True, exist_ok=True)
        started = now_utc().strftime("%Y%m%dT%H%M%S%fZ")
        self._path = self._root / f"session-{started}.jsonl"
        self._file = self._path.open("a", encoding="utf-8")
        self.entries = 0

    @property
    def path(self) -> Path:
        return self._path

    @property
    def closed(self) -> bool:
        return self._file.closed

    def record(self, command: str, args: Sequence[str], status: int, **detail: Any) -> Dict[str, Any]:
        entry: Dict[str, Any] = {
            "ts": isoformat_utc(now_utc()),
            "pid": os.getpid(),
            "cwd": os.getcwd(),
            **detail,
            "command": command,
            "args": list(args),
            "status": status,
        }
        self._file.write(json.dumps(entry, ensure_ascii=False) + "\n")
        self._file.flush()
        self.entries += 1
        return entry

    def close(self) -> None:
        self._file.close()


__all__ = ["TranscriptLogger", "isoformat_utc", "now_utc"]
