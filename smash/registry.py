"""Command definitions, the immutable command registry and the dispatcher."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Mapping, Optional

from smash.tokenizer import ParameterBuffer

if TYPE_CHECKING:  # pragma: no cover
    from smash.command_shell import ShellSession

LOGGER = logging.getLogger("smash.shell")

STATUS_OK = 0
STATUS_ERROR = 1
STATUS_PARSE_ERROR = 2
STATUS_UNRECOGNIZED = 127


@dataclass
class CommandResult:
    stdout: str = ""
    status: int = STATUS_OK
    audit: Dict[str, Any] = field(default_factory=dict)
    exit_requested: bool = False


Handler = Callable[["ShellSession", ParameterBuffer], CommandResult]


@dataclass(frozen=True)
class Command:
    name: str
    summary: str
    usage: str
    handler: Handler

    def execute(self, shell: "ShellSession", buffer: ParameterBuffer) -> CommandResult:
        return self.handler(shell, buffer)


def command(name: str, summary: str, usage: str) -> Callable[[Handler], Handler]:
    """Attach a :class:`Command` definition to a handler function."""

    def decorator(func: Handler) -> Handler:
        func.__command_definition__ = Command(
            name=name.lower(),
            summary=summary,
            usage=usage,
            handler=func,
        )
        return func

    return decorator


def definition_of(handler: Handler) -> Command:
    try:
        return handler.__command_definition__  # type: ignore[attr-defined]
    except AttributeError:
        raise TypeError(f"{handler!r} is not decorated with @command") from None


class CommandRegistry:
    """Read-only name to command table, fixed at construction."""

    def __init__(self, commands: Iterable[Command]) -> None:
        table: Dict[str, Command] = {}
        for entry in commands:
            if entry.name in table:
                raise ValueError(f"Duplicate command name: {entry.name}")
            table[entry.name] = entry
        self._commands: Mapping[str, Command] = MappingProxyType(table)

    @classmethod
    def from_handlers(cls, handlers: Iterable[Handler]) -> "CommandRegistry":
        return cls(definition_of(handler) for handler in handlers)

    def get(self, name: str) -> Optional[Command]:
        return self._commands.get(name)

    def names(self) -> List[str]:
        return sorted(self._commands.keys())

    def values(self) -> Iterable[Command]:
        return self._commands.values()

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def __len__(self) -> int:
        return len(self._commands)


class Dispatcher:
    def __init__(self, registry: CommandRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> CommandRegistry:
        return self._registry

    def dispatch(self, shell: "ShellSession", buffer: ParameterBuffer) -> Optional[CommandResult]:
        """Run the command named by the first token of *buffer*.

        Returns ``None`` for a buffer that failed to parse; the parse
        diagnostic has already been reported by then.
        """

        if buffer.failed:
            return None
        name = buffer.command_name
        entry = self._registry.get(name)
        if entry is None:
            LOGGER.debug("Unrecognized command %r", name)
            return CommandResult(
                stdout=(
                    f'Unrecognized command: "{name}".\n'
                    'Type "help" to view a list of valid commands.\n'
                ),
                status=STATUS_UNRECOGNIZED,
            )
        result = entry.execute(shell, buffer)
        result.audit.setdefault("command", name)
        result.audit.setdefault("args", list(buffer.arguments))
        result.audit.setdefault("status", result.status)
        return result


__all__ = [
    "Command",
    "CommandRegistry",
    "CommandResult",
    "Dispatcher",
    "Handler",
    "STATUS_ERROR",
    "STATUS_OK",
    "STATUS_PARSE_ERROR",
    "STATUS_UNRECOGNIZED",
    "command",
    "definition_of",
]
