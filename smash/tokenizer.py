"""Bounded tokenizer that turns one input line into a parameter buffer."""

from __future__ import annotations

from typing import Iterator, List, Optional, Tuple

MAX_PARAMS = 4
MAX_PARAM_LENGTH = 100
PARSE_ERROR = -1

_DELIMITER = " "
_END_OF_LINE = "\n"


class ParameterOverflowError(RuntimeError):
    """Raised when a token is stored past the buffer's capacity."""


class ParameterBuffer:
    """Fixed-capacity sequence of parsed parameters.

    The slots are allocated once and reused for every line. ``count`` is the
    number of stored tokens, or :data:`PARSE_ERROR` after a failed parse.
    """

    def __init__(self, capacity: int = MAX_PARAMS) -> None:
        if capacity < 1:
            raise ValueError("Parameter buffer capacity must be positive")
        self._slots: List[str] = [""] * capacity
        self._count = 0
        self._error: Optional[str] = None

    @property
    def capacity(self) -> int:
        return len(self._slots)

    @property
    def count(self) -> int:
        return self._count

    @property
    def failed(self) -> bool:
        return self._count == PARSE_ERROR

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def command_name(self) -> str:
        # slot 0 is "" when nothing was parsed
        return self._slots[0] if self._count > 0 else ""

    @property
    def tokens(self) -> Tuple[str, ...]:
        return tuple(self._slots[: max(self._count, 0)])

    @property
    def arguments(self) -> Tuple[str, ...]:
        return self.tokens[1:]

    def clear(self) -> None:
        for index in range(len(self._slots)):
            self._slots[index] = ""
        self._count = 0
        self._error = None

    def append(self, token: str) -> None:
        if self.failed:
            raise ParameterOverflowError("Cannot append to a failed parameter buffer")
        if self._count >= len(self._slots):
            raise ParameterOverflowError(
                f"Parameter buffer is full ({len(self._slots)} parameters)"
            )
        self._slots[self._count] = token
        self._count += 1

    def fail(self, message: str) -> None:
        self._count = PARSE_ERROR
        self._error = message

    def is_full(self) -> bool:
        return self._count >= len(self._slots)

    def __len__(self) -> int:
        return max(self._count, 0)

    def __getitem__(self, index: int) -> str:
        return self.tokens[index]

    def __iter__(self) -> Iterator[str]:
        return iter(self.tokens)

    def __repr__(self) -> str:
        if self.failed:
            return f"ParameterBuffer(failed={self._error!r})"
        return f"ParameterBuffer({list(self.tokens)!r})"


class Tokenizer:
    """Split a line on runs of spaces into at most ``max_params`` tokens."""

    def __init__(
        self,
        *,
        max_params: int = MAX_PARAMS,
        max_param_length: int = MAX_PARAM_LENGTH,
    ) -> None:
        if max_params < 1 or max_param_length < 1:
            raise ValueError("Tokenizer limits must be positive")
        self.max_params = max_params
        self.max_param_length = max_param_length

    def new_buffer(self) -> ParameterBuffer:
        return ParameterBuffer(self.max_params)

    def parse(self, line: str, buffer: ParameterBuffer) -> int:
        """Refill *buffer* from *line* and return the token count.

        Tokens beyond ``max_params`` are dropped together with the rest of the
        line. A token longer than ``max_param_length`` marks the buffer as
        failed and :data:`PARSE_ERROR` is returned.
        """

        if buffer.capacity < self.max_params:
            raise ValueError("Parameter buffer is smaller than the tokenizer limit")
        buffer.clear()
        current: List[str] = []

        for char in line:
            if char == _END_OF_LINE:
                break
            if char == _DELIMITER:
                if not current:
                    continue
                buffer.append("".join(current))
                current = []
                if buffer.count >= self.max_params:
                    return buffer.count
                continue

            # the cap counts stored characters; lower() can widen one
            current.extend(char.lower() if buffer.count == 0 else char)
            if len(current) > self.max_param_length:
                buffer.fail(
                    f"Parameter {buffer.count + 1} exceeds maximum allowed "
                    f"characters: {self.max_param_length}."
                )
                return PARSE_ERROR

        if current:
            buffer.append("".join(current))
        return buffer.count


__all__ = [
    "MAX_PARAMS",
    "MAX_PARAM_LENGTH",
    "PARSE_ERROR",
    "ParameterBuffer",
    "ParameterOverflowError",
    "Tokenizer",
]
