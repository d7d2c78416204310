"""Validated file copy used by the ``copy`` command."""

from __future__ import annotations

import logging
import os
import shutil
from typing import Callable

LOGGER = logging.getLogger("smash.copy")

ConfirmOverwrite = Callable[[str], bool]


class CopyError(RuntimeError):
    """Base class for copy failures."""

    def __init__(self, path: str, message: str = "") -> None:
        super().__init__(message or path)
        self.path = path


class SameFileError(CopyError):
    """Raised when source and destination name the same file."""


class SourceUnavailableError(CopyError):
    """Raised when the source cannot be opened for reading."""


class OverwriteDeclinedError(CopyError):
    """Raised when the user refuses to overwrite an existing destination."""


class DestinationError(CopyError):
    """Raised when the destination cannot be created."""


def copy_file(source: str, destination: str, *, confirm_overwrite: ConfirmOverwrite) -> int:
    """Copy *source* to *destination* and return the number of bytes written.

    The checks run in a fixed order and the destination is only opened for
    writing once all of them pass. *confirm_overwrite* is called with the
    destination name when it already exists.
    """

    if source == destination:
        raise SameFileError(source, "Cannot copy a file onto itself")

    try:
        src = open(source, "rb")
    except OSError as exc:
        raise SourceUnavailableError(source, str(exc)) from exc

    with src:
        if os.path.exists(destination) and not confirm_overwrite(destination):
            raise OverwriteDeclinedError(destination, "Overwrite declined")
        try:
            dst = open(destination, "wb")
        except OSError as exc:
            raise DestinationError(destination, str(exc)) from exc
        with dst:
            shutil.copyfileobj(src, dst)
            written = dst.tell()

    LOGGER.info("Copied %s -> %s (%d bytes)", source, destination, written)
    return written


__all__ = [
    "ConfirmOverwrite",
    "CopyError",
    "DestinationError",
    "OverwriteDeclinedError",
    "SameFileError",
    "SourceUnavailableError",
    "copy_file",
]
