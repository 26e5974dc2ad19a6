"""Log levels and user-defined log fields."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any


class Level(IntEnum):
    """Log level, from least to most severe."""

    NIL = 0
    TRACE = 1
    DEBUG = 2
    INFO = 3
    WARN = 4
    ERROR = 5
    FATAL = 6

    def __str__(self) -> str:
        return LEVEL_STRINGS.get(self, "")


LEVEL_STRINGS: dict[Level, str] = {
    Level.TRACE: "trace",
    Level.DEBUG: "debug",
    Level.INFO: "info",
    Level.WARN: "warn",
    Level.ERROR: "error",
    Level.FATAL: "fatal",
}

LEVEL_NAMES: dict[str, Level] = {name: level for level, name in LEVEL_STRINGS.items()}


def parse_level(name: str) -> Level:
    """Return the level of the given name, or Level.NIL for an unknown name."""
    return LEVEL_NAMES.get(name, Level.NIL)


@dataclass(frozen=True)
class Field:
    """A user-defined key and value attached to log entries."""

    key: str
    value: Any = None