"""Configuration of log outputs: writers, formats and file rolling."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum, IntEnum
from typing import Any

OUTPUT_CONSOLE = "console"
OUTPUT_FILE = "file"

ROLL_BY_SIZE = "size"
ROLL_BY_TIME = "time"

TIME_FORMAT_MINUTE = "%Y%m%d%H%M"
TIME_FORMAT_HOUR = "%Y%m%d%H"
TIME_FORMAT_DAY = "%Y%m%d"
TIME_FORMAT_MONTH = "%Y%m"
TIME_FORMAT_YEAR = "%Y"


class WriteMode(IntEnum):
    """How a file output writes: synchronously, asynchronously, or dropping on full."""

    SYNC = 1
    ASYNC = 2
    FAST = 3


class TimeUnit(str, Enum):
    """Time unit by which log files are split."""

    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"
    MONTH = "month"
    YEAR = "year"


_FORMATS = {
    TimeUnit.MINUTE.value: TIME_FORMAT_MINUTE,
    TimeUnit.HOUR.value: TIME_FORMAT_HOUR,
    TimeUnit.DAY.value: TIME_FORMAT_DAY,
    TimeUnit.MONTH.value: TIME_FORMAT_MONTH,
    TimeUnit.YEAR.value: TIME_FORMAT_YEAR,
}

_GAPS = {
    TimeUnit.MINUTE.value: timedelta(minutes=1),
    TimeUnit.HOUR.value: timedelta(hours=1),
    TimeUnit.DAY.value: timedelta(hours=24),
    TimeUnit.MONTH.value: timedelta(hours=24 * 30),
    TimeUnit.YEAR.value: timedelta(hours=24 * 365),
}


def _unit_key(unit: TimeUnit | str | None) -> str:
    if isinstance(unit, TimeUnit):
        return unit.value
    return unit or ""


def time_format(unit: TimeUnit | str | None) -> str:
    """Return the file suffix pattern for a time unit, preceded by a dot; day by default."""
    return "." + _FORMATS.get(_unit_key(unit), TIME_FORMAT_DAY)


def rotation_gap(unit: TimeUnit | str | None) -> timedelta:
    """Return the rotation interval of a time unit; one day by default."""
    return _GAPS.get(_unit_key(unit), timedelta(hours=24))


def _as_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if isinstance(value, (Mapping, list, tuple)):
        raise TypeError(f"{key}: expected a scalar, got {type(value).__name__}")
    return str(value)


def _as_int(data: Mapping[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise TypeError(f"{key}: expected an integer, got {value!r}")
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{key}: expected an integer, got {value!r}") from exc


def _as_bool(data: Mapping[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise TypeError(f"{key}: expected a boolean, got {value!r}")
    return value


def _as_mapping(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise TypeError(f"{key}: expected a mapping, got {type(value).__name__}")
    return value


@dataclass
class WriteConfig:
    """Settings of a local log file."""

    log_path: str = ""
    filename: str = ""
    write_mode: int = 0
    roll_type: str = ""
    max_age: int = 0
    max_backups: int = 0
    compress: bool = False
    max_size: int = 0
    time_unit: str = ""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> WriteConfig:
        """Build the settings from a parsed ``writer_config`` mapping."""
        data = data or {}
        return cls(
            log_path=_as_str(data, "log_path"),
            filename=_as_str(data, "filename"),
            write_mode=_as_int(data, "write_mode"),
            roll_type=_as_str(data, "roll_type"),
            max_age=_as_int(data, "max_age"),
            max_backups=_as_int(data, "max_backups"),
            compress=_as_bool(data, "compress"),
            max_size=_as_int(data, "max_size"),
            time_unit=_as_str(data, "time_unit"),
        )


@dataclass
class FormatConfig:
    """Settings of the log line format; empty keys take the formatter's defaults."""

    time_fmt: str = ""
    time_key: str = ""
    level_key: str = ""
    name_key: str = ""
    caller_key: str = ""
    function_key: str = ""
    message_key: str = ""
    stacktrace_key: str = ""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> FormatConfig:
        """Build the settings from a parsed ``formatter_config`` mapping."""
        data = data or {}
        return cls(
            time_fmt=_as_str(data, "time_fmt"),
            time_key=_as_str(data, "time_key"),
            level_key=_as_str(data, "level_key"),
            name_key=_as_str(data, "name_key"),
            caller_key=_as_str(data, "caller_key"),
            function_key=_as_str(data, "function_key"),
            message_key=_as_str(data, "message_key"),
            stacktrace_key=_as_str(data, "stacktrace_key"),
        )


@dataclass
class OutputConfig:
    """One output of a logger: where it writes, in what format, at what level."""

    writer: str = ""
    write_config: WriteConfig = field(default_factory=WriteConfig)
    formatter: str = ""
    format_config: FormatConfig = field(default_factory=FormatConfig)
    remote_config: Any = None
    level: str = ""
    caller_skip: int = 0

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> OutputConfig:
        """Build an output from one parsed entry of a log configuration."""
        data = data or {}
        if not isinstance(data, Mapping):
            raise TypeError(f"log output: expected a mapping, got {type(data).__name__}")
        return cls(
            writer=_as_str(data, "writer"),
            write_config=WriteConfig.from_mapping(_as_mapping(data, "writer_config")),
            formatter=_as_str(data, "formatter"),
            format_config=FormatConfig.from_mapping(_as_mapping(data, "formatter_config")),
            remote_config=data.get("remote_config"),
            level=_as_str(data, "level"),
            caller_skip=_as_int(data, "caller_skip"),
        )


def load_log_config(entries: Iterable[Mapping[str, Any]] | None) -> list[OutputConfig]:
    """Build the outputs of a logger from a parsed list of output entries."""
    if entries is None:
        return []
    if isinstance(entries, (Mapping, str, bytes)):
        raise TypeError("log config: expected a list of outputs")
    return [OutputConfig.from_mapping(entry) for entry in entries]