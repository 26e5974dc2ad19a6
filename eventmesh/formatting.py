"""Log line encoders and the handlers that write them to console or files."""

from __future__ import annotations

import json
import logging
import os
import re
import sys
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any, Protocol, TextIO

from .async_writer import AsyncOptions, AsyncRollWriter, LogQueueFullError
from .log_config import ROLL_BY_SIZE, FormatConfig, OutputConfig, WriteMode, time_format
from .rollwriter import RollOptions, RollWriter

CONSOLE_ZAP_CORE = "console"
FILE_ZAP_CORE = "file"

LEVELS: dict[str, int] = {
    "": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
}

_LEVEL_NAMES = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "FATAL",
}

_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
_DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

_LAYOUT_RE = re.compile(
    r"January|Jan|Monday|Mon|MST|2006|Z07:00|Z0700|Z07|-07:00|-0700|-07"
    r"|[.,](?:0+|9+)(?!\d)|01|02|03|04|05|06|15|_2|PM|pm|1|2|3|4|5"
)

TimeEncoder = Callable[[datetime], Any]


class _ByteWriter(Protocol):
    def write(self, data: bytes) -> int: ...

    def close(self) -> None: ...


def get_log_encoder_key(default_key: str, key: str) -> str:
    """Return key, or default_key when key is empty."""
    return key or default_key


def _local(moment: datetime) -> datetime:
    return moment.astimezone() if moment.tzinfo is not None else moment


def default_time_format(moment: datetime) -> str:
    """Format a moment in local time as "YYYY-MM-DD HH:MM:SS.mmm"."""
    t = _local(moment)
    return (
        f"{t.year % 10000:04d}-{t.month:02d}-{t.day:02d} "
        f"{t.hour:02d}:{t.minute:02d}:{t.second:02d}.{t.microsecond // 1000:03d}"
    )


def _offset(zoned: datetime, colon: bool, minutes: bool, zulu: bool) -> str:
    delta = zoned.utcoffset()
    seconds = int(delta.total_seconds()) if delta is not None else 0
    if zulu and seconds == 0:
        return "Z"
    sign = "-" if seconds < 0 else "+"
    hours, rest = divmod(abs(seconds) // 60, 60)
    if not minutes:
        return f"{sign}{hours:02d}"
    return f"{sign}{hours:02d}{':' if colon else ''}{rest:02d}"


def _fraction(token: str, moment: datetime) -> str:
    digits = f"{moment.microsecond:06d}000"[: len(token) - 1]
    if token[1] == "9":
        digits = digits.rstrip("0")
        return token[0] + digits if digits else ""
    return token[0] + digits


def _layout_chunk(token: str, moment: datetime) -> str:
    hour12 = moment.hour % 12 or 12
    simple: dict[str, Callable[[], str]] = {
        "January": lambda: _MONTHS[moment.month - 1],
        "Jan": lambda: _MONTHS[moment.month - 1][:3],
        "Monday": lambda: _DAYS[moment.weekday()],
        "Mon": lambda: _DAYS[moment.weekday()][:3],
        "2006": lambda: f"{moment.year:04d}",
        "06": lambda: f"{moment.year % 100:02d}",
        "01": lambda: f"{moment.month:02d}",
        "1": lambda: str(moment.month),
        "02": lambda: f"{moment.day:02d}",
        "_2": lambda: f"{moment.day:>2}",
        "2": lambda: str(moment.day),
        "15": lambda: f"{moment.hour:02d}",
        "03": lambda: f"{hour12:02d}",
        "3": lambda: str(hour12),
        "04": lambda: f"{moment.minute:02d}",
        "4": lambda: str(moment.minute),
        "05": lambda: f"{moment.second:02d}",
        "5": lambda: str(moment.second),
        "PM": lambda: "PM" if moment.hour >= 12 else "AM",
        "pm": lambda: "pm" if moment.hour >= 12 else "am",
    }
    if token in simple:
        return simple[token]()
    if token[0] in ".,":
        return _fraction(token, moment)
    zoned = _local(moment) if moment.tzinfo is not None else moment.astimezone()
    if token == "MST":
        return zoned.tzname() or _offset(zoned, False, True, False)
    zulu = token.startswith("Z")
    body = token[1:]
    return _offset(zoned, ":" in body, len(body) > 2, zulu)


def custom_time_format(moment: datetime, layout: str) -> str:
    """Format a moment with a reference layout such as "2006-01-02 15:04:05"."""
    return _LAYOUT_RE.sub(lambda match: _layout_chunk(match.group(0), moment), layout)


def new_time_encoder(fmt: str) -> TimeEncoder:
    """Return the time encoder named by fmt: default, epoch units or a layout."""
    if fmt == "":
        return default_time_format
    if fmt == "seconds":
        return lambda moment: moment.timestamp()
    if fmt == "milliseconds":
        return lambda moment: moment.timestamp() * 1000
    if fmt == "nanoseconds":
        return lambda moment: int(round(moment.timestamp() * 1_000_000)) * 1000
    return lambda moment: custom_time_format(moment, fmt)


def _short_caller(record: logging.LogRecord) -> str:
    parent = os.path.basename(os.path.dirname(record.pathname or ""))
    location = f"{record.filename}:{record.lineno}"
    return f"{parent}/{location}" if parent else location


class _EntryFormatter(logging.Formatter):
    def __init__(self, format_config: FormatConfig | None = None) -> None:
        super().__init__()
        cfg = format_config or FormatConfig()
        self.time_key = get_log_encoder_key("T", cfg.time_key)
        self.level_key = get_log_encoder_key("L", cfg.level_key)
        self.name_key = get_log_encoder_key("N", cfg.name_key)
        self.caller_key = get_log_encoder_key("C", cfg.caller_key)
        self.function_key = get_log_encoder_key("", cfg.function_key)
        self.message_key = get_log_encoder_key("M", cfg.message_key)
        self.stacktrace_key = get_log_encoder_key("S", cfg.stacktrace_key)
        self.encode_time = new_time_encoder(cfg.time_fmt)

    def _time(self, record: logging.LogRecord) -> Any:
        return self.encode_time(datetime.fromtimestamp(record.created))

    @staticmethod
    def _level(record: logging.LogRecord) -> str:
        return _LEVEL_NAMES.get(record.levelno, record.levelname.upper())

    @staticmethod
    def _fields(record: logging.LogRecord) -> dict[str, Any]:
        fields = getattr(record, "fields", None)
        return dict(fields) if isinstance(fields, Mapping) else {}

    def _stack(self, record: logging.LogRecord) -> str:
        parts = []
        if record.exc_info:
            parts.append(self.formatException(record.exc_info))
        if record.stack_info:
            parts.append(self.formatStack(record.stack_info))
        return "\n".join(parts)


class ConsoleFormatter(_EntryFormatter):
    """Tab-separated log lines: time, level, name, caller, function, message, fields."""

    def format(self, record: logging.LogRecord) -> str:
        elements = [str(self._time(record)), self._level(record)]
        name = getattr(record, "logger_name", "")
        if name:
            elements.append(str(name))
        elements.append(_short_caller(record))
        if self.function_key and record.funcName:
            elements.append(record.funcName)
        elements.append(record.getMessage())
        fields = self._fields(record)
        if fields:
            elements.append(json.dumps(fields, ensure_ascii=False, default=str))
        line = "\t".join(elements)
        stack = self._stack(record)
        return f"{line}\n{stack}" if stack else line


class JsonFormatter(_EntryFormatter):
    """One JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            self.level_key: self._level(record),
            self.time_key: self._time(record),
        }
        name = getattr(record, "logger_name", "")
        if name:
            entry[self.name_key] = str(name)
        entry[self.caller_key] = _short_caller(record)
        if self.function_key and record.funcName:
            entry[self.function_key] = record.funcName
        entry[self.message_key] = record.getMessage()
        entry.update(self._fields(record))
        stack = self._stack(record)
        if stack:
            entry[self.stacktrace_key] = stack
        return json.dumps(entry, ensure_ascii=False, separators=(",", ":"), default=str)


class WriterStream:
    """A text stream over a byte writer, dropping lines the writer refuses when full."""

    def __init__(self, writer: _ByteWriter) -> None:
        self._writer = writer

    def write(self, text: str) -> int:
        try:
            self._writer.write(text.encode("utf-8"))
        except LogQueueFullError:
            return 0
        return len(text)

    def flush(self) -> None:
        sync = getattr(self._writer, "sync", None)
        if callable(sync):
            sync()


class _WriterHandler(logging.StreamHandler):
    """Writes formatted records to a byte writer, syncing only on flush."""

    def __init__(self, writer: _ByteWriter) -> None:
        super().__init__(WriterStream(writer))
        self._writer = writer

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.stream.write(self.format(record) + self.terminator)
        except RecursionError:
            raise
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        self.acquire()
        try:
            try:
                self.flush()
            finally:
                self._writer.close()
        finally:
            self.release()
            logging.Handler.close(self)


def _level_of(name: str) -> int:
    # Unknown level names fall back to info.
    return LEVELS.get(name, logging.INFO)


def new_encoder(output: OutputConfig) -> logging.Formatter:
    """Return the formatter an output asks for; console unless it says json."""
    if output.formatter == "json":
        return JsonFormatter(output.format_config)
    return ConsoleFormatter(output.format_config)


def new_console_core(output: OutputConfig, stream: TextIO | None = None) -> logging.Handler:
    """Return a handler writing the output's format to stream, standard output by default."""
    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setFormatter(new_encoder(output))
    handler.setLevel(_level_of(output.level))
    return handler


def new_file_core(output: OutputConfig) -> logging.Handler:
    """Return a handler writing the output's format to a rolling log file."""
    wc = output.write_config
    options = RollOptions(
        max_age=wc.max_age,
        max_backups=wc.max_backups,
        compress=wc.compress,
    ).with_max_size_mb(wc.max_size)
    if wc.roll_type != ROLL_BY_SIZE:
        options = RollOptions(
            max_size=options.max_size,
            max_backups=options.max_backups,
            max_age=options.max_age,
            compress=options.compress,
            time_format=time_format(wc.time_unit),
        )
    roll_writer = RollWriter(wc.filename, options)
    writer: _ByteWriter
    if wc.write_mode == WriteMode.SYNC:
        writer = roll_writer
    else:
        writer = AsyncRollWriter(
            roll_writer, AsyncOptions(drop_log=wc.write_mode == WriteMode.FAST)
        )
    handler = _WriterHandler(writer)
    handler.setFormatter(new_encoder(output))
    handler.setLevel(_level_of(output.level))
    return handler