"""Loggers built from configured outputs, the named logger registry and module-level logging."""

from __future__ import annotations

import json
import logging
import re
import sys
import threading
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from .levels import Field, Level
from .log_config import OutputConfig, load_log_config
from .writers import PLUGIN_TYPE, Decoder, get_writer

DEFAULT_LOGGER_NAME = "default"
DEFAULT_CALLER_SKIP = 2

DEFAULT_CONFIG: list[OutputConfig] = [
    OutputConfig(writer="console", level="debug", formatter="console"),
]

_TO_LOGGING: dict[Level, int] = {
    Level.TRACE: logging.DEBUG,
    Level.DEBUG: logging.DEBUG,
    Level.INFO: logging.INFO,
    Level.WARN: logging.WARNING,
    Level.ERROR: logging.ERROR,
    Level.FATAL: logging.CRITICAL,
}

_FROM_LOGGING: dict[int, Level] = {
    logging.DEBUG: Level.DEBUG,
    logging.INFO: Level.INFO,
    logging.WARNING: Level.WARN,
    logging.ERROR: Level.ERROR,
    logging.CRITICAL: Level.FATAL,
}

_VERB_RE = re.compile(
    r"%(?P<flags>[-+# 0]*)(?P<width>\d+)?(?:\.(?P<prec>\d+))?(?P<verb>[a-zA-Z%])"
)

Location = tuple[str, int, str]


def _to_logging(level: Level) -> int:
    # Unknown levels map to info, the zero value of the underlying level type.
    return _TO_LOGGING.get(level, logging.INFO)


def _go_str(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _sprint(args: Iterable[Any]) -> str:
    """Join operands, adding a space between two operands when neither is a string."""
    parts: list[str] = []
    previous_is_str = True
    for position, value in enumerate(args):
        is_str = isinstance(value, str)
        if position and not is_str and not previous_is_str:
            parts.append(" ")
        parts.append(_go_str(value))
        previous_is_str = is_str
    return "".join(parts)


def _bad_verb(verb: str, value: Any) -> str:
    return f"%!{verb}({type(value).__name__}={_go_str(value)})"


def _pad(text: str, flags: str, width: str | None) -> str:
    if not width:
        return text
    size = int(width)
    return text.ljust(size) if "-" in flags else text.rjust(size)


def _format_verb(value: Any, verb: str, flags: str, width: str | None, prec: str | None) -> str:
    is_int = isinstance(value, int) and not isinstance(value, bool)
    spec = f"%{flags}{width or ''}{'.' + prec if prec is not None else ''}{verb}"
    if verb in "vs":
        text = _go_str(value)
        if verb == "s" and prec is not None:
            text = text[: int(prec)]
        return _pad(text, flags, width)
    if verb == "q":
        return _pad(json.dumps(_go_str(value), ensure_ascii=False), flags, width)
    if verb == "t":
        return _pad(_go_str(value), flags, width) if isinstance(value, bool) else _bad_verb(verb, value)
    if verb == "T":
        return _pad(type(value).__name__, flags, width)
    if verb in "doxX":
        if is_int:
            return spec % value
        if verb in "xX" and isinstance(value, (str, bytes)):
            raw = value.encode("utf-8") if isinstance(value, str) else value
            text = raw.hex()
            return _pad(text.upper() if verb == "X" else text, flags, width)
        return _bad_verb(verb, value)
    if verb == "b":
        return _pad(format(value, "b"), flags, width) if is_int else _bad_verb(verb, value)
    if verb == "c":
        return _pad(chr(value), flags, width) if is_int else _bad_verb(verb, value)
    if verb in "fFeEgG":
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return spec % float(value)
        return _bad_verb(verb, value)
    return _bad_verb(verb, value)


def _sprintf(fmt: str, args: tuple[Any, ...]) -> str:
    """Format with printf-style verbs such as %v, %s, %d and %q."""
    used = 0

    def replace(match: re.Match[str]) -> str:
        nonlocal used
        verb = match.group("verb")
        if verb == "%":
            return "%"
        if used >= len(args):
            return f"%!{verb}(MISSING)"
        value = args[used]
        used += 1
        return _format_verb(value, verb, match.group("flags"), match.group("width"), match.group("prec"))

    text = _VERB_RE.sub(replace, fmt)
    if used < len(args):
        extra = ", ".join(f"{type(v).__name__}={_go_str(v)}" for v in args[used:])
        text += f"%!(EXTRA {extra})"
    return text


class Logger:
    """Writes log entries to a set of output handlers, each with its own level."""

    def __init__(
        self,
        handlers: Iterable[logging.Handler],
        caller_skip: int = DEFAULT_CALLER_SKIP,
        fields: Mapping[str, Any] | None = None,
        *,
        bound: bool = False,
    ) -> None:
        self._handlers = list(handlers)
        self._caller_skip = caller_skip
        self._fields = dict(fields or {})
        self._bound = bound

    @property
    def handlers(self) -> list[logging.Handler]:
        """The output handlers, in configuration order."""
        return list(self._handlers)

    @property
    def fields(self) -> dict[str, Any]:
        """The user-defined fields attached to every entry."""
        return dict(self._fields)

    def _enabled(self, levelno: int) -> bool:
        return any(levelno >= handler.level for handler in self._handlers)

    def _emit(self, level: Level, message: str, location: Location) -> None:
        levelno = _to_logging(level)
        pathname, lineno, func = location
        record = logging.LogRecord("", levelno, pathname, lineno, message, (), None, func)
        record.fields = dict(self._fields)
        for handler in self._handlers:
            if levelno >= handler.level:
                handler.handle(record)

    def _log(self, level: Level, build: Callable[[], str]) -> bool:
        if not self._enabled(_to_logging(level)):
            return False
        # Frame 1 is the public logging method; bound loggers sit one layer closer.
        steps = self._caller_skip - 1 if self._bound else self._caller_skip
        frame = sys._getframe(1)
        for _ in range(max(steps, 0)):
            if frame.f_back is None:
                break
            frame = frame.f_back
        code = frame.f_code
        self._emit(level, build(), (code.co_filename, frame.f_lineno, code.co_name))
        return True

    def trace(self, *args: Any) -> None:
        """Log at trace level, joining args like print operands."""
        self._log(Level.TRACE, lambda: _sprint(args))

    def tracef(self, fmt: str, *args: Any) -> None:
        """Log at trace level with a printf-style format."""
        self._log(Level.TRACE, lambda: _sprintf(fmt, args))

    def debug(self, *args: Any) -> None:
        """Log at debug level."""
        self._log(Level.DEBUG, lambda: _sprint(args))

    def debugf(self, fmt: str, *args: Any) -> None:
        """Log at debug level with a printf-style format."""
        self._log(Level.DEBUG, lambda: _sprintf(fmt, args))

    def info(self, *args: Any) -> None:
        """Log at info level."""
        self._log(Level.INFO, lambda: _sprint(args))

    def infof(self, fmt: str, *args: Any) -> None:
        """Log at info level with a printf-style format."""
        self._log(Level.INFO, lambda: _sprintf(fmt, args))

    def warn(self, *args: Any) -> None:
        """Log at warning level."""
        self._log(Level.WARN, lambda: _sprint(args))

    def warnf(self, fmt: str, *args: Any) -> None:
        """Log at warning level with a printf-style format."""
        self._log(Level.WARN, lambda: _sprintf(fmt, args))

    def error(self, *args: Any) -> None:
        """Log at error level."""
        self._log(Level.ERROR, lambda: _sprint(args))

    def errorf(self, fmt: str, *args: Any) -> None:
        """Log at error level with a printf-style format."""
        self._log(Level.ERROR, lambda: _sprintf(fmt, args))

    def fatal(self, *args: Any) -> None:
        """Log at fatal level, flush and exit with status 1."""
        if self._log(Level.FATAL, lambda: _sprint(args)):
            self._exit()

    def fatalf(self, fmt: str, *args: Any) -> None:
        """Log at fatal level with a printf-style format, flush and exit with status 1."""
        if self._log(Level.FATAL, lambda: _sprintf(fmt, args)):
            self._exit()

    def _exit(self) -> None:
        try:
            self.sync()
        except Exception:
            pass
        raise SystemExit(1)

    def sync(self) -> None:
        """Flush every output; raise the first error met."""
        errors: list[Exception] = []
        for handler in self._handlers:
            try:
                handler.flush()
            except Exception as exc:
                errors.append(exc)
        if errors:
            raise errors[0]

    def _handler_at(self, output: str) -> logging.Handler | None:
        try:
            index = int(output)
        except (TypeError, ValueError):
            return None
        if index < 0 or index >= len(self._handlers):
            return None
        return self._handlers[index]

    def set_level(self, output: str, level: Level) -> None:
        """Set the level of the output at the given index; ignore a bad index."""
        handler = self._handler_at(output)
        if handler is not None:
            handler.setLevel(_to_logging(level))

    def get_level(self, output: str) -> Level:
        """Return the level of the output at the given index; debug for a bad index."""
        handler = self._handler_at(output)
        if handler is None:
            return Level.DEBUG
        return _FROM_LOGGING.get(handler.level, Level.NIL)

    def _derive(self, extra: Mapping[str, Any]) -> Logger:
        merged = dict(self._fields)
        merged.update(extra)
        return Logger(self._handlers, self._caller_skip, merged, bound=True)

    def with_fields(self, *args: str) -> Logger:
        """Return a logger that adds string fields given as key, value pairs."""
        pairs = {str(args[i]): str(args[i + 1]) for i in range(0, len(args) - 1, 2)}
        return self._derive(pairs)

    def bind(self, *args: Field) -> Logger:
        """Return a logger that adds the given fields to every entry."""
        extra: dict[str, Any] = {}
        for item in args:
            if not isinstance(item, Field):
                raise TypeError(f"expected a Field, got {type(item).__name__}")
            extra[item.key] = item.value
        return self._derive(extra)


def new_logger(config: Iterable[OutputConfig], caller_skip: int = DEFAULT_CALLER_SKIP) -> Logger:
    """Build a logger with one handler per configured output."""
    handlers: list[logging.Handler] = []
    for output in config:
        writer = get_writer(output.writer)
        if writer is None:
            raise ValueError(f"log: writer core: {output.writer} no registered")
        decoder = Decoder(output_config=output)
        try:
            writer.setup(output.writer, decoder)
        except Exception as exc:
            raise ValueError(f"log: writer core: {output.writer} setup fail: {exc}") from exc
        if decoder.core is None:
            raise ValueError(f"log: writer core: {output.writer} setup fail: no handler")
        handlers.append(decoder.core)
    return Logger(handlers, caller_skip)


_lock = threading.RLock()
_loggers: dict[str, Logger] = {}
_default_logger: Logger | None = None


def register(name: str, logger: Logger) -> None:
    """Register a named logger; the name "default" also replaces the default logger."""
    global _default_logger
    with _lock:
        if logger is None:
            raise ValueError("log: Register logger is nil")
        if name in _loggers and name != DEFAULT_LOGGER_NAME:
            raise ValueError(f"log: Register called twice for logger name {name}")
        _loggers[name] = logger
        if name == DEFAULT_LOGGER_NAME:
            _default_logger = logger


def get_default_logger() -> Logger:
    """Return the default logger."""
    with _lock:
        assert _default_logger is not None
        return _default_logger


def set_logger(logger: Logger) -> None:
    """Replace the default logger."""
    global _default_logger
    with _lock:
        _default_logger = logger


def get(name: str) -> Logger | None:
    """Return the named logger, or None if there is none."""
    with _lock:
        return _loggers.get(name)


class LogFactory:
    """Builds and registers loggers from their configured outputs."""

    def type(self) -> str:
        return PLUGIN_TYPE

    def setup(self, name: str, outputs: Iterable[OutputConfig | Mapping[str, Any]] | None) -> None:
        """Build a logger from the outputs and register it under name."""
        if outputs is None:
            raise ValueError("log config decoder empty")
        if isinstance(outputs, (Mapping, str, bytes)):
            raise TypeError("log config: expected a list of outputs")
        config = [
            entry if isinstance(entry, OutputConfig) else load_log_config([entry])[0]
            for entry in outputs
        ]
        if not config:
            raise ValueError("log config output empty")
        caller_skip = DEFAULT_CALLER_SKIP
        for output in config:
            if output.caller_skip != 0:
                caller_skip = output.caller_skip
        register(name, new_logger(config, caller_skip))


DEFAULT_LOG_FACTORY = LogFactory()


class _StdLogForwarder(logging.Handler):
    def __init__(self, target: Logger, level: Level) -> None:
        super().__init__()
        self._target = target
        self._forward_level = level

    def emit(self, record: logging.LogRecord) -> None:
        try:
            if self._target._enabled(_to_logging(self._forward_level)):
                location = (record.pathname, record.lineno, record.funcName)
                self._target._emit(self._forward_level, record.getMessage(), location)
        except Exception:
            self.handleError(record)


def redirect_std_log(logger: Logger, level: Level = Level.INFO) -> Callable[[], None]:
    """Send everything logged through the standard logging root to logger at level.

    Returns a function that undoes the redirection.
    """
    if not isinstance(logger, Logger):
        raise TypeError("log: only supports redirecting std logs to Logger")
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    forwarder = _StdLogForwarder(logger, level)
    for handler in saved_handlers:
        root.removeHandler(handler)
    root.addHandler(forwarder)
    root.setLevel(logging.NOTSET)

    def restore() -> None:
        root.removeHandler(forwarder)
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)

    return restore


def set_level(output: str, level: Level) -> None:
    """Set the level of an output of the default logger."""
    get_default_logger().set_level(output, level)


def get_level(output: str) -> Level:
    """Return the level of an output of the default logger."""
    return get_default_logger().get_level(output)


def bind(*args: Field) -> Logger:
    """Return the default logger with fields added."""
    return get_default_logger().bind(*args)


def debug(*args: Any) -> None:
    """Log at debug level to the default logger."""
    get_default_logger().debug(*args)


def debugf(fmt: str, *args: Any) -> None:
    """Log at debug level to the default logger with a printf-style format."""
    get_default_logger().debugf(fmt, *args)


def info(*args: Any) -> None:
    """Log at info level to the default logger."""
    get_default_logger().info(*args)


def infof(fmt: str, *args: Any) -> None:
    """Log at info level to the default logger with a printf-style format."""
    get_default_logger().infof(fmt, *args)


def warn(*args: Any) -> None:
    """Log at warning level to the default logger."""
    get_default_logger().warn(*args)


def warnf(fmt: str, *args: Any) -> None:
    """Log at warning level to the default logger with a printf-style format."""
    get_default_logger().warnf(fmt, *args)


def error(*args: Any) -> None:
    """Log at error level to the default logger."""
    get_default_logger().error(*args)


def errorf(fmt: str, *args: Any) -> None:
    """Log at error level to the default logger with a printf-style format."""
    get_default_logger().errorf(fmt, *args)


def fatal(*args: Any) -> None:
    """Log at fatal level to the default logger and exit with status 1."""
    get_default_logger().fatal(*args)


def fatalf(fmt: str, *args: Any) -> None:
    """Log at fatal level to the default logger with a printf-style format and exit."""
    get_default_logger().fatalf(fmt, *args)


register(DEFAULT_LOGGER_NAME, new_logger(DEFAULT_CONFIG))