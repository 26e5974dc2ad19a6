"""Registry of log output writers and the console and file writer factories."""

from __future__ import annotations

import copy
import logging
import os
from dataclasses import dataclass
from typing import Any, Protocol, TextIO

from .formatting import new_console_core, new_file_core
from .log_config import OUTPUT_CONSOLE, OUTPUT_FILE, ROLL_BY_SIZE, OutputConfig, WriteMode

PLUGIN_TYPE = "log"


@dataclass
class Decoder:
    """Carries an output's configuration to a writer and the handler back from it."""

    output_config: OutputConfig
    core: logging.Handler | None = None

    def decode(self) -> OutputConfig:
        """Return a copy of the output configuration."""
        return copy.deepcopy(self.output_config)


class WriterPlugin(Protocol):
    def type(self) -> str: ...

    def setup(self, name: str, decoder: Any) -> None: ...


def _check_decoder(decoder: Any, kind: str) -> Decoder:
    if decoder is None:
        raise ValueError(f"{kind} writer decoder empty")
    if not isinstance(decoder, Decoder):
        raise TypeError(f"{kind} writer log decoder type invalid")
    return decoder


class ConsoleWriterFactory:
    """Sets up console outputs."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def type(self) -> str:
        return PLUGIN_TYPE

    def setup(self, name: str, decoder: Any) -> None:
        """Build the console handler for the decoder's output."""
        dec = _check_decoder(decoder, "console")
        dec.core = new_console_core(dec.decode(), self._stream)


class FileWriterFactory:
    """Sets up rolling file outputs."""

    def type(self) -> str:
        return PLUGIN_TYPE

    def setup(self, name: str, decoder: Any) -> None:
        """Fill file defaults and build the file handler for the decoder's output."""
        dec = _check_decoder(decoder, "file")
        cfg = dec.decode()
        wc = cfg.write_config
        if wc.log_path:
            wc.filename = os.path.join(wc.log_path, wc.filename)
        if not wc.roll_type:
            wc.roll_type = ROLL_BY_SIZE
        if wc.write_mode == 0:
            # Fast mode drops logs when full instead of blocking the service.
            wc.write_mode = WriteMode.FAST
        dec.core = new_file_core(cfg)


DEFAULT_CONSOLE_WRITER_FACTORY = ConsoleWriterFactory()
DEFAULT_FILE_WRITER_FACTORY = FileWriterFactory()

_writers: dict[str, WriterPlugin] = {
    OUTPUT_CONSOLE: DEFAULT_CONSOLE_WRITER_FACTORY,
    OUTPUT_FILE: DEFAULT_FILE_WRITER_FACTORY,
}


def register_writer(name: str, writer: WriterPlugin) -> None:
    """Register an output writer under name, replacing any earlier one."""
    _writers[name] = writer


def get_writer(name: str) -> WriterPlugin | None:
    """Return the named output writer, or None if there is none."""
    return _writers.get(name)