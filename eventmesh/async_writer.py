"""Asynchronous, batching front end for a log file writer."""

from __future__ import annotations

import queue
import threading
import time
from dataclasses import dataclass, field
from typing import Protocol

_SYNC = "sync"
_CLOSE = "close"


class _ByteWriter(Protocol):
    def write(self, data: bytes) -> int: ...

    def close(self) -> None: ...


class LogQueueFullError(Exception):
    """Raised when a log is dropped because the log queue is full."""

    def __init__(self, message: str = "log queue is full") -> None:
        super().__init__(message)


@dataclass(frozen=True)
class AsyncOptions:
    """Settings of an AsyncRollWriter.

    log_queue_size is the number of pending writes, write_log_size the buffer size
    in bytes that triggers a write, write_log_interval the flush period in
    milliseconds, and drop_log whether writes are dropped when the queue is full.
    """

    log_queue_size: int = 10000
    write_log_size: int = 4 * 1024
    write_log_interval: int = 100
    drop_log: bool = False


@dataclass
class _Request:
    action: str
    reply: queue.Queue = field(default_factory=lambda: queue.Queue(maxsize=1))


def _combine(errors: list[BaseException]) -> BaseException | None:
    if not errors:
        return None
    if len(errors) == 1:
        return errors[0]
    combined = OSError(
        f"{len(errors)} errors occurred: " + "; ".join(str(err) for err in errors)
    )
    combined.__cause__ = errors[0]
    return combined


class AsyncRollWriter:
    """Collects writes in a background thread and passes them on in batches."""

    def __init__(self, logger: _ByteWriter, options: AsyncOptions | None = None) -> None:
        self._logger = logger
        self._options = options or AsyncOptions()
        if self._options.write_log_interval <= 0:
            raise ValueError("non-positive interval for write log interval")
        self._queue: queue.Queue[bytes | _Request] = queue.Queue(
            maxsize=max(self._options.log_queue_size, 0)
        )
        self._closed = False
        self._state_lock = threading.Lock()
        self._worker = threading.Thread(
            target=self._run, name="async-roll-writer", daemon=True
        )
        self._worker.start()

    @property
    def options(self) -> AsyncOptions:
        """The writer's settings."""
        return self._options

    def write(self, data: bytes) -> int:
        """Queue data for writing and return its length."""
        if self._closed:
            raise ValueError("write to closed writer")
        log = bytes(data)
        if self._options.drop_log:
            try:
                self._queue.put_nowait(log)
            except queue.Full:
                raise LogQueueFullError() from None
        else:
            self._queue.put(log)
        return len(log)

    def sync(self) -> None:
        """Write out everything queued so far; raise if a write failed."""
        error = self._request(_SYNC)
        if error is not None:
            raise error

    def close(self) -> None:
        """Write out pending logs and close the underlying writer."""
        with self._state_lock:
            if self._closed:
                return
            self._closed = True
        errors: list[BaseException] = []
        try:
            self.sync()
        except Exception as exc:
            errors.append(exc)
        error = self._request(_CLOSE)
        if error is not None:
            errors.append(error)
        self._worker.join()
        combined = _combine(errors)
        if combined is not None:
            raise combined

    def __enter__(self) -> AsyncRollWriter:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _request(self, action: str) -> BaseException | None:
        request = _Request(action)
        self._queue.put(request)
        return request.reply.get()

    def _run(self) -> None:
        buffer = bytearray()
        interval = self._options.write_log_interval / 1000
        next_tick = time.monotonic() + interval
        while True:
            timeout = next_tick - time.monotonic()
            if timeout <= 0:
                self._write_quietly(buffer)
                next_tick = time.monotonic() + interval
                continue
            try:
                item = self._queue.get(timeout=timeout)
            except queue.Empty:
                continue
            if isinstance(item, _Request):
                if item.action == _SYNC:
                    item.reply.put(self._drain(buffer))
                    continue
                item.reply.put(self._close_logger())
                return
            buffer += item
            if len(buffer) >= self._options.write_log_size:
                self._write_quietly(buffer)

    def _write_quietly(self, buffer: bytearray) -> None:
        if not buffer:
            return
        try:
            self._logger.write(bytes(buffer))
        except Exception:
            pass
        buffer.clear()

    def _drain(self, buffer: bytearray) -> BaseException | None:
        errors: list[BaseException] = []
        if buffer:
            try:
                self._logger.write(bytes(buffer))
            except Exception as exc:
                errors.append(exc)
            buffer.clear()
        return _combine(errors)

    def _close_logger(self) -> BaseException | None:
        try:
            self._logger.close()
        except Exception as exc:
            return exc
        return None