"""Log file writer that rolls by size or time and scavenges old log files."""

from __future__ import annotations

import gzip
import os
import queue
import shutil
import threading
import time
from contextlib import suppress
from dataclasses import dataclass, replace
from datetime import datetime
from typing import BinaryIO, NamedTuple

COMPRESS_SUFFIX = ".gz"

# Seconds after which the current file is reopened, following time-based names.
_REOPEN_INTERVAL = 10
_SECONDS_PER_DAY = 24 * 60 * 60


def _backup_suffix(moment: datetime) -> str:
    return moment.strftime("bk-%Y%m%d-%H%M%S.") + f"{moment.microsecond // 10:05d}"


@dataclass(frozen=True)
class RollOptions:
    """Rolling and scavenging settings of a RollWriter.

    max_size is in bytes (0 disables rolling by size), max_backups is the number
    of old files to keep (0 keeps all), max_age is in days (0 keeps all) and
    time_format is a strftime suffix appended to the file path.
    """

    max_size: int = 0
    max_backups: int = 0
    max_age: int = 0
    compress: bool = False
    time_format: str = ""

    def with_max_size_mb(self, n: int) -> RollOptions:
        """Return a copy whose size limit is n megabytes."""
        return replace(self, max_size=n * 1024 * 1024)


class _LogFile(NamedTuple):
    name: str
    path: str
    mtime: float


def _filter_by_max_backups(
    files: list[_LogFile], max_backups: int
) -> tuple[list[_LogFile], list[_LogFile]]:
    if max_backups == 0 or len(files) < max_backups:
        return files, []
    preserved: set[str] = set()
    kept: list[_LogFile] = []
    removed: list[_LogFile] = []
    for log_file in files:
        preserved.add(log_file.name.removesuffix(COMPRESS_SUFFIX))
        (removed if len(preserved) > max_backups else kept).append(log_file)
    return kept, removed


def _filter_by_max_age(
    files: list[_LogFile], max_age: int
) -> tuple[list[_LogFile], list[_LogFile]]:
    if max_age <= 0:
        return files, []
    cutoff = time.time() - max_age * _SECONDS_PER_DAY
    kept = [f for f in files if f.mtime >= cutoff]
    removed = [f for f in files if f.mtime < cutoff]
    return kept, removed


def _to_compress(files: list[_LogFile], compress: bool) -> list[_LogFile]:
    if not compress:
        return []
    return [f for f in files if not f.name.endswith(COMPRESS_SUFFIX)]


def compress_file(src: str | os.PathLike[str], dst: str | os.PathLike[str]) -> None:
    """Gzip src into dst and remove src on success; dst is removed on failure."""
    try:
        source = open(src, "rb")
    except OSError as exc:
        raise OSError(f"failed to open file: {exc}") from exc
    with source:
        try:
            target = open(dst, "wb")
        except OSError as exc:
            raise OSError(f"failed to open compressed file: {exc}") from exc
        try:
            with target, gzip.GzipFile(fileobj=target, mode="wb") as packed:
                shutil.copyfileobj(source, packed)
        except OSError as exc:
            with suppress(OSError):
                os.remove(dst)
            raise OSError(f"failed to compress file: {exc}") from exc
    with suppress(OSError):
        os.remove(src)


class RollWriter:
    """A binary log file writer that rolls by size or by time."""

    def __init__(self, file_path: str | os.PathLike[str], options: RollOptions | None = None) -> None:
        path = os.fspath(file_path)
        if not path:
            raise ValueError("invalid file path")
        self._file_path = path
        self._options = options or RollOptions()
        self._pattern = path + self._options.time_format
        try:
            datetime.now().strftime(self._pattern)
        except ValueError as exc:
            raise ValueError("invalid time pattern") from exc
        self._dir = os.path.dirname(path) or "."
        os.makedirs(self._dir, exist_ok=True)

        self._curr_path = ""
        self._size = 0
        self._file: BinaryIO | None = None
        self._open_time = 0.0
        self._lock = threading.Lock()
        self._clean_lock = threading.Lock()
        self._notifications: queue.Queue[bool | None] | None = None
        self._cleaner: threading.Thread | None = None
        self._cleaner_stopped = False

    @property
    def file_path(self) -> str:
        """The base path of the log file."""
        return self._file_path

    @property
    def options(self) -> RollOptions:
        """The rolling settings."""
        return self._options

    @property
    def current_path(self) -> str:
        """The path currently written to, empty before the first write."""
        return self._curr_path

    def write(self, data: bytes) -> int:
        """Append data to the current log file and return the number of bytes written."""
        with self._lock:
            if self._file is None or time.time() - self._open_time > _REOPEN_INTERVAL:
                self._reopen()
            if self._file is None:
                raise OSError("open file fail")
            written = self._file.write(data) or 0
            self._size += written
            if self._options.max_size > 0 and self._size >= self._options.max_size:
                self._backup()
            return written

    def close(self) -> None:
        """Close the current log file and stop the scavenger."""
        with self._lock:
            current, self._file = self._file, None
            if current is None:
                return
            cleaner, notifications = self._cleaner, self._notifications
            self._cleaner_stopped = True
            self._cleaner = None
        try:
            current.close()
        finally:
            if cleaner is not None and notifications is not None:
                notifications.put(None)
                cleaner.join()

    def __enter__(self) -> RollWriter:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _reopen(self) -> None:
        self._open_time = time.time()
        path = datetime.now().strftime(self._pattern)
        if path != self._curr_path:
            self._curr_path = path
            self._notify()
        self._open(path)

    def _open(self, path: str) -> None:
        self._open_time = time.time()
        try:
            opened = open(path, "ab", buffering=0)
        except OSError:
            return
        previous, self._file = self._file, opened
        if previous is not None:
            previous.close()
        with suppress(OSError):
            self._size = os.stat(path).st_size

    def _backup(self) -> None:
        self._size = 0
        backup = f"{self._curr_path}.{_backup_suffix(datetime.now())}"
        if os.path.exists(self._curr_path):
            with suppress(OSError):
                os.replace(self._curr_path, backup)
        self._open(self._curr_path)
        self._notify()

    def _notify(self) -> None:
        if self._cleaner_stopped:
            return
        if self._cleaner is None:
            self._notifications = queue.Queue(maxsize=1)
            self._cleaner = threading.Thread(
                target=self._run_cleaner, name="rollwriter-cleaner", daemon=True
            )
            self._cleaner.start()
        assert self._notifications is not None
        with suppress(queue.Full):
            self._notifications.put_nowait(True)

    def _run_cleaner(self) -> None:
        notifications = self._notifications
        assert notifications is not None
        while notifications.get() is not None:
            opts = self._options
            if opts.max_backups == 0 and opts.max_age == 0 and not opts.compress:
                continue
            self.clean_files()

    def clean_files(self) -> None:
        """Remove redundant or expired old log files and compress the rest if asked."""
        with self._clean_lock:
            try:
                files = self.old_log_files()
            except OSError:
                return
            if not files:
                return
            files, removed = _filter_by_max_backups(files, self._options.max_backups)
            files, expired = _filter_by_max_age(files, self._options.max_age)
            for log_file in removed + expired:
                with suppress(OSError):
                    os.remove(log_file.path)
            for log_file in _to_compress(files, self._options.compress):
                with suppress(OSError):
                    compress_file(log_file.path, log_file.path + COMPRESS_SUFFIX)

    def old_log_files(self) -> list[_LogFile]:
        """Return the old log files of this writer, newest first."""
        current = os.path.basename(self._curr_path)
        prefix = os.path.basename(self._file_path)
        try:
            entries = list(os.scandir(self._dir))
        except OSError as exc:
            raise OSError(f"can't read log file directory: {exc}") from exc
        found: list[_LogFile] = []
        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    continue
            except OSError:
                continue
            if entry.name == current or not entry.name.startswith(prefix):
                continue
            path = os.path.join(self._dir, entry.name)
            try:
                mtime = os.stat(path).st_mtime
            except OSError:
                continue
            found.append(_LogFile(entry.name, path, mtime))
        return sorted(found, key=lambda f: f.mtime, reverse=True)