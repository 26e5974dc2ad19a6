import gzip
import os
import re
import time
from datetime import datetime

import pytest

from eventmesh.rollwriter import RollOptions, RollWriter, compress_file


def _touch(path, content=b"log", age_seconds=0.0):
    path.write_bytes(content)
    moment = time.time() - age_seconds
    os.utime(path, (moment, moment))
    return path


def _old_names(writer):
    return [f.name for f in writer.old_log_files()]


def test_empty_path_is_rejected():
    with pytest.raises(ValueError, match="invalid file path"):
        RollWriter("")


def test_creates_missing_directory(tmp_path):
    target = tmp_path / "nested" / "dir" / "app.log"
    writer = RollWriter(target)
    assert (tmp_path / "nested" / "dir").is_dir()
    assert _old_names(writer) == []


def test_write_appends_and_returns_length(tmp_path):
    path = tmp_path / "app.log"
    with RollWriter(path) as writer:
        assert writer.write(b"hello ") == 6
        assert writer.write(b"world") == 5
    assert path.read_bytes() == b"hello world"


def test_reopening_keeps_existing_content(tmp_path):
    path = tmp_path / "app.log"
    with RollWriter(path) as writer:
        writer.write(b"first\n")
    with RollWriter(path) as writer:
        writer.write(b"second\n")
    assert path.read_bytes() == b"first\nsecond\n"


def test_close_without_writes_creates_nothing(tmp_path):
    path = tmp_path / "app.log"
    writer = RollWriter(path)
    writer.close()
    writer.close()
    assert _old_names(writer) == []
    assert list(tmp_path.iterdir()) == []


def test_with_max_size_mb_returns_copy():
    base = RollOptions(max_backups=3)
    sized = base.with_max_size_mb(2)
    assert sized.max_size == 2 * 1024 * 1024
    assert sized.max_backups == 3
    assert base.max_size == 0


def test_rolls_by_size(tmp_path):
    path = tmp_path / "app.log"
    with RollWriter(path, RollOptions(max_size=10)) as writer:
        writer.write(b"0123456789ab")
        writer.write(b"next")
    backups = [p for p in tmp_path.iterdir() if p.name.startswith("app.log.bk-")]
    assert len(backups) == 1
    assert re.fullmatch(r"app\.log\.bk-\d{8}-\d{6}\.\d{5}", backups[0].name)
    assert backups[0].read_bytes() == b"0123456789ab"
    assert path.read_bytes() == b"next"


def test_time_format_names_current_file(tmp_path):
    path = tmp_path / "app.log"
    before = datetime.now().strftime(".%Y%m%d")
    with RollWriter(path, RollOptions(time_format=".%Y%m%d")) as writer:
        writer.write(b"line")
        current = writer.current_path
    after = datetime.now().strftime(".%Y%m%d")
    assert current in {str(path) + before, str(path) + after}
    assert open(current, "rb").read() == b"line"


def test_old_log_files_newest_first_and_filtered(tmp_path):
    path = tmp_path / "app.log"
    _touch(tmp_path / "app.log.a", age_seconds=300)
    _touch(tmp_path / "app.log.b", age_seconds=100)
    _touch(tmp_path / "app.log.c", age_seconds=200)
    _touch(tmp_path / "other.log.a")
    (tmp_path / "app.log.dir").mkdir()
    writer = RollWriter(path)
    assert _old_names(writer) == ["app.log.b", "app.log.c", "app.log.a"]


def test_old_log_files_excludes_current_file(tmp_path):
    path = tmp_path / "app.log"
    _touch(tmp_path / "app.log.old", age_seconds=50)
    with RollWriter(path) as writer:
        writer.write(b"x")
        names = _old_names(writer)
    assert names == ["app.log.old"]


def test_clean_files_keeps_max_backups(tmp_path):
    path = tmp_path / "app.log"
    _touch(tmp_path / "app.log.1", age_seconds=300)
    _touch(tmp_path / "app.log.2", age_seconds=200)
    _touch(tmp_path / "app.log.3", age_seconds=100)
    _touch(tmp_path / "other.log")
    writer = RollWriter(path, RollOptions(max_backups=2))
    writer.clean_files()
    assert _old_names(writer) == ["app.log.3", "app.log.2"]
    assert (tmp_path / "other.log").exists()


def test_clean_files_counts_compressed_pair_once(tmp_path):
    path = tmp_path / "app.log"
    _touch(tmp_path / "app.log.1", age_seconds=400)
    _touch(tmp_path / "app.log.2", age_seconds=300)
    _touch(tmp_path / "app.log.2.gz", age_seconds=200)
    writer = RollWriter(path, RollOptions(max_backups=1))
    writer.clean_files()
    assert _old_names(writer) == ["app.log.2.gz", "app.log.2"]


def test_clean_files_removes_expired(tmp_path):
    path = tmp_path / "app.log"
    _touch(tmp_path / "app.log.old", age_seconds=3 * 24 * 3600)
    _touch(tmp_path / "app.log.new", age_seconds=60)
    writer = RollWriter(path, RollOptions(max_age=1))
    writer.clean_files()
    assert _old_names(writer) == ["app.log.new"]


def test_clean_files_compresses(tmp_path):
    path = tmp_path / "app.log"
    _touch(tmp_path / "app.log.1", content=b"payload\n", age_seconds=60)
    _touch(tmp_path / "app.log.2.gz", content=gzip.compress(b"done"), age_seconds=30)
    writer = RollWriter(path, RollOptions(compress=True))
    writer.clean_files()
    assert sorted(_old_names(writer)) == ["app.log.1.gz", "app.log.2.gz"]
    assert gzip.decompress((tmp_path / "app.log.1.gz").read_bytes()) == b"payload\n"


def test_background_cleaning_after_rolls(tmp_path):
    path = tmp_path / "app.log"
    writer = RollWriter(path, RollOptions(max_size=4, max_backups=1))
    with writer:
        for _ in range(4):
            writer.write(b"abcd")
            time.sleep(0.002)
    assert len(writer.old_log_files()) == 1


def test_compress_file_round_trip(tmp_path):
    src = tmp_path / "data.log"
    src.write_bytes(b"line one\nline two\n")
    dst = tmp_path / "data.log.gz"
    compress_file(src, dst)
    assert not src.exists()
    assert gzip.decompress(dst.read_bytes()) == b"line one\nline two\n"


def test_compress_file_missing_source(tmp_path):
    dst = tmp_path / "missing.log.gz"
    with pytest.raises(OSError, match="failed to open file"):
        compress_file(tmp_path / "missing.log", dst)
    assert not dst.exists()