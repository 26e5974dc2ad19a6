import io
import json
import logging

import pytest

from eventmesh import logger as log
from eventmesh.levels import Field, Level
from eventmesh.log_config import OutputConfig
from eventmesh.writers import ConsoleWriterFactory, register_writer


@pytest.fixture
def memory():
    buffer = io.StringIO()
    register_writer("memory", ConsoleWriterFactory(stream=buffer))
    return buffer


@pytest.fixture
def restore_default():
    saved = log.get_default_logger()
    yield
    log.register("default", saved)


def make(level="debug", formatter="console", outputs=1):
    config = [OutputConfig(writer="memory", level=level, formatter=formatter) for _ in range(outputs)]
    return log.new_logger(config, 2)


def last_entry(buffer):
    return json.loads(buffer.getvalue().splitlines()[-1])


def test_print_style_joins_operands(memory):
    logger = make()
    logger.info("a", 1, 2)
    assert memory.getvalue().rstrip("\n").endswith("\ta1 2")


def test_printf_style_formats_verbs(memory):
    logger = make()
    logger.infof("x=%d y=%s", 3, "z")
    assert "x=3 y=z" in memory.getvalue()


def test_printf_missing_argument_is_marked(memory):
    logger = make(formatter="json")
    logger.infof("value %v")
    assert last_entry(memory)["M"] == "value %!v(MISSING)"


def test_level_gating(memory):
    logger = make(level="warn")
    logger.info("quiet")
    logger.warn("loud")
    text = memory.getvalue()
    assert "quiet" not in text
    assert "\tWARN\t" in text
    assert "loud" in text


def test_trace_logs_at_debug(memory):
    logger = make()
    logger.tracef("tracing %s", "now")
    assert "\tDEBUG\t" in memory.getvalue()
    assert "tracing now" in memory.getvalue()


def test_get_and_set_level(memory):
    logger = make(level="warn", outputs=2)
    assert logger.get_level("0") == Level.WARN
    logger.set_level("1", Level.ERROR)
    assert logger.get_level("1") == Level.ERROR
    assert logger.get_level("0") == Level.WARN


def test_bad_output_index(memory):
    logger = make(level="error")
    assert logger.get_level("x") == Level.DEBUG
    assert logger.get_level("3") == Level.DEBUG
    assert logger.get_level("-1") == Level.DEBUG
    logger.set_level("7", Level.DEBUG)
    assert logger.get_level("0") == Level.ERROR


def test_with_fields_pairs(memory):
    logger = make(formatter="json")
    bound = logger.with_fields("uid", "42", "dangling")
    bound.info("hello")
    entry = last_entry(memory)
    assert entry["uid"] == "42"
    assert "dangling" not in entry
    assert entry["M"] == "hello"


def test_bind_does_not_change_original(memory):
    logger = make(formatter="json")
    logger.bind(Field("n", 1)).info("first")
    assert last_entry(memory)["n"] == 1
    logger.info("second")
    entry = last_entry(memory)
    assert entry["M"] == "second"
    assert "n" not in entry


def test_bind_rejects_non_fields(memory):
    logger = make()
    with pytest.raises(TypeError):
        logger.bind("key")


def test_bound_logger_shares_levels(memory):
    logger = make()
    bound = logger.with_fields("k", "v")
    bound.set_level("0", Level.ERROR)
    assert logger.get_level("0") == Level.ERROR


def test_bound_logger_reports_calling_line(memory):
    logger = make(formatter="json")
    logger.bind(Field("k", "v")).info("here")
    assert last_entry(memory)["C"].split(":")[0] == "tests/test_logger.py"


def test_fatal_logs_and_exits(memory):
    logger = make()
    with pytest.raises(SystemExit) as raised:
        logger.fatal("boom")
    assert raised.value.code == 1
    assert "\tFATAL\t" in memory.getvalue()
    assert "boom" in memory.getvalue()


def test_unknown_writer_raises():
    with pytest.raises(ValueError, match="no registered"):
        log.new_logger([OutputConfig(writer="no-such-writer")])


def test_register_rejects_none():
    with pytest.raises(ValueError):
        log.register("nothing", None)


def test_register_twice_raises(memory):
    log.register("twice-test", make())
    assert log.get("twice-test") is not None
    with pytest.raises(ValueError, match="twice"):
        log.register("twice-test", make())


def test_register_default_replaces_default(memory, restore_default):
    replacement = make()
    log.register("default", replacement)
    assert log.get_default_logger() is replacement
    assert log.get("default") is replacement


def test_get_unknown_returns_none():
    assert log.get("never-registered") is None


def test_module_level_functions_use_default(memory, restore_default):
    log.set_logger(make(formatter="json"))
    log.infof("count %d", 5)
    entry = last_entry(memory)
    assert entry["M"] == "count 5"
    assert entry["C"].split(":")[0] == "tests/test_logger.py"
    log.set_level("0", Level.WARN)
    assert log.get_level("0") == Level.WARN
    log.info("hidden")
    assert "hidden" not in memory.getvalue()


def test_module_level_bind(memory, restore_default):
    log.set_logger(make(formatter="json"))
    log.bind(Field("req", "r1")).error("failed")
    entry = last_entry(memory)
    assert entry["req"] == "r1"
    assert entry["L"] == "ERROR"


def test_factory_type():
    assert log.LogFactory().type() == "log"


def test_factory_setup_registers_logger(memory):
    factory = log.LogFactory()
    factory.setup(
        "factory-json",
        [{"writer": "memory", "formatter": "json", "level": "info", "caller_skip": 1}],
    )
    created = log.get("factory-json")
    created.debug("skipped")
    created.info("kept")
    entry = last_entry(memory)
    assert entry["M"] == "kept"
    assert "skipped" not in memory.getvalue()
    assert entry["C"].split(":")[0] == "tests/test_logger.py"


def test_factory_setup_errors():
    factory = log.LogFactory()
    with pytest.raises(ValueError, match="decoder empty"):
        factory.setup("x", None)
    with pytest.raises(ValueError, match="output empty"):
        factory.setup("x", [])


def test_redirect_std_log(memory):
    logger = make()
    std = logging.getLogger("eventmesh.tests.std")
    restore = log.redirect_std_log(logger, Level.INFO)
    try:
        std.warning("std message")
    finally:
        restore()
    text = memory.getvalue()
    assert "std message" in text
    assert "\tINFO\t" in text
    std.warning("after restore")
    assert "after restore" not in memory.getvalue()


def test_redirect_requires_logger():
    with pytest.raises(TypeError):
        log.redirect_std_log(object(), Level.INFO)