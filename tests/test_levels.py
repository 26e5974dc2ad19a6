import pytest

from eventmesh.levels import LEVEL_NAMES, LEVEL_STRINGS, Field, Level, parse_level


@pytest.mark.parametrize("name", ["info", "fatal", "trace"])
def test_level_strings(name):
    assert str(parse_level(name)) == name


def test_nil_level_has_empty_string():
    assert str(parse_level("unknown")) == ""


@pytest.mark.parametrize("level", [lv for lv in Level if lv is not Level.NIL])
def test_parse_round_trip(level):
    assert parse_level(str(level)) is level


def test_parse_unknown_is_nil():
    assert parse_level("verbose") is Level.NIL
    assert parse_level("INFO") is Level.NIL


def test_levels_are_ordered():
    names = ["fatal", "warn", "trace", "error", "info", "debug"]
    ordered = sorted(parse_level(name) for name in names)
    assert [str(level) for level in ordered] == [
        "trace",
        "debug",
        "info",
        "warn",
        "error",
        "fatal",
    ]


def test_name_tables_are_inverse():
    assert {name: level for level, name in LEVEL_STRINGS.items()} == LEVEL_NAMES
    assert len(LEVEL_NAMES) == len(Level) - 1


def test_field_holds_key_and_value():
    f = Field("uid", 42)
    assert (f.key, f.value) == ("uid", 42)
    assert f == Field("uid", 42)
    with pytest.raises(AttributeError):
        f.key = "other"  # type: ignore[misc]