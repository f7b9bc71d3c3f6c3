import io
import enum

import pytest

from stagehand import util, config
from stagehand.core import Archetype, ScreenEffectType

class Mood(enum.Enum):
    CALM = enum.auto()
    VERY_ANGRY = enum.auto()

def test_fullname():
    assert util.fullname(Mood) == "tests.test_util.Mood"
    assert util.fullname(Mood.CALM) == "tests.test_util.Mood"
    assert util.fullname(3) == "int"

def test_camel_to_snake():
    assert util.camel_to_snake("EndOfProgram") == "end_of_program"
    assert util.camel_to_snake("fade_in") == "fade_in"
    assert util.camel_to_snake("HTTPServer") == "http_server"

def test_enum_from_name():
    assert util.enum_from_name(Mood, "calm") == Mood.CALM
    assert util.enum_from_name(Mood, "VeryAngry") == Mood.VERY_ANGRY
    assert util.enum_from_name(Mood, "VERY_ANGRY") == Mood.VERY_ANGRY
    assert util.enum_from_name(Mood, Mood.CALM) == Mood.CALM
    assert util.enum_from_name(Archetype, "CinematicText") == Archetype.CINEMATIC_TEXT
    assert util.enum_from_name(ScreenEffectType, "fade_in") == ScreenEffectType.FADE_IN

    with pytest.raises(ValueError, match="CALM, VERY_ANGRY"):
        util.enum_from_name(Mood, "sleepy")
    with pytest.raises(ValueError):
        util.enum_from_name(Mood, 1)

def test_elipsis():
    assert util.elipsis("short", 10) == "short"
    assert util.elipsis("a rather long sentence", 10) == "a rathe..."

def test_human_list():
    assert util.human_list(["a", "b"]) == "a, b"
    assert util.human_list([]) == "(none)"

def test_merge():
    base = {"a": 1, "section": {"b": 2.0, "c": "x"}}
    config.merge(base, {"section": {"b": 3.5}, "d": True})
    assert base == {"a": 1, "section": {"b": 3.5, "c": "x"}, "d": True}

    with pytest.raises(ValueError, match="section.c"):
        config.merge(base, {"section": {"c": 7}})
    with pytest.raises(ValueError):
        config.merge(base, {"section": 1})

def test_load_config_override():
    assert config.Settings.runner.DEFAULT_PRIORITY == 100

    settings = config.load_config(io.StringIO("[runner]\nDEFAULT_PRIORITY = 7\n"))
    assert settings is config.Settings
    assert config.Settings.runner.DEFAULT_PRIORITY == 7
    # untouched settings keep their defaults
    assert config.Settings.sim.DT == 0.1

    with pytest.raises(ValueError):
        config.load_config(io.StringIO("[runner]\nDEFAULT_PRIORITY = \"high\"\n"))
