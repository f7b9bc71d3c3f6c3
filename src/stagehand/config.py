""" Stagehand settings.

Built-in defaults live in stagehand/data/config.toml. A toml override file can
replace any of them, as long as it keeps each setting's type. Always read
settings through the module, config.Settings.section.KEY, since load_config
rebinds it. """

import types
import logging
import importlib.resources
from typing import Optional, Any, TextIO

import toml # type: ignore

logger = logging.getLogger(__name__)

def merge(base:dict[str, Any], override:dict[str, Any], path:Optional[list[str]]=None) -> dict[str, Any]:
    """ recursively merges override into base, in place

    raises ValueError if a key in both has values of different types, which
    catches typos like a section given as a plain value. """

    if path is None:
        path = []
    for key, value in override.items():
        key_path = path + [str(key)]
        if key not in base:
            logger.warning(f'config override adds unknown setting {".".join(key_path)}')
            base[key] = value
        elif isinstance(base[key], dict) and isinstance(value, dict):
            merge(base[key], value, key_path)
        elif base[key].__class__ == value.__class__:
            base[key] = value
        else:
            raise ValueError(f'conflict at {".".join(key_path)}: expected {base[key].__class__.__name__}, got {value.__class__.__name__}')
    return base

def to_namespace(d:dict[str, Any]) -> types.SimpleNamespace:
    """ recursively turns nested tables into attribute access """
    return types.SimpleNamespace(**{
        k: to_namespace(v) if isinstance(v, dict) else v for k, v in d.items()
    })

def defaults() -> dict[str, Any]:
    return toml.loads(importlib.resources.files("stagehand.data").joinpath("config.toml").read_text())

def load_config(config_file:Optional[TextIO]=None) -> types.SimpleNamespace:
    """ (re)loads Settings from the defaults plus an optional override file """
    config = defaults()
    if config_file is not None:
        merge(config, toml.load(config_file))

    global Settings
    Settings = to_namespace(config)
    return Settings

Settings = load_config()
