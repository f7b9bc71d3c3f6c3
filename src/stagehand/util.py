""" Utility methods broadly applicable across the codebase. """

from __future__ import annotations

import sys
import re
import pdb
import logging
from typing import Any, Iterable, TypeVar

logger = logging.getLogger(__name__)

def fullname(o:Any) -> str:
    # __module__ isn't guaranteed, and builtins read better without it

    if isinstance(o, type):
        klass = o
    else:
        klass = o.__class__

    module = klass.__module__
    if module is None or module == str.__class__.__module__:
        return klass.__qualname__  # Avoid reporting __builtin__
    else:
        return module + '.' + klass.__qualname__

RE_CAMEL_TO_SNAKE_PHASE_1 = re.compile(r'(.)([A-Z][a-z]+)')
RE_CAMEL_TO_SNAKE_PHASE_2 = re.compile(r'([a-z0-9])([A-Z])')
def camel_to_snake(name: str) -> str:
    name = RE_CAMEL_TO_SNAKE_PHASE_1.sub(r'\1_\2', name)
    return RE_CAMEL_TO_SNAKE_PHASE_2.sub(r'\1_\2', name).lower()

E = TypeVar("E")

def enum_from_name(klass:type[E], name:Any) -> E:
    """ Looks up an enum member by name, case insensitive.

    Authoring data spells enum values as strings ("fade_in", "FadeIn",
    "FADE_IN" are all fine). Raises ValueError with the valid names if there's
    no match. """

    if isinstance(name, klass):
        return name
    if not isinstance(name, str):
        raise ValueError(f'expected a {klass.__name__} name, got {name!r}')
    key = camel_to_snake(name).upper()
    try:
        return klass[key] # type: ignore[index]
    except KeyError as ke:
        valid = ", ".join(x.name for x in klass) # type: ignore[attr-defined]
        raise ValueError(f'unknown {klass.__name__} "{name}", expected one of {valid}') from ke

def elipsis(string:str, max_length:int) -> str:
    if len(string) <= max_length:
        return string
    else:
        return string[:max_length-3] + "..."

def human_list(items:Iterable[str]) -> str:
    return ", ".join(items) or "(none)"

class PDBManager:
    def __init__(self) -> None:
        self.logger = logging.getLogger(fullname(self))

    def __enter__(self) -> PDBManager:
        self.logger.info("entering PDBManager")

        return self

    def __exit__(self, e:Any, m:Any, tb:Any) -> None:
        self.logger.info("exiting PDBManager")
        if e is not None:
            self.logger.info(f'handling exception {e} {m}')
            print(m.__repr__(), file=sys.stderr)
            pdb.post_mortem(tb)
