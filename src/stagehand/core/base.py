""" Stagehand core data model basic objects

No dependencies on other parts of the datamodel
"""

import enum
import abc
import weakref
from collections.abc import Iterable, Collection
from typing import Any, Generic, TypeVar

class Status(enum.IntEnum):
    """ Runtime status of a narrative node. Values are part of the save
    format. """
    NOT_STARTED = 0
    IN_PROGRESS = 1
    COMPLETED = 2

class Archetype(enum.Enum):
    """ Selects command semantics (e.g. wait for input vs timed reveal) and
    which instructions a program may contain. """
    GENERIC = enum.auto()
    DIALOGUE = enum.auto()
    CINEMATIC_TEXT = enum.auto()

class Counters(enum.IntEnum):
    def _generate_next_value_(name, start, count, last_values): # type: ignore
        """generate consecutive automatic numbers starting from zero"""
        return count
    TICKS = enum.auto()
    BUS_DELIVERIES = enum.auto()
    BUS_HANDLER_ERRORS = enum.auto()
    NODES_STARTED = enum.auto()
    NODES_COMPLETED = enum.auto()
    NODES_ENQUEUED = enum.auto()
    NODES_RELEASED = enum.auto()
    PROGRAMS_STARTED = enum.auto()
    PROGRAMS_FINISHED = enum.auto()
    PROGRAMS_BRANCHED = enum.auto()
    INSTRUCTIONS_EXECUTED = enum.auto()
    INSTRUCTIONS_SKIPPED = enum.auto()
    HANDLER_ERRORS = enum.auto()
    REWARDS_GRANTED = enum.auto()

class Observer(abc.ABC):
    def __init__(self, *args:Any, **kwargs:Any) -> None:
        super().__init__(*args, **kwargs)
        self._observings:weakref.WeakSet[Observable] = weakref.WeakSet()

    @property
    @abc.abstractmethod
    def observer_id(self) -> str:
        """ identifies where this observer is coming from

        Does not have to be unique, this is used for debugging to find a source
        for this observer. """
        ...

    @property
    def observings(self) -> Iterable["Observable"]:
        return self._observings

    def mark_observing(self, observed:"Observable") -> None:
        self._observings.add(observed)

    def unmark_observing(self, observed:"Observable") -> None:
        self._observings.remove(observed)

T = TypeVar("T", bound=Observer)

class Observable(abc.ABC, Generic[T]):
    def __init__(self, *args:Any, **kwargs:Any) -> None:
        super().__init__(*args, **kwargs)
        self._observers:weakref.WeakSet[T] = weakref.WeakSet()

    @property
    def observers(self) -> Collection[T]:
        return self._observers

    def observe(self, observer:T) -> None:
        self._observers.add(observer)
        observer.mark_observing(self)

    def unobserve(self, observer:T) -> None:
        # allow double unobserve calls, a runner may stop observing both when
        # its program finishes and when it is disabled
        if observer in self._observers:
            self._observers.remove(observer)
            observer.unmark_observing(self)
