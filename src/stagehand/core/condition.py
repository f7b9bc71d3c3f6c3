""" Conditions gating when a narrative node may start.

A condition listens on the deferred bus for one kind of event. When a matching
event arrives it becomes satisfied and calls back its owner exactly once.
Conditions never un-satisfy themselves, the owning runner resets them when the
node starts over.
"""

import abc
import logging
from typing import Any, Optional, Callable, ClassVar, TYPE_CHECKING
from collections.abc import Mapping

from stagehand import util
from stagehand.events import DeferredEventBus, BusEvent, AreaEntered, InteractionTriggered, NodeCompleted

if TYPE_CHECKING:
    from stagehand.runner import Runner

_CONDITION_TYPES:dict[str, type["Condition"]] = {}

class Condition(abc.ABC):
    kind:ClassVar[str]
    event_type:ClassVar[type[BusEvent]]

    def __init_subclass__(cls, **kwargs:Any) -> None:
        super().__init_subclass__(**kwargs)
        if "kind" in cls.__dict__:
            _CONDITION_TYPES[cls.kind] = cls

    def __init__(self) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.satisfied = False
        self._on_satisfied:Optional[Callable[[], None]] = None
        self._bus:Optional[DeferredEventBus] = None

    def __str__(self) -> str:
        return f'{self.description} ({"met" if self.satisfied else "unmet"})'

    @property
    @abc.abstractmethod
    def description(self) -> str: ...

    def reset(self) -> None:
        self.satisfied = False

    def subscribe(self, bus:DeferredEventBus, on_satisfied:Callable[[], None]) -> None:
        if self._bus is not None:
            self.unsubscribe()
        self._on_satisfied = on_satisfied
        self._bus = bus
        bus.subscribe(self.event_type, self._handle_event)

    def unsubscribe(self) -> None:
        if self._bus is not None:
            self._bus.unsubscribe(self.event_type, self._handle_event)
        self._bus = None
        self._on_satisfied = None

    @property
    def is_subscribed(self) -> bool:
        return self._bus is not None

    def evaluate(self, runner:"Runner") -> None:
        """ checks already settled state without waiting for an event

        most conditions can only be satisfied by a future event so this does
        nothing by default. """
        pass

    @abc.abstractmethod
    def matches(self, event:Any) -> bool: ...

    def _handle_event(self, event:BusEvent) -> None:
        if self.satisfied:
            return
        if not self.matches(event):
            return
        self.satisfied = True
        self.logger.debug(f'satisfied: {self.description}')
        if self._on_satisfied is not None:
            self._on_satisfied()

    @abc.abstractmethod
    def to_dict(self) -> dict[str, Any]: ...

    @staticmethod
    def from_dict(data:Mapping[str, Any]) -> "Condition":
        if "kind" not in data:
            raise ValueError(f'condition is missing required key "kind": {data!r}')
        kind = data["kind"]
        if kind not in _CONDITION_TYPES:
            raise ValueError(f'unknown condition kind "{kind}", expected one of {util.human_list(_CONDITION_TYPES)}')
        return _CONDITION_TYPES[kind]._from_dict(data)

    @classmethod
    @abc.abstractmethod
    def _from_dict(cls, data:Mapping[str, Any]) -> "Condition": ...

def _require(data:Mapping[str, Any], key:str) -> str:
    try:
        return str(data[key])
    except KeyError as ke:
        raise ValueError(f'{data.get("kind")} condition is missing required key "{key}"') from ke

class AreaEnteredCondition(Condition):
    kind:ClassVar[str] = "area_entered"
    event_type:ClassVar[type[BusEvent]] = AreaEntered

    def __init__(self, trigger_id:str) -> None:
        super().__init__()
        self.trigger_id = trigger_id

    @property
    def description(self) -> str:
        return f'player enters area "{self.trigger_id}"'

    def matches(self, event:AreaEntered) -> bool:
        return event.trigger_id == self.trigger_id

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "trigger": self.trigger_id}

    @classmethod
    def _from_dict(cls, data:Mapping[str, Any]) -> "AreaEnteredCondition":
        return cls(_require(data, "trigger"))

class InteractionTriggeredCondition(Condition):
    kind:ClassVar[str] = "interaction"
    event_type:ClassVar[type[BusEvent]] = InteractionTriggered

    def __init__(self, interaction_id:str) -> None:
        super().__init__()
        self.interaction_id = interaction_id

    @property
    def description(self) -> str:
        return f'player interacts with "{self.interaction_id}"'

    def matches(self, event:InteractionTriggered) -> bool:
        return event.interaction_id == self.interaction_id

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "interaction": self.interaction_id}

    @classmethod
    def _from_dict(cls, data:Mapping[str, Any]) -> "InteractionTriggeredCondition":
        return cls(_require(data, "interaction"))

class PreviousNodeCompletedCondition(Condition):
    kind:ClassVar[str] = "node_completed"
    event_type:ClassVar[type[BusEvent]] = NodeCompleted

    def __init__(self, target_node_id:str) -> None:
        super().__init__()
        self.target_node_id = target_node_id

    @property
    def description(self) -> str:
        return f'node "{self.target_node_id}" is completed'

    def matches(self, event:NodeCompleted) -> bool:
        return event.node_id == self.target_node_id

    def evaluate(self, runner:"Runner") -> None:
        if self.satisfied:
            return
        # a node id may live in our own runner or, failing that, any runner
        if runner.is_node_completed(self.target_node_id):
            self.satisfied = True
            return
        for other in runner.controller.runners:
            if other is not runner and other.is_node_completed(self.target_node_id):
                self.satisfied = True
                return

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "node": self.target_node_id}

    @classmethod
    def _from_dict(cls, data:Mapping[str, Any]) -> "PreviousNodeCompletedCondition":
        return cls(_require(data, "node"))
