""" Events published on the bus by the world and by runners. """

import dataclasses

from stagehand.events.core import BusEvent

@dataclasses.dataclass(frozen=True)
class AreaEntered(BusEvent):
    trigger_id:str

@dataclasses.dataclass(frozen=True)
class InteractionTriggered(BusEvent):
    interaction_id:str

@dataclasses.dataclass(frozen=True)
class NodeStarted(BusEvent):
    node_id:str
    runner_id:str

@dataclasses.dataclass(frozen=True)
class NodeCompleted(BusEvent):
    node_id:str
    runner_id:str

@dataclasses.dataclass(frozen=True)
class JumpToNode(BusEvent):
    """ a program ended by branching to a node, possibly in another runner

    storyboard is the name of the storyboard holding target_node_id. """
    storyboard:str
    target_node_id:str
