""" Snapshot records for runner state.

A snapshot is a flat list of RunnerStates, one per runner, with no references
to live objects. The record (dict) shape is the durable save format:
{"runnerId": str, "storyboardName": str, "nodeStates": [{"nodeId": str, "status": int}]}
with status 0=not started, 1=in progress, 2=completed. It isn't versioned.
"""

import dataclasses
from typing import Any
from collections.abc import Mapping, Sequence

from stagehand.core import Status

@dataclasses.dataclass(frozen=True)
class NodeState:
    node_id:str
    status:Status

    def to_record(self) -> dict[str, Any]:
        return {"nodeId": self.node_id, "status": int(self.status)}

    @staticmethod
    def from_record(record:Mapping[str, Any]) -> "NodeState":
        try:
            return NodeState(str(record["nodeId"]), Status(int(record["status"])))
        except KeyError as ke:
            raise ValueError(f'node state record missing {ke}: {record!r}') from ke

@dataclasses.dataclass(frozen=True)
class RunnerState:
    runner_id:str
    storyboard_name:str
    node_states:Sequence[NodeState] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.node_states, tuple):
            object.__setattr__(self, "node_states", tuple(self.node_states))

    def status_map(self) -> dict[str, Status]:
        return {ns.node_id: ns.status for ns in self.node_states}

    def to_record(self) -> dict[str, Any]:
        return {
            "runnerId": self.runner_id,
            "storyboardName": self.storyboard_name,
            "nodeStates": [ns.to_record() for ns in self.node_states],
        }

    @staticmethod
    def from_record(record:Mapping[str, Any]) -> "RunnerState":
        try:
            return RunnerState(
                str(record["runnerId"]),
                str(record["storyboardName"]),
                tuple(NodeState.from_record(r) for r in record["nodeStates"]),
            )
        except KeyError as ke:
            raise ValueError(f'runner state record missing {ke}') from ke
