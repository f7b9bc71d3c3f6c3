""" Storyboards: named graphs of narrative nodes. """

import logging
from typing import Optional
from collections.abc import Iterable, Iterator, Sequence

import numpy as np
import numpy.typing as npt
import graphviz # type: ignore

from stagehand import util
from .base import Archetype
from .program import Program
from .condition import Condition

class NarrativeNode:
    """ A unit of narrative: conditions gating a program.

    next_node_ids are informational (editing and visualization), branching at
    runtime is driven by the program itself. Runtime status lives in the
    owning runner, not here. """

    def __init__(
            self,
            node_id:str,
            name:str="",
            archetype:Archetype=Archetype.DIALOGUE,
            is_start_node:bool=False,
            is_repeatable:bool=False,
            conditions:Optional[Iterable[Condition]]=None,
            next_node_ids:Optional[Iterable[str]]=None,
            program:Optional[Program]=None,
            position:Optional[npt.ArrayLike]=None,
    ) -> None:
        self.node_id = node_id
        self.name = name or node_id
        self.archetype = archetype
        self.is_start_node = is_start_node
        self.is_repeatable = is_repeatable
        self.conditions:list[Condition] = list(conditions or [])
        self.next_node_ids:list[str] = list(next_node_ids or [])
        self.program = program
        # editor canvas position
        self.position:npt.NDArray[np.float64] = np.array(position if position is not None else (0.0, 0.0), dtype=np.float64)

    def __str__(self) -> str:
        return f'{self.node_id} "{self.name}"'

    def __repr__(self) -> str:
        return f'NarrativeNode({self.node_id!r})'

    def all_conditions_satisfied(self) -> bool:
        return all(c.satisfied for c in self.conditions)

    def reset_conditions(self) -> None:
        for c in self.conditions:
            c.reset()

class Storyboard:
    def __init__(self, name:str, nodes:Optional[Iterable[NarrativeNode]]=None) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.name = name
        self.nodes:list[NarrativeNode] = list(nodes or [])

    def __str__(self) -> str:
        return f'{self.name} ({len(self.nodes)} nodes)'

    def __iter__(self) -> Iterator[NarrativeNode]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def start_node(self) -> Optional[NarrativeNode]:
        for node in self.nodes:
            if node.is_start_node:
                return node
        return None

    def get_node(self, node_id:str) -> Optional[NarrativeNode]:
        for node in self.nodes:
            if node.node_id == node_id:
                return node
        return None

    def connections(self) -> Sequence[tuple[str, str]]:
        """ (from, to) node id pairs from the nodes' successor lists """
        return [(n.node_id, t) for n in self.nodes for t in n.next_node_ids]

    def viz(self) -> graphviz.Digraph:
        g = graphviz.Digraph(self.name, graph_attr={"rankdir": "TB"})

        for node in self.nodes:
            attrs = {}
            if node.is_start_node:
                attrs["peripheries"] = "2"
            if node.is_repeatable:
                attrs["style"] = "dashed"
            label = f'{node.name}\n[{node.archetype.name.lower()}]'
            if node.conditions:
                label += "\n" + "\n".join(util.elipsis(c.description, 40) for c in node.conditions)
            g.node(node.node_id, label=label, shape="box", **attrs)

        for s, t in self.connections():
            g.edge(s, t)

        # branches come from the programs themselves
        for node in self.nodes:
            if node.program is None:
                continue
            for instruction in node.program.instructions:
                target = getattr(instruction, "target_node_id", "")
                if getattr(instruction, "is_branching", False) and target:
                    g.edge(node.node_id, target, style="dotted", label="branch")

        return g
