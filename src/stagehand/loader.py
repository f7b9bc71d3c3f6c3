""" Loads authoring data (toml, or anything that parses to dicts).

A scenario file has four top level arrays of tables: characters, programs,
storyboards (each with nodes) and runners. Nodes refer to programs by id or
carry a program table inline. Malformed data raises ValueError. A node whose
program can't be found loads without one, with a warning.
"""

import logging
import dataclasses
from typing import Any, Optional, TextIO, TYPE_CHECKING
from collections.abc import Mapping, Iterable

import toml # type: ignore

from stagehand import util
from stagehand.core import (
    Archetype, Program, Condition, NarrativeNode, Storyboard, CharacterData, CharacterDatabase,
)

if TYPE_CHECKING:
    from stagehand.controller import Controller
    from stagehand.runner import Runner

logger = logging.getLogger(__name__)

@dataclasses.dataclass
class RunnerSpec:
    runner_id:str
    storyboard:str
    priority:Optional[int] = None
    name:Optional[str] = None

@dataclasses.dataclass
class Scenario:
    programs:dict[str, Program] = dataclasses.field(default_factory=dict)
    storyboards:dict[str, Storyboard] = dataclasses.field(default_factory=dict)
    characters:CharacterDatabase = dataclasses.field(default_factory=CharacterDatabase)
    runners:list[RunnerSpec] = dataclasses.field(default_factory=list)

    def create_runners(self, controller:"Controller") -> list["Runner"]:
        """ creates and enables a runner per runner spec

        runners that fail to register (e.g. duplicate ids) are left out """

        from stagehand.runner import Runner

        runners = []
        for spec in self.runners:
            storyboard = self.storyboards.get(spec.storyboard)
            if storyboard is None:
                logger.error(f'runner {spec.runner_id} refers to unknown storyboard {spec.storyboard}')
                continue
            runner = Runner(spec.runner_id, storyboard, controller, priority=spec.priority, name=spec.name)
            if runner.enable():
                runners.append(runner)
        return runners

def load_program(data:Mapping[str, Any]) -> Program:
    return Program.from_dict(data)

def load_characters(data:Iterable[Mapping[str, Any]]) -> CharacterDatabase:
    return CharacterDatabase(CharacterData.from_dict(c) for c in data)

def load_node(data:Mapping[str, Any], programs:Optional[Mapping[str, Program]]=None) -> NarrativeNode:
    if "id" not in data:
        raise ValueError(f'node is missing required key "id": {data!r}')
    node_id = str(data["id"])

    program:Optional[Program] = None
    program_ref = data.get("program")
    if isinstance(program_ref, Mapping):
        program = load_program(program_ref)
    elif program_ref:
        program = (programs or {}).get(str(program_ref))
        if program is None:
            logger.warning(f'node {node_id} refers to unknown program {program_ref}')

    if "archetype" in data:
        archetype = util.enum_from_name(Archetype, data["archetype"])
    elif program is not None:
        archetype = program.archetype
    else:
        archetype = Archetype.DIALOGUE

    return NarrativeNode(
        node_id,
        name=str(data.get("name", "")),
        archetype=archetype,
        is_start_node=bool(data.get("start", False)),
        is_repeatable=bool(data.get("repeatable", False)),
        conditions=[Condition.from_dict(c) for c in data.get("conditions", ())],
        next_node_ids=[str(x) for x in data.get("next", ())],
        program=program,
        position=data.get("position"),
    )

def load_storyboard(data:Mapping[str, Any], programs:Optional[Mapping[str, Program]]=None) -> Storyboard:
    if "name" not in data:
        raise ValueError('storyboard is missing required key "name"')
    return Storyboard(str(data["name"]), [load_node(n, programs) for n in data.get("nodes", ())])

def load_runner_spec(data:Mapping[str, Any]) -> RunnerSpec:
    for key in ("id", "storyboard"):
        if key not in data:
            raise ValueError(f'runner is missing required key "{key}": {data!r}')
    priority = data.get("priority")
    return RunnerSpec(
        str(data["id"]),
        str(data["storyboard"]),
        int(priority) if priority is not None else None,
        str(data["name"]) if "name" in data else None,
    )

def loadd(data:Mapping[str, Any]) -> Scenario:
    scenario = Scenario()
    scenario.characters = load_characters(data.get("characters", ()))

    for p in data.get("programs", ()):
        program = load_program(p)
        if program.program_id in scenario.programs:
            logger.warning(f'duplicate program id {program.program_id}, keeping the first')
            continue
        scenario.programs[program.program_id] = program

    for s in data.get("storyboards", ()):
        storyboard = load_storyboard(s, scenario.programs)
        if storyboard.name in scenario.storyboards:
            logger.warning(f'duplicate storyboard {storyboard.name}, keeping the first')
            continue
        scenario.storyboards[storyboard.name] = storyboard

    scenario.runners = [load_runner_spec(r) for r in data.get("runners", ())]

    logger.info(f'loaded {len(scenario.programs)} programs, {len(scenario.storyboards)} storyboards, {len(scenario.characters)} characters and {len(scenario.runners)} runners')
    return scenario

def loads(text:str) -> Scenario:
    return loadd(toml.loads(text))

def load(f:TextIO) -> Scenario:
    return loadd(toml.load(f))
