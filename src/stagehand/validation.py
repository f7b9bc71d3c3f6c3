""" Authoring checks for programs and storyboards.

None of these are fatal at runtime (the interpreter and runners degrade
gracefully) but they're almost always mistakes worth fixing before shipping.
"""

import enum
import dataclasses
import collections
from typing import Optional
from collections.abc import Iterable

from stagehand.core import (
    Archetype, Program, Storyboard, UnknownInstruction, Label, Jump, Choice, EndOfProgram,
)
from stagehand.interpreter import handlers

class Severity(enum.Enum):
    WARNING = enum.auto()
    ERROR = enum.auto()

@dataclasses.dataclass(frozen=True)
class ValidationIssue:
    severity:Severity
    location:str
    message:str

    def __str__(self) -> str:
        return f'[{self.severity.name}] {self.location}: {self.message}'

def _error(location:str, message:str) -> ValidationIssue:
    return ValidationIssue(Severity.ERROR, location, message)

def _warning(location:str, message:str) -> ValidationIssue:
    return ValidationIssue(Severity.WARNING, location, message)

def validate_program(program:Program, archetype:Optional[Archetype]=None, storyboard:Optional[Storyboard]=None) -> list[ValidationIssue]:
    """ checks one program

    archetype defaults to the program's own. if storyboard is given, branch
    targets are checked against its nodes. """

    if archetype is None:
        archetype = program.archetype
    issues:list[ValidationIssue] = []
    supported = handlers.supported_kinds(archetype)

    if len(program) == 0:
        issues.append(_warning(program.program_id, "program has no instructions"))

    labels:dict[str, int] = {}
    for i, instruction in enumerate(program.instructions):
        if isinstance(instruction, Label):
            if not instruction.name:
                issues.append(_error(f'{program.program_id}[{i}]', "label has no name"))
            elif instruction.name in labels:
                issues.append(_warning(f'{program.program_id}[{i}]', f'duplicate label "{instruction.name}", the one at {labels[instruction.name]} wins'))
            else:
                labels[instruction.name] = i

    for i, instruction in enumerate(program.instructions):
        location = f'{program.program_id}[{i}]'
        if instruction is None:
            issues.append(_error(location, "null instruction"))
            continue
        if isinstance(instruction, UnknownInstruction):
            issues.append(_error(location, f'unknown instruction kind "{instruction.kind_name}"'))
            continue
        if instruction.kind not in supported:
            issues.append(_error(location, f'{instruction.kind_name} is not available in {archetype.name.lower()} programs'))

        if isinstance(instruction, Jump) and instruction.target_label not in labels:
            issues.append(_error(location, f'jump to undefined label "{instruction.target_label}"'))
        elif isinstance(instruction, Choice):
            if not instruction.options:
                issues.append(_warning(location, "choice has no options"))
            for j, option in enumerate(instruction.options):
                if option.target_label not in labels:
                    issues.append(_error(location, f'option {j} "{option.text}" targets undefined label "{option.target_label}"'))
        elif isinstance(instruction, EndOfProgram) and instruction.is_branching:
            if not instruction.target_node_id:
                issues.append(_error(location, "branching end has no target node"))
            elif storyboard is not None and storyboard.get_node(instruction.target_node_id) is None:
                issues.append(_error(location, f'branch target "{instruction.target_node_id}" is not in storyboard {storyboard.name}'))

    return issues

def validate_storyboard(storyboard:Storyboard) -> list[ValidationIssue]:
    issues:list[ValidationIssue] = []

    counts = collections.Counter(n.node_id for n in storyboard.nodes)
    for node_id, count in counts.items():
        if count > 1:
            issues.append(_error(storyboard.name, f'node id "{node_id}" is used {count} times'))

    start_nodes = [n for n in storyboard.nodes if n.is_start_node]
    if not start_nodes:
        issues.append(_warning(storyboard.name, "no start node"))
    elif len(start_nodes) > 1:
        issues.append(_warning(storyboard.name, f'{len(start_nodes)} start nodes, only {start_nodes[0].node_id} is used'))

    for node in storyboard.nodes:
        location = f'{storyboard.name}/{node.node_id}'
        for next_id in node.next_node_ids:
            if next_id not in counts:
                issues.append(_warning(location, f'successor "{next_id}" is not in the storyboard'))
        if node.program is None:
            issues.append(_warning(location, "node has no program"))
            continue
        if node.program.archetype != node.archetype:
            issues.append(_warning(location, f'node is {node.archetype.name.lower()} but program {node.program.program_id} is {node.program.archetype.name.lower()}'))
        issues.extend(validate_program(node.program, storyboard=storyboard))

    return issues

def validate_storyboards(storyboards:Iterable[Storyboard]) -> list[ValidationIssue]:
    issues = []
    for storyboard in storyboards:
        issues.extend(validate_storyboard(storyboard))
    return issues

def strip_null_instructions(program:Program) -> Program:
    """ a copy of program without null instruction slots """
    return Program(program.program_id, program.archetype, tuple(i for i in program.instructions if i is not None))
