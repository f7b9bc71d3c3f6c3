from typing import Optional, Callable, Any, TypeVar
from collections.abc import Iterable, Sequence

from stagehand import events
from stagehand.core import (
    Archetype, Program, Instruction, Dialogue, EndOfProgram, Reward,
    NarrativeNode, Storyboard, Condition, Wait,
)
from stagehand.controller import Controller
from stagehand.runner import Runner
from stagehand.interpreter import InterpreterObserver, ProgramRun
from stagehand.interface import headless

E = TypeVar("E")

class EventRecorder:
    """ Keeps every runtime event delivered on a bus, in delivery order. """

    def __init__(self, bus:events.DeferredEventBus) -> None:
        self.events:list[events.BusEvent] = []
        for event_type in (events.NodeStarted, events.NodeCompleted, events.JumpToNode):
            bus.subscribe(event_type, self.events.append)

    def of_type(self, event_type:type[E]) -> list[E]:
        return [e for e in self.events if isinstance(e, event_type)]

    def started(self) -> list[str]:
        return [e.node_id for e in self.of_type(events.NodeStarted)]

    def completed(self) -> list[str]:
        return [e.node_id for e in self.of_type(events.NodeCompleted)]

class MonitoringObserver(InterpreterObserver):
    """ Records interpreter notifications. """

    def __init__(self) -> None:
        super().__init__()
        self.started:list[ProgramRun] = []
        self.finished:list[tuple[ProgramRun, Sequence[Reward]]] = []
        self.branched:list[tuple[ProgramRun, str]] = []

    @property
    def observer_id(self) -> str:
        return "MonitoringObserver"

    def program_started(self, run:ProgramRun) -> None:
        self.started.append(run)

    def program_finished(self, run:ProgramRun, rewards:Sequence[Reward]) -> None:
        self.finished.append((run, list(rewards)))

    def program_branched(self, run:ProgramRun, target_node_id:str) -> None:
        self.branched.append((run, target_node_id))

def program(program_id:str, *instructions:Optional[Instruction], archetype:Archetype=Archetype.DIALOGUE) -> Program:
    return Program(program_id, archetype, tuple(instructions))

def dialogue_program(program_id:str, *lines:str, rewards:Iterable[Reward]=()) -> Program:
    """ one narrator line per entry, then a plain end with rewards """
    instructions:list[Optional[Instruction]] = [Dialogue("", line) for line in lines]
    instructions.append(EndOfProgram(rewards=tuple(rewards)))
    return program(program_id, *instructions)

def node(
        node_id:str,
        prog:Optional[Program]=None,
        conditions:Iterable[Condition]=(),
        start:bool=False,
        repeatable:bool=False,
) -> NarrativeNode:
    return NarrativeNode(
        node_id,
        archetype=prog.archetype if prog is not None else Archetype.DIALOGUE,
        is_start_node=start,
        is_repeatable=repeatable,
        conditions=conditions,
        program=prog,
    )

def add_runner(
        controller:Controller,
        runner_id:str,
        nodes:Iterable[NarrativeNode],
        priority:Optional[int]=None,
        storyboard_name:Optional[str]=None,
) -> Runner:
    storyboard = Storyboard(storyboard_name or f'{runner_id}_board', nodes)
    runner = Runner(runner_id, storyboard, controller, priority=priority)
    assert runner.enable()
    return runner

def tick(controller:Controller, n:int=1, dt:float=0.1) -> None:
    for _ in range(n):
        controller.tick(dt)

def tick_until(controller:Controller, predicate:Callable[[], bool], max_ticks:int=100, dt:float=0.1, on_tick:Optional[Callable[[], Any]]=None) -> int:
    """ ticks until predicate holds, returns how many ticks it took """
    for i in range(max_ticks):
        if predicate():
            return i
        controller.tick(dt)
        if on_tick is not None:
            on_tick()
    if predicate():
        return max_ticks
    raise AssertionError(f'condition not met after {max_ticks} ticks')

class RecordingPresentation(headless.LoggingPresentation):
    """ Keeps every line of dialogue and cinematic text shown. """

    def __init__(self) -> None:
        super().__init__()
        self.lines:list[tuple[str, str]] = []
        self.cinematic_lines:list[str] = []
        self.hide_all_count = 0

    def show_dialogue(self, speaker:str, text:str) -> None:
        super().show_dialogue(speaker, text)
        self.lines.append((speaker, text))

    def show_cinematic_text(self, text:str, duration:float) -> Optional[Wait]:
        self.cinematic_lines.append(text)
        return super().show_cinematic_text(text, duration)

    def hide_all(self) -> None:
        super().hide_all()
        self.hide_all_count += 1

    def texts(self) -> list[str]:
        return [text for _, text in self.lines]
