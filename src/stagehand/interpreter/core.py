""" Executes one program at a time.

The interpreter is a cursor over a program's instructions plus a label index.
Execution runs inside a generator that yields Waits. The owner advances it
with update(dt) once per tick, so suspension (waiting for input, timed
actions) is just a pending Wait.
"""

import itertools
import logging
from typing import Optional, TYPE_CHECKING
from collections.abc import Generator, Sequence, MutableSequence

from stagehand import config, util
from stagehand.core import base
from stagehand.core import (
    Archetype, Counters, Program, Instruction, UnknownInstruction, EndOfProgram,
    Choice, Label, Reward, Wait, WaitUntil, NextTick,
)
from stagehand.events import DeferredEventBus, JumpToNode
from stagehand.interface import Collaborators
from . import handlers

if TYPE_CHECKING:
    from stagehand.controller import Controller

class ProgramRun:
    """ One execution of a program. Identity tells runs apart, even of the
    same program. """

    def __init__(self, run_id:int, program:Program, archetype:Archetype, storyboard:str) -> None:
        self.run_id = run_id
        self.program = program
        self.archetype = archetype
        self.storyboard = storyboard

    def __str__(self) -> str:
        return f'run {self.run_id} of {self.program.program_id} ({self.archetype.name.lower()})'

class InterpreterObserver(base.Observer):
    def program_started(self, run:ProgramRun) -> None:
        pass

    def program_finished(self, run:ProgramRun, rewards:Sequence[Reward]) -> None:
        pass

    def program_branched(self, run:ProgramRun, target_node_id:str) -> None:
        pass

class Interpreter(base.Observable[InterpreterObserver]):
    def __init__(
            self,
            collaborators:Collaborators,
            bus:DeferredEventBus,
            controller:Optional["Controller"]=None,
            counters:Optional[MutableSequence[float]]=None,
    ) -> None:
        super().__init__()
        self.logger = logging.getLogger(util.fullname(self))
        self.collaborators = collaborators
        self.bus = bus
        self.controller = controller
        self.counters:MutableSequence[float] = counters if counters is not None else [0.]*len(Counters)

        self.current_run:Optional[ProgramRun] = None
        self.cursor = 0
        self.label_index:dict[str, int] = {}
        self.is_running = False
        self.is_waiting_for_input = False
        self.is_skip_requested = False
        self.is_awaiting_choice = False

        self._choice:Optional[Choice] = None
        # set when the current instruction moved the cursor itself
        self._redirected = False
        self._run_ids = itertools.count(1)
        self._gen:Optional[Generator[Wait, None, None]] = None
        self._wait:Optional[Wait] = None

        self.collaborators.input.bind(self.continue_program, self.request_skip)

    @property
    def program(self) -> Optional[Program]:
        return self.current_run.program if self.current_run else None

    def start(self, program:Optional[Program], archetype:Optional[Archetype]=None, storyboard:str="") -> Optional[ProgramRun]:
        """ starts running program, returning the run or None if refused.

        Only one program runs at a time. archetype defaults to the program's.
        Nothing executes until the next update. """

        if self.is_running:
            assert self.current_run
            self.logger.warning(f'asked to start {program.program_id if program is not None else None} while {self.current_run} is running')
            return None
        if program is None or len(program) == 0:
            self.logger.warning(f'refusing to start empty program {program.program_id if program is not None else None}')
            return None

        if archetype is None:
            archetype = program.archetype

        run = ProgramRun(next(self._run_ids), program, archetype, storyboard)
        self.current_run = run
        self.is_running = True
        self.cursor = 0
        self.is_waiting_for_input = False
        self.is_skip_requested = False
        self.is_awaiting_choice = False
        self._choice = None
        self.label_index = self._build_label_index(program)

        self._gen = self._execute(run)
        self._wait = NextTick()

        self.collaborators.input.enable_continue_listener(False)
        self.collaborators.input.enable_skip_listener(archetype == Archetype.CINEMATIC_TEXT)

        self.counters[Counters.PROGRAMS_STARTED] += 1
        self.logger.debug(f'started {run}')
        for observer in list(self.observers):
            observer.program_started(run)
        return run

    def _build_label_index(self, program:Program) -> dict[str, int]:
        label_index:dict[str, int] = {}
        for i, instruction in enumerate(program.instructions):
            if not isinstance(instruction, Label):
                continue
            name = instruction.name
            if name in label_index:
                self.logger.warning(f'duplicate label "{name}" at {i} in {program.program_id}, keeping the one at {label_index[name]}')
                continue
            label_index[name] = i
        return label_index

    def update(self, dt:float) -> None:
        """ advances the running program by one tick """
        if self._gen is None:
            return

        if self._wait is not None:
            if not self._wait.update(dt, self.is_skip_requested):
                return
            self._wait = None

        gen = self._gen
        while self._gen is gen:
            try:
                wait = next(gen)
            except StopIteration:
                if self._gen is gen:
                    self._gen = None
                return
            except Exception:
                self.logger.exception(f'program execution failed in {self.current_run}')
                self.counters[Counters.HANDLER_ERRORS] += 1
                if self._gen is gen:
                    self._gen = None
                    if self.is_running:
                        self.end_program()
                return

            if self._gen is not gen:
                # program ended, maybe another started, while we were in it
                return
            if wait.ready(self.is_skip_requested):
                continue
            self._wait = wait
            return

    def _execute(self, run:ProgramRun) -> Generator[Wait, None, None]:
        program = run.program
        max_per_tick = config.Settings.interpreter.MAX_INSTRUCTIONS_PER_TICK
        executed = 0
        while self.current_run is run and self.cursor < len(program):
            if executed >= max_per_tick:
                self.logger.debug(f'{run} hit {max_per_tick} instructions this tick, yielding')
                executed = 0
                yield NextTick()
                if self.current_run is not run:
                    return
            executed += 1

            instruction = program[self.cursor]
            self._redirected = False
            for wait in self._dispatch(run, instruction):
                # waits reset the per tick budget
                executed = 0
                yield wait
                if self.current_run is not run:
                    return
            if self.current_run is not run:
                return

            if self.is_waiting_for_input:
                self.collaborators.input.enable_continue_listener(True)
                yield WaitUntil(lambda: not self.is_waiting_for_input)
                executed = 0
                if self.current_run is not run:
                    return
                self.collaborators.input.enable_continue_listener(False)

            if not self._redirected:
                self.cursor += 1

        if self.current_run is run:
            # falling off the end is an implicit, non-branching end
            self.end_program(EndOfProgram())

    def _dispatch(self, run:ProgramRun, instruction:Optional[Instruction]) -> Generator[Wait, None, None]:
        if instruction is None:
            self.logger.warning(f'null instruction at {self.cursor} in {run}, skipping')
            self.counters[Counters.INSTRUCTIONS_SKIPPED] += 1
            return
        if isinstance(instruction, UnknownInstruction):
            self.logger.warning(f'unknown instruction kind "{instruction.kind_name}" at {self.cursor} in {run}, skipping')
            self.counters[Counters.INSTRUCTIONS_SKIPPED] += 1
            return

        handler = handlers.lookup(run.archetype, instruction.kind)
        if handler is None:
            self.logger.warning(f'no {instruction.kind_name} handler for {run.archetype.name.lower()} programs at {self.cursor} in {run}, skipping')
            self.counters[Counters.INSTRUCTIONS_SKIPPED] += 1
            return

        self.counters[Counters.INSTRUCTIONS_EXECUTED] += 1
        try:
            result = handler(self, instruction)
        except Exception:
            self.logger.exception(f'{instruction.kind_name} handler failed at {self.cursor} in {run}, skipping')
            self.counters[Counters.HANDLER_ERRORS] += 1
            return

        if result is None:
            return
        elif isinstance(result, Wait):
            yield result
            return

        try:
            for wait in result:
                yield wait
                if self.current_run is not run:
                    result.close()
                    return
        except Exception:
            self.logger.exception(f'{instruction.kind_name} handler failed at {self.cursor} in {run}, skipping')
            self.counters[Counters.HANDLER_ERRORS] += 1

    def continue_program(self) -> bool:
        """ resumes a program waiting for input (e.g. the player read the
        dialogue). returns False if nothing was waiting. """
        if not self.is_waiting_for_input:
            self.logger.debug("continue with nothing waiting for input")
            return False
        self.is_waiting_for_input = False
        return True

    def request_skip(self) -> None:
        if not self.is_running:
            return
        assert self.current_run
        if self.current_run.archetype != Archetype.CINEMATIC_TEXT:
            self.logger.debug(f'ignoring skip for {self.current_run}')
            return
        self.is_skip_requested = True

    def begin_choice(self, instruction:Choice) -> None:
        self._choice = instruction
        self.is_awaiting_choice = True

    def choice_selected(self, index:int) -> bool:
        if not self.is_awaiting_choice or self._choice is None:
            self.logger.warning(f'choice {index} selected with no choice pending')
            return False
        if index < 0 or index >= len(self._choice.options):
            self.logger.warning(f'choice {index} out of range, there are {len(self._choice.options)} options')
            return False

        option = self._choice.options[index]
        self.logger.debug(f'chose {index} "{option.text}" -> {option.target_label}')
        self.jump_to_label(option.target_label)
        self._choice = None
        self.is_awaiting_choice = False
        return True

    def jump_to_label(self, label:str) -> bool:
        """ moves the cursor to label's instruction. an unknown label falls
        through to the next instruction. """

        self._redirected = True
        if label in self.label_index:
            self.cursor = self.label_index[label]
            return True
        else:
            self.logger.warning(f'no label "{label}" in {self.current_run}, continuing at {self.cursor+1}')
            self.cursor += 1
            return False

    def end_program(self, instruction:Optional[EndOfProgram]=None) -> None:
        """ terminates the running program

        a branching end publishes a jump to its target node instead of
        reporting the program finished. """

        run = self.current_run
        if run is None:
            self.logger.warning("end_program with no program running")
            return
        if instruction is None:
            instruction = EndOfProgram()

        inp = self.collaborators.input
        inp.enable_continue_listener(False)
        inp.enable_skip_listener(False)
        self.is_skip_requested = False
        self.is_waiting_for_input = False
        self.is_awaiting_choice = False
        self._choice = None

        c = self.collaborators
        c.presentation.hide_all()
        c.actors.hide_all()
        c.camera.reset()
        c.effects.clear()

        gen = self._gen
        self._gen = None
        self._wait = None
        if gen is not None and not gen.gi_running:
            gen.close()

        self.current_run = None
        self.is_running = False
        self.cursor = 0
        self.label_index = {}

        if instruction.is_branching and instruction.target_node_id:
            self.counters[Counters.PROGRAMS_BRANCHED] += 1
            self.logger.debug(f'{run} branched to {instruction.target_node_id}')
            self.bus.publish(JumpToNode(run.storyboard, instruction.target_node_id))
            for observer in list(self.observers):
                observer.program_branched(run, instruction.target_node_id)
        else:
            if instruction.is_branching:
                self.logger.warning(f'{run} ended branching without a target node, treating it as finished')
            self.counters[Counters.PROGRAMS_FINISHED] += 1
            self.logger.debug(f'{run} finished with {len(instruction.rewards)} rewards')
            for observer in list(self.observers):
                observer.program_finished(run, list(instruction.rewards))
