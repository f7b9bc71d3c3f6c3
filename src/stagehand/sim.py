""" Headless scenario runner

Loads a scenario, feeds it scripted world events and input, and ticks the
controller until everything settles. Dialogue goes to stdout, everything else
to the log.
"""

import sys
import os
import logging
import argparse
import contextlib
import collections
from typing import Optional, Callable, TextIO
from collections.abc import Iterable, Sequence

from stagehand import config, util, loader, validation, _version
from stagehand.core import Counters, Wait
from stagehand.controller import Controller
from stagehand.events import BusEvent, AreaEntered, InteractionTriggered
from stagehand.interface import Collaborators
from stagehand.interface.headless import LoggingPresentation, HeadlessInput
from stagehand.serialization import save_game

class ConsolePresentation(LoggingPresentation):
    def __init__(self, out:Optional[TextIO]=None) -> None:
        super().__init__()
        self.out = out

    def _print(self, line:str) -> None:
        print(line, file=self.out if self.out is not None else sys.stdout)

    def show_dialogue(self, speaker:str, text:str) -> None:
        super().show_dialogue(speaker, text)
        if speaker:
            self._print(f'{speaker}: {text}')
        else:
            self._print(text)

    def show_choices(self, options:Sequence[str], on_selected:Callable[[int], None]) -> None:
        super().show_choices(options, on_selected)
        for i, option in enumerate(options):
            self._print(f'  {i}) {option}')

    def show_cinematic_text(self, text:str, duration:float) -> Optional[Wait]:
        self._print(f'~ {text} ~')
        return super().show_cinematic_text(text, duration)

def parse_event(text:str) -> BusEvent:
    """ parses "area:ID" or "interaction:ID" """
    kind, sep, target = text.partition(":")
    if not sep or not target:
        raise ValueError(f'bad event "{text}", expected area:ID or interaction:ID')
    if kind == "area":
        return AreaEntered(target)
    elif kind == "interaction":
        return InteractionTriggered(target)
    else:
        raise ValueError(f'unknown event kind "{kind}", expected area or interaction')

class Simulator:
    """ Drives a controller with scripted events and auto-input.

    Each scripted event is published once the controller is idle, so events
    play out one after another. Dialogue auto-continues, choices are taken
    from the scripted list, defaulting to the first option. """

    def __init__(
            self,
            controller:Controller,
            presentation:LoggingPresentation,
            input:HeadlessInput,
            events:Iterable[BusEvent]=(),
            choices:Iterable[int]=(),
            dt:Optional[float]=None,
    ) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.controller = controller
        self.presentation = presentation
        self.input = input
        self.events:collections.deque[BusEvent] = collections.deque(events)
        self.choices:collections.deque[int] = collections.deque(choices)
        self.dt = dt if dt is not None else config.Settings.sim.DT

    def is_idle(self) -> bool:
        return (
            not self.controller.is_event_running()
            and not self.controller.pending
            and len(self.controller.invoker) == 0
        )

    def _provide_input(self) -> None:
        if self.presentation.on_selected is not None:
            choice = self.choices.popleft() if self.choices else 0
            self.logger.info(f'choosing {choice}')
            self.presentation.select(choice)
        self.input.trigger_continue()

    def run(self, max_ticks:Optional[int]=None) -> int:
        """ ticks until idle with no events left, returns ticks run """
        if max_ticks is None:
            max_ticks = config.Settings.sim.MAX_TICKS

        ticks = 0
        while ticks < max_ticks:
            self.controller.tick(self.dt)
            ticks += 1
            self._provide_input()
            if self.is_idle():
                if not self.events:
                    break
                event = self.events.popleft()
                self.logger.info(f'publishing {event}')
                self.controller.bus.publish(event)
        else:
            self.logger.warning(f'stopped after {max_ticks} ticks without settling')

        return ticks

def load_snapshot(filename:str) -> list[save_game.RunnerState]:
    if filename.endswith(".json"):
        with open(filename, "rt") as f:
            return save_game.loads(f.read())
    return save_game.GameSaver().load(filename)

def write_snapshot(controller:Controller, filename:str) -> None:
    if filename.endswith(".json"):
        with open(filename, "wt") as f:
            f.write(save_game.dumps(controller.capture_all_state(), indent=2))
    else:
        save_game.GameSaver().save(controller, filename)

def main() -> None:
    with contextlib.ExitStack() as context_stack:
        parser = argparse.ArgumentParser(description="run a stagehand scenario headlessly")
        parser.add_argument("scenario", type=str,
                help="scenario toml file")
        parser.add_argument("-e", "--event", action="append", default=[],
                help="world event to publish, area:ID or interaction:ID. repeatable, published in order")
        parser.add_argument("-c", "--choice", action="append", type=int, default=[],
                help="option index to pick at each choice, in order. default 0")
        parser.add_argument("--ticks", type=int, default=None,
                help="maximum number of ticks to run")
        parser.add_argument("--dt", type=float, default=None,
                help="seconds per tick")
        parser.add_argument("--load", type=str, default=None,
                help="restore a snapshot before running (.json or binary save)")
        parser.add_argument("--save", type=str, default=None,
                help="write a snapshot after running (.json or binary save)")
        parser.add_argument("--viz", type=str, default=None,
                help="directory to write graphviz sources for each storyboard")
        parser.add_argument("--config", type=str, default=None,
                help="toml file overriding the built in config")
        parser.add_argument("--validate", action="store_true",
                help="report authoring issues before running")
        parser.add_argument("--pdb", action="store_true")
        parser.add_argument("-v", "--verbose", action="store_true")
        parser.add_argument("--version", action="version", version=f'%(prog)s {_version.version}')

        args = parser.parse_args()

        logging.basicConfig(
                stream=sys.stderr,
                format="%(asctime)s %(name)-12s %(levelname)-8s %(message)s",
                level=logging.DEBUG if args.verbose else logging.INFO,
        )
        # send warnings to the logger
        logging.captureWarnings(True)

        if args.pdb:
            context_stack.enter_context(util.PDBManager())

        if args.config:
            with open(args.config, "rt") as f:
                config.load_config(f)

        with open(args.scenario, "rt") as f:
            scenario = loader.load(f)

        if args.validate:
            issues = validation.validate_storyboards(scenario.storyboards.values())
            for issue in issues:
                print(issue, file=sys.stderr)

        if args.viz:
            os.makedirs(args.viz, exist_ok=True)
            for storyboard in scenario.storyboards.values():
                path = storyboard.viz().save(filename=f'{storyboard.name}.gv', directory=args.viz)
                logging.info(f'wrote {path}')

        presentation = ConsolePresentation()
        headless_input = HeadlessInput()
        controller = Controller(Collaborators(
            presentation=presentation,
            input=headless_input,
            characters=scenario.characters,
        ))
        scenario.create_runners(controller)

        if args.load:
            controller.restore_all_state(load_snapshot(args.load))

        sim = Simulator(
            controller, presentation, headless_input,
            events=[parse_event(e) for e in args.event],
            choices=args.choice,
            dt=args.dt,
        )
        ticks = sim.run(args.ticks)

        for line in controller.status_report():
            print(line)

        if args.save:
            write_snapshot(controller, args.save)

        counter_str = "\n".join(map(lambda x: f'{str(x[0])}:\t{x[1]}', zip(list(Counters), controller.counters)))
        logging.info(f'counters:\n{counter_str}')
        logging.info(f'ticks:\t{ticks}')
        logging.info("done.")

if __name__ == "__main__":
    main()
