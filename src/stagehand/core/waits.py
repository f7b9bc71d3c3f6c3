""" Suspension points for running programs.

Instruction handlers and external collaborators hand these back to the
interpreter, which checks them once per tick before advancing. Skip is a flag
consulted by skippable waits, it never aborts the program.
"""

import abc
from typing import Callable

class Wait(abc.ABC):
    @abc.abstractmethod
    def update(self, dt:float, skip_requested:bool) -> bool:
        """ advances the wait by dt, returns True once it's done """
        ...

    def ready(self, skip_requested:bool) -> bool:
        """ checks if the wait is done without advancing time """
        return self.update(0.0, skip_requested)

class Delay(Wait):
    """ a timed wait, e.g. an animation or a fade """

    def __init__(self, duration:float, skippable:bool=True) -> None:
        self.duration = duration
        self.skippable = skippable
        self.elapsed = 0.0

    def __repr__(self) -> str:
        return f'Delay({self.duration}, elapsed={self.elapsed})'

    def update(self, dt:float, skip_requested:bool) -> bool:
        self.elapsed += dt
        if self.skippable and skip_requested:
            return True
        return self.elapsed >= self.duration

class WaitUntil(Wait):
    def __init__(self, predicate:Callable[[], bool]) -> None:
        self.predicate = predicate

    def update(self, dt:float, skip_requested:bool) -> bool:
        return self.predicate()

class NextTick(Wait):
    """ yields the rest of this tick """

    def ready(self, skip_requested:bool) -> bool:
        return False

    def update(self, dt:float, skip_requested:bool) -> bool:
        return True
