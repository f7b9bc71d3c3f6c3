""" Boundaries to the things stagehand drives but doesn't implement.

Presentation, actors, camera, audio, screen effects, input and stats are
external collaborators. Handlers call them synchronously. Methods returning a
Wait are awaited by the interpreter before it advances, returning None means
fire-and-forget.
"""

import abc
from typing import Optional, Callable
from collections.abc import Sequence

import numpy as np
import numpy.typing as npt

from stagehand.core import Wait, CharacterDatabase, ActorAction, ActorPosition

class AbstractPresentation(abc.ABC):
    @abc.abstractmethod
    def show_dialogue(self, speaker:str, text:str) -> None:
        """ shows a line of dialogue. the player continues via input """
        ...

    @abc.abstractmethod
    def show_choices(self, options:Sequence[str], on_selected:Callable[[int], None]) -> None:
        """ presents options, on_selected gets the chosen index """
        ...

    @abc.abstractmethod
    def show_image_background(self, asset:str) -> Optional[Wait]: ...

    @abc.abstractmethod
    def play_video_background(self, asset:str) -> Optional[Wait]: ...

    @abc.abstractmethod
    def hide_background(self) -> Optional[Wait]: ...

    @abc.abstractmethod
    def show_cinematic_text(self, text:str, duration:float) -> Optional[Wait]:
        """ reveals text over duration seconds """
        ...

    @abc.abstractmethod
    def hide_cinematic_text(self) -> None: ...

    @abc.abstractmethod
    def hide_all(self) -> None: ...

class AbstractActors(abc.ABC):
    @abc.abstractmethod
    def handle_actor_action(self, action:ActorAction) -> None: ...

    @abc.abstractmethod
    def show_for_dialogue(self, character_id:str, expression:str, position:ActorPosition) -> None: ...

    @abc.abstractmethod
    def hide_all(self) -> None: ...

class AbstractCamera(abc.ABC):
    @abc.abstractmethod
    def switch_to(self, camera:str, duration:float) -> Optional[Wait]: ...

    @abc.abstractmethod
    def zoom(self, fov:float, duration:float) -> Optional[Wait]: ...

    @abc.abstractmethod
    def shake(self, intensity:float, duration:float) -> None: ...

    @abc.abstractmethod
    def reset(self) -> None: ...

class AbstractAudio(abc.ABC):
    @abc.abstractmethod
    def play_bgm(self, clip:str, volume:float, loop:bool) -> None: ...

    @abc.abstractmethod
    def play_sfx(self, clip:str, volume:float) -> None: ...

    @abc.abstractmethod
    def stop_bgm(self) -> None: ...

class AbstractScreenEffects(abc.ABC):
    @abc.abstractmethod
    def fade_out(self, duration:float, color:npt.NDArray[np.float64]) -> Optional[Wait]: ...

    @abc.abstractmethod
    def fade_in(self, duration:float) -> Optional[Wait]: ...

    @abc.abstractmethod
    def flash(self, color:npt.NDArray[np.float64], fade_in:float, hold:float, fade_out:float) -> Optional[Wait]: ...

    @abc.abstractmethod
    def tint(self, color:npt.NDArray[np.float64], duration:float) -> Optional[Wait]: ...

    @abc.abstractmethod
    def clear(self) -> None: ...

class AbstractInput(abc.ABC):
    """ Platform input. Fires the bound callbacks only while the matching
    listener is enabled. """

    @abc.abstractmethod
    def bind(self, on_continue:Callable[[], None], on_skip:Callable[[], None]) -> None: ...

    @abc.abstractmethod
    def enable_continue_listener(self, enabled:bool) -> None: ...

    @abc.abstractmethod
    def enable_skip_listener(self, enabled:bool) -> None: ...

class AbstractStats(abc.ABC):
    @abc.abstractmethod
    def change_stat(self, stat:str, amount:int) -> None: ...

class Collaborators:
    """ Everything the interpreter talks to. Anything not given is a headless
    stand in that logs what it's asked to do. """

    def __init__(
            self,
            presentation:Optional[AbstractPresentation]=None,
            actors:Optional[AbstractActors]=None,
            camera:Optional[AbstractCamera]=None,
            audio:Optional[AbstractAudio]=None,
            effects:Optional[AbstractScreenEffects]=None,
            input:Optional[AbstractInput]=None,
            stats:Optional[AbstractStats]=None,
            characters:Optional[CharacterDatabase]=None,
    ) -> None:
        from stagehand.interface import headless

        self.presentation:AbstractPresentation = presentation if presentation is not None else headless.LoggingPresentation()
        self.actors:AbstractActors = actors if actors is not None else headless.LoggingActors()
        self.camera:AbstractCamera = camera if camera is not None else headless.LoggingCamera()
        self.audio:AbstractAudio = audio if audio is not None else headless.LoggingAudio()
        self.effects:AbstractScreenEffects = effects if effects is not None else headless.LoggingScreenEffects()
        self.input:AbstractInput = input if input is not None else headless.HeadlessInput()
        self.stats:AbstractStats = stats if stats is not None else headless.StatSheet()
        self.characters = characters if characters is not None else CharacterDatabase()
