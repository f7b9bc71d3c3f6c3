""" Headless collaborators: log what they're asked to do and stand in timed
actions with Delays. Used for tests, the CLI and anywhere there's no real
presentation layer. """

import logging
import collections
from typing import Optional, Callable
from collections.abc import Sequence

import numpy as np
import numpy.typing as npt

from stagehand import util, interface
from stagehand.core import Wait, Delay, ActorAction, ActorActionType, ActorPosition

class LoggingPresentation(interface.AbstractPresentation):
    def __init__(self) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.background:Optional[str] = None
        self.last_dialogue:Optional[tuple[str, str]] = None
        self.choices:Sequence[str] = ()
        self.on_selected:Optional[Callable[[int], None]] = None
        self.cinematic_text:Optional[str] = None

    def show_dialogue(self, speaker:str, text:str) -> None:
        self.last_dialogue = (speaker, text)
        self.logger.info(f'{speaker or "(narrator)"}: {text}')

    def show_choices(self, options:Sequence[str], on_selected:Callable[[int], None]) -> None:
        self.choices = list(options)
        self.on_selected = on_selected
        self.logger.info(f'choices: {util.human_list(f"{i}) {o}" for i, o in enumerate(options))}')

    def select(self, index:int) -> bool:
        """ picks one of the presented choices, returns False if there's no
        choice up """
        if self.on_selected is None:
            return False
        on_selected = self.on_selected
        self.on_selected = None
        self.choices = ()
        on_selected(index)
        return True

    def show_image_background(self, asset:str) -> Optional[Wait]:
        self.background = asset
        self.logger.info(f'background image {asset}')
        return None

    def play_video_background(self, asset:str) -> Optional[Wait]:
        self.background = asset
        self.logger.info(f'background video {asset}')
        return None

    def hide_background(self) -> Optional[Wait]:
        self.background = None
        self.logger.info("hide background")
        return None

    def show_cinematic_text(self, text:str, duration:float) -> Optional[Wait]:
        self.cinematic_text = text
        self.logger.info(f'cinematic: {text}')
        return Delay(duration)

    def hide_cinematic_text(self) -> None:
        self.cinematic_text = None

    def hide_all(self) -> None:
        self.last_dialogue = None
        self.choices = ()
        self.on_selected = None
        self.cinematic_text = None

class LoggingActors(interface.AbstractActors):
    def __init__(self) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.on_stage:dict[str, tuple[str, ActorPosition]] = {}

    def handle_actor_action(self, action:ActorAction) -> None:
        self.logger.info(f'{action.action.name.lower()} {action.character_id} {action.position.name.lower()} {action.expression}')
        if action.action == ActorActionType.HIDE:
            self.on_stage.pop(action.character_id, None)
        else:
            self.on_stage[action.character_id] = (action.expression, action.position)

    def show_for_dialogue(self, character_id:str, expression:str, position:ActorPosition) -> None:
        self.on_stage[character_id] = (expression, position)

    def hide_all(self) -> None:
        self.on_stage.clear()

class LoggingCamera(interface.AbstractCamera):
    def __init__(self) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.camera = ""
        self.fov = 60.0

    def switch_to(self, camera:str, duration:float) -> Optional[Wait]:
        self.logger.info(f'camera switch to {camera} over {duration}s')
        self.camera = camera
        return Delay(duration)

    def zoom(self, fov:float, duration:float) -> Optional[Wait]:
        self.logger.info(f'camera zoom to {fov} over {duration}s')
        self.fov = fov
        return Delay(duration)

    def shake(self, intensity:float, duration:float) -> None:
        self.logger.info(f'camera shake {intensity} for {duration}s')

    def reset(self) -> None:
        self.camera = ""
        self.fov = 60.0

class LoggingAudio(interface.AbstractAudio):
    def __init__(self) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.bgm:Optional[str] = None
        self.sfx_played:collections.deque[str] = collections.deque(maxlen=32)

    def play_bgm(self, clip:str, volume:float, loop:bool) -> None:
        self.logger.info(f'bgm {clip} volume={volume} {loop=}')
        self.bgm = clip

    def play_sfx(self, clip:str, volume:float) -> None:
        self.logger.info(f'sfx {clip} volume={volume}')
        self.sfx_played.append(clip)

    def stop_bgm(self) -> None:
        self.bgm = None

class LoggingScreenEffects(interface.AbstractScreenEffects):
    def __init__(self) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.overlay:Optional[npt.NDArray[np.float64]] = None

    def fade_out(self, duration:float, color:npt.NDArray[np.float64]) -> Optional[Wait]:
        self.logger.info(f'fade out to {color} over {duration}s')
        self.overlay = color
        return Delay(duration)

    def fade_in(self, duration:float) -> Optional[Wait]:
        self.logger.info(f'fade in over {duration}s')
        self.overlay = None
        return Delay(duration)

    def flash(self, color:npt.NDArray[np.float64], fade_in:float, hold:float, fade_out:float) -> Optional[Wait]:
        self.logger.info(f'flash {color} {fade_in}/{hold}/{fade_out}')
        return Delay(fade_in + hold + fade_out)

    def tint(self, color:npt.NDArray[np.float64], duration:float) -> Optional[Wait]:
        self.logger.info(f'tint {color} over {duration}s')
        self.overlay = color
        return Delay(duration)

    def clear(self) -> None:
        self.overlay = None

class HeadlessInput(interface.AbstractInput):
    """ Input driven by code: trigger_continue and trigger_skip fire the bound
    callbacks when the corresponding listener is enabled. """

    def __init__(self) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.on_continue:Optional[Callable[[], None]] = None
        self.on_skip:Optional[Callable[[], None]] = None
        self.continue_enabled = False
        self.skip_enabled = False

    def bind(self, on_continue:Callable[[], None], on_skip:Callable[[], None]) -> None:
        self.on_continue = on_continue
        self.on_skip = on_skip

    def enable_continue_listener(self, enabled:bool) -> None:
        self.continue_enabled = enabled

    def enable_skip_listener(self, enabled:bool) -> None:
        self.skip_enabled = enabled

    def trigger_continue(self) -> bool:
        if not self.continue_enabled or self.on_continue is None:
            return False
        self.on_continue()
        return True

    def trigger_skip(self) -> bool:
        if not self.skip_enabled or self.on_skip is None:
            return False
        self.on_skip()
        return True

class StatSheet(interface.AbstractStats):
    def __init__(self) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.stats:dict[str, int] = collections.defaultdict(int)

    def __getitem__(self, stat:str) -> int:
        return self.stats[stat]

    def change_stat(self, stat:str, amount:int) -> None:
        self.stats[stat] += amount
        self.logger.info(f'{stat} {amount:+} => {self.stats[stat]}')
