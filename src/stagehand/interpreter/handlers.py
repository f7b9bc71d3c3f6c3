""" Instruction handlers, keyed by archetype and instruction kind.

A handler takes the interpreter and the instruction. It returns None when it's
done immediately, a Wait the interpreter should block on, or a generator of
Waits for multi-step work. Dialogue sets is_waiting_for_input instead of
waiting itself so the interpreter can manage the continue listener.
"""

import logging
from typing import Any, Union, Callable, Optional, TYPE_CHECKING
from collections.abc import Generator, Mapping

from stagehand import config
from stagehand.core import (
    Archetype, InstructionKind, Wait, Delay, WaitUntil,
    Dialogue, ActorAction, BackgroundAction, Choice, Label, Jump, Audio,
    EndOfProgram, CameraAction, ScreenEffect, TriggerOtherRunner,
    BackgroundActionType, BackgroundType, AudioActionType, SoundType,
    CameraActionType, ScreenEffectType,
)

if TYPE_CHECKING:
    from .core import Interpreter

logger = logging.getLogger(__name__)

HandlerResult = Union[None, Wait, Generator[Wait, None, None]]
Handler = Callable[["Interpreter", Any], HandlerResult]

def dialogue(interpreter:"Interpreter", instruction:Dialogue) -> HandlerResult:
    c = interpreter.collaborators
    if instruction.clear_all_characters:
        c.actors.hide_all()
    if instruction.show_character and instruction.character_id:
        c.actors.show_for_dialogue(instruction.character_id, instruction.expression, instruction.position)
    c.presentation.show_dialogue(c.characters.display_name(instruction.character_id), instruction.text)
    interpreter.is_waiting_for_input = True
    return None

def cinematic_dialogue(interpreter:"Interpreter", instruction:Dialogue) -> Generator[Wait, None, None]:
    """ reveals text over an animation then holds it for a while before
    advancing on its own. skip cuts the reveal and the hold short. """

    c = interpreter.collaborators
    anim_duration = instruction.cinematic_anim_duration
    if anim_duration is None:
        anim_duration = config.Settings.interpreter.DEFAULT_CINEMATIC_ANIM_DURATION
    display_duration = instruction.cinematic_display_duration
    if display_duration is None:
        display_duration = config.Settings.interpreter.DEFAULT_CINEMATIC_DISPLAY_DURATION

    if instruction.show_character and instruction.character_id:
        c.actors.show_for_dialogue(instruction.character_id, instruction.expression, instruction.position)

    reveal = c.presentation.show_cinematic_text(instruction.text, anim_duration)
    if reveal is not None:
        yield reveal
    yield Delay(display_duration)
    c.presentation.hide_cinematic_text()

def actor_action(interpreter:"Interpreter", instruction:ActorAction) -> HandlerResult:
    interpreter.collaborators.actors.handle_actor_action(instruction)
    return None

def background_action(interpreter:"Interpreter", instruction:BackgroundAction) -> HandlerResult:
    presentation = interpreter.collaborators.presentation
    if instruction.action == BackgroundActionType.HIDE:
        return presentation.hide_background()
    elif instruction.background_type == BackgroundType.VIDEO:
        return presentation.play_video_background(instruction.asset)
    else:
        return presentation.show_image_background(instruction.asset)

def choice(interpreter:"Interpreter", instruction:Choice) -> HandlerResult:
    if not instruction.options:
        logger.warning(f'choice with no options at {interpreter.cursor}, skipping')
        return None

    return _await_choice(interpreter, instruction)

def _await_choice(interpreter:"Interpreter", instruction:Choice) -> Generator[Wait, None, None]:
    interpreter.begin_choice(instruction)
    interpreter.collaborators.presentation.show_choices(
        [o.text for o in instruction.options],
        interpreter.choice_selected,
    )
    yield WaitUntil(lambda: not interpreter.is_awaiting_choice)

def label(interpreter:"Interpreter", instruction:Label) -> HandlerResult:
    return None

def jump(interpreter:"Interpreter", instruction:Jump) -> HandlerResult:
    interpreter.jump_to_label(instruction.target_label)
    return None

def audio(interpreter:"Interpreter", instruction:Audio) -> HandlerResult:
    a = interpreter.collaborators.audio
    if instruction.action == AudioActionType.PLAY:
        if instruction.sound_type == SoundType.BGM:
            a.play_bgm(instruction.clip, instruction.volume, instruction.loop)
        else:
            a.play_sfx(instruction.clip, instruction.volume)
    elif instruction.sound_type == SoundType.BGM:
        a.stop_bgm()
    else:
        # one-shot sounds play out on their own
        logger.debug(f'ignoring stop for sfx {instruction.clip}')
    return None

def end_of_program(interpreter:"Interpreter", instruction:EndOfProgram) -> HandlerResult:
    interpreter.end_program(instruction)
    return None

def camera_action(interpreter:"Interpreter", instruction:CameraAction) -> HandlerResult:
    camera = interpreter.collaborators.camera
    if instruction.action == CameraActionType.SWITCH_TO:
        return camera.switch_to(instruction.target_camera, instruction.duration)
    elif instruction.action == CameraActionType.ZOOM:
        return camera.zoom(instruction.target_fov, instruction.duration)
    elif instruction.action == CameraActionType.SHAKE:
        camera.shake(instruction.shake_intensity, instruction.duration)
        return None
    else:
        camera.reset()
        return None

def screen_effect(interpreter:"Interpreter", instruction:ScreenEffect) -> HandlerResult:
    effects = interpreter.collaborators.effects
    if instruction.effect == ScreenEffectType.FADE_OUT:
        return effects.fade_out(instruction.duration, instruction.color)
    elif instruction.effect == ScreenEffectType.FADE_IN:
        return effects.fade_in(instruction.duration)
    elif instruction.effect == ScreenEffectType.FLASH:
        # duration covers the whole flash, the hold comes out of it first
        fade = max(instruction.duration - instruction.flash_hold_duration, 0.0)
        fade_in = fade * config.Settings.interpreter.FLASH_FADE_IN_FRACTION
        return effects.flash(instruction.color, fade_in, instruction.flash_hold_duration, fade - fade_in)
    else:
        return effects.tint(instruction.color, instruction.duration)

def trigger_other_runner(interpreter:"Interpreter", instruction:TriggerOtherRunner) -> HandlerResult:
    controller = interpreter.controller
    if controller is None:
        logger.error(f'cannot trigger runner {instruction.target_runner_id} without a controller')
        return None
    runner = controller.get_runner_by_id(instruction.target_runner_id)
    if runner is None:
        logger.warning(f'no runner with id {instruction.target_runner_id} to trigger')
        return None
    node = runner.storyboard.start_node
    if node is None:
        logger.warning(f'runner {runner.runner_id} has no start node to trigger')
        return None
    # we're mid program so this queues behind us
    runner.try_start_node(node)
    return None

DIALOGUE_HANDLERS:Mapping[InstructionKind, Handler] = {
    InstructionKind.DIALOGUE: dialogue,
    InstructionKind.ACTOR_ACTION: actor_action,
    InstructionKind.BACKGROUND_ACTION: background_action,
    InstructionKind.CHOICE: choice,
    InstructionKind.LABEL: label,
    InstructionKind.JUMP: jump,
    InstructionKind.AUDIO: audio,
    InstructionKind.END_OF_PROGRAM: end_of_program,
    InstructionKind.CAMERA_ACTION: camera_action,
    InstructionKind.SCREEN_EFFECT: screen_effect,
    InstructionKind.TRIGGER_OTHER_RUNNER: trigger_other_runner,
}

# cinematic text reveals dialogue on a timer and has no branching
CINEMATIC_TEXT_HANDLERS:Mapping[InstructionKind, Handler] = {
    InstructionKind.DIALOGUE: cinematic_dialogue,
    InstructionKind.ACTOR_ACTION: actor_action,
    InstructionKind.BACKGROUND_ACTION: background_action,
    InstructionKind.AUDIO: audio,
    InstructionKind.END_OF_PROGRAM: end_of_program,
    InstructionKind.CAMERA_ACTION: camera_action,
    InstructionKind.SCREEN_EFFECT: screen_effect,
    InstructionKind.TRIGGER_OTHER_RUNNER: trigger_other_runner,
}

HANDLERS:Mapping[Archetype, Mapping[InstructionKind, Handler]] = {
    Archetype.GENERIC: DIALOGUE_HANDLERS,
    Archetype.DIALOGUE: DIALOGUE_HANDLERS,
    Archetype.CINEMATIC_TEXT: CINEMATIC_TEXT_HANDLERS,
}

def lookup(archetype:Archetype, kind:Optional[InstructionKind]) -> Optional[Handler]:
    if kind is None:
        return None
    return HANDLERS.get(archetype, {}).get(kind)

def supported_kinds(archetype:Archetype) -> frozenset[InstructionKind]:
    return frozenset(HANDLERS.get(archetype, {}).keys())
