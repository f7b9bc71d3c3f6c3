""" Tests for the program interpreter: cursor, labels, choices, waits and
archetype dispatch. """

from typing import Optional

import pytest

from stagehand import config, events
from stagehand.core import (
    Archetype, Counters, Dialogue, Label, Jump, Choice, ChoiceOption, EndOfProgram,
    UnknownInstruction, BackgroundAction, BackgroundActionType, ActorAction,
    ActorActionType, ActorPosition, Audio, AudioActionType, SoundType,
    CameraAction, CameraActionType, ScreenEffect, ScreenEffectType,
    ChangeStatReward, Wait,
)
from stagehand.interface import Collaborators
from stagehand.interface import headless
from stagehand.interpreter import Interpreter
from . import program, MonitoringObserver, RecordingPresentation

def run_to_end(interpreter:Interpreter, headless_input:headless.HeadlessInput, max_updates:int=100, dt:float=0.1) -> int:
    """ updates with auto-continue until the program ends, returns updates """
    for i in range(max_updates):
        if not interpreter.is_running:
            return i
        interpreter.update(dt)
        headless_input.trigger_continue()
    assert not interpreter.is_running
    return max_updates

def test_nothing_runs_on_start(controller, presentation):
    interpreter = controller.interpreter
    run = interpreter.start(program("p", Dialogue("", "hello")))
    assert run is not None
    assert interpreter.is_running
    assert presentation.lines == []

    interpreter.update(0.1)
    assert presentation.texts() == ["hello"]
    assert interpreter.is_waiting_for_input

def test_dialogue_waits_for_continue(controller, presentation, headless_input, monitor):
    interpreter = controller.interpreter
    interpreter.start(program("p", Dialogue("mara", "one"), Dialogue("oskar", "two")))

    interpreter.update(0.1)
    interpreter.update(0.1)
    interpreter.update(0.1)
    assert presentation.lines == [("Mara", "one")]
    assert headless_input.continue_enabled

    assert headless_input.trigger_continue()
    # nothing happens until the next update
    assert presentation.lines == [("Mara", "one")]
    interpreter.update(0.1)
    assert presentation.lines == [("Mara", "one"), ("Oskar", "two")]

    assert headless_input.trigger_continue()
    interpreter.update(0.1)
    assert not interpreter.is_running
    assert not headless_input.continue_enabled
    # falling off the end finishes with no rewards
    assert len(monitor.finished) == 1
    assert monitor.finished[0][1] == []

def test_continue_with_nothing_waiting(controller):
    assert not controller.interpreter.continue_program()

def test_start_refused_while_running(controller):
    interpreter = controller.interpreter
    first = interpreter.start(program("p1", Dialogue("", "one")))
    assert first is not None
    assert interpreter.start(program("p2", Dialogue("", "two"))) is None
    assert interpreter.current_run is first

def test_start_refuses_empty_program(controller):
    assert controller.interpreter.start(program("empty")) is None
    assert controller.interpreter.start(None) is None
    assert not controller.interpreter.is_running

def test_jump_goes_to_label(controller, presentation, headless_input):
    interpreter = controller.interpreter
    p = program("p",
        Dialogue("", "a"),
        Jump("end"),
        Dialogue("", "skipped"),
        Label("end"),
        Dialogue("", "b"),
    )
    interpreter.start(p)
    assert interpreter.label_index == {"end": 3}
    run_to_end(interpreter, headless_input)
    assert presentation.texts() == ["a", "b"]

def test_jump_to_label_sets_exact_cursor(controller):
    interpreter = controller.interpreter
    interpreter.start(program("p", Label("top"), Dialogue("", "x"), Label("bottom")))
    assert interpreter.jump_to_label("bottom")
    assert interpreter.cursor == 2
    assert interpreter.jump_to_label("top")
    assert interpreter.cursor == 0

def test_undefined_label_falls_through(controller, presentation, headless_input):
    interpreter = controller.interpreter
    interpreter.start(program("p", Jump("nowhere"), Dialogue("", "next")))
    run_to_end(interpreter, headless_input)
    assert presentation.texts() == ["next"]

def test_duplicate_label_first_wins(controller, presentation, headless_input):
    interpreter = controller.interpreter
    p = program("p",
        Jump("x"),
        Label("x"),
        Dialogue("", "first"),
        EndOfProgram(),
        Label("x"),
        Dialogue("", "second"),
    )
    interpreter.start(p)
    assert interpreter.label_index["x"] == 1
    run_to_end(interpreter, headless_input)
    assert presentation.texts() == ["first"]

def test_runaway_loop_yields_each_tick(controller, monitor):
    config.Settings.interpreter.MAX_INSTRUCTIONS_PER_TICK = 5
    interpreter = controller.interpreter
    interpreter.start(program("p", Label("loop"), Jump("loop")))

    interpreter.update(0.1)
    assert interpreter.is_running
    assert controller.counters[Counters.INSTRUCTIONS_EXECUTED] == 5
    interpreter.update(0.1)
    assert controller.counters[Counters.INSTRUCTIONS_EXECUTED] == 10

    interpreter.end_program()
    assert not interpreter.is_running
    assert len(monitor.finished) == 1

def branching_choice_program():
    return program("p",
        Choice((ChoiceOption("go left", "L"), ChoiceOption("go right", "R"))),
        Label("L"),
        Dialogue("", "went left"),
        EndOfProgram(),
        Label("R"),
        Dialogue("", "went right"),
    )

def test_choice_jumps_to_selected_label(controller, presentation, headless_input):
    interpreter = controller.interpreter
    interpreter.start(branching_choice_program())

    interpreter.update(0.1)
    assert interpreter.is_awaiting_choice
    assert presentation.choices == ["go left", "go right"]
    # choices don't listen for continue
    assert not headless_input.continue_enabled
    assert not headless_input.trigger_continue()

    interpreter.update(0.1)
    assert interpreter.is_awaiting_choice

    assert presentation.select(1)
    assert not interpreter.is_awaiting_choice
    run_to_end(interpreter, headless_input)
    assert presentation.texts() == ["went right"]

def test_choice_out_of_range(controller, presentation, headless_input):
    interpreter = controller.interpreter
    interpreter.start(branching_choice_program())
    interpreter.update(0.1)

    assert not interpreter.choice_selected(2)
    assert not interpreter.choice_selected(-1)
    assert interpreter.is_awaiting_choice

    assert interpreter.choice_selected(0)
    run_to_end(interpreter, headless_input)
    assert presentation.texts() == ["went left"]

def test_choice_selected_without_choice(controller):
    assert not controller.interpreter.choice_selected(0)

def test_choice_without_options_is_skipped(controller, presentation, headless_input):
    interpreter = controller.interpreter
    interpreter.start(program("p", Choice(()), Dialogue("", "after")))
    run_to_end(interpreter, headless_input)
    assert presentation.texts() == ["after"]

def test_null_and_unknown_instructions_skipped(controller, presentation, headless_input):
    interpreter = controller.interpreter
    interpreter.start(program("p", None, UnknownInstruction("teleport", {"kind": "teleport"}), Dialogue("", "still here")))
    run_to_end(interpreter, headless_input)
    assert presentation.texts() == ["still here"]
    assert controller.counters[Counters.INSTRUCTIONS_SKIPPED] == 2

def cinematic(*instructions):
    return program("cine", *instructions, archetype=Archetype.CINEMATIC_TEXT)

def test_cinematic_text_advances_on_its_own(controller, presentation, headless_input, monitor):
    interpreter = controller.interpreter
    interpreter.start(cinematic(Dialogue("", "long ago", cinematic_anim_duration=0.5, cinematic_display_duration=0.5)))

    for _ in range(4):
        interpreter.update(0.25)
    assert presentation.cinematic_lines == ["long ago"]
    assert presentation.cinematic_text == "long ago"
    assert interpreter.is_running

    interpreter.update(0.25)
    assert not interpreter.is_running
    assert presentation.cinematic_text is None
    assert presentation.lines == []
    assert len(monitor.finished) == 1

def test_cinematic_skip(controller, presentation, headless_input):
    interpreter = controller.interpreter
    interpreter.start(cinematic(
        Dialogue("", "one", cinematic_anim_duration=100.0, cinematic_display_duration=100.0),
        Dialogue("", "two", cinematic_anim_duration=100.0, cinematic_display_duration=100.0),
    ))
    assert headless_input.skip_enabled

    interpreter.update(0.1)
    assert presentation.cinematic_lines == ["one"]

    assert headless_input.trigger_skip()
    assert interpreter.is_skip_requested
    interpreter.update(0.1)
    # skip persists for the rest of the program
    assert presentation.cinematic_lines == ["one", "two"]
    assert not interpreter.is_running
    assert not interpreter.is_skip_requested
    assert not headless_input.skip_enabled

def test_skip_ignored_outside_cinematic(controller, headless_input):
    interpreter = controller.interpreter
    interpreter.start(program("p", Dialogue("", "hello")))
    assert not headless_input.skip_enabled
    assert not headless_input.trigger_skip()

    interpreter.request_skip()
    assert not interpreter.is_skip_requested

def test_cinematic_skips_unsupported_instructions(controller, presentation, headless_input):
    interpreter = controller.interpreter
    interpreter.start(cinematic(
        Choice((ChoiceOption("a", "A"),)),
        Label("A"),
        Jump("A"),
        Dialogue("", "text", cinematic_anim_duration=0.0, cinematic_display_duration=0.0),
    ))
    run_to_end(interpreter, headless_input)
    assert presentation.cinematic_lines == ["text"]
    assert presentation.choices == ()
    assert controller.counters[Counters.INSTRUCTIONS_SKIPPED] == 3

def test_generic_uses_dialogue_semantics(controller, presentation, headless_input):
    interpreter = controller.interpreter
    interpreter.start(program("p", Dialogue("", "hi"), archetype=Archetype.GENERIC))
    interpreter.update(0.1)
    assert interpreter.is_waiting_for_input
    assert presentation.texts() == ["hi"]

def test_archetype_override(controller, presentation):
    interpreter = controller.interpreter
    run = interpreter.start(program("p", Dialogue("", "hi")), archetype=Archetype.CINEMATIC_TEXT)
    assert run is not None
    assert run.archetype == Archetype.CINEMATIC_TEXT
    interpreter.update(0.1)
    assert presentation.cinematic_lines == ["hi"]
    assert not interpreter.is_waiting_for_input

def test_end_with_rewards(controller, headless_input, monitor):
    interpreter = controller.interpreter
    reward = ChangeStatReward("courage", 2)
    interpreter.start(program("p", EndOfProgram(rewards=(reward,)), Dialogue("", "unreached")))
    interpreter.update(0.1)
    assert not interpreter.is_running
    assert monitor.finished[0][1] == [reward]

def test_branching_end_publishes_jump(controller, monitor):
    interpreter = controller.interpreter
    received = []
    controller.bus.subscribe(events.JumpToNode, received.append)

    run = interpreter.start(program("p", EndOfProgram(is_branching=True, target_node_id="n2")), storyboard="board")
    interpreter.update(0.1)

    assert not interpreter.is_running
    assert monitor.finished == []
    assert monitor.branched == [(run, "n2")]
    # deferred like everything else on the bus
    assert received == []
    controller.invoker.drain()
    assert received == [events.JumpToNode("board", "n2")]

def test_branching_without_target_finishes(controller, monitor):
    interpreter = controller.interpreter
    interpreter.start(program("p", EndOfProgram(is_branching=True)))
    interpreter.update(0.1)
    assert len(monitor.finished) == 1
    assert monitor.branched == []

def test_end_program_cleans_up(controller, presentation, headless_input):
    interpreter = controller.interpreter
    actors = controller.collaborators.actors
    interpreter.start(program("p",
        ActorAction("mara", ActorActionType.SHOW, ActorPosition.LEFT, "neutral"),
        Dialogue("oskar", "hello"),
    ))
    interpreter.update(0.1)
    assert set(actors.on_stage) == {"mara", "oskar"}

    interpreter.end_program()
    assert actors.on_stage == {}
    assert presentation.last_dialogue is None
    assert presentation.hide_all_count == 1
    assert not headless_input.continue_enabled
    assert not interpreter.is_waiting_for_input

    # the old run doesn't come back to life
    interpreter.update(0.1)
    assert presentation.texts() == ["hello"]

def test_end_program_with_nothing_running(controller, monitor):
    controller.interpreter.end_program()
    assert monitor.finished == []

def test_timed_actions_block(controller, presentation, headless_input):
    interpreter = controller.interpreter
    camera = controller.collaborators.camera
    interpreter.start(program("p",
        CameraAction(CameraActionType.SWITCH_TO, "balcony", duration=0.3),
        Dialogue("", "after the camera"),
    ))
    interpreter.update(0.1)
    assert camera.camera == "balcony"
    interpreter.update(0.1)
    interpreter.update(0.1)
    assert presentation.lines == []
    interpreter.update(0.1)
    assert presentation.texts() == ["after the camera"]

def test_fire_and_forget_actions(controller, presentation, headless_input):
    interpreter = controller.interpreter
    c = controller.collaborators
    interpreter.start(program("p",
        Audio(AudioActionType.PLAY, SoundType.BGM, "theme", volume=0.5, loop=True),
        Audio(AudioActionType.PLAY, SoundType.SFX, "door"),
        Audio(AudioActionType.STOP, SoundType.SFX, "door"),
        BackgroundAction(BackgroundActionType.SHOW, asset="harbor"),
        CameraAction(CameraActionType.SHAKE, shake_intensity=2.0, duration=0.5),
        Dialogue("", "done"),
    ))
    interpreter.update(0.1)
    assert c.audio.bgm == "theme"
    assert list(c.audio.sfx_played) == ["door"]
    assert presentation.background == "harbor"
    assert presentation.texts() == ["done"]

def test_flash_splits_duration(controller, headless_input):
    flashes = []

    class FlashEffects(headless.LoggingScreenEffects):
        def flash(self, color, fade_in:float, hold:float, fade_out:float) -> Optional[Wait]:
            flashes.append((fade_in, hold, fade_out))
            return None

    c = Collaborators(effects=FlashEffects(), input=headless_input)
    interpreter = Interpreter(c, controller.bus)
    interpreter.start(program("p", ScreenEffect(ScreenEffectType.FLASH, duration=1.5, flash_hold_duration=0.5)))
    run_to_end(interpreter, headless_input)

    assert len(flashes) == 1
    fade_in, hold, fade_out = flashes[0]
    assert fade_in == pytest.approx(0.2)
    assert hold == pytest.approx(0.5)
    assert fade_out == pytest.approx(0.8)

def test_handler_failure_is_skipped(controller, headless_input):
    class BrokenPresentation(RecordingPresentation):
        def show_image_background(self, asset:str) -> Optional[Wait]:
            raise Exception("no such asset")

    presentation = BrokenPresentation()
    c = Collaborators(presentation=presentation, input=headless_input)
    monitor = MonitoringObserver()
    interpreter = Interpreter(c, controller.bus)
    interpreter.observe(monitor)

    interpreter.start(program("p", BackgroundAction(BackgroundActionType.SHOW, asset="missing"), Dialogue("", "carry on")))
    run_to_end(interpreter, headless_input)

    assert presentation.texts() == ["carry on"]
    assert interpreter.counters[Counters.HANDLER_ERRORS] == 1
    assert len(monitor.finished) == 1
