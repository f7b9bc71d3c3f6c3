""" Tests for runners: node lifecycle, conditions, rewards and branching. """

from stagehand import events
from stagehand.core import (
    Status, Counters, Dialogue, EndOfProgram, TriggerOtherRunner, ChangeStatReward,
    AreaEnteredCondition, InteractionTriggeredCondition, PreviousNodeCompletedCondition,
)
from . import add_runner, node, program, dialogue_program, tick, tick_until

def test_area_entered_runs_node(controller, headless_input, presentation, recorder, monitor):
    greet = node("greet", program("p_greet", Dialogue("", "welcome"), EndOfProgram()), conditions=[AreaEnteredCondition("gate")])
    runner = add_runner(controller, "r1", [greet])

    controller.bus.publish(events.AreaEntered("gate"))
    tick(controller)
    assert runner.status("greet") == Status.IN_PROGRESS
    assert runner.is_executing
    assert runner.active_node is greet

    tick(controller)
    assert presentation.texts() == ["welcome"]
    assert runner.status("greet") == Status.IN_PROGRESS

    assert headless_input.trigger_continue()
    tick(controller)
    assert runner.status("greet") == Status.COMPLETED
    assert not runner.is_executing
    assert len(monitor.finished) == 1
    assert monitor.finished[0][1] == []

    tick(controller)
    assert recorder.started() == ["greet"]
    assert recorder.completed() == ["greet"]
    assert recorder.of_type(events.NodeCompleted)[0].runner_id == "r1"

def test_completed_node_does_not_run_again(controller, headless_input, recorder):
    greet = node("greet", dialogue_program("p_greet", "hi"), conditions=[AreaEnteredCondition("gate")])
    runner = add_runner(controller, "r1", [greet])

    controller.bus.publish(events.AreaEntered("gate"))
    tick_until(controller, lambda: runner.is_node_completed("greet"), on_tick=headless_input.trigger_continue)

    controller.bus.publish(events.AreaEntered("gate"))
    tick(controller, 3)
    assert runner.status("greet") == Status.COMPLETED
    assert recorder.started() == ["greet"]

def test_repeatable_node_runs_again(controller, headless_input, recorder):
    chatter = node("chatter", dialogue_program("p_chatter", "again?"), conditions=[InteractionTriggeredCondition("npc")], repeatable=True)
    runner = add_runner(controller, "r1", [chatter])

    for _ in range(2):
        controller.bus.publish(events.InteractionTriggered("npc"))
        tick(controller)
        assert runner.status("chatter") == Status.IN_PROGRESS
        tick_until(controller, lambda: not runner.is_executing, on_tick=headless_input.trigger_continue)
        assert runner.status("chatter") == Status.NOT_STARTED
        # re-armed, waiting for the next interaction
        assert not any(c.satisfied for c in chatter.conditions)

    tick(controller)
    assert recorder.started() == ["chatter", "chatter"]
    assert recorder.completed() == ["chatter", "chatter"]

def test_all_conditions_required(controller):
    both = node("both", dialogue_program("p_both", "finally"), conditions=[
        AreaEnteredCondition("gate"),
        InteractionTriggeredCondition("lever"),
    ])
    runner = add_runner(controller, "r1", [both])

    controller.bus.publish(events.AreaEntered("gate"))
    tick(controller)
    assert runner.status("both") == Status.NOT_STARTED

    controller.bus.publish(events.InteractionTriggered("lever"))
    tick(controller)
    assert runner.status("both") == Status.IN_PROGRESS

def test_rewards_granted_on_finish(controller, headless_input, stats):
    prize = node("prize", dialogue_program("p_prize", "take this", rewards=[ChangeStatReward("gold", 5), ChangeStatReward("karma", -1)]), start=True)
    runner = add_runner(controller, "r1", [prize])

    tick_until(controller, lambda: runner.is_node_completed("prize"), on_tick=headless_input.trigger_continue)
    assert stats["gold"] == 5
    assert stats["karma"] == -1
    assert controller.counters[Counters.REWARDS_GRANTED] == 2

def test_node_without_program_completes(controller, recorder):
    empty = node("empty", None, conditions=[AreaEnteredCondition("gate")])
    runner = add_runner(controller, "r1", [empty])

    controller.bus.publish(events.AreaEntered("gate"))
    tick(controller)
    assert runner.status("empty") == Status.COMPLETED
    assert not controller.is_event_running()

def test_previous_node_completed_chain(controller, headless_input, presentation, recorder):
    first = node("first", dialogue_program("p_first", "one"), start=True)
    second = node("second", dialogue_program("p_second", "two"), conditions=[PreviousNodeCompletedCondition("first")])
    runner = add_runner(controller, "r1", [first, second])

    tick_until(controller, lambda: runner.is_node_completed("second"), on_tick=headless_input.trigger_continue)
    assert presentation.texts() == ["one", "two"]
    assert recorder.completed() == ["first", "second"]

def test_branch_completes_node_and_starts_target(controller, headless_input, presentation, recorder, monitor):
    fork = node("fork", program("p_fork", Dialogue("", "which way?"), EndOfProgram(is_branching=True, target_node_id="east")), start=True)
    west = node("west", dialogue_program("p_west", "west"))
    east = node("east", dialogue_program("p_east", "east", rewards=[ChangeStatReward("steps", 1)]))
    runner = add_runner(controller, "r1", [fork, west, east])

    tick_until(controller, lambda: runner.is_node_completed("east"), on_tick=headless_input.trigger_continue)
    tick(controller)

    assert runner.status("fork") == Status.COMPLETED
    assert runner.status("west") == Status.NOT_STARTED
    assert presentation.texts() == ["which way?", "east"]
    assert recorder.started() == ["fork", "east"]
    assert recorder.completed() == ["fork", "east"]

    # the branched program never reports finished, only the target's does
    assert [run.program.program_id for run, _ in monitor.finished] == ["p_east"]
    assert [(run.program.program_id, target) for run, target in monitor.branched] == [("p_fork", "east")]

def test_jump_for_other_storyboard_ignored(controller):
    target = node("target", dialogue_program("p_target", "hello"))
    runner = add_runner(controller, "r1", [target], storyboard_name="mine")

    controller.bus.publish(events.JumpToNode("theirs", "target"))
    tick(controller)
    assert runner.status("target") == Status.NOT_STARTED

    controller.bus.publish(events.JumpToNode("mine", "target"))
    tick(controller)
    assert runner.status("target") == Status.IN_PROGRESS

def test_jump_to_unknown_node(controller, headless_input):
    fork = node("fork", program("p_fork", EndOfProgram(is_branching=True, target_node_id="nowhere")), start=True)
    runner = add_runner(controller, "r1", [fork])

    tick(controller, 4)
    assert runner.status("fork") == Status.COMPLETED
    assert not controller.is_event_running()

def test_trigger_other_runner_queues_behind(controller, headless_input, presentation):
    caller = node("caller", program("p_caller", TriggerOtherRunner("r2"), Dialogue("", "calling")), start=True)
    r1 = add_runner(controller, "r1", [caller], priority=1)
    callee = node("callee", dialogue_program("p_callee", "answering"), start=True)
    r2 = add_runner(controller, "r2", [callee], priority=5)

    tick_until(controller, lambda: r2.is_node_completed("callee"), on_tick=headless_input.trigger_continue)
    assert r1.is_node_completed("caller")
    assert presentation.texts() == ["calling", "answering"]

def test_start_node_routes_through_queue_when_busy(controller, headless_input):
    busy = node("busy", dialogue_program("p_busy", "wait"), start=True)
    r1 = add_runner(controller, "r1", [busy])
    later = node("later", dialogue_program("p_later", "my turn"))
    r2 = add_runner(controller, "r2", [later])

    tick(controller)
    assert controller.is_event_running()
    assert not r2.start_node(later)
    assert r2.status("later") == Status.NOT_STARTED
    assert controller.is_pending(r2, later)

    tick_until(controller, lambda: r2.is_node_completed("later"), on_tick=headless_input.trigger_continue)
    assert r1.is_node_completed("busy")

def test_disable_refused_while_executing(controller, headless_input):
    busy = node("busy", dialogue_program("p_busy", "wait"), start=True)
    runner = add_runner(controller, "r1", [busy])

    tick(controller)
    assert runner.is_executing
    assert not runner.disable()
    assert runner.enabled
    assert controller.get_runner_by_id("r1") is runner

    tick_until(controller, lambda: not runner.is_executing, on_tick=headless_input.trigger_continue)
    assert runner.disable()
    assert controller.get_runner_by_id("r1") is None
    assert controller.bus.subscriber_count(events.JumpToNode) == 0

def test_disabled_runner_ignores_conditions(controller):
    gated = node("gated", dialogue_program("p", "hi"), conditions=[AreaEnteredCondition("gate")])
    runner = add_runner(controller, "r1", [gated])
    assert runner.disable()

    controller.bus.publish(events.AreaEntered("gate"))
    tick(controller)
    assert runner.status("gated") == Status.NOT_STARTED
    assert not gated.conditions[0].is_subscribed

def test_duplicate_node_ids_keep_first(controller):
    a = node("dup", dialogue_program("p_a", "a"))
    b = node("dup", dialogue_program("p_b", "b"))
    runner = add_runner(controller, "r1", [a, b])
    assert runner.node_lookup["dup"] is a
    assert len(runner.node_status) == 1
