""" Global arbitration across runners.

The controller holds the one "is something running" gate (the interpreter),
the registry of runners and a pending queue of start requests ordered by
(runner priority, arrival). The host drives everything by calling tick(dt).
"""

import itertools
import logging
from typing import Optional, NamedTuple
from collections.abc import Iterable, Sequence

from stagehand import config, util
from stagehand.core import Counters, NarrativeNode
from stagehand.events import DelayedInvoker, DeferredEventBus
from stagehand.interface import Collaborators
from stagehand.interpreter import Interpreter
from stagehand.runner import Runner
from stagehand.serialization.state import RunnerState

class PendingRequest(NamedTuple):
    runner:Runner
    node:NarrativeNode
    sequence:int

class Controller:
    def __init__(self, collaborators:Optional[Collaborators]=None, bus:Optional[DeferredEventBus]=None) -> None:
        self.logger = logging.getLogger(util.fullname(self))

        if bus is None:
            bus = DeferredEventBus()
        if bus.invoker is None:
            bus.attach(DelayedInvoker())
        assert bus.invoker is not None
        self.bus = bus
        self.invoker:DelayedInvoker = bus.invoker

        self.collaborators = collaborators if collaborators is not None else Collaborators()
        self.counters = [0.]*len(Counters)
        self.interpreter = Interpreter(self.collaborators, self.bus, controller=self, counters=self.counters)

        self.runners:list[Runner] = []
        self.pending:list[PendingRequest] = []
        self._sequence = itertools.count()
        self.initial_events_kicked_off = False
        self.ticks = 0

    def register_runner(self, runner:Runner) -> bool:
        if runner in self.runners:
            return True
        if not runner.runner_id:
            self.logger.error(f'refusing to register a runner with no id for {runner.storyboard.name}')
            return False
        if self.get_runner_by_id(runner.runner_id) is not None:
            self.logger.error(f'refusing to register duplicate runner id {runner.runner_id}')
            return False

        self.runners.append(runner)
        self.logger.info(f'registered runner {runner}')
        return True

    def unregister_runner(self, runner:Runner) -> bool:
        if runner not in self.runners:
            self.logger.warning(f'unregistering runner {runner.runner_id} which is not registered')
            return False
        if runner.is_executing:
            self.logger.error(f'cannot unregister {runner} while its program is running')
            return False

        self.runners.remove(runner)
        dropped = [r for r in self.pending if r.runner is runner]
        if dropped:
            self.logger.info(f'dropping {len(dropped)} pending requests for {runner.runner_id}')
            self.pending = [r for r in self.pending if r.runner is not runner]
        self.logger.info(f'unregistered runner {runner}')
        return True

    def get_runner_by_id(self, runner_id:str) -> Optional[Runner]:
        for runner in self.runners:
            if runner.runner_id == runner_id:
                return runner
        return None

    def get_runner_for_storyboard(self, storyboard_name:str) -> Optional[Runner]:
        for runner in self.runners:
            if runner.storyboard.name == storyboard_name:
                return runner
        return None

    def is_event_running(self) -> bool:
        return self.interpreter.is_running

    def enqueue_node(self, runner:Runner, node:NarrativeNode) -> None:
        request = PendingRequest(runner, node, next(self._sequence))
        self.pending.append(request)
        self.counters[Counters.NODES_ENQUEUED] += 1
        self.logger.debug(f'queued {node} for {runner.runner_id} (priority {runner.priority}, seq {request.sequence})')

    def is_pending(self, runner:Runner, node:NarrativeNode) -> bool:
        return any(r.runner is runner and r.node is node for r in self.pending)

    def try_start_next_pending_node(self) -> bool:
        """ releases pending requests, best first, until one starts

        requests that can't start any more (e.g. already completed) are
        dropped. returns True if a node started. """

        while not self.is_event_running() and self.pending:
            self.pending.sort(key=lambda r: (r.runner.priority, r.sequence))
            request = self.pending.pop(0)
            self.counters[Counters.NODES_RELEASED] += 1
            self.logger.debug(f'releasing {request.node} for {request.runner.runner_id}')
            if request.runner.start_node(request.node):
                return True
        return False

    def kickstart_initial_events(self) -> None:
        """ starts start nodes for the most important runners

        runners at the equal footing priority all get to start (ordered by
        name, queueing behind each other). otherwise only the first runner by
        name at the best priority starts. """

        if not self.runners:
            return

        best_priority = min(r.priority for r in self.runners)
        candidates = sorted((r for r in self.runners if r.priority == best_priority), key=lambda r: r.name)
        if best_priority != config.Settings.controller.EQUAL_FOOTING_PRIORITY:
            candidates = candidates[:1]

        self.logger.info(f'kicking off {util.human_list(r.name for r in candidates)} at priority {best_priority}')
        for runner in candidates:
            node = runner.storyboard.start_node
            if node is None:
                self.logger.debug(f'{runner} has no start node')
                continue
            runner.try_start_node(node)

    def tick(self, dt:float) -> None:
        """ one scheduling iteration: advance the running program, kickoff
        (first tick only), then deliver everything published so far

        a program started during a tick runs its first instruction on the next
        one, whether it was started by kickoff, a delivery or a release. """

        self.ticks += 1
        self.counters[Counters.TICKS] += 1

        try:
            self.interpreter.update(dt)
        except Exception:
            self.logger.exception("error updating interpreter")

        if not self.initial_events_kicked_off:
            self.initial_events_kicked_off = True
            try:
                self.kickstart_initial_events()
            except Exception:
                self.logger.exception("error kicking off initial events")

        delivered = self.invoker.drain()
        self.counters[Counters.BUS_DELIVERIES] = self.bus.deliveries
        self.counters[Counters.BUS_HANDLER_ERRORS] = self.bus.handler_errors + self.invoker.errors
        if delivered:
            self.logger.debug(f'tick {self.ticks} drained {delivered} deliveries')

    def capture_all_state(self) -> list[RunnerState]:
        return [r.capture_state() for r in self.runners]

    def restore_all_state(self, states:Iterable[RunnerState]) -> None:
        # restoring replaces the kickoff, start nodes already ran
        self.initial_events_kicked_off = True

        restored = 0
        for state in states:
            runner = self.get_runner_by_id(state.runner_id)
            if runner is None:
                self.logger.warning(f'no runner {state.runner_id} to restore state into')
                continue
            runner.restore_state(state)
            restored += 1
        self.logger.info(f'restored state for {restored} runners')

        # completion in a runner restored later can satisfy an earlier one
        for runner in self.runners:
            runner.queue_ready_nodes()
        self.try_start_next_pending_node()

    def status_report(self) -> Sequence[str]:
        lines = []
        for runner in self.runners:
            statuses = ", ".join(f'{node_id}={status.name.lower()}' for node_id, status in runner.node_status.items())
            lines.append(f'{runner.runner_id}: {statuses}')
        if self.pending:
            lines.append(f'pending: {util.human_list(f"{r.runner.runner_id}/{r.node.node_id}" for r in self.pending)}')
        return lines
