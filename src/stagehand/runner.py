""" Runners own one storyboard's runtime state.

Each node moves NOT_STARTED -> IN_PROGRESS -> COMPLETED, going back to
NOT_STARTED only if it's repeatable. Runners watch their nodes' conditions and
ask the controller to start nodes whose conditions are all satisfied.
"""

import functools
import logging
from typing import Optional, TYPE_CHECKING
from collections.abc import Sequence

from stagehand import config, util
from stagehand.core import Status, Counters, NarrativeNode, Storyboard, Reward
from stagehand.events import DeferredEventBus, NodeStarted, NodeCompleted, JumpToNode
from stagehand.interpreter import Interpreter, InterpreterObserver, ProgramRun
from stagehand.serialization.state import NodeState, RunnerState

if TYPE_CHECKING:
    from stagehand.controller import Controller

class Runner(InterpreterObserver):
    def __init__(
            self,
            runner_id:str,
            storyboard:Storyboard,
            controller:"Controller",
            priority:Optional[int]=None,
            name:Optional[str]=None,
    ) -> None:
        super().__init__()
        self.logger = logging.getLogger(util.fullname(self))
        self.runner_id = runner_id
        self.storyboard = storyboard
        self.controller = controller
        # lower is more important
        self.priority:int = priority if priority is not None else config.Settings.runner.DEFAULT_PRIORITY
        self.name = name or runner_id

        self.node_status:dict[str, Status] = {}
        self.node_lookup:dict[str, NarrativeNode] = {}
        self.enabled = False

        self._active_run:Optional[ProgramRun] = None
        self._active_node:Optional[NarrativeNode] = None
        # node whose program branched, completed when the jump arrives
        self._branched_node:Optional[NarrativeNode] = None

    def __str__(self) -> str:
        return f'{self.runner_id} ({self.storyboard.name}, priority {self.priority})'

    @property
    def observer_id(self) -> str:
        return f'Runner:{self.runner_id}'

    @property
    def bus(self) -> DeferredEventBus:
        return self.controller.bus

    @property
    def interpreter(self) -> Interpreter:
        return self.controller.interpreter

    @property
    def is_executing(self) -> bool:
        """ is one of our nodes' programs running right now """
        return self._active_run is not None and self.interpreter.current_run is self._active_run

    @property
    def active_node(self) -> Optional[NarrativeNode]:
        return self._active_node if self.is_executing else None

    def status(self, node_id:str) -> Optional[Status]:
        return self.node_status.get(node_id)

    def is_node_completed(self, node_id:str) -> bool:
        return self.node_status.get(node_id) == Status.COMPLETED

    def enable(self) -> bool:
        if self.enabled:
            return True
        if not self.controller.register_runner(self):
            return False
        self.bus.subscribe(JumpToNode, self.on_jump_requested)
        self.interpreter.observe(self)
        self.enabled = True
        self.initialize_storyboard()
        return True

    def disable(self) -> bool:
        if not self.enabled:
            return True
        if self.is_executing:
            self.logger.error(f'cannot disable {self} while it is running {self._active_run}')
            return False

        for node in self.node_lookup.values():
            for c in node.conditions:
                c.unsubscribe()
        self.bus.unsubscribe(JumpToNode, self.on_jump_requested)
        self.interpreter.unobserve(self)
        self.controller.unregister_runner(self)
        self.enabled = False
        return True

    def initialize_storyboard(self) -> None:
        """ resets every node to NOT_STARTED and (re)subscribes conditions """

        for node in self.node_lookup.values():
            for c in node.conditions:
                c.unsubscribe()
        self.node_status.clear()
        self.node_lookup.clear()
        self._active_run = None
        self._active_node = None
        self._branched_node = None

        for node in self.storyboard.nodes:
            if node.node_id in self.node_lookup:
                self.logger.error(f'duplicate node id {node.node_id} in {self.storyboard.name}, ignoring {node}')
                continue
            self.node_lookup[node.node_id] = node
            self.node_status[node.node_id] = Status.NOT_STARTED
            for c in node.conditions:
                c.reset()
                c.subscribe(self.bus, functools.partial(self._condition_satisfied, node))

        self.logger.debug(f'initialized {self} with {len(self.node_lookup)} nodes')

    def _condition_satisfied(self, node:NarrativeNode) -> None:
        if self.node_status.get(node.node_id) != Status.NOT_STARTED:
            return
        if node.all_conditions_satisfied():
            self.try_start_node(node)

    def try_start_node(self, node:NarrativeNode) -> bool:
        """ starts node now if nothing is running, otherwise queues it """
        if self.controller.is_event_running():
            self.controller.enqueue_node(self, node)
            return False
        return self.start_node(node)

    def start_node(self, node:NarrativeNode) -> bool:
        status = self.node_status.get(node.node_id)
        if status is None:
            self.logger.error(f'{self} has no node {node.node_id}')
            return False
        if status != Status.NOT_STARTED:
            self.logger.debug(f'{node} is already {status.name.lower()}')
            return False
        if self.controller.is_event_running():
            self.logger.warning(f'asked to start {node} while an event is running, queueing it')
            self.controller.enqueue_node(self, node)
            return False

        self.node_status[node.node_id] = Status.IN_PROGRESS
        node.reset_conditions()
        self.controller.counters[Counters.NODES_STARTED] += 1
        self.logger.info(f'{self.runner_id} starting {node}')
        self.bus.publish(NodeStarted(node.node_id, self.runner_id))

        if node.program is None or len(node.program) == 0:
            self.logger.warning(f'{node} has no program, completing it')
            self._finish_node(node, ())
            return True

        run = self.interpreter.start(node.program, storyboard=self.storyboard.name)
        if run is None:
            self.logger.error(f'interpreter refused {node.program.program_id} for {node}')
            self.node_status[node.node_id] = Status.NOT_STARTED
            return False

        self._active_run = run
        self._active_node = node
        return True

    def program_finished(self, run:ProgramRun, rewards:Sequence[Reward]) -> None:
        if run is not self._active_run:
            return
        node = self._active_node
        assert node
        self._active_run = None
        self._active_node = None
        self._finish_node(node, rewards)

    def program_branched(self, run:ProgramRun, target_node_id:str) -> None:
        if run is not self._active_run:
            return
        # the node completes when the jump is delivered
        self._branched_node = self._active_node
        self._active_run = None
        self._active_node = None

    def _complete_node(self, node:NarrativeNode) -> None:
        self.node_status[node.node_id] = Status.COMPLETED
        self.controller.counters[Counters.NODES_COMPLETED] += 1
        self.logger.info(f'{self.runner_id} completed {node}')
        self.bus.publish(NodeCompleted(node.node_id, self.runner_id))

        if node.is_repeatable:
            self.node_status[node.node_id] = Status.NOT_STARTED
            node.reset_conditions()

    def _finish_node(self, node:NarrativeNode, rewards:Sequence[Reward]) -> None:
        self._complete_node(node)

        for reward in rewards:
            try:
                reward.grant(self)
                self.controller.counters[Counters.REWARDS_GRANTED] += 1
            except Exception:
                self.logger.exception(f'failed to grant {reward} for {node}')

        self.controller.try_start_next_pending_node()

    def on_jump_requested(self, event:JumpToNode) -> None:
        if event.storyboard != self.storyboard.name:
            return

        node = self._branched_node
        self._branched_node = None
        if node is None:
            live = self.active_node
            node = next((
                self.node_lookup[node_id] for node_id, status in self.node_status.items()
                if status == Status.IN_PROGRESS and self.node_lookup[node_id] is not live
            ), None)
        if node is not None and self.node_status.get(node.node_id) == Status.IN_PROGRESS:
            self._complete_node(node)

        target = self.node_lookup.get(event.target_node_id)
        if target is None:
            self.logger.error(f'jump to unknown node {event.target_node_id} in {self.storyboard.name}')
        else:
            self.logger.debug(f'jumping to {target}')
            self.try_start_node(target)

        self.controller.try_start_next_pending_node()

    def capture_state(self) -> RunnerState:
        return RunnerState(
            self.runner_id,
            self.storyboard.name,
            [NodeState(node_id, status) for node_id, status in self.node_status.items()],
        )

    def restore_state(self, state:RunnerState) -> None:
        """ applies saved node statuses without re-running anything finished

        a node saved IN_PROGRESS that isn't running here gets queued to run
        again from the start of its program. the node running right now, if
        any, is left alone. """

        if state.storyboard_name != self.storyboard.name:
            self.logger.warning(f'restoring state for storyboard {state.storyboard_name} into {self}')

        live = self.active_node
        for ns in state.node_states:
            if ns.node_id not in self.node_status:
                self.logger.warning(f'saved state has unknown node {ns.node_id} for {self}')
                continue
            if live is not None and ns.node_id == live.node_id:
                continue
            self.node_status[ns.node_id] = ns.status

        for node_id, node in self.node_lookup.items():
            if node is live or node is self._branched_node:
                continue
            status = self.node_status[node_id]
            if status == Status.IN_PROGRESS:
                self.logger.info(f'{node} was in progress, it will run again')
                self.node_status[node_id] = Status.NOT_STARTED
                self._enqueue_once(node)
        self.queue_ready_nodes()

    def queue_ready_nodes(self) -> None:
        """ queues NOT_STARTED nodes whose conditions restored state already meets

        those conditions won't see their event again. nodes with no
        conditions only run as a start node or a branch target. """

        live = self.active_node
        for node_id, node in self.node_lookup.items():
            if node is live or self.node_status[node_id] != Status.NOT_STARTED:
                continue
            for c in node.conditions:
                c.evaluate(self)
            if node.conditions and node.all_conditions_satisfied():
                self.logger.info(f'{node} is ready after restore, queueing it')
                self._enqueue_once(node)

    def _enqueue_once(self, node:NarrativeNode) -> None:
        if not self.controller.is_pending(self, node):
            self.controller.enqueue_node(self, node)
