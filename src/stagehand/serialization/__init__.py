from .state import NodeState, RunnerState
