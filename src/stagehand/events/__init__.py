from .core import BusEvent, DelayedInvoker, DeferredEventBus
from .events import AreaEntered, InteractionTriggered, NodeStarted, NodeCompleted, JumpToNode
