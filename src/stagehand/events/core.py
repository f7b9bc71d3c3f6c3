""" Deferred publish/subscribe bus.

Publishing never calls handlers directly. Each publication enqueues a delivery
closure on a DelayedInvoker which the owner drains once per scheduling tick,
after that tick's direct work is done. Handlers added or removed in the same
tick as a publish therefore can't race with its delivery and deliveries happen
in publish order.
"""

import logging
import collections
import dataclasses
from typing import Any, Optional, Callable, TypeVar

from stagehand import util

@dataclasses.dataclass(frozen=True)
class BusEvent:
    """ base class for everything published on the bus """
    pass

Handler = Callable[[Any], None]
E = TypeVar("E", bound=BusEvent)

class DelayedInvoker:
    """ FIFO of zero-arg closures drained at a tick boundary. """

    def __init__(self) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self._queue:collections.deque[Callable[[], None]] = collections.deque()
        self.errors = 0

    def __len__(self) -> int:
        return len(self._queue)

    def enqueue(self, fn:Callable[[], None]) -> None:
        self._queue.append(fn)

    def drain(self) -> int:
        """ runs the closures queued at the time drain starts

        anything enqueued while draining waits for the next drain. returns the
        number of closures run. """

        count = len(self._queue)
        for _ in range(count):
            fn = self._queue.popleft()
            try:
                fn()
            except Exception:
                self.errors += 1
                self.logger.exception(f'error running deferred {fn}')
        return count

class DeferredEventBus:
    def __init__(self, invoker:Optional[DelayedInvoker]=None) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.invoker = invoker
        self._subscribers:dict[type, list[Handler]] = collections.defaultdict(list)
        self.deliveries = 0
        self.handler_errors = 0

    def attach(self, invoker:DelayedInvoker) -> None:
        self.invoker = invoker

    def subscribe(self, event_type:type[E], handler:Callable[[E], None]) -> None:
        self._subscribers[event_type].append(handler)

    def unsubscribe(self, event_type:type[E], handler:Callable[[E], None]) -> bool:
        """ removes the most recent registration of handler for event_type

        returns False if there was no such registration """

        handlers = self._subscribers.get(event_type)
        if not handlers:
            return False
        for i in range(len(handlers)-1, -1, -1):
            if handlers[i] == handler:
                del handlers[i]
                return True
        return False

    def subscriber_count(self, event_type:type) -> int:
        return len(self._subscribers.get(event_type, ()))

    def publish(self, event:BusEvent) -> None:
        if self.invoker is None:
            self.logger.error(f'published {event} before the bus had an invoker, dropping it')
            return

        self.logger.debug(f'publish {event}')
        self.invoker.enqueue(lambda: self._deliver(event))

    def _deliver(self, event:BusEvent) -> None:
        # subscribers are looked up at delivery time and we iterate a copy so
        # handlers can (un)subscribe freely
        handlers = list(self._subscribers.get(type(event), ()))
        self.logger.debug(f'deliver {event} to {len(handlers)} handlers')
        for handler in handlers:
            self.deliveries += 1
            try:
                handler(event)
            except Exception:
                self.handler_errors += 1
                self.logger.exception(f'handler {handler} failed on {event}')
