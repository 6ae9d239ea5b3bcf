"""
Observer events.

Application code subscribes to the outcome of the collect, sample and send
operations. Callbacks may be plain functions or coroutine functions; a
failing callback is logged and does not affect the others.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from .sdk.utils import invoke_callback

STATS_COLLECTED = "stats_collected"
SAMPLE_CREATED = "sample_created"
SAMPLE_SENT = "sample_sent"

EVENT_NAMES = (STATS_COLLECTED, SAMPLE_CREATED, SAMPLE_SENT)


class EventsRelayer:
    """Keeps the subscriber lists of the observer events."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._callbacks: Dict[str, List[Callable]] = {name: [] for name in EVENT_NAMES}

    def on_stats_collected(self, callback: Callable) -> Callable[[], None]:
        """Subscribe to the end of every collect cycle. Returns an unsubscribe function."""
        return self._subscribe(STATS_COLLECTED, callback)

    def on_sample_created(self, callback: Callable) -> Callable[[], None]:
        return self._subscribe(SAMPLE_CREATED, callback)

    def on_sample_sent(self, callback: Callable) -> Callable[[], None]:
        return self._subscribe(SAMPLE_SENT, callback)

    def _subscribe(self, event: str, callback: Callable) -> Callable[[], None]:
        self._callbacks[event].append(callback)

        def unsubscribe():
            if callback in self._callbacks[event]:
                self._callbacks[event].remove(callback)

        return unsubscribe

    async def emit(self, event: str, *args: Any):
        for callback in list(self._callbacks[event]):
            await invoke_callback(callback, *args)

    def clear(self):
        for callbacks in self._callbacks.values():
            callbacks.clear()
