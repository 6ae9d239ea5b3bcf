"""
Fixed-delay scheduler for the collect, sample and send cycles.

Every task waits its full period after the previous run completed before
it fires again, so a slow run never overlaps with the next one.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Set, Union

from .sdk.exceptions import ConfigurationError
from .sdk.utils import maybe_await

Action = Callable[[], Union[Any, Awaitable[Any]]]


@dataclass
class TimerTask:
    name: str
    period_ms: float
    action: Action
    handle: Optional[asyncio.TimerHandle] = None
    runs: int = 0
    failures: int = 0


class Timer:
    """Runs independent periodic tasks on the running event loop."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._tasks: Dict[str, TimerTask] = {}
        self._in_flight: Set[asyncio.Task] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def tasks(self) -> Dict[str, TimerTask]:
        return dict(self._tasks)

    def add(self, name: str, period_ms: float, action: Action,
            initial_delay_ms: Optional[float] = None) -> TimerTask:
        """Schedule ``action`` every ``period_ms`` milliseconds."""
        if self._closed:
            raise ConfigurationError("Cannot add a task to a cleared timer", {"task": name})
        if not period_ms or period_ms <= 0:
            raise ConfigurationError(f"Timer task '{name}' needs a positive period", {"period_ms": period_ms})
        if name in self._tasks:
            raise ConfigurationError(f"Timer task '{name}' already exists")
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            raise ConfigurationError("Timer tasks require a running event loop", {"task": name})

        task = TimerTask(name=name, period_ms=period_ms, action=action)
        self._tasks[name] = task
        self._schedule(task, period_ms if initial_delay_ms is None else initial_delay_ms)
        self.logger.debug(f"Timer task '{name}' scheduled every {period_ms}ms")
        return task

    def remove(self, name: str) -> bool:
        task = self._tasks.pop(name, None)
        if task is None:
            return False
        if task.handle is not None:
            task.handle.cancel()
        return True

    def _schedule(self, task: TimerTask, delay_ms: float):
        loop = asyncio.get_running_loop()
        task.handle = loop.call_later(delay_ms / 1000, self._fire, task)

    def _fire(self, task: TimerTask):
        task.handle = None
        if self._tasks.get(task.name) is not task:
            return
        run = asyncio.ensure_future(self._run(task))
        self._in_flight.add(run)
        run.add_done_callback(self._in_flight.discard)

    async def _run(self, task: TimerTask):
        try:
            await maybe_await(task.action())
        except Exception as e:
            task.failures += 1
            self.logger.error(f"Timer task '{task.name}' failed: {e}", exc_info=True)
        finally:
            task.runs += 1
            if not self._closed and self._tasks.get(task.name) is task:
                self._schedule(task, task.period_ms)

    async def wait_in_flight(self):
        """Wait for the runs that already started to finish."""
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    def clear(self):
        """Cancel every pending firing. Runs already started are not interrupted."""
        self._closed = True
        for task in self._tasks.values():
            if task.handle is not None:
                task.handle.cancel()
                task.handle = None
        self._tasks.clear()
