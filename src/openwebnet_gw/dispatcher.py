#!/usr/bin/env python3
"""OpenWebNet - deliver gateway events to its listeners.

Callbacks are queued, and invoked (in order) by a single consumer task, so that slow
listener code never blocks the processing of incoming frames.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any, Final

if TYPE_CHECKING:
    from .gateway import GatewayListener

#
# NOTE: All debug flags should be False for deployment to end-users
_DBG_LOG_CALLBACKS: Final[bool] = False

_LOGGER = logging.getLogger(__name__)

_CallbackT = tuple[Sequence["GatewayListener"], str, tuple[Any, ...]]


class EventDispatcher:
    """A FIFO of listener callbacks, invoked by a single consumer task."""

    def __init__(self, name: str) -> None:
        self._name = name

        self._queue: asyncio.Queue[_CallbackT | None] | None = None
        self._task: asyncio.Task[None] | None = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._name})"

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _start(self) -> asyncio.Queue[_CallbackT | None]:
        if self._queue is None or not self.is_running:
            self._queue = asyncio.Queue()
            self._task = asyncio.get_running_loop().create_task(
                self._consumer(self._queue), name=f"{self._name}-dispatcher"
            )
        return self._queue

    def dispatch(
        self, listeners: Sequence[GatewayListener], method: str, *args: Any
    ) -> None:
        """Queue a callback (by name) to each of a snapshot of listeners."""

        if not listeners:
            return
        self._start().put_nowait((listeners, method, args))

    async def _consumer(self, queue: asyncio.Queue[_CallbackT | None]) -> None:
        while (item := await queue.get()) is not None:
            listeners, method, args = item
            for listener in listeners:
                self._invoke(getattr(listener, method), args)
            queue.task_done()
        queue.task_done()

    def _invoke(self, callback: Callable[..., Any], args: tuple[Any, ...]) -> None:
        if _DBG_LOG_CALLBACKS:
            _LOGGER.warning("%s: Calling %s%s", self, callback.__qualname__, args)

        try:
            callback(*args)
        except Exception:  # a faulty listener must not stop the others
            _LOGGER.exception("%s: Listener %s raised an exception", self, callback)

    async def join(self) -> None:
        """Wait until all the queued callbacks have been invoked."""

        if self._queue is not None and self.is_running:
            await self._queue.join()

    async def stop(self) -> None:
        """Invoke all the queued callbacks, and then stop the consumer task."""

        if self._queue is None or not self.is_running:
            return

        self._queue.put_nowait(None)
        assert self._task is not None  # mypy
        await self._task
        self._queue = self._task = None
