#!/usr/bin/env python3
"""Helpers for testing gateways: a listener that records its callbacks, and asserts."""

import asyncio
from collections.abc import Callable
from typing import Any, Final

from openwebnet_gw import GatewayListener

ASSERT_CYCLE_TIME = 0.001  # max_cycles_per_assert = max_sleep / ASSERT_CYCLE_TIME
DEFAULT_MAX_SLEEP = 1

COMMS_PARAMS: Final[dict[str, Any]] = {
    "connect_timeout": 1,
    "cmd_read_timeout": 0.5,
    "handshake_timeout": 1,
}

GWY_CONFIG: Final[dict[str, Any]] = {"comms_params": COMMS_PARAMS}


class EventRecorder(GatewayListener):
    """A listener that records each callback (its name and args), in order."""

    def __init__(self) -> None:
        self.events: list[tuple[str, tuple[Any, ...]]] = []

    def __getattribute__(self, name: str) -> Any:
        if name.startswith("on_"):
            return lambda *args: self.events.append((name, args))
        return super().__getattribute__(name)

    @property
    def names(self) -> list[str]:
        return [e[0] for e in self.events]

    def args_of(self, name: str) -> list[tuple[Any, ...]]:
        return [e[1] for e in self.events if e[0] == name]


async def assert_condition(
    condition: Callable[[], bool], max_sleep: float = DEFAULT_MAX_SLEEP
) -> None:
    """Fail if the condition is not True within max_sleep seconds."""

    for _ in range(int(max_sleep / ASSERT_CYCLE_TIME)):
        await asyncio.sleep(ASSERT_CYCLE_TIME)
        if condition():
            break
    assert condition()


async def assert_event(
    recorder: EventRecorder,
    name: str,
    count: int = 1,
    max_sleep: float = DEFAULT_MAX_SLEEP,
) -> None:
    """Fail if the listener has not had (at least) count of the callback in time."""

    await assert_condition(lambda: recorder.names.count(name) >= count, max_sleep)
