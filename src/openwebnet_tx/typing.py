#!/usr/bin/env python3
"""OpenWebNet - Typing for the connectors & their frame channels."""

from collections.abc import Callable
from typing import Protocol, TypeVar

from .message import OpenMessage

ExceptionT = TypeVar("ExceptionT", bound=type[Exception])
MsgHandlerT = Callable[[OpenMessage], None]
SerPortNameT = str


class ConnectorListenerT(Protocol):
    """The callbacks by which a connector reports its MON activity upwards.

    Neither callback may block: both are invoked from the MON read loop.
    """

    def on_message(self, msg: OpenMessage) -> None:
        """Called for every event message received on the MON channel."""

    def on_mon_disconnected(self, err: Exception | None) -> None:
        """Called when the MON channel is found to be lost (not when closed)."""
