#!/usr/bin/env python3
"""A virtual USB (ZigBee) dongle, for testing: a transport bound to a FrameChannel.

Frames written to the dongle are answered from a script of replies (unscripted
requests are simply ACK'd), and events can be injected at any time.
"""

import asyncio
from typing import Any

from openwebnet_tx.const import FRAME_ACK
from openwebnet_tx.transport import FrameChannel


class VirtualDongle(asyncio.Transport):
    """A transport that plays the part of a USB gateway."""

    def __init__(self, firmware: str = "1.2.4") -> None:
        super().__init__()

        major, minor, build = firmware.split(".")
        self.replies: dict[str, list[str]] = {
            "*#13**12##": ["*#13**12*0*3*80*10*20*30##", FRAME_ACK],
            "*#13**16##": [f"*#13**16*{major}*{minor}*{build}##", FRAME_ACK],
        }
        self.requests: list[str] = []

        self._channel: FrameChannel | None = None
        self._closing = False

    def bind(self, channel: FrameChannel) -> None:
        """Bind to a channel (the dongle is 'plugged in' again, if need be)."""

        self._channel = channel
        self._closing = False
        channel.connection_made(self)

    def get_extra_info(self, name: str, default: Any = None) -> Any:
        return default

    def is_closing(self) -> bool:
        return self._closing

    def close(self) -> None:
        if self._closing:
            return
        self._closing = True
        if self._channel is not None:
            asyncio.get_running_loop().call_soon(self._channel.connection_lost, None)

    def write(self, data: bytes) -> None:  # type: ignore[override]
        frame = data.decode("ascii")
        self.requests.append(frame)

        for reply in self.replies.get(frame, [FRAME_ACK]):
            asyncio.get_running_loop().call_soon(self.send_event, reply)

    def send_event(self, frame: str) -> None:
        """Send a frame to the channel (as if from the dongle)."""

        if not self._closing and self._channel is not None:
            self._channel.data_received(frame.encode("ascii"))

    def unplug(self) -> None:
        """Close the serial port, as if the dongle was unplugged."""
        self.close()


def dongle_factory(dongle: VirtualDongle) -> Any:
    """Return a replacement for transport_factory() that binds the virtual dongle."""

    async def transport_factory(channel: FrameChannel, /, **kwargs: Any) -> Any:
        dongle.bind(channel)
        return dongle

    return transport_factory
