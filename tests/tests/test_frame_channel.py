#!/usr/bin/env python3
"""OpenWebNet - Test the framing of the byte stream (by a FrameChannel)."""

import pytest

from openwebnet_tx import FrameChannel
from openwebnet_tx import exceptions as exc


async def _read_all(channel: FrameChannel) -> list[str]:
    frames = []
    while (frame := await channel.read_frame(0.1)) is not None:
        frames.append(frame)
    return frames


async def test_frames_split_and_joined() -> None:
    """Frames may be split across reads, and many frames may be in one read."""

    channel = FrameChannel("test")

    channel.data_received(b"*1*1*1")
    channel.data_received(b"1##*#*1##*1*0")
    channel.data_received(b"*12#")
    channel.data_received(b"#")
    channel.connection_lost(None)

    assert await _read_all(channel) == ["*1*1*11##", "*#*1##", "*1*0*12##"]


async def test_eof() -> None:
    channel = FrameChannel("test")

    channel.data_received(b"*1*1*11##*1*0")  # the partial frame is discarded
    channel.eof_received()

    assert await channel.read_frame() == "*1*1*11##"
    assert await channel.read_frame() is None
    assert await channel.read_frame() is None  # and stays so

    channel.connection_lost(None)
    assert channel.is_closing()


async def test_read_timeout() -> None:
    channel = FrameChannel("test")

    with pytest.raises(exc.TransportTimeout):
        await channel.read_frame(0.01)


async def test_send_when_closed() -> None:
    channel = FrameChannel("test")
    channel.close()

    assert channel.is_closing()
    assert await channel.read_frame() is None

    with pytest.raises(exc.TransportError):
        await channel.send_frame("*1*1*11##")
