#!/usr/bin/env python3
"""OpenWebNet - frame channels to a gateway, via TCP (BUS) or serial (USB).

Operates at the frame layer of: app - msg - frame - h/w

A FrameChannel is the asyncio.Protocol of one physical channel. It buffers the bytes
it receives, splits them on the frame terminator and queues each complete frame, so
that a session can simply await read_frame() / send_frame().

For a USB gateway via ser2net, use a pyserial URL, e.g. rfc2217://localhost:5001
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from typing import Any, Final, TypeAlias

import serial_asyncio  # type: ignore[import-untyped]
from serial import (  # type: ignore[import-untyped]
    Serial,
    SerialException,
    serial_for_url,
)

from . import exceptions as exc
from .const import (
    DEFAULT_CONNECT_TIMEOUT,
    FRAME_END,
    FRAME_END_BYTES,
    SZ_AUTHENTICATED,
    SZ_CHANNEL,
)
from .frame import FRAME_LOGGER
from .schemas import SCH_SERIAL_PORT_CONFIG, PortConfigT
from .typing import SerPortNameT

#
# NOTE: All debug flags should be False for deployment to end-users
_DBG_FORCE_FRAME_LOGGING: Final[bool] = False

_LOGGER = logging.getLogger(__name__)


class FrameChannel(asyncio.Protocol):
    """A channel to a gateway that reads/writes whole frames.

    Frames are queued FIFO in the order they were received. At EOF (or when the
    connection is lost) read_frame() returns None, and continues to do so.
    """

    def __init__(
        self, name: str, /, *, loop: asyncio.AbstractEventLoop | None = None
    ) -> None:
        self._name = name
        self._loop = loop or asyncio.get_running_loop()

        self._transport: asyncio.BaseTransport | None = None
        self._extra: dict[str, Any] = {SZ_CHANNEL: name, SZ_AUTHENTICATED: None}

        self._recv_buffer = b""
        self._frames: asyncio.Queue[str | None] = asyncio.Queue()
        self._eof_queued = False  # None has been queued
        self._eof = False  # None has been read

        self._closing = False
        self._can_write = asyncio.Event()
        self._can_write.set()

        self._wait_connection_lost: asyncio.Future[None] = self._loop.create_future()
        self._wait_connection_made: asyncio.Future[asyncio.BaseTransport] = (
            self._loop.create_future()
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._name})"

    @property
    def name(self) -> str:
        return self._name

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    def get_extra_info(self, name: str, default: Any = None) -> Any:
        if name in self._extra:
            return self._extra[name]
        if self._transport is not None:
            return self._transport.get_extra_info(name, default)
        return default

    def set_extra_info(self, name: str, value: Any) -> None:
        self._extra[name] = value

    def is_closing(self) -> bool:
        """Return True if the channel is closing or has closed."""
        if self._closing or self._transport is None:
            return True
        return self._transport.is_closing()

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        """Called when the connection to the gateway is established."""

        if self._wait_connection_made.done():
            return

        self._transport = transport
        self._wait_connection_made.set_result(transport)
        _LOGGER.debug("%s: connection made", self)

    async def wait_for_connection_made(
        self, timeout: float = DEFAULT_CONNECT_TIMEOUT
    ) -> asyncio.BaseTransport:
        """A courtesy function to wait until connection_made() has been invoked.

        Will raise TransportError if isn't connected within timeout seconds.
        """

        try:
            return await asyncio.wait_for(
                asyncio.shield(self._wait_connection_made), timeout
            )
        except TimeoutError as err:
            raise exc.TransportError(
                f"{self}: Transport did not bind to Protocol within {timeout} secs"
            ) from err

    def data_received(self, data: bytes) -> None:  # type: ignore[override]
        """Make frames from the read data and queue them."""

        self._recv_buffer += data
        if FRAME_END_BYTES not in self._recv_buffer:
            return

        *chunks, self._recv_buffer = self._recv_buffer.split(FRAME_END_BYTES)

        for chunk in chunks:
            if not (text := chunk.decode("ascii", errors="replace").strip()):
                continue
            frame = text + FRAME_END

            if _DBG_FORCE_FRAME_LOGGING:
                _LOGGER.warning("%s Rx: %s", self._name, frame)
            elif _LOGGER.getEffectiveLevel() == logging.INFO:  # log for INFO not DEBUG
                _LOGGER.info("%s Rx: %s", self._name, frame)
            FRAME_LOGGER.info("", extra={"frame": f" {self._name} < {frame}"})

            self._frames.put_nowait(frame)

    def eof_received(self) -> bool | None:
        """Called when the gateway closes its end of the connection."""

        _LOGGER.debug("%s: EOF received", self)
        self._queue_eof()
        return False  # the transport will close itself

    def connection_lost(self, err: Exception | None) -> None:  # type: ignore[override]
        """Called when the connection to the gateway is lost or closed."""

        if self._wait_connection_lost.done():
            return

        self._closing = True
        self._queue_eof()
        self._can_write.set()  # so any paused writer will fail, rather than hang

        if err:
            _LOGGER.debug("%s: connection lost: %s", self, err)
        self._wait_connection_lost.set_result(None)

    async def wait_for_connection_lost(self, timeout: float = 1) -> None:
        """A courtesy function to wait until connection_lost() has been invoked.

        Will raise TransportError if isn't disconnected within timeout seconds.
        """

        if self._transport is None:
            return None

        try:
            return await asyncio.wait_for(
                asyncio.shield(self._wait_connection_lost), timeout
            )
        except TimeoutError as err:
            raise exc.TransportError(
                f"{self}: Transport did not unbind from Protocol within {timeout} secs"
            ) from err

    def pause_writing(self) -> None:
        """Called when the transport's buffer goes over the high-water mark."""
        self._can_write.clear()

    def resume_writing(self) -> None:
        """Called when the transport's buffer drains below the low-water mark."""
        self._can_write.set()

    def _queue_eof(self) -> None:
        if not self._eof_queued:
            self._eof_queued = True
            self._frames.put_nowait(None)

    async def read_frame(self, timeout: float | None = None) -> str | None:
        """Return the next frame, or None at EOF.

        Will raise TransportTimeout if no frame is received within timeout seconds.
        """

        if self._eof:
            return None

        try:
            frame = await asyncio.wait_for(self._frames.get(), timeout)
        except TimeoutError as err:
            raise exc.TransportTimeout(
                f"{self}: No frame received within {timeout} secs"
            ) from err

        if frame is None:
            self._eof = True
        return frame

    async def send_frame(self, frame: str) -> None:
        """Write a frame to the gateway.

        Will raise TransportError if the channel is closed.
        """

        await self._can_write.wait()

        if self.is_closing():
            raise exc.TransportError(f"{self}: Unable to send, channel is closed")

        data = bytes(frame, "ascii")

        if _DBG_FORCE_FRAME_LOGGING:
            _LOGGER.warning("%s Tx:     %s", self._name, frame)
        elif _LOGGER.getEffectiveLevel() == logging.INFO:  # log for INFO not DEBUG
            _LOGGER.info("%s Tx:     %s", self._name, frame)
        FRAME_LOGGER.info("", extra={"frame": f" {self._name} > {frame}"})

        try:
            self._transport.write(data)  # type: ignore[union-attr]
        except (OSError, SerialException) as err:
            raise exc.TransportError(f"{self}: Unable to send: {err}") from err

    def close(self) -> None:
        """Close the channel (it cannot be re-opened)."""

        if self._closing:
            return
        self._closing = True

        if self._transport is not None:
            self._transport.close()  # will invoke connection_lost()
        else:
            self._queue_eof()


class UsbTransport(serial_asyncio.SerialTransport):  # type: ignore[misc, no-any-unimported]
    """A serial transport for USB (ZigBee) gateways."""

    serial: Serial  # type: ignore[no-any-unimported]

    def __init__(  # type: ignore[no-any-unimported]
        self,
        serial_instance: Serial,
        protocol: FrameChannel,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        super().__init__(loop or asyncio.get_event_loop(), protocol, serial_instance)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.serial.portstr})"

    def _abort(self, exc: BaseException | None) -> None:  # used by SerialTransport
        if exc:
            _LOGGER.warning("%s: serial port aborted: %s", self, exc)
        super()._abort(exc)


OwnTransportT: TypeAlias = asyncio.Transport | UsbTransport


async def transport_factory(
    channel: FrameChannel,
    /,
    *,
    host: str | None = None,
    port: int | None = None,
    port_name: SerPortNameT | None = None,
    port_config: PortConfigT | None = None,
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    loop: asyncio.AbstractEventLoop | None = None,
) -> OwnTransportT:
    """Connect a FrameChannel to a gateway and return its transport.

    Exactly one of host (a BUS gateway, via TCP) or port_name (a USB gateway, via a
    serial port) must be given.
    """

    def get_serial_instance(  # type: ignore[no-any-unimported]
        ser_name: SerPortNameT, ser_config: PortConfigT | None
    ) -> Serial:
        """Return a Serial instance for the given port name and config.

        May: raise TransportSourceInvalid("Unable to open serial port...")
        """
        # For example:
        # - openwebnet monitor /dev/ttyUSB0
        # - openwebnet monitor 'rfc2217://localhost:5001'

        ser_config = SCH_SERIAL_PORT_CONFIG(ser_config or {})

        try:
            ser_obj = serial_for_url(ser_name, **ser_config)
        except SerialException as err:
            _LOGGER.error(
                "Failed to open %s (config: %s): %s", ser_name, ser_config, err
            )
            raise exc.TransportSourceInvalid(
                f"Unable to open the serial port: {ser_name}"
            ) from err

        # FTDI on Posix/Linux would be a common environment for this library...
        with contextlib.suppress(AttributeError, NotImplementedError, ValueError):
            ser_obj.set_low_latency_mode(True)

        return ser_obj

    if len([x for x in (host, port_name) if x is not None]) != 1:
        raise exc.TransportSourceInvalid(
            "Gateway must be exactly one of: host, port_name"
        )

    loop = loop or asyncio.get_running_loop()

    if port_name is not None:
        ser_instance = get_serial_instance(port_name, port_config)

        if os.name == "nt" or ser_instance.portstr[:7] in ("rfc2217", "socket:"):
            _LOGGER.warning(
                "This type of serial interface is not fully supported by this library"
            )

        transport = UsbTransport(ser_instance, channel, loop=loop)
        await channel.wait_for_connection_made(timeout=connect_timeout)
        return transport

    try:
        tcp_transport, _ = await asyncio.wait_for(
            loop.create_connection(lambda: channel, host, port), connect_timeout
        )
    except TimeoutError as err:
        raise exc.TransportTimeout(
            f"Unable to connect to {host}:{port} within {connect_timeout} secs"
        ) from err
    except OSError as err:
        raise exc.TransportError(f"Unable to connect to {host}:{port}: {err}") from err

    await channel.wait_for_connection_made(timeout=connect_timeout)
    return tcp_transport
