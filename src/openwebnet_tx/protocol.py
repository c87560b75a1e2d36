#!/usr/bin/env python3
"""OpenWebNet - the connectors (sessions) to BUS and USB gateways.

A BUS gateway (via TCP) uses two independent channels: MON for events, and CMD for
request/response exchanges. A USB gateway (via a serial port) multiplexes both over
its one channel: any frame that isn't a reply to the pending request is an event.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any, Final

from . import exceptions as exc
from .auth import negotiate
from .codec import parse
from .const import (
    DEFAULT_BUS_PASSWORD,
    DEFAULT_BUS_PORT,
    FIRMWARE_AUTOMATION_BUG,
    FIRMWARE_OLD_THRESHOLD,
    FRAME_ACK,
    FRAME_BUSY_NACK,
    FRAME_NACK,
    USB_KEEP_CONNECT_DELAY,
    Session,
)
from .families import Automation, DimGateway, GatewayMgmt, Lighting
from .message import ACK, OpenMessage
from .response import Response
from .schemas import (
    SCH_COMMS_PARAMS,
    SZ_CMD_FRESH_WINDOW,
    SZ_CMD_READ_TIMEOUT,
    SZ_CONNECT_TIMEOUT,
    SZ_HANDSHAKE_TIMEOUT,
    SZ_KEEPALIVE_PERIOD,
    SZ_MON_READ_TIMEOUT,
    CommsParamsT,
    PortConfigT,
)
from .transport import FrameChannel, transport_factory
from .typing import ConnectorListenerT, SerPortNameT

#
# NOTE: All debug flags should be False for deployment to end-users
_DBG_FORCE_LOG_FRAMES: Final[bool] = False

_LOGGER = logging.getLogger(__name__)


def version_compare(version_1: str, version_2: str) -> int:
    """Compare two dotted versions, returning -1, 0 or 1 (as version_1 is <, =, >).

    If one is a prefix of the other, the longer is the greater: '1.2.3' < '1.2.3.4'.
    """

    vals_1 = version_1.split(".")
    vals_2 = version_2.split(".")

    for val_1, val_2 in zip(vals_1, vals_2, strict=False):
        if val_1 != val_2:
            diff = int(val_1) - int(val_2)
            return (diff > 0) - (diff < 0)

    diff = len(vals_1) - len(vals_2)
    return (diff > 0) - (diff < 0)


class _BaseConnector:
    """The behaviour common to the BUS and USB connectors."""

    _name: str = "OWN"

    def __init__(self, *, comms_params: CommsParamsT | None = None) -> None:
        self._comms: CommsParamsT = SCH_COMMS_PARAMS(comms_params or {})

        self._listener: ConnectorListenerT | None = None
        self._loop = asyncio.get_running_loop()

        self._cmd_channel: FrameChannel | None = None
        self._mon_channel: FrameChannel | None = None
        self._is_cmd_connected = False
        self._is_mon_connected = False

        self._cmd_lock = asyncio.Lock()  # only one request in flight per CMD channel
        self._last_cmd_ok: float | None = None  # loop.time() of the last exchange

        self._closing = False
        self._tasks: list[asyncio.Task[Any]] = []

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._name})"

    @property
    def comms_params(self) -> CommsParamsT:
        return self._comms

    @property
    def is_cmd_connected(self) -> bool:
        return self._is_cmd_connected

    @property
    def is_mon_connected(self) -> bool:
        return self._is_mon_connected

    @property
    def is_cmd_fresh(self) -> bool:
        """Return True if the last request was answered recently (CMD is usable)."""

        if not self._is_cmd_connected or self._last_cmd_ok is None:
            return False
        return self._loop.time() - self._last_cmd_ok < self._comms[SZ_CMD_FRESH_WINDOW]

    def set_listener(self, listener: ConnectorListenerT) -> None:
        self._listener = listener

    def _add_task(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task[Any]:
        # keep a track of tasks, so we can tidy-up
        self._tasks = [t for t in self._tasks if not t.done()]
        task = self._loop.create_task(coro, name=f"{self._name}-{name}")
        self._tasks.append(task)
        return task

    async def open_cmd_conn(self) -> None:
        raise NotImplementedError

    async def open_mon_conn(self) -> None:
        raise NotImplementedError

    async def send_command_sync(self, msg: OpenMessage | str) -> Response:
        """Send a request on the CMD channel and return its (complete) Response.

        Concurrent callers are serialised: only one request is in flight at a time.
        """

        if not self._is_cmd_connected:
            raise exc.TransportError(f"{self}: CMD is not connected")

        frame = msg if isinstance(msg, str) else msg.frame_value

        async with self._cmd_lock:
            try:
                return await self._send_command_sync(frame)
            except exc.OwnException as err:
                _LOGGER.error(
                    "%s: Unable to send %s (or read reply): %s", self, frame, err
                )
                raise

    async def _send_command_sync(self, frame: str) -> Response:
        raise NotImplementedError

    def _parse_event(self, frame: str) -> OpenMessage | None:
        """Return the message of a MON frame, or None if it is to be skipped."""

        try:
            return parse(frame)
        except exc.FrameUnsupported:
            _LOGGER.debug("%s: Unsupported frame: %s, skipping it", self, frame)
        except exc.FrameError:
            _LOGGER.warning("%s: Invalid frame: %s, skipping it", self, frame)
        return None

    def _notify_listener(self, msg: OpenMessage) -> None:
        if _DBG_FORCE_LOG_FRAMES:
            _LOGGER.warning("%s MON <<<<<<<< %s", self, msg)
        else:
            _LOGGER.debug("%s MON <<<<<<<< %s", self, msg)

        if self._listener is not None:  # in order, but not blocking the reader
            self._loop.call_soon(self._listener.on_message, msg)

    def _handle_mon_disconnect(self, err: exc.OwnException) -> None:
        _LOGGER.debug("%s: MON disconnected: %s", self, err)

        self._is_mon_connected = False
        if self._mon_channel is not None:
            self._mon_channel.close()

        if self._listener is not None:
            self._loop.call_soon(self._listener.on_mon_disconnected, err)

    async def disconnect(self) -> None:
        """Close all channels, and stop all tasks (reads in flight are abandoned)."""

        _LOGGER.debug("%s: Disconnecting...", self)

        self._closing = True
        self._is_cmd_connected = False
        self._is_mon_connected = False

        tasks = [
            t for t in self._tasks if not t.done() and t is not asyncio.current_task()
        ]
        for task in tasks:
            task.cancel()

        for channel in (self._cmd_channel, self._mon_channel):
            if channel is not None:
                channel.close()

        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks = []

        _LOGGER.debug("%s: ...all channels closed", self)


class BusConnector(_BaseConnector):
    """A connector to a BUS gateway (e.g. MH202, F454), via TCP."""

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_BUS_PORT,
        password: str | None = DEFAULT_BUS_PASSWORD,
        *,
        comms_params: CommsParamsT | None = None,
    ) -> None:
        super().__init__(comms_params=comms_params)

        self._host = host
        self._port = port
        self._password = password

        self._name = f"BUS_{host}:{port}"

    @property
    def host(self) -> str:
        return self._host

    @property
    def port(self) -> int:
        return self._port

    async def _open_channel(self, session: Session) -> FrameChannel:
        """Connect a new channel and complete its handshake."""

        _LOGGER.debug("%s: Establishing %s connection...", self, session)

        channel = FrameChannel(f"BUS-{session}", loop=self._loop)
        await transport_factory(
            channel,
            host=self._host,
            port=self._port,
            connect_timeout=self._comms[SZ_CONNECT_TIMEOUT],
            loop=self._loop,
        )
        await negotiate(
            channel,
            self._password,
            session,
            timeout=self._comms[SZ_HANDSHAKE_TIMEOUT],
        )
        return channel

    async def open_cmd_conn(self) -> None:
        if self._is_cmd_connected:
            _LOGGER.debug("%s: CMD is already open", self)
            return

        self._closing = False
        self._cmd_channel = await self._open_channel(Session.CMD)
        self._is_cmd_connected = True
        _LOGGER.info("%s: ============ CMD CONNECTED ============", self)

    async def open_mon_conn(self) -> None:
        if self._is_mon_connected:
            _LOGGER.debug("%s: MON is already open", self)
            return

        self._closing = False
        self._mon_channel = await self._open_channel(Session.MON)
        self._is_mon_connected = True
        _LOGGER.info("%s: ============ MON CONNECTED ============", self)

        self._add_task(self._mon_reader(self._mon_channel), "MON-reader")
        self._add_task(self._mon_keepalive(self._mon_channel), "MON-keepalive")

    def _close_cmd(self) -> None:
        self._is_cmd_connected = False
        if self._cmd_channel is not None:
            self._cmd_channel.close()

    async def send_command_sync(self, msg: OpenMessage | str) -> Response:
        # CMD is closed after a bad reply, so is reopened by the next request
        if self._cmd_channel is not None and not self._is_cmd_connected:
            if self._closing:
                raise exc.TransportError(f"{self}: CMD is closed")
            async with self._cmd_lock:
                await self.open_cmd_conn()
        return await super().send_command_sync(msg)

    async def _send_command_sync(self, frame: str) -> Response:
        try:
            response = await self._send_cmd_and_read_resp(frame)
            _LOGGER.debug("%s: ^^^^^^^^ REUSED CONNECTION ^^^^^^^^", self)
            return response
        except exc.TransportError as err:
            if self._closing:
                raise
            _LOGGER.debug("%s: CMD failed: %s", self, err)

        # the CMD session may have been closed by the gateway, so try one new one
        self._close_cmd()
        _LOGGER.info("%s: Trying with a NEW CMD connection...", self)

        await self.open_cmd_conn()
        response = await self._send_cmd_and_read_resp(frame)
        _LOGGER.debug("%s: ^^^^^^^^ USED NEW CONNECTION ^^^^^^^^", self)
        return response

    async def _send_cmd_and_read_resp(self, frame: str) -> Response:
        response = Response(parse(frame))

        if self._cmd_channel is None or not self._is_cmd_connected:
            raise exc.TransportError(f"{self}: CMD is not connected")
        channel = self._cmd_channel

        _LOGGER.info("%s: CMD ====>>>> %s", self, frame)
        await channel.send_frame(frame)

        while not response.is_complete:
            reply = await channel.read_frame(self._comms[SZ_CMD_READ_TIMEOUT])
            if reply is None:
                raise exc.TransportError(f"{self}: EOF while reading replies: {frame}")

            try:
                msg = parse(reply)
            except exc.FrameError as err:  # the CMD stream can no longer be trusted
                response.abort(err)
                self._close_cmd()
                raise

            _LOGGER.debug("%s: CMD   <<==   %s", self, reply)
            response.add_message(msg)

        self._last_cmd_ok = self._loop.time()
        _LOGGER.info("%s: CMD <<<<==== %s", self, [str(m) for m in response.messages])
        return response

    async def _is_gateway_alive(self) -> bool:
        """Return True if the gateway answers a (model) request on CMD."""

        try:
            await self.send_command_sync(GatewayMgmt.request_model())
        except exc.OwnException as err:
            _LOGGER.debug("%s: Liveness probe failed: %s", self, err)
            return False
        return True

    async def _mon_reader(self, channel: FrameChannel) -> None:
        """Read the MON channel until it is closed, processing each frame."""

        _LOGGER.debug("%s: MON reader STARTED", self)

        while True:
            try:
                frame = await channel.read_frame(self._comms[SZ_MON_READ_TIMEOUT])

            except exc.TransportTimeout as err:  # quiet, but is the gateway alive?
                if self._closing:
                    break
                if await self._is_gateway_alive():
                    continue
                self._handle_mon_disconnect(err)
                break

            if frame is None:
                if not self._closing:  # else an expected consequence of disconnect()
                    self._handle_mon_disconnect(
                        exc.TransportError(f"{self}: MON channel closed by gateway")
                    )
                break

            if msg := self._parse_event(frame):
                self._notify_listener(msg)

        _LOGGER.debug("%s: MON reader STOPPED", self)

    async def _mon_keepalive(self, channel: FrameChannel) -> None:
        """Periodically send an ACK on MON, so that the gateway keeps it open."""

        while True:
            await asyncio.sleep(self._comms[SZ_KEEPALIVE_PERIOD])

            if channel.is_closing():
                _LOGGER.debug("%s: MON is closed, stopping keepalives", self)
                return

            try:
                await channel.send_frame(FRAME_ACK)
            except exc.TransportError as err:
                _LOGGER.debug("%s: Could not send MON keepalive: %s", self, err)
            else:
                _LOGGER.debug("%s: MON =KA=>>>> %s", self, FRAME_ACK)


class UsbConnector(_BaseConnector):
    """A connector to a USB (ZigBee) gateway, via a serial port.

    Some older firmwares have bugs which are compensated for: firmware <= 1.2.3 omits
    the final ACK of lighting status requests, and firmware <= 1.2.0 inverts
    automation UP/DOWN.
    """

    def __init__(
        self,
        serial_port: SerPortNameT,
        *,
        port_config: PortConfigT | None = None,
        comms_params: CommsParamsT | None = None,
    ) -> None:
        super().__init__(comms_params=comms_params)

        self._serial_port = serial_port
        self._port_config = port_config

        self._name = f"USB_{serial_port}"

        self._channel: FrameChannel | None = None
        self._pending: Response | None = None
        self._draining: Response | None = None  # aborted, until its terminal reply

        self._firmware_version: str | None = None
        self._is_old_firmware = False
        self._has_automation_bug = False

    @property
    def serial_port(self) -> SerPortNameT:
        return self._serial_port

    @property
    def firmware_version(self) -> str | None:
        return self._firmware_version

    @property
    def is_old_firmware(self) -> bool:
        return self._is_old_firmware

    @property
    def has_automation_bug(self) -> bool:
        return self._has_automation_bug

    async def _connect_usb_dongle(self) -> None:
        """Open the serial port, and check the gateway is ready for requests."""

        _LOGGER.debug("%s: Opening serial port...", self)

        channel = FrameChannel("USB", loop=self._loop)
        await transport_factory(
            channel,
            port_name=self._serial_port,
            port_config=self._port_config,
            connect_timeout=self._comms[SZ_CONNECT_TIMEOUT],
            loop=self._loop,
        )

        frame = GatewayMgmt.request_keep_connect().frame_value
        await channel.send_frame(frame)
        _LOGGER.debug("%s: HS ==>>>> %s", self, frame)

        await asyncio.sleep(USB_KEEP_CONNECT_DELAY)  # the reply takes a moment

        try:
            reply = await channel.read_frame(self._comms[SZ_HANDSHAKE_TIMEOUT])
        except exc.TransportTimeout:
            reply = None
        _LOGGER.debug("%s: <<<<== HS %s", self, reply)

        if reply != FRAME_ACK:
            channel.close()
            raise exc.TransportError(
                f"{self}: Could not talk to a USB gateway (it replied: {reply})"
            )

        self._closing = False
        self._channel = self._cmd_channel = self._mon_channel = channel
        self._add_task(self._usb_reader(channel), "reader")

    async def _check_firmware_version(self) -> None:
        async with self._cmd_lock:
            response = await self._send_command_sync(
                GatewayMgmt.request_firmware_version().frame_value
            )

        for msg in response.messages:
            if not isinstance(msg, GatewayMgmt):
                continue
            if msg.dim != DimGateway.FIRMWARE_VERSION:
                continue
            try:
                self._firmware_version = msg.parse_firmware_version()
            except exc.FrameError:
                _LOGGER.warning("%s: Cannot parse the firmware version: %s", self, msg)
                continue
            _LOGGER.info("%s: FIRMWARE: %s", self, self._firmware_version)
            break

        if self._firmware_version is None:
            return

        self._is_old_firmware = (
            version_compare(self._firmware_version, FIRMWARE_OLD_THRESHOLD) <= 0
        )
        self._has_automation_bug = (
            version_compare(self._firmware_version, FIRMWARE_AUTOMATION_BUG) <= 0
        )
        _LOGGER.info(
            "%s: FIRMWARE: is_old_firmware=%s, has_automation_bug=%s",
            self,
            self._is_old_firmware,
            self._has_automation_bug,
        )

    async def _ensure_connected(self) -> None:
        if self._channel is None or self._channel.is_closing():
            await self._connect_usb_dongle()
            await self._check_firmware_version()

    async def open_cmd_conn(self) -> None:
        if self._is_cmd_connected:
            _LOGGER.debug("%s: CMD is already open", self)
            return

        await self._ensure_connected()
        self._is_cmd_connected = True
        _LOGGER.info("%s: ============ CMD CONNECTED ============", self)

    async def open_mon_conn(self) -> None:
        if self._is_mon_connected:
            _LOGGER.debug("%s: MON is already open", self)
            return

        await self._ensure_connected()

        # supervisor mode, to receive all the events from the devices
        async with self._cmd_lock:
            await self._send_command_sync(GatewayMgmt.request_supervisor().frame_value)

        self._is_mon_connected = True
        _LOGGER.info("%s: ============ MON CONNECTED ============", self)

    def _fix_inverted_up_down(self, msg: OpenMessage) -> OpenMessage:
        """Swap UP/DOWN of automation messages, for older firmware."""

        if not self._has_automation_bug or not isinstance(msg, Automation):
            return msg
        try:
            return Automation.convert_up_down(msg)
        except exc.FrameError:
            _LOGGER.warning("%s: Unable to convert UP/DOWN of: %s", self, msg)
            return msg

    def _fix_dimension_response(self, response: Response) -> None:
        """Add the final ACK to lighting status replies, for older firmware."""

        request = response.request
        if (
            self._is_old_firmware
            and not request.is_command
            and isinstance(request, Lighting)
        ):
            _LOGGER.debug("%s: Older firmware: adding the final ACK", self)
            response.add_message(ACK)

    async def _send_command_sync(self, frame: str) -> Response:
        if self._channel is None:
            raise exc.TransportError(f"{self}: Serial port is not open")

        msg = parse(frame)
        response = Response(msg)  # correlates the original request, not the fixed one
        frame = self._fix_inverted_up_down(msg).frame_value

        self._pending = response
        self._draining = None
        try:
            await self._channel.send_frame(frame)
            _LOGGER.info("%s: CMD ====>>>> %s", self, frame)
            await response.wait_for_completion(self._comms[SZ_CMD_READ_TIMEOUT])
        finally:
            self._pending = None

        self._last_cmd_ok = self._loop.time()
        _LOGGER.info("%s: CMD <<<<==== %s", self, [str(m) for m in response.messages])
        return response

    def _process_frame(self, frame: str) -> None:
        """Process a frame as either a reply to the pending request, or an event."""

        if self._draining is not None:
            self._drain_frame(frame)
            return

        response = self._pending

        if (
            response is not None
            and response.error is None
            and not response.is_complete
        ):
            try:
                msg = parse(frame)
            except exc.FrameError as err:
                _LOGGER.warning("%s: Invalid reply: %s (%s)", self, frame, err)
                response.abort(err)
                self._draining = response
                return

            _LOGGER.debug("%s: CMD   <<==   %s", self, frame)
            try:
                response.add_message(self._fix_inverted_up_down(msg))
                if not response.is_complete:
                    self._fix_dimension_response(response)
            except exc.ProtocolViolation as err:
                _LOGGER.warning("%s: Reply not processed: %s", self, err)
            return

        if (msg := self._parse_event(frame)) is None:
            return

        if response is None and (msg.is_ack or msg.is_nack):
            _LOGGER.warning(
                "%s: Received %s without a pending request, skipping it", self, msg
            )
            return
        if response is not None:
            _LOGGER.warning("%s: The pending request is complete, so is an event", self)

        self._notify_listener(self._fix_inverted_up_down(msg))

    def _drain_frame(self, frame: str) -> None:
        """Discard the replies of an aborted request, up to its terminal one."""

        _LOGGER.debug("%s: CMD   <<x=   %s (discarded)", self, frame)
        if frame in (FRAME_ACK, FRAME_NACK, FRAME_BUSY_NACK):
            self._draining = None

    async def _usb_reader(self, channel: FrameChannel) -> None:
        """Read the serial port until it is closed, processing each frame."""

        _LOGGER.debug("%s: USB reader STARTED", self)

        while (frame := await channel.read_frame()) is not None:
            self._process_frame(frame)

        err = exc.TransportError(f"{self}: Serial port closed")
        if self._pending is not None:
            self._pending.abort(err)

        self._is_cmd_connected = False
        if not self._closing and self._is_mon_connected:
            self._handle_mon_disconnect(err)

        _LOGGER.debug("%s: USB reader STOPPED", self)

    async def disconnect(self) -> None:
        self._draining = None
        if self._pending is not None:
            self._pending.abort(exc.TransportError(f"{self}: Disconnected"))
        await super().disconnect()
        self._channel = self._cmd_channel = self._mon_channel = None


OwnConnectorT = BusConnector | UsbConnector
