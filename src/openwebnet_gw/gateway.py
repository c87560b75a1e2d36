#!/usr/bin/env python3
"""OpenWebNet - the gateway (i.e. a BUS gateway via TCP, or a USB/ZigBee dongle).

The gateway is the facade used by applications: it owns a connector, fans out its
events to any subscribed listeners, and reconnects (with back-off) if the MON
channel is lost.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import weakref
from contextlib import suppress
from types import SimpleNamespace
from typing import TYPE_CHECKING, Any

from openwebnet_tx import (
    BusConnector,
    GatewayMgmt,
    UsbConnector,
    set_frame_logging_config,
)
from openwebnet_tx.const import (
    DEFAULT_BUS_PASSWORD,
    DEFAULT_BUS_PORT,
    RECONNECT_RETRY_AFTER,
    RECONNECT_RETRY_AFTER_MAX,
    RECONNECT_RETRY_MULTIPLIER,
)
from openwebnet_tx.families import DimGateway
from openwebnet_tx.schemas import is_bus_gateway

from . import exceptions as exc
from .discovery import BusDiscovery, UsbDiscovery
from .dispatcher import EventDispatcher
from .helpers import format_mac_address
from .schemas import SCH_GATEWAY_CONFIG

if TYPE_CHECKING:
    from openwebnet_tx import DeviceType, OpenMessage, OwnConnectorT, Response, Where
    from openwebnet_tx.schemas import FrameLogConfigT, PortConfigT

    from .discovery import _DiscoveryEngine

_LOGGER = logging.getLogger(__name__)


def next_retry_interval(retry: int) -> int:
    """Return the next back-off interval (in msecs) after a failed reconnect."""
    return min(retry * RECONNECT_RETRY_MULTIPLIER, RECONNECT_RETRY_AFTER_MAX)


class GatewayListener:
    """The events of a gateway (all callbacks are no-ops, unless overridden).

    Callbacks are invoked in order, from a single task: they must not block.
    """

    def on_connected(self) -> None:
        """The connection to the gateway has been established."""

    def on_connection_error(self, err: exc.OwnException) -> None:
        """Connecting (or reconnecting) to the gateway has failed."""

    def on_connection_closed(self) -> None:
        """The connection has been closed, via close_connection()."""

    def on_disconnected(self, err: exc.OwnException | None) -> None:
        """The connection to the gateway has been lost."""

    def on_reconnected(self) -> None:
        """The connection to the gateway has been re-established."""

    def on_event_message(self, msg: OpenMessage) -> None:
        """An event message has been received (on the MON channel)."""

    def on_new_device(
        self, where: Where | None, device_type: DeviceType, msg: OpenMessage
    ) -> None:
        """A device has been found by discover_devices()."""

    def on_discovery_completed(self) -> None:
        """The discovery started by discover_devices() has completed."""


class OpenGateway:
    """The base gateway class."""

    def __init__(
        self,
        *,
        config: dict[str, Any] | None = None,
        frame_log: FrameLogConfigT | None = None,
        debug_mode: bool = False,
    ) -> None:
        if debug_mode:
            _LOGGER.setLevel(logging.DEBUG)

        self.config = SimpleNamespace(**SCH_GATEWAY_CONFIG(config or {}))
        self._frame_log = frame_log

        self._connector: OwnConnectorT | None = None

        self._is_connected = False
        self._is_discovering = False
        self._close_requested = False

        self._listeners: list[weakref.ref[GatewayListener]] = []
        self._listeners_lock = threading.Lock()
        self._dispatcher = EventDispatcher(str(self))

        self._discovery: _DiscoveryEngine | None = None
        self._reconnect_task: asyncio.Task[None] | None = None

        self._mac_addr: tuple[int, ...] | None = None
        self._firmware_version: str | None = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self})"

    @property
    def connector(self) -> OwnConnectorT | None:
        return self._connector

    @property
    def is_connected(self) -> bool:
        return self._is_connected

    @property
    def is_discovering(self) -> bool:
        return self._is_discovering

    @property
    def is_cmd_connection_ready(self) -> bool:
        """Return True if a request can be sent without (re)opening CMD."""
        raise NotImplementedError

    @property
    def mac_address(self) -> str | None:
        """Return the MAC address of the gateway (as 'xx:xx:..'), if known."""
        return format_mac_address(self._mac_addr)

    @property
    def firmware_version(self) -> str | None:
        return self._firmware_version

    ####################################################################################
    # Listeners

    def subscribe(self, listener: GatewayListener) -> None:
        """Add a listener (a weak reference is kept) to the gateway's events."""

        with self._listeners_lock:
            if any(ref() is listener for ref in self._listeners):
                _LOGGER.debug("%s: Listener %s is already subscribed", self, listener)
                return
            self._listeners.append(weakref.ref(listener))

    def unsubscribe(self, listener: GatewayListener) -> None:
        with self._listeners_lock:
            self._listeners = [
                r for r in self._listeners if r() is not None and r() is not listener
            ]

    def _notify_listeners(self, method: str, *args: Any) -> None:
        with self._listeners_lock:  # a snapshot, so (un)subscribe can't race dispatch
            listeners = [x for r in self._listeners if (x := r()) is not None]
        self._dispatcher.dispatch(listeners, method, *args)

    async def wait_for_listeners(self) -> None:
        """Wait until all pending callbacks have been delivered to the listeners."""
        await self._dispatcher.join()

    ####################################################################################
    # Connection management

    def _init_connector(self) -> OwnConnectorT:
        raise NotImplementedError

    async def _open_connections(self) -> None:
        """Open MON & CMD, then get the gateway's MAC address & firmware version."""

        assert self._connector is not None  # mypy

        await self._connector.open_mon_conn()
        await self._connector.open_cmd_conn()

        self._handle_management_dimensions(
            await self._send_internal(GatewayMgmt.request_mac_address())
        )
        self._handle_management_dimensions(
            await self._send_internal(GatewayMgmt.request_firmware_version())
        )

    async def connect(self) -> None:
        """Connect to the gateway, or raise an OwnException.

        Listeners are notified via on_connected(), or on_connection_error().
        """

        if self._is_connected:
            _LOGGER.info("%s: Gateway is already connected", self)
            return

        if self._frame_log:
            await set_frame_logging_config(**self._frame_log)

        self._close_requested = False
        self._connector = self._init_connector()
        self._connector.set_listener(self)

        try:
            await self._open_connections()
        except exc.OwnException as err:
            _LOGGER.error("%s: Unable to connect to the gateway: %s", self, err)
            await self._connector.disconnect()
            self._notify_listeners("on_connection_error", err)
            raise

        self._is_connected = True
        _LOGGER.info("%s: ============ GATEWAY CONNECTED ============", self)
        self._notify_listeners("on_connected")

    async def reconnect(self) -> None:
        """Reconnect to the gateway until successful, or close_connection() is called.

        The interval between attempts starts at 2.5 secs, and doubles after each
        failed attempt (up to 60 secs). An AuthenticationFailed is raised at once.
        """

        if self._connector is None:
            raise exc.GatewayNotConnected(f"{self}: Gateway was never connected")

        retry = RECONNECT_RETRY_AFTER

        while not self._is_connected and not self._close_requested:
            _LOGGER.debug("%s: Sleeping %s ms before re-connecting...", self, retry)
            await asyncio.sleep(retry / 1000)
            if self._close_requested:
                break

            _LOGGER.info("%s: ...slept %s ms, now trying to re-connect...", self, retry)
            try:
                await self._open_connections()

            except exc.AuthenticationFailed as err:  # no point in retrying
                _LOGGER.warning("%s: Re-connect FAILED: %s", self, err)
                raise

            except exc.OwnException as err:
                _LOGGER.debug("%s: Error while re-connecting: %s", self, err)
                retry = next_retry_interval(retry)
                self._notify_listeners("on_connection_error", err)
                continue

            self._is_connected = True
            _LOGGER.info("%s: ============ GATEWAY RECONNECTED ============", self)
            self._notify_listeners("on_reconnected")

    async def _supervise_reconnect(self) -> None:
        try:
            await self.reconnect()
        except exc.AuthenticationFailed as err:
            _LOGGER.error("%s: Reconnecting has been abandoned: %s", self, err)
            self._notify_listeners("on_connection_error", err)

    def _start_reconnect(self) -> None:
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return
        self._reconnect_task = asyncio.get_running_loop().create_task(
            self._supervise_reconnect(), name=f"{self}-reconnect"
        )

    async def close_connection(self) -> None:
        """Close the connection (any reconnect in progress is abandoned)."""

        _LOGGER.debug("%s: Closing the connection...", self)

        self._close_requested = True

        if self._reconnect_task is not None and not self._reconnect_task.done():
            self._reconnect_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._reconnect_task
        self._reconnect_task = None

        if self._connector is not None:
            await self._connector.disconnect()
        self._is_connected = False

        self._notify_listeners("on_connection_closed")
        await self._dispatcher.stop()  # flush any callbacks still pending

    ####################################################################################
    # Sending

    async def _send_internal(self, msg: OpenMessage) -> Response:
        if self._connector is None:
            raise exc.GatewayNotConnected(f"{self}: Gateway was never connected")
        return await self._connector.send_command_sync(msg)

    async def send(self, msg: OpenMessage) -> Response:
        """Send a request, and return its (complete) Response.

        Raise GatewayNotConnected if the gateway is not connected.
        """

        if not self._is_connected:
            raise exc.GatewayNotConnected(
                f"{self}: Unable to send {msg}: the gateway is not connected"
            )
        return await self._send_internal(msg)

    async def send_high_priority(self, msg: OpenMessage) -> Response:
        """Send a request, as send() (there is no separate high priority queue)."""
        return await self.send(msg)

    def _handle_management_dimensions(self, response: Response) -> None:
        for msg in response.messages:
            if not isinstance(msg, GatewayMgmt):
                continue

            if msg.dim == DimGateway.MAC_ADDRESS:
                try:
                    self._mac_addr = msg.parse_mac_address()
                except exc.FrameError:
                    _LOGGER.warning("%s: Cannot parse the MAC address: %s", self, msg)
                else:
                    _LOGGER.info("%s: MAC ADDRESS: %s", self, self.mac_address)

            elif msg.dim == DimGateway.FIRMWARE_VERSION:
                try:
                    self._firmware_version = msg.parse_firmware_version()
                except exc.FrameError:
                    _LOGGER.warning("%s: Cannot parse the firmware: %s", self, msg)
                else:
                    _LOGGER.info("%s: FIRMWARE: %s", self, self._firmware_version)

            else:
                _LOGGER.debug("%s: DIM %s is not supported", self, msg.dim)

    ####################################################################################
    # Connector callbacks

    def on_message(self, msg: OpenMessage) -> None:
        if self._discovery is not None:
            self._discovery.on_message(msg)
        self._notify_listeners("on_event_message", msg)

    def on_mon_disconnected(self, err: exc.OwnException | None) -> None:
        _LOGGER.debug("%s: MON disconnected: %s", self, err)

        self._notify_listeners("on_disconnected", err)
        self._is_connected = False

        if self.config.auto_reconnect and not self._close_requested:
            self._start_reconnect()

    ####################################################################################
    # Discovery

    def _discovery_factory(self) -> _DiscoveryEngine:
        raise NotImplementedError

    async def discover_devices(self) -> None:
        """Discover the devices of the gateway's network.

        Listeners are notified of each device via on_new_device(), and then via
        on_discovery_completed(). Any error aborts the discovery, and is raised.
        """

        _LOGGER.debug("%s: ----- discover_devices()", self)

        if self._is_discovering:
            raise exc.DiscoveryInProgress(f"{self}: Discovery is already in progress")
        if not self._is_connected:
            raise exc.GatewayNotConnected(
                f"{self}: Cannot discover devices, the gateway is not connected"
            )
        if self.config.disable_discovery:
            raise exc.DiscoveryError(f"{self}: Discovery is disabled by config")

        self._is_discovering = True
        self._discovery = self._discovery_factory()
        try:
            await self._discovery.run()
        finally:
            self._is_discovering = False
            self._discovery = None

    # for use by the discovery engines
    def _new_device(
        self, where: Where | None, device_type: DeviceType, msg: OpenMessage
    ) -> None:
        self._notify_listeners("on_new_device", where, device_type, msg)

    def _discovery_completed(self) -> None:
        self._notify_listeners("on_discovery_completed")


class BusGateway(OpenGateway):
    """A BUS gateway (e.g. MH202, F454, MyHOMEServer1), via TCP/IP."""

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_BUS_PORT,
        password: str | None = DEFAULT_BUS_PASSWORD,
        **kwargs: Any,
    ) -> None:
        self._host = host
        self._port = port
        self._password = password

        super().__init__(**kwargs)

    def __str__(self) -> str:
        return f"BUS_{self._host}:{self._port}"

    @property
    def host(self) -> str:
        return self._host

    @property
    def port(self) -> int:
        return self._port

    @property
    def password(self) -> str | None:
        return self._password

    @property
    def is_cmd_connection_ready(self) -> bool:
        """Return True if connected, and CMD was used successfully recently."""

        return (
            self._is_connected
            and self._connector is not None
            and self._connector.is_cmd_fresh
        )

    def _init_connector(self) -> BusConnector:
        _LOGGER.info("%s: Init BUS (%s:%s)...", self, self._host, self._port)
        return BusConnector(
            self._host,
            self._port,
            self._password,
            comms_params=self.config.comms_params,
        )

    def _discovery_factory(self) -> BusDiscovery:
        return BusDiscovery(self)


class UsbGateway(OpenGateway):
    """A USB (ZigBee) gateway (e.g. 3578, 088328), via a serial port."""

    def __init__(
        self,
        serial_port: str,
        port_config: PortConfigT | None = None,
        **kwargs: Any,
    ) -> None:
        self._serial_port = serial_port
        self._port_config = port_config

        super().__init__(**kwargs)

    def __str__(self) -> str:
        return f"USB_{self._serial_port}"

    @property
    def serial_port(self) -> str:
        return self._serial_port

    @property
    def is_cmd_connection_ready(self) -> bool:
        return (
            self._is_connected
            and self._connector is not None
            and self._connector.is_cmd_connected
        )

    def _init_connector(self) -> UsbConnector:
        _LOGGER.info("%s: Init USB (%s)...", self, self._serial_port)
        return UsbConnector(
            self._serial_port,
            port_config=self._port_config,
            comms_params=self.config.comms_params,
        )

    def _discovery_factory(self) -> UsbDiscovery:
        return UsbDiscovery(self)


def gateway_factory(
    gateway: str,
    /,
    *,
    password: str | None = DEFAULT_BUS_PASSWORD,
    port_config: PortConfigT | None = None,
    **kwargs: Any,
) -> BusGateway | UsbGateway:
    """Return a gateway from its name: either 'host[:port]', or a serial port."""

    if not is_bus_gateway(gateway):
        return UsbGateway(gateway, port_config=port_config, **kwargs)

    host, _, port = gateway.partition(":")
    return BusGateway(
        host, int(port) if port else DEFAULT_BUS_PORT, password, **kwargs
    )
