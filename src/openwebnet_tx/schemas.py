#!/usr/bin/env python3
"""OpenWebNet - an asyncio OpenWebNet client library.

Schema processor for protocol (lower) layer.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Final, TypedDict

import voluptuous as vol

from .const import (
    DEFAULT_BUS_PASSWORD,
    DEFAULT_BUS_PORT,
    DEFAULT_CMD_FRESH_WINDOW,
    DEFAULT_CMD_READ_TIMEOUT,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_HANDSHAKE_TIMEOUT,
    DEFAULT_KEEPALIVE_PERIOD,
    DEFAULT_MON_READ_TIMEOUT,
    DEFAULT_USB_BAUDRATE,
)

_LOGGER = logging.getLogger(__name__)


#
# 0/4: Session timing (all in seconds)
SZ_COMMS_PARAMS: Final = "comms_params"
SZ_CONNECT_TIMEOUT: Final = "connect_timeout"
SZ_CMD_READ_TIMEOUT: Final = "cmd_read_timeout"
SZ_MON_READ_TIMEOUT: Final = "mon_read_timeout"
SZ_KEEPALIVE_PERIOD: Final = "keepalive_period"
SZ_HANDSHAKE_TIMEOUT: Final = "handshake_timeout"
SZ_CMD_FRESH_WINDOW: Final = "cmd_fresh_window"

SCH_COMMS_PARAMS = vol.Schema(
    {
        vol.Required(SZ_CONNECT_TIMEOUT, default=DEFAULT_CONNECT_TIMEOUT): vol.All(
            vol.Coerce(float), vol.Range(min=0.01, max=60)
        ),
        vol.Required(SZ_CMD_READ_TIMEOUT, default=DEFAULT_CMD_READ_TIMEOUT): vol.All(
            vol.Coerce(float), vol.Range(min=0.01, max=300)
        ),
        vol.Required(SZ_MON_READ_TIMEOUT, default=DEFAULT_MON_READ_TIMEOUT): vol.All(
            vol.Coerce(float), vol.Range(min=0.01, max=600)
        ),
        vol.Required(SZ_KEEPALIVE_PERIOD, default=DEFAULT_KEEPALIVE_PERIOD): vol.All(
            vol.Coerce(float), vol.Range(min=0.01, max=600)
        ),
        vol.Required(SZ_HANDSHAKE_TIMEOUT, default=DEFAULT_HANDSHAKE_TIMEOUT): vol.All(
            vol.Coerce(float), vol.Range(min=0.01, max=30)
        ),
        vol.Required(SZ_CMD_FRESH_WINDOW, default=DEFAULT_CMD_FRESH_WINDOW): vol.All(
            vol.Coerce(float), vol.Range(min=0, max=3600)
        ),
    },
    extra=vol.PREVENT_EXTRA,
)


class CommsParamsT(TypedDict):
    connect_timeout: float
    cmd_read_timeout: float
    mon_read_timeout: float
    keepalive_period: float
    handshake_timeout: float
    cmd_fresh_window: float


#
# 1/4: Frame log configuration
SZ_FILE_NAME: Final = "file_name"
SZ_FRAME_LOG: Final = "frame_log"
SZ_ROTATE_BACKUPS: Final = "rotate_backups"
SZ_ROTATE_BYTES: Final = "rotate_bytes"


class FrameLogConfigT(TypedDict):
    file_name: str
    rotate_backups: int
    rotate_bytes: int | None


def sch_frame_log_dict_factory(
    default_backups: int = 0,
) -> dict[vol.Required, vol.Any]:
    """Return a frame log dict with a configurable default rotation policy.

    usage:

    SCH_FRAME_LOG_7 = vol.Schema(
        sch_frame_log_dict_factory(default_backups=7), extra=vol.PREVENT_EXTRA
    )
    """

    SCH_FRAME_LOG_CONFIG = vol.Schema(
        {
            vol.Optional(SZ_ROTATE_BACKUPS, default=default_backups): vol.Any(
                None, int
            ),
            vol.Optional(SZ_ROTATE_BYTES): vol.Any(None, int),
        },
        extra=vol.PREVENT_EXTRA,
    )

    SCH_FRAME_LOG_NAME = str

    def NormaliseFrameLog(rotate_backups: int = 0) -> Callable[..., Any]:
        def normalise_frame_log(node_value: str | FrameLogConfigT) -> FrameLogConfigT:
            if isinstance(node_value, str):
                return {
                    SZ_FILE_NAME: node_value,
                    SZ_ROTATE_BACKUPS: rotate_backups,
                    SZ_ROTATE_BYTES: None,
                }
            return node_value

        return normalise_frame_log

    return {  # SCH_FRAME_LOG_DICT
        vol.Required(SZ_FRAME_LOG, default=None): vol.Any(
            None,
            vol.All(
                SCH_FRAME_LOG_NAME,
                NormaliseFrameLog(rotate_backups=default_backups),
            ),
            SCH_FRAME_LOG_CONFIG.extend(
                {vol.Required(SZ_FILE_NAME): SCH_FRAME_LOG_NAME}
            ),
        )
    }


SCH_FRAME_LOG = vol.Schema(
    sch_frame_log_dict_factory(default_backups=7), extra=vol.PREVENT_EXTRA
)

#
# 2/4: Serial port configuration (USB/ZigBee gateways)
SZ_PORT_CONFIG: Final = "port_config"
SZ_PORT_NAME: Final = "port_name"
SZ_SERIAL_PORT: Final = "serial_port"

SZ_BAUDRATE: Final = "baudrate"
SZ_DSRDTR: Final = "dsrdtr"
SZ_RTSCTS: Final = "rtscts"
SZ_TIMEOUT: Final = "timeout"
SZ_XONXOFF: Final = "xonxoff"


SCH_SERIAL_PORT_CONFIG = vol.Schema(
    {
        vol.Optional(SZ_BAUDRATE, default=DEFAULT_USB_BAUDRATE): vol.All(
            vol.Coerce(int), vol.Any(9600, 19200, 38400, 57600, 115200)
        ),  # NB: the ZigBee USB gateway is 19200 8N1
        vol.Optional(SZ_DSRDTR, default=False): bool,
        vol.Optional(SZ_RTSCTS, default=False): bool,
        vol.Optional(SZ_TIMEOUT, default=0): vol.Any(None, int),
        vol.Optional(SZ_XONXOFF, default=False): bool,
    },
    extra=vol.PREVENT_EXTRA,
)


class PortConfigT(TypedDict):
    baudrate: int
    dsrdtr: bool
    rtscts: bool
    timeout: int
    xonxoff: bool


def sch_serial_port_dict_factory() -> dict[vol.Required, vol.Any]:
    """Return a serial port dict.

    usage:

    SCH_SERIAL_PORT = vol.Schema(
        sch_serial_port_dict_factory(), extra=vol.PREVENT_EXTRA
    )
    """

    SCH_SERIAL_PORT_NAME = str

    def NormaliseSerialPort() -> Callable[[str | PortConfigT], PortConfigT]:
        def normalise_serial_port(node_value: str | PortConfigT) -> PortConfigT:
            if isinstance(node_value, str):
                return {SZ_PORT_NAME: node_value} | SCH_SERIAL_PORT_CONFIG({})  # type: ignore[no-any-return]
            return node_value

        return normalise_serial_port

    return {  # SCH_SERIAL_PORT_DICT
        vol.Required(SZ_SERIAL_PORT): vol.Any(
            vol.All(
                SCH_SERIAL_PORT_NAME,
                NormaliseSerialPort(),
            ),
            SCH_SERIAL_PORT_CONFIG.extend(
                {vol.Required(SZ_PORT_NAME): SCH_SERIAL_PORT_NAME}
            ),
        )
    }


def extract_serial_port(ser_port_dict: dict[str, Any]) -> tuple[str, PortConfigT]:
    """Extract a serial port, port_config_dict tuple from a sch_serial_port_dict."""
    port_name: str = ser_port_dict.get(SZ_PORT_NAME)  # type: ignore[assignment]
    port_config = {k: v for k, v in ser_port_dict.items() if k != SZ_PORT_NAME}
    return port_name, port_config  # type: ignore[return-value]


#
# 3/4: BUS (TCP) gateway configuration
SZ_BUS_GATEWAY: Final = "bus_gateway"
SZ_HOST: Final = "host"
SZ_PORT: Final = "port"
SZ_PASSWORD: Final = "password"

SCH_PASSWORD = vol.All(vol.Coerce(str), vol.Match(r"^[0-9A-Za-z]*$"))

SCH_BUS_CONFIG = vol.Schema(
    {
        vol.Required(SZ_HOST): vol.All(str, vol.Length(min=1)),
        vol.Optional(SZ_PORT, default=DEFAULT_BUS_PORT): vol.All(
            vol.Coerce(int), vol.Range(min=1, max=65535)
        ),
        vol.Optional(SZ_PASSWORD, default=DEFAULT_BUS_PASSWORD): vol.Any(
            None, SCH_PASSWORD
        ),
    },
    extra=vol.PREVENT_EXTRA,
)


class BusConfigT(TypedDict):
    host: str
    port: int
    password: str | None


def sch_bus_gateway_dict_factory() -> dict[vol.Required, vol.Any]:
    """Return a BUS gateway dict, accepting either 'host[:port]' or a full dict."""

    def NormaliseBusGateway() -> Callable[[str | BusConfigT], BusConfigT]:
        def normalise_bus_gateway(node_value: str | BusConfigT) -> BusConfigT:
            if isinstance(node_value, str):
                host, _, port = node_value.partition(":")
                config: dict[str, Any] = {SZ_HOST: host}
                if port:
                    config[SZ_PORT] = port
                return SCH_BUS_CONFIG(config)  # type: ignore[no-any-return]
            return node_value

        return normalise_bus_gateway

    return {  # SCH_BUS_GATEWAY_DICT
        vol.Required(SZ_BUS_GATEWAY): vol.Any(
            vol.All(str, NormaliseBusGateway()),
            SCH_BUS_CONFIG,
        )
    }


#
# 4/4: Helpers


def is_bus_gateway(gateway: str) -> bool:
    """Return True if the gateway name is 'host[:port]' rather than a serial port.

    Serial port names are device paths (e.g. /dev/ttyUSB0), Windows port names
    (e.g. COM3), or pyserial URLs (e.g. rfc2217://localhost:5001).
    """

    if "://" in gateway or gateway.startswith("/"):
        return False
    if gateway.upper().startswith("COM") and gateway[3:].isdigit():
        return False
    return True
