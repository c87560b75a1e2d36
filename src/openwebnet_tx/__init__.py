#!/usr/bin/env python3
"""OpenWebNet - an asyncio OpenWebNet (BTicino/Legrand) client library."""

from __future__ import annotations

import asyncio
from functools import partial
from typing import TYPE_CHECKING, Any

from .auth import calc_open_pass, negotiate
from .codec import MESSAGE_CLASSES, parse
from .const import (
    FRAME_ACK,
    FRAME_BUSY_NACK,
    FRAME_NACK,
    DeviceType,
    Session,
    Who,
)
from .families import (
    Alarm,
    Automation,
    Auxiliary,
    CENPlusScenario,
    CENScenario,
    EnergyManagement,
    EnergyManagementDiagnostic,
    GatewayMgmt,
    Lighting,
    Scenario,
    Thermoregulation,
    ThermoregulationDiagnostic,
)
from .frame import FRAME_LOGGER
from .logger import set_frame_logging
from .message import ACK, BUSY_NACK, NACK, AckMessage, BaseOpenMessage, OpenMessage
from .protocol import BusConnector, OwnConnectorT, UsbConnector, version_compare
from .response import Response
from .schemas import SZ_SERIAL_PORT, CommsParamsT, PortConfigT
from .transport import FrameChannel, UsbTransport, transport_factory
from .version import VERSION
from .where import (
    Where,
    WhereAlarm,
    WhereAuxiliary,
    WhereEnergyManagement,
    WhereEnergyManager,
    WhereLightAutom,
    WhereThermo,
    WhereZigBee,
)

__all__ = [
    "VERSION",
    #
    "FRAME_ACK",
    "FRAME_BUSY_NACK",
    "FRAME_NACK",
    "SZ_SERIAL_PORT",
    #
    "DeviceType",
    "Session",
    "Who",
    #
    "ACK",
    "BUSY_NACK",
    "NACK",
    "AckMessage",
    "BaseOpenMessage",
    "MESSAGE_CLASSES",
    "OpenMessage",
    "parse",
    #
    "Alarm",
    "Automation",
    "Auxiliary",
    "CENPlusScenario",
    "CENScenario",
    "EnergyManagement",
    "EnergyManagementDiagnostic",
    "GatewayMgmt",
    "Lighting",
    "Scenario",
    "Thermoregulation",
    "ThermoregulationDiagnostic",
    #
    "Where",
    "WhereAlarm",
    "WhereAuxiliary",
    "WhereEnergyManagement",
    "WhereEnergyManager",
    "WhereLightAutom",
    "WhereThermo",
    "WhereZigBee",
    #
    "calc_open_pass",
    "negotiate",
    #
    "BusConnector",
    "CommsParamsT",
    "OwnConnectorT",
    "PortConfigT",
    "Response",
    "UsbConnector",
    "version_compare",
    #
    "FrameChannel",
    "UsbTransport",
    "transport_factory",
    #
    "set_frame_logging_config",
]


if TYPE_CHECKING:
    from logging import Logger


async def set_frame_logging_config(**config: Any) -> Logger:
    """Set up frame logging to a file and/or the console.

    Runs in an executor, as opening the log file is a blocking call.

    :param config: if file_name is included, opens the frame log file
    :return: a logging.Logger
    """
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, partial(set_frame_logging, FRAME_LOGGER, **config))
    return FRAME_LOGGER
