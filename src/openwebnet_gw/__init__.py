#!/usr/bin/env python3
"""OpenWebNet - an asyncio client of BTicino/Legrand OpenWebNet gateways.

Works with (amongst others):
- BUS gateways (via TCP/IP): MH202, F454, F455, MyHOMEServer1
- USB (ZigBee) gateways (via a serial port): 3578, 088328
"""

from __future__ import annotations

import logging

from openwebnet_tx import DeviceType, OpenMessage, Response, Where, parse  # noqa: F401

from .discovery import BusDiscovery, UsbDiscovery  # noqa: F401
from .gateway import (  # noqa: F401
    BusGateway,
    GatewayListener,
    OpenGateway,
    UsbGateway,
    gateway_factory,
)
from .version import VERSION  # noqa: F401

_LOGGER = logging.getLogger(__name__)


class GracefulExit(SystemExit):
    code = 1
