#!/usr/bin/env python3
"""A virtual OpenWebNet gateway (and a virtual USB dongle), for testing."""

from .helpers import (  # noqa: F401
    ASSERT_CYCLE_TIME,
    COMMS_PARAMS,
    DEFAULT_MAX_SLEEP,
    GWY_CONFIG,
    EventRecorder,
    assert_condition,
    assert_event,
)
from .virtual_dongle import VirtualDongle, dongle_factory  # noqa: F401
from .virtual_gateway import (  # noqa: F401
    AUTH_HMAC,
    AUTH_NONE,
    AUTH_OPEN,
    FIRMWARE_VERSION,
    MAC_ADDRESS,
    VirtualGateway,
)
