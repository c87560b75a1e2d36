#!/usr/bin/env python3
"""OpenWebNet - constants for the frame/protocol/transport layer."""

from __future__ import annotations

from enum import EnumCheck, IntEnum, StrEnum, verify
from typing import Final

#
# Frame literals
FRAME_START: Final = "*"
FRAME_START_DIM: Final = "*#"
FRAME_END: Final = "##"
FRAME_END_BYTES: Final = b"##"

FRAME_ACK: Final = "*#*1##"
FRAME_NACK: Final = "*#*0##"
FRAME_BUSY_NACK: Final = "*#*6##"

WHAT_COMMAND_TRANSLATION: Final = 1000

# session requests, and the HMAC markers a gateway may reply with
MON_SESSION: Final = "*99*1##"
CMD_SESSION: Final = "*99*0##"
CMD_SESSION_ALT: Final = "*99*9##"
HMAC_SHA1: Final = "*98*1##"
HMAC_SHA2: Final = "*98*2##"

#
# Timing constants (in seconds), gateways close idle/stalled connections
DEFAULT_CONNECT_TIMEOUT: Final[float] = 5
DEFAULT_CMD_READ_TIMEOUT: Final[float] = 30
DEFAULT_MON_READ_TIMEOUT: Final[float] = 120
DEFAULT_KEEPALIVE_PERIOD: Final[float] = 90
DEFAULT_HANDSHAKE_TIMEOUT: Final[float] = 2
DEFAULT_CMD_FRESH_WINDOW: Final[float] = 120

# reconnect back-off (in milliseconds)
RECONNECT_RETRY_AFTER: Final[int] = 2_500
RECONNECT_RETRY_AFTER_MAX: Final[int] = 60_000
RECONNECT_RETRY_MULTIPLIER: Final[int] = 2

#
# BUS (IP) gateways & USB (ZigBee) dongles
DEFAULT_BUS_PORT: Final[int] = 20000
DEFAULT_BUS_PASSWORD: Final = "12345"
DEFAULT_USB_BAUDRATE: Final[int] = 19200

USB_KEEP_CONNECT_DELAY: Final[float] = 0.05

# firmware versions up to (and including) these have known defects
FIRMWARE_OLD_THRESHOLD: Final = "1.2.3"  # missing final ACK for dimension requests
FIRMWARE_AUTOMATION_BUG: Final = "1.2.0"  # UP/DOWN are inverted

#
# Extra info keys (channels)
SZ_CHANNEL: Final = "channel"
SZ_SESSION: Final = "session"
SZ_AUTHENTICATED: Final = "authenticated"


@verify(EnumCheck.UNIQUE)
class Session(StrEnum):
    MON = "MON"
    CMD = "CMD"


@verify(EnumCheck.UNIQUE)
class Who(IntEnum):
    """The closed registry of WHO values (message families)."""

    SCENARIO = 0
    LIGHTING = 1
    AUTOMATION = 2
    LOAD_CONTROL = 3  # deprecated
    THERMOREGULATION = 4
    BURGLAR_ALARM = 5
    DOOR_ENTRY_SYSTEM = 6
    VIDEO_DOOR_ENTRY_SYSTEM = 7
    AUX = 9
    GATEWAY_MANAGEMENT = 13
    LIGHT_SHUTTER_ACTUATORS_LOCK = 14
    CEN_SCENARIO_SCHEDULER = 15
    SOUND_SYSTEM_1 = 16  # deprecated
    SCENARIO_PROGRAMMING = 17
    ENERGY_MANAGEMENT = 18
    SOUND_SYSTEM_2 = 22
    LIGHTING_MANAGEMENT = 24
    CEN_PLUS_SCENARIO_SCHEDULER = 25
    DIAGNOSTIC = 1000
    AUTOMATION_DIAGNOSTIC = 1001
    THERMOREGULATION_DIAGNOSTIC = 1004
    DEVICE_DIAGNOSTIC = 1013
    ENERGY_MANAGEMENT_DIAGNOSTIC = 1018


@verify(EnumCheck.UNIQUE)
class DeviceType(IntEnum):
    """The type of a device, as inferred from its messages (or its product info)."""

    UNKNOWN = 0
    SCENARIO_CONTROL = 2
    BASIC_SCENARIO = 3
    #
    ZIGBEE_ON_OFF_SWITCH = 256
    ZIGBEE_DIMMER_CONTROL = 257
    ZIGBEE_DIMMER_SWITCH = 258
    ZIGBEE_SWITCH_MOTION_DETECTOR = 259
    ZIGBEE_DAYLIGHT_SENSOR = 260
    SCS_ON_OFF_SWITCH = 261
    SCS_DIMMER_CONTROL = 262
    SCS_DIMMER_SWITCH = 263
    ZIGBEE_WATERPROOF_1_GANG_SWITCH = 264
    ZIGBEE_AUTOMATIC_DIMMER_SWITCH = 265
    ZIGBEE_TOGGLE_CONTROL = 266
    SCS_TOGGLE_CONTROL = 267
    ZIGBEE_MOTION_DETECTOR = 268
    ZIGBEE_SWITCH_MOTION_DETECTOR_II = 269
    ZIGBEE_MOTION_DETECTOR_II = 270
    ZIGBEE_AUXILIARY_MOTION_CONTROL = 271
    SCS_AUXILIARY_TOGGLE_CONTROL = 272
    MULTIFUNCTION_SCENARIO_CONTROL = 273
    ZIGBEE_ON_OFF_CONTROL = 274
    ZIGBEE_AUXILIARY_ON_OFF_1_GANG_SWITCH = 275
    #
    SCS_TEMP_SENSOR = 410
    SCS_THERMOSTAT = 420
    SCS_THERMO_CENTRAL_UNIT = 430
    #
    ZIGBEE_SHUTTER_CONTROL = 512
    ZIGBEE_SHUTTER_SWITCH = 513
    SCS_SHUTTER_CONTROL = 514
    SCS_SHUTTER_SWITCH = 515
    #
    SCS_1_SYSTEM_1_4_GATEWAY = 1024
    SCS_2_SYSTEM_1_4_GATEWAY = 1025
    NETWORK_REPEATER = 1029
    OPENWEBNET_INTERFACE = 1030
    VIDEO_SWITCHER = 1536
    #
    SCS_ENERGY_CENTRAL_UNIT = 1830
    SCS_ENERGY_METER = 1831
    SCS_DRY_CONTACT_IR = 2510
    #
    SCS_ALARM_CENTRAL_UNIT = 5100
    SCS_ALARM_ZONE = 5110

    @property
    def description(self) -> str:
        return self.name.replace("_", " ").title()
