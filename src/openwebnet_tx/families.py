#!/usr/bin/env python3
"""OpenWebNet - the message families (one per supported WHO), and their builders."""

from __future__ import annotations

import logging
import math
from enum import EnumCheck, IntEnum, StrEnum, verify
from typing import Final

from . import exceptions as exc
from .const import DeviceType, Who
from .frame import (
    FrameParts,
    build_command,
    build_dimension_request,
    build_dimension_write,
    build_status_request,
)
from .message import BaseOpenMessage
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

_LOGGER = logging.getLogger(__name__)


@verify(EnumCheck.UNIQUE)
class DimDiagnostic(IntEnum):
    DIAGNOSTIC = 7


########################################################################################
# WHO = 0, basic scenarios


@verify(EnumCheck.UNIQUE)
class WhatScenario(IntEnum):
    SCENARIO_01 = 1
    SCENARIO_02 = 2
    SCENARIO_03 = 3
    SCENARIO_04 = 4
    SCENARIO_05 = 5
    SCENARIO_06 = 6
    SCENARIO_07 = 7
    SCENARIO_08 = 8
    SCENARIO_09 = 9
    SCENARIO_10 = 10
    SCENARIO_11 = 11
    SCENARIO_12 = 12
    SCENARIO_13 = 13
    SCENARIO_14 = 14
    SCENARIO_15 = 15
    SCENARIO_16 = 16
    SCENARIO_17 = 17  # 17-20 only by the IR module
    SCENARIO_18 = 18
    SCENARIO_19 = 19
    SCENARIO_20 = 20
    START_RECORDING_SCENARIO = 40  # 40-46 only by the central unit
    END_RECORDING_SCENARIO = 41
    ERASE_SCENARIO = 42
    LOCK_SCENARIOS_CU = 43
    UNLOCK_SCENARIOS_CU = 44
    UNAVAILABLE_SCENARIO_CU = 45
    MEMORY_FULL_CU = 46


class Scenario(BaseOpenMessage):
    WHO = Who.SCENARIO

    _WHAT = WhatScenario
    _WHERE_CLASS = WhereLightAutom
    _WHERE_REQUIRED = True

    @classmethod
    def request_scenario(cls, where: str, scenario: int) -> Scenario:
        """Return a message to activate scenario 1-20 of a scenario module."""
        return cls(build_command(cls.WHO, WhatScenario(scenario), where))

    def _detect_device_type(self) -> DeviceType | None:
        return DeviceType.BASIC_SCENARIO if self.is_command else None


########################################################################################
# WHO = 1, lighting


@verify(EnumCheck.UNIQUE)
class WhatLighting(IntEnum):
    OFF = 0
    ON = 1
    DIMMER_LEVEL_2 = 2
    DIMMER_LEVEL_3 = 3
    DIMMER_LEVEL_4 = 4
    DIMMER_LEVEL_5 = 5
    DIMMER_LEVEL_6 = 6
    DIMMER_LEVEL_7 = 7
    DIMMER_LEVEL_8 = 8
    DIMMER_LEVEL_9 = 9
    DIMMER_LEVEL_10 = 10
    DIMMER_LEVEL_UP = 30
    DIMMER_LEVEL_DOWN = 31
    DIMMER_TOGGLE = 32
    MOVEMENT_DETECTED = 34
    END_MOVEMENT_DETECTED = 39


@verify(EnumCheck.UNIQUE)
class DimLighting(IntEnum):
    DIMMER_LEVEL_100 = 1


DIMMER_LEVEL_100_OFF: Final[int] = 100
DIMMER_LEVEL_100_MAX: Final[int] = 200


class Lighting(BaseOpenMessage):
    """Lighting messages (WHO = 1), of SCS lights and ZigBee lights."""

    WHO = Who.LIGHTING

    _WHAT = WhatLighting
    _DIM = DimLighting
    _WHERE_CLASS = WhereLightAutom
    _WHERE_REQUIRED = True
    _WHERE_ZIGBEE = True

    @classmethod
    def request_turn_on(cls, where: str) -> Lighting:
        return cls(build_command(cls.WHO, WhatLighting.ON, where))

    @classmethod
    def request_turn_off(cls, where: str) -> Lighting:
        return cls(build_command(cls.WHO, WhatLighting.OFF, where))

    @classmethod
    def request_dim_to(cls, where: str, level: WhatLighting | int) -> Lighting:
        """Return a message to dim a light to a level (a WHAT, e.g. DIMMER_LEVEL_5)."""
        return cls(build_command(cls.WHO, WhatLighting(level), where))

    @classmethod
    def request_status(cls, where: str) -> Lighting:
        return cls(build_status_request(cls.WHO, where))

    @property
    def is_on(self) -> bool:
        return self.what == WhatLighting.ON

    @property
    def is_off(self) -> bool:
        return self.what == WhatLighting.OFF

    def parse_dimmer_level_100(self) -> int:
        """Return the brightness (0-100%) of a DIMMER_LEVEL_100 dimension frame."""

        if self.dim != DimLighting.DIMMER_LEVEL_100 or not self.dim_values:
            raise exc.FrameError(f"Could not parse dimmerLevel100: {self}")
        try:
            level_100 = int(self.dim_values[0])
        except ValueError as err:
            raise exc.FrameMalformed(f"Invalid dimmerLevel100: {self}") from err
        if not DIMMER_LEVEL_100_OFF <= level_100 <= DIMMER_LEVEL_100_MAX:
            raise exc.FrameError(f"Value for dimmerLevel100 out of range: {self}")
        return level_100 - DIMMER_LEVEL_100_OFF

    @staticmethod
    def level_to_percent(level: int) -> int:
        """Convert a 0-10 level to a 0-100 percentage (a linear mapping)."""

        if not 0 <= level <= 10:
            raise ValueError("level must be between 0 and 10")
        return level * 10

    @staticmethod
    def percent_to_what(percent: int) -> WhatLighting:
        """Convert a 0-100 percentage to the WHAT of the nearest level (OFF, 2-10)."""

        if not 0 <= percent <= 100:
            raise ValueError("percent must be between 0 and 100")
        if percent == 0:
            return WhatLighting.OFF
        if percent < 10:
            return WhatLighting.DIMMER_LEVEL_2
        return WhatLighting(max(percent // 10, 2))  # level 1 is not allowed

    def _detect_device_type(self) -> DeviceType | None:
        if not self.is_command or self.what is None:
            return None
        if self.what in (
            WhatLighting.OFF,
            WhatLighting.ON,
            WhatLighting.MOVEMENT_DETECTED,
            WhatLighting.END_MOVEMENT_DETECTED,
        ):
            return DeviceType.SCS_ON_OFF_SWITCH
        if 2 <= self.what <= 10:
            return DeviceType.SCS_DIMMER_SWITCH
        return None


########################################################################################
# WHO = 2, automation (shutters)


@verify(EnumCheck.UNIQUE)
class WhatAutomation(IntEnum):
    STOP = 0
    UP = 1
    DOWN = 2


@verify(EnumCheck.UNIQUE)
class DimAutomation(IntEnum):
    DIMMER_LEVEL_100 = 1


class Automation(BaseOpenMessage):
    WHO = Who.AUTOMATION

    _WHAT = WhatAutomation
    _DIM = DimAutomation
    _WHERE_CLASS = WhereLightAutom
    _WHERE_REQUIRED = True
    _WHERE_ZIGBEE = True

    @classmethod
    def request_stop(cls, where: str) -> Automation:
        return cls(build_command(cls.WHO, WhatAutomation.STOP, where))

    @classmethod
    def request_move_up(cls, where: str) -> Automation:
        return cls(build_command(cls.WHO, WhatAutomation.UP, where))

    @classmethod
    def request_move_down(cls, where: str) -> Automation:
        return cls(build_command(cls.WHO, WhatAutomation.DOWN, where))

    @classmethod
    def request_status(cls, where: str) -> Automation:
        return cls(build_status_request(cls.WHO, where))

    @property
    def is_stop(self) -> bool:
        return self.what == WhatAutomation.STOP

    @property
    def is_up(self) -> bool:
        return self.what == WhatAutomation.UP

    @property
    def is_down(self) -> bool:
        return self.what == WhatAutomation.DOWN

    @classmethod
    def convert_up_down(cls, msg: Automation) -> Automation:
        """Return the message with UP & DOWN swapped (any other message is unchanged).

        Some USB firmware report (and expect) UP & DOWN the wrong way round.
        """

        if msg.what not in (WhatAutomation.UP, WhatAutomation.DOWN):
            return msg

        swapped = WhatAutomation.DOWN if msg.is_up else WhatAutomation.UP
        what_parts = msg.parts.what.split("#")
        what_parts[1 if msg.is_command_translation else 0] = str(swapped.value)

        sections = list(msg.parts.sections)
        sections[1] = "#".join(what_parts)
        parts = FrameParts(is_dimension=False, sections=tuple(sections))
        return cls(parts.to_frame(), parts)

    def _detect_device_type(self) -> DeviceType | None:
        return DeviceType.SCS_SHUTTER_CONTROL if self.is_command else None


########################################################################################
# WHO = 4, thermoregulation


@verify(EnumCheck.UNIQUE)
class WhatThermo(IntEnum):
    CONDITIONING = 0
    HEATING = 1
    GENERIC = 3
    PROTECTION_HEATING = 102  # antifreeze
    PROTECTION_CONDITIONING = 202
    PROTECTION_GENERIC = 302
    OFF_HEATING = 103
    OFF_CONDITIONING = 203
    OFF_GENERIC = 303
    MANUAL_HEATING = 110
    MANUAL_CONDITIONING = 210
    MANUAL_GENERIC = 310
    PROGRAM_HEATING = 111  # the zone follows the program of the central unit
    PROGRAM_CONDITIONING = 211
    PROGRAM_GENERIC = 311
    HOLIDAY_HEATING = 115  # the zone follows the holiday program of the central unit
    HOLIDAY_CONDITIONING = 215
    HOLIDAY_GENERIC = 315


@verify(EnumCheck.UNIQUE)
class ThermoMode(IntEnum):
    HEATING = 1
    CONDITIONING = 2
    GENERIC = 3


@verify(EnumCheck.UNIQUE)
class LocalOffset(StrEnum):
    """The local offset knob of a thermostat."""

    PLUS_3 = "03"
    PLUS_2 = "02"
    PLUS_1 = "01"
    NORMAL = "00"
    MINUS_1 = "11"
    MINUS_2 = "12"
    MINUS_3 = "13"
    OFF = "4"
    PROTECTION = "5"

    @property
    def label(self) -> str:
        return _LOCAL_OFFSET_LABELS[self]


_LOCAL_OFFSET_LABELS: Final[dict[LocalOffset, str]] = {
    LocalOffset.PLUS_3: "+3",
    LocalOffset.PLUS_2: "+2",
    LocalOffset.PLUS_1: "+1",
    LocalOffset.NORMAL: "NORMAL",
    LocalOffset.MINUS_1: "-1",
    LocalOffset.MINUS_2: "-2",
    LocalOffset.MINUS_3: "-3",
    LocalOffset.OFF: "OFF",
    LocalOffset.PROTECTION: "PROTECTION",
}


@verify(EnumCheck.UNIQUE)
class DimThermo(IntEnum):
    TEMPERATURE = 0
    TEMP_TARGET = 12
    OFFSET = 13
    TEMP_SETPOINT = 14
    PROBE_TEMPERATURE = 15
    VALVES_STATUS = 19
    ACTUATOR_STATUS = 20


class Thermoregulation(BaseOpenMessage):
    """Thermoregulation messages (WHO = 4): zones, probes, actuators & central units.

    Temperatures are encoded as 4 digits, a sign digit then tenths of a degree: for
    example, '0235' is +23.5 °C and '1048' is -4.8 °C.
    """

    WHO = Who.THERMOREGULATION

    _WHAT = WhatThermo
    _DIM = DimThermo
    _WHERE_CLASS = WhereThermo
    _WHERE_REQUIRED = True

    @classmethod
    def request_write_setpoint_temperature(
        cls, where: str, temperature: float, mode: ThermoMode | int
    ) -> Thermoregulation:
        """Return a message to set the setpoint of a zone: *#4*where*#14*T*M##."""
        return cls(
            build_dimension_write(
                cls.WHO,
                where,
                DimThermo.TEMP_SETPOINT,
                cls.encode_temperature(temperature),
                str(ThermoMode(mode).value),
            )
        )

    @classmethod
    def request_turn_off(cls, where: str) -> Thermoregulation:
        return cls(build_command(cls.WHO, WhatThermo.OFF_GENERIC, where))

    @classmethod
    def request_temperature(cls, where: str) -> Thermoregulation:
        return cls(build_dimension_request(cls.WHO, where, DimThermo.TEMPERATURE))

    @classmethod
    def request_setpoint_temperature(cls, where: str) -> Thermoregulation:
        return cls(build_dimension_request(cls.WHO, where, DimThermo.TEMP_SETPOINT))

    @classmethod
    def request_status(cls, where: str) -> Thermoregulation:
        return cls(build_status_request(cls.WHO, where))

    @classmethod
    def request_valves_status(cls, where: str) -> Thermoregulation:
        return cls(build_dimension_request(cls.WHO, where, DimThermo.VALVES_STATUS))

    def parse_temperature(self) -> float:
        """Return the temperature of a temperature dimension frame (DIM 0/12/14/15).

        Thermostats report it in the first value, probes (DIM 15) in the second.
        """

        values = self.dim_values
        try:
            if self.dim in (
                DimThermo.TEMPERATURE,
                DimThermo.TEMP_SETPOINT,
                DimThermo.TEMP_TARGET,
            ):
                return self.decode_temperature(values[0])
            if self.dim == DimThermo.PROBE_TEMPERATURE:
                return self.decode_temperature(values[1])
        except (IndexError, ValueError) as err:
            raise exc.FrameMalformed(f"Invalid temperature: {self}: {err}") from err
        raise exc.FrameError(f"Could not parse temperature from: {self}")

    @property
    def local_offset(self) -> LocalOffset | None:
        if self.dim != DimThermo.OFFSET or not self.dim_values:
            return None
        try:
            return LocalOffset(self.dim_values[0])
        except ValueError:
            return None

    @staticmethod
    def decode_temperature(value: str) -> float:
        """Convert (say) '0235' to 23.5, '1048' to -4.8, and '025' to 2.5."""

        value = value.removeprefix("#")
        if not value.isdigit():
            raise ValueError(f"Unrecognized temperature format: {value}")

        if len(value) == 4:
            sign = -1 if value[0] == "1" else 1
            result = sign * int(value[1:]) / 10
        elif len(value) == 3:
            result = int(value) / 10
        else:
            raise ValueError(f"Unrecognized temperature format: {value}")
        return round(result, 2)

    @staticmethod
    def encode_temperature(temperature: float) -> str:
        """Convert (say) 23.51 to '0235', and -4.86 to '1049'."""

        tenths = math.floor(abs(temperature) * 10 + 0.5)
        sign = "1" if temperature < 0 and tenths else "0"
        return f"{sign}{tenths:03d}"

    def _detect_device_type(self) -> DeviceType | None:
        where = self.where
        if not isinstance(where, WhereThermo):
            return None
        if where.is_probe:
            return DeviceType.SCS_TEMP_SENSOR
        if where.is_central_unit or where.value.startswith("0"):
            return None
        return DeviceType.SCS_THERMOSTAT


class ThermoregulationDiagnostic(BaseOpenMessage):
    WHO = Who.THERMOREGULATION_DIAGNOSTIC

    _DIM = DimDiagnostic
    _WHERE_CLASS = WhereThermo
    _WHERE_REQUIRED = True
    _WHERE_ZIGBEE = True

    @classmethod
    def request_diagnostic(cls, where: str) -> ThermoregulationDiagnostic:
        return cls(build_dimension_request(cls.WHO, where, DimDiagnostic.DIAGNOSTIC))

    def _detect_device_type(self) -> DeviceType | None:
        where = self.where
        if not isinstance(where, WhereThermo):
            return None
        if where.value.startswith("0") or where.is_central_unit:
            return DeviceType.SCS_THERMO_CENTRAL_UNIT
        if where.is_probe:
            return DeviceType.SCS_TEMP_SENSOR
        return DeviceType.SCS_THERMOSTAT


########################################################################################
# WHO = 5, burglar alarm


@verify(EnumCheck.UNIQUE)
class WhatAlarm(IntEnum):
    SYSTEM_MAINTENANCE = 0
    SYSTEM_ACTIVE = 1
    SYSTEM_INACTIVE = 2
    DELAY_END = 3
    SYSTEM_BATTERY_FAULT = 4
    SYSTEM_BATTERY_OK = 5
    SYSTEM_NETWORK_ERROR = 6
    SYSTEM_NETWORK_OK = 7
    SYSTEM_ENGAGED = 8
    SYSTEM_DISENGAGED = 9
    SYSTEM_BATTERY_UNLOADED = 10
    ZONE_ENGAGED = 11
    ZONE_ALARM_TECHNICAL = 12
    ZONE_ALARM_TECHNICAL_RESET = 13
    NO_CONNECTION_TO_DEVICE = 14
    ZONE_ALARM_INTRUSION = 15
    ZONE_ALARM_TAMPERING = 16
    ZONE_ALARM_ANTI_PANIC = 17
    ZONE_DISENGAGED = 18
    START_PROGRAMMING = 26
    STOP_PROGRAMMING = 27
    ZONE_ALARM_SILENT = 31


class Alarm(BaseOpenMessage):
    WHO = Who.BURGLAR_ALARM

    _WHAT = WhatAlarm
    _WHERE_CLASS = WhereAlarm

    @classmethod
    def request_system_status(cls) -> Alarm:
        return cls(build_status_request(cls.WHO, "0"))

    @classmethod
    def request_zone_status(cls, where: str) -> Alarm:
        return cls(build_status_request(cls.WHO, where))

    def _detect_device_type(self) -> DeviceType | None:
        if not self.is_command:
            return None
        if self.where is None:
            return DeviceType.SCS_ALARM_CENTRAL_UNIT
        return DeviceType.SCS_ALARM_ZONE


########################################################################################
# WHO = 9, auxiliary


@verify(EnumCheck.UNIQUE)
class WhatAuxiliary(IntEnum):
    OFF = 0
    ON = 1
    TOGGLE = 2
    STOP = 3
    UP = 4
    DOWN = 5
    ENABLED = 6
    DISABLED = 7
    RESET_GEN = 8
    RESET_BI = 9
    RESET_TRI = 10


class Auxiliary(BaseOpenMessage):
    WHO = Who.AUX

    _WHAT = WhatAuxiliary
    _WHERE_CLASS = WhereAuxiliary
    _WHERE_REQUIRED = True
    _WHERE_ZIGBEE = True

    @classmethod
    def request_turn_on(cls, where: str) -> Auxiliary:
        return cls(build_command(cls.WHO, WhatAuxiliary.ON, where))

    @classmethod
    def request_turn_off(cls, where: str) -> Auxiliary:
        return cls(build_command(cls.WHO, WhatAuxiliary.OFF, where))

    @classmethod
    def request_status(cls, where: str) -> Auxiliary:
        return cls(build_status_request(cls.WHO, where))

    @property
    def is_on(self) -> bool:
        return self.what == WhatAuxiliary.ON

    @property
    def is_off(self) -> bool:
        return self.what == WhatAuxiliary.OFF

    def _detect_device_type(self) -> DeviceType | None:
        if not self.is_command or self.what is None:
            return None
        return DeviceType.SCS_AUXILIARY_TOGGLE_CONTROL


########################################################################################
# WHO = 13, gateway management


@verify(EnumCheck.UNIQUE)
class WhatGateway(IntEnum):
    BOOT_MODE = 12  # USB gateways only
    RESET_DEVICE = 22
    CREATE_NETWORK = 30
    CLOSE_NETWORK = 31
    OPEN_NETWORK = 32
    JOIN_NETWORK = 33
    LEAVE_NETWORK = 34
    KEEP_CONNECT = 60
    SCAN = 65
    SUPERVISOR = 66


@verify(EnumCheck.UNIQUE)
class DimGateway(IntEnum):
    MAC_ADDRESS = 12
    MODEL = 15
    FIRMWARE_VERSION = 16
    HARDWARE_VERSION = 17
    WHO_IMPLEMENTED = 26
    PRODUCT_INFO = 66
    NB_NETW_PROD = 67
    IDENTIFY = 70
    ZIGBEE_CHANNEL = 71


class GatewayMgmt(BaseOpenMessage):
    """Gateway management messages (WHO = 13)."""

    WHO = Who.GATEWAY_MANAGEMENT

    _WHAT = WhatGateway
    _DIM = DimGateway
    _WHERE_CLASS = WhereZigBee

    @classmethod
    def request_supervisor(cls) -> GatewayMgmt:
        return cls(build_command(cls.WHO, WhatGateway.SUPERVISOR))

    @classmethod
    def request_keep_connect(cls) -> GatewayMgmt:
        return cls(build_command(cls.WHO, WhatGateway.KEEP_CONNECT))

    @classmethod
    def request_mac_address(cls) -> GatewayMgmt:
        return cls(build_dimension_request(cls.WHO, "", DimGateway.MAC_ADDRESS))

    @classmethod
    def request_model(cls) -> GatewayMgmt:
        return cls(build_dimension_request(cls.WHO, "", DimGateway.MODEL))

    @classmethod
    def request_firmware_version(cls) -> GatewayMgmt:
        return cls(build_dimension_request(cls.WHO, "", DimGateway.FIRMWARE_VERSION))

    @classmethod
    def request_scan_network(cls) -> GatewayMgmt:
        return cls(build_command(cls.WHO, WhatGateway.SCAN))

    @classmethod
    def request_product_info(cls, index: int) -> GatewayMgmt:
        """Return a product info request: *#13**66*<index>## (the index is a value)."""
        frame = build_dimension_request(cls.WHO, "", DimGateway.PRODUCT_INFO)
        return cls(f"{frame[:-2]}*{index}##")

    def parse_mac_address(self) -> tuple[int, ...]:
        """Return the MAC address (6 or 8 bytes, the values are in decimal)."""

        if self.dim != DimGateway.MAC_ADDRESS:
            raise exc.FrameError(f"Not a MAC address frame: {self}")
        try:
            return tuple(int(v) & 0xFF for v in self.dim_values)
        except ValueError as err:
            raise exc.FrameMalformed(f"Invalid MAC address: {self}") from err

    def parse_firmware_version(self) -> str:
        """Return the firmware version (as 'a.b.c')."""

        if self.dim != DimGateway.FIRMWARE_VERSION or len(self.dim_values) < 3:
            raise exc.FrameError(f"Not a firmware version frame: {self}")
        return ".".join(self.dim_values[:3])

    def parse_product_count(self) -> int:
        """Return the number of products reported by an NB_NETW_PROD frame."""

        if self.dim != DimGateway.NB_NETW_PROD or not self.dim_values:
            raise exc.FrameError(f"Not a product count frame: {self}")
        try:
            return int(self.dim_values[0])
        except ValueError as err:
            raise exc.FrameMalformed(f"Invalid product count: {self}") from err

    def parse_product_device_type(self) -> DeviceType:
        """Return the device type of a PRODUCT_INFO frame (its last value)."""

        if self.dim == DimGateway.PRODUCT_INFO and len(self.dim_values) > 1:
            try:
                return DeviceType(int(self.dim_values[-1]))
            except ValueError:
                pass
        _LOGGER.warning("%s < Cannot recognize the device type", self)
        return DeviceType.UNKNOWN


########################################################################################
# WHO = 15, CEN scenarios


WhatCEN = verify(EnumCheck.UNIQUE)(
    IntEnum("WhatCEN", {f"BUTTON_{i:02d}": i for i in range(32)})
)


@verify(EnumCheck.UNIQUE)
class CENPressure(IntEnum):
    START_PRESSURE = 0
    RELEASE_SHORT_PRESSURE = 1
    RELEASE_EXTENDED_PRESSURE = 2
    EXTENDED_PRESSURE = 3


class CENScenario(BaseOpenMessage):
    WHO = Who.CEN_SCENARIO_SCHEDULER

    _WHAT = WhatCEN
    _WHERE_CLASS = Where
    _WHERE_REQUIRED = True

    @staticmethod
    def _what_from_button(button: int) -> str:
        if not 0 <= button <= 31:
            raise ValueError("button number must be between 0 and 31")
        return f"{button:02d}"

    @classmethod
    def virtual_start_pressure(cls, where: str, button: int) -> CENScenario:
        return cls(build_command(cls.WHO, cls._what_from_button(button), where))

    @classmethod
    def _virtual_pressure(
        cls, where: str, button: int, pressure: CENPressure
    ) -> CENScenario:
        what = f"{cls._what_from_button(button)}#{pressure.value}"
        return cls(build_command(cls.WHO, what, where))

    @classmethod
    def virtual_release_short_pressure(cls, where: str, button: int) -> CENScenario:
        return cls._virtual_pressure(where, button, CENPressure.RELEASE_SHORT_PRESSURE)

    @classmethod
    def virtual_extended_pressure(cls, where: str, button: int) -> CENScenario:
        return cls._virtual_pressure(where, button, CENPressure.EXTENDED_PRESSURE)

    @classmethod
    def virtual_release_extended_pressure(cls, where: str, button: int) -> CENScenario:
        return cls._virtual_pressure(
            where, button, CENPressure.RELEASE_EXTENDED_PRESSURE
        )

    @property
    def button_number(self) -> int | None:
        return None if self.what is None else int(self.what)

    @property
    def button_pressure(self) -> CENPressure | None:
        if self.what is None:
            return None
        if not self.command_params:
            return CENPressure.START_PRESSURE
        try:
            return CENPressure(self.command_params[0])
        except ValueError:
            return None

    def _detect_device_type(self) -> DeviceType | None:
        return DeviceType.SCENARIO_CONTROL if self.is_command else None


########################################################################################
# WHO = 18, energy management


@verify(EnumCheck.UNIQUE)
class WhatEnergy(IntEnum):
    AUTOMATIC_RESET_ON = 26
    AUTOMATIC_RESET_OFF = 27


@verify(EnumCheck.UNIQUE)
class DimEnergy(IntEnum):
    ACTIVE_POWER = 113
    ACTIVE_POWER_NOTIFICATION_TIME = 1200


class EnergyManagement(BaseOpenMessage):
    WHO = Who.ENERGY_MANAGEMENT

    _WHAT = WhatEnergy
    _DIM = DimEnergy
    _WHERE_CLASS = WhereEnergyManager
    _WHERE_REQUIRED = True
    _WHERE_ZIGBEE = True

    @classmethod
    def request_active_power(cls, where: str) -> EnergyManagement:
        return cls(build_dimension_request(cls.WHO, where, DimEnergy.ACTIVE_POWER))

    @classmethod
    def set_active_power_notifications_time(
        cls, where: str, minutes: int
    ) -> EnergyManagement:
        """Return a message to have the active power notified for a period (minutes)."""
        return cls(
            build_dimension_write(
                cls.WHO,
                where,
                f"{DimEnergy.ACTIVE_POWER_NOTIFICATION_TIME.value}#1",
                str(minutes),
            )
        )

    @property
    def active_power(self) -> int | None:
        """Return the active power (in W) of an ACTIVE_POWER frame, else None."""

        if self.dim != DimEnergy.ACTIVE_POWER or not self.dim_values:
            return None
        try:
            return int(self.dim_values[0])
        except ValueError:
            return None

    def _detect_device_type(self) -> DeviceType | None:
        return DeviceType.SCS_ENERGY_CENTRAL_UNIT


class EnergyManagementDiagnostic(BaseOpenMessage):
    WHO = Who.ENERGY_MANAGEMENT_DIAGNOSTIC

    _DIM = DimDiagnostic
    _WHERE_CLASS = WhereEnergyManagement
    _WHERE_REQUIRED = True
    _WHERE_ZIGBEE = True

    @classmethod
    def request_diagnostic(cls, where: str) -> EnergyManagementDiagnostic:
        return cls(build_dimension_request(cls.WHO, where, DimDiagnostic.DIAGNOSTIC))

    def _detect_device_type(self) -> DeviceType | None:
        if self.where is not None and self.where.value.startswith("5"):
            return DeviceType.SCS_ENERGY_METER
        return None


########################################################################################
# WHO = 25, CEN+ scenarios (incl. dry contacts & IR sensors)


@verify(EnumCheck.UNIQUE)
class WhatCENPlus(IntEnum):
    SHORT_PRESSURE = 21
    START_EXT_PRESSURE = 22
    EXT_PRESSURE = 23
    RELEASE_EXT_PRESSURE = 24
    ON_IR_DETECTION = 31  # dry contacts & IR sensors
    OFF_IR_NO_DETECTION = 32


@verify(EnumCheck.UNIQUE)
class CENPlusPressure(IntEnum):
    SHORT_PRESSURE = WhatCENPlus.SHORT_PRESSURE.value
    START_EXTENDED_PRESSURE = WhatCENPlus.START_EXT_PRESSURE.value
    EXTENDED_PRESSURE = WhatCENPlus.EXT_PRESSURE.value
    RELEASE_EXTENDED_PRESSURE = WhatCENPlus.RELEASE_EXT_PRESSURE.value


class CENPlusScenario(BaseOpenMessage):
    WHO = Who.CEN_PLUS_SCENARIO_SCHEDULER

    _WHAT = WhatCENPlus
    _WHERE_CLASS = Where
    _WHERE_REQUIRED = True

    @classmethod
    def request_status(cls, where: str) -> CENPlusScenario:
        return cls(build_status_request(cls.WHO, where))

    @classmethod
    def _virtual_pressure(
        cls, where: str, button: int, what: WhatCENPlus
    ) -> CENPlusScenario:
        return cls(build_command(cls.WHO, f"{what.value}#{button}", where))

    @classmethod
    def virtual_short_pressure(cls, where: str, button: int) -> CENPlusScenario:
        return cls._virtual_pressure(where, button, WhatCENPlus.SHORT_PRESSURE)

    @classmethod
    def virtual_start_extended_pressure(
        cls, where: str, button: int
    ) -> CENPlusScenario:
        return cls._virtual_pressure(where, button, WhatCENPlus.START_EXT_PRESSURE)

    @classmethod
    def virtual_extended_pressure(cls, where: str, button: int) -> CENPlusScenario:
        return cls._virtual_pressure(where, button, WhatCENPlus.EXT_PRESSURE)

    @classmethod
    def virtual_release_extended_pressure(
        cls, where: str, button: int
    ) -> CENPlusScenario:
        return cls._virtual_pressure(where, button, WhatCENPlus.RELEASE_EXT_PRESSURE)

    @property
    def is_dry_contact_ir(self) -> bool:
        return self.what in (
            WhatCENPlus.ON_IR_DETECTION,
            WhatCENPlus.OFF_IR_NO_DETECTION,
        )

    @property
    def is_on(self) -> bool:
        return self.what == WhatCENPlus.ON_IR_DETECTION

    @property
    def is_off(self) -> bool:
        return self.what == WhatCENPlus.OFF_IR_NO_DETECTION

    @property
    def button_number(self) -> int | None:
        if self.is_dry_contact_ir or not self.command_params:
            return None
        return self.command_params[0]

    @property
    def button_pressure(self) -> CENPlusPressure | None:
        if self.what is None or self.is_dry_contact_ir:
            return None
        return CENPlusPressure(self.what.value)

    def _detect_device_type(self) -> DeviceType | None:
        if not self.is_command:
            return None
        if self.is_dry_contact_ir:
            return DeviceType.SCS_DRY_CONTACT_IR
        return DeviceType.MULTIFUNCTION_SCENARIO_CONTROL
