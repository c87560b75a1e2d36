#!/usr/bin/env python3
"""OpenWebNet - the WHERE (address) grammars of the various message families.

Every WHERE is validated when it is created: a value outside its family's grammar
raises FrameMalformed immediately.
"""

from __future__ import annotations

import re
from typing import Final

from . import exceptions as exc

WHERE_REGEX: Final = re.compile(r"^[0-9#]+$")


class Where:
    """The base WHERE class: a non-empty string of digits and '#'."""

    def __init__(self, value: str) -> None:
        if not value or not isinstance(value, str) or not WHERE_REGEX.match(value):
            raise exc.FrameMalformed(f"Invalid WHERE: {value!r}")
        self._value = value

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._value!r})"

    def __str__(self) -> str:
        return self._value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Where):
            return NotImplemented
        return self._value == other._value

    def __hash__(self) -> int:
        return hash(self._value)

    @property
    def value(self) -> str:
        return self._value

    @staticmethod
    def _as_int(value: str, min_: int, max_: int, where: str) -> int:
        """Return value as an int within [min_, max_], or raise FrameMalformed."""

        if not value.isdigit() or not min_ <= (result := int(value)) <= max_:
            raise exc.FrameMalformed(
                f"Invalid WHERE: {where!r} ({value!r} not in range)"
            )
        return result


class WhereLightAutom(Where):
    """WHERE for lighting, automation (shutters) and basic scenarios.

    General: '0'; area: '00', '1'-'9', '100'; group: '#1'-'#255'; point-to-point:
    'AP', 'APL' (PL 10-15) or 'AAPP'; each may have a local bus suffix '#4#I'.
    """

    GENERAL: Final = "0"

    def __init__(self, value: str) -> None:
        super().__init__(value)

        self._area: int | None = None
        self._point: int | None = None
        self._group: int | None = None
        self._bus: int | None = None

        base, sep, bus = value.rpartition("#4#")
        if sep:
            self._bus = self._as_int(bus, 1, 15, value)
        else:
            base = value

        if not base:  # e.g. '#4#01', the general of a local bus
            if not sep:
                raise exc.FrameMalformed(f"Invalid WHERE: {value!r}")
        elif base == self.GENERAL:
            pass
        elif base.startswith("#"):
            self._group = self._as_int(base[1:], 1, 255, value)
        elif len(base) == 1:
            self._area = self._as_int(base, 1, 9, value)
        elif len(base) == 2:
            if base == "00":
                self._area = 0
            else:
                self._area = self._as_int(base[0], 1, 9, value)
                self._point = self._as_int(base[1], 1, 9, value)
        elif len(base) == 3:
            if base == "100":
                self._area = 10
            else:
                self._area = self._as_int(base[0], 1, 9, value)
                self._point = self._as_int(base[1:], 10, 15, value)
        elif len(base) == 4:
            self._area = self._as_int(base[:2], 0, 10, value)
            self._point = self._as_int(base[2:], 1, 15, value)
        else:
            raise exc.FrameMalformed(f"Invalid WHERE: {value!r}")

    @property
    def area(self) -> int | None:
        return self._area

    @property
    def point(self) -> int | None:
        return self._point

    @property
    def group(self) -> int | None:
        return self._group

    @property
    def bus(self) -> int | None:
        """Return the local bus (interface) number, if any."""
        return self._bus

    @property
    def is_general(self) -> bool:
        return self._area is None and self._group is None

    @property
    def is_area(self) -> bool:
        return self._area is not None and self._point is None

    @property
    def is_group(self) -> bool:
        return self._group is not None


class WhereThermo(Where):
    """WHERE for thermoregulation.

    Central units: '0' (4-zone), '#0', '#Z' and '#0#Z' (99-zone), '0#0' (general);
    zones: '1'-'99'; actuators: 'Z#N' (N 0-9); probes: '5NN'.
    """

    def __init__(self, value: str) -> None:
        super().__init__(value)

        self._zone: int | None = None
        self._actuator: int | None = None
        self._is_probe = False

        if value in ("0", "0#0", "#0"):
            self._zone = 0

        elif value.startswith("#"):
            parts = value[1:].split("#")
            if len(parts) > 2:
                raise exc.FrameMalformed(f"Invalid WHERE: {value!r}")
            for part in parts:
                self._zone = self._as_int(part, 0, 99, value)

        elif "#" in value:
            zone, _, actuator = value.partition("#")
            self._zone = self._as_int(zone, 0, 99, value)
            self._actuator = self._as_int(actuator, 0, 9, value)

        elif len(value) == 3 and value.startswith("5"):
            self._is_probe = True
            self._zone = self._as_int(value[1:], 0, 99, value)

        else:
            self._zone = self._as_int(value, 1, 99, value)

    @property
    def zone(self) -> int | None:
        return self._zone

    @property
    def actuator(self) -> int | None:
        return self._actuator

    @property
    def is_probe(self) -> bool:
        return self._is_probe

    @property
    def is_central_unit(self) -> bool:
        return self._value == "0" or self._value.startswith("#")


class WhereZigBee(Where):
    """WHERE for ZigBee devices: '<addr><unit>#9', where unit is '00', '01' or '02'."""

    UNIT_ALL: Final = "00"
    UNIT_01: Final = "01"
    UNIT_02: Final = "02"
    ZB_NETWORK: Final = "#9"

    def __init__(self, value: str) -> None:
        super().__init__(value)

        if (
            len(value) < 4
            or not value.endswith(self.ZB_NETWORK)
            or value.rfind("#") <= 0
        ):
            raise exc.FrameMalformed(f"Invalid ZigBee WHERE: {value!r}")

        self._unit = value[-4:-2]
        self._addr = value[:-4]

        if self._unit not in (self.UNIT_ALL, self.UNIT_01, self.UNIT_02):
            raise exc.FrameMalformed(f"Invalid ZigBee WHERE: {value!r} (bad unit)")
        if not self._addr.isdigit():
            raise exc.FrameMalformed(f"Invalid ZigBee WHERE: {value!r} (bad address)")

    @classmethod
    def is_zigbee(cls, value: str) -> bool:
        """Return True if the value looks like a ZigBee WHERE (rather than a BUS one).

        For example, '702053501#9' is ZigBee, whilst '1#9' (a thermo actuator) and
        '12#4#9' (a point on local bus 9) are not.
        """
        addr_unit = value.removesuffix(cls.ZB_NETWORK)
        return addr_unit != value and len(addr_unit) > 2 and addr_unit.isdigit()

    @property
    def unit(self) -> str:
        return self._unit

    @property
    def addr(self) -> str:
        return self._addr

    def value_with_unit(self, unit: str) -> str:
        """Return the WHERE of another unit of the same device."""
        return f"{self._addr}{unit}{self.ZB_NETWORK}"


class WhereAlarm(Where):
    """WHERE for the burglar alarm: '#Z' (zone), 'Z' or 'ZS' (zone & sensor)."""

    _ZONES: Final = (*range(9), 12, 15)

    def __init__(self, value: str) -> None:
        super().__init__(value)

        self._sensor: int | None = None

        if value.startswith("#"):
            self._zone = self._as_int(value[1:], 0, 99, value)
        else:
            self._zone = int(value[0])
            if len(value) > 1:
                self._sensor = self._as_int(value[1:], 0, 999, value)

        if self._zone not in self._ZONES:
            raise exc.FrameMalformed(f"Invalid alarm WHERE: {value!r} (bad zone)")

    @property
    def zone(self) -> int:
        return self._zone

    @property
    def sensor(self) -> int | None:
        return self._sensor


class WhereAuxiliary(Where):
    """WHERE for auxiliary channels: '0'-'9'."""

    def __init__(self, value: str) -> None:
        super().__init__(value)
        self._channel = self._as_int(value, 0, 9, value) if len(value) == 1 else -1
        if self._channel < 0:
            raise exc.FrameMalformed(f"Invalid auxiliary WHERE: {value!r}")

    @property
    def channel(self) -> int:
        return self._channel


class WhereEnergyManager(Where):
    """WHERE for energy management: '51' (general), '1N', '5N' or '7N#0'."""

    GENERAL: Final = "51"

    def __init__(self, value: str) -> None:
        super().__init__(value)

        if value == self.GENERAL:
            self._number = 0
            return

        match value[0]:
            case "1":
                self._number = self._as_int(value[1:], 1, 127, value)
            case "5":
                self._number = self._as_int(value[1:], 1, 255, value)
            case "7" if value.endswith("#0"):
                self._number = self._as_int(value[1:-2], 1, 127, value)
            case _:
                raise exc.FrameMalformed(f"Invalid energy WHERE: {value!r}")

    @property
    def kind(self) -> str:
        """Return the device kind digit: '1' (stop&go), '5' (meter), '7' (actuator)."""
        return self._value[0]

    @property
    def number(self) -> int:
        return self._number


class WhereEnergyManagement(WhereEnergyManager):
    """WHERE for energy management diagnostics: '0', '0#0', or a device WHERE."""

    def __init__(self, value: str) -> None:
        if value in ("0", "0#0"):
            Where.__init__(self, value)
            self._number = 0
            return
        super().__init__(value)

    @property
    def is_general(self) -> bool:
        return self._number == 0
