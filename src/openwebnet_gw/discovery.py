#!/usr/bin/env python3
"""OpenWebNet - discovery of the devices of a gateway's network.

A discovery is a one-off session: it is created by discover_devices(), emits one
on_new_device() per device found, then on_discovery_completed() exactly once (or
raises, without the completion event), and is then discarded.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Final

from openwebnet_tx import (
    Alarm,
    Automation,
    Auxiliary,
    BaseOpenMessage,
    CENPlusScenario,
    DeviceType,
    EnergyManagementDiagnostic,
    GatewayMgmt,
    Lighting,
    ThermoregulationDiagnostic,
    parse,
)
from openwebnet_tx.families import DimGateway
from openwebnet_tx.schemas import SZ_CMD_READ_TIMEOUT

from . import exceptions as exc

if TYPE_CHECKING:
    from openwebnet_tx import OpenMessage, Response, Where

    from .gateway import OpenGateway

#
# NOTE: All debug flags should be False for deployment to end-users
_DBG_LOG_DISCOVERY: Final[bool] = False

_LOGGER = logging.getLogger(__name__)

# the requests of a BUS discovery, in the order they are sent
DISCOVERY_CATEGORIES: Final[tuple[tuple[str, str, type[BaseOpenMessage]], ...]] = (
    ("lighting", "*#1*0##", Lighting),
    ("automation", "*#2*0##", Automation),
    ("energy", "*#1018*0*7##", EnergyManagementDiagnostic),
    ("thermoregulation", "*#1004*0*7##", ThermoregulationDiagnostic),
    ("dry contacts", "*#25*30##", CENPlusScenario),
    ("auxiliary", "*#9*0##", Auxiliary),
    ("alarm", "*#5*0##", Alarm),
)

_FoundT = tuple["Where | None", DeviceType, "OpenMessage"]


def _is_99_zones(where: Where | None) -> bool:
    return where is not None and where.value.startswith("#")


class _DiscoveryEngine:
    """The base discovery session (it is not reusable)."""

    def __init__(self, gwy: OpenGateway) -> None:
        self._gwy = gwy

        self._found: set[tuple[str | None, DeviceType]] = set()
        self._has_run = False

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._gwy})"

    async def run(self) -> None:
        """Discover the devices, and then notify completion."""

        if self._has_run:
            raise exc.DiscoveryError(f"{self}: A discovery session cannot be re-used")
        self._has_run = True

        _LOGGER.debug("%s: ----- ### STARTING A NEW DISCOVERY...", self)

        try:
            await self._discover()
        except exc.OwnException as err:
            _LOGGER.error("%s: ----- # Error while discovering devices: %s", self, err)
            raise

        _LOGGER.debug("%s: ----- ### DISCOVERY COMPLETED", self)
        self._gwy._discovery_completed()

    async def _discover(self) -> None:
        raise NotImplementedError

    def on_message(self, msg: OpenMessage) -> None:
        """Process an event message received during the discovery."""

    def _emit(
        self, where: Where | None, device_type: DeviceType, msg: OpenMessage
    ) -> None:
        key = (where.value if where else None, device_type)
        if key in self._found:
            _LOGGER.debug("%s: Device already found: %s (%s)", self, where, msg)
            return
        self._found.add(key)

        if _DBG_LOG_DISCOVERY:
            _LOGGER.warning(
                "%s: Found %s at %s (%s)", self, device_type.name, where, msg
            )
        else:
            _LOGGER.info("%s: Found %s at %s (%s)", self, device_type.name, where, msg)

        self._gwy._new_device(where, device_type, msg)


class BusDiscovery(_DiscoveryEngine):
    """Discover devices via a status request per category, one category at a time."""

    async def _discover(self) -> None:
        for category, frame, msg_class in DISCOVERY_CATEGORIES:
            _LOGGER.debug("%s: ----- # %s discovery", self, category.upper())

            response = await self._gwy._send_internal(parse(frame))
            found = self._classify(response, msg_class)

            if msg_class is ThermoregulationDiagnostic:
                found = self._dedup_thermo(found)
            elif msg_class is Alarm:
                found = self._dedup_alarm(found)

            for where, device_type, msg in found:
                self._emit(where, device_type, msg)

    @staticmethod
    def _classify(
        response: Response, msg_class: type[BaseOpenMessage]
    ) -> list[_FoundT]:
        """Return the devices found in a Response, in the order they were received."""

        result = []
        for msg in response.messages:
            if not isinstance(msg, msg_class):
                continue
            if (device_type := msg.detect_device_type()) is not None:
                result.append((msg.where, device_type, msg))
        return result

    @staticmethod
    def _dedup_thermo(found: list[_FoundT]) -> list[_FoundT]:
        """Return only one central unit (99-zone over 4-zone), ahead of all others."""

        central: _FoundT | None = None
        others = []

        for item in found:
            if item[1] != DeviceType.SCS_THERMO_CENTRAL_UNIT:
                others.append(item)
            elif central is None or (
                not _is_99_zones(central[0]) and _is_99_zones(item[0])
            ):
                central = item

        return ([central] if central else []) + others

    @staticmethod
    def _dedup_alarm(found: list[_FoundT]) -> list[_FoundT]:
        """Return only the first central unit (all the zones are kept)."""

        result = []
        has_central = False

        for item in found:
            if item[1] == DeviceType.SCS_ALARM_CENTRAL_UNIT:
                if has_central:
                    continue
                has_central = True
            result.append(item)
        return result


class UsbDiscovery(_DiscoveryEngine):
    """Discover devices via a network scan, and then a request per product."""

    def __init__(self, gwy: OpenGateway) -> None:
        super().__init__(gwy)
        self._product_count: asyncio.Future[int] | None = None

    def on_message(self, msg: OpenMessage) -> None:
        """Look for the number of products, which is reported after a scan."""

        fut = self._product_count
        if fut is None or fut.done():
            return
        if not isinstance(msg, GatewayMgmt) or msg.dim != DimGateway.NB_NETW_PROD:
            return

        try:
            fut.set_result(msg.parse_product_count())
        except exc.FrameError as err:
            fut.set_exception(err)

    async def _scan_network(self) -> int:
        """Scan the network, and return the number of products found."""

        timeout = self._gwy.config.comms_params[SZ_CMD_READ_TIMEOUT]
        fut = self._product_count = asyncio.get_running_loop().create_future()

        try:
            response = await self._gwy._send_internal(
                GatewayMgmt.request_scan_network()
            )
            if not response.is_success:
                raise exc.DiscoveryError(
                    f"{self}: Cannot discover devices, the scan returned: {response}"
                )

            for msg in response.messages:  # the count may arrive as a reply
                self.on_message(msg)

            try:
                count = await asyncio.wait_for(asyncio.shield(fut), timeout)
            except TimeoutError as err:
                raise exc.TransportTimeout(
                    f"{self}: No product count within {timeout} secs of the scan"
                ) from err

        finally:
            self._product_count = None
            if not fut.done():
                fut.cancel()

        _LOGGER.debug("%s: ----- # %s products found", self, count)
        return count

    async def _discover(self) -> None:
        count = await self._scan_network()

        for index in range(count - 1, -1, -1):  # starting from the last product
            try:
                response = await self._gwy._send_internal(
                    GatewayMgmt.request_product_info(index)
                )
            except exc.FrameError as err:
                _LOGGER.warning(
                    "%s: Product %s is invalid, skipping it: %s", self, index, err
                )
                continue

            if not response.is_success:
                _LOGGER.debug("%s: Product %s was not found: %s", self, index, response)

            for msg in response.messages:
                if isinstance(msg, GatewayMgmt) and msg.dim == DimGateway.PRODUCT_INFO:
                    self._emit(msg.where, msg.parse_product_device_type(), msg)
