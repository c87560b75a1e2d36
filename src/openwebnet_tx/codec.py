#!/usr/bin/env python3
"""OpenWebNet - parse frames into messages, dispatching on their WHO."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Final

from . import exceptions as exc
from .const import FRAME_ACK, FRAME_BUSY_NACK, FRAME_NACK, Who
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
from .frame import FrameParts
from .message import ACK, BUSY_NACK, NACK, BaseOpenMessage, OpenMessage

_LOGGER = logging.getLogger(__name__)


MESSAGE_CLASSES: Final[MappingProxyType[Who, type[BaseOpenMessage]]] = MappingProxyType(
    {
        cls.WHO: cls
        for cls in (
            Scenario,
            Lighting,
            Automation,
            Thermoregulation,
            Alarm,
            Auxiliary,
            GatewayMgmt,
            CENScenario,
            EnergyManagement,
            CENPlusScenario,
            ThermoregulationDiagnostic,
            EnergyManagementDiagnostic,
        )
    }
)

_ACK_MESSAGES: Final[MappingProxyType[str, OpenMessage]] = MappingProxyType(
    {FRAME_ACK: ACK, FRAME_NACK: NACK, FRAME_BUSY_NACK: BUSY_NACK}
)


def parse(frame: str | None) -> OpenMessage:
    """Return the message of a frame.

    Raise FrameMalformed if the frame (or its WHERE) is invalid, or its WHO is
    unknown, and FrameUnsupported if the WHO is known but not implemented.
    """

    if frame in _ACK_MESSAGES:
        return _ACK_MESSAGES[frame]  # type: ignore[index]

    parts = FrameParts.from_frame(frame)  # will raise FrameMalformed if invalid

    try:
        who = Who(parts.who)
    except ValueError as err:
        raise exc.FrameMalformed(f"Bad frame: unknown WHO: >>>{frame}<<<") from err

    if (cls := MESSAGE_CLASSES.get(who)) is None:
        raise exc.FrameUnsupported(f"Unsupported WHO ({who.name}): >>>{frame}<<<")

    return cls(parts.to_frame(), parts)
