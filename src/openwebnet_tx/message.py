#!/usr/bin/env python3
"""OpenWebNet - the message model: a typed decoding of a frame.

The WHERE is decoded (and validated) eagerly, at construction. The WHAT & DIM are
decoded lazily, on first access: a failure is logged once, and cached as None.
"""

from __future__ import annotations

import logging
from enum import IntEnum
from functools import cached_property
from typing import ClassVar, Final

from . import exceptions as exc
from .const import (
    FRAME_ACK,
    FRAME_BUSY_NACK,
    FRAME_NACK,
    WHAT_COMMAND_TRANSLATION,
    DeviceType,
    Who,
)
from .frame import FrameParts, validate_frame
from .where import Where, WhereZigBee


#
# NOTE: All debug flags should be False for deployment to end-users
_DBG_WARN_IF_DEVICE_TYPE_FAILS: Final[bool] = False

_LOGGER = logging.getLogger(__name__)


class OpenMessage:
    """The base class of all messages, which are equal if their frames are equal."""

    def __init__(self, frame: str) -> None:
        self._frame = frame

    def __repr__(self) -> str:
        return self._frame

    def __str__(self) -> str:
        return self._frame

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OpenMessage):
            return NotImplemented
        return self._frame == other._frame

    def __hash__(self) -> int:
        return hash(self._frame)

    @property
    def frame_value(self) -> str:
        return self._frame

    @property
    def who(self) -> Who | None:
        return None

    @property
    def is_command(self) -> bool:
        return False

    @property
    def is_ack(self) -> bool:
        return self._frame == FRAME_ACK

    @property
    def is_nack(self) -> bool:
        return self._frame == FRAME_NACK

    @property
    def is_busy_nack(self) -> bool:
        return self._frame == FRAME_BUSY_NACK

    @property
    def is_terminal(self) -> bool:
        """Return True if this message ends a command exchange."""
        return self.is_ack or self.is_nack or self.is_busy_nack

    def to_string_verbose(self) -> str:
        return f"<{self._frame}>"


class AckMessage(OpenMessage):
    """An ACK, NACK or BUSY-NACK: it has no WHO, WHAT nor WHERE."""

    def __init__(self, frame: str) -> None:
        if frame not in (FRAME_ACK, FRAME_NACK, FRAME_BUSY_NACK):
            raise exc.FrameMalformed(f"Bad frame: not an ACK literal: >>>{frame}<<<")
        super().__init__(frame)

    def to_string_verbose(self) -> str:
        name = "ACK" if self.is_ack else "NACK" if self.is_nack else "BUSY_NACK"
        return f"<{self._frame}>{{{name}}}"


ACK: Final = AckMessage(FRAME_ACK)
NACK: Final = AckMessage(FRAME_NACK)
BUSY_NACK: Final = AckMessage(FRAME_BUSY_NACK)


class BaseOpenMessage(OpenMessage):
    """The base class of the WHO message families.

    Subclasses declare their WHO, their WHAT & DIM tables and their WHERE grammar.
    """

    WHO: ClassVar[Who]

    _WHAT: ClassVar[type[IntEnum] | None] = None
    _DIM: ClassVar[type[IntEnum] | None] = None
    _WHERE_CLASS: ClassVar[type[Where]] = Where
    _WHERE_REQUIRED: ClassVar[bool] = False
    _WHERE_ZIGBEE: ClassVar[bool] = False  # may also be addressed by a ZigBee WHERE

    def __init__(self, frame: str, parts: FrameParts | None = None) -> None:
        """Create a message from a frame, raising FrameMalformed if it is invalid."""

        super().__init__(validate_frame(frame))

        self._parts = parts or FrameParts.from_frame(frame)
        if self._parts.who != self.WHO:
            raise exc.FrameMalformed(
                f"Bad frame: WHO is not {self.WHO.value}: >>>{frame}<<<"
            )

        self._where = self._parse_where(self._parts.where)

    @property
    def who(self) -> Who:
        return self.WHO

    @property
    def is_command(self) -> bool:
        return not self._parts.is_dimension

    @property
    def parts(self) -> FrameParts:
        return self._parts

    #
    # WHERE

    def _parse_where(self, value: str) -> Where | None:
        """Return the WHERE of the frame (None if there isn't one)."""

        if not value:
            if self._WHERE_REQUIRED:
                raise exc.FrameMalformed(f"Bad frame: has no WHERE: >>>{self}<<<")
            return None
        if self._WHERE_ZIGBEE and WhereZigBee.is_zigbee(value):
            return WhereZigBee(value)
        return self._WHERE_CLASS(value)

    @property
    def where(self) -> Where | None:
        return self._where

    #
    # WHAT

    @cached_property
    def _what_decoded(self) -> tuple[IntEnum, bool, tuple[int, ...]] | None:
        if self._parts.is_dimension:
            return None
        try:
            return self._decode_what(self._parts.what)
        except exc.FrameError as err:
            _LOGGER.warning("%s < Unable to decode the WHAT: %s", self, err)
            return None

    def _decode_what(self, value: str) -> tuple[IntEnum, bool, tuple[int, ...]]:
        """Return (WHAT, is_command_translation, command_params) from the WHAT."""

        if not value:
            raise exc.FrameMalformed("Frame has no WHAT")
        try:
            parts = [int(p) for p in value.split("#")]
        except ValueError as err:
            raise exc.FrameMalformed(f"Invalid integer in WHAT: {value}") from err

        is_translation = parts[0] == WHAT_COMMAND_TRANSLATION and len(parts) > 1
        if is_translation:
            parts = parts[1:]

        if self._WHAT is None:
            raise exc.FrameUnsupported(f"Unsupported WHAT: {value}")
        try:
            what = self._WHAT(parts[0])
        except ValueError as err:
            raise exc.FrameUnsupported(f"Unsupported WHAT: {value}") from err

        return what, is_translation, tuple(parts[1:])

    @property
    def what(self) -> IntEnum | None:
        return self._what_decoded[0] if self._what_decoded else None

    @property
    def is_command_translation(self) -> bool:
        return self._what_decoded[1] if self._what_decoded else False

    @property
    def command_params(self) -> tuple[int, ...]:
        return self._what_decoded[2] if self._what_decoded else ()

    #
    # DIM

    @cached_property
    def _dim_decoded(self) -> tuple[IntEnum, bool, tuple[int, ...]] | None:
        if not self._parts.is_dimension or not self._parts.dim:
            return None
        try:
            return self._decode_dim(self._parts.dim)
        except exc.FrameError as err:
            _LOGGER.warning("%s < Unable to decode the DIM: %s", self, err)
            return None

    def _decode_dim(self, value: str) -> tuple[IntEnum, bool, tuple[int, ...]]:
        """Return (DIM, is_dim_writing, dim_params) from the DIM."""

        is_writing = value.startswith("#")
        try:
            parts = [int(p) for p in value.removeprefix("#").split("#")]
        except ValueError as err:
            raise exc.FrameMalformed(f"Invalid DIM in frame: {value}") from err

        if self._DIM is None:
            raise exc.FrameUnsupported(f"Unsupported DIM: {value}")
        try:
            dim = self._DIM(parts[0])
        except ValueError as err:
            raise exc.FrameUnsupported(f"Unsupported DIM: {value}") from err

        return dim, is_writing, tuple(parts[1:])

    @property
    def dim(self) -> IntEnum | None:
        return self._dim_decoded[0] if self._dim_decoded else None

    @property
    def is_dim_writing(self) -> bool:
        return self._parts.dim.startswith("#")

    @property
    def dim_params(self) -> tuple[int, ...]:
        return self._dim_decoded[2] if self._dim_decoded else ()

    @property
    def dim_values(self) -> tuple[str, ...]:
        return self._parts.dim_values

    #
    # Device type

    def _detect_device_type(self) -> DeviceType | None:
        return None

    def detect_device_type(self) -> DeviceType | None:
        """Return the type of the device that sent (or is the target of) this msg."""

        try:
            return self._detect_device_type()
        except exc.FrameError as err:
            (_LOGGER.warning if _DBG_WARN_IF_DEVICE_TYPE_FAILS else _LOGGER.debug)(
                "%s < Unable to detect the device type: %s", self, err
            )
            return None

    def to_string_verbose(self) -> str:
        verbose = f"<{self._frame}>{{WHO={self.WHO.name}"
        if self.is_command:
            verbose += f", WHAT={self.what.name if self.what is not None else None}"
            if self.is_command_translation:
                verbose += ", translation"
            if self.command_params:
                verbose += f", params={list(self.command_params)}"
        if self._where is not None:
            verbose += f", WHERE={self._where.value}"
        if not self.is_command:
            verbose += f", DIM={self.dim.name if self.dim is not None else None}"
            if self.is_dim_writing:
                verbose += ", writing"
            if self.dim_params:
                verbose += f", params={list(self.dim_params)}"
            if self.dim_values:
                verbose += f", values={list(self.dim_values)}"
        return verbose + "}"

