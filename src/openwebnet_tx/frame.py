#!/usr/bin/env python3
"""OpenWebNet - the lexical layer: split and (re)build frames.

`*WHO*WHAT*WHERE##` is a command frame, `*#WHO*WHERE*DIM*V1*..*Vn##` a dimension
(status/measurement) frame. ACK, NACK and BUSY-NACK are fixed literals.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from typing import Final

from . import exceptions as exc
from .const import (
    FRAME_ACK,
    FRAME_BUSY_NACK,
    FRAME_END,
    FRAME_NACK,
    FRAME_START,
    FRAME_START_DIM,
)

FRAME_REGEX: Final = re.compile(r"^[0-9#*]+$")

# all frames sent and received are logged here (at INFO)
FRAME_LOGGER = logging.getLogger(f"{__name__}_log")  # openwebnet_tx.frame_log

ACK_LITERALS: Final = (FRAME_ACK, FRAME_NACK, FRAME_BUSY_NACK)


def validate_frame(frame: str | None) -> str:
    """Return the frame if it is lexically valid, else raise FrameMalformed."""

    if not frame or not isinstance(frame, str):
        raise exc.FrameMalformed(f"Bad frame: empty: >>>{frame!r}<<<")
    if not frame.endswith(FRAME_END):
        raise exc.FrameMalformed(f"Bad frame: no terminator: >>>{frame}<<<")
    if not frame.startswith(FRAME_START):
        raise exc.FrameMalformed(f"Bad frame: bad start: >>>{frame}<<<")
    if not FRAME_REGEX.match(frame):
        raise exc.FrameMalformed(f"Bad frame: invalid character(s): >>>{frame}<<<")
    return frame


@dataclasses.dataclass(frozen=True, kw_only=True)
class FrameParts:
    """The top-level sections of a (non-literal) frame.

    Empty sections are kept, so that to_frame() reproduces the frame exactly.
    """

    is_dimension: bool
    sections: tuple[str, ...]  # sections[0] is the WHO

    @classmethod
    def from_frame(cls, frame: str | None) -> FrameParts:
        """Split a frame into its sections, raising FrameMalformed if invalid."""

        frame = validate_frame(frame)
        if frame in ACK_LITERALS:
            raise exc.FrameMalformed(f"Bad frame: is an ACK literal: >>>{frame}<<<")

        is_dimension = frame.startswith(FRAME_START_DIM)
        body = frame[len(FRAME_START_DIM if is_dimension else FRAME_START) : -2]
        sections = tuple(body.split(FRAME_START))

        if len([s for s in sections if s]) < 2:
            raise exc.FrameMalformed(f"Bad frame: too few sections: >>>{frame}<<<")
        if not sections[0].isdigit():
            raise exc.FrameMalformed(f"Bad frame: invalid WHO: >>>{frame}<<<")

        return cls(is_dimension=is_dimension, sections=sections)

    def to_frame(self) -> str:
        start = FRAME_START_DIM if self.is_dimension else FRAME_START
        return start + FRAME_START.join(self.sections) + FRAME_END

    @property
    def who(self) -> int:
        return int(self.sections[0])

    def _section(self, idx: int) -> str:
        return self.sections[idx] if len(self.sections) > idx else ""

    @property
    def what(self) -> str:
        """Return the WHAT section (commands only, else empty)."""
        return "" if self.is_dimension else self._section(1)

    @property
    def where(self) -> str:
        """Return the WHERE section (may be empty)."""
        return self._section(1 if self.is_dimension else 2)

    @property
    def dim(self) -> str:
        """Return the DIM section (dimensions only, else empty)."""
        return self._section(2) if self.is_dimension else ""

    @property
    def dim_values(self) -> tuple[str, ...]:
        return self.sections[3:] if self.is_dimension else ()


########################################################################################
# Builders, the inverse of the above


def build_command(who: int, what: int | str, where: str = "") -> str:
    """Return a command frame: *WHO*WHAT*WHERE##."""
    return f"{FRAME_START}{who}*{what}*{where}{FRAME_END}"


def build_status_request(who: int, where: str = "") -> str:
    """Return a status request frame: *#WHO*WHERE##."""
    return f"{FRAME_START_DIM}{who}*{where}{FRAME_END}"


def build_dimension_request(who: int, where: str, dim: int) -> str:
    """Return a dimension request frame: *#WHO*WHERE*DIM##."""
    return f"{FRAME_START_DIM}{who}*{where}*{dim}{FRAME_END}"


def build_dimension_write(who: int, where: str, dim: int | str, *values: str) -> str:
    """Return a dimension write frame: *#WHO*WHERE*#DIM*V1*..*Vn##."""
    return f"{FRAME_START_DIM}{who}*{where}*#{dim}*{'*'.join(values)}{FRAME_END}"
