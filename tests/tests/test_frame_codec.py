#!/usr/bin/env python3
"""OpenWebNet - Test the frame codec (splitting, parsing & building frames)."""

import pytest

from openwebnet_tx import (
    ACK,
    BUSY_NACK,
    NACK,
    Alarm,
    CENPlusScenario,
    GatewayMgmt,
    Lighting,
    Thermoregulation,
    parse,
)
from openwebnet_tx import exceptions as exc
from openwebnet_tx.families import DimThermo, WhatLighting
from openwebnet_tx.frame import (
    FrameParts,
    build_command,
    build_dimension_request,
    build_dimension_write,
    build_status_request,
    validate_frame,
)

GOOD_FRAMES = (
    "*0*1*11##",
    "*1*1*12##",
    "*1*0*0311#4#01##",
    "*#1*12##",
    "*#1*12*1*150*0##",
    "*2*1*41##",
    "*#4*1*0*0215##",
    "*#4*1*#14*0215*1##",
    "*5*1*##",
    "*9*1*4##",
    "*#13**12*0*3*80*1*2*3##",
    "*13*65*##",
    "*15*03#1*21##",
    "*#18*51*113*1234##",
    "*25*21#5*212##",
    "*#1004*0*7##",
    "*#1018*52*7##",
)

MALFORMED_FRAMES = (
    "",
    "*1*1*12",  # no terminator
    "1*1*12##",  # bad start
    "*1*a*12##",  # invalid character
    "*1##",  # too few sections
    "*99*1*12##",  # unknown WHO
    "*1*1##",  # lighting has no WHERE
    "*1*1*1234567##",  # invalid lighting WHERE
    "*#4*100*0##",  # invalid thermo WHERE
)

UNSUPPORTED_FRAMES = (
    "*6*1*11##",  # door entry
    "*7*1*11##",  # video door entry
    "*22*1*11##",  # sound system
)


@pytest.mark.parametrize("frame", GOOD_FRAMES)
def test_parse_good_frames(frame: str) -> None:
    msg = parse(frame)

    assert msg.frame_value == frame
    assert str(msg) == frame
    assert msg == parse(frame)
    assert hash(msg) == hash(parse(frame))

    assert FrameParts.from_frame(frame).to_frame() == frame


@pytest.mark.parametrize("frame", MALFORMED_FRAMES)
def test_parse_malformed_frames(frame: str) -> None:
    with pytest.raises(exc.FrameMalformed):
        parse(frame)


@pytest.mark.parametrize("frame", UNSUPPORTED_FRAMES)
def test_parse_unsupported_frames(frame: str) -> None:
    with pytest.raises(exc.FrameUnsupported):
        parse(frame)


def test_parse_ack_literals() -> None:
    assert parse("*#*1##") is ACK
    assert parse("*#*0##") is NACK
    assert parse("*#*6##") is BUSY_NACK

    assert ACK.is_ack and ACK.is_terminal and not ACK.is_nack
    assert NACK.is_nack and NACK.is_terminal
    assert BUSY_NACK.is_busy_nack and BUSY_NACK.is_terminal

    assert ACK.who is None
    assert not ACK.is_command
    assert ACK.to_string_verbose() == "<*#*1##>{ACK}"

    assert not parse("*1*1*12##").is_terminal

    with pytest.raises(exc.FrameMalformed):
        FrameParts.from_frame("*#*1##")


def test_validate_frame() -> None:
    assert validate_frame("*1*1*12##") == "*1*1*12##"

    for frame in (None, "", "*1*1*12#", "#1*1*12##", "*1* 1*12##"):
        with pytest.raises(exc.FrameMalformed):
            validate_frame(frame)


def test_frame_parts() -> None:
    parts = FrameParts.from_frame("*1*1000#1*0311#4#01##")
    assert not parts.is_dimension
    assert parts.who == 1
    assert parts.what == "1000#1"
    assert parts.where == "0311#4#01"
    assert parts.dim == ""
    assert parts.dim_values == ()

    parts = FrameParts.from_frame("*#4*1*#14*0215*3##")
    assert parts.is_dimension
    assert parts.who == 4
    assert parts.what == ""
    assert parts.where == "1"
    assert parts.dim == "#14"
    assert parts.dim_values == ("0215", "3")

    parts = FrameParts.from_frame("*#13**16*1*2*4##")  # an empty WHERE is kept
    assert parts.where == ""
    assert parts.sections == ("13", "", "16", "1", "2", "4")
    assert parts.to_frame() == "*#13**16*1*2*4##"


def test_builders() -> None:
    assert build_command(1, 1, "12") == "*1*1*12##"
    assert build_command(13, 60) == "*13*60*##"
    assert build_status_request(1, "12") == "*#1*12##"
    assert build_dimension_request(4, "1", 0) == "*#4*1*0##"
    assert build_dimension_request(13, "", 12) == "*#13**12##"
    assert build_dimension_write(4, "1", 14, "0215", "3") == "*#4*1*#14*0215*3##"

    # enums are written as their values
    assert build_command(1, WhatLighting.DIMMER_LEVEL_5, "12") == "*1*5*12##"
    assert build_dimension_request(4, "1", DimThermo.TEMP_SETPOINT) == "*#4*1*14##"


def test_parse_dispatches_on_who() -> None:
    assert isinstance(parse("*1*1*12##"), Lighting)
    assert isinstance(parse("*#4*1*0*0215##"), Thermoregulation)
    assert isinstance(parse("*5*1*##"), Alarm)
    assert isinstance(parse("*#13**12##"), GatewayMgmt)
    assert isinstance(parse("*25*21#5*212##"), CENPlusScenario)


def test_lazy_what_and_dim() -> None:
    msg = parse("*1*77*12##")  # an unknown WHAT doesn't fail the parse
    assert msg.is_command
    assert msg.what is None
    assert msg.detect_device_type() is None

    msg = parse("*1*1000#1*12##")
    assert msg.what == WhatLighting.ON
    assert msg.is_command_translation
    assert msg.command_params == ()

    msg = parse("*#4*1*99##")  # an unknown DIM doesn't fail the parse
    assert not msg.is_command
    assert msg.dim is None

    msg = parse("*#4*1*#14*0215*1##")
    assert msg.dim == DimThermo.TEMP_SETPOINT
    assert msg.is_dim_writing
    assert msg.dim_values == ("0215", "1")


def test_to_string_verbose() -> None:
    assert (
        parse("*1*1*12##").to_string_verbose()
        == "<*1*1*12##>{WHO=LIGHTING, WHAT=ON, WHERE=12}"
    )
    assert (
        parse("*#4*1*0*0215##").to_string_verbose()
        == "<*#4*1*0*0215##>{WHO=THERMOREGULATION, WHERE=1, DIM=TEMPERATURE"
        ", values=['0215']}"
    )


def test_to_string_verbose_zero_values() -> None:
    """WHAT/DIM values of 0 (e.g. OFF, TEMPERATURE) are names, not None."""

    assert (
        parse("*1*0*12##").to_string_verbose()
        == "<*1*0*12##>{WHO=LIGHTING, WHAT=OFF, WHERE=12}"
    )
    assert "DIM=TEMPERATURE" in parse("*#4*1*0*0215##").to_string_verbose()
