#!/usr/bin/env python3
"""OpenWebNet - the login sequence (handshake) of a newly connected channel.

The gateway may accept the session unauthenticated, or require either its numeric
('OPEN') password, or a mutual HMAC (SHA-1 or SHA-256) challenge/response:

  gwy: ACK                    gwy: ACK                  gwy: ACK
  cli: *99*n##                cli: *99*n##              cli: *99*n##
  gwy: ACK                    gwy: *#<nonce>##          gwy: *98*2##
                              cli: *#<open pass>##      cli: ACK
                              gwy: ACK                  gwy: *#<Ra>##
                                                        cli: *#<Rb>*<H1>##
                                                        gwy: *#<H2>##
                                                        cli: ACK
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import re
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Final

from . import exceptions as exc
from .const import (
    CMD_SESSION,
    CMD_SESSION_ALT,
    DEFAULT_HANDSHAKE_TIMEOUT,
    FRAME_ACK,
    FRAME_NACK,
    HMAC_SHA1,
    HMAC_SHA2,
    MON_SESSION,
    SZ_AUTHENTICATED,
    SZ_SESSION,
    Session,
)

if TYPE_CHECKING:
    from .transport import FrameChannel

#
# NOTE: All debug flags should be False for deployment to end-users
_DBG_LOG_HANDSHAKE: Final[bool] = False

_LOGGER = logging.getLogger(__name__)

NONCE_REGEX: Final = re.compile(r"^\*#(\d+)##$")
HMAC_NONCE_REGEX: Final = re.compile(r"^\*#(\d{80,128})##$")

HMAC_A_CONST: Final = "736F70653E"  # client identity
HMAC_B_CONST: Final = "636F70653E"  # server identity

_MASK_32: Final = 0xFFFFFFFF

_SESSION_REQUESTS: Final[dict[Session, str]] = {
    Session.MON: MON_SESSION,
    Session.CMD: CMD_SESSION,
}

ShaFncT = Callable[[str], str]


########################################################################################
# The OPEN cipher


def calc_open_pass(password: str, nonce: str) -> str:
    """Return the password encoded with the nonce, as an unsigned decimal string.

    Each nonce digit applies one bit rotation/swizzle to a 32-bit accumulator seeded
    with the (numeric) password.
    """

    try:
        num = int(password) & _MASK_32
    except (TypeError, ValueError) as err:
        raise exc.AuthenticationFailed(
            "OPEN authentication requires a numeric password"
        ) from err

    for digit in nonce:
        match digit:
            case "1":
                num = ((num & 0xFFFFFF80) >> 7) + (num << 25)
            case "2":
                num = ((num & 0xFFFFFFF0) >> 4) + (num << 28)
            case "3":
                num = ((num & 0xFFFFFFF8) >> 3) + (num << 29)
            case "4":
                num = (num << 1) + (num >> 31)
            case "5":
                num = (num << 5) + (num >> 27)
            case "6":
                num = (num << 12) + (num >> 20)
            case "7":
                num = (
                    (num & 0x0000FF00)
                    + ((num & 0x000000FF) << 24)
                    + ((num & 0x00FF0000) >> 16)
                    + ((num & 0xFF000000) >> 8)
                )
            case "8":
                num = (
                    ((num & 0x0000FFFF) << 16) + (num >> 24) + ((num & 0x00FF0000) >> 8)
                )
            case "9":
                num = ~num
            case "0":
                pass
            case _:
                raise exc.HandshakeMalformed(f"Invalid OPEN nonce: {nonce!r}")
        num &= _MASK_32

    return str(num)


########################################################################################
# The HMAC helpers


def digit_to_hex(digits: str) -> str:
    """Convert a decimal-digit string (2 digits per nibble) to a hex string."""

    if len(digits) % 2 or not digits.isdigit():
        raise exc.HandshakeMalformed(f"Invalid digit string: {digits!r}")

    result = []
    for idx in range(0, len(digits), 2):
        if (value := int(digits[idx : idx + 2])) > 15:
            raise exc.HandshakeMalformed(f"Invalid digit string: {digits!r}")
        result.append(f"{value:x}")
    return "".join(result)


def hex_to_digit(hex_str: str) -> str:
    """Convert a hex string to a decimal-digit string (2 digits per nibble)."""
    return "".join(f"{int(c, 16):02d}" for c in hex_str)


def calc_sha1(message: str) -> str:
    return hashlib.sha1(message.encode()).hexdigest()


def calc_sha256(message: str) -> str:
    return hashlib.sha256(message.encode()).hexdigest()


def calc_hmac_rb(sha_fnc: ShaFncT = calc_sha256) -> str:
    """Return a client nonce (Rb), as a hex string."""
    return sha_fnc(f"time{time.time_ns() // 1_000_000}")


def calc_hmac_h1(
    ra: str, rb: str, password: str, sha_fnc: ShaFncT = calc_sha256
) -> str:
    """Return the client's proof: H1 = SHA(Ra + Rb + A + B + SHA(password))."""
    return sha_fnc(ra + rb + HMAC_A_CONST + HMAC_B_CONST + sha_fnc(password))


def calc_hmac_h2(
    ra: str, rb: str, password: str, sha_fnc: ShaFncT = calc_sha256
) -> str:
    """Return the gateway's expected proof: H2 = SHA(Ra + Rb + SHA(password))."""
    return sha_fnc(ra + rb + sha_fnc(password))


########################################################################################
# The handshake


async def _read_frame(channel: FrameChannel) -> str:
    if (frame := await channel.read_frame()) is None:
        raise exc.TransportError(f"{channel}: Connection closed during handshake")

    if _DBG_LOG_HANDSHAKE:
        _LOGGER.warning("%s <<<< HS %s", channel.name, frame)
    else:
        _LOGGER.debug("%s <<<< HS %s", channel.name, frame)
    return frame


async def _send_frame(channel: FrameChannel, frame: str) -> None:
    if _DBG_LOG_HANDSHAKE:
        _LOGGER.warning("%s HS >>>> %s", channel.name, frame)
    else:
        _LOGGER.debug("%s HS >>>> %s", channel.name, frame)
    await channel.send_frame(frame)


async def _open_auth(channel: FrameChannel, password: str | None, nonce: str) -> None:
    if not password:
        raise exc.AuthenticationFailed("The gateway requires a (numeric) password")

    await _send_frame(channel, f"*#{calc_open_pass(password, nonce)}##")

    if await _read_frame(channel) != FRAME_ACK:
        raise exc.AuthenticationFailed("The gateway rejected the (OPEN) password")


async def _hmac_auth(channel: FrameChannel, password: str | None, marker: str) -> None:
    if not password:
        raise exc.AuthenticationFailed("The gateway requires a password")

    sha_fnc, size = (calc_sha1, 40) if marker == HMAC_SHA1 else (calc_sha256, 64)

    await _send_frame(channel, FRAME_ACK)

    frame = await _read_frame(channel)
    if not (match := HMAC_NONCE_REGEX.match(frame)) or len(match[1]) != size * 2:
        raise exc.HandshakeMalformed(f"Invalid HMAC nonce (Ra): {frame}")

    ra = digit_to_hex(match[1])
    rb = calc_hmac_rb(sha_fnc)
    h1 = calc_hmac_h1(ra, rb, password, sha_fnc)

    await _send_frame(channel, f"*#{hex_to_digit(rb)}*{hex_to_digit(h1)}##")

    frame = await _read_frame(channel)
    if frame == FRAME_NACK:
        raise exc.AuthenticationFailed("The gateway rejected the (HMAC) password")
    if not (match := NONCE_REGEX.match(frame)):
        raise exc.HandshakeMalformed(f"Invalid HMAC response (H2): {frame}")

    if digit_to_hex(match[1]) != calc_hmac_h2(ra, rb, password, sha_fnc):
        raise exc.AuthenticationFailed("The gateway's HMAC response (H2) is invalid")

    await _send_frame(channel, FRAME_ACK)


async def _negotiate(
    channel: FrameChannel, password: str | None, session: Session
) -> bool:
    if (frame := await _read_frame(channel)) != FRAME_ACK:
        raise exc.TransportError(f"{channel}: Gateway did not accept the connection")

    await _send_frame(channel, _SESSION_REQUESTS[session])
    frame = await _read_frame(channel)

    if session == Session.CMD and frame == FRAME_NACK:  # some gateways want *99*9##
        await _send_frame(channel, CMD_SESSION_ALT)
        frame = await _read_frame(channel)

    if frame == FRAME_ACK:
        return False  # the session is not authenticated

    if frame in (HMAC_SHA1, HMAC_SHA2):
        await _hmac_auth(channel, password, frame)
        return True

    if match := NONCE_REGEX.match(frame):
        await _open_auth(channel, password, match[1])
        return True

    raise exc.HandshakeMalformed(f"Unexpected reply to the session request: {frame}")


async def negotiate(
    channel: FrameChannel,
    password: str | None,
    session: Session,
    /,
    *,
    timeout: float = DEFAULT_HANDSHAKE_TIMEOUT,
) -> bool:
    """Run the handshake of a newly connected channel.

    Return True if the session is authenticated (False if it didn't need to be). The
    channel is closed if the handshake fails for any reason, or times out.
    """

    try:
        result = await asyncio.wait_for(
            _negotiate(channel, password, session), timeout
        )
    except TimeoutError as err:
        channel.close()
        raise exc.HandshakeTimeout(
            f"{channel}: Handshake not completed within {timeout} secs"
        ) from err
    except exc.OwnException:
        channel.close()
        raise

    channel.set_extra_info(SZ_SESSION, session)
    channel.set_extra_info(SZ_AUTHENTICATED, result)

    _LOGGER.debug("%s: Handshake completed (authenticated=%s)", channel, result)
    return result
