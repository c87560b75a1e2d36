#!/usr/bin/env python3
"""A virtual BUS gateway, for testing: a TCP server on localhost.

Each connection runs the handshake, and is then either a MON session (the test pushes
events to it) or a CMD session (requests are answered from a script of replies).
"""

import asyncio
import logging
import re
from typing import Final

from openwebnet_tx.auth import (
    calc_hmac_h1,
    calc_hmac_h2,
    calc_open_pass,
    calc_sha256,
    digit_to_hex,
    hex_to_digit,
)
from openwebnet_tx.const import (
    CMD_SESSION,
    FRAME_ACK,
    FRAME_END_BYTES,
    FRAME_NACK,
    HMAC_SHA2,
    MON_SESSION,
)

AUTH_NONE: Final = "none"
AUTH_OPEN: Final = "open"
AUTH_HMAC: Final = "hmac"

OPEN_NONCE: Final = "603356072"

H1_REGEX: Final = re.compile(r"^\*#(\d+)\*(\d+)##$")

MAC_ADDRESS: Final = "00:03:50:01:02:03"
FIRMWARE_VERSION: Final = "1.2.4"

# the replies to the requests made by every gateway when it connects
DEFAULT_REPLIES: Final[dict[str, list[str]]] = {
    "*#13**12##": ["*#13**12*0*3*80*1*2*3##", FRAME_ACK],  # MAC address
    "*#13**15##": ["*#13**15*2##", FRAME_ACK],  # model
    "*#13**16##": ["*#13**16*1*2*4##", FRAME_ACK],  # firmware version
}

_LOGGER = logging.getLogger(__name__)


class VirtualGateway:
    """A BUS gateway that runs the handshake, then answers requests from a script.

    Requests without a scripted reply are simply ACK'd.
    """

    def __init__(self, *, auth: str = AUTH_NONE, password: str = "12345") -> None:
        self.auth = auth
        self.password = password

        self.replies: dict[str, list[str]] = dict(DEFAULT_REPLIES)
        self.requests: list[str] = []  # as received on CMD sessions
        self.sessions: list[str] = []  # as (successfully) opened
        self.keepalives = 0  # as received on MON sessions

        self._port = 0
        self._server: asyncio.Server | None = None
        self._writers: list[asyncio.StreamWriter] = []
        self._mon_writers: list[asyncio.StreamWriter] = []

    @property
    def port(self) -> int:
        return self._port

    @property
    def mon_sessions(self) -> int:
        """Return the number of MON sessions currently open."""
        return len([w for w in self._mon_writers if not w.is_closing()])

    async def start(self) -> None:
        """Start listening (on the same port as before, if restarted)."""

        self._server = await asyncio.start_server(
            self._handle_connection, "127.0.0.1", self._port
        )
        self._port = self._server.sockets[0].getsockname()[1]

    async def stop(self) -> None:
        """Close all sessions, and stop listening."""

        self.drop_all()
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

    def drop_all(self) -> None:
        for writer in self._writers:
            writer.close()
        self._writers.clear()
        self._mon_writers.clear()

    def drop_mon(self) -> None:
        """Close the MON sessions (as a gateway would, if it rebooted)."""

        for writer in self._mon_writers:
            writer.close()
        self._mon_writers.clear()

    def drop_cmd(self) -> None:
        """Close the CMD sessions (as a gateway would, if idle for too long)."""

        for writer in [w for w in self._writers if w not in self._mon_writers]:
            writer.close()
            self._writers.remove(writer)

    def send_event(self, frame: str) -> None:
        """Send an event on all the MON sessions."""

        for writer in self._mon_writers:
            if not writer.is_closing():
                writer.write(frame.encode("ascii"))

    @staticmethod
    async def _read(reader: asyncio.StreamReader) -> str | None:
        try:
            data = await reader.readuntil(FRAME_END_BYTES)
        except (asyncio.IncompleteReadError, ConnectionError):
            return None
        return data.decode("ascii").strip()

    @staticmethod
    def _write(writer: asyncio.StreamWriter, frame: str) -> None:
        if not writer.is_closing():
            writer.write(frame.encode("ascii"))

    async def _handle_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        self._writers.append(writer)

        try:
            self._write(writer, FRAME_ACK)

            session = await self._read(reader)
            if session not in (MON_SESSION, CMD_SESSION):
                self._write(writer, FRAME_NACK)
                return
            if not await self._authenticate(reader, writer):
                return
            self.sessions.append(session)

            if session == MON_SESSION:
                self._mon_writers.append(writer)
                while (frame := await self._read(reader)) is not None:
                    if frame == FRAME_ACK:
                        self.keepalives += 1
                return

            while (frame := await self._read(reader)) is not None:
                self.requests.append(frame)
                for reply in self.replies.get(frame, [FRAME_ACK]):
                    self._write(writer, reply)

        finally:
            writer.close()

    async def _authenticate(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> bool:
        if self.auth == AUTH_NONE:
            self._write(writer, FRAME_ACK)
            return True

        if self.auth == AUTH_OPEN:
            self._write(writer, f"*#{OPEN_NONCE}##")
            expected = f"*#{calc_open_pass(self.password, OPEN_NONCE)}##"
            result = await self._read(reader) == expected
            self._write(writer, FRAME_ACK if result else FRAME_NACK)
            return result

        self._write(writer, HMAC_SHA2)
        if await self._read(reader) != FRAME_ACK:
            return False

        ra = calc_sha256(f"virtual gateway {len(self.sessions)}")
        self._write(writer, f"*#{hex_to_digit(ra)}##")

        if not (frame := await self._read(reader)) or not (
            match := H1_REGEX.match(frame)
        ):
            return False

        rb = digit_to_hex(match[1])
        if digit_to_hex(match[2]) != calc_hmac_h1(ra, rb, self.password):
            self._write(writer, FRAME_NACK)
            return False

        h2 = calc_hmac_h2(ra, rb, self.password)
        self._write(writer, f"*#{hex_to_digit(h2)}##")
        return await self._read(reader) == FRAME_ACK
