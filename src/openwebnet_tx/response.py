#!/usr/bin/env python3
"""OpenWebNet - the correlation of a request with the messages sent in reply."""

from __future__ import annotations

import asyncio
import logging

from . import exceptions as exc
from .message import OpenMessage

_LOGGER = logging.getLogger(__name__)


class Response:
    """The ordered replies to a request, ending with exactly one ACK/NACK/BUSY-NACK.

    A Response is pending until its terminal message is added, and is then complete.
    Any message added after completion is a protocol violation.
    """

    def __init__(self, request: OpenMessage) -> None:
        self._request = request
        self._messages: list[OpenMessage] = []
        self._final: OpenMessage | None = None

        self._error: exc.OwnException | None = None
        self._fut: asyncio.Future[Response] | None = None

    def __repr__(self) -> str:
        return f"<{self._request},{[str(m) for m in self._messages]}>"

    def __str__(self) -> str:
        msgs = ", ".join(str(m) for m in self._messages)
        return f"{self._request} --> [{msgs}]"

    @property
    def request(self) -> OpenMessage:
        return self._request

    @property
    def messages(self) -> tuple[OpenMessage, ...]:
        """Return all messages received, including the terminal one."""
        return tuple(self._messages)

    @property
    def final_message(self) -> OpenMessage | None:
        return self._final

    @property
    def is_complete(self) -> bool:
        return self._final is not None

    @property
    def is_success(self) -> bool:
        """Return True only if the terminal message is an ACK."""
        return self._final is not None and self._final.is_ack

    @property
    def error(self) -> exc.OwnException | None:
        return self._error

    def add_message(self, msg: OpenMessage) -> None:
        """Add a reply; if it is an ACK/NACK/BUSY-NACK, the Response is complete.

        Raise ProtocolViolation if the Response is already complete (or aborted).
        """

        if self._final is not None or self._error is not None:
            raise exc.ProtocolViolation(
                f"Message received after the Response was complete: {msg} ({self})"
            )

        self._messages.append(msg)
        if not msg.is_terminal:
            return

        self._final = msg
        if self._fut is not None and not self._fut.done():
            self._fut.set_result(self)

    def abort(self, err: exc.OwnException) -> None:
        """Fail a pending Response (e.g. the channel was lost, or a reply malformed)."""

        if self._final is not None or self._error is not None:
            return

        self._error = err
        if self._fut is not None and not self._fut.done():
            self._fut.set_exception(err)

    async def wait_for_completion(self, timeout: float | None = None) -> Response:
        """Wait until the Response is complete and return it.

        Raise the abort error if aborted, or TransportTimeout after timeout seconds.
        """

        if self._final is not None:
            return self
        if self._error is not None:
            raise self._error

        if self._fut is None:
            self._fut = asyncio.get_running_loop().create_future()

        try:
            return await asyncio.wait_for(asyncio.shield(self._fut), timeout)
        except TimeoutError as err:
            raise exc.TransportTimeout(
                f"No terminal reply within {timeout} secs: {self}"
            ) from err
