#!/usr/bin/env python3
"""OpenWebNet - exceptions within the frame/protocol/transport layer."""

from __future__ import annotations


class _OwnBaseException(Exception):
    """Base class for all openwebnet_tx exceptions."""

    pass


class OwnException(_OwnBaseException):
    """Base class for all openwebnet_tx exceptions."""

    HINT: None | str = None

    def __init__(self, *args: object):
        super().__init__(*args)
        self.message: str | None = args[0] if args else None  # type: ignore[assignment]

    def __str__(self) -> str:
        if self.message and self.HINT:
            return f"{self.message} (hint: {self.HINT})"
        if self.message:
            return self.message
        if self.HINT:
            return f"Hint: {self.HINT}"
        return ""


class _OwnLowerError(OwnException):
    """A failure in the lower layer (codec, handshake, protocol, transport)."""


########################################################################################
# Errors in the frame codec, incl. WHO/WHAT/WHERE/DIM decoding


class FrameError(_OwnLowerError):
    """The frame is corrupt/not internally consistent, or cannot be decoded."""


class FrameMalformed(FrameError):
    """The frame violates the OpenWebNet syntax/grammar."""


class FrameUnsupported(FrameError):
    """The frame is valid, but its WHO/WHAT/DIM is not implemented."""


########################################################################################
# Errors during the (per-channel) handshake


class AuthenticationFailed(_OwnLowerError):
    """The gateway rejected the credentials, or the mutual check did not match."""

    HINT = "check the gateway password"


class HandshakeMalformed(AuthenticationFailed):
    """The gateway did not follow the handshake sequence."""

    HINT = None


########################################################################################
# Errors at/below the protocol/transport layer


class ProtocolError(_OwnLowerError):
    """An error occurred when sending, receiving or exchanging frames."""


class ProtocolViolation(ProtocolError):
    """The gateway sent something it should not have (e.g. after a final reply)."""


class TransportError(ProtocolError):
    """An error when sending or receiving frames (bytes)."""


class TransportTimeout(TransportError):
    """No frame was received within the read timeout."""


class HandshakeTimeout(TransportError):
    """The handshake did not complete in time (the channel has been closed)."""


class TransportSourceInvalid(TransportError):
    """The gateway/serial port is not valid, or could not be opened."""
