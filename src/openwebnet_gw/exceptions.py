#!/usr/bin/env python3
"""OpenWebNet - exceptions above the frame/protocol/transport layer."""

from __future__ import annotations

from openwebnet_tx.exceptions import (
    AuthenticationFailed as AuthenticationFailed,
    FrameError as FrameError,
    FrameMalformed as FrameMalformed,
    FrameUnsupported as FrameUnsupported,
    HandshakeMalformed as HandshakeMalformed,
    HandshakeTimeout as HandshakeTimeout,
    OwnException as OwnException,
    ProtocolError as ProtocolError,
    ProtocolViolation as ProtocolViolation,
    TransportError as TransportError,
    TransportSourceInvalid as TransportSourceInvalid,
    TransportTimeout as TransportTimeout,
)


class _OwnUpperError(OwnException):
    """A failure in the upper layer (gateway, discovery)."""


########################################################################################
# Errors of the gateway (connection management)


class GatewayError(_OwnUpperError):
    """An error occurred when using the gateway."""


class GatewayNotConnected(GatewayError):
    """The gateway is not connected (or has been disconnected)."""

    HINT = "connect() to the gateway first"


########################################################################################
# Errors of device discovery


class DiscoveryError(_OwnUpperError):
    """An error occurred when discovering devices."""


class DiscoveryInProgress(DiscoveryError):
    """A discovery is already running (discovery is not re-entrant)."""
