#!/usr/bin/env python3
"""Fixtures for testing."""

from collections.abc import AsyncGenerator

import pytest

from openwebnet_gw import BusGateway
from tests_gw.virtual_gateway import GWY_CONFIG, VirtualGateway


@pytest.fixture(autouse=True)
def patches_for_tests(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("openwebnet_gw.gateway.RECONNECT_RETRY_AFTER", 10)
    monkeypatch.setattr("openwebnet_tx.protocol.USB_KEEP_CONNECT_DELAY", 0)


@pytest.fixture
async def vgw() -> AsyncGenerator[VirtualGateway, None]:
    """Return a virtual BUS gateway (without authentication)."""

    vgw = VirtualGateway()
    await vgw.start()

    try:
        yield vgw
    finally:
        await vgw.stop()


@pytest.fixture
async def gwy(vgw: VirtualGateway) -> AsyncGenerator[BusGateway, None]:
    """Return a (not yet connected) gateway to the virtual gateway."""

    gwy = BusGateway("127.0.0.1", vgw.port, config=GWY_CONFIG)

    try:
        yield gwy
    finally:
        await gwy.close_connection()
