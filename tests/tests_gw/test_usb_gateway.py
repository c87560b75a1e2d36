#!/usr/bin/env python3
"""OpenWebNet - Test a USB gateway (and its discovery), against a virtual dongle."""

from collections.abc import AsyncGenerator

import pytest

from openwebnet_gw import DeviceType, UsbGateway
from openwebnet_gw import exceptions as exc
from openwebnet_tx import Automation, Lighting, UsbConnector
from openwebnet_tx.const import FRAME_ACK, FRAME_NACK
from tests_gw.virtual_gateway import (
    GWY_CONFIG,
    EventRecorder,
    VirtualDongle,
    assert_event,
    dongle_factory,
)

ZIGBEE_LIGHT = "702053501#9"
ZIGBEE_SHUTTER = "702053602#9"

CONNECT_REQUESTS = [
    "*13*60*##",  # keep connect
    "*#13**16##",  # firmware version (of the connector)
    "*13*66*##",  # supervisor
    "*#13**12##",  # MAC address (of the gateway)
    "*#13**16##",  # firmware version (of the gateway)
]


@pytest.fixture
async def gwy(
    monkeypatch: pytest.MonkeyPatch, request: pytest.FixtureRequest
) -> AsyncGenerator[UsbGateway, None]:
    """Return a connected gateway to a virtual dongle (of a given firmware)."""

    dongle = VirtualDongle(firmware=getattr(request, "param", "1.2.4"))
    monkeypatch.setattr(
        "openwebnet_tx.protocol.transport_factory", dongle_factory(dongle)
    )

    gwy = UsbGateway("/dev/ttyUSB0", config=GWY_CONFIG)
    gwy.dongle = dongle  # type: ignore[attr-defined]

    await gwy.connect()

    try:
        yield gwy
    finally:
        await gwy.close_connection()


def _dongle(gwy: UsbGateway) -> VirtualDongle:
    return gwy.dongle  # type: ignore[attr-defined,no-any-return]


def _connector(gwy: UsbGateway) -> UsbConnector:
    assert isinstance(gwy.connector, UsbConnector)
    return gwy.connector


async def test_connect(gwy: UsbGateway) -> None:
    assert gwy.is_connected
    assert gwy.is_cmd_connection_ready

    assert gwy.mac_address == "00:03:50:0a:14:1e"
    assert gwy.firmware_version == "1.2.4"
    assert _dongle(gwy).requests == CONNECT_REQUESTS

    assert not _connector(gwy).is_old_firmware
    assert not _connector(gwy).has_automation_bug


async def test_connect_no_dongle(monkeypatch: pytest.MonkeyPatch) -> None:
    dongle = VirtualDongle()
    dongle.replies["*13*60*##"] = [FRAME_NACK]  # not an OpenWebNet gateway
    monkeypatch.setattr(
        "openwebnet_tx.protocol.transport_factory", dongle_factory(dongle)
    )

    gwy = UsbGateway("/dev/ttyUSB0", config=GWY_CONFIG)
    recorder = EventRecorder()
    gwy.subscribe(recorder)

    with pytest.raises(exc.TransportError):
        await gwy.connect()
    await gwy.wait_for_listeners()

    assert not gwy.is_connected
    assert recorder.names == ["on_connection_error"]
    await gwy.close_connection()


async def test_send_and_events(gwy: UsbGateway) -> None:
    recorder = EventRecorder()
    gwy.subscribe(recorder)

    response = await gwy.send(Lighting.request_turn_on(ZIGBEE_LIGHT))
    assert response.is_success
    assert _dongle(gwy).requests[-1] == f"*1*1*{ZIGBEE_LIGHT}##"

    _dongle(gwy).send_event(FRAME_ACK)  # without a pending request, so skipped
    _dongle(gwy).send_event(f"*1*0*{ZIGBEE_LIGHT}##")

    await assert_event(recorder, "on_event_message")
    await gwy.wait_for_listeners()

    (msg,) = recorder.args_of("on_event_message")[0]
    assert str(msg) == f"*1*0*{ZIGBEE_LIGHT}##"
    assert recorder.names == ["on_event_message"]


async def test_send_after_malformed_reply(gwy: UsbGateway) -> None:
    """The rest of a malformed exchange is discarded, and the reader carries on."""

    recorder = EventRecorder()
    gwy.subscribe(recorder)

    _dongle(gwy).replies[f"*1*1*{ZIGBEE_LIGHT}##"] = ["*1*1*12#9##", FRAME_ACK]

    with pytest.raises(exc.FrameError):
        await gwy.send(Lighting.request_turn_on(ZIGBEE_LIGHT))

    response = await gwy.send(Lighting.request_turn_off(ZIGBEE_LIGHT))

    assert response.is_success
    assert [str(m) for m in response.messages] == [FRAME_ACK]
    assert gwy.is_connected

    _dongle(gwy).send_event(f"*1*0*{ZIGBEE_LIGHT}##")
    await assert_event(recorder, "on_event_message")
    assert "on_disconnected" not in recorder.names


@pytest.mark.parametrize("gwy", ["1.2.3"], indirect=True)
async def test_old_firmware(gwy: UsbGateway) -> None:
    """Older firmware doesn't send the final ACK of lighting status requests."""

    assert _connector(gwy).is_old_firmware
    assert not _connector(gwy).has_automation_bug

    _dongle(gwy).replies[f"*#1*{ZIGBEE_LIGHT}##"] = [f"*1*1*{ZIGBEE_LIGHT}##"]

    response = await gwy.send(Lighting.request_status(ZIGBEE_LIGHT))

    assert response.is_success
    assert [str(m) for m in response.messages] == [f"*1*1*{ZIGBEE_LIGHT}##", FRAME_ACK]


@pytest.mark.parametrize("gwy", ["1.2.0"], indirect=True)
async def test_automation_bug(gwy: UsbGateway) -> None:
    """Older firmware inverts UP/DOWN, of both requests and events."""

    assert _connector(gwy).has_automation_bug

    recorder = EventRecorder()
    gwy.subscribe(recorder)

    response = await gwy.send(Automation.request_move_up(ZIGBEE_SHUTTER))

    assert response.is_success
    assert str(response.request) == f"*2*1*{ZIGBEE_SHUTTER}##"
    assert _dongle(gwy).requests[-1] == f"*2*2*{ZIGBEE_SHUTTER}##"

    _dongle(gwy).send_event(f"*2*1*{ZIGBEE_SHUTTER}##")
    await assert_event(recorder, "on_event_message")

    (msg,) = recorder.args_of("on_event_message")[0]
    assert str(msg) == f"*2*2*{ZIGBEE_SHUTTER}##"


async def test_reconnect_after_unplug(gwy: UsbGateway) -> None:
    recorder = EventRecorder()
    gwy.subscribe(recorder)

    _dongle(gwy).unplug()

    await assert_event(recorder, "on_disconnected")
    await assert_event(recorder, "on_reconnected")

    assert gwy.is_connected
    assert _dongle(gwy).requests[-5:] == CONNECT_REQUESTS


@pytest.mark.parametrize(
    "scan_replies",
    (
        [FRAME_ACK, "*#13**67*3##"],  # the count as an event
        ["*#13**67*3##", FRAME_ACK],  # the count as a reply
    ),
    ids=("event", "reply"),
)
async def test_discover_devices(gwy: UsbGateway, scan_replies: list[str]) -> None:
    dongle = _dongle(gwy)
    dongle.replies |= {
        "*13*65*##": scan_replies,
        "*#13**66*2##": [FRAME_NACK],  # this product is no longer available
        "*#13**66*1##": [f"*#13*{ZIGBEE_SHUTTER}*66*1*512##", FRAME_ACK],
        "*#13**66*0##": [f"*#13*{ZIGBEE_LIGHT}*66*0*256##", FRAME_ACK],
    }

    recorder = EventRecorder()
    gwy.subscribe(recorder)

    await gwy.discover_devices()
    await gwy.wait_for_listeners()

    assert dongle.requests[-4:] == [
        "*13*65*##",
        "*#13**66*2##",
        "*#13**66*1##",
        "*#13**66*0##",
    ]

    devices = [(w.value, t) for w, t, _ in recorder.args_of("on_new_device")]
    assert devices == [
        (ZIGBEE_SHUTTER, DeviceType.ZIGBEE_SHUTTER_CONTROL),
        (ZIGBEE_LIGHT, DeviceType.ZIGBEE_ON_OFF_SWITCH),
    ]
    assert recorder.names[-1] == "on_discovery_completed"


async def test_discover_no_product_count(gwy: UsbGateway) -> None:
    recorder = EventRecorder()
    gwy.subscribe(recorder)

    with pytest.raises(exc.TransportTimeout):
        await gwy.discover_devices()
    await gwy.wait_for_listeners()

    assert not gwy.is_discovering
    assert "on_discovery_completed" not in recorder.names


async def test_discover_skips_invalid_product(gwy: UsbGateway) -> None:
    dongle = _dongle(gwy)
    dongle.replies |= {
        "*13*65*##": ["*#13**67*2##", FRAME_ACK],
        "*#13**66*1##": ["*#13*70205X602#9*66*1*512##", FRAME_ACK],  # malformed
        "*#13**66*0##": [f"*#13*{ZIGBEE_LIGHT}*66*0*256##", FRAME_ACK],
    }

    recorder = EventRecorder()
    gwy.subscribe(recorder)

    await gwy.discover_devices()
    await gwy.wait_for_listeners()

    assert dongle.requests[-2:] == ["*#13**66*1##", "*#13**66*0##"]

    devices = [(w.value, t) for w, t, _ in recorder.args_of("on_new_device")]
    assert devices == [(ZIGBEE_LIGHT, DeviceType.ZIGBEE_ON_OFF_SWITCH)]
    assert recorder.names[-1] == "on_discovery_completed"
