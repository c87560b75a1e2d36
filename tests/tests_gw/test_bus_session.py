#!/usr/bin/env python3
"""OpenWebNet - Test a BUS gateway's sessions (MON & CMD), against a virtual gateway."""

import asyncio

import pytest

from openwebnet_gw import BusGateway
from openwebnet_gw import exceptions as exc
from openwebnet_tx import BusConnector, Lighting
from openwebnet_tx.const import FRAME_ACK, FRAME_NACK
from tests_gw.virtual_gateway import (
    AUTH_HMAC,
    AUTH_OPEN,
    COMMS_PARAMS,
    FIRMWARE_VERSION,
    GWY_CONFIG,
    MAC_ADDRESS,
    EventRecorder,
    VirtualGateway,
    assert_condition,
    assert_event,
)


async def test_connect(vgw: VirtualGateway, gwy: BusGateway) -> None:
    recorder = EventRecorder()
    gwy.subscribe(recorder)

    assert not gwy.is_connected
    assert not gwy.is_cmd_connection_ready

    await gwy.connect()
    await gwy.wait_for_listeners()

    assert gwy.is_connected
    assert gwy.is_cmd_connection_ready
    assert gwy.mac_address == MAC_ADDRESS
    assert gwy.firmware_version == FIRMWARE_VERSION

    assert recorder.names == ["on_connected"]
    assert sorted(vgw.sessions) == ["*99*0##", "*99*1##"]
    assert vgw.requests == ["*#13**12##", "*#13**16##"]

    await gwy.connect()  # is a no-op
    assert len(vgw.sessions) == 2


async def test_send(vgw: VirtualGateway, gwy: BusGateway) -> None:
    await gwy.connect()

    response = await gwy.send(Lighting.request_turn_on("0311#4#01"))

    assert response.is_success
    assert str(response.request) == "*1*1*0311#4#01##"
    assert [str(m) for m in response.messages] == [FRAME_ACK]
    assert vgw.requests[-1] == "*1*1*0311#4#01##"


async def test_send_status_request(vgw: VirtualGateway, gwy: BusGateway) -> None:
    vgw.replies["*#1*0##"] = ["*1*1*11##", "*1*0*12##", FRAME_ACK]
    await gwy.connect()

    response = await gwy.send(Lighting.request_status("0"))

    assert response.is_success
    assert [str(m) for m in response.messages] == ["*1*1*11##", "*1*0*12##", FRAME_ACK]
    assert response.messages[0].is_on  # type: ignore[attr-defined]
    assert response.messages[1].is_off  # type: ignore[attr-defined]


async def test_send_nack(vgw: VirtualGateway, gwy: BusGateway) -> None:
    vgw.replies["*1*1*13##"] = [FRAME_NACK]
    await gwy.connect()

    response = await gwy.send(Lighting.request_turn_on("13"))

    assert response.is_complete
    assert not response.is_success
    assert response.final_message is not None and response.final_message.is_nack


async def test_send_concurrently(vgw: VirtualGateway, gwy: BusGateway) -> None:
    await gwy.connect()

    frames = ["*1*1*11##", "*1*1*12##", "*1*1*13##"]
    responses = await asyncio.gather(
        *(gwy.send(Lighting.request_turn_on(f[5:-2])) for f in frames)
    )

    assert all(r.is_success for r in responses)
    assert sorted(vgw.requests[-3:]) == frames


async def test_send_after_malformed_reply(vgw: VirtualGateway, gwy: BusGateway) -> None:
    """A malformed reply closes CMD, so the next request uses a new CMD session."""

    vgw.replies["*1*1*11##"] = ["*77*1*11##", FRAME_ACK]
    await gwy.connect()

    with pytest.raises(exc.FrameMalformed):
        await gwy.send(Lighting.request_turn_on("11"))

    response = await gwy.send(Lighting.request_turn_on("12"))

    assert response.is_success
    assert gwy.is_connected
    assert gwy.is_cmd_connection_ready
    assert vgw.sessions == ["*99*1##", "*99*0##", "*99*0##"]
    assert vgw.requests[-1] == "*1*1*12##"


async def test_send_after_cmd_dropped(vgw: VirtualGateway, gwy: BusGateway) -> None:
    """A request is resent (once) on a new CMD session, if the old one is lost."""

    await gwy.connect()
    vgw.drop_cmd()

    response = await gwy.send(Lighting.request_turn_on("12"))

    assert response.is_success
    assert vgw.sessions == ["*99*1##", "*99*0##", "*99*0##"]
    assert vgw.requests[-1] == "*1*1*12##"


async def test_send_not_connected(gwy: BusGateway) -> None:
    with pytest.raises(exc.GatewayNotConnected):
        await gwy.send(Lighting.request_turn_on("12"))


async def test_send_after_close(vgw: VirtualGateway, gwy: BusGateway) -> None:
    recorder = EventRecorder()
    gwy.subscribe(recorder)

    await gwy.connect()
    await gwy.close_connection()

    assert not gwy.is_connected
    assert recorder.names == ["on_connected", "on_connection_closed"]

    with pytest.raises(exc.GatewayNotConnected):
        await gwy.send(Lighting.request_turn_on("12"))


async def test_events(vgw: VirtualGateway, gwy: BusGateway) -> None:
    recorder = EventRecorder()
    gwy.subscribe(recorder)

    await gwy.connect()

    vgw.send_event("*6*1*11##")  # unsupported, so skipped
    vgw.send_event("*1*1*12##")
    vgw.send_event("*1*0*12##")

    await assert_event(recorder, "on_event_message", count=2)

    events = [a[0] for a in recorder.args_of("on_event_message")]
    assert [str(m) for m in events] == ["*1*1*12##", "*1*0*12##"]
    assert isinstance(events[0], Lighting)
    assert events[0].where is not None and events[0].where.value == "12"


async def test_unsubscribe(vgw: VirtualGateway, gwy: BusGateway) -> None:
    recorder_1 = EventRecorder()
    recorder_2 = EventRecorder()
    gwy.subscribe(recorder_1)
    gwy.subscribe(recorder_1)  # is a no-op
    gwy.subscribe(recorder_2)

    await gwy.connect()
    gwy.unsubscribe(recorder_2)

    vgw.send_event("*1*1*12##")
    await assert_event(recorder_1, "on_event_message")
    await gwy.wait_for_listeners()

    assert recorder_1.names == ["on_connected", "on_event_message"]
    assert recorder_2.names == ["on_connected"]


@pytest.mark.parametrize("auth", (AUTH_OPEN, AUTH_HMAC))
async def test_connect_with_password(auth: str) -> None:
    vgw = VirtualGateway(auth=auth, password="12345")
    await vgw.start()

    gwy = BusGateway("127.0.0.1", vgw.port, "12345", config=GWY_CONFIG)

    try:
        await gwy.connect()

        assert gwy.is_connected
        assert sorted(vgw.sessions) == ["*99*0##", "*99*1##"]
        assert gwy.mac_address == MAC_ADDRESS

    finally:
        await gwy.close_connection()
        await vgw.stop()


@pytest.mark.parametrize("auth", (AUTH_OPEN, AUTH_HMAC))
async def test_connect_wrong_password(auth: str) -> None:
    vgw = VirtualGateway(auth=auth, password="12345")
    await vgw.start()

    gwy = BusGateway("127.0.0.1", vgw.port, "54321", config=GWY_CONFIG)
    recorder = EventRecorder()
    gwy.subscribe(recorder)

    try:
        with pytest.raises(exc.AuthenticationFailed):
            await gwy.connect()
        await gwy.wait_for_listeners()

        assert not gwy.is_connected
        assert vgw.sessions == []

        assert recorder.names == ["on_connection_error"]
        (err,) = recorder.args_of("on_connection_error")[0]
        assert isinstance(err, exc.AuthenticationFailed)

    finally:
        await gwy.close_connection()
        await vgw.stop()


async def test_connect_refused() -> None:
    vgw = VirtualGateway()
    await vgw.start()
    port = vgw.port
    await vgw.stop()  # nothing is listening on the port now

    gwy = BusGateway("127.0.0.1", port, config=GWY_CONFIG)
    recorder = EventRecorder()
    gwy.subscribe(recorder)

    with pytest.raises(exc.TransportError):
        await gwy.connect()
    await gwy.wait_for_listeners()

    assert recorder.names == ["on_connection_error"]
    await gwy.close_connection()


async def test_mon_keepalive(vgw: VirtualGateway) -> None:
    gwy = BusGateway(
        "127.0.0.1",
        vgw.port,
        config={"comms_params": COMMS_PARAMS | {"keepalive_period": 0.02}},
    )

    try:
        await gwy.connect()
        await assert_condition(lambda: vgw.keepalives >= 2)

    finally:
        await gwy.close_connection()


class _BrokenChannel:
    """A channel that is open, but that cannot be written to."""

    def __init__(self) -> None:
        self.attempts = 0

    def is_closing(self) -> bool:
        return self.attempts >= 2

    async def send_frame(self, frame: str) -> None:
        self.attempts += 1
        raise exc.TransportError("Unable to send, channel is broken")


async def test_mon_keepalive_failure(caplog: pytest.LogCaptureFixture) -> None:
    """A keepalive that can't be sent is logged, and doesn't stop the keepalives."""

    connector = BusConnector(
        "127.0.0.1", comms_params=COMMS_PARAMS | {"keepalive_period": 0.01}
    )
    channel = _BrokenChannel()

    await connector._mon_keepalive(channel)  # type: ignore[arg-type]

    assert channel.attempts == 2
    assert caplog.text.count("Could not send MON keepalive") == 2
