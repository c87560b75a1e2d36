#!/usr/bin/env python3
"""OpenWebNet - Test the config schemas (of both the gateway & protocol layers)."""

import pytest
import voluptuous as vol

from openwebnet_gw.schemas import SCH_GATEWAY_CONFIG, SCH_GLOBAL_CONFIG
from openwebnet_tx.schemas import (
    SCH_BUS_CONFIG,
    SCH_COMMS_PARAMS,
    SCH_FRAME_LOG,
    SCH_SERIAL_PORT_CONFIG,
    extract_serial_port,
    is_bus_gateway,
    sch_bus_gateway_dict_factory,
    sch_serial_port_dict_factory,
)

COMMS_PARAMS_DEFAULT = {
    "connect_timeout": 5.0,
    "cmd_read_timeout": 30.0,
    "mon_read_timeout": 120.0,
    "keepalive_period": 90.0,
    "handshake_timeout": 2.0,
    "cmd_fresh_window": 120.0,
}

GATEWAY_CONFIG_DEFAULT = {
    "auto_reconnect": True,
    "disable_discovery": False,
    "comms_params": COMMS_PARAMS_DEFAULT,
}


def test_comms_params() -> None:
    assert SCH_COMMS_PARAMS({}) == COMMS_PARAMS_DEFAULT

    params = SCH_COMMS_PARAMS({"cmd_read_timeout": "10"})
    assert params["cmd_read_timeout"] == 10.0

    for params in ({"connect_timeout": 100}, {"rubbish": 1}):
        with pytest.raises(vol.Invalid):
            SCH_COMMS_PARAMS(params)


def test_gateway_config() -> None:
    assert SCH_GATEWAY_CONFIG({}) == GATEWAY_CONFIG_DEFAULT
    assert SCH_GATEWAY_CONFIG({"rubbish": 1}) == GATEWAY_CONFIG_DEFAULT

    config = SCH_GATEWAY_CONFIG(
        {"auto_reconnect": False, "comms_params": {"handshake_timeout": 5}}
    )
    assert config["auto_reconnect"] is False
    assert config["comms_params"] == COMMS_PARAMS_DEFAULT | {"handshake_timeout": 5.0}

    with pytest.raises(vol.Invalid):
        SCH_GATEWAY_CONFIG({"auto_reconnect": "maybe"})


def test_global_config() -> None:
    assert SCH_GLOBAL_CONFIG({}) == {
        "config": GATEWAY_CONFIG_DEFAULT,
        "frame_log": None,
    }

    config = SCH_GLOBAL_CONFIG({"frame_log": "own.log"})
    assert config["frame_log"] == {
        "file_name": "own.log",
        "rotate_backups": 0,
        "rotate_bytes": None,
    }

    with pytest.raises(vol.Invalid):
        SCH_GLOBAL_CONFIG({"rubbish": 1})


def test_frame_log() -> None:
    assert SCH_FRAME_LOG({"frame_log": "own.log"})["frame_log"] == {
        "file_name": "own.log",
        "rotate_backups": 7,
        "rotate_bytes": None,
    }

    config = {"file_name": "own.log", "rotate_bytes": 1_000_000}
    assert SCH_FRAME_LOG({"frame_log": config})["frame_log"] == config | {
        "rotate_backups": 7
    }


def test_serial_port_config() -> None:
    assert SCH_SERIAL_PORT_CONFIG({}) == {
        "baudrate": 19200,
        "dsrdtr": False,
        "rtscts": False,
        "timeout": 0,
        "xonxoff": False,
    }

    with pytest.raises(vol.Invalid):
        SCH_SERIAL_PORT_CONFIG({"baudrate": 12345})

    schema = vol.Schema(sch_serial_port_dict_factory(), extra=vol.PREVENT_EXTRA)
    config = schema({"serial_port": "/dev/ttyUSB0"})

    port_name, port_config = extract_serial_port(config["serial_port"])
    assert port_name == "/dev/ttyUSB0"
    assert port_config == SCH_SERIAL_PORT_CONFIG({})


def test_bus_config() -> None:
    assert SCH_BUS_CONFIG({"host": "192.168.1.35"}) == {
        "host": "192.168.1.35",
        "port": 20000,
        "password": "12345",
    }

    schema = vol.Schema(sch_bus_gateway_dict_factory(), extra=vol.PREVENT_EXTRA)
    assert schema({"bus_gateway": "192.168.1.35:20001"}) == {
        "bus_gateway": {"host": "192.168.1.35", "port": 20001, "password": "12345"}
    }

    for config in ({"host": ""}, {"host": "gw", "port": 0}, {"host": "gw", "x": 1}):
        with pytest.raises(vol.Invalid):
            SCH_BUS_CONFIG(config)


def test_is_bus_gateway() -> None:
    assert is_bus_gateway("192.168.1.35")
    assert is_bus_gateway("192.168.1.35:20000")
    assert is_bus_gateway("gateway.local")

    assert not is_bus_gateway("/dev/ttyUSB0")
    assert not is_bus_gateway("COM3")
    assert not is_bus_gateway("rfc2217://localhost:5001")
