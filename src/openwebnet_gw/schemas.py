#!/usr/bin/env python3
"""OpenWebNet - a set of config schemas for the gateway layer.

Validates the gateway config (the lower-layer schemas are re-used), as used by the
CLI and by applications instantiating a gateway.
"""

from __future__ import annotations

from typing import Final, TypedDict

import voluptuous as vol

from openwebnet_tx.schemas import (
    SCH_COMMS_PARAMS,
    SZ_COMMS_PARAMS,
    CommsParamsT,
    sch_frame_log_dict_factory,
)

SZ_CONFIG: Final = "config"

SZ_AUTO_RECONNECT: Final = "auto_reconnect"
SZ_DISABLE_DISCOVERY: Final = "disable_discovery"


#
# 1/2: Gateway (upper layer) configuration
SCH_GATEWAY_DICT = {
    vol.Optional(SZ_AUTO_RECONNECT, default=True): bool,
    vol.Optional(SZ_DISABLE_DISCOVERY, default=False): bool,
    vol.Optional(SZ_COMMS_PARAMS, default={}): SCH_COMMS_PARAMS,
}
SCH_GATEWAY_CONFIG = vol.Schema(SCH_GATEWAY_DICT, extra=vol.REMOVE_EXTRA)


class GatewayConfigT(TypedDict):
    auto_reconnect: bool
    disable_discovery: bool
    comms_params: CommsParamsT


#
# 2/2: the Global (gateway) Schema, as would be loaded from a config file
SCH_GLOBAL_CONFIG = vol.Schema(
    {
        # Gateway configuration, incl. comms_params...
        vol.Optional(SZ_CONFIG, default={}): SCH_GATEWAY_DICT
    },
    extra=vol.PREVENT_EXTRA,
).extend(sch_frame_log_dict_factory(default_backups=0))
