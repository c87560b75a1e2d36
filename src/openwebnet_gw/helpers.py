#!/usr/bin/env python3
"""OpenWebNet - Helper functions."""

from __future__ import annotations

from copy import deepcopy
from typing import Any, TypeAlias

_ConfigT: TypeAlias = dict[str, Any]


def deep_merge(src: _ConfigT, dst: _ConfigT, _dc: bool = False) -> _ConfigT:
    """Deep merge a src dict (precedent) into a dst dict and return the result.

    >>>            s = {'config': {'frame_log': {'file_name': 'own.log'}}}
    >>>            d = {'config': {'frame_log': {'rotate_backups': 7}}}
    >>> deep_merge(s, d) == {
    ...     'config': {'frame_log': {'file_name': 'own.log', 'rotate_backups': 7}}
    ... }
    True
    """

    new_dst = dst if _dc else deepcopy(dst)  # start with copy of dst, merge src into it
    for key, value in src.items():  # values are only: dict, list, value or None
        if isinstance(value, dict):
            node = new_dst.setdefault(key, {})
            deep_merge(value, node, _dc=True)

        elif not isinstance(value, list):
            new_dst[key] = value  # src takes precedence

        elif key not in new_dst or not isinstance(new_dst[key], list):
            new_dst[key] = src[key]

        else:  # de-duplicated, but in order
            new_dst[key] = list(dict.fromkeys(src[key] + new_dst[key]))

    return new_dst


def format_mac_address(mac: tuple[int, ...] | None) -> str | None:
    """Return a MAC address as (say) '00:03:50:8a:35:21', or None."""
    return None if mac is None else ":".join(f"{b:02x}" for b in mac)
