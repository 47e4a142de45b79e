# SPDX-License-Identifier: GPL-3.0-or-later
"""
goal: collect monitor identification records (EDID blobs) from HKLM\\SYSTEM\\CurrentControlSet\\Enum\\DISPLAY.
DMA setups often route video through an HDMI fuser that registers as an extra monitor, so more than one
distinct record is a weak hint. each record is (model key, EDID bytes); identical EDIDs under the same model
collapse into one record.
"""

from __future__ import annotations  # lets us use string annotations before functions are defined

import logging  # for recording unreadable keys
import sys  # for checking if we are on Windows
from typing import NamedTuple  # for the small record type

from agent.registry import iter_subkeys, winreg_module

log = logging.getLogger("dmasentry.agent.monitors")

DISPLAY_ENUM_KEY = r"SYSTEM\CurrentControlSet\Enum\DISPLAY"


class MonitorRecord(NamedTuple):
    model: str  # e.g. "DELA0B1"
    edid: bytes


def _read_edid(winreg, base, model: str, instance: str) -> bytes | None:
    path = f"{model}\\{instance}\\Device Parameters"
    try:
        with winreg.OpenKey(base, path, 0, winreg.KEY_READ) as key:
            value, _kind = winreg.QueryValueEx(key, "EDID")
    except OSError:  # instance without EDID (virtual adapters, stale entries)
        return None
    return bytes(value) if value else None


def monitor_records() -> list[MonitorRecord]:
    if sys.platform != "win32":
        return []
    records: list[MonitorRecord] = []
    try:
        winreg = winreg_module()
        with winreg.OpenKey(
            winreg.HKEY_LOCAL_MACHINE, DISPLAY_ENUM_KEY, 0, winreg.KEY_READ | winreg.KEY_WOW64_64KEY
        ) as base:
            for model in list(iter_subkeys(base)):
                try:
                    with winreg.OpenKey(base, model, 0, winreg.KEY_READ) as mk:
                        instances = list(iter_subkeys(mk))
                except OSError:
                    continue
                for instance in instances:
                    edid = _read_edid(winreg, base, model, instance)
                    if edid:
                        records.append(MonitorRecord(model=model, edid=edid))
    except OSError as exc:
        log.debug("cannot read HKLM\\%s: %s", DISPLAY_ENUM_KEY, exc)
        return []
    # distinct records only, first-seen order
    return list(dict.fromkeys(records))
