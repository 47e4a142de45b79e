# SPDX-License-Identifier: GPL-3.0-or-later
"""
goal: enumerate Plug and Play devices and turn them into DeviceCandidates. two views:
  • present devices: everything currently attached (Get-PnpDevice -PresentOnly)
  • hidden devices: devices Windows remembers but that are not attached right now, kept only when their
    status is Unknown or Error (a card that was pulled, or one whose driver failed to start)
healthy/enabled hidden devices are filtered out here so the aggregator never sees them.
"""

from __future__ import annotations  # lets us use string annotations before functions are defined

from typing import Any  # type hint for flexible dictionary values

from agent.powershell import DEFAULT_TIMEOUT, run_ps_json
from algorithm.evidence import DeviceCandidate

HIDDEN_STATUSES = frozenset({"unknown", "error"})  # the only hidden-device states worth scoring

# Get-PnpDevice does not expose HardwareID directly, so we read it from the device property bag
_PNP_SCRIPT = (
    "Get-PnpDevice {flags}-ErrorAction SilentlyContinue | ForEach-Object {{ "
    "$hw = (Get-PnpDeviceProperty -InstanceId $_.InstanceId -KeyName 'DEVPKEY_Device_HardwareIds' "
    "-ErrorAction SilentlyContinue).Data; "
    "[pscustomobject]@{{ Name=$_.FriendlyName; Description=$_.Description; Status=[string]$_.Status; "
    "Present=[bool]$_.Present; InstanceId=$_.InstanceId; HardwareID=@($hw) }} "
    "}} | ConvertTo-Json -Compress -Depth 3"
)


def _to_candidate(rec: dict[str, Any]) -> DeviceCandidate:
    hwids = rec.get("HardwareID") or []
    if isinstance(hwids, str):
        hwids = [hwids]
    if not hwids and rec.get("InstanceId"):  # fall back to the instance path, it carries VEN_/DEV_ too
        hwids = [rec["InstanceId"]]
    return DeviceCandidate(
        name=rec.get("Name"),
        description=rec.get("Description"),
        hardware_ids=tuple(str(h) for h in hwids if h),
    )


def present_devices(timeout: float = DEFAULT_TIMEOUT) -> list[DeviceCandidate]:
    records = run_ps_json(_PNP_SCRIPT.format(flags="-PresentOnly "), timeout=timeout)
    return [_to_candidate(r) for r in records]


def is_hidden_of_interest(rec: dict[str, Any]) -> bool:
    # not attached right now and stuck in Unknown/Error
    if rec.get("Present"):
        return False
    return str(rec.get("Status") or "").strip().lower() in HIDDEN_STATUSES


def hidden_devices(timeout: float = DEFAULT_TIMEOUT) -> list[DeviceCandidate]:
    records = run_ps_json(_PNP_SCRIPT.format(flags=""), timeout=timeout)
    return [_to_candidate(r) for r in records if is_hidden_of_interest(r)]
