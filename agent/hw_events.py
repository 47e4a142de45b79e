# SPDX-License-Identifier: GPL-3.0-or-later
"""
goal: pull hardware-related messages out of the Windows event logs.
  • device events: Kernel-PnP / UserPnp messages in the System log that name a PCI or USB device, scored
    like log lines
  • Thunderbolt events: every message in the Thunderbolt operational channel, used only for the ancillary
    anomaly flag
both return plain message strings; [] on non-Windows hosts or if the log can not be read.
"""

from __future__ import annotations  # lets us use string annotations before functions are defined

from agent.powershell import DEFAULT_TIMEOUT, run_ps_json

DEFAULT_MAX_EVENTS = 500  # newest N events per query, keeps Get-WinEvent fast

_DEVICE_PROVIDERS = ("Microsoft-Windows-Kernel-PnP", "Microsoft-Windows-UserPnp")
THUNDERBOLT_LOG = "Microsoft-Windows-Thunderbolt/Operational"

_QUERY = (
    "Get-WinEvent -FilterHashtable @{{ {filter} }} -MaxEvents {max_events} -ErrorAction SilentlyContinue | "
    "{where}"
    "Select-Object @{{n='Message';e={{$_.Message}}}} | ConvertTo-Json -Compress"
)


def _messages(script: str, timeout: float) -> list[str]:
    return [str(r["Message"]) for r in run_ps_json(script, timeout=timeout) if r.get("Message")]


def device_event_messages(
    max_events: int = DEFAULT_MAX_EVENTS, timeout: float = DEFAULT_TIMEOUT
) -> list[str]:
    providers = ",".join(f"'{p}'" for p in _DEVICE_PROVIDERS)
    script = _QUERY.format(
        filter=f"LogName='System'; ProviderName={providers}",
        max_events=int(max_events),
        where="Where-Object { $_.Message -match 'PCI|VEN_|VID_' } | ",
    )
    return _messages(script, timeout)


def thunderbolt_messages(
    max_events: int = DEFAULT_MAX_EVENTS, timeout: float = DEFAULT_TIMEOUT
) -> list[str]:
    # the cap applies to the Thunderbolt channel itself, so busy System logs can not push these out
    script = _QUERY.format(
        filter=f"LogName='{THUNDERBOLT_LOG}'",
        max_events=int(max_events),
        where="",
    )
    return _messages(script, timeout)
