# SPDX-License-Identifier: GPL-3.0-or-later
"""
goal: run a PowerShell snippet and hand back its JSON output as a list of dicts. every source adapter that
needs CIM/PnP/event-log data goes through here. Windows only; returns [] on other platforms or if anything
goes wrong (missing PowerShell, timeout, non-zero exit, bad JSON).
"""

from __future__ import annotations  # lets us use string annotations before functions are defined

import json  # for parsing JSON output from PowerShell
import logging  # for recording why a query came back empty
import subprocess  # for running PowerShell commands
import sys  # for checking if we are on Windows
from typing import Any  # type hint for flexible dictionary values

log = logging.getLogger("dmasentry.agent.powershell")

DEFAULT_TIMEOUT = 20.0  # seconds; Get-PnpDevice on a busy box can take a while


def _command(script: str) -> list[str]:
    return [
        "powershell",  # run PowerShell
        "-NoProfile",  # do not load user profile (faster startup)
        "-NonInteractive",  # never wait on a prompt
        "-ExecutionPolicy",  # set execution policy
        "Bypass",  # bypass any execution policy restrictions
        "-Command",  # run a command instead of a script
        script,
    ]


def run_ps_json(script: str, timeout: float = DEFAULT_TIMEOUT) -> list[dict[str, Any]]:
    """
    run `script` (which must end in ConvertTo-Json) and return a list of objects.
    PowerShell emits a bare object instead of a one-element array, so that case is wrapped.
    """
    if sys.platform != "win32":  # no PowerShell data sources outside Windows
        return []
    try:
        proc = subprocess.run(
            _command(script), capture_output=True, text=True, timeout=timeout
        )  # capture output, wait at most `timeout` seconds
    except (OSError, subprocess.SubprocessError) as exc:  # powershell missing, timeout, etc
        log.debug("powershell failed to run: %s", exc)
        return []
    if proc.returncode != 0:
        log.debug("powershell exited %s: %s", proc.returncode, (proc.stderr or "").strip()[:300])
        return []
    out = (proc.stdout or "").strip()
    if not out:  # empty result set
        return []
    try:
        data = json.loads(out)
    except json.JSONDecodeError as exc:
        log.debug("powershell returned non-JSON output: %s", exc)
        return []
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list):
        return [d for d in data if isinstance(d, dict)]
    return []


def run_ps_bool(script: str, timeout: float = DEFAULT_TIMEOUT) -> bool:
    """run a snippet that prints True/False; anything else, including errors, is False."""
    if sys.platform != "win32":
        return False
    try:
        proc = subprocess.run(_command(script), capture_output=True, text=True, timeout=timeout)
    except (OSError, subprocess.SubprocessError) as exc:
        log.debug("powershell failed to run: %s", exc)
        return False
    if proc.returncode != 0:
        return False
    return (proc.stdout or "").strip().lower() == "true"
