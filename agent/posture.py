# SPDX-License-Identifier: GPL-3.0-or-later
"""
goal: read the two security posture signals: Secure Boot and Kernel DMA Protection.
both are best effort and default to False when they can not be read (non-Windows, legacy BIOS,
no admin rights, CIM class missing).
"""

from __future__ import annotations  # lets us use string annotations before classes are defined

from dataclasses import dataclass  # for the posture record

from agent.powershell import DEFAULT_TIMEOUT, run_ps_bool, run_ps_json

# Win32_DeviceGuard.AvailableSecurityProperties code for DMA protection
DMA_PROTECTION_PROPERTY = 3

_SECURE_BOOT_SCRIPT = "try { Confirm-SecureBootUEFI -ErrorAction Stop } catch { $false }"
_DEVICE_GUARD_SCRIPT = (
    "Get-CimInstance -Namespace root\\Microsoft\\Windows\\DeviceGuard -ClassName Win32_DeviceGuard "
    "-ErrorAction SilentlyContinue | Select-Object AvailableSecurityProperties | ConvertTo-Json -Compress"
)


@dataclass(frozen=True)
class Posture:
    secure_boot_enabled: bool = False
    kernel_dma_enabled: bool = False


def secure_boot_enabled(timeout: float = DEFAULT_TIMEOUT) -> bool:
    return run_ps_bool(_SECURE_BOOT_SCRIPT, timeout=timeout)


def kernel_dma_enabled(timeout: float = DEFAULT_TIMEOUT) -> bool:
    for rec in run_ps_json(_DEVICE_GUARD_SCRIPT, timeout=timeout):
        props = rec.get("AvailableSecurityProperties") or []
        if isinstance(props, int):  # single value comes back unwrapped
            props = [props]
        if DMA_PROTECTION_PROPERTY in props:
            return True
    return False


def read_posture(timeout: float = DEFAULT_TIMEOUT) -> Posture:
    return Posture(
        secure_boot_enabled=secure_boot_enabled(timeout),
        kernel_dma_enabled=kernel_dma_enabled(timeout),
    )
