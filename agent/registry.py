# SPDX-License-Identifier: GPL-3.0-or-later
"""
goal: read registry subkey names under the device enumeration tree. Windows keeps an entry for every PCI
device it has ever enumerated (HKLM\\SYSTEM\\CurrentControlSet\\Enum\\PCI\\VEN_xxxx&DEV_yyyy...), so an FPGA
board that was removed before the scan still leaves its key behind. also shared by the monitor adapter.
"""

from __future__ import annotations  # lets us use string annotations before functions are defined

import logging  # for recording unreadable keys
import sys  # for checking if we are on Windows
from collections.abc import Iterator  # type hint for the subkey generator
from typing import Any  # type hint for winreg handles

log = logging.getLogger("dmasentry.agent.registry")

PCI_ENUM_KEY = r"SYSTEM\CurrentControlSet\Enum\PCI"


def winreg_module() -> Any:
    # imported lazily so the module loads on every platform
    import winreg  # type: ignore[import-not-found]

    return winreg


def iter_subkeys(handle: Any) -> Iterator[str]:
    winreg = winreg_module()
    i = 0
    while True:  # EnumKey raises OSError once we run past the last index
        try:
            yield winreg.EnumKey(handle, i)
        except OSError:
            return
        i += 1


def subkey_names(path: str) -> list[str]:
    """names of the direct subkeys of HKLM\\<path>, or [] if the key can not be opened."""
    if sys.platform != "win32":
        return []
    try:
        winreg = winreg_module()
        with winreg.OpenKey(
            winreg.HKEY_LOCAL_MACHINE, path, 0, winreg.KEY_READ | winreg.KEY_WOW64_64KEY
        ) as key:
            return list(iter_subkeys(key))
    except OSError as exc:  # missing key or access denied
        log.debug("cannot read HKLM\\%s: %s", path, exc)
        return []


def pci_entries() -> list[str]:
    return subkey_names(PCI_ENUM_KEY)
