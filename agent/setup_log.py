# SPDX-License-Identifier: GPL-3.0-or-later
"""
goal: read the device-install log (setupapi.dev.log) line by line. every driver install Windows has ever
done is recorded here with the hardware id, so it keeps traces of devices long after they were unplugged.
returns [] if the file is missing or unreadable.
"""

from __future__ import annotations  # lets us use string annotations before functions are defined

import codecs  # for detecting a UTF-16 byte order mark
import logging  # for recording why the log was skipped
import os  # for building the default path from %WINDIR%

log = logging.getLogger("dmasentry.agent.setup_log")


def default_log_path() -> str:
    windir = os.environ.get("WINDIR") or os.environ.get("SystemRoot") or "C:\\Windows"
    return os.path.join(windir, "INF", "setupapi.dev.log")


def _decode(raw: bytes) -> str:
    # older installs write the log as UTF-16, newer ones as UTF-8/ANSI
    if raw.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        return raw.decode("utf-16", errors="replace")
    return raw.decode("utf-8", errors="replace")


def read_lines(path: str | None = None) -> list[str]:
    p = path or default_log_path()
    try:
        with open(p, "rb") as f:
            raw = f.read()
    except OSError as exc:  # missing file or no permission
        log.debug("cannot read %s: %s", p, exc)
        return []
    return [line.strip() for line in _decode(raw).splitlines() if line.strip()]
