# SPDX-License-Identifier: GPL-3.0-or-later
"""
goal: the signature store. holds the suspicious vendor IDs, suspicious keywords and log whitelist patterns
the classifier matches against. built once at startup (defaults, optionally overridden from a JSON file or
a plain mapping) and never mutated afterwards, so the same SignatureSet can be shared by every scan.
"""

from __future__ import annotations  # lets us use string annotations before classes are defined

import json  # for loading signature overrides from a JSON file
import os  # for checking if the override file exists
import re  # for compiling keyword and whitelist patterns
from collections.abc import Iterable, Mapping  # type hints for the override inputs
from dataclasses import dataclass, field  # for the immutable signature record
from typing import Any  # type hint for flexible JSON values

# FPGA / DMA-card silicon vendors seen on PCIe and Thunderbolt attack boards
DEFAULT_VENDOR_IDS: tuple[str, ...] = (
    "10EE",  # Xilinx
    "1172",  # Altera / Intel FPGA
    "1204",  # Lattice
    "1556",  # PLDA
)

DEFAULT_KEYWORDS: tuple[str, ...] = (
    "fpga",
    "xilinx",
    "pcileech",
    "screamer",
    "squirrel",
    "captain ?dma",
    "enigma ?x1",
    "lambdaconcept",
    "leech ?core",
    "dma ?card",
    "ft601",
)

# setupapi / event lines that mention the keywords above but are routine Windows noise
DEFAULT_LOG_WHITELIST: tuple[str, ...] = (
    "kernel dma protection",
    "dmaguard",
    "dma remapping",
    "windows defender",
    "hyper-v",
)


class SignatureConfigError(ValueError):
    """raised when a signature override file or mapping has the wrong shape."""


def _compile(pattern: str) -> re.Pattern[str]:
    # every pattern is a case-insensitive regex; anything that does not compile is matched as plain text
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error:
        return re.compile(re.escape(pattern), re.IGNORECASE)


def _vendor_pattern(vendor_id: str) -> re.Pattern[str]:
    # vendor ids only count inside a vendor field (VEN_10EE for PCI, VID_10EE for USB bridges)
    # and must not be the prefix of a longer hex id
    return re.compile(rf"(?:VEN|VID)_{re.escape(vendor_id)}(?![0-9A-F])", re.IGNORECASE)


@dataclass(frozen=True)
class SignatureSet:
    vendor_ids: frozenset[str] = frozenset(DEFAULT_VENDOR_IDS)
    keywords: frozenset[str] = frozenset(DEFAULT_KEYWORDS)
    log_whitelist: frozenset[str] = frozenset(DEFAULT_LOG_WHITELIST)
    # compiled forms, derived from the sets above in __post_init__
    _vendor_res: tuple[re.Pattern[str], ...] = field(default=(), init=False, repr=False, compare=False)
    _keyword_res: tuple[re.Pattern[str], ...] = field(default=(), init=False, repr=False, compare=False)
    _whitelist_res: tuple[re.Pattern[str], ...] = field(default=(), init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # normalize ids to upper case and drop blanks; frozen dataclass needs object.__setattr__
        vendors = frozenset(v.strip().upper() for v in self.vendor_ids if v and v.strip())
        keywords = frozenset(k.strip() for k in self.keywords if k and k.strip())
        whitelist = frozenset(w.strip() for w in self.log_whitelist if w and w.strip())
        object.__setattr__(self, "vendor_ids", vendors)
        object.__setattr__(self, "keywords", keywords)
        object.__setattr__(self, "log_whitelist", whitelist)
        # sorted so compiled order is stable between runs
        object.__setattr__(self, "_vendor_res", tuple(_vendor_pattern(v) for v in sorted(vendors)))
        object.__setattr__(self, "_keyword_res", tuple(_compile(k) for k in sorted(keywords)))
        object.__setattr__(self, "_whitelist_res", tuple(_compile(w) for w in sorted(whitelist)))

    def vendor_in(self, hardware_id: str) -> bool:
        return any(p.search(hardware_id) for p in self._vendor_res)

    def keyword_in(self, text: str) -> bool:
        return any(p.search(text) for p in self._keyword_res)

    def whitelisted(self, text: str) -> bool:
        return any(p.search(text) for p in self._whitelist_res)


def _string_list(obj: Mapping[str, Any], key: str) -> frozenset[str] | None:
    # None means "key absent, keep the default"; a present key must be a list of strings
    if key not in obj:
        return None
    value = obj[key]
    if isinstance(value, str) or not isinstance(value, Iterable):
        raise SignatureConfigError(f"{key} must be a list of strings")
    items = list(value)
    if not all(isinstance(v, str) for v in items):
        raise SignatureConfigError(f"{key} must contain only strings")
    return frozenset(items)


def signatures_from_mapping(obj: Mapping[str, Any]) -> SignatureSet:
    """
    build a SignatureSet from plain data. any of "vendor_ids", "keywords" and "log_whitelist" may be
    given; missing keys keep the built-in defaults, present keys replace them entirely.
    """
    if not isinstance(obj, Mapping):
        raise SignatureConfigError("signature overrides must be a JSON object")
    base = SignatureSet()
    vendors = _string_list(obj, "vendor_ids")
    keywords = _string_list(obj, "keywords")
    whitelist = _string_list(obj, "log_whitelist")
    return SignatureSet(
        vendor_ids=base.vendor_ids if vendors is None else vendors,
        keywords=base.keywords if keywords is None else keywords,
        log_whitelist=base.log_whitelist if whitelist is None else whitelist,
    )


def load_signatures(path: str | None) -> SignatureSet:
    # no path or no file means built-in defaults
    if not path or not os.path.exists(path):
        return SignatureSet()
    try:
        with open(path, encoding="utf-8") as f:
            content = f.read().strip()
    except UnicodeDecodeError as exc:
        raise SignatureConfigError(f"{path} is not UTF-8 text: {exc}") from exc
    if not content:
        return SignatureSet()
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise SignatureConfigError(f"invalid JSON in {path}: {exc}") from exc
    return signatures_from_mapping(data)
