# SPDX-License-Identifier: GPL-3.0-or-later
"""
goal: score a single piece of evidence (a device record or a log line) against the signature set and
return one of three tiers: NONE, SUSPICIOUS or CONCRETE.

how it decides
every candidate is reduced to two yes/no questions:
  1. vendor match: does a hardware identifier (or the log line) carry a VEN_/VID_ field with a
     suspicious vendor id?
  2. keyword match: does the name, description (or the log line) mention a suspicious keyword?
both yes -> CONCRETE, exactly one yes -> SUSPICIOUS, neither -> NONE.
log lines get one extra step first: if the line matches a whitelist pattern it is NONE, no matter what else
it contains.

the classifier never raises. missing or blank text is replaced with a placeholder before matching so the
function is total over whatever the source adapters hand it.
"""

from __future__ import annotations  # lets us use string annotations before classes are defined

from collections.abc import Iterable  # type hint for hardware id inputs
from dataclasses import dataclass  # for the immutable candidate records
from enum import IntEnum  # ordered tiers so NONE < SUSPICIOUS < CONCRETE
from typing import Any  # type hint for loosely-typed adapter values

from algorithm.signatures import SignatureSet

PLACEHOLDER = "Unknown"  # stand-in for missing names, descriptions and log text


class EvidenceTier(IntEnum):
    NONE = 0
    SUSPICIOUS = 1
    CONCRETE = 2


def _text(value: Any) -> str:
    # normalize anything the adapters give us into a non-empty string
    if value is None:
        return PLACEHOLDER
    s = str(value).strip()
    return s if s else PLACEHOLDER


def _ids(values: Iterable[Any] | str | None) -> tuple[str, ...]:
    # PowerShell hands back a bare string when a device has exactly one hardware id
    if values is None:
        return ()
    if isinstance(values, str):
        values = [values]
    return tuple(str(v).strip() for v in values if v is not None and str(v).strip())


@dataclass(frozen=True)
class DeviceCandidate:
    name: str = PLACEHOLDER
    description: str = PLACEHOLDER
    hardware_ids: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", _text(self.name))
        object.__setattr__(self, "description", _text(self.description))
        object.__setattr__(self, "hardware_ids", _ids(self.hardware_ids))

    @property
    def label(self) -> str:
        # short human label for reports; registry keys carry the same text as name and id, print it once
        if self.hardware_ids and self.hardware_ids[0] != self.name:
            return f"{self.name} [{self.hardware_ids[0]}]"
        return self.name


@dataclass(frozen=True)
class LogLineCandidate:
    text: str = PLACEHOLDER

    def __post_init__(self) -> None:
        object.__setattr__(self, "text", _text(self.text))

    @property
    def label(self) -> str:
        return self.text if len(self.text) <= 160 else self.text[:157] + "..."


Candidate = DeviceCandidate | LogLineCandidate


def tier_for(has_vendor_match: bool, has_keyword_match: bool) -> EvidenceTier:
    """the decision table shared by every candidate kind."""
    if has_vendor_match and has_keyword_match:
        return EvidenceTier.CONCRETE
    if has_vendor_match or has_keyword_match:
        return EvidenceTier.SUSPICIOUS
    return EvidenceTier.NONE


class EvidenceClassifier:
    """pure scorer bound to one SignatureSet."""

    def __init__(self, signatures: SignatureSet) -> None:
        self.signatures = signatures

    def vendor_match(self, candidate: Candidate) -> bool:
        if isinstance(candidate, DeviceCandidate):
            return any(self.signatures.vendor_in(hwid) for hwid in candidate.hardware_ids)
        return self.signatures.vendor_in(candidate.text)

    def keyword_match(self, candidate: Candidate) -> bool:
        if isinstance(candidate, DeviceCandidate):
            return self.signatures.keyword_in(candidate.name) or self.signatures.keyword_in(
                candidate.description
            )
        return self.signatures.keyword_in(candidate.text)

    def classify(self, candidate: Candidate) -> EvidenceTier:
        # whitelist beats every signature, but only for log lines
        if isinstance(candidate, LogLineCandidate) and self.signatures.whitelisted(candidate.text):
            return EvidenceTier.NONE
        return tier_for(self.vendor_match(candidate), self.keyword_match(candidate))
