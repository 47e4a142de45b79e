# SPDX-License-Identifier: GPL-3.0-or-later
"""
goal: run the classifier over every candidate of one source and count the results. also computes the two
ancillary booleans (Thunderbolt anomaly, multiple monitors) that are only ever weak corroborating signals.
the registry source is special: a bare registry key name can never prove the keyword half of a CONCRETE hit,
so every matching registry entry is counted as SUSPICIOUS.
"""

from __future__ import annotations  # lets us use string annotations before classes are defined

import re  # for the Thunderbolt anomaly patterns
from collections.abc import Hashable, Iterable  # type hints for candidate and record sequences
from dataclasses import dataclass  # for the tally and finding records
from enum import Enum  # for the fixed set of source names

from algorithm.evidence import (
    Candidate,
    DeviceCandidate,
    EvidenceClassifier,
    EvidenceTier,
)

THUNDERBOLT_ANOMALY_PATTERNS: tuple[str, ...] = ("unauthorized", "failed", "blocked")
_THUNDERBOLT_RE = re.compile("|".join(THUNDERBOLT_ANOMALY_PATTERNS), re.IGNORECASE)


class SourceName(str, Enum):
    PRESENT_DEVICES = "present_devices"
    HIDDEN_DEVICES = "hidden_devices"
    REGISTRY = "registry"
    SETUP_LOG = "setup_log"
    HARDWARE_EVENTS = "hardware_events"

    @property
    def display_name(self) -> str:
        return _TITLES[self]


_TITLES = {
    SourceName.PRESENT_DEVICES: "Present devices",
    SourceName.HIDDEN_DEVICES: "Hidden devices",
    SourceName.REGISTRY: "Registry (Enum\\PCI)",
    SourceName.SETUP_LOG: "Device install log",
    SourceName.HARDWARE_EVENTS: "Hardware events",
}


@dataclass(frozen=True)
class Finding:
    source: SourceName
    tier: EvidenceTier
    label: str


@dataclass(frozen=True)
class SourceTally:
    concrete: int = 0
    suspicious: int = 0
    findings: tuple[Finding, ...] = ()  # non-NONE items, kept for presentation only


class Aggregator:
    """applies one classifier across each source's candidates."""

    def __init__(self, classifier: EvidenceClassifier) -> None:
        self.classifier = classifier

    def _tally(
        self, source: SourceName, candidates: Iterable[Candidate], cap: EvidenceTier | None = None
    ) -> SourceTally:
        concrete = 0
        suspicious = 0
        findings: list[Finding] = []
        for candidate in candidates:  # full pass, no early exit
            tier = self.classifier.classify(candidate)
            if cap is not None and tier > cap:
                tier = cap
            if tier is EvidenceTier.CONCRETE:
                concrete += 1
            elif tier is EvidenceTier.SUSPICIOUS:
                suspicious += 1
            else:
                continue  # NONE is dropped
            findings.append(Finding(source=source, tier=tier, label=candidate.label))
        return SourceTally(concrete=concrete, suspicious=suspicious, findings=tuple(findings))

    def aggregate(self, source: SourceName, candidates: Iterable[Candidate]) -> SourceTally:
        if source is SourceName.REGISTRY:
            return self.aggregate_registry(candidates)
        return self._tally(source, candidates)

    def aggregate_registry(self, entries: Iterable[Candidate | str]) -> SourceTally:
        # registry entries are key names like "VEN_10EE&DEV_0666&SUBSYS_...",
        # so the key doubles as the hardware id
        candidates = (
            DeviceCandidate(name=e, hardware_ids=(e,)) if isinstance(e, str) else e for e in entries
        )
        return self._tally(SourceName.REGISTRY, candidates, cap=EvidenceTier.SUSPICIOUS)


def thunderbolt_anomaly(messages: Iterable[str | None]) -> bool:
    """true if any captured Thunderbolt event reads as unauthorized, failed or blocked."""
    return any(_THUNDERBOLT_RE.search(m) for m in messages if m)


def monitor_anomaly(records: Iterable[Hashable]) -> bool:
    """more than one distinct monitor identification record; a single monitor is never anomalous."""
    return len(set(records)) > 1
