# SPDX-License-Identifier: GPL-3.0-or-later
"""
goal: combine every per-source tally, the two ancillary booleans and the Kernel DMA Protection posture into
one verdict (RED, YELLOW or GREEN) and a frozen ScanSummary for the reporting side.

decision rule, evaluated top to bottom:
  • any concrete evidence                          -> RED
  • suspicious evidence and DMA protection enabled -> RED (protection is on and evidence still shows up)
  • suspicious evidence, protection off            -> YELLOW
  • nothing                                        -> GREEN
the Thunderbolt and monitor flags each add at most one unit to the suspicious total and never touch the
concrete total.
"""

from __future__ import annotations  # lets us use string annotations before classes are defined

from collections.abc import Mapping  # type hint for the tallies mapping
from dataclasses import dataclass, field  # for the immutable summary record
from datetime import datetime, timezone  # for the scan timestamp
from enum import Enum  # for the verdict colors
from types import MappingProxyType  # read-only view so the summary cannot be mutated
from typing import Any  # type hint for the JSON-safe dict

from algorithm.aggregator import Finding, SourceName, SourceTally


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class Verdict(str, Enum):
    RED = "RED"
    YELLOW = "YELLOW"
    GREEN = "GREEN"


def decide_verdict(
    tallies: Mapping[Any, SourceTally],
    thunderbolt_anomaly: bool,
    monitor_anomaly: bool,
    kernel_dma_enabled: bool,
) -> tuple[Verdict, int, int]:
    total_concrete = sum(t.concrete for t in tallies.values())
    total_suspicious = sum(t.suspicious for t in tallies.values())
    total_suspicious += int(bool(thunderbolt_anomaly)) + int(bool(monitor_anomaly))

    if total_concrete > 0:
        verdict = Verdict.RED
    elif total_suspicious > 0 and kernel_dma_enabled:
        verdict = Verdict.RED
    elif total_suspicious > 0:
        verdict = Verdict.YELLOW
    else:
        verdict = Verdict.GREEN
    return verdict, total_concrete, total_suspicious


@dataclass(frozen=True)
class ScanSummary:
    secure_boot_enabled: bool
    kernel_dma_enabled: bool
    tallies: Mapping[SourceName, SourceTally]
    thunderbolt_anomaly: bool
    monitor_anomaly: bool
    total_concrete: int
    total_suspicious: int
    verdict: Verdict
    monitor_count: int = 0
    host: str = ""
    scanned_at: str = field(default_factory=_utc_now)

    @property
    def findings(self) -> tuple[Finding, ...]:
        # flattened in source order, concrete hits first inside each source
        out: list[Finding] = []
        for tally in self.tallies.values():
            out.extend(sorted(tally.findings, key=lambda f: -f.tier))
        return tuple(out)


def build_summary(
    tallies: Mapping[SourceName, SourceTally],
    *,
    secure_boot_enabled: bool,
    kernel_dma_enabled: bool,
    thunderbolt_anomaly: bool,
    monitor_anomaly: bool,
    monitor_count: int = 0,
    host: str = "",
) -> ScanSummary:
    verdict, total_concrete, total_suspicious = decide_verdict(
        tallies, thunderbolt_anomaly, monitor_anomaly, kernel_dma_enabled
    )
    # every known source appears in the summary, even if nothing was collected for it
    frozen = {name: tallies.get(name, SourceTally()) for name in SourceName}
    frozen.update({k: v for k, v in tallies.items() if k not in frozen})
    return ScanSummary(
        secure_boot_enabled=bool(secure_boot_enabled),
        kernel_dma_enabled=bool(kernel_dma_enabled),
        tallies=MappingProxyType(frozen),
        thunderbolt_anomaly=bool(thunderbolt_anomaly),
        monitor_anomaly=bool(monitor_anomaly),
        total_concrete=total_concrete,
        total_suspicious=total_suspicious,
        verdict=verdict,
        monitor_count=monitor_count,
        host=host,
    )


def summary_to_dict(summary: ScanSummary) -> dict[str, Any]:
    """JSON-safe view of a summary for --json output and the webhook."""
    return {
        "host": summary.host,
        "scanned_at": summary.scanned_at,
        "verdict": summary.verdict.value,
        "secure_boot_enabled": summary.secure_boot_enabled,
        "kernel_dma_enabled": summary.kernel_dma_enabled,
        "thunderbolt_anomaly": summary.thunderbolt_anomaly,
        "monitor_anomaly": summary.monitor_anomaly,
        "monitor_count": summary.monitor_count,
        "total_concrete": summary.total_concrete,
        "total_suspicious": summary.total_suspicious,
        "sources": {
            getattr(name, "value", str(name)): {"concrete": t.concrete, "suspicious": t.suspicious}
            for name, t in summary.tallies.items()
        },
        "findings": [
            {"source": f.source.value, "tier": f.tier.name, "label": f.label} for f in summary.findings
        ],
    }
