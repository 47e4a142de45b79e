# SPDX-License-Identifier: GPL-3.0-or-later
"""
goal: one scan, end to end. collects raw candidates from every source adapter into a RawEvidence record,
then runs the classifier/aggregator per source and hands the tallies to the verdict engine.
collection and evaluation are split so tests (and offline triage of exported data) can feed RawEvidence
directly without touching the host.
"""

from __future__ import annotations  # lets us use string annotations before classes are defined

import logging  # for per-source progress messages
import platform  # for the host name in the summary
from collections.abc import Callable, Hashable, Sequence  # type hints for the raw sources
from dataclasses import dataclass, field  # for the RawEvidence record
from typing import TypeVar  # type hint for the guarded collector

from agent import devices, hw_events, monitors, posture, registry, setup_log
from algorithm.aggregator import (
    Aggregator,
    SourceName,
    SourceTally,
    monitor_anomaly,
    thunderbolt_anomaly,
)
from algorithm.evidence import DeviceCandidate, EvidenceClassifier, LogLineCandidate
from algorithm.signatures import SignatureSet
from algorithm.verdict_engine import ScanSummary, build_summary
from app.config import Config

log = logging.getLogger("dmasentry.scanner")

T = TypeVar("T")


@dataclass(frozen=True)
class RawEvidence:
    present_devices: Sequence[DeviceCandidate] = ()
    hidden_devices: Sequence[DeviceCandidate] = ()
    registry_entries: Sequence[str] = ()
    setup_log_lines: Sequence[str] = ()
    hardware_event_messages: Sequence[str] = ()
    thunderbolt_messages: Sequence[str] = ()
    monitor_records: Sequence[Hashable] = ()
    secure_boot_enabled: bool = False
    kernel_dma_enabled: bool = False
    host: str = field(default_factory=platform.node)


def _guard(name: str, fn: Callable[[], T], fallback: T) -> T:
    # adapters already swallow their own OS errors; this catches anything they did not expect
    # so one broken source contributes nothing instead of aborting the scan
    try:
        return fn()
    except Exception:
        log.warning("source %s failed, treating it as empty", name, exc_info=True)
        return fallback


def collect_raw(config: Config) -> RawEvidence:
    t = config.ps_timeout
    posture_state = _guard("posture", lambda: posture.read_posture(t), posture.Posture())
    return RawEvidence(
        present_devices=_guard("present_devices", lambda: devices.present_devices(t), []),
        hidden_devices=_guard("hidden_devices", lambda: devices.hidden_devices(t), []),
        registry_entries=_guard("registry", registry.pci_entries, []),
        setup_log_lines=_guard(
            "setup_log", lambda: setup_log.read_lines(str(config.setup_log_path)), []
        ),
        hardware_event_messages=_guard(
            "hardware_events", lambda: hw_events.device_event_messages(config.event_max, t), []
        ),
        thunderbolt_messages=_guard(
            "thunderbolt", lambda: hw_events.thunderbolt_messages(config.event_max, t), []
        ),
        monitor_records=_guard("monitors", monitors.monitor_records, []),
        secure_boot_enabled=posture_state.secure_boot_enabled,
        kernel_dma_enabled=posture_state.kernel_dma_enabled,
    )


def evaluate(raw: RawEvidence, signatures: SignatureSet) -> ScanSummary:
    aggregator = Aggregator(EvidenceClassifier(signatures))
    tallies: dict[SourceName, SourceTally] = {
        SourceName.PRESENT_DEVICES: aggregator.aggregate(
            SourceName.PRESENT_DEVICES, raw.present_devices
        ),
        SourceName.HIDDEN_DEVICES: aggregator.aggregate(SourceName.HIDDEN_DEVICES, raw.hidden_devices),
        SourceName.REGISTRY: aggregator.aggregate_registry(raw.registry_entries),
        SourceName.SETUP_LOG: aggregator.aggregate(
            SourceName.SETUP_LOG, (LogLineCandidate(line) for line in raw.setup_log_lines)
        ),
        SourceName.HARDWARE_EVENTS: aggregator.aggregate(
            SourceName.HARDWARE_EVENTS,
            (LogLineCandidate(msg) for msg in raw.hardware_event_messages),
        ),
    }
    for name, tally in tallies.items():
        log.info("%s: %d concrete, %d suspicious", name.value, tally.concrete, tally.suspicious)

    tb = thunderbolt_anomaly(raw.thunderbolt_messages)
    mon = monitor_anomaly(raw.monitor_records)
    summary = build_summary(
        tallies,
        secure_boot_enabled=raw.secure_boot_enabled,
        kernel_dma_enabled=raw.kernel_dma_enabled,
        thunderbolt_anomaly=tb,
        monitor_anomaly=mon,
        monitor_count=len(set(raw.monitor_records)),
        host=raw.host,
    )
    log.info(
        "verdict %s (concrete=%d suspicious=%d dma_protection=%s)",
        summary.verdict.value,
        summary.total_concrete,
        summary.total_suspicious,
        summary.kernel_dma_enabled,
    )
    return summary


def run_scan(config: Config, signatures: SignatureSet) -> ScanSummary:
    return evaluate(collect_raw(config), signatures)
