"""
Tests for algorithm.verdict_engine - decide_verdict precedence, totals and the summary record
"""

from __future__ import annotations

import dataclasses
import itertools
import json

import pytest

from algorithm.aggregator import Finding, SourceName, SourceTally
from algorithm.evidence import EvidenceTier
from algorithm.verdict_engine import (
    ScanSummary,
    Verdict,
    build_summary,
    decide_verdict,
    summary_to_dict,
)


def _one(concrete: int = 0, suspicious: int = 0) -> dict[SourceName, SourceTally]:
    return {SourceName.PRESENT_DEVICES: SourceTally(concrete=concrete, suspicious=suspicious)}


class TestScenarios:
    """Fixed scenarios for the decision rule"""

    def test_scenario_a_all_clear(self):
        """Scenario A: nothing anywhere is GREEN"""
        tallies = {name: SourceTally() for name in SourceName}
        assert decide_verdict(tallies, False, False, False) == (Verdict.GREEN, 0, 0)
        assert decide_verdict(tallies, False, False, True) == (Verdict.GREEN, 0, 0)

    def test_scenario_b_suspicious_unprotected(self):
        """Scenario B: one suspicious item, DMA protection off is YELLOW"""
        assert decide_verdict(_one(suspicious=1), False, False, False) == (Verdict.YELLOW, 0, 1)

    def test_scenario_c_suspicious_protected(self):
        """Scenario C: the same evidence with DMA protection on is RED"""
        assert decide_verdict(_one(suspicious=1), False, False, True) == (Verdict.RED, 0, 1)

    @pytest.mark.parametrize("dma", [False, True])
    def test_scenario_d_concrete(self, dma):
        """Scenario D: concrete evidence is RED regardless of DMA state"""
        assert decide_verdict(_one(concrete=1), False, False, dma) == (Verdict.RED, 1, 0)

    def test_scenario_e_ancillary_only(self):
        """Scenario E: both ancillary flags alone add two suspicious units"""
        assert decide_verdict({}, True, True, False) == (Verdict.YELLOW, 0, 2)


class TestDecideVerdictProperties:
    """Property-style checks over a small input grid"""

    GRID = list(
        itertools.product(
            [0, 1, 3],  # concrete
            [0, 1, 2],  # suspicious
            [False, True],  # thunderbolt
            [False, True],  # monitor
            [False, True],  # dma
        )
    )

    @pytest.mark.parametrize("concrete, suspicious, tb, mon, dma", GRID)
    def test_concrete_always_red(self, concrete, suspicious, tb, mon, dma):
        """Test the precedence law: concrete > 0 means RED"""
        verdict, total_c, _ = decide_verdict(_one(concrete, suspicious), tb, mon, dma)
        if concrete > 0:
            assert verdict is Verdict.RED
        assert total_c == concrete

    @pytest.mark.parametrize("concrete, suspicious, tb, mon, dma", GRID)
    def test_ancillary_add_at_most_one_each(self, concrete, suspicious, tb, mon, dma):
        """Test that ancillary flags only touch the suspicious total"""
        _, total_c, total_s = decide_verdict(_one(concrete, suspicious), tb, mon, dma)
        assert total_c == concrete
        assert total_s == suspicious + int(tb) + int(mon)

    @pytest.mark.parametrize("concrete, suspicious, tb, mon, dma", GRID)
    def test_pure(self, concrete, suspicious, tb, mon, dma):
        """Test that identical inputs give identical outputs"""
        tallies = _one(concrete, suspicious)
        first = decide_verdict(tallies, tb, mon, dma)
        assert all(decide_verdict(tallies, tb, mon, dma) == first for _ in range(3))

    def test_sums_across_sources(self):
        """Test totals across several sources"""
        tallies = {
            SourceName.PRESENT_DEVICES: SourceTally(concrete=1, suspicious=2),
            SourceName.SETUP_LOG: SourceTally(concrete=2, suspicious=0),
            SourceName.REGISTRY: SourceTally(concrete=0, suspicious=4),
        }
        assert decide_verdict(tallies, True, False, False) == (Verdict.RED, 3, 7)


class TestBuildSummary:
    """Tests for build_summary and summary_to_dict"""

    def test_fills_every_source(self):
        """Test that sources without a tally still appear with zero counts"""
        summary = build_summary(
            _one(suspicious=1),
            secure_boot_enabled=True,
            kernel_dma_enabled=False,
            thunderbolt_anomaly=False,
            monitor_anomaly=False,
        )
        assert set(summary.tallies) == set(SourceName)
        assert summary.tallies[SourceName.REGISTRY] == SourceTally()
        assert summary.verdict is Verdict.YELLOW
        assert summary.total_suspicious == 1

    def test_summary_is_immutable(self):
        """Test that neither fields nor the tallies mapping can be changed"""
        summary = build_summary(
            {},
            secure_boot_enabled=False,
            kernel_dma_enabled=False,
            thunderbolt_anomaly=False,
            monitor_anomaly=False,
        )
        assert isinstance(summary, ScanSummary)
        with pytest.raises(dataclasses.FrozenInstanceError):
            summary.verdict = Verdict.RED  # type: ignore[misc]
        with pytest.raises(TypeError):
            summary.tallies[SourceName.REGISTRY] = SourceTally(concrete=1)  # type: ignore[index]

    def test_findings_concrete_first(self):
        """Test that findings are ordered concrete-first within a source"""
        tally = SourceTally(
            concrete=1,
            suspicious=1,
            findings=(
                Finding(SourceName.PRESENT_DEVICES, EvidenceTier.SUSPICIOUS, "b"),
                Finding(SourceName.PRESENT_DEVICES, EvidenceTier.CONCRETE, "a"),
            ),
        )
        summary = build_summary(
            {SourceName.PRESENT_DEVICES: tally},
            secure_boot_enabled=False,
            kernel_dma_enabled=False,
            thunderbolt_anomaly=False,
            monitor_anomaly=False,
        )
        assert [f.label for f in summary.findings] == ["a", "b"]

    def test_to_dict_is_json_safe(self):
        """Test that the dict view serializes"""
        summary = build_summary(
            _one(concrete=1),
            secure_boot_enabled=True,
            kernel_dma_enabled=True,
            thunderbolt_anomaly=True,
            monitor_anomaly=False,
            monitor_count=1,
            host="WS-01",
        )
        data = json.loads(json.dumps(summary_to_dict(summary)))
        assert data["verdict"] == "RED"
        assert data["host"] == "WS-01"
        assert data["sources"]["present_devices"] == {"concrete": 1, "suspicious": 0}
        assert data["total_suspicious"] == 1
