from __future__ import annotations

import os
from unittest.mock import Mock

import pytest

from algorithm.evidence import EvidenceClassifier
from algorithm.signatures import SignatureSet


@pytest.fixture
def signatures() -> SignatureSet:
    """Small, explicit signature set so tests do not depend on the shipped defaults."""
    return SignatureSet(
        vendor_ids=frozenset({"10EE", "1172"}),
        keywords=frozenset({"fpga", "pcileech", "screamer"}),
        log_whitelist=frozenset({"kernel dma protection", "dmaguard"}),
    )


@pytest.fixture
def classifier(signatures) -> EvidenceClassifier:
    return EvidenceClassifier(signatures)


@pytest.fixture
def clean_env(monkeypatch):
    """Drop every DMASENTRY_* variable so config tests start from defaults."""
    for key in list(os.environ):
        if key.startswith("DMASENTRY_"):
            monkeypatch.delenv(key, raising=False)
    return monkeypatch


def completed(stdout: str = "", returncode: int = 0, stderr: str = "") -> Mock:
    """Fake subprocess.CompletedProcess for PowerShell calls."""
    proc = Mock()
    proc.returncode = returncode
    proc.stdout = stdout
    proc.stderr = stderr
    return proc
