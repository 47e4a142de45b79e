"""
Tests for algorithm.signatures - SignatureSet construction and override loading
"""

from __future__ import annotations

import dataclasses
import json

import pytest

from algorithm.signatures import (
    DEFAULT_KEYWORDS,
    DEFAULT_VENDOR_IDS,
    SignatureConfigError,
    SignatureSet,
    load_signatures,
    signatures_from_mapping,
)


class TestSignatureSet:
    """Tests for SignatureSet matching helpers"""

    def test_defaults_loaded(self):
        """Test that a bare SignatureSet carries the built-in lists"""
        sigs = SignatureSet()
        assert sigs.vendor_ids == frozenset(DEFAULT_VENDOR_IDS)
        assert sigs.keywords == frozenset(DEFAULT_KEYWORDS)

    def test_is_immutable(self):
        """Test that fields cannot be reassigned after construction"""
        sigs = SignatureSet()
        with pytest.raises(dataclasses.FrozenInstanceError):
            sigs.vendor_ids = frozenset()  # type: ignore[misc]

    def test_vendor_ids_normalized_to_upper(self):
        """Test that vendor ids are upper-cased and blanks dropped"""
        sigs = SignatureSet(vendor_ids=frozenset({"10ee", " ", ""}))
        assert sigs.vendor_ids == frozenset({"10EE"})

    @pytest.mark.parametrize(
        "hwid, expected",
        [
            ("PCI\\VEN_10EE&DEV_0666&SUBSYS_00000000", True),
            ("pci\\ven_10ee&dev_7021", True),
            ("USB\\VID_10EE&PID_0001", True),
            ("PCI\\VEN_10EEF&DEV_0001", False),  # longer id, not the same vendor
            ("PCI\\VEN_8086&DEV_10EE", False),  # id in the device field only
            ("10EE", False),  # no vendor field at all
        ],
    )
    def test_vendor_in(self, hwid, expected):
        """Test that vendor ids only match inside a VEN_/VID_ field"""
        sigs = SignatureSet(vendor_ids=frozenset({"10EE"}))
        assert sigs.vendor_in(hwid) is expected

    def test_keyword_in_case_insensitive(self):
        """Test that keyword matching ignores case and matches substrings"""
        sigs = SignatureSet(keywords=frozenset({"pcileech"}))
        assert sigs.keyword_in("My PCILeech board v2")
        assert not sigs.keyword_in("Intel Ethernet")

    def test_keyword_regex(self):
        """Test that keywords are treated as regular expressions"""
        sigs = SignatureSet(keywords=frozenset({"captain ?dma"}))
        assert sigs.keyword_in("CaptainDMA 75T")
        assert sigs.keyword_in("Captain DMA")

    def test_invalid_regex_matched_literally(self):
        """Test that a broken pattern falls back to a literal match instead of raising"""
        sigs = SignatureSet(keywords=frozenset({"dma[card"}))
        assert sigs.keyword_in("found a DMA[card here")
        assert not sigs.keyword_in("dma card")

    def test_whitelisted(self):
        """Test whitelist pattern matching"""
        sigs = SignatureSet(log_whitelist=frozenset({"kernel dma protection"}))
        assert sigs.whitelisted("Kernel DMA Protection is enabled for FPGA slot")
        assert not sigs.whitelisted("FPGA device installed")

    def test_empty_sets_never_match(self):
        """Test that empty signature sets match nothing"""
        sigs = SignatureSet(vendor_ids=frozenset(), keywords=frozenset(), log_whitelist=frozenset())
        assert not sigs.vendor_in("PCI\\VEN_10EE")
        assert not sigs.keyword_in("fpga")
        assert not sigs.whitelisted("anything")


class TestSignaturesFromMapping:
    """Tests for signatures_from_mapping"""

    def test_partial_override_keeps_defaults(self):
        """Test that absent keys keep the built-in defaults"""
        sigs = signatures_from_mapping({"keywords": ["custom"]})
        assert sigs.keywords == frozenset({"custom"})
        assert sigs.vendor_ids == frozenset(DEFAULT_VENDOR_IDS)

    def test_empty_list_clears(self):
        """Test that an explicit empty list replaces the defaults"""
        sigs = signatures_from_mapping({"log_whitelist": []})
        assert sigs.log_whitelist == frozenset()

    def test_rejects_non_mapping(self):
        """Test that a JSON list at the top level is rejected"""
        with pytest.raises(SignatureConfigError):
            signatures_from_mapping(["10EE"])  # type: ignore[arg-type]

    def test_rejects_string_value(self):
        """Test that a bare string is not accepted as a list"""
        with pytest.raises(SignatureConfigError):
            signatures_from_mapping({"vendor_ids": "10EE"})

    def test_rejects_non_string_items(self):
        """Test that numbers inside a list are rejected"""
        with pytest.raises(SignatureConfigError):
            signatures_from_mapping({"vendor_ids": [4334]})


class TestLoadSignatures:
    """Tests for load_signatures"""

    def test_none_path_gives_defaults(self):
        """Test that no path means defaults"""
        assert load_signatures(None) == SignatureSet()

    def test_missing_file_gives_defaults(self, tmp_path):
        """Test that a missing file means defaults"""
        assert load_signatures(str(tmp_path / "nope.json")) == SignatureSet()

    def test_empty_file_gives_defaults(self, tmp_path):
        """Test that an empty file means defaults"""
        p = tmp_path / "sigs.json"
        p.write_text("   ", encoding="utf-8")
        assert load_signatures(str(p)) == SignatureSet()

    def test_valid_file(self, tmp_path):
        """Test loading overrides from JSON"""
        p = tmp_path / "sigs.json"
        p.write_text(json.dumps({"vendor_ids": ["abcd"]}), encoding="utf-8")
        sigs = load_signatures(str(p))
        assert sigs.vendor_ids == frozenset({"ABCD"})

    def test_invalid_json_raises_config_error(self, tmp_path):
        """Test that malformed JSON is a configuration error"""
        p = tmp_path / "sigs.json"
        p.write_text("{ invalid json }", encoding="utf-8")
        with pytest.raises(SignatureConfigError):
            load_signatures(str(p))

    def test_non_utf8_file_raises_config_error(self, tmp_path):
        """Test that undecodable bytes are a configuration error"""
        p = tmp_path / "sigs.json"
        p.write_bytes(b'{"keywords": ["\xff\xfe"]}')
        with pytest.raises(SignatureConfigError):
            load_signatures(str(p))
