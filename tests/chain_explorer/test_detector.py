"""
Tests for the Chain / Query Detector.

============================================================
PURPOSE
============================================================
Pattern-based chain ranking for raw queries:
1. Address formats per family
2. Transaction hash formats
3. Block heights and unmatched queries
4. Ranking order and query-type detection

============================================================
"""

import pytest

from chain_explorer.detector import ChainDetector, detect_query_type
from chain_explorer.models import ChainFamily, EntityType


EVM_ADDRESS = "0x" + "a" * 40
EVM_HASH = "0x" + "b" * 64
BECH32 = "bc1qxy2kgdygjrsqtzq2n0yrf2493p83kkfjhx0wlh"
LEGACY = "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa"
SOLANA = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
TRON = "TR7NHqjeKQxGTCi8q8ZY4pL8otSzgjLj6t"
COSMOS = "cosmos1" + "q" * 38
SOLANA_SIGNATURE = "5" + "Kj" * 43 + "x"


@pytest.fixture
def detector(default_config):
    return ChainDetector(default_config)


def families_of(matches):
    return {m.chain.family for m in matches}


# ============================================================
# ADDRESSES
# ============================================================

class TestAddressDetection:
    """Tests for address format detection."""

    def test_evm_address_matches_every_evm_chain(self, detector, default_config):
        matches = detector.detect(EVM_ADDRESS)
        evm_chains = default_config.chains_in_family(ChainFamily.EVM)

        assert len(matches) == len(evm_chains)
        assert [m.chain for m in matches] == evm_chains
        assert all(m.confidence == 0.70 for m in matches)
        assert all(m.entity_type == EntityType.ADDRESS for m in matches)

    def test_evm_address_never_matches_bitcoin_solana_tron(self, detector):
        families = families_of(detector.detect(EVM_ADDRESS))
        assert ChainFamily.UTXO not in families
        assert ChainFamily.SOLANA not in families
        assert ChainFamily.TRON not in families

    def test_bech32_is_bitcoin_only(self, detector):
        matches = detector.detect(BECH32)
        assert len(matches) == 1
        assert matches[0].chain.id == "bitcoin"
        assert matches[0].confidence == 0.95
        assert matches[0].entity_type == EntityType.ADDRESS

    def test_legacy_bitcoin_address(self, detector):
        matches = detector.detect(LEGACY)
        assert matches[0].chain.id == "bitcoin"
        assert ChainFamily.SOLANA not in families_of(matches)

    def test_solana_address(self, detector):
        matches = detector.detect(SOLANA)
        assert matches[0].chain.id == "solana"
        assert matches[0].confidence == 0.80

    def test_tron_address_ranks_tron_first(self, detector):
        matches = detector.detect(TRON)
        assert matches[0].chain.id == "tron"
        assert matches[0].confidence == 0.95

    def test_cosmos_address(self, detector):
        matches = detector.detect(COSMOS)
        assert [m.chain.id for m in matches] == ["cosmos"]

    def test_near_named_account(self, detector):
        matches = detector.detect("alice.near")
        assert [m.chain.id for m in matches] == ["near"]
        assert matches[0].confidence == 0.90

    def test_move_short_address(self, detector):
        matches = detector.detect("0x1")
        assert {m.chain.id for m in matches} == {"aptos", "sui"}
        assert all(m.confidence == 0.60 for m in matches)


# ============================================================
# TRANSACTIONS, BLOCKS, FALLBACK
# ============================================================

class TestOtherQueries:
    """Tests for hashes, heights and unmatched input."""

    def test_evm_hash_ranks_evm_above_aptos(self, detector):
        matches = detector.detect(EVM_HASH)
        assert matches[0].chain.family == ChainFamily.EVM
        assert matches[0].entity_type == EntityType.TRANSACTION
        assert matches[-1].chain.id == "aptos"
        assert matches[-1].confidence == 0.60

    def test_bare_hex_hash_prefers_bitcoin(self, detector):
        matches = detector.detect("c" * 64)
        assert matches[0].chain.id == "bitcoin"
        assert matches[0].confidence == 0.90
        assert {m.chain.id for m in matches[1:]} == {"tron", "cosmos"}

    def test_solana_signature(self, detector):
        matches = detector.detect(SOLANA_SIGNATURE)
        assert [m.chain.id for m in matches] == ["solana"]
        assert matches[0].entity_type == EntityType.TRANSACTION

    def test_digits_are_block_heights_everywhere(self, detector, default_config):
        matches = detector.detect("18000000")
        assert len(matches) == len(default_config.chains)
        assert all(m.entity_type == EntityType.BLOCK for m in matches)
        assert all(m.confidence == 0.30 for m in matches)

    def test_unmatched_query_is_unknown_everywhere(self, detector, default_config):
        matches = detector.detect("hello world")
        assert len(matches) == len(default_config.chains)
        assert all(m.confidence == 0.10 for m in matches)
        assert all(m.entity_type == EntityType.UNKNOWN for m in matches)

    def test_empty_query(self, detector):
        assert detector.detect("") == []
        assert detector.detect("   ") == []
        assert detector.best_match("") is None

    def test_whitespace_is_stripped(self, detector):
        assert detector.detect(f"  {BECH32}\n")[0].chain.id == "bitcoin"

    def test_ranking_is_descending(self, detector):
        for query in (EVM_ADDRESS, EVM_HASH, TRON, "c" * 64, "0x1"):
            confidences = [m.confidence for m in detector.detect(query)]
            assert confidences == sorted(confidences, reverse=True)


class TestQueryType:
    """Tests for detect_query_type."""

    def test_hashes(self):
        assert detect_query_type(EVM_HASH) == EntityType.TRANSACTION
        assert detect_query_type("c" * 64) == EntityType.TRANSACTION

    def test_block(self):
        assert detect_query_type("12345") == EntityType.BLOCK

    def test_address(self):
        assert detect_query_type(EVM_ADDRESS) == EntityType.ADDRESS
        assert detect_query_type(BECH32) == EntityType.ADDRESS

    def test_unknown(self):
        assert detect_query_type("alice") == EntityType.UNKNOWN
