"""
Chain / query-type detector - pure pattern matching on a raw query.

Confidence bands are fixed; results are ranked by confidence (ties keep
configuration order). No network access.

    0.95  Bitcoin addresses, Tron addresses, Cosmos addresses
    0.90  64-hex without 0x on UTXO chains, named NEAR accounts
    0.80  base58 Solana addresses and signatures
    0.70  0x-addresses and 0x-hashes on every EVM chain
    0.60  Move-style short addresses (Aptos, Sui), Aptos hashes
    0.50  64-hex without 0x on Tron and Cosmos
    0.30  pure digits: a block height on any chain
    0.10  nothing matched: every chain, entity unknown
"""

import re
from typing import Optional

from chain_explorer.config import ExplorerConfig, get_config
from chain_explorer.models import ChainDescriptor, ChainFamily, ChainMatch, EntityType


BASE58 = "1-9A-HJ-NP-Za-km-z"

BITCOIN_LEGACY = re.compile(rf"^[13][{BASE58}]{{25,34}}$")
BITCOIN_BECH32 = re.compile(r"^bc1[a-z0-9]{39,59}$")
HEX64 = re.compile(r"^[0-9a-fA-F]{64}$")
EVM_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{40}$")
EVM_HASH = re.compile(r"^0x[0-9a-fA-F]{64}$")
MOVE_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{1,63}$")
SOLANA_ADDRESS = re.compile(rf"^[{BASE58}]{{32,44}}$")
SOLANA_SIGNATURE = re.compile(rf"^[{BASE58}]{{87,88}}$")
TRON_ADDRESS = re.compile(r"^T[A-Za-z1-9]{33}$")
COSMOS_ADDRESS = re.compile(r"^cosmos1[a-z0-9]{38}$")
NEAR_ACCOUNT = re.compile(r"^([a-z0-9_-]+\.)+(near|tg)$")
DIGITS = re.compile(r"^\d+$")


def detect_query_type(query: str) -> EntityType:
    """Coarse entity type of a query, independent of chain."""
    query = query.strip()
    if EVM_HASH.match(query) or HEX64.match(query):
        return EntityType.TRANSACTION
    if DIGITS.match(query):
        return EntityType.BLOCK
    if len(query) > 20:
        return EntityType.ADDRESS
    return EntityType.UNKNOWN


class ChainDetector:
    """
    Ranks configured chains by how likely a raw query belongs to them.

    Usage:
        detector = ChainDetector(config)
        matches = detector.detect("bc1q...")
        best = matches[0].chain
    """

    def __init__(self, config: Optional[ExplorerConfig] = None) -> None:
        self._config = config or get_config()

    def _family(self, family: ChainFamily) -> list[ChainDescriptor]:
        return self._config.chains_in_family(family)

    def detect(self, query: str) -> list[ChainMatch]:
        query = (query or "").strip()
        if not query:
            return []

        matches: list[ChainMatch] = []

        def add(chains: list[ChainDescriptor], confidence: float, reason: str, entity: EntityType) -> None:
            matches.extend(ChainMatch(chain, confidence, reason, entity) for chain in chains)

        if DIGITS.match(query):
            add(self._config.descriptors(), 0.30, "Numeric block height", EntityType.BLOCK)
            return matches

        if BITCOIN_LEGACY.match(query) or BITCOIN_BECH32.match(query):
            add(self._family(ChainFamily.UTXO), 0.95, "Bitcoin address format", EntityType.ADDRESS)

        if HEX64.match(query):
            add(self._family(ChainFamily.UTXO), 0.90, "64-character hex transaction id", EntityType.TRANSACTION)
            add(self._family(ChainFamily.TRON), 0.50, "64-character hex transaction id", EntityType.TRANSACTION)
            add(self._family(ChainFamily.COSMOS), 0.50, "64-character hex transaction hash", EntityType.TRANSACTION)

        if EVM_ADDRESS.match(query):
            add(self._family(ChainFamily.EVM), 0.70, "EVM address format", EntityType.ADDRESS)
        elif EVM_HASH.match(query):
            add(self._family(ChainFamily.EVM), 0.70, "EVM transaction hash format", EntityType.TRANSACTION)
            add(self._family(ChainFamily.APTOS), 0.60, "Aptos transaction hash format", EntityType.TRANSACTION)
        elif MOVE_ADDRESS.match(query):
            add(self._family(ChainFamily.APTOS), 0.60, "Move address format", EntityType.ADDRESS)
            add(self._family(ChainFamily.SUI), 0.60, "Move address format", EntityType.ADDRESS)

        if not query.startswith(("0x", "1", "3", "bc1")):
            if SOLANA_ADDRESS.match(query):
                add(self._family(ChainFamily.SOLANA), 0.80, "Base58 public key format", EntityType.ADDRESS)
            elif SOLANA_SIGNATURE.match(query):
                add(self._family(ChainFamily.SOLANA), 0.80, "Base58 signature format", EntityType.TRANSACTION)

        if TRON_ADDRESS.match(query):
            add(self._family(ChainFamily.TRON), 0.95, "Tron address format", EntityType.ADDRESS)

        if COSMOS_ADDRESS.match(query):
            add(self._family(ChainFamily.COSMOS), 0.95, "Cosmos address format", EntityType.ADDRESS)

        if NEAR_ACCOUNT.match(query):
            add(self._family(ChainFamily.NEAR), 0.90, "NEAR named account", EntityType.ADDRESS)

        if not matches:
            add(self._config.descriptors(), 0.10, "No known format matched", EntityType.UNKNOWN)

        # Stable sort: ties keep configuration order
        return sorted(matches, key=lambda m: -m.confidence)

    def best_match(self, query: str) -> Optional[ChainMatch]:
        matches = self.detect(query)
        return matches[0] if matches else None
