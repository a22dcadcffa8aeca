"""
Response normalizers - one per chain family.

Usage:
    from chain_explorer.normalizers import get_normalizer

    tx = get_normalizer(ChainFamily.EVM).to_transaction(raw, "ethereum")
"""

from chain_explorer.models import ChainFamily
from chain_explorer.normalizers.aptos import AptosNormalizer
from chain_explorer.normalizers.base import (
    NATIVE_DECIMALS,
    BaseNormalizer,
    parse_int,
    to_native,
)
from chain_explorer.normalizers.cosmos import CosmosNormalizer
from chain_explorer.normalizers.evm import EvmNormalizer
from chain_explorer.normalizers.near import NearNormalizer
from chain_explorer.normalizers.solana import SolanaNormalizer
from chain_explorer.normalizers.sui import SuiNormalizer
from chain_explorer.normalizers.tron import TronNormalizer
from chain_explorer.normalizers.utxo import UtxoNormalizer


_NORMALIZERS: dict[ChainFamily, BaseNormalizer] = {
    normalizer.family: normalizer
    for normalizer in (
        EvmNormalizer(),
        UtxoNormalizer(),
        SolanaNormalizer(),
        AptosNormalizer(),
        SuiNormalizer(),
        TronNormalizer(),
        CosmosNormalizer(),
        NearNormalizer(),
    )
}


def get_normalizer(family: ChainFamily) -> BaseNormalizer:
    """Get the stateless normalizer for a family."""
    return _NORMALIZERS[family]


__all__ = [
    "NATIVE_DECIMALS",
    "AptosNormalizer",
    "BaseNormalizer",
    "CosmosNormalizer",
    "EvmNormalizer",
    "NearNormalizer",
    "SolanaNormalizer",
    "SuiNormalizer",
    "TronNormalizer",
    "UtxoNormalizer",
    "get_normalizer",
    "parse_int",
    "to_native",
]
