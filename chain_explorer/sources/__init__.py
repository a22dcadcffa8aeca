"""
Upstream sources - keyed API and public RPC/REST adapters per chain family.
"""

from chain_explorer.sources.aptos import AptosSource
from chain_explorer.sources.base import ApiSource, BaseSource, RpcSource
from chain_explorer.sources.cosmos import CosmosSource
from chain_explorer.sources.esplora import EsploraSource
from chain_explorer.sources.etherscan import EtherscanSource
from chain_explorer.sources.evm_rpc import EvmRpcSource
from chain_explorer.sources.near import NearSource
from chain_explorer.sources.solana import SolanaSource
from chain_explorer.sources.sui import SuiSource
from chain_explorer.sources.tron import TronSource


__all__ = [
    "ApiSource",
    "AptosSource",
    "BaseSource",
    "CosmosSource",
    "EsploraSource",
    "EtherscanSource",
    "EvmRpcSource",
    "NearSource",
    "RpcSource",
    "SolanaSource",
    "SuiSource",
    "TronSource",
]
