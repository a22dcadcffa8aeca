"""
Chain Explorer Package - Multi-chain data-source resolution and aggregation.

Resolves public endpoints, picks between keyed scan APIs and public RPC
pools, normalizes every family's payloads into one entity model, and
derives network analytics from recent transactions.

Features:
- Sticky "last known good" endpoint rotation per chain
- Keyed API first, public pool second, typed errors always
- Chain detection from a raw address, hash or block height
- Exact Decimal unit conversion per chain family
- Analytics snapshots (volume, gas stability, network health)

Quick Start:
    from chain_explorer import ExplorerService

    async def inspect(query: str):
        async with ExplorerService() as explorer:
            for match in explorer.detect_chains(query):
                print(f"{match.chain.name}: {match.confidence:.2f}")

            results = await explorer.search(query)
            for result in results:
                print(result.chain.id, result.data.to_dict())

            snapshot = await explorer.get_analytics("ethereum", "24h")
            print(f"Health: {snapshot.network_health:.1f}")

Supported Families:
- evm: Ethereum and EVM L1/L2s (JSON-RPC, Etherscan V2)
- utxo: Bitcoin (Esplora)
- solana, aptos, sui, tron, cosmos, near

Adding a Chain:
    config.chains["mychain"] = ChainConfig(descriptor=..., pool=EndpointPool(...))

Adding a Family:
    registry.register(ChainFamily.X, MyRpcSource(transport), normalizer=MyNormalizer())
"""

from chain_explorer.analytics import AnalyticsAggregator, gas_price_stability
from chain_explorer.config import (
    AnalyticsConfig,
    ChainConfig,
    EndpointPool,
    ExplorerConfig,
    TimeoutConfig,
    default_config,
    get_config,
    set_config,
)
from chain_explorer.credentials import CredentialStore
from chain_explorer.detector import ChainDetector, detect_query_type
from chain_explorer.endpoints import EndpointHealthCache, EndpointResolver
from chain_explorer.exceptions import (
    ConfigurationError,
    EntityNotFoundError,
    ExplorerError,
    FetchError,
    InvalidCredentialError,
    NormalizationError,
    OperationNotSupportedError,
    RateLimitError,
    RequestTimeoutError,
    RpcError,
    SourceExhaustedError,
    UnconfiguredChainError,
)
from chain_explorer.models import (
    AnalyticsSnapshot,
    ApiKeyValidation,
    ChainDescriptor,
    ChainFamily,
    ChainMatch,
    ChainStats,
    EntityType,
    GasPriceTiers,
    KeyedApiDescriptor,
    NormalizedAddressInfo,
    NormalizedBlock,
    NormalizedTransaction,
    SearchResult,
    SourceIncident,
    TokenInfo,
    TokenTransfer,
    TxStatus,
)
from chain_explorer.policy import SourceSelectionPolicy
from chain_explorer.registry import FamilyAdapters, FamilyRegistry, create_default_registry
from chain_explorer.service import ExplorerService
from chain_explorer.transport import HttpTransport


__version__ = "1.0.0"

__all__ = [
    # Service
    "ExplorerService",

    # Components
    "AnalyticsAggregator",
    "ChainDetector",
    "CredentialStore",
    "EndpointHealthCache",
    "EndpointResolver",
    "FamilyAdapters",
    "FamilyRegistry",
    "HttpTransport",
    "SourceSelectionPolicy",
    "create_default_registry",
    "detect_query_type",
    "gas_price_stability",

    # Configuration
    "AnalyticsConfig",
    "ChainConfig",
    "EndpointPool",
    "ExplorerConfig",
    "TimeoutConfig",
    "default_config",
    "get_config",
    "set_config",

    # Models
    "AnalyticsSnapshot",
    "ApiKeyValidation",
    "ChainDescriptor",
    "ChainFamily",
    "ChainMatch",
    "ChainStats",
    "EntityType",
    "GasPriceTiers",
    "KeyedApiDescriptor",
    "NormalizedAddressInfo",
    "NormalizedBlock",
    "NormalizedTransaction",
    "SearchResult",
    "SourceIncident",
    "TokenInfo",
    "TokenTransfer",
    "TxStatus",

    # Exceptions
    "ExplorerError",
    "ConfigurationError",
    "UnconfiguredChainError",
    "FetchError",
    "RequestTimeoutError",
    "RateLimitError",
    "RpcError",
    "InvalidCredentialError",
    "EntityNotFoundError",
    "NormalizationError",
    "OperationNotSupportedError",
    "SourceExhaustedError",
]
