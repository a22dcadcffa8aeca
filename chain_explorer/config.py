"""
Chain Explorer Configuration - Chain table, endpoint pools and thresholds.

The default chain table mirrors the public endpoints the explorer has always
shipped with. It is plain data and may be replaced wholesale via set_config().
API keys are never stored here; see chain_explorer.credentials.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from chain_explorer.exceptions import ConfigurationError, UnconfiguredChainError
from chain_explorer.models import ChainDescriptor, ChainFamily, KeyedApiDescriptor


# ═══════════════════════════════════════════════════════════════
# ENDPOINT POOL
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class EndpointPool:
    """Ordered list of public endpoints for one chain. Never empty."""
    chain_id: str
    urls: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.urls:
            raise ConfigurationError(
                f"Endpoint pool for '{self.chain_id}' is empty",
                config_key=f"chains.{self.chain_id}.pool",
            )

    def __len__(self) -> int:
        return len(self.urls)

    def __getitem__(self, index: int) -> str:
        return self.urls[index]


# ═══════════════════════════════════════════════════════════════
# CHAIN CONFIG
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ChainConfig:
    """Descriptor, endpoint pool and credential lookup names for a chain."""
    descriptor: ChainDescriptor
    pool: EndpointPool
    api_key_env: tuple[str, ...] = ()

    @property
    def chain_id(self) -> str:
        return self.descriptor.id

    @property
    def family(self) -> ChainFamily:
        return self.descriptor.family

    def to_dict(self) -> dict[str, Any]:
        data = self.descriptor.to_dict()
        data["endpoints"] = list(self.pool.urls)
        keyed = self.descriptor.keyed_api
        data["requires_key"] = bool(keyed and keyed.requires_key)
        return data


@dataclass
class AnalyticsConfig:
    """Thresholds and constants used by the analytics aggregator."""

    # Native-unit value at or above which a transaction counts as large
    large_transaction_thresholds: dict[str, float] = field(default_factory=lambda: {
        "bitcoin": 1.0,
        "solana": 100.0,
    })
    default_large_transaction_threshold: float = 10.0

    # Seconds per block, used when the sample cannot estimate a rate
    block_times: dict[str, float] = field(default_factory=lambda: {
        "ethereum": 12.0,
        "bitcoin": 600.0,
        "polygon": 2.0,
        "bsc": 3.0,
        "solana": 0.4,
        "avalanche": 1.0,
        "arbitrum": 0.25,
        "optimism": 2.0,
        "base": 2.0,
        "aptos": 0.25,
        "sui": 0.5,
        "tron": 3.0,
        "cosmos": 6.0,
        "near": 1.2,
    })
    default_block_time: float = 12.0

    transactions_per_block: int = 50
    sample_size: int = 1000
    sample_blocks: int = 5
    large_transaction_blocks_api: int = 5
    large_transaction_blocks_rpc: int = 3

    def __post_init__(self) -> None:
        if self.transactions_per_block <= 0:
            raise ConfigurationError(
                "transactions_per_block must be positive",
                config_key="analytics.transactions_per_block",
            )
        if self.default_block_time <= 0 or any(t <= 0 for t in self.block_times.values()):
            raise ConfigurationError(
                "block times must be positive", config_key="analytics.block_times"
            )
        if any(t < 0 for t in self.large_transaction_thresholds.values()):
            raise ConfigurationError(
                "large transaction thresholds must be >= 0",
                config_key="analytics.large_transaction_thresholds",
            )

    def large_threshold(self, chain_id: str) -> float:
        return self.large_transaction_thresholds.get(
            chain_id, self.default_large_transaction_threshold
        )

    def block_time(self, chain_id: str) -> float:
        return self.block_times.get(chain_id, self.default_block_time)


@dataclass
class TimeoutConfig:
    """Deadlines for upstream calls, in seconds."""
    single_call: float = 10.0
    multi_hop: float = 15.0
    probe: float = 5.0

    def __post_init__(self) -> None:
        for name in ("single_call", "multi_hop", "probe"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(
                    f"{name} timeout must be positive", config_key=f"timeouts.{name}"
                )


# ═══════════════════════════════════════════════════════════════
# DEFAULT CHAIN TABLE
# ═══════════════════════════════════════════════════════════════

ETHERSCAN_V2_URL = "https://api.etherscan.io/v2/api"


def _evm(
    chain_id: str,
    name: str,
    symbol: str,
    urls: list[str],
    explorer: str,
    evm_chain_id: int,
    keyed_api: Optional[KeyedApiDescriptor] = None,
    key_env: tuple[str, ...] = (),
) -> ChainConfig:
    return ChainConfig(
        descriptor=ChainDescriptor(
            id=chain_id,
            name=name,
            symbol=symbol,
            family=ChainFamily.EVM,
            explorer_url_template=f"{explorer}/{{kind}}/{{id}}",
            keyed_api=keyed_api,
            evm_chain_id=evm_chain_id,
        ),
        pool=EndpointPool(chain_id, tuple(urls)),
        api_key_env=key_env + ("ETHERSCAN_API_KEY",) if keyed_api and keyed_api.requires_key else key_env,
    )


def _etherscan_v2(evm_chain_id: int) -> KeyedApiDescriptor:
    return KeyedApiDescriptor(ETHERSCAN_V2_URL, requires_key=True, chain_param=evm_chain_id)


def _chain(
    chain_id: str,
    name: str,
    symbol: str,
    family: ChainFamily,
    urls: list[str],
    explorer_template: str,
    native_denom: Optional[str] = None,
) -> ChainConfig:
    return ChainConfig(
        descriptor=ChainDescriptor(
            id=chain_id,
            name=name,
            symbol=symbol,
            family=family,
            explorer_url_template=explorer_template,
            native_denom=native_denom,
        ),
        pool=EndpointPool(chain_id, tuple(urls)),
    )


def default_chain_configs() -> dict[str, ChainConfig]:
    """The built-in chain table (public, keyless endpoints)."""
    chains = [
        _evm("ethereum", "Ethereum", "ETH", [
            "https://eth.llamarpc.com",
            "https://rpc.ankr.com/eth",
            "https://ethereum.publicnode.com",
            "https://eth.drpc.org",
            "https://1rpc.io/eth",
        ], "https://etherscan.io", 1, _etherscan_v2(1)),
        _evm("polygon", "Polygon", "POL", [
            "https://polygon-rpc.com",
            "https://rpc.ankr.com/polygon",
            "https://polygon.llamarpc.com",
            "https://polygon.drpc.org",
            "https://1rpc.io/matic",
        ], "https://polygonscan.com", 137, _etherscan_v2(137), ("POLYGONSCAN_API_KEY",)),
        _evm("bsc", "BNB Smart Chain", "BNB", [
            "https://bsc-dataseed.binance.org",
            "https://bsc-dataseed1.defibit.io",
            "https://rpc.ankr.com/bsc",
            "https://bsc-dataseed1.ninicoin.io",
            "https://1rpc.io/bnb",
        ], "https://bscscan.com", 56, _etherscan_v2(56), ("BSCSCAN_API_KEY",)),
        _evm("avalanche", "Avalanche C-Chain", "AVAX", [
            "https://api.avax.network/ext/bc/C/rpc",
            "https://avalanche.public-rpc.com",
            "https://rpc.ankr.com/avalanche",
            "https://avax.drpc.org",
            "https://1rpc.io/avax",
        ], "https://snowtrace.io", 43114, _etherscan_v2(43114), ("SNOWTRACE_API_KEY",)),
        _evm("arbitrum", "Arbitrum One", "ETH", [
            "https://arb1.arbitrum.io/rpc",
            "https://rpc.ankr.com/arbitrum",
            "https://arbitrum.llamarpc.com",
            "https://arbitrum.drpc.org",
            "https://1rpc.io/arb",
        ], "https://arbiscan.io", 42161, _etherscan_v2(42161), ("ARBISCAN_API_KEY",)),
        _evm("optimism", "Optimism", "ETH", [
            "https://mainnet.optimism.io",
            "https://rpc.ankr.com/optimism",
            "https://optimism.llamarpc.com",
            "https://optimism.drpc.org",
            "https://1rpc.io/op",
        ], "https://optimistic.etherscan.io", 10, _etherscan_v2(10),
            ("OPTIMISM_API_KEY", "OPTIMISM_ETHERSCAN_API_KEY")),
        _evm("base", "Base", "ETH", [
            "https://mainnet.base.org",
            "https://base.llamarpc.com",
            "https://base.drpc.org",
            "https://1rpc.io/base",
            "https://rpc.ankr.com/base",
        ], "https://basescan.org", 8453, _etherscan_v2(8453), ("BASESCAN_API_KEY",)),
        _evm("linea", "Linea", "ETH", [
            "https://rpc.linea.build",
            "https://linea.drpc.org",
            "https://1rpc.io/linea",
        ], "https://lineascan.build", 59144, _etherscan_v2(59144), ("LINEASCAN_API_KEY",)),
        _evm("zksync", "zkSync Era", "ETH", [
            "https://mainnet.era.zksync.io",
            "https://zksync.drpc.org",
            "https://1rpc.io/zksync",
        ], "https://explorer.zksync.io", 324, KeyedApiDescriptor(
            "https://block-explorer-api.mainnet.zksync.io/api", requires_key=False,
        )),
        _evm("scroll", "Scroll", "ETH", [
            "https://rpc.scroll.io",
            "https://scroll.drpc.org",
            "https://1rpc.io/scroll",
        ], "https://scrollscan.com", 534352, _etherscan_v2(534352), ("SCROLLSCAN_API_KEY",)),
        _evm("mantle", "Mantle", "MNT", [
            "https://rpc.mantle.xyz",
            "https://mantle.drpc.org",
            "https://1rpc.io/mantle",
        ], "https://explorer.mantle.xyz", 5000, KeyedApiDescriptor(
            "https://explorer.mantle.xyz/api", requires_key=False,
        )),
        _evm("blast", "Blast", "ETH", [
            "https://rpc.blast.io",
            "https://blast.drpc.org",
        ], "https://blastscan.io", 81457, _etherscan_v2(81457), ("BLASTSCAN_API_KEY",)),
        _evm("fantom", "Fantom", "FTM", [
            "https://rpc.ftm.tools",
            "https://fantom.drpc.org",
            "https://1rpc.io/ftm",
        ], "https://ftmscan.com", 250),
        _evm("celo", "Celo", "CELO", [
            "https://forno.celo.org",
            "https://celo.drpc.org",
        ], "https://celoscan.io", 42220),
        _evm("gnosis", "Gnosis", "xDAI", [
            "https://rpc.gnosischain.com",
            "https://gnosis.drpc.org",
        ], "https://gnosisscan.io", 100),
        _evm("cronos", "Cronos", "CRO", [
            "https://evm.cronos.org",
            "https://cronos.drpc.org",
        ], "https://cronoscan.com", 25),
        _chain("bitcoin", "Bitcoin", "BTC", ChainFamily.UTXO, [
            "https://blockstream.info/api",
            "https://mempool.space/api",
        ], "https://blockstream.info/{kind}/{id}"),
        _chain("solana", "Solana", "SOL", ChainFamily.SOLANA, [
            "https://api.mainnet-beta.solana.com",
            "https://rpc.ankr.com/solana",
            "https://solana.public-rpc.com",
            "https://solana.drpc.org",
        ], "https://solscan.io/{kind}/{id}"),
        _chain("aptos", "Aptos", "APT", ChainFamily.APTOS, [
            "https://fullnode.mainnet.aptoslabs.com",
            "https://aptos-mainnet.public.blastapi.io",
        ], "https://explorer.aptoslabs.com/{kind}/{id}"),
        _chain("sui", "Sui", "SUI", ChainFamily.SUI, [
            "https://fullnode.mainnet.sui.io",
            "https://sui-mainnet-endpoint.blockvision.org",
        ], "https://suiscan.xyz/mainnet/{kind}/{id}"),
        _chain("tron", "Tron", "TRX", ChainFamily.TRON, [
            "https://api.trongrid.io",
            "https://tron.blockpi.network/v1/rpc/public",
        ], "https://tronscan.org/#/{kind}/{id}"),
        _chain("cosmos", "Cosmos Hub", "ATOM", ChainFamily.COSMOS, [
            "https://cosmos-rest.publicnode.com",
            "https://cosmos-api.polkachu.com",
            "https://rest.cosmos.directory/cosmoshub",
        ], "https://www.mintscan.io/cosmos/{kind}/{id}", native_denom="uatom"),
        _chain("near", "NEAR", "NEAR", ChainFamily.NEAR, [
            "https://rpc.mainnet.near.org",
            "https://near-mainnet.api.onfinality.io/public",
        ], "https://nearblocks.io/{kind}/{id}"),
    ]
    return {c.chain_id: c for c in chains}


# ═══════════════════════════════════════════════════════════════
# EXPLORER CONFIG
# ═══════════════════════════════════════════════════════════════

@dataclass
class ExplorerConfig:
    """Top-level configuration for the explorer service."""
    chains: dict[str, ChainConfig] = field(default_factory=dict)
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)

    # Speculative lookup fan-out
    max_search_candidates: int = 5

    # Bounded lists in normalized address info
    address_history_limit: int = 10

    max_incidents: int = 500
    user_agent: str = "ChainExplorer/1.0"

    def __post_init__(self) -> None:
        if not self.chains:
            self.chains = default_chain_configs()
        for chain_id, chain in self.chains.items():
            if chain_id != chain.chain_id:
                raise ConfigurationError(
                    f"Chain key '{chain_id}' does not match descriptor id "
                    f"'{chain.chain_id}'",
                    config_key=f"chains.{chain_id}",
                )
        if self.max_search_candidates < 1:
            raise ConfigurationError(
                "max_search_candidates must be >= 1", config_key="max_search_candidates"
            )

    def get_chain(self, chain_id: str) -> ChainConfig:
        """Get configuration for a chain, raising if it is not configured."""
        chain = self.chains.get(chain_id)
        if chain is None:
            raise UnconfiguredChainError(chain_id, available=list(self.chains))
        return chain

    def descriptors(self) -> list[ChainDescriptor]:
        """All configured chains, in configuration order."""
        return [c.descriptor for c in self.chains.values()]

    def chains_in_family(self, family: ChainFamily) -> list[ChainDescriptor]:
        return [c.descriptor for c in self.chains.values() if c.family == family]

    def to_dict(self) -> dict[str, Any]:
        return {
            "chains": {cid: c.to_dict() for cid, c in self.chains.items()},
            "max_search_candidates": self.max_search_candidates,
            "timeouts": {
                "single_call": self.timeouts.single_call,
                "multi_hop": self.timeouts.multi_hop,
                "probe": self.timeouts.probe,
            },
        }


# Global config instance
_default_config: Optional[ExplorerConfig] = None


def get_config() -> ExplorerConfig:
    """Get the default configuration."""
    global _default_config
    if _default_config is None:
        _default_config = ExplorerConfig()
    return _default_config


def set_config(config: ExplorerConfig) -> None:
    """Set the default configuration."""
    global _default_config
    _default_config = config


def default_config() -> ExplorerConfig:
    """A fresh configuration with the built-in chain table."""
    return ExplorerConfig(chains=default_chain_configs())
