"""
Chain Explorer Data Models - Normalized, chain-agnostic entities.

Upstream payloads from every family (EVM, UTXO, Solana, Aptos, Sui, Tron,
Cosmos, NEAR) are converted into these types at the source boundary.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class ChainFamily(Enum):
    """Protocol family of a chain. Determines which sources and normalizer apply."""
    EVM = "evm"
    UTXO = "utxo"
    SOLANA = "solana"
    APTOS = "aptos"
    SUI = "sui"
    TRON = "tron"
    COSMOS = "cosmos"
    NEAR = "near"


class EntityType(Enum):
    """Kind of entity a query refers to."""
    ADDRESS = "address"
    TRANSACTION = "transaction"
    BLOCK = "block"
    UNKNOWN = "unknown"


class TxStatus(Enum):
    """Collapsed transaction outcome."""
    SUCCESS = "success"
    FAILED = "failed"
    PENDING = "pending"


def _decimal_str(value: Optional[Decimal]) -> Optional[str]:
    if value is None:
        return None
    return "{:f}".format(value.normalize())


# ─────────────────────────────────────────────────────────────
# Chain descriptors
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class KeyedApiDescriptor:
    """Scan-style HTTP API for a chain (Etherscan family)."""
    base_url: str
    requires_key: bool = True
    free_tier: bool = True
    chain_param: Optional[int] = None  # Etherscan V2 "chainid"


@dataclass(frozen=True)
class ChainDescriptor:
    """Static description of a configured chain."""
    id: str
    name: str
    symbol: str
    family: ChainFamily
    explorer_url_template: str = ""
    keyed_api: Optional[KeyedApiDescriptor] = None
    evm_chain_id: Optional[int] = None
    native_denom: Optional[str] = None

    @property
    def api_url(self) -> Optional[str]:
        return self.keyed_api.base_url if self.keyed_api else None

    def explorer_url(self, kind: str, ident: str) -> str:
        """Render a block-explorer link, e.g. kind="tx"."""
        if not self.explorer_url_template:
            return ""
        return self.explorer_url_template.format(kind=kind, id=ident)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "symbol": self.symbol,
            "family": self.family.value,
            "api_url": self.api_url,
            "explorer_url_template": self.explorer_url_template,
            "evm_chain_id": self.evm_chain_id,
        }


# ─────────────────────────────────────────────────────────────
# Normalized entities
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class NormalizedTransaction:
    """
    Chain-agnostic transaction.

    value is in native units (ETH, BTC, SOL...). gas_price is gwei for EVM
    chains and the chain's own fee unit elsewhere. Chain-specific fields go
    to extensions and are never required by callers.
    """
    hash: str
    chain_id: str
    from_address: Optional[str]
    to_address: Optional[str]
    value: Decimal
    status: TxStatus
    timestamp: Optional[int] = None
    block_number: Optional[int] = None
    gas: Optional[int] = None
    gas_price: Optional[float] = None
    gas_used: Optional[int] = None
    fee: Optional[Decimal] = None
    extensions: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "hash": self.hash,
            "chain_id": self.chain_id,
            "from": self.from_address,
            "to": self.to_address,
            "value": _decimal_str(self.value),
            "status": self.status.value,
            "timestamp": self.timestamp,
            "block_number": self.block_number,
            "gas": self.gas,
            "gas_price": self.gas_price,
            "gas_used": self.gas_used,
            "fee": _decimal_str(self.fee),
            "extensions": self.extensions,
        }


@dataclass(frozen=True)
class TokenTransfer:
    """Fungible token movement attached to an address."""
    hash: str
    chain_id: str
    from_address: Optional[str]
    to_address: Optional[str]
    token_address: Optional[str]
    token_symbol: Optional[str]
    value: Decimal
    timestamp: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "hash": self.hash,
            "chain_id": self.chain_id,
            "from": self.from_address,
            "to": self.to_address,
            "token_address": self.token_address,
            "token_symbol": self.token_symbol,
            "value": _decimal_str(self.value),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class NormalizedAddressInfo:
    """Balance and bounded recent activity for an address."""
    address: str
    chain_id: str
    balance: Decimal
    transaction_count: Optional[int] = None
    transactions: tuple[NormalizedTransaction, ...] = ()
    token_transfers: tuple[TokenTransfer, ...] = ()
    extensions: dict[str, Any] = field(default_factory=dict)

    def is_empty(self) -> bool:
        """True when the address shows no balance and no activity."""
        return (
            self.balance == 0
            and not self.transaction_count
            and not self.transactions
            and not self.token_transfers
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "chain_id": self.chain_id,
            "balance": _decimal_str(self.balance),
            "transaction_count": self.transaction_count,
            "transactions": [tx.to_dict() for tx in self.transactions],
            "token_transfers": [t.to_dict() for t in self.token_transfers],
            "extensions": self.extensions,
        }


@dataclass(frozen=True)
class NormalizedBlock:
    """Block, slot, checkpoint or version range, depending on the chain."""
    number: int
    chain_id: str
    hash: Optional[str]
    timestamp: Optional[int]
    transaction_count: Optional[int]
    gas_used: Optional[int] = None
    gas_limit: Optional[int] = None
    extensions: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "number": self.number,
            "chain_id": self.chain_id,
            "hash": self.hash,
            "timestamp": self.timestamp,
            "transaction_count": self.transaction_count,
            "gas_used": self.gas_used,
            "gas_limit": self.gas_limit,
            "extensions": self.extensions,
        }


@dataclass(frozen=True)
class TokenInfo:
    """Fungible token metadata."""
    address: str
    chain_id: str
    name: Optional[str]
    symbol: Optional[str]
    decimals: Optional[int]
    total_supply: Optional[Decimal]

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "chain_id": self.chain_id,
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "total_supply": _decimal_str(self.total_supply),
        }


@dataclass(frozen=True)
class GasPriceTiers:
    """Gas price suggestions in gwei."""
    safe: float
    propose: float
    fast: float

    def to_dict(self) -> dict[str, Any]:
        return {"safe": self.safe, "propose": self.propose, "fast": self.fast}


@dataclass(frozen=True)
class ChainStats:
    """Point-in-time chain head statistics."""
    chain_id: str
    latest_block: int
    gas_price: Optional[GasPriceTiers] = None
    mempool_size: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "chain_id": self.chain_id,
            "latest_block": self.latest_block,
            "gas_price": self.gas_price.to_dict() if self.gas_price else None,
            "mempool_size": self.mempool_size,
        }


# ─────────────────────────────────────────────────────────────
# Detection, analytics, search
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ChainMatch:
    """A candidate chain for a raw query, with confidence in [0, 1]."""
    chain: ChainDescriptor
    confidence: float
    reason: str
    entity_type: EntityType

    def to_dict(self) -> dict[str, Any]:
        return {
            "chain_id": self.chain.id,
            "chain_name": self.chain.name,
            "confidence": self.confidence,
            "reason": self.reason,
            "entity_type": self.entity_type.value,
        }


@dataclass(frozen=True)
class AnalyticsSnapshot:
    """Analytics derived from one transaction sample. Never persisted."""
    chain_id: str
    window: str
    total_transactions: int = 0
    active_addresses: int = 0
    total_volume: Decimal = Decimal(0)
    average_gas_price: float = 0.0
    block_production_rate: float = 0.0
    network_health: float = 0.0
    large_transaction_count: int = 0
    success_rate: float = 0.0
    gas_price_stability: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "chain_id": self.chain_id,
            "window": self.window,
            "total_transactions": self.total_transactions,
            "active_addresses": self.active_addresses,
            "total_volume": _decimal_str(self.total_volume),
            "average_gas_price": round(self.average_gas_price, 4),
            "block_production_rate": round(self.block_production_rate, 4),
            "network_health": round(self.network_health, 2),
            "large_transaction_count": self.large_transaction_count,
            "success_rate": round(self.success_rate, 4),
            "gas_price_stability": round(self.gas_price_stability, 4),
        }


@dataclass(frozen=True)
class SearchResult:
    """One chain on which a speculative lookup resolved."""
    query: str
    chain: ChainDescriptor
    entity_type: EntityType
    confidence: float
    data: Any

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "chain_id": self.chain.id,
            "chain_name": self.chain.name,
            "entity_type": self.entity_type.value,
            "confidence": self.confidence,
            "data": self.data.to_dict() if hasattr(self.data, "to_dict") else self.data,
        }


@dataclass(frozen=True)
class ApiKeyValidation:
    """Outcome of validating a chain's keyed-API credential."""
    chain_id: str
    valid: bool
    message: str
    has_api_key: bool
    using_rpc: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "chain_id": self.chain_id,
            "valid": self.valid,
            "message": self.message,
            "has_api_key": self.has_api_key,
            "using_rpc": self.using_rpc,
        }


@dataclass
class SourceIncident:
    """A tier failure recorded by the source selection policy."""
    chain_id: str
    operation: str
    tier: str
    error_type: str
    error_message: str
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "chain_id": self.chain_id,
            "operation": self.operation,
            "tier": self.tier,
            "error_type": self.error_type,
            "error_message": self.error_message,
            "timestamp": self.timestamp.isoformat(),
        }
