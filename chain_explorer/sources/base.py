"""
Base sources - raw upstream adapters for the two tiers.

A source performs the upstream calls for one chain family and hands the
decoded payloads to that family's normalizer. Sources never choose
endpoints or fall back; the policy does that.

    ApiSource  - keyed scan-style API, called with (chain, api_key, ...)
    RpcSource  - public node pool, called with (chain, endpoint, ...)
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from chain_explorer.config import TimeoutConfig
from chain_explorer.exceptions import (
    EntityNotFoundError,
    FetchError,
    OperationNotSupportedError,
)
from chain_explorer.models import (
    ChainDescriptor,
    ChainFamily,
    ChainStats,
    NormalizedAddressInfo,
    NormalizedBlock,
    NormalizedTransaction,
    TokenInfo,
)
from chain_explorer.normalizers import BaseNormalizer, get_normalizer
from chain_explorer.transport import HttpTransport


logger = logging.getLogger(__name__)


class BaseSource(ABC):
    """Shared plumbing for API and RPC sources."""

    family: ChainFamily

    def __init__(
        self,
        transport: HttpTransport,
        timeouts: Optional[TimeoutConfig] = None,
        history_limit: int = 10,
    ) -> None:
        self._transport = transport
        self._timeouts = timeouts or TimeoutConfig()
        self._history_limit = history_limit

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this source."""
        pass

    @property
    def normalizer(self) -> BaseNormalizer:
        return get_normalizer(self.family)

    def unsupported(self, operation: str, chain: ChainDescriptor) -> OperationNotSupportedError:
        return OperationNotSupportedError(operation, chain=chain.id, source_name=self.name)

    def not_found(self, entity: str, identifier: Any, chain: ChainDescriptor) -> EntityNotFoundError:
        return EntityNotFoundError(
            f"{entity.capitalize()} not found",
            entity_type=entity,
            identifier=str(identifier) if identifier is not None else None,
            chain=chain.id,
            source_name=self.name,
        )

    async def _get_entity(
        self,
        url: str,
        entity: str,
        identifier: Any,
        chain: ChainDescriptor,
        params: Optional[dict[str, Any]] = None,
        not_found_statuses: tuple[int, ...] = (404,),
    ) -> Any:
        """GET a REST resource, mapping "not found" statuses to EntityNotFoundError."""
        try:
            return await self._transport.get_json(url, params=params, timeout=self._timeouts.multi_hop)
        except FetchError as e:
            if e.status_code in not_found_statuses:
                raise self.not_found(entity, identifier, chain) from e
            raise

    async def _get_optional(self, url: str, params: Optional[dict[str, Any]] = None) -> Any:
        """GET a REST resource, returning None on 404."""
        try:
            return await self._transport.get_json(url, params=params, timeout=self._timeouts.multi_hop)
        except FetchError as e:
            if e.status_code == 404:
                return None
            raise

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name={self.name})>"


class RpcSource(BaseSource):
    """Public endpoint tier. Every operation receives the resolved endpoint."""

    @abstractmethod
    async def probe(self, endpoint: str) -> bool:
        """Cheap read-only liveness call. Raises on transport failure."""
        pass

    async def _rpc(self, endpoint: str, method: str, params: Any = None, timeout: Optional[float] = None) -> Any:
        return await self._transport.rpc_call(
            endpoint, method, params, timeout=timeout or self._timeouts.single_call
        )

    @abstractmethod
    async def get_address_info(
        self, chain: ChainDescriptor, endpoint: str, address: str,
    ) -> NormalizedAddressInfo:
        pass

    @abstractmethod
    async def get_transaction(
        self, chain: ChainDescriptor, endpoint: str, tx_hash: str,
    ) -> NormalizedTransaction:
        pass

    @abstractmethod
    async def get_block(
        self, chain: ChainDescriptor, endpoint: str, number: Optional[int] = None,
    ) -> NormalizedBlock:
        """Get a block by height, or the latest block when number is None."""
        pass

    @abstractmethod
    async def get_latest_transactions(
        self, chain: ChainDescriptor, endpoint: str, limit: int,
    ) -> list[NormalizedTransaction]:
        pass

    async def get_recent_transactions(
        self, chain: ChainDescriptor, endpoint: str, block_count: int, limit: int,
    ) -> list[NormalizedTransaction]:
        """Transactions from the last block_count blocks. Defaults to the latest sample."""
        return await self.get_latest_transactions(chain, endpoint, limit)

    async def get_token_info(
        self, chain: ChainDescriptor, endpoint: str, token_address: str,
    ) -> TokenInfo:
        raise self.unsupported("get_token_info", chain)

    async def get_chain_stats(self, chain: ChainDescriptor, endpoint: str) -> ChainStats:
        block = await self.get_block(chain, endpoint, None)
        return ChainStats(chain_id=chain.id, latest_block=block.number)


class ApiSource(BaseSource):
    """Keyed API tier. Every operation receives the chain's API key."""

    @abstractmethod
    async def validate_key(self, chain: ChainDescriptor, api_key: str) -> bool:
        """Return True when the upstream accepts the key."""
        pass

    async def get_address_info(
        self, chain: ChainDescriptor, api_key: str, address: str,
    ) -> NormalizedAddressInfo:
        raise self.unsupported("get_address_info", chain)

    async def get_transaction(
        self, chain: ChainDescriptor, api_key: str, tx_hash: str,
    ) -> NormalizedTransaction:
        raise self.unsupported("get_transaction", chain)

    async def get_block(
        self, chain: ChainDescriptor, api_key: str, number: Optional[int] = None,
    ) -> NormalizedBlock:
        raise self.unsupported("get_block", chain)

    async def get_latest_transactions(
        self, chain: ChainDescriptor, api_key: str, limit: int,
    ) -> list[NormalizedTransaction]:
        raise self.unsupported("get_latest_transactions", chain)

    async def get_recent_transactions(
        self, chain: ChainDescriptor, api_key: str, block_count: int, limit: int,
    ) -> list[NormalizedTransaction]:
        raise self.unsupported("get_recent_transactions", chain)

    async def get_token_info(
        self, chain: ChainDescriptor, api_key: str, token_address: str,
    ) -> TokenInfo:
        raise self.unsupported("get_token_info", chain)

    async def get_chain_stats(self, chain: ChainDescriptor, api_key: str) -> ChainStats:
        raise self.unsupported("get_chain_stats", chain)
