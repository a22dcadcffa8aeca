"""
Explorer Service - the public, chain-agnostic entry point.

Wires the endpoint resolver, family registry, credential store and source
selection policy together, and exposes lookups, speculative search,
large-transaction scans and analytics. Every method returns normalized
entities or raises a typed ExplorerError.
"""

import asyncio
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

from chain_explorer.analytics import WINDOWS, AnalyticsAggregator
from chain_explorer.config import ChainConfig, ExplorerConfig, get_config
from chain_explorer.credentials import CredentialStore
from chain_explorer.detector import ChainDetector, detect_query_type
from chain_explorer.endpoints import EndpointHealthCache, EndpointResolver
from chain_explorer.exceptions import ExplorerError, InvalidCredentialError
from chain_explorer.models import (
    AnalyticsSnapshot,
    ApiKeyValidation,
    ChainDescriptor,
    ChainMatch,
    ChainStats,
    EntityType,
    NormalizedAddressInfo,
    NormalizedBlock,
    NormalizedTransaction,
    SearchResult,
    TokenInfo,
)
from chain_explorer.policy import SourceSelectionPolicy
from chain_explorer.registry import FamilyRegistry, create_default_registry
from chain_explorer.transport import HttpTransport


logger = logging.getLogger(__name__)


class ExplorerService:
    """
    Multi-chain explorer facade.

    Usage:
        async with ExplorerService() as explorer:
            matches = explorer.detect_chains("0xabc...")
            info = await explorer.get_address_info("0xabc...", "ethereum")
            snapshot = await explorer.get_analytics("ethereum")
    """

    def __init__(
        self,
        config: Optional[ExplorerConfig] = None,
        api_keys: Optional[dict[str, str]] = None,
        transport: Optional[HttpTransport] = None,
        registry: Optional[FamilyRegistry] = None,
        credentials: Optional[CredentialStore] = None,
        cache: Optional[EndpointHealthCache] = None,
    ) -> None:
        self._config = config or get_config()
        self._owns_transport = transport is None
        self._transport = transport or HttpTransport(
            timeout=self._config.timeouts.single_call,
            user_agent=self._config.user_agent,
        )
        self._registry = registry or create_default_registry(
            self._transport,
            timeouts=self._config.timeouts,
            history_limit=self._config.address_history_limit,
        )
        self._credentials = credentials or CredentialStore(self._config, keys=api_keys)
        self._resolver = EndpointResolver(self._config, self._probe, cache=cache)
        self._policy = SourceSelectionPolicy(
            self._config, self._registry, self._credentials, self._resolver
        )
        self._detector = ChainDetector(self._config)
        self._aggregator = AnalyticsAggregator(self._config.analytics)

    # ─────────────────────────────────────────────────────────────
    # Components
    # ─────────────────────────────────────────────────────────────

    @property
    def config(self) -> ExplorerConfig:
        return self._config

    @property
    def policy(self) -> SourceSelectionPolicy:
        return self._policy

    @property
    def resolver(self) -> EndpointResolver:
        return self._resolver

    @property
    def credentials(self) -> CredentialStore:
        return self._credentials

    @property
    def registry(self) -> FamilyRegistry:
        return self._registry

    async def _probe(self, chain: ChainConfig, url: str) -> bool:
        return await self._registry.get(chain.family).rpc_source.probe(url)

    # ─────────────────────────────────────────────────────────────
    # Lookups
    # ─────────────────────────────────────────────────────────────

    async def get_address_info(self, address: str, chain: str) -> NormalizedAddressInfo:
        return await self._policy.execute(chain, "get_address_info", address.strip())

    async def get_transaction_info(self, tx_hash: str, chain: str) -> NormalizedTransaction:
        return await self._policy.execute(chain, "get_transaction", tx_hash.strip())

    async def get_block_info(
        self,
        number: Union[int, str, None],
        chain: str,
    ) -> NormalizedBlock:
        """Get a block by height. None or "latest" returns the chain head."""
        if isinstance(number, str):
            number = number.strip()
            number = None if number in ("", "latest") else int(number)
        if number is not None and number < 0:
            raise ValueError(f"Block number must be >= 0, got {number}")
        return await self._policy.execute(chain, "get_block", number)

    async def get_token_info(self, token_address: str, chain: str) -> TokenInfo:
        return await self._policy.execute(chain, "get_token_info", token_address.strip())

    async def get_latest_transactions(self, chain: str, limit: int = 20) -> list[NormalizedTransaction]:
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        transactions = await self._policy.execute(chain, "get_latest_transactions", limit)
        return list(transactions)[:limit]

    async def get_chain_stats(self, chain: str) -> ChainStats:
        return await self._policy.execute(chain, "get_chain_stats")

    async def _recent_transactions(self, chain: str, block_count: int) -> list[NormalizedTransaction]:
        return list(await self._policy.execute(
            chain, "get_recent_transactions", block_count, self._config.analytics.sample_size
        ))

    async def get_large_transactions(
        self,
        chain: str,
        min_value: Union[Decimal, float, int, str, None] = None,
        limit: int = 20,
    ) -> list[NormalizedTransaction]:
        """
        Recent transactions at or above min_value native units, largest first.

        min_value defaults to the chain's large-transaction threshold. The
        scan covers more blocks when the keyed API tier is in use.
        """
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        analytics = self._config.analytics
        if min_value is None:
            min_value = analytics.large_threshold(chain)
        try:
            threshold = Decimal(str(min_value))
        except InvalidOperation:
            raise ValueError(f"min_value must be numeric, got {min_value!r}")
        if not threshold.is_finite() or threshold < 0:
            raise ValueError(f"min_value must be a finite number >= 0, got {min_value!r}")

        block_count = (
            analytics.large_transaction_blocks_api
            if self._policy.uses_api(chain)
            else analytics.large_transaction_blocks_rpc
        )
        transactions = await self._recent_transactions(chain, block_count)

        large = [tx for tx in transactions if tx.value >= threshold]
        large.sort(key=lambda tx: tx.value, reverse=True)
        return large[:limit]

    async def get_analytics(self, chain: str, window: str = "24h") -> AnalyticsSnapshot:
        """
        Network analytics from a sample of recent transactions.

        The window is validated and echoed in the snapshot; the sample is
        always the most recent blocks.
        """
        if window not in WINDOWS:
            raise ValueError(f"Unknown window '{window}', expected one of {', '.join(WINDOWS)}")
        self._config.get_chain(chain)

        transactions = await self._recent_transactions(chain, self._config.analytics.sample_blocks)
        snapshot = self._aggregator.aggregate(chain, transactions, window)
        logger.debug(
            f"[analytics] {chain}: {snapshot.total_transactions} txs, "
            f"health={snapshot.network_health:.1f}"
        )
        return snapshot

    # ─────────────────────────────────────────────────────────────
    # Detection and search
    # ─────────────────────────────────────────────────────────────

    def detect_chains(self, query: str) -> list[ChainMatch]:
        return self._detector.detect(query)

    async def _lookup(self, query: str, chain_id: str, entity: EntityType) -> Any:
        if entity == EntityType.ADDRESS:
            return await self.get_address_info(query, chain_id)
        if entity == EntityType.TRANSACTION:
            return await self.get_transaction_info(query, chain_id)
        if entity == EntityType.BLOCK:
            return await self.get_block_info(int(query), chain_id)
        raise ValueError(f"Cannot look up '{query}': unknown entity type")

    async def search(self, query: str, max_candidates: Optional[int] = None) -> list[SearchResult]:
        """
        Speculatively look the query up on its most likely chains.

        Candidates run concurrently; failures and empty addresses are
        dropped. Results keep detector ranking.
        """
        query = query.strip()
        limit = max_candidates or self._config.max_search_candidates
        candidates = self._detector.detect(query)[:limit]
        if not candidates:
            return []

        entities = []
        for match in candidates:
            entity = match.entity_type
            if entity == EntityType.UNKNOWN:
                entity = detect_query_type(query)
            entities.append(entity)

        outcomes = await asyncio.gather(
            *(self._lookup(query, m.chain.id, e) for m, e in zip(candidates, entities)),
            return_exceptions=True,
        )

        results: list[SearchResult] = []
        for match, entity, outcome in zip(candidates, entities, outcomes):
            if isinstance(outcome, BaseException):
                logger.debug(f"[search] {match.chain.id} did not resolve '{query}': {outcome}")
                continue
            if isinstance(outcome, NormalizedAddressInfo) and outcome.is_empty():
                continue
            results.append(SearchResult(
                query=query,
                chain=match.chain,
                entity_type=entity,
                confidence=match.confidence,
                data=outcome,
            ))

        logger.info(f"[search] '{query}' resolved on {len(results)}/{len(candidates)} candidates")
        return results

    # ─────────────────────────────────────────────────────────────
    # Credentials
    # ─────────────────────────────────────────────────────────────

    async def validate_api_key(self, chain: str) -> ApiKeyValidation:
        chain_config = self._config.get_chain(chain)
        keyed = chain_config.descriptor.keyed_api
        has_key = self._credentials.has_key(chain)

        def result(valid: bool, message: str) -> ApiKeyValidation:
            return ApiKeyValidation(
                chain_id=chain,
                valid=valid,
                message=message,
                has_api_key=has_key,
                using_rpc=not self._policy.uses_api(chain),
            )

        api_source = None
        if chain_config.family in self._registry:
            api_source = self._registry.get(chain_config.family).api_source
        if keyed is None or api_source is None:
            return result(False, "No API configuration")
        if not keyed.requires_key:
            return result(True, "No API key required (free)")
        if not has_key:
            return result(False, "No API key configured (will use RPC fallback)")

        try:
            valid = await api_source.validate_key(chain_config.descriptor, self._credentials.get(chain))
        except InvalidCredentialError:
            valid = False
        except ExplorerError as e:
            logger.warning(f"[credentials] Could not validate {chain} key: {e}")
            return result(False, "API key validation failed")

        if valid:
            self._credentials.mark_valid(chain)
        else:
            self._credentials.mark_rejected(chain)
        return result(valid, "API key is valid" if valid else "API key validation failed")

    async def validate_api_keys(self) -> dict[str, ApiKeyValidation]:
        chain_ids = list(self._config.chains)
        results = await asyncio.gather(*(self.validate_api_key(c) for c in chain_ids))
        return dict(zip(chain_ids, results))

    # ─────────────────────────────────────────────────────────────
    # Diagnostics
    # ─────────────────────────────────────────────────────────────

    def list_chains(self) -> list[ChainDescriptor]:
        return self._config.descriptors()

    def endpoint_status(self) -> dict[str, Any]:
        return self._resolver.status()

    def get_stats(self) -> dict[str, Any]:
        return {
            "chains": len(self._config.chains),
            "families": [f.value for f in self._registry.families()],
            **self._policy.get_stats(),
        }

    # ─────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────

    async def close(self) -> None:
        if self._owns_transport:
            await self._transport.close()

    async def __aenter__(self) -> "ExplorerService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
