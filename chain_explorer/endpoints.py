"""
Endpoint resolution - rotating public endpoint pools with sticky
"last known good" caching.

The cache is soft state: one int per chain, written with a single
assignment (last writer wins). A stale entry only costs one failed probe
before the resolver moves on, so no locking is needed.
"""

import logging
from typing import Any, Awaitable, Callable, Optional

from chain_explorer.config import ChainConfig, ExplorerConfig


logger = logging.getLogger(__name__)


Prober = Callable[[ChainConfig, str], Awaitable[bool]]


class EndpointHealthCache:
    """chain id -> index of the last endpoint that answered a probe."""

    def __init__(self) -> None:
        self._last_good: dict[str, int] = {}

    def get(self, chain_id: str) -> int:
        return self._last_good.get(chain_id, 0)

    def record(self, chain_id: str, index: int) -> None:
        self._last_good[chain_id] = index

    def forget(self, chain_id: str) -> None:
        self._last_good.pop(chain_id, None)

    def clear(self) -> None:
        self._last_good.clear()

    def snapshot(self) -> dict[str, int]:
        return dict(self._last_good)

    def __contains__(self, chain_id: str) -> bool:
        return chain_id in self._last_good


class EndpointResolver:
    """
    Picks a live endpoint from a chain's pool.

    Usage:
        resolver = EndpointResolver(config, prober)
        url = await resolver.resolve("ethereum")
    """

    def __init__(
        self,
        config: ExplorerConfig,
        prober: Prober,
        cache: Optional[EndpointHealthCache] = None,
    ) -> None:
        self._config = config
        self._prober = prober
        self._cache = cache if cache is not None else EndpointHealthCache()

    @property
    def cache(self) -> EndpointHealthCache:
        return self._cache

    async def _probe(self, chain: ChainConfig, url: str) -> bool:
        try:
            return bool(await self._prober(chain, url))
        except Exception as e:
            logger.debug(f"[resolver] Probe failed for {chain.chain_id} at {url}: {e}")
            return False

    async def resolve(self, chain_id: str, start_index: Optional[int] = None) -> str:
        """
        Return the first endpoint that answers a liveness probe.

        Probing starts at start_index, or at the cached last-good index
        (0 when cold), and wraps around the pool once. When every endpoint
        fails, the first endpoint is returned and the caller's own request
        surfaces the failure.

        Raises:
            UnconfiguredChainError: If the chain has no pool
        """
        chain = self._config.get_chain(chain_id)
        pool = chain.pool
        start = self._cache.get(chain_id) if start_index is None else start_index

        for i in range(len(pool)):
            index = (start + i) % len(pool)
            url = pool[index]
            if await self._probe(chain, url):
                if index != self._cache.get(chain_id) or chain_id not in self._cache:
                    logger.info(f"[resolver] {chain_id} now using endpoint #{index} ({url})")
                self._cache.record(chain_id, index)
                return url

        logger.warning(f"[resolver] All {len(pool)} endpoints failed for {chain_id}, using {pool[0]}")
        return pool[0]

    def status(self) -> dict[str, Any]:
        """Current endpoint per chain, for diagnostics."""
        result: dict[str, Any] = {}
        for chain_id, chain in self._config.chains.items():
            index = self._cache.get(chain_id)
            result[chain_id] = {
                "index": index,
                "url": chain.pool[index % len(chain.pool)],
                "pool_size": len(chain.pool),
                "verified": chain_id in self._cache,
            }
        return result
