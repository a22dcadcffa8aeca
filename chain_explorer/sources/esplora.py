"""
Esplora REST source - Bitcoin via Blockstream / mempool.space.

Endpoints used (relative to the pool URL, e.g. https://blockstream.info/api):
    /address/:a, /address/:a/txs, /tx/:h, /block-height/:n, /block/:hash,
    /block/:hash/txs/:start, /blocks/tip/height, /blocks/tip/hash,
    /mempool, /mempool/recent, /fee-estimates
"""

import asyncio
import logging
from typing import Optional

from chain_explorer.exceptions import FetchError
from chain_explorer.models import (
    ChainDescriptor,
    ChainFamily,
    ChainStats,
    GasPriceTiers,
    NormalizedAddressInfo,
    NormalizedBlock,
    NormalizedTransaction,
)
from chain_explorer.sources.base import RpcSource


logger = logging.getLogger(__name__)

PAGE_SIZE = 25  # Esplora page size for /block/:hash/txs


class EsploraSource(RpcSource):
    """UTXO chains served by an Esplora-compatible REST API."""

    family = ChainFamily.UTXO

    @property
    def name(self) -> str:
        return "esplora"

    async def probe(self, endpoint: str) -> bool:
        height = await self._transport.get_text(f"{endpoint}/blocks/tip/height", timeout=self._timeouts.probe)
        return height.strip().isdigit()

    async def get_address_info(
        self, chain: ChainDescriptor, endpoint: str, address: str,
    ) -> NormalizedAddressInfo:
        stats, txs = await asyncio.gather(
            self._get_entity(f"{endpoint}/address/{address}", "address", address, chain,
                             not_found_statuses=(400, 404)),
            self._get_entity(f"{endpoint}/address/{address}/txs", "address", address, chain,
                             not_found_statuses=(400, 404)),
        )
        return self.normalizer.to_address_info(
            {"address": address, "stats": stats, "transactions": (txs or [])[:self._history_limit]},
            chain.id,
        )

    async def get_transaction(
        self, chain: ChainDescriptor, endpoint: str, tx_hash: str,
    ) -> NormalizedTransaction:
        tx = await self._get_entity(f"{endpoint}/tx/{tx_hash}", "transaction", tx_hash, chain,
                                    not_found_statuses=(400, 404))
        return self.normalizer.to_transaction(tx, chain.id)

    async def _block_hash(self, chain: ChainDescriptor, endpoint: str, number: Optional[int]) -> str:
        path = "/blocks/tip/hash" if number is None else f"/block-height/{number}"
        try:
            text = await self._transport.get_text(f"{endpoint}{path}", timeout=self._timeouts.multi_hop)
        except FetchError as e:
            if e.status_code in (400, 404):
                raise self.not_found("block", number, chain) from e
            raise
        return text.strip()

    async def get_block(
        self, chain: ChainDescriptor, endpoint: str, number: Optional[int] = None,
    ) -> NormalizedBlock:
        block_hash = await self._block_hash(chain, endpoint, number)
        block = await self._get_entity(f"{endpoint}/block/{block_hash}", "block", number, chain)
        return self.normalizer.to_block(block, chain.id)

    async def get_latest_transactions(
        self, chain: ChainDescriptor, endpoint: str, limit: int,
    ) -> list[NormalizedTransaction]:
        recent = await self._transport.get_json(f"{endpoint}/mempool/recent", timeout=self._timeouts.single_call)
        return [self.normalizer.to_transaction(entry, chain.id) for entry in (recent or [])[:limit]]

    async def get_recent_transactions(
        self, chain: ChainDescriptor, endpoint: str, block_count: int, limit: int,
    ) -> list[NormalizedTransaction]:
        """Confirmed transactions from the tip block, one Esplora page per block_count."""
        block_hash = await self._block_hash(chain, endpoint, None)
        pages = await asyncio.gather(*(
            self._transport.get_json(
                f"{endpoint}/block/{block_hash}/txs/{page * PAGE_SIZE}",
                timeout=self._timeouts.multi_hop,
            )
            for page in range(max(1, block_count))
        ), return_exceptions=True)

        transactions: list[NormalizedTransaction] = []
        for page in pages:
            if isinstance(page, BaseException):
                # Past the end of the block
                if isinstance(page, FetchError) and page.status_code in (400, 404):
                    continue
                raise page
            transactions.extend(self.normalizer.to_transaction(tx, chain.id) for tx in page or [])
        return transactions[:limit]

    async def _stats_extra(self, endpoint: str, path: str) -> Optional[dict]:
        """Mempool and fee data; some Esplora deployments do not serve them."""
        try:
            return await self._transport.get_json(f"{endpoint}{path}", timeout=self._timeouts.single_call)
        except FetchError as e:
            logger.debug(f"[{self.name}] {path} unavailable at {endpoint}: {e}")
            return None

    async def get_chain_stats(self, chain: ChainDescriptor, endpoint: str) -> ChainStats:
        height, mempool, fees = await asyncio.gather(
            self._transport.get_text(f"{endpoint}/blocks/tip/height", timeout=self._timeouts.single_call),
            self._stats_extra(endpoint, "/mempool"),
            self._stats_extra(endpoint, "/fee-estimates"),
        )
        tiers = None
        if isinstance(fees, dict) and fees:
            # sat/vB for confirmation within 6, 3 and 1 blocks
            tiers = GasPriceTiers(
                safe=float(fees.get("6", 0)),
                propose=float(fees.get("3", 0)),
                fast=float(fees.get("1", 0)),
            )
        return ChainStats(
            chain_id=chain.id,
            latest_block=int(height.strip()),
            gas_price=tiers,
            mempool_size=(mempool or {}).get("count"),
        )
