"""NEAR JSON-RPC source."""

import asyncio
import logging
from typing import Any, Optional

from chain_explorer.exceptions import RpcError
from chain_explorer.models import (
    ChainDescriptor,
    ChainFamily,
    ChainStats,
    GasPriceTiers,
    NormalizedAddressInfo,
    NormalizedBlock,
    NormalizedTransaction,
)
from chain_explorer.normalizers.base import parse_int
from chain_explorer.sources.base import RpcSource


logger = logging.getLogger(__name__)

MISSING_MARKERS = ("UNKNOWN_ACCOUNT", "UNKNOWN_TRANSACTION", "UNKNOWN_BLOCK", "does not exist", "doesn't exist")


def _is_missing(error: RpcError) -> bool:
    text = str(error)
    return any(marker in text for marker in MISSING_MARKERS)


class NearSource(RpcSource):
    """NEAR mainnet RPC."""

    family = ChainFamily.NEAR

    @property
    def name(self) -> str:
        return "near_rpc"

    async def probe(self, endpoint: str) -> bool:
        block = await self._rpc(endpoint, "block", {"finality": "final"}, timeout=self._timeouts.probe)
        return bool((block or {}).get("header"))

    async def get_address_info(
        self, chain: ChainDescriptor, endpoint: str, address: str,
    ) -> NormalizedAddressInfo:
        try:
            account = await self._rpc(endpoint, "query", {
                "request_type": "view_account",
                "finality": "final",
                "account_id": address,
            })
        except RpcError as e:
            if _is_missing(e):
                raise self.not_found("address", address, chain) from e
            raise
        return self.normalizer.to_address_info({"address": address, "account": account}, chain.id)

    async def get_transaction(
        self, chain: ChainDescriptor, endpoint: str, tx_hash: str,
    ) -> NormalizedTransaction:
        try:
            result = await self._rpc(endpoint, "tx", [tx_hash, ""], timeout=self._timeouts.multi_hop)
        except RpcError as e:
            if _is_missing(e):
                raise self.not_found("transaction", tx_hash, chain) from e
            raise
        if not result:
            raise self.not_found("transaction", tx_hash, chain)

        block_hash = (result.get("transaction_outcome") or {}).get("block_hash")
        header = None
        if block_hash:
            block = await self._rpc(endpoint, "block", {"block_id": block_hash})
            header = (block or {}).get("header")
        return self.normalizer.to_transaction({**result, "block": header}, chain.id)

    async def _raw_block(self, endpoint: str, number: Optional[int]) -> dict[str, Any]:
        params = {"finality": "final"} if number is None else {"block_id": number}
        return await self._rpc(endpoint, "block", params)

    async def get_block(
        self, chain: ChainDescriptor, endpoint: str, number: Optional[int] = None,
    ) -> NormalizedBlock:
        try:
            block = await self._raw_block(endpoint, number)
        except RpcError as e:
            if _is_missing(e):
                raise self.not_found("block", number, chain) from e
            raise
        return self.normalizer.to_block(block, chain.id)

    async def get_latest_transactions(
        self, chain: ChainDescriptor, endpoint: str, limit: int,
    ) -> list[NormalizedTransaction]:
        block = await self._raw_block(endpoint, None)
        header = (block or {}).get("header") or {}
        chunk_hashes = [c["chunk_hash"] for c in (block or {}).get("chunks", []) if c.get("chunk_hash")]
        chunks = await asyncio.gather(*(
            self._rpc(endpoint, "chunk", {"chunk_id": chunk_hash}, timeout=self._timeouts.multi_hop)
            for chunk_hash in chunk_hashes
        ))

        transactions: list[NormalizedTransaction] = []
        for chunk in chunks:
            for tx in (chunk or {}).get("transactions", []):
                transactions.append(self.normalizer.to_transaction(
                    {"transaction": tx, "block": header, "included": True}, chain.id,
                ))
        return transactions[:limit]

    async def get_chain_stats(self, chain: ChainDescriptor, endpoint: str) -> ChainStats:
        block, gas = await asyncio.gather(
            self._raw_block(endpoint, None),
            self._rpc(endpoint, "gas_price", [None]),
        )
        price = parse_int((gas or {}).get("gas_price"))
        tiers = GasPriceTiers(safe=float(price), propose=float(price), fast=float(price)) if price else None
        return ChainStats(
            chain_id=chain.id,
            latest_block=parse_int(((block or {}).get("header") or {}).get("height")) or 0,
            gas_price=tiers,
        )
