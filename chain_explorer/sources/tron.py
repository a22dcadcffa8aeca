"""
Tron source - TronGrid wallet API (POST /wallet/*) and v1 account API.
"""

import asyncio
import logging
from typing import Any, Optional

from chain_explorer.models import (
    ChainDescriptor,
    ChainFamily,
    NormalizedAddressInfo,
    NormalizedBlock,
    NormalizedTransaction,
)
from chain_explorer.normalizers.base import parse_int
from chain_explorer.sources.base import RpcSource


logger = logging.getLogger(__name__)


class TronSource(RpcSource):
    """Tron mainnet through TronGrid-compatible endpoints."""

    family = ChainFamily.TRON

    @property
    def name(self) -> str:
        return "trongrid"

    async def _wallet(self, endpoint: str, method: str, payload: Optional[dict[str, Any]] = None,
                      timeout: Optional[float] = None) -> Any:
        return await self._transport.post_json(
            f"{endpoint}/wallet/{method}", payload or {}, timeout=timeout or self._timeouts.multi_hop,
        )

    async def probe(self, endpoint: str) -> bool:
        block = await self._wallet(endpoint, "getnowblock", timeout=self._timeouts.probe)
        return isinstance(block, dict) and bool(block.get("blockID"))

    async def get_address_info(
        self, chain: ChainDescriptor, endpoint: str, address: str,
    ) -> NormalizedAddressInfo:
        params = {"limit": self._history_limit}
        account, txs, trc20 = await asyncio.gather(
            self._get_entity(f"{endpoint}/v1/accounts/{address}", "address", address, chain,
                             not_found_statuses=(400, 404)),
            self._get_optional(f"{endpoint}/v1/accounts/{address}/transactions", params=params),
            self._get_optional(f"{endpoint}/v1/accounts/{address}/transactions/trc20", params=params),
        )
        accounts = (account or {}).get("data") or []
        return self.normalizer.to_address_info(
            {
                "address": address,
                "account": accounts[0] if accounts else None,
                "transactions": (txs or {}).get("data", []),
                "trc20": (trc20 or {}).get("data", []),
            },
            chain.id,
        )

    async def get_transaction(
        self, chain: ChainDescriptor, endpoint: str, tx_hash: str,
    ) -> NormalizedTransaction:
        tx, info = await asyncio.gather(
            self._wallet(endpoint, "gettransactionbyid", {"value": tx_hash}),
            self._wallet(endpoint, "gettransactioninfobyid", {"value": tx_hash}),
        )
        if not tx:
            raise self.not_found("transaction", tx_hash, chain)
        return self.normalizer.to_transaction({"transaction": tx, "info": info or {}}, chain.id)

    async def _raw_block(self, endpoint: str, number: Optional[int]) -> dict[str, Any]:
        if number is None:
            return await self._wallet(endpoint, "getnowblock")
        return await self._wallet(endpoint, "getblockbynum", {"num": number})

    async def get_block(
        self, chain: ChainDescriptor, endpoint: str, number: Optional[int] = None,
    ) -> NormalizedBlock:
        block = await self._raw_block(endpoint, number)
        if not block:
            raise self.not_found("block", number, chain)
        return self.normalizer.to_block(block, chain.id)

    async def get_latest_transactions(
        self, chain: ChainDescriptor, endpoint: str, limit: int,
    ) -> list[NormalizedTransaction]:
        block = await self._raw_block(endpoint, None)
        return self.normalizer.block_transactions(block or {}, chain.id)[:limit]

    async def get_recent_transactions(
        self, chain: ChainDescriptor, endpoint: str, block_count: int, limit: int,
    ) -> list[NormalizedTransaction]:
        latest = await self._raw_block(endpoint, None)
        header = ((latest or {}).get("block_header") or {}).get("raw_data") or {}
        number = parse_int(header.get("number"))
        if number is None:
            return []

        transactions = self.normalizer.block_transactions(latest, chain.id)
        if block_count > 1:
            older = await self._wallet(
                endpoint, "getblockbylimitnext",
                {"startNum": max(0, number - block_count + 1), "endNum": number},
            )
            for block in (older or {}).get("block", []):
                transactions.extend(self.normalizer.block_transactions(block, chain.id))
        return transactions[:limit]
