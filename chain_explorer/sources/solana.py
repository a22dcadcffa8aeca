"""
Solana JSON-RPC source.

Methods: getSlot, getBalance, getSignaturesForAddress, getTransaction,
getBlock, getTokenSupply.
"""

import asyncio
import logging
from typing import Any, Optional

from chain_explorer.exceptions import RpcError
from chain_explorer.models import (
    ChainDescriptor,
    ChainFamily,
    ChainStats,
    NormalizedAddressInfo,
    NormalizedBlock,
    NormalizedTransaction,
    TokenInfo,
)
from chain_explorer.normalizers.base import parse_int, to_native
from chain_explorer.sources.base import RpcSource


logger = logging.getLogger(__name__)

# Slot skipped / block not available / cleaned up
MISSING_BLOCK_CODES = (-32004, -32007, -32009, -32001)

TRANSACTION_OPTIONS = {"encoding": "jsonParsed", "maxSupportedTransactionVersion": 0}
BLOCK_OPTIONS = {
    "encoding": "jsonParsed",
    "maxSupportedTransactionVersion": 0,
    "transactionDetails": "full",
    "rewards": False,
}


class SolanaSource(RpcSource):
    """Solana mainnet RPC."""

    family = ChainFamily.SOLANA

    @property
    def name(self) -> str:
        return "solana_rpc"

    async def probe(self, endpoint: str) -> bool:
        slot = await self._rpc(endpoint, "getSlot", [], timeout=self._timeouts.probe)
        return slot is not None

    async def get_address_info(
        self, chain: ChainDescriptor, endpoint: str, address: str,
    ) -> NormalizedAddressInfo:
        try:
            balance, signatures = await asyncio.gather(
                self._rpc(endpoint, "getBalance", [address]),
                self._rpc(endpoint, "getSignaturesForAddress", [address, {"limit": self._history_limit}]),
            )
        except RpcError as e:
            if e.rpc_code == -32602:
                # Invalid param: not a valid public key
                raise self.not_found("address", address, chain) from e
            raise
        return self.normalizer.to_address_info(
            {"address": address, "balance": balance, "signatures": signatures or []},
            chain.id,
        )

    async def get_transaction(
        self, chain: ChainDescriptor, endpoint: str, tx_hash: str,
    ) -> NormalizedTransaction:
        try:
            result = await self._rpc(endpoint, "getTransaction", [tx_hash, TRANSACTION_OPTIONS])
        except RpcError as e:
            if e.rpc_code == -32602:
                raise self.not_found("transaction", tx_hash, chain) from e
            raise
        if not result:
            raise self.not_found("transaction", tx_hash, chain)
        return self.normalizer.to_transaction(result, chain.id)

    async def _fetch_block(self, endpoint: str, slot: int) -> Optional[dict[str, Any]]:
        try:
            return await self._rpc(endpoint, "getBlock", [slot, BLOCK_OPTIONS], timeout=self._timeouts.multi_hop)
        except RpcError as e:
            if e.rpc_code in MISSING_BLOCK_CODES:
                return None
            raise

    async def _latest_block(self, endpoint: str, attempts: int = 3) -> tuple[int, Optional[dict[str, Any]]]:
        """The newest slot with an available block (the tip may not be produced yet)."""
        slot = parse_int(await self._rpc(endpoint, "getSlot", []))
        for offset in range(attempts):
            block = await self._fetch_block(endpoint, slot - offset)
            if block:
                return slot - offset, block
        return slot, None

    async def get_block(
        self, chain: ChainDescriptor, endpoint: str, number: Optional[int] = None,
    ) -> NormalizedBlock:
        if number is None:
            slot, block = await self._latest_block(endpoint)
        else:
            slot, block = number, await self._fetch_block(endpoint, number)
        if not block:
            raise self.not_found("block", slot, chain)
        return self.normalizer.to_block({"slot": slot, "block": block}, chain.id)

    async def get_latest_transactions(
        self, chain: ChainDescriptor, endpoint: str, limit: int,
    ) -> list[NormalizedTransaction]:
        slot, block = await self._latest_block(endpoint)
        if not block:
            return []
        return self.normalizer.block_transactions(slot, block, chain.id)[:limit]

    async def get_recent_transactions(
        self, chain: ChainDescriptor, endpoint: str, block_count: int, limit: int,
    ) -> list[NormalizedTransaction]:
        slot, first = await self._latest_block(endpoint)
        if not first:
            return []
        slots = [slot - i for i in range(1, max(1, block_count))]
        blocks = await asyncio.gather(*(self._fetch_block(endpoint, s) for s in slots))

        transactions = self.normalizer.block_transactions(slot, first, chain.id)
        for s, block in zip(slots, blocks):
            if block:
                transactions.extend(self.normalizer.block_transactions(s, block, chain.id))
        return transactions[:limit]

    async def get_token_info(
        self, chain: ChainDescriptor, endpoint: str, token_address: str,
    ) -> TokenInfo:
        try:
            supply = await self._rpc(endpoint, "getTokenSupply", [token_address])
        except RpcError as e:
            if e.rpc_code == -32602:
                raise self.not_found("token", token_address, chain) from e
            raise
        value = (supply or {}).get("value")
        if not value:
            raise self.not_found("token", token_address, chain)
        decimals = value.get("decimals")
        return TokenInfo(
            address=token_address,
            chain_id=chain.id,
            name=None,
            symbol=None,
            decimals=decimals,
            total_supply=to_native(value.get("amount", 0), decimals or 0),
        )

    async def get_chain_stats(self, chain: ChainDescriptor, endpoint: str) -> ChainStats:
        slot = await self._rpc(endpoint, "getSlot", [])
        return ChainStats(chain_id=chain.id, latest_block=parse_int(slot) or 0)
