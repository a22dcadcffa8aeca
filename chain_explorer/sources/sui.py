"""Sui JSON-RPC source."""

import asyncio
import logging
from typing import Optional

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

TX_OPTIONS = {
    "showInput": True,
    "showEffects": True,
    "showEvents": True,
    "showBalanceChanges": True,
}


def _is_missing(error: RpcError) -> bool:
    text = str(error).lower()
    return "could not find" in text or "not found" in text or "invalid" in text


class SuiSource(RpcSource):
    """Sui mainnet fullnode."""

    family = ChainFamily.SUI

    @property
    def name(self) -> str:
        return "sui_rpc"

    async def probe(self, endpoint: str) -> bool:
        seq = await self._rpc(endpoint, "sui_getLatestCheckpointSequenceNumber", [], timeout=self._timeouts.probe)
        return seq is not None

    async def get_address_info(
        self, chain: ChainDescriptor, endpoint: str, address: str,
    ) -> NormalizedAddressInfo:
        try:
            balance, page = await asyncio.gather(
                self._rpc(endpoint, "suix_getBalance", [address]),
                self._rpc(
                    endpoint,
                    "suix_queryTransactionBlocks",
                    [{"filter": {"FromAddress": address}, "options": TX_OPTIONS}, None, self._history_limit, True],
                    timeout=self._timeouts.multi_hop,
                ),
            )
        except RpcError as e:
            if _is_missing(e):
                raise self.not_found("address", address, chain) from e
            raise
        return self.normalizer.to_address_info(
            {"address": address, "balance": balance, "transactions": (page or {}).get("data", [])},
            chain.id,
        )

    async def get_transaction(
        self, chain: ChainDescriptor, endpoint: str, tx_hash: str,
    ) -> NormalizedTransaction:
        try:
            result = await self._rpc(
                endpoint, "sui_getTransactionBlock", [tx_hash, TX_OPTIONS], timeout=self._timeouts.multi_hop,
            )
        except RpcError as e:
            if _is_missing(e):
                raise self.not_found("transaction", tx_hash, chain) from e
            raise
        return self.normalizer.to_transaction(result, chain.id)

    async def get_block(
        self, chain: ChainDescriptor, endpoint: str, number: Optional[int] = None,
    ) -> NormalizedBlock:
        if number is None:
            number = parse_int(await self._rpc(endpoint, "sui_getLatestCheckpointSequenceNumber", []))
        try:
            checkpoint = await self._rpc(endpoint, "sui_getCheckpoint", [str(number)])
        except RpcError as e:
            if _is_missing(e):
                raise self.not_found("block", number, chain) from e
            raise
        return self.normalizer.to_block(checkpoint, chain.id)

    async def get_latest_transactions(
        self, chain: ChainDescriptor, endpoint: str, limit: int,
    ) -> list[NormalizedTransaction]:
        page = await self._rpc(
            endpoint,
            "suix_queryTransactionBlocks",
            [{"options": TX_OPTIONS}, None, min(limit, 50), True],
            timeout=self._timeouts.multi_hop,
        )
        return [self.normalizer.to_transaction(tx, chain.id) for tx in (page or {}).get("data", [])][:limit]

    async def get_chain_stats(self, chain: ChainDescriptor, endpoint: str) -> ChainStats:
        seq, price = await asyncio.gather(
            self._rpc(endpoint, "sui_getLatestCheckpointSequenceNumber", []),
            self._rpc(endpoint, "suix_getReferenceGasPrice", []),
        )
        reference = parse_int(price)
        tiers = None
        if reference is not None:
            tiers = GasPriceTiers(safe=float(reference), propose=float(reference), fast=float(reference))
        return ChainStats(chain_id=chain.id, latest_block=parse_int(seq) or 0, gas_price=tiers)
