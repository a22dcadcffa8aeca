"""Aptos fullnode REST source (/v1)."""

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
from chain_explorer.normalizers.base import parse_int
from chain_explorer.sources.base import RpcSource


logger = logging.getLogger(__name__)

APT_COIN = "0x1::aptos_coin::AptosCoin"


class AptosSource(RpcSource):
    """Aptos mainnet fullnode."""

    family = ChainFamily.APTOS

    @property
    def name(self) -> str:
        return "aptos_rest"

    async def probe(self, endpoint: str) -> bool:
        info = await self._transport.get_json(f"{endpoint}/v1", timeout=self._timeouts.probe)
        return isinstance(info, dict) and "chain_id" in info

    async def _balance(self, endpoint: str, address: str) -> Optional[str]:
        try:
            result = await self._transport.post_json(
                f"{endpoint}/v1/view",
                {"function": "0x1::coin::balance", "type_arguments": [APT_COIN], "arguments": [address]},
                timeout=self._timeouts.multi_hop,
            )
        except FetchError as e:
            if e.status_code in (400, 404):
                return None
            raise
        return result[0] if result else None

    async def get_address_info(
        self, chain: ChainDescriptor, endpoint: str, address: str,
    ) -> NormalizedAddressInfo:
        account, balance, txs = await asyncio.gather(
            self._get_optional(f"{endpoint}/v1/accounts/{address}"),
            self._balance(endpoint, address),
            self._get_optional(
                f"{endpoint}/v1/accounts/{address}/transactions",
                params={"limit": self._history_limit},
            ),
        )
        return self.normalizer.to_address_info(
            {"address": address, "account": account, "balance": balance, "transactions": txs or []},
            chain.id,
        )

    async def get_transaction(
        self, chain: ChainDescriptor, endpoint: str, tx_hash: str,
    ) -> NormalizedTransaction:
        tx = await self._get_entity(
            f"{endpoint}/v1/transactions/by_hash/{tx_hash}", "transaction", tx_hash, chain,
            not_found_statuses=(400, 404),
        )
        return self.normalizer.to_transaction(tx, chain.id)

    async def get_block(
        self, chain: ChainDescriptor, endpoint: str, number: Optional[int] = None,
    ) -> NormalizedBlock:
        if number is None:
            info = await self._transport.get_json(f"{endpoint}/v1", timeout=self._timeouts.single_call)
            number = parse_int(info.get("block_height"))
        block = await self._get_entity(
            f"{endpoint}/v1/blocks/by_height/{number}", "block", number, chain,
            params={"with_transactions": "false"},
            not_found_statuses=(400, 404, 410),
        )
        return self.normalizer.to_block(block, chain.id)

    async def get_latest_transactions(
        self, chain: ChainDescriptor, endpoint: str, limit: int,
    ) -> list[NormalizedTransaction]:
        txs = await self._transport.get_json(
            f"{endpoint}/v1/transactions",
            params={"limit": min(limit, 100)},
            timeout=self._timeouts.multi_hop,
        )
        return [self.normalizer.to_transaction(tx, chain.id) for tx in txs or []][:limit]

    async def get_chain_stats(self, chain: ChainDescriptor, endpoint: str) -> ChainStats:
        info, estimate = await asyncio.gather(
            self._transport.get_json(f"{endpoint}/v1", timeout=self._timeouts.single_call),
            self._transport.get_json(f"{endpoint}/v1/estimate_gas_price", timeout=self._timeouts.single_call),
        )
        tiers = None
        if isinstance(estimate, dict) and estimate.get("gas_estimate") is not None:
            gas = float(estimate["gas_estimate"])
            tiers = GasPriceTiers(
                safe=float(estimate.get("deprioritized_gas_estimate", gas)),
                propose=gas,
                fast=float(estimate.get("prioritized_gas_estimate", gas)),
            )
        return ChainStats(
            chain_id=chain.id,
            latest_block=parse_int(info.get("block_height")) or 0,
            gas_price=tiers,
        )
