"""Cosmos SDK LCD (REST) source."""

import asyncio
import logging
from typing import Optional

from chain_explorer.exceptions import FetchError
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

TENDERMINT = "/cosmos/base/tendermint/v1beta1"


class CosmosSource(RpcSource):
    """Cosmos SDK chains served by an LCD endpoint."""

    family = ChainFamily.COSMOS

    @property
    def name(self) -> str:
        return "cosmos_lcd"

    async def probe(self, endpoint: str) -> bool:
        latest = await self._transport.get_json(f"{endpoint}{TENDERMINT}/blocks/latest", timeout=self._timeouts.probe)
        return isinstance(latest, dict) and bool(latest.get("block") or latest.get("sdk_block"))

    async def get_address_info(
        self, chain: ChainDescriptor, endpoint: str, address: str,
    ) -> NormalizedAddressInfo:
        denom = chain.native_denom or "uatom"
        balance, history = await asyncio.gather(
            self._get_entity(
                f"{endpoint}/cosmos/bank/v1beta1/balances/{address}/by_denom",
                "address", address, chain,
                params={"denom": denom},
                not_found_statuses=(400, 404),
            ),
            self._transport.get_json(
                f"{endpoint}/cosmos/tx/v1beta1/txs",
                params={
                    "query": f"message.sender='{address}'",
                    "pagination.limit": str(self._history_limit),
                    "order_by": "ORDER_BY_DESC",
                },
                timeout=self._timeouts.multi_hop,
            ),
            return_exceptions=True,
        )
        if isinstance(balance, BaseException):
            raise balance
        if isinstance(history, BaseException):
            if not isinstance(history, FetchError):
                raise history
            # Many public LCD nodes disable tx indexing; balance alone is still useful
            logger.warning(f"[{self.name}] Tx history unavailable for {address}: {history}")
            history = {}

        return self.normalizer.to_address_info(
            {
                "address": address,
                "balance": (balance or {}).get("balance"),
                "tx_responses": (history or {}).get("tx_responses") or [],
                "total": ((history or {}).get("pagination") or {}).get("total") or (history or {}).get("total"),
            },
            chain.id,
        )

    async def get_transaction(
        self, chain: ChainDescriptor, endpoint: str, tx_hash: str,
    ) -> NormalizedTransaction:
        data = await self._get_entity(
            f"{endpoint}/cosmos/tx/v1beta1/txs/{tx_hash}", "transaction", tx_hash, chain,
            not_found_statuses=(400, 404),
        )
        return self.normalizer.to_transaction((data or {}).get("tx_response"), chain.id)

    async def _raw_block(self, chain: ChainDescriptor, endpoint: str, number: Optional[int]) -> dict:
        path = "latest" if number is None else str(number)
        return await self._get_entity(
            f"{endpoint}{TENDERMINT}/blocks/{path}", "block", number, chain,
            not_found_statuses=(400, 404),
        )

    async def get_block(
        self, chain: ChainDescriptor, endpoint: str, number: Optional[int] = None,
    ) -> NormalizedBlock:
        return self.normalizer.to_block(await self._raw_block(chain, endpoint, number), chain.id)

    async def get_latest_transactions(
        self, chain: ChainDescriptor, endpoint: str, limit: int,
    ) -> list[NormalizedTransaction]:
        latest = await self._raw_block(chain, endpoint, None)
        block = latest.get("block") or latest.get("sdk_block") or {}
        height = parse_int((block.get("header") or {}).get("height"))
        if height is None:
            return []
        data = await self._transport.get_json(
            f"{endpoint}/cosmos/tx/v1beta1/txs",
            params={"query": f"tx.height={height}", "pagination.limit": str(limit)},
            timeout=self._timeouts.multi_hop,
        )
        return [self.normalizer.to_transaction(tx, chain.id) for tx in (data or {}).get("tx_responses") or []][:limit]
