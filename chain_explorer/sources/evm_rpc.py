"""
EVM JSON-RPC source - public node pools for Ethereum and compatible chains.
"""

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
    TokenInfo,
)
from chain_explorer.normalizers.base import parse_int, to_native
from chain_explorer.sources.base import RpcSource


logger = logging.getLogger(__name__)


# ERC-20 view selectors
SELECTOR_NAME = "0x06fdde03"
SELECTOR_SYMBOL = "0x95d89b41"
SELECTOR_DECIMALS = "0x313ce567"
SELECTOR_TOTAL_SUPPLY = "0x18160ddd"

FEE_PERCENTILES = [20, 50, 80]


def decode_abi_string(data: Optional[str]) -> Optional[str]:
    """Decode an ABI-encoded string return value (or a bytes32 fallback)."""
    if not data or data == "0x":
        return None
    payload = bytes.fromhex(data[2:] if data.startswith("0x") else data)
    if len(payload) >= 64:
        offset = int.from_bytes(payload[:32], "big")
        if offset + 32 <= len(payload):
            length = int.from_bytes(payload[offset:offset + 32], "big")
            raw = payload[offset + 32:offset + 32 + length]
            return raw.decode("utf-8", errors="replace") or None
    # Older tokens (e.g. MKR) return bytes32
    return payload[:32].rstrip(b"\x00").decode("utf-8", errors="replace") or None


class EvmRpcSource(RpcSource):
    """Reads EVM chains through standard eth_* JSON-RPC methods."""

    family = ChainFamily.EVM

    @property
    def name(self) -> str:
        return "evm_rpc"

    async def probe(self, endpoint: str) -> bool:
        result = await self._rpc(endpoint, "eth_blockNumber", [], timeout=self._timeouts.probe)
        return result is not None

    async def get_address_info(
        self, chain: ChainDescriptor, endpoint: str, address: str,
    ) -> NormalizedAddressInfo:
        balance, nonce = await asyncio.gather(
            self._rpc(endpoint, "eth_getBalance", [address, "latest"]),
            self._rpc(endpoint, "eth_getTransactionCount", [address, "latest"]),
        )
        return self.normalizer.to_address_info(
            {"address": address, "balance": balance, "transaction_count": nonce},
            chain.id,
        )

    async def get_transaction(
        self, chain: ChainDescriptor, endpoint: str, tx_hash: str,
    ) -> NormalizedTransaction:
        tx = await self._rpc(endpoint, "eth_getTransactionByHash", [tx_hash])
        if not tx:
            raise self.not_found("transaction", tx_hash, chain)

        block_number = tx.get("blockNumber")
        calls = [
            self._rpc(endpoint, "eth_getTransactionReceipt", [tx_hash]),
            self._rpc(endpoint, "eth_blockNumber", []),
        ]
        if block_number:
            calls.append(self._rpc(endpoint, "eth_getBlockByNumber", [block_number, False]))
        results = await asyncio.gather(*calls)

        receipt, latest = results[0], results[1]
        block = results[2] if len(results) > 2 else None
        return self.normalizer.to_transaction(
            {
                "transaction": tx,
                "receipt": receipt,
                "block_timestamp": (block or {}).get("timestamp"),
                "latest_block": latest,
            },
            chain.id,
        )

    async def _fetch_block(self, endpoint: str, tag: str, full: bool = True) -> Optional[dict[str, Any]]:
        return await self._rpc(endpoint, "eth_getBlockByNumber", [tag, full])

    async def get_block(
        self, chain: ChainDescriptor, endpoint: str, number: Optional[int] = None,
    ) -> NormalizedBlock:
        tag = hex(number) if number is not None else "latest"
        block = await self._fetch_block(endpoint, tag)
        if not block:
            raise self.not_found("block", number, chain)
        return self.normalizer.to_block(block, chain.id)

    async def get_latest_transactions(
        self, chain: ChainDescriptor, endpoint: str, limit: int,
    ) -> list[NormalizedTransaction]:
        block = await self._fetch_block(endpoint, "latest")
        if not block:
            return []
        return self.normalizer.block_transactions(block, chain.id)[:limit]

    async def get_recent_transactions(
        self, chain: ChainDescriptor, endpoint: str, block_count: int, limit: int,
    ) -> list[NormalizedTransaction]:
        latest = parse_int(await self._rpc(endpoint, "eth_blockNumber", []))
        if latest is None:
            return []
        numbers = [latest - i for i in range(max(1, block_count)) if latest - i >= 0]
        blocks = await asyncio.gather(*(self._fetch_block(endpoint, hex(n)) for n in numbers))

        transactions: list[NormalizedTransaction] = []
        for block in blocks:
            if block:
                transactions.extend(self.normalizer.block_transactions(block, chain.id))
        return transactions[:limit]

    async def _eth_call(self, endpoint: str, to: str, selector: str) -> Optional[str]:
        try:
            return await self._rpc(endpoint, "eth_call", [{"to": to, "data": selector}, "latest"])
        except RpcError as e:
            logger.debug(f"[{self.name}] eth_call {selector} on {to} failed: {e}")
            return None

    async def get_token_info(
        self, chain: ChainDescriptor, endpoint: str, token_address: str,
    ) -> TokenInfo:
        name, symbol, decimals_hex, supply_hex = await asyncio.gather(
            self._eth_call(endpoint, token_address, SELECTOR_NAME),
            self._eth_call(endpoint, token_address, SELECTOR_SYMBOL),
            self._eth_call(endpoint, token_address, SELECTOR_DECIMALS),
            self._eth_call(endpoint, token_address, SELECTOR_TOTAL_SUPPLY),
        )
        if not supply_hex or supply_hex == "0x":
            raise self.not_found("token", token_address, chain)

        decimals = parse_int(decimals_hex) if decimals_hex and decimals_hex != "0x" else None
        return TokenInfo(
            address=token_address,
            chain_id=chain.id,
            name=decode_abi_string(name),
            symbol=decode_abi_string(symbol),
            decimals=decimals,
            total_supply=to_native(supply_hex, decimals or 0),
        )

    async def _gas_tiers(self, endpoint: str) -> Optional[GasPriceTiers]:
        try:
            history = await self._rpc(endpoint, "eth_feeHistory", [4, "latest", FEE_PERCENTILES])
            base_fees = history.get("baseFeePerGas") or []
            rewards = history.get("reward") or []
            if base_fees and rewards:
                base = parse_int(base_fees[-1])
                tiers = []
                for column in range(len(FEE_PERCENTILES)):
                    values = [parse_int(row[column]) for row in rewards if len(row) > column]
                    tip = sum(values) / len(values) if values else 0
                    tiers.append((base + tip) / 10 ** 9)
                return GasPriceTiers(safe=tiers[0], propose=tiers[1], fast=tiers[2])
        except (RpcError, AttributeError, TypeError) as e:
            logger.debug(f"[{self.name}] eth_feeHistory unavailable at {endpoint}: {e}")

        price = parse_int(await self._rpc(endpoint, "eth_gasPrice", []))
        if price is None:
            return None
        gwei = price / 10 ** 9
        return GasPriceTiers(safe=gwei * 0.9, propose=gwei, fast=gwei * 1.1)

    async def get_chain_stats(self, chain: ChainDescriptor, endpoint: str) -> ChainStats:
        latest, tiers = await asyncio.gather(
            self._rpc(endpoint, "eth_blockNumber", []),
            self._gas_tiers(endpoint),
        )
        return ChainStats(
            chain_id=chain.id,
            latest_block=parse_int(latest) or 0,
            gas_price=tiers,
        )


__all__ = ["EvmRpcSource", "decode_abi_string"]
