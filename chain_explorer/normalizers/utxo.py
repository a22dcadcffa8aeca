"""
UTXO normalizer for Esplora-compatible APIs (Blockstream, mempool.space).

Address payload: {"address": "<addr>", "stats": <GET /address/:a>,
"transactions": [<GET /address/:a/txs items>]}.
"""

from typing import Any

from chain_explorer.models import (
    ChainFamily,
    NormalizedAddressInfo,
    NormalizedBlock,
    NormalizedTransaction,
    TxStatus,
)
from chain_explorer.normalizers.base import BaseNormalizer, compact, parse_int


class UtxoNormalizer(BaseNormalizer):
    """Normalizer for Bitcoin-style chains."""

    family = ChainFamily.UTXO

    def to_address_info(self, raw: dict[str, Any], chain_id: str) -> NormalizedAddressInfo:
        stats = raw.get("stats")
        if not stats:
            raise self.not_found("address", raw.get("address"), chain_id)
        try:
            chain_stats = stats.get("chain_stats", {})
            mempool_stats = stats.get("mempool_stats", {})
            confirmed = chain_stats.get("funded_txo_sum", 0) - chain_stats.get("spent_txo_sum", 0)
            unconfirmed = mempool_stats.get("funded_txo_sum", 0) - mempool_stats.get("spent_txo_sum", 0)
            return NormalizedAddressInfo(
                address=stats.get("address") or raw["address"],
                chain_id=chain_id,
                balance=self.native(confirmed),
                transaction_count=chain_stats.get("tx_count", 0) + mempool_stats.get("tx_count", 0),
                transactions=self.transactions(raw.get("transactions", []), chain_id),
                extensions={"unconfirmed_balance": str(self.native(unconfirmed))} if unconfirmed else {},
            )
        except (KeyError, TypeError, ValueError) as e:
            raise self.malformed(f"Invalid address payload: {e}", chain_id, error=e)

    def to_transaction(self, raw: Any, chain_id: str) -> NormalizedTransaction:
        if not raw:
            raise self.not_found("transaction", None, chain_id)
        try:
            if "vin" not in raw:
                return self._mempool_entry(raw, chain_id)
            return self._full_transaction(raw, chain_id)
        except (KeyError, TypeError, ValueError, ZeroDivisionError) as e:
            raise self.malformed(f"Invalid transaction payload: {e}", chain_id, error=e)

    def _full_transaction(self, raw: dict[str, Any], chain_id: str) -> NormalizedTransaction:
        vin = raw.get("vin") or []
        vout = raw.get("vout") or []
        status = raw.get("status") or {}

        sender = None
        if vin and not vin[0].get("is_coinbase"):
            sender = (vin[0].get("prevout") or {}).get("scriptpubkey_address")
        recipient = next(
            (out["scriptpubkey_address"] for out in vout if out.get("scriptpubkey_address")),
            None,
        )

        fee = raw.get("fee")
        vsize = self._vsize(raw)
        return NormalizedTransaction(
            hash=raw["txid"],
            chain_id=chain_id,
            from_address=sender,
            to_address=recipient,
            value=self.native(sum(out.get("value", 0) for out in vout)),
            status=TxStatus.SUCCESS if status.get("confirmed") else TxStatus.PENDING,
            timestamp=status.get("block_time"),
            block_number=status.get("block_height"),
            gas_price=fee / vsize if fee is not None and vsize else None,
            fee=self.native(fee) if fee is not None else None,
            extensions=compact({
                "inputs": len(vin),
                "outputs": len(vout),
                "size": raw.get("size"),
                "weight": raw.get("weight"),
                "coinbase": bool(vin and vin[0].get("is_coinbase")) or None,
            }),
        )

    def _mempool_entry(self, raw: dict[str, Any], chain_id: str) -> NormalizedTransaction:
        """Entries from /mempool/recent: {txid, fee, vsize, value}."""
        fee = raw.get("fee")
        vsize = raw.get("vsize")
        return NormalizedTransaction(
            hash=raw["txid"],
            chain_id=chain_id,
            from_address=None,
            to_address=None,
            value=self.native(raw.get("value", 0)),
            status=TxStatus.PENDING,
            gas_price=fee / vsize if fee is not None and vsize else None,
            fee=self.native(fee) if fee is not None else None,
        )

    @staticmethod
    def _vsize(raw: dict[str, Any]) -> float:
        weight = raw.get("weight")
        if weight:
            return weight / 4
        return raw.get("vsize") or raw.get("size") or 0

    def to_block(self, raw: Any, chain_id: str) -> NormalizedBlock:
        if not raw:
            raise self.not_found("block", None, chain_id)
        try:
            return NormalizedBlock(
                number=parse_int(raw["height"]),
                chain_id=chain_id,
                hash=raw.get("id"),
                timestamp=raw.get("timestamp"),
                transaction_count=raw.get("tx_count"),
                extensions=compact({
                    "size": raw.get("size"),
                    "weight": raw.get("weight"),
                    "previous_block_hash": raw.get("previousblockhash"),
                    "difficulty": raw.get("difficulty"),
                }),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise self.malformed(f"Invalid block payload: {e}", chain_id, error=e)
