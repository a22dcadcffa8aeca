"""
Solana normalizer.

Transactions are getTransaction results ({slot, blockTime, transaction,
meta}); entries taken from getBlock are merged with the block's slot and
blockTime by the source before normalization.
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


class SolanaNormalizer(BaseNormalizer):
    """Normalizer for Solana JSON-RPC payloads."""

    family = ChainFamily.SOLANA

    def to_address_info(self, raw: dict[str, Any], chain_id: str) -> NormalizedAddressInfo:
        balance = raw.get("balance")
        if isinstance(balance, dict):
            balance = balance.get("value")
        if balance is None:
            raise self.malformed("Missing balance", chain_id, field_name="balance")

        signatures = raw.get("signatures") or []
        return NormalizedAddressInfo(
            address=raw["address"],
            chain_id=chain_id,
            balance=self.native(balance),
            transaction_count=len(signatures),
            transactions=tuple(self._from_signature(sig, chain_id) for sig in signatures),
        )

    def _from_signature(self, entry: dict[str, Any], chain_id: str) -> NormalizedTransaction:
        """getSignaturesForAddress entry: no amounts, only outcome and position."""
        if entry.get("err") is not None:
            status = TxStatus.FAILED
        elif entry.get("confirmationStatus") == "processed":
            status = TxStatus.PENDING
        else:
            status = TxStatus.SUCCESS
        return NormalizedTransaction(
            hash=entry["signature"],
            chain_id=chain_id,
            from_address=None,
            to_address=None,
            value=self.native(0),
            status=status,
            timestamp=entry.get("blockTime"),
            block_number=entry.get("slot"),
            extensions=compact({"memo": entry.get("memo")}),
        )

    def to_transaction(self, raw: Any, chain_id: str) -> NormalizedTransaction:
        transaction = (raw or {}).get("transaction")
        if not transaction or (isinstance(transaction, dict) and not transaction.get("signatures")):
            raise self.not_found("transaction", None, chain_id)
        try:
            transaction = raw["transaction"]
            message = transaction.get("message", {})
            keys = [
                key.get("pubkey") if isinstance(key, dict) else key
                for key in message.get("accountKeys", [])
            ]
            meta = raw.get("meta")

            fee = None
            value = 0
            if meta is None:
                status = TxStatus.PENDING
            else:
                status = TxStatus.FAILED if meta.get("err") is not None else TxStatus.SUCCESS
                fee = meta.get("fee", 0)
                pre = meta.get("preBalances") or []
                post = meta.get("postBalances") or []
                if pre and post:
                    # Fee payer's balance drop, net of the fee
                    value = max(pre[0] - post[0] - (fee or 0), 0)

            return NormalizedTransaction(
                hash=transaction["signatures"][0],
                chain_id=chain_id,
                from_address=keys[0] if keys else None,
                to_address=keys[1] if len(keys) > 1 else None,
                value=self.native(value),
                status=status,
                timestamp=raw.get("blockTime"),
                block_number=raw.get("slot"),
                gas_price=float(fee) if fee is not None else None,
                fee=self.native(fee) if fee is not None else None,
                extensions=compact({
                    "compute_units": (meta or {}).get("computeUnitsConsumed"),
                    "recent_blockhash": message.get("recentBlockhash"),
                    "version": raw.get("version"),
                }),
            )
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise self.malformed(f"Invalid transaction payload: {e}", chain_id, error=e)

    def to_block(self, raw: Any, chain_id: str) -> NormalizedBlock:
        """raw: {"slot": n, "block": <getBlock result>}."""
        block = (raw or {}).get("block")
        if not block:
            raise self.not_found("block", str((raw or {}).get("slot")), chain_id)
        try:
            if block.get("transactions") is not None:
                count = len(block["transactions"])
            elif block.get("signatures") is not None:
                count = len(block["signatures"])
            else:
                count = None
            return NormalizedBlock(
                number=parse_int(raw["slot"]),
                chain_id=chain_id,
                hash=block.get("blockhash"),
                timestamp=block.get("blockTime"),
                transaction_count=count,
                extensions=compact({
                    "block_height": block.get("blockHeight"),
                    "parent_slot": block.get("parentSlot"),
                    "previous_blockhash": block.get("previousBlockhash"),
                }),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise self.malformed(f"Invalid block payload: {e}", chain_id, error=e)

    def block_transactions(self, slot: int, block: dict[str, Any], chain_id: str) -> list[NormalizedTransaction]:
        return [
            self.to_transaction({**entry, "slot": slot, "blockTime": block.get("blockTime")}, chain_id)
            for entry in block.get("transactions") or []
            if (entry.get("transaction") or {}).get("signatures")
        ]
