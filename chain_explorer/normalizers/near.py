"""
NEAR normalizer.

Transaction envelope:
    {"transaction": {...}, "status": {...} | None, "outcome": {...},
     "block": <block header> | None, "included": bool}
The tx RPC result ({status, transaction, transaction_outcome}) is accepted
as-is; chunk entries are wrapped by the source with the block header.
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


class NearNormalizer(BaseNormalizer):
    """Normalizer for NEAR JSON-RPC payloads."""

    family = ChainFamily.NEAR

    def to_address_info(self, raw: dict[str, Any], chain_id: str) -> NormalizedAddressInfo:
        """raw: {"address", "account": view_account result}."""
        account = raw.get("account")
        if not account:
            raise self.not_found("address", raw.get("address"), chain_id)
        try:
            return NormalizedAddressInfo(
                address=raw["address"],
                chain_id=chain_id,
                balance=self.native(account["amount"]),
                extensions=compact({
                    "locked": str(self.native(account.get("locked", 0))),
                    "storage_usage": account.get("storage_usage"),
                    "block_height": account.get("block_height"),
                }),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise self.malformed(f"Invalid account payload: {e}", chain_id, error=e)

    def to_transaction(self, raw: Any, chain_id: str) -> NormalizedTransaction:
        tx = (raw or {}).get("transaction")
        if not tx or not tx.get("hash"):
            raise self.not_found("transaction", None, chain_id)
        try:
            deposit = sum(
                int(action["Transfer"].get("deposit", 0))
                for action in tx.get("actions") or []
                if isinstance(action, dict) and "Transfer" in action
            )
            outcome = ((raw.get("transaction_outcome") or raw.get("outcome") or {}).get("outcome")) or {}
            block = raw.get("block") or {}
            timestamp_ns = parse_int(block.get("timestamp"))
            tokens_burnt = outcome.get("tokens_burnt")

            return NormalizedTransaction(
                hash=tx["hash"],
                chain_id=chain_id,
                from_address=tx.get("signer_id"),
                to_address=tx.get("receiver_id"),
                value=self.native(deposit),
                status=self._status(raw),
                timestamp=timestamp_ns // 1_000_000_000 if timestamp_ns is not None else None,
                block_number=parse_int(block.get("height")),
                gas_used=parse_int(outcome.get("gas_burnt")),
                fee=self.native(tokens_burnt) if tokens_burnt is not None else None,
                extensions=compact({
                    "nonce": tx.get("nonce"),
                    "actions": len(tx.get("actions") or []),
                    "block_hash": (raw.get("transaction_outcome") or {}).get("block_hash"),
                }),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise self.malformed(f"Invalid transaction payload: {e}", chain_id, error=e)

    @staticmethod
    def _status(raw: dict[str, Any]) -> TxStatus:
        status = raw.get("status")
        if isinstance(status, dict):
            if "Failure" in status:
                return TxStatus.FAILED
            if "SuccessValue" in status or "SuccessReceiptId" in status:
                return TxStatus.SUCCESS
            return TxStatus.PENDING
        if status is None and raw.get("included"):
            return TxStatus.SUCCESS
        return TxStatus.PENDING

    def to_block(self, raw: Any, chain_id: str) -> NormalizedBlock:
        header = (raw or {}).get("header")
        if not header:
            raise self.not_found("block", None, chain_id)
        try:
            timestamp_ns = parse_int(header.get("timestamp"))
            return NormalizedBlock(
                number=parse_int(header["height"]),
                chain_id=chain_id,
                hash=header.get("hash"),
                timestamp=timestamp_ns // 1_000_000_000 if timestamp_ns is not None else None,
                transaction_count=raw.get("transaction_count"),
                gas_used=None,
                extensions=compact({
                    "chunks": len(raw.get("chunks") or []),
                    "author": raw.get("author"),
                    "gas_price": header.get("gas_price"),
                }),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise self.malformed(f"Invalid block payload: {e}", chain_id, error=e)
