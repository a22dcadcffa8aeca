"""Sui normalizer (JSON-RPC transaction blocks and checkpoints)."""

from typing import Any, Optional

from chain_explorer.models import (
    ChainFamily,
    NormalizedAddressInfo,
    NormalizedBlock,
    NormalizedTransaction,
    TxStatus,
)
from chain_explorer.normalizers.base import BaseNormalizer, compact, parse_int


SUI_COIN_TYPE = "0x2::sui::SUI"


class SuiNormalizer(BaseNormalizer):
    """Normalizer for Sui fullnode payloads."""

    family = ChainFamily.SUI

    def to_address_info(self, raw: dict[str, Any], chain_id: str) -> NormalizedAddressInfo:
        """raw: {"address", "balance": suix_getBalance result, "transactions": [...]}."""
        balance = raw.get("balance")
        if not isinstance(balance, dict) or balance.get("totalBalance") is None:
            raise self.malformed("Missing totalBalance", chain_id, field_name="totalBalance")
        try:
            transactions = self.transactions(raw.get("transactions", []), chain_id)
            return NormalizedAddressInfo(
                address=raw["address"],
                chain_id=chain_id,
                balance=self.native(balance["totalBalance"]),
                transaction_count=len(transactions),
                transactions=transactions,
                extensions=compact({"coin_object_count": balance.get("coinObjectCount")}),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise self.malformed(f"Invalid address payload: {e}", chain_id, error=e)

    def to_transaction(self, raw: Any, chain_id: str) -> NormalizedTransaction:
        if not raw or not raw.get("digest"):
            raise self.not_found("transaction", None, chain_id)
        try:
            data = ((raw.get("transaction") or {}).get("data")) or {}
            sender = data.get("sender")
            effects = raw.get("effects")
            recipient, amount = self._transfer(raw, sender)

            fee = None
            if effects is None:
                status = TxStatus.PENDING
            else:
                outcome = (effects.get("status") or {}).get("status")
                status = TxStatus.SUCCESS if outcome == "success" else TxStatus.FAILED
                gas = effects.get("gasUsed") or {}
                if gas:
                    fee = (
                        int(gas.get("computationCost", 0))
                        + int(gas.get("storageCost", 0))
                        - int(gas.get("storageRebate", 0))
                    )

            timestamp_ms = parse_int(raw.get("timestampMs"))
            gas_price = parse_int((data.get("gasData") or {}).get("price"))
            return NormalizedTransaction(
                hash=raw["digest"],
                chain_id=chain_id,
                from_address=sender,
                to_address=recipient,
                value=self.native(amount or 0),
                status=status,
                timestamp=timestamp_ms // 1000 if timestamp_ms is not None else None,
                block_number=parse_int(raw.get("checkpoint")),
                gas=parse_int((data.get("gasData") or {}).get("budget")),
                gas_price=float(gas_price) if gas_price is not None else None,
                fee=self.native(fee) if fee is not None else None,
                extensions=compact({
                    "events_count": len(raw["events"]) if raw.get("events") is not None else None,
                    "error": ((effects or {}).get("status") or {}).get("error"),
                }),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise self.malformed(f"Invalid transaction payload: {e}", chain_id, error=e)

    @staticmethod
    def _transfer(raw: dict[str, Any], sender: Optional[str]) -> tuple[Optional[str], Optional[Any]]:
        for change in raw.get("balanceChanges") or []:
            owner = (change.get("owner") or {})
            address = owner.get("AddressOwner") if isinstance(owner, dict) else None
            amount = int(change.get("amount", 0))
            if change.get("coinType") == SUI_COIN_TYPE and address != sender and amount > 0:
                return address, amount

        for event in raw.get("events") or []:
            parsed = event.get("parsedJson") or {}
            if "amount" in parsed:
                return parsed.get("recipient"), parsed["amount"]
        return None, None

    def to_block(self, raw: Any, chain_id: str) -> NormalizedBlock:
        """raw: sui_getCheckpoint result."""
        if not raw or raw.get("sequenceNumber") is None:
            raise self.not_found("block", None, chain_id)
        try:
            timestamp_ms = parse_int(raw.get("timestampMs"))
            transactions = raw.get("transactions")
            return NormalizedBlock(
                number=parse_int(raw["sequenceNumber"]),
                chain_id=chain_id,
                hash=raw.get("digest"),
                timestamp=timestamp_ms // 1000 if timestamp_ms is not None else None,
                transaction_count=len(transactions) if transactions is not None else None,
                extensions=compact({
                    "epoch": parse_int(raw.get("epoch")),
                    "previous_digest": raw.get("previousDigest"),
                }),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise self.malformed(f"Invalid checkpoint payload: {e}", chain_id, error=e)
