"""Aptos normalizer (fullnode REST API, /v1)."""

from typing import Any, Optional

from chain_explorer.models import (
    ChainFamily,
    NormalizedAddressInfo,
    NormalizedBlock,
    NormalizedTransaction,
    TxStatus,
)
from chain_explorer.normalizers.base import BaseNormalizer, compact, parse_int


TRANSFER_FUNCTIONS = (
    "0x1::aptos_account::transfer",
    "0x1::aptos_account::transfer_coins",
    "0x1::coin::transfer",
)


class AptosNormalizer(BaseNormalizer):
    """Normalizer for Aptos fullnode payloads."""

    family = ChainFamily.APTOS

    def to_address_info(self, raw: dict[str, Any], chain_id: str) -> NormalizedAddressInfo:
        """raw: {"address", "balance": octas, "account": {...}, "transactions": [...]}."""
        account = raw.get("account")
        if account is None and raw.get("balance") is None:
            raise self.not_found("address", raw.get("address"), chain_id)
        try:
            return NormalizedAddressInfo(
                address=raw["address"],
                chain_id=chain_id,
                balance=self.native(raw.get("balance") or 0),
                transaction_count=parse_int((account or {}).get("sequence_number")),
                transactions=self.transactions(raw.get("transactions", []), chain_id),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise self.malformed(f"Invalid address payload: {e}", chain_id, error=e)

    def to_transaction(self, raw: Any, chain_id: str) -> NormalizedTransaction:
        if not raw or not raw.get("hash"):
            raise self.not_found("transaction", None, chain_id)
        try:
            recipient, amount = self._transfer(raw)
            gas_used = parse_int(raw.get("gas_used"))
            unit_price = parse_int(raw.get("gas_unit_price"))
            timestamp = parse_int(raw.get("timestamp"))

            if raw.get("type") == "pending_transaction":
                status = TxStatus.PENDING
            elif raw.get("success"):
                status = TxStatus.SUCCESS
            else:
                status = TxStatus.FAILED

            return NormalizedTransaction(
                hash=raw["hash"],
                chain_id=chain_id,
                from_address=raw.get("sender"),
                to_address=recipient,
                value=self.native(amount or 0),
                status=status,
                # Aptos timestamps are microseconds
                timestamp=timestamp // 1_000_000 if timestamp is not None else None,
                block_number=parse_int(raw.get("version")),
                gas=parse_int(raw.get("max_gas_amount")),
                gas_price=float(unit_price) if unit_price is not None else None,
                gas_used=gas_used,
                fee=self.native(gas_used * unit_price) if gas_used is not None and unit_price is not None else None,
                extensions=compact({
                    "type": raw.get("type"),
                    "function": (raw.get("payload") or {}).get("function"),
                    "vm_status": raw.get("vm_status"),
                    "sequence_number": parse_int(raw.get("sequence_number")),
                }),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise self.malformed(f"Invalid transaction payload: {e}", chain_id, error=e)

    @staticmethod
    def _transfer(raw: dict[str, Any]) -> tuple[Optional[str], Optional[Any]]:
        payload = raw.get("payload") or {}
        arguments = payload.get("arguments") or []
        if payload.get("function") in TRANSFER_FUNCTIONS and len(arguments) >= 2:
            return arguments[0], arguments[1]

        for event in raw.get("events") or []:
            event_type = event.get("type", "")
            data = event.get("data") or {}
            if "amount" in data and ("Deposit" in event_type or "Transfer" in event_type):
                return data.get("account") or data.get("to"), data["amount"]
        return None, None

    def to_block(self, raw: Any, chain_id: str) -> NormalizedBlock:
        if not raw or raw.get("block_height") is None:
            raise self.not_found("block", None, chain_id)
        try:
            first = parse_int(raw.get("first_version"))
            last = parse_int(raw.get("last_version"))
            timestamp = parse_int(raw.get("block_timestamp"))
            return NormalizedBlock(
                number=parse_int(raw["block_height"]),
                chain_id=chain_id,
                hash=raw.get("block_hash"),
                timestamp=timestamp // 1_000_000 if timestamp is not None else None,
                transaction_count=last - first + 1 if first is not None and last is not None else None,
                extensions=compact({"first_version": first, "last_version": last}),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise self.malformed(f"Invalid block payload: {e}", chain_id, error=e)
