"""Cosmos SDK normalizer (LCD REST: tx_response and tendermint blocks)."""

from datetime import datetime
from typing import Any, Optional

from chain_explorer.models import (
    ChainFamily,
    NormalizedAddressInfo,
    NormalizedBlock,
    NormalizedTransaction,
    TxStatus,
)
from chain_explorer.normalizers.base import BaseNormalizer, compact, parse_int


MSG_SEND = "/cosmos.bank.v1beta1.MsgSend"


def parse_timestamp(value: Optional[str]) -> Optional[int]:
    """RFC 3339 (nanosecond precision allowed) to unix seconds."""
    if not value:
        return None
    text = value.replace("Z", "+00:00")
    # fromisoformat accepts at most microseconds
    if "." in text:
        head, _, rest = text.partition(".")
        digits = len(rest) - len(rest.lstrip("0123456789"))
        fraction, zone = rest[:digits], rest[digits:]
        text = f"{head}.{fraction[:6].ljust(6, '0')}{zone}"
    return int(datetime.fromisoformat(text).timestamp())


class CosmosNormalizer(BaseNormalizer):
    """Normalizer for Cosmos SDK chains."""

    family = ChainFamily.COSMOS

    def to_address_info(self, raw: dict[str, Any], chain_id: str) -> NormalizedAddressInfo:
        """raw: {"address", "balance": {"denom", "amount"}, "tx_responses": [...]}."""
        balance = raw.get("balance") or {}
        try:
            transactions = self.transactions(raw.get("tx_responses", []), chain_id)
            return NormalizedAddressInfo(
                address=raw["address"],
                chain_id=chain_id,
                balance=self.native(balance.get("amount", 0)),
                transaction_count=parse_int(raw.get("total")),
                transactions=transactions,
                extensions=compact({"denom": balance.get("denom")}),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise self.malformed(f"Invalid address payload: {e}", chain_id, error=e)

    def to_transaction(self, raw: Any, chain_id: str) -> NormalizedTransaction:
        if not raw or not raw.get("txhash"):
            raise self.not_found("transaction", None, chain_id)
        try:
            body = ((raw.get("tx") or {}).get("body")) or {}
            messages = body.get("messages") or []
            send = next((m for m in messages if m.get("@type") == MSG_SEND), None)

            sender = recipient = None
            amount = 0
            denom = None
            if send:
                sender = send.get("from_address")
                recipient = send.get("to_address")
                coins = send.get("amount") or []
                if coins:
                    amount, denom = coins[0].get("amount", 0), coins[0].get("denom")
            elif messages:
                first = messages[0]
                sender = first.get("sender") or first.get("delegator_address") or first.get("from_address")

            fee_coins = ((((raw.get("tx") or {}).get("auth_info")) or {}).get("fee") or {}).get("amount") or []
            fee_amount = parse_int(fee_coins[0].get("amount")) if fee_coins else None
            gas_wanted = parse_int(raw.get("gas_wanted"))

            return NormalizedTransaction(
                hash=raw["txhash"],
                chain_id=chain_id,
                from_address=sender,
                to_address=recipient,
                value=self.native(amount),
                status=TxStatus.SUCCESS if parse_int(raw.get("code", 0)) == 0 else TxStatus.FAILED,
                timestamp=parse_timestamp(raw.get("timestamp")),
                block_number=parse_int(raw.get("height")),
                gas=gas_wanted,
                gas_price=fee_amount / gas_wanted if fee_amount is not None and gas_wanted else None,
                gas_used=parse_int(raw.get("gas_used")),
                fee=self.native(fee_amount) if fee_amount is not None else None,
                extensions=compact({
                    "denom": denom,
                    "memo": body.get("memo") or None,
                    "message_types": [m.get("@type") for m in messages] or None,
                    "raw_log": raw.get("raw_log") if raw.get("code") else None,
                }),
            )
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise self.malformed(f"Invalid transaction payload: {e}", chain_id, error=e)

    def to_block(self, raw: Any, chain_id: str) -> NormalizedBlock:
        block = (raw or {}).get("block") or (raw or {}).get("sdk_block")
        if not block:
            raise self.not_found("block", None, chain_id)
        try:
            header = block.get("header") or {}
            txs = (block.get("data") or {}).get("txs")
            return NormalizedBlock(
                number=parse_int(header["height"]),
                chain_id=chain_id,
                hash=(raw.get("block_id") or {}).get("hash"),
                timestamp=parse_timestamp(header.get("time")),
                transaction_count=len(txs) if txs is not None else None,
                extensions=compact({
                    "proposer": header.get("proposer_address"),
                    "network": header.get("chain_id"),
                }),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise self.malformed(f"Invalid block payload: {e}", chain_id, error=e)
