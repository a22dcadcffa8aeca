"""
Tron normalizer (TronGrid wallet API and v1 account API).

Transaction envelope from gettransactionbyid + gettransactioninfobyid:
    {"transaction": {...}, "info": {...}}
"""

from typing import Any

from chain_explorer.models import (
    ChainFamily,
    NormalizedAddressInfo,
    NormalizedBlock,
    NormalizedTransaction,
    TokenTransfer,
    TxStatus,
)
from chain_explorer.normalizers.base import (
    BaseNormalizer,
    compact,
    parse_int,
    to_native,
)


class TronNormalizer(BaseNormalizer):
    """Normalizer for Tron payloads."""

    family = ChainFamily.TRON

    def to_address_info(self, raw: dict[str, Any], chain_id: str) -> NormalizedAddressInfo:
        """raw: {"address", "account": v1 account | None, "transactions": [...], "trc20": [...]}."""
        # Unactivated accounts are absent upstream and hold nothing
        account = raw.get("account") or {}
        try:
            return NormalizedAddressInfo(
                address=raw["address"],
                chain_id=chain_id,
                balance=self.native(account.get("balance", 0)),
                transactions=self.transactions(raw.get("transactions", []), chain_id),
                token_transfers=tuple(
                    self.to_token_transfer(item, chain_id) for item in raw.get("trc20", []) or []
                ),
                extensions=compact({"create_time": account.get("create_time")}),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise self.malformed(f"Invalid address payload: {e}", chain_id, error=e)

    def to_transaction(self, raw: Any, chain_id: str) -> NormalizedTransaction:
        if isinstance(raw, dict) and "transaction" in raw:
            tx = raw.get("transaction") or {}
            info = raw.get("info") or {}
        else:
            tx = raw or {}
            info = {}

        if not tx.get("txID"):
            raise self.not_found("transaction", None, chain_id)

        try:
            raw_data = tx.get("raw_data") or {}
            contracts = raw_data.get("contract") or [{}]
            contract = contracts[0]
            contract_type = contract.get("type")
            value_obj = ((contract.get("parameter") or {}).get("value")) or {}

            if contract_type == "TransferContract":
                amount = value_obj.get("amount", 0)
            else:
                amount = value_obj.get("call_value", 0)

            ret = tx.get("ret") or []
            outcome = ret[0].get("contractRet") if ret else None
            if outcome is None and info.get("receipt"):
                outcome = info["receipt"].get("result", "SUCCESS")
            if outcome is None:
                status = TxStatus.PENDING
            elif outcome == "SUCCESS":
                status = TxStatus.SUCCESS
            else:
                status = TxStatus.FAILED

            timestamp_ms = parse_int(
                info.get("blockTimeStamp") or tx.get("block_timestamp") or raw_data.get("timestamp")
            )
            fee = info.get("fee")
            if fee is None and ret:
                fee = ret[0].get("fee")

            return NormalizedTransaction(
                hash=tx["txID"],
                chain_id=chain_id,
                from_address=value_obj.get("owner_address"),
                to_address=value_obj.get("to_address") or value_obj.get("contract_address"),
                value=self.native(amount),
                status=status,
                timestamp=timestamp_ms // 1000 if timestamp_ms is not None else None,
                block_number=parse_int(info.get("blockNumber") or tx.get("blockNumber")),
                fee=self.native(fee) if fee is not None else None,
                extensions=compact({
                    "contract_type": contract_type,
                    "energy_usage": (info.get("receipt") or {}).get("energy_usage_total"),
                    "fee_limit": raw_data.get("fee_limit"),
                }),
            )
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise self.malformed(f"Invalid transaction payload: {e}", chain_id, error=e)

    def to_block(self, raw: Any, chain_id: str) -> NormalizedBlock:
        if not raw or not raw.get("blockID"):
            raise self.not_found("block", None, chain_id)
        try:
            header = (raw.get("block_header") or {}).get("raw_data") or {}
            timestamp_ms = parse_int(header.get("timestamp"))
            return NormalizedBlock(
                number=parse_int(header.get("number", 0)),
                chain_id=chain_id,
                hash=raw["blockID"],
                timestamp=timestamp_ms // 1000 if timestamp_ms is not None else None,
                transaction_count=len(raw.get("transactions") or []),
                extensions=compact({
                    "witness_address": header.get("witness_address"),
                    "parent_hash": header.get("parentHash"),
                }),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise self.malformed(f"Invalid block payload: {e}", chain_id, error=e)

    def block_transactions(self, block: dict[str, Any], chain_id: str) -> list[NormalizedTransaction]:
        header = (block.get("block_header") or {}).get("raw_data") or {}
        return [
            self.to_transaction(
                {**tx, "blockNumber": header.get("number"), "block_timestamp": header.get("timestamp")},
                chain_id,
            )
            for tx in block.get("transactions") or []
        ]

    def to_token_transfer(self, item: dict[str, Any], chain_id: str) -> TokenTransfer:
        """Normalize a v1 TRC-20 transfer entry."""
        token = item.get("token_info") or {}
        timestamp_ms = parse_int(item.get("block_timestamp"))
        return TokenTransfer(
            hash=item["transaction_id"],
            chain_id=chain_id,
            from_address=item.get("from"),
            to_address=item.get("to"),
            token_address=token.get("address"),
            token_symbol=token.get("symbol"),
            value=to_native(item.get("value", 0), parse_int(token.get("decimals")) or 0),
            timestamp=timestamp_ms // 1000 if timestamp_ms is not None else None,
        )
