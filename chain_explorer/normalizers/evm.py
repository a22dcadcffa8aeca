"""
EVM normalizer.

Accepts both node JSON-RPC shapes (hex quantities) and Etherscan-style
list items (decimal strings, "timeStamp", "isError").

Transaction envelope, when receipts or block context were fetched:
    {"transaction": {...}, "receipt": {...} | None,
     "block_timestamp": "0x..", "latest_block": 123}
"""

from decimal import Decimal
from typing import Any, Optional

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
    to_gwei,
    to_native,
)


class EvmNormalizer(BaseNormalizer):
    """Normalizer for Ethereum and EVM-compatible chains."""

    family = ChainFamily.EVM

    def to_address_info(self, raw: dict[str, Any], chain_id: str) -> NormalizedAddressInfo:
        if raw.get("balance") is None:
            raise self.malformed("Missing balance", chain_id, field_name="balance")
        try:
            return NormalizedAddressInfo(
                address=raw["address"],
                chain_id=chain_id,
                balance=self.native(raw["balance"]),
                transaction_count=parse_int(raw.get("transaction_count")),
                transactions=self.transactions(raw.get("transactions", []), chain_id),
                token_transfers=tuple(
                    self.to_token_transfer(item, chain_id)
                    for item in raw.get("token_transfers", []) or []
                ),
            )
        except (KeyError, TypeError, ValueError, ArithmeticError) as e:
            raise self.malformed(f"Invalid address payload: {e}", chain_id, error=e)

    def to_transaction(self, raw: Any, chain_id: str) -> NormalizedTransaction:
        if isinstance(raw, dict) and "transaction" in raw:
            tx = raw.get("transaction")
            receipt_fetched = "receipt" in raw
            receipt = raw.get("receipt")
            block_timestamp = raw.get("block_timestamp")
            latest_block = parse_int(raw.get("latest_block"))
        else:
            tx = raw
            receipt_fetched = False
            receipt = None
            block_timestamp = None
            latest_block = None

        if not tx:
            identifier = raw.get("hash") if isinstance(raw, dict) else None
            raise self.not_found("transaction", identifier, chain_id)
        if not tx.get("hash"):
            raise self.not_found("transaction", None, chain_id)

        try:
            return self._build_transaction(
                tx, receipt, receipt_fetched, block_timestamp, latest_block, chain_id
            )
        except (KeyError, TypeError, ValueError, ArithmeticError) as e:
            raise self.malformed(f"Invalid transaction payload: {e}", chain_id, error=e)

    def _build_transaction(
        self,
        tx: dict[str, Any],
        receipt: Optional[dict[str, Any]],
        receipt_fetched: bool,
        block_timestamp: Any,
        latest_block: Optional[int],
        chain_id: str,
    ) -> NormalizedTransaction:
        block_number = parse_int(tx.get("blockNumber"))
        receipt = receipt or {}

        gas_price_wei = parse_int(tx.get("gasPrice"))
        if gas_price_wei is None:
            gas_price_wei = parse_int(receipt.get("effectiveGasPrice"))
        gas_used = parse_int(receipt.get("gasUsed")) or parse_int(tx.get("gasUsed"))

        fee: Optional[Decimal] = None
        if gas_used is not None and gas_price_wei is not None:
            fee = to_native(gas_used * gas_price_wei, self.decimals)

        timestamp = parse_int(tx.get("timeStamp"))
        if timestamp is None:
            timestamp = parse_int(block_timestamp)

        confirmations = parse_int(tx.get("confirmations"))
        if confirmations is None and latest_block is not None and block_number is not None:
            confirmations = max(0, latest_block - block_number + 1)

        tx_input = tx.get("input") or ""
        method_id = tx.get("methodId") or (tx_input[:10] if len(tx_input) >= 10 else None)

        extensions = compact({
            "nonce": parse_int(tx.get("nonce")),
            "input": tx_input or None,
            "method_id": method_id,
            "contract_address": receipt.get("contractAddress") or tx.get("contractAddress") or None,
            "logs_count": len(receipt["logs"]) if receipt.get("logs") is not None else None,
            "transaction_index": parse_int(tx.get("transactionIndex")),
            "max_fee_per_gas": to_gwei(tx.get("maxFeePerGas")),
            "max_priority_fee_per_gas": to_gwei(tx.get("maxPriorityFeePerGas")),
            "confirmations": confirmations,
            "type": parse_int(tx.get("type")),
        })

        return NormalizedTransaction(
            hash=tx["hash"],
            chain_id=chain_id,
            from_address=tx.get("from") or None,
            to_address=tx.get("to") or None,
            value=self.native(tx.get("value", 0)),
            status=self._status(tx, receipt if receipt_fetched else None, receipt_fetched, block_number),
            timestamp=timestamp,
            block_number=block_number,
            gas=parse_int(tx.get("gas")),
            gas_price=gas_price_wei / 10 ** 9 if gas_price_wei is not None else None,
            gas_used=gas_used,
            fee=fee,
            extensions=extensions,
        )

    @staticmethod
    def _status(
        tx: dict[str, Any],
        receipt: Optional[dict[str, Any]],
        receipt_fetched: bool,
        block_number: Optional[int],
    ) -> TxStatus:
        # Etherscan list items
        if "isError" in tx or "txreceipt_status" in tx:
            if tx.get("isError") == "1" or tx.get("txreceipt_status") == "0":
                return TxStatus.FAILED
            return TxStatus.SUCCESS

        if receipt_fetched:
            if not receipt:
                return TxStatus.PENDING
            status = parse_int(receipt.get("status"))
            # Pre-Byzantium receipts carry no status field
            if status is None or status == 1:
                return TxStatus.SUCCESS
            return TxStatus.FAILED

        return TxStatus.SUCCESS if block_number is not None else TxStatus.PENDING

    def to_block(self, raw: Any, chain_id: str) -> NormalizedBlock:
        if not raw:
            raise self.not_found("block", None, chain_id)
        try:
            transactions = raw.get("transactions") or []
            return NormalizedBlock(
                number=parse_int(raw["number"]),
                chain_id=chain_id,
                hash=raw.get("hash"),
                timestamp=parse_int(raw.get("timestamp")),
                transaction_count=len(transactions),
                gas_used=parse_int(raw.get("gasUsed")),
                gas_limit=parse_int(raw.get("gasLimit")),
                extensions=compact({
                    "miner": raw.get("miner"),
                    "parent_hash": raw.get("parentHash"),
                    "base_fee_per_gas": to_gwei(raw.get("baseFeePerGas")),
                    "size": parse_int(raw.get("size")),
                }),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise self.malformed(f"Invalid block payload: {e}", chain_id, error=e)

    def block_transactions(self, block: dict[str, Any], chain_id: str) -> list[NormalizedTransaction]:
        """Normalize the full transaction objects embedded in a block."""
        timestamp = block.get("timestamp")
        return [
            self.to_transaction({"transaction": tx, "block_timestamp": timestamp}, chain_id)
            for tx in block.get("transactions") or []
            if isinstance(tx, dict) and tx.get("hash")
        ]

    def to_token_transfer(self, item: dict[str, Any], chain_id: str) -> TokenTransfer:
        """Normalize an Etherscan tokentx item."""
        decimals = parse_int(item.get("tokenDecimal")) or 0
        return TokenTransfer(
            hash=item["hash"],
            chain_id=chain_id,
            from_address=item.get("from") or None,
            to_address=item.get("to") or None,
            token_address=item.get("contractAddress") or None,
            token_symbol=item.get("tokenSymbol") or None,
            value=to_native(item.get("value", 0), decimals),
            timestamp=parse_int(item.get("timeStamp")),
        )
