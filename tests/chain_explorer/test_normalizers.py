"""
Tests for Response Normalizers.

============================================================
PURPOSE
============================================================
Covers, per chain family:
1. Exact native-unit conversion
2. Status collapse (success / failed / pending)
3. Determinism (same payload, equal result)
4. Not-found and malformed payload handling

============================================================
"""

from decimal import Decimal

import pytest

from chain_explorer.exceptions import EntityNotFoundError
from chain_explorer.models import ChainFamily, TxStatus
from chain_explorer.normalizers import NATIVE_DECIMALS, get_normalizer, parse_int, to_native
from chain_explorer.normalizers.cosmos import parse_timestamp
from chain_explorer.sources.evm_rpc import decode_abi_string


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def evm_tx():
    """Node JSON-RPC transaction, 1 ETH at 20 gwei."""
    return {
        "hash": "0x" + "ab" * 32,
        "from": "0x1111111111111111111111111111111111111111",
        "to": "0x2222222222222222222222222222222222222222",
        "value": "0xde0b6b3a7640000",
        "gas": "0x5208",
        "gasPrice": "0x4a817c800",
        "nonce": "0x7",
        "blockNumber": "0xa",
        "input": "0xa9059cbb000000000000",
    }


@pytest.fixture
def evm_receipt():
    return {"status": "0x1", "gasUsed": "0x5208", "logs": []}


@pytest.fixture
def solana_tx():
    return {
        "slot": 250000000,
        "blockTime": 1700000000,
        "transaction": {
            "signatures": ["5" * 88],
            "message": {
                "accountKeys": ["SenderPubkey1111", "RecipientPubkey2222"],
                "recentBlockhash": "Hash111",
            },
        },
        "meta": {
            "err": None,
            "fee": 5000,
            "preBalances": [10_000_005_000, 0],
            "postBalances": [5_000_000_000, 5_000_000_000],
        },
    }


@pytest.fixture
def tron_tx():
    return {
        "txID": "f" * 64,
        "ret": [{"contractRet": "SUCCESS"}],
        "raw_data": {
            "timestamp": 1700000000123,
            "contract": [{
                "type": "TransferContract",
                "parameter": {"value": {
                    "owner_address": "TOwner",
                    "to_address": "TRecipient",
                    "amount": 2_000_000,
                }},
            }],
        },
    }


# ============================================================
# UNIT CONVERSION
# ============================================================

class TestUnitConversion:
    """Tests for table-driven unit conversion."""

    def test_decimals_table(self):
        assert NATIVE_DECIMALS[ChainFamily.EVM] == 18
        assert NATIVE_DECIMALS[ChainFamily.UTXO] == 8
        assert NATIVE_DECIMALS[ChainFamily.SOLANA] == 9
        assert NATIVE_DECIMALS[ChainFamily.APTOS] == 8
        assert NATIVE_DECIMALS[ChainFamily.SUI] == 9
        assert NATIVE_DECIMALS[ChainFamily.TRON] == 6
        assert NATIVE_DECIMALS[ChainFamily.COSMOS] == 6
        assert NATIVE_DECIMALS[ChainFamily.NEAR] == 24

    def test_parse_int_accepts_hex_decimal_and_numbers(self):
        assert parse_int("0x10") == 16
        assert parse_int("0x") == 0
        assert parse_int("42") == 42
        assert parse_int(7) == 7
        assert parse_int(3.0) == 3
        assert parse_int(None) is None
        assert parse_int("") is None

    def test_wei_to_ether_is_exact(self):
        assert to_native("0xde0b6b3a7640000", 18) == Decimal(1)
        assert to_native(str(10 ** 18), 18) == Decimal(1)

    def test_large_amounts_keep_precision(self):
        raw = 123456789012345678901234567890
        assert to_native(raw, 18) == Decimal("123456789012.345678901234567890")

    def test_smallest_unit(self):
        assert to_native(1, 18) == Decimal("0.000000000000000001")

    def test_lamports_to_sol(self):
        info = get_normalizer(ChainFamily.SOLANA).to_address_info(
            {"address": "Sol111", "balance": {"value": 5_000_000_000}, "signatures": []},
            "solana",
        )
        assert info.balance == Decimal(5)

    def test_satoshis_to_btc(self):
        info = get_normalizer(ChainFamily.UTXO).to_address_info(
            {
                "address": "bc1qtest",
                "stats": {
                    "chain_stats": {"funded_txo_sum": 150_000_000, "spent_txo_sum": 50_000_000, "tx_count": 3},
                    "mempool_stats": {"funded_txo_sum": 0, "spent_txo_sum": 0, "tx_count": 0},
                },
                "transactions": [],
            },
            "bitcoin",
        )
        assert info.balance == Decimal(1)
        assert info.transaction_count == 3

    def test_yocto_to_near(self):
        info = get_normalizer(ChainFamily.NEAR).to_address_info(
            {"address": "alice.near", "account": {"amount": str(10 ** 24), "locked": "0"}},
            "near",
        )
        assert info.balance == Decimal(1)

    def test_uatom_to_atom(self):
        info = get_normalizer(ChainFamily.COSMOS).to_address_info(
            {"address": "cosmos1abc", "balance": {"denom": "uatom", "amount": "2500000"}},
            "cosmos",
        )
        assert info.balance == Decimal("2.5")

    def test_octas_and_mist(self):
        aptos = get_normalizer(ChainFamily.APTOS).to_address_info(
            {"address": "0x1", "balance": "100000000", "account": {"sequence_number": "4"}},
            "aptos",
        )
        sui = get_normalizer(ChainFamily.SUI).to_address_info(
            {"address": "0x2", "balance": {"totalBalance": "1000000000"}, "transactions": []},
            "sui",
        )
        assert aptos.balance == Decimal(1)
        assert aptos.transaction_count == 4
        assert sui.balance == Decimal(1)


# ============================================================
# EVM
# ============================================================

class TestEvmNormalizer:
    """Tests for EVM transaction, block and token normalization."""

    @pytest.fixture
    def normalizer(self):
        return get_normalizer(ChainFamily.EVM)

    def test_full_envelope(self, normalizer, evm_tx, evm_receipt):
        tx = normalizer.to_transaction(
            {"transaction": evm_tx, "receipt": evm_receipt, "block_timestamp": "0x6553f100", "latest_block": "0x10"},
            "ethereum",
        )
        assert tx.value == Decimal(1)
        assert tx.status == TxStatus.SUCCESS
        assert tx.gas_price == 20.0
        assert tx.gas == 21000
        assert tx.gas_used == 21000
        assert tx.fee == Decimal("0.00042")
        assert tx.block_number == 10
        assert tx.timestamp == 0x6553f100
        assert tx.extensions["confirmations"] == 7
        assert tx.extensions["method_id"] == "0xa9059cbb"
        assert tx.extensions["nonce"] == 7

    def test_failed_receipt(self, normalizer, evm_tx):
        tx = normalizer.to_transaction(
            {"transaction": evm_tx, "receipt": {"status": "0x0", "gasUsed": "0x5208"}},
            "ethereum",
        )
        assert tx.status == TxStatus.FAILED

    def test_missing_receipt_is_pending_not_failed(self, normalizer, evm_tx):
        tx = normalizer.to_transaction({"transaction": evm_tx, "receipt": None}, "ethereum")
        assert tx.status == TxStatus.PENDING

    def test_transaction_in_block_without_receipt_is_success(self, normalizer, evm_tx):
        tx = normalizer.to_transaction(evm_tx, "ethereum")
        assert tx.status == TxStatus.SUCCESS

    def test_unmined_transaction_is_pending(self, normalizer, evm_tx):
        evm_tx["blockNumber"] = None
        tx = normalizer.to_transaction(evm_tx, "ethereum")
        assert tx.status == TxStatus.PENDING
        assert tx.block_number is None

    def test_etherscan_list_item(self, normalizer):
        item = {
            "hash": "0x" + "cd" * 32,
            "from": "0xaaa",
            "to": "0xbbb",
            "value": "2500000000000000000",
            "gasPrice": "30000000000",
            "gasUsed": "21000",
            "timeStamp": "1700000000",
            "blockNumber": "18000000",
            "isError": "1",
            "txreceipt_status": "0",
        }
        tx = normalizer.to_transaction(item, "ethereum")
        assert tx.value == Decimal("2.5")
        assert tx.gas_price == 30.0
        assert tx.status == TxStatus.FAILED
        assert tx.timestamp == 1700000000

    def test_missing_transaction_raises_not_found(self, normalizer):
        with pytest.raises(EntityNotFoundError):
            normalizer.to_transaction({"transaction": None}, "ethereum")

    def test_transaction_without_hash_is_not_found(self, normalizer):
        with pytest.raises(EntityNotFoundError):
            normalizer.to_transaction({"value": "0x1"}, "ethereum")
        with pytest.raises(EntityNotFoundError):
            normalizer.to_transaction({"transaction": {"blockNumber": "0x1"}, "receipt": None}, "ethereum")

    def test_block_skips_entries_without_hash(self, normalizer, evm_tx):
        block = {"number": "0xa", "timestamp": "0x6553f100", "transactions": [evm_tx, {"blockNumber": "0xa"}]}
        assert len(normalizer.block_transactions(block, "ethereum")) == 1

    def test_deterministic(self, normalizer, evm_tx, evm_receipt):
        envelope = {"transaction": evm_tx, "receipt": evm_receipt, "latest_block": "0x10"}
        assert normalizer.to_transaction(envelope, "ethereum") == normalizer.to_transaction(envelope, "ethereum")

    def test_block_and_embedded_transactions(self, normalizer, evm_tx):
        block = {
            "number": "0xa",
            "hash": "0xblock",
            "timestamp": "0x6553f100",
            "gasUsed": "0x5208",
            "gasLimit": "0x1c9c380",
            "baseFeePerGas": "0x3b9aca00",
            "transactions": [evm_tx, evm_tx],
        }
        normalized = normalizer.to_block(block, "ethereum")
        assert normalized.number == 10
        assert normalized.transaction_count == 2
        assert normalized.gas_limit == 30_000_000
        assert normalized.extensions["base_fee_per_gas"] == 1.0

        txs = normalizer.block_transactions(block, "ethereum")
        assert len(txs) == 2
        assert all(tx.status == TxStatus.SUCCESS for tx in txs)
        assert all(tx.timestamp == 0x6553f100 for tx in txs)

    def test_token_transfer(self, normalizer):
        transfer = normalizer.to_token_transfer(
            {
                "hash": "0x01",
                "from": "0xa",
                "to": "0xb",
                "contractAddress": "0xusdc",
                "tokenSymbol": "USDC",
                "tokenDecimal": "6",
                "value": "1500000",
                "timeStamp": "1700000000",
            },
            "ethereum",
        )
        assert transfer.value == Decimal("1.5")
        assert transfer.token_symbol == "USDC"

    def test_decode_abi_string(self):
        encoded = (
            "0x"
            + "20".rjust(64, "0")
            + "4".rjust(64, "0")
            + "USDT".encode().hex().ljust(64, "0")
        )
        assert decode_abi_string(encoded) == "USDT"
        assert decode_abi_string("0x" + "MKR".encode().hex().ljust(64, "0")) == "MKR"
        assert decode_abi_string("0x") is None


# ============================================================
# OTHER FAMILIES
# ============================================================

class TestSolanaNormalizer:
    """Tests for Solana normalization."""

    @pytest.fixture
    def normalizer(self):
        return get_normalizer(ChainFamily.SOLANA)

    def test_value_is_net_of_fee(self, normalizer, solana_tx):
        tx = normalizer.to_transaction(solana_tx, "solana")
        assert tx.value == Decimal(5)
        assert tx.fee == Decimal("0.000005")
        assert tx.from_address == "SenderPubkey1111"
        assert tx.to_address == "RecipientPubkey2222"
        assert tx.status == TxStatus.SUCCESS

    def test_error_is_failed(self, normalizer, solana_tx):
        solana_tx["meta"]["err"] = {"InstructionError": [0, "Custom"]}
        assert normalizer.to_transaction(solana_tx, "solana").status == TxStatus.FAILED

    def test_missing_meta_is_pending(self, normalizer, solana_tx):
        solana_tx["meta"] = None
        tx = normalizer.to_transaction(solana_tx, "solana")
        assert tx.status == TxStatus.PENDING
        assert tx.value == Decimal(0)

    def test_null_result_is_not_found(self, normalizer):
        with pytest.raises(EntityNotFoundError):
            normalizer.to_transaction(None, "solana")

    def test_transaction_without_signatures_is_not_found(self, normalizer):
        with pytest.raises(EntityNotFoundError):
            normalizer.to_transaction({"transaction": {"message": {}}, "meta": None}, "solana")

    def test_block(self, normalizer):
        block = normalizer.to_block(
            {"slot": 100, "block": {"blockhash": "H", "blockTime": 1700000000, "signatures": ["a", "b", "c"]}},
            "solana",
        )
        assert block.number == 100
        assert block.transaction_count == 3


class TestUtxoNormalizer:
    """Tests for Esplora normalization."""

    @pytest.fixture
    def normalizer(self):
        return get_normalizer(ChainFamily.UTXO)

    def test_confirmed_transaction(self, normalizer):
        tx = normalizer.to_transaction(
            {
                "txid": "a" * 64,
                "vin": [{"prevout": {"scriptpubkey_address": "bc1qsender", "value": 60_000_000}}],
                "vout": [
                    {"scriptpubkey_address": "bc1qrecipient", "value": 50_000_000},
                    {"scriptpubkey_address": "bc1qchange", "value": 9_990_000},
                ],
                "fee": 10_000,
                "weight": 800,
                "status": {"confirmed": True, "block_height": 800000, "block_time": 1700000000},
            },
            "bitcoin",
        )
        assert tx.status == TxStatus.SUCCESS
        assert tx.value == Decimal("0.5999")
        assert tx.from_address == "bc1qsender"
        assert tx.to_address == "bc1qrecipient"
        assert tx.fee == Decimal("0.0001")
        assert tx.gas_price == 50.0
        assert tx.block_number == 800000

    def test_unconfirmed_is_pending(self, normalizer):
        tx = normalizer.to_transaction(
            {"txid": "b" * 64, "vin": [], "vout": [], "status": {"confirmed": False}},
            "bitcoin",
        )
        assert tx.status == TxStatus.PENDING

    def test_missing_stats_is_not_found(self, normalizer):
        with pytest.raises(EntityNotFoundError):
            normalizer.to_address_info({"address": "bc1qx", "stats": None}, "bitcoin")


class TestTronNormalizer:
    """Tests for Tron normalization."""

    @pytest.fixture
    def normalizer(self):
        return get_normalizer(ChainFamily.TRON)

    def test_transfer(self, normalizer, tron_tx):
        tx = normalizer.to_transaction({"transaction": tron_tx, "info": {"blockNumber": 55, "fee": 1_100_000}}, "tron")
        assert tx.value == Decimal(2)
        assert tx.status == TxStatus.SUCCESS
        assert tx.timestamp == 1700000000
        assert tx.block_number == 55
        assert tx.fee == Decimal("1.1")

    def test_reverted_is_failed(self, normalizer, tron_tx):
        tron_tx["ret"] = [{"contractRet": "REVERT"}]
        assert normalizer.to_transaction(tron_tx, "tron").status == TxStatus.FAILED

    def test_no_result_is_pending(self, normalizer, tron_tx):
        tron_tx["ret"] = []
        assert normalizer.to_transaction(tron_tx, "tron").status == TxStatus.PENDING

    def test_empty_lookup_is_not_found(self, normalizer):
        with pytest.raises(EntityNotFoundError):
            normalizer.to_transaction({"transaction": {}, "info": {}}, "tron")


class TestNearNormalizer:
    """Tests for NEAR normalization."""

    @pytest.fixture
    def normalizer(self):
        return get_normalizer(ChainFamily.NEAR)

    def _tx(self, status):
        return {
            "status": status,
            "transaction": {
                "hash": "NearHash",
                "signer_id": "alice.near",
                "receiver_id": "bob.near",
                "actions": [
                    {"Transfer": {"deposit": str(10 ** 24)}},
                    {"Transfer": {"deposit": str(5 * 10 ** 23)}},
                    "CreateAccount",
                ],
            },
            "transaction_outcome": {"block_hash": "BH", "outcome": {"gas_burnt": 100, "tokens_burnt": "0"}},
        }

    def test_transfer_deposits_are_summed(self, normalizer):
        tx = normalizer.to_transaction(self._tx({"SuccessValue": ""}), "near")
        assert tx.value == Decimal("1.5")
        assert tx.status == TxStatus.SUCCESS
        assert tx.gas_used == 100

    def test_failure(self, normalizer):
        tx = normalizer.to_transaction(self._tx({"Failure": {"ActionError": {}}}), "near")
        assert tx.status == TxStatus.FAILED

    def test_unknown_status_is_pending(self, normalizer):
        tx = normalizer.to_transaction(self._tx({"NotStarted": None}), "near")
        assert tx.status == TxStatus.PENDING


class TestCosmosNormalizer:
    """Tests for Cosmos normalization."""

    @pytest.fixture
    def normalizer(self):
        return get_normalizer(ChainFamily.COSMOS)

    def test_parse_nanosecond_timestamp(self):
        assert parse_timestamp("2024-01-01T00:00:00.123456789Z") == 1704067200
        assert parse_timestamp("2024-01-01T00:00:00Z") == 1704067200
        assert parse_timestamp(None) is None

    def test_msg_send(self, normalizer):
        tx = normalizer.to_transaction(
            {
                "txhash": "C" * 64,
                "height": "19000000",
                "code": 0,
                "gas_wanted": "200000",
                "gas_used": "80000",
                "timestamp": "2024-01-01T00:00:00Z",
                "tx": {
                    "body": {"messages": [{
                        "@type": "/cosmos.bank.v1beta1.MsgSend",
                        "from_address": "cosmos1from",
                        "to_address": "cosmos1to",
                        "amount": [{"denom": "uatom", "amount": "3000000"}],
                    }]},
                    "auth_info": {"fee": {"amount": [{"denom": "uatom", "amount": "5000"}]}},
                },
            },
            "cosmos",
        )
        assert tx.value == Decimal(3)
        assert tx.from_address == "cosmos1from"
        assert tx.status == TxStatus.SUCCESS
        assert tx.fee == Decimal("0.005")
        assert tx.gas_price == pytest.approx(0.025)
        assert tx.block_number == 19000000

    def test_nonzero_code_is_failed(self, normalizer):
        tx = normalizer.to_transaction({"txhash": "D" * 64, "code": 5, "tx": {"body": {"messages": []}}}, "cosmos")
        assert tx.status == TxStatus.FAILED


class TestMoveNormalizers:
    """Tests for Aptos and Sui normalization."""

    def test_aptos_transfer(self):
        tx = get_normalizer(ChainFamily.APTOS).to_transaction(
            {
                "hash": "0x" + "1" * 64,
                "type": "user_transaction",
                "sender": "0xsender",
                "success": True,
                "version": "123456",
                "timestamp": "1700000000123456",
                "gas_used": "10",
                "gas_unit_price": "100",
                "payload": {"function": "0x1::aptos_account::transfer", "arguments": ["0xrecipient", "250000000"]},
            },
            "aptos",
        )
        assert tx.value == Decimal("2.5")
        assert tx.to_address == "0xrecipient"
        assert tx.timestamp == 1700000000
        assert tx.block_number == 123456
        assert tx.fee == Decimal("0.00001")
        assert tx.status == TxStatus.SUCCESS

    def test_aptos_pending(self):
        tx = get_normalizer(ChainFamily.APTOS).to_transaction(
            {"hash": "0x2", "type": "pending_transaction", "sender": "0xs"},
            "aptos",
        )
        assert tx.status == TxStatus.PENDING

    def test_aptos_block_counts_versions(self):
        block = get_normalizer(ChainFamily.APTOS).to_block(
            {"block_height": "5", "block_hash": "0xb", "block_timestamp": "1700000000000000",
             "first_version": "100", "last_version": "109"},
            "aptos",
        )
        assert block.transaction_count == 10
        assert block.timestamp == 1700000000

    def test_sui_fee_and_recipient(self):
        tx = get_normalizer(ChainFamily.SUI).to_transaction(
            {
                "digest": "SuiDigest",
                "timestampMs": "1700000000000",
                "checkpoint": "42",
                "transaction": {"data": {"sender": "0xsender", "gasData": {"price": "750", "budget": "5000000"}}},
                "effects": {
                    "status": {"status": "success"},
                    "gasUsed": {"computationCost": "1000000", "storageCost": "2000000", "storageRebate": "500000"},
                },
                "balanceChanges": [
                    {"owner": {"AddressOwner": "0xsender"}, "coinType": "0x2::sui::SUI", "amount": "-3002500000"},
                    {"owner": {"AddressOwner": "0xrecipient"}, "coinType": "0x2::sui::SUI", "amount": "3000000000"},
                ],
            },
            "sui",
        )
        assert tx.to_address == "0xrecipient"
        assert tx.value == Decimal(3)
        assert tx.fee == Decimal("0.0025")
        assert tx.gas_price == 750.0
        assert tx.status == TxStatus.SUCCESS

    def test_sui_without_effects_is_pending(self):
        tx = get_normalizer(ChainFamily.SUI).to_transaction(
            {"digest": "D", "transaction": {"data": {"sender": "0xs"}}},
            "sui",
        )
        assert tx.status == TxStatus.PENDING
