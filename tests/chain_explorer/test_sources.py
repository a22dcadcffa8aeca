"""
Tests for upstream sources over a mocked transport.

============================================================
PURPOSE
============================================================
1. EVM JSON-RPC call shapes and not-found handling
2. Etherscan envelope unwrapping and key rejection
3. Esplora liveness check and optional stats data
4. Address, missing transaction and latest block for every other family
5. Public sources must implement the liveness call

============================================================
"""

from decimal import Decimal

import pytest

from chain_explorer.exceptions import (
    EntityNotFoundError,
    FetchError,
    InvalidCredentialError,
    RateLimitError,
    RpcError,
)
from chain_explorer.models import ChainFamily
from chain_explorer.sources import (
    AptosSource,
    CosmosSource,
    EsploraSource,
    EtherscanSource,
    EvmRpcSource,
    NearSource,
    RpcSource,
    SolanaSource,
    SuiSource,
    TronSource,
)
from tests.chain_explorer.helpers import make_chain, rpc_handler


ENDPOINT = "https://rpc-a.example"
ADDRESS = "0x" + "1f" * 20
TX_HASH = "0x" + "ab" * 32


@pytest.fixture
def chain():
    return make_chain().descriptor


# ============================================================
# EVM JSON-RPC
# ============================================================

class TestEvmRpcSource:
    """Tests for EvmRpcSource."""

    @pytest.mark.asyncio
    async def test_probe(self, mock_transport):
        mock_transport.rpc_call.return_value = "0x10"
        assert await EvmRpcSource(mock_transport).probe(ENDPOINT) is True

    @pytest.mark.asyncio
    async def test_address_info(self, mock_transport, chain):
        mock_transport.rpc_call.side_effect = rpc_handler({
            "eth_getBalance": "0xde0b6b3a7640000",
            "eth_getTransactionCount": "0x5",
        })

        info = await EvmRpcSource(mock_transport).get_address_info(chain, ENDPOINT, ADDRESS)

        assert info.address == ADDRESS
        assert info.chain_id == "testchain"
        assert info.balance == Decimal(1)
        assert info.transaction_count == 5

    @pytest.mark.asyncio
    async def test_missing_transaction(self, mock_transport, chain):
        mock_transport.rpc_call.side_effect = rpc_handler({"eth_getTransactionByHash": None})

        with pytest.raises(EntityNotFoundError):
            await EvmRpcSource(mock_transport).get_transaction(chain, ENDPOINT, TX_HASH)

    @pytest.mark.asyncio
    async def test_block_tags(self, mock_transport, chain):
        tags = []

        def block(url, params):
            tags.append(params[0])
            return {"number": params[0] if params[0] != "latest" else "0x20", "transactions": []}

        mock_transport.rpc_call.side_effect = rpc_handler({"eth_getBlockByNumber": block})
        source = EvmRpcSource(mock_transport)

        latest = await source.get_block(chain, ENDPOINT)
        numbered = await source.get_block(chain, ENDPOINT, 16)

        assert tags == ["latest", "0x10"]
        assert latest.number == 32
        assert numbered.number == 16

    @pytest.mark.asyncio
    async def test_recent_blocks_stop_at_genesis(self, mock_transport, chain):
        tags = []

        def block(url, params):
            tags.append(params[0])
            return {"number": params[0], "transactions": []}

        mock_transport.rpc_call.side_effect = rpc_handler({
            "eth_blockNumber": "0x2",
            "eth_getBlockByNumber": block,
        })

        result = await EvmRpcSource(mock_transport).get_recent_transactions(chain, ENDPOINT, 5, 100)

        assert result == []
        assert tags == ["0x2", "0x1", "0x0"]


# ============================================================
# ETHERSCAN
# ============================================================

class TestEtherscanSource:
    """Tests for EtherscanSource."""

    @pytest.mark.asyncio
    async def test_chainid_and_key_are_sent(self, mock_transport, chain):
        mock_transport.get_json.return_value = {"jsonrpc": "2.0", "id": 1, "result": "0x10"}

        assert await EtherscanSource(mock_transport).validate_key(chain, "KEY123") is True

        params = mock_transport.get_json.await_args.kwargs["params"]
        assert params["chainid"] == "1"
        assert params["apikey"] == "KEY123"
        assert params["action"] == "eth_blockNumber"

    @pytest.mark.asyncio
    async def test_invalid_key(self, mock_transport, chain):
        mock_transport.get_json.return_value = {"status": "0", "message": "NOTOK", "result": "Invalid API Key"}
        source = EtherscanSource(mock_transport)

        assert await source.validate_key(chain, "BAD") is False
        with pytest.raises(InvalidCredentialError):
            await source.get_transaction(chain, "BAD", TX_HASH)

    @pytest.mark.asyncio
    async def test_rate_limit(self, mock_transport, chain):
        mock_transport.get_json.return_value = {
            "status": "0", "message": "NOTOK", "result": "Max rate limit reached",
        }
        with pytest.raises(RateLimitError):
            await EtherscanSource(mock_transport).get_chain_stats(chain, "KEY123")

    @pytest.mark.asyncio
    async def test_empty_result_is_not_an_error(self, mock_transport, chain):
        mock_transport.get_json.return_value = {"status": "0", "message": "No transactions found", "result": []}
        source = EtherscanSource(mock_transport)

        assert await source._request(chain, "KEY123", {"module": "account", "action": "txlist"}) == []

    @pytest.mark.asyncio
    async def test_api_error(self, mock_transport, chain):
        mock_transport.get_json.return_value = {"status": "0", "message": "NOTOK", "result": "Error! Invalid address format"}
        with pytest.raises(FetchError):
            await EtherscanSource(mock_transport)._request(chain, "KEY123", {"module": "account"})


# ============================================================
# ESPLORA
# ============================================================

class TestEsploraSource:
    """Tests for EsploraSource."""

    @pytest.mark.asyncio
    async def test_probe(self, mock_transport):
        mock_transport.get_text.return_value = "840000\n"

        assert await EsploraSource(mock_transport).probe("https://blockstream.info/api") is True
        assert mock_transport.get_text.await_args.args[0] == "https://blockstream.info/api/blocks/tip/height"

    @pytest.mark.asyncio
    async def test_probe_rejects_garbage(self, mock_transport):
        mock_transport.get_text.return_value = "<html>maintenance</html>"
        assert await EsploraSource(mock_transport).probe("https://blockstream.info/api") is False

    @pytest.mark.asyncio
    async def test_stats_survive_missing_mempool(self, mock_transport, chain):
        def get_json(url, params=None, timeout=None):
            if url.endswith("/mempool"):
                raise FetchError("HTTP 404", status_code=404)
            return {"1": 20.5, "3": 10.0, "6": 5.0}

        mock_transport.get_text.return_value = "840000"
        mock_transport.get_json.side_effect = get_json

        stats = await EsploraSource(mock_transport).get_chain_stats(chain, "https://blockstream.info/api")

        assert stats.latest_block == 840000
        assert stats.mempool_size is None
        assert stats.gas_price.fast == 20.5

    @pytest.mark.asyncio
    async def test_stats_require_tip_height(self, mock_transport, chain):
        mock_transport.get_text.side_effect = FetchError("HTTP 503", status_code=503)
        mock_transport.get_json.return_value = {}

        with pytest.raises(FetchError):
            await EsploraSource(mock_transport).get_chain_stats(chain, "https://blockstream.info/api")


# ============================================================
# SOLANA
# ============================================================

class TestSolanaSource:
    """Tests for SolanaSource."""

    @pytest.fixture
    def solana(self):
        return make_chain("solana", family=ChainFamily.SOLANA, requires_key=None).descriptor

    @pytest.mark.asyncio
    async def test_address_info(self, mock_transport, solana):
        mock_transport.rpc_call.side_effect = rpc_handler({
            "getBalance": {"context": {"slot": 1}, "value": 2_000_000_000},
            "getSignaturesForAddress": [
                {"signature": "5sig", "slot": 9, "blockTime": 1700000000, "err": None,
                 "confirmationStatus": "finalized"},
            ],
        })

        info = await SolanaSource(mock_transport).get_address_info(solana, ENDPOINT, "Pubkey1111")

        assert info.balance == Decimal(2)
        assert info.transaction_count == 1
        assert info.transactions[0].hash == "5sig"

    @pytest.mark.asyncio
    async def test_missing_transaction(self, mock_transport, solana):
        mock_transport.rpc_call.side_effect = rpc_handler({"getTransaction": None})
        with pytest.raises(EntityNotFoundError):
            await SolanaSource(mock_transport).get_transaction(solana, ENDPOINT, "5sig")

    @pytest.mark.asyncio
    async def test_invalid_signature_is_not_found(self, mock_transport, solana):
        mock_transport.rpc_call.side_effect = rpc_handler({
            "getTransaction": RpcError("Invalid param", rpc_code=-32602),
        })
        with pytest.raises(EntityNotFoundError):
            await SolanaSource(mock_transport).get_transaction(solana, ENDPOINT, "not-a-signature")

    @pytest.mark.asyncio
    async def test_latest_block_skips_unproduced_slot(self, mock_transport, solana):
        def block(url, params):
            if params[0] == 100:
                raise RpcError("Block not available for slot 100", rpc_code=-32004)
            return {"blockhash": "H99", "blockTime": 1700000000, "signatures": ["a", "b"]}

        mock_transport.rpc_call.side_effect = rpc_handler({"getSlot": 100, "getBlock": block})

        latest = await SolanaSource(mock_transport).get_block(solana, ENDPOINT)

        assert latest.number == 99
        assert latest.hash == "H99"
        assert latest.transaction_count == 2


# ============================================================
# APTOS
# ============================================================

class TestAptosSource:
    """Tests for AptosSource."""

    @pytest.fixture
    def aptos(self):
        return make_chain("aptos", family=ChainFamily.APTOS, requires_key=None).descriptor

    @pytest.mark.asyncio
    async def test_address_info(self, mock_transport, aptos):
        def get_json(url, params=None, timeout=None):
            if url.endswith("/transactions"):
                return []
            return {"sequence_number": "3", "authentication_key": "0x1"}

        mock_transport.get_json.side_effect = get_json
        mock_transport.post_json.return_value = ["150000000"]

        info = await AptosSource(mock_transport).get_address_info(aptos, ENDPOINT, "0x1")

        assert info.balance == Decimal("1.5")
        assert info.transaction_count == 3
        assert mock_transport.post_json.await_args.args[0] == f"{ENDPOINT}/v1/view"

    @pytest.mark.asyncio
    async def test_missing_transaction(self, mock_transport, aptos):
        mock_transport.get_json.side_effect = FetchError("HTTP 404", status_code=404)
        with pytest.raises(EntityNotFoundError):
            await AptosSource(mock_transport).get_transaction(aptos, ENDPOINT, "0xdead")

    @pytest.mark.asyncio
    async def test_latest_block(self, mock_transport, aptos):
        def get_json(url, params=None, timeout=None):
            if url.endswith("/v1"):
                return {"chain_id": 1, "block_height": "500"}
            return {
                "block_height": "500",
                "block_hash": "0xb500",
                "block_timestamp": "1700000000000000",
                "first_version": "10",
                "last_version": "14",
            }

        mock_transport.get_json.side_effect = get_json

        latest = await AptosSource(mock_transport).get_block(aptos, ENDPOINT)

        assert latest.number == 500
        assert latest.timestamp == 1700000000
        assert latest.transaction_count == 5
        assert mock_transport.get_json.await_args.args[0] == f"{ENDPOINT}/v1/blocks/by_height/500"


# ============================================================
# SUI
# ============================================================

class TestSuiSource:
    """Tests for SuiSource."""

    @pytest.fixture
    def sui(self):
        return make_chain("sui", family=ChainFamily.SUI, requires_key=None).descriptor

    @pytest.mark.asyncio
    async def test_address_info(self, mock_transport, sui):
        mock_transport.rpc_call.side_effect = rpc_handler({
            "suix_getBalance": {"coinType": "0x2::sui::SUI", "totalBalance": "3000000000", "coinObjectCount": 2},
            "suix_queryTransactionBlocks": {"data": [], "hasNextPage": False},
        })

        info = await SuiSource(mock_transport).get_address_info(sui, ENDPOINT, "0xowner")

        assert info.balance == Decimal(3)
        assert info.transaction_count == 0
        assert info.extensions["coin_object_count"] == 2

    @pytest.mark.asyncio
    async def test_missing_transaction(self, mock_transport, sui):
        mock_transport.rpc_call.side_effect = rpc_handler({
            "sui_getTransactionBlock": RpcError("Could not find the referenced transaction"),
        })
        with pytest.raises(EntityNotFoundError):
            await SuiSource(mock_transport).get_transaction(sui, ENDPOINT, "Digest111")

    @pytest.mark.asyncio
    async def test_latest_block(self, mock_transport, sui):
        requested = []

        def checkpoint(url, params):
            requested.append(params)
            return {"sequenceNumber": params[0], "digest": "CP", "timestampMs": "1700000000000",
                    "transactions": ["t1", "t2"]}

        mock_transport.rpc_call.side_effect = rpc_handler({
            "sui_getLatestCheckpointSequenceNumber": "1234",
            "sui_getCheckpoint": checkpoint,
        })

        latest = await SuiSource(mock_transport).get_block(sui, ENDPOINT)

        assert requested == [["1234"]]
        assert latest.number == 1234
        assert latest.timestamp == 1700000000
        assert latest.transaction_count == 2


# ============================================================
# TRON
# ============================================================

class TestTronSource:
    """Tests for TronSource."""

    @pytest.fixture
    def tron(self):
        return make_chain("tron", family=ChainFamily.TRON, requires_key=None).descriptor

    @pytest.mark.asyncio
    async def test_address_info(self, mock_transport, tron):
        def get_json(url, params=None, timeout=None):
            if url.endswith("/transactions") or url.endswith("/trc20"):
                return {"data": []}
            return {"data": [{"balance": 5_000_000, "create_time": 1600000000000}]}

        mock_transport.get_json.side_effect = get_json

        info = await TronSource(mock_transport).get_address_info(tron, ENDPOINT, "TXyz")

        assert info.balance == Decimal(5)
        assert info.extensions["create_time"] == 1600000000000

    @pytest.mark.asyncio
    async def test_missing_transaction(self, mock_transport, tron):
        mock_transport.post_json.return_value = {}
        with pytest.raises(EntityNotFoundError):
            await TronSource(mock_transport).get_transaction(tron, ENDPOINT, "ab" * 32)

    @pytest.mark.asyncio
    async def test_latest_block(self, mock_transport, tron):
        mock_transport.post_json.return_value = {
            "blockID": "0000000003938700",
            "block_header": {"raw_data": {"number": 60000000, "timestamp": 1700000000000}},
            "transactions": [],
        }

        latest = await TronSource(mock_transport).get_block(tron, ENDPOINT)

        assert latest.number == 60000000
        assert latest.timestamp == 1700000000
        assert mock_transport.post_json.await_args.args[0] == f"{ENDPOINT}/wallet/getnowblock"


# ============================================================
# COSMOS
# ============================================================

class TestCosmosSource:
    """Tests for CosmosSource."""

    @pytest.fixture
    def cosmos(self):
        return make_chain("cosmos", family=ChainFamily.COSMOS, requires_key=None).descriptor

    @pytest.mark.asyncio
    async def test_address_info_without_tx_index(self, mock_transport, cosmos):
        def get_json(url, params=None, timeout=None):
            if url.endswith("/by_denom"):
                assert params == {"denom": "uatom"}
                return {"balance": {"denom": "uatom", "amount": "2500000"}}
            raise FetchError("HTTP 500", status_code=500)

        mock_transport.get_json.side_effect = get_json

        info = await CosmosSource(mock_transport).get_address_info(cosmos, ENDPOINT, "cosmos1abc")

        assert info.balance == Decimal("2.5")
        assert info.transactions == ()

    @pytest.mark.asyncio
    async def test_missing_transaction(self, mock_transport, cosmos):
        mock_transport.get_json.side_effect = FetchError("HTTP 400", status_code=400)
        with pytest.raises(EntityNotFoundError):
            await CosmosSource(mock_transport).get_transaction(cosmos, ENDPOINT, "AB" * 32)

    @pytest.mark.asyncio
    async def test_latest_block(self, mock_transport, cosmos):
        mock_transport.get_json.return_value = {
            "block_id": {"hash": "BLOCKHASH"},
            "block": {
                "header": {"height": "19000000", "time": "2023-11-14T22:13:20.123456789Z"},
                "data": {"txs": ["tx1"]},
            },
        }

        latest = await CosmosSource(mock_transport).get_block(cosmos, ENDPOINT)

        assert latest.number == 19000000
        assert latest.hash == "BLOCKHASH"
        assert latest.transaction_count == 1
        assert mock_transport.get_json.await_args.args[0].endswith("/blocks/latest")


# ============================================================
# NEAR
# ============================================================

class TestNearSource:
    """Tests for NearSource."""

    @pytest.fixture
    def near(self):
        return make_chain("near", family=ChainFamily.NEAR, requires_key=None).descriptor

    @pytest.mark.asyncio
    async def test_address_info(self, mock_transport, near):
        mock_transport.rpc_call.side_effect = rpc_handler({
            "query": {"amount": "1" + "0" * 24, "locked": "0", "storage_usage": 182, "block_height": 5},
        })

        info = await NearSource(mock_transport).get_address_info(near, ENDPOINT, "alice.near")

        assert info.balance == Decimal(1)
        assert info.extensions["storage_usage"] == 182

    @pytest.mark.asyncio
    async def test_missing_transaction(self, mock_transport, near):
        mock_transport.rpc_call.side_effect = rpc_handler({
            "tx": RpcError("UNKNOWN_TRANSACTION"),
        })
        with pytest.raises(EntityNotFoundError):
            await NearSource(mock_transport).get_transaction(near, ENDPOINT, "TxHash111")

    @pytest.mark.asyncio
    async def test_latest_block(self, mock_transport, near):
        requested = []

        def block(url, params):
            requested.append(params)
            return {"header": {"height": 120, "hash": "BH", "timestamp": 1700000000000000000}, "chunks": []}

        mock_transport.rpc_call.side_effect = rpc_handler({"block": block})

        latest = await NearSource(mock_transport).get_block(near, ENDPOINT)

        assert requested == [{"finality": "final"}]
        assert latest.number == 120
        assert latest.timestamp == 1700000000


# ============================================================
# SOURCE CONTRACT
# ============================================================

class TestRpcSourceContract:
    """Tests for the RpcSource base class."""

    def test_liveness_call_is_required(self, mock_transport):
        class Incomplete(RpcSource):
            family = ChainFamily.EVM
            name = "incomplete"

            async def get_address_info(self, chain, endpoint, address):
                pass

            async def get_transaction(self, chain, endpoint, tx_hash):
                pass

            async def get_block(self, chain, endpoint, number=None):
                pass

            async def get_latest_transactions(self, chain, endpoint, limit):
                pass

        with pytest.raises(TypeError):
            Incomplete(mock_transport)
