"""
Etherscan API source - keyed scan-style API for EVM chains.

Uses Etherscan API V2 (unified multichain, "chainid" parameter) when the
chain's KeyedApiDescriptor carries a chain_param, and the descriptor's own
base URL otherwise (Etherscan-compatible explorers).

Free tier limits:
- 5 calls/second
- 100,000 calls/day
"""

import asyncio
import logging
from typing import Any, Optional

from chain_explorer.exceptions import (
    FetchError,
    InvalidCredentialError,
    RateLimitError,
)
from chain_explorer.models import (
    ChainDescriptor,
    ChainFamily,
    ChainStats,
    GasPriceTiers,
    NormalizedAddressInfo,
    NormalizedBlock,
    NormalizedTransaction,
    TokenInfo,
)
from chain_explorer.normalizers.base import parse_int, to_native
from chain_explorer.sources.base import ApiSource


logger = logging.getLogger(__name__)


# Messages that mean "empty result", not an error
EMPTY_RESULT_MESSAGES = ("No transactions found", "No records found", "OK", "")

INVALID_KEY_MARKERS = ("invalid api key", "missing/invalid api key", "invalid api-key")


class EtherscanSource(ApiSource):
    """Etherscan-family explorer API."""

    family = ChainFamily.EVM

    @property
    def name(self) -> str:
        return "etherscan"

    def _base_params(self, chain: ChainDescriptor, api_key: str) -> dict[str, str]:
        params: dict[str, str] = {}
        keyed = chain.keyed_api
        if keyed and keyed.chain_param is not None:
            params["chainid"] = str(keyed.chain_param)
        if api_key:
            params["apikey"] = api_key
        return params

    async def _request(
        self,
        chain: ChainDescriptor,
        api_key: str,
        params: dict[str, str],
        timeout: Optional[float] = None,
    ) -> Any:
        """Make an Etherscan API request and unwrap its result."""
        if chain.keyed_api is None:
            raise self.unsupported(params.get("action", "request"), chain)

        url = chain.keyed_api.base_url
        response = await self._transport.get_json(
            url,
            params={**self._base_params(chain, api_key), **params},
            timeout=timeout or self._timeouts.single_call,
        )
        if not isinstance(response, dict):
            raise FetchError(
                message="Unexpected Etherscan response",
                chain=chain.id,
                source_name=self.name,
                response_body=str(response)[:500],
                request_url=url,
            )

        # Proxy endpoints return jsonrpc format {"jsonrpc": "2.0", "result": ...}
        if "jsonrpc" in response:
            if "error" in response:
                error = response.get("error") or {}
                message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
                raise FetchError(
                    message=f"Etherscan API error: {message}",
                    chain=chain.id,
                    source_name=self.name,
                    response_body=str(response)[:500],
                    request_url=url,
                )
            return response.get("result")

        status = str(response.get("status", "0"))
        message = str(response.get("message", ""))
        result = response.get("result")
        detail = result if isinstance(result, str) else ""

        if any(marker in detail.lower() for marker in INVALID_KEY_MARKERS):
            raise InvalidCredentialError(
                f"Etherscan rejected the API key: {detail}",
                chain=chain.id,
                source_name=self.name,
            )

        if "rate limit" in detail.lower() or "rate limit" in message.lower():
            raise RateLimitError(
                message="Etherscan rate limit exceeded",
                chain=chain.id,
                source_name=self.name,
                retry_after_seconds=1,
                request_url=url,
            )

        if status == "0" and message not in EMPTY_RESULT_MESSAGES:
            raise FetchError(
                message=f"Etherscan API error: {message} {detail}".strip(),
                chain=chain.id,
                source_name=self.name,
                response_body=str(response)[:500],
                request_url=url,
            )

        if status == "0":
            return []
        return result

    async def _proxy(
        self, chain: ChainDescriptor, api_key: str, action: str, **params: str,
    ) -> Any:
        return await self._request(chain, api_key, {"module": "proxy", "action": action, **params})

    # ─────────────────────────────────────────────────────────────
    # Operations
    # ─────────────────────────────────────────────────────────────

    async def validate_key(self, chain: ChainDescriptor, api_key: str) -> bool:
        try:
            result = await self._request(
                chain,
                api_key,
                {"module": "proxy", "action": "eth_blockNumber"},
                timeout=self._timeouts.probe,
            )
        except InvalidCredentialError:
            return False
        return result is not None and result != []

    async def get_address_info(
        self, chain: ChainDescriptor, api_key: str, address: str,
    ) -> NormalizedAddressInfo:
        history = {
            "page": "1",
            "offset": str(self._history_limit),
            "sort": "desc",
            "address": address,
        }
        balance, txs, token_txs = await asyncio.gather(
            self._request(chain, api_key, {
                "module": "account", "action": "balance", "address": address, "tag": "latest",
            }),
            self._request(chain, api_key, {"module": "account", "action": "txlist", **history}),
            self._request(chain, api_key, {"module": "account", "action": "tokentx", **history}),
        )
        return self.normalizer.to_address_info(
            {
                "address": address,
                "balance": balance,
                "transactions": txs or [],
                "token_transfers": token_txs or [],
            },
            chain.id,
        )

    async def get_transaction(
        self, chain: ChainDescriptor, api_key: str, tx_hash: str,
    ) -> NormalizedTransaction:
        tx = await self._proxy(chain, api_key, "eth_getTransactionByHash", txhash=tx_hash)
        if not tx:
            raise self.not_found("transaction", tx_hash, chain)

        # Sequential: the free tier allows 5 calls/second
        receipt = await self._proxy(chain, api_key, "eth_getTransactionReceipt", txhash=tx_hash)
        latest = await self._proxy(chain, api_key, "eth_blockNumber")
        block = None
        if tx.get("blockNumber"):
            block = await self._proxy(
                chain, api_key, "eth_getBlockByNumber", tag=tx["blockNumber"], boolean="false",
            )
        return self.normalizer.to_transaction(
            {
                "transaction": tx,
                "receipt": receipt or None,
                "block_timestamp": (block or {}).get("timestamp"),
                "latest_block": latest,
            },
            chain.id,
        )

    async def _block(self, chain: ChainDescriptor, api_key: str, tag: str) -> Optional[dict[str, Any]]:
        block = await self._proxy(chain, api_key, "eth_getBlockByNumber", tag=tag, boolean="true")
        return block or None

    async def get_block(
        self, chain: ChainDescriptor, api_key: str, number: Optional[int] = None,
    ) -> NormalizedBlock:
        block = await self._block(chain, api_key, hex(number) if number is not None else "latest")
        if not block:
            raise self.not_found("block", number, chain)
        return self.normalizer.to_block(block, chain.id)

    async def get_latest_transactions(
        self, chain: ChainDescriptor, api_key: str, limit: int,
    ) -> list[NormalizedTransaction]:
        block = await self._block(chain, api_key, "latest")
        if not block:
            return []
        return self.normalizer.block_transactions(block, chain.id)[:limit]

    async def get_recent_transactions(
        self, chain: ChainDescriptor, api_key: str, block_count: int, limit: int,
    ) -> list[NormalizedTransaction]:
        latest = parse_int(await self._proxy(chain, api_key, "eth_blockNumber"))
        if latest is None:
            return []
        transactions: list[NormalizedTransaction] = []
        for offset in range(max(1, block_count)):
            if latest - offset < 0 or len(transactions) >= limit:
                break
            block = await self._block(chain, api_key, hex(latest - offset))
            if block:
                transactions.extend(self.normalizer.block_transactions(block, chain.id))
        return transactions[:limit]

    async def get_token_info(
        self, chain: ChainDescriptor, api_key: str, token_address: str,
    ) -> TokenInfo:
        info = await self._request(chain, api_key, {
            "module": "token", "action": "tokeninfo", "contractaddress": token_address,
        })
        if not info:
            raise self.not_found("token", token_address, chain)
        entry = info[0] if isinstance(info, list) else info

        decimals = parse_int(entry.get("divisor"))
        supply = entry.get("totalSupply")
        if supply is None:
            supply = await self._request(chain, api_key, {
                "module": "stats", "action": "tokensupply", "contractaddress": token_address,
            })
        return TokenInfo(
            address=token_address,
            chain_id=chain.id,
            name=entry.get("tokenName") or None,
            symbol=entry.get("symbol") or None,
            decimals=decimals,
            total_supply=to_native(supply, decimals or 0) if supply is not None else None,
        )

    async def get_chain_stats(self, chain: ChainDescriptor, api_key: str) -> ChainStats:
        latest = parse_int(await self._proxy(chain, api_key, "eth_blockNumber"))
        tiers = None
        try:
            oracle = await self._request(chain, api_key, {"module": "gastracker", "action": "gasoracle"})
            if isinstance(oracle, dict):
                tiers = GasPriceTiers(
                    safe=float(oracle["SafeGasPrice"]),
                    propose=float(oracle["ProposeGasPrice"]),
                    fast=float(oracle["FastGasPrice"]),
                )
        except (FetchError, KeyError, ValueError) as e:
            logger.debug(f"[{self.name}] Gas oracle unavailable for {chain.id}: {e}")

        if tiers is None:
            price = parse_int(await self._proxy(chain, api_key, "eth_gasPrice"))
            if price is not None:
                gwei = price / 10 ** 9
                tiers = GasPriceTiers(safe=gwei * 0.9, propose=gwei, fast=gwei * 1.1)

        return ChainStats(chain_id=chain.id, latest_block=latest or 0, gas_price=tiers)
