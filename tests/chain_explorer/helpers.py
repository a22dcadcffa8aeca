"""Builders shared by the chain explorer tests."""

from decimal import Decimal
from typing import Any, Callable, Optional

from chain_explorer.config import ChainConfig, EndpointPool
from chain_explorer.models import (
    ChainDescriptor,
    ChainFamily,
    KeyedApiDescriptor,
    NormalizedAddressInfo,
    NormalizedTransaction,
    TxStatus,
)


TEST_POOL = (
    "https://rpc-a.example",
    "https://rpc-b.example",
    "https://rpc-c.example",
)


def make_chain(
    chain_id: str = "testchain",
    family: ChainFamily = ChainFamily.EVM,
    urls: tuple[str, ...] = TEST_POOL,
    requires_key: Optional[bool] = True,
) -> ChainConfig:
    """A chain with a test pool. requires_key=None means no keyed API."""
    keyed = None
    if requires_key is not None:
        keyed = KeyedApiDescriptor("https://api.example/api", requires_key=requires_key, chain_param=1)
    return ChainConfig(
        descriptor=ChainDescriptor(
            id=chain_id,
            name=chain_id.capitalize(),
            symbol="TST",
            family=family,
            keyed_api=keyed,
            evm_chain_id=1 if family == ChainFamily.EVM else None,
        ),
        pool=EndpointPool(chain_id, urls),
    )


def make_tx(
    tx_hash: str = "0x01",
    value: str = "1",
    status: TxStatus = TxStatus.SUCCESS,
    gas_price: Optional[float] = None,
    timestamp: Optional[int] = None,
    from_address: Optional[str] = "0xfrom",
    to_address: Optional[str] = "0xto",
    chain_id: str = "ethereum",
) -> NormalizedTransaction:
    return NormalizedTransaction(
        hash=tx_hash,
        chain_id=chain_id,
        from_address=from_address,
        to_address=to_address,
        value=Decimal(value),
        status=status,
        timestamp=timestamp,
        gas_price=gas_price,
    )


def make_address(
    address: str = "0xabc",
    chain_id: str = "ethereum",
    balance: str = "0",
    transaction_count: Optional[int] = 0,
) -> NormalizedAddressInfo:
    return NormalizedAddressInfo(
        address=address,
        chain_id=chain_id,
        balance=Decimal(balance),
        transaction_count=transaction_count,
    )


def rpc_handler(results: dict[str, Any]) -> Callable[..., Any]:
    """side_effect for transport.rpc_call answering by method name."""
    async def handler(url: str, method: str, params: Any = None, timeout: Optional[float] = None) -> Any:
        result = results[method]
        if isinstance(result, Exception):
            raise result
        if callable(result):
            return result(url, params)
        return result
    return handler


