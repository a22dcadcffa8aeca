"""
Family Registry - maps each chain family to its sources and normalizer.

Adding a chain is a configuration entry; adding a family is one
register() call with its RPC source (and optional keyed API source).
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from chain_explorer.config import TimeoutConfig
from chain_explorer.exceptions import ConfigurationError
from chain_explorer.models import ChainFamily
from chain_explorer.normalizers import BaseNormalizer, get_normalizer
from chain_explorer.sources import (
    ApiSource,
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
from chain_explorer.transport import HttpTransport


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FamilyAdapters:
    """Everything needed to serve one chain family."""
    family: ChainFamily
    normalizer: BaseNormalizer
    rpc_source: RpcSource
    api_source: Optional[ApiSource] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "family": self.family.value,
            "normalizer": self.normalizer.__class__.__name__,
            "rpc_source": self.rpc_source.name,
            "api_source": self.api_source.name if self.api_source else None,
        }


class FamilyRegistry:
    """
    Registry of chain family adapters.

    Usage:
        registry = FamilyRegistry()
        registry.register(ChainFamily.EVM, EvmRpcSource(transport), EtherscanSource(transport))
        adapters = registry.get(ChainFamily.EVM)
    """

    def __init__(self) -> None:
        self._families: dict[ChainFamily, FamilyAdapters] = {}

    def register(
        self,
        family: ChainFamily,
        rpc_source: RpcSource,
        api_source: Optional[ApiSource] = None,
        normalizer: Optional[BaseNormalizer] = None,
    ) -> None:
        """Register (or replace) the adapters for a family."""
        if rpc_source.family != family:
            raise ConfigurationError(
                f"RPC source {rpc_source.name} serves {rpc_source.family.value}, not {family.value}",
                config_key=f"registry.{family.value}",
            )
        if family in self._families:
            logger.warning(f"[registry] Replacing adapters for {family.value}")

        self._families[family] = FamilyAdapters(
            family=family,
            normalizer=normalizer or get_normalizer(family),
            rpc_source=rpc_source,
            api_source=api_source,
        )
        logger.info(
            f"[registry] Registered {family.value}: rpc={rpc_source.name}"
            + (f", api={api_source.name}" if api_source else "")
        )

    def get(self, family: ChainFamily) -> FamilyAdapters:
        adapters = self._families.get(family)
        if adapters is None:
            raise ConfigurationError(
                f"No adapters registered for family '{family.value}'",
                config_key=f"registry.{family.value}",
            )
        return adapters

    def families(self) -> list[ChainFamily]:
        return list(self._families)

    def __contains__(self, family: ChainFamily) -> bool:
        return family in self._families

    def to_dict(self) -> dict[str, Any]:
        return {family.value: adapters.to_dict() for family, adapters in self._families.items()}


def create_default_registry(
    transport: HttpTransport,
    timeouts: Optional[TimeoutConfig] = None,
    history_limit: int = 10,
) -> FamilyRegistry:
    """Registry with the built-in source for every family."""
    registry = FamilyRegistry()
    kwargs = {"timeouts": timeouts, "history_limit": history_limit}

    registry.register(ChainFamily.EVM, EvmRpcSource(transport, **kwargs), EtherscanSource(transport, **kwargs))
    registry.register(ChainFamily.UTXO, EsploraSource(transport, **kwargs))
    registry.register(ChainFamily.SOLANA, SolanaSource(transport, **kwargs))
    registry.register(ChainFamily.APTOS, AptosSource(transport, **kwargs))
    registry.register(ChainFamily.SUI, SuiSource(transport, **kwargs))
    registry.register(ChainFamily.TRON, TronSource(transport, **kwargs))
    registry.register(ChainFamily.COSMOS, CosmosSource(transport, **kwargs))
    registry.register(ChainFamily.NEAR, NearSource(transport, **kwargs))
    return registry
