"""
Base normalizer - shared unit conversion and the per-family interface.

Normalizers are pure: they never read the clock, never do I/O, and the
same payload always yields an equal result.
"""

from abc import ABC, abstractmethod
from decimal import Decimal, localcontext
from typing import Any, Optional

from chain_explorer.exceptions import EntityNotFoundError, NormalizationError
from chain_explorer.models import (
    ChainFamily,
    NormalizedAddressInfo,
    NormalizedBlock,
    NormalizedTransaction,
)


# Native-unit decimals per family. 1 ETH = 10**18 wei, 1 NEAR = 10**24 yocto.
NATIVE_DECIMALS: dict[ChainFamily, int] = {
    ChainFamily.EVM: 18,
    ChainFamily.UTXO: 8,
    ChainFamily.SOLANA: 9,
    ChainFamily.APTOS: 8,
    ChainFamily.SUI: 9,
    ChainFamily.TRON: 6,
    ChainFamily.COSMOS: 6,
    ChainFamily.NEAR: 24,
}

GWEI = 10 ** 9


def parse_int(value: Any) -> Optional[int]:
    """Parse an int from a hex ("0x..") or decimal string, int or float."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    text = str(value).strip()
    if text.lower().startswith("0x"):
        return int(text, 16) if len(text) > 2 else 0
    return int(Decimal(text))


def to_native(raw: Any, decimals: int) -> Decimal:
    """Convert a base-unit amount (wei, sats, lamports...) to native units exactly."""
    amount = parse_int(raw) or 0
    with localcontext() as ctx:
        ctx.prec = 80
        return Decimal(amount).scaleb(-decimals)


def to_gwei(raw: Any) -> Optional[float]:
    wei = parse_int(raw)
    if wei is None:
        return None
    return wei / GWEI


def compact(values: dict[str, Any]) -> dict[str, Any]:
    """Drop None entries (used for extension dicts)."""
    return {k: v for k, v in values.items() if v is not None}


class BaseNormalizer(ABC):
    """
    Converts one family's raw payloads into normalized entities.

    Sources hand over the decoded upstream JSON (or a small envelope dict
    when an entity needs several upstream calls). Each implementation
    documents the shape it accepts.
    """

    family: ChainFamily

    @property
    def decimals(self) -> int:
        return NATIVE_DECIMALS[self.family]

    @property
    def name(self) -> str:
        return self.family.value

    def native(self, raw: Any) -> Decimal:
        return to_native(raw, self.decimals)

    @abstractmethod
    def to_address_info(self, raw: dict[str, Any], chain_id: str) -> NormalizedAddressInfo:
        pass

    @abstractmethod
    def to_transaction(self, raw: Any, chain_id: str) -> NormalizedTransaction:
        pass

    @abstractmethod
    def to_block(self, raw: Any, chain_id: str) -> NormalizedBlock:
        pass

    # ─────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────

    def not_found(self, entity: str, identifier: Optional[str], chain_id: str) -> EntityNotFoundError:
        return EntityNotFoundError(
            f"{entity.capitalize()} not found",
            entity_type=entity,
            identifier=identifier,
            chain=chain_id,
            source_name=self.name,
        )

    def malformed(
        self,
        message: str,
        chain_id: str,
        field_name: Optional[str] = None,
        error: Optional[Exception] = None,
    ) -> NormalizationError:
        return NormalizationError(
            message,
            chain=chain_id,
            source_name=self.name,
            field_name=field_name,
            original_error=error,
        )

    def transactions(self, raws: list[Any], chain_id: str) -> tuple[NormalizedTransaction, ...]:
        return tuple(self.to_transaction(raw, chain_id) for raw in raws or [])

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(family={self.family.value})>"
