"""
Source Selection Policy - keyed API first, public pool second.

For every read operation:
1. Keyed API, when the chain has one that requires a key, a non-blank
   key is available and it has not been rejected.
2. Public pool, via the endpoint resolver.
3. SourceExhaustedError carrying the last underlying error.

EntityNotFoundError is terminal on either tier. No in-place retries.
"""

import logging
from typing import Any, Callable, Optional

from chain_explorer.config import ExplorerConfig
from chain_explorer.credentials import CredentialStore
from chain_explorer.endpoints import EndpointResolver
from chain_explorer.exceptions import (
    EntityNotFoundError,
    InvalidCredentialError,
    OperationNotSupportedError,
    SourceExhaustedError,
)
from chain_explorer.models import SourceIncident
from chain_explorer.registry import FamilyAdapters, FamilyRegistry


logger = logging.getLogger(__name__)


TIER_API = "api"
TIER_RPC = "rpc"


class SourceSelectionPolicy:
    """
    Runs a named source operation for a chain across the two tiers.

    Usage:
        policy = SourceSelectionPolicy(config, registry, credentials, resolver)
        tx = await policy.execute("ethereum", "get_transaction", tx_hash)
    """

    def __init__(
        self,
        config: ExplorerConfig,
        registry: FamilyRegistry,
        credentials: CredentialStore,
        resolver: EndpointResolver,
    ) -> None:
        self._config = config
        self._registry = registry
        self._credentials = credentials
        self._resolver = resolver

        # Incident tracking
        self._incidents: list[SourceIncident] = []
        self._max_incidents = config.max_incidents

        # Event callbacks
        self._on_incident_callbacks: list[Callable[[SourceIncident], None]] = []
        self._on_credential_rejected_callbacks: list[Callable[[str], None]] = []

    # ─────────────────────────────────────────────────────────────
    # Tier selection
    # ─────────────────────────────────────────────────────────────

    def uses_api(self, chain_id: str) -> bool:
        """True when the next call for this chain will try the keyed API first."""
        chain = self._config.get_chain(chain_id)
        keyed = chain.descriptor.keyed_api
        if keyed is None or not keyed.requires_key:
            return False
        if chain.family not in self._registry or self._registry.get(chain.family).api_source is None:
            return False
        return self._credentials.usable(chain_id)

    async def execute(self, chain_id: str, operation: str, *args: Any) -> Any:
        """
        Run `operation` on the family's sources for `chain_id`.

        Raises:
            UnconfiguredChainError: Unknown chain id
            EntityNotFoundError: Upstream says the entity does not exist
            OperationNotSupportedError: The public tier cannot serve it
            SourceExhaustedError: Both tiers failed
        """
        chain = self._config.get_chain(chain_id)
        adapters = self._registry.get(chain.family)
        descriptor = chain.descriptor
        attempted: list[str] = []
        last_error: Optional[Exception] = None

        if self.uses_api(chain_id):
            attempted.append(TIER_API)
            try:
                return await self._call(adapters, TIER_API, operation, descriptor, self._credentials.get(chain_id), args)
            except EntityNotFoundError:
                raise
            except OperationNotSupportedError as e:
                logger.debug(f"[policy] {chain_id} api tier does not support {operation}")
                last_error = e
            except InvalidCredentialError as e:
                self._credentials.mark_rejected(chain_id)
                self._emit_credential_rejected(chain_id)
                self._record_incident(chain_id, operation, TIER_API, e)
                last_error = e
            except Exception as e:
                self._record_incident(chain_id, operation, TIER_API, e)
                last_error = e
            logger.warning(f"[policy] {chain_id} {operation}: api tier failed, falling back to rpc")

        attempted.append(TIER_RPC)
        endpoint = await self._resolver.resolve(chain_id)
        try:
            return await self._call(adapters, TIER_RPC, operation, descriptor, endpoint, args)
        except (EntityNotFoundError, OperationNotSupportedError):
            raise
        except Exception as e:
            self._record_incident(chain_id, operation, TIER_RPC, e, endpoint=endpoint)
            last_error = e

        logger.warning(f"[policy] {chain_id} {operation}: all sources failed ({last_error})")
        raise SourceExhaustedError(chain_id, operation, attempted, last_error)

    @staticmethod
    async def _call(
        adapters: FamilyAdapters,
        tier: str,
        operation: str,
        descriptor: Any,
        handle: str,
        args: tuple[Any, ...],
    ) -> Any:
        source = adapters.api_source if tier == TIER_API else adapters.rpc_source
        method = getattr(source, operation, None)
        if method is None:
            raise OperationNotSupportedError(operation, chain=descriptor.id, source_name=source.name)
        return await method(descriptor, handle, *args)

    # ─────────────────────────────────────────────────────────────
    # Incidents
    # ─────────────────────────────────────────────────────────────

    def _record_incident(
        self,
        chain_id: str,
        operation: str,
        tier: str,
        error: Exception,
        endpoint: Optional[str] = None,
    ) -> None:
        message = str(error)
        if endpoint:
            message = f"{message} [endpoint={endpoint}]"
        incident = SourceIncident(
            chain_id=chain_id,
            operation=operation,
            tier=tier,
            error_type=error.__class__.__name__,
            error_message=message,
        )
        self._incidents.append(incident)
        if len(self._incidents) > self._max_incidents:
            self._incidents = self._incidents[-self._max_incidents:]

        logger.warning(f"[policy] {chain_id} {operation} failed on {tier}: {message}")

        for callback in self._on_incident_callbacks:
            try:
                callback(incident)
            except Exception as e:
                logger.error(f"Incident callback error: {e}")

    def _emit_credential_rejected(self, chain_id: str) -> None:
        for callback in self._on_credential_rejected_callbacks:
            try:
                callback(chain_id)
            except Exception as e:
                logger.error(f"Credential callback error: {e}")

    def on_incident(self, callback: Callable[[SourceIncident], None]) -> None:
        """Register incident callback."""
        self._on_incident_callbacks.append(callback)

    def on_credential_rejected(self, callback: Callable[[str], None]) -> None:
        """Register a callback fired with the chain id when its key is rejected."""
        self._on_credential_rejected_callbacks.append(callback)

    def get_incidents(
        self,
        chain_id: Optional[str] = None,
        limit: int = 100,
    ) -> list[SourceIncident]:
        incidents = self._incidents
        if chain_id:
            incidents = [i for i in incidents if i.chain_id == chain_id]
        return incidents[-limit:]

    def get_stats(self) -> dict[str, Any]:
        by_tier: dict[str, int] = {}
        for incident in self._incidents:
            by_tier[incident.tier] = by_tier.get(incident.tier, 0) + 1
        return {
            "total_incidents": len(self._incidents),
            "incidents_by_tier": by_tier,
            "endpoints": self._resolver.cache.snapshot(),
        }
