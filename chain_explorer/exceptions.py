"""
Chain Explorer Exceptions - Typed error hierarchy.

Every public operation either returns a normalized entity or raises one of
these. Raw upstream payloads never escape through an exception.
"""

from datetime import datetime
from typing import Any, Optional


class ExplorerError(Exception):
    """Base exception for all chain explorer errors."""

    def __init__(
        self,
        message: str,
        chain: Optional[str] = None,
        source_name: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.chain = chain
        self.source_name = source_name
        self.original_error = original_error
        self.context = context or {}
        self.timestamp = datetime.utcnow()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "chain": self.chain,
            "source_name": self.source_name,
            "original_error": str(self.original_error) if self.original_error else None,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        parts = [f"{self.__class__.__name__}: {self.message}"]
        if self.source_name:
            parts.append(f"[source={self.source_name}]")
        if self.chain:
            parts.append(f"[chain={self.chain}]")
        if self.original_error:
            parts.append(f"(caused by: {self.original_error})")
        return " ".join(parts)


class ConfigurationError(ExplorerError):
    """Invalid explorer configuration."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, context=context)
        self.config_key = config_key

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["config_key"] = self.config_key
        return data


class UnconfiguredChainError(ExplorerError):
    """No descriptor or endpoint pool exists for the requested chain id."""

    def __init__(self, chain: str, available: Optional[list[str]] = None) -> None:
        super().__init__(
            f"Chain '{chain}' is not configured",
            chain=chain,
            context={"available": available or []},
        )


class FetchError(ExplorerError):
    """Transport or HTTP failure talking to an upstream source."""

    def __init__(
        self,
        message: str,
        chain: Optional[str] = None,
        source_name: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        request_url: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, chain, source_name, original_error, context)
        self.status_code = status_code
        self.response_body = response_body
        self.request_url = request_url

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data.update({
            "status_code": self.status_code,
            "response_body": self.response_body,
            "request_url": self.request_url,
        })
        return data


class RequestTimeoutError(FetchError):
    """Upstream call exceeded its deadline."""

    def __init__(
        self,
        message: str,
        timeout_seconds: Optional[float] = None,
        request_url: Optional[str] = None,
        chain: Optional[str] = None,
        source_name: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(
            message,
            chain=chain,
            source_name=source_name,
            request_url=request_url,
            original_error=original_error,
        )
        self.timeout_seconds = timeout_seconds

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["timeout_seconds"] = self.timeout_seconds
        return data


class RateLimitError(FetchError):
    """Rate limit exceeded (HTTP 429 or an API rate-limit message)."""

    def __init__(
        self,
        message: str,
        chain: Optional[str] = None,
        source_name: Optional[str] = None,
        retry_after_seconds: Optional[int] = None,
        request_url: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(
            message,
            chain=chain,
            source_name=source_name,
            status_code=429,
            request_url=request_url,
            original_error=original_error,
        )
        self.retry_after_seconds = retry_after_seconds

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["retry_after_seconds"] = self.retry_after_seconds
        return data


class RpcError(FetchError):
    """JSON-RPC error object returned by a node."""

    def __init__(
        self,
        message: str,
        rpc_method: Optional[str] = None,
        rpc_code: Optional[int] = None,
        chain: Optional[str] = None,
        source_name: Optional[str] = None,
        request_url: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(
            message,
            chain=chain,
            source_name=source_name,
            request_url=request_url,
            original_error=original_error,
        )
        self.rpc_method = rpc_method
        self.rpc_code = rpc_code

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({"rpc_method": self.rpc_method, "rpc_code": self.rpc_code})
        return data


class InvalidCredentialError(ExplorerError):
    """The keyed API rejected the configured API key."""


class EntityNotFoundError(ExplorerError):
    """Upstream answered authoritatively, but the entity does not exist."""

    def __init__(
        self,
        message: str,
        entity_type: Optional[str] = None,
        identifier: Optional[str] = None,
        chain: Optional[str] = None,
        source_name: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            chain=chain,
            source_name=source_name,
            context={"entity_type": entity_type, "identifier": identifier},
        )
        self.entity_type = entity_type
        self.identifier = identifier


class NormalizationError(ExplorerError):
    """Upstream payload could not be converted to the normalized schema."""

    def __init__(
        self,
        message: str,
        chain: Optional[str] = None,
        source_name: Optional[str] = None,
        field_name: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(
            message,
            chain=chain,
            source_name=source_name,
            original_error=original_error,
            context={"field_name": field_name} if field_name else None,
        )
        self.field_name = field_name


class OperationNotSupportedError(ExplorerError):
    """The chain family has no way to serve this operation."""

    def __init__(
        self,
        operation: str,
        chain: Optional[str] = None,
        source_name: Optional[str] = None,
    ) -> None:
        super().__init__(
            f"Operation '{operation}' is not supported",
            chain=chain,
            source_name=source_name,
            context={"operation": operation},
        )
        self.operation = operation


class SourceExhaustedError(ExplorerError):
    """Both the keyed API tier and the RPC tier failed for a call."""

    def __init__(
        self,
        chain: str,
        operation: str,
        attempted_tiers: list[str],
        last_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(
            f"All sources failed for '{operation}' "
            f"(tried: {', '.join(attempted_tiers) or 'none'})",
            chain=chain,
            original_error=last_error,
            context={"operation": operation, "attempted_tiers": attempted_tiers},
        )
        self.operation = operation
        self.attempted_tiers = attempted_tiers
        self.last_error = last_error
