"""
Explorer API Endpoints.

============================================================
PURPOSE
============================================================
HTTP API over ExplorerService.

PRINCIPLES:
- ALL endpoints are READ-ONLY
- Responses carry normalized entities only
- Typed explorer errors map to HTTP status codes

============================================================
"""

import json
import logging
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Awaitable

from aiohttp import web

from chain_explorer.exceptions import (
    EntityNotFoundError,
    ExplorerError,
    FetchError,
    InvalidCredentialError,
    OperationNotSupportedError,
    SourceExhaustedError,
    UnconfiguredChainError,
)
from chain_explorer.service import ExplorerService


logger = logging.getLogger(__name__)


# ============================================================
# JSON ENCODER
# ============================================================

class ExplorerEncoder(json.JSONEncoder):
    """JSON encoder for explorer entities."""

    def default(self, obj):
        if hasattr(obj, "to_dict"):
            return obj.to_dict()
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


def json_response(data: Any, status: int = 200) -> web.Response:
    """Create JSON response."""
    return web.Response(
        text=json.dumps(data, cls=ExplorerEncoder, indent=2),
        status=status,
        content_type="application/json",
    )


def error_status(error: Exception) -> int:
    """HTTP status for an exception raised by the service."""
    if isinstance(error, (UnconfiguredChainError, EntityNotFoundError)):
        return 404
    if isinstance(error, InvalidCredentialError):
        return 401
    if isinstance(error, OperationNotSupportedError):
        return 501
    if isinstance(error, (SourceExhaustedError, FetchError)):
        return 502
    if isinstance(error, ValueError):
        return 400
    return 500


# ============================================================
# API HANDLERS
# ============================================================

class ExplorerAPI:
    """
    HTTP API for the explorer.

    ALL endpoints are READ-ONLY.
    """

    def __init__(self, service: ExplorerService):
        """Initialize API."""
        self._service = service

    async def _respond(self, action: str, call: Awaitable[Any]) -> web.Response:
        try:
            data = await call
        except Exception as e:
            status = error_status(e)
            if status == 500:
                logger.error(f"Error {action}: {e}", exc_info=True)
            else:
                logger.warning(f"Error {action}: {e}")
            body: dict[str, Any] = {"status": "error", "error": str(e)}
            if isinstance(e, ExplorerError):
                body["details"] = e.to_dict()
            return json_response(body, status=status)
        return json_response({"status": "ok", "data": data})

    @staticmethod
    def _int_param(request: web.Request, name: str, default: int) -> int:
        raw = request.query.get(name)
        if raw is None:
            return default
        try:
            return int(raw)
        except ValueError:
            raise web.HTTPBadRequest(
                text=json.dumps({"status": "error", "error": f"'{name}' must be an integer"}),
                content_type="application/json",
            )

    @staticmethod
    def _query(request: web.Request) -> str:
        query = request.query.get("q", "").strip()
        if not query:
            raise web.HTTPBadRequest(
                text=json.dumps({"status": "error", "error": "Missing 'q' parameter"}),
                content_type="application/json",
            )
        return query

    # --------------------------------------------------------
    # DETECTION & SEARCH
    # --------------------------------------------------------

    async def detect(self, request: web.Request) -> web.Response:
        """
        GET /detect?q=<query>

        Ranked chain candidates for a query. No upstream calls.
        """
        query = self._query(request)
        return json_response({
            "status": "ok",
            "data": self._service.detect_chains(query),
        })

    async def search(self, request: web.Request) -> web.Response:
        """
        GET /search?q=<query>&max=<candidates>

        Speculative lookup across the most likely chains.
        """
        query = self._query(request)
        max_candidates = self._int_param(request, "max", self._service.config.max_search_candidates)
        return await self._respond("searching", self._service.search(query, max_candidates))

    # --------------------------------------------------------
    # ENTITY ENDPOINTS
    # --------------------------------------------------------

    async def get_address(self, request: web.Request) -> web.Response:
        """GET /chains/{chain}/address/{address}"""
        chain = request.match_info["chain"]
        address = request.match_info["address"]
        return await self._respond("getting address", self._service.get_address_info(address, chain))

    async def get_transaction(self, request: web.Request) -> web.Response:
        """GET /chains/{chain}/tx/{hash}"""
        chain = request.match_info["chain"]
        tx_hash = request.match_info["hash"]
        return await self._respond("getting transaction", self._service.get_transaction_info(tx_hash, chain))

    async def get_block(self, request: web.Request) -> web.Response:
        """GET /chains/{chain}/block/{number} (number may be "latest")"""
        chain = request.match_info["chain"]
        number = request.match_info["number"]
        return await self._respond("getting block", self._service.get_block_info(number, chain))

    async def get_token(self, request: web.Request) -> web.Response:
        """GET /chains/{chain}/token/{address}"""
        chain = request.match_info["chain"]
        address = request.match_info["address"]
        return await self._respond("getting token", self._service.get_token_info(address, chain))

    # --------------------------------------------------------
    # FEED ENDPOINTS
    # --------------------------------------------------------

    async def get_latest_transactions(self, request: web.Request) -> web.Response:
        """GET /chains/{chain}/transactions/latest?limit=20"""
        chain = request.match_info["chain"]
        limit = self._int_param(request, "limit", 20)
        return await self._respond(
            "getting latest transactions",
            self._service.get_latest_transactions(chain, limit),
        )

    async def get_large_transactions(self, request: web.Request) -> web.Response:
        """GET /chains/{chain}/transactions/large?min_value=10&limit=20"""
        chain = request.match_info["chain"]
        limit = self._int_param(request, "limit", 20)
        min_value = request.query.get("min_value")
        return await self._respond(
            "getting large transactions",
            self._service.get_large_transactions(chain, min_value, limit),
        )

    async def get_analytics(self, request: web.Request) -> web.Response:
        """GET /chains/{chain}/analytics?window=24h"""
        chain = request.match_info["chain"]
        window = request.query.get("window", "24h")
        return await self._respond("getting analytics", self._service.get_analytics(chain, window))

    async def get_stats(self, request: web.Request) -> web.Response:
        """GET /chains/{chain}/stats"""
        chain = request.match_info["chain"]
        return await self._respond("getting chain stats", self._service.get_chain_stats(chain))

    # --------------------------------------------------------
    # CONFIGURATION & STATUS
    # --------------------------------------------------------

    async def list_chains(self, request: web.Request) -> web.Response:
        """GET /chains"""
        return json_response({
            "status": "ok",
            "data": self._service.list_chains(),
        })

    async def validate_key(self, request: web.Request) -> web.Response:
        """GET /chains/{chain}/validate-key"""
        chain = request.match_info["chain"]
        return await self._respond("validating api key", self._service.validate_api_key(chain))

    async def validate_keys(self, request: web.Request) -> web.Response:
        """GET /validate-keys"""
        return await self._respond("validating api keys", self._service.validate_api_keys())

    async def endpoints(self, request: web.Request) -> web.Response:
        """GET /endpoints"""
        return json_response({
            "status": "ok",
            "data": self._service.endpoint_status(),
        })

    async def health(self, request: web.Request) -> web.Response:
        """
        GET /health

        Explorer health check.
        """
        return json_response({
            "status": "ok",
            "timestamp": datetime.utcnow().isoformat(),
            "service": "chain_explorer",
            "stats": self._service.get_stats(),
        })


# ============================================================
# ROUTER FACTORY
# ============================================================

def create_explorer_app(service: ExplorerService) -> web.Application:
    """
    Create explorer API application.

    Returns an aiohttp Application with all routes configured.
    """
    api = ExplorerAPI(service)

    app = web.Application()

    app.router.add_get("/health", api.health)
    app.router.add_get("/detect", api.detect)
    app.router.add_get("/search", api.search)
    app.router.add_get("/endpoints", api.endpoints)
    app.router.add_get("/validate-keys", api.validate_keys)
    app.router.add_get("/chains", api.list_chains)
    app.router.add_get("/chains/{chain}/address/{address}", api.get_address)
    app.router.add_get("/chains/{chain}/tx/{hash}", api.get_transaction)
    app.router.add_get("/chains/{chain}/block/{number}", api.get_block)
    app.router.add_get("/chains/{chain}/token/{address}", api.get_token)
    app.router.add_get("/chains/{chain}/transactions/latest", api.get_latest_transactions)
    app.router.add_get("/chains/{chain}/transactions/large", api.get_large_transactions)
    app.router.add_get("/chains/{chain}/analytics", api.get_analytics)
    app.router.add_get("/chains/{chain}/stats", api.get_stats)
    app.router.add_get("/chains/{chain}/validate-key", api.validate_key)

    return app


def setup_explorer_routes(
    app: web.Application,
    service: ExplorerService,
    prefix: str = "/api/explorer",
) -> None:
    """Add explorer routes to an existing application."""
    explorer_app = create_explorer_app(service)
    app.add_subapp(prefix, explorer_app)
