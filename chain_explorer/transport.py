"""
HTTP transport - shared aiohttp session with typed error mapping.

Every outbound call carries an explicit deadline. Failures are mapped to
the ExplorerError hierarchy; no retries happen here.
"""

import asyncio
import itertools
import logging
from typing import Any, Optional

import aiohttp

from chain_explorer.exceptions import (
    FetchError,
    RateLimitError,
    RequestTimeoutError,
    RpcError,
)


logger = logging.getLogger(__name__)


class HttpTransport:
    """
    Thin wrapper around one aiohttp.ClientSession.

    Usage:
        async with HttpTransport() as transport:
            height = await transport.rpc_call(url, "eth_blockNumber", [])
    """

    DEFAULT_TIMEOUT = 10.0

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = "ChainExplorer/1.0",
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._timeout = timeout
        self._user_agent = user_agent
        self._session = session
        self._owns_session = session is None
        self._request_ids = itertools.count(1)

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                headers=self._get_default_headers(),
            )
            self._owns_session = True
        return self._session

    def _get_default_headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "User-Agent": self._user_agent,
        }

    async def request(
        self,
        method: str,
        url: str,
        params: Optional[dict[str, Any]] = None,
        json: Optional[Any] = None,
        timeout: Optional[float] = None,
        expect_json: bool = True,
    ) -> Any:
        """Make an HTTP request and decode the body."""
        session = await self._get_session()
        deadline = timeout or self._timeout

        try:
            async with session.request(
                method,
                url,
                params=params,
                json=json,
                timeout=aiohttp.ClientTimeout(total=deadline),
            ) as response:
                if response.status == 429:
                    retry_after = response.headers.get("Retry-After")
                    raise RateLimitError(
                        message="Rate limit exceeded",
                        retry_after_seconds=int(retry_after) if retry_after and retry_after.isdigit() else None,
                        request_url=url,
                    )

                if response.status >= 400:
                    body = await response.text()
                    raise FetchError(
                        message=f"HTTP {response.status}",
                        status_code=response.status,
                        response_body=body[:500],
                        request_url=url,
                    )

                if expect_json:
                    return await response.json(content_type=None)
                return await response.text()

        except asyncio.TimeoutError as e:
            raise RequestTimeoutError(
                message=f"Request timed out after {deadline}s",
                timeout_seconds=deadline,
                request_url=url,
                original_error=e,
            )
        except aiohttp.ClientError as e:
            raise FetchError(
                message=f"Connection error: {e}",
                request_url=url,
                original_error=e,
            )
        except ValueError as e:
            # Body was not valid JSON
            raise FetchError(
                message="Invalid JSON response",
                request_url=url,
                original_error=e,
            )

    async def get_json(
        self,
        url: str,
        params: Optional[dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        return await self.request("GET", url, params=params, timeout=timeout)

    async def get_text(self, url: str, timeout: Optional[float] = None) -> str:
        return await self.request("GET", url, timeout=timeout, expect_json=False)

    async def post_json(
        self,
        url: str,
        payload: Any,
        timeout: Optional[float] = None,
    ) -> Any:
        return await self.request("POST", url, json=payload, timeout=timeout)

    async def rpc_call(
        self,
        url: str,
        method: str,
        params: Any = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Make a JSON-RPC 2.0 call and return its result.

        Raises:
            RpcError: If the node returns an error object
        """
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._request_ids),
            "method": method,
            "params": params if params is not None else [],
        }
        data = await self.post_json(url, payload, timeout=timeout)

        if not isinstance(data, dict):
            raise RpcError(
                f"Malformed JSON-RPC response for {method}",
                rpc_method=method,
                request_url=url,
            )

        if data.get("error"):
            error = data["error"]
            if isinstance(error, dict):
                message = error.get("message", str(error))
                code = error.get("code")
                detail = error.get("data") or (error.get("cause") or {}).get("name")
                if detail:
                    message = f"{message} ({detail})"
            else:
                message, code = str(error), None
            raise RpcError(
                f"RPC error: {message}",
                rpc_method=method,
                rpc_code=code,
                request_url=url,
            )

        return data.get("result")

    async def close(self) -> None:
        """Close resources."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "HttpTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"<HttpTransport(timeout={self._timeout})>"
