"""
Base Clients - Abstract interfaces for the ledger node and block explorer.

Ledger clients raise NetworkError on failure; callers decide what to do.
Explorer clients expose ``fetch_json`` which never raises and returns None on
any failure (network, timeout, non-2xx, non-JSON body).
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

import aiohttp

from wallet_explorer.exceptions import NetworkError, RateLimitError


logger = logging.getLogger(__name__)


class BaseLedgerClient(ABC):
    """
    Abstract JSON-RPC style access to a ledger node.

    All methods may raise NetworkError.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this client."""
        pass

    @abstractmethod
    async def get_block_number(self) -> int:
        """Latest block number."""
        pass

    @abstractmethod
    async def get_block(self, block_number: int) -> dict[str, Any]:
        """Block header fields; must include ``timestamp``."""
        pass

    @abstractmethod
    async def get_balance(
        self,
        address: str,
        block_number: Optional[int] = None,
    ) -> int:
        """Native balance in wei, at ``block_number`` or latest."""
        pass

    @abstractmethod
    async def call(self, to: str, data: str) -> str:
        """Read-only contract call; returns the raw "0x" hex result."""
        pass

    @abstractmethod
    async def get_transaction_receipt(self, tx_hash: str) -> Optional[dict[str, Any]]:
        """Receipt with ``logs``, or None for unknown transactions."""
        pass

    async def get_block_timestamp(self, block_number: int) -> int:
        block = await self.get_block(block_number)
        return int(block["timestamp"])

    async def close(self) -> None:
        """Close resources."""
        pass

    async def __aenter__(self) -> "BaseLedgerClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name={self.name})>"


class BaseExplorerClient(ABC):
    """
    Abstract block explorer client over aiohttp.

    Subclasses implement the explorer-specific queries on top of
    ``_make_request`` (raises) and ``fetch_json`` (never raises).
    """

    DEFAULT_TIMEOUT = 8.0

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self._session = session
        self._owns_session = session is None

        # Request tracking
        self._request_count = 0
        self._error_count = 0
        self._last_error: Optional[str] = None
        self._last_latency_ms: Optional[float] = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this client."""
        pass

    @property
    def has_api_key(self) -> bool:
        return bool(self._api_key)

    @abstractmethod
    async def get_token_info(self, address: str) -> Optional[dict[str, Any]]:
        """First token-info record for a contract, or None."""
        pass

    @abstractmethod
    async def get_source_info(self, address: str) -> Optional[dict[str, Any]]:
        """First contract-source record for a contract, or None."""
        pass

    @abstractmethod
    async def get_transactions(
        self,
        address: str,
        start_block: int = 0,
        end_block: Optional[int] = None,
        page: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """
        Normal transactions of an address, newest first.

        Raises:
            NetworkError: On transport failure or explorer error
        """
        pass

    # ─────────────────────────────────────────────────────────────
    # HTTP Helpers
    # ─────────────────────────────────────────────────────────────

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers=self._get_default_headers(),
            )
            self._owns_session = True
        return self._session

    def _get_default_headers(self) -> dict[str, str]:
        """Get default HTTP headers."""
        return {
            "Accept": "application/json",
            "User-Agent": "WalletExplorer/1.0",
        }

    async def _make_request(
        self,
        url: str,
        params: Optional[dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """GET a JSON document, raising NetworkError on any failure."""
        session = await self._get_session()
        request_timeout = aiohttp.ClientTimeout(total=timeout or self._timeout)

        self._request_count += 1
        start_time = time.time()
        try:
            async with session.get(url, params=params, timeout=request_timeout) as response:
                self._last_latency_ms = (time.time() - start_time) * 1000

                if response.status == 429:
                    retry_after = response.headers.get("Retry-After")
                    raise RateLimitError(
                        message="Rate limit exceeded",
                        component=self.name,
                        retry_after_seconds=int(retry_after) if retry_after else 60,
                    )

                if response.status >= 400:
                    body = await response.text()
                    raise NetworkError(
                        message=f"HTTP {response.status}",
                        component=self.name,
                        status_code=response.status,
                        response_body=body[:500],
                        request_url=url,
                    )

                return await response.json(content_type=None)

        except asyncio.TimeoutError as e:
            raise self._record_error(NetworkError(
                message=f"Timeout after {timeout or self._timeout:.1f}s",
                component=self.name,
                request_url=url,
                original_error=e,
            ))
        except (aiohttp.ClientError, ValueError) as e:
            raise self._record_error(NetworkError(
                message=f"Connection error: {e}",
                component=self.name,
                request_url=url,
                original_error=e,
            ))
        except NetworkError as e:
            raise self._record_error(e)

    async def fetch_json(
        self,
        url: str,
        params: Optional[dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Optional[Any]:
        """Fetch JSON with a timeout; None on any failure."""
        try:
            return await self._make_request(url, params=params, timeout=timeout)
        except NetworkError as e:
            logger.warning(f"[{self.name}] fetch_json failed: {e}")
            return None

    def _record_error(self, error: NetworkError) -> NetworkError:
        self._error_count += 1
        self._last_error = str(error)
        return error

    def get_stats(self) -> dict[str, Any]:
        """Get request statistics."""
        return {
            "requests": self._request_count,
            "errors": self._error_count,
            "last_error": self._last_error,
            "last_latency_ms": self._last_latency_ms,
        }

    # ─────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────

    async def close(self) -> None:
        """Close resources."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "BaseExplorerClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name={self.name})>"
