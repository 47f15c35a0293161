"""
Etherscan Explorer Client - Token info, contract source and transaction lists.

Uses the Etherscan API V2 (unified multichain endpoint, ``chainid`` param).

Free tier limits:
- 5 calls/second
- 100,000 calls/day (with API key)

Without an API key every lookup returns None / raises ConfigurationError
instead of hitting the rate-limited anonymous tier.
"""

import asyncio
import logging
from typing import Any, Optional

import aiohttp

from wallet_explorer.base import BaseExplorerClient
from wallet_explorer.exceptions import (
    ConfigurationError,
    ExplorerAPIError,
    RateLimitError,
)


logger = logging.getLogger(__name__)


PLACEHOLDER_API_KEY = "YourApiKeyToken"
NO_TRANSACTIONS_MESSAGE = "No transactions found"


class EtherscanExplorerClient(BaseExplorerClient):
    """
    Etherscan and compatible explorers client.

    Metadata lookups (token info, contract source) use the short metadata
    timeout and never raise. Transaction lists use the longer page timeout,
    are paced by a fixed delay and raise on failure.
    """

    V2_API_URL = "https://api.etherscan.io/v2/api"

    def __init__(
        self,
        api_key: Optional[str] = None,
        chain_id: int = 1,
        base_url: str = V2_API_URL,
        timeout: float = 8.0,
        page_timeout: float = 30.0,
        page_delay: float = 0.2,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        if api_key == PLACEHOLDER_API_KEY:
            api_key = None
        super().__init__(api_key, timeout, session)
        self._chain_id = chain_id
        self._base_url = base_url
        self._page_timeout = page_timeout
        self._page_delay = page_delay

    @property
    def name(self) -> str:
        """Unique identifier."""
        return "etherscan"

    def _params(self, module: str, action: str, **extra: Any) -> dict[str, str]:
        params = {
            "chainid": str(self._chain_id),
            "module": module,
            "action": action,
        }
        params.update({key: str(value) for key, value in extra.items() if value is not None})
        if self._api_key:
            params["apikey"] = self._api_key
        return params

    @staticmethod
    def _first_result(data: Any) -> Optional[dict[str, Any]]:
        """Unwrap {"status": "1", "result": [record, ...]} to its first record."""
        if not isinstance(data, dict) or data.get("status") != "1":
            return None
        result = data.get("result")
        if not isinstance(result, list) or not result:
            return None
        first = result[0]
        return first if isinstance(first, dict) else None

    async def get_token_info(self, address: str) -> Optional[dict[str, Any]]:
        """Fetch token information (symbol, tokenName, divisor...)."""
        if not self.has_api_key:
            return None
        params = self._params("token", "tokeninfo", contractaddress=address)
        data = await self.fetch_json(self._base_url, params=params, timeout=self._timeout)
        return self._first_result(data)

    async def get_source_info(self, address: str) -> Optional[dict[str, Any]]:
        """Fetch verified source metadata (ContractName, Proxy, Implementation...)."""
        if not self.has_api_key:
            return None
        params = self._params("contract", "getsourcecode", address=address)
        data = await self.fetch_json(self._base_url, params=params, timeout=self._timeout)
        return self._first_result(data)

    async def get_transactions(
        self,
        address: str,
        start_block: int = 0,
        end_block: Optional[int] = None,
        page: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """Fetch normal transactions of an address, newest first."""
        if not self.has_api_key:
            raise ConfigurationError(
                message="Etherscan API key not configured. Set ETHERSCAN_API_KEY.",
                config_key="ETHERSCAN_API_KEY",
                component=self.name,
            )

        params = self._params(
            "account",
            "txlist",
            address=address,
            startblock=start_block,
            endblock=end_block,
            page=page,
            offset=offset,
            sort="desc",
        )

        # Advisory pacing to stay under the per-second limit
        if self._page_delay > 0:
            await asyncio.sleep(self._page_delay)

        response = await self._make_request(
            self._base_url,
            params=params,
            timeout=self._page_timeout,
        )
        return self._unwrap_list(response)

    def _unwrap_list(self, response: Any) -> list[dict[str, Any]]:
        """Unwrap an Etherscan list response, raising on API errors."""
        if not isinstance(response, dict):
            raise ExplorerAPIError(
                message="Unexpected Etherscan response shape",
                component=self.name,
                response_body=str(response)[:500],
            )

        status = str(response.get("status", "0"))
        message = str(response.get("message", ""))
        result = response.get("result")

        if status == "0":
            if message == NO_TRANSACTIONS_MESSAGE:
                return []
            detail = result if isinstance(result, str) else message
            if "rate limit" in f"{message} {detail}".lower():
                raise RateLimitError(
                    message="Etherscan rate limit exceeded",
                    component=self.name,
                    retry_after_seconds=1,
                )
            raise ExplorerAPIError(
                message=f"Etherscan API error: {message}",
                component=self.name,
                api_message=message,
                response_body=str(response)[:500],
            )

        if not isinstance(result, list):
            raise ExplorerAPIError(
                message="Etherscan result is not a list",
                component=self.name,
                api_message=message,
                response_body=str(response)[:500],
            )
        return result
