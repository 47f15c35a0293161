"""
Web3 Ledger Client - Ledger node access through ``web3.AsyncWeb3``.

Every call is bounded by a timeout and every failure (RPC error, revert,
transport error, timeout) surfaces as NetworkError.
"""

import asyncio
import logging
from typing import Any, Awaitable, Optional, TypeVar

import aiohttp
from web3 import AsyncWeb3, Web3
from web3.exceptions import TransactionNotFound, Web3Exception

from wallet_explorer.base import BaseLedgerClient
from wallet_explorer.config import LedgerConfig
from wallet_explorer.exceptions import ConfigurationError, NetworkError


logger = logging.getLogger(__name__)

T = TypeVar("T")


class Web3LedgerClient(BaseLedgerClient):
    """Ledger client backed by an AsyncWeb3 HTTP provider."""

    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        w3: Optional[AsyncWeb3] = None,
    ) -> None:
        if w3 is None:
            if not rpc_url:
                raise ConfigurationError(
                    message="Ledger RPC URL not configured",
                    config_key="ETHEREUM_RPC_URL",
                    component="web3",
                )
            w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(
                rpc_url,
                request_kwargs={"timeout": aiohttp.ClientTimeout(total=timeout)},
            ))
        self._w3 = w3
        self._timeout = timeout

    @classmethod
    def from_config(cls, config: LedgerConfig) -> "Web3LedgerClient":
        return cls(rpc_url=config.resolved_rpc_url(), timeout=config.timeout_seconds)

    @property
    def name(self) -> str:
        """Unique identifier."""
        return "web3"

    async def _guard(self, operation: str, awaitable: Awaitable[T]) -> T:
        """Await with the client timeout, mapping failures to NetworkError."""
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise NetworkError(
                message=f"{operation} timed out after {self._timeout:.1f}s",
                component=self.name,
                original_error=e,
            )
        except (Web3Exception, aiohttp.ClientError, ValueError, OSError) as e:
            raise NetworkError(
                message=f"{operation} failed: {e}",
                component=self.name,
                original_error=e,
            )

    async def get_block_number(self) -> int:
        return int(await self._guard("eth_blockNumber", self._w3.eth.block_number))

    async def get_block(self, block_number: int) -> dict[str, Any]:
        block = await self._guard(
            f"eth_getBlockByNumber({block_number})",
            self._w3.eth.get_block(block_number),
        )
        return dict(block)

    async def get_balance(
        self,
        address: str,
        block_number: Optional[int] = None,
    ) -> int:
        block_identifier = block_number if block_number is not None else "latest"
        balance = await self._guard(
            f"eth_getBalance({address})",
            self._w3.eth.get_balance(
                Web3.to_checksum_address(address),
                block_identifier=block_identifier,
            ),
        )
        return int(balance)

    async def call(self, to: str, data: str) -> str:
        result = await self._guard(
            f"eth_call({to}, {data[:10]})",
            self._w3.eth.call({"to": Web3.to_checksum_address(to), "data": data}),
        )
        return Web3.to_hex(result)

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[dict[str, Any]]:
        try:
            receipt = await self._guard(
                f"eth_getTransactionReceipt({tx_hash})",
                self._w3.eth.get_transaction_receipt(tx_hash),
            )
        except NetworkError as e:
            if isinstance(e.original_error, TransactionNotFound):
                return None
            raise
        return dict(receipt)

    async def close(self) -> None:
        """Close the provider's HTTP session."""
        disconnect = getattr(self._w3.provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()
