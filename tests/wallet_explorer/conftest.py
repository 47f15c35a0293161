"""
Shared fakes for wallet explorer tests.

FakeLedger and FakeExplorer implement the client interfaces in memory and
record every outbound call so tests can assert on network usage.
"""

from typing import Any, Optional

import pytest
from eth_abi import encode

from wallet_explorer.base import BaseExplorerClient, BaseLedgerClient
from wallet_explorer.exceptions import NetworkError


def abi_hex(types: list[str], values: list[Any]) -> str:
    """ABI-encode values as a "0x" hex string."""
    return "0x" + encode(types, values).hex()


class FakeLedger(BaseLedgerClient):
    """In-memory ledger; unknown calls revert with NetworkError."""

    def __init__(
        self,
        call_responses: Optional[dict[str, Any]] = None,
        block_timestamps: Optional[list[int]] = None,
        balances: Optional[dict[Any, int]] = None,
        receipts: Optional[dict[str, dict]] = None,
    ) -> None:
        self.call_responses = call_responses or {}
        self.block_timestamps = block_timestamps or []
        self.balances = balances or {}
        self.receipts = receipts or {}
        self.calls: list[tuple[str, str]] = []
        self.block_fetches: list[int] = []
        self.balance_queries: list[tuple[str, Optional[int]]] = []

    @property
    def name(self) -> str:
        return "fake"

    async def get_block_number(self) -> int:
        if not self.block_timestamps:
            raise NetworkError("node unreachable", component=self.name)
        return len(self.block_timestamps) - 1

    async def get_block(self, block_number: int) -> dict[str, Any]:
        self.block_fetches.append(block_number)
        return {"number": block_number, "timestamp": self.block_timestamps[block_number]}

    async def get_balance(self, address: str, block_number: Optional[int] = None) -> int:
        self.balance_queries.append((address, block_number))
        return self.balances.get(block_number, self.balances.get(None, 0))

    async def call(self, to: str, data: str) -> str:
        self.calls.append((to, data))
        response = self.call_responses.get(data)
        if isinstance(response, Exception):
            raise response
        if response is None:
            raise NetworkError("execution reverted", component=self.name)
        return response

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[dict[str, Any]]:
        return self.receipts.get(tx_hash)


class FakeExplorer(BaseExplorerClient):
    """In-memory explorer keyed by lowercase address."""

    def __init__(
        self,
        token_info: Optional[dict[str, dict]] = None,
        source_info: Optional[dict[str, dict]] = None,
        transactions: Optional[list[dict]] = None,
        api_key: Optional[str] = "test-key",
    ) -> None:
        super().__init__(api_key=api_key)
        self.token_info = {k.lower(): v for k, v in (token_info or {}).items()}
        self.source_info = {k.lower(): v for k, v in (source_info or {}).items()}
        self.transactions = transactions or []
        self.lookups: list[tuple[str, str]] = []
        self.transaction_queries: list[dict[str, Any]] = []

    @property
    def name(self) -> str:
        return "fake_explorer"

    async def get_token_info(self, address: str) -> Optional[dict[str, Any]]:
        self.lookups.append(("token_info", address))
        return self.token_info.get(address.lower())

    async def get_source_info(self, address: str) -> Optional[dict[str, Any]]:
        self.lookups.append(("source_info", address))
        return self.source_info.get(address.lower())

    async def get_transactions(
        self,
        address: str,
        start_block: int = 0,
        end_block: Optional[int] = None,
        page: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        self.transaction_queries.append({
            "address": address,
            "start_block": start_block,
            "end_block": end_block,
            "page": page,
            "offset": offset,
        })
        return list(self.transactions)


@pytest.fixture
def fake_ledger_factory():
    """Build a FakeLedger with custom responses."""
    return FakeLedger


@pytest.fixture
def fake_explorer_factory():
    """Build a FakeExplorer with custom records."""
    return FakeExplorer


@pytest.fixture
def abi():
    """ABI hex encoder."""
    return abi_hex
