"""
Wallet Service - Transaction history, balances and token metadata.

Combines the block explorer (transaction lists, token info) with direct
ledger queries (balances, blocks, contract calls). Classification and
metadata resolution degrade to fallback values; ledger connectivity
failures propagate to the caller.

Usage:
    async with WalletService.from_config() as service:
        page = await service.get_transactions(wallet, page=1, page_size=30)
        for tx in page.transactions:
            print(tx.transaction_type, tx.value, tx.token_amount, tx.token_symbol)

        snapshot = await service.get_balance_at_date(wallet, "2023-01-01")
"""

import logging
from datetime import date, datetime
from typing import Any, Optional, Union

from wallet_explorer.addresses import normalize_address
from wallet_explorer.base import BaseExplorerClient, BaseLedgerClient
from wallet_explorer.block_locator import BlockTimestampLocator
from wallet_explorer.cache import MetadataCache
from wallet_explorer.classifier import TransferClassifier, addresses_equal
from wallet_explorer.config import WalletExplorerConfig, get_config
from wallet_explorer.exceptions import InvalidAddressError, NetworkError
from wallet_explorer.formatting import (
    date_to_timestamp,
    format_eth_value,
    format_ether,
    format_units,
    iso_date,
)
from wallet_explorer.models import (
    AnnotatedTransaction,
    BalanceAtDate,
    BalanceResult,
    ClassifiedTransfer,
    Direction,
    Pagination,
    RawTransaction,
    TokenMetadata,
    TokenTransferLog,
    TransactionPage,
    TransactionStats,
    TransferKind,
)
from wallet_explorer.providers.etherscan import EtherscanExplorerClient
from wallet_explorer.providers.web3_ledger import Web3LedgerClient
from wallet_explorer.receipts import decode_erc20_transfers
from wallet_explorer.resolver import TokenMetadataResolver


logger = logging.getLogger(__name__)


TRANSACTION_TYPE_LABELS = {
    TransferKind.NATIVE_TRANSFER: "ETH Transfer",
    TransferKind.DIRECT_TOKEN_TRANSFER: "Token Transfer",
    TransferKind.PROXIED_TOKEN_TRANSFER: "Token Transfer (Proxy)",
    TransferKind.UNKNOWN: "Unknown",
}


def limit_warning(for_page: bool) -> dict[str, str]:
    if for_page:
        return {
            "message": "Results limited to 10,000 transactions. There might be more transactions available.",
            "suggestion": "Try reducing the block range for more complete results.",
        }
    return {
        "message": "Results limited to 10,000 transactions due to API constraints",
        "note": "There may be more transactions available. Try reducing the block range for complete results.",
    }


def display_direction(direction: Direction) -> str:
    """Display label; anything not sent by the wallet shows as incoming."""
    return "outgoing" if direction == Direction.OUTGOING else "incoming"


def count_directions(rows: list[RawTransaction], wallet: str) -> tuple[int, int]:
    """(incoming, outgoing) counts; a self-transfer counts as both."""
    incoming = sum(1 for tx in rows if addresses_equal(tx.to_address, wallet))
    outgoing = sum(1 for tx in rows if addresses_equal(tx.from_address, wallet))
    return incoming, outgoing


class WalletService:
    """
    Wallet-level queries over a ledger client and an explorer client.

    Token metadata for a page is resolved lazily, once per distinct token
    contract, in first-seen order.
    """

    MAX_EXPLORER_RESULTS = 10_000

    def __init__(
        self,
        ledger: BaseLedgerClient,
        explorer: BaseExplorerClient,
        resolver: Optional[TokenMetadataResolver] = None,
        classifier: Optional[TransferClassifier] = None,
        locator: Optional[BlockTimestampLocator] = None,
        network: str = "mainnet",
        max_results: int = MAX_EXPLORER_RESULTS,
    ) -> None:
        self._ledger = ledger
        self._explorer = explorer
        self._resolver = resolver or TokenMetadataResolver(ledger, explorer)
        self._classifier = classifier or TransferClassifier()
        self._locator = locator or BlockTimestampLocator(ledger)
        self._network = network
        self._max_results = max_results

    @classmethod
    def from_config(
        cls,
        config: Optional[WalletExplorerConfig] = None,
        cache: Optional[MetadataCache] = None,
    ) -> "WalletService":
        """
        Build the service with a web3 ledger client and an Etherscan client.

        Raises:
            ConfigurationError: If no ledger RPC endpoint is configured.
        """
        config = config or get_config()
        ledger = Web3LedgerClient.from_config(config.ledger)
        explorer = EtherscanExplorerClient(
            api_key=config.explorer.api_key,
            chain_id=config.explorer.chain_id,
            base_url=config.explorer.base_url,
            timeout=config.explorer.timeout_seconds,
            page_timeout=config.explorer.page_timeout_seconds,
            page_delay=config.explorer.page_delay_seconds,
        )
        resolver = TokenMetadataResolver(
            ledger,
            explorer,
            cache=cache,
            call_timeout=config.resolver.call_timeout_seconds,
            metadata_delay=config.resolver.metadata_delay_seconds,
        )
        return cls(
            ledger,
            explorer,
            resolver=resolver,
            network=config.ledger.network,
            max_results=config.explorer.max_results,
        )

    @property
    def resolver(self) -> TokenMetadataResolver:
        return self._resolver

    # ─────────────────────────────────────────────────────────────
    # Chain info & balances
    # ─────────────────────────────────────────────────────────────

    async def get_blockchain_info(self) -> dict[str, Any]:
        current_block = await self._ledger.get_block_number()
        return {"current_block": current_block, "network": self._network}

    async def get_balance(self, address: str) -> BalanceResult:
        """
        Current native balance.

        Raises:
            InvalidAddressError: Malformed address
            NetworkError: Ledger unavailable
        """
        checksum = normalize_address(address, component="service")
        try:
            wei = await self._ledger.get_balance(checksum)
            current_block = await self._ledger.get_block_number()
        except NetworkError as e:
            logger.error(f"[service] Error getting balance for {checksum}: {e}")
            raise
        return BalanceResult(
            address=address,
            balance=format_ether(wei),
            block_number=current_block,
        )

    async def get_balance_at_date(
        self,
        address: str,
        on_date: Union[str, date, datetime],
    ) -> BalanceAtDate:
        """
        Native balance at the last block on or before ``on_date`` (UTC).

        Raises:
            InvalidAddressError: Malformed address
            ValueError: Malformed date string
            FutureDateError: Date after the latest block
            NetworkError: Ledger unavailable
        """
        checksum = normalize_address(address, component="service")
        timestamp = date_to_timestamp(on_date)

        try:
            current_block = await self._ledger.get_block_number()
            block_number = await self._locator.find_block_at_or_before(timestamp, current_block)
            wei = await self._ledger.get_balance(checksum, block_number)
        except NetworkError as e:
            logger.error(f"[service] Error getting balance at date for {checksum}: {e}")
            raise

        return BalanceAtDate(
            balance=format_ether(wei),
            block_number=block_number,
            timestamp=timestamp,
            date=on_date if isinstance(on_date, str) else on_date.isoformat(),
        )

    # ─────────────────────────────────────────────────────────────
    # Token metadata
    # ─────────────────────────────────────────────────────────────

    async def get_token_metadata(self, contract_address: str) -> TokenMetadata:
        return await self._resolver.resolve(contract_address)

    async def decode_erc20_transfers(self, tx_hash: str) -> list[TokenTransferLog]:
        """
        ERC-20 transfers emitted by a transaction.

        Raises:
            NetworkError: Receipt could not be fetched
        """
        receipt = await self._ledger.get_transaction_receipt(tx_hash)
        return await decode_erc20_transfers(receipt, self._resolver)

    # ─────────────────────────────────────────────────────────────
    # Transactions
    # ─────────────────────────────────────────────────────────────

    async def _fetch_rows(
        self,
        wallet: str,
        start_block: int,
        end_block: Optional[int],
        page: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> list[RawTransaction]:
        rows = await self._explorer.get_transactions(
            wallet,
            start_block=start_block,
            end_block=end_block,
            page=page,
            offset=page_size,
        )
        return [RawTransaction.from_explorer(row) for row in rows]

    async def get_transactions(
        self,
        address: str,
        start_block: int = 0,
        end_block: Optional[int] = None,
        page: int = 1,
        page_size: int = 30,
    ) -> TransactionPage:
        """
        One page of classified, annotated wallet transactions (newest first).

        Raises:
            InvalidAddressError: Malformed address
            ValueError: Invalid paging parameters
            ConfigurationError: Explorer API key missing
            NetworkError: Explorer unavailable or returned an error
        """
        wallet = normalize_address(address, component="service")
        if page < 1 or not 1 <= page_size <= self._max_results:
            raise ValueError(f"Invalid paging: page={page}, page_size={page_size}")

        rows = await self._fetch_rows(wallet, start_block, end_block, page, page_size)
        classified = self._classifier.classify_many(rows, wallet)
        metadata = await self._resolve_tokens(classified)

        transactions = [
            self._annotate(tx, classification, metadata)
            for tx, classification in zip(rows, classified)
        ]

        is_limit_reached = len(rows) == self._max_results
        is_last_page = len(rows) < page_size
        incoming, outgoing = count_directions(rows, wallet)

        return TransactionPage(
            transactions=transactions,
            stats=TransactionStats(incoming_count=incoming, outgoing_count=outgoing),
            pagination=Pagination(
                current_page=page,
                page_size=page_size,
                has_next_page=not is_last_page and not is_limit_reached,
                has_prev_page=page > 1,
            ),
            warning=limit_warning(for_page=True) if is_limit_reached else None,
        )

    async def get_transaction_stats(
        self,
        address: str,
        start_block: int = 0,
        end_block: Optional[int] = None,
    ) -> TransactionStats:
        """Counts over the whole (explorer-capped) block range."""
        wallet = normalize_address(address, component="service")
        rows = await self._fetch_rows(wallet, start_block, end_block)

        is_limit_reached = len(rows) == self._max_results
        incoming, outgoing = count_directions(rows, wallet)
        return TransactionStats(
            incoming_count=incoming,
            outgoing_count=outgoing,
            total_transactions=len(rows),
            is_limit_reached=is_limit_reached,
            limit_warning=limit_warning(for_page=False) if is_limit_reached else None,
        )

    async def get_transaction_count(
        self,
        address: str,
        start_block: int = 0,
        end_block: Optional[int] = None,
    ) -> dict[str, Any]:
        wallet = normalize_address(address, component="service")
        rows = await self._fetch_rows(wallet, start_block, end_block)
        return {
            "total_count": len(rows),
            "is_limit_reached": len(rows) == self._max_results,
        }

    async def _resolve_tokens(
        self,
        classified: list[ClassifiedTransfer],
    ) -> dict[str, TokenMetadata]:
        """Resolve each distinct token contract once, keyed by lowercase address."""
        metadata: dict[str, TokenMetadata] = {}
        for classification in classified:
            if not classification.is_token_transfer:
                continue
            key = classification.token_contract.lower()
            if key in metadata:
                continue
            try:
                metadata[key] = await self._resolver.resolve(classification.token_contract)
            except InvalidAddressError as e:
                logger.warning(f"[service] Skipping token metadata: {e}")
        return metadata

    def _annotate(
        self,
        tx: RawTransaction,
        classification: ClassifiedTransfer,
        metadata: dict[str, TokenMetadata],
    ) -> AnnotatedTransaction:
        annotated = AnnotatedTransaction(
            transaction_hash=tx.hash,
            from_address=tx.from_address,
            to_address=tx.to_address,
            value=format_eth_value(tx.value_wei),
            transaction_type=TRANSACTION_TYPE_LABELS[classification.kind],
            block_number=tx.block_number,
            timestamp=tx.timestamp,
            date=iso_date(tx.timestamp),
            status=0 if tx.is_error else 1,
            type=display_direction(classification.direction),
            gas_price=tx.gas_price,
            gas_limit=tx.gas_limit,
            gas_used=tx.gas_used,
            block_hash=tx.block_hash,
            transaction_index=tx.transaction_index,
            classification=classification,
        )

        if classification.is_token_transfer:
            annotated.token_contract = classification.token_contract
            annotated.token_amount_raw = classification.token_amount_raw
            annotated.token_type = "ERC-20"
            meta = metadata.get(classification.token_contract.lower())
            if meta is not None:
                annotated.token_symbol = meta.symbol
                annotated.token_decimals = meta.decimals
                annotated.token_amount = format_units(
                    classification.token_amount_raw, meta.decimals
                )
            else:
                annotated.token_amount = str(classification.token_amount_raw)

        return annotated

    # ─────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────

    async def close(self) -> None:
        """Close client resources."""
        await self._explorer.close()
        await self._ledger.close()

    async def __aenter__(self) -> "WalletService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
