"""
Wallet Explorer Package - Wallet history and token metadata over a ledger node
and a block explorer.

Features:
- Transfer classification from raw call data (native, direct ERC-20,
  ERC-20 through an execute() proxy wrapper)
- Cascading token metadata resolution with memoization
- Balance at a calendar date via block timestamp binary search
- Never fails on classification or metadata - degrades to fallbacks

Quick Start:
    from wallet_explorer import WalletService

    async def show_history(wallet: str):
        async with WalletService.from_config() as service:
            page = await service.get_transactions(wallet)
            for tx in page.transactions:
                print(tx.date, tx.transaction_type, tx.value, tx.token_symbol)

            snapshot = await service.get_balance_at_date(wallet, "2023-01-01")
            print(snapshot.balance, snapshot.block_number)

Lower-level pieces:
    classifier = TransferClassifier()
    result = classifier.classify(raw_tx, wallet)

    resolver = TokenMetadataResolver(ledger, explorer)
    meta = await resolver.resolve(result.token_contract)

    locator = BlockTimestampLocator(ledger)
    block = await locator.find_block_at_or_before(1672531200)
"""

from wallet_explorer.addresses import is_valid_address, normalize_address
from wallet_explorer.base import BaseExplorerClient, BaseLedgerClient
from wallet_explorer.block_locator import BlockTimestampLocator
from wallet_explorer.cache import InMemoryMetadataCache, MetadataCache
from wallet_explorer.classifier import TransferClassifier
from wallet_explorer.config import (
    ExplorerConfig,
    LedgerConfig,
    ResolverConfig,
    WalletExplorerConfig,
    get_config,
    set_config,
)
from wallet_explorer.exceptions import (
    ConfigurationError,
    ExplorerAPIError,
    FutureDateError,
    InvalidAddressError,
    NetworkError,
    RateLimitError,
    WalletExplorerError,
)
from wallet_explorer.formatting import format_ether, format_units, iso_date
from wallet_explorer.models import (
    AnnotatedTransaction,
    BalanceAtDate,
    BalanceResult,
    ClassifiedTransfer,
    Direction,
    MetadataResolution,
    MetadataSource,
    Pagination,
    RawTransaction,
    TokenMetadata,
    TokenTransferLog,
    TransactionPage,
    TransactionStats,
    TransferKind,
)
from wallet_explorer.providers import EtherscanExplorerClient, Web3LedgerClient
from wallet_explorer.resolver import TokenMetadataResolver
from wallet_explorer.sanitize import sanitize_text
from wallet_explorer.service import WalletService


__version__ = "1.0.0"

__all__ = [
    # Base
    "BaseLedgerClient",
    "BaseExplorerClient",

    # Core
    "TransferClassifier",
    "TokenMetadataResolver",
    "BlockTimestampLocator",
    "MetadataCache",
    "InMemoryMetadataCache",
    "WalletService",

    # Helpers
    "sanitize_text",
    "format_units",
    "format_ether",
    "iso_date",
    "is_valid_address",
    "normalize_address",

    # Models
    "RawTransaction",
    "ClassifiedTransfer",
    "TransferKind",
    "Direction",
    "TokenMetadata",
    "MetadataSource",
    "MetadataResolution",
    "AnnotatedTransaction",
    "TransactionStats",
    "Pagination",
    "TransactionPage",
    "BalanceResult",
    "BalanceAtDate",
    "TokenTransferLog",

    # Config
    "WalletExplorerConfig",
    "LedgerConfig",
    "ExplorerConfig",
    "ResolverConfig",
    "get_config",
    "set_config",

    # Exceptions
    "WalletExplorerError",
    "InvalidAddressError",
    "FutureDateError",
    "NetworkError",
    "RateLimitError",
    "ExplorerAPIError",
    "ConfigurationError",

    # Providers
    "EtherscanExplorerClient",
    "Web3LedgerClient",
]
