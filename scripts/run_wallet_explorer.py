"""
Script for exploring a wallet from the command line.

Demonstrates:
- Current and historical balances
- A classified, annotated transaction page
- Token metadata resolution and caching

Usage:
    python -m scripts.run_wallet_explorer 0xYourWallet --date 2023-01-01 --page-size 10
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from wallet_explorer import (
    InMemoryMetadataCache,
    WalletExplorerError,
    WalletService,
    get_config,
)


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-5s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def print_banner(text: str) -> None:
    """Print a banner."""
    print("\n" + "=" * 60)
    print(f"  {text}")
    print("=" * 60)


async def run(address: str, on_date: str, page_size: int) -> None:
    cache = InMemoryMetadataCache()
    config = get_config()

    async with WalletService.from_config(config, cache=cache) as service:
        print_banner("CHAIN")
        info = await service.get_blockchain_info()
        print(f"  Network: {info['network']}")
        print(f"  Current block: {info['current_block']:,}")

        print_banner("BALANCE")
        balance = await service.get_balance(address)
        print(f"  {balance.balance} {balance.unit} at block {balance.block_number:,}")
        if on_date:
            snapshot = await service.get_balance_at_date(address, on_date)
            print(f"  {snapshot.balance} ETH on {snapshot.date} (block {snapshot.block_number:,})")

        if not config.explorer.api_key:
            logger.warning("ETHERSCAN_API_KEY not set, skipping transaction history")
            return

        print_banner("TRANSACTIONS")
        page = await service.get_transactions(address, page=1, page_size=page_size)
        for tx in page.transactions:
            line = f"  {tx.date}  {tx.type:<8}  {tx.transaction_type:<22}"
            if tx.token_amount is not None:
                line += f"  {tx.token_amount} {tx.token_symbol}"
            else:
                line += f"  {tx.value} ETH"
            print(line)
        print(f"\n  Incoming: {page.stats.incoming_count}  Outgoing: {page.stats.outgoing_count}")
        if page.warning:
            print(f"  Warning: {page.warning['message']}")

        print_banner("TOKEN CACHE")
        stats = cache.get_cache_stats()
        print(f"  Entries: {stats['entries']}  Hit rate: {stats['hit_rate_percent']}%")


def main() -> None:
    parser = argparse.ArgumentParser(description="Explore a wallet's balance and transfers")
    parser.add_argument("address", help="Wallet address (0x...)")
    parser.add_argument("--date", default=None, help="Historical balance date (YYYY-MM-DD)")
    parser.add_argument("--page-size", type=int, default=10, help="Transactions to show")
    args = parser.parse_args()

    try:
        asyncio.run(run(args.address, args.date, args.page_size))
    except WalletExplorerError as e:
        logger.error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
