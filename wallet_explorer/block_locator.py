"""
Block Timestamp Locator - Maps a timestamp to the last block at or before it.

Binary search over block numbers, one ledger round trip per step
(about 25 steps for a 30M-block chain).
"""

import logging
from typing import Optional

from wallet_explorer.base import BaseLedgerClient
from wallet_explorer.exceptions import FutureDateError


logger = logging.getLogger(__name__)


class BlockTimestampLocator:
    """
    Finds the highest block whose timestamp does not exceed a target.

    Block timestamps fetched during one search are memoized for that
    search only.
    """

    def __init__(self, ledger: BaseLedgerClient) -> None:
        self._ledger = ledger

    async def find_block_at_or_before(
        self,
        target_timestamp: int,
        current_block_number: Optional[int] = None,
    ) -> int:
        """
        Binary search over ``[0, current_block_number]``.

        Args:
            target_timestamp: Epoch seconds
            current_block_number: Upper bound; latest block when None

        Returns:
            Block number (0 if every block is later than the target)

        Raises:
            FutureDateError: Target is later than the current block
            NetworkError: A block fetch failed
        """
        if current_block_number is None:
            current_block_number = await self._ledger.get_block_number()

        timestamps: dict[int, int] = {}

        async def timestamp_of(block_number: int) -> int:
            if block_number not in timestamps:
                timestamps[block_number] = await self._ledger.get_block_timestamp(block_number)
            return timestamps[block_number]

        latest_timestamp = await timestamp_of(current_block_number)
        if target_timestamp > latest_timestamp:
            raise FutureDateError(
                message=(
                    f"Timestamp {target_timestamp} is after the latest block "
                    f"{current_block_number} (timestamp {latest_timestamp})"
                ),
                target_timestamp=target_timestamp,
                latest_timestamp=latest_timestamp,
                component="block_locator",
            )

        low, high, best = 0, current_block_number, 0
        while low <= high:
            mid = (low + high) // 2
            if await timestamp_of(mid) <= target_timestamp:
                best = mid
                low = mid + 1
            else:
                high = mid - 1

        logger.debug(
            f"[block_locator] Timestamp {target_timestamp} -> block {best} "
            f"({len(timestamps)} block fetches)"
        )
        return best
