"""
Token Metadata Cache - Injectable store for resolved token metadata.

Keys are checksummed addresses. Entries are memoized, not refreshed: once an
address has metadata, later writes for it are ignored.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from wallet_explorer.models import TokenMetadata


logger = logging.getLogger(__name__)


class MetadataCache(ABC):
    """Interface for metadata stores owned by a resolver."""

    @abstractmethod
    async def get(self, address: str) -> Optional[TokenMetadata]:
        """Return cached metadata for a checksummed address, or None."""
        pass

    @abstractmethod
    async def put(self, metadata: TokenMetadata) -> TokenMetadata:
        """
        Store metadata unless the address is already cached.

        Returns:
            The entry now held by the cache (the earlier one on conflict).
        """
        pass

    @abstractmethod
    def __len__(self) -> int:
        pass


class InMemoryMetadataCache(MetadataCache):
    """
    Process-local dict store with no eviction.

    Safe for concurrent use from multiple tasks on one event loop.
    """

    def __init__(self) -> None:
        self._entries: dict[str, TokenMetadata] = {}
        self._lock = asyncio.Lock()
        self._hits = 0
        self._misses = 0

    async def get(self, address: str) -> Optional[TokenMetadata]:
        async with self._lock:
            entry = self._entries.get(address)
            if entry is None:
                self._misses += 1
            else:
                self._hits += 1
            return entry

    async def put(self, metadata: TokenMetadata) -> TokenMetadata:
        async with self._lock:
            existing = self._entries.get(metadata.contract_address)
            if existing is not None:
                logger.debug(
                    f"[cache] Keeping existing entry for {metadata.contract_address}"
                )
                return existing
            self._entries[metadata.contract_address] = metadata
            return metadata

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, address: object) -> bool:
        return address in self._entries

    def clear(self) -> None:
        """Clear all cache entries."""
        self._entries.clear()
        logger.info("[cache] Cache cleared")

    def get_cache_stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        total_requests = self._hits + self._misses
        hit_rate = (self._hits / total_requests * 100) if total_requests > 0 else 0

        return {
            "entries": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate_percent": round(hit_rate, 2),
        }
