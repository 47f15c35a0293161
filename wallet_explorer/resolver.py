"""
Token Metadata Resolver - Cascading symbol/name/decimals lookup.

Resolution tiers, stopping at the first usable symbol:
1. Cache
2. On-chain ``decimals()``, ``symbol()``, ``name()`` issued concurrently
3. Raw ``symbol()`` call decoded as ``bytes32`` (legacy tokens)
4. Explorer token info
5. Explorer contract source, unwrapping a declared proxy implementation
6. Placeholder ``Unknown (0x123456...abcd)`` with 18 decimals

Never raises for a well-formed address. Concurrent first-time resolutions
of one address share a single in-flight lookup.

Usage:
    resolver = TokenMetadataResolver(ledger, explorer)
    meta = await resolver.resolve("0xdAC17F958D2ee523a2206206994597C13D831ec7")
    print(meta.symbol, meta.decimals)
"""

import asyncio
import logging
from typing import Any, Optional

from eth_abi import decode
from eth_abi.exceptions import DecodingError
from eth_utils import decode_hex

from wallet_explorer.addresses import is_valid_address, normalize_address, short_address
from wallet_explorer.base import BaseExplorerClient, BaseLedgerClient
from wallet_explorer.cache import InMemoryMetadataCache, MetadataCache
from wallet_explorer.exceptions import NetworkError
from wallet_explorer.models import (
    DEFAULT_DECIMALS,
    MAX_DECIMALS,
    MetadataResolution,
    MetadataSource,
    TokenMetadata,
)
from wallet_explorer.sanitize import sanitize_text


logger = logging.getLogger(__name__)


SELECTOR_DECIMALS = "0x313ce567"  # decimals()
SELECTOR_SYMBOL = "0x95d89b41"    # symbol()
SELECTOR_NAME = "0x06fdde03"      # name()

PLACEHOLDER_PREFIX = "Unknown"


def placeholder_symbol(checksum_address: str) -> str:
    return f"{PLACEHOLDER_PREFIX} ({short_address(checksum_address)})"


def is_usable_symbol(symbol: Optional[str]) -> bool:
    """A sanitized symbol that is not itself an "Unknown" marker."""
    return bool(symbol) and not symbol.startswith(PLACEHOLDER_PREFIX)


def decode_bytes32_string(value: bytes) -> str:
    """
    Decode a null-terminated string packed into 32 bytes.

    Raises:
        ValueError: Missing terminator or invalid UTF-8.
    """
    if len(value) != 32 or value[31] != 0:
        raise ValueError("bytes32 string is not null-terminated")
    return value.split(b"\x00", 1)[0].decode("utf-8")


def decode_legacy_symbol(raw: bytes) -> str:
    """
    Decode a ``symbol()`` result from a contract returning ``bytes32``.

    Falls back to the first 32 raw bytes as null-padded text.
    """
    try:
        (value,) = decode(["bytes32"], raw)
        return decode_bytes32_string(value)
    except (DecodingError, ValueError):
        return raw[:32].decode("utf-8", errors="replace").rstrip("\x00")


class _Attempt:
    """Mutable state of one uncached resolution."""

    def __init__(self, address: str) -> None:
        self.address = address
        self.decimals = DEFAULT_DECIMALS
        self.symbol: Optional[str] = None
        self.name: Optional[str] = None
        self.source = MetadataSource.PLACEHOLDER
        self.failures: list[str] = []

    @property
    def resolved(self) -> bool:
        return is_usable_symbol(self.symbol)

    def adopt(
        self,
        symbol: Any,
        names: tuple[Any, ...],
        source: MetadataSource,
    ) -> None:
        """Take a sanitized symbol/name from a source, keeping earlier values otherwise."""
        cleaned_symbol = sanitize_text(symbol)
        if cleaned_symbol:
            self.symbol = cleaned_symbol
            if is_usable_symbol(cleaned_symbol):
                self.source = source
        for candidate in names:
            cleaned_name = sanitize_text(candidate)
            if cleaned_name:
                self.name = cleaned_name
                break

    def to_metadata(self) -> TokenMetadata:
        if self.resolved:
            return TokenMetadata(
                contract_address=self.address,
                symbol=self.symbol,
                decimals=self.decimals,
                name=self.name,
                source=self.source,
            )
        return TokenMetadata(
            contract_address=self.address,
            symbol=placeholder_symbol(self.address),
            decimals=self.decimals,
            name=self.name,
            source=MetadataSource.PLACEHOLDER,
        )


class TokenMetadataResolver:
    """
    Resolves and memoizes ERC-20 display metadata.

    The cache is injected (defaults to a fresh in-memory store) so tests and
    alternate backing stores stay isolated from other resolver instances.
    """

    def __init__(
        self,
        ledger: BaseLedgerClient,
        explorer: Optional[BaseExplorerClient] = None,
        cache: Optional[MetadataCache] = None,
        call_timeout: float = 8.0,
        metadata_delay: float = 0.1,
    ) -> None:
        self._ledger = ledger
        self._explorer = explorer
        self._cache = cache if cache is not None else InMemoryMetadataCache()
        self._call_timeout = call_timeout
        self._metadata_delay = metadata_delay
        self._in_flight: dict[str, asyncio.Task] = {}

    @property
    def cache(self) -> MetadataCache:
        return self._cache

    async def resolve(self, contract_address: str) -> TokenMetadata:
        """
        Resolve metadata for a token contract.

        Raises:
            InvalidAddressError: If the address is malformed.
        """
        resolution = await self.resolve_detailed(contract_address)
        return resolution.metadata

    async def resolve_detailed(self, contract_address: str) -> MetadataResolution:
        """Resolve metadata and report whether it came from cache or degraded lookups."""
        address = normalize_address(contract_address, component="resolver")

        cached = await self._cache.get(address)
        if cached is not None:
            logger.debug(f"[resolver] Cache hit for {address}")
            return MetadataResolution(metadata=cached, from_cache=True)

        task = self._in_flight.get(address)
        if task is None:
            task = asyncio.ensure_future(self._resolve_and_store(address))
            self._in_flight[address] = task
            task.add_done_callback(lambda _: self._in_flight.pop(address, None))
        else:
            logger.debug(f"[resolver] Joining in-flight resolution for {address}")

        # Shielded so one cancelled caller does not cancel the shared lookup
        return await asyncio.shield(task)

    async def _resolve_and_store(self, address: str) -> MetadataResolution:
        try:
            attempt = await self._run_chain(address)
        except Exception as e:
            logger.error(f"[resolver] Unexpected failure resolving {address}: {e}")
            return MetadataResolution(
                metadata=TokenMetadata(
                    contract_address=address,
                    symbol=placeholder_symbol(address),
                    source=MetadataSource.PLACEHOLDER,
                ),
                failures=(f"unexpected: {e}",),
            )

        metadata = attempt.to_metadata()
        if metadata.is_placeholder:
            logger.warning(
                f"[resolver] No symbol found for {address}, using placeholder "
                f"(failures={len(attempt.failures)})"
            )
        stored = await self._cache.put(metadata)
        return MetadataResolution(metadata=stored, failures=tuple(attempt.failures))

    async def _run_chain(self, address: str) -> "_Attempt":
        attempt = _Attempt(address)

        # Advisory pacing ahead of the metadata burst
        if self._metadata_delay > 0:
            await asyncio.sleep(self._metadata_delay)

        await self._from_contract(attempt)
        if attempt.resolved:
            return attempt

        await self._from_bytes32_symbol(attempt)
        if attempt.resolved:
            return attempt

        if self._explorer is None or not self._explorer.has_api_key:
            return attempt

        await self._from_explorer(attempt, address, follow_proxy=True)
        return attempt

    # ─────────────────────────────────────────────────────────────
    # On-chain tiers
    # ─────────────────────────────────────────────────────────────

    async def _call(self, attempt: _Attempt, selector: str) -> Optional[bytes]:
        """Raw eth_call bounded by the call timeout; None on any failure."""
        try:
            raw = await asyncio.wait_for(
                self._ledger.call(attempt.address, selector),
                timeout=self._call_timeout,
            )
        except asyncio.TimeoutError:
            attempt.failures.append(f"{selector}: timeout")
            return None
        except NetworkError as e:
            attempt.failures.append(f"{selector}: {e.message}")
            return None
        return decode_hex(raw) if raw else b""

    async def _fetch_decimals(self, attempt: _Attempt) -> int:
        raw = await self._call(attempt, SELECTOR_DECIMALS)
        if not raw:
            return DEFAULT_DECIMALS
        try:
            (value,) = decode(["uint256"], raw)
        except (DecodingError, ValueError):
            return DEFAULT_DECIMALS
        return value if value <= MAX_DECIMALS else DEFAULT_DECIMALS

    async def _fetch_string(self, attempt: _Attempt, selector: str) -> Optional[str]:
        raw = await self._call(attempt, selector)
        if not raw:
            return None
        try:
            (value,) = decode(["string"], raw)
        except (DecodingError, ValueError):
            return None
        return value

    async def _from_contract(self, attempt: _Attempt) -> None:
        decimals, symbol, name = await asyncio.gather(
            self._fetch_decimals(attempt),
            self._fetch_string(attempt, SELECTOR_SYMBOL),
            self._fetch_string(attempt, SELECTOR_NAME),
        )
        attempt.decimals = decimals
        attempt.adopt(symbol, (name,), MetadataSource.ONCHAIN)

    async def _from_bytes32_symbol(self, attempt: _Attempt) -> None:
        raw = await self._call(attempt, SELECTOR_SYMBOL)
        if not raw:
            return
        attempt.adopt(decode_legacy_symbol(raw), (), MetadataSource.BYTES32_FALLBACK)

    # ─────────────────────────────────────────────────────────────
    # Explorer tiers
    # ─────────────────────────────────────────────────────────────

    async def _from_explorer(
        self,
        attempt: _Attempt,
        address: str,
        follow_proxy: bool,
    ) -> None:
        info = await self._explorer_lookup(attempt, "token_info", address)
        if info:
            attempt.adopt(
                info.get("symbol"),
                (info.get("tokenName"),),
                MetadataSource.EXPLORER_TOKEN_INFO,
            )
            if attempt.resolved:
                return

        source = await self._explorer_lookup(attempt, "source_info", address)
        if not source:
            return
        attempt.adopt(
            source.get("Symbol"),
            (source.get("TokenName"), source.get("ContractName")),
            MetadataSource.EXPLORER_SOURCE,
        )
        if attempt.resolved or not follow_proxy:
            return

        implementation = source.get("Implementation")
        if str(source.get("Proxy")) == "1" and is_valid_address(implementation):
            implementation = normalize_address(implementation, component="resolver")
            logger.info(
                f"[resolver] {address} is a proxy, checking implementation {implementation}"
            )
            await self._from_explorer(attempt, implementation, follow_proxy=False)

    async def _explorer_lookup(
        self,
        attempt: _Attempt,
        kind: str,
        address: str,
    ) -> Optional[dict[str, Any]]:
        lookup = (
            self._explorer.get_token_info
            if kind == "token_info"
            else self._explorer.get_source_info
        )
        try:
            result = await lookup(address)
        except NetworkError as e:
            attempt.failures.append(f"{kind}: {e.message}")
            return None
        if result is None:
            logger.debug(f"[resolver] Explorer {kind} empty for {address}")
        return result
