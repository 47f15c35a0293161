"""
Token Metadata Resolver Tests.

============================================================
PURPOSE
============================================================
Verify the resolution cascade, caching and degraded fallbacks.

TEST CATEGORIES:
- On-chain resolution
- bytes32 symbol fallback
- Explorer fallbacks (token info, source, proxy)
- Placeholder and failure reporting
- Cache and single-flight behavior

============================================================
"""

import asyncio
import re

import pytest
from eth_abi import encode

from wallet_explorer.cache import InMemoryMetadataCache
from wallet_explorer.exceptions import InvalidAddressError, NetworkError
from wallet_explorer.models import MetadataSource, TokenMetadata
from wallet_explorer.resolver import (
    SELECTOR_DECIMALS,
    SELECTOR_NAME,
    SELECTOR_SYMBOL,
    TokenMetadataResolver,
    decode_legacy_symbol,
    is_usable_symbol,
    placeholder_symbol,
)

from .conftest import FakeExplorer, FakeLedger, abi_hex


USDT = "0xdAC17F958D2ee523a2206206994597C13D831ec7"
USDT_LOWER = USDT.lower()
PROXY = "0x4444444444444444444444444444444444444444"
IMPLEMENTATION = "0x5555555555555555555555555555555555555555"

PLACEHOLDER_PATTERN = re.compile(r"^Unknown \(0x[0-9a-fA-F]{6}\.\.\.[0-9a-fA-F]{4}\)$")


def erc20_responses(symbol: str, name: str, decimals: int) -> dict[str, str]:
    return {
        SELECTOR_DECIMALS: abi_hex(["uint8"], [decimals]),
        SELECTOR_SYMBOL: abi_hex(["string"], [symbol]),
        SELECTOR_NAME: abi_hex(["string"], [name]),
    }


def make_resolver(ledger, explorer=None, cache=None) -> TokenMetadataResolver:
    return TokenMetadataResolver(
        ledger,
        explorer,
        cache=cache,
        call_timeout=1.0,
        metadata_delay=0,
    )


# ============================================================
# HELPERS
# ============================================================

class TestHelpers:
    """Tests for placeholder and symbol helpers."""

    def test_placeholder_format(self):
        symbol = placeholder_symbol(USDT)
        assert symbol == "Unknown (0xdAC17F...1ec7)"
        assert PLACEHOLDER_PATTERN.match(symbol)

    @pytest.mark.parametrize("symbol,usable", [
        ("USDT", True),
        ("", False),
        (None, False),
        ("Unknown", False),
        ("Unknown (0x123456...abcd)", False),
    ])
    def test_is_usable_symbol(self, symbol, usable):
        assert is_usable_symbol(symbol) is usable

    def test_decode_legacy_symbol(self):
        raw = encode(["bytes32"], [b"MKR".ljust(32, b"\x00")])
        assert decode_legacy_symbol(raw) == "MKR"

    def test_decode_legacy_symbol_unterminated(self):
        raw = b"ABCDEFGHIJKLMNOPQRSTUVWXYZ012345"
        assert decode_legacy_symbol(raw) == "ABCDEFGHIJKLMNOPQRSTUVWXYZ012345"


# ============================================================
# ON-CHAIN
# ============================================================

class TestOnChainResolution:
    """Tests for the standard ERC-20 tier."""

    @pytest.mark.asyncio
    async def test_resolves_standard_token(self):
        ledger = FakeLedger(call_responses=erc20_responses("USDT", "Tether USD", 6))
        resolver = make_resolver(ledger)

        meta = await resolver.resolve(USDT_LOWER)

        assert meta.contract_address == USDT
        assert meta.symbol == "USDT"
        assert meta.name == "Tether USD"
        assert meta.decimals == 6
        assert meta.source == MetadataSource.ONCHAIN
        assert not meta.is_placeholder

    @pytest.mark.asyncio
    async def test_calls_target_contract(self):
        ledger = FakeLedger(call_responses=erc20_responses("USDT", "Tether USD", 6))
        await make_resolver(ledger).resolve(USDT_LOWER)

        assert {to for to, _ in ledger.calls} == {USDT}
        assert sorted(data for _, data in ledger.calls) == sorted(
            [SELECTOR_DECIMALS, SELECTOR_SYMBOL, SELECTOR_NAME]
        )

    @pytest.mark.asyncio
    async def test_sanitizes_control_characters(self):
        ledger = FakeLedger(call_responses=erc20_responses("\x00US\x07DT \n", "Tether\x00", 6))
        meta = await make_resolver(ledger).resolve(USDT)

        assert meta.symbol == "USDT"
        assert meta.name == "Tether"

    @pytest.mark.asyncio
    async def test_decimals_failure_defaults_to_18(self):
        responses = erc20_responses("ABC", "Abc Token", 6)
        responses[SELECTOR_DECIMALS] = NetworkError("execution reverted")
        meta = await make_resolver(FakeLedger(call_responses=responses)).resolve(USDT)

        assert meta.symbol == "ABC"
        assert meta.decimals == 18

    @pytest.mark.asyncio
    async def test_out_of_range_decimals_defaults_to_18(self):
        responses = erc20_responses("ABC", "Abc Token", 6)
        responses[SELECTOR_DECIMALS] = abi_hex(["uint256"], [10**6])
        meta = await make_resolver(FakeLedger(call_responses=responses)).resolve(USDT)

        assert meta.decimals == 18

    @pytest.mark.asyncio
    async def test_zero_decimals_kept(self):
        responses = erc20_responses("NFT", "Zero Dec", 0)
        meta = await make_resolver(FakeLedger(call_responses=responses)).resolve(USDT)

        assert meta.decimals == 0

    @pytest.mark.asyncio
    async def test_unknown_symbol_is_not_accepted(self):
        responses = erc20_responses("Unknown", "Some Name", 6)
        meta = await make_resolver(FakeLedger(call_responses=responses)).resolve(USDT)

        assert meta.is_placeholder
        assert PLACEHOLDER_PATTERN.match(meta.symbol)


# ============================================================
# BYTES32 FALLBACK
# ============================================================

class TestBytes32Fallback:
    """Tests for legacy tokens returning bytes32 symbols."""

    @pytest.mark.asyncio
    async def test_bytes32_symbol(self):
        ledger = FakeLedger(call_responses={
            SELECTOR_DECIMALS: abi_hex(["uint8"], [18]),
            SELECTOR_SYMBOL: abi_hex(["bytes32"], [b"MKR".ljust(32, b"\x00")]),
        })
        meta = await make_resolver(ledger).resolve(USDT)

        assert meta.symbol == "MKR"
        assert meta.decimals == 18
        assert meta.source == MetadataSource.BYTES32_FALLBACK


# ============================================================
# EXPLORER FALLBACKS
# ============================================================

class TestExplorerFallback:
    """Tests for explorer-backed tiers."""

    @pytest.mark.asyncio
    async def test_token_info(self):
        explorer = FakeExplorer(token_info={
            USDT: {"symbol": "USDT", "tokenName": "Tether USD"},
        })
        meta = await make_resolver(FakeLedger(), explorer).resolve(USDT)

        assert meta.symbol == "USDT"
        assert meta.name == "Tether USD"
        assert meta.source == MetadataSource.EXPLORER_TOKEN_INFO

    @pytest.mark.asyncio
    async def test_source_info(self):
        explorer = FakeExplorer(source_info={
            USDT: {"Symbol": "", "ContractName": "TetherToken"},
        })
        meta = await make_resolver(FakeLedger(), explorer).resolve(USDT)

        # No symbol anywhere, but the contract name survives
        assert meta.is_placeholder
        assert meta.name == "TetherToken"

    @pytest.mark.asyncio
    async def test_source_symbol(self):
        explorer = FakeExplorer(source_info={
            USDT: {"Symbol": "TST", "TokenName": "Test Token"},
        })
        meta = await make_resolver(FakeLedger(), explorer).resolve(USDT)

        assert meta.symbol == "TST"
        assert meta.name == "Test Token"
        assert meta.source == MetadataSource.EXPLORER_SOURCE

    @pytest.mark.asyncio
    async def test_proxy_implementation(self):
        explorer = FakeExplorer(
            source_info={
                PROXY: {"ContractName": "", "Proxy": "1", "Implementation": IMPLEMENTATION},
            },
            token_info={
                IMPLEMENTATION: {"symbol": "IMPL", "tokenName": "Implementation Token"},
            },
        )
        meta = await make_resolver(FakeLedger(), explorer).resolve(PROXY)

        assert meta.contract_address == PROXY
        assert meta.symbol == "IMPL"
        assert ("token_info", IMPLEMENTATION) in explorer.lookups

    @pytest.mark.asyncio
    async def test_proxy_followed_once(self):
        explorer = FakeExplorer(source_info={
            PROXY: {"Proxy": "1", "Implementation": IMPLEMENTATION},
            IMPLEMENTATION: {"Proxy": "1", "Implementation": PROXY},
        })
        meta = await make_resolver(FakeLedger(), explorer).resolve(PROXY)

        assert meta.is_placeholder
        assert explorer.lookups.count(("source_info", PROXY)) == 1

    @pytest.mark.asyncio
    async def test_explorer_skipped_without_api_key(self):
        explorer = FakeExplorer(
            token_info={USDT: {"symbol": "USDT"}},
            api_key=None,
        )
        meta = await make_resolver(FakeLedger(), explorer).resolve(USDT)

        assert meta.is_placeholder
        assert explorer.lookups == []

    @pytest.mark.asyncio
    async def test_onchain_success_skips_explorer(self):
        explorer = FakeExplorer(token_info={USDT: {"symbol": "OTHER"}})
        ledger = FakeLedger(call_responses=erc20_responses("USDT", "Tether USD", 6))
        meta = await make_resolver(ledger, explorer).resolve(USDT)

        assert meta.symbol == "USDT"
        assert explorer.lookups == []


# ============================================================
# PLACEHOLDER
# ============================================================

class TestPlaceholder:
    """Tests for total lookup failure."""

    @pytest.mark.asyncio
    async def test_everything_fails(self):
        resolver = make_resolver(FakeLedger())
        resolution = await resolver.resolve_detailed(USDT)

        assert resolution.metadata.symbol == "Unknown (0xdAC17F...1ec7)"
        assert resolution.metadata.decimals == 18
        assert resolution.metadata.is_placeholder
        assert resolution.is_degraded
        assert resolution.failures

    @pytest.mark.asyncio
    async def test_timeout_is_absorbed(self):
        class SlowLedger(FakeLedger):
            async def call(self, to, data):
                await asyncio.sleep(10)

        resolver = TokenMetadataResolver(SlowLedger(), call_timeout=0.01, metadata_delay=0)
        resolution = await resolver.resolve_detailed(USDT)

        assert resolution.metadata.is_placeholder
        assert any("timeout" in failure for failure in resolution.failures)

    @pytest.mark.asyncio
    async def test_unexpected_error_is_not_cached(self):
        class BrokenLedger(FakeLedger):
            async def call(self, to, data):
                raise RuntimeError("boom")

        cache = InMemoryMetadataCache()
        resolver = make_resolver(BrokenLedger(), cache=cache)
        meta = await resolver.resolve(USDT)

        assert meta.is_placeholder
        assert len(cache) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("address", ["", "0x123", "not-an-address", None])
    async def test_malformed_address_raises(self, address):
        resolver = make_resolver(FakeLedger())
        with pytest.raises(InvalidAddressError):
            await resolver.resolve(address)

    @pytest.mark.asyncio
    async def test_bad_checksum_raises(self):
        bad = "0xDac17F958D2ee523a2206206994597C13D831ec7"
        with pytest.raises(InvalidAddressError):
            await make_resolver(FakeLedger()).resolve(bad)


# ============================================================
# CACHE
# ============================================================

class TestCaching:
    """Tests for memoization and single-flight."""

    @pytest.mark.asyncio
    async def test_second_resolve_hits_cache(self):
        ledger = FakeLedger(call_responses=erc20_responses("USDT", "Tether USD", 6))
        resolver = make_resolver(ledger)

        first = await resolver.resolve(USDT_LOWER)
        calls_after_first = len(ledger.calls)
        second = await resolver.resolve_detailed(USDT)

        assert second.from_cache
        assert second.metadata == first
        assert len(ledger.calls) == calls_after_first

    @pytest.mark.asyncio
    async def test_placeholder_is_cached(self):
        ledger = FakeLedger()
        resolver = make_resolver(ledger)

        await resolver.resolve(USDT)
        calls_after_first = len(ledger.calls)
        await resolver.resolve(USDT)

        assert len(ledger.calls) == calls_after_first

    @pytest.mark.asyncio
    async def test_injected_cache_is_used(self):
        cache = InMemoryMetadataCache()
        await cache.put(TokenMetadata(contract_address=USDT, symbol="PRE", decimals=2))
        ledger = FakeLedger()

        meta = await make_resolver(ledger, cache=cache).resolve(USDT)

        assert meta.symbol == "PRE"
        assert ledger.calls == []

    @pytest.mark.asyncio
    async def test_caches_are_isolated(self):
        ledger = FakeLedger(call_responses=erc20_responses("USDT", "Tether USD", 6))
        await make_resolver(ledger).resolve(USDT)
        calls_after_first = len(ledger.calls)

        await make_resolver(ledger).resolve(USDT)

        assert len(ledger.calls) == 2 * calls_after_first

    @pytest.mark.asyncio
    async def test_concurrent_resolutions_share_lookup(self):
        ledger = FakeLedger(call_responses=erc20_responses("USDT", "Tether USD", 6))
        resolver = make_resolver(ledger)

        results = await asyncio.gather(*[resolver.resolve(USDT) for _ in range(5)])

        assert len(ledger.calls) == 3
        assert all(result is results[0] for result in results)


class TestInMemoryCache:
    """Tests for the in-memory store."""

    @pytest.mark.asyncio
    async def test_put_never_overwrites(self):
        cache = InMemoryMetadataCache()
        first = TokenMetadata(contract_address=USDT, symbol="ONE")
        second = TokenMetadata(contract_address=USDT, symbol="TWO")

        assert await cache.put(first) is first
        assert await cache.put(second) is first
        assert (await cache.get(USDT)).symbol == "ONE"

    @pytest.mark.asyncio
    async def test_stats(self):
        cache = InMemoryMetadataCache()
        await cache.get(USDT)
        await cache.put(TokenMetadata(contract_address=USDT, symbol="ONE"))
        await cache.get(USDT)

        stats = cache.get_cache_stats()
        assert stats["entries"] == 1
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert USDT in cache

        cache.clear()
        assert len(cache) == 0

    def test_metadata_rejects_bad_decimals(self):
        with pytest.raises(ValueError):
            TokenMetadata(contract_address=USDT, symbol="X", decimals=256)
