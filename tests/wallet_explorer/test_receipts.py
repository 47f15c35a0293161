"""
Receipt Transfer Log Decoding Tests.
"""

import pytest

from wallet_explorer.receipts import (
    TRANSFER_TOPIC,
    decode_erc20_transfers,
    iter_transfer_logs,
    parse_transfer_log,
)
from wallet_explorer.resolver import (
    SELECTOR_DECIMALS,
    SELECTOR_NAME,
    SELECTOR_SYMBOL,
    TokenMetadataResolver,
)

from .conftest import FakeLedger, abi_hex


USDT = "0xdAC17F958D2ee523a2206206994597C13D831ec7"
SENDER = "0x1111111111111111111111111111111111111111"
RECIPIENT = "0x2222222222222222222222222222222222222222"


def topic_for(address: str) -> str:
    return "0x" + "0" * 24 + address[2:].lower()


def transfer_log(amount: int, extra_topics=()) -> dict:
    return {
        "address": USDT.lower(),
        "topics": [TRANSFER_TOPIC, topic_for(SENDER), topic_for(RECIPIENT), *extra_topics],
        "data": "0x" + f"{amount:064x}",
    }


class TestParseTransferLog:
    """Tests for single-log decoding."""

    def test_erc20_transfer(self):
        parsed = parse_transfer_log(transfer_log(1_500_000))

        assert parsed.token_contract == USDT
        assert parsed.from_address == SENDER
        assert parsed.to_address == RECIPIENT
        assert parsed.amount == 1_500_000

    def test_bytes_topics(self):
        log = transfer_log(7)
        log["topics"] = [bytes.fromhex(t[2:]) for t in log["topics"]]
        log["data"] = bytes.fromhex(log["data"][2:])

        assert parse_transfer_log(log).amount == 7

    def test_erc721_transfer_is_skipped(self):
        log = transfer_log(0, extra_topics=[topic_for(SENDER)])
        log["data"] = "0x"
        assert parse_transfer_log(log) is None

    def test_other_event_is_skipped(self):
        log = transfer_log(1)
        log["topics"][0] = "0x" + "ab" * 32
        assert parse_transfer_log(log) is None

    def test_malformed_data_is_skipped(self):
        log = transfer_log(1)
        log["data"] = "0x1234"
        assert parse_transfer_log(log) is None

    def test_iter_filters_non_transfers(self):
        other = transfer_log(1)
        other["topics"] = other["topics"][:1]
        receipt = {"logs": [transfer_log(1), other, transfer_log(2)]}

        assert [log.amount for log in iter_transfer_logs(receipt)] == [1, 2]


class TestDecodeErc20Transfers:
    """Tests for metadata-decorated decoding."""

    @pytest.mark.asyncio
    async def test_decorates_with_metadata(self):
        ledger = FakeLedger(call_responses={
            SELECTOR_DECIMALS: abi_hex(["uint8"], [6]),
            SELECTOR_SYMBOL: abi_hex(["string"], ["USDT"]),
            SELECTOR_NAME: abi_hex(["string"], ["Tether USD"]),
        })
        resolver = TokenMetadataResolver(ledger, metadata_delay=0)

        transfers = await decode_erc20_transfers({"logs": [transfer_log(2_500_000)]}, resolver)

        assert len(transfers) == 1
        transfer = transfers[0]
        assert transfer.token_symbol == "USDT"
        assert transfer.token_decimals == 6
        assert transfer.token_amount == "2.500000"
        assert transfer.to_dict()["token_amount_raw"] == "2500000"
        assert transfer.to_dict()["from"] == SENDER

    @pytest.mark.asyncio
    async def test_missing_receipt(self):
        resolver = TokenMetadataResolver(FakeLedger(), metadata_delay=0)
        assert await decode_erc20_transfers(None, resolver) == []
