"""
ERC-20 Transfer log decoding from transaction receipts.
"""

import logging
from typing import Any, Iterator, NamedTuple, Optional, Union

from web3 import Web3

from wallet_explorer import hexdata
from wallet_explorer.formatting import format_units
from wallet_explorer.models import TokenTransferLog
from wallet_explorer.resolver import TokenMetadataResolver


logger = logging.getLogger(__name__)


# keccak256("Transfer(address,address,uint256)")
TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"


class RawTransferLog(NamedTuple):
    token_contract: str
    from_address: str
    to_address: str
    amount: int


def _to_hex(value: Union[str, bytes, None]) -> str:
    if value is None:
        return ""
    if isinstance(value, (bytes, bytearray)):
        return Web3.to_hex(value) if value else "0x"
    return value if value.startswith("0x") else "0x" + value


def _topic_address(topic: str) -> Optional[str]:
    body = hexdata.strip_hex_prefix(topic)
    if len(body) != hexdata.WORD_HEX_LENGTH or not hexdata.is_hex(body):
        return None
    return Web3.to_checksum_address("0x" + body[-hexdata.ADDRESS_HEX_LENGTH:])


def parse_transfer_log(log: dict[str, Any]) -> Optional[RawTransferLog]:
    """
    Decode one log as an ERC-20 ``Transfer``.

    ERC-721 transfers share the topic but index the token id as a fourth
    topic, so only three-topic logs with a one-word data field match.
    """
    topics = [_to_hex(topic).lower() for topic in log.get("topics") or []]
    if len(topics) != 3 or topics[0] != TRANSFER_TOPIC:
        return None

    data = hexdata.strip_hex_prefix(_to_hex(log.get("data")))
    if len(data) != hexdata.WORD_HEX_LENGTH or not hexdata.is_hex(data):
        return None

    from_address = _topic_address(topics[1])
    to_address = _topic_address(topics[2])
    contract = log.get("address")
    if from_address is None or to_address is None or not contract:
        return None

    return RawTransferLog(
        token_contract=Web3.to_checksum_address(contract),
        from_address=from_address,
        to_address=to_address,
        amount=int(data, 16),
    )


def iter_transfer_logs(receipt: dict[str, Any]) -> Iterator[RawTransferLog]:
    for log in receipt.get("logs") or []:
        parsed = parse_transfer_log(log)
        if parsed is not None:
            yield parsed


async def decode_erc20_transfers(
    receipt: Optional[dict[str, Any]],
    resolver: TokenMetadataResolver,
) -> list[TokenTransferLog]:
    """Decode every ERC-20 transfer in a receipt, decorated with token metadata."""
    if not receipt:
        return []

    transfers = []
    for raw in iter_transfer_logs(receipt):
        meta = await resolver.resolve(raw.token_contract)
        transfers.append(TokenTransferLog(
            token_contract=raw.token_contract,
            token_symbol=meta.symbol,
            token_decimals=meta.decimals,
            token_amount=format_units(raw.amount, meta.decimals),
            token_amount_raw=raw.amount,
            from_address=raw.from_address,
            to_address=raw.to_address,
        ))

    logger.debug(f"[receipts] Decoded {len(transfers)} ERC-20 transfers")
    return transfers
