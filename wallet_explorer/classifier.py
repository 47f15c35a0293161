"""
Transfer Classifier - Recognizes token transfers in raw call data.

Heuristic, not an ABI disassembler. Exactly these call shapes are
recognized, first match wins:

1. ``execute(address,uint256,bytes,...)`` proxy wrapper (``0xb61d27f6``)
   whose embedded call is a ``transfer`` or ``transferFrom``
2. ``transfer(address,uint256)`` (``0xa9059cbb``)
3. ``transferFrom(address,address,uint256)`` (``0x23b872dd``)

Anything else is a native transfer. Multi-call batches, delegate-call
wrappers with other selectors and non-ERC-20 standards fall through to the
native case. New shapes are added to ``TOKEN_CALL_SHAPES`` explicitly.

Usage:
    classifier = TransferClassifier()
    result = classifier.classify(tx, wallet_address)
    if result.is_token_transfer:
        print(result.token_contract, result.token_amount_raw)
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from wallet_explorer import hexdata
from wallet_explorer.models import (
    ClassifiedTransfer,
    Direction,
    RawTransaction,
    TransferKind,
)


logger = logging.getLogger(__name__)


SELECTOR_TRANSFER = "0xa9059cbb"
SELECTOR_TRANSFER_FROM = "0x23b872dd"
SELECTOR_EXECUTE = "0xb61d27f6"

# Hex offset into the unprefixed payload where the embedded call of an execute
# wrapper starts: selector + destination word + value word.
EXECUTE_EMBEDDED_CALL_OFFSET = hexdata.SELECTOR_HEX_LENGTH + 2 * hexdata.WORD_HEX_LENGTH


@dataclass(frozen=True)
class TokenCallShape:
    """A recognized token call: its selector and which word holds the amount."""
    name: str
    selector: str
    amount_word: int

    def matches(self, data: str) -> bool:
        return (
            hexdata.selector(data) == self.selector
            and hexdata.word(data, self.amount_word) is not None
        )

    def amount(self, data: str) -> Optional[int]:
        return hexdata.word_as_int(data, self.amount_word)


TRANSFER = TokenCallShape("transfer", SELECTOR_TRANSFER, amount_word=1)
TRANSFER_FROM = TokenCallShape("transferFrom", SELECTOR_TRANSFER_FROM, amount_word=2)

TOKEN_CALL_SHAPES: tuple[TokenCallShape, ...] = (TRANSFER, TRANSFER_FROM)


def match_token_call(data: str) -> Optional[TokenCallShape]:
    """Return the token call shape ``data`` matches, if any."""
    for shape in TOKEN_CALL_SHAPES:
        if shape.matches(data):
            return shape
    return None


def addresses_equal(a: Optional[str], b: Optional[str]) -> bool:
    """Case-insensitive address comparison; None never matches."""
    if not a or not b:
        return False
    return a.lower() == b.lower()


def direction_of(tx: RawTransaction, reference_address: Optional[str]) -> Direction:
    if addresses_equal(tx.from_address, reference_address):
        return Direction.OUTGOING
    if addresses_equal(tx.to_address, reference_address):
        return Direction.INCOMING
    return Direction.UNKNOWN


class TransferClassifier:
    """
    Classifies transactions as native, direct token or proxied token transfers.

    Never raises: malformed or truncated call data classifies as a native
    transfer.
    """

    def classify(
        self,
        tx: RawTransaction,
        reference_address: Optional[str] = None,
    ) -> ClassifiedTransfer:
        direction = direction_of(tx, reference_address)
        data = tx.input_data or ""

        proxied = self._classify_execute(data, direction)
        if proxied is not None:
            return proxied

        if hexdata.selector(data) != SELECTOR_EXECUTE:
            direct = self._classify_direct(tx, data, direction)
            if direct is not None:
                return direct

        return ClassifiedTransfer(kind=TransferKind.NATIVE_TRANSFER, direction=direction)

    def classify_many(
        self,
        transactions: Iterable[RawTransaction],
        reference_address: Optional[str] = None,
    ) -> list[ClassifiedTransfer]:
        return [self.classify(tx, reference_address) for tx in transactions]

    def _classify_execute(
        self,
        data: str,
        direction: Direction,
    ) -> Optional[ClassifiedTransfer]:
        if hexdata.selector(data) != SELECTOR_EXECUTE:
            return None

        destination = hexdata.word_as_address(data, 0)
        if destination is None:
            return None

        embedded = hexdata.tail(data, EXECUTE_EMBEDDED_CALL_OFFSET)
        shape = match_token_call(embedded)
        if shape is None:
            logger.debug(f"[classifier] execute() wrapping non-token call to {destination}")
            return None

        return ClassifiedTransfer(
            kind=TransferKind.PROXIED_TOKEN_TRANSFER,
            direction=direction,
            token_contract=destination,
            token_amount_raw=shape.amount(embedded),
        )

    def _classify_direct(
        self,
        tx: RawTransaction,
        data: str,
        direction: Direction,
    ) -> Optional[ClassifiedTransfer]:
        if not tx.to_address:
            return None

        shape = match_token_call(data)
        if shape is None:
            return None

        return ClassifiedTransfer(
            kind=TransferKind.DIRECT_TOKEN_TRANSFER,
            direction=direction,
            token_contract=tx.to_address,
            token_amount_raw=shape.amount(data),
        )
