"""
Display formatting for amounts and dates.

Amounts are scaled with ``Decimal`` at a precision large enough for any
uint256, never through floats.
"""

import re
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Union

from web3 import Web3


DISPLAY_PLACES = 6
ETHER_DECIMALS = 18

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def format_units(raw_amount: int, decimals: int, places: int = DISPLAY_PLACES) -> str:
    """
    Scale a smallest-unit amount by ``decimals`` and render ``places`` digits.

    format_units(1000000, 6) -> "1.000000"
    """
    with localcontext() as ctx:
        ctx.prec = 200
        scaled = Decimal(int(raw_amount)).scaleb(-int(decimals))
        quantum = Decimal(1).scaleb(-places)
        return f"{scaled.quantize(quantum, rounding=ROUND_HALF_UP):f}"


def format_eth_value(value_wei: int, places: int = DISPLAY_PLACES) -> str:
    """Ether amount with a fixed number of fractional digits."""
    return format_units(value_wei, ETHER_DECIMALS, places)


def format_ether(value_wei: int) -> str:
    """Full-precision ether string, always with a fractional part ("1.5", "0.0")."""
    with localcontext() as ctx:
        ctx.prec = 200
        ether = Web3.from_wei(int(value_wei), "ether")
        text = f"{ether.normalize():f}" if ether else "0"
    if "." not in text:
        text += ".0"
    return text


def iso_date(epoch_seconds: int) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2021-01-01T00:00:00.000Z."""
    moment = datetime.fromtimestamp(int(epoch_seconds), tz=timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def date_to_timestamp(value: Union[str, date, datetime]) -> int:
    """
    Convert a calendar date to epoch seconds.

    ``YYYY-MM-DD`` strings and ``date`` objects mean UTC midnight; naive
    datetimes are taken as UTC.

    Raises:
        ValueError: If a string is not in YYYY-MM-DD form.
    """
    if isinstance(value, datetime):
        moment = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        return int(moment.timestamp())
    if isinstance(value, date):
        return int(datetime(value.year, value.month, value.day, tzinfo=timezone.utc).timestamp())
    if not isinstance(value, str) or not _DATE_PATTERN.match(value):
        raise ValueError(f"Invalid date format {value!r}. Use YYYY-MM-DD")
    parsed = datetime.strptime(value, "%Y-%m-%d").replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())
