"""
Money helpers

Currency amounts are kept as Decimal internally. The compact "$2.1M"
notation used by opportunity feeds is parsed once at ingestion and produced
again only for display.
"""

import re
import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Union

from ..core.errors import MalformedTvlError

logger = logging.getLogger(__name__)

Money = Union[str, int, float, Decimal]

TVL_PATTERN = re.compile(r'\$([0-9.]+)([KMB]?)')

SUFFIX_MULTIPLIERS = {
    '': Decimal('1'),
    'K': Decimal('1e3'),
    'M': Decimal('1e6'),
    'B': Decimal('1e9'),
}

CENTS = Decimal('0.01')


def to_decimal(value: Money) -> Decimal:
    """Convert a numeric value to Decimal without float noise

    Raises:
        InvalidOperation: if the value is not numeric
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    if isinstance(value, bool):
        raise InvalidOperation(f"Not a monetary value: {value!r}")
    return Decimal(str(value).strip().replace(',', ''))


def parse_tvl_strict(tvl: Any) -> Decimal:
    """Parse "$X[K|M|B]" into a USD amount

    Numbers are accepted as-is so feeds that already send numeric TVL
    skip the string round-trip.

    Raises:
        MalformedTvlError: if the value does not match the notation, or is
            a negative or non-finite number
    """
    if isinstance(tvl, (int, float, Decimal)) and not isinstance(tvl, bool):
        value = to_decimal(tvl)
        if not value.is_finite() or value < 0:
            raise MalformedTvlError(tvl)
        return value
    if not isinstance(tvl, str):
        raise MalformedTvlError(tvl)

    match = TVL_PATTERN.search(tvl.replace(',', ''))
    if not match:
        raise MalformedTvlError(tvl)

    try:
        value = Decimal(match.group(1))
    except InvalidOperation:
        raise MalformedTvlError(tvl)

    return value * SUFFIX_MULTIPLIERS[match.group(2)]


def parse_tvl(tvl: Any) -> Decimal:
    """Lenient TVL parser: malformed values count as zero"""
    try:
        return parse_tvl_strict(tvl)
    except MalformedTvlError as e:
        logger.debug(f"Treating TVL as zero: {e}")
        return Decimal('0')


def format_tvl(value: Decimal) -> str:
    """Format a USD amount in compact notation

    Uses the smallest suffix that keeps the rounded mantissa below 1000,
    with one decimal place. Amounts under 1000 are shown whole.
    """
    value = to_decimal(value)
    for suffix in ('', 'K', 'M', 'B'):
        places = Decimal('1') if suffix == '' else Decimal('0.1')
        mantissa = (value / SUFFIX_MULTIPLIERS[suffix]).quantize(places, rounding=ROUND_HALF_UP)
        if mantissa < 1000 or suffix == 'B':
            return f"${mantissa}{suffix}"


def format_usd(value: Decimal) -> str:
    """Format a Decimal as dollars and cents"""
    return f"${to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP):,}"


def quantize_cents(value: Decimal) -> Decimal:
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)
