"""
USDC amount parsing and formatting

Amounts travel as micro-USDC integers (6 decimals). Request bodies may carry
either dollars ("1,000.50") or micro units ("1000500000").
"""
import re
from decimal import Decimal
from typing import Union

USDC_DECIMALS = 6
MICRO_PER_USDC = 10 ** USDC_DECIMALS

# Values at or above this are taken as already in micro units
MICRO_INPUT_THRESHOLD = 1_000_000

_AMOUNT_RE = re.compile(r"^\d+(\.\d+)?$")


def parse_usdc_amount(value: Union[str, int, float]) -> str:
    """
    Normalize a USDC amount to a micro-USDC integer string

    "1,000.50" -> "1000500000", "0.5" -> "500000", "2500000" -> "2500000"

    Raises:
        ValueError: malformed input, or decimal point on a micro-unit value
    """
    cleaned = re.sub(r"[\s,]", "", str(value))
    if not _AMOUNT_RE.match(cleaned):
        raise ValueError(
            f'Invalid USDC amount format: "{value}". '
            f'Must be a number (e.g., "1000.50" or "1000500000")'
        )

    if Decimal(cleaned) >= MICRO_INPUT_THRESHOLD:
        if "." in cleaned:
            raise ValueError("USDC amounts in micro format must be integers (no decimals)")
        return str(int(cleaned))

    whole, _, fraction = cleaned.partition(".")
    fraction = fraction.ljust(USDC_DECIMALS, "0")[:USDC_DECIMALS]
    return str(int(whole + fraction))


def format_usdc(micro: int, places: int = 2) -> str:
    """Micro-USDC int -> dollar string, e.g. 1234567 -> "1.23" """
    value = Decimal(int(micro)) / MICRO_PER_USDC
    return f"{value:.{places}f}"
