import time
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, localcontext
from typing import Union


def hex_to_int(value: Union[str, int]) -> int:
    """Convert hexadecimal string to integer"""
    if isinstance(value, str) and value.startswith("0x"):
        return int(value, 16)
    return int(value)


def now_millis() -> int:
    """Current wall-clock time in milliseconds"""
    return int(time.time() * 1000)


def format_timestamp(ts: float = None) -> str:
    """Format timestamp as an ISO-8601 UTC string with millisecond precision"""
    if ts is None:
        ts = time.time()
    dt = datetime.fromtimestamp(ts, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_units(value: Union[str, int], decimals: int) -> int:
    """
    Scale a human-readable amount to base units using exact decimal arithmetic.

    Args:
        value: Amount such as "1000000" or "1.5"
        decimals: Number of fractional digits of the token

    Returns:
        Integer amount in base units

    Raises:
        ValueError: If the amount is negative, not a number, or has more
            fractional digits than `decimals` allows
    """
    with localcontext() as ctx:
        ctx.prec = 200
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Invalid amount: {value!r}")

        if not amount.is_finite() or amount < 0:
            raise ValueError(f"Invalid amount: {value!r}")

        scaled = amount.scaleb(decimals)
        if scaled != scaled.to_integral_value():
            raise ValueError(f"Too many decimal places in {value!r} for {decimals} decimals")

        return int(scaled)


def format_ether(wei: int) -> str:
    """Render a wei amount in whole native units without float rounding"""
    with localcontext() as ctx:
        ctx.prec = 200
        text = f"{Decimal(wei).scaleb(-18):f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _trim(value: Decimal) -> str:
    text = f"{value.quantize(Decimal('0.01')):f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_supply(raw: Union[str, int], decimals: int = 0) -> str:
    """
    Human-format an integer supply with B/M/K suffixes.

    `raw` is divided by 10**decimals first; pass decimals=0 for amounts
    already expressed in whole tokens.
    """
    with localcontext() as ctx:
        ctx.prec = 200
        try:
            amount = Decimal(str(raw)).scaleb(-decimals)
        except InvalidOperation:
            return str(raw)

        if amount >= Decimal(10) ** 9:
            return f"{_trim(amount / Decimal(10) ** 9)}B"
        if amount >= Decimal(10) ** 6:
            return f"{_trim(amount / Decimal(10) ** 6)}M"
        if amount >= Decimal(10) ** 3:
            return f"{_trim(amount / Decimal(10) ** 3)}K"
        return _trim(amount)
