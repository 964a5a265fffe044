from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext


def parse_amount(value: str | Decimal | float | None) -> Decimal | None:
    """Parse a user-entered amount; ``None`` for blank, malformed, or non-positive input."""

    if value is None:
        return None
    if isinstance(value, Decimal):
        amount = value
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            amount = Decimal(text)
        except InvalidOperation:
            return None
    if not amount.is_finite() or amount <= 0:
        return None
    return amount


_PRECISION = 80


def to_base_units(amount: Decimal, decimals: int) -> int:
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return int(amount.scaleb(decimals).to_integral_value(rounding=ROUND_DOWN))


def from_base_units(amount: int | str, decimals: int) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return Decimal(int(amount)).scaleb(-decimals)


def format_token_amount(amount: Decimal) -> str:
    """Show more decimal places as the amount gets smaller."""

    if amount >= 1:
        places = 4
    elif amount >= Decimal("0.01"):
        places = 6
    else:
        places = 8
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return f"{amount.quantize(Decimal(1).scaleb(-places), rounding=ROUND_DOWN):f}"


__all__ = ["parse_amount", "to_base_units", "from_base_units", "format_token_amount"]
