from decimal import ROUND_HALF_UP, Decimal


def format_montant(amount: float | Decimal | None, symbol: str = "FC") -> str:
    """Format an amount the RDC way, e.g. '1 250 000,00 FC'.

    Thousands are separated by a space, decimals by a comma, always two
    decimal places.
    """
    if amount is None:
        amount = 0
    dec = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if dec < 0 else ""
    integer_part, decimal_part = f"{abs(dec):.2f}".split(".")

    groups = []
    while len(integer_part) > 3:
        groups.insert(0, integer_part[-3:])
        integer_part = integer_part[:-3]
    groups.insert(0, integer_part)

    formatted = f"{sign}{' '.join(groups)},{decimal_part}"
    return f"{formatted} {symbol}" if symbol else formatted
