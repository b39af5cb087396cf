from decimal import Decimal, InvalidOperation

_UNITS = (
    "", "un", "deux", "trois", "quatre", "cinq", "six", "sept", "huit", "neuf",
    "dix", "onze", "douze", "treize", "quatorze", "quinze", "seize",
    "dix-sept", "dix-huit", "dix-neuf",
)

_TENS = {
    2: "vingt",
    3: "trente",
    4: "quarante",
    5: "cinquante",
    6: "soixante",
    8: "quatre-vingt",
}

DEFAULT_CURRENCY = "francs congolais"


def _below_hundred(n: int) -> str:
    if n < 20:
        return _UNITS[n]

    ten, unit = divmod(n, 10)

    # 70-79 and 90-99 reuse the 10-19 forms
    if ten in (7, 9):
        base = _TENS[ten - 1]
        if ten == 7 and unit == 1:
            return f"{base} et onze"
        return f"{base}-{_UNITS[10 + unit]}"

    base = _TENS[ten]
    if unit == 0:
        return base
    if unit == 1 and ten != 8:
        return f"{base} et un"
    return f"{base}-{_UNITS[unit]}"


def _below_thousand(n: int, *, before_mille: bool = False) -> str:
    hundreds, rest = divmod(n, 100)
    parts = []
    if hundreds:
        if hundreds == 1:
            word = "cent"
        else:
            word = f"{_UNITS[hundreds]} cent"
            # "deux cents" but "deux cent un" and "deux cent mille"
            if rest == 0 and not before_mille:
                word += "s"
        parts.append(word)
    if rest:
        parts.append(_below_hundred(rest))
    return " ".join(parts)


def _spell(n: int) -> str:
    billions, remainder = divmod(n, 1_000_000_000)
    millions, remainder = divmod(remainder, 1_000_000)
    thousands, units = divmod(remainder, 1000)

    parts = []
    if billions:
        parts.append(
            "un milliard" if billions == 1 else f"{_spell(billions)} milliards"
        )
    if millions:
        parts.append(
            "un million"
            if millions == 1
            else f"{_below_thousand(millions)} millions"
        )
    if thousands:
        # The unit is elided before "mille" only
        parts.append(
            "mille"
            if thousands == 1
            else f"{_below_thousand(thousands, before_mille=True)} mille"
        )
    if units:
        parts.append(_below_thousand(units))
    return " ".join(parts)


def _to_integer(value: int | float | Decimal) -> int:
    if isinstance(value, bool):
        raise ValueError("A boolean is not an amount")
    if isinstance(value, int):
        return value
    try:
        dec = Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Invalid amount: {value!r}") from e
    if not dec.is_finite():
        raise ValueError(f"Amount must be finite, got {value!r}")
    if dec != dec.to_integral_value():
        raise ValueError(f"Amount must be a whole number, got {value!r}")
    return int(dec)


def nombre_en_lettres(value: int | float | Decimal) -> str:
    """Spell a whole number in French.

    Raises:
        ValueError: If the value is non-finite or has a fractional part.
    """
    n = _to_integer(value)
    if n == 0:
        return "zéro"
    if n < 0:
        return f"moins {nombre_en_lettres(-n)}"
    return _spell(n)


def montant_en_lettre(
    amount: int | float | Decimal,
    devise: str = DEFAULT_CURRENCY,
) -> str:
    """Spell a currency amount, e.g. ``"Mille deux cents francs congolais"``.

    Centimes are appended as ``" et <n> centimes"`` when present.
    """
    try:
        dec = Decimal(str(amount))
    except InvalidOperation as e:
        raise ValueError(f"Invalid amount: {amount!r}") from e
    if not dec.is_finite():
        raise ValueError(f"Amount must be finite, got {amount!r}")

    if dec == 0:
        return f"Zéro {devise}"

    dec = dec.quantize(Decimal("0.01"))
    whole = int(abs(dec))
    centimes = int((abs(dec) - whole) * 100)

    words = nombre_en_lettres(whole)
    if dec < 0:
        words = f"moins {words}"
    result = f"{words[0].upper()}{words[1:]} {devise}"
    if centimes:
        result += f" et {_below_hundred(centimes)} centimes"
    return result
