from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
# journal line amounts are stored as Numeric(14, 2)
MAX_INTEGER_DIGITS = 12

MoneyInput = Decimal | float | int | str | None


def to_decimal(value: MoneyInput) -> Decimal:
    """Parse a form/API amount without rounding; blanks count as zero.

    Floats go through ``str()`` so 0.1 stays 0.1 instead of its binary expansion.
    Raises ``InvalidOperation`` for text that is not a finite number.
    """
    if value is None:
        return ZERO
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return ZERO
    amount = Decimal(str(value))
    if not amount.is_finite():
        raise InvalidOperation(f"Amount must be a finite number: {value!r}")
    return amount


def to_money(value: MoneyInput) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def fits_money_column(amount: Decimal) -> bool:
    """True when ``amount`` has at most two decimal places and twelve integer digits."""
    if abs(amount) >= Decimal(10) ** MAX_INTEGER_DIGITS:
        return False
    return amount == amount.quantize(CENT)
