"""Double-entry balance rules for journal entry lines.

Everything here is pure: functions take line objects exposing ``account_id``,
``debit`` and ``credit`` (ORM rows, ``JournalLineInput`` values or editor
lines) and never mutate them.
"""

from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional, Protocol, Sequence

from ledgerbook.journal.errors import UnbalancedEntryError, ValidationError
from ledgerbook.utils.money import MAX_INTEGER_DIGITS, ZERO, MoneyInput, fits_money_column, to_decimal, to_money

MIN_LINES = 2


class LineAmounts(Protocol):
    debit: MoneyInput
    credit: MoneyInput


@dataclass(frozen=True)
class JournalLineInput:
    account_id: Optional[int]
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    description: Optional[str] = None


@dataclass(frozen=True)
class BalanceSummary:
    total_debit: Decimal
    total_credit: Decimal
    difference: Decimal
    is_balanced: bool


def parse_amount(value: MoneyInput, *, field: str = "amount") -> Decimal:
    """Parse one user-entered amount exactly; anything that would need rounding is rejected."""
    try:
        amount = to_decimal(value)
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number.") from None
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative.")
    if not fits_money_column(amount):
        raise ValidationError(
            f"{field} must have at most {MAX_INTEGER_DIGITS} digits before the decimal point and 2 after it."
        )
    return to_money(amount)


def compute_balance(lines: Iterable[LineAmounts]) -> BalanceSummary:
    total_debit = ZERO
    total_credit = ZERO
    for line in lines:
        total_debit += to_money(line.debit)
        total_credit += to_money(line.credit)
    return BalanceSummary(
        total_debit=total_debit,
        total_credit=total_credit,
        difference=abs(total_debit - total_credit),
        is_balanced=total_debit == total_credit and total_debit > 0,
    )


def set_debit(line: JournalLineInput, amount: MoneyInput) -> JournalLineInput:
    """Return ``line`` with a new debit; a non-zero debit clears the credit side."""
    debit = parse_amount(amount, field="Debit amount")
    return replace(line, debit=debit, credit=ZERO if debit > 0 else to_money(line.credit))


def set_credit(line: JournalLineInput, amount: MoneyInput) -> JournalLineInput:
    """Return ``line`` with a new credit; a non-zero credit clears the debit side."""
    credit = parse_amount(amount, field="Credit amount")
    return replace(line, credit=credit, debit=ZERO if credit > 0 else to_money(line.debit))


def validate_lines(lines: Sequence) -> None:
    if len(lines) < MIN_LINES:
        raise ValidationError("At least two lines are required for a journal entry.")
    for number, line in enumerate(lines, start=1):
        if not line.account_id:
            raise ValidationError(f"Line {number}: account is required.")
        debit = parse_amount(line.debit, field=f"Line {number} debit amount")
        credit = parse_amount(line.credit, field=f"Line {number} credit amount")
        if debit > 0 and credit > 0:
            raise ValidationError(f"Line {number}: enter either a debit or a credit, not both.")


def ensure_balanced(lines: Iterable[LineAmounts]) -> BalanceSummary:
    summary = compute_balance(lines)
    if not summary.is_balanced:
        raise UnbalancedEntryError(summary)
    return summary
