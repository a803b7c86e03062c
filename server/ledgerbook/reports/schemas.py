from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class LedgerAccount(BaseModel):
    id: int
    code: Optional[str] = None
    name: str
    type: str


class LedgerRow(BaseModel):
    entry_id: int
    reference: str
    entry_date: date
    entry_type: str
    description: Optional[str] = None
    debit: Decimal
    credit: Decimal
    running_balance: Decimal


class LedgerReport(BaseModel):
    account: LedgerAccount
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    opening_balance: Decimal
    total_debit: Decimal
    total_credit: Decimal
    closing_balance: Decimal
    entries: list[LedgerRow]


class TrialBalanceRow(BaseModel):
    account_id: int
    code: Optional[str] = None
    name: str
    type: str
    total_debit: Decimal
    total_credit: Decimal
    balance: Decimal
    debit_balance: Decimal
    credit_balance: Decimal


class TrialBalanceReport(BaseModel):
    as_of: Optional[date] = None
    rows: list[TrialBalanceRow]
    total_debit: Decimal
    total_credit: Decimal
    is_balanced: bool
