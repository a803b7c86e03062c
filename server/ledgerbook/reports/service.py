"""General ledger and trial balance built from posted journal lines.

Sums run over Decimal values in Python rather than SQL ``SUM`` so the totals
match the two-place amounts stored on each line exactly.
"""

import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from ledgerbook.chart_of_accounts.service import DEBIT_NORMAL_TYPES
from ledgerbook.journal.errors import NotFoundError
from ledgerbook.journal.lifecycle import EntryStatus
from ledgerbook.models import Account, JournalEntry, JournalLine
from ledgerbook.reports import schemas
from ledgerbook.utils.money import ZERO, to_money

logger = logging.getLogger(__name__)


def compute_account_balance(account_type: str, debit: Decimal, credit: Decimal) -> Decimal:
    """Debit-normal types increase on debit, others on credit."""
    if (account_type or "").upper() in DEBIT_NORMAL_TYPES:
        return debit - credit
    return credit - debit


def _posted_lines(db: Session, company_id: int):
    return (
        db.query(JournalLine, JournalEntry)
        .join(JournalEntry, JournalEntry.id == JournalLine.journal_entry_id)
        .filter(
            JournalEntry.company_id == company_id,
            JournalEntry.status == EntryStatus.POSTED.value,
            JournalEntry.deleted_at.is_(None),
        )
    )


def general_ledger(
    db: Session,
    company_id: int,
    account_id: int,
    *,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> schemas.LedgerReport:
    account = db.query(Account).filter(Account.id == account_id, Account.company_id == company_id).first()
    if not account:
        raise NotFoundError("Account not found.")

    opening_balance = ZERO
    if start_date:
        prior = _posted_lines(db, company_id).filter(
            JournalLine.account_id == account_id,
            JournalEntry.entry_date < start_date,
        )
        for line, _ in prior.all():
            opening_balance += to_money(line.debit) - to_money(line.credit)

    query = _posted_lines(db, company_id).filter(JournalLine.account_id == account_id)
    if start_date:
        query = query.filter(JournalEntry.entry_date >= start_date)
    if end_date:
        query = query.filter(JournalEntry.entry_date <= end_date)
    rows = query.order_by(JournalEntry.entry_date.asc(), JournalEntry.id.asc(), JournalLine.line_number.asc()).all()

    running = opening_balance
    total_debit = ZERO
    total_credit = ZERO
    entries: list[schemas.LedgerRow] = []
    for line, entry in rows:
        debit = to_money(line.debit)
        credit = to_money(line.credit)
        running += debit - credit
        total_debit += debit
        total_credit += credit
        entries.append(
            schemas.LedgerRow(
                entry_id=entry.id,
                reference=entry.reference,
                entry_date=entry.entry_date,
                entry_type=entry.entry_type,
                description=line.description or entry.description,
                debit=debit,
                credit=credit,
                running_balance=running,
            )
        )

    logger.debug("General ledger account_id=%s rows=%s opening=%s closing=%s", account_id, len(entries), opening_balance, running)
    return schemas.LedgerReport(
        account=schemas.LedgerAccount(id=account.id, code=account.code, name=account.name, type=account.type),
        start_date=start_date,
        end_date=end_date,
        opening_balance=opening_balance,
        total_debit=total_debit,
        total_credit=total_credit,
        closing_balance=running,
        entries=entries,
    )


def trial_balance(db: Session, company_id: int, *, as_of: Optional[date] = None) -> schemas.TrialBalanceReport:
    query = _posted_lines(db, company_id)
    if as_of:
        query = query.filter(JournalEntry.entry_date <= as_of)

    debits: dict[int, Decimal] = defaultdict(lambda: ZERO)
    credits: dict[int, Decimal] = defaultdict(lambda: ZERO)
    for line, _ in query.all():
        debits[line.account_id] += to_money(line.debit)
        credits[line.account_id] += to_money(line.credit)

    account_ids = set(debits) | set(credits)
    accounts = db.query(Account).filter(Account.id.in_(account_ids)).all() if account_ids else []

    rows: list[schemas.TrialBalanceRow] = []
    total_debit = ZERO
    total_credit = ZERO
    for account in sorted(accounts, key=lambda account: (account.code or "", account.name)):
        debit = debits[account.id]
        credit = credits[account.id]
        net = debit - credit
        debit_balance = net if net > 0 else ZERO
        credit_balance = -net if net < 0 else ZERO
        total_debit += debit_balance
        total_credit += credit_balance
        rows.append(
            schemas.TrialBalanceRow(
                account_id=account.id,
                code=account.code,
                name=account.name,
                type=account.type,
                total_debit=debit,
                total_credit=credit,
                balance=compute_account_balance(account.type, debit, credit),
                debit_balance=debit_balance,
                credit_balance=credit_balance,
            )
        )

    return schemas.TrialBalanceReport(
        as_of=as_of,
        rows=rows,
        total_debit=total_debit,
        total_credit=total_credit,
        is_balanced=total_debit == total_credit,
    )
