from typing import Optional

from sqlalchemy.orm import Session

from .chart_of_accounts.service import normal_balance_for
from .db import SessionLocal
from .journal.service import ensure_default_entry_types
from .models import Account, Company

ROOT_ACCOUNTS = [
    ("1", "Assets", "ASSET"),
    ("2", "Liabilities", "LIABILITY"),
    ("3", "Equity", "EQUITY"),
    ("4", "Income", "INCOME"),
    ("5", "Expenses", "EXPENSE"),
]

CATEGORY_ACCOUNTS = {
    "1": [("11", "Current Assets"), ("12", "Non-current Assets")],
    "2": [("21", "Current Liabilities"), ("22", "Long-term Liabilities")],
    "3": [("31", "Owners' Equity")],
    "4": [("41", "Operating Revenues")],
    "5": [("51", "Operating Expenses")],
}

NUMBERED_ACCOUNTS = {
    "11": [
        ("1110", "Cash – Operating Account"),
        ("1120", "Petty Cash"),
        ("1130", "Accounts Receivable"),
        ("1140", "Prepaid Expenses"),
    ],
    "12": [
        ("1210", "Office Equipment"),
        ("1220", "Accumulated Depreciation – Office Equipment"),
    ],
    "21": [
        ("2110", "Accounts Payable"),
        ("2120", "Sales Tax Payable"),
        ("2130", "Accrued Liabilities"),
    ],
    "22": [("2210", "Long-term Loan")],
    "31": [("3110", "Owner's Capital"), ("3120", "Retained Earnings")],
    "41": [("4110", "Professional Fees"), ("4120", "Advisory Fees")],
    "51": [
        ("5110", "Salaries and Wages"),
        ("5120", "Rent Expense"),
        ("5130", "Software Subscriptions"),
        ("5140", "Bank Charges"),
    ],
}


def _get_or_create_company(db: Session) -> Company:
    company = db.query(Company).order_by(Company.id.asc()).first()
    if company:
        return company

    company = Company(name="Demo Company", base_currency="USD")
    db.add(company)
    db.flush()
    return company


def _upsert_account(
    db: Session,
    company_id: int,
    code: str,
    name: str,
    account_type: str,
    parent: Optional[Account],
) -> Account:
    account = db.query(Account).filter(Account.company_id == company_id, Account.code == code).first()
    if not account:
        account = Account(company_id=company_id, code=code, name=name, is_active=True)
        db.add(account)
    account.name = name
    account.type = account_type
    account.normal_balance = normal_balance_for(account_type)
    account.parent_id = parent.id if parent else None
    db.flush()
    return account


def _seed_chart_of_accounts(db: Session, company_id: int) -> None:
    roots: dict[str, Account] = {}
    categories: dict[str, tuple[Account, str]] = {}

    for code, name, account_type in ROOT_ACCOUNTS:
        roots[code] = _upsert_account(db, company_id, code, name, account_type, None)

    for root_code, children in CATEGORY_ACCOUNTS.items():
        root = roots[root_code]
        for code, name in children:
            categories[code] = (_upsert_account(db, company_id, code, name, root.type, root), root.type)

    for category_code, accounts in NUMBERED_ACCOUNTS.items():
        parent, account_type = categories[category_code]
        for code, name in accounts:
            _upsert_account(db, company_id, code, name, account_type, parent)


def run_seed():
    db: Session = SessionLocal()
    try:
        company = _get_or_create_company(db)
        _seed_chart_of_accounts(db, company.id)
        ensure_default_entry_types(db, company.id)
        db.commit()
    finally:
        db.close()


if __name__ == "__main__":
    run_seed()
