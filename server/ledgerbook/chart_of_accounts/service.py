from collections import defaultdict
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ledgerbook.chart_of_accounts import schemas
from ledgerbook.models import Account, JournalLine

DEBIT_NORMAL_TYPES = {"ASSET", "EXPENSE", "COGS"}


def normal_balance_for(account_type: str) -> str:
    return "debit" if (account_type or "").upper() in DEBIT_NORMAL_TYPES else "credit"


def children_index(accounts: Iterable[Account]) -> dict[Optional[int], list[Account]]:
    """Map parent id (None for roots) to its children, ordered by code then name."""
    index: dict[Optional[int], list[Account]] = defaultdict(list)
    for account in accounts:
        index[account.parent_id].append(account)
    for children in index.values():
        children.sort(key=lambda account: (account.code or "", account.name))
    return index


def build_tree(accounts: Iterable[Account]) -> list[schemas.ChartAccountTreeNode]:
    accounts = list(accounts)
    known_ids = {account.id for account in accounts}
    index = children_index(accounts)
    # accounts whose parent is filtered out are shown as roots
    roots = list(index.get(None, []))
    for parent_id, children in index.items():
        if parent_id is not None and parent_id not in known_ids:
            roots.extend(children)

    def to_node(account: Account) -> schemas.ChartAccountTreeNode:
        return schemas.ChartAccountTreeNode(
            id=account.id,
            code=account.code,
            name=account.name,
            type=account.type,
            is_active=account.is_active,
            children=[to_node(child) for child in index.get(account.id, [])],
        )

    return [to_node(root) for root in roots]


def is_descendant(db: Session, account_id: int, candidate_parent_id: int) -> bool:
    """True when ``candidate_parent_id`` sits somewhere below ``account_id``."""
    current = db.query(Account).filter(Account.id == candidate_parent_id).first()
    visited: set[int] = set()
    while current is not None and current.parent_id is not None and current.id not in visited:
        visited.add(current.id)
        if current.parent_id == account_id:
            return True
        current = db.query(Account).filter(Account.id == current.parent_id).first()
    return False


def account_in_use(db: Session, account_id: int) -> bool:
    return (
        db.query(JournalLine.id).filter(JournalLine.account_id == account_id).first() is not None
        or db.query(Account.id).filter(Account.parent_id == account_id).first() is not None
    )
