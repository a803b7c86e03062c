"""Draft/Posted state machine for journal entries.

    DRAFT  --post (balanced)-->  POSTED
    POSTED --force_to_draft-->   DRAFT     (override, audited by the caller)
    DRAFT  --delete-->           soft-deleted
    POSTED --delete-->           rejected
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from ledgerbook.journal.balance import MIN_LINES, BalanceSummary, compute_balance, ensure_balanced, validate_lines
from ledgerbook.journal.errors import StaleStateError


class EntryStatus(str, Enum):
    DRAFT = "DRAFT"
    POSTED = "POSTED"


class EntryAction(str, Enum):
    EDIT = "edit"
    POST = "post"
    DELETE = "delete"
    FORCE_DRAFT = "force_draft"


def status_of(entry) -> EntryStatus:
    return EntryStatus(entry.status)


def is_posted(entry) -> bool:
    return status_of(entry) is EntryStatus.POSTED


def ensure_editable(entry) -> None:
    if is_posted(entry):
        raise StaleStateError(
            f"Journal entry {entry.reference or entry.id} has been posted and cannot be edited. "
            "Record a reversing entry instead."
        )


def ensure_deletable(entry) -> None:
    if is_posted(entry):
        raise StaleStateError(f"Journal entry {entry.reference or entry.id} has been posted and cannot be deleted.")


def post(entry, *, posted_at: Optional[datetime] = None) -> BalanceSummary:
    if is_posted(entry):
        raise StaleStateError(f"Journal entry {entry.reference or entry.id} is already posted.")
    validate_lines(entry.lines)
    summary = ensure_balanced(entry.lines)
    entry.status = EntryStatus.POSTED.value
    entry.posted_at = posted_at or datetime.utcnow()
    return summary


def force_to_draft(entry) -> bool:
    """Move a posted entry back to draft without any balance check.

    Returns False when the entry was already a draft. Callers must record an
    audit event whenever this returns True.
    """
    if not is_posted(entry):
        return False
    entry.status = EntryStatus.DRAFT.value
    entry.posted_at = None
    return True


def allowed_actions(entry) -> list[EntryAction]:
    if is_posted(entry):
        return [EntryAction.FORCE_DRAFT]
    actions = [EntryAction.EDIT, EntryAction.DELETE]
    if len(entry.lines) >= MIN_LINES and compute_balance(entry.lines).is_balanced:
        actions.insert(1, EntryAction.POST)
    return actions
