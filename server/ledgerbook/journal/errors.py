from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ledgerbook.journal.balance import BalanceSummary


class JournalError(Exception):
    """Base class for journal entry failures."""


class ValidationError(JournalError, ValueError):
    """User-correctable input problem; never sent to the database."""


class UnbalancedEntryError(ValidationError):
    def __init__(self, summary: "BalanceSummary"):
        self.summary = summary
        if summary.total_debit == 0 and summary.total_credit == 0:
            message = "Journal entry has no amounts; total debits and credits must be greater than zero."
        else:
            message = (
                f"Journal entry is unbalanced: debits={summary.total_debit} "
                f"credits={summary.total_credit} difference={summary.difference}"
            )
        super().__init__(message)


class StaleStateError(JournalError):
    """The entry is no longer in a state that allows the requested change."""


class NotFoundError(JournalError, LookupError):
    pass


class TransportError(JournalError):
    """Network or backend failure on save. The caller may retry the same request."""

    def __init__(self, message: str, status_code: int | None = None, detail=None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail
