"""Form-side state for creating and editing one journal entry.

An ``EntryEditor`` holds the header fields and lines the user is working on,
recomputes the balance after every change, blocks posting locally when the
entry is not balanced, and keeps its state untouched when a request fails so
the same submission can be retried.
"""

from contextlib import contextmanager
from dataclasses import replace
from datetime import date
from enum import Enum
from typing import Optional

from ledgerbook.client.api import JournalApiClient
from ledgerbook.journal import balance
from ledgerbook.journal.balance import BalanceSummary, JournalLineInput
from ledgerbook.journal.errors import JournalError, StaleStateError, ValidationError
from ledgerbook.journal.lifecycle import EntryStatus
from ledgerbook.utils.money import to_money

HEADER_FIELDS = ("entry_date", "reference", "entry_type", "description", "source_document", "source_document_id")


class SubmitState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


class SubmitInProgressError(JournalError):
    pass


def _blank_line() -> JournalLineInput:
    return JournalLineInput(account_id=None)


class EntryEditor:
    def __init__(
        self,
        api: JournalApiClient,
        *,
        entry_date: Optional[date] = None,
        description: str = "",
        reference: str = "",
        entry_type: str = "JE",
    ):
        self.api = api
        self.entry_id: Optional[int] = None
        self.status = EntryStatus.DRAFT
        self.entry_date = entry_date or date.today()
        self.reference = reference
        self.entry_type = entry_type
        self.description = description
        self.source_document = "manual"
        self.source_document_id: Optional[int] = None
        self.lines: list[JournalLineInput] = [_blank_line(), _blank_line()]
        self.submit_state = SubmitState.IDLE
        self.last_error: Optional[JournalError] = None
        self.dirty = False
        self.deleted = False

    @classmethod
    def load(cls, api: JournalApiClient, entry_id: int) -> "EntryEditor":
        editor = cls(api)
        editor._apply(api.get_entry(entry_id))
        return editor

    @property
    def read_only(self) -> bool:
        return self.deleted or self.status is EntryStatus.POSTED

    @property
    def summary(self) -> BalanceSummary:
        return balance.compute_balance(self.lines)

    @property
    def can_post(self) -> bool:
        return not self.read_only and len(self.lines) >= balance.MIN_LINES and self.summary.is_balanced

    def _ensure_editable(self) -> None:
        if self.deleted:
            raise StaleStateError("This journal entry has been deleted.")
        if self.read_only:
            raise StaleStateError("This journal entry has been posted and cannot be edited.")

    def _replace_line(self, index: int, line: JournalLineInput) -> None:
        self.lines[index] = line
        self.dirty = True

    def set_header(self, **fields) -> None:
        self._ensure_editable()
        unknown = set(fields) - set(HEADER_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown header fields: {', '.join(sorted(unknown))}")
        for name, value in fields.items():
            setattr(self, name, value)
        self.dirty = True

    def add_line(self) -> int:
        self._ensure_editable()
        self.lines.append(_blank_line())
        self.dirty = True
        return len(self.lines) - 1

    def remove_line(self, index: int) -> None:
        self._ensure_editable()
        if len(self.lines) <= balance.MIN_LINES:
            raise ValidationError("A journal entry must have at least two lines.")
        del self.lines[index]
        self.dirty = True

    def set_account(self, index: int, account_id: Optional[int]) -> None:
        self._ensure_editable()
        self._replace_line(index, replace(self.lines[index], account_id=account_id))

    def set_line_description(self, index: int, description: Optional[str]) -> None:
        self._ensure_editable()
        self._replace_line(index, replace(self.lines[index], description=description))

    def set_debit(self, index: int, amount) -> None:
        self._ensure_editable()
        self._replace_line(index, balance.set_debit(self.lines[index], amount))

    def set_credit(self, index: int, amount) -> None:
        self._ensure_editable()
        self._replace_line(index, balance.set_credit(self.lines[index], amount))

    def validate(self) -> None:
        if not (self.description or "").strip():
            raise ValidationError("Description is required.")
        balance.validate_lines(self.lines)

    def to_payload(self) -> dict:
        return {
            "entry_date": self.entry_date.isoformat(),
            "reference": self.reference or None,
            "entry_type": self.entry_type,
            "description": self.description,
            "source_document": self.source_document,
            "source_document_id": self.source_document_id,
            "lines": [
                {
                    "account_id": line.account_id,
                    "description": line.description or None,
                    "debit": str(to_money(line.debit)),
                    "credit": str(to_money(line.credit)),
                }
                for line in self.lines
            ],
        }

    @contextmanager
    def _submitting(self):
        if self.submit_state is SubmitState.PENDING:
            raise SubmitInProgressError("A submission is already in progress.")
        self.submit_state = SubmitState.PENDING
        try:
            yield
        except Exception as exc:
            self.submit_state = SubmitState.ERROR
            self.last_error = exc if isinstance(exc, JournalError) else None
            raise
        self.submit_state = SubmitState.SUCCESS
        self.last_error = None

    def _mark_failed(self, exc: ValidationError) -> None:
        self.submit_state = SubmitState.ERROR
        self.last_error = exc

    def save(self) -> dict:
        if self.submit_state is SubmitState.PENDING:
            raise SubmitInProgressError("A submission is already in progress.")
        self._ensure_editable()
        try:
            self.validate()
        except ValidationError as exc:
            self._mark_failed(exc)
            raise

        payload = self.to_payload()
        with self._submitting():
            if self.entry_id is None:
                data = self.api.create_entry(payload)
            else:
                data = self.api.update_entry(self.entry_id, payload)
        self._apply(data)
        return data

    def post(self, actor: Optional[str] = None) -> dict:
        if self.submit_state is SubmitState.PENDING:
            raise SubmitInProgressError("A submission is already in progress.")
        self._ensure_editable()
        try:
            self.validate()
            balance.ensure_balanced(self.lines)
        except ValidationError as exc:
            self._mark_failed(exc)
            raise

        if self.entry_id is None or self.dirty:
            self.save()
        with self._submitting():
            data = self.api.post_entry(self.entry_id, actor=actor)
        self._apply(data)
        return data

    def force_to_draft(self, reason: str, actor: Optional[str] = None) -> dict:
        """Administrative override: reopen a posted entry without a balance check."""
        if self.entry_id is None or self.deleted or self.status is not EntryStatus.POSTED:
            raise StaleStateError("Only a posted journal entry can be forced back to draft.")
        with self._submitting():
            data = self.api.force_to_draft(self.entry_id, reason, actor=actor)
        self._apply(data)
        return data

    def delete(self, actor: Optional[str] = None) -> None:
        if self.entry_id is None:
            raise ValidationError("This journal entry has not been saved.")
        self._ensure_editable()
        with self._submitting():
            self.api.delete_entry(self.entry_id, actor=actor)
        self.deleted = True

    def _apply(self, data: dict) -> None:
        self.entry_id = data["id"]
        self.status = EntryStatus(data["status"])
        self.entry_date = date.fromisoformat(str(data["entry_date"]))
        self.reference = data["reference"]
        self.entry_type = data["entry_type"]
        self.description = data["description"]
        self.source_document = data.get("source_document", "manual")
        self.source_document_id = data.get("source_document_id")
        self.lines = [
            JournalLineInput(
                account_id=line["account_id"],
                debit=to_money(line["debit"]),
                credit=to_money(line["credit"]),
                description=line.get("description"),
            )
            for line in data.get("lines", [])
        ]
        self.dirty = False
