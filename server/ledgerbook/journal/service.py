import json
import logging
import re
from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from ledgerbook.journal import lifecycle
from ledgerbook.journal.balance import JournalLineInput, compute_balance, validate_lines
from ledgerbook.journal.errors import NotFoundError, ValidationError
from ledgerbook.models import Account, AuditEvent, JournalEntry, JournalEntryType, JournalLine
from ledgerbook.utils.money import to_money

logger = logging.getLogger(__name__)

ENTITY_TYPE = "journal_entry"
REFERENCE_PREFIX = "JE-"
_GENERATED_REFERENCE = re.compile(r"^JE-(\d+)$")

DEFAULT_ENTRY_TYPES = [
    ("JE", "Journal Entry", "Standard journal entry for manual transactions"),
    ("INV", "Invoice", "Journal entry created from invoice operations"),
    ("PMT", "Payment", "Journal entry created from payment operations"),
    ("EXP", "Expense", "Journal entry created from expense operations"),
    ("BNK", "Bank Transaction", "Journal entry created from bank transactions"),
    ("ADJ", "Adjustment", "Adjustment entries for correcting balances"),
    ("OB", "Opening Balance", "Opening balance entries for new accounts"),
    ("CE", "Closing Entry", "End of period closing entries"),
]


def ensure_default_entry_types(db: Session, company_id: int) -> None:
    existing = {
        code for (code,) in db.query(JournalEntryType.code).filter(JournalEntryType.company_id == company_id).all()
    }
    for code, name, description in DEFAULT_ENTRY_TYPES:
        if code not in existing:
            db.add(JournalEntryType(company_id=company_id, code=code, name=name, description=description, is_active=True))
    db.flush()


def list_entry_types(db: Session, company_id: int) -> Sequence[JournalEntryType]:
    ensure_default_entry_types(db, company_id)
    return (
        db.query(JournalEntryType)
        .filter(JournalEntryType.company_id == company_id)
        .order_by(JournalEntryType.code.asc())
        .all()
    )


def create_entry_type(db: Session, company_id: int, payload: dict) -> JournalEntryType:
    ensure_default_entry_types(db, company_id)
    entry_type = JournalEntryType(
        company_id=company_id,
        code=payload["code"].strip().upper(),
        name=payload["name"].strip(),
        description=payload.get("description"),
        is_active=payload.get("is_active", True),
    )
    db.add(entry_type)
    db.flush()
    return entry_type


def _resolve_entry_type(db: Session, company_id: int, code: str) -> str:
    ensure_default_entry_types(db, company_id)
    normalized = (code or "").strip().upper()
    entry_type = (
        db.query(JournalEntryType)
        .filter(JournalEntryType.company_id == company_id, JournalEntryType.code == normalized)
        .first()
    )
    if not entry_type or not entry_type.is_active:
        raise ValidationError(f"Unknown journal entry type '{code}'.")
    return entry_type.code


def next_reference(db: Session, company_id: int) -> str:
    references = (
        db.query(JournalEntry.reference)
        .filter(JournalEntry.company_id == company_id, JournalEntry.reference.like(f"{REFERENCE_PREFIX}%"))
        .all()
    )
    highest = 0
    for (reference,) in references:
        match = _GENERATED_REFERENCE.match(reference or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{REFERENCE_PREFIX}{highest + 1:06d}"


def _resolve_reference(db: Session, company_id: int, reference: Optional[str], *, entry_id: Optional[int] = None) -> str:
    """Validate a user-supplied reference; a blank one is generated on create only."""
    reference = (reference or "").strip()
    if not reference:
        if entry_id is not None:
            raise ValidationError("Reference cannot be blank.")
        return next_reference(db, company_id)
    query = db.query(JournalEntry.id).filter(JournalEntry.company_id == company_id, JournalEntry.reference == reference)
    if entry_id is not None:
        query = query.filter(JournalEntry.id != entry_id)
    if query.first() is not None:
        raise ValidationError(f"Reference '{reference}' is already in use.")
    return reference


def _require_description(description: Optional[str]) -> str:
    description = (description or "").strip()
    if not description:
        raise ValidationError("Description is required.")
    return description


def _build_lines(db: Session, company_id: int, lines_data: Iterable[dict], entry_description: str) -> list[JournalLine]:
    line_inputs = [
        JournalLineInput(
            account_id=line.get("account_id"),
            debit=line.get("debit"),
            credit=line.get("credit"),
            description=line.get("description"),
        )
        for line in lines_data
    ]
    validate_lines(line_inputs)

    account_ids = {line.account_id for line in line_inputs}
    accounts = {
        account.id: account
        for account in db.query(Account).filter(Account.company_id == company_id, Account.id.in_(account_ids)).all()
    }
    lines: list[JournalLine] = []
    for number, line in enumerate(line_inputs, start=1):
        account = accounts.get(line.account_id)
        if account is None:
            raise ValidationError(f"Line {number}: account {line.account_id} was not found.")
        if not account.is_active:
            raise ValidationError(f"Line {number}: account {account.code or account.name} is inactive.")
        lines.append(
            JournalLine(
                line_number=number,
                account_id=line.account_id,
                description=(line.description or "").strip() or entry_description,
                debit=to_money(line.debit),
                credit=to_money(line.credit),
            )
        )
    return lines


def _entry_query(db: Session):
    return (
        db.query(JournalEntry)
        .options(selectinload(JournalEntry.lines).selectinload(JournalLine.account))
        .filter(JournalEntry.deleted_at.is_(None))
    )


def get_entry(db: Session, entry_id: int, *, company_id: Optional[int] = None) -> JournalEntry:
    query = _entry_query(db).filter(JournalEntry.id == entry_id)
    if company_id is not None:
        query = query.filter(JournalEntry.company_id == company_id)
    entry = query.first()
    if not entry:
        raise NotFoundError("Journal entry not found.")
    return entry


def list_entries(
    db: Session,
    company_id: int,
    *,
    status: Optional[str] = None,
    entry_type: Optional[str] = None,
    search: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    account_id: Optional[int] = None,
    limit: int = 50,
    offset: int = 0,
) -> Sequence[JournalEntry]:
    query = _entry_query(db).filter(JournalEntry.company_id == company_id)
    if status:
        query = query.filter(JournalEntry.status == status.upper())
    if entry_type:
        query = query.filter(JournalEntry.entry_type == entry_type.upper())
    if search:
        like = f"%{search}%"
        query = query.filter(or_(JournalEntry.reference.ilike(like), JournalEntry.description.ilike(like)))
    if start_date:
        query = query.filter(JournalEntry.entry_date >= start_date)
    if end_date:
        query = query.filter(JournalEntry.entry_date <= end_date)
    if account_id:
        query = query.filter(JournalEntry.lines.any(JournalLine.account_id == account_id))
    return (
        query.order_by(JournalEntry.entry_date.desc(), JournalEntry.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def create_entry(db: Session, company_id: int, payload: dict) -> JournalEntry:
    description = _require_description(payload.get("description"))
    lines = _build_lines(db, company_id, payload.get("lines") or [], description)
    entry = JournalEntry(
        company_id=company_id,
        reference=_resolve_reference(db, company_id, payload.get("reference")),
        entry_type=_resolve_entry_type(db, company_id, payload.get("entry_type") or "JE"),
        entry_date=payload["entry_date"],
        description=description,
        source_document=payload.get("source_document") or "manual",
        source_document_id=payload.get("source_document_id"),
        status=lifecycle.EntryStatus.DRAFT.value,
    )
    entry.lines = lines
    db.add(entry)
    db.flush()
    logger.info("Created draft journal entry id=%s reference=%s lines=%s", entry.id, entry.reference, len(lines))
    return entry


def update_entry(db: Session, entry: JournalEntry, payload: dict) -> JournalEntry:
    lifecycle.ensure_editable(entry)

    changes: dict = {}
    if payload.get("description") is not None:
        changes["description"] = _require_description(payload["description"])
    if payload.get("reference") is not None:
        changes["reference"] = _resolve_reference(db, entry.company_id, payload["reference"], entry_id=entry.id)
    if payload.get("entry_type") is not None:
        changes["entry_type"] = _resolve_entry_type(db, entry.company_id, payload["entry_type"])
    for field in ["entry_date", "source_document"]:
        if payload.get(field) is not None:
            changes[field] = payload[field]
    if "source_document_id" in payload:
        changes["source_document_id"] = payload["source_document_id"]
    lines = None
    if payload.get("lines") is not None:
        lines = _build_lines(db, entry.company_id, payload["lines"], changes.get("description", entry.description))

    for field, value in changes.items():
        setattr(entry, field, value)
    if lines is not None:
        entry.lines = lines
    entry.updated_at = datetime.utcnow()
    db.flush()
    return entry


def _record_audit(
    db: Session,
    entry: JournalEntry,
    *,
    action: str,
    before_status: str,
    actor: Optional[str] = None,
    reason: Optional[str] = None,
) -> AuditEvent:
    summary = compute_balance(entry.lines)
    event = AuditEvent(
        company_id=entry.company_id,
        entity_type=ENTITY_TYPE,
        entity_id=entry.id,
        action=action,
        actor=actor,
        reason=reason,
        before_status=before_status,
        after_status=entry.status,
        event_metadata=json.dumps(
            {
                "reference": entry.reference,
                "total_debit": str(summary.total_debit),
                "total_credit": str(summary.total_credit),
                "is_balanced": summary.is_balanced,
            }
        ),
    )
    db.add(event)
    return event


def post_entry(db: Session, entry: JournalEntry, *, actor: Optional[str] = None) -> JournalEntry:
    before_status = entry.status
    summary = lifecycle.post(entry)
    _record_audit(db, entry, action="post", before_status=before_status, actor=actor)
    db.flush()
    logger.info(
        "Posted journal entry id=%s reference=%s total=%s actor=%s",
        entry.id,
        entry.reference,
        summary.total_debit,
        actor,
    )
    return entry


def force_entry_to_draft(db: Session, entry: JournalEntry, *, reason: str, actor: Optional[str] = None) -> bool:
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A reason is required to force a posted entry back to draft.")

    before_status = entry.status
    changed = lifecycle.force_to_draft(entry)
    if not changed:
        return False

    entry.updated_at = datetime.utcnow()
    _record_audit(db, entry, action="force_draft", before_status=before_status, actor=actor, reason=reason)
    db.flush()
    logger.warning(
        "Journal entry forced back to draft without balance check: id=%s reference=%s actor=%s reason=%s",
        entry.id,
        entry.reference,
        actor,
        reason,
    )
    return True


def delete_entry(db: Session, entry: JournalEntry, *, actor: Optional[str] = None) -> None:
    lifecycle.ensure_deletable(entry)
    entry.deleted_at = datetime.utcnow()
    _record_audit(db, entry, action="delete", before_status=entry.status, actor=actor)
    db.flush()
    logger.info("Soft-deleted journal entry id=%s reference=%s actor=%s", entry.id, entry.reference, actor)


def list_audit_events(db: Session, entry_id: int, *, company_id: Optional[int] = None) -> Sequence[AuditEvent]:
    query = db.query(JournalEntry.id).filter(JournalEntry.id == entry_id)
    if company_id is not None:
        query = query.filter(JournalEntry.company_id == company_id)
    if query.first() is None:
        raise NotFoundError("Journal entry not found.")
    return (
        db.query(AuditEvent)
        .filter(AuditEvent.entity_type == ENTITY_TYPE, AuditEvent.entity_id == entry_id)
        .order_by(AuditEvent.id.asc())
        .all()
    )
