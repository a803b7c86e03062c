from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledgerbook.companies import get_default_company_id, resolve_company_id
from ledgerbook.db import get_db
from ledgerbook.journal import lifecycle, schemas, service
from ledgerbook.journal.balance import compute_balance
from ledgerbook.journal.errors import JournalError, NotFoundError, StaleStateError, ValidationError
from ledgerbook.models import JournalEntry
from ledgerbook.utils.money import to_money

router = APIRouter(prefix="/api", tags=["journal-entries"])

REFERENCE_CONFLICT = "Journal entry reference is already in use. Reload and try again."


def _http_error(exc: JournalError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, StaleStateError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def _load_entry(db: Session, entry_id: int) -> JournalEntry:
    try:
        return service.get_entry(db, entry_id, company_id=get_default_company_id(db))
    except NotFoundError as exc:
        raise _http_error(exc) from None


def _to_response(entry: JournalEntry) -> schemas.JournalEntryResponse:
    summary = compute_balance(entry.lines)
    return schemas.JournalEntryResponse(
        id=entry.id,
        reference=entry.reference,
        entry_type=entry.entry_type,
        entry_date=entry.entry_date,
        description=entry.description,
        source_document=entry.source_document,
        source_document_id=entry.source_document_id,
        status=entry.status,
        posted_at=entry.posted_at,
        created_at=entry.created_at,
        updated_at=entry.updated_at,
        lines=[
            schemas.JournalLineResponse(
                id=line.id,
                line_number=line.line_number,
                account_id=line.account_id,
                account_code=line.account.code if line.account else None,
                account_name=line.account.name if line.account else None,
                description=line.description,
                debit=to_money(line.debit),
                credit=to_money(line.credit),
            )
            for line in entry.lines
        ],
        totals=schemas.BalanceSummaryResponse.model_validate(summary),
        allowed_actions=[action.value for action in lifecycle.allowed_actions(entry)],
    )


def _to_list_row(entry: JournalEntry) -> schemas.JournalEntryListRow:
    summary = compute_balance(entry.lines)
    return schemas.JournalEntryListRow(
        id=entry.id,
        reference=entry.reference,
        entry_type=entry.entry_type,
        entry_date=entry.entry_date,
        description=entry.description,
        status=entry.status,
        posted_at=entry.posted_at,
        line_count=len(entry.lines),
        total_debit=summary.total_debit,
        total_credit=summary.total_credit,
        is_balanced=summary.is_balanced,
    )


def _reload(db: Session, entry_id: int) -> schemas.JournalEntryResponse:
    db.expire_all()
    return _to_response(service.get_entry(db, entry_id))


@router.get("/journal-entry-types", response_model=list[schemas.JournalEntryTypeResponse])
def list_journal_entry_types(company_id: Optional[int] = Query(None), db: Session = Depends(get_db)):
    entry_types = service.list_entry_types(db, resolve_company_id(db, company_id))
    db.commit()
    return entry_types


@router.post("/journal-entry-types", response_model=schemas.JournalEntryTypeResponse, status_code=status.HTTP_201_CREATED)
def create_journal_entry_type(payload: schemas.JournalEntryTypeCreate, db: Session = Depends(get_db)):
    try:
        entry_type = service.create_entry_type(db, get_default_company_id(db), payload.model_dump())
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Journal entry type code already exists.") from None
    db.refresh(entry_type)
    return entry_type


@router.post("/journal-entries", response_model=schemas.JournalEntryResponse, status_code=status.HTTP_201_CREATED)
def create_journal_entry(payload: schemas.JournalEntryCreate, db: Session = Depends(get_db)):
    try:
        entry = service.create_entry(db, get_default_company_id(db), payload.model_dump())
        db.commit()
    except JournalError as exc:
        db.rollback()
        raise _http_error(exc) from None
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail=REFERENCE_CONFLICT) from None
    return _reload(db, entry.id)


@router.get("/journal-entries", response_model=list[schemas.JournalEntryListRow])
def list_journal_entries(
    company_id: Optional[int] = Query(None),
    status_filter: Optional[schemas.JournalStatus] = Query(None, alias="status"),
    entry_type: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    account_id: Optional[int] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    entries = service.list_entries(
        db,
        resolve_company_id(db, company_id),
        status=status_filter,
        entry_type=entry_type,
        search=search,
        start_date=start_date,
        end_date=end_date,
        account_id=account_id,
        limit=limit,
        offset=offset,
    )
    return [_to_list_row(entry) for entry in entries]


@router.get("/journal-entries/{entry_id}", response_model=schemas.JournalEntryResponse)
def get_journal_entry(entry_id: int, db: Session = Depends(get_db)):
    return _to_response(_load_entry(db, entry_id))


@router.put("/journal-entries/{entry_id}", response_model=schemas.JournalEntryResponse)
def update_journal_entry(entry_id: int, payload: schemas.JournalEntryUpdate, db: Session = Depends(get_db)):
    entry = _load_entry(db, entry_id)
    try:
        service.update_entry(db, entry, payload.model_dump(exclude_unset=True))
        db.commit()
    except JournalError as exc:
        db.rollback()
        raise _http_error(exc) from None
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail=REFERENCE_CONFLICT) from None
    return _reload(db, entry_id)


@router.post("/journal-entries/{entry_id}/post", response_model=schemas.JournalEntryResponse)
def post_journal_entry(entry_id: int, actor: Optional[str] = Query(None), db: Session = Depends(get_db)):
    entry = _load_entry(db, entry_id)
    try:
        service.post_entry(db, entry, actor=actor)
    except JournalError as exc:
        db.rollback()
        raise _http_error(exc) from None
    db.commit()
    return _reload(db, entry_id)


@router.post("/journal-entries/{entry_id}/set-draft", response_model=schemas.JournalEntryResponse)
def force_journal_entry_to_draft(entry_id: int, payload: schemas.ForceDraftRequest, db: Session = Depends(get_db)):
    entry = _load_entry(db, entry_id)
    try:
        service.force_entry_to_draft(db, entry, reason=payload.reason, actor=payload.actor)
    except JournalError as exc:
        db.rollback()
        raise _http_error(exc) from None
    db.commit()
    return _reload(db, entry_id)


@router.delete("/journal-entries/{entry_id}", response_model=dict)
def delete_journal_entry(entry_id: int, actor: Optional[str] = Query(None), db: Session = Depends(get_db)):
    entry = _load_entry(db, entry_id)
    try:
        service.delete_entry(db, entry, actor=actor)
    except JournalError as exc:
        db.rollback()
        raise _http_error(exc) from None
    db.commit()
    return {"status": "ok"}


@router.get("/journal-entries/{entry_id}/audit", response_model=list[schemas.AuditEventResponse])
def list_journal_entry_audit(entry_id: int, db: Session = Depends(get_db)):
    try:
        return service.list_audit_events(db, entry_id, company_id=get_default_company_id(db))
    except NotFoundError as exc:
        raise _http_error(exc) from None
