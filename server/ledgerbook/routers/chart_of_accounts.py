from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ledgerbook.chart_of_accounts import schemas
from ledgerbook.chart_of_accounts.service import account_in_use, build_tree, is_descendant, normal_balance_for
from ledgerbook.companies import get_default_company_id, resolve_company_id
from ledgerbook.db import get_db
from ledgerbook.models import Account

router = APIRouter(prefix="/api", tags=["chart-of-accounts"])


def _normalize_type(account_type: Optional[str]) -> Optional[str]:
    if account_type is None:
        return None
    return account_type.upper()


def _serialize_account(account: Account) -> schemas.ChartAccountResponse:
    parent_summary = None
    if account.parent:
        parent_summary = schemas.AccountParentSummary(id=account.parent.id, name=account.parent.name, code=account.parent.code)
    return schemas.ChartAccountResponse(
        id=account.id,
        name=account.name,
        code=account.code,
        type=_normalize_type(account.type) or "OTHER",
        subtype=account.subtype,
        description=account.description,
        is_active=account.is_active,
        parent_account_id=account.parent_id,
        parent_account=parent_summary,
        created_at=account.created_at,
        updated_at=account.updated_at,
    )


def _get_account(db: Session, account_id: int) -> Account:
    account = (
        db.query(Account)
        .options(selectinload(Account.parent))
        .filter(Account.id == account_id, Account.company_id == get_default_company_id(db))
        .first()
    )
    if not account:
        raise HTTPException(status_code=404, detail="Account not found.")
    return account


def _check_parent(db: Session, parent_id: int, account_id: Optional[int] = None) -> Account:
    if account_id is not None and parent_id == account_id:
        raise HTTPException(status_code=400, detail="An account cannot be its own parent.")
    parent = (
        db.query(Account)
        .filter(Account.id == parent_id, Account.company_id == get_default_company_id(db))
        .first()
    )
    if not parent:
        raise HTTPException(status_code=404, detail="Parent account not found.")
    if account_id is not None and is_descendant(db, account_id, parent_id):
        raise HTTPException(status_code=400, detail="An account cannot be moved below one of its own children.")
    return parent


@router.get("/chart-of-accounts", response_model=List[schemas.ChartAccountResponse])
def list_chart_of_accounts(
    type: Optional[schemas.AccountType] = None,
    active: Optional[bool] = None,
    q: Optional[str] = None,
    parent_id: Optional[int] = Query(None, description="Children of this account; 0 returns top-level accounts."),
    company_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    query = (
        db.query(Account)
        .options(selectinload(Account.parent))
        .filter(Account.company_id == resolve_company_id(db, company_id))
    )
    if type:
        query = query.filter(func.upper(Account.type) == _normalize_type(type))
    if active is not None:
        query = query.filter(Account.is_active.is_(active))
    if q:
        like = f"%{q}%"
        query = query.filter((Account.name.ilike(like)) | (Account.code.ilike(like)))
    if parent_id is not None:
        query = query.filter(Account.parent_id.is_(None) if parent_id == 0 else Account.parent_id == parent_id)

    accounts = query.order_by(Account.type.asc(), Account.code.asc(), Account.name.asc()).all()
    return [_serialize_account(account) for account in accounts]


@router.get("/chart-of-accounts/tree", response_model=List[schemas.ChartAccountTreeNode])
def chart_of_accounts_tree(active: Optional[bool] = None, db: Session = Depends(get_db)):
    query = db.query(Account).filter(Account.company_id == get_default_company_id(db))
    if active is not None:
        query = query.filter(Account.is_active.is_(active))
    return build_tree(query.all())


@router.get("/chart-of-accounts/options", response_model=List[schemas.AccountOption])
def chart_of_account_options(db: Session = Depends(get_db)):
    accounts = (
        db.query(Account)
        .filter(Account.company_id == get_default_company_id(db), Account.is_active.is_(True))
        .order_by(Account.code.asc(), Account.name.asc())
        .all()
    )
    return [
        schemas.AccountOption(id=account.id, code=account.code, name=account.name, type=_normalize_type(account.type) or "OTHER")
        for account in accounts
    ]


@router.post("/chart-of-accounts", response_model=schemas.ChartAccountResponse, status_code=status.HTTP_201_CREATED)
def create_chart_account(payload: schemas.ChartAccountCreate, db: Session = Depends(get_db)):
    parent = _check_parent(db, payload.parent_account_id) if payload.parent_account_id else None

    account = Account(
        company_id=get_default_company_id(db),
        code=payload.code,
        name=payload.name,
        type=_normalize_type(payload.type),
        subtype=payload.subtype,
        description=payload.description,
        is_active=payload.is_active,
        parent_id=payload.parent_account_id,
        normal_balance=normal_balance_for(payload.type),
    )
    db.add(account)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Account code already exists.") from None
    db.refresh(account)
    if parent:
        account.parent = parent
    return _serialize_account(account)


@router.get("/chart-of-accounts/{account_id}", response_model=schemas.ChartAccountResponse)
def get_chart_account(account_id: int, db: Session = Depends(get_db)):
    return _serialize_account(_get_account(db, account_id))


@router.put("/chart-of-accounts/{account_id}", response_model=schemas.ChartAccountResponse)
@router.patch("/chart-of-accounts/{account_id}", response_model=schemas.ChartAccountResponse)
def update_chart_account(account_id: int, payload: schemas.ChartAccountUpdate, db: Session = Depends(get_db)):
    account = _get_account(db, account_id)

    data = payload.model_dump(exclude_unset=True)
    if "parent_account_id" in data:
        parent_id = data["parent_account_id"]
        if parent_id is not None:
            _check_parent(db, parent_id, account.id)
        account.parent_id = parent_id
    if "type" in data and data["type"] is not None:
        account.type = _normalize_type(data["type"])
        account.normal_balance = normal_balance_for(account.type)

    for key in ["name", "code", "subtype", "description", "is_active"]:
        if key in data:
            setattr(account, key, data[key])

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Account code already exists.") from None

    db.expire_all()
    return _serialize_account(_get_account(db, account_id))


@router.delete("/chart-of-accounts/{account_id}", response_model=dict)
def delete_chart_account(account_id: int, db: Session = Depends(get_db)):
    account = _get_account(db, account_id)
    if account_in_use(db, account_id):
        raise HTTPException(status_code=409, detail="Cannot delete account that is in use.")

    try:
        db.delete(account)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Cannot delete account that is in use.") from None

    return {"status": "ok"}
