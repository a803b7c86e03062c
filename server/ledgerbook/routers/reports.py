from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ledgerbook.companies import resolve_company_id
from ledgerbook.db import get_db
from ledgerbook.journal.errors import NotFoundError
from ledgerbook.reports import schemas
from ledgerbook.reports.service import general_ledger, trial_balance

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.get("/ledger", response_model=schemas.LedgerReport)
def ledger_report(
    account_id: int = Query(...),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    company_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    if start_date and end_date and start_date > end_date:
        raise HTTPException(status_code=400, detail="start_date must be on or before end_date.")
    try:
        return general_ledger(
            db,
            resolve_company_id(db, company_id),
            account_id,
            start_date=start_date,
            end_date=end_date,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.get("/trial-balance", response_model=schemas.TrialBalanceReport)
def trial_balance_report(
    as_of: Optional[date] = Query(None),
    company_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    return trial_balance(db, resolve_company_id(db, company_id), as_of=as_of)
