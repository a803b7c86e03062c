from typing import Optional

from sqlalchemy.orm import Session

from ledgerbook.models import Company


def get_default_company_id(db: Session) -> int:
    company = db.query(Company).order_by(Company.id.asc()).first()
    if company:
        return company.id

    company = Company(name="Demo Company", base_currency="USD")
    db.add(company)
    db.flush()
    return company.id


def resolve_company_id(db: Session, company_id: Optional[int]) -> int:
    return company_id if company_id is not None else get_default_company_id(db)
