import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ledgerbook.db import Base, get_db
from ledgerbook.main import app
from ledgerbook.models import Account, Company


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.create_all(engine)
    yield TestingSessionLocal
    Base.metadata.drop_all(engine)


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def accounts(session_factory) -> dict[str, int]:
    with session_factory() as db:
        company = Company(name="Demo", base_currency="USD")
        db.add(company)
        db.flush()
        rows = {
            "cash": Account(company_id=company.id, code="1110", name="Cash", type="ASSET", normal_balance="debit"),
            "payable": Account(company_id=company.id, code="2110", name="Accounts Payable", type="LIABILITY", normal_balance="credit"),
            "fees": Account(company_id=company.id, code="4110", name="Professional Fees", type="INCOME", normal_balance="credit"),
            "rent": Account(company_id=company.id, code="5120", name="Rent Expense", type="EXPENSE", normal_balance="debit"),
        }
        db.add_all(rows.values())
        db.commit()
        return {key: account.id for key, account in rows.items()}


@pytest.fixture()
def entry_payload(accounts):
    def build(debit="100.00", credit="100.00", **overrides) -> dict:
        payload = {
            "entry_date": "2026-03-31",
            "description": "March rent",
            "lines": [
                {"account_id": accounts["rent"], "debit": debit, "credit": "0"},
                {"account_id": accounts["cash"], "debit": "0", "credit": credit},
            ],
        }
        payload.update(overrides)
        return payload

    return build
