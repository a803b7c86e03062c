from fastapi.testclient import TestClient

from ledgerbook.models import Account, Company


def _create_account(client: TestClient, **fields) -> dict:
    payload = {"is_active": True, **fields}
    response = client.post("/api/chart-of-accounts", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_list_chart_of_accounts(client: TestClient, accounts):
    response = client.get("/api/chart-of-accounts")
    assert response.status_code == 200
    data = response.json()
    assert len(data) == 4
    assert {account["code"] for account in data} == {"1110", "2110", "4110", "5120"}

    assets = client.get("/api/chart-of-accounts", params={"type": "ASSET"}).json()
    assert [account["name"] for account in assets] == ["Cash"]

    search = client.get("/api/chart-of-accounts", params={"q": "rent"}).json()
    assert [account["code"] for account in search] == ["5120"]


def test_create_update_delete_chart_account(client: TestClient, accounts):
    created = _create_account(client, name="Supplies Expense", code="6100", type="EXPENSE", subtype="Supplies")
    account_id = created["id"]

    updated = client.patch(
        f"/api/chart-of-accounts/{account_id}",
        json={"name": "Office Supplies Expense", "is_active": False},
    )
    assert updated.status_code == 200
    assert updated.json()["name"] == "Office Supplies Expense"
    assert updated.json()["is_active"] is False

    deleted = client.delete(f"/api/chart-of-accounts/{account_id}")
    assert deleted.status_code == 200
    assert client.get(f"/api/chart-of-accounts/{account_id}").status_code == 404


def test_duplicate_code_returns_conflict(client: TestClient, accounts):
    response = client.post("/api/chart-of-accounts", json={"name": "Cash again", "code": "1110", "type": "ASSET"})
    assert response.status_code == 409
    assert response.json()["detail"] == "Account code already exists."


def test_delete_account_used_by_journal_line_returns_conflict(client: TestClient, accounts, entry_payload):
    assert client.post("/api/journal-entries", json=entry_payload()).status_code == 201

    response = client.delete(f"/api/chart-of-accounts/{accounts['rent']}")

    assert response.status_code == 409
    assert response.json()["detail"] == "Cannot delete account that is in use."


def test_delete_parent_account_returns_conflict(client: TestClient, accounts):
    parent = _create_account(client, name="Current Assets", code="11", type="ASSET")
    client.patch(f"/api/chart-of-accounts/{accounts['cash']}", json={"parent_account_id": parent["id"]})

    response = client.delete(f"/api/chart-of-accounts/{parent['id']}")

    assert response.status_code == 409


def test_parent_filter_and_tree(client: TestClient, accounts):
    assets = _create_account(client, name="Assets", code="1", type="ASSET")
    current = _create_account(client, name="Current Assets", code="11", type="ASSET", parent_account_id=assets["id"])
    client.patch(f"/api/chart-of-accounts/{accounts['cash']}", json={"parent_account_id": current["id"]})

    children = client.get("/api/chart-of-accounts", params={"parent_id": current["id"]}).json()
    assert [account["code"] for account in children] == ["1110"]
    assert children[0]["parent_account"]["name"] == "Current Assets"

    roots = client.get("/api/chart-of-accounts", params={"parent_id": 0}).json()
    assert {account["code"] for account in roots} == {"1", "2110", "4110", "5120"}

    tree = client.get("/api/chart-of-accounts/tree").json()
    assert [node["code"] for node in tree] == ["1", "2110", "4110", "5120"]
    assert tree[0]["children"][0]["code"] == "11"
    assert tree[0]["children"][0]["children"][0]["code"] == "1110"


def test_tree_promotes_accounts_with_hidden_parents(client: TestClient, accounts):
    parent = _create_account(client, name="Closed group", code="9", type="OTHER", is_active=False)
    client.patch(f"/api/chart-of-accounts/{accounts['cash']}", json={"parent_account_id": parent["id"]})

    tree = client.get("/api/chart-of-accounts/tree", params={"active": True}).json()

    assert "1110" in [node["code"] for node in tree]
    assert "9" not in [node["code"] for node in tree]


def test_parent_cycles_are_rejected(client: TestClient, accounts):
    top = _create_account(client, name="Assets", code="1", type="ASSET")
    middle = _create_account(client, name="Current Assets", code="11", type="ASSET", parent_account_id=top["id"])

    own_parent = client.patch(f"/api/chart-of-accounts/{top['id']}", json={"parent_account_id": top["id"]})
    assert own_parent.status_code == 400
    assert own_parent.json()["detail"] == "An account cannot be its own parent."

    cycle = client.patch(f"/api/chart-of-accounts/{top['id']}", json={"parent_account_id": middle["id"]})
    assert cycle.status_code == 400

    missing = client.patch(f"/api/chart-of-accounts/{top['id']}", json={"parent_account_id": 9999})
    assert missing.status_code == 404


def test_account_options_list_active_accounts(client: TestClient, accounts):
    client.patch(f"/api/chart-of-accounts/{accounts['payable']}", json={"is_active": False})

    options = client.get("/api/chart-of-accounts/options").json()

    assert [option["code"] for option in options] == ["1110", "4110", "5120"]
    assert set(options[0]) == {"id", "code", "name", "type"}


def test_parent_from_another_company_is_rejected(client: TestClient, accounts, session_factory):
    with session_factory() as db:
        other = Company(name="Other", base_currency="USD")
        db.add(other)
        db.flush()
        foreign = Account(company_id=other.id, code="1", name="Other assets", type="ASSET", normal_balance="debit")
        db.add(foreign)
        db.commit()
        foreign_id = foreign.id

    moved = client.patch(f"/api/chart-of-accounts/{accounts['cash']}", json={"parent_account_id": foreign_id})
    created = client.post(
        "/api/chart-of-accounts",
        json={"name": "Petty Cash", "code": "1120", "type": "ASSET", "parent_account_id": foreign_id},
    )

    assert moved.status_code == 404
    assert created.status_code == 404
    assert client.get(f"/api/chart-of-accounts/{accounts['cash']}").json()["parent_account_id"] is None
